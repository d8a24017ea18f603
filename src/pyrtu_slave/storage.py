"""JsonRegisterStore: persist the register bank as a JSON array of REGISTER_COUNT integers."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Sequence

from .errors import StorageError
from .types import REGISTER_COUNT

logger = logging.getLogger(__name__)


def _parse_values(data: Any, path: str) -> list[int]:
    if not isinstance(data, list):
        raise StorageError("expected a JSON array of register values", path=path)
    if len(data) != REGISTER_COUNT:
        raise StorageError(f"expected {REGISTER_COUNT} register values, got {len(data)}", path=path)
    values: list[int] = []
    for i, v in enumerate(data):
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 0xFFFF:
            raise StorageError(f"register {i} is not an integer in 0..65535: {v!r}", path=path)
        values.append(v)
    return values


def write_json_atomic(path: Path, data: Any) -> None:
    """Write data as indented JSON via a temp file in the same directory, then replace path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class JsonRegisterStore:
    """
    Register values on disk. A missing file loads as all zeros and is created;
    a malformed one raises StorageError rather than being overwritten.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[int]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("No tags file at %s, using defaults", self._path)
            values = [0] * REGISTER_COUNT
            self.save(values)
            return values
        except json.JSONDecodeError as e:
            raise StorageError(f"invalid JSON: {e}", path=str(self._path)) from e
        values = _parse_values(data, str(self._path))
        logger.debug("Loaded %d register values from %s", len(values), self._path)
        return values

    def save(self, values: Sequence[int]) -> None:
        write_json_atomic(self._path, list(values))
