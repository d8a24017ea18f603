"""RegisterBank: the fixed block of holding registers, serialized behind one lock."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Sequence

from .types import REGISTER_COUNT

logger = logging.getLogger(__name__)


class RegisterBank:
    """
    REGISTER_COUNT unsigned 16-bit values, indexed from 0. The length never changes.

    Every access takes the same re-entrant lock. Callers that need a multi-step
    operation to be atomic (validate, write, persist) hold locked() around it.
    """

    def __init__(self, values: Sequence[int] | None = None) -> None:
        if values is None:
            self._values = [0] * REGISTER_COUNT
        else:
            if len(values) != REGISTER_COUNT:
                raise ValueError(f"Register bank needs {REGISTER_COUNT} values, got {len(values)}")
            for i, v in enumerate(values):
                _check_value(i, v)
            self._values = [int(v) for v in values]
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator["RegisterBank"]:
        with self._lock:
            yield self

    def read(self, start: int, count: int) -> list[int]:
        """Return count values from start. Range must lie inside the bank."""
        _check_range(start, count)
        with self._lock:
            return self._values[start : start + count]

    def write_many(self, start: int, values: Iterable[int]) -> None:
        """Write values to consecutive addresses from start, in order."""
        vals = list(values)
        _check_range(start, len(vals))
        for i, v in enumerate(vals):
            _check_value(start + i, v)
        with self._lock:
            for i, v in enumerate(vals):
                self._values[start + i] = v
        logger.debug("Wrote %d register(s) at %d", len(vals), start)

    def snapshot(self) -> list[int]:
        """Copy of the whole bank; callers may keep or mutate it freely."""
        with self._lock:
            return list(self._values)

    def __len__(self) -> int:
        return REGISTER_COUNT

    def __getitem__(self, address: int) -> int:
        _check_range(address, 1)
        with self._lock:
            return self._values[address]


def _check_range(start: int, count: int) -> None:
    if start < 0 or count < 0 or start + count > REGISTER_COUNT:
        raise IndexError(f"Register range {start}+{count} outside 0..{REGISTER_COUNT - 1}")


def _check_value(address: int, value: int) -> None:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Register {address} value out of range 0..65535: {value}")
