"""Exceptions for pyrtu-slave: malformed frames, config/storage files, and client I/O."""


class PyRTUSlaveError(Exception):
    """Base exception for pyrtu-slave."""

    pass


class FrameError(PyRTUSlaveError, ValueError):
    """Raised when a checksum-valid frame does not fit the layout it is decoded with."""

    def __init__(self, frame: bytes, message: str | None = None) -> None:
        self.frame = bytes(frame)
        self._msg = message or f"Malformed frame of {len(frame)} bytes"
        super().__init__(self._msg)


class ConfigError(PyRTUSlaveError):
    """Raised when the config file cannot be parsed or holds invalid values."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class StorageError(PyRTUSlaveError):
    """Raised when the persisted register file is malformed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class ModbusIOError(PyRTUSlaveError):
    """Raised when a diagnostic read/write against a slave fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        start: int | None = None,
        count: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.start = start
        self.count = count
        self.cause = cause
        super().__init__(message)
