"""pyrtu-slave: Modbus RTU-over-TCP slave serving 1000 holding registers (functions 0x03 and 0x10)."""

__version__ = "0.1.0"

from .codec import decode_pdu, encode_pdu, exception_pdu
from .config import SlaveConfig, load_config, save_config
from .crc import compute_crc16, validate_crc16
from .dispatcher import RequestDispatcher
from .errors import ConfigError, FrameError, ModbusIOError, PyRTUSlaveError, StorageError
from .framing import RTUFrameBuffer
from .registers import RegisterBank
from .storage import JsonRegisterStore
from .types import REGISTER_COUNT, DecodedPDU, ExceptionCode, Field, FieldWidth, FunctionCode

__all__ = [
    "__version__",
    "compute_crc16",
    "validate_crc16",
    "decode_pdu",
    "encode_pdu",
    "exception_pdu",
    "RequestDispatcher",
    "RTUFrameBuffer",
    "RegisterBank",
    "JsonRegisterStore",
    "SlaveConfig",
    "load_config",
    "save_config",
    "ConfigError",
    "FrameError",
    "ModbusIOError",
    "PyRTUSlaveError",
    "StorageError",
    "REGISTER_COUNT",
    "DecodedPDU",
    "ExceptionCode",
    "Field",
    "FieldWidth",
    "FunctionCode",
]
