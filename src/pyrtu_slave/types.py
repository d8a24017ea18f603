"""Core data model: function/exception codes, tagged PDU fields, decoded PDU, bank bounds."""

from dataclasses import dataclass
from enum import IntEnum

REGISTER_COUNT = 1000
MAX_REGISTER_ADDRESS = REGISTER_COUNT - 1

# Largest read whose byte count still fits the one-byte count field
MAX_READ_QUANTITY = 125

EXCEPTION_FLAG = 0x80


class FunctionCode(IntEnum):
    """Function codes served by the slave."""

    READ_HOLDING_REGISTERS = 0x03
    WRITE_MULTIPLE_REGISTERS = 0x10


class ExceptionCode(IntEnum):
    """Exception codes carried in the single data byte of an exception reply."""

    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    CHECKSUM_FAILURE = 0x04


class FieldWidth(IntEnum):
    """On-wire width of one PDU field, in bytes."""

    BYTE = 1
    WORD = 2


@dataclass(frozen=True)
class Field:
    """One PDU field: a single byte, or a big-endian 16-bit word."""

    value: int
    width: FieldWidth

    def __post_init__(self) -> None:
        limit = 0xFF if self.width == FieldWidth.BYTE else 0xFFFF
        if not 0 <= self.value <= limit:
            raise ValueError(f"{self.width.name.lower()} field out of range 0..{limit}: {self.value}")

    @classmethod
    def byte(cls, value: int) -> "Field":
        return cls(value, FieldWidth.BYTE)

    @classmethod
    def word(cls, value: int) -> "Field":
        return cls(value, FieldWidth.WORD)


@dataclass(frozen=True)
class DecodedPDU:
    """Result of decoding a checksum-valid frame against a field layout."""

    unit_id: int
    function_id: int
    fields: tuple[int, ...]
