"""
RequestDispatcher: one complete request frame in, one response frame (or nothing) out.

Per frame:
    unit id check -> function code -> decode (checksum) -> validation -> bank read/write -> reply

A frame addressed to another unit is discarded without a reply. Every other
failure becomes an exception reply; the first failing check decides the code.
"""

import logging
from typing import Callable

from .codec import MIN_FRAME_LENGTH, decode_pdu, encode_pdu, exception_pdu, hex_dump
from .errors import FrameError
from .registers import RegisterBank
from .types import (
    MAX_READ_QUANTITY,
    MAX_REGISTER_ADDRESS,
    DecodedPDU,
    ExceptionCode,
    Field,
    FieldWidth,
    FunctionCode,
)

logger = logging.getLogger(__name__)

# start, quantity
_READ_LAYOUT = (FieldWidth.WORD, FieldWidth.WORD)
_READ_REQUEST_BYTES = 8
# start, quantity, byte count; register values follow
_WRITE_HEADER_LAYOUT = (FieldWidth.WORD, FieldWidth.WORD, FieldWidth.BYTE)
# unit id, function id, start, quantity, byte count
_WRITE_HEADER_BYTES = 7

_FUNCTIONS = frozenset(FunctionCode)

WriteCallback = Callable[[list[int]], None]


def read_request_layout(frame: bytes) -> list[FieldWidth]:
    """Start and quantity, then one byte field per byte beyond the 8-byte request."""
    extra = max(len(frame) - _READ_REQUEST_BYTES, 0)
    return [*_READ_LAYOUT, *([FieldWidth.BYTE] * extra)]


def write_request_layout(frame: bytes) -> list[FieldWidth]:
    """
    Decode layout for a Write Multiple Registers frame, derived from its length:
    the fixed header fields, then one word per two bytes left before the checksum.
    An odd leftover byte becomes a trailing byte field so the header still decodes;
    the value count check rejects such a frame after the address check.
    """
    data_bytes = max(len(frame) - _WRITE_HEADER_BYTES - 2, 0)
    layout = [*_WRITE_HEADER_LAYOUT, *([FieldWidth.WORD] * (data_bytes // 2))]
    if data_bytes % 2:
        layout.append(FieldWidth.BYTE)
    return layout


def in_bank(start: int, quantity: int) -> bool:
    """True when start .. start+quantity-1 lies inside the register bank."""
    return start <= MAX_REGISTER_ADDRESS and start + quantity - 1 <= MAX_REGISTER_ADDRESS


class RequestDispatcher:
    """
    Serves Read Holding Registers (0x03) and Write Multiple Registers (0x10) for one unit id.

    The bank lock is held from validation to reply, including the on_write
    persistence callback, so concurrent connections never interleave.
    """

    def __init__(
        self,
        bank: RegisterBank,
        unit_id: int,
        on_write: WriteCallback | None = None,
    ) -> None:
        self._bank = bank
        self._unit_id = unit_id
        self._on_write = on_write

    @property
    def unit_id(self) -> int:
        return self._unit_id

    @property
    def bank(self) -> RegisterBank:
        return self._bank

    def handle(self, frame: bytes) -> bytes | None:
        """Return the reply for one request frame, or None when it must not be answered."""
        frame = bytes(frame)
        if len(frame) < 2:
            logger.debug("Discarding %d-byte fragment: %s", len(frame), hex_dump(frame))
            return None
        if frame[0] != self._unit_id:
            logger.debug("Discarding frame for unit %d (this is unit %d)", frame[0], self._unit_id)
            return None

        logger.debug("Request: %s", hex_dump(frame))
        function_id = frame[1]
        if function_id in _FUNCTIONS and len(frame) < MIN_FRAME_LENGTH:
            logger.debug("Discarding %d-byte fragment: %s", len(frame), hex_dump(frame))
            return None
        with self._bank.locked():
            if function_id == FunctionCode.READ_HOLDING_REGISTERS:
                response = self._read_holding_registers(frame)
            elif function_id == FunctionCode.WRITE_MULTIPLE_REGISTERS:
                response = self._write_multiple_registers(frame)
            else:
                logger.warning("Illegal function 0x%02X", function_id)
                response = exception_pdu(frame[0], function_id, ExceptionCode.ILLEGAL_FUNCTION)
        logger.debug("Response: %s", hex_dump(response))
        return response

    def _decode(self, frame: bytes, layout: list[FieldWidth] | tuple[FieldWidth, ...]) -> DecodedPDU | bytes:
        """Decoded PDU, or the exception reply for a bad checksum / malformed frame."""
        try:
            pdu = decode_pdu(frame, layout)
        except FrameError as e:
            return self._reject(frame, ExceptionCode.ILLEGAL_DATA_VALUE, str(e))
        if pdu is None:
            return self._reject(frame, ExceptionCode.CHECKSUM_FAILURE, "CRC invalid")
        return pdu

    def _read_holding_registers(self, frame: bytes) -> bytes:
        pdu = self._decode(frame, read_request_layout(frame))
        if isinstance(pdu, bytes):
            return pdu
        start, quantity, *extra = pdu.fields

        if not in_bank(start, quantity):
            return self._reject(frame, ExceptionCode.ILLEGAL_DATA_ADDRESS, f"Out of range: {start}+{quantity}")
        if quantity > MAX_READ_QUANTITY:
            return self._reject(
                frame,
                ExceptionCode.ILLEGAL_DATA_VALUE,
                f"Quantity {quantity} exceeds {MAX_READ_QUANTITY} registers per read",
            )
        if extra:
            return self._reject(
                frame,
                ExceptionCode.ILLEGAL_DATA_VALUE,
                f"Read request carries {len(extra)} unexpected byte(s)",
            )

        values = self._bank.read(start, quantity)
        fields = [Field.byte(quantity * 2), *(Field.word(v) for v in values)]
        return encode_pdu(pdu.unit_id, pdu.function_id, fields)

    def _write_multiple_registers(self, frame: bytes) -> bytes:
        pdu = self._decode(frame, write_request_layout(frame))
        if isinstance(pdu, bytes):
            return pdu
        start, quantity, byte_count, *values = pdu.fields
        odd_tail = (len(frame) - _WRITE_HEADER_BYTES - 2) % 2 == 1
        if odd_tail:
            values.pop()

        if not in_bank(start, quantity):
            return self._reject(frame, ExceptionCode.ILLEGAL_DATA_ADDRESS, f"Out of range: {start}+{quantity}")
        if byte_count != quantity * 2:
            return self._reject(
                frame,
                ExceptionCode.ILLEGAL_DATA_VALUE,
                "The number of tags does not match the number of bytes",
            )
        if odd_tail or len(values) != quantity:
            return self._reject(
                frame,
                ExceptionCode.ILLEGAL_DATA_VALUE,
                "The number of tags does not match the number of values",
            )

        self._bank.write_many(start, values)
        if self._on_write is not None:
            self._on_write(self._bank.snapshot())
        return encode_pdu(pdu.unit_id, pdu.function_id, [Field.word(start), Field.word(quantity)])

    def _reject(self, frame: bytes, code: ExceptionCode, reason: str) -> bytes:
        logger.warning("%s (0x%02X): %s", code.name, frame[1], reason)
        return exception_pdu(frame[0], frame[1], code)
