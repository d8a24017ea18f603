"""Split a byte stream into complete request frames using each function code's length rule."""

import logging

from .types import FunctionCode

logger = logging.getLogger(__name__)

READ_REQUEST_LENGTH = 8
# unit id, function id, start (2), quantity (2), byte count
WRITE_HEADER_LENGTH = 7
CRC_LENGTH = 2


def expected_frame_length(buffer: bytes | bytearray) -> int | None:
    """
    Length of the frame at the start of buffer, or None while it cannot be known yet.

    Read requests are always 8 bytes; a write request is 7 + byte count + 2 once
    its byte count (offset 6) has arrived. Any other function code has no known
    length, so the whole buffer is taken as the frame.
    """
    if len(buffer) < 2:
        return None
    function_id = buffer[1]
    if function_id == FunctionCode.READ_HOLDING_REGISTERS:
        return READ_REQUEST_LENGTH
    if function_id == FunctionCode.WRITE_MULTIPLE_REGISTERS:
        if len(buffer) < WRITE_HEADER_LENGTH:
            return None
        return WRITE_HEADER_LENGTH + buffer[WRITE_HEADER_LENGTH - 1] + CRC_LENGTH
    return len(buffer)


class RTUFrameBuffer:
    """Accumulates stream deliveries; feed() returns every frame completed so far."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        self._buffer += data
        frames: list[bytes] = []
        while True:
            length = expected_frame_length(self._buffer)
            if length is None or len(self._buffer) < length:
                break
            frames.append(bytes(self._buffer[:length]))
            del self._buffer[:length]
        return frames

    @property
    def pending(self) -> int:
        """Bytes held for a frame that is not complete yet."""
        return len(self._buffer)

    def clear(self) -> bytes:
        """Drop and return the partial frame."""
        dropped = bytes(self._buffer)
        self._buffer.clear()
        if dropped:
            logger.debug("Dropped %d buffered byte(s)", len(dropped))
        return dropped
