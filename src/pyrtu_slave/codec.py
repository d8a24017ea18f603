"""PDU codec: typed fields to checksummed frames and back, plus exception replies."""

from typing import Sequence

from .crc import compute_crc16, crc_wire_bytes, validate_crc16
from .errors import FrameError
from .types import EXCEPTION_FLAG, DecodedPDU, ExceptionCode, Field, FieldWidth

# unit id + function id + two checksum bytes
MIN_FRAME_LENGTH = 4


def encode_pdu(unit_id: int, function_id: int, fields: Sequence[Field]) -> bytes:
    """
    Build a frame: unit id, function id, each field (words big-endian), then the
    CRC-16 of everything before it, low byte first.
    """
    out = bytearray((Field.byte(unit_id).value, Field.byte(function_id).value))
    for f in fields:
        if f.width == FieldWidth.WORD:
            out += f.value.to_bytes(2, "big")
        else:
            out.append(f.value)
    out += crc_wire_bytes(compute_crc16(out))
    return bytes(out)


def frame_checksum(frame: bytes) -> int:
    """The checksum transmitted in the last two bytes of frame (low byte first)."""
    return frame[-2] | (frame[-1] << 8)


def decode_pdu(frame: bytes, layout: Sequence[FieldWidth]) -> DecodedPDU | None:
    """
    Decode frame against layout, one entry per field after the function id.

    Returns None when the transmitted checksum does not match. Raises FrameError
    when the checksum matches but the payload length does not equal the layout.
    The layout is taken as given; callers derive it for variable-length requests.
    """
    if len(frame) < MIN_FRAME_LENGTH:
        raise FrameError(frame, f"Frame too short: {len(frame)} bytes")

    body = frame[:-2]
    if not validate_crc16(body, frame_checksum(frame)):
        return None

    expected = 2 + sum(int(w) for w in layout)
    if len(body) != expected:
        raise FrameError(
            frame,
            f"Payload of {len(body) - 2} bytes does not fit layout of {expected - 2} bytes",
        )

    values: list[int] = []
    pos = 2
    for width in layout:
        if width == FieldWidth.WORD:
            values.append((body[pos] << 8) | body[pos + 1])
        else:
            values.append(body[pos])
        pos += int(width)
    return DecodedPDU(unit_id=body[0], function_id=body[1], fields=tuple(values))


def exception_pdu(unit_id: int, function_id: int, code: ExceptionCode) -> bytes:
    """Exception reply: function id with the high bit set and the code as the only field."""
    return encode_pdu(unit_id, function_id | EXCEPTION_FLAG, [Field.byte(int(code))])


def hex_dump(data: bytes) -> str:
    """Space-separated upper-case hex, e.g. '01 03 00 00'."""
    return " ".join(f"{b:02X}" for b in data)
