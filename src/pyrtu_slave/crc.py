"""CRC-16 (Modbus RTU variant): polynomial 0xA001 (reflected 0x8005), initial value 0xFFFF."""

from typing import Iterable

_POLYNOMIAL = 0xA001
_INITIAL = 0xFFFF


def compute_crc16(data: Iterable[int]) -> int:
    """
    Return the CRC-16 of data as an integer.

    On the wire the result is sent low byte first:
    compute_crc16(b"\\x01\\x03\\x00\\x00\\x00\\x0a") == 0xCDC5 -> C5 CD.
    """
    crc = _INITIAL
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ _POLYNOMIAL
            else:
                crc >>= 1
    return crc


def validate_crc16(data: Iterable[int], expected: int) -> bool:
    """True when the CRC-16 of data equals expected."""
    return compute_crc16(data) == expected


def crc_wire_bytes(crc: int) -> bytes:
    """The two on-wire checksum bytes, low byte first."""
    return bytes((crc & 0xFF, crc >> 8))
