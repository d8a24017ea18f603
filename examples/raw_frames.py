#!/usr/bin/env python3
"""Example: drive the request dispatcher with raw RTU frames, no network involved."""

from pyrtu_slave import RegisterBank, RequestDispatcher, compute_crc16
from pyrtu_slave.codec import hex_dump
from pyrtu_slave.crc import crc_wire_bytes


def with_crc(body: bytes) -> bytes:
    return body + crc_wire_bytes(compute_crc16(body))


def main() -> None:
    dispatcher = RequestDispatcher(RegisterBank(), unit_id=1)

    requests = [
        # write 0x000A, 0x0102 to registers 1..2
        with_crc(bytes([0x01, 0x10, 0x00, 0x01, 0x00, 0x02, 0x04, 0x00, 0x0A, 0x01, 0x02])),
        # read registers 0..2
        with_crc(bytes([0x01, 0x03, 0x00, 0x00, 0x00, 0x03])),
        # address past the end of the bank
        with_crc(bytes([0x01, 0x03, 0x03, 0xE7, 0x00, 0x02])),
        # unsupported function
        with_crc(bytes([0x01, 0x06, 0x00, 0x00, 0x00, 0x01])),
        # other unit id: no reply
        with_crc(bytes([0x02, 0x03, 0x00, 0x00, 0x00, 0x01])),
    ]
    for frame in requests:
        reply = dispatcher.handle(frame)
        print(f"-> {hex_dump(frame)}")
        print(f"<- {hex_dump(reply) if reply is not None else '(no reply)'}")


if __name__ == "__main__":
    main()
