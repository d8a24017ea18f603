#!/usr/bin/env python3
"""Example: write a block of holding registers on a running slave and read it back."""

import sys

from pyrtu_slave.client import SlaveClient
from pyrtu_slave.errors import ModbusIOError


def main() -> None:
    host = "127.0.0.1"  # where `rtuslave serve` listens
    port = 502
    unit_id = 1

    try:
        with SlaveClient(host=host, port=port, unit_id=unit_id) as slave:
            slave.write_registers(100, [0x0102, 0x0304, 500])
            print(f"100..102 = {slave.read_registers(100, 3)}")

            # First ten registers
            for addr, value in enumerate(slave.read_registers(0, 10)):
                print(f"{addr}={value}")
    except ValueError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        sys.exit(1)
    except ModbusIOError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
