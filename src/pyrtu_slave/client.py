"""SlaveClient: pymodbus master speaking RTU framing over TCP, for poking a running slave."""

import logging
from typing import Any, Sequence

from pymodbus import FramerType
from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import ModbusIOError
from .types import MAX_READ_QUANTITY

logger = logging.getLogger(__name__)


class SlaveClient:
    """
    Reads and writes holding registers on a pyrtu-slave (or any RTU-over-TCP device).
    Connects lazily; use as a context manager to close the socket.
    """

    def __init__(
        self,
        host: str,
        port: int = 502,
        unit_id: int = 1,
        timeout: float = 3.0,
        retries: int = 1,
    ) -> None:
        self._host = host
        self._port = port
        self._unit_id = unit_id
        self._timeout = timeout
        self._retries = retries
        self._client: ModbusTcpClient | None = None

    def _get_client(self) -> ModbusTcpClient:
        if self._client is None:
            self._client = ModbusTcpClient(
                host=self._host,
                port=self._port,
                framer=FramerType.RTU,
                timeout=self._timeout,
                retries=self._retries,
            )
            if not self._client.connect():
                self._client = None
                raise ModbusIOError(f"Failed to connect to {self._host}:{self._port}")
        return self._client

    def connect(self) -> None:
        """Open the TCP connection to the slave."""
        self._get_client()

    def close(self) -> None:
        """Close the TCP connection."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Error closing Modbus client: %s", e)
            self._client = None

    def __enter__(self) -> "SlaveClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read_registers(self, start: int, count: int = 1) -> list[int]:
        """Read count holding registers from start (function 0x03)."""
        if not 1 <= count <= MAX_READ_QUANTITY:
            raise ValueError(f"count must be 1-{MAX_READ_QUANTITY}, got {count}")
        client = self._get_client()
        try:
            rr = client.read_holding_registers(start, count=count, device_id=self._unit_id)
        except PymodbusException as e:
            raise ModbusIOError(str(e), start=start, count=count, cause=e) from e
        if rr.isError():
            raise ModbusIOError(
                str(rr),
                start=start,
                count=count,
                cause=getattr(rr, "exception", None),
            )
        registers = getattr(rr, "registers", None)
        if registers is None or len(registers) < count:
            raise ModbusIOError("Short register response", start=start, count=count)
        return [int(v) for v in registers[:count]]

    def write_registers(self, start: int, values: Sequence[int]) -> None:
        """Write values to consecutive holding registers from start (function 0x10)."""
        if not values:
            raise ValueError("values cannot be empty")
        client = self._get_client()
        try:
            rr = client.write_registers(start, list(values), device_id=self._unit_id)
        except PymodbusException as e:
            raise ModbusIOError(str(e), start=start, count=len(values), cause=e) from e
        if rr.isError():
            raise ModbusIOError(
                str(rr),
                start=start,
                count=len(values),
                cause=getattr(rr, "exception", None),
            )
