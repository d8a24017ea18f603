"""
Slave transport and runtime.

ModbusSlaveServer accepts TCP connections carrying RTU frames (unit id + PDU + CRC,
no MBAP header). Each connection gets its own RTUFrameBuffer; complete frames go
to the shared RequestDispatcher, whose replies are written back on the same
connection.

SlaveRuntime wires configuration, persistence, register bank, dispatcher,
transport and the optional dashboard, and runs them in one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import SlaveConfig
from .dispatcher import RequestDispatcher
from .framing import RTUFrameBuffer
from .registers import RegisterBank
from .storage import JsonRegisterStore

logger = logging.getLogger(__name__)

_READ_CHUNK = 1024


class ModbusSlaveServer:
    """asyncio TCP server feeding complete request frames to a RequestDispatcher."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        host: str = "127.0.0.1",
        port: int = 502,
        frame_timeout: float = 1.0,
    ) -> None:
        self.dispatcher = dispatcher
        self.host = host
        self._port = port
        self.frame_timeout = frame_timeout
        self.server: asyncio.Server | None = None
        self.connections: list[asyncio.StreamWriter] = []

    @property
    def port(self) -> int:
        """Bound port once started (resolves port 0), else the configured port."""
        if self.server is not None and self.server.sockets:
            return self.server.sockets[0].getsockname()[1]
        return self._port

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._handle_connection, self.host, self._port)
        logger.info("Modbus server started on %s:%d (unit %d)", self.host, self.port, self.dispatcher.unit_id)

    async def serve_forever(self) -> None:
        if self.server is None:
            await self.start()
        assert self.server is not None
        await self.server.serve_forever()

    async def stop(self) -> None:
        """Close every client connection, then the listener."""
        if self.server is None:
            return
        for writer in list(self.connections):
            writer.close()
        self.server.close()
        await self.server.wait_closed()
        self.server = None
        logger.info("Server stopped gracefully")

    async def _read(self, reader: asyncio.StreamReader, frames: RTUFrameBuffer) -> bytes:
        """Next chunk; waits at most frame_timeout while a partial frame is pending."""
        while True:
            if not frames.pending:
                return await reader.read(_READ_CHUNK)
            try:
                return await asyncio.wait_for(reader.read(_READ_CHUNK), self.frame_timeout)
            except asyncio.TimeoutError:
                dropped = frames.clear()
                logger.warning("Dropped incomplete frame of %d byte(s) after %.2fs", len(dropped), self.frame_timeout)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        addr = writer.get_extra_info("peername")
        logger.info("Client connected: %s", addr)
        self.connections.append(writer)
        frames = RTUFrameBuffer()
        try:
            while True:
                chunk = await self._read(reader, frames)
                if not chunk:
                    break
                for frame in frames.feed(chunk):
                    response = self.dispatcher.handle(frame)
                    if response is not None:
                        writer.write(response)
                await writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            pass
        except Exception as e:
            logger.error("Error handling connection from %s: %s", addr, e, exc_info=True)
        finally:
            logger.info("Client disconnected: %s", addr)
            self.connections.remove(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass


class SlaveRuntime:
    """Everything serve needs, built from one SlaveConfig."""

    def __init__(self, config: SlaveConfig, base_dir: str | Path | None = None) -> None:
        self.config = config
        tags_path = Path(config.tags_path)
        if base_dir is not None and not tags_path.is_absolute():
            tags_path = Path(base_dir) / tags_path
        self.store = JsonRegisterStore(tags_path)
        self.bank = RegisterBank(self.store.load())
        self.dispatcher = RequestDispatcher(self.bank, config.unit_id, on_write=self.store.save)
        self.server = ModbusSlaveServer(
            self.dispatcher,
            host=config.host,
            port=config.port,
            frame_timeout=config.frame_timeout,
        )
        self.dashboard = None
        if config.web_view_port:
            # uvicorn/fastapi only load when the dashboard is on
            from .dashboard import create_dashboard_server

            self.dashboard = create_dashboard_server(self.bank, config.host, config.web_view_port)

    async def run(self) -> None:
        """Serve until the dashboard is told to exit (SIGINT/SIGTERM) or the task is cancelled."""
        await self.server.start()
        try:
            if self.dashboard is not None:
                logger.info("Web view server running at %d port", self.config.web_view_port)
                await self.dashboard.serve()
            else:
                await self.server.serve_forever()
        finally:
            await self.server.stop()
