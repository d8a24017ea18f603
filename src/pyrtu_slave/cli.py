#!/usr/bin/env python3
"""Command-line interface for pyrtu-slave using Typer."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .client import SlaveClient
from .config import SlaveConfig, load_config
from .crc import compute_crc16, crc_wire_bytes
from .errors import ConfigError, ModbusIOError, StorageError
from .server import SlaveRuntime

app = typer.Typer(
    name="rtuslave",
    help="Modbus RTU-over-TCP slave with 1000 holding registers.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# ============================================================================
# Shared options and helpers
# ============================================================================

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="JSON config file (created with defaults if missing)", envvar="RTUSLAVE_CONFIG"),
]
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Slave hostname or IP address", envvar="RTUSLAVE_HOST"),
]
PortOption = Annotated[
    Optional[int],
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="RTUSLAVE_PORT"),
]
UnitIdOption = Annotated[
    Optional[int],
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="RTUSLAVE_UNIT_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Connection timeout in seconds"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]
SignedOption = Annotated[
    bool,
    typer.Option("--signed", help="Interpret register values as signed 16-bit integers"),
]


def setup_logging(verbose: bool, level: int = logging.WARNING, log_file: str | None = None) -> None:
    """Configure root logging; verbose forces DEBUG. log_file, when set, also receives every record."""
    if verbose:
        level = logging.DEBUG
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=_LOG_FORMAT if verbose or log_file else "%(levelname)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def parse_int(value: str, signed: bool = False) -> int:
    """Parse integer value from string, supporting hex and validation."""
    v = value.strip()
    if v.lower().startswith("0x"):
        num = int(v, 16)
    else:
        num = int(v)

    if signed:
        if not (-32768 <= num <= 32767):
            raise ValueError(f"Signed 16-bit integer out of range: {num}")
    else:
        if not (0 <= num <= 65535):
            raise ValueError(f"Unsigned 16-bit integer out of range: {num}")

    return num


def parse_hex_bytes(value: str) -> bytes:
    """Parse '01 03 00 0A', '01:03:00:0a' or '0103000a' into bytes."""
    return bytes.fromhex("".join(value.replace(":", " ").replace(",", " ").split()))


def to_signed(value: int) -> int:
    """Convert unsigned 16-bit to signed."""
    if value > 32767:
        return value - 65536
    return value


def from_signed(value: int) -> int:
    """Convert signed 16-bit to unsigned."""
    if value < 0:
        return value + 65536
    return value


def resolve_config(config_path: Path) -> SlaveConfig:
    """Load config or exit with code 2."""
    try:
        return load_config(config_path)
    except ConfigError as e:
        typer.echo(f"Error: Invalid config: {e}", err=True)
        raise typer.Exit(2)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def serve(
    config_path: ConfigOption = Path("config.json"),
    tags: Annotated[
        Optional[Path],
        typer.Option("--tags", help="Register bank JSON file (overrides tagsPath)", envvar="RTUSLAVE_TAGS"),
    ] = None,
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = None,
    web_port: Annotated[
        Optional[int],
        typer.Option("--web-port", help="Dashboard port, 0 disables it", envvar="RTUSLAVE_WEB_PORT"),
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Run the slave: Modbus listener plus the register web view.

    Settings come from the config file; options override it for this run only.
    Press Ctrl+C to stop gracefully.
    """
    config = resolve_config(config_path).with_overrides(
        host=host,
        port=port,
        unit_id=unit_id,
        web_view_port=web_port,
        tags_path=str(tags) if tags is not None else None,
    )
    try:
        config.validate()
    except ConfigError as e:
        typer.echo(f"Error: Invalid config: {e}", err=True)
        raise typer.Exit(2)

    setup_logging(verbose or config.debug, logging.INFO, config.log_file_path or None)

    try:
        runtime = SlaveRuntime(config)
        asyncio.run(runtime.run())
    except StorageError as e:
        typer.echo(f"Error: Invalid tags file: {e}", err=True)
        raise typer.Exit(2)
    except OSError as e:
        typer.echo(f"Error: Cannot serve: {e}", err=True)
        raise typer.Exit(3)
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


@app.command()
def read(
    start: Annotated[int, typer.Argument(help="First register address (0-999)")],
    count: Annotated[int, typer.Argument(help="Number of registers")] = 1,
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = None,
    timeout: TimeoutOption = 3.0,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    signed: SignedOption = False,
) -> None:
    """
    Read holding registers from a running slave (function 0x03).

    Prints one 'address=value' line per register, or a JSON object with --json.
    """
    setup_logging(verbose)

    if not host:
        typer.echo("Error: --host is required for this command", err=True)
        raise typer.Exit(2)

    try:
        with SlaveClient(host, port=port or 502, unit_id=unit_id or 1, timeout=timeout) as client:
            values = client.read_registers(start, count)
        if signed:
            values = [to_signed(v) for v in values]

        if json_output:
            typer.echo(json.dumps({"start": start, "values": values}))
        else:
            for i, v in enumerate(values):
                typer.echo(f"{start + i}={v}")
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)
    except ModbusIOError as e:
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


@app.command()
def write(
    start: Annotated[int, typer.Argument(help="First register address (0-999)")],
    values: Annotated[list[str], typer.Argument(help="Values to write (decimal or 0x hex)")],
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = None,
    timeout: TimeoutOption = 3.0,
    verbose: VerboseOption = False,
    signed: SignedOption = False,
) -> None:
    """
    Write consecutive holding registers on a running slave (function 0x10).

    Use --signed to allow negative values (-32768 to 32767).
    """
    setup_logging(verbose)

    if not host:
        typer.echo("Error: --host is required for this command", err=True)
        raise typer.Exit(2)

    try:
        parsed = [from_signed(parse_int(v, signed)) for v in values]
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)

    try:
        with SlaveClient(host, port=port or 502, unit_id=unit_id or 1, timeout=timeout) as client:
            client.write_registers(start, parsed)
        typer.echo(f"OK: Wrote {len(parsed)} register(s) at {start}")
    except ModbusIOError as e:
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


@app.command()
def crc(
    data: Annotated[str, typer.Argument(help="Frame bytes in hex, e.g. '01 03 00 00 00 0A'")],
    json_output: JsonOption = False,
) -> None:
    """
    Compute the Modbus CRC-16 of a byte string.

    Shows the checksum value and the two bytes as sent on the wire (low byte first).
    """
    try:
        payload = parse_hex_bytes(data)
    except ValueError as e:
        typer.echo(f"Error: Invalid hex bytes: {e}", err=True)
        raise typer.Exit(2)

    value = compute_crc16(payload)
    wire = crc_wire_bytes(value)
    if json_output:
        typer.echo(json.dumps({"crc": f"0x{value:04X}", "wire": wire.hex(" ").upper()}))
    else:
        typer.echo(f"CRC-16: 0x{value:04X}")
        typer.echo(f"Wire:   {wire.hex(' ').upper()}")
        typer.echo(f"Frame:  {(payload + wire).hex(' ').upper()}")


@app.command()
def info(
    config_path: ConfigOption = Path("config.json"),
    json_output: JsonOption = False,
) -> None:
    """Show package version and the effective configuration."""
    config = resolve_config(config_path)
    info_data = {"version": __version__, "config": config.to_dict()}

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"pyrtu-slave version: {__version__}")
        for key, value in info_data["config"].items():
            typer.echo(f"{key + ':':<14} {value}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyrtu-slave {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """rtuslave - Modbus RTU-over-TCP holding register slave."""
    pass


if __name__ == "__main__":
    app()
