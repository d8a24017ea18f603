"""Tests for CLI module - value parsing and command structure."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from pyrtu_slave.cli import app, from_signed, parse_hex_bytes, parse_int, to_signed
from pyrtu_slave.errors import ModbusIOError

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """serve reconfigures root logging; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# ============================================================================
# Value Parsing Tests
# ============================================================================


class TestParseInt:
    """Test integer value parsing."""

    def test_decimal_unsigned(self) -> None:
        """Test decimal unsigned integers."""
        assert parse_int("0") == 0
        assert parse_int("1234") == 1234
        assert parse_int("65535") == 65535

    def test_decimal_signed(self) -> None:
        """Test decimal signed integers."""
        assert parse_int("-100", signed=True) == -100
        assert parse_int("-32768", signed=True) == -32768
        assert parse_int("32767", signed=True) == 32767

    def test_hexadecimal(self) -> None:
        """Test hexadecimal parsing."""
        assert parse_int("0x10") == 16
        assert parse_int("0xFFFF") == 65535
        assert parse_int("  0xff  ") == 255

    def test_range_validation(self) -> None:
        """Test 16-bit range validation."""
        with pytest.raises(ValueError, match="out of range"):
            parse_int("-1")
        with pytest.raises(ValueError, match="out of range"):
            parse_int("65536")
        with pytest.raises(ValueError, match="out of range"):
            parse_int("32768", signed=True)

    def test_invalid_values(self) -> None:
        """Test invalid integer values."""
        with pytest.raises(ValueError):
            parse_int("abc")
        with pytest.raises(ValueError):
            parse_int("12.34")


class TestParseHexBytes:
    """Test hex byte string parsing for the crc command."""

    @pytest.mark.parametrize("text", ["01 03 00 00 00 0A", "0103000000 0a", "01:03:00:00:00:0a", "01,03,00,00,00,0A"])
    def test_formats(self, text: str) -> None:
        assert parse_hex_bytes(text) == bytes([0x01, 0x03, 0x00, 0x00, 0x00, 0x0A])

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_hex_bytes("zz")
        with pytest.raises(ValueError):
            parse_hex_bytes("01 100")


class TestSignedConversion:
    """Test signed/unsigned conversion functions."""

    def test_to_signed(self) -> None:
        assert to_signed(32767) == 32767
        assert to_signed(32768) == -32768
        assert to_signed(65535) == -1

    def test_from_signed(self) -> None:
        assert from_signed(-1) == 65535
        assert from_signed(100) == 100


# ============================================================================
# Command Structure Tests (with mocked client)
# ============================================================================


@patch("pyrtu_slave.cli.SlaveClient")
def test_read_command(mock_client_class: MagicMock) -> None:
    """Test read command prints address=value lines."""
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client
    mock_client.read_registers.return_value = [10, 20]

    result = runner.invoke(app, ["read", "5", "2", "--host", "127.0.0.1"])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["5=10", "6=20"]
    mock_client.read_registers.assert_called_once_with(5, 2)
    assert mock_client_class.call_args.kwargs["port"] == 502
    assert mock_client_class.call_args.kwargs["unit_id"] == 1


@patch("pyrtu_slave.cli.SlaveClient")
def test_read_command_json_signed(mock_client_class: MagicMock) -> None:
    """Test read command with JSON output and signed values."""
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client
    mock_client.read_registers.return_value = [65535]

    result = runner.invoke(app, ["read", "0", "--host", "127.0.0.1", "--port", "1502", "--json", "--signed"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"start": 0, "values": [-1]}
    assert mock_client_class.call_args.kwargs["port"] == 1502


@patch("pyrtu_slave.cli.SlaveClient")
def test_read_command_modbus_error(mock_client_class: MagicMock) -> None:
    """Test read command maps Modbus errors to exit code 3."""
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client
    mock_client.read_registers.side_effect = ModbusIOError("Exception Response(131, 3, IllegalAddress)")

    result = runner.invoke(app, ["read", "999", "2", "--host", "127.0.0.1"])

    assert result.exit_code == 3
    assert "Connection/Modbus error" in result.output


def test_read_requires_host() -> None:
    result = runner.invoke(app, ["read", "0"])
    assert result.exit_code == 2
    assert "--host is required" in result.output


@patch("pyrtu_slave.cli.SlaveClient")
def test_write_command(mock_client_class: MagicMock) -> None:
    """Test write command parses decimal and hex values."""
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client

    result = runner.invoke(app, ["write", "0", "10", "0x14", "30", "--host", "127.0.0.1", "--unit-id", "7"])

    assert result.exit_code == 0
    assert "OK: Wrote 3 register(s) at 0" in result.stdout
    mock_client.write_registers.assert_called_once_with(0, [10, 20, 30])
    assert mock_client_class.call_args.kwargs["unit_id"] == 7


@patch("pyrtu_slave.cli.SlaveClient")
def test_write_command_signed(mock_client_class: MagicMock) -> None:
    """Test write command with signed value."""
    mock_client = MagicMock()
    mock_client_class.return_value = mock_client
    mock_client.__enter__.return_value = mock_client

    result = runner.invoke(app, ["write", "--host", "127.0.0.1", "--signed", "4", "--", "-100"])

    assert result.exit_code == 0
    mock_client.write_registers.assert_called_once_with(4, [65436])


@patch("pyrtu_slave.cli.SlaveClient")
def test_write_command_invalid_value(mock_client_class: MagicMock) -> None:
    """Test write command rejects out-of-range values before connecting."""
    result = runner.invoke(app, ["write", "0", "70000", "--host", "127.0.0.1"])

    assert result.exit_code == 2
    assert "Invalid value" in result.output
    mock_client_class.assert_not_called()


def test_crc_command() -> None:
    """Test crc command on the reference frame."""
    result = runner.invoke(app, ["crc", "01 03 00 00 00 0A"])

    assert result.exit_code == 0
    assert "0xCDC5" in result.stdout
    assert "C5 CD" in result.stdout
    assert "01 03 00 00 00 0A C5 CD" in result.stdout


def test_crc_command_json() -> None:
    result = runner.invoke(app, ["crc", "0103000000 0A", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"crc": "0xCDC5", "wire": "C5 CD"}


def test_crc_command_invalid() -> None:
    result = runner.invoke(app, ["crc", "xyz"])
    assert result.exit_code == 2


def test_info_command_json(tmp_path: Path) -> None:
    """Test info command creates and reports the default config."""
    config_path = tmp_path / "config.json"
    result = runner.invoke(app, ["info", "--config", str(config_path), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert "version" in data
    assert data["config"]["id"] == 1
    assert data["config"]["port"] == 502
    assert config_path.exists()


def test_info_command_text(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"id": 9}))
    result = runner.invoke(app, ["info", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "pyrtu-slave version:" in result.stdout
    assert "id:" in result.stdout
    assert "9" in result.stdout


def test_info_invalid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{broken")
    result = runner.invoke(app, ["info", "--config", str(config_path)])
    assert result.exit_code == 2
    assert "Invalid config" in result.output


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"id": 2, "port": 1502, "logFilePath": str(tmp_path / "log"), "tagsPath": str(tmp_path / "tags.json")}))
    return path


@patch("pyrtu_slave.cli.asyncio.run")
@patch("pyrtu_slave.cli.SlaveRuntime")
def test_serve_applies_overrides(mock_runtime: MagicMock, mock_run: MagicMock, config_file: Path) -> None:
    """Test serve merges CLI options over the config file."""
    result = runner.invoke(app, ["serve", "--config", str(config_file), "--port", "1600", "--web-port", "0"])

    assert result.exit_code == 0
    config = mock_runtime.call_args[0][0]
    assert config.port == 1600
    assert config.unit_id == 2
    assert config.web_view_port == 0
    mock_run.assert_called_once()


@patch("pyrtu_slave.cli.asyncio.run", side_effect=KeyboardInterrupt)
@patch("pyrtu_slave.cli.SlaveRuntime")
def test_serve_stopped_by_user(mock_runtime: MagicMock, mock_run: MagicMock, config_file: Path) -> None:
    result = runner.invoke(app, ["serve", "--config", str(config_file)])
    assert result.exit_code == 0
    assert "Stopped by user" in result.output


@patch("pyrtu_slave.cli.asyncio.run", side_effect=OSError("address already in use"))
@patch("pyrtu_slave.cli.SlaveRuntime")
def test_serve_bind_error(mock_runtime: MagicMock, mock_run: MagicMock, config_file: Path) -> None:
    result = runner.invoke(app, ["serve", "--config", str(config_file)])
    assert result.exit_code == 3
    assert "address already in use" in result.output


def test_serve_invalid_override(config_file: Path) -> None:
    result = runner.invoke(app, ["serve", "--config", str(config_file), "--unit-id", "0"])
    assert result.exit_code == 2
    assert "unit id" in result.output


def test_serve_invalid_tags_file(config_file: Path, tmp_path: Path) -> None:
    (tmp_path / "tags.json").write_text("[1, 2, 3]")
    result = runner.invoke(app, ["serve", "--config", str(config_file)])
    assert result.exit_code == 2
    assert "Invalid tags file" in result.output


def test_command_help() -> None:
    """Test that help text is available for all commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("serve", "read", "write", "crc", "info"):
        assert command in result.stdout


def test_version_flag() -> None:
    """Test --version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pyrtu-slave" in result.stdout
