import io
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from powermax.cli.__main__ import cli
from powermax.cli.logging_connection import LoggingConnection
from powermax.connection import Connection


def test_commands_are_registered():
    assert set(cli.commands) == {"version", "run", "events", "send-command"}


def test_send_command_rejects_invalid_pin():
    result = CliRunner().invoke(cli, ["send-command", "--pin", "12", "ARM_HOME"])
    assert result.exit_code == 2
    assert "4 hex digits" in result.output


def test_send_command_rejects_unknown_command():
    result = CliRunner().invoke(cli, ["send-command", "PANIC"])
    assert result.exit_code == 2
    assert "Invalid value" in result.output
    assert "PANIC" in result.output


def test_run_rejects_invalid_broker_url():
    result = CliRunner().invoke(cli, ["run", "--mqtt-url", "http://broker.local"])
    assert result.exit_code == 2
    assert "--mqtt-url" in result.output


def test_run_rejects_invalid_motion_timeout():
    result = CliRunner().invoke(cli, ["run", "--motion-timeout", "0"])
    assert result.exit_code == 2
    assert "Invalid value" in result.output


def test_pin_from_environment():
    result = CliRunner().invoke(cli, ["send-command", "ARM_HOME"], env={"PIN": "xyz"})
    assert result.exit_code == 2
    assert "4 hex digits" in result.output


@pytest.mark.asyncio
async def test_logging_connection():
    inner = AsyncMock(Connection)
    inner.read.return_value = b"\x0d\x02\x43\xba\x0a"
    log_file = io.StringIO()
    connection = LoggingConnection(inner, log_file)

    await connection.write(b"\x0d\x08\x43\xb4\x0a")
    assert await connection.read() == b"\x0d\x02\x43\xba\x0a"

    assert log_file.getvalue() == "TX <0D 08 43 B4 0A>\nRX <0D 02 43 BA 0A>\n"
    inner.write.assert_awaited_once_with(b"\x0d\x08\x43\xb4\x0a")
