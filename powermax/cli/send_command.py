import asyncio

import click

from ..client import Client, ConnectionFailedError
from ..command import Command
from .options import panel_options


@click.command("send-command", help="Send a command")
@panel_options
@click.argument("command", type=click.Choice([c.value for c in Command]))
def send_command(serial_tty: str, pin: str, command: str) -> None:
    async def _send() -> None:
        client = Client(serial_tty=serial_tty, pin=pin, max_connection_attempts=1)
        try:
            await client.connect()
            await client.send_command(command)
        finally:
            await client.close()

    try:
        asyncio.run(_send())
    except ConnectionFailedError:
        raise click.ClickException("Could not connect to {}".format(serial_tty))
