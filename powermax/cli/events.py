import asyncio
from typing import TextIO

import click

from ..alarm import Alarm, ArmingState
from ..client import Client, ConnectionFailedError
from ..connection import Connection, Serial232Connection
from ..event import BaseEvent
from .logging_connection import LoggingConnection
from .options import panel_options


@click.command(help="Listen for emitted alarm events")
@panel_options
@click.option("--event-log", is_flag=True, help="Request the panel event log")
@click.option("--logfile", type=click.Path(), help="Write raw TX/RX frames to file")
def events(serial_tty: str, pin: str, event_log: bool, logfile: str | None) -> None:
    log_fp: TextIO | None = open(logfile, "a") if logfile else None
    connection: Connection = Serial232Connection(tty_path=serial_tty)
    if log_fp is not None:
        connection = LoggingConnection(connection, log_fp)

    client = Client(connection=connection, pin=pin)

    @client.on_zone_change
    def on_zone_change(zone: Alarm.Zone) -> None:
        print(f"Zone {zone.id} changed to {zone}")

    @client.on_state_change
    def on_state_change(state: ArmingState) -> None:
        print(f"Alarm state changed to {state.value}")

    @client.on_event_received
    def on_event_received(event: BaseEvent) -> None:
        print(event)

    async def _listen() -> None:
        try:
            await client.connect()
            if event_log:
                await client.request_event_log()
            await client.listen()
        finally:
            await client.close()
            if log_fp is not None:
                log_fp.close()

    try:
        asyncio.run(_listen())
    except ConnectionFailedError:
        raise click.ClickException("Could not connect to {}".format(serial_tty))
    except KeyboardInterrupt:
        pass
