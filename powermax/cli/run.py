import asyncio
import logging

import click

from ..bridge import Bridge
from ..client import Client, ConnectionFailedError
from ..mqtt import MqttBridge
from .options import panel_options

_LOGGER = logging.getLogger(__name__)


@click.command(help="Bridge the panel to an MQTT broker")
@panel_options
@click.option("--mqtt-url", default="mqtt://localhost", envvar="MQTT_URL", show_default=True)
@click.option("--mqtt-topic", default="PowerMax", envvar="MQTT_TOPIC", show_default=True)
@click.option(
    "--motion-timeout",
    type=click.IntRange(min=1),
    default=120000,
    envvar="MOTION_TIMEOUT",
    show_default=True,
    help="Milliseconds without motion before a zone is reported quiet",
)
def run(
    serial_tty: str, pin: str, mqtt_url: str, mqtt_topic: str, motion_timeout: int
) -> None:
    try:
        mqtt = MqttBridge(url=mqtt_url, topic=mqtt_topic)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--mqtt-url")

    async def _run() -> None:
        client = Client(
            serial_tty=serial_tty, pin=pin, motion_timeout=motion_timeout / 1000
        )
        await Bridge(client=client, mqtt=mqtt).run()

    try:
        asyncio.run(_run())
    except ConnectionFailedError as e:
        _LOGGER.error("Could not connect to %s: %s", serial_tty, e)
        raise SystemExit(1)
    except KeyboardInterrupt:
        return

    # The panel connection only ends on a transport error
    _LOGGER.error("Connection to %s was lost", serial_tty)
    raise SystemExit(1)
