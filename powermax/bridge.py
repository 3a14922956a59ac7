import asyncio
import logging
from typing import Set

from .client import Client
from .mqtt import MqttBridge

_LOGGER = logging.getLogger(__name__)


class Bridge:
    """
    Connects a panel :py:class:`Client` to an :py:class:`MqttBridge`.

    Zone and arming state changes are published; commands received on the
    command topic are sent to the panel in arrival order.
    """

    def __init__(self, client: Client, mqtt: MqttBridge) -> None:
        self.client = client
        self.mqtt = mqtt
        self._pending: Set[asyncio.Task[bool]] = set()

        client.on_zone_change(mqtt.publish_zone)
        client.on_state_change(mqtt.publish_state)
        mqtt.on_command(self.handle_command)

    def handle_command(self, command: str) -> None:
        task = asyncio.create_task(self.client.send_command(command))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def run(self) -> None:
        """
        Run until the panel connection ends.

        :raises ConnectionFailedError: when the panel can not be reached
        """
        self.mqtt.connect()
        try:
            await self.client.run()
        finally:
            await self.close()

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await self.client.close()
        self.mqtt.close()
