import asyncio
import json
from unittest.mock import AsyncMock, Mock

import paho.mqtt.client as mqtt
import pytest

from powermax import Client
from powermax.alarm import Alarm
from powermax.bridge import Bridge
from powermax.client import ConnectionFailedError
from powermax.connection import Connection
from powermax.event import EnrollmentUpdate, SystemEvent
from powermax.mqtt import MqttBridge
from powermax.packet import Packet


def published(paho) -> list[tuple[str, str]]:
    return [c.args for c in paho.publish.call_args_list]


@pytest.mark.asyncio
async def test_command_is_sent_to_panel(bridge, connection):
    bridge.handle_command("ARM_AWAY")
    await asyncio.sleep(0.01)

    assert connection.write.call_args.args[0] == Packet(
        bytes([0xA1, 0x00, 0x00, 0x05, 0x12, 0x34, 0, 0, 0, 0, 0, 0x43])
    ).encode()


@pytest.mark.asyncio
async def test_unknown_command_is_ignored(bridge, connection):
    bridge.handle_command("arm_away")
    await asyncio.sleep(0.01)

    connection.write.assert_not_called()


@pytest.mark.asyncio
async def test_commands_from_broker_reach_panel(bridge, paho, connection):
    bridge.mqtt.connect()
    bridge.mqtt._on_message(paho, None, Mock(topic="PowerMax/set", payload=b"DISARM"))
    await asyncio.sleep(0.01)

    assert connection.write.call_count == 1


@pytest.mark.asyncio
async def test_panel_state_is_published(bridge, paho, connection):
    connection.read.side_effect = [
        EnrollmentUpdate(total_messages=6, enrolled_zones={3}, bypassed_zones=set())
        .encode()
        .encode(),
        SystemEvent(
            total_messages=0,
            system_status=SystemEvent.SystemStatus.EXIT_DELAY_1,
            system_states=[],
        )
        .encode()
        .encode(),
        None,
    ]

    await bridge.client.listen()

    (zone_topic, zone_payload), state = published(paho)
    assert zone_topic == "PowerMax/3"
    assert json.loads(zone_payload)["enrolled"] is True
    assert state == ("PowerMax", "pending")


@pytest.mark.asyncio
async def test_run_closes_on_exit():
    client = Mock()
    client.run = AsyncMock()
    client.close = AsyncMock()
    mqtt_bridge = Mock()

    await Bridge(client, mqtt_bridge).run()

    mqtt_bridge.connect.assert_called_once_with()
    client.close.assert_awaited_once()
    mqtt_bridge.close.assert_called_once_with()


@pytest.mark.asyncio
async def test_run_closes_on_connection_failure():
    client = Mock()
    client.run = AsyncMock(side_effect=ConnectionFailedError("Gave up after 5 attempts"))
    client.close = AsyncMock()
    mqtt_bridge = Mock()

    with pytest.raises(ConnectionFailedError):
        await Bridge(client, mqtt_bridge).run()

    client.close.assert_awaited_once()
    mqtt_bridge.close.assert_called_once_with()


@pytest.fixture
def connection() -> Connection:
    connection = AsyncMock(Connection)
    connection.connected = True
    return connection


@pytest.fixture
def paho():
    client = Mock()
    client.publish.return_value = Mock(rc=mqtt.MQTT_ERR_SUCCESS)
    return client


@pytest.fixture
def bridge(connection, paho) -> Bridge:
    client = Client(connection=connection, alarm=Alarm(loop=Mock()), pin="1234")
    return Bridge(client, MqttBridge("mqtt://localhost", "PowerMax", client=paho))
