import asyncio

from powermax import Alarm, ArmingState, BaseEvent, Client


async def main() -> None:
    client = Client(serial_tty="/dev/ttyUSB0", pin="1234")

    @client.on_zone_change
    def on_zone_change(zone: Alarm.Zone) -> None:
        print("Zone {} changed to {}".format(zone.id, zone))

    @client.on_state_change
    def on_state_change(state: ArmingState) -> None:
        print("Alarm state changed to {}".format(state))

    @client.on_event_received
    def on_event_received(event: BaseEvent) -> None:
        print("Event received:", event)

    try:
        await client.run()
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
