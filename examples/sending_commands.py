import asyncio

from powermax import Client


async def main() -> None:
    client = Client(serial_tty="/dev/ttyUSB0", pin="1234")
    # The panel only accepts commands once the connection request was sent
    await client.connect()
    try:
        await client.arm_away()
        await client.disarm()
        # Commands from the message bus arrive as text
        await client.send_command("ARM_HOME")
        # Ask for a full status broadcast
        await client.request_status()
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
