import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from powermax.connection import AsyncIoConnection
from powermax.event import KeepAliveUpdate
from powermax.packet import Packet


class StreamConnection(AsyncIoConnection):
    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._reader = asyncio.StreamReader()
        self._reader.feed_data(data)
        self._reader.feed_eof()
        self._writer = Mock()
        self._writer.drain = AsyncMock()

    async def connect(self) -> bool:
        return True


@pytest.mark.asyncio
async def test_read_frame():
    data = Packet(bytes([0x02, 0x43])).encode()
    connection = StreamConnection(data)
    assert await connection.read() == data


@pytest.mark.asyncio
async def test_read_consecutive_frames():
    first = Packet(bytes([0x02, 0x43])).encode()
    second = Packet(bytes([0x08, 0x43])).encode()
    connection = StreamConnection(first + second)
    assert await connection.read() == first
    assert await connection.read() == second


@pytest.mark.asyncio
async def test_read_postamble_in_payload():
    data = Packet(bytes([0x0A, 0x01])).encode()
    assert data == bytes([0x0D, 0x0A, 0x01, 0xF4, 0x0A])
    connection = StreamConnection(data)
    assert await connection.read() == data


@pytest.mark.asyncio
async def test_read_postamble_as_checksum():
    data = Packet(bytes([0xA5, 0x50])).encode()
    assert data == bytes([0x0D, 0xA5, 0x50, 0x0A, 0x0A])
    connection = StreamConnection(data)
    assert await connection.read() == data


@pytest.mark.asyncio
async def test_read_discards_bytes_before_preamble():
    data = Packet(bytes([0x02, 0x43])).encode()
    connection = StreamConnection(b"\xff\x01" + data)
    assert await connection.read() == data


@pytest.mark.asyncio
async def test_read_returns_garbage_without_preamble():
    connection = StreamConnection(b"\x01\x02\x0a")
    assert await connection.read() == b"\x01\x02\x0a"


@pytest.mark.asyncio
async def test_read_gives_up_on_long_buffer():
    # The checksum byte is always 0x00 while the payload sum never reduces to 0
    data = b"\x0d\x01" + b"\x00\x0a" * 40
    connection = StreamConnection(data)
    result = await connection.read()
    assert len(result) == 64


@pytest.mark.asyncio
async def test_read_eof():
    connection = StreamConnection(b"")
    assert await connection.read() is None
    assert not connection.connected


@pytest.mark.asyncio
async def test_write():
    connection = StreamConnection(b"")
    await connection.write(b"\x0d\x02\x43\xba\x0a")
    connection._writer.write.assert_called_once_with(b"\x0d\x02\x43\xba\x0a")
    connection._writer.drain.assert_awaited_once()


@pytest.mark.asyncio
async def test_read_recovers_after_corrupted_frame():
    good = KeepAliveUpdate(
        total_messages=0, open_zones={2}, low_battery_zones=set()
    ).encode().encode()
    corrupted = bytearray(good)
    corrupted[-2] ^= 0x01
    connection = StreamConnection(bytes(corrupted) + good * 4)

    frames = []
    while True:
        data = await connection.read()
        if data is None:
            break
        frames.append(data)

    assert frames == [good] * 4


@pytest.mark.asyncio
async def test_read_recovers_after_truncated_frame():
    good = Packet(bytes([0x02, 0x43])).encode()
    connection = StreamConnection(b"\x0d\xa5\x00\x0a" + good)
    assert await connection.read() == good
