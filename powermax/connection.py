import asyncio
import logging
from abc import ABC, abstractmethod
import serial
from serial_asyncio_fast import SerialTransport, create_serial_connection

from .packet import POSTAMBLE, PREAMBLE, is_valid_frame, to_hex_string

_LOGGER = logging.getLogger(__name__)

# PowerMax frames are short; anything longer is a lost frame boundary.
MAX_FRAME_LENGTH = 64


class Connection(ABC):
    """Represents a connection to a PowerMax panel"""

    @abstractmethod
    async def read(self) -> bytes | None:
        """Read one raw frame, or None once the connection is gone."""
        raise NotImplementedError()

    @abstractmethod
    async def write(self, data: bytes) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError()

    @abstractmethod
    async def connect(self) -> bool:
        raise NotImplementedError()

    @property
    @abstractmethod
    def connected(self) -> bool:
        raise NotImplementedError()


class AsyncIoConnection(Connection, ABC):
    """A stream based connection with a PowerMax panel"""

    def __init__(self) -> None:
        super().__init__()

        self._write_lock = asyncio.Lock()
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def connected(self) -> bool:
        return self._reader is not None and self._writer is not None

    async def read(self) -> bytes | None:
        """
        Reassemble one frame from the byte stream.

        The postamble byte may also appear inside a payload or as a checksum,
        so data is accumulated up to each postamble until it forms a valid
        frame. A corrupted frame is dropped as soon as a valid frame follows
        it. Buffers that can not become a valid frame are returned as is
        and rejected by the packet decoder.
        """
        assert self._reader is not None

        buffer = b""
        while True:
            try:
                buffer += await self._reader.readuntil(bytes([POSTAMBLE]))
            except (
                asyncio.IncompleteReadError,
                TimeoutError,
                ConnectionResetError,
                serial.SerialException,
            ) as e:
                _LOGGER.info(
                    "Got exception: %s. Most likely the panel has disconnected!", e
                )
                self._writer = None
                self._reader = None
                return None

            start = buffer.find(bytes([PREAMBLE]))
            if start > 0:
                _LOGGER.debug(
                    "Discarding bytes before preamble: %s", to_hex_string(buffer[:start])
                )
                buffer = buffer[start:]

            if start < 0:
                return buffer

            frame = _find_frame(buffer)
            if frame is not None:
                return frame

            if len(buffer) >= MAX_FRAME_LENGTH:
                return buffer

            _LOGGER.debug("Incomplete frame, waiting for more data: %s", to_hex_string(buffer))

    async def write(self, data: bytes) -> None:
        _LOGGER.debug("Waiting for write_lock to write data: %s", to_hex_string(data))
        async with self._write_lock:
            assert self._writer is not None

            self._writer.write(data)
            await self._writer.drain()
            _LOGGER.debug("Data was written: %s", to_hex_string(data))

    async def close(self) -> None:
        if self.connected and self._writer is not None:
            self._writer.close()
            if hasattr(self._writer, "wait_closed"):
                await self._writer.wait_closed()
            self._writer = None
            self._reader = None


def _find_frame(buffer: bytes) -> bytes | None:
    """
    Find the earliest preamble from which the rest of the buffer is a valid
    frame. Bytes before it belong to a corrupted frame and are dropped.
    """
    start = buffer.find(bytes([PREAMBLE]))
    while start >= 0:
        if is_valid_frame(buffer[start:]):
            if start > 0:
                _LOGGER.warning(
                    "Dropping corrupted frame %s", to_hex_string(buffer[:start])
                )
            return buffer[start:]
        start = buffer.find(bytes([PREAMBLE]), start + 1)
    return None


class Serial232Connection(AsyncIoConnection):
    """A connection via Serial RS232 with a PowerMax panel"""

    def __init__(self, tty_path: str):
        super().__init__()

        self._tty_path = tty_path
        self._serial_connection: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return (
            super().connected
            and self._serial_connection is not None
            and self._serial_connection.is_open
        )

    async def connect(self) -> bool:
        loop = asyncio.get_running_loop()
        self._reader = asyncio.StreamReader(loop=loop)
        protocol_in = asyncio.StreamReaderProtocol(self._reader, loop=loop)
        transport: SerialTransport

        # Open the serial connection - always 9600 baud N-8-1
        transport, protocol = await create_serial_connection(
            loop,
            lambda: protocol_in,
            self._tty_path,
            baudrate=9600,
            parity=serial.PARITY_NONE,
            bytesize=serial.EIGHTBITS,
            stopbits=serial.STOPBITS_ONE,
        )
        self._serial_connection = transport.serial
        self._writer = asyncio.StreamWriter(transport, protocol, self._reader, loop)

        return self._serial_connection is not None and self._serial_connection.is_open
