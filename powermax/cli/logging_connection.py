from __future__ import annotations

from typing import TextIO

from ..connection import Connection
from ..packet import to_hex_string


class LoggingConnection(Connection):
    """Wrap a connection and log raw frames as hex."""

    def __init__(self, inner: Connection, log_file: TextIO) -> None:
        self._inner = inner
        self._log_file = log_file

    @property
    def connected(self) -> bool:
        return self._inner.connected

    async def connect(self) -> bool:
        return await self._inner.connect()

    async def close(self) -> None:
        await self._inner.close()

    async def read(self) -> bytes | None:
        data = await self._inner.read()
        if data is not None:
            self._log("RX", data)
        return data

    async def write(self, data: bytes) -> None:
        self._log("TX", data)
        await self._inner.write(data)

    def _log(self, direction: str, data: bytes) -> None:
        self._log_file.write(f"{direction} {to_hex_string(data)}\n")
        self._log_file.flush()
