import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

_LOGGER = logging.getLogger(__name__)

PREAMBLE = 0x0D
POSTAMBLE = 0x0A


class MessageType(Enum):
    ACK = 0x02
    ACCESS_DENIED = 0x08
    EVENT_LOG = 0xA0
    COMMAND = 0xA1
    STATUS_REQUEST = 0xA2
    STATUS = 0xA5
    CONNECTION = 0xAB


class PacketError(ValueError):
    pass


class MalformedPacketError(PacketError):
    pass


class ChecksumMismatchError(PacketError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            "Checksum mismatch: expected 0x{:02X}, got 0x{:02X}".format(
                expected, actual
            )
        )
        self.expected = expected
        self.actual = actual


@dataclass
class Packet:
    payload: bytes

    @property
    def checksum(self) -> int:
        return calculate_checksum(self.payload)

    @property
    def type(self) -> MessageType | None:
        if not self.payload:
            return None
        try:
            return MessageType(self.payload[0])
        except ValueError:
            return None

    def encode(self) -> bytes:
        return bytes([PREAMBLE, *self.payload, self.checksum, POSTAMBLE])

    @classmethod
    def decode(cls, data: bytes) -> "Packet":
        """
        Packets are binary encoded. Packet layout is as follows:

        +----------------------------------------------+
        | preamble | payload | checksum | postamble    |
        | 0x0D     | n       | 1        | 0x0A         |
        +----------------------------------------------+

        The checksum covers the payload only.
        """
        if len(data) < 3 or data[0] != PREAMBLE or data[-1] != POSTAMBLE:
            raise MalformedPacketError(
                "Not a valid frame: {}".format(to_hex_string(data))
            )

        payload = bytes(data[1:-2])
        checksum = data[-2]
        expected = calculate_checksum(payload)
        if checksum != expected:
            raise ChecksumMismatchError(expected=expected, actual=checksum)

        return Packet(payload=payload)


def calculate_checksum(payload: Iterable[int]) -> int:
    """
    Calculate the one byte checksum of a payload.

    The panel sums the payload modulo 255 and inverts the result, except
    when the reduced sum is zero. The guard below is checked against the
    already reduced value and must stay that way: the panel expects a
    checksum of 0x00 for a zero sum, not 0xFF.
    """
    checksum = sum(payload) % 255
    if checksum % 0xFF != 0:
        checksum ^= 0xFF
    return checksum


def is_valid_frame(data: bytes) -> bool:
    try:
        Packet.decode(data)
    except PacketError:
        return False
    return True


def to_hex_string(data: Iterable[int]) -> str:
    return "<{}>".format(" ".join("{:02X}".format(b) for b in data))
