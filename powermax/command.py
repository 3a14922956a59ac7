"""Payloads sent to the PowerMax alarm."""

from enum import Enum

from .event import AckEvent
from .packet import MessageType

PIN_LENGTH = 2

ACK = AckEvent.PREFIX

CONNECTION_REQUEST = bytes(
    [MessageType.CONNECTION.value, 0x06, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x43]
)

STATUS_REQUEST = bytes(
    [MessageType.STATUS_REQUEST.value, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x43]
)


class Command(Enum):
    """Commands accepted from the message bus."""

    DISARM = "DISARM"
    ARM_HOME = "ARM_HOME"
    ARM_AWAY = "ARM_AWAY"


# Arming mode byte of the command request, at payload offset 3
COMMAND_MODES = {
    Command.DISARM: 0x00,
    Command.ARM_HOME: 0x04,
    Command.ARM_AWAY: 0x05,
}


def parse_pin(pin: str) -> bytes:
    """
    Convert a user code into the bytes sent to the panel.

    The code is hex-pair encoded: "1234" becomes 0x12 0x34.
    """
    if len(pin) != PIN_LENGTH * 2:
        raise ValueError("PIN must be {} digits".format(PIN_LENGTH * 2))
    return bytes.fromhex(pin)


def _with_pin(prefix: list[int], pin: bytes) -> bytes:
    if len(pin) != PIN_LENGTH:
        raise ValueError("PIN must be {} bytes".format(PIN_LENGTH))
    return bytes([*prefix, *pin, 0x00, 0x00, 0x00, 0x00, 0x00, 0x43])


def encode_command(command: Command | str, pin: bytes) -> bytes | None:
    """
    Translate a bus command into a request payload.

    :param command: A :py:class:`Command` or its text form
    :param pin: The two PIN bytes, see :py:func:`parse_pin`
    :return: The payload, or None if the command is not recognised
    """
    if not isinstance(command, Command):
        try:
            command = Command(command)
        except ValueError:
            return None

    mode = COMMAND_MODES[command]
    return _with_pin([MessageType.COMMAND.value, 0x00, 0x00, mode], pin)


def event_log_request(pin: bytes) -> bytes:
    return _with_pin([MessageType.EVENT_LOG.value, 0x00, 0x00, 0x00], pin)


def enrollment_response(pin: bytes) -> bytes:
    return _with_pin([MessageType.CONNECTION.value, 0x0A, 0x00, 0x00], pin)
