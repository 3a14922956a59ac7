"""Public package API exports for powermax."""

from importlib.metadata import PackageNotFoundError, version

from .client import Client, ConnectionFailedError
from .alarm import Alarm, ArmingState
from .command import Command
from .event import BaseEvent

try:  # pragma: no cover - not installed when run from a source checkout
    __version__ = version("powermax-mqtt")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "Client",
    "ConnectionFailedError",
    "Alarm",
    "ArmingState",
    "Command",
    "BaseEvent",
]
