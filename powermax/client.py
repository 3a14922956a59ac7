import asyncio
import logging
from asyncio import sleep
from typing import Callable

from justbackoff import Backoff

from .alarm import Alarm, ArmingState
from .command import (
    ACK,
    CONNECTION_REQUEST,
    STATUS_REQUEST,
    Command,
    encode_command,
    enrollment_response,
    event_log_request,
    parse_pin,
)
from .connection import Connection, Serial232Connection
from .event import (
    AccessDeniedEvent,
    BaseEvent,
    EnrollmentRequestEvent,
    KeepAliveUpdate,
    UnknownEvent,
)
from .motion import DEFAULT_QUIET_INTERVAL
from .packet import Packet, PacketError, to_hex_string

_LOGGER = logging.getLogger(__name__)

MAX_CONNECTION_ATTEMPTS = 5
RECONNECT_DELAY = 3.0
KEEP_ALIVE_INTERVAL = 120.0


class ConnectionFailedError(Exception):
    """The panel could not be reached within the allowed number of attempts."""


class Client:
    """
    :param pin: User code sent with arm and disarm requests, hex-pair
        encoded ("1234" is sent as 0x12 0x34)
    :param motion_timeout: Seconds without motion before a zone's motion
        flag is cleared
    :param keep_alive_interval: Frequency (in seconds) at which the
        connection request is re-sent to the panel
    """

    def __init__(
        self,
        connection: Connection | None = None,
        serial_tty: str | None = None,
        pin: str = "0000",
        motion_timeout: float = DEFAULT_QUIET_INTERVAL,
        keep_alive_interval: float = KEEP_ALIVE_INTERVAL,
        max_connection_attempts: int = MAX_CONNECTION_ATTEMPTS,
        alarm: Alarm | None = None,
    ):
        if connection is None:
            if serial_tty is not None:
                connection = Serial232Connection(tty_path=serial_tty)
            else:
                raise ValueError("Must provide serial_tty or connection object")

        if alarm is None:
            alarm = Alarm(motion_timeout=motion_timeout)

        self.alarm = alarm
        self._pin = parse_pin(pin)
        self._connection = connection
        self._on_event_received: Callable[[BaseEvent], None] | None = None
        self._closed = False
        self._backoff = Backoff(
            min_ms=RECONNECT_DELAY * 1000, max_ms=RECONNECT_DELAY * 1000, factor=1
        )
        self._attempt = 0
        self._max_connection_attempts = max_connection_attempts
        self._keep_alive_interval = keep_alive_interval
        self._keep_alive_task: asyncio.Task[None] | None = None

    @property
    def connected(self) -> bool:
        return self._connection.connected

    async def arm_away(self) -> None:
        await self.send_command(Command.ARM_AWAY)

    async def arm_home(self) -> None:
        await self.send_command(Command.ARM_HOME)

    async def disarm(self) -> None:
        await self.send_command(Command.DISARM)

    async def send_command(self, command: Command | str) -> bool:
        """
        Send an arm or disarm command to the panel.

        Unknown commands are ignored.

        :return: Whether a request was sent
        """
        payload = encode_command(command, self._pin)
        if payload is None:
            _LOGGER.debug("Ignoring unknown command: %r", command)
            return False

        _LOGGER.info("Sending command %s", command)
        await self._send(payload)
        return True

    async def request_status(self) -> None:
        """Ask the panel to send a full status broadcast."""
        await self._send(STATUS_REQUEST)

    async def request_event_log(self) -> None:
        """Ask the panel to send its event log, one entry per message."""
        await self._send(event_log_request(self._pin))

    async def connect(self) -> None:
        """
        Open the connection to the panel and start the keep alive.

        Failed attempts are retried after a fixed delay. Attempts are counted
        for the life of the client and never reset.

        :raises ConnectionFailedError: when the attempts are exhausted
        """
        while True:
            self._attempt += 1
            if self._attempt > self._max_connection_attempts:
                _LOGGER.error(
                    "Could not connect to the panel, gave up after %d attempts",
                    self._max_connection_attempts,
                )
                raise ConnectionFailedError(
                    "Gave up after {} attempts".format(self._max_connection_attempts)
                )

            _LOGGER.debug("Attempting to connect (attempt %d)", self._attempt)
            try:
                if await self._connection.connect():
                    break
                _LOGGER.warning("Failed to connect: port did not open")
            except OSError as e:
                _LOGGER.warning("Failed to connect: %s", e)

            await sleep(self._backoff.duration())

        _LOGGER.info("Connected to panel")
        await self._send_connection_request()
        self._restart_keep_alive()

    async def run(self) -> None:
        """Connect, then process frames until the connection is lost."""
        await self.connect()
        await self.listen()

    async def listen(self) -> None:
        """Process frames until the connection is lost."""
        while not self._closed:
            data = await self._connection.read()
            if data is None:
                if not self._closed:
                    _LOGGER.error("Lost connection to panel")
                break

            await self._handle_frame(data)

    async def _handle_frame(self, data: bytes) -> None:
        _LOGGER.debug("Received %s", to_hex_string(data))
        try:
            packet = Packet.decode(data)
        except PacketError as e:
            _LOGGER.warning("Dropping frame %s: %s", to_hex_string(data), e)
            return

        await self._handle_packet(packet)

    async def _handle_packet(self, packet: Packet) -> None:
        if packet.payload.startswith(ACK):
            return

        # Every other message must be acknowledged before anything else
        await self._send(ACK)

        try:
            event = BaseEvent.decode(packet)
        except ValueError:
            _LOGGER.warning(
                "Failed to decode packet %s", to_hex_string(packet.payload), exc_info=True
            )
            return

        if isinstance(event, EnrollmentRequestEvent):
            _LOGGER.info("Panel requested enrollment")
            await self._send(enrollment_response(self._pin))
        elif isinstance(event, AccessDeniedEvent):
            _LOGGER.warning("Access denied by panel, check the configured PIN")
        elif isinstance(event, UnknownEvent):
            _LOGGER.debug("Unknown message: %s", to_hex_string(event.payload))
        elif isinstance(event, KeepAliveUpdate) and self._keep_alive_task is not None:
            self._restart_keep_alive()

        self._dispatch_event(event)

    def _dispatch_event(self, event: BaseEvent) -> None:
        if self._on_event_received is not None:
            try:
                self._on_event_received(event)
            except Exception:
                _LOGGER.warning("on_event_received callback raised", exc_info=True)

        self.alarm.handle_event(event)

    async def _send(self, payload: bytes) -> None:
        data = Packet(payload=payload).encode()
        if not self._connection.connected:
            _LOGGER.warning("Not connected, dropping %s", to_hex_string(data))
            return

        _LOGGER.debug("Sending %s", to_hex_string(data))
        try:
            await self._connection.write(data)
        except OSError as e:
            _LOGGER.error("Failed to write to panel: %s", e)

    async def _send_connection_request(self) -> None:
        await self._send(CONNECTION_REQUEST)

    def _restart_keep_alive(self) -> None:
        if self._keep_alive_task is not None:
            self._keep_alive_task.cancel()
        self._keep_alive_task = asyncio.create_task(self._keep_alive_loop())

    async def _keep_alive_loop(self) -> None:
        """Re-send the connection request to keep the session open"""
        while not self._closed:
            await asyncio.sleep(self._keep_alive_interval)
            _LOGGER.debug("Sending keep alive")
            await self._send_connection_request()

    async def close(self) -> None:
        self._closed = True
        if self._keep_alive_task is not None:
            self._keep_alive_task.cancel()
            self._keep_alive_task = None
        self.alarm.motion.cancel_all()
        await self._connection.close()

    def on_state_change(
        self, f: Callable[[ArmingState], None]
    ) -> Callable[[ArmingState], None]:
        self.alarm.on_state_change(f)
        return f

    def on_zone_change(
        self, f: Callable[[Alarm.Zone], None]
    ) -> Callable[[Alarm.Zone], None]:
        self.alarm.on_zone_change(f)
        return f

    def on_event_received(
        self, f: Callable[[BaseEvent], None]
    ) -> Callable[[BaseEvent], None]:
        self._on_event_received = f
        return f
