"""Decoding of the payload of packets received from a PowerMax alarm."""

import datetime
import logging
from enum import Enum
from typing import Collection, TypeVar

from .packet import MessageType, Packet

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=Enum)

BITMAP_LENGTH = 4


def unpack_zone_bitmap(data: bytes) -> set[int]:
    """
    Parse a zone bitfield.

    Bit ``b`` (LSB first) of byte ``i`` represents zone ``8 * i + b + 1``.

    :param data: The raw bitmap bytes
    :return: The set of zone ids whose bit is set
    """
    return {
        8 * i + b + 1
        for i, byte in enumerate(data)
        for b in range(8)
        if byte & (1 << b)
    }


def pack_zone_bitmap(zone_ids: Collection[int], length: int = BITMAP_LENGTH) -> bytes:
    """
    Construct a zone bitfield from a collection of zone ids.

    Performs the reverse of unpack_zone_bitmap().
    """
    data = bytearray(length)
    for zone_id in zone_ids:
        index, bit = divmod(zone_id - 1, 8)
        if not 0 <= index < length:
            raise ValueError("Zone {} does not fit in bitmap".format(zone_id))
        data[index] |= 1 << bit
    return bytes(data)


def enum_or_value(enum_type: type[T], value: int) -> T | int:
    """Return the enum member for value, or the raw value if it is unknown."""
    try:
        return enum_type(value)
    except ValueError:
        return value


def _require_length(packet: Packet, length: int) -> None:
    if len(packet.payload) < length:
        raise ValueError(
            "Payload too short for {}: expected {} bytes, got {}".format(
                packet.type, length, len(packet.payload)
            )
        )


class BaseEvent(object):
    """
    Represents a message from a PowerMax alarm.
    """

    def __repr__(self) -> str:
        """Get a string representation of the event."""
        return "<{} {}>".format(self.__class__.__name__, self.__dict__)

    @classmethod
    def decode(cls, packet: Packet) -> "BaseEvent":
        """
        Decode a packet from the PowerMax alarm.

        Classifies the payload by its leading byte(s). Payloads that are not
        understood decode into an :py:class:`UnknownEvent` so that the caller
        can log and drop them.

        :param packet: The packet that is to be decoded
        :return: The decoded :py:class:`BaseEvent` object
        """
        payload = packet.payload
        if payload.startswith(AckEvent.PREFIX):
            return AckEvent()
        elif payload.startswith(AccessDeniedEvent.PREFIX):
            return AccessDeniedEvent()
        elif payload.startswith(EnrollmentRequestEvent.PREFIX):
            return EnrollmentRequestEvent()
        elif packet.type == MessageType.EVENT_LOG:
            return EventLogEntry.decode(packet)
        elif packet.type == MessageType.STATUS:
            return StatusUpdate.decode(packet)
        else:
            return UnknownEvent(payload=payload)


class AckEvent(BaseEvent):
    """An acknowledgement echoed by the panel. Never acknowledged back."""

    PREFIX = bytes([MessageType.ACK.value, 0x43])


class AccessDeniedEvent(BaseEvent):
    """The panel refused the last request, usually because of a wrong PIN."""

    PREFIX = bytes([MessageType.ACCESS_DENIED.value, 0x43])


class EnrollmentRequestEvent(BaseEvent):
    """The panel asks the gateway to enroll as a PowerLink device."""

    PREFIX = bytes([MessageType.CONNECTION.value, 0x0A, 0x00, 0x01])


class UnknownEvent(BaseEvent):
    def __init__(self, payload: bytes) -> None:
        self.payload = payload


class EventLogEntry(BaseEvent):
    """
    One record of the panel event log, sent in response to an event log
    request.

    Layout of the payload::

        A0 total index sec min hour day month year source event
    """

    LENGTH = 11

    class Source(Enum):
        """The zone or user that caused a logged event."""

        SYSTEM = 0x00
        ZONE_1 = 0x01
        ZONE_2 = 0x02
        ZONE_3 = 0x03
        ZONE_4 = 0x04
        ZONE_5 = 0x05
        ZONE_6 = 0x06
        ZONE_7 = 0x07
        ZONE_8 = 0x08
        ZONE_9 = 0x09
        ZONE_10 = 0x0A
        ZONE_11 = 0x0B
        ZONE_12 = 0x0C
        ZONE_13 = 0x0D
        ZONE_14 = 0x0E
        ZONE_15 = 0x0F
        ZONE_16 = 0x10
        ZONE_17 = 0x11
        ZONE_18 = 0x12
        ZONE_19 = 0x13
        ZONE_20 = 0x14
        ZONE_21 = 0x15
        ZONE_22 = 0x16
        ZONE_23 = 0x17
        ZONE_24 = 0x18
        ZONE_25 = 0x19
        ZONE_26 = 0x1A
        ZONE_27 = 0x1B
        ZONE_28 = 0x1C
        ZONE_29 = 0x1D
        ZONE_30 = 0x1E
        KEYFOB_1 = 0x1F
        KEYFOB_2 = 0x20
        KEYFOB_3 = 0x21
        KEYFOB_4 = 0x22
        KEYFOB_5 = 0x23
        KEYFOB_6 = 0x24
        KEYFOB_7 = 0x25
        KEYFOB_8 = 0x26
        USER_1 = 0x27
        USER_2 = 0x28
        USER_3 = 0x29
        USER_4 = 0x2A
        USER_5 = 0x2B
        USER_6 = 0x2C
        USER_7 = 0x2D
        USER_8 = 0x2E
        WIRELESS_COMMANDER_1 = 0x2F
        WIRELESS_COMMANDER_2 = 0x30
        WIRELESS_COMMANDER_3 = 0x31
        WIRELESS_COMMANDER_4 = 0x32
        WIRELESS_COMMANDER_5 = 0x33
        WIRELESS_COMMANDER_6 = 0x34
        WIRELESS_COMMANDER_7 = 0x35
        WIRELESS_COMMANDER_8 = 0x36
        WIRELESS_SIREN_1 = 0x37
        WIRELESS_SIREN_2 = 0x38
        TWO_WAY_WIRELESS_KEYPAD_1 = 0x39
        TWO_WAY_WIRELESS_KEYPAD_2 = 0x3A
        TWO_WAY_WIRELESS_KEYPAD_3 = 0x3B
        TWO_WAY_WIRELESS_KEYPAD_4 = 0x3C
        X10_1 = 0x3D
        X10_2 = 0x3E
        X10_3 = 0x3F
        X10_4 = 0x40
        X10_5 = 0x41
        X10_6 = 0x42
        X10_7 = 0x43
        X10_8 = 0x44
        X10_9 = 0x45
        X10_10 = 0x46
        X10_11 = 0x47
        X10_12 = 0x48
        X10_13 = 0x49
        X10_14 = 0x4A
        X10_15 = 0x4B
        PGM = 0x4C
        GSM = 0x4D
        POWERLINK = 0x4E
        PROXY_TAG_1 = 0x4F
        PROXY_TAG_2 = 0x50
        PROXY_TAG_3 = 0x51
        PROXY_TAG_4 = 0x52
        PROXY_TAG_5 = 0x53
        PROXY_TAG_6 = 0x54
        PROXY_TAG_7 = 0x55
        PROXY_TAG_8 = 0x56

    class EventType(Enum):
        """Logged event types."""

        NONE = 0x00
        INTERIOR_ALARM = 0x01
        PERIMETER_ALARM = 0x02
        DELAY_ALARM = 0x03
        SILENT_ALARM_24_H = 0x04
        AUDIBLE_ALARM_24_H = 0x05
        TAMPER = 0x06
        CONTROL_PANEL_TAMPER = 0x07
        TAMPER_ALARM_1 = 0x08
        TAMPER_ALARM_2 = 0x09
        COMMUNICATION_LOSS = 0x0A
        PANIC_FROM_KEYFOB = 0x0B
        PANIC_FROM_CONTROL_PANEL = 0x0C
        DURESS = 0x0D
        CONFIRM_ALARM = 0x0E
        GENERAL_TROUBLE = 0x0F
        GENERAL_TROUBLE_RESTORE = 0x10
        INTERIOR_RESTORE = 0x11
        PERIMETER_RESTORE = 0x12
        DELAY_RESTORE = 0x13
        SILENT_RESTORE_24_H = 0x14
        AUDIBLE_RESTORE_24_H = 0x15
        TAMPER_RESTORE_1 = 0x16
        CONTROL_PANEL_TAMPER_RESTORE = 0x17
        TAMPER_RESTORE_2 = 0x18
        TAMPER_RESTORE_3 = 0x19
        COMMUNICATION_RESTORE = 0x1A
        CANCEL_ALARM = 0x1B
        GENERAL_RESTORE = 0x1C
        TROUBLE_RESTORE = 0x1D
        NOT_USED = 0x1E
        RECENT_CLOSE = 0x1F
        FIRE = 0x20
        FIRE_RESTORE = 0x21
        NO_ACTIVE = 0x22
        EMERGENCY = 0x23
        NO_USED = 0x24
        DISARM_LATCHKEY = 0x25
        PANIC_RESTORE = 0x26
        SUPERVISION_INACTIVE = 0x27
        SUPERVISION_RESTORE_ACTIVE = 0x28
        LOW_BATTERY = 0x29
        LOW_BATTERY_RESTORE = 0x2A
        AC_FAIL = 0x2B
        AC_RESTORE = 0x2C
        CONTROL_PANEL_LOW_BATTERY = 0x2D
        CONTROL_PANEL_LOW_BATTERY_RESTORE = 0x2E
        RF_JAMMING = 0x2F
        RF_JAMMING_RESTORE = 0x30
        COMMUNICATIONS_FAILURE = 0x31
        COMMUNICATIONS_RESTORE = 0x32
        TELEPHONE_LINE_FAILURE = 0x33
        TELEPHONE_LINE_RESTORE = 0x34
        AUTO_TEST = 0x35
        FUSE_FAILURE = 0x36
        FUSE_RESTORE = 0x37
        KEYFOB_LOW_BATTERY = 0x38
        KEYFOB_LOW_BATTERY_RESTORE = 0x39
        ENGINEER_RESET = 0x3A
        BATTERY_DISCONNECT = 0x3B
        ONE_WAY_KEYPAD_LOW_BATTERY = 0x3C
        ONE_WAY_KEYPAD_LOW_BATTERY_RESTORE = 0x3D
        ONE_WAY_KEYPAD_INACTIVE = 0x3E
        ONE_WAY_KEYPAD_RESTORE_ACTIVE = 0x3F
        LOW_BATTERY_2 = 0x40
        CLEAN_ME = 0x41
        FIRE_TROUBLE = 0x42
        LOW_BATTERY_3 = 0x43
        BATTERY_RESTORE = 0x44
        AC_FAIL_2 = 0x45
        AC_RESTORE_2 = 0x46
        SUPERVISION_INACTIVE_2 = 0x47
        SUPERVISION_RESTORE_ACTIVE_2 = 0x48
        GAS_ALERT = 0x49
        GAS_ALERT_RESTORE = 0x4A
        GAS_TROUBLE = 0x4B
        GAS_TROUBLE_RESTORE = 0x4C
        FLOOD_ALERT = 0x4D
        FLOOD_ALERT_RESTORE = 0x4E
        X10_TROUBLE = 0x4F
        X10_TROUBLE_RESTORE = 0x50
        ARM_HOME = 0x51
        ARM_AWAY = 0x52
        QUICK_ARM_HOME = 0x53
        QUICK_ARM_AWAY = 0x54
        DISARM = 0x55
        FAIL_TO_AUTO_ARM = 0x56
        ENTER_TO_TEST_MODE = 0x57
        EXIT_FROM_TEST_MODE = 0x58
        FORCE_ARM = 0x59
        AUTO_ARM = 0x5A
        INSTANT_ARM = 0x5B
        BYPASS = 0x5C
        FAIL_TO_ARM = 0x5D
        DOOR_OPEN = 0x5E
        COMMUNICATION_ESTABLISHED_BY_CONTROL_PANEL = 0x5F
        SYSTEM_RESET = 0x60
        INSTALLER_PROGRAMMING = 0x61
        WRONG_PASSWORD = 0x62
        NOT_SYS_EVENT_1 = 0x63
        NOT_SYS_EVENT_2 = 0x64
        EXTREME_HOT_ALERT = 0x65
        EXTREME_HOT_ALERT_RESTORE = 0x66
        FREEZE_ALERT = 0x67
        FREEZE_ALERT_RESTORE = 0x68
        HUMAN_COLD_ALERT = 0x69
        HUMAN_COLD_ALERT_RESTORE = 0x6A
        HUMAN_HOT_ALERT = 0x6B
        HUMAN_HOT_ALERT_RESTORE = 0x6C
        TEMPERATURE_SENSOR_TROUBLE = 0x6D
        TEMPERATURE_SENSOR_TROUBLE_RESTORE = 0x6E

    def __init__(
        self,
        message_index: int,
        total_messages: int,
        timestamp: datetime.datetime | None,
        source: "EventLogEntry.Source | int",
        event_type: "EventLogEntry.EventType | int",
    ) -> None:
        """
        Construct an :py:class:`EventLogEntry` object - used by :py:meth:`decode`.

        :param message_index: Position of this record in the log transfer
        :param total_messages: Number of records in the log transfer
        :param timestamp: When the event happened, None if the panel sent an
                          impossible date
        :param source: The zone or user code, raw value if unknown
        :param event_type: The logged event, raw value if unknown
        """
        self.message_index = message_index
        self.total_messages = total_messages
        self.timestamp = timestamp
        self.source = source
        self.event_type = event_type

    @classmethod
    def decode(cls, packet: Packet) -> "EventLogEntry":
        _require_length(packet, cls.LENGTH)
        data = packet.payload
        return EventLogEntry(
            total_messages=data[1],
            message_index=data[2],
            timestamp=decode_timestamp(data[3:9]),
            source=enum_or_value(EventLogEntry.Source, data[9]),
            event_type=enum_or_value(EventLogEntry.EventType, data[10]),
        )


def decode_timestamp(data: bytes) -> datetime.datetime | None:
    """
    Decode an event log timestamp.

    Fields are binary, in the order seconds, minutes, hours, day, month and
    year offset from 2000. Empty log slots carry zeroes, which is not a
    valid date.
    """
    second, minute, hour, day, month, year = data
    try:
        return datetime.datetime(
            year=2000 + year,
            month=month,
            day=day,
            hour=hour,
            minute=minute,
            second=second,
        )
    except ValueError:
        _LOGGER.debug("Invalid event log timestamp: %s", list(data))
        return None


class StatusUpdate(BaseEvent):
    """
    A status message from the PowerMax alarm.

    The second payload byte holds the number of messages in a status
    broadcast and the third byte the kind of message, which doubles as its
    position in the broadcast. The panel sends these spontaneously (keep
    alive, zone events) and as a multi part broadcast after a connection
    or status request.
    """

    LENGTH = 11

    class UpdateType(Enum):
        KEEP_ALIVE = 0x02
        TAMPER = 0x03
        EVENT = 0x04
        ENROLLMENT = 0x06

    def __init__(self, total_messages: int, update_type: "StatusUpdate.UpdateType | int") -> None:
        """
        Construct a :py:class:`StatusUpdate` object - used by subclasses.

        :param total_messages: Number of messages in the broadcast
        :param update_type: The kind of status message, raw value if unknown
        """
        self.total_messages = total_messages
        self.update_type = update_type

    @property
    def is_last_message(self) -> bool:
        """Whether this message completes a multi part status broadcast."""
        value = (
            self.update_type.value
            if isinstance(self.update_type, StatusUpdate.UpdateType)
            else self.update_type
        )
        return self.total_messages == value

    @classmethod
    def decode(cls, packet: Packet) -> "StatusUpdate":
        """
        Decode a status :py:class:`Packet` into the matching subclass.

        Unknown kinds decode into a bare :py:class:`StatusUpdate`.
        """
        if len(packet.payload) < 3:
            raise ValueError("Status payload too short: {}".format(packet.payload.hex()))

        update_type = enum_or_value(StatusUpdate.UpdateType, packet.payload[2])
        if update_type == StatusUpdate.UpdateType.KEEP_ALIVE:
            return KeepAliveUpdate.decode(packet)
        elif update_type == StatusUpdate.UpdateType.TAMPER:
            return TamperUpdate.decode(packet)
        elif update_type == StatusUpdate.UpdateType.EVENT:
            return SystemEvent.decode(packet)
        elif update_type == StatusUpdate.UpdateType.ENROLLMENT:
            return EnrollmentUpdate.decode(packet)
        else:
            return StatusUpdate(
                total_messages=packet.payload[1], update_type=update_type
            )

    def _encode(self, body: bytes) -> Packet:
        data = bytearray(self.LENGTH + 1)
        data[0] = MessageType.STATUS.value
        data[1] = self.total_messages
        data[2] = self.update_type.value  # type: ignore[union-attr]
        data[3 : 3 + len(body)] = body
        data[-1] = 0x43
        return Packet(payload=bytes(data))


class KeepAliveUpdate(StatusUpdate):
    """
    Periodic status message listing open and low battery zones.

    Each list replaces the previous one for every zone.
    """

    def __init__(
        self,
        total_messages: int,
        open_zones: set[int],
        low_battery_zones: set[int],
    ) -> None:
        super(KeepAliveUpdate, self).__init__(
            total_messages=total_messages,
            update_type=StatusUpdate.UpdateType.KEEP_ALIVE,
        )
        self.open_zones = open_zones
        self.low_battery_zones = low_battery_zones

    @classmethod
    def decode(cls, packet: Packet) -> "KeepAliveUpdate":
        _require_length(packet, cls.LENGTH)
        data = packet.payload
        return KeepAliveUpdate(
            total_messages=data[1],
            open_zones=unpack_zone_bitmap(data[3:7]),
            low_battery_zones=unpack_zone_bitmap(data[7:11]),
        )

    def encode(self) -> Packet:
        """
        Encode into a packet as the panel would send it.

        Note: Primarily for testing and simulating a PowerMax alarm
        """
        return self._encode(
            pack_zone_bitmap(self.open_zones) + pack_zone_bitmap(self.low_battery_zones)
        )


class TamperUpdate(StatusUpdate):
    """
    Status message listing tampered zones.

    The first bitmap holds a zone status whose meaning is unknown; it is
    decoded for logging only.
    """

    def __init__(
        self,
        total_messages: int,
        status_zones: set[int],
        tamper_zones: set[int],
    ) -> None:
        super(TamperUpdate, self).__init__(
            total_messages=total_messages,
            update_type=StatusUpdate.UpdateType.TAMPER,
        )
        self.status_zones = status_zones
        self.tamper_zones = tamper_zones

    @classmethod
    def decode(cls, packet: Packet) -> "TamperUpdate":
        _require_length(packet, cls.LENGTH)
        data = packet.payload
        return TamperUpdate(
            total_messages=data[1],
            status_zones=unpack_zone_bitmap(data[3:7]),
            tamper_zones=unpack_zone_bitmap(data[7:11]),
        )

    def encode(self) -> Packet:
        return self._encode(
            pack_zone_bitmap(self.status_zones) + pack_zone_bitmap(self.tamper_zones)
        )


class EnrollmentUpdate(StatusUpdate):
    """Status message listing enrolled and bypassed zones."""

    def __init__(
        self,
        total_messages: int,
        enrolled_zones: set[int],
        bypassed_zones: set[int],
    ) -> None:
        super(EnrollmentUpdate, self).__init__(
            total_messages=total_messages,
            update_type=StatusUpdate.UpdateType.ENROLLMENT,
        )
        self.enrolled_zones = enrolled_zones
        self.bypassed_zones = bypassed_zones

    @classmethod
    def decode(cls, packet: Packet) -> "EnrollmentUpdate":
        _require_length(packet, cls.LENGTH)
        data = packet.payload
        return EnrollmentUpdate(
            total_messages=data[1],
            enrolled_zones=unpack_zone_bitmap(data[3:7]),
            bypassed_zones=unpack_zone_bitmap(data[7:11]),
        )

    def encode(self) -> Packet:
        return self._encode(
            pack_zone_bitmap(self.enrolled_zones) + pack_zone_bitmap(self.bypassed_zones)
        )


class SystemEvent(StatusUpdate):
    """
    System status message, optionally carrying a zone event.

    Payload layout::

        A5 total 04 status states zone zone_event ...
    """

    class SystemStatus(Enum):
        DISARM = 0x00
        EXIT_DELAY_1 = 0x01
        EXIT_DELAY_2 = 0x02
        ENTRY_DELAY = 0x03
        ARMED_HOME = 0x04
        ARMED_AWAY = 0x05
        USER_TEST = 0x06
        DOWNLOADING = 0x07
        PROGRAMMING = 0x08
        INSTALLER = 0x09
        HOME_BYPASS = 0x0A
        AWAY_BYPASS = 0x0B
        READY = 0x0C
        NOT_READY = 0x0D

    class SystemState(Enum):
        """
        Flags of the system state byte.

        The value is the bit position counted from 1 (LSB).
        """

        READY = 1
        ALERT_IN_MEMORY = 2
        TROUBLE = 3
        BYPASS = 4
        LAST_10_SEC_OF_DELAY = 5
        ZONE_EVENT = 6
        ARM_DISARM_EVENT = 7
        ALARM_EVENT = 8

    class ZoneEvent(Enum):
        NONE = 0x00
        TAMPER_ALARM = 0x01
        TAMPER_RESTORE = 0x02
        OPEN = 0x03
        CLOSED = 0x04
        VIOLATED = 0x05  # motion
        PANIC_ALARM = 0x06
        RF_JAMMING = 0x07
        TAMPER_OPEN = 0x08
        COMMUNICATION_FAILURE = 0x09
        LINE_FAILURE = 0x0A
        FUSE = 0x0B
        NOT_ACTIVE = 0x0C
        LOW_BATTERY = 0x0D
        AC_FAILURE = 0x0E
        FIRE_ALARM = 0x0F
        EMERGENCY = 0x10
        SIREN_TAMPER = 0x11
        SIREN_TAMPER_RESTORE = 0x12
        SIREN_LOW_BATTERY = 0x13
        SIREN_AC_FAILURE = 0x14

    def __init__(
        self,
        total_messages: int,
        system_status: "SystemEvent.SystemStatus | int",
        system_states: list["SystemEvent.SystemState"],
        zone_id: int | None = None,
        zone_event: "SystemEvent.ZoneEvent | int | None" = None,
    ) -> None:
        """
        Construct a :py:class:`SystemEvent` object - used by :py:meth:`decode`.

        :param total_messages: Number of messages in the broadcast
        :param system_status: The panel status, raw value if unknown
        :param system_states: The flags set in the system state byte
        :param zone_id: The zone concerned, only for `ZONE_EVENT` states
        :param zone_event: What happened to the zone, raw value if unknown
        """
        super(SystemEvent, self).__init__(
            total_messages=total_messages,
            update_type=StatusUpdate.UpdateType.EVENT,
        )
        self.system_status = system_status
        self.system_states = system_states
        self.zone_id = zone_id
        self.zone_event = zone_event

    @property
    def is_zone_event(self) -> bool:
        return SystemEvent.SystemState.ZONE_EVENT in self.system_states

    @classmethod
    def decode(cls, packet: Packet) -> "SystemEvent":
        _require_length(packet, 5)
        data = packet.payload
        system_states = [
            SystemEvent.SystemState(bit) for bit in sorted(unpack_zone_bitmap(data[4:5]))
        ]
        zone_id = None
        zone_event = None
        if SystemEvent.SystemState.ZONE_EVENT in system_states:
            _require_length(packet, 7)
            zone_id = data[5]
            zone_event = enum_or_value(SystemEvent.ZoneEvent, data[6])

        return SystemEvent(
            total_messages=data[1],
            system_status=enum_or_value(SystemEvent.SystemStatus, data[3]),
            system_states=system_states,
            zone_id=zone_id,
            zone_event=zone_event,
        )

    def encode(self) -> Packet:
        states = 0
        for state in self.system_states:
            states |= 1 << (state.value - 1)
        status = (
            self.system_status.value
            if isinstance(self.system_status, SystemEvent.SystemStatus)
            else self.system_status
        )
        zone_event = (
            self.zone_event.value
            if isinstance(self.zone_event, SystemEvent.ZoneEvent)
            else self.zone_event or 0
        )
        return self._encode(bytes([status, states, self.zone_id or 0, zone_event]))
