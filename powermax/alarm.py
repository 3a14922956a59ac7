import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Collection, Dict, List, Mapping

from .event import (
    BaseEvent,
    EnrollmentUpdate,
    EventLogEntry,
    KeepAliveUpdate,
    StatusUpdate,
    SystemEvent,
    TamperUpdate,
)
from .motion import DEFAULT_QUIET_INTERVAL, MotionScheduler

_LOGGER = logging.getLogger(__name__)


class ArmingState(Enum):
    DISARMED = "disarmed"
    ARMED_HOME = "armed_home"
    ARMED_AWAY = "armed_away"
    PENDING = "pending"


class Alarm:
    """
    In-memory representation of the state of the alarm the client is connected
    to.

    Until the first full status broadcast has been received, zone updates are
    applied silently so a baseline can be built. After that every zone whose
    state changes is reported through the zone change callback.
    """

    NUM_ZONES = 30

    STATUS_MAP = {
        SystemEvent.SystemStatus.DISARM: ArmingState.DISARMED,
        SystemEvent.SystemStatus.ARMED_HOME: ArmingState.ARMED_HOME,
        SystemEvent.SystemStatus.ARMED_AWAY: ArmingState.ARMED_AWAY,
        SystemEvent.SystemStatus.ENTRY_DELAY: ArmingState.PENDING,
        SystemEvent.SystemStatus.EXIT_DELAY_1: ArmingState.PENDING,
        SystemEvent.SystemStatus.EXIT_DELAY_2: ArmingState.PENDING,
    }

    ZONE_EVENTS_MAP = {
        SystemEvent.ZoneEvent.TAMPER_ALARM: ("tamper", True),
        SystemEvent.ZoneEvent.TAMPER_RESTORE: ("tamper", False),
        SystemEvent.ZoneEvent.OPEN: ("open", True),
        SystemEvent.ZoneEvent.CLOSED: ("open", False),
        SystemEvent.ZoneEvent.VIOLATED: ("motion", True),
        SystemEvent.ZoneEvent.LOW_BATTERY: ("low_battery", True),
    }

    @dataclass
    class Zone:
        id: int
        enrolled: bool = False
        open: bool = False
        bypassed: bool = False
        low_battery: bool = False
        motion: bool = False
        tamper: bool = False

        def to_dict(self) -> Dict[str, Any]:
            return {
                "id": self.id,
                "enrolled": self.enrolled,
                "open": self.open,
                "bypassed": self.bypassed,
                "lowBattery": self.low_battery,
                "motion": self.motion,
                "tamper": self.tamper,
            }

    def __init__(
        self,
        motion_timeout: float = DEFAULT_QUIET_INTERVAL,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.zones: List[Alarm.Zone] = [
            Alarm.Zone(id=zone_id) for zone_id in range(1, self.NUM_ZONES + 1)
        ]
        self.initiated = False
        self.arming_state: ArmingState | None = None
        self.motion = MotionScheduler(
            on_expire=self.clear_motion, quiet_interval=motion_timeout, loop=loop
        )

        self._on_state_change: Callable[[ArmingState], None] | None = None
        self._on_zone_change: Callable[["Alarm.Zone"], None] | None = None

    def zone(self, zone_id: int) -> "Alarm.Zone":
        if not 1 <= zone_id <= self.NUM_ZONES:
            raise KeyError(zone_id)
        return self.zones[zone_id - 1]

    def handle_event(self, event: BaseEvent) -> None:
        if isinstance(event, KeepAliveUpdate):
            _LOGGER.debug(
                "Keep alive: open zones %s, low battery zones %s",
                sorted(event.open_zones),
                sorted(event.low_battery_zones),
            )
            self.apply_snapshot(
                {"open": event.open_zones, "low_battery": event.low_battery_zones}
            )
        elif isinstance(event, TamperUpdate):
            _LOGGER.debug(
                "Zone status %s, tamper zones %s",
                sorted(event.status_zones),
                sorted(event.tamper_zones),
            )
            self.apply_snapshot({"tamper": event.tamper_zones})
        elif isinstance(event, EnrollmentUpdate):
            _LOGGER.debug(
                "Enrolled zones %s, bypassed zones %s",
                sorted(event.enrolled_zones),
                sorted(event.bypassed_zones),
            )
            self.apply_snapshot(
                {"enrolled": event.enrolled_zones, "bypassed": event.bypassed_zones}
            )
        elif isinstance(event, SystemEvent):
            self._handle_system_event(event)
        elif isinstance(event, StatusUpdate):
            _LOGGER.warning("Ignoring unknown status message: %s", event)
        elif isinstance(event, EventLogEntry):
            _LOGGER.info(
                "Log %d/%d - %s: %s %s",
                event.message_index,
                event.total_messages,
                event.timestamp,
                getattr(event.source, "name", event.source),
                getattr(event.event_type, "name", event.event_type),
            )

        if isinstance(event, StatusUpdate):
            self._check_initiated(event)

    def apply_snapshot(self, fields: Mapping[str, Collection[int]]) -> None:
        """
        Apply zone sets from a status message to every zone.

        :param fields: Maps zone attribute names to the zone ids for which
                       the attribute is set. Zones missing from a set have
                       the attribute cleared.
        """
        for zone in self.zones:
            previous = dataclasses.replace(zone)
            for name, zone_ids in fields.items():
                setattr(zone, name, zone.id in zone_ids)
            self._zone_updated(previous, zone)

    def apply_event(self, zone_id: int, event: SystemEvent.ZoneEvent | int) -> None:
        if not 1 <= zone_id <= self.NUM_ZONES:
            _LOGGER.warning("Ignoring event %s for unknown zone %d", event, zone_id)
            return

        zone = self.zones[zone_id - 1]
        change = self.ZONE_EVENTS_MAP.get(event)  # type: ignore[arg-type]
        if change is None:
            _LOGGER.warning("Can not handle zone event %s for zone %s", event, zone)
            return

        previous = dataclasses.replace(zone)
        name, value = change
        setattr(zone, name, value)
        if event == SystemEvent.ZoneEvent.VIOLATED:
            self.motion.arm(zone_id)
        self._zone_updated(previous, zone)

    def clear_motion(self, zone_id: int) -> None:
        zone = self.zone(zone_id)
        previous = dataclasses.replace(zone)
        zone.motion = False
        self._zone_updated(previous, zone)

    def _handle_system_event(self, event: SystemEvent) -> None:
        state = self.STATUS_MAP.get(event.system_status)  # type: ignore[arg-type]
        if state is not None:
            self._update_arming_state(state)

        if not event.is_zone_event:
            _LOGGER.debug(
                "System status %s, states %s", event.system_status, event.system_states
            )
            return

        _LOGGER.debug(
            "System status %s, states %s, zone %s, event %s",
            event.system_status,
            event.system_states,
            event.zone_id,
            event.zone_event,
        )
        # Zone ids are only meaningful once the zone table has been
        # populated from a full status broadcast.
        if self.initiated and event.zone_id is not None and event.zone_event is not None:
            self.apply_event(event.zone_id, event.zone_event)

    def _check_initiated(self, event: StatusUpdate) -> None:
        if self.initiated or not event.is_last_message:
            return

        _LOGGER.info("Initial status received, publishing enrolled zones")
        self.initiated = True
        for zone in self.zones:
            if zone.enrolled:
                self._notify_zone(zone)

    def _update_arming_state(self, state: ArmingState) -> None:
        self.arming_state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _zone_updated(self, previous: "Alarm.Zone", zone: "Alarm.Zone") -> None:
        if self.initiated and previous != zone:
            self._notify_zone(zone)

    def _notify_zone(self, zone: "Alarm.Zone") -> None:
        if self._on_zone_change is not None:
            self._on_zone_change(zone)

    def on_state_change(self, f: Callable[[ArmingState], None]) -> None:
        self._on_state_change = f

    def on_zone_change(self, f: Callable[["Alarm.Zone"], None]) -> None:
        self._on_zone_change = f
