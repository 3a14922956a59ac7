import asyncio
import logging
from typing import Callable, Dict

_LOGGER = logging.getLogger(__name__)

DEFAULT_QUIET_INTERVAL = 120.0


class MotionScheduler:
    """
    Clears the motion flag of a zone once it has been quiet for a while.

    Motion sensors only report that they were violated, never that they are
    quiet again. Each violation (re)starts a per zone timer; when it expires
    without a new violation `on_expire` is called with the zone id.

    :param on_expire: Called with the zone id when its quiet interval ends
    :param quiet_interval: Seconds without motion before a zone is cleared
    :param loop: Event loop used for the timers, defaults to the running loop
    """

    def __init__(
        self,
        on_expire: Callable[[int], None],
        quiet_interval: float = DEFAULT_QUIET_INTERVAL,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.quiet_interval = quiet_interval
        self._on_expire = on_expire
        self._loop = loop
        self._timers: Dict[int, asyncio.TimerHandle] = {}

    def arm(self, zone_id: int) -> None:
        self.cancel(zone_id)
        loop = self._loop or asyncio.get_running_loop()
        _LOGGER.debug(
            "Clearing motion on zone %d in %.1f seconds", zone_id, self.quiet_interval
        )
        self._timers[zone_id] = loop.call_later(
            self.quiet_interval, self._expire, zone_id
        )

    def cancel(self, zone_id: int) -> None:
        handle = self._timers.pop(zone_id, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for zone_id in list(self._timers):
            self.cancel(zone_id)

    def pending(self, zone_id: int) -> bool:
        return zone_id in self._timers

    def _expire(self, zone_id: int) -> None:
        self._timers.pop(zone_id, None)
        _LOGGER.debug("No motion on zone %d for %.1f seconds", zone_id, self.quiet_interval)
        self._on_expire(zone_id)
