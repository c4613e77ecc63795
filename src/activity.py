"""
Activity gates for the analysis scheduler.

A gate is any zero-argument callable returning True while analysis should run.
This module provides:
- ActivitySwitch: operator-controlled on/off flag
- DaylightGate: active between sunrise and sunset at the configured location
- combine_gates: all-of composition
"""

import logging
import threading
import zoneinfo
from datetime import date, datetime, timezone, time as dt_time
from typing import Callable, Optional

from astral import LocationInfo
from astral.sun import sun

from config import Config

logger = logging.getLogger(__name__)


class ActivitySwitch:
    """Thread-safe 'system active' flag set by an operator or control surface."""

    def __init__(self, active: bool = True):
        self._active = threading.Event()
        if active:
            self._active.set()

    def is_active(self) -> bool:
        return self._active.is_set()

    def set_active(self, active: bool) -> None:
        if active:
            self._active.set()
        else:
            self._active.clear()
        logger.info(f"System {'activated' if active else 'deactivated'}")

    def toggle(self) -> bool:
        """Flip the flag and return the new value."""
        self.set_active(not self.is_active())
        return self.is_active()

    __call__ = is_active


class DaylightGate:
    """Active only between sunrise and sunset at the configured location."""

    def __init__(self, config: Config, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._local_tz = zoneinfo.ZoneInfo(config.location.timezone)
        self.location = LocationInfo(
            name="Location",
            region=config.location.timezone,
            timezone=config.location.timezone,
            latitude=config.location.latitude,
            longitude=config.location.longitude
        )
        self._last_check_date = None
        self._sunrise = None
        self._sunset = None
        logger.info(f"DaylightGate initialized for location: "
                    f"{config.location.latitude:.4f}, {config.location.longitude:.4f} "
                    f"(timezone: {config.location.timezone})")

    def _update_sun_times(self, today: date) -> None:
        """Update sunrise/sunset times for today (handles DST automatically)."""
        if self._last_check_date == today:
            return
        try:
            # today is a local date, so the sun day must be the local day too
            s = sun(self.location.observer, date=today, tzinfo=self._local_tz)
            self._sunrise = s['sunrise']
            self._sunset = s['sunset']
            sunrise_local = self._sunrise.astimezone(self._local_tz)
            sunset_local = self._sunset.astimezone(self._local_tz)
            logger.info(f"Sun times updated - Sunrise: {sunrise_local.strftime('%H:%M')}, "
                        f"Sunset: {sunset_local.strftime('%H:%M')} (local time)")
        except ValueError as e:
            # Polar day/night: astral cannot compute a sunrise or sunset
            logger.error(f"Error calculating sun times: {e}")
            self._sunrise = datetime.combine(today, dt_time(6, 0), tzinfo=self._local_tz)
            self._sunset = datetime.combine(today, dt_time(20, 0), tzinfo=self._local_tz)
        self._last_check_date = today

    def is_daytime(self) -> bool:
        now = self._clock()
        self._update_sun_times(now.astimezone(self._local_tz).date())
        return self._sunrise <= now <= self._sunset

    def get_sun_info(self) -> dict:
        """Get sunrise/sunset information in local time (DST-aware)."""
        is_daytime = self.is_daytime()
        return {
            'sunrise': self._sunrise.astimezone(self._local_tz).strftime('%H:%M'),
            'sunset': self._sunset.astimezone(self._local_tz).strftime('%H:%M'),
            'is_daytime': is_daytime,
        }

    __call__ = is_daytime


def combine_gates(*gates: Callable[[], bool]) -> Callable[[], bool]:
    """Gate that is open only when every given gate is open."""
    def combined() -> bool:
        return all(gate() for gate in gates)
    return combined
