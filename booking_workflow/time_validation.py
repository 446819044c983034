"""Date/time rules for the booking picker.

The picker yields wall-clock values ("2025-01-15T10:30") in the booking
timezone. The scheduling service works in UTC with the canonical format
"YYYY-MM-DD HH:MM:SS", and only accepts start times inside the business
window configured in config.BOOKING_HOURS_UTC.

Accepted inputs:
- "YYYY-MM-DDTHH:MM" / "YYYY-MM-DDTHH:MM:SS": local wall-clock time
- ISO strings with an offset or "Z": converted from that offset
- "YYYY-MM-DD HH:MM:SS": already canonical UTC, returned unchanged

Other space-separated values without an offset are rejected, as are
wall-clock times that a DST change skips or repeats in a named zone.
"""
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional, Union

import pytz

from booking_workflow import config


def resolve_timezone(name: Optional[str] = None) -> Optional[tzinfo]:
    """
    Resolve an IANA zone name.

    Returns:
        pytz zone, or None for the host's local zone when name is empty

    Raises:
        pytz.UnknownTimeZoneError: If the name is not a known zone
    """
    if name is None:
        name = config.BOOKING_TIMEZONE
    if not name:
        return None
    return pytz.timezone(name)


class TimeValidator:
    """Picker bounds, business-hours check and UTC canonicalization."""

    def __init__(
        self,
        tz: Union[str, tzinfo, None] = None,
        clock: Optional[Callable[[], datetime]] = None,
        start_hour: int = config.BOOKING_HOURS_UTC["start_hour"],
        end_hour: int = config.BOOKING_HOURS_UTC["end_hour"],
    ):
        """
        Args:
            tz: Zone of the picker values (name, tzinfo, or None for config/host local)
            clock: Returns the current aware datetime (defaults to UTC now)
            start_hour: First bookable UTC hour (inclusive)
            end_hour: Last bookable UTC hour (exclusive)
        """
        if isinstance(tz, str) or tz is None:
            tz = resolve_timezone(tz)
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.start_hour = start_hour
        self.end_hour = end_hour

    def minimum_allowed(self) -> str:
        """Earliest selectable picker value: local now, to the minute."""
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(self.tz) if self.tz is not None else now.astimezone()
        return local.replace(second=0, microsecond=0).strftime(config.PICKER_DATETIME_FORMAT)

    def validate(self, local_date_time: str) -> str:
        """
        Check the business-hours window.

        Returns:
            Error text, or "" when the value is empty or acceptable
        """
        if not local_date_time or not local_date_time.strip():
            return ""

        try:
            utc = self.to_utc(local_date_time)
        except ValueError:
            return config.MESSAGES["invalid_datetime"]

        if utc.hour < self.start_hour or utc.hour >= self.end_hour:
            return config.MESSAGES["outside_hours"]
        return ""

    def to_canonical_utc_string(self, local_date_time: str) -> str:
        """
        Convert a picker value to the wire timestamp.

        Raises:
            ValueError: If the value cannot be parsed
        """
        return self.to_utc(local_date_time).strftime(config.CANONICAL_DATETIME_FORMAT)

    def to_utc(self, value: str) -> datetime:
        """Parse a picker, ISO or canonical value into an aware UTC datetime."""
        text = value.strip()

        try:
            parsed = datetime.strptime(text, config.CANONICAL_DATETIME_FORMAT)
        except ValueError:
            pass
        else:
            return parsed.replace(tzinfo=timezone.utc)

        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Unrecognized date/time: {value!r}")

        if parsed.tzinfo is None:
            if "T" not in text.upper():
                # Space-separated wall-clock values must be canonical
                raise ValueError(f"Unrecognized date/time: {value!r}")
            parsed = self._localize(parsed)
        return parsed.astimezone(timezone.utc)

    def _localize(self, naive: datetime) -> datetime:
        if self.tz is None:
            return naive.astimezone()
        if hasattr(self.tz, "localize"):
            try:
                return self.tz.localize(naive, is_dst=None)
            except pytz.exceptions.InvalidTimeError as e:
                raise ValueError(f"{naive.isoformat()} is not a valid time in {self.tz.zone}: {e}")
        return naive.replace(tzinfo=self.tz)
