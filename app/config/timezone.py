"""
Timezone utilities.

All timestamps are stored as naive UTC; the configured zone (APP_TIMEZONE)
is only used when rendering times for people (alert emails, scheduler logs).
"""
from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(dt_timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware datetimes are converted; naive ones are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(dt_timezone.utc).replace(tzinfo=None)


class TimezoneConverter:
    """Renders stored UTC timestamps in the configured timezone"""

    def __init__(self, timezone: str = "UTC"):
        """
        Args:
            timezone: IANA timezone name (default: UTC)
        """
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)

    def utc_to_local(self, utc_dt: datetime) -> datetime:
        """Convert a UTC datetime (naive or aware) to the local timezone"""
        if utc_dt.tzinfo is None:
            # Naive datetimes are stored UTC
            utc_dt = utc_dt.replace(tzinfo=ZoneInfo("UTC"))

        return utc_dt.astimezone(self.tz)

    def format_local(self, utc_dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S %Z") -> str:
        """Format a UTC datetime as a local timezone string"""
        local_dt = self.utc_to_local(utc_dt)
        return local_dt.strftime(fmt)


# Global timezone converter instance
_tz_converter: TimezoneConverter | None = None


def get_timezone_converter(timezone: str = "UTC") -> TimezoneConverter:
    """Get or create global timezone converter instance"""
    global _tz_converter
    if _tz_converter is None or _tz_converter.timezone != timezone:
        _tz_converter = TimezoneConverter(timezone)
    return _tz_converter
