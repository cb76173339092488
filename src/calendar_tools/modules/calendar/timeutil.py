"""Time and window helpers shared by conflict detection and recurrence handling."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "UTC"
COMPACT_UTC_FORMAT = "%Y%m%dT%H%M%SZ"


def coerce_zoneinfo(timezone: str | None) -> ZoneInfo | tzinfo:
    if not timezone:
        return UTC
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC


def ensure_valid_timezone(value: str) -> None:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"timezone must be a valid IANA timezone: {value}") from exc


def has_offset(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 datetime, keeping it naive when no offset is present."""
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"invalid ISO-8601 datetime: {value}") from exc


def to_instant(value: datetime | str, fallback_timezone: str | None = None) -> datetime:
    """Return an absolute instant for ``value``.

    Values that already carry a UTC/offset marker are returned unchanged.
    Naive values are interpreted as civil time in ``fallback_timezone`` (UTC
    when omitted or unknown); ``zoneinfo`` resolves the daylight-saving offset
    that applies on that date.
    """
    parsed = parse_iso_datetime(value) if isinstance(value, str) else value
    if has_offset(parsed):
        return parsed
    return parsed.replace(tzinfo=coerce_zoneinfo(fallback_timezone))


def date_to_instant(value: date, timezone: str | None = None) -> datetime:
    """Midnight at the start of ``value`` in ``timezone``."""
    return datetime(value.year, value.month, value.day, tzinfo=coerce_zoneinfo(timezone))


def overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> timedelta:
    """Overlap of two half-open intervals; back-to-back intervals yield zero."""
    duration = min(a_end, b_end) - max(a_start, b_start)
    return max(duration, timedelta(0))


def compact_utc_timestamp(instant: datetime) -> str:
    """Render ``instant`` as ``YYYYMMDDTHHMMSSZ`` in UTC (naive values are taken as UTC)."""
    normalized = instant if has_offset(instant) else instant.replace(tzinfo=UTC)
    return normalized.astimezone(UTC).strftime(COMPACT_UTC_FORMAT)


def google_rfc3339(value: datetime) -> str:
    normalized = value if has_offset(value) else value.replace(tzinfo=UTC)
    return normalized.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def format_duration(delta: timedelta) -> str:
    """Human-readable duration such as ``30 minutes`` or ``1 day 2 hours``."""
    minutes = int(delta.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        remaining_hours = hours % 24
        if remaining_hours > 0:
            return f"{_plural(days, 'day')} {_plural(remaining_hours, 'hour')}"
        return _plural(days, "day")

    if hours > 0:
        remaining_minutes = minutes % 60
        if remaining_minutes > 0:
            return f"{_plural(hours, 'hour')} {_plural(remaining_minutes, 'minute')}"
        return _plural(hours, "hour")

    return _plural(minutes, "minute")
