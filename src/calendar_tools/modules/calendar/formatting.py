"""Plain-text rendering of events and conflict warnings for tool responses."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta

from calendar_tools.modules.calendar.models import (
    AttendeeInfo,
    AttendeeResponseStatus,
    CalendarEvent,
    ConflictCheckResult,
    EventTime,
    OverlapMatch,
    SimilarityMatch,
)
from calendar_tools.modules.calendar.similarity import event_url
from calendar_tools.modules.calendar.timeutil import coerce_zoneinfo, has_offset, to_instant

_RESPONSE_STATUS_LABELS = {
    AttendeeResponseStatus.accepted: "accepted",
    AttendeeResponseStatus.declined: "declined",
    AttendeeResponseStatus.tentative: "tentative",
    AttendeeResponseStatus.needs_action: "pending",
}


def format_date(value: date) -> str:
    return f"{value:%a, %b} {value.day}, {value.year}"


def format_datetime(value: datetime, time_zone: str | None = None) -> str:
    """Render ``value`` in ``time_zone``; naive values are civil time in that zone."""
    if not has_offset(value):
        value = to_instant(value, time_zone)
    localized = value.astimezone(coerce_zoneinfo(time_zone)) if time_zone else value
    hour = localized.hour % 12 or 12
    rendered = f"{format_date(localized)}, {hour}:{localized:%M %p}"
    zone_name = localized.tzname()
    return f"{rendered} {zone_name}" if zone_name else rendered


def format_event_time(value: EventTime) -> str:
    if value.date_value is not None:
        return format_date(value.date_value)
    assert value.date_time_value is not None
    return format_datetime(value.date_time_value, value.time_zone)


def format_attendees(attendees: list[AttendeeInfo]) -> str:
    return ", ".join(
        f"{attendee.display_name or attendee.email} "
        f"({_RESPONSE_STATUS_LABELS.get(attendee.response_status, 'unknown')})"
        for attendee in attendees
    )


def _time_lines(event: CalendarEvent) -> list[str]:
    if not event.is_all_day:
        return [f"Start: {format_event_time(event.start)}", f"End: {format_event_time(event.end)}"]

    start_date = event.start.date_value
    end_date = event.end.date_value
    assert start_date is not None and end_date is not None
    # All-day end dates are exclusive.
    last_day = end_date - timedelta(days=1)
    if last_day <= start_date:
        return [f"Date: {format_date(start_date)}"]
    return [f"Start Date: {format_date(start_date)}", f"End Date: {format_date(last_day)}"]


def format_event(event: CalendarEvent, calendar_id: str | None = None) -> str:
    lines = [f"Event: {event.title}" if event.title else "Untitled Event"]
    if event.event_id:
        lines.append(f"Event ID: {event.event_id}")
    if event.description:
        lines.append(f"Description: {event.description}")
    lines.extend(_time_lines(event))
    if event.location:
        lines.append(f"Location: {event.location}")
    if event.color_id:
        lines.append(f"Color ID: {event.color_id}")
    if event.attendees:
        lines.append(f"Guests: {format_attendees(event.attendees)}")
    url = event_url(event, calendar_id) if calendar_id else event.html_link
    if url:
        lines.append(f"View: {url}")
    return "\n".join(lines)


def _format_duplicate(match: SimilarityMatch) -> list[str]:
    return [
        f"--- Duplicate Event ({round(match.similarity * 100)}% similar) ---",
        match.suggestion,
        "",
        "Existing event details:",
        format_event(match.event, match.calendar_id),
    ]


def _format_conflict(match: OverlapMatch) -> list[str]:
    return [
        "--- Conflicting Event ---",
        f"Overlap: {match.overlap.duration} ({match.overlap.percentage}% of your event)",
        "",
        "Conflicting event details:",
        format_event(match.event, match.calendar_id),
    ]


def format_conflict_warnings(result: ConflictCheckResult) -> str:
    if not result.has_conflicts:
        return ""

    sections: list[str] = []
    if result.duplicates:
        sections.append("POTENTIAL DUPLICATES DETECTED:")
        for duplicate in result.duplicates:
            sections.append("\n".join(_format_duplicate(duplicate)))

    if result.conflicts:
        sections.append("SCHEDULING CONFLICTS DETECTED:")
        by_calendar: dict[str, list[OverlapMatch]] = defaultdict(list)
        for conflict in result.conflicts:
            by_calendar[conflict.calendar_id].append(conflict)
        for calendar_id, conflicts in by_calendar.items():
            sections.append(f"Calendar: {calendar_id}")
            for conflict in conflicts:
                sections.append("\n".join(_format_conflict(conflict)))
    return "\n\n".join(sections)


def format_blocked_duplicate(match: SimilarityMatch) -> str:
    details = "\n".join(_format_duplicate(match))
    return (
        f"DUPLICATE EVENT DETECTED ({round(match.similarity * 100)}% similar)!\n\n"
        f"{details}\n\n"
        "This event appears to be a duplicate. To create anyway, set allow_duplicates to true."
    )


def format_event_response(
    event: CalendarEvent,
    calendar_id: str,
    result: ConflictCheckResult | None = None,
    action: str = "created",
) -> str:
    has_warnings = result is not None and result.has_conflicts
    headline = f"Event {action} with warnings!" if has_warnings else f"Event {action} successfully!"
    text = f"{headline}\n\n{format_event(event, calendar_id)}"
    if has_warnings:
        assert result is not None
        text = f"{text}\n\n{format_conflict_warnings(result)}"
    return text
