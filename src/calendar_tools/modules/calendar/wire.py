"""Google Calendar v3 event resource <-> model mapping."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from calendar_tools.modules.calendar.models import (
    AttendeeInfo,
    AttendeeResponseStatus,
    CalendarEvent,
    EventStatus,
    EventTime,
    EventTransparency,
    EventVisibility,
)
from calendar_tools.modules.calendar.timeutil import google_rfc3339, parse_iso_datetime

# Simple one-to-one fields: model attribute -> Google resource key.
_PASSTHROUGH_FIELDS: tuple[tuple[str, str], ...] = (
    ("description", "description"),
    ("location", "location"),
    ("color_id", "colorId"),
    ("reminders", "reminders"),
    ("conference_data", "conferenceData"),
    ("extended_properties", "extendedProperties"),
    ("attachments", "attachments"),
    ("guests_can_invite_others", "guestsCanInviteOthers"),
    ("guests_can_modify", "guestsCanModify"),
    ("guests_can_see_other_guests", "guestsCanSeeOtherGuests"),
    ("anyone_can_add_self", "anyoneCanAddSelf"),
)


def _normalize_optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized or None


def _parse_enum(enum_type: type, value: Any) -> Any:
    if not isinstance(value, str):
        return None
    try:
        return enum_type(value.strip())
    except ValueError:
        return None


def _parse_rfc3339_optional(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        return None


def boundary_to_google(value: date | datetime, time_zone: str | None) -> dict[str, Any]:
    """Render one start/end boundary.

    Dates become ``{"date": ...}`` and never carry a timezone; date-times carry
    ``timeZone`` when one is known.
    """
    if not isinstance(value, datetime):
        return {"date": value.isoformat()}
    if time_zone:
        return {"dateTime": value.isoformat(), "timeZone": time_zone}
    return {"dateTime": google_rfc3339(value)}


def event_time_to_google(value: EventTime) -> dict[str, Any]:
    if value.date_value is not None:
        return {"date": value.date_value.isoformat()}
    assert value.date_time_value is not None
    return boundary_to_google(value.date_time_value, value.time_zone)


def parse_google_boundary(payload: Any) -> EventTime:
    if not isinstance(payload, dict):
        raise ValueError("Google Calendar event boundary must be an object")

    time_zone = _normalize_optional_text(payload.get("timeZone"))
    date_time = payload.get("dateTime")
    if isinstance(date_time, str) and date_time.strip():
        return EventTime(date_time_value=parse_iso_datetime(date_time), time_zone=time_zone)

    date_raw = payload.get("date")
    if isinstance(date_raw, str) and date_raw.strip():
        try:
            parsed_date = date.fromisoformat(date_raw.strip())
        except ValueError as exc:
            raise ValueError(f"Google Calendar returned an invalid date value: {date_raw}") from exc
        return EventTime(date_value=parsed_date, time_zone=time_zone)

    raise ValueError("Google Calendar event is missing start/end dateTime or date values")


def attendees_to_google(attendees: list[AttendeeInfo]) -> list[dict[str, Any]]:
    """Only writable attendee fields are sent; response status stays server-owned."""
    result: list[dict[str, Any]] = []
    for attendee in attendees:
        entry: dict[str, Any] = {"email": attendee.email}
        if attendee.display_name is not None:
            entry["displayName"] = attendee.display_name
        if attendee.optional:
            entry["optional"] = True
        result.append(entry)
    return result


def parse_google_attendees(payload: Any) -> list[AttendeeInfo]:
    if not isinstance(payload, list):
        return []

    attendees: list[AttendeeInfo] = []
    for entry in payload:
        if isinstance(entry, str):
            if entry.strip():
                attendees.append(AttendeeInfo(email=entry.strip()))
            continue
        if not isinstance(entry, dict):
            continue
        email = _normalize_optional_text(entry.get("email"))
        if email is None:
            continue
        attendees.append(
            AttendeeInfo(
                email=email,
                display_name=_normalize_optional_text(entry.get("displayName")),
                response_status=(
                    _parse_enum(AttendeeResponseStatus, entry.get("responseStatus"))
                    or AttendeeResponseStatus.needs_action
                ),
                optional=entry.get("optional") is True,
                organizer=entry.get("organizer") is True,
                self_=entry.get("self") is True,
                comment=_normalize_optional_text(entry.get("comment")),
            )
        )
    return attendees


def google_to_event(payload: dict[str, Any]) -> CalendarEvent:
    """Parse a Google event resource.

    Cancelled events are returned with ``status=cancelled``; filtering them is
    the caller's decision.
    """
    event_id = _normalize_optional_text(payload.get("id"))
    if event_id is None:
        raise ValueError("Google Calendar event payload is missing a non-empty id")

    recurrence_raw = payload.get("recurrence")
    recurrence = (
        [entry.strip() for entry in recurrence_raw if isinstance(entry, str) and entry.strip()]
        if isinstance(recurrence_raw, list)
        else []
    )

    organizer_payload = payload.get("organizer")
    organizer = (
        _normalize_optional_text(organizer_payload.get("email"))
        if isinstance(organizer_payload, dict)
        else None
    )

    fields: dict[str, Any] = {}
    for attribute, key in _PASSTHROUGH_FIELDS:
        value = payload.get(key)
        if value is not None:
            fields[attribute] = value

    return CalendarEvent(
        event_id=event_id,
        title=_normalize_optional_text(payload.get("summary")) or "(untitled)",
        start=parse_google_boundary(payload.get("start")),
        end=parse_google_boundary(payload.get("end")),
        attendees=parse_google_attendees(payload.get("attendees")),
        recurrence=recurrence,
        transparency=_parse_enum(EventTransparency, payload.get("transparency")),
        visibility=_parse_enum(EventVisibility, payload.get("visibility")),
        status=_parse_enum(EventStatus, payload.get("status")),
        organizer=organizer,
        recurring_event_id=_normalize_optional_text(payload.get("recurringEventId")),
        etag=_normalize_optional_text(payload.get("etag")),
        ical_uid=_normalize_optional_text(payload.get("iCalUID")),
        html_link=_normalize_optional_text(payload.get("htmlLink")),
        hangout_link=_normalize_optional_text(payload.get("hangoutLink")),
        created_at=_parse_rfc3339_optional(payload.get("created")),
        updated_at=_parse_rfc3339_optional(payload.get("updated")),
        **fields,
    )


def event_to_google(event: CalendarEvent) -> dict[str, Any]:
    """Translate an event into a Google resource body, omitting unset fields.

    Server identity fields are emitted when present on the model; callers that
    insert a copy of an existing event strip them first.
    """
    body: dict[str, Any] = {
        "summary": event.title,
        "start": event_time_to_google(event.start),
        "end": event_time_to_google(event.end),
    }
    if event.event_id is not None:
        body["id"] = event.event_id
    for attribute, key in _PASSTHROUGH_FIELDS:
        value = getattr(event, attribute)
        if value is not None:
            body[key] = value
    if event.attendees:
        body["attendees"] = attendees_to_google(event.attendees)
    if event.recurrence:
        body["recurrence"] = list(event.recurrence)
    if event.transparency is not None:
        body["transparency"] = event.transparency.value
    if event.visibility is not None:
        body["visibility"] = event.visibility.value
    if event.status is not None:
        body["status"] = event.status.value

    if event.recurring_event_id is not None:
        body["recurringEventId"] = event.recurring_event_id
    if event.etag is not None:
        body["etag"] = event.etag
    if event.ical_uid is not None:
        body["iCalUID"] = event.ical_uid
    if event.html_link is not None:
        body["htmlLink"] = event.html_link
    if event.hangout_link is not None:
        body["hangoutLink"] = event.hangout_link
    if event.created_at is not None:
        body["created"] = google_rfc3339(event.created_at)
    if event.updated_at is not None:
        body["updated"] = google_rfc3339(event.updated_at)
    return body
