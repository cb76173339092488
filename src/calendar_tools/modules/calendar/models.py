"""Data model for calendar events, sparse changes, scopes and conflict results."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from calendar_tools.modules.calendar.timeutil import (
    date_to_instant,
    ensure_valid_timezone,
    parse_iso_datetime,
    to_instant,
)

DEFAULT_DUPLICATE_THRESHOLD = 0.7
DUPLICATE_BLOCKING_THRESHOLD = 0.95

_CIVIL_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_boundary(value: Any) -> Any:
    """Pick ``date`` or ``datetime`` for a string boundary by its shape.

    ``YYYY-MM-DD`` is an all-day date; anything else must be an ISO-8601
    date-time. Non-string values pass through for the type check.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _CIVIL_DATE_RE.fullmatch(text):
        return date.fromisoformat(text)
    return parse_iso_datetime(text)


# A start/end value from a caller: civil date (all-day) or date-time.
EventBoundary = Annotated[date | datetime, BeforeValidator(parse_boundary)]


class EventStatus(StrEnum):
    confirmed = "confirmed"
    tentative = "tentative"
    cancelled = "cancelled"


class EventVisibility(StrEnum):
    default = "default"
    public = "public"
    private = "private"
    confidential = "confidential"


class EventTransparency(StrEnum):
    """Whether the event blocks time on the calendar."""

    opaque = "opaque"
    transparent = "transparent"


class AttendeeResponseStatus(StrEnum):
    """RSVP response status for a calendar event attendee."""

    needs_action = "needsAction"
    accepted = "accepted"
    declined = "declined"
    tentative = "tentative"


class SendUpdatesPolicy(StrEnum):
    """Controls whether attendees receive notifications for event changes."""

    all = "all"
    external_only = "externalOnly"
    none = "none"


class ModificationScope(StrEnum):
    """Which part of a recurring series an update applies to."""

    all = "all"
    this_instance_only = "thisEventOnly"
    this_and_following = "thisAndFollowing"


class AttendeeInfo(BaseModel):
    """Structured attendee representation with RSVP tracking."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    email: str
    display_name: str | None = None
    response_status: AttendeeResponseStatus = AttendeeResponseStatus.needs_action
    optional: bool = False
    organizer: bool = False
    self_: bool = Field(default=False, alias="self")
    comment: str | None = None


class EventTime(BaseModel):
    """Either a civil date (all-day) or a date-time with an optional IANA timezone."""

    model_config = ConfigDict(extra="forbid")

    date_value: date | None = None
    date_time_value: datetime | None = None
    time_zone: str | None = None

    @model_validator(mode="after")
    def _validate_shape(self) -> EventTime:
        has_date = self.date_value is not None
        has_date_time = self.date_time_value is not None
        if has_date == has_date_time:
            raise ValueError("exactly one of date_value or date_time_value must be provided")
        return self

    @property
    def is_all_day(self) -> bool:
        return self.date_value is not None

    def to_instant(self, fallback_timezone: str | None = None) -> datetime:
        timezone = self.time_zone or fallback_timezone
        if self.date_value is not None:
            return date_to_instant(self.date_value, timezone)
        assert self.date_time_value is not None
        return to_instant(self.date_time_value, timezone)

    @classmethod
    def from_value(cls, value: date | datetime, time_zone: str | None = None) -> EventTime:
        if isinstance(value, datetime):
            return cls(date_time_value=value, time_zone=time_zone)
        return cls(date_value=value)


class CalendarEvent(BaseModel):
    """Canonical event shape used by the detector, resolver and store."""

    event_id: str | None = None
    title: str = "(untitled)"
    start: EventTime
    end: EventTime
    description: str | None = None
    location: str | None = None
    attendees: list[AttendeeInfo] = Field(default_factory=list)
    recurrence: list[str] = Field(default_factory=list)
    color_id: str | None = None
    reminders: dict[str, Any] | None = None
    conference_data: dict[str, Any] | None = None
    extended_properties: dict[str, Any] | None = None
    attachments: list[dict[str, Any]] | None = None
    transparency: EventTransparency | None = None
    visibility: EventVisibility | None = None
    guests_can_invite_others: bool | None = None
    guests_can_modify: bool | None = None
    guests_can_see_other_guests: bool | None = None
    anyone_can_add_self: bool | None = None
    status: EventStatus | None = None
    organizer: str | None = None
    # Server-assigned identity fields.
    recurring_event_id: str | None = None
    etag: str | None = None
    ical_uid: str | None = None
    html_link: str | None = None
    hangout_link: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _validate_boundary_kinds(self) -> CalendarEvent:
        if self.start.is_all_day != self.end.is_all_day:
            raise ValueError(
                "start and end must both be all-day dates or both timed values "
                "(mixed all-day/timed boundaries are not allowed)"
            )
        return self

    @property
    def is_all_day(self) -> bool:
        return self.start.is_all_day

    @property
    def is_recurring(self) -> bool:
        return len(self.recurrence) > 0

    def interval(self, fallback_timezone: str | None = None) -> tuple[datetime, datetime]:
        """Absolute (start, end) instants of the event."""
        return (
            self.start.to_instant(fallback_timezone),
            self.end.to_instant(fallback_timezone),
        )


class EventChanges(BaseModel):
    """Sparse set of requested field changes.

    A field is "provided" when it was explicitly passed with a non-null value;
    pydantic's ``model_fields_set`` records presence, so an empty list (for
    example ``attachments=[]``) is a deliberate "clear" rather than an omission.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    location: str | None = None
    start: EventBoundary | None = None
    end: EventBoundary | None = None
    time_zone: str | None = None
    attendees: list[AttendeeInfo] | None = None
    reminders: dict[str, Any] | None = None
    recurrence: list[str] | None = None
    conference_data: dict[str, Any] | None = None
    color_id: str | None = None
    transparency: EventTransparency | None = None
    visibility: EventVisibility | None = None
    guests_can_invite_others: bool | None = None
    guests_can_modify: bool | None = None
    guests_can_see_other_guests: bool | None = None
    anyone_can_add_self: bool | None = None
    extended_properties: dict[str, Any] | None = None
    attachments: list[dict[str, Any]] | None = None

    @field_validator("time_zone")
    @classmethod
    def _normalize_time_zone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        ensure_valid_timezone(normalized)
        return normalized

    @field_validator("attendees", mode="before")
    @classmethod
    def _coerce_attendee_emails(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [{"email": entry.strip()} if isinstance(entry, str) else entry for entry in value]

    @model_validator(mode="after")
    def _validate_boundary_types_consistent(self) -> EventChanges:
        if self.start is not None and self.end is not None:
            if isinstance(self.start, datetime) != isinstance(self.end, datetime):
                raise ValueError(
                    "start and end must be the same type: both date or both datetime"
                )
        return self

    def provided(self) -> dict[str, Any]:
        """Return the explicitly provided, non-null fields."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name in self.model_fields_set and getattr(self, name) is not None
        }

    def is_provided(self, name: str) -> bool:
        return name in self.model_fields_set and getattr(self, name) is not None

    @property
    def changes_time(self) -> bool:
        return self.is_provided("start") or self.is_provided("end")


@dataclass(frozen=True)
class AllInstances:
    """Apply the update to the master event (every instance)."""


@dataclass(frozen=True)
class ThisInstanceOnly:
    """Apply the update to the single instance that originally started at ``original_start``."""

    original_start: datetime


@dataclass(frozen=True)
class ThisAndFollowing:
    """Split the series at ``split_at`` and apply the update to the new future series."""

    split_at: datetime


ScopeSelection = AllInstances | ThisInstanceOnly | ThisAndFollowing


@dataclass(frozen=True)
class ModificationRequest:
    calendar_id: str
    event_id: str
    scope: ScopeSelection
    changes: EventChanges


@dataclass(frozen=True)
class WriteFlags:
    """Side-channel request parameters the store needs to honour some fields."""

    conference_data_version: int | None = None
    supports_attachments: bool | None = None

    @classmethod
    def for_body(cls, body: dict[str, Any]) -> WriteFlags:
        return cls(
            conference_data_version=1 if "conferenceData" in body else None,
            supports_attachments=True if "attachments" in body else None,
        )


@dataclass
class SparsePatch:
    body: dict[str, Any] = field(default_factory=dict)
    flags: WriteFlags = field(default_factory=WriteFlags)


class ConflictDetectionOptions(BaseModel):
    """Per-call settings for duplicate and conflict detection."""

    model_config = ConfigDict(extra="forbid")

    check_duplicates: bool = True
    check_conflicts: bool = True
    calendars_to_check: list[str] = Field(default_factory=list)
    duplicate_similarity_threshold: float = Field(
        default=DEFAULT_DUPLICATE_THRESHOLD, ge=0.0, le=1.0
    )
    blocking_threshold: float = Field(default=DUPLICATE_BLOCKING_THRESHOLD, ge=0.0, le=1.0)


class SimilarityMatch(BaseModel):
    """An existing event judged to be a duplicate of the candidate."""

    event_id: str | None
    calendar_id: str
    title: str
    url: str | None = None
    similarity: float
    suggestion: str
    event: CalendarEvent


class OverlapDetails(BaseModel):
    duration: str
    minutes: int
    percentage: int
    start: datetime
    end: datetime


class OverlapMatch(BaseModel):
    """An existing event that overlaps the candidate but is a different occurrence."""

    event_id: str | None
    calendar_id: str
    title: str
    url: str | None = None
    overlap: OverlapDetails
    event: CalendarEvent


class ConflictCheckResult(BaseModel):
    has_conflicts: bool = False
    duplicates: list[SimilarityMatch] = Field(default_factory=list)
    conflicts: list[OverlapMatch] = Field(default_factory=list)


@dataclass
class CreationDecision:
    """Outcome of applying the duplicate policy to a conflict check result."""

    blocked: bool
    blocking_duplicate: SimilarityMatch | None = None
    warning_duplicates: list[SimilarityMatch] = field(default_factory=list)
    conflicts: list[OverlapMatch] = field(default_factory=list)


class BusyWindow(BaseModel):
    start: datetime
    end: datetime
