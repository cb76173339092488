"""Calendar module: MCP tools over the conflict detector and the recurrence resolver."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from calendar_tools.modules.base import Module
from calendar_tools.modules.calendar.conflicts import (
    ConflictDetectionService,
    evaluate_creation,
)
from calendar_tools.modules.calendar.errors import (
    CalendarError,
    CalendarNotFoundError,
    CalendarValidationError,
    SeriesSplitError,
)
from calendar_tools.modules.calendar.formatting import (
    format_blocked_duplicate,
    format_event_response,
)
from calendar_tools.modules.calendar.models import (
    DEFAULT_DUPLICATE_THRESHOLD,
    DUPLICATE_BLOCKING_THRESHOLD,
    AttendeeInfo,
    CalendarEvent,
    ConflictCheckResult,
    ConflictDetectionOptions,
    EventBoundary,
    EventChanges,
    EventTime,
    EventTransparency,
    EventVisibility,
    ModificationRequest,
    ModificationScope,
    OverlapMatch,
    SendUpdatesPolicy,
    SimilarityMatch,
    WriteFlags,
)
from calendar_tools.modules.calendar.recurrence import (
    RecurrenceScopeResolver,
    ensure_scope_applies,
    parse_modification_scope,
    resolve_scope,
)
from calendar_tools.modules.calendar.store import CalendarStore, GoogleCalendarStore
from calendar_tools.modules.calendar.timeutil import ensure_valid_timezone, to_instant
from calendar_tools.modules.calendar.wire import event_to_google

logger = logging.getLogger(__name__)


def _redact_credential_values(message: str) -> str:
    """Redact credential-looking values from an error message."""
    redacted = message
    # key=value style pairs
    redacted = re.sub(
        r"(?i)\b(refresh_token|access_token|bearer|token)\s*=\s*([^\s,;]+)",
        r"\1=[REDACTED]",
        redacted,
    )
    # JSON/Python dict style quoted values
    redacted = re.sub(
        r"""(?i)(['"]?(?:refresh_token|access_token|token)['"]?\s*:\s*)(['"]).*?\2""",
        r'\1"[REDACTED]"',
        redacted,
    )
    # Authorization header values
    redacted = re.sub(r"(?i)\b(Bearer)\s+[A-Za-z0-9._~+/=-]+", r"\1 [REDACTED]", redacted)
    return redacted


def _build_structured_error(exc: Exception, *, calendar_id: str) -> dict[str, Any]:
    """Build a tool error payload with a sanitized, truncated message."""
    sanitized = " ".join(_redact_credential_values(str(exc)).split())[:200]
    return {
        "status": "error",
        "error": sanitized,
        "error_type": type(exc).__name__,
        "calendar_id": calendar_id,
    }


class CalendarConflictDefaults(BaseModel):
    """Default duplicate/conflict detection behavior for calendar writes."""

    model_config = ConfigDict(extra="forbid")

    check_duplicates: bool = True
    check_conflicts: bool = True
    duplicate_similarity_threshold: float = Field(
        default=DEFAULT_DUPLICATE_THRESHOLD, ge=0.0, le=1.0
    )
    blocking_threshold: float = Field(default=DUPLICATE_BLOCKING_THRESHOLD, ge=0.0, le=1.0)
    calendars_to_check: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_threshold_order(self) -> CalendarConflictDefaults:
        if self.duplicate_similarity_threshold > self.blocking_threshold:
            raise ValueError(
                "duplicate_similarity_threshold must not exceed blocking_threshold"
            )
        return self

    def to_options(
        self,
        *,
        calendars_to_check: list[str] | None = None,
        duplicate_similarity_threshold: float | None = None,
        check_duplicates: bool | None = None,
    ) -> ConflictDetectionOptions:
        return ConflictDetectionOptions(
            check_duplicates=(
                self.check_duplicates if check_duplicates is None else check_duplicates
            ),
            check_conflicts=self.check_conflicts,
            calendars_to_check=list(calendars_to_check or self.calendars_to_check),
            duplicate_similarity_threshold=(
                self.duplicate_similarity_threshold
                if duplicate_similarity_threshold is None
                else duplicate_similarity_threshold
            ),
            blocking_threshold=self.blocking_threshold,
        )


class CalendarConfig(BaseModel):
    """Configuration for the Calendar module."""

    model_config = ConfigDict(extra="forbid")

    calendar_id: str = Field(default="primary", min_length=1)
    timezone: str | None = None
    access_token: str | None = None
    conflicts: CalendarConflictDefaults = Field(default_factory=CalendarConflictDefaults)

    @field_validator("calendar_id")
    @classmethod
    def _normalize_calendar_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("calendar_id must be a non-empty string")
        return normalized

    @field_validator("timezone")
    @classmethod
    def _normalize_timezone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip()
        ensure_valid_timezone(normalized)
        return normalized


class CalendarModule(Module):
    """Calendar tools backed by a ``CalendarStore``.

    A store may be injected (tests, alternative backends); otherwise
    ``on_startup`` builds a ``GoogleCalendarStore`` from the configured
    access token.
    """

    def __init__(self, store: CalendarStore | None = None) -> None:
        self._config: CalendarConfig | None = None
        self._store: CalendarStore | None = store
        self._owns_store = store is None

    @property
    def name(self) -> str:
        return "calendar"

    @property
    def config_schema(self) -> type[BaseModel]:
        return CalendarConfig

    @property
    def dependencies(self) -> list[str]:
        return []

    @staticmethod
    def _coerce_config(config: Any) -> CalendarConfig:
        return config if isinstance(config, CalendarConfig) else CalendarConfig(**(config or {}))

    async def on_startup(self, config: Any) -> None:
        self._config = self._coerce_config(config)
        if self._store is not None:
            return

        token = self._config.access_token
        if not token:
            raise RuntimeError(
                "CalendarModule: no access token configured; set [calendar].access_token "
                "(for example access_token = \"${GOOGLE_CALENDAR_ACCESS_TOKEN}\")"
            )

        async def _static_token() -> str:
            return token

        self._store = GoogleCalendarStore(_static_token)
        self._owns_store = True
        logger.info("Calendar store initialized (calendar_id=%s)", self._config.calendar_id)

    async def on_shutdown(self) -> None:
        if self._store is not None and self._owns_store:
            await self._store.shutdown()
            self._store = None

    def _require_store(self) -> CalendarStore:
        if self._store is None:
            raise RuntimeError("Calendar store is not initialized; call on_startup first")
        return self._store

    def _require_config(self) -> CalendarConfig:
        if self._config is None:
            raise RuntimeError("Calendar config is not initialized")
        return self._config

    def _resolve_calendar_id(self, override_calendar_id: str | None) -> str:
        if override_calendar_id is None:
            return self._require_config().calendar_id

        normalized = override_calendar_id.strip()
        if not normalized:
            raise ValueError("calendar_id must be a non-empty string when provided")
        return normalized

    async def _default_timezone(self, calendar_id: str) -> str:
        configured = self._require_config().timezone
        if configured is not None:
            return configured
        return await self._require_store().get_calendar_timezone(calendar_id)

    async def register_tools(self, mcp: Any, config: Any) -> None:
        self._config = self._coerce_config(config)
        module = self

        @mcp.tool()
        async def calendar_list_events(
            calendar_id: str | None = None,
            start_at: datetime | None = None,
            end_at: datetime | None = None,
            limit: int = 50,
        ) -> dict[str, Any]:
            """List calendar events (recurring series expanded into instances).

            Fail-open: returns an empty events list with error metadata on
            store failure rather than raising.
            """
            store = module._require_store()
            resolved_calendar_id = module._resolve_calendar_id(calendar_id)
            try:
                timezone = await module._default_timezone(resolved_calendar_id)
                events = await store.list_events(
                    calendar_id=resolved_calendar_id,
                    start_at=to_instant(start_at, timezone) if start_at is not None else None,
                    end_at=to_instant(end_at, timezone) if end_at is not None else None,
                    limit=limit,
                )
            except CalendarError as exc:
                logger.warning(
                    "calendar_list_events failed (calendar_id=%s): %s",
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                error_dict = _build_structured_error(exc, calendar_id=resolved_calendar_id)
                error_dict["events"] = []
                return error_dict
            return {
                "calendar_id": resolved_calendar_id,
                "events": [module._event_to_payload(event) for event in events],
            }

        @mcp.tool()
        async def calendar_get_event(
            event_id: str,
            calendar_id: str | None = None,
        ) -> dict[str, Any]:
            """Fetch a single event (or recurring instance) by id."""
            normalized_event_id = event_id.strip()
            if not normalized_event_id:
                raise ValueError("event_id must be a non-empty string")

            store = module._require_store()
            resolved_calendar_id = module._resolve_calendar_id(calendar_id)
            try:
                event = await store.get_event(
                    calendar_id=resolved_calendar_id,
                    event_id=normalized_event_id,
                )
            except CalendarNotFoundError:
                return module._not_found(resolved_calendar_id, normalized_event_id)
            except CalendarError as exc:
                logger.warning(
                    "calendar_get_event failed (event_id=%s, calendar_id=%s): %s",
                    normalized_event_id,
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)
            return {
                "calendar_id": resolved_calendar_id,
                "event": module._event_to_payload(event),
            }

        @mcp.tool()
        async def calendar_create_event(
            title: str,
            start_at: EventBoundary,
            end_at: EventBoundary,
            timezone: str | None = None,
            description: str | None = None,
            location: str | None = None,
            attendees: list[str] | None = None,
            recurrence: list[str] | None = None,
            color_id: str | None = None,
            reminders: dict[str, Any] | None = None,
            conference_data: dict[str, Any] | None = None,
            transparency: EventTransparency | None = None,
            visibility: EventVisibility | None = None,
            extended_properties: dict[str, Any] | None = None,
            attachments: list[dict[str, Any]] | None = None,
            calendar_id: str | None = None,
            allow_duplicates: bool = False,
            calendars_to_check: list[str] | None = None,
            duplicate_similarity_threshold: float | None = None,
            send_updates: SendUpdatesPolicy | None = None,
        ) -> dict[str, Any]:
            """Create an event after checking for duplicates and scheduling conflicts.

            A near-certain duplicate (similarity at or above the blocking
            threshold) refuses creation with ``status=duplicate_blocked`` unless
            ``allow_duplicates`` is true. Lesser duplicates and overlapping
            events are returned as warnings alongside the created event.
            """
            normalized_title = title.strip()
            if not normalized_title:
                raise ValueError("title must be a non-empty string")

            store = module._require_store()
            config = module._require_config()
            resolved_calendar_id = module._resolve_calendar_id(calendar_id)
            if timezone is not None:
                ensure_valid_timezone(timezone)

            try:
                effective_timezone = timezone or await module._default_timezone(
                    resolved_calendar_id
                )
            except CalendarError as exc:
                logger.warning(
                    "calendar_create_event failed resolving timezone (calendar_id=%s): %s",
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)

            candidate = CalendarEvent(
                title=normalized_title,
                start=EventTime.from_value(start_at, effective_timezone),
                end=EventTime.from_value(end_at, effective_timezone),
                description=description,
                location=location,
                attendees=[AttendeeInfo(email=email.strip()) for email in attendees or []],
                recurrence=list(recurrence or []),
                color_id=color_id,
                reminders=reminders,
                conference_data=conference_data,
                transparency=transparency,
                visibility=visibility,
                extended_properties=extended_properties,
                attachments=attachments,
            )
            window_start, window_end = candidate.interval(effective_timezone)
            if window_end <= window_start:
                raise ValueError("end_at must be after start_at")

            options = config.conflicts.to_options(
                calendars_to_check=calendars_to_check,
                duplicate_similarity_threshold=duplicate_similarity_threshold,
            )
            try:
                result = await module._detector().check_conflicts(
                    candidate,
                    resolved_calendar_id,
                    options,
                    fallback_timezone=effective_timezone,
                )
            except CalendarError as exc:
                logger.warning(
                    "calendar_create_event conflict check failed (calendar_id=%s): %s",
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)

            decision = evaluate_creation(result, options, allow_duplicates=allow_duplicates)
            if decision.blocked:
                assert decision.blocking_duplicate is not None
                logger.info(
                    "Refused to create '%s' in calendar '%s': duplicate of '%s' (%.2f)",
                    normalized_title,
                    resolved_calendar_id,
                    decision.blocking_duplicate.event_id,
                    decision.blocking_duplicate.similarity,
                )
                return {
                    "status": "duplicate_blocked",
                    "calendar_id": resolved_calendar_id,
                    "duplicate": module._duplicate_to_payload(decision.blocking_duplicate),
                    "message": format_blocked_duplicate(decision.blocking_duplicate),
                }

            body = event_to_google(candidate)
            try:
                created = await store.insert_event(
                    calendar_id=resolved_calendar_id,
                    body=body,
                    flags=WriteFlags.for_body(body),
                    send_updates=send_updates.value if send_updates is not None else None,
                )
            except CalendarError as exc:
                logger.error(
                    "calendar_create_event failed (calendar_id=%s): %s",
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)

            logger.info(
                "Created event '%s' in calendar '%s'", created.event_id, resolved_calendar_id
            )
            return {
                "status": "created",
                "calendar_id": resolved_calendar_id,
                "event": module._event_to_payload(created),
                "duplicates": [
                    module._duplicate_to_payload(match) for match in decision.warning_duplicates
                ],
                "conflicts": [module._conflict_to_payload(match) for match in decision.conflicts],
                "message": format_event_response(created, resolved_calendar_id, result),
            }

        @mcp.tool()
        async def calendar_update_event(
            event_id: str,
            title: str | None = None,
            start_at: EventBoundary | None = None,
            end_at: EventBoundary | None = None,
            timezone: str | None = None,
            description: str | None = None,
            location: str | None = None,
            attendees: list[str] | None = None,
            recurrence: list[str] | None = None,
            color_id: str | None = None,
            reminders: dict[str, Any] | None = None,
            conference_data: dict[str, Any] | None = None,
            transparency: EventTransparency | None = None,
            visibility: EventVisibility | None = None,
            extended_properties: dict[str, Any] | None = None,
            attachments: list[dict[str, Any]] | None = None,
            modification_scope: ModificationScope | None = None,
            original_start_time: datetime | None = None,
            future_start_date: datetime | None = None,
            check_conflicts: bool = True,
            calendars_to_check: list[str] | None = None,
            calendar_id: str | None = None,
            send_updates: SendUpdatesPolicy | None = None,
        ) -> dict[str, Any]:
            """Update an event, an instance of a series, or a series from a date onward.

            ``modification_scope`` selects the target: ``all`` (default) patches
            the whole series, ``thisEventOnly`` requires ``original_start_time``
            and ``thisAndFollowing`` requires a future ``future_start_date``.
            Omitted fields are left unchanged; an empty list clears a list field.
            """
            normalized_event_id = event_id.strip()
            if not normalized_event_id:
                raise ValueError("event_id must be a non-empty string")

            store = module._require_store()
            config = module._require_config()
            resolved_calendar_id = module._resolve_calendar_id(calendar_id)

            requested = {
                "title": title,
                "start": start_at,
                "end": end_at,
                "time_zone": timezone,
                "description": description,
                "location": location,
                "attendees": attendees,
                "recurrence": recurrence,
                "color_id": color_id,
                "reminders": reminders,
                "conference_data": conference_data,
                "transparency": transparency,
                "visibility": visibility,
                "extended_properties": extended_properties,
                "attachments": attachments,
            }
            changes = EventChanges(
                **{field: value for field, value in requested.items() if value is not None}
            )

            try:
                default_timezone = await module._default_timezone(resolved_calendar_id)
            except CalendarError as exc:
                logger.warning(
                    "calendar_update_event failed resolving timezone (calendar_id=%s): %s",
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)
            effective_timezone = changes.time_zone or default_timezone
            requested_scope = parse_modification_scope(modification_scope)

            result: ConflictCheckResult | None = None
            send_updates_value = send_updates.value if send_updates is not None else None
            try:
                existing: CalendarEvent | None = None
                if requested_scope != ModificationScope.all:
                    # Event kind is checked before the scope's own parameters.
                    existing = await store.get_event(
                        calendar_id=resolved_calendar_id,
                        event_id=normalized_event_id,
                    )
                    ensure_scope_applies(existing, requested_scope)

                scope = resolve_scope(
                    requested_scope,
                    original_start_time=original_start_time,
                    future_start_date=future_start_date,
                    fallback_timezone=effective_timezone,
                )

                if check_conflicts and config.conflicts.check_conflicts and changes.changes_time:
                    if existing is None:
                        existing = await store.get_event(
                            calendar_id=resolved_calendar_id,
                            event_id=normalized_event_id,
                        )
                    result = await module._detector().check_conflicts(
                        module._merge_for_conflict_check(existing, changes, effective_timezone),
                        resolved_calendar_id,
                        config.conflicts.to_options(
                            calendars_to_check=calendars_to_check,
                            check_duplicates=False,
                        ),
                        fallback_timezone=effective_timezone,
                    )

                updated = await RecurrenceScopeResolver(store).update_event_with_scope(
                    ModificationRequest(
                        calendar_id=resolved_calendar_id,
                        event_id=normalized_event_id,
                        scope=scope,
                        changes=changes,
                    ),
                    default_timezone,
                    send_updates=send_updates_value,
                )
            except CalendarValidationError:
                raise
            except CalendarNotFoundError:
                return module._not_found(resolved_calendar_id, normalized_event_id)
            except SeriesSplitError as exc:
                error_payload = _build_structured_error(exc, calendar_id=resolved_calendar_id)
                error_payload["truncated_event_id"] = exc.event_id
                error_payload["until"] = exc.until
                return error_payload
            except CalendarError as exc:
                logger.error(
                    "calendar_update_event failed (event_id=%s, calendar_id=%s): %s",
                    normalized_event_id,
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)

            logger.info(
                "Updated event '%s' in calendar '%s' (scope=%s)",
                normalized_event_id,
                resolved_calendar_id,
                type(scope).__name__,
            )
            return {
                "status": "updated",
                "calendar_id": resolved_calendar_id,
                "event": module._event_to_payload(updated),
                "conflicts": [
                    module._conflict_to_payload(match)
                    for match in (result.conflicts if result is not None else [])
                ],
                "message": format_event_response(
                    updated, resolved_calendar_id, result, action="updated"
                ),
            }

        @mcp.tool()
        async def calendar_delete_event(
            event_id: str,
            calendar_id: str | None = None,
            send_updates: SendUpdatesPolicy | None = None,
        ) -> dict[str, Any]:
            """Delete an event; a recurring master id deletes the whole series."""
            normalized_event_id = event_id.strip()
            if not normalized_event_id:
                raise ValueError("event_id must be a non-empty string")

            store = module._require_store()
            resolved_calendar_id = module._resolve_calendar_id(calendar_id)
            try:
                await store.delete_event(
                    calendar_id=resolved_calendar_id,
                    event_id=normalized_event_id,
                    send_updates=send_updates.value if send_updates is not None else None,
                )
            except CalendarNotFoundError:
                return module._not_found(resolved_calendar_id, normalized_event_id)
            except CalendarError as exc:
                logger.error(
                    "calendar_delete_event failed (event_id=%s, calendar_id=%s): %s",
                    normalized_event_id,
                    resolved_calendar_id,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=resolved_calendar_id)

            logger.info(
                "Deleted event '%s' from calendar '%s'", normalized_event_id, resolved_calendar_id
            )
            return {
                "status": "deleted",
                "calendar_id": resolved_calendar_id,
                "event_id": normalized_event_id,
            }

        @mcp.tool()
        async def calendar_free_busy(
            start_at: datetime,
            end_at: datetime,
            calendar_ids: list[str] | None = None,
            timezone: str | None = None,
        ) -> dict[str, Any]:
            """Return busy windows per calendar for a time range."""
            store = module._require_store()
            resolved_ids = [
                module._resolve_calendar_id(calendar_id) for calendar_id in calendar_ids or [None]
            ]
            primary_calendar_id = resolved_ids[0]
            if timezone is not None:
                ensure_valid_timezone(timezone)
            try:
                effective_timezone = timezone or await module._default_timezone(
                    primary_calendar_id
                )
                busy = await store.query_free_busy(
                    calendar_ids=resolved_ids,
                    start_at=to_instant(start_at, effective_timezone),
                    end_at=to_instant(end_at, effective_timezone),
                    time_zone=effective_timezone,
                )
            except CalendarError as exc:
                logger.warning(
                    "calendar_free_busy failed (calendar_ids=%s): %s",
                    resolved_ids,
                    exc,
                    exc_info=True,
                )
                return _build_structured_error(exc, calendar_id=primary_calendar_id)
            return {
                "time_zone": effective_timezone,
                "calendars": {
                    calendar_id: [
                        {"start": window.start.isoformat(), "end": window.end.isoformat()}
                        for window in windows
                    ]
                    for calendar_id, windows in busy.items()
                },
            }

    def _detector(self) -> ConflictDetectionService:
        return ConflictDetectionService(self._require_store())

    @staticmethod
    def _merge_for_conflict_check(
        existing: CalendarEvent,
        changes: EventChanges,
        timezone: str,
    ) -> CalendarEvent:
        update: dict[str, Any] = {}
        for field in ("title", "description", "location"):
            if changes.is_provided(field):
                update[field] = getattr(changes, field)
        if changes.start is not None:
            update["start"] = EventTime.from_value(changes.start, timezone)
        if changes.end is not None:
            update["end"] = EventTime.from_value(changes.end, timezone)
        merged = existing.model_copy(update=update)
        if merged.start.is_all_day != merged.end.is_all_day:
            raise ValueError(
                "start_at and end_at must both be dates or both be datetimes "
                "for the updated event"
            )
        return merged

    @staticmethod
    def _not_found(calendar_id: str, event_id: str) -> dict[str, Any]:
        return {
            "status": "not_found",
            "calendar_id": calendar_id,
            "event_id": event_id,
        }

    @staticmethod
    def _event_time_to_payload(value: EventTime) -> dict[str, Any]:
        return {
            "date": value.date_value.isoformat() if value.date_value is not None else None,
            "date_time": (
                value.date_time_value.isoformat() if value.date_time_value is not None else None
            ),
            "time_zone": value.time_zone,
        }

    @staticmethod
    def _attendee_to_payload(attendee: AttendeeInfo) -> dict[str, Any]:
        return {
            "email": attendee.email,
            "display_name": attendee.display_name,
            "response_status": attendee.response_status.value,
            "optional": attendee.optional,
            "organizer": attendee.organizer,
            "self": attendee.self_,
            "comment": attendee.comment,
        }

    @staticmethod
    def _event_to_payload(event: CalendarEvent) -> dict[str, Any]:
        return {
            "event_id": event.event_id,
            "title": event.title,
            "start": CalendarModule._event_time_to_payload(event.start),
            "end": CalendarModule._event_time_to_payload(event.end),
            "all_day": event.is_all_day,
            "description": event.description,
            "location": event.location,
            "attendees": [CalendarModule._attendee_to_payload(a) for a in event.attendees],
            "recurrence": list(event.recurrence),
            "color_id": event.color_id,
            "status": event.status.value if event.status is not None else None,
            "organizer": event.organizer,
            "visibility": event.visibility.value if event.visibility is not None else None,
            "transparency": (
                event.transparency.value if event.transparency is not None else None
            ),
            "html_link": event.html_link,
            "etag": event.etag,
            "created_at": event.created_at.isoformat() if event.created_at is not None else None,
            "updated_at": event.updated_at.isoformat() if event.updated_at is not None else None,
        }

    @staticmethod
    def _duplicate_to_payload(match: SimilarityMatch) -> dict[str, Any]:
        return {
            "event_id": match.event_id,
            "calendar_id": match.calendar_id,
            "title": match.title,
            "url": match.url,
            "similarity": match.similarity,
            "suggestion": match.suggestion,
        }

    @staticmethod
    def _conflict_to_payload(match: OverlapMatch) -> dict[str, Any]:
        return {
            "event_id": match.event_id,
            "calendar_id": match.calendar_id,
            "title": match.title,
            "url": match.url,
            "start": CalendarModule._event_time_to_payload(match.event.start),
            "end": CalendarModule._event_time_to_payload(match.event.end),
            "overlap": {
                "duration": match.overlap.duration,
                "minutes": match.overlap.minutes,
                "percentage": match.overlap.percentage,
                "start": match.overlap.start.isoformat(),
                "end": match.overlap.end.isoformat(),
            },
        }
