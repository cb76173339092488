"""Recurring-event modification scopes.

An update targets one of three scopes:

* ``all``: patch the master event, so every instance changes.
* ``thisEventOnly``: patch a single instance addressed as
  ``{master_id}_{YYYYMMDDTHHMMSSZ}`` of its original start.
* ``thisAndFollowing``: split the series. The master's first RRULE line is
  bounded with ``UNTIL`` one day before the split, then a copy of the master
  carrying the requested changes is inserted as the new future series.

The split is two independent writes. When the insert fails after the master
has been truncated the truncation is not undone; ``SeriesSplitError`` reports
the truncated series instead.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any

from calendar_tools.modules.calendar.errors import (
    CalendarError,
    CalendarErrorCode,
    CalendarNotRecurringError,
    CalendarValidationError,
    SeriesSplitError,
)
from calendar_tools.modules.calendar.models import (
    AllInstances,
    CalendarEvent,
    EventChanges,
    ModificationRequest,
    ModificationScope,
    ScopeSelection,
    ThisAndFollowing,
    ThisInstanceOnly,
    WriteFlags,
)
from calendar_tools.modules.calendar.patch import build_patch_body
from calendar_tools.modules.calendar.store import CalendarStore
from calendar_tools.modules.calendar.timeutil import (
    coerce_zoneinfo,
    compact_utc_timestamp,
    to_instant,
)
from calendar_tools.modules.calendar.wire import boundary_to_google, event_to_google

logger = logging.getLogger(__name__)

RRULE_PREFIX = "RRULE:"
_BOUNDING_CLAUSES = frozenset({"UNTIL", "COUNT"})

SERVER_IDENTITY_FIELDS: tuple[str, ...] = (
    "event_id",
    "recurring_event_id",
    "etag",
    "ical_uid",
    "created_at",
    "updated_at",
    "html_link",
    "hangout_link",
)


class EventKind(StrEnum):
    single = "single"
    recurring = "recurring"


def classify(event: CalendarEvent) -> EventKind:
    return EventKind.recurring if event.is_recurring else EventKind.single


def parse_modification_scope(scope: ModificationScope | str | None) -> ModificationScope:
    if scope is None:
        return ModificationScope.all
    try:
        return ModificationScope(scope)
    except ValueError as exc:
        raise CalendarValidationError(
            f"Invalid modification scope: {scope}",
            code=CalendarErrorCode.INVALID_SCOPE,
        ) from exc


def ensure_scope_applies(event: CalendarEvent, scope: ModificationScope | str | None) -> None:
    """Reject instance/following scopes on a single event before anything else."""
    resolved = parse_modification_scope(scope)
    if classify(event) == EventKind.single and resolved != ModificationScope.all:
        raise CalendarValidationError(
            'Scope other than "all" only applies to recurring events',
            code=CalendarErrorCode.NON_RECURRING_SCOPE,
        )


def resolve_scope(
    scope: ModificationScope | str | None,
    *,
    original_start_time: datetime | str | None = None,
    future_start_date: datetime | str | None = None,
    fallback_timezone: str | None = None,
    now: datetime | None = None,
) -> ScopeSelection:
    """Turn tool-level scope arguments into a scope variant.

    Naive instants are interpreted in ``fallback_timezone``. The split instant
    for ``thisAndFollowing`` must be strictly in the future.
    """
    resolved = parse_modification_scope(scope)
    if resolved == ModificationScope.all:
        return AllInstances()

    if resolved == ModificationScope.this_instance_only:
        if original_start_time is None or original_start_time == "":
            raise CalendarValidationError(
                "original_start_time is required when modification_scope is 'thisEventOnly'",
                code=CalendarErrorCode.MISSING_ORIGINAL_TIME,
            )
        return ThisInstanceOnly(original_start=to_instant(original_start_time, fallback_timezone))

    if future_start_date is None or future_start_date == "":
        raise CalendarValidationError(
            "future_start_date is required when modification_scope is 'thisAndFollowing'",
            code=CalendarErrorCode.MISSING_FUTURE_DATE,
        )
    split_at = to_instant(future_start_date, fallback_timezone)
    current = now or datetime.now(UTC)
    if split_at <= current:
        raise CalendarValidationError(
            "future_start_date must be in the future",
            code=CalendarErrorCode.PAST_FUTURE_DATE,
        )
    return ThisAndFollowing(split_at=split_at)


def validate_scope_for_event(event: CalendarEvent, scope: ScopeSelection) -> None:
    if isinstance(scope, ThisInstanceOnly):
        ensure_scope_applies(event, ModificationScope.this_instance_only)
    elif isinstance(scope, ThisAndFollowing):
        ensure_scope_applies(event, ModificationScope.this_and_following)


def format_instance_id(event_id: str, original_start: datetime) -> str:
    return f"{event_id}_{compact_utc_timestamp(original_start)}"


def _rewrite_rule_line(line: str, until: str) -> str:
    clauses = [
        clause
        for clause in line[len(RRULE_PREFIX) :].split(";")
        if clause and clause.split("=", 1)[0].strip().upper() not in _BOUNDING_CLAUSES
    ]
    clauses.append(f"UNTIL={until}")
    return f"{RRULE_PREFIX}{';'.join(clauses)}"


def rewrite_recurrence_with_until(recurrence: list[str], until: datetime) -> list[str]:
    """Bound the first RRULE line with ``UNTIL``; other lines are copied unchanged.

    Existing ``UNTIL``/``COUNT`` clauses on that line are replaced, never
    accumulated.
    """
    until_value = compact_utc_timestamp(until)
    rewritten: list[str] = []
    replaced = False
    for line in recurrence:
        if not replaced and line.upper().startswith(RRULE_PREFIX):
            rewritten.append(_rewrite_rule_line(line, until_value))
            replaced = True
        else:
            rewritten.append(line)
    if not replaced:
        raise CalendarNotRecurringError("No RRULE found in recurrence rules")
    return rewritten


def strip_server_identity(event: CalendarEvent) -> CalendarEvent:
    """Copy ``event`` without the fields the server assigns to a stored record."""
    return event.model_copy(update={name: None for name in SERVER_IDENTITY_FIELDS})


def _split_boundaries(
    master: CalendarEvent,
    changes: EventChanges,
    split_at: datetime,
    time_zone: str,
    default_timezone: str,
) -> tuple[date | datetime, date | datetime]:
    master_start, master_end = master.interval(default_timezone)
    duration = master_end - master_start

    if changes.start is not None:
        start: date | datetime = changes.start
    elif master.is_all_day:
        start = split_at.astimezone(coerce_zoneinfo(time_zone)).date()
    else:
        start = split_at

    if changes.end is not None:
        return start, changes.end
    if isinstance(start, datetime):
        return start, start + duration
    return start, start + timedelta(days=max(duration.days, 1))


def build_future_series_body(
    master: CalendarEvent,
    changes: EventChanges,
    split_at: datetime,
    default_timezone: str,
) -> dict[str, Any]:
    """Body for the new series: the master's content, the changes, then new boundaries."""
    time_zone = changes.time_zone or master.start.time_zone or default_timezone
    body = event_to_google(strip_server_identity(master))
    body.update(build_patch_body(changes, default_timezone).body)

    start, end = _split_boundaries(master, changes, split_at, time_zone, default_timezone)
    body["start"] = boundary_to_google(start, time_zone)
    body["end"] = boundary_to_google(end, time_zone)
    return body


class RecurrenceScopeResolver:
    """Executes an update against the right part of a (possibly recurring) event."""

    def __init__(self, store: CalendarStore) -> None:
        self._store = store

    async def update_event_with_scope(
        self,
        request: ModificationRequest,
        default_timezone: str,
        *,
        send_updates: str | None = None,
    ) -> CalendarEvent:
        event = await self._store.get_event(
            calendar_id=request.calendar_id,
            event_id=request.event_id,
        )
        validate_scope_for_event(event, request.scope)

        scope = request.scope
        if isinstance(scope, ThisInstanceOnly):
            return await self._update_single_instance(
                request, scope, default_timezone, send_updates
            )
        if isinstance(scope, ThisAndFollowing):
            return await self._update_future_instances(
                request, scope, default_timezone, send_updates
            )
        return await self._update_all_instances(request, default_timezone, send_updates)

    async def _update_all_instances(
        self,
        request: ModificationRequest,
        default_timezone: str,
        send_updates: str | None,
    ) -> CalendarEvent:
        patch = build_patch_body(request.changes, default_timezone)
        return await self._store.patch_event(
            calendar_id=request.calendar_id,
            event_id=request.event_id,
            body=patch.body,
            flags=patch.flags,
            send_updates=send_updates,
        )

    async def _update_single_instance(
        self,
        request: ModificationRequest,
        scope: ThisInstanceOnly,
        default_timezone: str,
        send_updates: str | None,
    ) -> CalendarEvent:
        instance_id = format_instance_id(
            request.event_id,
            to_instant(scope.original_start, default_timezone),
        )
        patch = build_patch_body(request.changes, default_timezone)
        return await self._store.patch_event(
            calendar_id=request.calendar_id,
            event_id=instance_id,
            body=patch.body,
            flags=patch.flags,
            send_updates=send_updates,
        )

    async def _update_future_instances(
        self,
        request: ModificationRequest,
        scope: ThisAndFollowing,
        default_timezone: str,
        send_updates: str | None,
    ) -> CalendarEvent:
        master = await self._store.get_event(
            calendar_id=request.calendar_id,
            event_id=request.event_id,
        )
        if not master.is_recurring:
            raise CalendarNotRecurringError(
                f"Event '{request.event_id}' does not have recurrence rules"
            )

        split_at = to_instant(scope.split_at, default_timezone)
        until = split_at - timedelta(days=1)
        await self._store.patch_event(
            calendar_id=request.calendar_id,
            event_id=request.event_id,
            body={"recurrence": rewrite_recurrence_with_until(master.recurrence, until)},
        )
        logger.info(
            "Truncated series '%s' in calendar '%s' at UNTIL=%s",
            request.event_id,
            request.calendar_id,
            compact_utc_timestamp(until),
        )

        body = build_future_series_body(master, request.changes, split_at, default_timezone)
        try:
            created = await self._store.insert_event(
                calendar_id=request.calendar_id,
                body=body,
                flags=WriteFlags.for_body(body),
                send_updates=send_updates,
            )
        except CalendarError as exc:
            logger.error(
                "Series split left '%s' truncated without a future series: %s",
                request.event_id,
                exc,
                exc_info=True,
            )
            raise SeriesSplitError(
                calendar_id=request.calendar_id,
                event_id=request.event_id,
                until=compact_utc_timestamp(until),
                reason=str(exc),
            ) from exc

        logger.info(
            "Created future series '%s' from '%s'",
            created.event_id,
            request.event_id,
        )
        return created
