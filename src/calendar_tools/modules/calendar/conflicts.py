"""Duplicate and conflict detection for candidate events.

The detector is read-only: it lists existing events in the candidate's window
for each calendar to check, scores them, and classifies overlapping events as
duplicates (similarity at or above the warn threshold) or conflicts (everything
else that overlaps). Nothing is cached between calls.
"""

from __future__ import annotations

import logging

from calendar_tools.modules.calendar.errors import (
    CalendarNotFoundError,
    CalendarPermissionError,
)
from calendar_tools.modules.calendar.models import (
    CalendarEvent,
    ConflictCheckResult,
    ConflictDetectionOptions,
    CreationDecision,
    EventStatus,
    OverlapMatch,
    SimilarityMatch,
)
from calendar_tools.modules.calendar.similarity import (
    analyze_overlap,
    calculate_similarity,
    event_url,
    suggestion_for,
)
from calendar_tools.modules.calendar.store import CalendarStore

logger = logging.getLogger(__name__)


class ConflictDetectionService:
    """Scores a candidate event against existing events in one or more calendars."""

    def __init__(self, store: CalendarStore) -> None:
        self._store = store

    async def check_conflicts(
        self,
        candidate: CalendarEvent,
        calendar_id: str,
        options: ConflictDetectionOptions | None = None,
        *,
        fallback_timezone: str | None = None,
    ) -> ConflictCheckResult:
        """Return duplicates and conflicts for ``candidate``.

        ``calendar_id`` is the target calendar, checked when
        ``options.calendars_to_check`` is empty. Calendars that do not exist
        or are not readable are skipped; any other store failure propagates.
        """
        options = options or ConflictDetectionOptions()
        result = ConflictCheckResult()
        if not options.check_duplicates and not options.check_conflicts:
            return result

        window_start, window_end = candidate.interval(fallback_timezone)
        calendars = options.calendars_to_check or [calendar_id]

        for check_calendar_id in calendars:
            try:
                existing_events = await self._store.list_events(
                    calendar_id=check_calendar_id,
                    start_at=window_start,
                    end_at=window_end,
                )
            except (CalendarNotFoundError, CalendarPermissionError) as exc:
                logger.warning(
                    "Skipping calendar '%s' during conflict check: %s",
                    check_calendar_id,
                    exc,
                )
                continue

            for existing in existing_events:
                match = self._classify(
                    candidate,
                    existing,
                    check_calendar_id,
                    options,
                    fallback_timezone,
                )
                if isinstance(match, SimilarityMatch):
                    result.duplicates.append(match)
                elif isinstance(match, OverlapMatch):
                    result.conflicts.append(match)

        result.has_conflicts = bool(result.duplicates or result.conflicts)
        if result.has_conflicts:
            logger.debug(
                "Conflict check for '%s': %d duplicate(s), %d conflict(s)",
                candidate.title,
                len(result.duplicates),
                len(result.conflicts),
            )
        return result

    @staticmethod
    def _classify(
        candidate: CalendarEvent,
        existing: CalendarEvent,
        calendar_id: str,
        options: ConflictDetectionOptions,
        fallback_timezone: str | None,
    ) -> SimilarityMatch | OverlapMatch | None:
        if candidate.event_id is not None and candidate.event_id in (
            existing.event_id,
            existing.recurring_event_id,
        ):
            # The candidate itself, or an instance of the series being edited.
            return None
        if existing.status == EventStatus.cancelled:
            return None

        details = analyze_overlap(candidate, existing, fallback_timezone)
        if details is None:
            return None

        url = event_url(existing, calendar_id)
        if options.check_duplicates:
            similarity = calculate_similarity(candidate, existing, fallback_timezone)
            if similarity >= options.duplicate_similarity_threshold:
                return SimilarityMatch(
                    event_id=existing.event_id,
                    calendar_id=calendar_id,
                    title=existing.title,
                    url=url,
                    similarity=similarity,
                    suggestion=suggestion_for(similarity, options.blocking_threshold),
                    event=existing,
                )

        if options.check_conflicts:
            return OverlapMatch(
                event_id=existing.event_id,
                calendar_id=calendar_id,
                title=existing.title,
                url=url,
                overlap=details,
                event=existing,
            )
        return None


def evaluate_creation(
    result: ConflictCheckResult,
    options: ConflictDetectionOptions,
    *,
    allow_duplicates: bool = False,
) -> CreationDecision:
    """Apply the duplicate policy to a check result.

    Creation is refused only when a duplicate reaches the blocking threshold
    and the caller has not allowed duplicates. Otherwise every duplicate and
    conflict is surfaced as a non-fatal warning.
    """
    blocking = [
        duplicate
        for duplicate in result.duplicates
        if duplicate.similarity >= options.blocking_threshold
    ]
    if blocking and not allow_duplicates:
        strongest = max(blocking, key=lambda duplicate: duplicate.similarity)
        return CreationDecision(
            blocked=True,
            blocking_duplicate=strongest,
            warning_duplicates=[],
            conflicts=list(result.conflicts),
        )
    return CreationDecision(
        blocked=False,
        warning_duplicates=list(result.duplicates),
        conflicts=list(result.conflicts),
    )
