"""Calendar module: duplicate/conflict detection and recurring-event scopes.

Exposes the data model, the detector, the recurrence resolver, the calendar
store contract and the ``CalendarModule`` that registers the MCP tools.
"""

from __future__ import annotations

from calendar_tools.modules.calendar.conflicts import (
    ConflictDetectionService,
    evaluate_creation,
)
from calendar_tools.modules.calendar.errors import (
    CalendarError,
    CalendarErrorCode,
    CalendarNotFoundError,
    CalendarNotRecurringError,
    CalendarPermissionError,
    CalendarRateLimitError,
    CalendarUpstreamError,
    CalendarValidationError,
    SeriesSplitError,
)
from calendar_tools.modules.calendar.models import (
    DEFAULT_DUPLICATE_THRESHOLD,
    DUPLICATE_BLOCKING_THRESHOLD,
    AllInstances,
    AttendeeInfo,
    AttendeeResponseStatus,
    BusyWindow,
    CalendarEvent,
    ConflictCheckResult,
    ConflictDetectionOptions,
    CreationDecision,
    EventBoundary,
    EventChanges,
    EventStatus,
    EventTime,
    EventTransparency,
    EventVisibility,
    ModificationRequest,
    ModificationScope,
    OverlapDetails,
    OverlapMatch,
    SendUpdatesPolicy,
    SimilarityMatch,
    SparsePatch,
    ThisAndFollowing,
    ThisInstanceOnly,
    WriteFlags,
)
from calendar_tools.modules.calendar.module import (
    CalendarConfig,
    CalendarConflictDefaults,
    CalendarModule,
)
from calendar_tools.modules.calendar.patch import build_patch_body
from calendar_tools.modules.calendar.recurrence import (
    RecurrenceScopeResolver,
    format_instance_id,
    resolve_scope,
    rewrite_recurrence_with_until,
    strip_server_identity,
)
from calendar_tools.modules.calendar.store import (
    GOOGLE_CALENDAR_API_BASE_URL,
    CalendarStore,
    GoogleCalendarStore,
)

__all__ = [
    "DEFAULT_DUPLICATE_THRESHOLD",
    "DUPLICATE_BLOCKING_THRESHOLD",
    "GOOGLE_CALENDAR_API_BASE_URL",
    "AllInstances",
    "AttendeeInfo",
    "AttendeeResponseStatus",
    "BusyWindow",
    "CalendarConfig",
    "CalendarConflictDefaults",
    "CalendarError",
    "CalendarErrorCode",
    "CalendarEvent",
    "CalendarModule",
    "CalendarNotFoundError",
    "CalendarNotRecurringError",
    "CalendarPermissionError",
    "CalendarRateLimitError",
    "CalendarStore",
    "CalendarUpstreamError",
    "CalendarValidationError",
    "ConflictCheckResult",
    "ConflictDetectionOptions",
    "ConflictDetectionService",
    "CreationDecision",
    "EventBoundary",
    "EventChanges",
    "EventStatus",
    "EventTime",
    "EventTransparency",
    "EventVisibility",
    "GoogleCalendarStore",
    "ModificationRequest",
    "ModificationScope",
    "OverlapDetails",
    "OverlapMatch",
    "RecurrenceScopeResolver",
    "SendUpdatesPolicy",
    "SeriesSplitError",
    "SimilarityMatch",
    "SparsePatch",
    "ThisAndFollowing",
    "ThisInstanceOnly",
    "WriteFlags",
    "build_patch_body",
    "evaluate_creation",
    "format_instance_id",
    "resolve_scope",
    "rewrite_recurrence_with_until",
    "strip_server_identity",
]
