"""Error hierarchy for calendar tools.

Validation problems are raised verbatim to the caller and never retried.
Upstream failures carry the HTTP status reported by the calendar service so
that the tool layer can distinguish not-found, rate limiting and permission
problems from other failures.
"""

from __future__ import annotations

from enum import StrEnum


class CalendarErrorCode(StrEnum):
    """Machine-readable codes attached to ``CalendarValidationError``."""

    INVALID_SCOPE = "INVALID_MODIFICATION_SCOPE"
    MISSING_ORIGINAL_TIME = "MISSING_ORIGINAL_START_TIME"
    MISSING_FUTURE_DATE = "MISSING_FUTURE_START_DATE"
    PAST_FUTURE_DATE = "FUTURE_DATE_IN_PAST"
    NON_RECURRING_SCOPE = "SCOPE_NOT_APPLICABLE_TO_SINGLE_EVENT"


class CalendarError(RuntimeError):
    """Base error raised by calendar tools."""


class CalendarValidationError(CalendarError, ValueError):
    """Raised when a request is inconsistent with the target event or scope."""

    def __init__(self, message: str, *, code: CalendarErrorCode) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class CalendarNotRecurringError(CalendarError):
    """Raised when a series operation targets an event without recurrence rules."""


class CalendarUpstreamError(CalendarError):
    """Raised when the remote calendar service rejects or fails a request."""

    def __init__(self, *, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"Google Calendar API request failed: {message}")
        else:
            super().__init__(f"Google Calendar API request failed ({status_code}): {message}")


class CalendarNotFoundError(CalendarUpstreamError):
    """Raised when the requested calendar or event does not exist."""


class CalendarPermissionError(CalendarUpstreamError):
    """Raised when the credentials lack access to the calendar or event."""


class CalendarRateLimitError(CalendarUpstreamError):
    """Raised when the calendar service reports rate limiting (HTTP 429)."""


class SeriesSplitError(CalendarError):
    """Raised when a series split truncated the master but the new series was not created.

    The first write (UNTIL rewrite on the master) is not rolled back, so the
    original series now ends at ``until`` with no replacement future series.
    """

    def __init__(self, *, calendar_id: str, event_id: str, until: str, reason: str) -> None:
        self.calendar_id = calendar_id
        self.event_id = event_id
        self.until = until
        self.reason = reason
        super().__init__(
            f"Series '{event_id}' in calendar '{calendar_id}' was truncated "
            f"(UNTIL={until}) but the replacement series could not be created: {reason}"
        )
