"""Calendar store contract and the Google Calendar v3 REST implementation."""

from __future__ import annotations

import abc
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from calendar_tools.modules.calendar.errors import (
    CalendarError,
    CalendarNotFoundError,
    CalendarPermissionError,
    CalendarRateLimitError,
    CalendarUpstreamError,
)
from calendar_tools.modules.calendar.models import BusyWindow, CalendarEvent, WriteFlags
from calendar_tools.modules.calendar.timeutil import (
    DEFAULT_TIMEZONE,
    google_rfc3339,
    parse_iso_datetime,
)
from calendar_tools.modules.calendar.wire import google_to_event

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_LIST_LIMIT = 250
MAX_LIST_LIMIT = 2500

AccessTokenSupplier = Callable[[], Awaitable[str]]


class CalendarStore(abc.ABC):
    """Remote calendar record store consumed by the detector and resolver.

    ``get_event`` raises ``CalendarNotFoundError`` for unknown events; rate
    limiting surfaces as ``CalendarRateLimitError``. Implementations do not
    retry.
    """

    @abc.abstractmethod
    async def list_events(
        self,
        *,
        calendar_id: str,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[CalendarEvent]:
        """Return events (expanded instances) overlapping a time window."""
        ...

    @abc.abstractmethod
    async def get_event(self, *, calendar_id: str, event_id: str) -> CalendarEvent:
        """Fetch a single event or instance by id."""
        ...

    @abc.abstractmethod
    async def insert_event(
        self,
        *,
        calendar_id: str,
        body: dict[str, Any],
        flags: WriteFlags | None = None,
        send_updates: str | None = None,
    ) -> CalendarEvent:
        """Create an event from a wire body."""
        ...

    @abc.abstractmethod
    async def patch_event(
        self,
        *,
        calendar_id: str,
        event_id: str,
        body: dict[str, Any],
        flags: WriteFlags | None = None,
        send_updates: str | None = None,
    ) -> CalendarEvent:
        """Apply a sparse patch body to an event or instance."""
        ...

    @abc.abstractmethod
    async def delete_event(
        self,
        *,
        calendar_id: str,
        event_id: str,
        send_updates: str | None = None,
    ) -> None:
        ...

    @abc.abstractmethod
    async def query_free_busy(
        self,
        *,
        calendar_ids: list[str],
        start_at: datetime,
        end_at: datetime,
        time_zone: str | None = None,
    ) -> dict[str, list[BusyWindow]]:
        """Return busy windows per calendar for a time range."""
        ...

    @abc.abstractmethod
    async def get_calendar_timezone(self, calendar_id: str) -> str:
        """Return the calendar's IANA timezone, falling back to UTC."""
        ...

    async def shutdown(self) -> None:
        """Release transport resources."""
        return None


def _safe_google_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            message = error_payload.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
        if isinstance(error_payload, str) and error_payload.strip():
            return " ".join(error_payload.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return "Request failed without an error payload"


def _error_for_response(response: httpx.Response) -> CalendarUpstreamError:
    message = _safe_google_error_message(response)
    status_code = response.status_code
    if status_code == 404:
        return CalendarNotFoundError(status_code=status_code, message=message)
    if status_code == 429:
        return CalendarRateLimitError(status_code=status_code, message=message)
    if status_code == 403:
        return CalendarPermissionError(status_code=status_code, message=message)
    return CalendarUpstreamError(status_code=status_code, message=message)


def _write_params(flags: WriteFlags | None, send_updates: str | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if flags is not None:
        if flags.conference_data_version is not None:
            params["conferenceDataVersion"] = flags.conference_data_version
        if flags.supports_attachments:
            params["supportsAttachments"] = "true"
    if send_updates is not None and send_updates.strip():
        params["sendUpdates"] = send_updates.strip()
    return params


def _require_event_id(event_id: str) -> str:
    normalized = event_id.strip()
    if not normalized:
        raise ValueError("event_id must be a non-empty string")
    return normalized


class GoogleCalendarStore(CalendarStore):
    """Google Calendar v3 store authenticated by an externally managed bearer token."""

    def __init__(
        self,
        access_token: AccessTokenSupplier,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = GOOGLE_CALENDAR_API_BASE_URL,
    ) -> None:
        self._access_token = access_token
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=30.0)
        self._base_url = base_url.rstrip("/")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = await self._access_token()
        normalized_path = path if path.startswith("/") else f"/{path}"
        try:
            return await self._http_client.request(
                method,
                f"{self._base_url}{normalized_path}",
                params=params or None,
                json=json_body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise CalendarUpstreamError(status_code=None, message=str(exc)) from exc

    async def _request_google_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = await self._request(method, path, params=params, json_body=json_body)
        if response.status_code < 200 or response.status_code >= 300:
            raise _error_for_response(response)
        if response.status_code == 204 or not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as exc:
            raise CalendarUpstreamError(
                status_code=response.status_code,
                message="Google Calendar API returned invalid JSON for a successful response",
            ) from exc
        if not isinstance(payload, dict):
            raise CalendarUpstreamError(
                status_code=response.status_code,
                message="Google Calendar API returned an unexpected JSON payload shape",
            )
        return payload

    @staticmethod
    def _events_path(calendar_id: str, event_id: str | None = None) -> str:
        path = f"/calendars/{quote(calendar_id, safe='')}/events"
        if event_id is not None:
            path = f"{path}/{quote(event_id, safe='')}"
        return path

    @staticmethod
    def _event_from_write(payload: dict[str, Any], action: str) -> CalendarEvent:
        if not payload:
            raise CalendarUpstreamError(
                status_code=None,
                message=f"Google Calendar returned no event data after {action}",
            )
        return google_to_event(payload)

    async def list_events(
        self,
        *,
        calendar_id: str,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[CalendarEvent]:
        if limit < 1:
            raise ValueError("limit must be at least 1")

        params: dict[str, Any] = {
            "singleEvents": "true",
            "showDeleted": "false",
            "orderBy": "startTime",
            "maxResults": min(limit, MAX_LIST_LIMIT),
        }
        if start_at is not None:
            params["timeMin"] = google_rfc3339(start_at)
        if end_at is not None:
            params["timeMax"] = google_rfc3339(end_at)

        payload = await self._request_google_json(
            "GET", self._events_path(calendar_id), params=params
        )
        items = payload.get("items")
        if not isinstance(items, list):
            raise CalendarUpstreamError(
                status_code=None,
                message="Google Calendar list_events response missing items array",
            )
        return [google_to_event(item) for item in items if isinstance(item, dict)]

    async def get_event(self, *, calendar_id: str, event_id: str) -> CalendarEvent:
        normalized_event_id = _require_event_id(event_id)
        payload = await self._request_google_json(
            "GET", self._events_path(calendar_id, normalized_event_id)
        )
        if not payload:
            raise CalendarNotFoundError(
                status_code=None,
                message=f"Event '{normalized_event_id}' returned no data",
            )
        return google_to_event(payload)

    async def insert_event(
        self,
        *,
        calendar_id: str,
        body: dict[str, Any],
        flags: WriteFlags | None = None,
        send_updates: str | None = None,
    ) -> CalendarEvent:
        payload = await self._request_google_json(
            "POST",
            self._events_path(calendar_id),
            params=_write_params(flags, send_updates),
            json_body=body,
        )
        return self._event_from_write(payload, "insert")

    async def patch_event(
        self,
        *,
        calendar_id: str,
        event_id: str,
        body: dict[str, Any],
        flags: WriteFlags | None = None,
        send_updates: str | None = None,
    ) -> CalendarEvent:
        normalized_event_id = _require_event_id(event_id)
        payload = await self._request_google_json(
            "PATCH",
            self._events_path(calendar_id, normalized_event_id),
            params=_write_params(flags, send_updates),
            json_body=body,
        )
        return self._event_from_write(payload, "patch")

    async def delete_event(
        self,
        *,
        calendar_id: str,
        event_id: str,
        send_updates: str | None = None,
    ) -> None:
        normalized_event_id = _require_event_id(event_id)
        await self._request_google_json(
            "DELETE",
            self._events_path(calendar_id, normalized_event_id),
            params=_write_params(None, send_updates),
        )

    async def query_free_busy(
        self,
        *,
        calendar_ids: list[str],
        start_at: datetime,
        end_at: datetime,
        time_zone: str | None = None,
    ) -> dict[str, list[BusyWindow]]:
        if end_at <= start_at:
            raise ValueError("end_at must be after start_at")

        body: dict[str, Any] = {
            "timeMin": google_rfc3339(start_at),
            "timeMax": google_rfc3339(end_at),
            "items": [{"id": calendar_id} for calendar_id in calendar_ids],
        }
        if time_zone:
            body["timeZone"] = time_zone
        payload = await self._request_google_json("POST", "/freeBusy", json_body=body)

        calendars_payload = payload.get("calendars")
        if not isinstance(calendars_payload, dict):
            raise CalendarUpstreamError(
                status_code=None,
                message="Google Calendar freeBusy response missing calendars object",
            )

        busy: dict[str, list[BusyWindow]] = {}
        for calendar_id in calendar_ids:
            calendar_payload = calendars_payload.get(calendar_id)
            windows: list[BusyWindow] = []
            if isinstance(calendar_payload, dict):
                if calendar_payload.get("errors"):
                    logger.warning(
                        "freeBusy reported errors for calendar '%s': %s",
                        calendar_id,
                        calendar_payload["errors"],
                    )
                for window in calendar_payload.get("busy") or []:
                    if not isinstance(window, dict):
                        continue
                    start_raw = window.get("start")
                    end_raw = window.get("end")
                    if not isinstance(start_raw, str) or not isinstance(end_raw, str):
                        continue
                    windows.append(
                        BusyWindow(
                            start=parse_iso_datetime(start_raw),
                            end=parse_iso_datetime(end_raw),
                        )
                    )
            busy[calendar_id] = windows
        return busy

    async def get_calendar_timezone(self, calendar_id: str) -> str:
        try:
            payload = await self._request_google_json(
                "GET", f"/calendars/{quote(calendar_id, safe='')}"
            )
        except CalendarError as exc:
            logger.warning(
                "Could not read timezone for calendar '%s', falling back to %s: %s",
                calendar_id,
                DEFAULT_TIMEZONE,
                exc,
            )
            return DEFAULT_TIMEZONE
        time_zone = payload.get("timeZone")
        if isinstance(time_zone, str) and time_zone.strip():
            return time_zone.strip()
        return DEFAULT_TIMEZONE

    async def shutdown(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()
