"""Tests for recurring-event modification scopes.

Covers:
- resolve_scope argument validation and error codes
- Instance scopes are rejected on single events before their own arguments
- RRULE rewriting replaces bounding clauses and keeps other lines
- Server identity fields are stripped from series copies
- The three update strategies against an in-memory store
- A failed insert after truncation surfaces SeriesSplitError
"""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from calendar_tools.modules.calendar.errors import (
    CalendarErrorCode,
    CalendarNotRecurringError,
    CalendarUpstreamError,
    CalendarValidationError,
    SeriesSplitError,
)
from calendar_tools.modules.calendar.models import (
    AllInstances,
    CalendarEvent,
    EventChanges,
    EventTime,
    ModificationRequest,
    ModificationScope,
    ThisAndFollowing,
    ThisInstanceOnly,
)
from calendar_tools.modules.calendar.recurrence import (
    EventKind,
    RecurrenceScopeResolver,
    classify,
    ensure_scope_applies,
    format_instance_id,
    parse_modification_scope,
    resolve_scope,
    rewrite_recurrence_with_until,
    strip_server_identity,
)
from calendar_tools.testing import InMemoryCalendarStore

pytestmark = pytest.mark.unit

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)


def _weekly_standup(**overrides) -> CalendarEvent:
    fields = {
        "event_id": "standup",
        "title": "Standup",
        "start": EventTime(
            date_time_value=datetime(2030, 1, 7, 9, 0), time_zone="America/New_York"
        ),
        "end": EventTime(
            date_time_value=datetime(2030, 1, 7, 9, 30), time_zone="America/New_York"
        ),
        "location": "Room 4",
        "recurrence": ["RRULE:FREQ=WEEKLY;BYDAY=MO", "EXDATE:20300114T140000Z"],
    }
    fields.update(overrides)
    return CalendarEvent(**fields)


def _single_event() -> CalendarEvent:
    return CalendarEvent(
        event_id="dentist",
        title="Dentist",
        start=EventTime(date_time_value=datetime(2030, 1, 7, 15, 0, tzinfo=UTC)),
        end=EventTime(date_time_value=datetime(2030, 1, 7, 16, 0, tzinfo=UTC)),
    )


def _request(event_id: str, scope, **changes) -> ModificationRequest:
    return ModificationRequest(
        calendar_id="primary",
        event_id=event_id,
        scope=scope,
        changes=EventChanges(**changes),
    )


class TestResolveScope:
    def test_missing_scope_means_all(self):
        assert resolve_scope(None) == AllInstances()
        assert resolve_scope("all") == AllInstances()

    def test_invalid_scope_is_rejected(self):
        with pytest.raises(CalendarValidationError) as exc_info:
            resolve_scope("sometimes")
        assert exc_info.value.code == CalendarErrorCode.INVALID_SCOPE

    def test_this_event_only_requires_original_start(self):
        with pytest.raises(CalendarValidationError) as exc_info:
            resolve_scope("thisEventOnly")
        assert exc_info.value.code == CalendarErrorCode.MISSING_ORIGINAL_TIME
        assert "original_start_time is required" in str(exc_info.value)

    def test_this_event_only_interprets_naive_time_in_fallback_zone(self):
        scope = resolve_scope(
            "thisEventOnly",
            original_start_time="2030-01-14T09:00:00",
            fallback_timezone="America/New_York",
        )
        assert scope == ThisInstanceOnly(
            original_start=datetime(2030, 1, 14, 14, 0, tzinfo=UTC)
        )

    def test_this_and_following_requires_future_date(self):
        with pytest.raises(CalendarValidationError) as exc_info:
            resolve_scope("thisAndFollowing", now=NOW)
        assert exc_info.value.code == CalendarErrorCode.MISSING_FUTURE_DATE

    def test_this_and_following_rejects_past_date(self):
        with pytest.raises(CalendarValidationError) as exc_info:
            resolve_scope(
                "thisAndFollowing",
                future_start_date=datetime(2029, 12, 31, 9, 0, tzinfo=UTC),
                now=NOW,
            )
        assert exc_info.value.code == CalendarErrorCode.PAST_FUTURE_DATE

    def test_this_and_following_rejects_current_instant(self):
        with pytest.raises(CalendarValidationError):
            resolve_scope("thisAndFollowing", future_start_date=NOW, now=NOW)

    def test_this_and_following_accepts_future_date(self):
        scope = resolve_scope(
            "thisAndFollowing",
            future_start_date="2030-02-04T09:00:00",
            fallback_timezone="America/New_York",
            now=NOW,
        )
        assert scope == ThisAndFollowing(split_at=datetime(2030, 2, 4, 14, 0, tzinfo=UTC))


class TestScopeAppliesToEvent:
    def test_parse_defaults_to_all(self):
        assert parse_modification_scope(None) == ModificationScope.all
        assert parse_modification_scope("thisEventOnly") == ModificationScope.this_instance_only

    def test_single_event_rejects_instance_scopes_without_other_arguments(self):
        for scope in ("thisEventOnly", "thisAndFollowing"):
            with pytest.raises(CalendarValidationError) as exc_info:
                ensure_scope_applies(_single_event(), scope)
            assert exc_info.value.code == CalendarErrorCode.NON_RECURRING_SCOPE

    def test_all_scope_and_recurring_events_pass(self):
        ensure_scope_applies(_single_event(), None)
        ensure_scope_applies(_single_event(), "all")
        ensure_scope_applies(_weekly_standup(), "thisEventOnly")
        ensure_scope_applies(_weekly_standup(), "thisAndFollowing")

    def test_invalid_scope_is_reported_before_event_kind(self):
        with pytest.raises(CalendarValidationError) as exc_info:
            ensure_scope_applies(_single_event(), "sometimes")
        assert exc_info.value.code == CalendarErrorCode.INVALID_SCOPE


class TestRecurrenceHelpers:
    def test_classify(self):
        assert classify(_weekly_standup()) == EventKind.recurring
        assert classify(_single_event()) == EventKind.single

    def test_instance_id_uses_utc_original_start(self):
        original = datetime.fromisoformat("2024-06-15T10:00:00+02:00")
        assert format_instance_id("abc", original) == "abc_20240615T080000Z"

    def test_until_is_appended_and_other_lines_kept(self):
        rewritten = rewrite_recurrence_with_until(
            ["RRULE:FREQ=WEEKLY;BYDAY=MO", "EXDATE:20300114T140000Z"],
            datetime(2030, 2, 3, 14, 0, tzinfo=UTC),
        )
        assert rewritten == [
            "RRULE:FREQ=WEEKLY;BYDAY=MO;UNTIL=20300203T140000Z",
            "EXDATE:20300114T140000Z",
        ]

    def test_existing_until_is_replaced_not_accumulated(self):
        rewritten = rewrite_recurrence_with_until(
            ["RRULE:FREQ=DAILY;UNTIL=20301231T000000Z;INTERVAL=2"],
            datetime(2030, 6, 30, tzinfo=UTC),
        )
        assert rewritten == ["RRULE:FREQ=DAILY;INTERVAL=2;UNTIL=20300630T000000Z"]
        assert rewritten[0].count("UNTIL=") == 1

    def test_repeated_split_keeps_single_until(self):
        first = rewrite_recurrence_with_until(
            ["RRULE:FREQ=WEEKLY;BYDAY=MO"], datetime(2030, 2, 3, 14, 0, tzinfo=UTC)
        )
        second = rewrite_recurrence_with_until(first, datetime(2030, 3, 3, 14, 0, tzinfo=UTC))
        assert second == ["RRULE:FREQ=WEEKLY;BYDAY=MO;UNTIL=20300303T140000Z"]

    def test_count_is_replaced_by_until(self):
        rewritten = rewrite_recurrence_with_until(
            ["RRULE:FREQ=DAILY;COUNT=10"], datetime(2030, 6, 30, tzinfo=UTC)
        )
        assert rewritten == ["RRULE:FREQ=DAILY;UNTIL=20300630T000000Z"]

    def test_only_first_rrule_is_rewritten(self):
        rewritten = rewrite_recurrence_with_until(
            ["RRULE:FREQ=DAILY", "RRULE:FREQ=MONTHLY"], datetime(2030, 6, 30, tzinfo=UTC)
        )
        assert rewritten[1] == "RRULE:FREQ=MONTHLY"

    def test_missing_rrule_is_an_error(self):
        with pytest.raises(CalendarNotRecurringError):
            rewrite_recurrence_with_until(["EXDATE:20300114T140000Z"], NOW)

    def test_strip_server_identity(self):
        master = _weekly_standup(
            etag='"etag-1"',
            ical_uid="standup@google.com",
            html_link="https://calendar.google.com/event?eid=standup",
            created_at=NOW,
        )
        stripped = strip_server_identity(master)
        assert stripped.event_id is None
        assert stripped.etag is None
        assert stripped.ical_uid is None
        assert stripped.html_link is None
        assert stripped.created_at is None
        assert stripped.title == "Standup"
        assert stripped.recurrence == master.recurrence


class TestAllInstances:
    async def test_patches_master_with_sparse_body(self):
        store = InMemoryCalendarStore({"primary": [_weekly_standup()]})
        updated = await RecurrenceScopeResolver(store).update_event_with_scope(
            _request("standup", AllInstances(), title="Daily Standup"),
            "America/New_York",
            send_updates="all",
        )
        assert updated.title == "Daily Standup"
        assert updated.location == "Room 4"
        assert len(store.patch_calls) == 1
        call = store.patch_calls[0]
        assert call.event_id == "standup"
        assert call.body == {"summary": "Daily Standup"}
        assert call.send_updates == "all"

    async def test_single_event_accepts_all_scope(self):
        store = InMemoryCalendarStore({"primary": [_single_event()]})
        updated = await RecurrenceScopeResolver(store).update_event_with_scope(
            _request("dentist", AllInstances(), location="Main St"),
            "UTC",
        )
        assert updated.location == "Main St"


class TestThisInstanceOnly:
    async def test_patches_instance_id(self):
        store = InMemoryCalendarStore({"primary": [_weekly_standup()]})
        scope = ThisInstanceOnly(original_start=datetime(2030, 1, 21, 14, 0, tzinfo=UTC))
        updated = await RecurrenceScopeResolver(store).update_event_with_scope(
            _request("standup", scope, title="Standup (moved)"),
            "America/New_York",
        )
        assert store.patch_calls[0].event_id == "standup_20300121T140000Z"
        assert updated.event_id == "standup_20300121T140000Z"
        assert updated.title == "Standup (moved)"
        assert store.stored("primary", "standup").title == "Standup"

    async def test_rejected_for_single_event(self):
        store = InMemoryCalendarStore({"primary": [_single_event()]})
        scope = ThisInstanceOnly(original_start=datetime(2030, 1, 7, 15, 0, tzinfo=UTC))
        with pytest.raises(CalendarValidationError) as exc_info:
            await RecurrenceScopeResolver(store).update_event_with_scope(
                _request("dentist", scope, title="x"), "UTC"
            )
        assert exc_info.value.code == CalendarErrorCode.NON_RECURRING_SCOPE
        assert store.patch_calls == []


class TestThisAndFollowing:
    async def test_truncates_master_and_inserts_future_series(self):
        store = InMemoryCalendarStore({"primary": [_weekly_standup()]})
        split_at = datetime(2030, 2, 4, 14, 0, tzinfo=UTC)

        created = await RecurrenceScopeResolver(store).update_event_with_scope(
            _request("standup", ThisAndFollowing(split_at=split_at), title="Standup v2"),
            "America/New_York",
        )

        assert store.patch_calls[0].event_id == "standup"
        assert store.patch_calls[0].body == {
            "recurrence": [
                "RRULE:FREQ=WEEKLY;BYDAY=MO;UNTIL=20300203T140000Z",
                "EXDATE:20300114T140000Z",
            ]
        }

        body = store.insert_calls[0].body
        assert "id" not in body
        assert body["summary"] == "Standup v2"
        assert body["location"] == "Room 4"
        assert body["recurrence"] == ["RRULE:FREQ=WEEKLY;BYDAY=MO", "EXDATE:20300114T140000Z"]
        assert body["start"] == {
            "dateTime": "2030-02-04T14:00:00+00:00",
            "timeZone": "America/New_York",
        }
        assert body["end"] == {
            "dateTime": "2030-02-04T14:30:00+00:00",
            "timeZone": "America/New_York",
        }

        assert created.event_id != "standup"
        assert created.title == "Standup v2"
        assert store.stored("primary", "standup").recurrence[0].endswith(
            "UNTIL=20300203T140000Z"
        )

    async def test_requested_boundaries_override_split_instant(self):
        store = InMemoryCalendarStore({"primary": [_weekly_standup()]})
        split_at = datetime(2030, 2, 4, 14, 0, tzinfo=UTC)
        await RecurrenceScopeResolver(store).update_event_with_scope(
            _request(
                "standup",
                ThisAndFollowing(split_at=split_at),
                start=datetime(2030, 2, 4, 10, 0),
                end=datetime(2030, 2, 4, 10, 15),
            ),
            "America/New_York",
        )
        body = store.insert_calls[0].body
        assert body["start"]["dateTime"] == "2030-02-04T10:00:00"
        assert body["end"]["dateTime"] == "2030-02-04T10:15:00"

    async def test_all_day_series_splits_on_local_date(self):
        master = CalendarEvent(
            event_id="holiday",
            title="On call",
            start=EventTime(date_value=date(2030, 1, 7)),
            end=EventTime(date_value=date(2030, 1, 8)),
            recurrence=["RRULE:FREQ=WEEKLY"],
        )
        store = InMemoryCalendarStore({"primary": [master]})
        split_at = datetime(2030, 2, 4, 5, 0, tzinfo=UTC)

        await RecurrenceScopeResolver(store).update_event_with_scope(
            _request("holiday", ThisAndFollowing(split_at=split_at), title="On call (new)"),
            "America/New_York",
        )
        body = store.insert_calls[0].body
        assert body["start"] == {"date": "2030-02-04"}
        assert body["end"] == {"date": "2030-02-05"}

    async def test_insert_failure_reports_truncated_series(self):
        store = InMemoryCalendarStore({"primary": [_weekly_standup()]})
        store.errors["insert"] = CalendarUpstreamError(status_code=500, message="backend down")
        split_at = datetime(2030, 2, 4, 14, 0, tzinfo=UTC)

        with pytest.raises(SeriesSplitError) as exc_info:
            await RecurrenceScopeResolver(store).update_event_with_scope(
                _request("standup", ThisAndFollowing(split_at=split_at), title="v2"),
                "America/New_York",
            )

        error = exc_info.value
        assert error.event_id == "standup"
        assert error.calendar_id == "primary"
        assert error.until == "20300203T140000Z"
        assert "backend down" in error.reason
        assert isinstance(error.__cause__, CalendarUpstreamError)
        # The truncation is not rolled back.
        assert "UNTIL=20300203T140000Z" in store.stored("primary", "standup").recurrence[0]

    async def test_rejected_for_single_event(self):
        store = InMemoryCalendarStore({"primary": [_single_event()]})
        scope = ThisAndFollowing(split_at=datetime(2030, 2, 4, 14, 0, tzinfo=UTC))
        with pytest.raises(CalendarValidationError):
            await RecurrenceScopeResolver(store).update_event_with_scope(
                _request("dentist", scope, title="x"), "UTC"
            )
        assert store.patch_calls == []
        assert store.insert_calls == []
