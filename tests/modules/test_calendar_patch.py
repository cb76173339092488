"""Tests for sparse patch body construction.

Covers:
- Omitted and null fields never reach the body
- Empty lists are deliberate clears and set the attachment write flag
- Conference data sets conferenceDataVersion
- Timed boundaries carry a timezone on both sides; all-day boundaries carry none
- A timezone-only change rewrites just the boundary timezones
- Boundary strings become dates or date-times by their shape
"""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from calendar_tools.modules.calendar.models import (
    EventChanges,
    EventTransparency,
    EventVisibility,
    WriteFlags,
)
from calendar_tools.modules.calendar.patch import build_patch_body

pytestmark = pytest.mark.unit


class TestSparseFields:
    def test_only_provided_fields_are_emitted(self):
        patch = build_patch_body(EventChanges(title="Renamed"), "UTC")
        assert patch.body == {"summary": "Renamed"}
        assert patch.flags == WriteFlags()

    def test_explicit_none_is_treated_as_absent(self):
        patch = build_patch_body(EventChanges(description=None, location=None), "UTC")
        assert patch.body == {}

    def test_enum_fields_are_rendered_as_wire_values(self):
        patch = build_patch_body(
            EventChanges(
                transparency=EventTransparency.transparent,
                visibility=EventVisibility.private,
            ),
            "UTC",
        )
        assert patch.body == {"transparency": "transparent", "visibility": "private"}

    def test_attendee_emails_are_coerced(self):
        patch = build_patch_body(EventChanges(attendees=["a@example.com"]), "UTC")
        assert patch.body == {"attendees": [{"email": "a@example.com"}]}

    def test_guest_permissions_use_google_names(self):
        patch = build_patch_body(
            EventChanges(guests_can_modify=False, anyone_can_add_self=True), "UTC"
        )
        assert patch.body == {"guestsCanModify": False, "anyoneCanAddSelf": True}

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValidationError):
            EventChanges(summary="wrong name")


class TestWriteFlags:
    def test_empty_attachments_clear_and_set_flag(self):
        patch = build_patch_body(EventChanges(attachments=[]), "UTC")
        assert patch.body == {"attachments": []}
        assert patch.flags.supports_attachments is True
        assert patch.flags.conference_data_version is None

    def test_conference_data_sets_version(self):
        conference = {"createRequest": {"requestId": "req-1"}}
        patch = build_patch_body(EventChanges(conference_data=conference), "UTC")
        assert patch.body["conferenceData"] == conference
        assert patch.flags.conference_data_version == 1
        assert patch.flags.supports_attachments is None


class TestBoundaries:
    def test_timed_boundaries_use_requested_timezone(self):
        changes = EventChanges(
            start=datetime(2024, 6, 15, 10, 0),
            end=datetime(2024, 6, 15, 11, 0),
            time_zone="Europe/Paris",
        )
        patch = build_patch_body(changes, "UTC")
        assert patch.body == {
            "start": {"dateTime": "2024-06-15T10:00:00", "timeZone": "Europe/Paris"},
            "end": {"dateTime": "2024-06-15T11:00:00", "timeZone": "Europe/Paris"},
        }

    def test_start_only_change_wraps_end_with_default_timezone(self):
        patch = build_patch_body(EventChanges(start=datetime(2024, 6, 15, 10, 0)), "Asia/Tokyo")
        assert patch.body == {
            "start": {"dateTime": "2024-06-15T10:00:00", "timeZone": "Asia/Tokyo"},
            "end": {"timeZone": "Asia/Tokyo"},
        }

    def test_end_only_change_wraps_start_with_requested_timezone(self):
        changes = EventChanges(end=datetime(2024, 6, 15, 12, 0), time_zone="Europe/Paris")
        patch = build_patch_body(changes, "UTC")
        assert patch.body == {
            "start": {"timeZone": "Europe/Paris"},
            "end": {"dateTime": "2024-06-15T12:00:00", "timeZone": "Europe/Paris"},
        }

    def test_all_day_start_only_leaves_end_out(self):
        patch = build_patch_body(EventChanges(start=date(2024, 6, 15)), "UTC")
        assert patch.body == {"start": {"date": "2024-06-15"}}

    def test_all_day_boundaries_carry_no_timezone(self):
        changes = EventChanges(start=date(2024, 6, 15), end=date(2024, 6, 16))
        patch = build_patch_body(changes, "America/New_York")
        assert patch.body == {"start": {"date": "2024-06-15"}, "end": {"date": "2024-06-16"}}

    def test_timezone_only_change_wraps_both_boundaries(self):
        patch = build_patch_body(EventChanges(time_zone="Asia/Tokyo"), "UTC")
        assert patch.body == {
            "start": {"timeZone": "Asia/Tokyo"},
            "end": {"timeZone": "Asia/Tokyo"},
        }

    def test_mixed_boundary_types_are_rejected(self):
        with pytest.raises(ValidationError, match="same type"):
            EventChanges(start=date(2024, 6, 15), end=datetime(2024, 6, 15, 11, 0))

    def test_invalid_timezone_is_rejected(self):
        with pytest.raises(ValidationError, match="IANA"):
            EventChanges(time_zone="Mars/Olympus")


class TestBoundaryStrings:
    def test_civil_date_string_is_all_day(self):
        changes = EventChanges(start="2024-06-15", end="2024-06-16")
        assert type(changes.start) is date
        assert build_patch_body(changes, "UTC").body["start"] == {"date": "2024-06-15"}

    def test_midnight_timestamp_stays_timed(self):
        changes = EventChanges(start="2024-06-15T00:00:00Z")
        assert changes.start == datetime(2024, 6, 15, tzinfo=UTC)

    def test_naive_timestamp_string_stays_naive(self):
        changes = EventChanges(start="2024-06-15T09:30:00")
        assert changes.start == datetime(2024, 6, 15, 9, 30)

    def test_unparseable_string_is_rejected(self):
        with pytest.raises(ValidationError):
            EventChanges(start="next tuesday")
