"""Sparse patch body builder.

Only explicitly provided fields reach the body, so unchanged fields are never
overwritten on the server (true partial-update semantics for PATCH). An empty
list is a provided value: ``attachments=[]`` clears attachments.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from calendar_tools.modules.calendar.models import EventChanges, SparsePatch, WriteFlags
from calendar_tools.modules.calendar.wire import attendees_to_google, boundary_to_google

_DIRECT_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "summary"),
    ("description", "description"),
    ("location", "location"),
    ("reminders", "reminders"),
    ("conference_data", "conferenceData"),
    ("color_id", "colorId"),
    ("guests_can_invite_others", "guestsCanInviteOthers"),
    ("guests_can_modify", "guestsCanModify"),
    ("guests_can_see_other_guests", "guestsCanSeeOtherGuests"),
    ("anyone_can_add_self", "anyoneCanAddSelf"),
    ("extended_properties", "extendedProperties"),
    ("attachments", "attachments"),
)


def build_patch_body(changes: EventChanges, default_timezone: str) -> SparsePatch:
    """Turn ``changes`` into a minimal update body plus the write flags it requires."""
    provided = changes.provided()
    body: dict[str, Any] = {}

    for attribute, key in _DIRECT_FIELDS:
        if attribute in provided:
            value = provided[attribute]
            body[key] = list(value) if isinstance(value, list) else value

    if "attendees" in provided:
        body["attendees"] = attendees_to_google(provided["attendees"])
    if "recurrence" in provided:
        body["recurrence"] = list(provided["recurrence"])
    if "transparency" in provided:
        body["transparency"] = provided["transparency"].value
    if "visibility" in provided:
        body["visibility"] = provided["visibility"].value

    time_zone = changes.time_zone or default_timezone
    if changes.changes_time:
        # Both timed boundaries carry the zone so they cannot drift apart.
        for name in ("start", "end"):
            if name in provided:
                body[name] = boundary_to_google(provided[name], time_zone)
        timed = any(isinstance(provided.get(name), datetime) for name in ("start", "end"))
        if timed:
            for name in ("start", "end"):
                body.setdefault(name, {"timeZone": time_zone})
    elif changes.time_zone is not None:
        body["start"] = {"timeZone": changes.time_zone}
        body["end"] = {"timeZone": changes.time_zone}

    return SparsePatch(body=body, flags=WriteFlags.for_body(body))
