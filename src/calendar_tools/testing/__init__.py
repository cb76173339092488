"""Test support utilities for the calendar_tools package.

Helpers here have no dependency on pytest so they can be imported from any
test context.
"""

from __future__ import annotations

from calendar_tools.testing.store import InMemoryCalendarStore

__all__ = ["InMemoryCalendarStore"]
