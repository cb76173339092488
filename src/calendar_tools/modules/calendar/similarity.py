"""Rules-based similarity scoring between a candidate event and an existing one.

Score tiers:

* all-day vs timed events: 0.20 (different kinds of event, never duplicates)
* overlapping, identical title: 0.95
* overlapping, similar title (containment or shared significant words): 0.70
* identical title without overlap: 0.40
* similar title without overlap: 0.30
* anything else: 0.10, plus 0.20 when the locations match exactly

Only overlapping pairs are ever eligible to be duplicates; the detector
enforces that gate, so the non-overlap tiers never reach the 0.70 line.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

from calendar_tools.modules.calendar.models import CalendarEvent, OverlapDetails
from calendar_tools.modules.calendar.timeutil import format_duration, overlap

TYPE_MISMATCH_SCORE = 0.2
EXACT_OVERLAP_SCORE = 0.95
SIMILAR_OVERLAP_SCORE = 0.7
EXACT_NO_OVERLAP_SCORE = 0.4
SIMILAR_NO_OVERLAP_SCORE = 0.3
BASELINE_SCORE = 0.1
LOCATION_MATCH_BONUS = 0.2

SIGNIFICANT_WORD_MIN_LENGTH = 4
SIGNIFICANT_WORD_SHARE = 0.5

BLOCKING_SUGGESTION = (
    "This appears to be a duplicate. Consider updating the existing event instead."
)
WARNING_SUGGESTION = "This event is very similar to an existing one. Is this intentional?"

GOOGLE_EVENT_VIEW_URL = "https://calendar.google.com/calendar/event"


@dataclass(frozen=True)
class TitleMatch:
    exact: bool
    similar: bool


def normalize_title(title: str | None) -> str:
    if not title:
        return ""
    return " ".join(title.casefold().split())


def _significant_words(title: str) -> list[str]:
    return [word for word in title.split() if len(word) >= SIGNIFICANT_WORD_MIN_LENGTH]


def match_titles(first: str | None, second: str | None) -> TitleMatch:
    a = normalize_title(first)
    b = normalize_title(second)
    if not a or not b:
        return TitleMatch(exact=False, similar=False)
    if a == b:
        return TitleMatch(exact=True, similar=True)

    # "Meeting" vs "Team Meeting"
    if a in b or b in a:
        return TitleMatch(exact=False, similar=True)

    tokens_a = set(a.split())
    tokens_b = set(b.split())
    if tokens_a <= tokens_b or tokens_b <= tokens_a:
        return TitleMatch(exact=False, similar=True)

    words_a = _significant_words(a)
    words_b = _significant_words(b)
    if words_a and words_b:
        common = [word for word in words_a if word in words_b]
        share = len(common) / min(len(words_a), len(words_b))
        return TitleMatch(exact=False, similar=share >= SIGNIFICANT_WORD_SHARE)

    return TitleMatch(exact=False, similar=False)


def locations_match(first: str | None, second: str | None) -> bool:
    a = normalize_title(first)
    return bool(a) and a == normalize_title(second)


def overlap_duration(
    candidate: CalendarEvent,
    existing: CalendarEvent,
    fallback_timezone: str | None = None,
) -> timedelta:
    a_start, a_end = candidate.interval(fallback_timezone)
    b_start, b_end = existing.interval(fallback_timezone)
    return overlap(a_start, a_end, b_start, b_end)


def calculate_similarity(
    candidate: CalendarEvent,
    existing: CalendarEvent,
    fallback_timezone: str | None = None,
) -> float:
    """Return a similarity score in [0, 1], rounded to two decimals."""
    if candidate.is_all_day != existing.is_all_day:
        return TYPE_MISMATCH_SCORE

    titles = match_titles(candidate.title, existing.title)
    overlapping = overlap_duration(candidate, existing, fallback_timezone) > timedelta(0)

    if overlapping and titles.exact:
        score = EXACT_OVERLAP_SCORE
    elif overlapping and titles.similar:
        score = SIMILAR_OVERLAP_SCORE
    elif titles.exact:
        score = EXACT_NO_OVERLAP_SCORE
    elif titles.similar:
        score = SIMILAR_NO_OVERLAP_SCORE
    else:
        score = BASELINE_SCORE
        if locations_match(candidate.location, existing.location):
            score += LOCATION_MATCH_BONUS
    return round(min(score, 1.0), 2)


def suggestion_for(similarity: float, blocking_threshold: float) -> str:
    if similarity >= blocking_threshold:
        return BLOCKING_SUGGESTION
    return WARNING_SUGGESTION


def analyze_overlap(
    candidate: CalendarEvent,
    existing: CalendarEvent,
    fallback_timezone: str | None = None,
) -> OverlapDetails | None:
    """Describe how ``existing`` overlaps ``candidate``; ``None`` when they do not."""
    a_start, a_end = candidate.interval(fallback_timezone)
    b_start, b_end = existing.interval(fallback_timezone)
    duration = overlap(a_start, a_end, b_start, b_end)
    if duration <= timedelta(0):
        return None

    candidate_duration = a_end - a_start
    percentage = (
        round(duration / candidate_duration * 100) if candidate_duration > timedelta(0) else 0
    )
    return OverlapDetails(
        duration=format_duration(duration),
        minutes=int(duration.total_seconds() // 60),
        percentage=percentage,
        start=max(a_start, b_start),
        end=min(a_end, b_end),
    )


def event_url(event: CalendarEvent, calendar_id: str) -> str | None:
    if event.html_link:
        return event.html_link
    if not event.event_id:
        return None
    return (
        f"{GOOGLE_EVENT_VIEW_URL}?eid={quote(event.event_id, safe='')}"
        f"&cid={quote(calendar_id, safe='')}"
    )
