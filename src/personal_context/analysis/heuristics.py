"""Ordered keyword rule tables for profile inference.

Each table is scanned top to bottom and the first matching rule wins, so the
order of entries is part of the behavior.  Matching is plain substring
search on lower-cased text unless noted otherwise.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from personal_context.domain.profile import (
    DEFAULT_MEETING_TIMES,
    MeetingPatterns,
    ResponseTimingPatterns,
    WorkingHours,
)
from personal_context.domain.types import ManagementLevel

DEFAULT_FORMALITY = 5

# "informal" contains "formal" and "very casual" contains "casual", so the last
# rule only fires for text that matches none of the earlier ones.
FORMALITY_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("very formal", "highly formal"), 8),
    (("formal",), 7),
    (("professional",), 6),
    (("casual",), 4),
    (("very casual", "informal"), 3),
)

MANAGEMENT_RULES: tuple[tuple[tuple[str, ...], ManagementLevel], ...] = (
    (("ceo", "president", "executive"), ManagementLevel.EXECUTIVE),
    (("director", "vp", "head of"), ManagementLevel.DIRECTOR),
    (("manager", "lead", "supervisor"), ManagementLevel.MANAGER),
    (("team lead", "senior"), ManagementLevel.TEAM_LEAD),
)

DEFAULT_MEETING_DURATION = 30

MEETING_DURATION_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("15 min", "15-min", "fifteen min", "quarter hour"), 15),
    (("30 min", "30-min", "thirty min", "half hour", "half-hour"), 30),
    (("60 min", "hour"), 60),
)

# Word-boundary regex, so "afternoon" does not count as "noon"
MEETING_TIME_RULES: tuple[tuple[re.Pattern[str], tuple[str, ...]], ...] = (
    (re.compile(r"\bmornings?\b"), ("9:00 AM", "10:00 AM", "11:00 AM")),
    (re.compile(r"\b(lunch|midday|noon)\b"), ("12:00 PM", "1:00 PM")),
    (re.compile(r"\bafternoons?\b"), ("2:00 PM", "3:00 PM", "4:00 PM")),
)

CASUAL_MEETING_KEYWORDS: tuple[str, ...] = ("casual", "informal", "coffee", "quick sync", "chat")
FORMAL_MEETING_KEYWORDS: tuple[str, ...] = ("formal", "agenda", "minutes", "presentation")

# Word-boundary regex -> IANA zone
TIMEZONE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(pst|pdt|pt|pacific)\b"), "America/Los_Angeles"),
    (re.compile(r"\b(mst|mdt|mountain)\b"), "America/Denver"),
    (re.compile(r"\b(cst|cdt|central)\b"), "America/Chicago"),
    (re.compile(r"\b(est|edt|et|eastern)\b"), "America/New_York"),
    (re.compile(r"\b(gmt|bst|london)\b"), "Europe/London"),
    (re.compile(r"\b(cet|cest)\b"), "Europe/Berlin"),
    (re.compile(r"\bist\b"), "Asia/Kolkata"),
    (re.compile(r"\bjst\b"), "Asia/Tokyo"),
    (re.compile(r"\b(aest|aedt)\b"), "Australia/Sydney"),
    (re.compile(r"\butc\b"), "UTC"),
)

_HOUR_RANGE_RE = re.compile(
    r"\b(\d{1,2})(?::\d{2})?\s*(am|pm)?\s*(?:-|to)\s*(\d{1,2})(?::\d{2})?\s*(am|pm)\b"
)


def pooled_text(chunks: Iterable[str]) -> str:
    """Join *chunks* into one lower-cased string for keyword scanning."""
    return " ".join(chunks).lower()


def estimate_formality(descriptions: Sequence[str]) -> int:
    """Map formality-insight descriptions to a 1-10 formality score.

    Returns ``DEFAULT_FORMALITY`` when there are no descriptions or none
    match a rule.
    """
    lowered = [d.lower() for d in descriptions]
    for keywords, level in FORMALITY_RULES:
        if any(keyword in text for text in lowered for keyword in keywords):
            return level
    return DEFAULT_FORMALITY


def infer_management_level(values: Sequence[str]) -> ManagementLevel:
    """Infer seniority from authority and responsibility insight values."""
    lowered = [v.lower() for v in values]
    for keywords, level in MANAGEMENT_RULES:
        if any(keyword in text for text in lowered for keyword in keywords):
            return level
    return ManagementLevel.INDIVIDUAL


def infer_response_timing(evidence_text: str) -> ResponseTimingPatterns:
    """Derive response-timing flags from pooled schedule evidence."""
    text = evidence_text.lower()
    return ResponseTimingPatterns(
        business_hours="after hours" not in text and "late night" not in text,
        evening_emails="evening" in text or "after 6" in text,
        weekend_emails=any(word in text for word in ("weekend", "saturday", "sunday")),
        urgent_response_time=1 if "immediate" in text else 4,
        normal_response_time=4 if "quick" in text else 24,
    )


def infer_meeting_patterns(text: str) -> MeetingPatterns:
    """Derive preferred meeting duration, times, and style from pooled text."""
    text = text.lower()

    duration = DEFAULT_MEETING_DURATION
    for keywords, minutes in MEETING_DURATION_RULES:
        if any(keyword in text for keyword in keywords):
            duration = minutes
            break

    times: list[str] = []
    for pattern, slots in MEETING_TIME_RULES:
        if pattern.search(text):
            times.extend(slot for slot in slots if slot not in times)
    if not times:
        times = list(DEFAULT_MEETING_TIMES)

    casual = any(keyword in text for keyword in CASUAL_MEETING_KEYWORDS)
    formal = any(keyword in text for keyword in FORMAL_MEETING_KEYWORDS)
    if casual and formal:
        style = "mixed"
    elif casual:
        style = "casual"
    else:
        style = "formal"

    return MeetingPatterns(preferred_duration=duration, preferred_times=times, meeting_style=style)


def _to_24h(hour: int, meridiem: str | None) -> int:
    if meridiem == "pm" and hour < 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def infer_working_hours(text: str) -> WorkingHours:
    """Derive timezone, daily hours, and work days from pooled text.

    Defaults to Monday-Friday, 9-17, UTC for every dimension without a
    signal.
    """
    text = text.lower()

    timezone = "UTC"
    for pattern, zone in TIMEZONE_RULES:
        if pattern.search(text):
            timezone = zone
            break

    start_hour, end_hour = 9, 17
    match = _HOUR_RANGE_RE.search(text)
    if match:
        end_meridiem = match.group(4)
        start_meridiem = match.group(2) or end_meridiem
        start = _to_24h(int(match.group(1)), start_meridiem)
        end = _to_24h(int(match.group(3)), end_meridiem)
        # "9 to 5pm" reads the start as morning
        if start > end and match.group(2) is None:
            start = _to_24h(int(match.group(1)), "am")
        if 0 <= start < end <= 24:
            start_hour, end_hour = start, end

    work_days = [1, 2, 3, 4, 5]
    if "weekend" in text or "sunday" in text:
        work_days.insert(0, 0)
    if "weekend" in text or "saturday" in text:
        work_days.append(6)

    return WorkingHours(
        timezone=timezone,
        start_hour=start_hour,
        end_hour=end_hour,
        work_days=work_days,
    )
