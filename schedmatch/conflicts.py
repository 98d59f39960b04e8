"""
Time clashes between parsed courses.

Two meetings clash when they share a weekday and their [start, end)
windows intersect; back-to-back classes (one ends at 10:50, the next
starts at 10:50) do not clash. Meetings without days or a readable
start / end are left out.

Used by the confirmation step to flag sections before they are saved,
and by `schedmatch conflicts`.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Set, Tuple

from schedmatch.model import ComponentDraft, CourseDraft

Meeting = Tuple[CourseDraft, ComponentDraft]
Conflict = Tuple[Meeting, Meeting]


def _minutes(hhmm: str) -> Optional[int]:
    hour, _, minute = (hhmm or "").strip().partition(":")
    if not (hour.isdigit() and minute.isdigit()):
        return None
    h, m = int(hour), int(minute)
    if h > 23 or m > 59:
        return None
    return h * 60 + m


def _timed_meetings(courses: List[CourseDraft]) -> Iterator[Tuple[Set[str], int, int, Meeting]]:
    for course in courses:
        for comp in course.components:
            start, end = _minutes(comp.start_time), _minutes(comp.end_time)
            if not comp.days or start is None or end is None or end <= start:
                continue
            yield set(comp.days), start, end, (course, comp)


def find_conflicts(courses: List[CourseDraft]) -> List[Conflict]:
    """
    Every clashing pair of meetings, in input order, each pair once.
    """
    meetings = list(_timed_meetings(courses))
    conflicts: List[Conflict] = []
    for i, (days, start, end, meeting) in enumerate(meetings):
        for other_days, other_start, other_end, other in meetings[i + 1 :]:
            if days & other_days and start < other_end and end > other_start:
                conflicts.append((meeting, other))
    return conflicts


def clashing_sections(courses: List[CourseDraft]) -> Dict[str, List[str]]:
    """
    section_key -> codes of the other courses it clashes with.
    A lecture overlapping its own lab is not reported.
    """
    clashes: Dict[str, List[str]] = {}
    for (a, _), (b, _) in find_conflicts(courses):
        if a.section_key == b.section_key:
            continue
        for course, other in ((a, b), (b, a)):
            codes = clashes.setdefault(course.section_key, [])
            if other.course_code not in codes:
                codes.append(other.course_code)
    return clashes


def describe_conflict(conflict: Conflict) -> str:
    """
    'Monday: CS201 Lecture 09:00-10:15  <->  MATH150 Lecture 10:00-10:50'
    """
    (ca, a), (cb, b) = conflict
    shared = ", ".join(d for d in a.days if d in b.days)
    return (
        f"{shared}: {ca.course_code} {a.type} {a.start_time}-{a.end_time}"
        f"  <->  {cb.course_code} {b.type} {b.start_time}-{b.end_time}"
    )
