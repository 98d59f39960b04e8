"""
iCalendar (.ics) export.

Every course component with days and times becomes one weekly recurring
VEVENT, so a confirmed schedule can go back into Google Calendar, Outlook
or Apple Calendar. The output is also readable by parse_ical_file.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from schedmatch.model import LECTURE, WEEKDAYS, CourseDraft

BYDAY_CODES = {day: day[:2].upper() for day in WEEKDAYS}


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(day: date, time_hh_mm: str) -> str:
    """
    Convert date + 'HH:MM' to ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{day.isoformat()} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def _first_meeting(week_of: date, days: List[str]) -> date:
    monday = week_of - timedelta(days=week_of.weekday())
    offsets = sorted(WEEKDAYS.index(d) for d in days)
    return monday + timedelta(days=offsets[0])


def export_courses_to_ics(
    courses: List[CourseDraft],
    out_path: str | Path,
    week_of: Optional[date] = None,
    weeks: Optional[int] = None,
) -> int:
    """
    Export course components to an .ics file. Returns number of exported events.

    week_of picks the first week of the recurrence (default: this week);
    weeks limits it to that many weeks.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    week_of = week_of or date.today()

    lines: List[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//schedmatch//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for course in courses:
        for n, comp in enumerate(course.components):
            days = [d for d in comp.days if d in BYDAY_CODES]
            if not (days and comp.start_time and comp.end_time):
                continue

            first = _first_meeting(week_of, days)
            try:
                dtstart = _dt_local(first, comp.start_time)
                dtend = _dt_local(first, comp.end_time)
            except ValueError:
                continue

            summary = f"{course.course_code} {course.course_name}".strip()
            if comp.type != LECTURE:
                summary = f"{summary} ({comp.type})"
            rrule = "FREQ=WEEKLY;BYDAY=" + ",".join(BYDAY_CODES[d] for d in days)
            if weeks:
                rrule += f";COUNT={weeks * len(days)}"

            lines.append("BEGIN:VEVENT")
            lines.append(f"UID:{_ics_escape(course.section_key)}-{n}-{dtstart}@schedmatch")
            lines.append(f"DTSTAMP:{dtstamp}")
            lines.append(f"DTSTART:{dtstart}")
            lines.append(f"DTEND:{dtend}")
            lines.append(f"RRULE:{rrule}")
            lines.append(f"SUMMARY:{_ics_escape(summary)}")
            if comp.location:
                lines.append(f"LOCATION:{_ics_escape(comp.location)}")
            description = f"Section: {course.section_id}"
            if course.professor:
                description = f"Instructor: {course.professor}\n{description}"
            lines.append(f"DESCRIPTION:{_ics_escape(description)}")
            lines.append("END:VEVENT")
            count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
