"""
Parsing (schedule files -> structured records).

- Reads iCal (.ics) bodies exported by university course systems
- Reads positional CSV files:
      code, name, professor, days, start, end, location, section
- Normalizes day names, clock times and class codes
- Converts flat ClassRecord rows into CourseDraft objects for the
  confirmation step
- Builds a CourseDraft from fields typed in by hand (build_manual_course)

Important rules:
- A record without a class code is dropped, everything else is kept
- Malformed fields (dates, times, days) in imported files never raise,
  they become empty; hand-typed ones raise InvalidEntryError
- RRULE:BYDAY overwrites the weekday derived from DTSTART
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

from schedmatch.errors import InvalidEntryError, NoCoursesFoundError, UnsupportedFormatError
from schedmatch.model import LECTURE, WEEKDAYS, ClassRecord, ComponentDraft, CourseDraft, ParsedSchedule


# ---------------------------------------------------------------------------
# Patterns & lookup tables
# ---------------------------------------------------------------------------

SUMMARY_CODE_RE = re.compile(r"([A-Z]{2,4}\s+\d{3}[A-Z]?)(?:\s+(.+))?")
INSTRUCTOR_RE = re.compile(r"Instructor[:\s]+([^\n]+)", re.IGNORECASE)
DESCRIPTION_SECTION_RE = re.compile(r"Section:\s*([^\n]+)", re.IGNORECASE)
ICS_DATETIME_RE = re.compile(r"(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})")
BYDAY_RE = re.compile(r"BYDAY=([^;]+)")

CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")
MERIDIEM_RE = re.compile(r"(?<![A-Z])([AP])\.?M\.?(?![A-Z])")
RANGE_SPLIT_RE = re.compile(r"\s*[-–—]\s*|\s+TO\s+", re.IGNORECASE)

BYDAY_MAP = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}

DAY_NAMES = {
    "MONDAY": "Monday", "MON": "Monday", "MO": "Monday",
    "TUESDAY": "Tuesday", "TUES": "Tuesday", "TUE": "Tuesday", "TU": "Tuesday",
    "WEDNESDAY": "Wednesday", "WED": "Wednesday", "WE": "Wednesday",
    "THURSDAY": "Thursday", "THURS": "Thursday", "THUR": "Thursday", "THU": "Thursday", "TH": "Thursday",
    "FRIDAY": "Friday", "FRI": "Friday", "FR": "Friday",
    "SATURDAY": "Saturday", "SAT": "Saturday", "SA": "Saturday",
    "SUNDAY": "Sunday", "SUN": "Sunday", "SU": "Sunday",
}

# Registrar letter codes; R is Thursday
LETTER_CODES = {
    "M": "Monday",
    "T": "Tuesday",
    "W": "Wednesday",
    "R": "Thursday",
    "F": "Friday",
    "S": "Saturday",
    "U": "Sunday",
}

# Matched before single letters while scanning a run like "TTH" or "MTUTH"
PAIR_CODES = {
    "TH": "Thursday",
    "TU": "Tuesday",
    "SA": "Saturday",
    "SU": "Sunday",
}

CSV_HEADER_WORDS = {"code", "course", "course code", "class code", "subject"}

TIME_FORMAT_RE = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def _add_day(days: List[str], day: str) -> None:
    if day and day not in days:
        days.append(day)


def _unfold_ics_lines(text: str) -> List[str]:
    """
    Join RFC 5545 continuation lines (lines starting with a space or tab)
    back onto the previous line.
    """
    lines: List[str] = []
    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line[:1] in (" ", "\t") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def _split_property(line: str) -> Tuple[str, str]:
    """
    'DTSTART;TZID=America/New_York:20250902T090000' -> ('DTSTART', '20250902T090000')
    """
    if ":" not in line:
        return line.upper(), ""
    head, value = line.split(":", 1)
    return head.split(";", 1)[0].strip().upper(), value


def _ics_unescape(text: str) -> str:
    return (
        text.replace("\\n", "\n").replace("\\N", "\n").replace("\\,", ",").replace("\\;", ";").replace("\\\\", "\\")
    )


def _parse_ics_datetime(value: str) -> Optional[Tuple[date, str]]:
    """
    Parse 'YYYYMMDDTHHMMSS' into (date, 'HH:MM'). None if malformed.
    """
    m = ICS_DATETIME_RE.search(value)
    if not m:
        return None
    year, month, day, hour, minute, _ = m.groups()
    try:
        d = date(int(year), int(month), int(day))
    except ValueError:
        return None
    if int(hour) > 23 or int(minute) > 59:
        return None
    return d, f"{hour}:{minute}"


def _byday_to_name(code: str) -> str:
    raw = code.strip()
    # '1MO' / '-1FR' -> 'MO' / 'FR'
    bare = re.sub(r"^[+-]?\d+", "", raw.upper())
    return BYDAY_MAP.get(bare, raw)


# ---------------------------------------------------------------------------
# iCal parsing
# ---------------------------------------------------------------------------


def parse_ical_file(ics_content: str) -> List[ClassRecord]:
    """
    Parse an iCal body into one ClassRecord per VEVENT that has a class code.

    SUMMARY is expected to look like '<DEPT> <NUMBER> <NAME>', e.g.
    'CS 201 Data Structures'. Events whose summary has no code are dropped.
    """
    classes: List[ClassRecord] = []
    current: Optional[ClassRecord] = None

    for raw_line in _unfold_ics_lines(ics_content):
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper == "BEGIN:VEVENT":
            current = ClassRecord()
            continue
        if upper == "END:VEVENT":
            if current is not None and current.class_code:
                classes.append(current)
            current = None
            continue
        if current is None:
            continue

        name, value = _split_property(line)

        if name == "SUMMARY":
            summary = _ics_unescape(value).strip()
            m = SUMMARY_CODE_RE.search(summary)
            if m:
                current.class_code = m.group(1).strip()
                current.class_name = (m.group(2) or "").strip()
            else:
                current.class_name = summary

        elif name == "DESCRIPTION":
            desc = _ics_unescape(value)
            m = INSTRUCTOR_RE.search(desc)
            if m:
                current.professor = m.group(1).strip()
            m = DESCRIPTION_SECTION_RE.search(desc)
            if m:
                current.section = m.group(1).strip()

        elif name == "LOCATION":
            current.location = _ics_unescape(value).strip()

        elif name == "DTSTART":
            parsed = _parse_ics_datetime(value)
            if parsed:
                start_date, start_time = parsed
                current.start_time = start_time
                _add_day(current.days_of_week, WEEKDAYS[start_date.weekday()])

        elif name == "DTEND":
            parsed = _parse_ics_datetime(value)
            if parsed:
                current.end_time = parsed[1]

        elif name == "RRULE":
            m = BYDAY_RE.search(value)
            if m:
                # overwrite, do not append: the rule wins over DTSTART's weekday
                current.days_of_week = [d for d in (_byday_to_name(x) for x in m.group(1).split(",")) if d]

    return classes


# ---------------------------------------------------------------------------
# CSV parsing
# ---------------------------------------------------------------------------


def _parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line. Double quotes toggle quoting; escaped quotes ("")
    are not supported.
    """
    fields: List[str] = []
    current = ""
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append(current)
            current = ""
        else:
            current += char

    fields.append(current)
    return fields


def _looks_like_header(line: str) -> bool:
    if "class" in line.lower():
        return True
    first = _parse_csv_line(line)[0].strip().lower()
    return first in CSV_HEADER_WORDS


def parse_csv_file(csv_content: str) -> List[ClassRecord]:
    """
    Parse a positional CSV schedule into ClassRecords.

    Columns: code, name, professor, days, start, end, location, section.
    The first line is skipped when it looks like a header.
    """
    lines = [line for line in csv_content.splitlines() if line.strip()]
    if not lines:
        return []

    start_index = 1 if _looks_like_header(lines[0]) else 0
    classes: List[ClassRecord] = []

    for line in lines[start_index:]:
        fields = _parse_csv_line(line.strip())
        if len(fields) < 2:
            continue

        def col(i: int) -> str:
            return fields[i].strip() if i < len(fields) else ""

        record = ClassRecord(
            class_code=col(0),
            class_name=col(1),
            professor=col(2),
            days_of_week=parse_days(col(3)),
            start_time=parse_time(col(4)),
            end_time=parse_time(col(5)),
            location=col(6),
            section=col(7),
        )
        if record.class_code:
            classes.append(record)

    return classes


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------


def _scan_letter_codes(token: str) -> Optional[List[str]]:
    """
    Read a run like 'MWF', 'TTH' or 'MTWRFSU'.

    A run containing R uses single letters throughout, so S and U are
    Saturday and Sunday there. Elsewhere 'SU' inside a longer run could be
    Sunday or Saturday + Sunday; such runs are rejected.
    """
    single = "R" in token
    if single and "TU" in token:
        return None
    if not single and "SU" in token and len(token) > 2:
        return None

    days: List[str] = []
    i = 0
    while i < len(token):
        pair = token[i : i + 2]
        if not single and len(pair) == 2 and pair in PAIR_CODES:
            _add_day(days, PAIR_CODES[pair])
            i += 2
            continue
        day = LETTER_CODES.get(token[i])
        if day is None:
            return None
        _add_day(days, day)
        i += 1
    return days


def parse_days(days_str: str) -> List[str]:
    """
    Parse a day string into full weekday names.

    Accepted: 'Monday, Wednesday', 'Mon Wed Fri', 'Tu/Th', 'MWF', 'TR', 'TTH'.
    Single letters follow the registrar convention (T = Tuesday,
    R = Thursday). Input with any token we cannot decode is rejected
    as a whole and gives [].
    """
    if not days_str:
        return []

    upper = days_str.upper().strip()
    tokens = [t.rstrip(".") for t in re.split(r"[\s,/;&]+", upper) if t.strip(".")]

    days: List[str] = []
    for token in tokens:
        if token in DAY_NAMES:
            _add_day(days, DAY_NAMES[token])
            continue
        scanned = _scan_letter_codes(token)
        if scanned is None:
            return []
        for day in scanned:
            _add_day(days, day)

    return days


def _meridiem(text: str) -> Optional[str]:
    m = MERIDIEM_RE.search(text.upper())
    return f"{m.group(1)}M" if m else None


def parse_time(time_str: str) -> Optional[str]:
    """
    Parse '9:00 AM', '14:30' or '9:00-10:30' (keeps the start) into 'HH:MM'.
    Returns None for anything unparseable.
    """
    if not time_str:
        return None

    text = time_str.strip()
    if "-" in text:
        return parse_time(text.split("-", 1)[0].strip())

    m = CLOCK_RE.search(text)
    if not m:
        return None

    hours = int(m.group(1))
    minutes = int(m.group(2))

    meridiem = _meridiem(text)
    if meridiem == "PM" and hours != 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None

    return f"{hours:02d}:{minutes:02d}"


def parse_time_range(text: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse '1:00-2:15 PM' / '9:30 AM - 10:45 AM' / '14:00 to 15:15' into
    ('HH:MM', 'HH:MM'). A start without AM/PM borrows the end's suffix as
    long as that keeps start before end.
    """
    if not text:
        return None, None

    parts = RANGE_SPLIT_RE.split(text.strip(), maxsplit=1)
    if len(parts) < 2:
        return parse_time(parts[0]), None

    start_raw, end_raw = parts[0].strip(), parts[1].strip()
    end = parse_time(end_raw)

    end_meridiem = _meridiem(end_raw)
    if _meridiem(start_raw) or not end_meridiem:
        return parse_time(start_raw), end

    start = parse_time(f"{start_raw} {end_meridiem}")
    if start and end and start > end:
        other = "AM" if end_meridiem == "PM" else "PM"
        start = parse_time(f"{start_raw} {other}")
    return start, end


def normalize_class_code(class_code: str) -> str:
    """
    'CS 201' -> 'CS201', 'cs-201' -> 'CS201'
    """
    if not class_code:
        return ""
    return re.sub(r"\s+", "", class_code).replace("-", "").upper()


def validate_class_data(record: ClassRecord) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if not record.class_code.strip():
        errors.append("Class code is required")
    if not record.class_name.strip():
        errors.append("Class name is required")
    if not record.days_of_week:
        errors.append("At least one day of week is required")
    if record.start_time and not TIME_FORMAT_RE.match(record.start_time):
        errors.append("Invalid start time format")
    if record.end_time and not TIME_FORMAT_RE.match(record.end_time):
        errors.append("Invalid end time format")

    return not errors, errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def convert_legacy_classes_to_course_drafts(classes: List[ClassRecord]) -> List[CourseDraft]:
    """
    Each flat record becomes one course with a single Lecture component.
    """
    return [
        CourseDraft(
            course_code=c.class_code or "",
            section_id=c.section or "0001",
            components=[
                ComponentDraft(
                    type=LECTURE,
                    days=list(c.days_of_week or []),
                    start_time=c.start_time or "",
                    end_time=c.end_time or "",
                    location=c.location or "",
                )
            ],
            course_name=c.class_name or "",
            professor=c.professor or "",
            semester=c.semester or "",
        )
        for c in classes
    ]


def build_manual_course(
    course_code: str,
    course_name: str = "",
    professor: str = "",
    days: str = "",
    start: str = "",
    end: str = "",
    location: str = "",
    component_type: str = LECTURE,
    section_id: str = "0001",
    semester: str = "",
) -> CourseDraft:
    """
    A course typed in by hand. Days and times go through the same
    normalizers as imported files; anything given but unreadable raises
    InvalidEntryError.
    """
    code = (course_code or "").strip()
    if not code:
        raise InvalidEntryError("Class code is required")

    day_list = parse_days(days) if days.strip() else []
    if days.strip() and not day_list:
        raise InvalidEntryError(f"Could not read days: {days!r}")

    times = []
    for label, raw in (("start", start), ("end", end)):
        value = parse_time(raw) if raw.strip() else None
        if raw.strip() and value is None:
            raise InvalidEntryError(f"Could not read {label} time: {raw!r}")
        times.append(value or "")

    return CourseDraft(
        course_code=code,
        section_id=section_id.strip() or "0001",
        components=[
            ComponentDraft(
                type=component_type,
                days=day_list,
                start_time=times[0],
                end_time=times[1],
                location=location.strip(),
            )
        ],
        course_name=course_name.strip(),
        professor=professor.strip(),
        semester=semester.strip(),
    )


def load_schedule_text(name: str, content: str, mime_type: Optional[str] = None) -> ParsedSchedule:
    """
    Parse an imported file body, choosing the parser from the file name
    (or mime type). Raises UnsupportedFormatError / NoCoursesFoundError.
    """
    lower = (name or "").lower()
    mime = (mime_type or "").lower()

    if lower.endswith(".ics") or "calendar" in mime:
        records = parse_ical_file(content)
    elif lower.endswith(".csv") or "csv" in mime:
        records = parse_csv_file(content)
    else:
        raise UnsupportedFormatError(f"Unsupported schedule file: {name or '(unnamed)'}")

    courses = convert_legacy_classes_to_course_drafts(records)
    if not courses:
        raise NoCoursesFoundError(f"Could not find any courses in {name or 'the file'}")

    return ParsedSchedule(courses=courses, raw_text=content)


def load_schedule_file(path: str | Path) -> ParsedSchedule:
    p = Path(path)
    # utf-8-sig drops the BOM spreadsheet exports like to add
    content = p.read_text(encoding="utf-8-sig")
    return load_schedule_text(p.name, content)
