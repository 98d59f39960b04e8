"""
Schedule structuring (OCR text -> CourseDraft list).

OCR output from a registration screen is a loose sequence of lines like

    CSC 305 - 0002  Software Engineering
    Lecture  MWF  9:00 AM - 9:50 AM  Room: Tyler 055
    Lab      R    2:00 PM - 3:50 PM  Room: Tyler 106
    Instructor: Dr. Lee

We walk the lines once, keeping a "current course" and a "current
component". A course-code line opens a course, a component keyword opens a
component, and day tokens / time ranges / room labels fill the current
component. Times without a component keyword become a Lecture.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from schedmatch.errors import NoCoursesFoundError, OcrUnavailableError
from schedmatch.model import LAB, LECTURE, RECITATION, ComponentDraft, CourseDraft, OcrResult, ParsedSchedule
from schedmatch.ocr import Recognizer, extract_text_from_image
from schedmatch.parse import DAY_NAMES, parse_days, parse_time_range


COURSE_RE = re.compile(r"\b([A-Z]{2,4})\s?-?\s?(\d{3}[A-Z]?)\b(?:\s*[-–]\s*(\d[0-9A-Z]{1,4})\b)?")
SECTION_RE = re.compile(r"\b(?:Section|Sec\.?)\s*[:#]?\s*([A-Z]?\d[0-9A-Z]{0,4})\b", re.IGNORECASE)
TIME_RANGE_RE = re.compile(
    r"\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?\s*(?:-|–|—|\bto\b)\s*\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?"
)
LOCATION_RE = re.compile(r"\b(?:Room|Rm\.?|Location|Loc\.?|Bldg\.?|Building)\s*[:#]?\s*(.+)$", re.IGNORECASE)
LOCATION_LABEL_RE = re.compile(r"^(?:Room|Rm\.?|Location|Loc\.?|Bldg\.?|Building)\b", re.IGNORECASE)
PROFESSOR_RE = re.compile(r"\b(?:Instructor|Professor|Prof\.)\s*:?\s*(.+)$", re.IGNORECASE)

COMPONENT_WORD_RE = re.compile(r"\b(Lecture|Laboratory|Lab|Recitation|Discussion)\b", re.IGNORECASE)
COMPONENT_ABBR_RE = re.compile(r"\b(LEC|LE|LAB|LA|REC|DIS|DI)\b")

COMPONENT_MAP = {
    "LECTURE": LECTURE,
    "LEC": LECTURE,
    "LE": LECTURE,
    "LABORATORY": LAB,
    "LAB": LAB,
    "LA": LAB,
    "RECITATION": RECITATION,
    "DISCUSSION": RECITATION,
    "REC": RECITATION,
    "DIS": RECITATION,
    "DI": RECITATION,
}

DAY_RUN_RE = re.compile(r"^(?:M|Tu|TU|T|W|Th|TH|R|F|Sa|SA|S|Su|SU|U)+$")

# Building / meridiem / component words that look like department prefixes
NON_DEPT_WORDS = {
    "ROOM", "RM", "HALL", "BLDG", "AM", "PM", "SEC", "TERM",
    "LEC", "LE", "LAB", "LA", "REC", "DIS", "DI",
}


# ---------------------------------------------------------------------------
# Line-level matchers
# ---------------------------------------------------------------------------


def _course_cutoff(line: str) -> int:
    """
    Position of the first component keyword, time range or room label.
    A course code only counts before it ('Lecture ... Room: ENG 101').
    """
    cut = len(line)
    for pattern in (COMPONENT_WORD_RE, COMPONENT_ABBR_RE, TIME_RANGE_RE, LOCATION_RE):
        m = pattern.search(line)
        if m:
            cut = min(cut, m.start())
    return cut


def _match_course(line: str) -> Optional[re.Match]:
    if LOCATION_LABEL_RE.match(line) or PROFESSOR_RE.match(line):
        return None
    cutoff = _course_cutoff(line)
    for m in COURSE_RE.finditer(line):
        if m.start() >= cutoff:
            break
        if m.group(1) not in NON_DEPT_WORDS:
            return m
    return None


def _component_type(line: str) -> Optional[str]:
    m = COMPONENT_WORD_RE.search(line) or COMPONENT_ABBR_RE.search(line)
    if not m:
        return None
    return COMPONENT_MAP[m.group(1).upper()]


def _is_day_token(token: str) -> bool:
    if not token:
        return False
    if token.upper() not in DAY_NAMES and not DAY_RUN_RE.match(token):
        return False
    return bool(parse_days(token))


def _day_tokens(line: str) -> List[str]:
    tokens = [t.strip(".,;|") for t in re.split(r"[\s/]+", line)]
    days: List[str] = []
    for token in tokens:
        if _is_day_token(token):
            for day in parse_days(token):
                if day not in days:
                    days.append(day)
    return days


def _only_days(line: str) -> bool:
    tokens = [t.strip(".,;|") for t in re.split(r"[\s/]+", line) if t.strip(".,;|")]
    return bool(tokens) and all(_is_day_token(t) for t in tokens)


def _course_name(rest: str) -> str:
    cut = len(rest)
    for pattern in (COMPONENT_WORD_RE, COMPONENT_ABBR_RE, TIME_RANGE_RE, SECTION_RE, LOCATION_RE):
        m = pattern.search(rest)
        if m:
            cut = min(cut, m.start())
    name = rest[:cut].strip(" -–:|,\t")
    if not re.search(r"[A-Za-z]{2,}", name) or _only_days(name):
        return ""
    return name


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def _merge_courses(courses: List[CourseDraft]) -> List[CourseDraft]:
    """
    Merge drafts that share a course code + section, keeping first-seen order.
    """
    merged: Dict[str, CourseDraft] = {}
    for course in courses:
        if not course.course_code:
            continue
        existing = merged.get(course.section_key)
        if existing is None:
            merged[course.section_key] = course
            continue
        existing.components.extend(course.components)
        existing.course_name = existing.course_name or course.course_name
        existing.professor = existing.professor or course.professor
    return list(merged.values())


def parse_schedule_text(raw_text: str) -> List[CourseDraft]:
    courses: List[CourseDraft] = []
    course: Optional[CourseDraft] = None
    component: Optional[ComponentDraft] = None

    for raw_line in (raw_text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        m = _match_course(line)
        if m:
            dept, number, section = m.group(1), m.group(2), m.group(3)
            course = CourseDraft(course_code=f"{dept} {number}", section_id=section or "0001")
            course.course_name = _course_name(line[m.end() :])
            courses.append(course)
            component = None

        if course is None:
            continue

        section_m = SECTION_RE.search(line)
        if section_m and not (m and m.group(3)):
            course.section_id = section_m.group(1).upper()

        prof_m = PROFESSOR_RE.search(line)
        if prof_m:
            course.professor = prof_m.group(1).strip()
            continue

        kind = _component_type(line)
        if kind:
            component = ComponentDraft(type=kind)
            course.components.append(component)

        time_m = TIME_RANGE_RE.search(line)
        if time_m:
            if component is None or component.start_time:
                component = ComponentDraft(type=LECTURE)
                course.components.append(component)
            start, end = parse_time_range(time_m.group(0))
            component.start_time = start or ""
            component.end_time = end or ""

        if time_m or _only_days(line):
            # 'MTH 101' must not read as Monday/Thursday
            days = _day_tokens(line[: m.start()] + " " + line[m.end() :] if m else line)
            if days:
                if component is None:
                    component = ComponentDraft(type=LECTURE)
                    course.components.append(component)
                component.days = days

        loc_m = LOCATION_RE.search(line)
        if loc_m and component is not None:
            component.location = loc_m.group(1).strip()

    return _merge_courses(courses)


def parse_schedule(ocr_result: OcrResult) -> ParsedSchedule:
    """
    Structure OCR output into CourseDrafts. Empty or unavailable OCR
    results give an empty schedule.
    """
    if not ocr_result.available or not ocr_result.raw_text.strip():
        return ParsedSchedule(courses=[], raw_text=ocr_result.raw_text)
    return ParsedSchedule(courses=parse_schedule_text(ocr_result.raw_text), raw_text=ocr_result.raw_text)


def schedule_from_image(image_uri: str, recognizer: Optional[Recognizer] = None) -> ParsedSchedule:
    """
    Photo -> OCR -> courses. Raises OcrUnavailableError when text
    recognition could not run, NoCoursesFoundError when it ran but
    nothing usable came out.
    """
    result = extract_text_from_image(image_uri, recognizer)
    if not result.available:
        raise OcrUnavailableError(f"Could not run text recognition on {image_uri}")

    parsed = parse_schedule(result)
    if not parsed.courses:
        raise NoCoursesFoundError(f"Could not find any courses in {image_uri}")
    return parsed
