"""
Confirmation step logic.

Before anything is written, the user sees the parsed courses split in two:
- section courses: have a Lecture, can join the section chat (on by default)
- saved for later: labs / recitations only, stored but never get a chat
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from schedmatch.model import CourseDraft


def partition_courses(courses: Iterable[CourseDraft]) -> Tuple[List[CourseDraft], List[CourseDraft]]:
    section_courses: List[CourseDraft] = []
    metadata_courses: List[CourseDraft] = []
    for course in courses:
        if course.is_chat_eligible:
            section_courses.append(course)
        else:
            metadata_courses.append(course)
    return section_courses, metadata_courses


def default_selected_sections(courses: Iterable[CourseDraft]) -> Set[str]:
    return {c.section_key for c in courses if c.is_chat_eligible}


def toggle_section(selected: Set[str], section_key: str) -> Set[str]:
    updated = set(selected)
    if section_key in updated:
        updated.remove(section_key)
    else:
        updated.add(section_key)
    return updated


def describe_course(course: CourseDraft) -> str:
    """
    'CSC 305 | Section 0002 | Software Engineering | Lecture Monday, Wednesday 09:00-09:50 @ Tyler 055'
    """
    bits = [course.course_code or "(no code)", f"Section {course.section_id}"]
    if course.course_name:
        bits.append(course.course_name)
    if course.professor:
        bits.append(course.professor)
    for c in course.components:
        when = f"{c.start_time}-{c.end_time}" if c.start_time or c.end_time else ""
        part = " ".join(x for x in [c.type, ", ".join(c.days), when] if x)
        if c.location:
            part += f" @ {c.location}"
        bits.append(part)
    return " | ".join(bits)
