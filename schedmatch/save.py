"""
Saving a confirmed schedule.

For every course on the confirmation step:
1. find or create the catalog class + section (ClassMatcher)
2. store every lecture / lab / recitation of the section
3. enroll the user (EnrollmentWriter)
4. if the user kept the section selected and it has a Lecture, add them
   to the section's group chat

Courses are processed one after another; a backend error stops the save
and propagates, courses already saved stay saved.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from postgrest.exceptions import APIError

from schedmatch.matching import ClassMatcher, EnrollmentWriter, execute, first_row, get_current_semester
from schedmatch.model import ComponentDraft, CourseDraft, SaveSummary

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def join_section_chat(supabase, section_id: Any, user_id: str) -> bool:
    """
    Add the user to the chat of a section. Returns False when the section
    has no chat yet. Being a participant already counts as joined.
    """
    chat = first_row(
        execute(
            supabase.table("section_chats").select("id").eq("section_id", section_id).limit(1),
            "Section chat lookup",
        )
    )
    if not chat:
        return False

    try:
        supabase.table("chat_participants").insert({"chat_id": chat["id"], "user_id": user_id}).execute()
    except APIError as e:
        if e.code != UNIQUE_VIOLATION:
            logger.error(f"Joining chat {chat['id']} failed: {e}")
            raise
    return True


def _section_details(course: CourseDraft) -> Optional[ComponentDraft]:
    """
    The component whose days / time / room describe the section: the
    Lecture when it has any, else the first component that does.
    """
    primary = course.primary_component()
    if primary is not None and (primary.days or primary.start_time or primary.location):
        return primary
    for comp in course.components:
        if comp.days or comp.start_time or comp.location:
            return comp
    return primary


def save_schedule(
    courses: List[CourseDraft],
    selected_sections: Iterable[str],
    matcher: ClassMatcher,
    enroller: EnrollmentWriter,
    semester: Optional[str] = None,
    term_code: Optional[str] = None,
) -> List[SaveSummary]:
    selected = set(selected_sections)
    default_semester = semester or get_current_semester()
    summaries: List[SaveSummary] = []

    for course in courses:
        if not course.course_code.strip():
            logger.warning("Skipping course without a code")
            continue

        course_semester = course.semester or default_semester
        component = _section_details(course)

        match = matcher.match_class(
            class_code=course.course_code,
            class_name=course.course_name,
            professor=course.professor,
            semester=course_semester,
            days=component.days if component else None,
            start_time=component.start_time if component else None,
            end_time=component.end_time if component else None,
            location=component.location if component else "",
        )
        component_ids = []
        if match.section_id is not None:
            component_ids = matcher.save_components(match.section_id, course.components)

        enrollment = enroller.enroll_in_class(
            match.class_id,
            match.section_id,
            semester=course_semester,
            term_code=term_code,
        )

        joined = False
        if course.section_key in selected and course.is_chat_eligible and match.section_id:
            joined = join_section_chat(matcher.supabase, match.section_id, matcher.user_id)

        summaries.append(
            SaveSummary(
                course_code=course.course_code,
                section_id=course.section_id,
                class_id=match.class_id,
                class_section_id=match.section_id,
                enrollment_id=(enrollment or {}).get("id"),
                component_ids=component_ids,
                joined_chat=joined,
            )
        )

    logger.info(f"Saved {len(summaries)} course(s)")
    return summaries
