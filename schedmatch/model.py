"""
Central data model definitions used across the project.

This module defines the canonical structure of the objects that flow through
the import pipeline so that:
- parsers, OCR, matching and the CLI share the same field names
- the flat file-import shape (ClassRecord) and the structured shape
  (CourseDraft / ComponentDraft) stay clearly separated
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


LECTURE = "Lecture"
LAB = "Lab"
RECITATION = "Recitation"

COMPONENT_TYPES = (LECTURE, LAB, RECITATION)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass
class ClassRecord:
    """
    One class as produced by the .ics / .csv parsers (flat legacy shape).

    Only class_code is required; everything else may be empty.
    """

    class_code: str = ""
    class_name: str = ""
    professor: str = ""
    days_of_week: List[str] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: str = ""
    semester: str = ""
    section: str = ""


@dataclass
class ComponentDraft:
    """
    One meeting pattern of a course (lecture, lab or recitation).
    """

    type: str = LECTURE
    days: List[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    location: str = ""


@dataclass
class CourseDraft:
    """
    One course + section as shown on the confirmation step.
    """

    course_code: str
    section_id: str = "0001"
    components: List[ComponentDraft] = field(default_factory=list)
    course_name: str = ""
    professor: str = ""
    semester: str = ""

    @property
    def section_key(self) -> str:
        return f"{self.course_code}-{self.section_id}"

    @property
    def is_chat_eligible(self) -> bool:
        # Labs and recitations are kept for reference but never create a chat.
        return any(c.type == LECTURE for c in self.components)

    def primary_component(self) -> Optional[ComponentDraft]:
        for c in self.components:
            if c.type == LECTURE:
                return c
        return self.components[0] if self.components else None


@dataclass
class ParsedSchedule:
    courses: List[CourseDraft] = field(default_factory=list)
    raw_text: str = ""


@dataclass
class BoundingBox:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass
class TextBlock:
    text: str
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    confidence: Optional[float] = None


@dataclass
class OcrResult:
    """
    Output of the OCR adapter.

    available=False means the text recognizer could not run at all, which
    is different from "ran and found no text".
    """

    raw_text: str = ""
    blocks: List[TextBlock] = field(default_factory=list)
    image_uri: str = ""
    available: bool = True


@dataclass
class MatchResult:
    class_id: Any
    section_id: Any
    class_row: Dict[str, Any]


@dataclass
class SharedClass:
    class_id: Any = None
    class_code: Optional[str] = None
    class_name: Optional[str] = None
    professor: Optional[str] = None


@dataclass
class Classmate:
    """
    Another user who shares at least one active enrollment (never stored).
    """

    user_id: Any
    profile: Optional[Dict[str, Any]]
    shared_classes: List[SharedClass] = field(default_factory=list)


@dataclass
class SaveSummary:
    course_code: str
    section_id: str
    class_id: Any
    class_section_id: Any
    enrollment_id: Any
    component_ids: List[Any] = field(default_factory=list)
    joined_chat: bool = False
