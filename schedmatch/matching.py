"""
Class matching, enrollment and classmate discovery against the backend.

Tables:
    profiles                 (id, university_id, full_name, ...)
    classes                  (id, university_id, class_code, class_name, department)
    class_sections           (id, class_id, professor_name, semester, days_of_week, ...)
    course_components        (id, section_id, component_type, days, start_time, end_time, location)
    user_class_enrollments   (id, user_id, class_id, section_id, semester, term_code, is_active)

Every find-or-create is a read followed by a write with no lock or unique
constraint behind it. Two saves racing on a brand-new class code can both
miss the read and both insert; last writer wins on class_name.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from schedmatch.cache import QueryCache
from schedmatch.errors import AuthenticationRequiredError, UniversityNotFoundError
from schedmatch.model import Classmate, ComponentDraft, MatchResult, SharedClass
from schedmatch.parse import normalize_class_code

logger = logging.getLogger(__name__)


DEPARTMENTS = {
    "CS": "Computer Science",
    "MATH": "Mathematics",
    "ENG": "English",
    "HIST": "History",
    "BIO": "Biology",
    "CHEM": "Chemistry",
    "PHYS": "Physics",
    "PSY": "Psychology",
    "ECON": "Economics",
    "BUS": "Business",
    "MKT": "Marketing",
    "FIN": "Finance",
    "ACCT": "Accounting",
}

PROFILE_FIELDS = "id, full_name, username, avatar_url, major, grade"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def extract_department(class_code: str) -> Optional[str]:
    """
    'CS201' -> 'Computer Science'; unknown prefixes come back as-is.
    """
    m = re.match(r"^([A-Z]+)", normalize_class_code(class_code))
    if not m:
        return None
    return DEPARTMENTS.get(m.group(1), m.group(1))


def get_current_semester(today: Optional[date] = None) -> str:
    """
    'Spring 2026' (Jan-May), 'Summer 2026' (Jun-Aug), 'Fall 2026' (Sep-Dec)
    """
    today = today or date.today()
    if today.month <= 5:
        return f"Spring {today.year}"
    if today.month <= 8:
        return f"Summer {today.year}"
    return f"Fall {today.year}"


def get_current_term_code(today: Optional[date] = None) -> str:
    """
    '2026SP', '2026SU' or '2026FA', same buckets as get_current_semester.
    """
    today = today or date.today()
    if today.month <= 5:
        return f"{today.year}SP"
    if today.month <= 8:
        return f"{today.year}SU"
    return f"{today.year}FA"


def execute(query, action: str):
    """
    Run a query builder. Backend errors are logged and re-raised unchanged.
    """
    try:
        return query.execute()
    except Exception as e:
        logger.error(f"{action} failed: {e}")
        raise


def first_row(response) -> Optional[Dict[str, Any]]:
    data = getattr(response, "data", None)
    return data[0] if data else None


def _or_code_filter(*codes: str) -> str:
    # quoted so codes with spaces or commas stay one value
    unique = list(dict.fromkeys(codes))
    return ",".join(f'class_code.eq."{c}"' for c in unique)


class _BackendService:
    def __init__(self, supabase, user_id: Optional[str] = None, cache: Optional[QueryCache] = None) -> None:
        self.supabase = supabase
        self.user_id = user_id
        self.cache = cache if cache is not None else QueryCache()

    def _require_user(self) -> str:
        if not self.user_id:
            raise AuthenticationRequiredError("User must be authenticated")
        return self.user_id


# ---------------------------------------------------------------------------
# Class matcher
# ---------------------------------------------------------------------------


class ClassMatcher(_BackendService):
    """
    Find or create the catalog class and section for one parsed class.
    """

    def university_id(self) -> Any:
        user_id = self._require_user()
        profile = first_row(
            execute(
                self.supabase.table("profiles").select("university_id").eq("id", user_id).limit(1),
                "University lookup",
            )
        )
        if not profile or not profile.get("university_id"):
            raise UniversityNotFoundError("User university not found")
        return profile["university_id"]

    def match_class(
        self,
        class_code: str,
        class_name: str = "",
        professor: str = "",
        semester: str = "",
        days: Optional[List[str]] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        location: str = "",
    ) -> MatchResult:
        self._require_user()
        normalized = normalize_class_code(class_code)
        if not normalized:
            raise ValueError("class_code is required")

        university_id = self.university_id()

        existing = first_row(
            execute(
                self.supabase.table("classes")
                .select("*")
                .eq("university_id", university_id)
                .or_(_or_code_filter(class_code.strip(), normalized))
                .limit(1),
                "Class lookup",
            )
        )

        if existing:
            class_row = dict(existing)
            class_id = class_row["id"]
            if class_name and class_name != class_row.get("class_name"):
                execute(
                    self.supabase.table("classes").update({"class_name": class_name}).eq("id", class_id),
                    "Class name update",
                )
                class_row["class_name"] = class_name
        else:
            class_row = first_row(
                execute(
                    self.supabase.table("classes").insert(
                        {
                            "university_id": university_id,
                            "class_code": normalized,
                            "class_name": class_name or "",
                            "department": extract_department(normalized),
                        }
                    ),
                    "Class insert",
                )
            )
            class_id = class_row["id"]
            logger.info(f"Created class {normalized} ({class_id})")

        section_id = None
        if professor or days or start_time or location:
            section_id = self._find_or_create_section(
                class_id, professor, semester, days, start_time, end_time, location
            )

        self.cache.invalidate("classes", "enrollments")
        return MatchResult(class_id=class_id, section_id=section_id, class_row=class_row)

    def _find_or_create_section(
        self,
        class_id: Any,
        professor: str,
        semester: str,
        days: Optional[List[str]],
        start_time: Optional[str],
        end_time: Optional[str],
        location: str,
    ) -> Any:
        # Identity is (class, professor, semester); missing values are stored
        # as '' so the lookup can find them again.
        existing = first_row(
            execute(
                self.supabase.table("class_sections")
                .select("id")
                .eq("class_id", class_id)
                .eq("professor_name", professor or "")
                .eq("semester", semester or "")
                .limit(1),
                "Section lookup",
            )
        )
        if existing:
            return existing["id"]

        created = first_row(
            execute(
                self.supabase.table("class_sections").insert(
                    {
                        "class_id": class_id,
                        "professor_name": professor or "",
                        "semester": semester or "",
                        "days_of_week": list(days or []),
                        "start_time": start_time or None,
                        "end_time": end_time or None,
                        "location": location or None,
                    }
                ),
                "Section insert",
            )
        )
        logger.info(f"Created section {created['id']} for class {class_id}")
        return created["id"]

    def save_components(self, section_id: Any, components: List[ComponentDraft]) -> List[Any]:
        """
        Store every meeting pattern (lecture, lab, recitation) of a section.
        A component is identified by (section, type, start time); existing
        rows are left as they are.
        """
        self._require_user()
        ids: List[Any] = []
        for comp in components:
            query = (
                self.supabase.table("course_components")
                .select("id")
                .eq("section_id", section_id)
                .eq("component_type", comp.type)
            )
            if comp.start_time:
                query = query.eq("start_time", comp.start_time)
            else:
                query = query.is_("start_time", "null")

            existing = first_row(execute(query.limit(1), "Component lookup"))
            if existing:
                ids.append(existing["id"])
                continue

            created = first_row(
                execute(
                    self.supabase.table("course_components").insert(
                        {
                            "section_id": section_id,
                            "component_type": comp.type,
                            "days": list(comp.days),
                            "start_time": comp.start_time or None,
                            "end_time": comp.end_time or None,
                            "location": comp.location or None,
                        }
                    ),
                    "Component insert",
                )
            )
            ids.append(created["id"])

        return ids


# ---------------------------------------------------------------------------
# Enrollment writer
# ---------------------------------------------------------------------------


class EnrollmentWriter(_BackendService):
    def enroll_in_class(
        self,
        class_id: Any,
        section_id: Any = None,
        semester: Optional[str] = None,
        term_code: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Link the user to a class for a semester. An existing row for the
        same (user, class, semester) is returned as-is, even when the
        section or term code differ.
        """
        user_id = self._require_user()
        semester = semester or get_current_semester(today)

        existing = first_row(
            execute(
                self.supabase.table("user_class_enrollments")
                .select("*")
                .eq("user_id", user_id)
                .eq("class_id", class_id)
                .eq("semester", semester)
                .limit(1),
                "Enrollment lookup",
            )
        )
        if existing:
            self.cache.invalidate("enrollments", "classmates", "all-classmates")
            return existing

        row = first_row(
            execute(
                self.supabase.table("user_class_enrollments").insert(
                    {
                        "user_id": user_id,
                        "class_id": class_id,
                        "section_id": section_id or None,
                        "semester": semester,
                        "term_code": term_code or get_current_term_code(today),
                        "is_active": True,
                    }
                ),
                "Enrollment insert",
            )
        )
        logger.info(f"Enrolled {user_id} in class {class_id} ({semester})")
        self.cache.invalidate("enrollments", "classmates", "all-classmates")
        return row

    def set_active(self, enrollment_id: Any, is_active: bool) -> Optional[Dict[str, Any]]:
        """
        Soft-enable or soft-disable one of the user's enrollments.
        """
        user_id = self._require_user()
        row = first_row(
            execute(
                self.supabase.table("user_class_enrollments")
                .update({"is_active": is_active})
                .eq("id", enrollment_id)
                .eq("user_id", user_id),
                "Enrollment update",
            )
        )
        self.cache.invalidate("enrollments", "classmates", "all-classmates")
        return row


# ---------------------------------------------------------------------------
# Classmate finder
# ---------------------------------------------------------------------------


def _fold_by_user(rows: List[Dict[str, Any]]) -> List[Classmate]:
    classmates: Dict[Any, Classmate] = {}
    for row in rows:
        user_id = row.get("user_id")
        classmate = classmates.get(user_id)
        if classmate is None:
            classmate = Classmate(user_id=user_id, profile=row.get("profiles"))
            classmates[user_id] = classmate

        cls = row.get("class") or {}
        section = row.get("section") or {}
        classmate.shared_classes.append(
            SharedClass(
                class_id=row.get("class_id"),
                class_code=cls.get("class_code"),
                class_name=cls.get("class_name"),
                professor=section.get("professor_name"),
            )
        )
    return list(classmates.values())


class ClassmateFinder(_BackendService):
    SELECT = (
        "user_id, class_id, section_id, "
        f"profiles:user_id ({PROFILE_FIELDS}), "
        "class:class_id (class_code, class_name), "
        "section:section_id (professor_name)"
    )

    def my_enrollments(self) -> List[Dict[str, Any]]:
        if not self.user_id:
            return []
        key = ("enrollments", self.user_id)
        return self.cache.fetch(key, self._load_enrollments)

    def _load_enrollments(self) -> List[Dict[str, Any]]:
        response = execute(
            self.supabase.table("user_class_enrollments")
            .select("id, class_id, section_id, semester, term_code")
            .eq("user_id", self.user_id)
            .eq("is_active", True),
            "Enrollment list",
        )
        return response.data or []

    def find_classmates(self, class_id: Any, professor_name: Optional[str] = None) -> List[Classmate]:
        """
        Other active students in one class, optionally only those in the
        same professor's section.
        """
        if not self.user_id or not class_id:
            return []
        key = ("classmates", class_id, professor_name, self.user_id)
        return self.cache.fetch(key, lambda: self._load_classmates(class_id, professor_name))

    def _load_classmates(self, class_id: Any, professor_name: Optional[str]) -> List[Classmate]:
        rows = (
            execute(
                self.supabase.table("user_class_enrollments")
                .select(self.SELECT)
                .eq("class_id", class_id)
                .eq("is_active", True)
                .neq("user_id", self.user_id),
                "Classmate lookup",
            ).data
            or []
        )
        if professor_name:
            rows = [r for r in rows if (r.get("section") or {}).get("professor_name") == professor_name]
        return _fold_by_user(rows)

    def find_all_classmates(self) -> List[Classmate]:
        """
        Everyone sharing at least one of the user's active classes, with the
        list of shared classes per person. When the user has sections on
        record, only people in those sections count.
        """
        if not self.user_id:
            return []
        key = ("all-classmates", self.user_id)
        return self.cache.fetch(key, self._load_all_classmates)

    def _load_all_classmates(self) -> List[Classmate]:
        enrollments = self.my_enrollments()
        if not enrollments:
            return []

        class_ids = list(dict.fromkeys(e["class_id"] for e in enrollments))
        section_ids = list(dict.fromkeys(e["section_id"] for e in enrollments if e.get("section_id")))

        query = (
            self.supabase.table("user_class_enrollments")
            .select(self.SELECT)
            .in_("class_id", class_ids)
            .eq("is_active", True)
            .neq("user_id", self.user_id)
        )
        if section_ids:
            query = query.in_("section_id", section_ids)

        rows = execute(query, "Classmate lookup").data or []
        return _fold_by_user(rows)
