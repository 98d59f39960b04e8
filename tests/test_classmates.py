import unittest

from schedmatch.cache import QueryCache
from schedmatch.matching import ClassmateFinder, EnrollmentWriter
from tests.fakes import FakeSupabase


def _enrollment(id, user, cls, section, active=True):
    return {
        "id": id,
        "user_id": user,
        "class_id": cls,
        "section_id": section,
        "semester": "Fall 2026",
        "term_code": "2026FA",
        "is_active": active,
    }


TABLES = {
    "profiles": [
        {"id": "u1", "full_name": "Me"},
        {"id": "u2", "full_name": "Ana Ruiz", "username": "ana"},
        {"id": "u3", "full_name": "Ben Cho", "username": "ben"},
        {"id": "u5", "full_name": "Dee Park", "username": "dee"},
    ],
    "classes": [
        {"id": "c1", "class_code": "CS201", "class_name": "Data Structures"},
        {"id": "c2", "class_code": "MATH150", "class_name": "Calculus I"},
    ],
    "class_sections": [
        {"id": "s1", "class_id": "c1", "professor_name": "Dr. Lee"},
        {"id": "s2", "class_id": "c1", "professor_name": "Dr. Kim"},
        {"id": "s3", "class_id": "c2", "professor_name": "Dr. Ng"},
    ],
    "user_class_enrollments": [
        _enrollment("e1", "u1", "c1", "s1"),
        _enrollment("e2", "u1", "c2", "s3"),
        _enrollment("e3", "u2", "c1", "s1"),
        _enrollment("e4", "u2", "c2", "s3"),
        _enrollment("e5", "u3", "c1", "s2"),
        _enrollment("e6", "u4", "c1", "s1", active=False),
    ],
}


class TestClassmateFinder(unittest.TestCase):
    def setUp(self) -> None:
        self.db = FakeSupabase(TABLES)
        self.cache = QueryCache()
        self.finder = ClassmateFinder(self.db, "u1", self.cache)

    def test_classmates_in_one_class(self) -> None:
        mates = self.finder.find_classmates("c1")
        self.assertEqual(sorted(m.user_id for m in mates), ["u2", "u3"])

    def test_professor_filter(self) -> None:
        (mate,) = self.finder.find_classmates("c1", "Dr. Lee")
        self.assertEqual(mate.user_id, "u2")
        self.assertEqual(mate.profile["full_name"], "Ana Ruiz")
        self.assertEqual(mate.shared_classes[0].professor, "Dr. Lee")
        self.assertEqual(mate.shared_classes[0].class_code, "CS201")

    def test_all_classmates_folded_per_user(self) -> None:
        # u3 is in another section of CS201, so does not count
        (mate,) = self.finder.find_all_classmates()
        self.assertEqual(mate.user_id, "u2")
        self.assertEqual([c.class_code for c in mate.shared_classes], ["CS201", "MATH150"])
        self.assertEqual([c.professor for c in mate.shared_classes], ["Dr. Lee", "Dr. Ng"])

    def test_without_sections_whole_class_counts(self) -> None:
        for row in self.db.tables["user_class_enrollments"]:
            if row["user_id"] == "u1":
                row["section_id"] = None
        mates = self.finder.find_all_classmates()
        self.assertEqual(sorted(m.user_id for m in mates), ["u2", "u3"])

    def test_my_enrollments(self) -> None:
        self.assertEqual([e["id"] for e in self.finder.my_enrollments()], ["e1", "e2"])

    def test_no_user_or_class(self) -> None:
        anonymous = ClassmateFinder(self.db)
        self.assertEqual(anonymous.find_classmates("c1"), [])
        self.assertEqual(anonymous.find_all_classmates(), [])
        self.assertEqual(anonymous.my_enrollments(), [])
        self.assertEqual(self.finder.find_classmates(None), [])
        self.assertEqual(self.db.calls, [])

    def test_results_cached_until_enrollment_changes(self) -> None:
        self.finder.find_all_classmates()
        calls = len(self.db.calls)

        self.db.tables["user_class_enrollments"].append(_enrollment("e7", "u5", "c1", "s1"))
        self.assertEqual(len(self.finder.find_all_classmates()), 1)
        self.assertEqual(len(self.db.calls), calls)

        EnrollmentWriter(self.db, "u1", self.cache).enroll_in_class("c1", "s1", semester="Fall 2026")
        mates = self.finder.find_all_classmates()
        self.assertEqual(sorted(m.user_id for m in mates), ["u2", "u5"])


if __name__ == "__main__":
    unittest.main()
