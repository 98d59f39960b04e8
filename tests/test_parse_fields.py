"""
Unit tests for field normalizers and file dispatch.
"""

import tempfile
import unittest
from pathlib import Path

from schedmatch.errors import InvalidEntryError, NoCoursesFoundError, UnsupportedFormatError
from schedmatch.model import LAB, LECTURE, ClassRecord
from schedmatch.parse import (
    build_manual_course,
    convert_legacy_classes_to_course_drafts,
    load_schedule_file,
    load_schedule_text,
    normalize_class_code,
    parse_days,
    parse_time,
    parse_time_range,
    validate_class_data,
)


class TestParseTime(unittest.TestCase):
    def test_meridiem(self) -> None:
        self.assertEqual(parse_time("2:30 PM"), "14:30")
        self.assertEqual(parse_time("12:00 AM"), "00:00")
        self.assertEqual(parse_time("12:15 pm"), "12:15")
        self.assertEqual(parse_time("9:05 a.m."), "09:05")

    def test_range_keeps_start(self) -> None:
        self.assertEqual(parse_time("9:00-10:30"), "09:00")

    def test_invalid(self) -> None:
        self.assertIsNone(parse_time("garbage"))
        self.assertIsNone(parse_time(""))
        self.assertIsNone(parse_time("25:00"))

    def test_time_range_borrows_end_meridiem(self) -> None:
        self.assertEqual(parse_time_range("1:00-2:15 PM"), ("13:00", "14:15"))
        self.assertEqual(parse_time_range("11:00 - 12:15 PM"), ("11:00", "12:15"))
        self.assertEqual(parse_time_range("9:30 AM - 10:45 AM"), ("09:30", "10:45"))
        self.assertEqual(parse_time_range("14:00 to 15:15"), ("14:00", "15:15"))


class TestParseDays(unittest.TestCase):
    def test_full_and_short_names(self) -> None:
        self.assertEqual(parse_days("Monday, Wednesday"), ["Monday", "Wednesday"])
        self.assertEqual(parse_days("Mon Wed Fri"), ["Monday", "Wednesday", "Friday"])
        self.assertEqual(parse_days("Tu/Th"), ["Tuesday", "Thursday"])

    def test_letter_codes(self) -> None:
        self.assertEqual(parse_days("MWF"), ["Monday", "Wednesday", "Friday"])
        self.assertEqual(parse_days("TR"), ["Tuesday", "Thursday"])
        self.assertEqual(parse_days("TTH"), ["Tuesday", "Thursday"])

    def test_full_week_run(self) -> None:
        self.assertEqual(
            parse_days("MTWRFSU"),
            ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
        )
        self.assertEqual(parse_days("RS"), ["Thursday", "Saturday"])

    def test_ambiguous_sunday_run_rejected(self) -> None:
        self.assertEqual(parse_days("MWFSU"), [])
        self.assertEqual(parse_days("Sat Su"), ["Saturday", "Sunday"])

    def test_undecodable_rejects_everything(self) -> None:
        self.assertEqual(parse_days("Mon Xyz"), [])
        self.assertEqual(parse_days(""), [])


class TestClassCode(unittest.TestCase):
    def test_normalize(self) -> None:
        self.assertEqual(normalize_class_code("cs - 201"), "CS201")
        self.assertEqual(normalize_class_code("CS 201"), "CS201")
        self.assertEqual(normalize_class_code(""), "")

    def test_validate(self) -> None:
        ok, errors = validate_class_data(ClassRecord("CS201", "Data Structures", days_of_week=["Monday"]))
        self.assertTrue(ok)
        self.assertEqual(errors, [])

        ok, errors = validate_class_data(ClassRecord("", "", start_time="9am"))
        self.assertFalse(ok)
        self.assertIn("Class code is required", errors)
        self.assertIn("Invalid start time format", errors)


class TestManualCourse(unittest.TestCase):
    def test_fields_are_normalized(self) -> None:
        course = build_manual_course(
            " CHEM 101 ", course_name="General Chemistry", days="TR", start="2:00 PM", end="3:50 PM",
            location="Lab B", component_type=LAB, section_id="0101",
        )
        self.assertEqual((course.course_code, course.section_id), ("CHEM 101", "0101"))
        (comp,) = course.components
        self.assertEqual(comp.type, LAB)
        self.assertEqual(comp.days, ["Tuesday", "Thursday"])
        self.assertEqual((comp.start_time, comp.end_time), ("14:00", "15:50"))
        self.assertFalse(course.is_chat_eligible)

    def test_blank_fields_stay_blank(self) -> None:
        course = build_manual_course("CS201")
        self.assertEqual(course.section_id, "0001")
        self.assertEqual(course.components[0].type, LECTURE)
        self.assertEqual(course.components[0].days, [])
        self.assertEqual(course.components[0].start_time, "")

    def test_unreadable_input_raises(self) -> None:
        with self.assertRaises(InvalidEntryError):
            build_manual_course("  ")
        with self.assertRaises(InvalidEntryError):
            build_manual_course("CS201", days="Mon Xyz")
        with self.assertRaises(InvalidEntryError):
            build_manual_course("CS201", start="25:00")


class TestLoadSchedule(unittest.TestCase):
    def test_convert_to_drafts(self) -> None:
        record = ClassRecord("CS201", "Data Structures", "Dr. Lee", ["Monday"], "09:00", "10:15", "Tyler 101")
        (draft,) = convert_legacy_classes_to_course_drafts([record])
        self.assertEqual(draft.section_id, "0001")
        self.assertEqual(draft.components[0].type, LECTURE)
        self.assertEqual(draft.components[0].start_time, "09:00")
        self.assertTrue(draft.is_chat_eligible)

    def test_unsupported_format(self) -> None:
        with self.assertRaises(UnsupportedFormatError):
            load_schedule_text("schedule.txt", "CS201,Data Structures")

    def test_no_courses(self) -> None:
        with self.assertRaises(NoCoursesFoundError):
            load_schedule_text("schedule.csv", "Code,Name\n")

    def test_mime_type_dispatch(self) -> None:
        parsed = load_schedule_text("download", "CS201,Data Structures", mime_type="text/csv; charset=utf-8")
        self.assertEqual(parsed.courses[0].course_code, "CS201")

    def test_load_file_strips_bom(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "classes.csv"
            p.write_text("\ufeffCode,Name\nCS201,Data Structures\n", encoding="utf-8")
            parsed = load_schedule_file(p)
            self.assertEqual([c.course_code for c in parsed.courses], ["CS201"])


if __name__ == "__main__":
    unittest.main()
