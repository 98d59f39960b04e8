import unittest
from unittest import mock

from schedmatch.errors import NoCoursesFoundError, OcrUnavailableError
from schedmatch.model import LAB, LECTURE, RECITATION, OcrResult
from schedmatch.structure import parse_schedule, parse_schedule_text, schedule_from_image

REGISTRATION_TEXT = """
CSC 305 - 0002  Software Engineering
Lecture  MWF  9:00 AM - 9:50 AM  Room: Tyler 055
Lab      R    2:00 PM - 3:50 PM  Room: Tyler 106
Instructor: Dr. Lee
"""


class TestParseScheduleText(unittest.TestCase):
    def test_course_with_lecture_and_lab(self) -> None:
        (course,) = parse_schedule_text(REGISTRATION_TEXT)
        self.assertEqual(course.course_code, "CSC 305")
        self.assertEqual(course.section_id, "0002")
        self.assertEqual(course.course_name, "Software Engineering")
        self.assertEqual(course.professor, "Dr. Lee")

        lecture, lab = course.components
        self.assertEqual(lecture.type, LECTURE)
        self.assertEqual(lecture.days, ["Monday", "Wednesday", "Friday"])
        self.assertEqual((lecture.start_time, lecture.end_time), ("09:00", "09:50"))
        self.assertEqual(lecture.location, "Tyler 055")

        self.assertEqual(lab.type, LAB)
        self.assertEqual(lab.days, ["Thursday"])
        self.assertEqual((lab.start_time, lab.end_time), ("14:00", "15:50"))
        self.assertTrue(course.is_chat_eligible)

    def test_code_letters_are_not_days(self) -> None:
        (course,) = parse_schedule_text("MTH 101 TR 1:00-2:15 PM")
        self.assertEqual(course.course_code, "MTH 101")
        self.assertEqual(course.section_id, "0001")
        self.assertEqual(course.course_name, "")
        (comp,) = course.components
        self.assertEqual(comp.type, LECTURE)
        self.assertEqual(comp.days, ["Tuesday", "Thursday"])
        self.assertEqual((comp.start_time, comp.end_time), ("13:00", "14:15"))

    def test_section_label_and_recitation_only(self) -> None:
        text = "PHYS 211 Section: 0104\nRecitation  F  10:00 AM - 10:50 AM"
        (course,) = parse_schedule_text(text)
        self.assertEqual(course.section_id, "0104")
        self.assertEqual([c.type for c in course.components], [RECITATION])
        self.assertFalse(course.is_chat_eligible)

    def test_same_section_is_merged(self) -> None:
        text = "BIO 110 - 0001 Biology\nLecture TR 9:30 AM - 10:45 AM\nBIO 110 - 0001\nLab W 1:00 PM - 3:00 PM"
        (course,) = parse_schedule_text(text)
        self.assertEqual([c.type for c in course.components], [LECTURE, LAB])
        self.assertEqual(course.course_name, "Biology")

    def test_room_code_is_not_a_course(self) -> None:
        text = "CSC 305 - 0002 Software Engineering\nLecture MWF 9:00 AM - 9:50 AM Room: ENG 101"
        (course,) = parse_schedule_text(text)
        self.assertEqual(course.course_code, "CSC 305")
        (lecture,) = course.components
        self.assertEqual(lecture.days, ["Monday", "Wednesday", "Friday"])
        self.assertEqual(lecture.location, "ENG 101")

    def test_component_section_labels_are_not_courses(self) -> None:
        text = (
            "CS 201 Data Structures\n"
            "LEC 001 MWF 9:00 AM - 9:50 AM\n"
            "LAB 002 R 2:00 PM - 3:50 PM Room: SCI 104\n"
        )
        (course,) = parse_schedule_text(text)
        self.assertEqual(course.course_code, "CS 201")
        self.assertEqual([c.type for c in course.components], [LECTURE, LAB])
        self.assertEqual(course.components[0].days, ["Monday", "Wednesday", "Friday"])
        self.assertEqual(course.components[1].days, ["Thursday"])
        self.assertEqual(course.components[1].location, "SCI 104")

    def test_text_without_courses(self) -> None:
        self.assertEqual(parse_schedule_text("Welcome back!\nSecond semester overview"), [])


class TestParseSchedule(unittest.TestCase):
    def test_unavailable_or_blank(self) -> None:
        self.assertEqual(parse_schedule(OcrResult(raw_text="CSC 305", available=False)).courses, [])
        self.assertEqual(parse_schedule(OcrResult(raw_text="   ")).courses, [])

    def test_schedule_from_image(self) -> None:
        parsed = schedule_from_image("shot.png", recognizer=lambda uri: {"text": REGISTRATION_TEXT})
        self.assertEqual(len(parsed.courses), 1)

    def test_schedule_from_image_errors(self) -> None:
        with mock.patch("schedmatch.ocr.is_ocr_available", return_value=False):
            with self.assertRaises(OcrUnavailableError):
                schedule_from_image("shot.png")

        with self.assertRaises(NoCoursesFoundError):
            schedule_from_image("shot.png", recognizer=lambda uri: {"text": "nothing useful here"})


if __name__ == "__main__":
    unittest.main()
