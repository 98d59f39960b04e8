import tempfile
import unittest
from datetime import date
from pathlib import Path

from schedmatch.export_ics import export_courses_to_ics
from schedmatch.model import LAB, ComponentDraft, CourseDraft
from schedmatch.parse import parse_ical_file


def _course():
    return CourseDraft(
        "CSC 305",
        "0002",
        [
            ComponentDraft(days=["Monday", "Wednesday", "Friday"], start_time="09:00", end_time="09:50", location="Tyler 055"),
            ComponentDraft(type=LAB, days=["Thursday"], start_time="14:00", end_time="15:50"),
            ComponentDraft(type=LAB, days=["Friday"]),
        ],
        course_name="Software Engineering",
        professor="Dr. Lee",
    )


class TestExportICS(unittest.TestCase):
    def test_export_creates_file_and_contains_calendar(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            n = export_courses_to_ics([_course()], out, week_of=date(2026, 10, 21), weeks=15)
            self.assertEqual(n, 2)
            text = out.read_bytes().decode("utf-8")

        self.assertIn("BEGIN:VCALENDAR\r\n", text)
        self.assertEqual(text.count("BEGIN:VEVENT"), 2)
        self.assertIn("SUMMARY:CSC 305 Software Engineering\r\n", text)
        self.assertIn("SUMMARY:CSC 305 Software Engineering (Lab)\r\n", text)
        # week of Wed 2026-10-21 starts on Monday 2026-10-19
        self.assertIn("DTSTART:20261019T090000", text)
        self.assertIn("DTSTART:20261022T140000", text)
        self.assertIn("RRULE:FREQ=WEEKLY;BYDAY=MO,WE,FR;COUNT=45", text)

    def test_export_reads_back(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            export_courses_to_ics([_course()], out, week_of=date(2026, 10, 19))
            records = parse_ical_file(out.read_text(encoding="utf-8"))

        lecture, lab = records
        self.assertEqual(lecture.class_code, "CSC 305")
        self.assertEqual(lecture.class_name, "Software Engineering")
        self.assertEqual(lecture.professor, "Dr. Lee")
        self.assertEqual(lecture.section, "0002")
        self.assertEqual(lecture.days_of_week, ["Monday", "Wednesday", "Friday"])
        self.assertEqual((lecture.start_time, lecture.end_time), ("09:00", "09:50"))
        self.assertEqual(lecture.location, "Tyler 055")
        self.assertEqual(lab.days_of_week, ["Thursday"])


if __name__ == "__main__":
    unittest.main()
