import unittest

from schedmatch.parse import parse_csv_file


class TestParseCSV(unittest.TestCase):
    def test_header_row_is_skipped(self) -> None:
        text = "Code,Name\nCS201,Data Structures,Dr. Lee,MWF,9:00 AM,10:15 AM,Tyler 101,0001"
        records = parse_csv_file(text)
        self.assertEqual(len(records), 1)
        r = records[0]
        self.assertEqual(r.class_code, "CS201")
        self.assertEqual(r.class_name, "Data Structures")
        self.assertEqual(r.professor, "Dr. Lee")
        self.assertEqual(r.days_of_week, ["Monday", "Wednesday", "Friday"])
        self.assertEqual(r.start_time, "09:00")
        self.assertEqual(r.end_time, "10:15")
        self.assertEqual(r.location, "Tyler 101")
        self.assertEqual(r.section, "0001")

    def test_class_header_and_quoted_fields(self) -> None:
        text = (
            "Class Code,Class Name,Professor,Days\n"
            'ENG 102,"Writing, Research",Dr. Ames,"Tue, Thu",1:00 PM,2:15 PM\n'
        )
        (r,) = parse_csv_file(text)
        self.assertEqual(r.class_name, "Writing, Research")
        self.assertEqual(r.days_of_week, ["Tuesday", "Thursday"])
        self.assertEqual(r.start_time, "13:00")
        self.assertEqual(r.location, "")
        self.assertEqual(r.section, "")

    def test_no_header_keeps_first_row(self) -> None:
        text = "CS201,Data Structures\nMATH150,Calculus"
        self.assertEqual([r.class_code for r in parse_csv_file(text)], ["CS201", "MATH150"])

    def test_rows_without_code_are_dropped(self) -> None:
        text = "Code,Name\n ,Orphan row\nsingle-field\nBIO110,Biology"
        self.assertEqual([r.class_code for r in parse_csv_file(text)], ["BIO110"])

    def test_bad_time_becomes_none(self) -> None:
        (r,) = parse_csv_file("CS201,Data Structures,,MWF,noon,later")
        self.assertIsNone(r.start_time)
        self.assertIsNone(r.end_time)

    def test_empty_input(self) -> None:
        self.assertEqual(parse_csv_file(""), [])


if __name__ == "__main__":
    unittest.main()
