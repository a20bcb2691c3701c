import unittest
from datetime import date, datetime, timezone

from services import export, sample_data

NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


class LoadsWorkbookTests(unittest.TestCase):
    def setUp(self):
        self.loads = sample_data.sample_loads(NOW)

    def test_summary_and_timeline_sheets(self):
        workbook = export.build_loads_workbook(self.loads)

        self.assertEqual(workbook.sheetnames, ["Loads", "Timeline"])
        summary = workbook["Loads"]
        self.assertEqual([cell.value for cell in summary[1]], export.LOAD_HEADERS)
        self.assertEqual(summary.max_row, 1 + len(self.loads))
        self.assertEqual(summary.cell(row=2, column=3).value, "In Warehouse")
        self.assertEqual(summary.cell(row=2, column=6).value, "50x Electronics")

        timeline_rows = sum(len(load["timeline"]) for load in self.loads)
        self.assertEqual(workbook["Timeline"].max_row, 1 + timeline_rows)

    def test_board_sheet_for_a_day(self):
        workbook = export.build_loads_workbook(self.loads, day=date(2024, 3, 10))

        board = workbook["Board"]
        self.assertEqual(board["A1"].value, "Board for 2024-03-10")
        self.assertEqual(board.cell(row=2, column=4).value, "In Warehouse")
        self.assertEqual(board.cell(row=3, column=4).value, self.loads[0]["id"])
        self.assertEqual(board.cell(row=3, column=6).value, self.loads[1]["id"])
        self.assertEqual(board.cell(row=3, column=7).value, self.loads[2]["id"])

        rows = {row[0]: row for row in board.iter_rows(values_only=True) if row and row[0] in {"IN", "OUT"}}
        self.assertEqual(rows["IN"][1], 2)
        self.assertEqual(rows["OUT"][1], 1)
        self.assertEqual(rows["OUT"][2], self.loads[2]["id"])

    def test_empty_export_still_has_headers(self):
        workbook = export.build_loads_workbook([])

        self.assertEqual(workbook["Loads"].max_row, 1)


if __name__ == "__main__":
    unittest.main()
