import base64
import io
import unittest

import pytest
from openpyxl import Workbook

from services import file_intake
from services.errors import ValidationError


def _xlsx_bytes(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


class ParseItemsTests(unittest.TestCase):
    def test_csv_uses_column_aliases(self):
        raw = b"Item Description,Qty\nWidgets,12\nBolts,\n,3\n"

        items = file_intake.parse_items(raw, "csv")

        self.assertEqual(
            items,
            [
                {"description": "Widgets", "quantity": 12},
                {"description": "Bolts", "quantity": 0},
            ],
        )

    def test_xlsx_rows_become_items(self):
        raw = _xlsx_bytes([["Description", "Quantity"], ["Pallets", 4], ["Drums", "1,200"]])

        items = file_intake.parse_items(raw, "xlsx")

        self.assertEqual(
            items,
            [
                {"description": "Pallets", "quantity": 4},
                {"description": "Drums", "quantity": 1200},
            ],
        )

    def test_missing_description_column_yields_nothing(self):
        self.assertEqual(file_intake.parse_items(b"sku,qty\nA1,3\n", "csv"), [])

    def test_opaque_types_are_not_parsed(self):
        self.assertEqual(file_intake.parse_items(b"%PDF-1.4", "pdf"), [])

    def test_corrupt_workbook_is_a_validation_error(self):
        with self.assertRaises(ValidationError) as ctx:
            file_intake.parse_items(b"not a zip archive", "xlsx")

        self.assertIn("file", ctx.exception.errors)


def test_file_draft_from_csv_manifest():
    draft = file_intake.build_file_draft(
        {
            "file_name": "Manifest.CSV",
            "content": b"desc,units\nTiles,30\n",
            "sender_company": "Acme Ltd",
        }
    )

    assert draft["sender"]["company"] == "Acme Ltd"
    assert draft["receiver"]["company"] == file_intake.DEFAULT_RECEIVER_COMPANY
    assert draft["items"] == [{"description": "Tiles", "quantity": 30}]
    assert draft["attachment"] == {"file_name": "Manifest.CSV", "file_type": "csv", "size_bytes": 20}


def test_file_draft_rejects_unsupported_and_missing_names():
    with pytest.raises(ValidationError) as excinfo:
        file_intake.build_file_draft({"file_name": "payload.exe", "content": b"MZ"})
    assert excinfo.value.errors == {"file_name": "Unsupported file type."}

    with pytest.raises(ValidationError):
        file_intake.build_file_draft({"file_name": "  ", "content": b""})


def test_decode_file_buffer_accepts_data_urls():
    encoded = base64.b64encode(b"hello").decode("ascii")

    assert file_intake.decode_file_buffer(encoded) == b"hello"
    assert file_intake.decode_file_buffer(f"data:text/plain;base64,{encoded}") == b"hello"
    assert file_intake.decode_file_buffer(None) == b""


def test_decode_file_buffer_rejects_garbage():
    with pytest.raises(ValidationError) as excinfo:
        file_intake.decode_file_buffer("@@not-base64@@")

    assert "file_buffer" in excinfo.value.errors


if __name__ == "__main__":
    unittest.main()
