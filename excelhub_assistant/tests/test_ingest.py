import base64
import io

import pandas as pd
import pytest

from excelhub_assistant.app.errors import IngestionError
from excelhub_assistant.app.ingest import (
    WORKBOOK_ERROR,
    FileKind,
    classify,
    data_url_payload,
    ingest_file,
    sniff_delimiter,
)
from excelhub_assistant.app.utils import decode_text

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-image-bytes"


def make_workbook(rows):
    buf = io.BytesIO()
    pd.DataFrame(rows).to_excel(buf, header=False, index=False)
    return buf.getvalue()


class TestClassify:

    def test_image_by_mime(self):
        assert classify("photo.jpeg", "image/jpeg") == FileKind.IMAGE
        # MIME type wins over extension
        assert classify("table.csv", "image/png") == FileKind.IMAGE

    def test_tabular_by_extension(self):
        assert classify("sales.csv", "text/csv") == FileKind.DELIMITED
        assert classify("SALES.CSV", "") == FileKind.DELIMITED
        assert classify("book.xlsx", None) == FileKind.WORKBOOK
        assert classify("legacy.xls", "application/vnd.ms-excel") == FileKind.WORKBOOK

    def test_everything_else_is_opaque(self):
        assert classify("notes.pdf", "application/pdf") == FileKind.OPAQUE
        assert classify("", None) == FileKind.OPAQUE


class TestImages:

    def test_content_is_data_url_payload(self):
        data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
        ingested = ingest_file("shot.png", "image/png", PNG_BYTES)

        assert ingested.kind == FileKind.IMAGE
        assert ingested.content == data_url_payload(data_url)
        assert ingested.preview is None
        assert ingested.message == "Image file loaded successfully!"

    def test_data_url_payload_splits_on_first_comma(self):
        assert data_url_payload("data:text/plain;base64,AAA,BBB") == "AAA,BBB"
        assert data_url_payload("no-comma") == ""


class TestCsv:

    def test_header_row_becomes_keys(self):
        ingested = ingest_file("data.csv", "text/csv", b"a,b\n1,2\n")
        assert ingested.content == [{"a": "1", "b": "2"}]
        assert ingested.message == "CSV file loaded successfully!"

    def test_empty_lines_skipped(self):
        ingested = ingest_file("data.csv", "text/csv", b"a,b\n1,2\n\n3,4\n\n")
        assert ingested.content == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_values_stay_strings(self):
        ingested = ingest_file("data.csv", "text/csv", b"id,price,note\n007,1.50,\n")
        assert ingested.content == [{"id": "007", "price": "1.50", "note": ""}]

    def test_bom_and_latin1(self):
        ingested = ingest_file("a.csv", "", "name\nJosé\n".encode("latin-1"))
        assert ingested.content == [{"name": "José"}]
        ingested = ingest_file("a.csv", "", "\ufeffname\nJosé\n".encode("utf-8"))
        assert ingested.content == [{"name": "José"}]

    def test_semicolon_delimiter(self):
        ingested = ingest_file("data.csv", "text/csv", b"a;b\n1;2\n")
        assert ingested.content == [{"a": "1", "b": "2"}]
        assert ingested.preview["headers"] == ["a", "b"]

    def test_tab_delimiter(self):
        ingested = ingest_file("data.csv", "text/csv", b"a\tb\n1\t2\n")
        assert ingested.content == [{"a": "1", "b": "2"}]

    def test_comma_wins_over_semicolon_in_values(self):
        ingested = ingest_file("data.csv", "text/csv", b"a,b\nx;y,2\n")
        assert ingested.content == [{"a": "x;y", "b": "2"}]

    def test_empty_file(self):
        assert ingest_file("empty.csv", "text/csv", b"").content == []

    def test_preview(self):
        body = "n\n" + "\n".join(str(i) for i in range(10)) + "\n"
        preview = ingest_file("nums.csv", "text/csv", body.encode()).preview
        assert preview["headers"] == ["n"]
        assert len(preview["rows"]) == 6
        assert preview["total_rows"] == 10


class TestWorkbook:

    def test_first_sheet_as_row_arrays(self):
        data = make_workbook([["Name", "Qty"], ["Apple", 3], ["Pear", None]])
        ingested = ingest_file("stock.xlsx", "", data)

        assert ingested.kind == FileKind.WORKBOOK
        # Header row is kept as data
        assert ingested.content == [["Name", "Qty"], ["Apple", 3], ["Pear", None]]
        assert ingested.message == "Excel file loaded successfully!"

    def test_only_first_sheet(self):
        buf = io.BytesIO()
        with pd.ExcelWriter(buf) as writer:
            pd.DataFrame([["first"]]).to_excel(writer, sheet_name="One", header=False, index=False)
            pd.DataFrame([["second"]]).to_excel(writer, sheet_name="Two", header=False, index=False)
        assert ingest_file("two.xlsx", "", buf.getvalue()).content == [["first"]]

    def test_preview_is_header_aware(self):
        data = make_workbook([["Name", "Qty"], ["Apple", 3], ["Pear", 5]])
        preview = ingest_file("stock.xlsx", "", data).preview
        assert preview["headers"] == ["Name", "Qty"]
        assert preview["rows"] == [["Apple", 3], ["Pear", 5]]
        assert preview["total_rows"] == 3

    def test_malformed_bytes(self):
        with pytest.raises(IngestionError) as exc:
            ingest_file("broken.xlsx", "", b"this is not a workbook")
        assert exc.value.message == WORKBOOK_ERROR
        assert exc.value.status_code == 400


class TestOpaque:

    def test_no_content(self):
        ingested = ingest_file("report.pdf", "application/pdf", b"%PDF-1.4")
        assert ingested.kind == FileKind.OPAQUE
        assert ingested.content is None
        assert ingested.message == "File uploaded successfully!"


class TestDecoding:

    def test_utf8_bom_stripped(self):
        assert decode_text("\ufeffSumme".encode("utf-8")) == "Summe"

    def test_invalid_utf8_falls_back_to_latin1(self):
        raw = bytes(range(0x80, 0x100))
        assert decode_text(raw) == raw.decode("latin-1")
        assert "\ufffd" not in decode_text(raw)

    @pytest.mark.parametrize("text,expected", [("a|b\n1|2", "|"), ("name\nJosé", ","), ("", ",")])
    def test_sniff_delimiter(self, text, expected):
        assert sniff_delimiter(text) == expected
