"""Tests for sfquery.export module."""

import os

import pytest

from sfquery import export as export_mod
from sfquery.exceptions import ExportIOError
from sfquery.export import (
    CSV,
    TSV,
    ClipboardSink,
    FileSink,
    export_columns,
    format_records,
    quote,
    subquery_filename,
    subquery_json,
)
from sfquery.table import subquery_cell


class TestFormatRecords:
    def test_csv_quotes_and_doubles_embedded_quotes(self, records):
        """Cells are quoted and embedded quotes doubled; header is bare."""
        text = format_records(records, CSV)

        assert text == (
            "Id,Name,Owner.Name\n"
            '"001A","Acme","Ann"\n'
            '"001B","He said ""hi""","Bob"\n'
        )

    def test_tsv_uses_tabs(self):
        """The tab delimiter separates header and cells."""
        text = format_records([{"A": "x", "B": None}], TSV)

        assert text == 'A\tB\n"x"\t""\n'

    def test_subquery_columns_excluded(self, records):
        """Subquery summary columns never reach an export."""
        assert export_columns(records) == ["Id", "Name", "Owner.Name"]
        assert "Contacts" not in format_records(records)

    def test_falsy_scalars_are_kept(self):
        """Zero and false are written, not blanked."""
        text = format_records([{"N": 0, "B": False}])

        assert text == 'N,B\n"0","false"\n'

    def test_nested_value_written_as_json(self):
        """Nested objects beyond one level are written as compact JSON."""
        text = format_records([{"Owner": {"Manager": {"Name": "M"}}}])

        assert text == 'Owner.Manager\n"{""Name"":""M""}"\n'

    def test_empty_records_give_header_only(self):
        """No records gives an empty header line."""
        assert format_records([]) == "\n"

    def test_unsupported_delimiter(self, records):
        """Only comma and tab are accepted."""
        with pytest.raises(ValueError):
            format_records(records, ";")

    def test_quote(self):
        """quote() wraps and escapes a single value."""
        assert quote('a"b') == '"a""b"'
        assert quote(None) == '""'


class TestSubqueryJson:
    def test_filename_and_payload(self, records):
        """Subquery files are named after relationship and record Id."""
        cell = subquery_cell(records[0], "Contacts (Subquery)")

        assert subquery_filename(cell, records[0]) == "Contacts_001A.json"
        assert '"LastName": "Smith"' in subquery_json(cell)

    def test_filename_without_id(self, records):
        """Records without an Id fall back to 'record'."""
        cell = subquery_cell(records[0], "Contacts (Subquery)")

        assert subquery_filename(cell, {}) == "Contacts_record.json"


class TestFileSink:
    def test_writes_whole_file(self, tmp_path):
        """The target holds the full text and no temp file remains."""
        target = tmp_path / "out" / "export.csv"

        result = FileSink(target).write("a,b\n")

        assert result == str(target)
        assert target.read_text(encoding="utf-8") == "a,b\n"
        assert [p.name for p in target.parent.iterdir()] == ["export.csv"]

    def test_overwrites_existing(self, tmp_path):
        """An existing export is replaced."""
        target = tmp_path / "export.csv"
        target.write_text("old", encoding="utf-8")

        FileSink(target).write("new\n")

        assert target.read_text(encoding="utf-8") == "new\n"

    def test_failure_leaves_no_partial_file(self, tmp_path, monkeypatch):
        """A failed write keeps the old file and cleans up the temp file."""
        target = tmp_path / "export.csv"
        target.write_text("previous", encoding="utf-8")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(export_mod.os, "replace", boom)

        with pytest.raises(ExportIOError) as exc_info:
            FileSink(target).write("new content\n")

        assert "disk full" in str(exc_info.value)
        assert target.read_text(encoding="utf-8") == "previous"
        assert os.listdir(tmp_path) == ["export.csv"]


class TestClipboardSink:
    def test_copies_text(self, monkeypatch):
        """Text is handed to the clipboard."""
        copied = []
        monkeypatch.setattr(export_mod, "clipboard_set", copied.append)

        assert ClipboardSink().write("hello") == "clipboard"
        assert copied == ["hello"]

    def test_unavailable_clipboard_raises_export_error(self, monkeypatch):
        """A missing clipboard mechanism becomes ExportIOError."""
        def no_clipboard(text):
            raise export_mod.PyperclipException("no clipboard mechanism")

        monkeypatch.setattr(export_mod, "clipboard_set", no_clipboard)

        with pytest.raises(ExportIOError):
            ClipboardSink().write("hello")
