"""
Tests for preview building and streamed CSV export
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pyarrow as pa
import pytest

from filequery.core.errors import ExportError, ValidationError
from filequery.core.results import (
    CSVExporter,
    CSVExportOptions,
    escape_csv_field,
    format_cell,
    to_csv,
    to_preview,
    write_csv,
)


def make_batch(columns):
    return pa.RecordBatch.from_pydict(columns)


async def agen(items):
    for item in items:
        yield item


class TestFormatCell:
    """Test value formatting"""

    def test_scalars(self):
        assert format_cell(None) == ""
        assert format_cell(True) == "true"
        assert format_cell(False) == "false"
        assert format_cell(42) == "42"
        assert format_cell("text") == "text"
        assert format_cell(1.5) == "1.5"

    def test_big_integer_exact(self):
        assert format_cell(2**63 - 1) == "9223372036854775807"
        assert format_cell(10**30) == "1" + "0" * 30

    def test_temporal(self):
        assert format_cell(date(2024, 1, 15)) == "2024-01-15"
        assert format_cell(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00"

    def test_decimal_and_bytes(self):
        assert format_cell(Decimal("1.20")) == "1.20"
        assert format_cell(b"\x01\xff") == "01ff"

    def test_nested(self):
        assert format_cell({"a": [1, 2]}) == '{"a":[1,2]}'
        assert format_cell([{"d": date(2024, 1, 1)}]) == '[{"d":"2024-01-01"}]'


class TestPreview:
    """Test capped previews"""

    def test_cap(self):
        table = pa.table({"n": list(range(500))})
        preview = to_preview(table, limit=200)
        assert len(preview.rows) == 200
        assert preview.total_rows == 500
        assert preview.truncated
        assert preview.rows[0] == ["0"]

    def test_small_result(self):
        table = pa.table({"a": [1, None], "b": ["x", "y"]})
        preview = to_preview(table)
        assert preview.columns == ["a", "b"]
        assert preview.rows == [["1", "x"], ["", "y"]]
        assert not preview.truncated
        assert preview.to_records() == [{"a": "1", "b": "x"}, {"a": "", "b": "y"}]

    def test_zero_limit(self):
        preview = to_preview(pa.table({"a": [1, 2]}), limit=0)
        assert preview.rows == []
        assert preview.columns == ["a"]

    def test_negative_limit(self):
        with pytest.raises(ValidationError):
            to_preview(pa.table({"a": [1]}), limit=-1)


class TestEscape:
    def test_plain(self):
        assert escape_csv_field("abc") == "abc"

    def test_quoted(self):
        assert escape_csv_field('say "hi"') == '"say ""hi"""'
        assert escape_csv_field("a,b") == '"a,b"'
        assert escape_csv_field("a\nb") == '"a\nb"'
        assert escape_csv_field("a\rb") == '"a\rb"'


class TestCSVExport:
    """Test streamed export"""

    @pytest.mark.anyio
    async def test_roundtrip_through_csv_module(self):
        batch = make_batch({"name": ['a "q"', "b,c", "line\nbreak", None], "n": [1, 2, 3, 4]})
        export = await to_csv(agen([batch]))

        rows = list(csv.reader(io.StringIO(export.text, newline="")))
        assert rows == [
            ["name", "n"],
            ['a "q"', "1"],
            ["b,c", "2"],
            ["line\nbreak", "3"],
            ["", "4"],
        ]
        assert export.row_count == 4
        assert export.column_count == 2
        assert export.text.endswith("\r\n")

    @pytest.mark.anyio
    async def test_without_header(self):
        export = await to_csv([make_batch({"a": [1]})], CSVExportOptions(include_header=False))
        assert export.text == "1\r\n"

    @pytest.mark.anyio
    async def test_empty_result_keeps_header(self):
        batch = pa.RecordBatch.from_pydict({"a": pa.array([], pa.int64()), "b": pa.array([], pa.string())})
        export = await to_csv([batch])
        assert export.text == "a,b\r\n"
        assert export.row_count == 0
        assert export.column_count == 2

    @pytest.mark.anyio
    async def test_no_batches(self):
        with pytest.raises(ExportError):
            await to_csv(agen([]))

    @pytest.mark.anyio
    async def test_chunks_end_on_row_boundary(self):
        batches = [make_batch({"v": [f"value-{i}" for i in range(start, start + 50)]}) for start in (0, 50, 100)]
        export = await to_csv(agen(batches), CSVExportOptions(chunk_size=64))

        assert len(export.chunks) > 1
        for chunk in export.chunks:
            assert chunk.endswith("\r\n")
        # Only the last chunk may be shorter than the chunk size
        for chunk in export.chunks[:-1]:
            assert len(chunk) >= 64
        assert export.row_count == 150
        assert export.text.count("\r\n") == 151

    @pytest.mark.anyio
    async def test_concatenation_independent_of_chunk_size(self):
        batches = [make_batch({"a": list(range(20)), "b": ["x,y"] * 20})]
        small = await to_csv(batches, CSVExportOptions(chunk_size=1))
        large = await to_csv(batches, CSVExportOptions(chunk_size=10_000))
        assert small.text == large.text
        assert len(large.chunks) == 1

    def test_invalid_chunk_size(self):
        with pytest.raises(ValidationError):
            CSVExportOptions(chunk_size=0)

    @pytest.mark.anyio
    async def test_counts_after_iteration(self):
        exporter = CSVExporter()
        async for _ in exporter.chunks([make_batch({"a": [1, 2]}), make_batch({"a": [3]})]):
            pass
        assert exporter.row_count == 3
        assert exporter.column_count == 1


class TestWriteCSV:
    @pytest.mark.anyio
    async def test_writes_file(self, tmp_path):
        target = tmp_path / "out.csv"
        result = await write_csv([make_batch({"a": [1, 2]})], target)
        assert target.read_bytes() == b"a\r\n1\r\n2\r\n"
        assert result.row_count == 2
        assert list(tmp_path.iterdir()) == [target]

    @pytest.mark.anyio
    async def test_failure_leaves_no_file(self, tmp_path):
        target = tmp_path / "out.csv"
        with pytest.raises(ExportError):
            await write_csv([], target)
        assert list(tmp_path.iterdir()) == []
