"""
Result formatting: capped preview tables and streamed CSV export

Both paths share format_cell(), so a value looks the same on screen and in
the exported file. The preview reads a bounded slice of an Arrow table; the
export walks an unbounded stream of record batches and hands back CSV text
in chunks that always end on a row boundary.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, List, Optional, Union

import pyarrow as pa

from filequery.core.errors import ExportError, ValidationError
from filequery.core.types import to_iso

DEFAULT_PREVIEW_LIMIT = 200
DEFAULT_CHUNK_SIZE = 1_000_000
LINE_TERMINATOR = "\r\n"

_QUOTE_TRIGGERS = ('"', ",", "\n", "\r")

BatchSource = Union[AsyncIterator[pa.RecordBatch], Iterable[pa.RecordBatch]]


@dataclass
class PreviewTable:
    """First rows of a result, every cell already formatted"""

    columns: List[str]
    rows: List[List[str]]
    total_rows: int = 0

    @property
    def truncated(self) -> bool:
        return self.total_rows > len(self.rows)

    def to_records(self) -> List[dict]:
        """Rows as dictionaries keyed by column name"""
        return [dict(zip(self.columns, row)) for row in self.rows]


@dataclass
class CSVExportOptions:
    include_header: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValidationError(f"chunk_size must be positive, got {self.chunk_size}")


@dataclass
class CSVExport:
    """Complete CSV document as ordered chunks"""

    chunks: List[str] = field(default_factory=list)
    row_count: int = 0
    column_count: int = 0

    @property
    def text(self) -> str:
        return "".join(self.chunks)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return to_iso(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def format_cell(value: Any) -> str:
    """
    Format a single value for display or export

    Args:
        value: Python value produced by Arrow's as_py()

    Returns:
        Text form of the value; None becomes an empty string

    Examples:
        >>> format_cell(None)
        ''
        >>> format_cell(2**63 - 1)
        '9223372036854775807'
        >>> format_cell({"a": [1, 2]})
        '{"a":[1,2]}'
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return to_iso(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def to_preview(table: pa.Table, limit: int = DEFAULT_PREVIEW_LIMIT) -> PreviewTable:
    """
    Build a preview of at most `limit` rows

    Args:
        table: Arrow table returned by the engine
        limit: Maximum number of rows to read

    Returns:
        PreviewTable with formatted cells and the true row count
    """
    if limit < 0:
        raise ValidationError(f"limit must not be negative, got {limit}")

    columns = list(table.schema.names)
    head = table.slice(0, limit)
    column_values = [head.column(idx).to_pylist() for idx in range(len(columns))]

    rows = [
        [format_cell(values[row_idx]) for values in column_values]
        for row_idx in range(head.num_rows)
    ]
    return PreviewTable(columns=columns, rows=rows, total_rows=table.num_rows)


def escape_csv_field(text: str) -> str:
    """Quote a field only when it holds a quote, comma or line break"""
    if any(ch in text for ch in _QUOTE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


def _csv_line(values: Iterable[str]) -> str:
    return ",".join(escape_csv_field(v) for v in values) + LINE_TERMINATOR


async def _aiter_batches(batches: BatchSource) -> AsyncIterator[pa.RecordBatch]:
    if hasattr(batches, "__aiter__"):
        async for batch in batches:
            yield batch
    else:
        for batch in batches:
            yield batch


class CSVExporter:
    """
    Streaming CSV writer over record batches

    Counts are updated as batches are consumed, so after a full iteration
    of chunks() they describe the whole export.

    Example:
        >>> exporter = CSVExporter()
        >>> async for chunk in exporter.chunks(engine.query_stream(sql)):
        ...     out.write(chunk)
    """

    def __init__(self, options: Optional[CSVExportOptions] = None):
        self.options = options or CSVExportOptions()
        self.row_count = 0
        self.column_count = 0
        self.schema_seen = False

    async def chunks(self, batches: BatchSource) -> AsyncIterator[str]:
        """
        Yield CSV chunks of roughly options.chunk_size characters

        Raises:
            ExportError: If the stream ends without a single batch
        """
        buffer: List[str] = []
        buffered = 0

        async for batch in _aiter_batches(batches):
            if not self.schema_seen:
                self.schema_seen = True
                names = list(batch.schema.names)
                self.column_count = len(names)
                if self.options.include_header:
                    line = _csv_line(names)
                    buffer.append(line)
                    buffered += len(line)

            column_values = [batch.column(idx).to_pylist() for idx in range(batch.num_columns)]
            for row_idx in range(batch.num_rows):
                line = _csv_line(format_cell(values[row_idx]) for values in column_values)
                buffer.append(line)
                buffered += len(line)
                self.row_count += 1

                if buffered >= self.options.chunk_size:
                    yield "".join(buffer)
                    buffer = []
                    buffered = 0

            # A header-only first batch may already exceed a tiny chunk size
            if buffered >= self.options.chunk_size:
                yield "".join(buffer)
                buffer = []
                buffered = 0

        if not self.schema_seen:
            raise ExportError("Nothing to export: the query produced no result schema")

        if buffer:
            yield "".join(buffer)


def stream_csv(batches: BatchSource, options: Optional[CSVExportOptions] = None) -> AsyncIterator[str]:
    """Chunks of the CSV document; stop iterating to cancel"""
    return CSVExporter(options).chunks(batches)


async def to_csv(batches: BatchSource, options: Optional[CSVExportOptions] = None) -> CSVExport:
    """
    Export a full batch stream to CSV

    Args:
        batches: Async or plain iterable of Arrow record batches
        options: Header and chunk size settings

    Returns:
        CSVExport with all chunks and whole-result row/column counts

    Raises:
        ExportError: If no batch was ever observed
    """
    exporter = CSVExporter(options)
    chunks = [chunk async for chunk in exporter.chunks(batches)]
    return CSVExport(chunks=chunks, row_count=exporter.row_count, column_count=exporter.column_count)


async def write_csv(
    batches: BatchSource,
    path: Union[str, Path],
    options: Optional[CSVExportOptions] = None,
) -> CSVExport:
    """
    Stream an export into a file

    Chunks go to a temporary file next to `path` that replaces it only once
    the stream completes, so a failed export never leaves a partial file.

    Returns:
        CSVExport carrying the counts (chunks are not retained)
    """
    target = Path(path)
    exporter = CSVExporter(options)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            async for chunk in exporter.chunks(batches):
                f.write(chunk)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return CSVExport(row_count=exporter.row_count, column_count=exporter.column_count)
