"""
FileQuery - query local data files with SQL

Import a folder of Parquet, CSV, JSON and NDJSON files into an in-memory
DuckDB database and query them by path, from the command line or an
interactive terminal workbench.
"""

__version__ = "0.1.0"

# Main API
from filequery.core.collector import ImportedFile, collect, is_supported_file_path
from filequery.core.errors import (
    EngineError,
    ExportError,
    FileImportError,
    FileQueryError,
    ValidationError,
)
from filequery.core.results import CSVExportOptions, format_cell, stream_csv, to_csv, to_preview
from filequery.core.sorting import compare_cells, sort_rows
from filequery.core.statements import locate_statement
from filequery.core.workbench import Workbench

__all__ = [
    "__version__",
    "CSVExportOptions",
    "EngineError",
    "ExportError",
    "FileImportError",
    "FileQueryError",
    "ImportedFile",
    "ValidationError",
    "Workbench",
    "collect",
    "compare_cells",
    "format_cell",
    "is_supported_file_path",
    "locate_statement",
    "sort_rows",
    "stream_csv",
    "to_csv",
    "to_preview",
]
