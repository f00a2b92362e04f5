"""
Buffer readers for importable file formats

Available readers:
- ParquetReader: .parquet
- CSVReader: .csv
- JSONReader: .json
- JSONLReader: .ndjson
"""

from pathlib import PurePosixPath

from filequery.readers.base import BaseReader
from filequery.readers.csv_reader import CSVReader
from filequery.readers.json_reader import JSONReader
from filequery.readers.jsonl_reader import JSONLReader
from filequery.readers.parquet_reader import ParquetReader

__all__ = ["BaseReader", "CSVReader", "JSONReader", "JSONLReader", "ParquetReader", "get_reader"]

_READERS = (ParquetReader, CSVReader, JSONReader, JSONLReader)


def get_reader(path: str, data: bytes) -> BaseReader:
    """
    Get a reader for an imported file by its extension

    Args:
        path: Import path (extension matched case-insensitively)
        data: File contents

    Returns:
        Reader instance

    Raises:
        ValueError: If no reader handles the extension
    """
    suffix = PurePosixPath(path).suffix.lower()
    for reader_cls in _READERS:
        if suffix in reader_cls.extensions:
            return reader_cls(path, data)

    available = ", ".join(ext for reader_cls in _READERS for ext in reader_cls.extensions)
    raise ValueError(f"Unsupported file type: {path}. Supported: {available}")
