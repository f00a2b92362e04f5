"""
NDJSON reader for line-delimited JSON buffers
"""

import json
import warnings

import pyarrow as pa

from filequery.readers.base import BaseReader, records_to_table


class JSONLReader(BaseReader):
    """
    Reader for NDJSON (JSON Lines) buffers.

    Format:
    {"id": 1, "name": "Alice"}
    {"id": 2, "name": "Bob"}

    Blank lines are ignored; malformed or non-object lines are skipped
    with a warning.
    """

    extensions = (".ndjson",)

    def __init__(self, path: str, data: bytes, encoding: str = "utf-8"):
        super().__init__(path, data)
        self.encoding = encoding

    def read_records(self) -> list:
        records = []
        text = self.data.decode(self.encoding)
        for line_num, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                warnings.warn(f"Skipping invalid JSON at {self.path}:{line_num}", UserWarning)
                continue
            if not isinstance(row, dict):
                warnings.warn(f"Skipping non-object row at {self.path}:{line_num}", UserWarning)
                continue
            records.append(row)
        return records

    def read_table(self) -> pa.Table:
        return records_to_table(self.read_records())
