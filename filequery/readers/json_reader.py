"""
JSON reader for standard JSON buffers
"""

import io
import json
from typing import Any, List, Optional

import pandas as pd
import pyarrow as pa

from filequery.readers.base import BaseReader, records_to_table


class JSONReader(BaseReader):
    """
    Reader for standard JSON buffers.

    Supports:
    - Array of objects: [{"a": 1}, {"a": 2}]
    - Object with records key: {"data": [{"a": 1}, ...], "meta": ...}
    - Column-oriented objects: {"a": [1, 2], "b": [3, 4]} (via pandas)
    - A single object, read as one row
    """

    extensions = (".json",)

    def __init__(self, path: str, data: bytes, records_key: Optional[str] = None, encoding: str = "utf-8"):
        """
        Args:
            path: Import path of the file
            data: File contents
            records_key: Key containing the list of records (e.g., "data", "records").
                        If None, attempts to auto-detect or expects root to be a list.
            encoding: Text encoding (default: utf-8)
        """
        super().__init__(path, data)
        self.records_key = records_key
        self.encoding = encoding

    def _find_records(self, payload: Any) -> Optional[List[Any]]:
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, dict):
            return None
        if self.records_key is not None:
            records = payload.get(self.records_key)
            if not isinstance(records, list):
                raise ValueError(f"Key '{self.records_key}' in {self.path} is not a list")
            return records
        for key in ("data", "records", "rows", "items", "results"):
            if isinstance(payload.get(key), list):
                return payload[key]
        return None

    def read_table(self) -> pa.Table:
        text = self.data.decode(self.encoding)
        payload = json.loads(text)
        records = self._find_records(payload)

        if records is not None:
            if all(isinstance(r, dict) for r in records):
                return records_to_table(records)
            return pa.table({"value": records})

        if isinstance(payload, dict) and payload and all(isinstance(v, list) for v in payload.values()):
            df = pd.read_json(io.StringIO(text), orient="columns")
            return pa.Table.from_pandas(df, preserve_index=False)

        if isinstance(payload, dict):
            return records_to_table([payload])
        return pa.table({"value": [payload]})
