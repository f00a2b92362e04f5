"""
CSV reader for in-memory buffers

Uses pyarrow's CSV parser so column types are inferred the same way for
every import.
"""

import io

import pyarrow as pa
import pyarrow.csv as pacsv

from filequery.readers.base import BaseReader


class CSVReader(BaseReader):
    """
    CSV buffer reader with type inference

    Features:
    - Header row gives column names
    - Automatic type inference (int, float, timestamp, string)
    - Configurable delimiter
    """

    extensions = (".csv",)

    def __init__(self, path: str, data: bytes, delimiter: str = ","):
        super().__init__(path, data)
        self.delimiter = delimiter

    def read_table(self) -> pa.Table:
        parse_options = pacsv.ParseOptions(delimiter=self.delimiter, newlines_in_values=True)
        return pacsv.read_csv(io.BytesIO(self.data), parse_options=parse_options)
