"""
Parquet reader for in-memory buffers
"""

import pyarrow as pa
import pyarrow.parquet as pq

from filequery.readers.base import BaseReader


class ParquetReader(BaseReader):
    """
    Reads a Parquet file held in memory

    Parquet already carries a typed schema, so the table is handed to the
    engine as-is.
    """

    extensions = (".parquet",)

    def read_table(self) -> pa.Table:
        return pq.read_table(pa.BufferReader(self.data))

    def num_rows(self) -> int:
        """Row count from the footer metadata without decoding columns"""
        return pq.ParquetFile(pa.BufferReader(self.data)).metadata.num_rows
