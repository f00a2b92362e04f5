"""
Base reader interface for imported file buffers

Readers turn the raw bytes of an imported file into an Arrow table that
the engine can register under the file's path.
"""

from typing import Any, Dict, List

import pyarrow as pa


class BaseReader:
    """
    Base class for all buffer readers

    Readers are responsible for:
    1. Decoding bytes of one file format
    2. Producing an Arrow table (columnar, zero-copy into DuckDB)
    3. Optionally handing the data over as a pandas DataFrame
    """

    #: Lowercase file suffixes handled by this reader
    extensions: tuple = ()

    def __init__(self, path: str, data: bytes):
        """
        Args:
            path: Import path of the file (posix style, used in messages)
            data: Full file contents
        """
        self.path = path
        self.data = data

    def read_table(self) -> pa.Table:
        """
        Decode the buffer into an Arrow table

        This is the core method that all readers must implement.
        """
        raise NotImplementedError("Subclasses must implement read_table()")

    def to_dataframe(self):
        """
        Convert buffer content to a pandas DataFrame

        Returns:
            pandas.DataFrame containing all data
        """
        return self.read_table().to_pandas()


def records_to_table(records: List[Dict[str, Any]]) -> pa.Table:
    """Build a table from row dicts; columns are the union of keys in first-seen order"""
    columns = list(dict.fromkeys(key for record in records for key in record))
    return pa.table({name: [record.get(name) for record in records] for name in columns})
