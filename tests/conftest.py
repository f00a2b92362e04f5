"""
Pytest configuration and shared fixtures
"""

import pyarrow as pa
import pyarrow.parquet as pq
import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to only use asyncio backend."""
    return "asyncio"


@pytest.fixture
def sample_csv_content():
    """Sample CSV content"""
    return """name,age,city
Alice,30,NYC
Bob,25,LA
Charlie,35,SF"""


@pytest.fixture
def data_dir(tmp_path):
    """
    Directory tree with supported and unsupported files:

        data/
          a.parquet
          a.txt
          sub/b.csv
    """
    root = tmp_path / "data"
    (root / "sub").mkdir(parents=True)
    pq.write_table(pa.table({"id": [1, 2, 3], "name": ["x", "y", "z"]}), root / "a.parquet")
    (root / "a.txt").write_text("not data")
    (root / "sub" / "b.csv").write_text("id,score\n1,10\n2,20\n")
    return root
