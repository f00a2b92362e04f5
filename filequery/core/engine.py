"""
DuckDB engine - executes SQL over imported file buffers

Imported files never touch the disk: their bytes are decoded by the
readers into Arrow tables and loaded into an in-memory DuckDB database
under a table named after the import path. Queries can then reference
the path as a quoted literal, which is rewritten to the table name:

    SELECT * FROM 'sales/2024.csv'   ->   SELECT * FROM "sales/2024.csv"

Every blocking DuckDB call runs in a worker thread so the event loop
keeps serving the UI while a query is running.
"""

from __future__ import annotations

from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

import anyio
import anyio.to_thread
import duckdb
import pyarrow as pa

from filequery.core.errors import EngineError
from filequery.core.statements import table_literals
from filequery.readers import get_reader

DEFAULT_BATCH_SIZE = 10_000
_IMPORT_VIEW = "__filequery_import"


def quote_identifier(name: str) -> str:
    """Quote a table name as a DuckDB identifier"""
    return '"' + name.replace('"', '""') + '"'


def decode_buffer(path: str, data: bytes) -> pa.Table:
    """Decode imported bytes into an Arrow table with the matching reader"""
    try:
        return get_reader(path, data).read_table()
    except (ValueError, pa.ArrowException) as e:
        raise EngineError(f"Could not read {path}: {e}") from e


class DuckDBEngine:
    """
    In-memory DuckDB database holding the imported files

    This engine:
    1. Creates an in-memory DuckDB connection on connect()
    2. Registers file buffers as tables named after their paths
    3. Rewrites quoted file paths in SQL to those table names
    4. Returns results as Arrow tables or a stream of record batches

    Example:
        >>> engine = DuckDBEngine()
        >>> await engine.connect()
        >>> await engine.register_buffer("data/people.csv", b"name,age\\nAlice,30\\n")
        >>> table = await engine.query("SELECT * FROM 'data/people.csv'")
    """

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self.conn: Optional[duckdb.DuckDBPyConnection] = None
        self.registered: Dict[str, str] = {}
        self._lock = anyio.Lock()

    @property
    def connected(self) -> bool:
        return self.conn is not None

    async def connect(self) -> None:
        """Open the database connection (no-op when already connected)"""
        if self.conn is not None:
            return
        try:
            self.conn = await anyio.to_thread.run_sync(duckdb.connect, self.database)
        except duckdb.Error as e:
            raise EngineError(str(e)) from e

    def _require_conn(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise EngineError("Engine is not connected")
        return self.conn

    def rewrite_sql(self, sql: str) -> str:
        """
        Replace quoted file paths in table position with registered table names

        Only literals following FROM or JOIN (or a comma inside a FROM list)
        are rewritten; the same text elsewhere stays a string literal.

        Example:
            Input SQL:  SELECT 'dir/data.csv' AS src FROM 'dir/data.csv'
            Output SQL: SELECT 'dir/data.csv' AS src FROM "dir/data.csv"
        """
        parts = []
        last = 0
        for start, end, value in table_literals(sql):
            table = self.registered.get(value)
            if table is None:
                continue
            parts.append(sql[last:start])
            parts.append(table)
            last = end
        parts.append(sql[last:])
        return "".join(parts)

    async def _run(self, fn, *args):
        async with self._lock:
            try:
                return await anyio.to_thread.run_sync(fn, *args)
            except duckdb.Error as e:
                raise EngineError(str(e)) from e

    async def execute(self, sql: str) -> None:
        """Execute a statement, discarding any result"""
        conn = self._require_conn()
        await self._run(conn.execute, self.rewrite_sql(sql))

    async def query(self, sql: str) -> pa.Table:
        """Execute a query and materialise the full result as an Arrow table"""
        conn = self._require_conn()
        rewritten = self.rewrite_sql(sql)

        def run() -> pa.Table:
            return conn.execute(rewritten).to_arrow_table()

        return await self._run(run)

    async def query_stream(self, sql: str, batch_size: int = DEFAULT_BATCH_SIZE) -> AsyncIterator[pa.RecordBatch]:
        """
        Execute a query and yield the result as record batches

        The query runs on its own cursor, so other statements may execute
        while the stream is being consumed. Stopping iteration closes the
        cursor.
        """
        conn = self._require_conn()
        rewritten = self.rewrite_sql(sql)

        def start():
            cursor = conn.cursor()
            try:
                return cursor, cursor.execute(rewritten).fetch_record_batch(batch_size)
            except BaseException:
                cursor.close()
                raise

        cursor, reader = await self._run(start)

        def next_batch() -> Optional[pa.RecordBatch]:
            try:
                return reader.read_next_batch()
            except StopIteration:
                return None

        yielded = False
        try:
            while True:
                try:
                    batch = await anyio.to_thread.run_sync(next_batch)
                except (duckdb.Error, pa.ArrowException) as e:
                    raise EngineError(str(e)) from e
                if batch is None:
                    break
                yielded = True
                yield batch
            # A result with no rows still carries its schema
            if not yielded:
                yield pa.RecordBatch.from_pylist([], schema=reader.schema)
        finally:
            cursor.close()

    async def register_buffer(self, path: str, data: bytes) -> None:
        """
        Make file bytes addressable by path inside SQL

        Args:
            path: Import path, used verbatim as the table name
            data: File contents; the reader is chosen by extension
        """
        arrow_table = await anyio.to_thread.run_sync(decode_buffer, path, data)
        await self.register_table(path, arrow_table)

    @staticmethod
    def _load_table(conn: duckdb.DuckDBPyConnection, path: str, arrow_table: pa.Table) -> None:
        conn.register(_IMPORT_VIEW, arrow_table)
        try:
            conn.execute(f"CREATE OR REPLACE TABLE {quote_identifier(path)} AS SELECT * FROM {_IMPORT_VIEW}")
        finally:
            conn.unregister(_IMPORT_VIEW)

    async def register_table(self, path: str, arrow_table: pa.Table) -> None:
        """Load an already decoded table under an import path"""
        conn = self._require_conn()
        await self._run(self._load_table, conn, path, arrow_table)
        self.registered[path] = quote_identifier(path)

    async def replace_tables(self, tables: Sequence[Tuple[str, pa.Table]]) -> None:
        """
        Make `tables` the complete set of registered files

        Loading the new tables and dropping the ones no longer present run
        in a single transaction. If any step fails, the transaction is rolled
        back and the previously registered tables are left untouched.

        Args:
            tables: (import path, decoded table) pairs
        """
        conn = self._require_conn()
        new_paths = {path for path, _ in tables}
        stale = [table_name for path, table_name in self.registered.items() if path not in new_paths]

        def load() -> None:
            conn.execute("BEGIN TRANSACTION")
            try:
                for path, arrow_table in tables:
                    self._load_table(conn, path, arrow_table)
                for table_name in stale:
                    conn.execute(f"DROP TABLE IF EXISTS {table_name}")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

        await self._run(load)
        self.registered = {path: quote_identifier(path) for path, _ in tables}

    async def unregister(self, path: str) -> None:
        """Drop a previously registered file"""
        table_name = self.registered.pop(path, None)
        if table_name is None:
            return
        conn = self._require_conn()
        await self._run(conn.execute, f"DROP TABLE IF EXISTS {table_name}")

    async def unregister_all(self) -> None:
        for path in list(self.registered):
            await self.unregister(path)

    def registered_paths(self) -> List[str]:
        return list(self.registered)

    def close(self) -> None:
        """Close DuckDB connection"""
        if self.conn is not None:
            self.conn.close()
            self.conn = None
        self.registered.clear()


class EngineHandle:
    """
    Lazily-constructed, shared engine

    ensure_ready() builds and connects the engine on first use. Concurrent
    callers wait on the same lock, so initialisation happens exactly once;
    if it fails, the next call tries again.

    Example:
        >>> handle = EngineHandle()
        >>> engine = await handle.ensure_ready()
    """

    def __init__(self, factory=DuckDBEngine):
        self._factory = factory
        self._engine: Optional[DuckDBEngine] = None
        self._lock = anyio.Lock()

    @property
    def ready(self) -> bool:
        return self._engine is not None

    async def ensure_ready(self) -> DuckDBEngine:
        if self._engine is not None:
            return self._engine
        async with self._lock:
            if self._engine is None:
                engine = self._factory()
                await engine.connect()
                self._engine = engine
        return self._engine

    def close(self) -> None:
        if self._engine is not None:
            self._engine.close()
            self._engine = None
