"""
Workbench - ties file import, statement location, execution, preview,
sorting and export together

The workbench owns all mutable session state (imported files, tabs, last
preview, sort state, current error). The components it drives are pure
functions of their inputs. Each operation clears current_error when it
starts and records its own failure there before re-raising it, so the
UI only ever shows the outcome of the latest operation.
"""

from __future__ import annotations

import warnings
from contextlib import contextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, Union

import anyio.to_thread

from filequery.config import WorkbenchConfig
from filequery.core.collector import ImportedFile, open_source
from filequery.core.engine import DuckDBEngine, EngineHandle, decode_buffer
from filequery.core.errors import FileImportError, FileQueryError, ValidationError
from filequery.core.results import (
    CSVExport,
    CSVExportOptions,
    CSVExporter,
    PreviewTable,
    to_csv,
    to_preview,
    write_csv,
)
from filequery.core.sorting import SortState, apply_sort_state, next_sort_state
from filequery.core.statements import locate_statement
from filequery.core.tabs import MemoryTabStore, TabList, TabStore


class Workbench:
    """
    Session state for one user

    Example:
        >>> bench = Workbench()
        >>> await bench.import_files("data/")
        >>> preview = await bench.run("SELECT * FROM 'data/a.csv'; SELECT 2;", 5)
    """

    def __init__(
        self,
        engine: Optional[EngineHandle] = None,
        config: Optional[WorkbenchConfig] = None,
        tab_store: Optional[TabStore] = None,
    ):
        self.engine_handle = engine or EngineHandle()
        self.config = config or WorkbenchConfig()
        self.tab_store = tab_store or MemoryTabStore()
        self.tabs = TabList()

        self.files: List[ImportedFile] = []
        self.folder_label = ""
        self.current_error: Optional[Exception] = None

        self.last_statement = ""
        self.last_preview: Optional[PreviewTable] = None
        self.sort_state: Optional[SortState] = None

    @contextmanager
    def _operation(self):
        """Clear the error on entry and record any failure"""
        self.current_error = None
        try:
            yield
        except (FileQueryError, OSError) as e:
            self.current_error = e
            raise

    async def ensure_ready(self) -> DuckDBEngine:
        return await self.engine_handle.ensure_ready()

    # -- tabs -------------------------------------------------------------

    def load_tabs(self) -> TabList:
        with self._operation():
            self.tabs = TabList.from_snapshot(self.tab_store.load())
        return self.tabs

    def save_tabs(self) -> None:
        with self._operation():
            self.tab_store.save(self.tabs.snapshot())

    # -- import -----------------------------------------------------------

    async def import_files(self, target, base_path: Optional[str] = None) -> List[ImportedFile]:
        """
        Import a directory or flat selection as one batch

        Files that cannot be read are skipped with a warning. The rest are
        decoded before anything is registered, and registration runs in one
        transaction, so any failure keeps the previous file set.

        Args:
            target: Directory path/handle or flat list (see open_source)
            base_path: Path prefix; defaults to "" so paths are relative
                       to the selected directory

        Returns:
            Metadata of the imported files

        Raises:
            FileImportError: If the selection holds no readable importable files
        """
        with self._operation():
            source = open_source(target)
            collected = await source.collect(base_path or "")
            if not collected.meta:
                raise FileImportError("No importable files found (supported: parquet, csv, json, ndjson)")

            paths = collected.paths
            if len(set(paths)) != len(paths):
                raise ValidationError("Duplicate file paths in import selection")

            engine = await self.ensure_ready()

            decoded = []
            imported: List[ImportedFile] = []
            for handle, meta in zip(collected.files, collected.meta):
                try:
                    data = await handle.read_bytes()
                except OSError as e:
                    warnings.warn(f"Skipping unreadable file {meta.path}: {e}", UserWarning)
                    continue
                table = await anyio.to_thread.run_sync(decode_buffer, meta.path, data)
                decoded.append((meta.path, table))
                imported.append(meta)

            if not imported:
                raise FileImportError("None of the selected files could be read")

            await engine.replace_tables(decoded)

            self.files = imported
            self.folder_label = source.label or (paths[0].split("/")[0] if paths else "")
            return self.files

    async def clear_files(self) -> None:
        with self._operation():
            if self.engine_handle.ready:
                engine = await self.ensure_ready()
                await engine.unregister_all()
            self.files = []
            self.folder_label = ""
            self.last_preview = None
            self.sort_state = None

    # -- execution --------------------------------------------------------

    def _statement(self, sql_text: str, cursor_offset: int, selection: Optional[str]) -> str:
        statement = locate_statement(sql_text, cursor_offset, selection)
        if not statement:
            raise ValidationError("No statement to execute")
        return statement

    async def run(
        self,
        sql_text: str,
        cursor_offset: int,
        selection: Optional[str] = None,
        tab_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PreviewTable:
        """
        Run the statement under the cursor and build its preview

        Args:
            sql_text: Editor buffer
            cursor_offset: Cursor position in the buffer
            selection: Explicit selection, overrides the cursor
            tab_id: Tab whose dirty flag is cleared on success
            limit: Preview rows (default from config)

        Returns:
            PreviewTable of at most `limit` rows
        """
        with self._operation():
            statement = self._statement(sql_text, cursor_offset, selection)
            engine = await self.ensure_ready()
            table = await engine.query(statement)
            preview = to_preview(table, self.config.preview_limit if limit is None else limit)

            self.last_statement = statement
            self.last_preview = preview
            self.sort_state = None
            if tab_id is not None:
                self.tabs.mark_executed(tab_id)
            return preview

    async def run_active_tab(self, cursor_offset: int, selection: Optional[str] = None) -> PreviewTable:
        tab = self.tabs.active
        return await self.run(tab.sql_text, cursor_offset, selection, tab_id=tab.id)

    # -- sorting ----------------------------------------------------------

    def toggle_sort(self, column_index: int) -> List[List[str]]:
        """Advance the sort cycle for a column and return rows in display order"""
        with self._operation():
            if self.last_preview is None:
                raise ValidationError("No results to sort")
            if not 0 <= column_index < len(self.last_preview.columns):
                raise ValidationError(f"Invalid sort column: {column_index}")
            self.sort_state = next_sort_state(self.sort_state, column_index)
            return self.displayed_rows()

    def displayed_rows(self) -> List[List[str]]:
        if self.last_preview is None:
            return []
        return apply_sort_state(self.last_preview.rows, self.sort_state)

    # -- export -----------------------------------------------------------

    def _export_options(self, options: Optional[CSVExportOptions]) -> CSVExportOptions:
        if options is not None:
            return options
        return CSVExportOptions(include_header=self.config.csv_header, chunk_size=self.config.csv_chunk_size)

    async def export_csv(self, sql: str, options: Optional[CSVExportOptions] = None) -> CSVExport:
        """Export the full result of `sql` as in-memory CSV chunks"""
        with self._operation():
            engine = await self.ensure_ready()
            return await to_csv(engine.query_stream(sql, self.config.batch_size), self._export_options(options))

    async def export_csv_file(
        self,
        sql: str,
        path: Union[str, Path],
        options: Optional[CSVExportOptions] = None,
    ) -> CSVExport:
        """Stream the full result of `sql` into a CSV file"""
        with self._operation():
            engine = await self.ensure_ready()
            return await write_csv(
                engine.query_stream(sql, self.config.batch_size), path, self._export_options(options)
            )

    async def stream_export(self, sql: str, options: Optional[CSVExportOptions] = None) -> AsyncIterator[str]:
        """Yield CSV chunks; the caller cancels by no longer iterating"""
        engine = await self.ensure_ready()
        exporter = CSVExporter(self._export_options(options))
        async for chunk in exporter.chunks(engine.query_stream(sql, self.config.batch_size)):
            yield chunk

    def close(self) -> None:
        self.engine_handle.close()
