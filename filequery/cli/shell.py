"""
FileQuery Interactive Shell

A terminal SQL workbench built on the Textual TUI framework. Import a
folder from the file browser, write SQL in tabbed editors, run the
statement under the cursor, sort the preview by clicking column headers
and export full results to CSV.

All session state lives in a Workbench; widgets post messages and the app
forwards them as calls on the workbench.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    DirectoryTree,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TabbedContent,
    TabPane,
    TextArea,
    Tree,
)

from filequery.config import WorkbenchConfig, load_config
from filequery.core.collector import ImportedFile
from filequery.core.errors import FileQueryError
from filequery.core.sorting import SortDirection
from filequery.core.statements import cursor_to_offset
from filequery.core.tabs import JsonTabStore, QueryTab
from filequery.core.types import format_size
from filequery.core.workbench import Workbench


class QueryEditor(TextArea):
    """SQL editor bound to one QueryTab"""

    BINDINGS = [
        Binding("ctrl+enter", "execute_query", "Execute", priority=True),
        Binding("ctrl+e", "execute_query", "Execute (Alt)", priority=True),
        Binding("ctrl+l", "clear_editor", "Clear", priority=True),
    ]

    class ExecuteQuery(Message):
        """Posted when the user wants to run the statement at the cursor."""

        def __init__(self, tab_id: str, text: str, cursor_offset: int, selection: str) -> None:
            super().__init__()
            self.tab_id = tab_id
            self.text = text
            self.cursor_offset = cursor_offset
            self.selection = selection

    def __init__(self, tab_id: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.tab_id = tab_id

    def action_execute_query(self) -> None:
        row, column = self.cursor_location
        self.post_message(
            self.ExecuteQuery(
                self.tab_id,
                self.text,
                cursor_to_offset(self.text, row, column),
                self.selected_text,
            )
        )

    def action_clear_editor(self) -> None:
        self.clear()
        self.focus()


class StatusBar(Static):
    """Status bar showing messages and execution info."""

    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)

    def update_status(
        self,
        message: str,
        execution_time: Optional[float] = None,
        row_count: Optional[int] = None,
        error: bool = False,
    ) -> None:
        status_parts = [message]
        if row_count is not None:
            status_parts.append(f"{row_count:,} rows")
        if execution_time is not None:
            status_parts.append(f"{execution_time:.3f}s")
        self.update(" | ".join(status_parts))
        self.set_class(error, "error")
        self.set_class(not error, "success")


class ResultsViewer(DataTable):
    """Preview table; header clicks cycle the sort"""

    def __init__(self, **kwargs) -> None:
        super().__init__(zebra_stripes=True, cursor_type="row", **kwargs)
        self.border_title = "Results"


class ImportedFilesTree(Tree):
    """Imported files grouped by folder"""

    def __init__(self, **kwargs) -> None:
        super().__init__("Imported", **kwargs)
        self.border_title = "Files"
        self.show_root = False

    def show_files(self, files: List[ImportedFile]) -> None:
        self.clear()
        folders = {}
        for meta in files:
            parent = self.root
            parts = meta.path.split("/")
            for depth, part in enumerate(parts[:-1]):
                key = "/".join(parts[: depth + 1])
                if key not in folders:
                    folders[key] = parent.add(part, expand=True)
                parent = folders[key]
            parent.add_leaf(f"{parts[-1]}  [dim]{format_size(meta.size)}[/dim]", data=meta.path)
        self.root.expand()


class ExportDialog(ModalScreen[Optional[str]]):
    """Ask for the CSV file to export to"""

    def __init__(self, default_name: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.default_name = default_name

    def compose(self) -> ComposeResult:
        with Vertical(id="export-dialog"):
            yield Label("Export full result to CSV:")
            yield Input(value=self.default_name, id="ex-filename")
            with Horizontal(id="export-actions"):
                yield Button("Export", variant="primary", id="ex-btn")
                yield Button("Cancel", id="ex-cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ex-btn":
            self.dismiss(self.query_one("#ex-filename", Input).value.strip() or None)
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip() or None)


class FileQueryShellApp(App):
    """Interactive SQL workbench over imported files."""

    CSS = """
    #main-container { height: 1fr; }
    #sidebar-container { width: 36; }
    #file-browser { height: 1fr; }
    #imported-files { height: 1fr; border: round $primary; }
    #center-panel { width: 1fr; }
    #query-container { height: 12; }
    #results-container { height: 1fr; }
    StatusBar { height: 1; padding: 0 1; }
    StatusBar.error { background: $error; }
    StatusBar.success { background: $success 30%; }
    #export-dialog { width: 60; height: auto; padding: 1 2; border: thick $primary; background: $surface; }
    ExportDialog { align: center middle; }
    """

    BINDINGS = [
        Binding("ctrl+t", "new_tab", "New Tab", priority=True),
        Binding("ctrl+w", "close_tab", "Close Tab", priority=True),
        Binding("ctrl+k", "bookmark_tab", "Bookmark"),
        Binding("ctrl+s", "save_state", "Save State"),
        Binding("ctrl+x", "export_results", "Export", priority=True),
        Binding("ctrl+o", "open_browser", "Files", priority=True),
        Binding("ctrl+q", "quit", "Exit", priority=True),
    ]

    def __init__(
        self,
        initial_dir: Optional[str] = None,
        state_file: Optional[str] = None,
        config: Optional[WorkbenchConfig] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.initial_dir = initial_dir
        self.config = config or load_config()
        self.bench = Workbench(config=self.config, tab_store=JsonTabStore(state_file))

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="main-container"):
            with Vertical(id="sidebar-container"):
                yield DirectoryTree(self.initial_dir or "./", id="file-browser")
                yield ImportedFilesTree(id="imported-files")

            with Vertical(id="center-panel"):
                with Container(id="query-container"):
                    yield TabbedContent(id="query-tabs")
                with Container(id="results-container"):
                    yield ResultsViewer(id="results-viewer")
                yield StatusBar(id="status-bar")

        yield Footer()

    async def on_mount(self) -> None:
        self.title = "FileQuery Workbench"
        self.sub_title = "Ctrl+Enter: Run statement | Click header: Sort | Ctrl+X: Export"
        self.query_one(ResultsViewer).zebra_stripes = self.config.results_zebra

        try:
            self.bench.load_tabs()
        except FileQueryError as e:
            self.notify(f"Failed to load state: {e}", severity="error")

        for tab in self.bench.tabs:
            await self._add_pane(tab)
        self.query_one("#query-tabs", TabbedContent).active = self._pane_id(self.bench.tabs.active_tab_id)

        self._show_status("Select a folder in the file browser to import it.")
        if self.initial_dir:
            self.import_directory(self.initial_dir)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _pane_id(tab_id: str) -> str:
        return f"pane-{tab_id}"

    def _tab_label(self, tab: QueryTab) -> str:
        marker = "*" if tab.dirty else ""
        prefix = "★ " if tab.category.value == "bookmarks" else ""
        return f"{prefix}{tab.name}{marker}"

    async def _add_pane(self, tab: QueryTab) -> None:
        tabs = self.query_one("#query-tabs", TabbedContent)
        pane = TabPane(self._tab_label(tab), id=self._pane_id(tab.id))
        await tabs.add_pane(pane)
        await pane.mount(
            QueryEditor(
                tab.id,
                text=tab.sql_text,
                language="sql",
                theme=self.config.editor_theme,
                show_line_numbers=True,
            )
        )

    def _refresh_tab_label(self, tab: QueryTab) -> None:
        tabs = self.query_one("#query-tabs", TabbedContent)
        tabs.get_tab(self._pane_id(tab.id)).label = self._tab_label(tab)

    def _active_editor(self) -> QueryEditor:
        tabs = self.query_one("#query-tabs", TabbedContent)
        return self.query_one(f"#{tabs.active}", TabPane).query_one(QueryEditor)

    def _show_status(self, message: str, error: bool = False, **kwargs) -> None:
        self.query_one(StatusBar).update_status(message, error=error, **kwargs)

    def _render_results(self) -> None:
        viewer = self.query_one(ResultsViewer)
        viewer.clear(columns=True)
        preview = self.bench.last_preview
        if preview is None:
            return

        state = self.bench.sort_state
        for idx, col in enumerate(preview.columns):
            label = col
            if state is not None and state.column_index == idx:
                label += " ▲" if state.direction is SortDirection.ASC else " ▼"
            viewer.add_column(label, key=str(idx))
        viewer.add_rows(self.bench.displayed_rows())

    # -- message handlers ----------------------------------------------------

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        editor = event.text_area
        if isinstance(editor, QueryEditor):
            tab = self.bench.tabs.update_text(editor.tab_id, editor.text)
            self._refresh_tab_label(tab)

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        pane_id = event.pane.id or ""
        if pane_id.startswith("pane-"):
            self.bench.tabs.activate(pane_id[len("pane-"):])

    def on_query_editor_execute_query(self, message: QueryEditor.ExecuteQuery) -> None:
        self.run_statement(message.tab_id, message.text, message.cursor_offset, message.selection)

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        try:
            self.bench.toggle_sort(event.column_index)
        except FileQueryError as e:
            self._show_status(str(e), error=True)
            return
        self._render_results()
        state = self.bench.sort_state
        preview = self.bench.last_preview
        if state is None:
            self._show_status("Sort cleared")
        else:
            arrow = "↑" if state.direction is SortDirection.ASC else "↓"
            self._show_status(f"Sorted by {preview.columns[state.column_index]} {arrow}")

    def on_directory_tree_directory_selected(self, event: DirectoryTree.DirectorySelected) -> None:
        self.import_directory(str(event.path))

    def on_directory_tree_file_selected(self, event: DirectoryTree.FileSelected) -> None:
        self.import_directory(str(Path(event.path).parent))

    # -- workers -------------------------------------------------------------

    @work(exclusive=True, group="import")
    async def import_directory(self, directory: str) -> None:
        self._show_status(f"Importing {directory}...")
        try:
            files = await self.bench.import_files(directory)
        except FileQueryError as e:
            self._show_status(f"Error: {e}", error=True)
            return
        except OSError as e:
            self._show_status(f"Error: could not read {directory}: {e}", error=True)
            return

        self.query_one(ImportedFilesTree).show_files(files)
        self._show_status(
            f"Imported {len(files)} files from {self.bench.folder_label}. Query them as '{files[0].path}'."
        )

    @work(exclusive=True, group="query")
    async def run_statement(self, tab_id: str, text: str, cursor_offset: int, selection: str) -> None:
        self._show_status("Executing query...")
        start_time = datetime.now()
        try:
            preview = await self.bench.run(text, cursor_offset, selection or None, tab_id=tab_id)
        except FileQueryError as e:
            self.query_one(ResultsViewer).clear(columns=True)
            self._show_status(f"Error: {e}", error=True)
            return

        execution_time = (datetime.now() - start_time).total_seconds()
        self._refresh_tab_label(self.bench.tabs.get(tab_id))
        self._render_results()
        shown = f"showing {len(preview.rows)}" if preview.truncated else "all shown"
        self._show_status(
            f"{len(preview.columns)} columns ({shown})",
            execution_time=execution_time,
            row_count=preview.total_rows,
        )

    @work(exclusive=True, group="export")
    async def export_to(self, filename: str) -> None:
        statement = self.bench.last_statement
        self._show_status(f"Exporting to {filename}...")
        try:
            result = await self.bench.export_csv_file(statement, filename)
        except (FileQueryError, OSError) as e:
            self._show_status(f"Export failed: {e}", error=True)
            return
        self._show_status(f"✓ Exported {result.row_count:,} rows to CSV: {filename}")

    # -- actions -------------------------------------------------------------

    async def action_new_tab(self, content: str = "", title: Optional[str] = None) -> None:
        tab = self.bench.tabs.new_tab(content, name=title)
        await self._add_pane(tab)
        self.query_one("#query-tabs", TabbedContent).active = self._pane_id(tab.id)
        self._active_editor().focus()

    async def action_close_tab(self) -> None:
        tabs = self.query_one("#query-tabs", TabbedContent)
        closing = self.bench.tabs.active_tab_id
        count_before = len(self.bench.tabs)
        active = self.bench.tabs.close_tab(closing)
        await tabs.remove_pane(self._pane_id(closing))
        if len(self.bench.tabs) == count_before:
            # The last tab was replaced by a fresh one
            await self._add_pane(active)
        tabs.active = self._pane_id(active.id)

    async def action_bookmark_tab(self) -> None:
        bookmark = self.bench.tabs.bookmark(self.bench.tabs.active_tab_id)
        await self._add_pane(bookmark)
        self.notify(f"Bookmarked {bookmark.name}", timeout=3)

    def action_save_state(self) -> None:
        try:
            self.bench.save_tabs()
        except (FileQueryError, OSError) as e:
            self.notify(f"Failed to save state: {e}", severity="error")
            return
        self.notify(f"Saved {len(self.bench.tabs)} tabs", timeout=3)

    def action_export_results(self) -> None:
        if not self.bench.last_statement:
            self._show_status("No results to export", error=True)
            return
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.push_screen(
            ExportDialog(f"results_{timestamp}.csv"),
            lambda filename: self.export_to(filename) if filename else None,
        )

    def action_open_browser(self) -> None:
        self.query_one("#file-browser", DirectoryTree).focus()
        self._show_status("Select a folder to import")

    def action_quit(self) -> None:
        self.action_save_state()
        self.bench.close()
        self.exit()


def launch_shell(
    initial_dir: Optional[str] = None,
    state_file: Optional[str] = None,
    config: Optional[WorkbenchConfig] = None,
) -> None:
    """
    Launch the interactive SQL workbench.

    Args:
        initial_dir: Optional directory to import on startup
        state_file: Path to the tab state file
        config: Settings (loaded from ~/.filequery_config when omitted)
    """
    app = FileQueryShellApp(initial_dir=initial_dir, state_file=state_file, config=config)
    app.run()


if __name__ == "__main__":
    launch_shell()
