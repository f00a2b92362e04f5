"""
Rich table formatter for terminal output
"""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from filequery.cli.formatters.base import BaseFormatter, row_footer
from filequery.core.results import PreviewTable


class TableFormatter(BaseFormatter):
    """Format a preview as a Rich table"""

    def format(self, preview: PreviewTable, **kwargs) -> str:
        """
        Args:
            preview: Result preview
            **kwargs: Options like 'no_color', 'show_footer', 'max_width'

        Returns:
            Formatted table string
        """
        if not preview.columns:
            return "No results found."

        console = Console(force_terminal=not kwargs.get("no_color", False), no_color=kwargs.get("no_color", False))
        terminal_width = console.width
        num_cols = len(preview.columns)

        # Narrow terminal or many columns: aggressive truncation
        if terminal_width < 80 or num_cols > 8:
            max_col_width = kwargs.get("max_width", 15)
            table = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE)
            for col in preview.columns:
                table.add_column(col, style="cyan", overflow="ellipsis", max_width=max_col_width, no_wrap=True)
        else:
            table = Table(show_header=True, header_style="bold magenta")
            for col in preview.columns:
                table.add_column(col, style="cyan", overflow="ellipsis", max_width=30, no_wrap=False)

        for row in preview.rows:
            # Cells are plain text; empty cells are shown dimmed as NULL
            table.add_row(*[escape(cell) if cell else "[dim]NULL[/dim]" for cell in row])

        with console.capture() as capture:
            console.print(table)
            if kwargs.get("show_footer", True):
                console.print(f"[dim]{row_footer(preview)}[/dim]")

        return capture.get()
