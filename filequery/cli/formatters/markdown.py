"""
Markdown formatter for documentation and sharing
"""

from filequery.cli.formatters.base import BaseFormatter, row_footer
from filequery.core.results import PreviewTable


class MarkdownFormatter(BaseFormatter):
    """Format a preview as a Markdown table"""

    def format(self, preview: PreviewTable, **kwargs) -> str:
        """
        Args:
            preview: Result preview
            **kwargs: Options like 'show_footer', 'align'

        Returns:
            Markdown formatted table string
        """
        if not preview.columns:
            return "_No results found._"

        header = "| " + " | ".join(preview.columns) + " |"

        # Default alignment is left, can be 'left', 'center', or 'right'
        align = kwargs.get("align", "left")
        separators = []
        for col in preview.columns:
            col_align = align if isinstance(align, str) else align.get(col, "left")
            if col_align == "center":
                separators.append(":---:")
            elif col_align == "right":
                separators.append("---:")
            else:
                separators.append(":---")
        separator = "| " + " | ".join(separators) + " |"

        data_rows = []
        for row in preview.rows:
            # Escape pipe characters so cells stay in their column
            values = [cell.replace("|", "\\|") if cell else "_NULL_" for cell in row]
            data_rows.append("| " + " | ".join(values) + " |")

        output = "\n".join([header, separator] + data_rows)

        if kwargs.get("show_footer", True):
            output += f"\n\n_{row_footer(preview)}_"

        return output
