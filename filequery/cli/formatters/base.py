"""
Base formatter interface for CLI output

All formatters must implement the format() method.
"""

from filequery.core.results import PreviewTable


class BaseFormatter:
    """Base class for all output formatters"""

    def format(self, preview: PreviewTable, **kwargs) -> str:
        """
        Format a result preview for output

        Args:
            preview: Columns and formatted rows
            **kwargs: Additional formatter-specific options

        Returns:
            Formatted string ready for output
        """
        raise NotImplementedError("Formatters must implement format() method")

    def get_name(self) -> str:
        """Get formatter name"""
        return self.__class__.__name__.replace("Formatter", "").lower()


def row_footer(preview: PreviewTable) -> str:
    """'3 rows' or 'showing 200 of 5,000 rows' when the preview is capped"""
    shown = len(preview.rows)
    if preview.truncated:
        return f"showing {shown:,} of {preview.total_rows:,} rows"
    return f"{shown} row{'s' if shown != 1 else ''}"
