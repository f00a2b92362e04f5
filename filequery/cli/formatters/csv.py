"""
CSV formatter for Unix-friendly output
"""

from filequery.cli.formatters.base import BaseFormatter
from filequery.core.results import LINE_TERMINATOR, PreviewTable, escape_csv_field


class CSVFormatter(BaseFormatter):
    """Format a preview as CSV, with the same quoting rules as the exporter"""

    def format(self, preview: PreviewTable, **kwargs) -> str:
        """
        Args:
            preview: Result preview
            **kwargs: Options like 'header' (default True)

        Returns:
            CSV string
        """
        lines = []
        if kwargs.get("header", True):
            lines.append(",".join(escape_csv_field(c) for c in preview.columns))
        for row in preview.rows:
            lines.append(",".join(escape_csv_field(v) for v in row))
        return "".join(line + LINE_TERMINATOR for line in lines)
