"""
Output formatters for CLI

Available formatters:
- TableFormatter: Rich tables
- JSONFormatter: Machine-readable JSON
- CSVFormatter: Unix-friendly CSV
- MarkdownFormatter: GitHub Flavored Markdown tables
"""

from filequery.cli.formatters.base import BaseFormatter
from filequery.cli.formatters.csv import CSVFormatter
from filequery.cli.formatters.json import JSONFormatter
from filequery.cli.formatters.markdown import MarkdownFormatter
from filequery.cli.formatters.table import TableFormatter

__all__ = ["BaseFormatter", "TableFormatter", "JSONFormatter", "CSVFormatter", "MarkdownFormatter"]


def get_formatter(format_name: str) -> BaseFormatter:
    """
    Get formatter by name

    Args:
        format_name: Name of formatter (table, json, csv, markdown)

    Returns:
        Formatter instance

    Raises:
        ValueError: If formatter not found
    """
    formatters = {
        "table": TableFormatter,
        "json": JSONFormatter,
        "csv": CSVFormatter,
        "markdown": MarkdownFormatter,
    }

    if format_name not in formatters:
        available = ", ".join(formatters.keys())
        raise ValueError(f"Unknown format: {format_name}. Available formats: {available}")

    return formatters[format_name]()
