"""
JSON formatter for machine-readable output
"""

import json

from filequery.cli.formatters.base import BaseFormatter
from filequery.core.results import PreviewTable


class JSONFormatter(BaseFormatter):
    """Format a preview as a JSON array of objects"""

    def format(self, preview: PreviewTable, **kwargs) -> str:
        """
        Args:
            preview: Result preview
            **kwargs: Options like 'compact', 'indent'

        Returns:
            JSON string
        """
        records = preview.to_records()
        if kwargs.get("compact", False):
            return json.dumps(records, separators=(",", ":"), ensure_ascii=False)
        indent = kwargs.get("indent", 2)
        return json.dumps(records, indent=indent, ensure_ascii=False)
