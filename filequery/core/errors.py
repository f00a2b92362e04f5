"""Error hierarchy for FileQuery.

Every failure a caller is expected to handle derives from FileQueryError so
the CLI and the shell can report it uniformly.
"""


class FileQueryError(Exception):
    """Base class for all FileQuery errors."""


class ValidationError(FileQueryError, ValueError):
    """Invalid identifier, empty selection, or bad option value."""


class FileImportError(FileQueryError):
    """An import request found no importable files."""


class ExportError(FileQueryError):
    """An export saw no schema, so there is nothing to write."""


class EngineError(FileQueryError, RuntimeError):
    """Failure raised by the analytic engine, message passed through verbatim."""
