"""
Error taxonomy for the ingestion pipeline.

Fatal errors abort a single file; RowSkippedError is caught by the parsers
and recorded as a warning.
"""
from typing import List, Optional


class IngestionError(ValueError):
    """Base class for every error raised while ingesting a file."""


class UnsupportedFormatError(IngestionError):
    """Raised when the declared file kind has no parser."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f"Unsupported file format: {kind!r}. Supported formats are CSV, spreadsheet (XLSX/XLS) and PDF."
        )


class MissingColumnsError(IngestionError):
    """Raised when a tabular file lacks columns for required logical fields."""

    def __init__(self, missing: List[str], headers: Optional[List[str]] = None, detail: str = ""):
        self.missing = list(missing)
        self.headers = list(headers or [])
        message = f"Missing required columns: {', '.join(self.missing)}."
        if self.headers:
            message += f" Found columns: {', '.join(self.headers)}."
        message += " Please ensure your file has date, amount, and category columns."
        if detail:
            message += f" {detail}"
        super().__init__(message)


class NoValidDataError(IngestionError):
    """Raised when rows were attempted (or none existed) and none could be converted."""

    def __init__(self, message: str, errors: Optional[List[str]] = None,
                 debug_trail: Optional[List[str]] = None, max_samples: int = 5):
        self.errors = list(errors or [])
        self.debug_trail = list(debug_trail or [])

        full_message = message
        if self.errors:
            full_message += "\nErrors found:\n" + "\n".join(self.errors[:max_samples])
            if len(self.errors) > max_samples:
                full_message += "\n...and more"
        if self.debug_trail:
            full_message += "\nDebug information:\n" + "\n".join(self.debug_trail)
        super().__init__(full_message)


class RowSkippedError(IngestionError):
    """A single row could not be converted; parsing continues."""

    def __init__(self, row_label: str, reason: str):
        self.row_label = row_label
        self.reason = reason
        super().__init__(f"{row_label}: {reason}")
