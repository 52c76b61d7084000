from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Lower-cased column name (or positional key) -> cell text
RawRow = Dict[str, str]

# Logical field -> header name (tabular) or x anchor (PDF)
ColumnMap = Dict[str, object]


class FileKind(str, Enum):
    """Declared kind of an uploaded file."""
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    PDF = "pdf"

    @classmethod
    def from_filename(cls, file_name: str) -> Optional["FileKind"]:
        """Derive the kind from a file extension; None when unknown."""
        return _EXTENSION_KINDS.get(Path(file_name).suffix.lower())

    @classmethod
    def from_mime(cls, mime_type: str) -> Optional["FileKind"]:
        """Derive the kind from a MIME type; None when unknown."""
        return _MIME_KINDS.get(mime_type.split(';')[0].strip().lower())


_EXTENSION_KINDS = {
    '.csv': FileKind.CSV,
    '.xlsx': FileKind.SPREADSHEET,
    '.xls': FileKind.SPREADSHEET,
    '.pdf': FileKind.PDF,
}

_MIME_KINDS = {
    'text/csv': FileKind.CSV,
    'application/csv': FileKind.CSV,
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': FileKind.SPREADSHEET,
    'application/vnd.ms-excel': FileKind.SPREADSHEET,
    'application/pdf': FileKind.PDF,
}


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class FinancialRecord(BaseModel):
    """Canonical transaction record. Immutable once created, tags included."""
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="Transaction date in YYYY-MM-DD format")
    amount: float = Field(..., ge=0, description="Magnitude of the transaction")
    type: TransactionType = Field(..., description="Income or expense, from the sign of the raw amount")
    category: str = Field("Uncategorized", description="Spending/income category")
    description: Optional[str] = None
    currency: str = Field("USD", description="ISO currency code")
    tags: Optional[Tuple[str, ...]] = None

    @field_validator('date')
    @classmethod
    def validate_date_format(cls, v):
        """Ensure date is in YYYY-MM-DD format."""
        try:
            datetime.strptime(v, '%Y-%m-%d')
            return v
        except ValueError:
            raise ValueError('Date must be in YYYY-MM-DD format')

    @property
    def signed_amount(self) -> float:
        """Amount with the sign implied by the record type."""
        return -self.amount if self.type == TransactionType.EXPENSE else self.amount


class ParseResult(BaseModel):
    """Outcome of ingesting one file."""
    records: List[FinancialRecord] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    duplicates: List[FinancialRecord] = Field(default_factory=list)
    fatal_error: Optional[str] = None
    analysis: Optional[str] = None
    source: Optional[str] = None
    kind: Optional[FileKind] = None

    @property
    def ok(self) -> bool:
        return self.fatal_error is None


class BatchResult(BaseModel):
    """Combined outcome of ingesting several files."""
    files: List[ParseResult] = Field(default_factory=list)
    records: List[FinancialRecord] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    duplicates: List[FinancialRecord] = Field(default_factory=list)
    analysis: Optional[str] = None

    @property
    def failed_files(self) -> List[ParseResult]:
        return [result for result in self.files if not result.ok]
