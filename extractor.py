"""
Tabular (CSV / spreadsheet) parsing and the row conversion shared with the
PDF extractor.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from categorizer import TransactionCategorizer
from config import PipelineSettings
from errors import MissingColumnsError, NoValidDataError, RowSkippedError
from preprocess import CURRENCY_CODES, DataPreprocessor
from schema import ColumnMap, FinancialRecord, RawRow
from validator import RowValidator

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('date', 'amount', 'category')
OPTIONAL_FIELDS = ('description', 'currency', 'tags')


@dataclass
class ExtractionOutcome:
    """Records and row-level warnings produced from one file."""
    records: List[FinancialRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    attempted: int = 0


def normalize_headers(columns) -> List[str]:
    """Trim and lower-case header cells."""
    return [str(column).strip().lower() for column in columns]


def map_columns(headers: List[str]) -> Tuple[ColumnMap, List[str]]:
    """
    Map logical fields to the first header containing the field keyword.

    Returns:
        (column map, missing required fields in REQUIRED_FIELDS order)
    """
    column_map: ColumnMap = {}
    for logical_field in REQUIRED_FIELDS + OPTIONAL_FIELDS:
        for header in headers:
            if logical_field in header:
                column_map[logical_field] = header
                break

    missing = [name for name in REQUIRED_FIELDS if name not in column_map]
    return column_map, missing


class RowConverter:
    """
    Turns a row of logical fields into a FinancialRecord.

    Runs the row validator, the field normalizer and the category heuristic
    in that order. Both the tabular and the PDF paths go through here.
    """

    def __init__(self, settings: Optional[PipelineSettings] = None,
                 today: Optional[Callable[[], date]] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or PipelineSettings()
        self.preprocessor = DataPreprocessor()
        self.categorizer = TransactionCategorizer()
        self._today = today or date.today
        self.validator = RowValidator(self.settings.validation_policy, self.preprocessor, self._today)

    def convert(self, fields: Dict[str, Optional[str]], row_label: str,
                context_text: Optional[str] = None) -> Tuple[FinancialRecord, List[str]]:
        """
        Convert one row.

        Args:
            fields: Logical field -> raw text
            row_label: Location used in messages ("Row 3", "Line 12")
            context_text: Text to categorize when the row has no category;
                defaults to the row description

        Returns:
            (record, non-fatal notes about defaults that were applied)

        Raises:
            RowSkippedError: if the validator rejects the row
        """
        row = self.validator.validate(fields, row_label)
        notes = list(row.notes)

        category = row.category
        if row.category_defaulted:
            category = self.categorizer.categorize(context_text or row.description)

        entry_type, magnitude = self.preprocessor.derive_type(row.signed_amount)
        currency = self._resolve_currency(row.currency, row.raw_amount, row_label, notes)

        tags = self.preprocessor.split_tags(row.tags)
        if tags is None and self.settings.extract_tags:
            tags = self.categorizer.extract_tags(row.description)

        if magnitude == 0:
            notes.append(f"{row_label}: zero amount detected")
        if row.date > self._today().isoformat():
            notes.append(f"{row_label}: future date detected ({row.date})")

        try:
            record = FinancialRecord(
                date=row.date,
                amount=magnitude,
                type=entry_type,
                category=category,
                description=row.description,
                currency=currency,
                tags=tags,
            )
        except ValidationError as e:
            reasons = "; ".join(error["msg"] for error in e.errors())
            raise RowSkippedError(row_label, f"invalid record ({reasons})")
        return record, notes

    def _resolve_currency(self, explicit: Optional[str], raw_amount: Optional[str],
                          row_label: str, notes: List[str]) -> str:
        base = self.settings.base_currency
        if explicit:
            code = explicit.upper()
            if code in CURRENCY_CODES:
                return code
            notes.append(f"{row_label}: unsupported currency code {explicit!r}, using {base}")
            return base
        return self.preprocessor.detect_currency(raw_amount) or base


class TransactionExtractor:
    """Extracts records from tabular data (CSV rows or spreadsheet sheets)."""

    def __init__(self, converter: Optional[RowConverter] = None,
                 settings: Optional[PipelineSettings] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or (converter.settings if converter else PipelineSettings())
        self.converter = converter or RowConverter(self.settings)

    def extract_from_csv(self, df: pd.DataFrame) -> ExtractionOutcome:
        """
        Extract records from a CSV table.

        Raises:
            MissingColumnsError: if a required logical field has no column
            NoValidDataError: if no row could be converted
        """
        headers = normalize_headers(df.columns)
        column_map, missing = map_columns(headers)
        if missing:
            raise MissingColumnsError(missing, headers)

        outcome = ExtractionOutcome()
        self._extract_table(df, headers, column_map, outcome, label_prefix="")
        self._require_records(outcome, "CSV file")
        return outcome

    def extract_from_sheets(self, sheets: Dict[str, pd.DataFrame]) -> ExtractionOutcome:
        """
        Extract records from every sheet of a workbook.

        Sheets without the required columns are skipped with a warning; if no
        sheet has them, MissingColumnsError is raised.
        """
        outcome = ExtractionOutcome()
        usable_sheets = 0
        first_missing: Optional[Tuple[List[str], List[str]]] = None

        for sheet_name, df in sheets.items():
            if df.empty and len(df.columns) == 0:
                self.logger.info(f"Skipping empty sheet: {sheet_name}")
                continue

            headers = normalize_headers(df.columns)
            column_map, missing = map_columns(headers)
            if missing:
                message = f"Sheet '{sheet_name}': Missing required columns: {', '.join(missing)}"
                self.logger.warning(message)
                outcome.warnings.append(message)
                if first_missing is None:
                    first_missing = (missing, headers)
                continue

            usable_sheets += 1
            self._extract_table(df, headers, column_map, outcome, label_prefix=f"Sheet '{sheet_name}', ")

        if usable_sheets == 0:
            if first_missing is not None:
                missing, headers = first_missing
                raise MissingColumnsError(missing, headers, detail="No sheet in the workbook has them.")
            raise NoValidDataError("The spreadsheet contains no data.")

        self._require_records(outcome, "Excel file")
        return outcome

    def _extract_table(self, df: pd.DataFrame, headers: List[str], column_map: ColumnMap,
                       outcome: ExtractionOutcome, label_prefix: str) -> None:
        self.logger.info(f"Extracting transactions from structured data ({len(df)} rows)")
        self.logger.info(f"Column mapping: {column_map}")

        for position, values in enumerate(df.itertuples(index=False, name=None)):
            raw_row: RawRow = dict(zip(headers, values))
            if all(self.converter.preprocessor.clean_text(value) is None for value in raw_row.values()):
                continue

            # Header is line 1, first data row is line 2
            row_label = f"{label_prefix}Row {position + 2}"
            fields = {name: raw_row.get(header) for name, header in column_map.items()}
            outcome.attempted += 1

            try:
                record, notes = self.converter.convert(fields, row_label)
            except RowSkippedError as e:
                self.logger.warning(str(e))
                outcome.errors.append(str(e))
                outcome.warnings.append(str(e))
                continue

            outcome.records.append(record)
            outcome.warnings.extend(notes)

        self.logger.info(f"Extracted {len(outcome.records)} transactions from structured data")

    def _require_records(self, outcome: ExtractionOutcome, what: str) -> None:
        if outcome.records:
            return
        if outcome.errors:
            raise NoValidDataError(
                f"No valid data found in {what}.",
                errors=outcome.errors,
                max_samples=self.settings.max_error_samples,
            )
        raise NoValidDataError(f"No valid data found in {what}. Please check the data format.")
