"""
Main entry point for the statement ingestion pipeline.
"""
import argparse
import json
import logging
import sys
from collections import OrderedDict
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from cache import ParseCache, content_hash
from config import PipelineSettings, ValidationPolicy, setup_logging
from dedupe import detect_duplicates
from errors import IngestionError, UnsupportedFormatError
from extractor import ExtractionOutcome, RowConverter, TransactionExtractor
from file_loader import FileLoader
from pdf_extractor import PdfStatementExtractor
from schema import BatchResult, FileKind, FinancialRecord, ParseResult, TransactionType

logger = logging.getLogger(__name__)

# (source name, raw bytes, declared kind)
BatchItem = Tuple[str, bytes, Union[FileKind, str]]


def resolve_kind(kind: Union[FileKind, str]) -> FileKind:
    """Turn a declared kind into a FileKind; unknown kinds are rejected."""
    if isinstance(kind, FileKind):
        return kind
    try:
        return FileKind(str(kind).strip().lower())
    except ValueError:
        raise UnsupportedFormatError(str(kind))


def sort_by_date(records: Iterable[FinancialRecord]) -> List[FinancialRecord]:
    """Stable sort, ascending by ISO date."""
    return sorted(records, key=lambda record: record.date)


def build_analysis(records: Sequence[FinancialRecord]) -> str:
    """One-line summary: the biggest expense category, or total income."""
    if not records:
        return "No transactions to analyze."

    expenses = OrderedDict()
    for record in records:
        if record.type != TransactionType.EXPENSE:
            continue
        key = (record.category, record.currency)
        total, count = expenses.get(key, (0.0, 0))
        expenses[key] = (total + record.amount, count + 1)

    if expenses:
        (category, currency), (total, count) = max(expenses.items(), key=lambda item: item[1][0])
        return (f"Your biggest expense is {category} at {total:,.2f} {currency} "
                f"across {_plural(count, 'transaction')}.")

    income = OrderedDict()
    for record in records:
        income[record.currency] = income.get(record.currency, 0.0) + record.amount
    totals = ", ".join(f"{total:,.2f} {currency}" for currency, total in income.items())
    return f"No expenses found. Total income is {totals} across {_plural(len(records), 'transaction')}."


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class BankStatementProcessor:
    """
    Main processor for financial statements.

    Stateless between calls apart from the optional cache.
    """

    def __init__(self, settings: Optional[PipelineSettings] = None,
                 cache: Optional[ParseCache] = None,
                 today: Optional[Callable] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or PipelineSettings()
        self.cache = cache
        self._today = today or date.today
        self.file_loader = FileLoader(self.settings.csv_encodings)
        self.converter = RowConverter(self.settings, today=self._today)
        self.extractor = TransactionExtractor(self.converter, self.settings)
        self.pdf_extractor = PdfStatementExtractor(self.converter, self.settings)

    def process_bytes(self, data: bytes, kind: Union[FileKind, str],
                      source: Optional[str] = None) -> ParseResult:
        """
        Parse one file end-to-end.

        Args:
            data: Raw file contents
            kind: Declared file kind (csv, spreadsheet, pdf)
            source: Name used in logs and in the result

        Returns:
            ParseResult with deduplicated, date-sorted records

        Raises:
            UnsupportedFormatError: if the kind has no parser
            MissingColumnsError, NoValidDataError: if the file yields nothing
        """
        file_kind = resolve_kind(kind)
        source = source or f"<{file_kind.value}>"
        self.logger.info(f"Starting processing of {source} as {file_kind.value}")

        if self.cache is not None:
            cached = self.cache.get(data, file_kind, self.cache_scope())
            if cached is not None:
                self.logger.info(f"Cache hit for {source}")
                return cached.model_copy(update={'source': source})

        try:
            outcome = self._dispatch(data, file_kind)
        except IngestionError as e:
            self.logger.error(f"Error processing {source}: {e}")
            raise

        result = self._assemble(outcome.records, outcome.warnings, source=source, kind=file_kind)
        self.logger.info(f"Successfully processed {len(result.records)} transactions from {source}")

        if self.cache is not None:
            self.cache.put(data, file_kind, result, self.cache_scope())
        return result

    def cache_scope(self) -> str:
        """Fingerprint of everything besides the bytes that shapes a result."""
        settings = self.settings.model_dump_json()
        return f"{content_hash(settings.encode('utf-8'))[:16]}:{self._today().isoformat()}"

    def process_file(self, file_path: Union[str, Path]) -> ParseResult:
        """Read a file in one shot and parse it by its extension."""
        path = Path(file_path)
        kind = FileKind.from_filename(path.name)
        if kind is None:
            raise UnsupportedFormatError(path.suffix or path.name)
        return self.process_bytes(path.read_bytes(), kind, source=str(path))

    def process_batch(self, items: Iterable[BatchItem]) -> BatchResult:
        """
        Parse several files and merge their records.

        A file that fails keeps its error in its own ParseResult; the other
        files are still processed.
        """
        files: List[ParseResult] = []
        for source, data, kind in items:
            try:
                files.append(self.process_bytes(data, kind, source=source))
            except IngestionError as e:
                files.append(self._failed(source, kind, e))
        return self._merge(files)

    def process_paths(self, paths: Iterable[Union[str, Path]]) -> BatchResult:
        """Batch variant of process_file; unreadable files become failed results."""
        files: List[ParseResult] = []
        for file_path in paths:
            try:
                files.append(self.process_file(file_path))
            except IngestionError as e:
                files.append(self._failed(str(file_path), FileKind.from_filename(str(file_path)), e))
            except OSError as e:
                self.logger.error(f"Could not read {file_path}: {e}")
                files.append(ParseResult(source=str(file_path), fatal_error=f"Could not read file: {e}"))
        return self._merge(files)

    def _dispatch(self, data: bytes, kind: FileKind) -> ExtractionOutcome:
        if kind == FileKind.CSV:
            df = self.file_loader.load_csv(data)
            return self.extractor.extract_from_csv(df)
        if kind == FileKind.SPREADSHEET:
            sheets = self.file_loader.load_spreadsheet(data)
            return self.extractor.extract_from_sheets(sheets)
        if kind == FileKind.PDF:
            pages = self.file_loader.load_pdf_fragments(data)
            return self.pdf_extractor.extract(pages)
        raise UnsupportedFormatError(kind.value)

    def _assemble(self, records: List[FinancialRecord], warnings: List[str],
                  source: Optional[str] = None, kind: Optional[FileKind] = None,
                  duplicates: Optional[List[FinancialRecord]] = None) -> ParseResult:
        duplicates = list(duplicates or [])
        warnings = list(warnings)
        if self.settings.detect_duplicates:
            records, found = detect_duplicates(records)
            if found:
                warnings.append(f"Removed {_plural(len(found), 'duplicate record')}")
                self.logger.info(f"Removed {len(found)} duplicate records")
            duplicates.extend(found)

        records = sort_by_date(records)
        return ParseResult(
            records=records,
            warnings=warnings,
            duplicates=duplicates,
            analysis=build_analysis(records),
            source=source,
            kind=kind,
        )

    def _merge(self, files: List[ParseResult]) -> BatchResult:
        records: List[FinancialRecord] = []
        warnings: List[str] = []
        duplicates: List[FinancialRecord] = []
        for result in files:
            label = result.source or "file"
            if not result.ok:
                warnings.append(f"{label}: {result.fatal_error}")
                continue
            records.extend(result.records)
            duplicates.extend(result.duplicates)
            warnings.extend(f"{label}: {warning}" for warning in result.warnings)

        combined = self._assemble(records, warnings, duplicates=duplicates)
        return BatchResult(
            files=files,
            records=combined.records,
            warnings=combined.warnings,
            duplicates=combined.duplicates,
            analysis=combined.analysis,
        )

    def _failed(self, source: str, kind, error: IngestionError) -> ParseResult:
        try:
            file_kind = resolve_kind(kind) if kind is not None else None
        except UnsupportedFormatError:
            file_kind = None
        return ParseResult(source=source, kind=file_kind, fatal_error=str(error))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Extract transactions from financial statements')
    parser.add_argument('file_paths', nargs='+', help='CSV, XLSX/XLS or PDF files')
    parser.add_argument('-o', '--output', help='Output JSON file path')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--strict', action='store_true', help='Require date, amount and category on every row')
    parser.add_argument('--base-currency', help='Currency for rows that carry none (default: USD)')
    parser.add_argument('--log-file', help='Also write logs to this file')

    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        settings = PipelineSettings.from_env()
        overrides = {}
        if args.strict:
            overrides['validation_policy'] = ValidationPolicy.STRICT
        if args.base_currency:
            overrides['base_currency'] = args.base_currency
        if overrides:
            settings = PipelineSettings(**{**settings.model_dump(), **overrides})
    except ValueError as e:
        print(f"Error: invalid settings - {e}")
        return 2

    processor = BankStatementProcessor(settings)
    result = processor.process_paths(args.file_paths)
    output_data = result.model_dump(mode='json')

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
        print(f"Results written to: {args.output}")
    else:
        print(json.dumps(output_data, indent=2, ensure_ascii=False))

    print(f"\nSummary:")
    print(f"- Files processed: {len(result.files)} ({len(result.failed_files)} failed)")
    print(f"- Total transactions: {len(result.records)}")
    print(f"- Duplicates removed: {len(result.duplicates)}")
    for failed in result.failed_files:
        print(f"- Failed: {failed.source}: {failed.fatal_error.splitlines()[0]}")

    if result.records:
        categories = {}
        for record in result.records:
            categories[record.category] = categories.get(record.category, 0) + 1

        print(f"\nCategory Breakdown:")
        for category, count in sorted(categories.items()):
            print(f"- {category}: {count} transactions")
        print(f"\n{result.analysis}")

    if len(result.failed_files) == len(result.files):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
