"""Tests for the CSV template and re-serialization."""

import csv
import io

from extract import BankStatementProcessor
from sample import EXPORT_HEADER, TEMPLATE_HEADER, format_amount, records_to_csv, records_to_rows, sample_csv

from conftest import today


class TestTemplate:
    """The downloadable template."""

    def test_header(self):
        assert sample_csv().splitlines()[0] == "date,amount,category,description"
        assert TEMPLATE_HEADER == ("date", "amount", "category", "description")

    def test_template_is_ingestible(self, processor):
        result = processor.process_bytes(sample_csv().encode("utf-8"), "csv")
        assert [(r.date, r.signed_amount) for r in result.records] == [
            ("2025-01-01", 1000.0),
            ("2025-01-02", -50.0),
            ("2025-01-03", 500.0),
        ]


class TestRecordsToCsv:
    """Re-serialization back into the canonical shape."""

    def test_shape(self, processor, sample_csv_bytes):
        records = processor.process_bytes(sample_csv_bytes, "csv").records
        rows = list(csv.reader(io.StringIO(records_to_csv(records))))

        assert tuple(rows[0]) == EXPORT_HEADER
        rent = next(row for row in rows if row[3] == "Office rent")
        assert rent == ["2024-01-15", "-1200.5", "Rent", "Office rent", "USD", "rent"]

    def test_no_exponent(self):
        assert format_amount(2500000.0) == "2500000.0"
        assert format_amount(0.15) == "0.15"
        assert format_amount(-1e-05) == "-0.00001"

    def test_reingest_is_idempotent(self, processor, sample_csv_bytes, bank_export_csv_bytes):
        """Parsing the re-serialized output yields the same records."""
        for data in (sample_csv_bytes, bank_export_csv_bytes):
            first = processor.process_bytes(data, "csv").records
            second = processor.process_bytes(records_to_csv(first).encode("utf-8"), "csv").records
            assert second == first

    def test_reingest_pdf_records(self, processor, narrative_pdf_bytes):
        first = processor.process_bytes(narrative_pdf_bytes, "pdf").records
        second = BankStatementProcessor(today=today).process_bytes(records_to_csv(first).encode("utf-8"), "csv").records
        assert second == first

    def test_rows(self, processor, sample_csv_bytes):
        rows = records_to_rows(processor.process_bytes(sample_csv_bytes, "csv").records)
        assert rows[0]["type"] == "income"
        assert rows[0]["date"] == "2023-07-01"
