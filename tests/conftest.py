"""Test fixtures and utilities."""

import io
from datetime import date

import pandas as pd
import pytest

from config import PipelineSettings, ValidationPolicy
from extract import BankStatementProcessor
from extractor import RowConverter

FIXED_TODAY = date(2024, 6, 30)

SAMPLE_CSV = """date,amount,category,description
2024-01-15,"(1,200.50)",Rent,Office rent
2024-01-20,2500,Salary,January salary
2024-01-20,2500,Salary,January salary
2024-01-05,$2.5M,Sales,Contract win
Q3 2023,15%,Interest,Quarterly yield
"""

BANK_EXPORT_CSV = """Transaction Date,Description,Amount (USD),Category,Currency
01/10/2024,Coffee shop,-4.50,Meals,USD
01/11/2024,Client invoice #acme,"1,250.00",Consulting,USD
01/12/2024,Hotel stay,-310.20,Travel,EUR
"""

PAGE_WIDTH, PAGE_HEIGHT = 612, 792


def today() -> date:
    return FIXED_TODAY


def csv_bytes(text: str) -> bytes:
    """Encode a CSV literal, dropping the leading indentation-free newline."""
    return text.lstrip("\n").encode("utf-8")


def build_pdf(pages) -> bytes:
    """
    Draw text at fixed positions, one list of (x, y_from_top, text) per page.

    The result has a real text layer, so pdfplumber reports each drawn
    string as its own word with x0 == x.
    """
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    for page in pages:
        pdf.setFont("Helvetica", 10)
        for x, y, text in page:
            pdf.drawString(x, PAGE_HEIGHT - y, text)
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def build_xlsx(sheets) -> bytes:
    """Write {sheet name: DataFrame} into an in-memory workbook."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings()


@pytest.fixture
def strict_settings() -> PipelineSettings:
    return PipelineSettings(validation_policy=ValidationPolicy.STRICT)


@pytest.fixture
def converter(settings) -> RowConverter:
    return RowConverter(settings, today=today)


@pytest.fixture
def processor(settings) -> BankStatementProcessor:
    return BankStatementProcessor(settings, today=today)


@pytest.fixture
def sample_csv_bytes() -> bytes:
    return csv_bytes(SAMPLE_CSV)


@pytest.fixture
def bank_export_csv_bytes() -> bytes:
    return csv_bytes(BANK_EXPORT_CSV)


@pytest.fixture
def table_pdf_bytes() -> bytes:
    """Two-page statement with a header row and a repeated header on page 2."""
    header = [(50, 100, "Date"), (150, 100, "Description"), (350, 100, "Amount"), (450, 100, "Category")]
    page_one = [(50, 60, "ACME Corp Monthly Statement")] + header + [
        (50, 120, "2024-01-15"), (150, 120, "Office rent"), (350, 120, "-1,200.00"), (450, 120, "Rent"),
        (50, 140, "2024-01-18"), (150, 140, "Customer payment"), (350, 140, "3,400.00"), (450, 140, "Revenue"),
    ]
    page_two = header + [
        (50, 120, "2024-01-22"), (150, 120, "Flight to Berlin"), (350, 120, "-640.00"),
    ]
    return build_pdf([page_one, page_two])


@pytest.fixture
def narrative_pdf_bytes() -> bytes:
    """Statement without a table header; only label/amount lines."""
    lines = [
        "Income Statement",
        "Period: Q3 2023",
        "Revenue: $75,000",
        "- Salaries: (20,000)",
        "Office rent 08/01/2023 -1,200.00",
        "Prepared by the finance team",
        "Page 1",
    ]
    return build_pdf([[(50, 60 + 20 * i, text) for i, text in enumerate(lines)]])
