"""
Canonical CSV template and re-serialization of records into that shape.

Output of records_to_csv can be fed back through the pipeline and yields
the same records.
"""
import csv
import io
from decimal import Decimal
from typing import Iterable, List

from schema import FinancialRecord

TEMPLATE_HEADER = ('date', 'amount', 'category', 'description')
EXPORT_HEADER = TEMPLATE_HEADER + ('currency', 'tags')

# Positive amounts are income, negative amounts are expenses
SAMPLE_ROWS = (
    ('2025-01-01', '1000.00', 'Sales', 'Monthly revenue'),
    ('2025-01-02', '-50.00', 'Office Supplies', 'Office materials'),
    ('2025-01-03', '500.00', 'Consulting', 'Consulting fees'),
)


def sample_csv() -> str:
    """The downloadable template a user fills in."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(TEMPLATE_HEADER)
    writer.writerows(SAMPLE_ROWS)
    return buffer.getvalue()


def format_amount(value: float) -> str:
    """Plain decimal text without exponent, e.g. 2500000.0 -> '2500000.0'."""
    return format(Decimal(repr(value)), 'f')


def records_to_csv(records: Iterable[FinancialRecord]) -> str:
    """
    Serialize records with signed amounts, so expenses stay negative.

    Tags are written comma-separated in a single column.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(EXPORT_HEADER)
    for record in records:
        writer.writerow([
            record.date,
            format_amount(record.signed_amount),
            record.category,
            record.description or '',
            record.currency,
            ','.join(record.tags or []),
        ])
    return buffer.getvalue()


def records_to_rows(records: Iterable[FinancialRecord]) -> List[dict]:
    """JSON-ready dicts, in the order given."""
    return [record.model_dump(mode='json') for record in records]
