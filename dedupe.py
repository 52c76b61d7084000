"""
Duplicate detection.

A record is a duplicate when an earlier record has the same
(date, amount, description) key. Matching is exact; no fuzzy comparison.
"""
from typing import Iterable, List, Tuple

from schema import FinancialRecord

DuplicateKey = Tuple[str, float, str]


def duplicate_key(record: FinancialRecord) -> DuplicateKey:
    """Composite key identifying structurally identical records."""
    return (record.date, record.amount, record.description or "")


def detect_duplicates(records: Iterable[FinancialRecord]) -> Tuple[List[FinancialRecord], List[FinancialRecord]]:
    """
    Split records into (unique, duplicates).

    The first occurrence of every key is kept in input order; later
    occurrences are returned in the duplicates list.
    """
    seen = set()
    unique: List[FinancialRecord] = []
    duplicates: List[FinancialRecord] = []

    for record in records:
        key = duplicate_key(record)
        if key in seen:
            duplicates.append(record)
        else:
            seen.add(key)
            unique.append(record)

    return unique, duplicates
