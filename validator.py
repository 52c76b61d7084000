"""
Row validation: decides whether a raw row carries enough information to
become a record, and fills in fallback defaults.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from categorizer import DEFAULT_CATEGORY
from config import ValidationPolicy
from errors import RowSkippedError
from preprocess import DataPreprocessor

logger = logging.getLogger(__name__)


@dataclass
class ValidatedRow:
    """A row accepted by the validator, with defaults applied."""
    signed_amount: float
    date: str  # YYYY-MM-DD
    category: str
    description: Optional[str] = None
    raw_amount: Optional[str] = None
    currency: Optional[str] = None
    tags: Optional[str] = None
    date_defaulted: bool = False
    category_defaulted: bool = False
    notes: List[str] = field(default_factory=list)


class RowValidator:
    """
    Applies the validation policy to a row of logical fields.

    Lenient policy (default), in priority order:
      - no usable amount          -> reject
      - amount only               -> accept, date = today, category = "Uncategorized"
      - amount + date or category -> accept, default the missing one
      - all three                 -> accept as-is

    Strict policy requires amount, a parseable date and a category.
    """

    def __init__(self, policy: ValidationPolicy = ValidationPolicy.LENIENT,
                 preprocessor: Optional[DataPreprocessor] = None,
                 today: Optional[Callable[[], date]] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.policy = ValidationPolicy(policy)
        self.preprocessor = preprocessor or DataPreprocessor()
        self._today = today or date.today

    def validate(self, fields: Dict[str, Optional[str]], row_label: str) -> ValidatedRow:
        """
        Validate one row of logical fields.

        Args:
            fields: Logical field name -> raw cell text (date, amount, category, ...)
            row_label: Human-readable location used in error messages, e.g. "Row 4"

        Returns:
            ValidatedRow with defaults applied

        Raises:
            RowSkippedError: if the row cannot become a record
        """
        clean = self.preprocessor.clean_text
        raw_amount = clean(fields.get('amount'))
        raw_date = clean(fields.get('date'))
        category = clean(fields.get('category'))

        if raw_amount is None:
            raise RowSkippedError(row_label, "missing amount")

        signed_amount = self.preprocessor.clean_amount(raw_amount)
        if signed_amount is None:
            raise RowSkippedError(row_label, f"amount {raw_amount!r} is not a number")

        notes: List[str] = []
        normalized_date = None
        if raw_date is not None:
            normalized_date = self.preprocessor.normalize_date(raw_date)
            if normalized_date is None:
                if self.policy == ValidationPolicy.STRICT:
                    raise RowSkippedError(row_label, f"unrecognized date {raw_date!r}")
                notes.append(f"{row_label}: unrecognized date {raw_date!r}, using today's date")

        if self.policy == ValidationPolicy.STRICT:
            if normalized_date is None:
                raise RowSkippedError(row_label, "missing date")
            if category is None:
                raise RowSkippedError(row_label, "missing category")

        date_defaulted = normalized_date is None
        if date_defaulted:
            normalized_date = self._today().isoformat()

        return ValidatedRow(
            signed_amount=signed_amount,
            date=normalized_date,
            category=category if category is not None else DEFAULT_CATEGORY,
            description=clean(fields.get('description')),
            raw_amount=raw_amount,
            currency=clean(fields.get('currency')),
            tags=clean(fields.get('tags')),
            date_defaulted=date_defaulted,
            category_defaulted=category is None,
            notes=notes,
        )
