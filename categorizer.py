"""
Keyword-table categorization of transaction descriptions.
"""
import re
import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"

# Checked top to bottom; the first category with a matching keyword wins,
# so "rent and insurance" resolves to Rent.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('Revenue', ('revenue', 'sales', 'income', 'profit', 'earnings', 'proceeds')),
    ('Salaries', ('salary', 'salaries', 'wage', 'payroll', 'compensation', 'remuneration')),
    ('Rent', ('rent', 'lease', 'leasing')),
    ('Insurance', ('insurance', 'premium')),
    ('Utilities', ('utility', 'utilities', 'electricity', 'water', 'internet', 'gas bill')),
    ('Marketing', ('marketing', 'advertising', 'promotion')),
    ('Travel', ('travel', 'flight', 'hotel', 'airfare')),
    ('Software', ('software', 'subscription', 'license', 'saas')),
    ('Taxes', ('tax', 'taxes', 'vat')),
    ('Expenses', ('expense', 'cost', 'payment', 'fee', 'charge', 'disbursement')),
    ('Assets', ('asset', 'equipment', 'property', 'investment', 'inventory', 'receivable')),
    ('Liabilities', ('liability', 'liabilities', 'debt', 'loan', 'mortgage', 'credit', 'payable', 'obligation')),
)

TAG_TERMS = (
    'invoice', 'payment', 'salary', 'rent', 'utility',
    'subscription', 'refund', 'tax', 'insurance',
)

_HASHTAG_PATTERN = re.compile(r'#([\w-]+)')


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Word-start match with optional plural, so "rent" hits "rent"/"rents"/"rental"
    # but never "current" or "parent"
    return re.compile(r'\b' + re.escape(keyword) + r'(?:s|es|al|als)?\b')


class TransactionCategorizer:
    """Classifies a description into a category using CATEGORY_KEYWORDS."""

    def __init__(self, keyword_table: Optional[Tuple[Tuple[str, Tuple[str, ...]], ...]] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.keyword_table = keyword_table if keyword_table is not None else CATEGORY_KEYWORDS
        self._compiled: List[Tuple[str, List[re.Pattern]]] = [
            (category, [_keyword_pattern(keyword) for keyword in keywords])
            for category, keywords in self.keyword_table
        ]

    def categorize(self, text: Optional[str]) -> str:
        """
        Return the first category whose keywords occur in the text.

        Args:
            text: Description or joined row text

        Returns:
            Category label, DEFAULT_CATEGORY when nothing matches
        """
        if not text:
            return DEFAULT_CATEGORY

        lowered = text.lower()
        for category, patterns in self._compiled:
            if any(pattern.search(lowered) for pattern in patterns):
                self.logger.debug(f"Categorized {text!r} as {category}")
                return category
        return DEFAULT_CATEGORY

    @staticmethod
    def extract_tags(description: Optional[str]) -> Optional[List[str]]:
        """
        Pull hashtags and common business terms out of a description.

        Returns:
            Unique tags in first-seen order, or None when there are none
        """
        if not description:
            return None

        tags = _HASHTAG_PATTERN.findall(description)
        lowered = description.lower()
        tags.extend(term for term in TAG_TERMS if term in lowered)

        unique = list(dict.fromkeys(tags))
        return unique or None
