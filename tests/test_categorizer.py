"""Tests for the category heuristic and tag extraction."""

import pytest

from categorizer import CATEGORY_KEYWORDS, DEFAULT_CATEGORY, TransactionCategorizer


@pytest.fixture
def categorizer() -> TransactionCategorizer:
    return TransactionCategorizer()


class TestCategorize:
    """Ordered keyword-table lookup."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Quarterly revenue", "Revenue"),
            ("Net income", "Revenue"),
            ("March payroll", "Salaries"),
            ("Office rent", "Rent"),
            ("Equipment leasing", "Rent"),
            ("Liability insurance premium", "Insurance"),
            ("Electricity bill", "Utilities"),
            ("Google advertising", "Marketing"),
            ("Flight to Berlin", "Travel"),
            ("SaaS subscription", "Software"),
            ("VAT return", "Taxes"),
            ("Bank fee", "Expenses"),
            ("Total Assets", "Assets"),
            ("Mortgage repayment", "Liabilities"),
        ],
    )
    def test_keywords(self, categorizer, text, expected):
        assert categorizer.categorize(text) == expected

    def test_first_match_wins(self, categorizer):
        """Rent precedes Insurance in the table, so a row naming both is Rent."""
        assert categorizer.categorize("Rent and insurance for March") == "Rent"

    def test_order_is_significant(self):
        """Reordering the table changes the result for multi-keyword text."""
        reordered = tuple(sorted(CATEGORY_KEYWORDS, key=lambda entry: entry[0] != "Insurance"))
        assert TransactionCategorizer(reordered).categorize("Rent and insurance") == "Insurance"

    def test_word_start_only(self, categorizer):
        """'current' must not match the 'rent' keyword."""
        assert categorizer.categorize("Current account transfer") == DEFAULT_CATEGORY

    def test_case_insensitive(self, categorizer):
        assert categorizer.categorize("OFFICE RENT") == "Rent"

    @pytest.mark.parametrize("text", [None, "", "Miscellaneous"])
    def test_default(self, categorizer, text):
        assert categorizer.categorize(text) == DEFAULT_CATEGORY


class TestExtractTags:
    """Hashtags and business terms pulled from descriptions."""

    def test_hashtags_then_terms(self):
        tags = TransactionCategorizer.extract_tags("Invoice 42 paid #acme #q1")
        assert tags == ["acme", "q1", "invoice"]

    def test_unique(self):
        assert TransactionCategorizer.extract_tags("#rent rent payment") == ["rent", "payment"]

    @pytest.mark.parametrize("text", [None, "", "Coffee"])
    def test_none_when_empty(self, text):
        assert TransactionCategorizer.extract_tags(text) is None
