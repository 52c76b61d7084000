"""Tests for the field normalizer."""

from datetime import date, datetime

import pytest

from preprocess import DataPreprocessor
from schema import TransactionType


@pytest.fixture
def preprocessor() -> DataPreprocessor:
    return DataPreprocessor()


class TestCleanAmount:
    """Amount tokens in the encodings statements actually use."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1,200.50", 1200.5),
            ("(1,200.50)", -1200.5),
            ("-45.00", -45.0),
            ("+12", 12.0),
            ("$2.5M", 2500000.0),
            ("2.5K", 2500.0),
            ("1.5B", 1500000000.0),
            ("1.234,56", 1234.56),
            ("12,50", 12.5),
            ("USD 1,000", 1000.0),
            ("€ 99.90", 99.9),
            ("-$50.00", -50.0),
            ("1 000", 1000.0),
            ("USD100", 100.0),
            ("100USD", 100.0),
            ("EUR25,000", 25000.0),
            ("\u22121,200.00", -1200.0),
        ],
    )
    def test_parses(self, preprocessor, raw, expected):
        assert preprocessor.clean_amount(raw) == pytest.approx(expected)

    def test_percentage_is_fraction(self, preprocessor):
        """15% becomes 0.15 exactly, without float noise."""
        assert preprocessor.clean_amount("15%") == 0.15

    def test_numbers_pass_through(self, preprocessor):
        assert preprocessor.clean_amount(42) == 42.0
        assert preprocessor.clean_amount(-3.5) == -3.5

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "12abc", float("nan"), True])
    def test_unparseable_is_none(self, preprocessor, raw):
        assert preprocessor.clean_amount(raw) is None


class TestDetectCurrency:
    """Currency codes and symbols inside amount tokens."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("$12", "USD"), ("€5", "EUR"), ("£7", "GBP"), ("¥300", "JPY"), ("1,000 cad", "CAD"), ("12.00", None),
         ("USD100", "USD"), ("100eur", "EUR"), ("USDA 5", None)],
    )
    def test_detect(self, preprocessor, raw, expected):
        assert preprocessor.detect_currency(raw) == expected


class TestNormalizeDate:
    """Date normalization to YYYY-MM-DD."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2024-03-05", "2024-03-05"),
            ("2024-03-05T10:30:00", "2024-03-05"),
            ("03/05/2024", "2024-03-05"),
            ("25/12/2024", "2024-12-25"),
            ("03-05-2024", "2024-03-05"),
            ("2024/03/05", "2024-03-05"),
            ("05.03.2024", "2024-03-05"),
            ("January 15, 2024", "2024-01-15"),
            ("Jan 15, 2024", "2024-01-15"),
            ("15 January 2024", "2024-01-15"),
            ("Q3 2023", "2023-07-01"),
            ("2023 Q4", "2023-10-01"),
            ("0001-01-01", "0001-01-01"),
            ("0999-12-31T08:00:00", "0999-12-31"),
            ("01/02/0005", "0005-01-02"),
            ("q1 2024", "2024-01-01"),
        ],
    )
    def test_formats(self, preprocessor, raw, expected):
        assert preprocessor.normalize_date(raw) == expected

    def test_month_first_wins_when_ambiguous(self, preprocessor):
        """MM/dd/yyyy is tried before dd/MM/yyyy."""
        assert preprocessor.normalize_date("04/05/2024") == "2024-04-05"

    def test_date_objects(self, preprocessor):
        assert preprocessor.normalize_date(date(2024, 2, 29)) == "2024-02-29"
        assert preprocessor.normalize_date(datetime(812, 3, 4, 15, 0)) == "0812-03-04"

    @pytest.mark.parametrize("raw", [None, "", "nan", "not a date", "2024", "Q5 2023", "13/13/2024"])
    def test_unrecognized(self, preprocessor, raw):
        assert preprocessor.normalize_date(raw) is None


class TestHelpers:
    """Type derivation and text helpers."""

    def test_derive_type(self):
        assert DataPreprocessor.derive_type(-10.0) == (TransactionType.EXPENSE, 10.0)
        assert DataPreprocessor.derive_type(10.0) == (TransactionType.INCOME, 10.0)
        assert DataPreprocessor.derive_type(0.0) == (TransactionType.INCOME, 0.0)

    @pytest.mark.parametrize("raw", [None, "", "  ", "nan", "None", "NULL", float("nan")])
    def test_clean_text_blank(self, raw):
        assert DataPreprocessor.clean_text(raw) is None

    def test_clean_text_strips(self):
        assert DataPreprocessor.clean_text("  Rent ") == "Rent"

    def test_split_tags(self):
        assert DataPreprocessor.split_tags("rent, office,,") == ["rent", "office"]
        assert DataPreprocessor.split_tags("") is None
        assert DataPreprocessor.split_tags(" , ") is None
