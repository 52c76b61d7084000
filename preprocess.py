import re
import math
import logging
from datetime import date, datetime
from typing import Optional, Union, Tuple, List

from dateutil import parser as date_parser

from schema import TransactionType

logger = logging.getLogger(__name__)

# Locale date patterns, tried in this order after ISO 8601
DATE_FORMATS = (
    '%m/%d/%Y',   # MM/dd/yyyy
    '%d/%m/%Y',   # dd/MM/yyyy
    '%m-%d-%Y',   # MM-dd-yyyy
    '%d-%m-%Y',   # dd-MM-yyyy
    '%Y/%m/%d',   # yyyy/MM/dd
    '%d.%m.%Y',   # dd.MM.yyyy
    '%m.%d.%Y',   # MM.dd.yyyy
)

# Month-name patterns, tried after the numeric ones
MONTH_NAME_FORMATS = (
    '%B %d, %Y',  # January 15, 2024
    '%b %d, %Y',  # Jan 15, 2024
    '%B %d %Y',
    '%b %d %Y',
    '%d %B %Y',   # 15 January 2024
    '%d %b %Y',   # 15 Jan 2024
)

QUARTER_PATTERNS = (
    re.compile(r'^Q([1-4])\s*(\d{4})$', re.IGNORECASE),       # Q3 2023
    re.compile(r'^(\d{4})\s*Q([1-4])$', re.IGNORECASE),       # 2023 Q3
)

CURRENCY_CODES = ('USD', 'EUR', 'GBP', 'CAD', 'AUD', 'JPY', 'CNY')

CURRENCY_SYMBOLS = {
    '$': 'USD',
    '€': 'EUR',
    '£': 'GBP',
    '¥': 'JPY',
}

MAGNITUDE_SUFFIXES = {
    'K': 1e3,
    'M': 1e6,
    'B': 1e9,
    'T': 1e12,
}

# Codes may touch the digits ("USD100", "100USD") but not other letters
_CODE_PATTERN = re.compile(r'(?<![A-Za-z])(' + '|'.join(CURRENCY_CODES) + r')(?![A-Za-z])', re.IGNORECASE)
_SYMBOL_PATTERN = re.compile('[' + re.escape(''.join(CURRENCY_SYMBOLS)) + ']')
_NUMBER_PATTERN = re.compile(r'^\d+(?:\.\d+)?$|^\.\d+$')
_THOUSANDS_COMMA = re.compile(r'^\d{1,3}(?:,\d{3})+(?:\.\d+)?$')
_THOUSANDS_DOT = re.compile(r'^\d{1,3}(?:\.\d{3})+(?:,\d+)?$')


class DataPreprocessor:
    """Pure conversions of raw date, amount and text tokens into canonical values."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def clean_amount(self, amount: Union[str, float, int, None]) -> Optional[float]:
        """
        Clean and normalize a monetary amount.

        Handles currency codes and symbols, percentages ("15%" -> 0.15),
        accounting negatives ("(1,200.50)" -> -1200.5), magnitude suffixes
        ("$2.5M" -> 2500000) and both thousands-separator conventions.

        Args:
            amount: Amount in various formats

        Returns:
            Signed float, or None when the value is not a number
        """
        if amount is None:
            return None

        if isinstance(amount, bool):
            return None

        if isinstance(amount, (int, float)):
            if isinstance(amount, float) and math.isnan(amount):
                return None
            return float(amount)

        text = str(amount).strip()
        if not text:
            return None

        # Remove currency codes and symbols
        text = _CODE_PATTERN.sub('', text)
        text = _SYMBOL_PATTERN.sub('', text)
        text = text.replace('\u00a0', '').replace(' ', '').replace('\u2212', '-')

        negative = False
        if text.startswith('(') and text.endswith(')'):
            negative = True
            text = text[1:-1]

        if text.startswith('-'):
            negative = not negative
            text = text[1:]
        elif text.startswith('+'):
            text = text[1:]

        # Currency stripping can leave "-(...)" or "(-...)" shapes behind
        if text.startswith('(') and text.endswith(')'):
            negative = not negative
            text = text[1:-1]

        factor = 1.0
        if text.endswith('%'):
            factor = 0.01
            text = text[:-1]
        elif text and text[-1].upper() in MAGNITUDE_SUFFIXES:
            factor = MAGNITUDE_SUFFIXES[text[-1].upper()]
            text = text[:-1]

        number = self._normalize_separators(text)
        if number is None or not _NUMBER_PATTERN.match(number):
            self.logger.debug(f"Could not parse amount: {amount!r}")
            return None

        value = float(number) * factor
        if factor == 0.01:
            # Keep percentages free of binary noise, e.g. 15% -> 0.15
            value = round(value, 10)
        return -value if negative else value

    @staticmethod
    def _normalize_separators(text: str) -> Optional[str]:
        """Turn "1,234.56", "1.234,56" or "12,50" into "1234.56" style."""
        if not text:
            return None

        has_comma = ',' in text
        has_dot = '.' in text

        if has_comma and has_dot:
            if text.rfind(',') > text.rfind('.'):
                # European: dot thousands, comma decimal
                return text.replace('.', '').replace(',', '.')
            return text.replace(',', '')

        if has_comma:
            if _THOUSANDS_COMMA.match(text):
                return text.replace(',', '')
            if re.match(r'^\d+,\d{1,2}$', text):
                return text.replace(',', '.')
            return text.replace(',', '')

        if has_dot and text.count('.') > 1:
            if _THOUSANDS_DOT.match(text):
                return text.replace('.', '')
            return None

        return text

    def detect_currency(self, amount: Union[str, float, int, None]) -> Optional[str]:
        """Return the ISO currency code written inside an amount token, if any."""
        if amount is None or isinstance(amount, (int, float)):
            return None

        text = str(amount)
        code = _CODE_PATTERN.search(text)
        if code:
            return code.group(1).upper()

        symbol = _SYMBOL_PATTERN.search(text)
        if symbol:
            return CURRENCY_SYMBOLS[symbol.group(0)]
        return None

    def normalize_date(self, date_str: Union[str, date, None]) -> Optional[str]:
        """
        Normalize a date to YYYY-MM-DD.

        Tries ISO 8601 first, then DATE_FORMATS in order, then month-name
        dates, then quarter notation. The first successful pattern wins.

        Args:
            date_str: Date string in various formats

        Returns:
            Normalized date string, or None when no pattern matches
        """
        if date_str is None:
            return None

        if isinstance(date_str, date):
            if isinstance(date_str, datetime):
                date_str = date_str.date()
            return date_str.isoformat()

        text = str(date_str).strip()
        if not text or text.lower() in ('nan', 'nat', 'none'):
            return None

        iso = self._parse_iso(text)
        if iso:
            return iso

        for fmt in DATE_FORMATS + MONTH_NAME_FORMATS:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue

        quarter = self.parse_quarter(text)
        if quarter:
            return quarter

        self.logger.debug(f"Could not normalize date: {date_str!r}")
        return None

    @staticmethod
    def _parse_iso(text: str) -> Optional[str]:
        # Only full calendar dates; isoparse would also accept "2023" or "2023-05"
        if not re.match(r'^\d{4}-\d{2}-\d{2}', text):
            return None
        try:
            # isoformat() keeps years below 1000 zero-padded
            return date_parser.isoparse(text).date().isoformat()
        except ValueError:
            return None

    @staticmethod
    def parse_quarter(text: str) -> Optional[str]:
        """Map "Q3 2023" or "2023 Q3" to the first day of the quarter."""
        text = text.strip()
        match = QUARTER_PATTERNS[0].match(text)
        if match:
            quarter, year = int(match.group(1)), int(match.group(2))
        else:
            match = QUARTER_PATTERNS[1].match(text)
            if not match:
                return None
            year, quarter = int(match.group(1)), int(match.group(2))

        month = (quarter - 1) * 3 + 1
        return f"{year:04d}-{month:02d}-01"

    @staticmethod
    def derive_type(signed_amount: float) -> Tuple[TransactionType, float]:
        """Split a signed amount into (type, magnitude)."""
        if signed_amount >= 0:
            return TransactionType.INCOME, abs(signed_amount)
        return TransactionType.EXPENSE, abs(signed_amount)

    @staticmethod
    def clean_text(value) -> Optional[str]:
        """Strip a cell value; blanks and NaN-likes become None."""
        if value is None:
            return None
        if isinstance(value, float) and math.isnan(value):
            return None
        text = str(value).strip()
        if not text or text.lower() in ('nan', 'none', 'null'):
            return None
        return text

    @staticmethod
    def split_tags(value: Optional[str]) -> Optional[List[str]]:
        """Split a comma-separated tags cell."""
        if not value:
            return None
        tags = [tag.strip() for tag in value.split(',') if tag.strip()]
        return tags or None
