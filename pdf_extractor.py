"""
PDF table and text extraction.

PDFs carry glyphs with coordinates, not rows and columns. Structure is
rebuilt in two passes:

1. Band pass: fragments are grouped into horizontal bands (candidate rows)
   by vertical position.
2. Column pass: the first band containing a header keyword defines column
   anchors; every later band's fragments are assigned to the nearest anchor.

Statements without a header band fall back to per-line pattern matching.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from categorizer import TransactionCategorizer
from config import PipelineSettings
from errors import NoValidDataError, RowSkippedError
from extractor import ExtractionOutcome, RowConverter
from preprocess import CURRENCY_CODES, DataPreprocessor

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ('date', 'amount', 'description', 'category')

_MONTH = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?'
_CODES = '|'.join(CURRENCY_CODES)

AMOUNT_TOKEN = (
    r'\(?[-+\u2212]?\s*(?:(?:' + _CODES + r')\s*)?[$€£¥]?\s*[-+\u2212]?\d[\d,.]*'
    r'(?:\s?[KMBTkmbt]\b|%)?\)?(?:\s*(?:' + _CODES + r')(?![A-Za-z]))?'
)

# Tried in order; the first pattern that matches a line wins.
LINE_PATTERNS: Tuple[Tuple[str, re.Pattern], ...] = (
    ('label_amount', re.compile(
        r'^(?P<label>[^\W\d][^:]*?)\s*:\s*(?P<amount>' + AMOUNT_TOKEN + r')\s*$')),
    ('bullet', re.compile(
        r'^[•\-\*▪◦·]\s*(?P<label>[^:]+?)\s*:\s*(?P<amount>' + AMOUNT_TOKEN + r')\s*$')),
    ('loose', re.compile(
        r'^(?:[•\-\*▪◦·]\s*)?(?P<label>.*?[^\W\d_].*?)(?:\s*[:–—]\s*|\s+)(?P<amount>' + AMOUNT_TOKEN + r')\s*$')),
)

# Row-local date tokens, most specific first
DATE_TOKEN_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r'\b' + _MONTH + r'\s+\d{1,2},?\s+\d{4}\b', re.IGNORECASE),
    re.compile(r'\b\d{1,2}\s+' + _MONTH + r'\s+\d{4}\b', re.IGNORECASE),
    re.compile(r'\b\d{4}-\d{2}-\d{2}\b'),
    re.compile(r'\b\d{4}/\d{1,2}/\d{1,2}\b'),
    re.compile(r'\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{4}\b'),
    re.compile(r'\bQ[1-4]\s*\d{4}\b', re.IGNORECASE),
    re.compile(r'\b\d{4}\s*Q[1-4]\b', re.IGNORECASE),
)

# Document-level date search: month-name date, ISO date, quarter notation
DOCUMENT_DATE_PATTERNS: Tuple[re.Pattern, ...] = (
    DATE_TOKEN_PATTERNS[0],
    DATE_TOKEN_PATTERNS[1],
    DATE_TOKEN_PATTERNS[2],
    DATE_TOKEN_PATTERNS[5],
    DATE_TOKEN_PATTERNS[6],
)

SKIP_LINE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r'^page \d+', re.IGNORECASE),
    re.compile(r'^[-_*=]{3,}$'),
)


@dataclass(frozen=True)
class TextFragment:
    """A run of text with its origin on the page (y grows downwards)."""
    text: str
    x: float
    y: float
    page: int = 0


@dataclass
class Band:
    """Fragments sharing an approximate vertical position."""
    page: int
    y: float
    fragments: List[TextFragment] = field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(fragment.text for fragment in self.fragments)


@dataclass
class LineMatch:
    pattern: str
    label: str
    amount: str


def group_into_bands(fragments: Iterable[TextFragment], tolerance: float = 5.0) -> List[Band]:
    """
    Group fragments into bands, top-down in document order.

    A fragment joins the first band on its page whose anchor y is closer
    than the tolerance; otherwise it starts a new band. Fragments inside a
    band are sorted by x.
    """
    bands: List[Band] = []
    page_bands: List[Band] = []
    current_page = None

    for fragment in sorted(fragments, key=lambda f: (f.page, f.y, f.x)):
        if fragment.page != current_page:
            current_page = fragment.page
            page_bands = []

        band = next((b for b in page_bands if abs(b.y - fragment.y) < tolerance), None)
        if band is None:
            band = Band(page=fragment.page, y=fragment.y)
            page_bands.append(band)
            bands.append(band)
        band.fragments.append(fragment)

    for band in bands:
        band.fragments.sort(key=lambda f: f.x)
    return bands


def find_header_band(bands: Sequence[Band]) -> Optional[int]:
    """Index of the first band whose text contains a header keyword."""
    for index, band in enumerate(bands):
        text = band.text.lower()
        if any(keyword in text for keyword in HEADER_KEYWORDS):
            return index
    return None


def build_column_map(header_band: Band) -> Dict[str, float]:
    """
    Map logical fields to the x anchor of the header fragment naming them.

    Fragments are read left to right; the first fragment naming a field
    wins, and each fragment names at most one field.
    """
    column_map: Dict[str, float] = {}
    for fragment in header_band.fragments:
        text = fragment.text.lower()
        for logical_field in HEADER_KEYWORDS:
            if logical_field in text and logical_field not in column_map:
                column_map[logical_field] = fragment.x
                break
    return column_map


def assign_fragments(band: Band, column_map: Dict[str, float], proximity: float = 50.0) -> Dict[str, str]:
    """
    Assign each fragment of a band to its nearest column.

    A fragment is only assigned when it lies closer than the proximity
    threshold to a column anchor. On equal distance the column that comes
    first in the map wins. Several fragments in one column are joined.
    """
    fields: Dict[str, str] = {}
    for fragment in band.fragments:
        best_field = None
        best_distance = None
        for logical_field, anchor in column_map.items():
            distance = abs(fragment.x - anchor)
            if distance < proximity and (best_distance is None or distance < best_distance):
                best_field, best_distance = logical_field, distance

        if best_field is None:
            continue
        if best_field in fields:
            fields[best_field] = f"{fields[best_field]} {fragment.text}"
        else:
            fields[best_field] = fragment.text
    return fields


def match_line(text: str) -> Optional[LineMatch]:
    """Apply LINE_PATTERNS in order and return the first match."""
    for name, pattern in LINE_PATTERNS:
        match = pattern.match(text)
        if match:
            label = match.group('label').strip(' \t:-–—•*')
            if label:
                return LineMatch(pattern=name, label=label, amount=match.group('amount').strip())
    return None


def find_date_token(text: str, preprocessor: Optional[DataPreprocessor] = None,
                    patterns: Sequence[re.Pattern] = DATE_TOKEN_PATTERNS) -> Optional[Tuple[str, Tuple[int, int]]]:
    """
    Find the first recognizable date inside a line.

    Returns:
        (normalized YYYY-MM-DD date, (start, end) span) or None
    """
    preprocessor = preprocessor or DataPreprocessor()
    for pattern in patterns:
        for match in pattern.finditer(text):
            # "Jan. 15,  2024" -> "Jan 15, 2024"; numeric dots such as 15.01.2024 stay
            token = re.sub(r'(?<=[A-Za-z])\.', '', match.group(0))
            token = re.sub(r'\s+', ' ', token)
            normalized = preprocessor.normalize_date(_canonical_month(token))
            if normalized:
                return normalized, match.span()
    return None


def _canonical_month(token: str) -> str:
    # "Sept 5, 2023" -> "Sep 5, 2023"; strptime only knows three-letter or full names
    return re.sub(r'\bSept\b', 'Sep', token, flags=re.IGNORECASE)


def find_document_date(lines: Sequence[str], scan_lines: int = 20,
                       preprocessor: Optional[DataPreprocessor] = None) -> Optional[str]:
    """Search the first lines of a document for a statement-level date."""
    head = list(lines[:scan_lines])
    for pattern in DOCUMENT_DATE_PATTERNS:
        for line in head:
            found = find_date_token(line, preprocessor, patterns=(pattern,))
            if found:
                return found[0]
    return None


class PdfStatementExtractor:
    """Extracts records from positioned PDF text fragments."""

    def __init__(self, converter: Optional[RowConverter] = None,
                 settings: Optional[PipelineSettings] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or (converter.settings if converter else PipelineSettings())
        self.converter = converter or RowConverter(self.settings)
        self.categorizer: TransactionCategorizer = self.converter.categorizer
        self.preprocessor: DataPreprocessor = self.converter.preprocessor

    def extract(self, pages: Sequence[Sequence[TextFragment]]) -> ExtractionOutcome:
        """
        Extract records from the fragments of every page.

        Args:
            pages: Fragments per page, in page order

        Raises:
            NoValidDataError: if the document has no text or yields no records
        """
        fragments = [fragment for page in pages for fragment in page]
        if not fragments:
            raise NoValidDataError(
                "No text layer found in the PDF. Scanned documents are not supported; "
                "please upload a PDF with selectable text."
            )

        bands = group_into_bands(fragments, self.settings.band_tolerance)
        self.logger.info(f"Grouped {len(fragments)} fragments into {len(bands)} bands")

        outcome = ExtractionOutcome()
        debug: List[str] = []

        header_index = find_header_band(bands)
        if header_index is not None:
            self._extract_table(bands, header_index, outcome, debug)
            if not outcome.records:
                debug.append("Table pass produced no records, falling back to line patterns")
                self._extract_lines(bands, outcome, debug)
        else:
            debug.append("No header band found, using line patterns")
            self._extract_lines(bands, outcome, debug)

        if not outcome.records:
            trail = debug[-self.settings.debug_trail_size:] if self.settings.debug_trail_size else []
            raise NoValidDataError(
                "No valid data could be extracted from the PDF. Please ensure the PDF contains "
                "financial data in a structured format such as a Balance Sheet or Income Statement "
                "with clear sections, descriptions, and amounts.",
                errors=outcome.errors,
                debug_trail=trail,
                max_samples=self.settings.max_error_samples,
            )

        self.logger.info(f"Extracted {len(outcome.records)} transactions from PDF")
        return outcome

    def _extract_table(self, bands: List[Band], header_index: int,
                       outcome: ExtractionOutcome, debug: List[str]) -> None:
        header = bands[header_index]
        column_map = build_column_map(header)
        header_text = header.text.lower()
        debug.append(f"Header band on page {header.page + 1}: {header.text!r} -> {column_map}")
        self.logger.info(f"PDF column map: {column_map}")

        for row_number, band in enumerate(bands[header_index + 1:], start=1):
            row_label = f"Table row {row_number}"
            if band.text.lower() == header_text:
                debug.append(f"{row_label}: repeated header skipped")
                continue

            fields = assign_fragments(band, column_map, self.settings.column_proximity)
            if len(fields) < 2:
                debug.append(f"{row_label}: only {len(fields)} field(s) in {band.text!r}, discarded")
                continue

            if 'category' not in fields:
                fields['category'] = self.categorizer.categorize(band.text)

            self._convert(fields, row_label, outcome, debug, context_text=band.text)

    def _extract_lines(self, bands: List[Band], outcome: ExtractionOutcome, debug: List[str]) -> None:
        lines = [band.text.strip() for band in bands]
        document_date = find_document_date(lines, self.settings.header_scan_lines, self.preprocessor)
        if document_date:
            debug.append(f"Document date: {document_date}")

        for index, line in enumerate(lines):
            row_label = f"Line {index + 1}"
            if not line or any(pattern.match(line) for pattern in SKIP_LINE_PATTERNS):
                continue

            row_date = None
            remainder = line
            found = find_date_token(line, self.preprocessor)
            if found:
                row_date, (start, end) = found
                remainder = re.sub(r'\s+', ' ', f"{line[:start]} {line[end:]}").strip()

            match = match_line(remainder)
            if match is None:
                debug.append(f"{row_label}: no financial entry in {line!r}")
                continue

            debug.append(f"{row_label}: {match.pattern} match {match.label!r} = {match.amount!r}")
            fields = {
                'date': row_date or document_date,
                'amount': match.amount,
                'description': match.label,
                'category': None,
            }
            self._convert(fields, row_label, outcome, debug)

    def _convert(self, fields: Dict[str, Optional[str]], row_label: str, outcome: ExtractionOutcome,
                 debug: List[str], context_text: Optional[str] = None) -> None:
        outcome.attempted += 1
        try:
            record, notes = self.converter.convert(fields, row_label, context_text=context_text)
        except RowSkippedError as e:
            self.logger.warning(str(e))
            outcome.errors.append(str(e))
            outcome.warnings.append(str(e))
            debug.append(f"Warning: could not process {row_label}: {fields} - {e.reason}")
            return

        outcome.records.append(record)
        outcome.warnings.extend(notes)
        debug.append(f"Successfully processed {row_label}")
