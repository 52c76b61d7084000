import io
import logging
from typing import Dict, List, Sequence

import pandas as pd
import pdfplumber

from errors import NoValidDataError
from pdf_extractor import TextFragment

logger = logging.getLogger(__name__)

DEFAULT_ENCODINGS = ('utf-8', 'utf-8-sig', 'latin1', 'cp1252')


class FileLoader:
    """Turns raw file bytes into tables (CSV/spreadsheet) or positioned text (PDF)."""

    def __init__(self, encodings: Sequence[str] = DEFAULT_ENCODINGS):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.encodings = list(encodings)

    def load_csv(self, data: bytes) -> pd.DataFrame:
        """
        Load CSV bytes with encoding fallback.

        Every cell is read as text so that the normalizer sees the value
        exactly as written (e.g. "(1,200.50)", "Q3 2023").

        Raises:
            NoValidDataError: if the file is empty or cannot be decoded
        """
        if not data or not data.strip():
            raise NoValidDataError("The CSV file appears to be empty.")

        for encoding in self.encodings:
            try:
                df = pd.read_csv(
                    io.BytesIO(data),
                    encoding=encoding,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                    skipinitialspace=True,
                )
                self.logger.info(f"Successfully loaded CSV with {encoding} encoding")
                return df
            except UnicodeDecodeError:
                continue
            except pd.errors.EmptyDataError:
                raise NoValidDataError("The CSV file appears to be empty.")
            except pd.errors.ParserError as e:
                self.logger.error(f"CSV parsing failed: {e}")
                raise NoValidDataError(f"CSV parsing failed: {e}. Please ensure the file is a valid CSV format.")

        raise NoValidDataError(f"Could not decode CSV file with any of the tried encodings: {self.encodings}")

    def load_spreadsheet(self, data: bytes) -> Dict[str, pd.DataFrame]:
        """
        Load every sheet of an Excel workbook, in workbook order.

        Raises:
            NoValidDataError: if the bytes are not a readable workbook
        """
        if not data:
            raise NoValidDataError("The spreadsheet file appears to be empty.")

        try:
            sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, dtype=str)
        except Exception as e:
            self.logger.error(f"Error reading spreadsheet: {e}")
            raise NoValidDataError(
                f"Excel parsing failed: {e}. Please ensure the file is a valid Excel format."
            ) from e

        self.logger.info(f"Loaded workbook with sheets: {list(sheets)}")
        return sheets

    def load_pdf_fragments(self, data: bytes) -> List[List[TextFragment]]:
        """
        Extract positioned text fragments from every page, in page order.

        Spaces inside a text run are kept, so "Office rent" stays one
        fragment while separate table cells become separate fragments.

        Returns:
            One list of fragments per page

        Raises:
            NoValidDataError: if the bytes are not a readable PDF
        """
        pages: List[List[TextFragment]] = []

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page_number, page in enumerate(pdf.pages):
                    words = page.extract_words(keep_blank_chars=True, x_tolerance=3, y_tolerance=3) or []
                    fragments = [
                        TextFragment(
                            text=word['text'].strip(),
                            x=float(word['x0']),
                            y=float(word['top']),
                            page=page_number,
                        )
                        for word in words
                        if word.get('text', '').strip()
                    ]
                    pages.append(fragments)
                    self.logger.info(f"Extracted {len(fragments)} text fragments from page {page_number + 1}")
        except Exception as e:
            self.logger.error(f"Error reading PDF file: {e}")
            raise NoValidDataError(
                f"PDF parsing failed: {e}. Please ensure the file is a valid PDF format containing financial statements."
            ) from e

        if not any(pages):
            self.logger.warning("No text extracted from PDF - may need OCR")

        return pages
