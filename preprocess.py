import re
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from dateutil import parser

logger = logging.getLogger(__name__)

PAGE_BREAK = '\n\n--- PAGE BREAK ---\n\n'

# Numeric dates (01/02/2024, 1-2-24, 01.02.2024), ISO dates and textual months
DATE_TOKEN = re.compile(
    r'(?<![\d/\-])(?<!\d\.)('
    r'\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}'
    r'|\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}'
    r'|\d{1,2}[ \-](?i:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[A-Za-z]{0,6}\.?[ \-,]{1,2}\d{4}'
    r')(?![\d/\-])(?!\.\d)'
)

# Two-decimal monetary tokens, optionally glued to a currency prefix; never
# matches inside a dotted date
AMOUNT_TOKEN = re.compile(r'(?<![\w.,/])-?(?:(?:[₹$€£]|Rs\.?|INR)\s?)?\d[\d,]{0,20}\.\d{2}(?![\d.])')

CURRENCY_MARKERS = re.compile(r'[₹$€£¥₩]|\bRs\.?|\b(?:INR|USD|EUR|GBP)(?![A-Za-z])', re.IGNORECASE)
PLAIN_NUMBER = re.compile(r'\d+(?:\.\d+)?|\.\d+')

# OCR cleanup rules, applied in order
OCR_SUBSTITUTIONS = [
    (re.compile(r'\|{2,}'), ' '),
    (re.compile(r'l(?=\d)'), '1'),
    (re.compile(r'O(?=\d)'), '0'),
    (re.compile(r'\bI(?=\d)'), '1'),
    (re.compile(r'[^\S\n]{2,}'), ' '),
]


def find_amounts(text: str) -> List[Tuple[float, int]]:
    """Return (value, start offset) for every monetary token in ``text``."""
    amounts = []
    for match in AMOUNT_TOKEN.finditer(text):
        value = TextPreprocessor.normalize_amount(match.group())
        if value is not None:
            amounts.append((value, match.start()))
    return amounts


def join_pages(page_texts: Iterable[str]) -> str:
    return PAGE_BREAK.join(page_texts)


class TextPreprocessor:
    """Cleans OCR text and normalizes the values found in it."""

    DATE_FORMATS = [
        '%d/%m/%Y', '%m/%d/%Y', '%Y-%m-%d',
        '%d-%m-%Y', '%m-%d-%Y',
        '%d %b %Y', '%d-%b-%Y', '%b %d, %Y', '%b %d %Y',
        '%d %B %Y', '%d-%B-%Y', '%B %d, %Y',
        '%d.%m.%Y', '%Y/%m/%d',
        '%d/%m/%y', '%d-%m-%y', '%d.%m.%y', '%d-%b-%y',
    ]

    # Minimum year accepted from the generic parser
    MIN_FALLBACK_YEAR = 1990

    # Fills parts missing from the input; its year fails the guard above so
    # fragments without a year are rejected
    FALLBACK_DEFAULT = datetime(1900, 1, 1)

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def normalize(self, text: Optional[str]) -> str:
        """
        Repair common OCR artifacts in raw text.

        Substitutions are re-applied until the text is stable, so that
        running this on its own output changes nothing.

        Args:
            text: Raw page or document text

        Returns:
            Cleaned text with line breaks preserved
        """
        if not text:
            return ""

        cleaned = text
        while True:
            previous = cleaned
            for pattern, replacement in OCR_SUBSTITUTIONS:
                cleaned = pattern.sub(replacement, cleaned)
            if cleaned == previous:
                return cleaned

    def get_lines(self, text: Optional[str]) -> List[str]:
        """Split text into trimmed, non-empty lines."""
        if not text:
            return []
        lines = [line.strip() for line in re.split(r'\r?\n', text)]
        return [line for line in lines if line]

    def normalize_date(self, date_str: Optional[str]) -> Optional[str]:
        """
        Normalize date string to YYYY-MM-DD format.

        Args:
            date_str: Date string in various formats

        Returns:
            Normalized date string, or None when it cannot be read
        """
        if not date_str or not isinstance(date_str, str):
            return None

        cleaned = re.sub(r'\s+', ' ', date_str.strip())
        if not cleaned:
            return None

        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(cleaned, fmt).strftime('%Y-%m-%d')
            except ValueError:
                continue

        # Generic parse with a fixed default so missing parts are deterministic
        try:
            parsed = parser.parse(cleaned, dayfirst=True, default=self.FALLBACK_DEFAULT)
        except (ValueError, OverflowError, TypeError):
            self.logger.debug(f"Could not normalize date: {date_str}")
            return None

        if parsed.year > self.MIN_FALLBACK_YEAR:
            return parsed.strftime('%Y-%m-%d')

        self.logger.debug(f"Rejected fallback date {parsed.date()} for: {date_str}")
        return None

    @staticmethod
    def normalize_amount(amount_str: Union[str, float, int, None]) -> Optional[float]:
        """
        Clean and normalize monetary amounts.

        Args:
            amount_str: Amount in various formats, e.g. "₹ 1,23,456.78" or "(500.00)"

        Returns:
            Float amount (negative for accounting notation), or None
        """
        if amount_str is None or isinstance(amount_str, bool):
            return None

        if isinstance(amount_str, (int, float)):
            return float(amount_str)

        cleaned = CURRENCY_MARKERS.sub('', str(amount_str))
        cleaned = re.sub(r'[,\s]', '', cleaned)
        if not cleaned:
            return None

        is_negative = (cleaned.startswith('(') and cleaned.endswith(')')) or cleaned.startswith('-')
        cleaned = cleaned.replace('(', '').replace(')', '')
        if cleaned.startswith('-'):
            cleaned = cleaned[1:]

        if not PLAIN_NUMBER.fullmatch(cleaned):
            return None

        amount = float(cleaned)
        return -amount if is_negative else amount

    @staticmethod
    def calc_confidence(fields: Dict[str, Any], required: Iterable[str] = ()) -> float:
        """Score field completeness, weighting required fields at 0.6."""
        if not fields:
            return 0.0

        def is_filled(value):
            return value is not None and value != ''

        required = list(required)
        filled = sum(1 for value in fields.values() if is_filled(value))
        required_filled = sum(1 for key in required if is_filled(fields.get(key)))

        field_score = filled / len(fields)
        required_score = required_filled / len(required) if required else 1.0

        return round(field_score * 0.4 + required_score * 0.6, 2)
