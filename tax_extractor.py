import re
import logging
from typing import Any, Dict, List, Optional

from preprocess import DATE_TOKEN, TextPreprocessor, find_amounts
from extractor import FieldExtractor, as_amount, clean_text, pan, rule, tan

logger = logging.getLogger(__name__)

REQUIRED_HEADER_FIELDS = ['pan', 'assessment_year', 'taxpayer_name']

_AMOUNT_VALUE = r'((?:[₹$]|Rs\.?)?[ ]?[\d,]{1,20}(?:\.\d{1,2})?)(?![\d/\-])'


def form_type(value: Optional[str]) -> Optional[str]:
    cleaned = clean_text(value)
    return cleaned.upper() if cleaned else None


def assessment_year(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return re.sub(r'\s', '', value).replace('–', '-')


HEADER_RULES = [
    rule('form_type', r'\b(form[ \t]+(?:26AS|16A?|27D))\b', form_type),
    rule('assessment_year', r'assessment[ \t]+year[ \t]*[:\-]?[ \t]*(\d{4}[ \t]*[-–][ \t]*\d{2,4})', assessment_year),
    rule('taxpayer_name',
         r'(?:name[ \t]+of[ \t]+(?:the[ \t]+)?(?:taxpayer|deductee|assessee|employee)|taxpayer[ \t]+name)'
         r'[ \t]*[:\-]?[ \t]*([A-Z][A-Za-z .]{1,60})',
         clean_text),
    rule('taxpayer_name', r'assessee[ \t]+name[ \t]*[:\-]?[ \t]*([A-Z][A-Za-z .]{1,60})', clean_text),
    rule('pan', r'\bPAN\b(?:[ \t]+of[ \t]+(?:the[ \t]+)?(?:taxpayer|deductee|assessee|employee))?[ \t]*[:\-]?[ \t]*([A-Z]{5}\d{4}[A-Z])', pan),
    rule('taxpayer_address',
         r'address(?:[ \t]+of[ \t]+(?:the[ \t]+)?(?:taxpayer|deductee|assessee|employee))?[ \t]*[:\-][ \t]*([^\n]{5,120})',
         clean_text),
    rule('total_amount_paid_credited',
         r'total[ \t]+(?:amount[ \t]+)?paid[ \t]*/?[ \t]*credited[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('total_tax_deducted', r'total[ \t]+tax[ \t]+deducted[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('total_tds_deposited', r'total[ \t]+TDS[ \t]+deposited[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
]

DEDUCTOR_RULES = [
    rule('name', r'name[ \t]+of[ \t]+(?:the[ \t]+)?deductor[ \t]*[:\-]?[ \t]*([A-Z][^\n\r]{2,60})', clean_text),
    rule('name', r'deductor[ \t]+name[ \t]*[:\-]?[ \t]*([A-Z][^\n\r]{2,60})', clean_text),
    rule('tan', r'\bTAN\b(?:[ \t]+of[ \t]+(?:the[ \t]+)?deductor)?[ \t]*[:\-]?[ \t]*([A-Z]{4}\d{5}[A-Z])', tan),
    rule('pan', r'\bPAN\b[ \t]+of[ \t]+(?:the[ \t]+)?deductor[ \t]*[:\-]?[ \t]*([A-Z]{5}\d{4}[A-Z])', pan),
    rule('total_amount_paid_credited',
         r'total[ \t]+amount[ \t]+paid[ \t]*/?[ \t]*credited[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('total_tax_deducted', r'total[ \t]+tax[ \t]+deducted[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('total_tds_deposited', r'total[ \t]+TDS[ \t]+deposited[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
]

DEDUCTOR_START_PATTERNS = [
    re.compile(r'name\s+of\s+(?:the\s+)?deductor', re.IGNORECASE),
    re.compile(r'deductor\s+(?:name|details)', re.IGNORECASE),
    re.compile(r'(?:Part|Section)\s+[AB]\s*[-–:]', re.IGNORECASE),
]

SUBTABLE_SECTION = re.compile(r'section', re.IGNORECASE)
SUBTABLE_DATE = re.compile(r'transaction|date', re.IGNORECASE)
TOTAL_LINE = re.compile(r'total|grand\s+total', re.IGNORECASE)
SEPARATOR_LINE = re.compile(r'^[-=\s|]+$')

# Statutory TDS section codes such as 192, 194A, 194C; not part of an amount or date
SECTION_CODE = re.compile(r'(?<![\d.,/\-])\b(1\d{2}[A-Z]?)\b(?![.,/\-]\d)')

STATUS_CODE = re.compile(r'\b([FUPO])\b')
STATUS_OF_BOOKING = {
    'F': 'Final',
    'U': 'Unmatched',
    'P': 'Provisional',
    'O': 'Overbooked',
}

REMARKS = re.compile(r'remarks?[ \t]*[:\-]?[ \t]*([A-Za-z0-9 \-.]{3,50})', re.IGNORECASE)

AMOUNT_SLOTS = ('amount_paid_credited', 'tax_deducted', 'tds_deposited')


def split_blocks(lines: List[str]) -> List[List[str]]:
    """Group lines into deductor sections; the whole document if no section starts."""
    blocks = []
    current = []
    in_block = False

    for line in lines:
        if any(pattern.search(line) for pattern in DEDUCTOR_START_PATTERNS):
            if current:
                blocks.append(current)
            current = [line]
            in_block = True
        elif in_block:
            current.append(line)

    if current:
        blocks.append(current)

    if not blocks and lines:
        blocks.append(list(lines))

    return blocks


def status_of_booking(line: str) -> Optional[str]:
    match = STATUS_CODE.search(line)
    if not match:
        return None
    return STATUS_OF_BOOKING[match.group(1)]


def remarks(line: str) -> Optional[str]:
    match = REMARKS.search(line)
    if not match:
        return None
    return clean_text(match.group(1))


class TaxStatementExtractor:
    """Extracts the header and deductor sections of Form 26AS / TDS certificates."""

    def __init__(self, preprocessor: Optional[TextPreprocessor] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or TextPreprocessor()
        self.header_fields = FieldExtractor(HEADER_RULES)
        self.deductor_fields = FieldExtractor(DEDUCTOR_RULES)

    def extract_header(self, text: str) -> Dict[str, Any]:
        header = {
            'form_type': None,
            'assessment_year': None,
            'taxpayer_name': None,
            'pan': None,
            'taxpayer_address': None,
            'total_amount_paid_credited': None,
            'total_tax_deducted': None,
            'total_tds_deposited': None,
        }
        self.header_fields.extract(text, header)

        filled = sum(1 for value in header.values() if value is not None)
        self.logger.info(f"Extracted {filled}/{len(header)} tax header fields")
        return header

    def extract_deductors(self, lines: List[str]) -> List[Dict[str, Any]]:
        """
        Extract one deductor record per deductor section.

        Args:
            lines: Normalized, non-empty lines of the document

        Returns:
            List of deductor dictionaries, each with its own transactions
        """
        blocks = split_blocks(lines)
        self.logger.info(f"Found {len(blocks)} deductor block(s) in {len(lines)} lines")

        deductors = []
        for block_num, block in enumerate(blocks):
            try:
                deductors.append(self.parse_block(block))
            except Exception as e:
                self.logger.warning(f"Error processing deductor block {block_num}: {str(e)}")
                continue

        return deductors

    def parse_block(self, block: List[str]) -> Dict[str, Any]:
        deductor = {
            'name': None,
            'tan': None,
            'pan': None,
            'total_amount_paid_credited': None,
            'total_tax_deducted': None,
            'total_tds_deposited': None,
            'transactions': [],
        }
        self.deductor_fields.extract('\n'.join(block), deductor)
        deductor['transactions'] = self.extract_transactions(block)

        self.logger.debug(f"Deductor {deductor['name']!r} ({deductor['tan']}) with {len(deductor['transactions'])} rows")
        return deductor

    def extract_transactions(self, block: List[str]) -> List[Dict[str, Any]]:
        header_idx = next(
            (i for i, line in enumerate(block) if SUBTABLE_SECTION.search(line) and SUBTABLE_DATE.search(line)),
            None,
        )
        start = header_idx + 1 if header_idx is not None else 0

        transactions = []
        for line in block[start:]:
            if SEPARATOR_LINE.match(line):
                continue
            if TOTAL_LINE.search(line):
                break

            section_match = SECTION_CODE.search(line)
            if not section_match and header_idx is not None:
                continue

            transaction = self.parse_row(line, section_match.group(1) if section_match else None)
            if transaction['section'] or transaction['transaction_date']:
                transactions.append(transaction)

        return transactions

    def parse_row(self, line: str, section: Optional[str]) -> Dict[str, Any]:
        dates = [match.group(1) for match in DATE_TOKEN.finditer(line)][:2]
        amounts = find_amounts(line)

        transaction = {
            'section': section,
            'transaction_date': self.preprocessor.normalize_date(dates[0]) if dates else None,
            'booking_date': self.preprocessor.normalize_date(dates[1]) if len(dates) > 1 else None,
            'status_of_booking': status_of_booking(line),
            'remarks': remarks(line),
            'amount_paid_credited': None,
            'tax_deducted': None,
            'tds_deposited': None,
        }
        for slot, (value, _) in zip(AMOUNT_SLOTS, amounts):
            transaction[slot] = value
        return transaction
