import re
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from preprocess import AMOUNT_TOKEN, DATE_TOKEN, TextPreprocessor, find_amounts
from extractor import FieldExtractor, as_amount, as_date, clean_text, digits_only, ifsc, lower_text, rule
from schema import ExtractionWarning, WarningCode

logger = logging.getLogger(__name__)

REQUIRED_HEADER_FIELDS = ['account_number', 'statement_period_from', 'statement_period_to']

_DATE_VALUE = r'(\d{1,4}[/\-.]\d{1,2}[/\-.]\d{2,4}|\d{1,2}[ \-][A-Za-z]{3,9}[ \-,]{1,2}\d{4})'
_AMOUNT_VALUE = r'((?:[₹$€£]|Rs\.?|INR)?[ ]?-?[\d,]{1,20}(?:\.\d{1,2})?)(?![\d/\-])'

HEADER_RULES = [
    rule('bank_name',
         r'\b((?:[A-Z][A-Za-z&.]*[ ]){1,4}(?:Bank|BANK)\b(?:[ ]of[ ][A-Z][A-Za-z]+)?(?:[ ](?:Ltd|LTD|Limited)\.?)?'
         r'|(?:Bank|BANK)[ ]of[ ][A-Z][A-Za-z]+)',
         clean_text, flags=0),
    rule('account_number', r'account[ \t]+(?:number|no\.?|#)[ \t]*[:\-]?[ \t]*(\d[\d \-]{5,20})', digits_only),
    rule('account_number', r'a/c[ \t]+(?:no\.?|number|#)[ \t]*[:\-]?[ \t]*(\d[\d \-]{5,20})', digits_only),
    rule('account_number', r'acc(?:ount)?[ \t]*no[.:]?[ \t]*(\d[\d \-]{5,20})', digits_only),
    rule('account_holder_name', r'account[ \t]+holder(?:[ \t]+name)?[ \t]*[:\-]?[ \t]*([A-Z][A-Za-z .]{1,60})', clean_text),
    rule('account_holder_name', r'customer[ \t]+name[ \t]*[:\-]?[ \t]*([A-Z][A-Za-z .]{1,60})', clean_text),
    rule('account_holder_name', r'in[ \t]+the[ \t]+name[ \t]+of[ \t]*[:\-]?[ \t]*([A-Z][A-Za-z .]{1,60})', clean_text),
    rule('account_holder_name', r'^[ \t]*name[ \t]*[:\-][ \t]*([A-Z][A-Za-z .]{1,60})', clean_text,
         flags=re.IGNORECASE | re.MULTILINE),
    rule('account_type', r'\b(savings|current|salary|nre|nro|fixed[ \t]+deposit)[ \t]*account', lower_text),
    rule('ifsc_code', r'IFSC(?:[ \t]*code)?[ \t]*[:\-]?[ \t]*([A-Z]{4}0[A-Z0-9]{6})', ifsc),
    rule('branch', r'branch(?:[ \t]+name)?[ \t]*[:\-][ \t]*([A-Za-z][A-Za-z0-9 ,.\-]{1,50})', clean_text),
    rule(('statement_period_from', 'statement_period_to'),
         r'(?:statement[ \t]+period|period|from)[ \t]*[:\-]?[ \t]*' + _DATE_VALUE + r'[ \t]*(?:to|[-–])[ \t]*' + _DATE_VALUE,
         as_date),
    rule('opening_balance', r'opening[ \t]+balance[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('opening_balance', r'balance[ \t]+b/f[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('closing_balance', r'closing[ \t]+balance[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
    rule('closing_balance', r'balance[ \t]+c/f[ \t]*[:\-]?[ \t]*' + _AMOUNT_VALUE, as_amount),
]

DEFAULT_CURRENCY = 'INR'

# Checked in order; domestic currency first
CURRENCY_HINTS = [
    ('INR', re.compile(r'₹|\bINR\b|\bRs\.?(?=\s?\d)')),
    ('USD', re.compile(r'\$|\bUSD\b')),
    ('GBP', re.compile(r'£|\bGBP\b')),
    ('EUR', re.compile(r'€|\bEUR\b')),
]

TABLE_HEADER_PATTERNS = [
    re.compile(r'date.*(?:narration|description|particulars).*(?:debit|\bdr\b).*(?:credit|\bcr\b)', re.IGNORECASE),
    re.compile(r'date.*(?:details|description).*(?:withdrawal|debit).*(?:deposit|credit)', re.IGNORECASE),
    re.compile(r'txn.*date.*description', re.IGNORECASE),
]

# Column token classification, first match wins
COLUMN_MAPPINGS = [
    ('date', ['date']),
    ('description', ['narration', 'description', 'particulars', 'details']),
    ('debit', ['debit', 'withdrawal', 'dr']),
    ('credit', ['credit', 'deposit', 'cr']),
    ('balance', ['balance']),
    ('reference', ['ref', 'id', 'chq', 'cheque']),
]

COLUMN_SPLIT = re.compile(r' {2,}|\t|\s*\|\s*')
SUMMARY_LINE = re.compile(r'total|closing\s+balance|opening\s+balance|grand\s+total', re.IGNORECASE)
SEPARATOR_LINE = re.compile(r'^[-=_|*\s]+$')
DEBIT_KEYWORD = re.compile(r'\b(?:dr|debit|withdrawal)\b', re.IGNORECASE)
CREDIT_KEYWORD = re.compile(r'\b(?:cr|credit|deposit)\b', re.IGNORECASE)
REFERENCE = re.compile(
    r'\b(?:ref(?:erence)?|txn(?:id)?|chq|cheque|utr)\b\.?(?:[ \t]*no\.?)?[ \t:#\-]{0,3}((?=[A-Z]{0,19}\d)[A-Z0-9]{8,20})\b',
    re.IGNORECASE,
)

# (amount count, keyword) -> slot names, in the order the amounts appear
AMOUNT_LAYOUTS = {
    (3, None): ('debit', 'credit', 'balance'),
    (2, 'debit'): ('debit', 'balance'),
    (2, 'credit'): ('credit', 'balance'),
    (2, None): ('debit', 'balance'),
    (1, None): ('balance',),
    (0, None): (),
}

HEURISTIC_LAYOUT = ('debit', 'credit', 'balance')


class TableLayout(NamedTuple):
    header_index: int
    columns: Dict[str, int]


def detect_columns(header_line: str) -> Dict[str, int]:
    """Map column roles to their position in a table header line."""
    positions = {}
    tokens = [token for token in COLUMN_SPLIT.split(header_line) if token.strip()]
    for position, token in enumerate(tokens):
        lower = token.lower()
        for column, names in COLUMN_MAPPINGS:
            if any(name in lower for name in names):
                positions.setdefault(column, position)
                break
    return positions


def amount_layout(amount_count: int, line: str) -> Tuple[str, ...]:
    """Slots for the amounts of a row, looked up by count and keyword."""
    if amount_count >= 3:
        return AMOUNT_LAYOUTS[(3, None)]
    if amount_count == 2:
        if DEBIT_KEYWORD.search(line):
            return AMOUNT_LAYOUTS[(2, 'debit')]
        if CREDIT_KEYWORD.search(line):
            return AMOUNT_LAYOUTS[(2, 'credit')]
    return AMOUNT_LAYOUTS[(amount_count, None)]


def empty_transaction() -> Dict[str, Any]:
    return {
        'date': None,
        'description': None,
        'debit': None,
        'credit': None,
        'balance': None,
        'reference': None,
    }


class BankStatementExtractor:
    """Extracts the header and transaction table of a bank statement."""

    def __init__(self, preprocessor: Optional[TextPreprocessor] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.preprocessor = preprocessor or TextPreprocessor()
        self.header_fields = FieldExtractor(HEADER_RULES)

    def extract_header(self, text: str) -> Dict[str, Any]:
        header = {
            'bank_name': None,
            'account_number': None,
            'account_holder_name': None,
            'account_type': None,
            'ifsc_code': None,
            'branch': None,
            'statement_period_from': None,
            'statement_period_to': None,
            'opening_balance': None,
            'closing_balance': None,
            'currency': DEFAULT_CURRENCY,
        }
        self.header_fields.extract(text, header)

        for currency, pattern in CURRENCY_HINTS:
            if pattern.search(text):
                header['currency'] = currency
                break

        filled = sum(1 for value in header.values() if value is not None)
        self.logger.info(f"Extracted {filled}/{len(header)} bank header fields")
        return header

    def find_table(self, lines: List[str]) -> Optional[TableLayout]:
        for pattern in TABLE_HEADER_PATTERNS:
            for index, line in enumerate(lines):
                if pattern.search(line):
                    columns = detect_columns(line)
                    self.logger.debug(f"Table header at line {index}: {columns}")
                    return TableLayout(index, columns)
        return None

    def extract_transactions(self, lines: List[str], warnings: List[ExtractionWarning]) -> List[Dict[str, Any]]:
        """
        Extract transaction rows from normalized lines.

        Args:
            lines: Normalized, non-empty lines of the document
            warnings: Warning list to append quality signals to

        Returns:
            List of transaction dictionaries
        """
        self.logger.info(f"Extracting transactions from text data ({len(lines)} lines)")

        layout = self.find_table(lines)
        if layout is None:
            warnings.append(ExtractionWarning(
                code=WarningCode.NO_TABLE_HEADER,
                message='Could not find transaction table header row.',
            ))
            return self.extract_transactions_heuristic(lines, warnings)

        transactions = []
        for line_num in range(layout.header_index + 1, len(lines)):
            line = lines[line_num]
            if SUMMARY_LINE.search(line):
                break
            if SEPARATOR_LINE.match(line):
                continue
            if not DATE_TOKEN.search(line):
                continue

            try:
                transaction = self.parse_row(line)
            except Exception as e:
                self.logger.warning(f"Error processing line {line_num}: {str(e)}")
                continue
            if transaction:
                transactions.append(transaction)

        self.logger.info(f"Extracted {len(transactions)} transactions from table")
        return transactions

    def parse_row(self, line: str) -> Optional[Dict[str, Any]]:
        """Parse one table row; returns None when its date cannot be read."""
        date_match = DATE_TOKEN.search(line)
        if not date_match:
            return None

        date = self.preprocessor.normalize_date(date_match.group(1))
        if not date:
            return None

        date_end = date_match.end()
        rest = line[date_end:]
        amounts = find_amounts(rest)

        first_amount_at = amounts[0][1] if amounts else len(rest)
        description = re.sub(r'[\s|]+', ' ', rest[:first_amount_at]).strip()

        transaction = empty_transaction()
        transaction['date'] = date
        transaction['description'] = description or None

        slots = amount_layout(len(amounts), line)
        for slot, (value, _) in zip(slots, amounts):
            transaction[slot] = value

        ref_match = REFERENCE.search(line)
        if ref_match:
            transaction['reference'] = ref_match.group(1).upper()

        return transaction

    def extract_transactions_heuristic(self, lines: List[str], warnings: List[ExtractionWarning]) -> List[Dict[str, Any]]:
        """Treat any line with a date and a two-decimal amount as a transaction."""
        warnings.append(ExtractionWarning(
            code=WarningCode.HEURISTIC_PARSING,
            message='Using heuristic transaction parsing; accuracy may be reduced.',
        ))

        transactions = []
        for line in lines:
            date_match = DATE_TOKEN.search(line)
            if not date_match:
                continue

            rest = line[date_match.end():]
            amounts = find_amounts(rest)
            if not amounts:
                continue

            description = re.sub(r'[\d,.₹$]+', ' ', AMOUNT_TOKEN.sub(' ', rest))
            description = re.sub(r'[\s|]+', ' ', description).strip()

            transaction = empty_transaction()
            transaction['date'] = self.preprocessor.normalize_date(date_match.group(1))
            transaction['description'] = description or None
            for slot, (value, _) in zip(HEURISTIC_LAYOUT, amounts):
                transaction[slot] = value
            transactions.append(transaction)

        self.logger.info(f"Extracted {len(transactions)} transactions heuristically")
        return transactions
