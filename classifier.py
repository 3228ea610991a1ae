import re
import logging
from itertools import islice
from typing import List, Optional, Tuple

from schema import ClassificationVerdict, DocumentType

logger = logging.getLogger(__name__)

# (pattern, weight) pairs; each pattern counts at most twice
BANK_KEYWORDS: List[Tuple[str, int]] = [
    (r'bank\s+statement', 5),
    (r'account\s+(?:number|no\.?|#)', 4),
    (r'opening\s+balance', 5),
    (r'closing\s+balance', 5),
    (r'transaction\s+(?:date|id|ref)', 3),
    (r'debit', 3),
    (r'credit', 2),
    (r'available\s+balance', 4),
    (r'statement\s+period', 4),
    (r'IFSC|swift\s+code', 4),
    (r'account\s+type', 3),
    (r'running\s+balance', 4),
    (r'narration|description', 2),
    (r'passbook', 4),
    (r'savings\s+account|current\s+account', 3),
]

TAX_KEYWORDS: List[Tuple[str, int]] = [
    (r'form\s+(?:26as|16a?)\b', 6),
    (r'tax\s+deducted\s+at\s+source|\bTDS\b', 6),
    (r'income\s+tax', 4),
    (r'deductor', 6),
    (r'PAN\s+(?:of\s+)?(?:deductee|deductor)', 5),
    (r'\bTAN\b', 4),
    (r'section\s+\d+[A-Z]?', 3),
    (r'status\s+of\s+booking', 5),
    (r'total\s+tax\s+deducted', 5),
    (r'TDS\s+deposited', 5),
    (r'amount\s+paid[^\n]{0,40}credited', 4),
    (r'date\s+of\s+booking', 4),
    (r'traces|NSDL', 4),
    (r'assessment\s+year', 5),
]

BANK_FILENAME_HINTS = ('bank', 'statement', 'passbook')
TAX_FILENAME_HINTS = ('26as', 'tds', 'tax', 'form16')


class DocumentClassifier:
    """Scores document text against bank and tax keyword rulesets."""

    def __init__(self, min_score: int = 8, filename_bonus: int = 10,
                 tie_break: DocumentType = DocumentType.BANK,
                 max_hits_per_keyword: int = 2):
        self.logger = logging.getLogger(self.__class__.__name__)
        if tie_break not in (DocumentType.BANK, DocumentType.TAX):
            raise ValueError(f"tie_break must be a bank or tax document type, got {tie_break!r}")

        self.min_score = min_score
        self.filename_bonus = filename_bonus
        self.tie_break = DocumentType(tie_break)
        self.max_hits_per_keyword = max_hits_per_keyword

        self.bank_rules = [(re.compile(p, re.IGNORECASE), w) for p, w in BANK_KEYWORDS]
        self.tax_rules = [(re.compile(p, re.IGNORECASE), w) for p, w in TAX_KEYWORDS]

    def score(self, text: str, rules) -> int:
        total = 0
        for pattern, weight in rules:
            hits = sum(1 for _ in islice(pattern.finditer(text), self.max_hits_per_keyword))
            total += hits * weight
        return total

    def filename_bonuses(self, filename: Optional[str]) -> Tuple[int, int]:
        name = (filename or '').lower()
        bank_bonus = self.filename_bonus if any(hint in name for hint in BANK_FILENAME_HINTS) else 0
        tax_bonus = self.filename_bonus if any(hint in name for hint in TAX_FILENAME_HINTS) else 0
        return bank_bonus, tax_bonus

    def classify(self, text: str, filename: Optional[str] = '') -> ClassificationVerdict:
        """
        Classify document text as a bank statement, tax statement or unknown.

        Args:
            text: Normalized document text
            filename: Original file name, used for hints only

        Returns:
            ClassificationVerdict with confidence in [0, 1]
        """
        text = text or ''
        bank_bonus, tax_bonus = self.filename_bonuses(filename)
        bank_total = self.score(text, self.bank_rules) + bank_bonus
        tax_total = self.score(text, self.tax_rules) + tax_bonus

        if max(bank_total, tax_total) < self.min_score:
            self.logger.info(f"Insufficient evidence (bank={bank_total}, tax={tax_total}); document is unknown")
            return ClassificationVerdict(
                document_type=DocumentType.UNKNOWN, confidence=0.0,
                bank_score=bank_total, tax_score=tax_total,
            )

        if bank_total == tax_total:
            document_type = self.tie_break
        elif bank_total > tax_total:
            document_type = DocumentType.BANK
        else:
            document_type = DocumentType.TAX

        if document_type == DocumentType.BANK:
            winner, loser = bank_total, tax_total
        else:
            winner, loser = tax_total, bank_total

        confidence = round(min(0.99, winner / (winner + loser + 1)), 2)

        self.logger.info(f"Classified as {document_type.value} (bank={bank_total}, tax={tax_total}, confidence={confidence})")
        return ClassificationVerdict(
            document_type=document_type, confidence=confidence,
            bank_score=bank_total, tax_score=tax_total,
        )
