"""
Pydantic models for extraction results and the output contracts they are validated against.
"""
from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Literal, NamedTuple, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'


class DocumentType(str, Enum):
    BANK = 'bank_statement'
    TAX = 'tax_statement'
    UNKNOWN = 'unknown'


class WarningCode(str, Enum):
    NO_DEDUCTORS = 'NO_DEDUCTORS'
    NO_TRANSACTIONS = 'NO_TRANSACTIONS'
    NO_TABLE_HEADER = 'NO_TABLE_HEADER'
    HEURISTIC_PARSING = 'HEURISTIC_PARSING'
    SCHEMA_VALIDATION = 'SCHEMA_VALIDATION'
    UNKNOWN_DOCUMENT_TYPE = 'UNKNOWN_DOCUMENT_TYPE'


class ExtractionWarning(BaseModel):
    """A non-fatal quality signal raised while processing a document."""
    code: WarningCode
    message: str

    model_config = ConfigDict(frozen=True)


class ClassificationVerdict(BaseModel):
    """Document type guess with the raw ruleset scores behind it."""
    document_type: DocumentType
    confidence: float = Field(0.0, ge=0, le=1)
    bank_score: int = 0
    tax_score: int = 0

    model_config = ConfigDict(frozen=True)


class ExtractionResult(BaseModel):
    """Terminal artifact of the pipeline for one document."""
    schema_version: str = SCHEMA_VERSION
    document_type: DocumentType = DocumentType.UNKNOWN
    header: Dict[str, Any] = Field(default_factory=dict)
    transactions: Optional[List[Dict[str, Any]]] = None
    deductors: Optional[List[Dict[str, Any]]] = None
    confidence: float = Field(0.0, ge=0, le=1)
    page_count: int = Field(0, ge=0)
    warnings: List[ExtractionWarning] = Field(default_factory=list)

    def add_warning(self, code: WarningCode, message: str) -> None:
        self.warnings.append(ExtractionWarning(code=code, message=message))

    @property
    def records(self) -> List[Dict[str, Any]]:
        if self.document_type == DocumentType.TAX:
            return self.deductors or []
        return self.transactions or []

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with the record list merged at the top level."""
        data = self.model_dump(mode='json')
        for key in ('transactions', 'deductors'):
            if data[key] is None:
                data.pop(key)
        return data


# Output contracts. Validation runs on the JSON-shaped dict, so these are strict.

def _check_iso_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise ValueError('Date must be in YYYY-MM-DD format')
    return value


class _Contract(BaseModel):
    model_config = ConfigDict(strict=True, extra='allow')


class WarningContract(_Contract):
    code: Literal[
        'NO_DEDUCTORS', 'NO_TRANSACTIONS', 'NO_TABLE_HEADER',
        'HEURISTIC_PARSING', 'SCHEMA_VALIDATION', 'UNKNOWN_DOCUMENT_TYPE',
    ]
    message: StrictStr


class BaseContract(_Contract):
    schema_version: StrictStr
    document_type: Literal['bank_statement', 'tax_statement', 'unknown']
    confidence: float = Field(ge=0, le=1)
    page_count: int = Field(0, ge=0)
    warnings: List[WarningContract] = Field(default_factory=list)


class BankHeaderContract(_Contract):
    bank_name: Optional[StrictStr] = None
    account_number: Optional[StrictStr] = None
    account_holder_name: Optional[StrictStr] = None
    account_type: Optional[StrictStr] = None
    ifsc_code: Optional[StrictStr] = None
    branch: Optional[StrictStr] = None
    statement_period_from: Optional[StrictStr] = None
    statement_period_to: Optional[StrictStr] = None
    opening_balance: Optional[float] = None
    closing_balance: Optional[float] = None
    currency: StrictStr

    @field_validator('statement_period_from', 'statement_period_to')
    @classmethod
    def validate_date_format(cls, v):
        return _check_iso_date(v)


class BankTransactionContract(_Contract):
    date: StrictStr
    description: Optional[StrictStr] = None
    debit: Optional[float] = None
    credit: Optional[float] = None
    balance: Optional[float] = None
    reference: Optional[StrictStr] = None

    @field_validator('date')
    @classmethod
    def validate_date_format(cls, v):
        return _check_iso_date(v)


class BankStatementContract(BaseContract):
    document_type: Literal['bank_statement']
    header: BankHeaderContract
    transactions: List[BankTransactionContract]


class TaxHeaderContract(_Contract):
    form_type: Optional[StrictStr] = None
    assessment_year: Optional[StrictStr] = None
    taxpayer_name: Optional[StrictStr] = None
    pan: Optional[StrictStr] = None
    taxpayer_address: Optional[StrictStr] = None
    total_amount_paid_credited: Optional[float] = None
    total_tax_deducted: Optional[float] = None
    total_tds_deposited: Optional[float] = None


class TaxTransactionContract(_Contract):
    section: Optional[StrictStr] = None
    transaction_date: Optional[StrictStr] = None
    booking_date: Optional[StrictStr] = None
    status_of_booking: Optional[Literal['Final', 'Unmatched', 'Provisional', 'Overbooked']] = None
    remarks: Optional[StrictStr] = None
    amount_paid_credited: Optional[float] = None
    tax_deducted: Optional[float] = None
    tds_deposited: Optional[float] = None

    @field_validator('transaction_date', 'booking_date')
    @classmethod
    def validate_date_format(cls, v):
        return _check_iso_date(v)


class DeductorContract(_Contract):
    name: Optional[StrictStr] = None
    tan: Optional[StrictStr] = None
    pan: Optional[StrictStr] = None
    total_amount_paid_credited: Optional[float] = None
    total_tax_deducted: Optional[float] = None
    total_tds_deposited: Optional[float] = None
    transactions: List[TaxTransactionContract] = Field(default_factory=list)


class TaxStatementContract(BaseContract):
    document_type: Literal['tax_statement']
    header: TaxHeaderContract
    deductors: List[DeductorContract]


CONTRACTS = {
    DocumentType.BANK: BankStatementContract,
    DocumentType.TAX: TaxStatementContract,
    DocumentType.UNKNOWN: BaseContract,
}


class ValidationReport(NamedTuple):
    valid: bool
    errors: List[str]


class SchemaValidator:
    """Checks assembled results against the contract for their document type.

    Violations are reported, never raised: ``apply`` turns each one into a
    SCHEMA_VALIDATION warning on the result.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self, result: Dict[str, Any], document_type: Any) -> ValidationReport:
        try:
            contract = CONTRACTS[DocumentType(document_type)]
        except ValueError:
            contract = BaseContract

        try:
            contract.model_validate(result)
        except ValidationError as e:
            errors = [self._format_error(error) for error in e.errors()]
            return ValidationReport(False, errors)
        return ValidationReport(True, [])

    def apply(self, result: ExtractionResult) -> ValidationReport:
        report = self.validate(result.to_dict(), result.document_type)
        for error in report.errors:
            result.add_warning(WarningCode.SCHEMA_VALIDATION, error)
        if not report.valid:
            self.logger.warning(f"Result failed schema validation with {len(report.errors)} error(s)")
        return report

    @staticmethod
    def _format_error(error: Dict[str, Any]) -> str:
        path = '/'.join(str(part) for part in error.get('loc', ()))
        return f"/{path} {error.get('msg', 'is invalid')}"
