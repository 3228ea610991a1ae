import pytest

from schema import (
    SCHEMA_VERSION,
    DocumentType,
    ExtractionResult,
    ExtractionWarning,
    SchemaValidator,
    WarningCode,
)


@pytest.fixture
def validator():
    return SchemaValidator()


def bank_result(**overrides):
    result = {
        'schema_version': SCHEMA_VERSION,
        'document_type': 'bank_statement',
        'header': {'account_number': '123456789', 'currency': 'INR'},
        'transactions': [
            {'date': '2024-01-01', 'description': 'SALARY', 'debit': None, 'credit': 100.0,
             'balance': 200.0, 'reference': None},
        ],
        'confidence': 0.9,
        'warnings': [],
    }
    result.update(overrides)
    return result


def tax_result(**overrides):
    result = {
        'schema_version': SCHEMA_VERSION,
        'document_type': 'tax_statement',
        'header': {'pan': 'ABCDE1234F', 'assessment_year': '2024-25'},
        'deductors': [
            {'name': 'XYZ', 'tan': 'MUMX12345A', 'transactions': [
                {'section': '192', 'transaction_date': '2024-04-30', 'status_of_booking': 'Final',
                 'amount_paid_credited': 5500.0},
            ]},
        ],
        'confidence': 0.8,
        'warnings': [{'code': 'NO_TABLE_HEADER', 'message': 'x'}],
    }
    result.update(overrides)
    return result


class TestSchemaValidator:
    def test_valid_bank(self, validator):
        report = validator.validate(bank_result(), 'bank_statement')
        assert report.valid
        assert report.errors == []

    def test_valid_tax(self, validator):
        assert validator.validate(tax_result(), DocumentType.TAX).valid

    def test_confidence_out_of_range(self, validator):
        report = validator.validate(bank_result(confidence=1.5), 'bank_statement')
        assert not report.valid
        assert any(error.startswith('/confidence') for error in report.errors)

    def test_missing_currency(self, validator):
        report = validator.validate(bank_result(header={'account_number': '1'}), 'bank_statement')
        assert not report.valid
        assert any(error.startswith('/header/currency') for error in report.errors)

    def test_amount_must_be_number(self, validator):
        rows = [{'date': '2024-01-01', 'debit': '100.00'}]
        report = validator.validate(bank_result(transactions=rows), 'bank_statement')
        assert any(error.startswith('/transactions/0/debit') for error in report.errors)

    @pytest.mark.parametrize("date", ['2024-13-01', '01/01/2024', None])
    def test_transaction_date_format(self, validator, date):
        rows = [{'date': date}]
        report = validator.validate(bank_result(transactions=rows), 'bank_statement')
        assert not report.valid

    def test_unknown_status_of_booking(self, validator):
        result = tax_result()
        result['deductors'][0]['transactions'][0]['status_of_booking'] = 'F'
        assert not validator.validate(result, 'tax_statement').valid

    def test_unknown_warning_code(self, validator):
        result = bank_result(warnings=[{'code': 'SOMETHING_ELSE', 'message': 'x'}])
        assert not validator.validate(result, 'bank_statement').valid

    def test_extra_fields_allowed(self, validator):
        header = {'currency': 'INR', 'micr_code': '400002003'}
        assert validator.validate(bank_result(header=header), 'bank_statement').valid

    def test_unrecognized_type_uses_base_contract(self, validator):
        report = validator.validate({'schema_version': '1.0', 'document_type': 'unknown', 'confidence': 0.1}, 'garbage')
        assert report.valid

    def test_negative_page_count(self, validator):
        report = validator.validate(bank_result(page_count=-1), 'bank_statement')
        assert any(error.startswith('/page_count') for error in report.errors)

    def test_base_contract_requires_version(self, validator):
        report = validator.validate({'document_type': 'unknown', 'confidence': 0.1}, 'unknown')
        assert not report.valid
        assert any(error.startswith('/schema_version') for error in report.errors)

    def test_apply_appends_warnings(self, validator):
        result = ExtractionResult(
            document_type=DocumentType.BANK,
            header={'currency': 'INR'},
            transactions=[{'date': None, 'description': 'X'}],
            confidence=0.5,
        )
        report = validator.apply(result)

        assert not report.valid
        assert [w.code for w in result.warnings] == [WarningCode.SCHEMA_VALIDATION]
        assert result.warnings[0].message.startswith('/transactions/0/date')


class TestExtractionResult:
    def test_to_dict_bank(self):
        result = ExtractionResult(document_type=DocumentType.BANK, transactions=[], confidence=0.3)
        result.add_warning(WarningCode.NO_TRANSACTIONS, 'none')
        data = result.to_dict()

        assert data['schema_version'] == SCHEMA_VERSION
        assert data['document_type'] == 'bank_statement'
        assert data['transactions'] == []
        assert 'deductors' not in data
        assert data['warnings'] == [{'code': 'NO_TRANSACTIONS', 'message': 'none'}]

    def test_to_dict_tax(self):
        data = ExtractionResult(document_type=DocumentType.TAX, deductors=[]).to_dict()
        assert data['deductors'] == []
        assert 'transactions' not in data

    def test_records(self):
        result = ExtractionResult(document_type=DocumentType.TAX, deductors=[{'name': 'A'}])
        assert result.records == [{'name': 'A'}]

    def test_confidence_bounds(self):
        with pytest.raises(ValueError):
            ExtractionResult(confidence=1.2)

    def test_warnings_are_frozen(self):
        warning = ExtractionWarning(code=WarningCode.NO_DEDUCTORS, message='x')
        with pytest.raises(ValueError):
            warning.message = 'y'
