"""
Main entry point for financial document extraction.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from preprocess import TextPreprocessor, join_pages
from classifier import DocumentClassifier
from bank_extractor import BankStatementExtractor, REQUIRED_HEADER_FIELDS as BANK_REQUIRED_FIELDS
from tax_extractor import TaxStatementExtractor, REQUIRED_HEADER_FIELDS as TAX_REQUIRED_FIELDS
from confidence import NO_RECORDS_FLOOR, extraction_confidence, overall_confidence
from schema import DocumentType, ExtractionResult, ExtractionWarning, SchemaValidator, WarningCode

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class DocumentProcessor:
    """Main processor turning document text into a validated extraction result."""

    def __init__(self, classifier: Optional[DocumentClassifier] = None,
                 preprocessor: Optional[TextPreprocessor] = None,
                 validate: bool = True):
        self.preprocessor = preprocessor or TextPreprocessor()
        self.classifier = classifier or DocumentClassifier()
        self.bank_extractor = BankStatementExtractor(self.preprocessor)
        self.tax_extractor = TaxStatementExtractor(self.preprocessor)
        self.validator = SchemaValidator() if validate else None

    def process_text(self, page_texts: Union[str, Sequence[str], None],
                     full_text: Optional[str] = None,
                     filename: Optional[str] = '') -> ExtractionResult:
        """
        Process one document end-to-end.

        Args:
            page_texts: Per-page text from the PDF/OCR stage (a single string is one page)
            full_text: Caller-joined text; pages are joined with the page-break marker if omitted
            filename: Original file name, used as a classification hint

        Returns:
            ExtractionResult; quality problems are reported as warnings, never raised
        """
        if isinstance(page_texts, str):
            page_texts = [page_texts]
        page_texts = list(page_texts or [])
        if full_text is None:
            full_text = join_pages(page_texts)

        logger.info(f"Starting extraction of {filename or 'document'} ({len(page_texts)} page(s))")

        text = self.preprocessor.normalize(full_text)
        lines = self.preprocessor.get_lines(text)

        verdict = self.classifier.classify(text, filename)
        warnings: List[ExtractionWarning] = []

        result = ExtractionResult(document_type=verdict.document_type, page_count=len(page_texts))

        if verdict.document_type == DocumentType.BANK:
            header = self.bank_extractor.extract_header(text)
            transactions = self.bank_extractor.extract_transactions(lines, warnings)
            if not transactions:
                warnings.append(ExtractionWarning(
                    code=WarningCode.NO_TRANSACTIONS,
                    message='No transaction rows could be extracted from this document.',
                ))
            result.header = header
            result.transactions = transactions
            extraction = extraction_confidence(header, BANK_REQUIRED_FIELDS, len(transactions))

        elif verdict.document_type == DocumentType.TAX:
            header = self.tax_extractor.extract_header(text)
            deductors = self.tax_extractor.extract_deductors(lines)
            if not deductors:
                warnings.append(ExtractionWarning(
                    code=WarningCode.NO_DEDUCTORS,
                    message='No deductor/TDS sections could be extracted.',
                ))
            result.header = header
            result.deductors = deductors
            extraction = extraction_confidence(header, TAX_REQUIRED_FIELDS, len(deductors))

        else:
            warnings.append(ExtractionWarning(
                code=WarningCode.UNKNOWN_DOCUMENT_TYPE,
                message='Could not confidently classify document type.',
            ))
            warnings.append(ExtractionWarning(
                code=WarningCode.NO_TRANSACTIONS,
                message='No records were extracted because the document type is unknown.',
            ))
            result.transactions = []
            extraction = NO_RECORDS_FLOOR

        result.warnings.extend(warnings)
        result.confidence = overall_confidence(verdict.confidence, extraction)

        if self.validator is not None:
            self.validator.apply(result)

        logger.info(
            f"Finished {verdict.document_type.value}: {len(result.records)} record(s), "
            f"confidence {result.confidence}, {len(result.warnings)} warning(s)"
        )
        return result

    def process(self, page_texts: Union[str, Sequence[str], None],
                full_text: Optional[str] = None,
                filename: Optional[str] = '') -> Dict[str, Any]:
        """Same as ``process_text`` but returns the JSON-ready dict."""
        return self.process_text(page_texts, full_text, filename).to_dict()


def transactions_frame(result: ExtractionResult) -> pd.DataFrame:
    """Flatten the transaction rows of a result into a DataFrame."""
    if result.document_type == DocumentType.TAX:
        rows = []
        for deductor in result.deductors or []:
            for transaction in deductor['transactions']:
                rows.append({
                    'deductor_name': deductor['name'],
                    'deductor_tan': deductor['tan'],
                    **transaction,
                })
        return pd.DataFrame(rows)

    return pd.DataFrame(result.transactions or [])


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    # Imported here so the core never depends on file access
    from file_loader import FileLoader

    parser = argparse.ArgumentParser(description='Extract structured data from bank and tax statement text')
    parser.add_argument('file_path', help='Path to a .txt dump or text-layer .pdf')
    parser.add_argument('-o', '--output', help='Output JSON file path')
    parser.add_argument('--csv', help='Also write transaction rows to this CSV file')
    parser.add_argument('--filename', help='File name to use for classification hints (defaults to the input name)')
    parser.add_argument('--min-score', type=int, default=8, help='Minimum keyword score for a confident classification')
    parser.add_argument('--tie-break', choices=[DocumentType.BANK.value, DocumentType.TAX.value],
                        default=DocumentType.BANK.value, help='Document type that wins a tied classification')
    parser.add_argument('--log-file', help='Also write logs to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    try:
        _, page_texts = FileLoader().load_file(args.file_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load input: {str(e)}")
        print(f"Error: {str(e)}")
        return 1

    processor = DocumentProcessor(
        classifier=DocumentClassifier(min_score=args.min_score, tie_break=DocumentType(args.tie_break)),
    )
    result = processor.process_text(page_texts, filename=args.filename or Path(args.file_path).name)
    output_data = result.to_dict()

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
        print(f"Results written to: {args.output}")
    else:
        print(json.dumps(output_data, indent=2, ensure_ascii=False))

    if args.csv:
        transactions_frame(result).to_csv(args.csv, index=False)
        print(f"Transactions written to: {args.csv}")

    print(f"\nSummary:")
    print(f"- Document type: {result.document_type.value}")
    print(f"- Pages: {result.page_count}")
    print(f"- Records extracted: {len(result.records)}")
    print(f"- Confidence: {result.confidence}")

    if result.warnings:
        print(f"\nWarnings:")
        for warning in result.warnings:
            print(f"- {warning.code.value}: {warning.message}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
