import os
import re
import logging
from typing import Tuple, List
import pdfplumber
from pathlib import Path

logger = logging.getLogger(__name__)

# Form feeds and the marker used when joining pages both split text files into pages
PAGE_SPLIT = re.compile(r'\f|\n*--- PAGE BREAK ---\n*')


class FileLoader:
    """Loads per-page text for the extraction pipeline from text or text-layer PDF files."""

    SUPPORTED_EXTENSIONS = {'.txt', '.pdf'}

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_file(self, file_path: str) -> Tuple[str, List[str]]:
        """
        Load file based on extension and return (file_type, page_texts).

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (file_type, list of page strings)
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        file_ext = Path(file_path).suffix.lower()

        if file_ext not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {file_ext}")

        self.logger.info(f"Loading {file_ext} file: {file_path}")

        try:
            if file_ext == '.txt':
                return self._load_text(file_path)
            return self._load_pdf(file_path)
        except Exception as e:
            self.logger.error(f"Error loading file {file_path}: {str(e)}")
            raise

    def _load_text(self, file_path: str) -> Tuple[str, List[str]]:
        """Load a text dump with robust encoding detection."""
        encodings = ['utf-8', 'utf-8-sig', 'latin1', 'cp1252']

        for encoding in encodings:
            try:
                with open(file_path, encoding=encoding) as f:
                    content = f.read()
                self.logger.info(f"Successfully loaded text with {encoding} encoding")
                return 'text', PAGE_SPLIT.split(content)
            except UnicodeDecodeError:
                continue

        raise ValueError(f"Could not decode text file with any of the tried encodings: {encodings}")

    def _load_pdf(self, file_path: str) -> Tuple[str, List[str]]:
        """Extract text from PDF using pdfplumber."""
        pages_text = []

        try:
            with pdfplumber.open(file_path) as pdf:
                for i, page in enumerate(pdf.pages):
                    text = page.extract_text() or ''
                    pages_text.append(text)
                    self.logger.info(f"Extracted {len(text)} characters from page {i+1}")

            if not any(text.strip() for text in pages_text):
                self.logger.warning("No text extracted from PDF - may need OCR")

            return 'pdf', pages_text

        except Exception as e:
            raise ValueError(f"Error reading PDF file: {str(e)}")
