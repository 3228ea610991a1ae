import re
import logging
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence, Tuple

from preprocess import TextPreprocessor

logger = logging.getLogger(__name__)

_preprocessor = TextPreprocessor()


class FieldRule(NamedTuple):
    """One labeled search: a regex whose groups feed ``fields`` through ``postprocess``."""
    fields: Tuple[str, ...]
    pattern: re.Pattern
    postprocess: Callable[[str], Any]


def rule(fields, pattern: str, postprocess: Callable[[str], Any], flags: int = re.IGNORECASE) -> FieldRule:
    if isinstance(fields, str):
        fields = (fields,)
    return FieldRule(tuple(fields), re.compile(pattern, flags), postprocess)


# Post-processors

def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = re.sub(r'\s+', ' ', value).strip(' :-|,')
    return cleaned or None


def lower_text(value: Optional[str]) -> Optional[str]:
    cleaned = clean_text(value)
    return cleaned.lower() if cleaned else None


def digits_only(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = re.sub(r'[\s\-]', '', value)
    return cleaned or None


def identifier(shape: str) -> Callable[[Optional[str]], Optional[str]]:
    """Uppercase an identifier and keep it only if it has the canonical shape."""
    compiled = re.compile(shape)

    def postprocess(value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        candidate = re.sub(r'\s+', '', value).upper()
        return candidate if compiled.fullmatch(candidate) else None

    return postprocess


PAN_SHAPE = r'[A-Z]{5}\d{4}[A-Z]'
TAN_SHAPE = r'[A-Z]{4}\d{5}[A-Z]'
IFSC_SHAPE = r'[A-Z]{4}0[A-Z0-9]{6}'

pan = identifier(PAN_SHAPE)
tan = identifier(TAN_SHAPE)
ifsc = identifier(IFSC_SHAPE)


def as_date(value: Optional[str]) -> Optional[str]:
    return _preprocessor.normalize_date(value)


def as_amount(value: Optional[str]) -> Optional[float]:
    return _preprocessor.normalize_amount(value)


class FieldExtractor:
    """Evaluates an ordered table of field rules against a block of text.

    Each field is filled by the first rule that matches and yields a
    non-null value. Later rules for an already-filled field are skipped.
    """

    def __init__(self, rules: Sequence[FieldRule]):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.rules = list(rules)

    def extract(self, text: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fill ``fields`` in place from ``text``.

        Args:
            text: Normalized text to search
            fields: Mapping with every declared key present (None = not found)

        Returns:
            The same mapping, for chaining
        """
        filled = set()
        for field_rule in self.rules:
            if all(name in filled for name in field_rule.fields):
                continue

            match = field_rule.pattern.search(text)
            if not match:
                continue

            groups = match.groups() or (match.group(),)
            values = [field_rule.postprocess(group) for group in groups[:len(field_rule.fields)]]

            for name, value in zip(field_rule.fields, values):
                if name in filled or value is None:
                    continue
                fields[name] = value
                filled.add(name)
                self.logger.debug(f"{name} <- {value!r} via /{field_rule.pattern.pattern}/")

        return fields
