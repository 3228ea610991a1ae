from typing import Any, Dict, Iterable

from preprocess import TextPreprocessor

# Floors applied to field completeness depending on whether any rows came out
RECORDS_FOUND_FLOOR = 0.5
NO_RECORDS_FLOOR = 0.1

CLASSIFICATION_WEIGHT = 0.2
EXTRACTION_WEIGHT = 0.8


def extraction_confidence(header: Dict[str, Any], required: Iterable[str], record_count: int) -> float:
    """Header completeness, floored at 0.5 when records were found and 0.1 otherwise."""
    completeness = TextPreprocessor.calc_confidence(header, required)
    floor = RECORDS_FOUND_FLOOR if record_count > 0 else NO_RECORDS_FLOOR
    return max(completeness, floor)


def overall_confidence(classification: float, extraction: float) -> float:
    """Blend classification and extraction confidence; extraction dominates."""
    blended = classification * CLASSIFICATION_WEIGHT + extraction * EXTRACTION_WEIGHT
    return min(1.0, max(0.0, round(blended, 2)))
