"""Step text normalization and step-to-binding resolution."""

from stepbind.core.matching.normalization import (
    MAX_CANDIDATES_PER_STEP,
    extract_placeholders,
    generate_candidate_texts,
    normalize_whitespace,
)
from stepbind.core.matching.resolver import StepResolver

__all__ = [
    "MAX_CANDIDATES_PER_STEP",
    "StepResolver",
    "extract_placeholders",
    "generate_candidate_texts",
    "normalize_whitespace",
]
