"""Step text normalization and scenario outline expansion."""

import re
from collections.abc import Sequence

from stepbind.core.domain.types import ExamplesTable

MAX_CANDIDATES_PER_STEP = 20
PLACEHOLDER_FALLBACK = "X"

_PLACEHOLDER = re.compile(r"<([^<>]+)>")
_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Trim and collapse whitespace runs to one space; quotes are untouched."""
    return _WHITESPACE.sub(" ", text.strip())


def extract_placeholders(text: str) -> list[str]:
    """Names of ``<placeholder>`` tokens in order of appearance."""
    return _PLACEHOLDER.findall(text)


def generate_candidate_texts(
    text: str, examples: Sequence[ExamplesTable] = ()
) -> list[str]:
    """Build the texts a step is matched against.

    The first candidate replaces every placeholder with ``X``. Outline
    steps then get one candidate per Examples row, up to
    ``MAX_CANDIDATES_PER_STEP`` distinct candidates in total.

    Args:
        text: Raw step text, possibly containing ``<placeholders>``.
        examples: Examples tables of the enclosing scenario outline.

    Returns:
        Distinct, whitespace-normalized candidate texts.
    """
    normalized = normalize_whitespace(text)
    candidates = [_PLACEHOLDER.sub(PLACEHOLDER_FALLBACK, normalized)]
    if not examples or not _PLACEHOLDER.search(normalized):
        return candidates

    for table in examples:
        if not table.headers:
            continue
        for row in table.rows:
            if len(candidates) >= MAX_CANDIDATES_PER_STEP:
                return candidates
            expanded = normalized
            for column, header in enumerate(table.headers):
                value = row[column] if column < len(row) else PLACEHOLDER_FALLBACK
                expanded = expanded.replace(f"<{header}>", value)
            expanded = normalize_whitespace(expanded)
            if expanded not in candidates:
                candidates.append(expanded)
    return candidates
