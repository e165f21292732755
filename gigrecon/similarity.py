"""Name similarity scoring for venue and artist names."""

import re
import unicodedata

from rapidfuzz.distance import Indel

_WHITESPACE_RE = re.compile(r'\s+')


def fold_name(text: str) -> str:
    """Fold a name for comparison.

    Removes accents/diacritics via NFKD decomposition, case-folds and
    collapses whitespace.

    Args:
        text: Raw name string.

    Returns:
        Folded string.
    """
    decomposed = unicodedata.normalize('NFKD', text)
    # Remove combining marks (category 'Mn')
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    return _WHITESPACE_RE.sub(' ', stripped).strip().casefold()


def similarity(a: str, b: str) -> float:
    """Score how alike two names are.

    Symmetric and case-insensitive: identical names after folding score
    1.0, names sharing no characters score 0.0. The score is a ranking
    signal only, never an equality test.

    Args:
        a: First name.
        b: Second name.

    Returns:
        Similarity between 0.0 and 1.0.
    """
    folded_a = fold_name(a)
    folded_b = fold_name(b)
    if folded_a == folded_b:
        return 1.0
    return Indel.normalized_similarity(folded_a, folded_b)
