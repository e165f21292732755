"""Bind-or-create decision for a raw name and its candidates."""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Optional

from gigrecon import Candidate, MatchResult
from gigrecon.similarity import similarity

log = logging.getLogger(__name__)

# Best score must be strictly above this to bind
MATCH_THRESHOLD = 0.7

IDENTIFIER_KEYS = ('website_url', 'facebook_url', 'instagram_url', 'place_id')


def shares_identifier(candidate: Candidate, identifiers: Mapping[str, str]) -> bool:
    """Check whether a candidate and a source record share an exact identifier.

    Args:
        candidate: Canonical record or external place.
        identifiers: Side-channel identifiers of the imported record.

    Returns:
        True if any non-empty identifier is equal on both sides.
    """
    own = dict(candidate.identifiers)
    if candidate.place_id:
        own.setdefault('place_id', candidate.place_id)

    for key in IDENTIFIER_KEYS:
        value = identifiers.get(key)
        if value and own.get(key) == value:
            return True
    return False


def decide(
    name: str,
    candidates: Iterable[Candidate],
    identifiers: Optional[Mapping[str, str]] = None,
    scorer: Callable[[str, str], float] = similarity,
) -> MatchResult:
    """Pick the best candidate for ``name`` or mark the name as new.

    Each candidate is scored against ``name``; a shared identifier
    (website, social URL, place id) forces the score to 1.0. The first
    candidate with the highest score wins. It is bound only when the
    score is strictly above ``MATCH_THRESHOLD`` and it is a canonical
    record. A winning external place cannot be bound (it has no id), so
    the result stays new, with the raw name and zero confidence, and
    carries the place and its score for later creation.

    Args:
        name: Raw name from the imported record.
        candidates: Candidates from the resolver, in encounter order.
        identifiers: Side-channel identifiers of the imported record.
        scorer: Similarity function.

    Returns:
        MatchResult for the name.
    """
    identifiers = identifiers or {}
    best: Optional[Candidate] = None
    best_score = -1.0
    count = 0

    for candidate in candidates:
        count += 1
        score = scorer(candidate.name, name)
        if shares_identifier(candidate, identifiers):
            score = 1.0
        log.debug("  %r vs %r: %.4f", name, candidate.name, score)
        if score > best_score:
            best = candidate
            best_score = score

    if best is None or best_score <= MATCH_THRESHOLD:
        return MatchResult(
            candidate_id=None,
            candidate_name=name,
            confidence=0.0,
            is_new=True,
            candidate_count=count,
        )

    if best.is_canonical:
        return MatchResult(
            candidate_id=best.id,
            candidate_name=best.name,
            confidence=best_score,
            is_new=False,
            candidate_count=count,
        )

    return MatchResult(
        candidate_id=None,
        candidate_name=name,
        confidence=0.0,
        is_new=True,
        candidate_count=count,
        place=best,
        place_score=best_score,
    )
