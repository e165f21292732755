"""Candidate lookup for raw venue and artist names."""

import logging
from typing import Optional

from gigrecon import ARTIST, VENUE, Candidate
from gigrecon.ports import CanonicalStore, PlaceLookup
from gigrecon.similarity import similarity

log = logging.getLogger(__name__)

PLACE_RESULT_LIMIT = 5

# Shorter search terms return nothing rather than every record
MIN_TERM_LENGTH: dict[str, int] = {
    VENUE: 3,
    ARTIST: 2,
}


class CandidateResolver:
    """Find canonical (or, for venues, external) candidates for a raw name.

    The store query is a recall-oriented substring pre-filter; precision
    is left to the similarity scores and the match threshold applied by
    the caller. Artists never fall back to the place lookup.
    """

    def __init__(self, store: CanonicalStore, place_lookup: Optional[PlaceLookup] = None):
        self.store = store
        self.place_lookup = place_lookup

    async def resolve(self, kind: str, name: str) -> list[tuple[Candidate, float]]:
        """Return all candidates for ``name`` with their similarity, best first.

        Args:
            kind: ``'venue'`` or ``'artist'``.
            name: Raw name from the imported record.

        Returns:
            List of (candidate, similarity) pairs. Equal scores keep the
            order in which the collaborator returned them.

        Raises:
            ValueError: If ``kind`` is unknown.
            LookupFailure: If a collaborator cannot be reached.
        """
        if kind not in MIN_TERM_LENGTH:
            raise ValueError(f"Unknown record kind: {kind!r}")

        term = name.strip()
        if len(term) < MIN_TERM_LENGTH[kind]:
            log.debug("Search term %r too short for %s lookup", term, kind)
            return []

        candidates = await self.store.search_by_name(kind, term)

        if not candidates and kind == VENUE and self.place_lookup is not None:
            log.debug("No canonical venue for %r, asking place lookup", term)
            places = await self.place_lookup.search(term, limit=PLACE_RESULT_LIMIT)
            candidates = [_as_external(place) for place in places[:PLACE_RESULT_LIMIT]]

        scored = [(candidate, similarity(candidate.name, term)) for candidate in candidates]
        # sorted() is stable, so ties keep encounter order
        scored.sort(key=lambda pair: pair[1], reverse=True)

        log.debug("%d %s candidate(s) for %r", len(scored), kind, term)
        return scored


def _as_external(place: Candidate) -> Candidate:
    """Strip any id from a place result; external places are never canonical."""
    identifiers = dict(place.identifiers)
    if place.place_id:
        identifiers.setdefault('place_id', place.place_id)
    return Candidate(
        name=place.name,
        id=None,
        identifiers=identifiers,
        address=place.address,
        location=place.location,
        place_id=place.place_id,
    )
