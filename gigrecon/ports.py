"""Interfaces of the collaborators the reconciliation core calls out to."""

from typing import Protocol, runtime_checkable

from gigrecon import Candidate, ExistingEvent


VENUE_FILTER = 'venueId'
ARTIST_FILTER = 'artistId'


class LookupFailure(Exception):
    """Raised when the canonical store or the place service cannot answer."""


@runtime_checkable
class CanonicalStore(Protocol):
    """Read access to the canonical venues, artists and events."""

    async def search_by_name(self, kind: str, term: str) -> list[Candidate]:
        """Return records of ``kind`` whose name or a name variant contains ``term``."""
        ...

    async def query_events_on_date(
        self, filter_kind: str, record_id: str, date: str,
    ) -> list[ExistingEvent]:
        """Return events on ``date`` at a venue (``venueId``) or featuring an artist (``artistId``)."""
        ...


@runtime_checkable
class PlaceLookup(Protocol):
    """External place search, used as a venue fallback only."""

    async def search(self, term: str, limit: int = 5) -> list[Candidate]:
        ...
