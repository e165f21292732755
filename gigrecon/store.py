"""In-memory canonical store loaded from a JSON reference file."""

import json
import logging
from pathlib import Path

from gigrecon import ARTIST, VENUE, Candidate, ExistingEvent
from gigrecon.ports import ARTIST_FILTER, VENUE_FILTER
from gigrecon.similarity import fold_name

log = logging.getLogger(__name__)

IDENTIFIER_FIELDS = ('websiteUrl', 'facebookUrl', 'instagramUrl', 'googlePlaceId')
_IDENTIFIER_KEYS = {
    'websiteUrl': 'website_url',
    'facebookUrl': 'facebook_url',
    'instagramUrl': 'instagram_url',
    'googlePlaceId': 'place_id',
}


class InMemoryCanonicalStore:
    """Canonical venues, artists and events held in memory.

    Implements the ``CanonicalStore`` port. Read-only from the
    reconciliation core's point of view.
    """

    def __init__(
        self,
        venues: list[Candidate] | None = None,
        artists: list[Candidate] | None = None,
        events: list[ExistingEvent] | None = None,
    ):
        self.records: dict[str, list[Candidate]] = {
            VENUE: list(venues or []),
            ARTIST: list(artists or []),
        }
        self.events: list[ExistingEvent] = list(events or [])

    async def search_by_name(self, kind: str, term: str) -> list[Candidate]:
        needle = fold_name(term)
        return [
            record for record in self.records[kind]
            if any(needle in fold_name(name) for name in [record.name, *record.name_variants])
        ]

    async def query_events_on_date(
        self, filter_kind: str, record_id: str, date: str,
    ) -> list[ExistingEvent]:
        if filter_kind == VENUE_FILTER:
            return [e for e in self.events if e.venue_id == record_id and e.date == date]
        if filter_kind == ARTIST_FILTER:
            return [e for e in self.events if record_id in e.artist_ids and e.date == date]
        raise ValueError(f"Unknown event filter: {filter_kind!r}")


def _candidate(raw: dict) -> Candidate:
    location = raw.get('location')
    return Candidate(
        id=str(raw['id']),
        name=raw['name'],
        name_variants=list(raw.get('nameVariants', [])),
        identifiers={
            _IDENTIFIER_KEYS[key]: raw[key] for key in IDENTIFIER_FIELDS if raw.get(key)
        },
        address=raw.get('address', ''),
        location=(location['lat'], location['lng']) if location else None,
        place_id=raw.get('googlePlaceId', ''),
    )


def _event(raw: dict) -> ExistingEvent:
    return ExistingEvent(
        id=str(raw['id']),
        name=raw['name'],
        date=raw['date'],
        start_time=raw['startTime'],
        venue_id=str(raw.get('venueId', '')),
        artist_ids=[str(a) for a in raw.get('artistIds', [])],
    )


def load_reference(path: str | Path) -> InMemoryCanonicalStore:
    """Load canonical venues, artists and events from a JSON file.

    The file holds ``venues``, ``artists`` and ``events`` arrays using the
    calendar's field names (``nameVariants``, ``venueId``, ``artistIds``,
    ``startTime``, ...).

    Args:
        path: Path to the JSON reference file.

    Returns:
        Store populated with the file's records.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or a record lacks a required field.
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid reference file {path}: {exc}") from exc

    try:
        store = InMemoryCanonicalStore(
            venues=[_candidate(v) for v in data.get('venues', [])],
            artists=[_candidate(a) for a in data.get('artists', [])],
            events=[_event(e) for e in data.get('events', [])],
        )
    except KeyError as exc:
        raise ValueError(f"Reference file {path}: record missing field {exc}") from exc

    log.info(
        "Reference loaded from %s: %d venues, %d artists, %d events",
        path, len(store.records[VENUE]), len(store.records[ARTIST]), len(store.events),
    )
    return store
