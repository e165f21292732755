"""Double-booking detection for imported records."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from gigrecon import Candidate, Conflict, ExistingEvent
from gigrecon.ports import ARTIST_FILTER, VENUE_FILTER, CanonicalStore

log = logging.getLogger(__name__)

# Four hours on the HHMM clock, e.g. |2030 - 1900| <= 400
CLOSE_WINDOW = 400


@dataclass
class ConflictReport:
    """Conflicts found for one record."""

    conflicts: list[Conflict] = field(default_factory=list)
    exact_duplicate: bool = False

    @property
    def blocks_commit(self) -> bool:
        """Only an exact duplicate blocks commit; proximity conflicts are advisory."""
        return self.exact_duplicate


def clock_value(time: str) -> int:
    """Convert ``HH:MM`` to an HHMM integer (``'20:30'`` -> ``2030``).

    Raises:
        ValueError: If the time is not in ``HH:MM`` form.
    """
    hours, sep, minutes = time.strip().partition(':')
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid start time: {time!r}")
    return int(hours) * 100 + int(minutes)


def is_close(start_time: Optional[str], existing_time: str) -> bool:
    """Check whether two start times are within the conflict window.

    An imported record without a start time is never close to anything;
    only an exact duplicate can still be flagged for it.
    """
    if not start_time:
        return False
    return abs(clock_value(start_time) - clock_value(existing_time)) <= CLOSE_WINDOW


class ConflictDetector:
    """Flag bookings that clash with a venue/artists/date combination.

    Only canonical venues and artists are checked; a record cannot clash
    with events of an entity that does not exist yet.
    """

    def __init__(self, store: CanonicalStore):
        self.store = store

    async def check_conflicts(
        self,
        venue: Optional[Candidate],
        artists: Sequence[Candidate],
        date: str,
        start_time: Optional[str] = None,
    ) -> ConflictReport:
        """Collect venue, artist and exact-duplicate conflicts.

        Args:
            venue: Resolved venue, or None.
            artists: Resolved artists of the record.
            date: Event date, ``YYYY-MM-DD``.
            start_time: Start time of the imported event, ``HH:MM``.

        Returns:
            ConflictReport with all conflicts and the exact-duplicate flag.

        Raises:
            LookupFailure: If the store cannot be queried.
        """
        report = ConflictReport()
        duplicate_ids: set[str] = set()

        canonical_artists = [a for a in artists if a.is_canonical]
        all_artists_canonical = bool(artists) and len(canonical_artists) == len(artists)
        artist_ids = {a.id for a in canonical_artists}

        if venue is not None and venue.is_canonical:
            venue_events = await self.store.query_events_on_date(VENUE_FILTER, venue.id, date)
            for event in venue_events:
                if all_artists_canonical and _same_lineup(event, venue.id, artist_ids, date):
                    report.exact_duplicate = True
                    duplicate_ids.add(event.id)
                    report.conflicts.append(_conflict('exact_duplicate', venue.name, event))
                elif is_close(start_time, event.start_time):
                    report.conflicts.append(_conflict('venue', venue.name, event))

        for artist in canonical_artists:
            artist_events = await self.store.query_events_on_date(ARTIST_FILTER, artist.id, date)
            for event in artist_events:
                if event.id in duplicate_ids:
                    continue
                if is_close(start_time, event.start_time):
                    report.conflicts.append(_conflict('artist', artist.name, event))

        if report.conflicts:
            log.info(
                "%d conflict(s) on %s%s",
                len(report.conflicts), date,
                ' (exact duplicate)' if report.exact_duplicate else '',
            )
        return report


def _same_lineup(event: ExistingEvent, venue_id: str, artist_ids: set[str], date: str) -> bool:
    return (
        event.venue_id == venue_id
        and event.date == date
        and set(event.artist_ids) == artist_ids
    )


def _conflict(kind: str, subject_name: str, event: ExistingEvent) -> Conflict:
    return Conflict(
        kind=kind,
        subject_name=subject_name,
        existing_event_name=event.name,
        existing_event_start_time=event.start_time,
    )
