"""Reconciliation pipeline: matches, conflicts and review buckets per record."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Optional

from gigrecon import (
    ARTIST,
    VENUE,
    Bucket,
    Candidate,
    Conflict,
    ImportedRecord,
    MatchResult,
    RecordStatus,
)
from gigrecon.conflicts import ConflictDetector
from gigrecon.decision import decide
from gigrecon.resolver import CandidateResolver

log = logging.getLogger(__name__)

# Allowed status transitions; ready is final for a batch
TRANSITIONS: dict[RecordStatus, set[RecordStatus]] = {
    RecordStatus.PENDING: {RecordStatus.PROCESSING},
    RecordStatus.PROCESSING: {RecordStatus.READY, RecordStatus.ERROR},
    RecordStatus.ERROR: {RecordStatus.PROCESSING},
    RecordStatus.READY: set(),
}


class InvalidTransition(ValueError):
    """Raised when a record is moved to a status it cannot reach."""


@dataclass(frozen=True)
class RecordSnapshot:
    """Read-only view of an imported record and its reconciliation state."""

    id: str
    raw_artist_name: str
    raw_venue_name: str
    date: str
    time: Optional[str]
    ticket_url: Optional[str]
    ticket_price: Optional[str]
    description: Optional[str]
    status: RecordStatus
    venue_match: Optional[MatchResult]
    artist_match: Optional[MatchResult]
    conflicts: Optional[tuple[Conflict, ...]]
    exact_duplicate: bool
    error: Optional[str]

    @classmethod
    def of(cls, record: ImportedRecord) -> 'RecordSnapshot':
        return cls(
            id=record.id,
            raw_artist_name=record.raw_artist_name,
            raw_venue_name=record.raw_venue_name,
            date=record.date,
            time=record.time,
            ticket_url=record.ticket_url,
            ticket_price=record.ticket_price,
            description=record.description,
            status=record.status,
            venue_match=replace(record.venue_match) if record.venue_match else None,
            artist_match=replace(record.artist_match) if record.artist_match else None,
            conflicts=tuple(record.conflicts) if record.conflicts is not None else None,
            exact_duplicate=record.exact_duplicate,
            error=record.error,
        )


def _bound(match: Optional[MatchResult]) -> bool:
    return match is not None and not match.is_new


def classify(snapshot: RecordSnapshot) -> Bucket:
    """Assign a ready record to its review bucket.

    Precedence:
    1. Venue and artist bound -> VERIFIED
    2. Artist bound -> VERIFIED_ARTIST_NEW_VENUE
    3. Venue had at least one candidate -> NEW_ARTIST_NEW_VENUE
    4. Otherwise -> NO_VENUE_MATCH

    Raises:
        ValueError: If the record is not ready.
    """
    if snapshot.status is not RecordStatus.READY:
        raise ValueError(f"Record {snapshot.id} is {snapshot.status.value}, not ready")

    venue_bound = _bound(snapshot.venue_match)
    artist_bound = _bound(snapshot.artist_match)

    if venue_bound and artist_bound:
        return Bucket.VERIFIED
    if artist_bound:
        return Bucket.VERIFIED_ARTIST_NEW_VENUE
    if venue_bound or (snapshot.venue_match is not None and snapshot.venue_match.candidate_count > 0):
        return Bucket.NEW_ARTIST_NEW_VENUE
    return Bucket.NO_VENUE_MATCH


class ReconciliationPipeline:
    """Reconcile a batch of imported records, one record at a time.

    The pipeline owns the records for the duration of the batch and hands
    out read-only snapshots. All record processing is serialised so that
    two records naming the same new venue or artist can never be in
    flight together.
    """

    def __init__(
        self,
        records: Iterable[ImportedRecord],
        resolver: CandidateResolver,
        detector: ConflictDetector,
        decider: Callable[..., MatchResult] = decide,
    ):
        self.resolver = resolver
        self.detector = detector
        self.decider = decider
        self._records: dict[str, ImportedRecord] = {}
        for record in records:
            if record.id in self._records:
                raise ValueError(f"Duplicate record id: {record.id}")
            self._records[record.id] = record
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> RecordSnapshot:
        return RecordSnapshot.of(self._records[record_id])

    def snapshot(self) -> tuple[RecordSnapshot, ...]:
        return tuple(RecordSnapshot.of(r) for r in self._records.values())

    def count(self, status: RecordStatus) -> int:
        return sum(1 for r in self._records.values() if r.status is status)

    def can_commit(self, record_id: str) -> bool:
        """A record can be committed once ready, unless it duplicates an existing event."""
        record = self._records[record_id]
        return record.status is RecordStatus.READY and not record.exact_duplicate

    def buckets(self) -> dict[Bucket, list[RecordSnapshot]]:
        """Group all ready records by review bucket."""
        grouped: dict[Bucket, list[RecordSnapshot]] = {bucket: [] for bucket in Bucket}
        for snap in self.snapshot():
            if snap.status is RecordStatus.READY:
                grouped[classify(snap)].append(snap)
        return grouped

    async def process_all(self) -> tuple[RecordSnapshot, ...]:
        """Process every pending record in order, one after another.

        A failing record ends in ``error`` and the batch moves on.
        """
        pending = [r.id for r in self._records.values() if r.status is RecordStatus.PENDING]
        log.info("Processing %d pending record(s)", len(pending))

        for record_id in pending:
            await self._process(self._records[record_id], only_pending=True)

        log.info(
            "Batch finished: %d ready, %d error",
            self.count(RecordStatus.READY), self.count(RecordStatus.ERROR),
        )
        return self.snapshot()

    async def process(self, record_id: str) -> RecordSnapshot:
        """Reconcile a single pending record, or retry a failed one.

        Raises:
            KeyError: If the record id is unknown.
            InvalidTransition: If the record is already processing or ready.
        """
        return await self._process(self._records[record_id])

    async def _process(self, record: ImportedRecord, only_pending: bool = False) -> RecordSnapshot:
        async with self._lock:
            # The operator may have finished the record while we waited
            if only_pending and record.status is not RecordStatus.PENDING:
                log.debug("Record %s already %s, skipped", record.id, record.status.value)
                return RecordSnapshot.of(record)
            self._transition(record, RecordStatus.PROCESSING)
            try:
                venue_match, artist_match, venue, artist = await self._match(record)
                conflicts: Optional[list[Conflict]] = None
                exact_duplicate = False
                if venue is not None and artist is not None:
                    report = await self.detector.check_conflicts(
                        venue, [artist], record.date, record.time,
                    )
                    conflicts = report.conflicts
                    exact_duplicate = report.exact_duplicate
                else:
                    log.debug("Record %s: conflict check skipped, venue or artist is new", record.id)
            except Exception as exc:
                record.venue_match = None
                record.artist_match = None
                record.conflicts = None
                record.exact_duplicate = False
                record.error = str(exc) or exc.__class__.__name__
                self._transition(record, RecordStatus.ERROR)
                log.warning("Record %s failed: %s", record.id, record.error)
                return RecordSnapshot.of(record)

            record.venue_match = venue_match
            record.artist_match = artist_match
            record.conflicts = conflicts
            record.exact_duplicate = exact_duplicate
            record.error = None
            self._transition(record, RecordStatus.READY)

        log.info(
            'Record %s ready: venue "%s" -> %s, artist "%s" -> %s',
            record.id,
            record.raw_venue_name, _describe(venue_match),
            record.raw_artist_name, _describe(artist_match),
        )
        return RecordSnapshot.of(record)

    async def _match(
        self, record: ImportedRecord,
    ) -> tuple[MatchResult, MatchResult, Optional[Candidate], Optional[Candidate]]:
        """Resolve venue and artist; returns both matches and the bound candidates."""
        venue_candidates, artist_candidates = await asyncio.gather(
            self.resolver.resolve(VENUE, record.raw_venue_name),
            self.resolver.resolve(ARTIST, record.raw_artist_name),
        )
        venue_match = self.decider(
            record.raw_venue_name,
            [c for c, _ in venue_candidates],
            record.venue_identifiers,
        )
        artist_match = self.decider(
            record.raw_artist_name,
            [c for c, _ in artist_candidates],
            record.artist_identifiers,
        )
        venue = _bound_candidate(venue_match, venue_candidates)
        artist = _bound_candidate(artist_match, artist_candidates)
        return venue_match, artist_match, venue, artist

    @staticmethod
    def _transition(record: ImportedRecord, target: RecordStatus) -> None:
        if target not in TRANSITIONS[record.status]:
            raise InvalidTransition(
                f"Record {record.id}: cannot move from {record.status.value} to {target.value}"
            )
        record.status = target


def _bound_candidate(
    match: MatchResult, candidates: list[tuple[Candidate, float]],
) -> Optional[Candidate]:
    if match.is_new:
        return None
    for candidate, _ in candidates:
        if candidate.id == match.candidate_id:
            return candidate
    return None


def _describe(match: MatchResult) -> str:
    if match.is_new:
        return 'new'
    return f'{match.candidate_name} ({match.confidence:.2f})'
