"""Core data model for gig-reconciler."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


ARTIST = 'artist'
VENUE = 'venue'


class RecordStatus(str, Enum):
    """Reconciliation status of an imported record."""

    PENDING = 'pending'
    PROCESSING = 'processing'
    READY = 'ready'
    ERROR = 'error'


class Bucket(str, Enum):
    """Review group for a processed record."""

    VERIFIED = 'verified'
    VERIFIED_ARTIST_NEW_VENUE = 'verified_artist_new_venue'
    NEW_ARTIST_NEW_VENUE = 'new_artist_new_venue'
    NO_VENUE_MATCH = 'no_venue_match'


@dataclass
class Candidate:
    """A canonical record or external place proposed as a match for a raw name."""

    name: str
    id: Optional[str] = None
    name_variants: list[str] = field(default_factory=list)
    identifiers: dict[str, str] = field(default_factory=dict)
    address: str = ''
    location: Optional[tuple[float, float]] = None   # (lat, lng)
    place_id: str = ''

    @property
    def is_canonical(self) -> bool:
        return bool(self.id)


@dataclass
class ExistingEvent:
    """An event already in the canonical calendar."""

    id: str
    name: str
    date: str             # YYYY-MM-DD
    start_time: str       # HH:MM
    venue_id: str = ''
    artist_ids: list[str] = field(default_factory=list)


@dataclass
class MatchResult:
    """Outcome of matching one raw name against its candidates."""

    candidate_id: Optional[str]
    candidate_name: str
    confidence: float     # 0.0 – 1.0
    is_new: bool
    candidate_count: int = 0
    place: Optional[Candidate] = None   # external place a new venue would be built from
    place_score: float = 0.0

    def __post_init__(self):
        if self.is_new != (self.candidate_id is None):
            raise ValueError('is_new must be True exactly when candidate_id is absent')


@dataclass(frozen=True)
class Conflict:
    """A booking that clashes with an imported record."""

    kind: str             # venue, artist, exact_duplicate
    subject_name: str
    existing_event_name: str
    existing_event_start_time: str


@dataclass
class ImportedRecord:
    """One spreadsheet row or scraped listing awaiting reconciliation."""

    id: str
    raw_artist_name: str
    raw_venue_name: str
    date: str             # YYYY-MM-DD
    time: Optional[str] = None
    ticket_url: Optional[str] = None
    ticket_price: Optional[str] = None
    description: Optional[str] = None
    artist_identifiers: dict[str, str] = field(default_factory=dict)
    venue_identifiers: dict[str, str] = field(default_factory=dict)

    status: RecordStatus = RecordStatus.PENDING
    venue_match: Optional[MatchResult] = None
    artist_match: Optional[MatchResult] = None
    conflicts: Optional[list[Conflict]] = None   # None: conflict check did not run
    exact_duplicate: bool = False
    error: Optional[str] = None

    def __post_init__(self):
        if not self.raw_artist_name.strip():
            raise ValueError(f"Record {self.id}: artist name is empty")
        if not self.raw_venue_name.strip():
            raise ValueError(f"Record {self.id}: venue name is empty")
