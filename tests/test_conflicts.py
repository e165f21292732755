"""Tests for gigrecon.conflicts module."""

import asyncio

import pytest

from gigrecon import Candidate, ExistingEvent
from gigrecon.conflicts import ConflictDetector, clock_value, is_close
from gigrecon.store import InMemoryCanonicalStore
from fakes import artist, venue

DATE = '2025-03-01'


def _event(**kwargs) -> ExistingEvent:
    """Create an ExistingEvent with defaults."""
    defaults = dict(
        id='e1', name='Existing Gig', date=DATE, start_time='19:00',
        venue_id='v1', artist_ids=['a1'],
    )
    defaults.update(kwargs)
    return ExistingEvent(**defaults)


def _check(events, venue_, artists, start_time, date=DATE):
    detector = ConflictDetector(InMemoryCanonicalStore(events=events))
    return asyncio.run(detector.check_conflicts(venue_, artists, date, start_time))


class TestClock:
    """Tests for HH:MM clock arithmetic."""

    def test_clock_value(self):
        assert clock_value('20:30') == 2030
        assert clock_value('09:05') == 905

    def test_invalid_time_raises(self):
        with pytest.raises(ValueError):
            clock_value('8pm')

    def test_within_window(self):
        assert is_close('19:00', '22:00') is True

    def test_boundary_is_close(self):
        assert is_close('19:00', '23:00') is True

    def test_outside_window(self):
        assert is_close('19:00', '23:31') is False

    def test_missing_start_time_is_never_close(self):
        assert is_close(None, '19:00') is False
        assert is_close('', '19:00') is False


class TestVenueConflicts:
    """Tests for venue proximity conflicts."""

    def test_close_booking_conflicts(self):
        events = [_event(start_time='22:00', artist_ids=['other'])]
        report = _check(events, venue('v1', 'The Crown'), [], '19:00')
        assert len(report.conflicts) == 1
        conflict = report.conflicts[0]
        assert conflict.kind == 'venue'
        assert conflict.subject_name == 'The Crown'
        assert conflict.existing_event_name == 'Existing Gig'
        assert conflict.existing_event_start_time == '22:00'
        assert report.exact_duplicate is False
        assert report.blocks_commit is False

    def test_distant_booking_no_conflict(self):
        events = [_event(start_time='23:31', artist_ids=['other'])]
        report = _check(events, venue('v1', 'The Crown'), [], '19:00')
        assert report.conflicts == []

    def test_missing_start_time_no_proximity_conflict(self):
        events = [_event(start_time='19:00', artist_ids=['other'])]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], None)
        assert report.conflicts == []

    def test_missing_start_time_still_flags_duplicate(self):
        events = [_event()]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], None)
        assert report.exact_duplicate is True
        assert [c.kind for c in report.conflicts] == ['exact_duplicate']

    def test_other_date_ignored(self):
        events = [_event(date='2025-03-02', artist_ids=['other'])]
        report = _check(events, venue('v1', 'The Crown'), [], '19:00')
        assert report.conflicts == []

    def test_non_canonical_venue_skipped(self):
        events = [_event(venue_id='', artist_ids=['other'])]
        report = _check(events, Candidate(name='New Place'), [], '19:00')
        assert report.conflicts == []


class TestArtistConflicts:
    """Tests for artist proximity conflicts."""

    def test_artist_booked_elsewhere(self):
        events = [_event(venue_id='v9', start_time='21:00')]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], '20:00')
        assert [c.kind for c in report.conflicts] == ['artist']
        assert report.conflicts[0].subject_name == 'Dead Pilots'

    def test_each_artist_checked(self):
        events = [
            _event(id='e1', venue_id='v8', artist_ids=['a1']),
            _event(id='e2', venue_id='v9', artist_ids=['a2']),
        ]
        artists = [artist('a1', 'One'), artist('a2', 'Two')]
        report = _check(events, None, artists, '19:30')
        assert sorted(c.subject_name for c in report.conflicts) == ['One', 'Two']

    def test_non_canonical_artist_skipped(self):
        events = [_event(venue_id='v9', artist_ids=['a1'])]
        report = _check(events, None, [Candidate(name='Dead Pilots')], '19:00')
        assert report.conflicts == []


class TestExactDuplicate:
    """Tests for exact duplicate detection."""

    def test_same_venue_artists_date_is_duplicate(self):
        events = [_event(start_time='23:59')]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], '19:00')
        assert report.exact_duplicate is True
        assert report.blocks_commit is True
        assert [c.kind for c in report.conflicts] == ['exact_duplicate']

    def test_partial_lineup_is_not_duplicate(self):
        events = [_event(artist_ids=['a1', 'a2'])]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], '19:00')
        assert report.exact_duplicate is False
        assert sorted(c.kind for c in report.conflicts) == ['artist', 'venue']

    def test_non_canonical_artist_prevents_duplicate(self):
        events = [_event(artist_ids=['a1'])]
        artists = [artist('a1', 'Dead Pilots'), Candidate(name='Support Act')]
        report = _check(events, venue('v1', 'The Crown'), artists, '19:00')
        assert report.exact_duplicate is False

    def test_duplicate_alongside_other_conflicts(self):
        events = [
            _event(id='e1'),
            _event(id='e2', name='Late Show', start_time='21:00', artist_ids=['a5']),
        ]
        report = _check(events, venue('v1', 'The Crown'), [artist('a1', 'Dead Pilots')], '19:00')
        assert report.exact_duplicate is True
        kinds = sorted(c.kind for c in report.conflicts)
        assert kinds == ['exact_duplicate', 'venue']


class TestNothingCanonical:
    """No canonical entities means no conflict checks at all."""

    def test_empty_report(self):
        events = [_event(venue_id='', artist_ids=[])]
        report = _check(events, Candidate(name='New Venue'), [Candidate(name='New Band')], '19:00')
        assert report.conflicts == []
        assert report.exact_duplicate is False
