"""Tests for gigrecon.decision module."""

import pytest

from gigrecon import Candidate, MatchResult
from gigrecon.decision import MATCH_THRESHOLD, decide, shares_identifier
from fakes import artist, place, venue


def _fixed(score: float):
    """Scorer returning the same score for every pair."""
    return lambda a, b: score


class TestThreshold:
    """Tests for the bind threshold."""

    def test_threshold_constant(self):
        assert MATCH_THRESHOLD == 0.7

    def test_exact_name_binds(self):
        result = decide('Dead Pilots', [artist('a1', 'Dead Pilots')])
        assert result.is_new is False
        assert result.candidate_id == 'a1'
        assert result.candidate_name == 'Dead Pilots'
        assert result.confidence == 1.0

    def test_score_exactly_at_threshold_is_new(self):
        result = decide('Crown', [venue('v1', 'The Crown')], scorer=_fixed(0.70))
        assert result.is_new is True
        assert result.candidate_id is None
        assert result.confidence == 0.0
        assert result.candidate_name == 'Crown'

    def test_score_just_above_threshold_binds(self):
        result = decide('Crown', [venue('v1', 'The Crown')], scorer=_fixed(0.71))
        assert result.is_new is False
        assert result.confidence == 0.71

    def test_binds_to_canonical_name(self):
        result = decide('the crown inn', [venue('v1', 'The Crown Inn')])
        assert result.candidate_name == 'The Crown Inn'

    def test_no_candidates_is_new(self):
        result = decide('Nowhere Hall', [])
        assert result.is_new is True
        assert result.confidence == 0.0
        assert result.candidate_name == 'Nowhere Hall'
        assert result.candidate_count == 0

    def test_low_score_is_new_with_candidate_count(self):
        result = decide('Crown', [venue('v1', 'Old Bell Tavern'), venue('v2', 'Corporation')])
        assert result.is_new is True
        assert result.candidate_count == 2


class TestBestCandidate:
    """Tests for picking the best candidate."""

    def test_highest_score_wins(self):
        candidates = [venue('v1', 'The Crown Inn'), venue('v2', 'Crown Inn')]
        result = decide('Crown Inn', candidates)
        assert result.candidate_id == 'v2'

    def test_tie_first_seen_wins(self):
        candidates = [venue('v1', 'Crown'), venue('v2', 'Crown')]
        result = decide('Crown', candidates)
        assert result.candidate_id == 'v1'

    def test_tie_with_fixed_scorer(self):
        candidates = [artist('a2', 'B'), artist('a1', 'A')]
        result = decide('X', candidates, scorer=_fixed(0.9))
        assert result.candidate_id == 'a2'


class TestIdentifierOverride:
    """Tests for exact side-channel identifier matches."""

    def test_shared_url_forces_full_confidence(self):
        candidate = artist('a2', 'Sally Jones Band',
                           identifiers={'facebook_url': 'https://facebook.com/sj'})
        result = decide('SJB', [candidate], {'facebook_url': 'https://facebook.com/sj'})
        assert result.is_new is False
        assert result.candidate_id == 'a2'
        assert result.confidence == 1.0

    def test_different_url_does_not_override(self):
        candidate = artist('a2', 'Sally Jones Band',
                           identifiers={'facebook_url': 'https://facebook.com/sj'})
        result = decide('SJB', [candidate], {'facebook_url': 'https://facebook.com/other'})
        assert result.is_new is True

    def test_identifier_ties_with_exact_name(self):
        by_name = venue('v1', 'The Crown')
        by_url = venue('v2', 'Crown & Anchor', identifiers={'website_url': 'https://crown.example'})
        result = decide('The Crown', [by_name, by_url], {'website_url': 'https://crown.example'})
        # Both score 1.0; first seen keeps the win
        assert result.candidate_id == 'v1'
        result = decide('The Crown', [by_url, by_name], {'website_url': 'https://crown.example'})
        assert result.candidate_id == 'v2'

    def test_empty_identifier_never_matches(self):
        candidate = venue('v1', 'X', identifiers={'website_url': ''})
        assert shares_identifier(candidate, {'website_url': ''}) is False

    def test_place_id_matches(self):
        candidate = venue('v3', 'Corporation', place_id='ChIJ1')
        assert shares_identifier(candidate, {'place_id': 'ChIJ1'}) is True


class TestExternalPlace:
    """Tests for winning candidates without a canonical id."""

    def test_place_winner_stays_new(self):
        result = decide('Nowhere Hall', [place('Nowhere Hall', 'p1')])
        assert result.is_new is True
        assert result.candidate_id is None
        assert result.candidate_name == 'Nowhere Hall'
        assert result.confidence == 0.0
        assert result.place is not None
        assert result.place.place_id == 'p1'
        assert result.place_score == 1.0

    def test_place_winner_keeps_raw_name(self):
        result = decide('The Nowhere Hall', [place('Nowhere Hall', 'p1')])
        assert result.candidate_name == 'The Nowhere Hall'
        assert result.confidence == 0.0
        assert result.place.name == 'Nowhere Hall'
        assert 0.7 < result.place_score < 1.0

    def test_place_below_threshold_not_attached(self):
        result = decide('Nowhere Hall', [place('Somewhere Else Entirely', 'p1')])
        assert result.is_new is True
        assert result.place is None
        assert result.confidence == 0.0


class TestMatchResultInvariant:
    """is_new must mirror the absence of a candidate id."""

    def test_new_with_id_rejected(self):
        with pytest.raises(ValueError):
            MatchResult(candidate_id='v1', candidate_name='X', confidence=0.0, is_new=True)

    def test_bound_without_id_rejected(self):
        with pytest.raises(ValueError):
            MatchResult(candidate_id=None, candidate_name='X', confidence=0.9, is_new=False)

    def test_candidate_without_id_not_canonical(self):
        assert Candidate(name='X').is_canonical is False
