"""
Unit tests for Swiss pairing.
"""
import logging

from bracket_engine.swiss import (
    generate_first_round,
    get_qualified_players,
    next_round,
    played_pairs,
    select_knockout_qualifiers,
    _pair_with_fallback,
    _pair_without_repeats,
)
from conftest import make_players


def pairs_of(matches):
    return [(m.player1_id, m.player2_id) for m in matches if not m.is_bye]


def decide(matches, winners, scores=None):
    """Set winners on the real matches of a round, in order."""
    real = [m for m in matches if not m.is_bye]
    for i, (match, winner) in enumerate(zip(real, winners)):
        high, low = scores[i] if scores else (3, 1)
        match.winner_id = winner
        if winner == match.player1_id:
            match.player1_score, match.player2_score = high, low
        else:
            match.player1_score, match.player2_score = low, high
    return matches


class TestFirstRound:
    """Tests for seed-order round 1."""

    def test_five_players(self):
        """Two matches and a bye for the lowest seed."""
        matches = generate_first_round(make_players(5))
        assert len(matches) == 3
        assert pairs_of(matches) == [('p1', 'p4'), ('p2', 'p3')]
        bye = matches[-1]
        assert bye.is_bye
        assert bye.player1_id == 'p5'
        assert bye.player2_id is None
        assert bye.winner_id == 'p5'

    def test_six_players(self):
        """1 v N, 2 v N-1, ..."""
        matches = generate_first_round(make_players(6))
        assert pairs_of(matches) == [('p1', 'p6'), ('p2', 'p5'), ('p3', 'p4')]
        assert not any(m.is_bye for m in matches)

    def test_ids_and_tags(self):
        matches = generate_first_round(make_players(4))
        assert [m.id for m in matches] == ['swiss-r1-m1', 'swiss-r1-m2']
        assert all(m.bracket == 'swiss' and m.round == 1 for m in matches)
        assert all(m.next_match_id is None for m in matches)


class TestPairing:
    """Tests for the repeat-avoiding pairing search."""

    def test_adjacent_pairs_when_fresh(self):
        assert _pair_without_repeats(['a', 'b', 'c', 'd'], set()) == [('a', 'b'), ('c', 'd')]

    def test_skips_repeat(self):
        """The nearest opponent not yet met is taken."""
        played = {frozenset(('a', 'b'))}
        assert _pair_without_repeats(['a', 'b', 'c', 'd'], played) == [('a', 'c'), ('b', 'd')]

    def test_backtracks(self):
        """a-c would leave b-d, a repeat, so a takes d instead."""
        played = {frozenset(('a', 'b')), frozenset(('b', 'd'))}
        assert _pair_without_repeats(['a', 'b', 'c', 'd'], played) == [('a', 'd'), ('b', 'c')]

    def test_impossible(self):
        played = {frozenset(('a', 'b'))}
        assert _pair_without_repeats(['a', 'b'], played) is None

    def test_fallback_allows_rematch(self):
        played = {frozenset(('a', 'b'))}
        assert _pair_with_fallback(['a', 'b'], played) == [('a', 'b')]

    def test_fallback_prefers_fresh_opponent(self):
        played = {frozenset(('a', 'b')), frozenset(('c', 'd'))}
        assert _pair_with_fallback(['a', 'b', 'c', 'd'], played) == [('a', 'c'), ('b', 'd')]

    def test_played_pairs_ignores_byes(self):
        matches = generate_first_round(make_players(3))
        assert played_pairs(matches) == {frozenset(('p1', 'p2'))}


class TestNextRound:
    """Tests for generating later rounds."""

    def test_pairs_by_standings(self):
        """Winners meet winners, losers meet losers."""
        players = make_players(4)
        history = decide(generate_first_round(players), ['p1', 'p2'], [(3, 0), (3, 1)])
        round2 = next_round(players, history)
        assert [m.id for m in round2] == ['swiss-r2-m1', 'swiss-r2-m2']
        assert pairs_of(round2) == [('p1', 'p2'), ('p3', 'p4')]

    def test_bye_rotates(self):
        """The lowest-ranked player without a bye gets the next one."""
        players = make_players(5)
        history = decide(generate_first_round(players), ['p1', 'p2'], [(3, 0), (3, 0)])
        round2 = next_round(players, history)
        byes = [m for m in round2 if m.is_bye]
        assert len(byes) == 1
        assert byes[0].winner_id == 'p4'
        assert all('p4' not in pair for pair in pairs_of(round2))

    def test_no_repeats_over_several_rounds(self):
        """Eight players, four rounds, never a repeat pairing."""
        players = make_players(8)
        history = generate_first_round(players)
        seeds = {p.id: p.seed for p in players}
        for _ in range(3):
            current = max(m.round for m in history)
            round_matches = [m for m in history if m.round == current]
            decide(round_matches, [min(m.player1_id, m.player2_id, key=seeds.get)
                                   for m in round_matches if not m.is_bye])
            history = history + next_round(players, history)
        pairs = [frozenset(p) for p in pairs_of(history)]
        assert len(pairs) == 16
        assert len(set(pairs)) == 16

    def test_each_player_once_per_round(self):
        players = make_players(7)
        history = decide(generate_first_round(players), ['p1', 'p2', 'p3'])
        round2 = next_round(players, history)
        seen = [pid for m in round2 for pid in (m.player1_id, m.player2_id) if pid]
        assert sorted(seen) == sorted(p.id for p in players)

    def test_rematch_fallback_logged(self, caplog):
        """Two players can only meet again; that is allowed with a warning."""
        players = make_players(2)
        history = decide(generate_first_round(players), ['p1'])
        with caplog.at_level(logging.WARNING, logger='bracket_engine.swiss'):
            round2 = next_round(players, history)
        assert pairs_of(round2) == [('p1', 'p2')]
        assert 'rematches' in caplog.text


class TestQualification:
    """Tests for Swiss qualification helpers."""

    def history(self):
        players = make_players(4)
        matches = decide(generate_first_round(players), ['p1', 'p3'], [(3, 0), (3, 2)])
        round2 = decide(next_round(players, matches), ['p1', 'p2'])
        return players, matches + round2

    def test_qualified_players(self):
        """p1 is 2-0; nobody else has two wins."""
        players, matches = self.history()
        assert get_qualified_players(matches, players, 2) == ['p1']

    def test_knockout_qualifiers(self):
        """The top of the Swiss standings, best first."""
        players, matches = self.history()
        qualifiers = select_knockout_qualifiers(matches, players, 2)
        assert qualifiers[0] == 'p1'
        assert len(qualifiers) == 2

    def test_bye_counts_towards_qualification(self):
        players = make_players(3)
        matches = decide(generate_first_round(players), ['p1'])
        assert get_qualified_players(matches, players, 1) == ['p1', 'p3']
