"""
Tests for double elimination bracket functionality.
"""
import pytest

from bracket_engine.double_elimination import (
    BRACKET_RESET_ID,
    GRAND_FINAL_ID,
    get_losers_round_name,
    get_winners_round_name,
    calculate_losers_bracket_rounds,
    create_bracket_reset,
    generate_double_elimination,
    get_bracket_reset,
    get_grand_final,
    needs_bracket_reset,
    _generate_losers_bracket
)
from bracket_engine.links import validate_links
from bracket_engine.models import Match
from bracket_engine.progression import advance_match
from conftest import make_players


def by_id(matches):
    return {m.id: m for m in matches}


class TestLosersRoundName:
    """Tests for get_losers_round_name."""

    def test_losers_final(self):
        """Last round (round_num == total - 1) is Losers Final."""
        assert get_losers_round_name(3, 4) == "Losers Final"

    def test_losers_semifinal(self):
        """Second to last is Losers Semifinal."""
        assert get_losers_round_name(2, 4) == "Losers Semifinal"

    def test_losers_numbered_round(self):
        """Earlier rounds are numbered."""
        assert get_losers_round_name(0, 4) == "Losers Round 1"
        assert get_losers_round_name(1, 4) == "Losers Round 2"


class TestWinnersRoundName:
    """Tests for get_winners_round_name."""

    def test_winners_final(self):
        assert get_winners_round_name(2) == "Winners Final"

    def test_winners_semifinal(self):
        assert get_winners_round_name(4) == "Winners Semifinal"

    def test_winners_round_of_n(self):
        assert get_winners_round_name(16) == "Winners Round of 16"


class TestLosersBracketStructure:
    """Tests for the losers bracket shape."""

    @pytest.mark.parametrize('size,rounds', [(2, 0), (4, 2), (8, 4), (16, 6)])
    def test_round_count(self, size, rounds):
        """2 * (log2(size) - 1) losers rounds."""
        assert calculate_losers_bracket_rounds(size) == rounds

    def test_eight_player_losers_bracket(self):
        """Minor rounds halve the field, major rounds keep it."""
        matches = _generate_losers_bracket(8)
        counts = {}
        for m in matches:
            counts[m.round] = counts.get(m.round, 0) + 1
        assert counts == {1: 2, 2: 2, 3: 1, 4: 1}

    def test_minor_to_major_keeps_position(self):
        """A minor-round winner meets a drop-down at the same position, slot 2."""
        matches = by_id(_generate_losers_bracket(8))
        assert matches['losers-r1-m2'].next_match_id == 'losers-r2-m2'
        assert matches['losers-r1-m2'].next_match_position == 2

    def test_major_to_minor_merges_pairs(self):
        matches = by_id(_generate_losers_bracket(8))
        assert matches['losers-r2-m1'].next_match_id == 'losers-r3-m1'
        assert matches['losers-r2-m1'].next_match_position == 1
        assert matches['losers-r2-m2'].next_match_id == 'losers-r3-m1'
        assert matches['losers-r2-m2'].next_match_position == 2


class TestDoubleEliminationGraph:
    """Tests for the complete double elimination graph."""

    def test_four_players(self):
        """Winners 3, losers 2, grand final 1; no bracket reset up front."""
        matches = by_id(generate_double_elimination(make_players(4)))
        assert len(matches) == 6
        assert BRACKET_RESET_ID not in matches

        assert matches['winners-r1-m1'].loser_next_match_id == 'losers-r1-m1'
        assert matches['winners-r1-m1'].loser_next_match_position == 1
        assert matches['winners-r1-m2'].loser_next_match_id == 'losers-r1-m1'
        assert matches['winners-r1-m2'].loser_next_match_position == 2
        assert matches['winners-r2-m1'].loser_next_match_id == 'losers-r2-m1'
        assert matches['winners-r2-m1'].loser_next_match_position == 1
        assert matches['losers-r1-m1'].next_match_id == 'losers-r2-m1'
        assert matches['losers-r1-m1'].next_match_position == 2

        assert matches['winners-r2-m1'].next_match_id == GRAND_FINAL_ID
        assert matches['winners-r2-m1'].next_match_position == 1
        assert matches['losers-r2-m1'].next_match_id == GRAND_FINAL_ID
        assert matches['losers-r2-m1'].next_match_position == 2

    def test_eight_players_drop_downs_reversed(self):
        """Later-round drop-downs land in reverse order to avoid immediate rematches."""
        matches = by_id(generate_double_elimination(make_players(8)))
        assert len(matches) == 14
        assert matches['winners-r2-m1'].loser_next_match_id == 'losers-r2-m2'
        assert matches['winners-r2-m2'].loser_next_match_id == 'losers-r2-m1'
        assert matches['winners-r3-m1'].loser_next_match_id == 'losers-r4-m1'

    def test_two_players(self):
        """Without a losers bracket the winners-final loser goes to grand finals."""
        matches = by_id(generate_double_elimination(make_players(2)))
        assert set(matches) == {'winners-r1-m1', GRAND_FINAL_ID}
        final = matches['winners-r1-m1']
        assert final.next_match_id == GRAND_FINAL_ID
        assert final.loser_next_match_id == GRAND_FINAL_ID
        assert final.loser_next_match_position == 2

    def test_byes_have_no_loser_link(self):
        matches = generate_double_elimination(make_players(5))
        for match in matches:
            if match.is_bye:
                assert match.loser_next_match_id is None

    def test_five_players_prunes_unreachable(self):
        """A losers match fed only by byes is never built."""
        matches = by_id(generate_double_elimination(make_players(5)))
        assert 'losers-r1-m2' not in matches
        assert len(matches) == 13

    def test_three_players_losers_bye(self):
        """The only first-round loser gets a losers-bracket bye."""
        matches = generate_double_elimination(make_players(3))
        updated, events = advance_match(matches, 'winners-r1-m2', 3, 1)
        lookup = by_id(updated)
        assert lookup['losers-r1-m1'].is_bye
        assert lookup['losers-r1-m1'].winner_id == 'p3'
        assert lookup['losers-r2-m1'].player2_id == 'p3'
        assert {'type': 'bye_resolved', 'matchId': 'losers-r1-m1', 'winnerId': 'p3'} in events

    @pytest.mark.parametrize('count', range(2, 17))
    def test_graph_is_valid(self, count):
        """Every link resolves and the graph is acyclic."""
        matches = generate_double_elimination(make_players(count))
        validate_links(matches)
        assert len([m for m in matches if m.bracket == 'grand-finals']) == 1


class TestBracketReset:
    """Tests for the conditional second grand final."""

    def grand_final(self, winner):
        return Match(GRAND_FINAL_ID, 'grand-finals', 1, 1, player1_id='w', player2_id='l',
                     player1_score=1 if winner == 'l' else 3, player2_score=3 if winner == 'l' else 1,
                     winner_id=winner)

    def test_needed_when_losers_champion_wins(self):
        assert needs_bracket_reset(self.grand_final('l'))

    def test_not_needed_when_winners_champion_wins(self):
        assert not needs_bracket_reset(self.grand_final('w'))

    def test_not_needed_before_result(self):
        assert not needs_bracket_reset(Match(GRAND_FINAL_ID, 'grand-finals', 1, 1,
                                             player1_id='w', player2_id='l'))

    def test_create_bracket_reset(self):
        """The reset keeps both finalists in their slots."""
        reset = create_bracket_reset(self.grand_final('l'))
        assert reset.id == BRACKET_RESET_ID
        assert reset.round == 2
        assert (reset.player1_id, reset.player2_id) == ('w', 'l')
        assert reset.winner_id is None
        assert reset.next_match_id is None

    def test_lookup(self):
        gf = self.grand_final('l')
        reset = create_bracket_reset(gf)
        assert get_grand_final([reset, gf]) is gf
        assert get_bracket_reset([reset, gf]) is reset
        assert get_bracket_reset([gf]) is None
