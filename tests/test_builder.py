"""
Unit tests for match graph construction and tournament start.
"""
import pytest

from bracket_engine.builder import build, build_knockout, start_tournament
from bracket_engine.errors import ConfigurationError, IllegalTransition
from bracket_engine.models import Player, Tournament
from conftest import make_players


class TestBuild:
    """Tests for the format dispatch."""

    def test_single_elimination(self):
        matches = build(make_players(8), 'single-elimination')
        assert len(matches) == 7
        assert {m.bracket for m in matches} == {'winners'}

    def test_double_elimination(self):
        matches = build(make_players(8), 'double-elimination')
        assert {m.bracket for m in matches} == {'winners', 'losers', 'grand-finals'}

    def test_round_robin(self):
        assert len(build(make_players(6), 'round-robin')) == 15

    def test_swiss_builds_round_one_only(self):
        matches = build(make_players(6), 'swiss')
        assert len(matches) == 3
        assert {m.round for m in matches} == {1}

    def test_group_knockout_builds_groups_only(self):
        matches = build(make_players(8), 'group-knockout', {'groupCount': 2})
        assert len(matches) == 12
        assert {m.bracket for m in matches} == {'group'}

    def test_too_few_players(self):
        with pytest.raises(ConfigurationError):
            build(make_players(1), 'single-elimination')

    def test_incompatible_group_config(self):
        with pytest.raises(ConfigurationError):
            build(make_players(8), 'group-knockout', {'groupCount': 2, 'playersPerGroup': 3})

    def test_duplicate_player_ids(self):
        players = [Player('p1', 'A', 1), Player('p1', 'B', 2)]
        with pytest.raises(ConfigurationError):
            build(players, 'round-robin')

    def test_does_not_touch_players(self):
        players = make_players(8)
        build(players, 'group-knockout')
        assert all(p.group_id is None for p in players)

    def test_build_knockout(self):
        """Knockout entrants are already in seed order."""
        single = build_knockout(['x', 'y', 'z', 'w'], 'single-elimination')
        assert (single[0].player1_id, single[0].player2_id) == ('x', 'w')
        double = build_knockout(['x', 'y', 'z', 'w'], 'double-elimination')
        assert any(m.bracket == 'grand-finals' for m in double)


class TestStartTournament:
    """Tests for the draft to active transition."""

    def draft(self, fmt, count, config=None):
        return Tournament(id='t1', name='Cup', format=fmt, format_config=config or {},
                          players=make_players(count))

    def test_activates(self):
        draft = self.draft('single-elimination', 4)
        started = start_tournament(draft)
        assert started.status == 'active'
        assert len(started.matches) == 3

    def test_input_untouched(self):
        draft = self.draft('single-elimination', 4)
        start_tournament(draft)
        assert draft.status == 'draft'
        assert draft.matches == []

    def test_only_draft_can_start(self):
        started = start_tournament(self.draft('round-robin', 4))
        with pytest.raises(IllegalTransition):
            start_tournament(started)

    def test_config_resolved(self):
        started = start_tournament(self.draft('swiss', 5))
        assert started.format_config['numberOfRounds'] == 3
        assert started.current_swiss_round == 1

    def test_group_ids_assigned(self):
        started = start_tournament(self.draft('group-knockout', 8))
        groups = {p.id: p.group_id for p in started.players}
        assert groups['p1'] == 'A'
        assert groups['p2'] == 'B'
        for match in started.matches:
            assert groups[match.player1_id] == match.group_id

    def test_configuration_error_keeps_draft(self):
        draft = self.draft('single-elimination', 1)
        with pytest.raises(ConfigurationError):
            start_tournament(draft)
        assert draft.status == 'draft'
        assert draft.matches == []
