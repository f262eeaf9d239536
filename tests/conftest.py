"""
Shared pytest fixtures for tournament engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips sweeps over many player counts)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_engine.models import Player, Tournament
from bracket_engine.builder import start_tournament
from bracket_engine.progression import record_result


def make_players(count):
    """Players p1..pN with seeds 1..N."""
    return [Player(id=f"p{i}", name=f"Player {i}", seed=i) for i in range(1, count + 1)]


def make_tournament(fmt, count, config=None):
    """A started tournament with `count` seeded players."""
    draft = Tournament(id='t1', name='Test Cup', format=fmt, format_config=config or {},
                       players=make_players(count))
    return start_tournament(draft)


def playable(matches):
    """Matches waiting for a result."""
    return [m for m in matches
            if not m.is_bye and m.player1_id and m.player2_id and m.winner_id is None]


def better_seed(tournament, match):
    seeds = {p.id: p.seed for p in tournament.players}
    return min(match.player1_id, match.player2_id, key=lambda pid: seeds[pid])


def play_all(tournament, pick_winner=better_seed):
    """
    Score every playable match, repeatedly, until none is left.
    The winner is chosen by pick_winner (better seed by default), 3-1.
    """
    events = []
    while True:
        pending = playable(tournament.matches)
        if not pending:
            return tournament, events
        match = pending[0]
        winner = pick_winner(tournament, match)
        score1, score2 = (3, 1) if winner == match.player1_id else (1, 3)
        tournament, new_events = record_result(tournament, match.id, score1, score2)
        events.extend(new_events)


def snapshot(matches):
    """Comparable view of the player/score/winner fields of every match."""
    return {
        m.id: (m.player1_id, m.player2_id, m.player1_score, m.player2_score, m.winner_id, m.is_bye)
        for m in matches
    }


@pytest.fixture
def four_players():
    return make_players(4)


@pytest.fixture
def five_players():
    return make_players(5)


@pytest.fixture
def eight_players():
    return make_players(8)


@pytest.fixture
def single_elim_four():
    """Started single elimination tournament with 4 players."""
    return make_tournament('single-elimination', 4)


@pytest.fixture
def double_elim_four():
    """Started double elimination tournament with 4 players."""
    return make_tournament('double-elimination', 4)
