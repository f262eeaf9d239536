"""
Match graph construction and the draft -> active transition.
"""
import copy
import logging
from typing import Dict, List, Optional

from .config import resolve_format_config
from .double_elimination import generate_double_elimination, generate_double_elimination_from_ids
from .elimination import generate_single_elimination, generate_single_elimination_from_ids
from .errors import ConfigurationError, IllegalTransition
from .group_stage import assign_groups, generate_group_matches
from .models import (
    ACTIVE, DRAFT, DOUBLE_ELIMINATION, GROUP_KNOCKOUT, ROUND_ROBIN_FORMAT, SINGLE_ELIMINATION,
    SWISS_FORMAT, Match, Player, Tournament
)
from .round_robin import generate_round_robin
from .standings import refresh_player_records
from .swiss import generate_first_round

logger = logging.getLogger(__name__)


def build(players: List[Player], fmt: str, config: Optional[Dict] = None) -> List[Match]:
    """
    Build the initial match graph for a format.

    Raises ConfigurationError before anything is built when the player
    count or configuration cannot produce a valid graph. Swiss builds
    only round 1; group-knockout builds only the group stage.
    """
    resolved = resolve_format_config(fmt, config, len(players))
    _check_unique_ids(players)

    if fmt == SINGLE_ELIMINATION:
        return generate_single_elimination(players)
    elif fmt == DOUBLE_ELIMINATION:
        return generate_double_elimination(players)
    elif fmt == ROUND_ROBIN_FORMAT:
        return generate_round_robin(players)
    elif fmt == SWISS_FORMAT:
        return generate_first_round(players)
    else:
        assignment = assign_groups(players, resolved['groupCount'])
        return generate_group_matches(players, assignment)


def build_knockout(player_ids: List[str], knockout_format: str) -> List[Match]:
    """Elimination bracket for players already listed in seed order."""
    if knockout_format == DOUBLE_ELIMINATION:
        return generate_double_elimination_from_ids(player_ids)
    return generate_single_elimination_from_ids(player_ids)


def start_tournament(tournament: Tournament) -> Tournament:
    """
    Move a draft tournament to active and build its matches.

    Returns an updated copy; the input is left untouched.
    """
    if tournament.status != DRAFT:
        raise IllegalTransition(
            f"Tournament {tournament.id} is {tournament.status}; only a draft can be started")

    updated = copy.deepcopy(tournament)
    resolved = resolve_format_config(updated.format, updated.format_config, len(updated.players))
    updated.matches = build(updated.players, updated.format, resolved)
    updated.format_config = resolved

    if updated.format == GROUP_KNOCKOUT:
        assignment = assign_groups(updated.players, resolved['groupCount'])
        for player in updated.players:
            player.group_id = assignment[player.id]
    if updated.format == SWISS_FORMAT:
        updated.current_swiss_round = 1

    refresh_player_records(updated.players, updated.matches)
    updated.status = ACTIVE
    logger.info("Started tournament %s (%s, %d players, %d matches)",
                updated.id, updated.format, len(updated.players), len(updated.matches))
    return updated


def _check_unique_ids(players: List[Player]):
    seen = set()
    for player in players:
        if player.id in seen:
            raise ConfigurationError(f"Duplicate player id: {player.id}")
        seen.add(player.id)
