"""
Progression engine: recording results, advancing players along the
match graph, stage transitions and completion detection.

Every public operation works on a deep copy and returns it, so a raised
EngineError leaves the caller's records unchanged.
"""
import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .builder import build_knockout
from .double_elimination import (
    GRAND_FINAL_ID, create_bracket_reset, get_bracket_reset, get_grand_final, needs_bracket_reset
)
from .errors import IllegalTransition, InvalidScore, UnknownMatch
from .group_stage import seed_knockout_from_groups
from .links import find_terminal, index_matches, propagate
from .models import (
    ACTIVE, COMPLETED, DRAFT, ELIMINATION_BRACKETS, GROUP, GROUP_KNOCKOUT,
    ROUND_ROBIN_FORMAT, SINGLE_ELIMINATION, DOUBLE_ELIMINATION, SWISS, SWISS_FORMAT, WINNERS,
    Match, Tournament, _is_int
)
from .standings import (
    calculate_standings, calculate_swiss_standings, get_current_swiss_round,
    is_group_stage_complete, is_round_complete, refresh_player_records
)
from .swiss import get_qualified_players, next_round, select_knockout_qualifiers

logger = logging.getLogger(__name__)


def validate_scores(score1, score2):
    """Raise InvalidScore unless both scores are distinct non-negative integers."""
    for score in (score1, score2):
        if not _is_int(score) or score < 0:
            raise InvalidScore(f"Scores must be non-negative integers, got {score1!r} and {score2!r}")
    if score1 == score2:
        raise InvalidScore(f"Scores cannot be equal ({score1}-{score2}); draws are not recorded")


def find_match(matches: List[Match], match_id: str) -> Match:
    for match in matches:
        if match.id == match_id:
            return match
    raise UnknownMatch(match_id)


def check_playable(match: Match):
    """Raise IllegalTransition unless the match is waiting for a result."""
    if match.is_bye:
        raise IllegalTransition(f"Match {match.id} is a bye and cannot be scored")
    if match.player1_id is None or match.player2_id is None:
        raise IllegalTransition(f"Match {match.id} does not have both players yet")
    if match.is_decided:
        raise IllegalTransition(f"Match {match.id} is already decided; re-score it instead")


def decide(matches: List[Match], match: Match, winner_id: str, events: List[Dict]):
    """Set the winner in place and push winner and loser along the links."""
    match.winner_id = winner_id
    events.append({
        'type': 'match_completed',
        'matchId': match.id,
        'winnerId': winner_id,
        'loserId': match.loser_id,
        'player1Score': match.player1_score,
        'player2Score': match.player2_score,
    })
    logger.debug("Match %s won by %s", match.id, winner_id)
    propagate(matches, index_matches(matches), match, events)


def apply_score(matches: List[Match], match: Match, score1: int, score2: int, events: List[Dict]):
    match.player1_score = score1
    match.player2_score = score2
    match.is_forfeited = False
    winner_id = match.player1_id if score1 > score2 else match.player2_id
    decide(matches, match, winner_id, events)


def advance_match(matches: List[Match], match_id: str, score1: int, score2: int) -> Tuple[List[Match], List[Dict]]:
    """
    Record a score on a copy of the match list and propagate it.

    Returns (matches, events). Raises UnknownMatch, IllegalTransition or
    InvalidScore before anything changes.
    """
    validate_scores(score1, score2)
    updated = copy.deepcopy(matches)
    match = find_match(updated, match_id)
    check_playable(match)
    events = []
    apply_score(updated, match, score1, score2, events)
    return updated, events


def _require_active(tournament: Tournament):
    if tournament.status == DRAFT:
        raise IllegalTransition(f"Tournament {tournament.id} has not started")
    if tournament.status == COMPLETED:
        raise IllegalTransition(f"Tournament {tournament.id} is already completed")


def record_result(tournament: Tournament, match_id: str, score1: int, score2: int) -> Tuple[Tournament, List[Dict]]:
    """
    Record a score and run everything that follows from it: propagation,
    the bracket reset, round-end and qualification checks, completion.
    """
    validate_scores(score1, score2)
    _require_active(tournament)
    updated = copy.deepcopy(tournament)
    match = find_match(updated.matches, match_id)
    check_playable(match)

    events = []
    apply_score(updated.matches, match, score1, score2, events)
    after_result(updated, match, events)
    return updated, events


def force_winner(tournament: Tournament, match_id: str, winner_id: str,
                 is_forfeited: bool = False) -> Tuple[Tournament, List[Dict]]:
    """Decide a match without scores, e.g. by forfeit or an organiser's ruling."""
    _require_active(tournament)
    updated = copy.deepcopy(tournament)
    match = find_match(updated.matches, match_id)
    check_playable(match)
    if winner_id not in (match.player1_id, match.player2_id):
        raise IllegalTransition(f"{winner_id} is not playing in match {match_id}")

    events = []
    match.player1_score = None
    match.player2_score = None
    match.is_forfeited = is_forfeited
    decide(updated.matches, match, winner_id, events)
    after_result(updated, match, events)
    return updated, events


def override_players(tournament: Tournament, match_id: str,
                     player1_id: Optional[str], player2_id: Optional[str]) -> Tournament:
    """Reassign both slots of an undecided match; None leaves a slot TBD."""
    if tournament.status == COMPLETED:
        raise IllegalTransition(f"Tournament {tournament.id} is already completed")
    updated = copy.deepcopy(tournament)
    match = find_match(updated.matches, match_id)
    if match.is_bye:
        raise IllegalTransition(f"Match {match_id} is a bye")
    if match.is_decided:
        raise IllegalTransition(f"Match {match_id} is already decided; re-score it instead")
    for player_id in (player1_id, player2_id):
        if player_id is not None and updated.get_player(player_id) is None:
            raise IllegalTransition(f"Unknown player {player_id}")
    if player1_id is not None and player1_id == player2_id:
        raise IllegalTransition("A player cannot occupy both slots of a match")

    match.player1_id = player1_id
    match.player2_id = player2_id
    logger.info("Players of match %s set to %s vs %s", match_id, player1_id, player2_id)
    return updated


def after_result(tournament: Tournament, match: Match, events: List[Dict]):
    """Follow-up checks once a match has been decided, applied in place."""
    config = tournament.format_config
    if (match.id == GRAND_FINAL_ID and config.get('grandFinalsReset', True)
            and needs_bracket_reset(match) and get_bracket_reset(tournament.matches) is None):
        reset = create_bracket_reset(match)
        tournament.matches.append(reset)
        events.append({'type': 'bracket_reset_created', 'matchId': reset.id})
        logger.info("Tournament %s: bracket reset created", tournament.id)

    if match.bracket not in ELIMINATION_BRACKETS:
        scope = [m for m in tournament.matches if m.bracket == match.bracket]
        if is_round_complete(scope, match.round):
            events.append({'type': 'round_complete', 'bracket': match.bracket, 'round': match.round})

    if match.bracket == SWISS:
        update_swiss_progress(tournament, events)

    refresh_player_records(tournament.players, tournament.matches)
    update_status(tournament, events)


def has_knockout(tournament: Tournament) -> bool:
    return any(m.bracket in ELIMINATION_BRACKETS for m in tournament.matches)


def is_swiss_stage_over(tournament: Tournament) -> bool:
    """
    True when the latest Swiss round is complete and either the round cap
    is reached or somebody reached winsToQualify.
    """
    swiss_matches = [m for m in tournament.matches if m.bracket == SWISS]
    current = get_current_swiss_round(swiss_matches)
    if current == 0 or not is_round_complete(swiss_matches, current):
        return False
    config = tournament.format_config
    rounds = config.get('numberOfRounds')
    if rounds is not None and current >= rounds:
        return True
    wins_to_qualify = config.get('winsToQualify')
    if wins_to_qualify is not None:
        return bool(get_qualified_players(swiss_matches, tournament.players, wins_to_qualify))
    return False


def update_swiss_progress(tournament: Tournament, events: List[Dict]):
    if has_knockout(tournament):
        return
    over = is_swiss_stage_over(tournament)
    if over and not tournament.swiss_qualification_complete:
        events.append({'type': 'swiss_qualification_complete',
                       'round': get_current_swiss_round(tournament.matches)})
        logger.info("Tournament %s: Swiss stage finished", tournament.id)
    tournament.swiss_qualification_complete = over


def _knockout_complete(tournament: Tournament) -> bool:
    matches = tournament.matches
    grand_final = get_grand_final(matches)
    if grand_final is None:
        terminal = find_terminal(matches, WINNERS)
        return terminal is not None and terminal.is_decided
    if not grand_final.is_decided:
        return False
    reset = get_bracket_reset(matches)
    if reset is not None:
        return reset.is_decided
    return not (tournament.format_config.get('grandFinalsReset', True) and needs_bracket_reset(grand_final))


def is_tournament_complete(tournament: Tournament) -> bool:
    fmt = tournament.format
    if fmt in (SINGLE_ELIMINATION, DOUBLE_ELIMINATION):
        return _knockout_complete(tournament)
    if fmt == ROUND_ROBIN_FORMAT:
        return bool(tournament.matches) and all(m.is_decided for m in tournament.matches)
    if fmt == GROUP_KNOCKOUT:
        return has_knockout(tournament) and _knockout_complete(tournament)
    # Swiss, optionally followed by a knockout
    if has_knockout(tournament):
        return _knockout_complete(tournament)
    if tournament.format_config.get('qualifyingPlayers') is not None:
        return False
    return is_swiss_stage_over(tournament)


def update_status(tournament: Tournament, events: List[Dict]):
    """Move between active and completed to match the current graph."""
    complete = is_tournament_complete(tournament)
    if complete and tournament.status != COMPLETED:
        tournament.status = COMPLETED
        tournament.completed_at = datetime.now()
        champion = get_champion(tournament)
        events.append({'type': 'tournament_completed', 'championId': champion})
        logger.info("Tournament %s completed, champion %s", tournament.id, champion)
    elif not complete and tournament.status == COMPLETED:
        tournament.status = ACTIVE
        tournament.completed_at = None
        logger.info("Tournament %s reopened", tournament.id)


def get_champion(tournament: Tournament) -> Optional[str]:
    """The tournament winner, or None while it is undecided."""
    if not is_tournament_complete(tournament):
        return None
    if has_knockout(tournament):
        reset = get_bracket_reset(tournament.matches)
        if reset is not None:
            return reset.winner_id
        grand_final = get_grand_final(tournament.matches)
        if grand_final is not None:
            return grand_final.winner_id
        return find_terminal(tournament.matches, WINNERS).winner_id
    if tournament.format == SWISS_FORMAT:
        standings = calculate_swiss_standings(tournament.matches, tournament.players)
    else:
        standings = calculate_standings(tournament.matches, tournament.players)
    return standings[0]['player_id'] if standings else None


def advance_swiss_round(tournament: Tournament) -> Tournament:
    """Append the next Swiss round once the current one is complete."""
    _require_active(tournament)
    if tournament.format != SWISS_FORMAT:
        raise IllegalTransition(f"Tournament {tournament.id} is not a Swiss tournament")
    if tournament.swiss_qualification_complete or has_knockout(tournament):
        raise IllegalTransition("The Swiss stage is already finished")
    current = get_current_swiss_round(tournament.matches)
    if not is_round_complete(tournament.matches, current, SWISS):
        raise IllegalTransition(f"Swiss round {current} is not complete")
    rounds = tournament.format_config.get('numberOfRounds')
    if rounds is not None and current >= rounds:
        raise IllegalTransition(f"All {rounds} Swiss rounds have been played")

    updated = copy.deepcopy(tournament)
    updated.matches.extend(next_round(updated.players, updated.matches))
    updated.current_swiss_round = current + 1
    refresh_player_records(updated.players, updated.matches)
    return updated


def advance_to_knockout(tournament: Tournament) -> Tournament:
    """Close the group stage and seed the knockout bracket from it."""
    _require_active(tournament)
    if tournament.format != GROUP_KNOCKOUT:
        raise IllegalTransition(f"Tournament {tournament.id} has no group stage")
    if tournament.group_stage_complete or has_knockout(tournament):
        raise IllegalTransition("The knockout stage has already been built")
    group_matches = [m for m in tournament.matches if m.bracket == GROUP]
    if not is_group_stage_complete(group_matches):
        raise IllegalTransition("The group stage is not complete")

    updated = copy.deepcopy(tournament)
    config = updated.format_config
    seeded = seed_knockout_from_groups(group_matches, updated.players, config.get('advancePerGroup', 2))
    knockout = build_knockout(seeded, config.get('knockoutFormat', SINGLE_ELIMINATION))
    updated.matches.extend(knockout)
    updated.group_stage_complete = True
    logger.info("Tournament %s: knockout built for %d players", updated.id, len(seeded))
    return updated


def advance_swiss_to_knockout(tournament: Tournament) -> Tournament:
    """Seed the top qualifyingPlayers of the Swiss standings into a knockout."""
    _require_active(tournament)
    if tournament.format != SWISS_FORMAT:
        raise IllegalTransition(f"Tournament {tournament.id} is not a Swiss tournament")
    qualifying = tournament.format_config.get('qualifyingPlayers')
    if qualifying is None:
        raise IllegalTransition("No qualifyingPlayers configured; the Swiss stage decides the winner")
    if has_knockout(tournament):
        raise IllegalTransition("The knockout stage has already been built")
    if not tournament.swiss_qualification_complete:
        raise IllegalTransition("The Swiss stage is not finished")

    updated = copy.deepcopy(tournament)
    swiss_matches = [m for m in updated.matches if m.bracket == SWISS]
    seeded = select_knockout_qualifiers(swiss_matches, updated.players, qualifying)
    knockout = build_knockout(seeded, updated.format_config.get('knockoutFormat', SINGLE_ELIMINATION))
    updated.matches.extend(knockout)
    logger.info("Tournament %s: knockout built for %d Swiss qualifiers", updated.id, len(seeded))
    return updated


def advance_stage(tournament: Tournament) -> Tournament:
    """Group or Swiss stage into knockout, whichever the format has."""
    if tournament.format == GROUP_KNOCKOUT:
        return advance_to_knockout(tournament)
    if tournament.format == SWISS_FORMAT:
        return advance_swiss_to_knockout(tournament)
    raise IllegalTransition(f"Format {tournament.format} has no knockout stage to advance to")
