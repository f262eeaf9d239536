"""
Re-scoring decided matches.

When a new score changes the winner, everything downstream that was fed
by the old result is cleared with an explicit breadth-first worklist,
then the new result is propagated through the normal recording path.
"""
import copy
import logging
from collections import deque
from typing import Dict, List

from .double_elimination import BRACKET_RESET_ID, GRAND_FINAL_ID
from .errors import IllegalTransition
from .links import index_matches, validate_links
from .models import DRAFT, ELIMINATION_BRACKETS, Match, Tournament
from .progression import (
    after_result, apply_score, find_match, has_knockout, validate_scores
)
from .standings import refresh_player_records

logger = logging.getLogger(__name__)


def clear_downstream(matches: List[Match], target: Match) -> List[Match]:
    """
    Clear the target's result and every result that depended on it.

    Walks the winner and loser links breadth-first. Each slot fed by a
    cleared match is emptied; a decided match reached that way is cleared
    in turn, while an undecided one ends the walk. Auto-resolved byes lose
    their bye flag so they can settle again. Removing the grand final's
    result also removes the bracket reset. Returns the remaining matches.
    """
    by_id = index_matches(matches)
    queue = deque([target])
    seen = {target.id}
    cleared = []

    while queue:
        match = queue.popleft()
        for next_id, position in ((match.next_match_id, match.next_match_position),
                                  (match.loser_next_match_id, match.loser_next_match_position)):
            if next_id is None:
                continue
            downstream = by_id[next_id]
            downstream.set_slot(position, None)
            if downstream.is_decided and downstream.id not in seen:
                seen.add(downstream.id)
                queue.append(downstream)
        match.clear_result()
        if match is not target:
            match.is_bye = False
        cleared.append(match.id)

    logger.debug("Cleared %d matches downstream of %s: %s", len(cleared) - 1, target.id, cleared[1:])
    if GRAND_FINAL_ID in cleared:
        return [m for m in matches if m.id != BRACKET_RESET_ID]
    return matches


def rescore_match(tournament: Tournament, match_id: str, score1: int, score2: int) -> Tournament:
    """
    Change the score of a decided match.

    Same winner: only the scores change. New winner: the old result and
    everything fed by it are cleared, the new result is recorded and
    propagated, and the tournament status is recomputed (a completed
    tournament reopens when its final result was cleared).
    """
    validate_scores(score1, score2)
    if tournament.status == DRAFT:
        raise IllegalTransition(f"Tournament {tournament.id} has not started")

    updated = copy.deepcopy(tournament)
    target = find_match(updated.matches, match_id)
    if target.is_bye:
        raise IllegalTransition(f"Match {match_id} is a bye and cannot be scored")
    if not target.is_decided:
        raise IllegalTransition(f"Match {match_id} has no result yet; record it instead")
    if target.bracket not in ELIMINATION_BRACKETS and has_knockout(updated):
        raise IllegalTransition(
            f"Match {match_id} fed the knockout seeding, which has already been built")

    new_winner = target.player1_id if score1 > score2 else target.player2_id
    events: List[Dict] = []
    if new_winner == target.winner_id:
        target.player1_score = score1
        target.player2_score = score2
        target.is_forfeited = False
        refresh_player_records(updated.players, updated.matches)
        logger.info("Match %s re-scored %d-%d, winner unchanged", match_id, score1, score2)
        return updated

    validate_links(updated.matches)
    updated.matches = clear_downstream(updated.matches, target)
    apply_score(updated.matches, target, score1, score2, events)
    after_result(updated, target, events)
    logger.info("Match %s re-scored %d-%d, winner now %s", match_id, score1, score2, new_winner)
    return updated
