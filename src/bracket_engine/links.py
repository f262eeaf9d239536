"""
Helpers for the forward-link match graph.

Matches point at the match their winner (and, in double elimination,
their loser) advances to by id. Everything here works on a flat list of
matches plus an id index.
"""
import logging
from collections import deque
from typing import Dict, List, Optional, Tuple

from .errors import InconsistentGraph
from .models import Match

logger = logging.getLogger(__name__)


def index_matches(matches: List[Match]) -> Dict[str, Match]:
    return {m.id: m for m in matches}


def get_feeders(matches: List[Match], target_id: str, position: int) -> List[Tuple[Match, str]]:
    """Return (match, 'winner'|'loser') pairs that feed a slot of target_id."""
    feeders = []
    for m in matches:
        if m.next_match_id == target_id and m.next_match_position == position:
            feeders.append((m, 'winner'))
        if m.loser_next_match_id == target_id and m.loser_next_match_position == position:
            feeders.append((m, 'loser'))
    return feeders


def slot_is_dead(matches: List[Match], target: Match, position: int) -> bool:
    """
    True when an empty slot can never be filled: nothing feeds it, or it
    is only fed by the loser of a bye (a bye has no loser).
    """
    if target.get_slot(position) is not None:
        return False
    for feeder, kind in get_feeders(matches, target.id, position):
        if kind == 'winner' or not feeder.is_bye:
            return False
    return True


def place_player(matches: List[Match], by_id: Dict[str, Match], target_id: str, position: int,
                 player_id: str, kind: str, source: Match, events: List[Dict]):
    """Write a player into a slot of the target match and settle it."""
    target = by_id.get(target_id)
    if target is None:
        logger.error("Match %s links to missing match %s", source.id, target_id)
        raise InconsistentGraph(f"Match {source.id} links to missing match {target_id}")
    target.set_slot(position, player_id)
    events.append({
        'type': 'player_advanced' if kind == 'winner' else 'player_dropped',
        'matchId': target.id,
        'fromMatchId': source.id,
        'position': position,
        'playerId': player_id,
    })
    logger.debug("%s %s -> %s slot %d", kind, player_id, target.id, position)
    settle(matches, by_id, target, events)


def settle(matches: List[Match], by_id: Dict[str, Match], match: Match, events: List[Dict]):
    """Auto-resolve a match as a bye when its only empty slot is dead."""
    if match.is_decided:
        return
    filled = [p for p in (1, 2) if match.get_slot(p) is not None]
    if len(filled) != 1:
        return
    empty = 2 if filled[0] == 1 else 1
    if not slot_is_dead(matches, match, empty):
        return
    match.is_bye = True
    match.winner_id = match.get_slot(filled[0])
    events.append({'type': 'bye_resolved', 'matchId': match.id, 'winnerId': match.winner_id})
    propagate(matches, by_id, match, events)


def propagate(matches: List[Match], by_id: Dict[str, Match], match: Match, events: List[Dict]):
    """Send the winner and loser of a decided match along its links."""
    if match.next_match_id:
        place_player(matches, by_id, match.next_match_id, match.next_match_position,
                     match.winner_id, 'winner', match, events)
    if match.loser_next_match_id:
        loser_id = match.loser_id
        if loser_id is not None:
            place_player(matches, by_id, match.loser_next_match_id, match.loser_next_match_position,
                         loser_id, 'loser', match, events)
        else:
            # A bye has no loser, which may leave the target with a dead slot
            target = by_id.get(match.loser_next_match_id)
            if target is not None:
                settle(matches, by_id, target, events)


def resolve_initial_byes(matches: List[Match]):
    """Advance the winners of construction-time byes."""
    by_id = index_matches(matches)
    events = []
    for match in list(matches):
        if match.is_bye and match.is_decided:
            propagate(matches, by_id, match, events)


def prune_unreachable(matches: List[Match]) -> List[Match]:
    """
    Drop matches that can never receive a player: both slots empty and
    fed by nothing but byes. Repeats until stable, since removing one can
    starve the next.
    """
    remaining = list(matches)
    while True:
        dead = [m for m in remaining
                if m.player1_id is None and m.player2_id is None
                and slot_is_dead(remaining, m, 1) and slot_is_dead(remaining, m, 2)]
        if not dead:
            return remaining
        dead_ids = {m.id for m in dead}
        remaining = [m for m in remaining if m.id not in dead_ids]
        for m in remaining:
            # Byes feeding a pruned match lose that link too
            if m.loser_next_match_id in dead_ids:
                m.loser_next_match_id = None
                m.loser_next_match_position = None


def validate_links(matches: List[Match]):
    """Raise InconsistentGraph for dangling links or a cycle."""
    by_id = index_matches(matches)
    indegree = {m.id: 0 for m in matches}
    edges = {m.id: [] for m in matches}
    for m in matches:
        for target_id in (m.next_match_id, m.loser_next_match_id):
            if target_id is None:
                continue
            if target_id not in by_id:
                logger.error("Match %s links to missing match %s", m.id, target_id)
                raise InconsistentGraph(f"Match {m.id} links to missing match {target_id}")
            edges[m.id].append(target_id)
            indegree[target_id] += 1

    queue = deque(mid for mid, deg in indegree.items() if deg == 0)
    visited = 0
    while queue:
        mid = queue.popleft()
        visited += 1
        for target_id in edges[mid]:
            indegree[target_id] -= 1
            if indegree[target_id] == 0:
                queue.append(target_id)
    if visited != len(matches):
        logger.error("Cycle detected in match graph")
        raise InconsistentGraph("Cycle detected in match links")


def find_terminal(matches: List[Match], bracket: str) -> Optional[Match]:
    """The last match of a bracket: no forward winner link, highest round."""
    candidates = [m for m in matches if m.bracket == bracket and m.next_match_id is None]
    if not candidates:
        return None
    return max(candidates, key=lambda m: (m.round, -m.position))
