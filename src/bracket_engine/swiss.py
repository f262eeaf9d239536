"""
Swiss system pairing.

Round 1 pairs by seed (1 vs N, 2 vs N-1, ...). Later rounds pair
adjacent players in the current Swiss standings while avoiding rematches.
"""
import logging
from typing import FrozenSet, List, Optional, Set, Tuple

from .models import SWISS, Match, Player, sort_by_seed
from .standings import calculate_swiss_standings, get_current_swiss_round

logger = logging.getLogger(__name__)

# Upper bound on backtracking nodes before falling back to relaxed pairing
MAX_SEARCH_STEPS = 20000


def _round_matches(round_num: int, pairs: List[Tuple[str, str]], bye_player: Optional[str]) -> List[Match]:
    matches = []
    for position, (player1, player2) in enumerate(pairs, start=1):
        matches.append(Match(
            id=f"{SWISS}-r{round_num}-m{position}",
            bracket=SWISS,
            round=round_num,
            position=position,
            player1_id=player1,
            player2_id=player2,
        ))
    if bye_player is not None:
        position = len(pairs) + 1
        matches.append(Match(
            id=f"{SWISS}-r{round_num}-m{position}",
            bracket=SWISS,
            round=round_num,
            position=position,
            player1_id=bye_player,
            winner_id=bye_player,
            is_bye=True,
        ))
    return matches


def generate_first_round(players: List[Player]) -> List[Match]:
    """Seed-order pairing; with an odd field the lowest seed gets the bye."""
    player_ids = [p.id for p in sort_by_seed(players)]
    bye_player = player_ids.pop() if len(player_ids) % 2 == 1 else None
    half = len(player_ids) // 2
    pairs = [(player_ids[i], player_ids[-1 - i]) for i in range(half)]
    return _round_matches(1, pairs, bye_player)


def played_pairs(matches: List[Match]) -> Set[FrozenSet[str]]:
    return {
        frozenset((m.player1_id, m.player2_id))
        for m in matches
        if m.bracket == SWISS and not m.is_bye and m.player1_id and m.player2_id
    }


def _choose_bye(ranked: List[str], matches: List[Match]) -> str:
    """Lowest-ranked player without a bye yet; the lowest overall if all had one."""
    had_bye = {m.winner_id for m in matches if m.bracket == SWISS and m.is_bye}
    for player_id in reversed(ranked):
        if player_id not in had_bye:
            return player_id
    return ranked[-1]


def _pair_without_repeats(ranked: List[str], played: Set[FrozenSet[str]]) -> Optional[List[Tuple[str, str]]]:
    """
    Pair top-down, each player with the nearest-ranked opponent they have
    not met, backtracking when a choice leaves the rest unpairable.
    Returns None when no repeat-free pairing is found.
    """
    steps = 0

    def search(remaining):
        nonlocal steps
        if not remaining:
            return []
        steps += 1
        if steps > MAX_SEARCH_STEPS:
            return None
        top = remaining[0]
        for i in range(1, len(remaining)):
            opponent = remaining[i]
            if frozenset((top, opponent)) in played:
                continue
            rest = search(remaining[1:i] + remaining[i + 1:])
            if rest is not None:
                return [(top, opponent)] + rest
        return None

    return search(list(ranked))


def _pair_with_fallback(ranked: List[str], played: Set[FrozenSet[str]]) -> List[Tuple[str, str]]:
    """Greedy pairing that allows a rematch only when no fresh opponent is left."""
    remaining = list(ranked)
    pairs = []
    while remaining:
        top = remaining.pop(0)
        index = next(
            (i for i, opponent in enumerate(remaining) if frozenset((top, opponent)) not in played),
            0,
        )
        pairs.append((top, remaining.pop(index)))
    return pairs


def next_round(players: List[Player], match_history: List[Match]) -> List[Match]:
    """
    Produce the next Swiss round from the standings so far.

    An odd field yields one bye for the lowest-ranked player who has not
    had one. Rematches happen only when no repeat-free pairing exists.
    """
    swiss_matches = [m for m in match_history if m.bracket == SWISS]
    round_num = get_current_swiss_round(swiss_matches) + 1
    standings = calculate_swiss_standings(swiss_matches, sort_by_seed(players))
    ranked = [s['player_id'] for s in standings]

    bye_player = None
    if len(ranked) % 2 == 1:
        bye_player = _choose_bye(ranked, swiss_matches)
        ranked.remove(bye_player)

    played = played_pairs(swiss_matches)
    pairs = _pair_without_repeats(ranked, played)
    if pairs is None:
        logger.warning("Swiss round %d: no repeat-free pairing, allowing rematches", round_num)
        pairs = _pair_with_fallback(ranked, played)

    logger.info("Generated Swiss round %d: %d matches%s", round_num, len(pairs),
                " + bye" if bye_player else "")
    return _round_matches(round_num, pairs, bye_player)


def get_qualified_players(matches: List[Match], players: List[Player], wins_to_qualify: int) -> List[str]:
    """Players whose Swiss wins (byes included) reached the threshold, in standings order."""
    standings = calculate_swiss_standings(matches, sort_by_seed(players))
    return [s['player_id'] for s in standings if s['wins'] >= wins_to_qualify]


def select_knockout_qualifiers(matches: List[Match], players: List[Player], qualifying_players: int) -> List[str]:
    """
    The players seeded into the post-Swiss knockout, best first. Standings
    rank by wins, so anyone at or above winsToQualify is ahead of the rest.
    """
    standings = calculate_swiss_standings(matches, sort_by_seed(players))
    return [s['player_id'] for s in standings][:qualifying_players]
