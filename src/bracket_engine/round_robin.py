"""
Round robin scheduling (circle method).
"""
from typing import List, Optional, Tuple

from .models import GROUP, ROUND_ROBIN, Match, Player, sort_by_seed


def circle_rounds(player_ids: List[str]) -> List[List[Tuple[str, str]]]:
    """
    Partition all unordered pairs into rounds with the circle method.

    The first player stays fixed while the others rotate one place per
    round; an odd field gets a placeholder whose opponent sits out.
    Every player appears at most once per round.
    """
    slots: List[Optional[str]] = list(player_ids)
    if len(slots) % 2 == 1:
        slots.append(None)
    n = len(slots)
    rounds = []
    for _ in range(n - 1):
        pairs = []
        for i in range(n // 2):
            a, b = slots[i], slots[n - 1 - i]
            if a is not None and b is not None:
                pairs.append((a, b))
        rounds.append(pairs)
        slots = [slots[0], slots[-1]] + slots[1:-1]
    return rounds


def generate_round_robin(players: List[Player], group_id: Optional[str] = None) -> List[Match]:
    """
    One match per unordered pair, grouped into rounds. Matches carry no
    forward links; standings decide the outcome.
    """
    seeded = sort_by_seed(players)
    bracket = GROUP if group_id is not None else ROUND_ROBIN
    prefix = f"group-{group_id}" if group_id is not None else ROUND_ROBIN

    matches = []
    for round_num, pairs in enumerate(circle_rounds([p.id for p in seeded]), start=1):
        for position, (player1, player2) in enumerate(pairs, start=1):
            matches.append(Match(
                id=f"{prefix}-r{round_num}-m{position}",
                bracket=bracket,
                round=round_num,
                position=position,
                player1_id=player1,
                player2_id=player2,
                group_id=group_id,
            ))
    return matches

