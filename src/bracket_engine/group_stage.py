"""
Group stage: snake distribution, per-group round robin and knockout seeding.
"""
import string
from typing import Dict, List

from .models import Match, Player, sort_by_seed
from .round_robin import generate_round_robin
from .standings import calculate_group_standings


def get_group_ids(group_count: int) -> List[str]:
    """Group ids A, B, C, ... (AA, AB, ... past Z)."""
    letters = string.ascii_uppercase
    ids = []
    for i in range(group_count):
        if i < len(letters):
            ids.append(letters[i])
        else:
            ids.append(letters[i // len(letters) - 1] + letters[i % len(letters)])
    return ids


def assign_groups(players: List[Player], group_count: int) -> Dict[str, str]:
    """
    Snake-distribute players across groups by seed.

    With 3 groups: seeds 1, 2, 3 go to A, B, C; seeds 4, 5, 6 to C, B, A;
    and so on, so every group gets a balanced share of strong seeds.
    Returns {player_id: group_id}.
    """
    group_ids = get_group_ids(group_count)
    assignment = {}
    for index, player in enumerate(sort_by_seed(players)):
        row, column = divmod(index, group_count)
        if row % 2 == 1:
            column = group_count - 1 - column
        assignment[player.id] = group_ids[column]
    return assignment


def generate_group_matches(players: List[Player], assignment: Dict[str, str]) -> List[Match]:
    """Round robin inside each group, tagged with the group id."""
    by_group: Dict[str, List[Player]] = {}
    for player in sort_by_seed(players):
        by_group.setdefault(assignment[player.id], []).append(player)

    matches = []
    for group_id in sorted(by_group):
        matches.extend(generate_round_robin(by_group[group_id], group_id=group_id))
    return matches


def seed_knockout_from_groups(matches: List[Match], players: List[Player], advance_per_group: int) -> List[str]:
    """
    Knockout entrants in seed order, taken from the group standings.

    Seeding is done by group finish position:
    - All group winners get the top seeds (in group order)
    - All runners-up get the next seeds
    - etc.
    """
    standings = calculate_group_standings(matches, players)
    seeded = []
    for finish in range(advance_per_group):
        for group_id in sorted(standings):
            group_standings = standings[group_id]
            if finish < len(group_standings):
                seeded.append(group_standings[finish]['player_id'])
    return seeded
