"""
Single elimination bracket generation.
"""
import math
from typing import List

from .links import resolve_initial_byes
from .models import Match, Player, WINNERS, sort_by_seed


def get_round_name(players_in_round: int) -> str:
    """Get the name of a round based on number of players."""
    if players_in_round == 2:
        return "Final"
    elif players_in_round == 4:
        return "Semifinal"
    elif players_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {players_in_round}"


def calculate_bracket_size(num_players: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_players <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_players))


def calculate_byes(num_players: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_players) - num_players


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 players: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size <= 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = _generate_bracket_order(half_size)

    # Pair each upper seed with its complement
    result = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])

    return result


def get_round_names(bracket_size: int) -> List[str]:
    """Round names from the first round to the final."""
    names = []
    count = bracket_size
    while count >= 2:
        names.append(get_round_name(count))
        count //= 2
    return names


def match_id(bracket: str, round_num: int, position: int) -> str:
    return f"{bracket}-r{round_num}-m{position}"


def create_winners_bracket(player_ids: List[str]) -> List[Match]:
    """
    Build a winners bracket for players given in seed order.

    Round 1 follows the standard bracket order; seeds beyond the player
    count are byes, so the top seeds receive them. Later rounds start
    empty and every match links to the next round: positions 2k-1 and 2k
    feed slots 1 and 2 of position k.
    """
    num_players = len(player_ids)
    bracket_size = calculate_bracket_size(num_players)
    total_rounds = int(math.log2(bracket_size))
    bracket_order = _generate_bracket_order(bracket_size)

    matches = []
    for i in range(0, bracket_size, 2):
        seed1, seed2 = bracket_order[i], bracket_order[i + 1]
        player1 = player_ids[seed1 - 1] if seed1 <= num_players else None
        player2 = player_ids[seed2 - 1] if seed2 <= num_players else None
        # Standard order always lists the better seed first
        is_bye = player2 is None
        matches.append(Match(
            id=match_id(WINNERS, 1, i // 2 + 1),
            bracket=WINNERS,
            round=1,
            position=i // 2 + 1,
            player1_id=player1,
            player2_id=player2,
            winner_id=player1 if is_bye else None,
            is_bye=is_bye,
        ))

    matches_in_round = bracket_size // 4
    for round_num in range(2, total_rounds + 1):
        for position in range(1, matches_in_round + 1):
            matches.append(Match(
                id=match_id(WINNERS, round_num, position),
                bracket=WINNERS,
                round=round_num,
                position=position,
            ))
        matches_in_round //= 2

    for match in matches:
        if match.round < total_rounds:
            match.next_match_id = match_id(WINNERS, match.round + 1, (match.position + 1) // 2)
            match.next_match_position = 1 if match.position % 2 == 1 else 2

    return matches


def generate_single_elimination(players: List[Player]) -> List[Match]:
    """Build a single elimination bracket with byes already advanced."""
    seeded = sort_by_seed(players)
    return generate_single_elimination_from_ids([p.id for p in seeded])


def generate_single_elimination_from_ids(player_ids: List[str]) -> List[Match]:
    matches = create_winners_bracket(player_ids)
    resolve_initial_byes(matches)
    return matches
