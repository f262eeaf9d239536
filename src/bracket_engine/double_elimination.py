"""
Double elimination bracket generation and management.

In double elimination:
- Players must lose twice to be eliminated
- Winners Bracket: Players that haven't lost yet
- Losers Bracket: Players that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion
"""
import logging
import math
from typing import Dict, List, Optional

from .elimination import calculate_bracket_size, create_winners_bracket, match_id
from .links import prune_unreachable, resolve_initial_byes
from .models import GRAND_FINALS, LOSERS, WINNERS, Match, Player, sort_by_seed

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = match_id(GRAND_FINALS, 1, 1)
BRACKET_RESET_ID = match_id(GRAND_FINALS, 2, 1)


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def get_winners_round_name(players_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if players_in_round == 2:
        return "Winners Final"
    elif players_in_round == 4:
        return "Winners Semifinal"
    elif players_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {players_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N players in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds

    Pattern: minor, major, minor, major, ... ending with a major round
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def generate_double_elimination(players: List[Player]) -> List[Match]:
    seeded = sort_by_seed(players)
    return generate_double_elimination_from_ids([p.id for p in seeded])


def generate_double_elimination_from_ids(player_ids: List[str]) -> List[Match]:
    """
    Generate the complete double elimination graph: winners bracket,
    losers bracket and the grand final. The bracket reset match is not
    part of the initial build; see create_bracket_reset.
    """
    bracket_size = calculate_bracket_size(len(player_ids))
    total_winners_rounds = int(math.log2(bracket_size))

    winners = create_winners_bracket(player_ids)
    losers = _generate_losers_bracket(bracket_size)
    grand_final = Match(id=GRAND_FINAL_ID, bracket=GRAND_FINALS, round=1, position=1)

    _link_drop_downs(winners, losers, total_winners_rounds)

    winners_final = match_id(WINNERS, total_winners_rounds, 1)
    for match in winners:
        if match.id == winners_final:
            match.next_match_id = GRAND_FINAL_ID
            match.next_match_position = 1
            if not losers:
                # Two-player bracket: the loser goes straight to the grand final
                match.loser_next_match_id = GRAND_FINAL_ID
                match.loser_next_match_position = 2
    if losers:
        losers_final = losers[-1]
        losers_final.next_match_id = GRAND_FINAL_ID
        losers_final.next_match_position = 2

    matches = prune_unreachable(winners + losers + [grand_final])
    resolve_initial_byes(matches)
    logger.debug("Double elimination graph: %d players, %d matches", len(player_ids), len(matches))
    return matches


def _generate_losers_bracket(bracket_size: int) -> List[Match]:
    """
    Generate losers bracket structure following standard double elimination format.

    The losers bracket alternates between:
    - Minor rounds (1, 3, 5...): Only losers bracket players compete
    - Major rounds (2, 4, 6...): Losers from winners bracket drop in

    For 8-player bracket:
    - L Round 1 (minor): 4 W-QF losers pair off -> 2 matches -> 2 winners
    - L Round 2 (major): 2 W-SF losers + 2 L-R1 winners -> 2 matches -> 2 winners
    - L Round 3 (minor): 2 L-R2 winners pair off -> 1 match -> 1 winner
    - L Round 4 (major): 1 W-F loser + 1 L-R3 winner -> 1 match -> 1 winner (L champion)
    """
    total_losers_rounds = calculate_losers_bracket_rounds(bracket_size)
    matches = []
    matches_in_round = bracket_size // 4

    for round_num in range(1, total_losers_rounds + 1):
        is_major_round = round_num % 2 == 0
        if round_num > 1 and not is_major_round:
            matches_in_round //= 2
        for position in range(1, matches_in_round + 1):
            matches.append(Match(
                id=match_id(LOSERS, round_num, position),
                bracket=LOSERS,
                round=round_num,
                position=position,
            ))

    by_round: Dict[int, List[Match]] = {}
    for match in matches:
        by_round.setdefault(match.round, []).append(match)

    for round_num in range(1, total_losers_rounds):
        next_round = by_round[round_num + 1]
        next_is_major = (round_num + 1) % 2 == 0
        for match in by_round[round_num]:
            if next_is_major:
                # Same position; the drop-down takes slot 1
                match.next_match_id = next_round[match.position - 1].id
                match.next_match_position = 2
            else:
                match.next_match_id = next_round[(match.position - 1) // 2].id
                match.next_match_position = 1 if match.position % 2 == 1 else 2

    return matches


def _link_drop_downs(winners: List[Match], losers: List[Match], total_winners_rounds: int):
    """
    Point every winners bracket loser at its losers bracket slot.

    Round 1 losers pair off in losers round 1. Losers of winners round r
    (r >= 2) drop into losers round 2(r-1), in reverse order so a
    dropped player does not meet the opponent they just beat.
    Round 1 byes have no loser and get no link.
    """
    if not losers:
        return
    losers_by_id = {m.id: m for m in losers}
    for match in winners:
        if match.is_bye:
            continue
        if match.round == 1:
            target = match_id(LOSERS, 1, (match.position + 1) // 2)
            position = 1 if match.position % 2 == 1 else 2
        else:
            losers_round = 2 * (match.round - 1)
            count = len([m for m in losers if m.round == losers_round])
            target = match_id(LOSERS, losers_round, count - match.position + 1)
            position = 1
        if target in losers_by_id:
            match.loser_next_match_id = target
            match.loser_next_match_position = position


def get_grand_final(matches: List[Match]) -> Optional[Match]:
    for match in matches:
        if match.bracket == GRAND_FINALS and match.round == 1:
            return match
    return None


def get_bracket_reset(matches: List[Match]) -> Optional[Match]:
    for match in matches:
        if match.bracket == GRAND_FINALS and match.round == 2:
            return match
    return None


def needs_bracket_reset(grand_final: Match) -> bool:
    """True when the losers bracket champion (slot 2) won the grand final."""
    return grand_final.is_decided and grand_final.winner_id == grand_final.player2_id


def create_bracket_reset(grand_final: Match) -> Match:
    """
    Build the conditional second grand final. The winners bracket
    champion keeps slot 1, the losers bracket champion slot 2.
    """
    return Match(
        id=BRACKET_RESET_ID,
        bracket=GRAND_FINALS,
        round=2,
        position=1,
        player1_id=grand_final.player1_id,
        player2_id=grand_final.player2_id,
        notes='Bracket reset',
    )
