"""
Standings and other derived queries over a match list.

Nothing here is stored: every value is recomputed from the matches.
"""
from typing import Dict, List, Optional

from .models import GROUP, SWISS, Match, Player


def _has_result(match: Match) -> bool:
    return match.winner_id is not None or (
        match.player1_score is not None and match.player2_score is not None)


def calculate_standings(matches: List[Match], players: List[Player],
                        group_id: Optional[str] = None, count_byes: bool = False) -> List[Dict]:
    """
    Calculate standings from a list of matches.

    Returns: [{'player_id', 'player_name', 'group_id', 'wins', 'losses',
               'draws', 'points_for', 'points_against', 'point_differential',
               'matches_played'}, ...]

    Only matches with both slots filled and a recorded result count. A
    match with equal scores and no winner counts as a draw. With
    count_byes, a bye counts as a win for its occupant (Swiss ranking).

    Ranking: wins -> point differential -> points for. Remaining ties keep
    the order of `players`; seed is deliberately not a tiebreaker.
    """
    player_stats = {}
    for player in players:
        if group_id is not None and player.group_id != group_id:
            continue
        player_stats[player.id] = {
            'player_id': player.id,
            'player_name': player.name,
            'group_id': player.group_id,
            'wins': 0,
            'losses': 0,
            'draws': 0,
            'points_for': 0,
            'points_against': 0,
            'point_differential': 0,
            'matches_played': 0,
        }

    for match in matches:
        if group_id is not None and match.group_id != group_id:
            continue

        if match.is_bye:
            if count_byes and match.winner_id in player_stats:
                player_stats[match.winner_id]['wins'] += 1
                player_stats[match.winner_id]['matches_played'] += 1
            continue

        if not match.player1_id or not match.player2_id:
            continue
        p1 = player_stats.get(match.player1_id)
        p2 = player_stats.get(match.player2_id)
        if p1 is None or p2 is None:
            continue
        if not _has_result(match):
            continue

        p1['matches_played'] += 1
        p2['matches_played'] += 1

        if match.player1_score is not None and match.player2_score is not None:
            p1['points_for'] += match.player1_score
            p1['points_against'] += match.player2_score
            p2['points_for'] += match.player2_score
            p2['points_against'] += match.player1_score

        if match.winner_id == match.player1_id:
            p1['wins'] += 1
            p2['losses'] += 1
        elif match.winner_id == match.player2_id:
            p2['wins'] += 1
            p1['losses'] += 1
        elif match.player1_score == match.player2_score:
            p1['draws'] += 1
            p2['draws'] += 1

    for stats in player_stats.values():
        stats['point_differential'] = stats['points_for'] - stats['points_against']

    # sorted() is stable, so full ties stay in player order
    return sorted(
        player_stats.values(),
        key=lambda x: (-x['wins'], -x['point_differential'], -x['points_for'])
    )


def calculate_group_standings(matches: List[Match], players: List[Player]) -> Dict[str, List[Dict]]:
    """Standings for every group, keyed by group id in sorted order."""
    group_ids = sorted({p.group_id for p in players if p.group_id is not None})
    return {
        group_id: calculate_standings(matches, players, group_id)
        for group_id in group_ids
    }


def calculate_swiss_standings(matches: List[Match], players: List[Player]) -> List[Dict]:
    """Swiss ranking: Swiss matches only, byes count as wins."""
    swiss_matches = [m for m in matches if m.bracket == SWISS]
    return calculate_standings(swiss_matches, players, count_byes=True)


def get_current_swiss_round(matches: List[Match]) -> int:
    rounds = [m.round for m in matches if m.bracket == SWISS]
    return max(rounds) if rounds else 0


def is_round_complete(matches: List[Match], round_num: int, bracket: Optional[str] = None) -> bool:
    """True when the round has matches and every one of them is decided."""
    round_matches = [
        m for m in matches
        if m.round == round_num and (bracket is None or m.bracket == bracket)
    ]
    return bool(round_matches) and all(m.winner_id is not None for m in round_matches)


def is_group_stage_complete(matches: List[Match]) -> bool:
    group_matches = [m for m in matches if m.bracket == GROUP]
    return bool(group_matches) and all(m.winner_id is not None for m in group_matches)


def get_player_record(matches: List[Match], player_id: str) -> Dict[str, int]:
    """Win-loss-draw record of a player across all real matches."""
    record = {'wins': 0, 'losses': 0, 'draws': 0}
    for match in matches:
        if match.is_bye:
            continue
        if player_id not in (match.player1_id, match.player2_id):
            continue
        if not _has_result(match):
            continue
        if match.winner_id == player_id:
            record['wins'] += 1
        elif match.winner_id is not None:
            record['losses'] += 1
        elif match.player1_score == match.player2_score:
            record['draws'] += 1
    return record


def format_record(record: Dict[str, int]) -> str:
    """Format a record as "3-1", or "3-1-1" when there are draws."""
    if record['draws'] > 0:
        return f"{record['wins']}-{record['losses']}-{record['draws']}"
    return f"{record['wins']}-{record['losses']}"


def get_head_to_head(matches: List[Match], player1_id: str, player2_id: str) -> Dict[str, int]:
    result = {'player1_wins': 0, 'player2_wins': 0, 'draws': 0}
    for match in matches:
        if {match.player1_id, match.player2_id} != {player1_id, player2_id}:
            continue
        if not _has_result(match):
            continue
        if match.winner_id == player1_id:
            result['player1_wins'] += 1
        elif match.winner_id == player2_id:
            result['player2_wins'] += 1
        else:
            result['draws'] += 1
    return result


def refresh_player_records(players: List[Player], matches: List[Match]):
    """Re-derive the cached wins/losses on each player from the matches."""
    for player in players:
        record = get_player_record(matches, player.id)
        player.wins = record['wins']
        player.losses = record['losses']
