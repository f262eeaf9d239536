# Entry point for building a tournament's initial match graph from the command line

import argparse
import logging
import sys
import yaml
from bracket_engine.builder import build
from bracket_engine.config import load_format_config
from bracket_engine.double_elimination import (
    calculate_losers_bracket_rounds, get_losers_round_name, get_winners_round_name
)
from bracket_engine.elimination import calculate_bracket_size, get_round_names
from bracket_engine.errors import ConfigurationError, EngineError
from bracket_engine.models import (
    BRACKETS, DOUBLE_ELIMINATION, FORMATS, GRAND_FINALS, LOSERS, WINNERS, Player
)

def load_players(file_path):
    players = []
    with open(file_path, mode='r', encoding='utf-8') as file:
        entries = yaml.safe_load(file) or []
    if not isinstance(entries, list):
        raise ConfigurationError(f"{file_path} must contain a list of players")
    for index, entry in enumerate(entries, start=1):
        if isinstance(entry, dict):
            record = dict(entry, id=f"p{index}")
            record.setdefault('seed', index)
        else:
            record = {'id': f"p{index}", 'name': str(entry), 'seed': index}
        players.append(Player.from_dict(record))
    return players

def describe_slot(player_id, names):
    if player_id is None:
        return "TBD"
    return names.get(player_id, player_id)

def round_heading(bracket, round_num, fmt, bracket_size):
    if bracket == WINNERS:
        names = get_round_names(bracket_size)
        if round_num > len(names):
            return f"Round {round_num}"
        if fmt == DOUBLE_ELIMINATION:
            return get_winners_round_name(bracket_size // 2 ** (round_num - 1))
        return names[round_num - 1]
    if bracket == LOSERS:
        return get_losers_round_name(round_num - 1, calculate_losers_bracket_rounds(bracket_size))
    if bracket == GRAND_FINALS:
        return "Grand Final" if round_num == 1 else "Bracket Reset"
    return f"Round {round_num}"

def print_matches(matches, players, fmt=None):
    names = {p.id: p.name for p in players}
    bracket_size = calculate_bracket_size(len(players))
    for bracket in BRACKETS:
        bracket_matches = [m for m in matches if m.bracket == bracket]
        if not bracket_matches:
            continue
        print(f"\n=== {bracket} ===")
        for round_num in sorted({m.round for m in bracket_matches}):
            print(f"\n{round_heading(bracket, round_num, fmt, bracket_size)}")
            for match in sorted((m for m in bracket_matches if m.round == round_num),
                                key=lambda m: (m.group_id or '', m.position)):
                line = f"  {match.id}: {describe_slot(match.player1_id, names)} vs {describe_slot(match.player2_id, names)}"
                if match.is_bye:
                    line = f"  {match.id}: {describe_slot(match.winner_id, names)} (bye)"
                if match.next_match_id:
                    line += f" -> {match.next_match_id}"
                print(line)

def main(argv=None):
    parser = argparse.ArgumentParser(description="Build a tournament's initial match graph.")
    parser.add_argument('players', help="YAML list of player names or {name, seed} mappings")
    parser.add_argument('--format', required=True, choices=FORMATS)
    parser.add_argument('--config', help="YAML file with format options")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    try:
        players = load_players(args.players)
        config = load_format_config(args.config) if args.config else None
        matches = build(players, args.format, config)
    except EngineError as e:
        print(f"Cannot build tournament: {e}", file=sys.stderr)
        return 1

    print(f"{args.format}: {len(players)} players, {len(matches)} matches")
    print_matches(matches, players, args.format)
    return 0

if __name__ == '__main__':
    sys.exit(main())
