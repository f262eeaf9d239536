"""
Flask web application hosting the tournament engine.

Each tournament is stored as one YAML file; mutations of a tournament are
serialised with a per-tournament file lock.
"""
import os
import re
import uuid
import yaml
from functools import wraps
from typing import Optional
from filelock import FileLock
from flask import Flask, request, jsonify

from bracket_engine.builder import start_tournament
from bracket_engine.cascade import rescore_match
from bracket_engine.config import resolve_format_config
from bracket_engine.errors import (
    ConfigurationError, EngineError, IllegalTransition, InconsistentGraph, InvalidScore, UnknownMatch
)
from bracket_engine.models import FORMATS, GROUP_KNOCKOUT, SWISS_FORMAT, Player, Tournament
from bracket_engine.progression import (
    advance_stage, advance_swiss_round, force_winner, get_champion, override_players,
    record_result
)
from bracket_engine.standings import (
    calculate_group_standings, calculate_standings, calculate_swiss_standings, format_record,
    get_player_record
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
TOURNAMENTS_DIR = os.path.join(DATA_DIR, 'tournaments')

TOURNAMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


class TournamentNotFound(Exception):
    pass


def _tournament_file(tournament_id: str) -> str:
    if not TOURNAMENT_ID_PATTERN.match(tournament_id):
        raise TournamentNotFound(tournament_id)
    return os.path.join(TOURNAMENTS_DIR, f'{tournament_id}.yaml')


def _tournament_lock(tournament_id: str) -> FileLock:
    os.makedirs(TOURNAMENTS_DIR, exist_ok=True)
    return FileLock(_tournament_file(tournament_id) + '.lock', timeout=10)


def load_tournament(tournament_id: str) -> Tournament:
    """Load a tournament record from YAML."""
    path = _tournament_file(tournament_id)
    if not os.path.exists(path):
        raise TournamentNotFound(tournament_id)
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        raise TournamentNotFound(tournament_id)
    return Tournament.from_dict(data)


def save_tournament(tournament: Tournament):
    """Save a tournament record to YAML."""
    os.makedirs(TOURNAMENTS_DIR, exist_ok=True)
    with open(_tournament_file(tournament.id), 'w', encoding='utf-8') as f:
        yaml.dump(tournament.to_dict(), f, default_flow_style=False, sort_keys=False)


def parse_players(entries) -> list:
    """
    Build players from a list of names or {name, seed} mappings.
    Entries without a seed are seeded in list order.
    """
    if not isinstance(entries, list):
        raise ConfigurationError('players must be a list')
    players = []
    for index, entry in enumerate(entries, start=1):
        if isinstance(entry, dict):
            name = str(entry.get('name', '')).strip()
            seed = entry.get('seed', index)
        else:
            name = str(entry).strip()
            seed = index
        if not name:
            raise ConfigurationError(f'Player {index} has no name')
        players.append(Player.from_dict({'id': uuid.uuid4().hex[:8], 'name': name, 'seed': seed}))
    return players


def _error_status(error: Exception) -> int:
    if isinstance(error, (UnknownMatch, TournamentNotFound)):
        return 404
    if isinstance(error, (ConfigurationError, InvalidScore)):
        return 400
    if isinstance(error, IllegalTransition):
        return 409
    return 500


def engine_errors(f):
    """Turn engine failures into JSON error responses."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except TournamentNotFound as e:
            return jsonify({'error': f'Tournament {e} not found'}), 404
        except InconsistentGraph as e:
            app.logger.error(f'Inconsistent match graph in {request.path}: {e}')
            return jsonify({'error': str(e)}), 500
        except EngineError as e:
            status = _error_status(e)
            app.logger.warning(f'{request.method} {request.path} rejected ({status}): {e}')
            return jsonify({'error': str(e)}), status
    return decorated


def _mutate(tournament_id: str, operation):
    """Load, apply operation and save under the tournament's lock."""
    with _tournament_lock(tournament_id):
        tournament = load_tournament(tournament_id)
        result = operation(tournament)
        updated, events = result if isinstance(result, tuple) else (result, [])
        save_tournament(updated)
    return updated, events


def _tournament_response(tournament: Tournament, events: Optional[list] = None):
    data = {'tournament': tournament.to_dict(), 'championId': get_champion(tournament)}
    if events is not None:
        data['events'] = events
    return jsonify(data)


@app.route('/api/tournaments', methods=['POST'])
@engine_errors
def api_create_tournament():
    """Create a draft tournament."""
    data = request.get_json(silent=True) or {}
    name = str(data.get('name', '')).strip()
    fmt = data.get('format')
    if not name:
        return jsonify({'error': 'Tournament name is required'}), 400
    if fmt not in FORMATS:
        return jsonify({'error': f'Unknown format: {fmt}'}), 400

    players = parse_players(data.get('players', []))
    config = data.get('formatConfig') or {}
    if not isinstance(config, dict):
        raise ConfigurationError('formatConfig must be a mapping')
    resolve_format_config(fmt, config, len(players))

    tournament = Tournament(
        id=uuid.uuid4().hex,
        name=name,
        format=fmt,
        format_config=config,
        players=players,
    )
    with _tournament_lock(tournament.id):
        save_tournament(tournament)
    app.logger.info(f'Created tournament {tournament.id} ({fmt}, {len(players)} players)')
    return jsonify({'tournament': tournament.to_dict()}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
@engine_errors
def api_get_tournament(tournament_id):
    return _tournament_response(load_tournament(tournament_id))


@app.route('/api/tournaments/<tournament_id>/start', methods=['POST'])
@engine_errors
def api_start_tournament(tournament_id):
    updated, _ = _mutate(tournament_id, start_tournament)
    return _tournament_response(updated)


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/result', methods=['POST'])
@engine_errors
def api_record_result(tournament_id, match_id):
    """Record a score, or re-score when the match is already decided."""
    data = request.get_json(silent=True) or {}
    score1 = data.get('score1')
    score2 = data.get('score2')

    def operation(tournament):
        match = tournament.get_match(match_id)
        if match is not None and match.is_decided:
            return rescore_match(tournament, match_id, score1, score2)
        return record_result(tournament, match_id, score1, score2)

    updated, events = _mutate(tournament_id, operation)
    return _tournament_response(updated, events)


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/force-winner', methods=['POST'])
@engine_errors
def api_force_winner(tournament_id, match_id):
    data = request.get_json(silent=True) or {}
    winner_id = data.get('winnerId')
    forfeit = bool(data.get('forfeit', False))
    updated, events = _mutate(
        tournament_id, lambda t: force_winner(t, match_id, winner_id, is_forfeited=forfeit))
    return _tournament_response(updated, events)


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/players', methods=['POST'])
@engine_errors
def api_override_players(tournament_id, match_id):
    """Swap or reassign the players of an undecided match."""
    data = request.get_json(silent=True) or {}
    player1_id = data.get('player1Id')
    player2_id = data.get('player2Id')
    updated, _ = _mutate(tournament_id, lambda t: override_players(t, match_id, player1_id, player2_id))
    return _tournament_response(updated)


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
@engine_errors
def api_standings(tournament_id):
    tournament = load_tournament(tournament_id)
    group_id = request.args.get('group')

    def with_records(rows):
        for row in rows:
            row['record'] = format_record(get_player_record(tournament.matches, row['player_id']))
        return rows

    if group_id:
        return jsonify({'standings': with_records(
            calculate_standings(tournament.matches, tournament.players, group_id))})
    if tournament.format == GROUP_KNOCKOUT:
        groups = calculate_group_standings(tournament.matches, tournament.players)
        return jsonify({'groups': {gid: with_records(rows) for gid, rows in groups.items()}})
    if tournament.format == SWISS_FORMAT:
        return jsonify({'standings': with_records(
            calculate_swiss_standings(tournament.matches, tournament.players))})
    return jsonify({'standings': with_records(calculate_standings(tournament.matches, tournament.players))})


@app.route('/api/tournaments/<tournament_id>/swiss/next-round', methods=['POST'])
@engine_errors
def api_swiss_next_round(tournament_id):
    updated, _ = _mutate(tournament_id, advance_swiss_round)
    return _tournament_response(updated)


@app.route('/api/tournaments/<tournament_id>/knockout', methods=['POST'])
@engine_errors
def api_advance_to_knockout(tournament_id):
    """Build the knockout stage from the group or Swiss stage."""
    updated, _ = _mutate(tournament_id, advance_stage)
    return _tournament_response(updated)


if __name__ == '__main__':
    app.run(debug=True, port=5000)
