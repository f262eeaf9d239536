"""
Player, Match and Tournament records.

Attributes are snake_case; to_dict/from_dict use the camelCase record
shapes shared with storage and import/export collaborators.
"""
from datetime import datetime
from typing import Dict, List, Optional

from .errors import ConfigurationError

WINNERS = 'winners'
LOSERS = 'losers'
GRAND_FINALS = 'grand-finals'
ROUND_ROBIN = 'round-robin'
SWISS = 'swiss'
GROUP = 'group'

BRACKETS = (WINNERS, LOSERS, GRAND_FINALS, ROUND_ROBIN, SWISS, GROUP)
ELIMINATION_BRACKETS = (WINNERS, LOSERS, GRAND_FINALS)

DRAFT = 'draft'
ACTIVE = 'active'
COMPLETED = 'completed'

STATUSES = (DRAFT, ACTIVE, COMPLETED)

SINGLE_ELIMINATION = 'single-elimination'
DOUBLE_ELIMINATION = 'double-elimination'
ROUND_ROBIN_FORMAT = 'round-robin'
SWISS_FORMAT = 'swiss'
GROUP_KNOCKOUT = 'group-knockout'

FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION, ROUND_ROBIN_FORMAT, SWISS_FORMAT, GROUP_KNOCKOUT)


class Player:
    def __init__(self, id, name, seed, wins=0, losses=0, group_id=None):
        self.id = id
        self.name = name
        self.seed = seed
        self.wins = wins
        self.losses = losses
        self.group_id = group_id

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'name': self.name,
            'seed': self.seed,
            'wins': self.wins,
            'losses': self.losses,
        }
        if self.group_id is not None:
            data['groupId'] = self.group_id
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Player':
        if not isinstance(data, dict):
            raise ConfigurationError(f"Player record must be a mapping, got {data!r}")
        seed = data.get('seed')
        if not _is_int(seed) or seed <= 0:
            raise ConfigurationError(f"Player {data.get('id')!r} needs a positive integer seed, got {seed!r}")
        if not data.get('id') or not data.get('name'):
            raise ConfigurationError(f"Player record is missing id or name: {data!r}")
        return cls(
            id=data['id'],
            name=data['name'],
            seed=seed,
            wins=data.get('wins') or 0,
            losses=data.get('losses') or 0,
            group_id=data.get('groupId'),
        )

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name}, seed={self.seed})"


class Match:
    def __init__(self, id, bracket, round, position, player1_id=None, player2_id=None,
                 player1_score=None, player2_score=None, winner_id=None, is_bye=False,
                 is_forfeited=False, notes=None, next_match_id=None, next_match_position=None,
                 loser_next_match_id=None, loser_next_match_position=None, group_id=None):
        self.id = id
        self.bracket = bracket
        self.round = round
        self.position = position
        self.player1_id = player1_id
        self.player2_id = player2_id
        self.player1_score = player1_score
        self.player2_score = player2_score
        self.winner_id = winner_id
        self.is_bye = is_bye
        self.is_forfeited = is_forfeited
        self.notes = notes
        self.next_match_id = next_match_id
        self.next_match_position = next_match_position
        self.loser_next_match_id = loser_next_match_id
        self.loser_next_match_position = loser_next_match_position
        self.group_id = group_id

    @property
    def loser_id(self) -> Optional[str]:
        if self.winner_id is None or self.is_bye:
            return None
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id

    @property
    def is_decided(self) -> bool:
        return self.winner_id is not None

    def get_slot(self, position: int) -> Optional[str]:
        return self.player1_id if position == 1 else self.player2_id

    def set_slot(self, position: int, player_id: Optional[str]):
        if position == 1:
            self.player1_id = player_id
        else:
            self.player2_id = player_id

    def clear_result(self):
        self.player1_score = None
        self.player2_score = None
        self.winner_id = None
        self.is_forfeited = False

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'bracket': self.bracket,
            'round': self.round,
            'position': self.position,
            'player1Id': self.player1_id,
            'player2Id': self.player2_id,
            'player1Score': self.player1_score,
            'player2Score': self.player2_score,
            'winnerId': self.winner_id,
            'isBye': self.is_bye,
            'isForfeited': self.is_forfeited,
            'nextMatchId': self.next_match_id,
            'nextMatchPosition': self.next_match_position,
            'loserNextMatchId': self.loser_next_match_id,
            'loserNextMatchPosition': self.loser_next_match_position,
        }
        if self.notes is not None:
            data['notes'] = self.notes
        if self.group_id is not None:
            data['groupId'] = self.group_id
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        if not isinstance(data, dict):
            raise ConfigurationError(f"Match record must be a mapping, got {data!r}")
        if not data.get('id'):
            raise ConfigurationError(f"Match record is missing id: {data!r}")
        bracket = data.get('bracket')
        if bracket not in BRACKETS:
            raise ConfigurationError(f"Match {data.get('id')!r} has unknown bracket {bracket!r}")
        for key in ('round', 'position'):
            if not _is_int(data.get(key)) or data[key] <= 0:
                raise ConfigurationError(f"Match {data.get('id')!r} needs a positive integer {key}")
        for key in ('player1Score', 'player2Score'):
            score = data.get(key)
            if score is not None and (not _is_int(score) or score < 0):
                raise ConfigurationError(f"Match {data.get('id')!r} has invalid {key} {score!r}")
        for link, key in (('nextMatchId', 'nextMatchPosition'),
                          ('loserNextMatchId', 'loserNextMatchPosition')):
            if data.get(link) is not None and data.get(key) not in (1, 2):
                raise ConfigurationError(f"Match {data['id']!r} has invalid {key} {data.get(key)!r}")
        winner = data.get('winnerId')
        if winner is not None and winner not in (data.get('player1Id'), data.get('player2Id')):
            raise ConfigurationError(f"Match {data['id']!r} winner {winner!r} is not one of its players")
        return cls(
            id=data['id'],
            bracket=bracket,
            round=data['round'],
            position=data['position'],
            player1_id=data.get('player1Id'),
            player2_id=data.get('player2Id'),
            player1_score=data.get('player1Score'),
            player2_score=data.get('player2Score'),
            winner_id=data.get('winnerId'),
            is_bye=bool(data.get('isBye', False)),
            is_forfeited=bool(data.get('isForfeited', False)),
            notes=data.get('notes'),
            next_match_id=data.get('nextMatchId'),
            next_match_position=data.get('nextMatchPosition'),
            loser_next_match_id=data.get('loserNextMatchId'),
            loser_next_match_position=data.get('loserNextMatchPosition'),
            group_id=data.get('groupId'),
        )

    def __repr__(self):
        return (f"Match(id={self.id}, {self.player1_id} vs {self.player2_id}, "
                f"score={self.player1_score}-{self.player2_score}, winner={self.winner_id})")


class Tournament:
    def __init__(self, id, name, format=None, format_config=None, status=DRAFT, players=None,
                 matches=None, created_at=None, completed_at=None, group_stage_complete=False,
                 swiss_qualification_complete=False, current_swiss_round=None):
        self.id = id
        self.name = name
        self.format = format
        self.format_config = format_config if format_config else {}
        self.status = status
        self.players = players if players else []
        self.matches = matches if matches else []
        self.created_at = created_at or datetime.now()
        self.completed_at = completed_at
        self.group_stage_complete = group_stage_complete
        self.swiss_qualification_complete = swiss_qualification_complete
        self.current_swiss_round = current_swiss_round

    def get_match(self, match_id: str) -> Optional[Match]:
        return get_match_by_id(self.matches, match_id)

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'name': self.name,
            'format': self.format,
            'formatConfig': dict(self.format_config),
            'status': self.status,
            'players': [p.to_dict() for p in self.players],
            'matches': [m.to_dict() for m in self.matches],
            'createdAt': self.created_at.isoformat(),
            'completedAt': self.completed_at.isoformat() if self.completed_at else None,
            'groupStageComplete': self.group_stage_complete,
            'swissQualificationComplete': self.swiss_qualification_complete,
        }
        if self.current_swiss_round is not None:
            data['currentSwissRound'] = self.current_swiss_round
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tournament':
        if not isinstance(data, dict):
            raise ConfigurationError("Tournament record must be a mapping")
        if not data.get('id') or not data.get('name'):
            raise ConfigurationError("Tournament record is missing id or name")
        status = data.get('status', DRAFT)
        if status not in STATUSES:
            raise ConfigurationError(f"Tournament {data['id']!r} has unknown status {status!r}")
        for key in ('players', 'matches'):
            if not isinstance(data.get(key) or [], list):
                raise ConfigurationError(f"Tournament {data['id']!r} {key} must be a list")
        matches = [Match.from_dict(m) for m in data.get('matches') or []]
        fmt = data.get('format')
        if fmt is None:
            # Records written before formats existed
            fmt = infer_format(matches)
        elif fmt not in FORMATS:
            raise ConfigurationError(f"Tournament {data['id']!r} has unknown format {fmt!r}")
        return cls(
            id=data['id'],
            name=data['name'],
            format=fmt,
            format_config=dict(data.get('formatConfig') or {}),
            status=status,
            players=[Player.from_dict(p) for p in data.get('players') or []],
            matches=matches,
            created_at=_parse_datetime(data.get('createdAt')),
            completed_at=_parse_datetime(data.get('completedAt')),
            group_stage_complete=bool(data.get('groupStageComplete', False)),
            swiss_qualification_complete=bool(data.get('swissQualificationComplete', False)),
            current_swiss_round=data.get('currentSwissRound'),
        )

    def __repr__(self):
        return f"Tournament(id={self.id}, name={self.name}, format={self.format}, status={self.status})"


def infer_format(matches: List[Match]) -> str:
    """Infer a tournament format from the bracket tags of its matches."""
    tags = {m.bracket for m in matches}
    if GROUP in tags:
        return GROUP_KNOCKOUT
    if SWISS in tags:
        return SWISS_FORMAT
    if ROUND_ROBIN in tags:
        return ROUND_ROBIN_FORMAT
    if LOSERS in tags or GRAND_FINALS in tags:
        return DOUBLE_ELIMINATION
    return SINGLE_ELIMINATION


def get_match_by_id(matches: List[Match], match_id: str) -> Optional[Match]:
    for match in matches:
        if match.id == match_id:
            return match
    return None


def sort_by_seed(players: List[Player]) -> List[Player]:
    """Players in seed order; equal seeds keep their input order."""
    return sorted(players, key=lambda p: p.seed)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ConfigurationError(f"Invalid timestamp {value!r}") from None
