"""
Format configuration: defaults, validation and YAML loading.
"""
import math
import os
from typing import Dict, Optional

import yaml

from .errors import ConfigurationError
from .models import (
    FORMATS, SINGLE_ELIMINATION, DOUBLE_ELIMINATION, SWISS_FORMAT, GROUP_KNOCKOUT
)

KNOCKOUT_FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION)

RECOGNIZED_KEYS = (
    'numberOfRounds',
    'winsToQualify',
    'qualifyingPlayers',
    'groupCount',
    'playersPerGroup',
    'advancePerGroup',
    'knockoutFormat',
    'grandFinalsReset',
)


def get_default_format_config() -> Dict:
    """Return defaults shared by every format."""
    return {
        'groupCount': 2,
        'advancePerGroup': 2,
        'knockoutFormat': SINGLE_ELIMINATION,
        'grandFinalsReset': True,
    }


def load_format_config(file_path: str) -> Dict:
    """Load a format configuration from YAML, merging with defaults."""
    defaults = get_default_format_config()
    if not os.path.exists(file_path):
        return defaults
    with open(file_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return defaults
    if not isinstance(data, dict):
        raise ConfigurationError(f"{file_path} must contain a mapping of format options")
    for key, value in defaults.items():
        if key not in data:
            data[key] = value
    return data


def group_sizes(num_players: int, group_count: int):
    """Sizes of each group when players are snake-distributed."""
    base, extra = divmod(num_players, group_count)
    return [base + (1 if i < extra else 0) for i in range(group_count)]


def resolve_format_config(fmt: str, config: Optional[Dict], num_players: int) -> Dict:
    """
    Merge config with defaults and validate it against the format and
    player count. Raises ConfigurationError when no valid match graph can
    be built.
    """
    if fmt not in FORMATS:
        raise ConfigurationError(f"Unknown tournament format: {fmt!r}")
    if num_players < 2:
        raise ConfigurationError(f"At least 2 players are required, got {num_players}")

    resolved = get_default_format_config()
    resolved.update({k: v for k, v in (config or {}).items() if v is not None})

    for key in ('numberOfRounds', 'winsToQualify', 'qualifyingPlayers',
                'groupCount', 'playersPerGroup', 'advancePerGroup'):
        if key in resolved:
            _require_positive_int(resolved, key)

    if resolved['knockoutFormat'] not in KNOCKOUT_FORMATS:
        raise ConfigurationError(f"Unknown knockoutFormat: {resolved['knockoutFormat']!r}")
    resolved['grandFinalsReset'] = bool(resolved['grandFinalsReset'])

    if fmt == SWISS_FORMAT:
        if 'numberOfRounds' not in resolved and 'winsToQualify' not in resolved:
            resolved['numberOfRounds'] = max(1, math.ceil(math.log2(num_players)))
        qualifying = resolved.get('qualifyingPlayers')
        if qualifying is not None and not 2 <= qualifying <= num_players:
            raise ConfigurationError(
                f"qualifyingPlayers must be between 2 and {num_players}, got {qualifying}")

    if fmt == GROUP_KNOCKOUT:
        _validate_groups(resolved, num_players)

    return resolved


def _validate_groups(resolved: Dict, num_players: int):
    group_count = resolved['groupCount']
    per_group = resolved.get('playersPerGroup') or math.ceil(num_players / group_count)
    resolved['playersPerGroup'] = per_group

    if group_count * per_group < num_players:
        raise ConfigurationError(
            f"{group_count} groups of {per_group} cannot hold {num_players} players")
    sizes = group_sizes(num_players, group_count)
    if min(sizes) < 2:
        raise ConfigurationError(
            f"{num_players} players cannot fill {group_count} groups with at least 2 players each")
    advance = resolved['advancePerGroup']
    if advance > min(sizes):
        raise ConfigurationError(
            f"advancePerGroup ({advance}) exceeds the smallest group size ({min(sizes)})")
    if advance * group_count < 2:
        raise ConfigurationError("The knockout stage needs at least 2 players")


def _require_positive_int(config: Dict, key: str):
    value = config[key]
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigurationError(f"{key} must be a positive integer, got {value!r}")
