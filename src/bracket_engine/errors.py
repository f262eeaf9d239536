"""
Exceptions raised by the tournament engine.

Every failure is an EngineError subclass so callers can catch the whole
family with one except clause.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""


class ConfigurationError(EngineError):
    """Raised when format, config and players cannot produce a match graph."""


class InvalidScore(EngineError):
    """Raised for equal, negative or non-integer scores."""


class UnknownMatch(EngineError):
    """Raised when a match id is not present in the graph."""

    def __init__(self, match_id):
        super().__init__(f"Unknown match: {match_id}")
        self.match_id = match_id


class IllegalTransition(EngineError):
    """Raised when an operation is not allowed in the current state."""


class InconsistentGraph(EngineError):
    """Raised when forward links are dangling or form a cycle."""
