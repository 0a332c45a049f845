"""
Game session package.
"""
from .errors import ErrorKind, GameNotFoundError
from .session import GameSession, Player, new_grid
from .directory import GameDirectory
from .validation import (
    ValidationResult,
    normalize_name,
    validate_create,
    validate_join,
    validate_player_name,
)

__all__ = [
    "ErrorKind",
    "GameNotFoundError",
    "GameSession",
    "Player",
    "new_grid",
    "GameDirectory",
    "ValidationResult",
    "normalize_name",
    "validate_create",
    "validate_join",
    "validate_player_name",
]
