"""
Validation for creating and joining games.

Checks run in a fixed order and the first failure wins, since which error a
player sees is part of the protocol.
"""
from dataclasses import dataclass
from typing import Any

from shared.constants import NAME_MAX_LENGTH, NAME_MIN_LENGTH

from .errors import ErrorKind
from .session import GameSession


@dataclass
class ValidationResult:
    """Result of validating a request."""
    valid: bool
    error: ErrorKind | None = None
    message: str = ""

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failure(cls, error: ErrorKind, game_id: str | None = None) -> "ValidationResult":
        return cls(valid=False, error=error, message=error.describe(game_id))


def normalize_name(raw: Any) -> str:
    """Trim a player name. Anything that is not a string counts as empty."""
    if not isinstance(raw, str):
        return ""
    return raw.strip()


def validate_player_name(name: str) -> ValidationResult:
    """Validate an already trimmed player name."""
    if not name:
        return ValidationResult.failure(ErrorKind.EMPTY_USERNAME)

    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return ValidationResult.failure(ErrorKind.INVALID_USERNAME)

    return ValidationResult.success()


def validate_create(name: str) -> ValidationResult:
    """Validate a createGame request."""
    return validate_player_name(name)


def validate_join(
    session: GameSession | None,
    game_id: str | None,
    name: str,
    connection_id: str
) -> ValidationResult:
    """Validate a joinGame request against the target session."""
    if session is None:
        return ValidationResult.failure(ErrorKind.GAME_NOT_FOUND, game_id)

    if session.is_full:
        return ValidationResult.failure(ErrorKind.GAME_FULL)

    if not session.players:
        return ValidationResult.failure(ErrorKind.NOT_ENOUGH_PLAYER)

    result = validate_player_name(name)
    if not result.valid:
        return result

    if session.has_name(name):
        return ValidationResult.failure(ErrorKind.USERNAME_ALREADY_USED)

    if session.player_number(connection_id) is not None:
        return ValidationResult.failure(ErrorKind.ALREADY_JOINED)

    return ValidationResult.success()
