"""
Error kinds reported to players, and the one failure raised instead.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Why a create or join request was refused."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    GAME_FULL = "GAME_FULL"
    NOT_ENOUGH_PLAYER = "NOT_ENOUGH_PLAYER"
    INVALID_USERNAME = "INVALID_USERNAME"
    EMPTY_USERNAME = "EMPTY_USERNAME"
    USERNAME_ALREADY_USED = "USERNAME_ALREADY_USED"
    ALREADY_JOINED = "ALREADY_JOINED"

    def describe(self, game_id: str | None = None) -> str:
        """Human-readable message for this error."""
        if self is ErrorKind.GAME_NOT_FOUND:
            return f'Game "{game_id}" was not found'
        return _MESSAGES[self]


_MESSAGES = {
    ErrorKind.GAME_FULL: "The game is full",
    ErrorKind.NOT_ENOUGH_PLAYER: "Not enough players (2 players needed)",
    ErrorKind.INVALID_USERNAME: "The username must be between 3 and 20 characters",
    ErrorKind.EMPTY_USERNAME: "The username cannot be empty",
    ErrorKind.USERNAME_ALREADY_USED: "This username is already used in the game",
    ErrorKind.ALREADY_JOINED: "You are already in this game",
}


class GameNotFoundError(LookupError):
    """A move was sent for a game id that does not exist."""

    def __init__(self, game_id: str | None):
        super().__init__(ErrorKind.GAME_NOT_FOUND.describe(game_id))
        self.game_id = game_id
        self.kind = ErrorKind.GAME_NOT_FOUND
