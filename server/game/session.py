"""
Game session state.

A GameSession is the authoritative record of one match between a host
(players[0]) and a guest (players[1]). Player numbers are index + 1.
"""
from dataclasses import dataclass, field

from shared.constants import EMPTY_CELL, GRID_COLUMNS, GRID_ROWS, MAX_PLAYERS
from shared.enums import GameState


def new_grid() -> list[list[int]]:
    """Return an empty 6x7 grid."""
    return [[EMPTY_CELL] * GRID_COLUMNS for _ in range(GRID_ROWS)]


@dataclass
class Player:
    """A participant bound to one live connection."""
    connection_id: str
    name: str
    session_id: str | None = None


@dataclass
class GameSession:
    """Represents one match."""

    id: str
    players: list[Player] = field(default_factory=list)
    current_player: int | None = None
    state: GameState = GameState.WAITING
    grid: list[list[int]] | None = None

    @property
    def host(self) -> Player | None:
        return self.players[0] if self.players else None

    @property
    def guest(self) -> Player | None:
        return self.players[1] if len(self.players) > 1 else None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    def player_number(self, connection_id: str) -> int | None:
        """1 for the host, 2 for the guest, None for a non-member."""
        for index, player in enumerate(self.players):
            if player.connection_id == connection_id:
                return index + 1
        return None

    def get_player(self, connection_id: str) -> Player | None:
        for player in self.players:
            if player.connection_id == connection_id:
                return player
        return None

    def other_player(self, connection_id: str) -> Player | None:
        """The first member that is not on this connection."""
        for player in self.players:
            if player.connection_id != connection_id:
                return player
        return None

    def has_name(self, name: str) -> bool:
        """Case-insensitive name lookup."""
        folded = name.casefold()
        return any(player.name.casefold() == folded for player in self.players)

    def add_player(self, player: Player) -> int:
        """Append a player and return their player number."""
        self.players.append(player)
        return len(self.players)
