"""
Message protocol for client-server communication.

All messages are JSON objects with a "type" field, an optional "data" field
and an optional "request_id" used to match acknowledgements to requests.
"""

from dataclasses import dataclass, field
from typing import Any
import json

from shared.enums import MessageType


class UnknownMessageTypeError(ValueError):
    """Raised when a frame names a message type the protocol does not define."""

    def __init__(self, type_name: Any):
        super().__init__(f"Unknown message type: {type_name}")
        self.type_name = type_name


@dataclass
class Message:
    """Base message structure for all client-server communication."""
    type: MessageType
    data: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None  # Optional, for matching acks to requests

    def to_json(self) -> str:
        """Serialize message to JSON string."""
        return json.dumps(self.to_dict())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "data": self.data,
            "request_id": self.request_id,
        }

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        """Deserialize message from JSON string."""
        raw = json.loads(json_str)
        if not isinstance(raw, dict):
            raise ValueError("Message must be a JSON object")
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict) -> "Message":
        """Create message from dictionary."""
        try:
            message_type = MessageType(raw["type"])
        except ValueError:
            raise UnknownMessageTypeError(raw["type"]) from None
        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("Message data must be a JSON object")
        # Only string ids can match an outstanding request
        request_id = raw.get("request_id")
        if not isinstance(request_id, str):
            request_id = None
        return cls(
            type=message_type,
            data=data,
            request_id=request_id,
        )


@dataclass
class ErrorMessage(Message):
    """Transport-level error (unparseable frame, unknown type)."""
    type: MessageType = MessageType.ERROR

    @classmethod
    def create(cls, message: str, code: str = "ERROR", request_id: str | None = None) -> "ErrorMessage":
        """Create an error message."""
        return cls(
            data={"message": message, "code": code},
            request_id=request_id,
        )


# =============================================================================
# Requests (Client -> Server)
# =============================================================================

@dataclass
class InitSessionRequest(Message):
    """Bind or request a session identity for this connection."""
    type: MessageType = MessageType.INIT_SESSION

    @classmethod
    def create(cls, session_id: str | None = None) -> "InitSessionRequest":
        data = {}
        if session_id:
            data["sessionId"] = session_id
        return cls(data=data)


@dataclass
class CreateGameRequest(Message):
    """Request to create a new game."""
    type: MessageType = MessageType.CREATE_GAME

    @classmethod
    def create(cls, player_name: str) -> "CreateGameRequest":
        return cls(data={"playerName": player_name})


@dataclass
class JoinGameRequest(Message):
    """Request to join an existing game."""
    type: MessageType = MessageType.JOIN_GAME

    @classmethod
    def create(cls, game_id: str, player_name: str) -> "JoinGameRequest":
        return cls(data={"gameId": game_id, "playerName": player_name})


@dataclass
class AckMessage(Message):
    """Acknowledges a server message that carried a request_id."""
    type: MessageType = MessageType.ACK

    @classmethod
    def create(cls, request_id: str) -> "AckMessage":
        return cls(request_id=request_id)


@dataclass
class MovePlayedRequest(Message):
    """A disc dropped into a column."""
    type: MessageType = MessageType.MOVE_PLAYED

    @classmethod
    def create(cls, game_id: str, column_index: int) -> "MovePlayedRequest":
        return cls(data={"gameId": game_id, "columnIndex": column_index})


def game_request(message_type: MessageType, game_id: str) -> Message:
    """Build one of the reset requests, which only carry the game id."""
    return Message(type=message_type, data={"gameId": game_id})


# =============================================================================
# Events (Server -> Client)
# =============================================================================

@dataclass
class SessionCreatedMessage(Message):
    """A freshly generated session identity for the client to keep."""
    type: MessageType = MessageType.SESSION_CREATED

    @classmethod
    def create(cls, session_id: str) -> "SessionCreatedMessage":
        return cls(data={"sessionId": session_id})


@dataclass
class GameCreatedMessage(Message):
    """Sent only to the creator of a game."""
    type: MessageType = MessageType.GAME_CREATED

    @classmethod
    def create(cls, game_id: str, player_id: int, player_name: str) -> "GameCreatedMessage":
        return cls(data={
            "gameId": game_id,
            "playerId": player_id,
            "playerName": player_name,
        })


@dataclass
class GameErrorMessage(Message):
    """A create/join validation failure, sent only to the initiator."""
    type: MessageType = MessageType.GAME_ERROR

    @classmethod
    def create(cls, message: str, code: str) -> "GameErrorMessage":
        return cls(data={"message": message, "code": code})


@dataclass
class PrepareGameMessage(Message):
    """First phase of the join rendezvous. Must be acknowledged."""
    type: MessageType = MessageType.PREPARE_GAME

    @classmethod
    def create(
        cls,
        game_id: str,
        player_id: int,
        player_name: str,
        opponent_name: str,
        request_id: str
    ) -> "PrepareGameMessage":
        return cls(
            data={
                "gameId": game_id,
                "playerId": player_id,
                "playerName": player_name,
                "opponentName": opponent_name,
            },
            request_id=request_id,
        )


@dataclass
class GameStartedMessage(Message):
    """Broadcast once both players acknowledged prepareGame."""
    type: MessageType = MessageType.GAME_STARTED

    @classmethod
    def create(cls, starting_player: int, host_name: str, guest_name: str) -> "GameStartedMessage":
        return cls(data={
            "startingPlayer": starting_player,
            "players": {"1": host_name, "2": guest_name},
        })


@dataclass
class OpponentPlayedMessage(Message):
    """Broadcast to both players after an accepted move."""
    type: MessageType = MessageType.OPPONENT_PLAYED

    @classmethod
    def create(cls, column_index: Any, played_by: int, next_player: int) -> "OpponentPlayedMessage":
        return cls(data={
            "columnIndex": column_index,
            "playedBy": played_by,
            "nextPlayer": next_player,
        })


@dataclass
class ResetRequestedMessage(Message):
    """Asks the other player to confirm a board or score reset."""
    type: MessageType = MessageType.RESET_BOARD_REQUESTED

    @classmethod
    def create(cls, message_type: MessageType, requested_by: str) -> "ResetRequestedMessage":
        return cls(type=message_type, data={"requestedBy": requested_by})


@dataclass
class BoardResetMessage(Message):
    """Board cleared. The unconditional path carries no payload."""
    type: MessageType = MessageType.BOARD_RESET

    @classmethod
    def create(cls, starting_player: int | None = None, grid: list[list[int]] | None = None) -> "BoardResetMessage":
        if grid is None:
            return cls()
        return cls(data={"startingPlayer": starting_player, "grid": grid})


@dataclass
class ResetRejectedMessage(Message):
    type: MessageType = MessageType.RESET_REJECTED

    @classmethod
    def create(cls, rejected_by: str) -> "ResetRejectedMessage":
        return cls(data={"rejectedBy": rejected_by})


@dataclass
class PlayerLeftMessage(Message):
    """Tells the host that the guest's connection dropped."""
    type: MessageType = MessageType.PLAYER_LEFT

    @classmethod
    def create(cls, player_name: str) -> "PlayerLeftMessage":
        return cls(data={"playerName": player_name})


# =============================================================================
# Helper function for parsing incoming messages
# =============================================================================

def parse_message(json_str: str | bytes) -> Message:
    """
    Parse a JSON frame into a Message.

    Raises UnknownMessageTypeError for a type outside MessageType and
    ValueError (including json.JSONDecodeError) for malformed frames.
    """
    return Message.from_json(json_str)
