"""
Enumerations used throughout the relay.
"""
from enum import Enum


class GameState(str, Enum):
    """Lifecycle state of a game session."""
    WAITING = "waiting"
    PLAYING = "playing"


class MessageType(str, Enum):
    """Types of messages between client and server."""
    # Session identity
    INIT_SESSION = "initSession"
    SESSION_CREATED = "sessionCreated"

    # Lobby
    CREATE_GAME = "createGame"
    GAME_CREATED = "gameCreated"
    JOIN_GAME = "joinGame"
    GAME_ERROR = "gameError"

    # Rendezvous
    PREPARE_GAME = "prepareGame"
    ACK = "ack"
    GAME_STARTED = "gameStarted"

    # Turns
    MOVE_PLAYED = "movePlayed"
    OPPONENT_PLAYED = "opponentPlayed"

    # Negotiated resets
    REQUEST_RESET_BOARD = "requestResetBoard"
    RESET_BOARD_REQUESTED = "resetBoardRequested"
    CONFIRM_RESET_BOARD = "confirmResetBoard"
    REQUEST_RESET_SCORES = "requestResetScores"
    RESET_SCORES_REQUESTED = "resetScoresRequested"
    CONFIRM_RESET_SCORES = "confirmResetScores"
    REJECT_RESET = "rejectReset"
    RESET_REJECTED = "resetRejected"

    # Unconditional resets. RESET_SCORES is both the unconditional request
    # and the event broadcast after a confirmed score reset.
    RESET_BOARD = "resetBoard"
    BOARD_RESET = "boardReset"
    RESET_SCORES = "resetScores"
    SCORES_RESET = "scoresReset"

    # Departures
    HOST_LEFT = "hostLeft"
    PLAYER_LEFT = "playerLeft"

    # Transport errors
    ERROR = "error"


# Message types a client may send. Every member must have a handler.
INBOUND_MESSAGE_TYPES = frozenset({
    MessageType.INIT_SESSION,
    MessageType.CREATE_GAME,
    MessageType.JOIN_GAME,
    MessageType.ACK,
    MessageType.MOVE_PLAYED,
    MessageType.REQUEST_RESET_BOARD,
    MessageType.CONFIRM_RESET_BOARD,
    MessageType.REQUEST_RESET_SCORES,
    MessageType.CONFIRM_RESET_SCORES,
    MessageType.REJECT_RESET,
    MessageType.RESET_BOARD,
    MessageType.RESET_SCORES,
})
