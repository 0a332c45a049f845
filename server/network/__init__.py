"""
Network layer for the Connect Four relay server.

Provides the WebSocket server, connection and room management, and the
session, membership, turn, reset and disconnect protocols.
"""

from server.network.connection_manager import ClientConnection, ConnectionLostError, ConnectionManager
from server.network.session_registry import SessionRegistry
from server.network.rendezvous import AcknowledgementBarrier
from server.network.membership import MembershipProtocol, Rendezvous
from server.network.turns import TurnCoordinator
from server.network.resets import ResetNegotiationProtocol
from server.network.disconnects import DisconnectHandler
from server.network.message_handler import MessageHandler
from server.network.server import RelayServer, run_server


__all__ = [
    "ClientConnection",
    "ConnectionLostError",
    "ConnectionManager",
    "SessionRegistry",
    "AcknowledgementBarrier",
    "MembershipProtocol",
    "Rendezvous",
    "TurnCoordinator",
    "ResetNegotiationProtocol",
    "DisconnectHandler",
    "MessageHandler",
    "RelayServer",
    "run_server",
]
