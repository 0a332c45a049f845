"""
WebSocket server for the Connect Four relay.

Main entry point that ties together connection management, the game
directory and message handling.
"""

import asyncio
import logging
import random
import signal
from typing import Any, Callable

import websockets
from websockets.asyncio.server import ServerConnection, serve

from server.config import settings
from server.game import GameDirectory
from server.network.connection_manager import ConnectionManager
from server.network.disconnects import DisconnectHandler
from server.network.membership import MembershipProtocol
from server.network.message_handler import MessageHandler
from server.network.resets import ResetNegotiationProtocol
from server.network.session_registry import SessionRegistry
from server.network.turns import TurnCoordinator


logger = logging.getLogger(__name__)


class RelayServer:
    """
    WebSocket server relaying Connect Four games between two players.

    All game state lives in the registries built here and is lost when the
    process stops.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        origins: list[str] | None = None,
        id_factory: Callable[[], str] | None = None,
        rng: random.Random | None = None
    ):
        self.host = host or settings.HOST
        self.port = port if port is not None else settings.PORT
        self.origins = origins if origins is not None else settings.ALLOWED_ORIGINS

        rng = rng or random.Random()

        # Initialize registries
        self._connections = ConnectionManager()
        self._sessions = SessionRegistry(id_factory)
        self._games = GameDirectory(id_factory)

        # Initialize protocol components
        self._handler = MessageHandler(
            self._connections,
            self._sessions,
            MembershipProtocol(self._games, self._connections, self._sessions, rng),
            TurnCoordinator(self._games, self._connections),
            ResetNegotiationProtocol(self._games, self._connections, rng),
            DisconnectHandler(self._games, self._connections, self._sessions),
        )

        # Server state
        self._server = None
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._started_event = asyncio.Event()

    @property
    def handler(self) -> MessageHandler:
        return self._handler

    async def start(self) -> None:
        """Start the WebSocket server and serve until stop() is called."""
        self._running = True
        self._shutdown_event.clear()

        # None admits clients that send no Origin header (non-browser clients)
        origins = [*self.origins, None] if self.origins else None

        self._server = await serve(
            self._handle_client,
            self.host,
            self.port,
            origins=origins,
            ping_interval=settings.PING_INTERVAL,
            ping_timeout=settings.PING_TIMEOUT,
        )
        self._started_event.set()

        logger.info(f"Relay server started on ws://{self.host}:{self.port}")

        # Wait for shutdown signal
        await self._shutdown_event.wait()

    async def wait_started(self) -> None:
        await self._started_event.wait()

    async def stop(self) -> None:
        """Stop the server gracefully."""
        logger.info("Shutting down server...")
        self._running = False

        if self._server:
            self._server.close()
            await self._server.wait_closed()

        await self._handler.cancel_background()

        self._shutdown_event.set()
        logger.info("Server stopped")

    def request_shutdown(self) -> None:
        """Request server shutdown (can be called from signal handler)."""
        asyncio.create_task(self.stop())

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """Handle a client connection until it closes."""
        connection = self._connections.connect(websocket)
        connection_id = connection.connection_id

        try:
            async for raw_message in websocket:
                if not self._running:
                    break

                await self._handle_message(connection_id, raw_message)

        except websockets.ConnectionClosed:
            logger.debug(f"Connection closed for {connection_id}")
        except Exception as e:
            logger.exception(f"Error handling client {connection_id}: {e}")
        finally:
            await self._handler.handle_disconnect(connection_id)

    async def _handle_message(self, connection_id: str, raw_message: str | bytes) -> None:
        """Handle an incoming frame from a connection."""
        try:
            await self._handler.handle_message(connection_id, raw_message)
        except Exception as e:
            # Nothing is sent back: the client gets no reply for a failed handler
            logger.exception(f"Error handling message from {connection_id}: {e}")

    def get_stats(self) -> dict[str, Any]:
        """Get server statistics."""
        return {
            "running": self._running,
            "connections": self._connections.get_stats(),
            "sessions": len(self._sessions),
            "games": self._games.get_stats(),
            "pending_rendezvous": self._handler.pending_rendezvous,
        }


async def run_server(host: str | None = None, port: int | None = None) -> None:
    """
    Run the relay server.

    Sets up signal handlers for graceful shutdown.
    """
    server = RelayServer(host, port)

    # Set up signal handlers
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.request_shutdown)

    try:
        await server.start()
    finally:
        # Clean up signal handlers
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)


def main():
    """Entry point for running the server."""
    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print(f"Starting relay server on ws://{settings.HOST}:{settings.PORT}")
    print("Press Ctrl+C to stop")

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nServer stopped")


if __name__ == "__main__":
    main()
