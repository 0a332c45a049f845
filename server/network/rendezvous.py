"""
Acknowledgement barrier used by the join rendezvous.
"""

import asyncio
import logging
import uuid

from server.network.connection_manager import ConnectionLostError, ConnectionManager


logger = logging.getLogger(__name__)


class AcknowledgementBarrier:
    """
    Waits for a fixed set of acknowledgements.

    Register every expected acknowledgement with expect() before sending the
    messages that ask for them. There is no timeout.
    """

    def __init__(self, connections: ConnectionManager):
        self._connections = connections
        # request_id -> future
        self._futures: dict[str, asyncio.Future] = {}

    def expect(self, connection_id: str) -> str:
        """Register an acknowledgement owed by a connection and return its request id."""
        request_id = str(uuid.uuid4())
        self._futures[request_id] = self._connections.expect_ack(connection_id, request_id)
        return request_id

    @property
    def pending(self) -> int:
        return sum(1 for future in self._futures.values() if not future.done())

    async def wait(self) -> bool:
        """
        Wait until every expected acknowledgement arrived.

        Returns:
            True once all arrived, False if a connection dropped first
        """
        try:
            await asyncio.gather(*self._futures.values())
            return True
        except ConnectionLostError as e:
            logger.info(f"Rendezvous broken: {e}")
            for request_id in self._futures:
                self._connections.discard_ack(request_id)
            return False
