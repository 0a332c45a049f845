"""
End-to-end tests against a real relay server on localhost.

Run from project root: python -m pytest tests/test_network -v
"""

import asyncio
import random
import sys
import unittest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import websockets
from websockets.asyncio.client import connect

from client.network.client import RelayClient
from server.network import RelayServer
from shared.enums import MessageType


HOST = "127.0.0.1"
ALLOWED_ORIGIN = "http://localhost:3000"


class RelayServerTestCase(unittest.IsolatedAsyncioTestCase):
    port = 18767

    async def asyncSetUp(self):
        self.server = RelayServer(host=HOST, port=self.port, origins=[ALLOWED_ORIGIN], rng=random.Random(3))
        self.server_task = asyncio.create_task(self.server.start())
        await asyncio.wait_for(self.server.wait_started(), 5)
        self.url = f"ws://{HOST}:{self.port}"
        self.clients: list[RelayClient] = []

    async def asyncTearDown(self):
        for client in self.clients:
            await client.disconnect()
        await self.server.stop()
        await asyncio.wait_for(self.server_task, 5)

    async def new_client(self) -> RelayClient:
        client = RelayClient(self.url)
        self.assertTrue(await client.connect())
        self.clients.append(client)
        return client


class RelayServerIntegrationTest(RelayServerTestCase):

    async def test_two_players_play_and_reset(self):
        alice = await self.new_client()
        bob = await self.new_client()

        await alice.init_session()
        session = await alice.wait_for(MessageType.SESSION_CREATED)
        self.assertEqual(alice.session_id, session["data"]["sessionId"])

        await alice.create_game("Alice")
        created = await alice.wait_for(MessageType.GAME_CREATED)
        game_id = created["data"]["gameId"]
        self.assertEqual(len(game_id), 8)

        await bob.join_game(game_id, "Bob")
        started = await alice.wait_for(MessageType.GAME_STARTED)
        await bob.wait_for(MessageType.GAME_STARTED)
        self.assertEqual(started["data"]["players"], {"1": "Alice", "2": "Bob"})
        self.assertEqual(bob.player_id, 2)

        players = {1: alice, 2: bob}
        current = started["data"]["startingPlayer"]
        await players[current].play(3)
        played = await players[3 - current].wait_for(MessageType.OPPONENT_PLAYED)
        self.assertEqual(played["data"], {"columnIndex": 3, "playedBy": current, "nextPlayer": 3 - current})

        await alice.request_reset_board()
        request = await bob.wait_for(MessageType.RESET_BOARD_REQUESTED)
        self.assertEqual(request["data"]["requestedBy"], "Alice")
        await bob.confirm_reset_board()
        reset = await alice.wait_for(MessageType.BOARD_RESET)
        self.assertEqual(len(reset["data"]["grid"]), 6)

        stats = self.server.get_stats()
        self.assertEqual(stats["games"]["playing"], 1)
        self.assertEqual(stats["connections"]["total_connections"], 2)

    async def test_host_disconnect_notifies_guest(self):
        alice = await self.new_client()
        bob = await self.new_client()

        await alice.create_game("Alice")
        game_id = (await alice.wait_for(MessageType.GAME_CREATED))["data"]["gameId"]
        await bob.join_game(game_id, "Bob")
        await bob.wait_for(MessageType.GAME_STARTED)

        await alice.disconnect()
        await bob.wait_for(MessageType.HOST_LEFT)
        self.assertIsNone(bob.game_id)
        self.assertEqual(self.server.get_stats()["games"]["total_games"], 0)

    async def test_game_waits_for_a_missing_ack(self):
        alice = await self.new_client()
        bob = RelayClient(self.url, auto_ack=False)
        self.assertTrue(await bob.connect())
        self.clients.append(bob)

        await alice.create_game("Alice")
        game_id = (await alice.wait_for(MessageType.GAME_CREATED))["data"]["gameId"]
        await bob.join_game(game_id, "Bob")
        prepare = await bob.wait_for(MessageType.PREPARE_GAME)

        with self.assertRaises(asyncio.TimeoutError):
            await alice.wait_for(MessageType.GAME_STARTED, timeout=0.3)

        await bob.acknowledge(prepare["request_id"])
        await alice.wait_for(MessageType.GAME_STARTED)

    async def test_invalid_frame_gets_error_reply(self):
        alice = await self.new_client()
        await alice._websocket.send("definitely not json")
        error = await alice.wait_for(MessageType.ERROR)
        self.assertEqual(error["data"]["code"], "PARSE_ERROR")


class OriginCheckTest(RelayServerTestCase):
    port = 18768

    async def test_foreign_origin_is_rejected(self):
        with self.assertRaises(websockets.InvalidHandshake):
            async with connect(self.url, origin="http://evil.example"):
                pass

    async def test_allowed_origin_and_missing_origin_are_accepted(self):
        async with connect(self.url, origin=ALLOWED_ORIGIN) as websocket:
            await websocket.send('{"type": "initSession", "data": {}}')
            self.assertIn("sessionCreated", await asyncio.wait_for(websocket.recv(), 5))

        client = await self.new_client()
        self.assertTrue(client.is_connected)


if __name__ == "__main__":
    unittest.main()
