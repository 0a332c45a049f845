"""
Tests for the relay's network building blocks: the message protocol,
connection and room management, session identities, the acknowledgement
barrier and message dispatch.

Run from project root: python -m pytest tests/test_network -v
"""

import asyncio
import json
import sys
import unittest
from unittest import mock
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from network_harness import MockWebSocket, RelayHarness, counter_ids

from server.network import (
    AcknowledgementBarrier,
    ConnectionLostError,
    ConnectionManager,
    MessageHandler,
    SessionRegistry,
)
from shared.enums import INBOUND_MESSAGE_TYPES, MessageType
from shared.protocol import (
    BoardResetMessage,
    ErrorMessage,
    GameStartedMessage,
    Message,
    PrepareGameMessage,
    UnknownMessageTypeError,
    parse_message,
)


class ProtocolTest(unittest.TestCase):

    def test_parse_message(self):
        msg = parse_message(json.dumps({
            "type": "movePlayed",
            "data": {"gameId": "g", "columnIndex": 3},
            "request_id": "req-1",
        }))
        self.assertEqual(msg.type, MessageType.MOVE_PLAYED)
        self.assertEqual(msg.data["columnIndex"], 3)
        self.assertEqual(msg.request_id, "req-1")

    def test_missing_data_defaults_to_empty(self):
        msg = parse_message('{"type": "ack", "request_id": "r"}')
        self.assertEqual(msg.data, {})

    def test_unknown_type(self):
        with self.assertRaises(UnknownMessageTypeError):
            parse_message('{"type": "rollDice"}')

    def test_malformed_frames(self):
        for frame in ("not json", "[1, 2]", '{"type": "ack", "data": [1]}'):
            with self.subTest(frame=frame):
                with self.assertRaises(ValueError):
                    parse_message(frame)

    def test_non_string_request_id_is_dropped(self):
        for request_id in (["x"], {"a": 1}, 7):
            with self.subTest(request_id=request_id):
                msg = parse_message(json.dumps({"type": "ack", "request_id": request_id}))
                self.assertIsNone(msg.request_id)

    def test_wire_format(self):
        wire = json.loads(PrepareGameMessage.create("g1", 2, "Bob", "Alice", "req-9").to_json())
        self.assertEqual(wire, {
            "type": "prepareGame",
            "data": {"gameId": "g1", "playerId": 2, "playerName": "Bob", "opponentName": "Alice"},
            "request_id": "req-9",
        })

    def test_game_started_players_mapping(self):
        msg = GameStartedMessage.create(2, "Alice", "Bob")
        self.assertEqual(msg.data, {"startingPlayer": 2, "players": {"1": "Alice", "2": "Bob"}})

    def test_board_reset_payloads(self):
        self.assertEqual(BoardResetMessage.create().data, {})
        self.assertEqual(BoardResetMessage.create(1, [[0]]).data, {"startingPlayer": 1, "grid": [[0]]})


class ConnectionManagerTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.cm = ConnectionManager(id_factory=counter_ids("conn"))
        self.ws1 = MockWebSocket("ws1")
        self.ws2 = MockWebSocket("ws2")
        self.c1 = self.cm.connect(self.ws1).connection_id
        self.c2 = self.cm.connect(self.ws2).connection_id

    async def test_connect_assigns_ids(self):
        self.assertNotEqual(self.c1, self.c2)
        self.assertTrue(self.cm.is_connected(self.c1))
        self.assertIs(self.cm.get_connection(self.c2).websocket, self.ws2)

    async def test_send_to(self):
        msg = Message(type=MessageType.HOST_LEFT)
        self.assertTrue(await self.cm.send_to(self.c1, msg))
        self.assertEqual(self.ws1.get_messages()[0]["type"], "hostLeft")
        self.assertFalse(await self.cm.send_to("nobody", msg))

    async def test_broadcast_to_room_with_exclusion(self):
        self.cm.join_room(self.c1, "room")
        self.cm.join_room(self.c2, "room")
        msg = Message(type=MessageType.SCORES_RESET)

        self.assertEqual(await self.cm.broadcast("room", msg), 2)
        self.assertEqual(await self.cm.broadcast("room", msg, exclude_connection_id=self.c1), 1)
        self.assertEqual(len(self.ws1.sent_messages), 1)
        self.assertEqual(len(self.ws2.sent_messages), 2)

    async def test_broadcast_survives_a_dead_socket(self):
        self.cm.join_room(self.c1, "room")
        self.cm.join_room(self.c2, "room")
        await self.ws1.close()

        sent = await self.cm.broadcast("room", Message(type=MessageType.SCORES_RESET))
        self.assertEqual(sent, 1)
        self.assertEqual(len(self.ws2.sent_messages), 1)

    async def test_leave_room_and_empty_rooms_vanish(self):
        self.cm.join_room(self.c1, "room")
        self.cm.leave_room(self.c1, "room")
        self.assertEqual(self.cm.get_room_members("room"), set())
        self.assertEqual(self.cm.get_stats()["active_rooms"], 0)

    async def test_join_room_unknown_connection(self):
        self.assertFalse(self.cm.join_room("nobody", "room"))

    async def test_disconnect_leaves_rooms(self):
        self.cm.join_room(self.c1, "room")
        self.cm.join_room(self.c2, "room")
        self.cm.disconnect(self.c1)
        self.assertEqual(self.cm.get_room_members("room"), {self.c2})
        self.assertFalse(self.cm.is_connected(self.c1))
        self.assertIsNone(self.cm.disconnect(self.c1))

    async def test_ack_resolves_only_for_owner(self):
        future = self.cm.expect_ack(self.c1, "req-1")
        self.assertFalse(self.cm.acknowledge(self.c2, "req-1"))
        self.assertFalse(future.done())
        self.assertTrue(self.cm.acknowledge(self.c1, "req-1"))
        self.assertTrue(future.done())
        self.assertEqual(self.cm.pending_ack_count, 0)

    async def test_unknown_ack_is_ignored(self):
        self.assertFalse(self.cm.acknowledge(self.c1, "never-sent"))
        self.assertFalse(self.cm.acknowledge(self.c1, None))

    async def test_disconnect_fails_pending_acks(self):
        future = self.cm.expect_ack(self.c1, "req-1")
        self.cm.disconnect(self.c1)
        with self.assertRaises(ConnectionLostError):
            await future
        self.assertEqual(self.cm.pending_ack_count, 0)

    async def test_expect_ack_from_gone_connection_fails_immediately(self):
        future = self.cm.expect_ack("nobody", "req-1")
        with self.assertRaises(ConnectionLostError):
            await future


class SessionRegistryTest(unittest.TestCase):

    def setUp(self):
        self.registry = SessionRegistry(id_factory=counter_ids("sess"))

    def test_supplied_session_id_is_bound(self):
        self.assertIsNone(self.registry.init_session("c1", "my-session"))
        self.assertEqual(self.registry.get("c1"), "my-session")

    def test_generated_session_id_is_returned(self):
        session_id = self.registry.init_session("c1")
        self.assertTrue(session_id.startswith("sess0001"))
        self.assertEqual(self.registry.get("c1"), session_id)

    def test_init_again_rebinds(self):
        self.registry.init_session("c1")
        self.registry.init_session("c1", "other")
        self.assertEqual(self.registry.get("c1"), "other")
        self.assertEqual(len(self.registry), 1)

    def test_remove(self):
        self.registry.init_session("c1", "s")
        self.assertEqual(self.registry.remove("c1"), "s")
        self.assertIsNone(self.registry.get("c1"))


class AcknowledgementBarrierTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.cm = ConnectionManager(id_factory=counter_ids("conn"))
        self.c1 = self.cm.connect(MockWebSocket("ws1")).connection_id
        self.c2 = self.cm.connect(MockWebSocket("ws2")).connection_id

    async def test_waits_for_every_ack(self):
        barrier = AcknowledgementBarrier(self.cm)
        r1 = barrier.expect(self.c1)
        r2 = barrier.expect(self.c2)
        waiter = asyncio.create_task(barrier.wait())

        self.cm.acknowledge(self.c1, r1)
        await asyncio.sleep(0)
        self.assertFalse(waiter.done())
        self.assertEqual(barrier.pending, 1)

        self.cm.acknowledge(self.c2, r2)
        self.assertTrue(await waiter)

    async def test_broken_by_disconnect(self):
        barrier = AcknowledgementBarrier(self.cm)
        r1 = barrier.expect(self.c1)
        barrier.expect(self.c2)
        self.cm.acknowledge(self.c1, r1)

        waiter = asyncio.create_task(barrier.wait())
        await asyncio.sleep(0)
        self.cm.disconnect(self.c2)

        self.assertFalse(await waiter)
        self.assertEqual(self.cm.pending_ack_count, 0)


class MessageHandlerTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.relay = RelayHarness()
        self.conn, self.ws = self.relay.connect()

    async def test_every_inbound_type_has_a_handler(self):
        self.assertEqual(self.relay.handler.handled_types, INBOUND_MESSAGE_TYPES)

    async def test_incomplete_dispatch_table_is_refused(self):
        with mock.patch(
            "server.network.message_handler.INBOUND_MESSAGE_TYPES",
            INBOUND_MESSAGE_TYPES | {MessageType.GAME_STARTED},
        ):
            with self.assertRaises(RuntimeError):
                MessageHandler(
                    self.relay.connections,
                    self.relay.sessions,
                    self.relay.membership,
                    self.relay.turns,
                    self.relay.resets,
                    self.relay.disconnects,
                )

    async def test_invalid_json(self):
        await self.relay.handler.handle_message(self.conn, "not valid json")
        reply = self.ws.get_messages()[0]
        self.assertEqual(reply["type"], MessageType.ERROR.value)
        self.assertEqual(reply["data"]["code"], "PARSE_ERROR")

    async def test_unknown_message_type(self):
        await self.relay.handler.handle_message(self.conn, '{"type": "rollDice", "data": {}}')
        self.assertEqual(self.ws.get_messages()[0]["data"]["code"], "UNKNOWN_MESSAGE_TYPE")

    async def test_outbound_type_sent_by_client(self):
        await self.relay.send(self.conn, MessageType.GAME_STARTED, request_id="r1")
        reply = self.ws.get_messages()[0]
        self.assertEqual(reply["data"]["code"], "UNKNOWN_MESSAGE_TYPE")
        self.assertEqual(reply["request_id"], "r1")

    async def test_init_session_without_id_creates_one(self):
        await self.relay.send(self.conn, MessageType.INIT_SESSION)
        reply = self.ws.get_messages()[0]
        self.assertEqual(reply["type"], MessageType.SESSION_CREATED.value)
        self.assertEqual(self.relay.sessions.get(self.conn), reply["data"]["sessionId"])

    async def test_init_session_with_id_is_silent(self):
        await self.relay.send(self.conn, MessageType.INIT_SESSION, {"sessionId": "kept"})
        self.assertEqual(self.ws.sent_messages, [])
        self.assertEqual(self.relay.sessions.get(self.conn), "kept")

    async def test_accepts_message_objects(self):
        await self.relay.handler.handle_message(self.conn, Message(type=MessageType.INIT_SESSION))
        self.assertEqual(self.ws.types(), [MessageType.SESSION_CREATED.value])

    async def test_ack_with_list_request_id_is_ignored(self):
        future = self.relay.connections.expect_ack(self.conn, "req-1")
        await self.relay.handler.handle_message(self.conn, '{"type": "ack", "request_id": ["req-1"]}')

        self.assertFalse(future.done())
        self.assertEqual(self.ws.sent_messages, [])
        self.relay.connections.discard_ack("req-1")

    async def test_error_message_shape(self):
        err = ErrorMessage.create("bad", "PARSE_ERROR", "req-1")
        self.assertEqual(err.to_dict()["data"], {"message": "bad", "code": "PARSE_ERROR"})


if __name__ == "__main__":
    unittest.main()
