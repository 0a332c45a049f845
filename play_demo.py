#!/usr/bin/env python3
"""
Scripted two-player session against a running relay server.

Walks through the full flow: sessions, create, join, a few moves,
a negotiated board reset and a disconnect.

Usage:
    python play_demo.py [--host localhost] [--port 4000]
"""

import argparse
import asyncio
import sys

from client.network.client import RelayClient
from shared.enums import MessageType


def show(name: str, event: dict) -> None:
    print(f"[{name}] → {event.get('type')}: {event.get('data')}")


async def run_demo(url: str) -> bool:
    print("=" * 60)
    print("CONNECT FOUR RELAY DEMO")
    print("=" * 60)

    alice = RelayClient(url)
    bob = RelayClient(url)

    try:
        print("\n[STEP 1] Connecting players...")
        if not (await alice.connect() and await bob.connect()):
            print("✗ Could not connect to the server")
            return False
        await alice.init_session()
        await bob.init_session()
        show("Alice", await alice.wait_for(MessageType.SESSION_CREATED))
        show("Bob", await bob.wait_for(MessageType.SESSION_CREATED))

        print("\n[STEP 2] Alice creates a game...")
        await alice.create_game("Alice")
        created = await alice.wait_for(MessageType.GAME_CREATED)
        show("Alice", created)
        game_id = created["data"]["gameId"]

        print("\n[STEP 3] Bob joins...")
        await bob.join_game(game_id, "Bob")
        show("Bob", await bob.wait_for(MessageType.PREPARE_GAME))
        started = await alice.wait_for(MessageType.GAME_STARTED)
        await bob.wait_for(MessageType.GAME_STARTED)
        show("Alice", started)

        print("\n[STEP 4] Playing some turns...")
        players = {1: alice, 2: bob}
        current = started["data"]["startingPlayer"]
        for column in (3, 3, 4, 2):
            mover = players[current]
            await mover.play(column)
            played = await alice.wait_for(MessageType.OPPONENT_PLAYED)
            await bob.wait_for(MessageType.OPPONENT_PLAYED)
            show("Alice", played)
            current = played["data"]["nextPlayer"]

        print("\n[STEP 5] Negotiated board reset...")
        await alice.request_reset_board()
        show("Bob", await bob.wait_for(MessageType.RESET_BOARD_REQUESTED))
        await bob.confirm_reset_board()
        reset = await alice.wait_for(MessageType.BOARD_RESET)
        print(f"[Alice] → boardReset: player {reset['data']['startingPlayer']} starts")

        print("\n[STEP 6] Bob leaves...")
        await bob.disconnect()
        show("Alice", await alice.wait_for(MessageType.PLAYER_LEFT))

        print("\n✓ Demo finished")
        return True

    except asyncio.TimeoutError:
        print("✗ Timed out waiting for the server")
        return False
    finally:
        await alice.disconnect()
        await bob.disconnect()


def main() -> None:
    parser = argparse.ArgumentParser(description="Two-player relay demo")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=4000)
    args = parser.parse_args()

    success = asyncio.run(run_demo(f"ws://{args.host}:{args.port}"))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
