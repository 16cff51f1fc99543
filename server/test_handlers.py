"""
Test suite for WebSocket message handlers.

Tests the frame -> engine -> delivery path using mock WebSockets.

Run with: pytest test_handlers.py -v
"""

import asyncio
import json

import pytest

from engine import GameEngine
from game import Card, Color, Face, GameOptions
from handlers import ConnectionContext, handle_disconnect, handle_message
from room import RoomManager


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def last_message(self) -> dict:
        return self.messages[-1] if self.messages else {}

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


def make_ctx(connection_id="conn_1"):
    return ConnectionContext(websocket=MockWebSocket(), connection_id=connection_id)


def make_engine():
    return GameEngine(RoomManager(seed=3, options_factory=GameOptions))


async def send(ctx, engine, **payload):
    await handle_message(json.dumps(payload), ctx, engine=engine)


async def seat_two(engine):
    alice = make_ctx("conn_a")
    bob = make_ctx("conn_b")
    await send(alice, engine, type="join", roomId="lobby", name="Alice")
    await send(bob, engine, type="join", roomId="lobby", name="Bob")
    return alice, bob


# =============================================================================
# Join flow
# =============================================================================

class TestJoinFlow:

    @pytest.mark.asyncio
    async def test_join_sends_state(self):
        engine = make_engine()
        ctx = make_ctx()
        await send(ctx, engine, type="join", roomId="lobby", name="Alice")

        msg = ctx.websocket.last_message()
        assert msg["type"] == "state"
        assert msg["data"]["phase"] == "waiting"
        assert ctx.player_id is not None
        assert ctx.current_room.code == "lobby"

    @pytest.mark.asyncio
    async def test_second_join_notifies_both(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)

        assert len(alice.websocket.messages_of_type("state")) == 2
        assert len(bob.websocket.messages_of_type("state")) == 1
        assert alice.websocket.last_message()["data"]["phase"] == "playing"
        assert bob.websocket.last_message()["data"]["phase"] == "playing"

    @pytest.mark.asyncio
    async def test_full_room_error(self):
        engine = make_engine()
        await seat_two(engine)
        carol = make_ctx("conn_c")
        await send(carol, engine, type="join", roomId="lobby", name="Carol")

        assert carol.websocket.messages == [
            {"type": "error", "message": "Room is full (2 players max)."}
        ]
        assert carol.player_id is None

    @pytest.mark.asyncio
    async def test_missing_name_error(self):
        engine = make_engine()
        ctx = make_ctx()
        await send(ctx, engine, type="join", roomId="lobby")

        assert ctx.websocket.last_message() == {
            "type": "error",
            "message": "Room and name are required.",
        }


# =============================================================================
# Malformed and early frames
# =============================================================================

class TestIgnoredFrames:

    @pytest.mark.asyncio
    async def test_malformed_json_ignored(self):
        engine = make_engine()
        ctx = make_ctx()
        await handle_message("{not json", ctx, engine=engine)
        await handle_message('{"type": "teleport"}', ctx, engine=engine)
        assert ctx.websocket.messages == []

    @pytest.mark.asyncio
    async def test_command_before_join_ignored(self):
        engine = make_engine()
        ctx = make_ctx()
        await send(ctx, engine, type="draw")
        assert ctx.websocket.messages == []

    @pytest.mark.asyncio
    async def test_malformed_frame_keeps_connection_usable(self):
        engine = make_engine()
        ctx = make_ctx()
        await handle_message("garbage", ctx, engine=engine)
        await send(ctx, engine, type="join", roomId="lobby", name="Alice")
        assert ctx.websocket.last_message()["type"] == "state"


# =============================================================================
# Game commands
# =============================================================================

class TestGameCommands:

    @pytest.mark.asyncio
    async def test_play_reaches_both_players(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        game = alice.current_room.game
        game.get_player(alice.player_id).hand = [
            Card("r2", Color.RED, Face.TWO),
            Card("y1", Color.YELLOW, Face.ONE),
        ]
        game.discard_pile = [Card("r5", Color.RED, Face.FIVE)]
        game.active_color = Color.RED
        game.turn_id = alice.player_id

        await send(alice, engine, type="play", cardId="r2")

        for ctx in (alice, bob):
            assert ctx.websocket.last_message()["data"]["topCard"]["id"] == "r2"
        assert bob.websocket.last_message()["data"]["yourTurn"] is True

    @pytest.mark.asyncio
    async def test_draw_error_goes_to_sender_only(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        game = alice.current_room.game
        game.get_player(alice.player_id).hand = [Card("r2", Color.RED, Face.TWO)]
        game.discard_pile = [Card("r5", Color.RED, Face.FIVE)]
        game.active_color = Color.RED
        game.turn_id = alice.player_id
        bob_count = len(bob.websocket.messages)

        await send(alice, engine, type="draw")

        assert alice.websocket.last_message() == {
            "type": "error",
            "message": "You must play a card if you can.",
        }
        assert len(bob.websocket.messages) == bob_count

    @pytest.mark.asyncio
    async def test_illegal_move_is_silent(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        counts = (len(alice.websocket.messages), len(bob.websocket.messages))

        await send(alice, engine, type="play", cardId="no-such-card")

        assert (len(alice.websocket.messages), len(bob.websocket.messages)) == counts


# =============================================================================
# Disconnect / reconnect
# =============================================================================

class TestDisconnect:

    @pytest.mark.asyncio
    async def test_disconnect_keeps_seat(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        room = alice.current_room

        await handle_disconnect(alice)

        assert room.get_player(alice.player_id).websocket is None
        assert room.game.get_player(alice.player_id) is not None
        assert room.connected_count() == 1

    @pytest.mark.asyncio
    async def test_disconnected_seat_gets_no_messages(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        await handle_disconnect(alice)
        before = len(alice.websocket.messages)

        await send(bob, engine, type="reset")

        assert len(alice.websocket.messages) == before
        assert bob.websocket.last_message()["type"] == "state"

    @pytest.mark.asyncio
    async def test_reconnect_by_name_restores_hand(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        room = alice.current_room
        hand_ids = [c.id for c in room.game.get_player(alice.player_id).hand]
        await handle_disconnect(alice)

        again = make_ctx("conn_a2")
        await send(again, engine, type="join", roomId="lobby", name="Alice")

        assert again.player_id == alice.player_id
        data = again.websocket.last_message()["data"]
        assert [c["id"] for c in data["yourHand"]] == hand_ids
        assert room.get_player(alice.player_id).websocket is again.websocket

    @pytest.mark.asyncio
    async def test_stale_disconnect_keeps_new_connection(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        room = alice.current_room

        again = make_ctx("conn_a2")
        await send(again, engine, type="join", roomId="lobby", name="Alice")
        await handle_disconnect(alice)

        assert room.get_player(alice.player_id).websocket is again.websocket

    @pytest.mark.asyncio
    async def test_rejoin_queued_behind_command_gets_current_state(self):
        engine = make_engine()
        alice, bob = await seat_two(engine)
        room = alice.current_room
        await handle_disconnect(alice)
        again = make_ctx("conn_a2")

        # Hold the lock as an in-flight command would; a reset queues first,
        # then Alice's rejoin queues behind it.
        async with room.game_lock:
            reset = asyncio.create_task(send(bob, engine, type="reset"))
            await asyncio.sleep(0)
            rejoin = asyncio.create_task(
                send(again, engine, type="join", roomId="lobby", name="Alice")
            )
            await asyncio.sleep(0)
        await asyncio.gather(reset, rejoin)

        live_ids = [c.id for c in room.game.get_player(alice.player_id).hand]
        data = again.websocket.last_message()["data"]
        assert [c["id"] for c in data["yourHand"]] == live_ids
        assert data["topCard"]["id"] == room.game.discard_top().id
