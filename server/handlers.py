"""WebSocket message handlers for the UNO server.

Decodes client frames, runs them through the GameEngine under the room's
lock, and delivers the resulting events to whichever seats are connected.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket
from pydantic import ValidationError

from commands import JoinCommand, parse_command
from engine import CommandRejected, GameEngine, OutboundEvent
from logging_config import get_logger
from room import Room

logger = get_logger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: Optional[str] = None
    current_room: Optional[Room] = None


async def send_error(ctx: ConnectionContext, message: str) -> None:
    await ctx.websocket.send_json({"type": "error", "message": message})


async def deliver(room: Room, events: list[OutboundEvent]) -> None:
    """Send each event to its player; disconnected seats are skipped."""
    for event in events:
        await room.send_to(event.player_id, event.message)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def handle_join(command: JoinCommand, ctx: ConnectionContext, *, engine: GameEngine) -> None:
    try:
        result = engine.join(command)
    except CommandRejected as e:
        await send_error(ctx, e.message)
        return

    room = result.room
    if ctx.current_room and (ctx.current_room is not room or ctx.player_id != result.player_id):
        ctx.current_room.detach(ctx.player_id, ctx.websocket)

    ctx.current_room = room
    ctx.player_id = result.player_id
    log = logger.with_context(room_code=room.code, player_id=result.player_id)
    log.info("Player rejoined" if result.rejoined else "Player seated")

    async with room.game_lock:
        room.attach(result.player_id, ctx.websocket)
        await deliver(room, engine.join_events(result))


async def handle_message(raw: str, ctx: ConnectionContext, *, engine: GameEngine) -> None:
    """
    Handle one raw frame from a connection.

    Malformed frames are logged and ignored; the connection stays open.
    Commands before a successful join are ignored.
    """
    try:
        command = parse_command(raw)
    except ValidationError as e:
        logger.with_context(player_id=ctx.player_id).warning(
            f"Ignoring malformed message on {ctx.connection_id}: {e.error_count()} error(s)"
        )
        return

    if isinstance(command, JoinCommand):
        await handle_join(command, ctx, engine=engine)
        return

    room = ctx.current_room
    if not room or not ctx.player_id:
        return

    async with room.game_lock:
        try:
            events = engine.apply(room, ctx.player_id, command)
        except CommandRejected as e:
            await send_error(ctx, e.message)
            return
        await deliver(room, events)


async def handle_disconnect(ctx: ConnectionContext) -> None:
    """Forget the connection; the seat, hand and score stay for reconnection."""
    if ctx.current_room and ctx.player_id:
        ctx.current_room.detach(ctx.player_id, ctx.websocket)
        logger.with_context(room_code=ctx.current_room.code, player_id=ctx.player_id).info(
            "Player disconnected"
        )
