"""Command engine for UNO rooms.

Turns a parsed command from a seated player into state changes and the
outbound messages they produce. The engine never touches a connection:
it returns OutboundEvents addressed by player id and leaves delivery to
the handler layer, so it can be driven directly in tests.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from commands import (
    CalloutCommand,
    ChallengeCommand,
    Command,
    DeclareCommand,
    DrawCommand,
    JoinCommand,
    NextRoundCommand,
    PlayCommand,
    ResetCommand,
)
from constants import MAX_PLAYERS
from game import Game
from room import Room, RoomManager

logger = logging.getLogger(__name__)


class CommandRejected(Exception):
    """A command refused with a reason the sender should see."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class OutboundEvent:
    """A message for one player."""

    player_id: str
    message: dict


@dataclass
class JoinResult:
    room: Room
    player_id: str
    rejoined: bool
    started_match: bool


class GameEngine:
    """
    Applies commands to rooms held by an injected RoomManager.

    Accepted commands return one state snapshot per seated player.
    Illegal moves return no events. Rejections the player must hear
    about raise CommandRejected.
    """

    def __init__(self, room_manager: RoomManager) -> None:
        self.room_manager = room_manager
        self._handlers: dict[type, Callable[[Game, str, Command], bool]] = {
            PlayCommand: self._play,
            DrawCommand: self._draw,
            DeclareCommand: self._declare,
            CalloutCommand: self._callout,
            ChallengeCommand: self._challenge,
            NextRoundCommand: self._next_round,
            ResetCommand: self._reset,
        }

    # -------------------------------------------------------------------------
    # Joining
    # -------------------------------------------------------------------------

    def join(self, command: JoinCommand) -> JoinResult:
        """
        Seat a player, or return them to their seat if the name is known.

        The match starts as soon as the second seat is filled. Snapshots
        are built separately by join_events(), under the room lock.

        Raises:
            CommandRejected: Room id or name missing, or the room is full.
        """
        room_id = self.room_manager.normalize_room_id(command.room_id or "")
        name = (command.name or "").strip()
        if not room_id or not name:
            raise CommandRejected("Room and name are required.")

        room = self.room_manager.get_room(room_id)
        if room and room.is_full() and not room.find_player_by_name(name):
            raise CommandRejected(f"Room is full ({MAX_PLAYERS} players max).")

        room = self.room_manager.get_or_create_room(room_id)
        room_player = room.find_player_by_name(name)
        rejoined = room_player is not None
        if not rejoined:
            room_player = room.add_player(uuid.uuid4().hex[:8], name)
            logger.info(f"{name} joined room {room.code}")

        game = room.game
        started_match = not game.started and len(game.players) == MAX_PLAYERS
        if started_match:
            game.start_match()

        return JoinResult(
            room=room,
            player_id=room_player.id,
            rejoined=rejoined,
            started_match=started_match,
        )

    def join_events(self, result: JoinResult) -> list[OutboundEvent]:
        """Snapshots owed after a join: everyone if it started the match, else the joiner."""
        if result.started_match:
            return self.state_events(result.room)
        return self.state_events(result.room, [result.player_id])

    # -------------------------------------------------------------------------
    # Game Commands
    # -------------------------------------------------------------------------

    def apply(self, room: Room, player_id: str, command: Command) -> list[OutboundEvent]:
        """
        Apply a game command from a seated player.

        Returns:
            State snapshots for every seated player, or [] if the command
            was not accepted.

        Raises:
            CommandRejected: The player tried to draw while holding a playable card.
        """
        handler = self._handlers.get(type(command))
        if handler is None or room.get_player(player_id) is None:
            return []

        if not handler(room.game, player_id, command):
            logger.debug(f"Rejected {command.type} from {player_id} in room {room.code}")
            return []

        return self.state_events(room)

    def _play(self, game: Game, player_id: str, command: PlayCommand) -> bool:
        return game.play_card(player_id, command.card_id, command.chosen_color)

    def _draw(self, game: Game, player_id: str, command: DrawCommand) -> bool:
        if game.must_play_first(player_id):
            raise CommandRejected("You must play a card if you can.")
        return game.draw(player_id)

    def _declare(self, game: Game, player_id: str, command: DeclareCommand) -> bool:
        return game.declare_uno(player_id)

    def _callout(self, game: Game, player_id: str, command: CalloutCommand) -> bool:
        return game.callout(player_id)

    def _challenge(self, game: Game, player_id: str, command: ChallengeCommand) -> bool:
        return game.challenge(player_id)

    def _next_round(self, game: Game, player_id: str, command: NextRoundCommand) -> bool:
        return game.start_next_round()

    def _reset(self, game: Game, player_id: str, command: ResetCommand) -> bool:
        return game.reset_match()

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def state_events(self, room: Room, player_ids: Optional[list[str]] = None) -> list[OutboundEvent]:
        """Build a tailored state snapshot for each listed (default: every seated) player."""
        if player_ids is None:
            player_ids = list(room.players)
        return [
            OutboundEvent(
                player_id=pid,
                message={
                    "type": "state",
                    "data": {"roomId": room.code, **room.game.get_state(pid)},
                },
            )
            for pid in player_ids
        ]
