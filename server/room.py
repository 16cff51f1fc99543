"""
Room management for two-player UNO matches.

This module owns the per-room match records and the mapping from player
identities to live WebSocket connections.

A Room contains:
    - A caller-chosen room id (trimmed, length-capped)
    - Up to two RoomPlayers, each possibly attached to a WebSocket
    - A Game instance with the actual match state
    - A lock that serializes commands for the room
"""

import asyncio
import logging
from dataclasses import dataclass, field
from random import Random
from typing import Callable, Optional

from fastapi import WebSocket

from config import config
from constants import MAX_PLAYERS
from game import Game, GameOptions, Player

logger = logging.getLogger(__name__)


@dataclass
class RoomPlayer:
    """
    A seat in a room (connection-level representation).

    This is separate from game.Player - RoomPlayer tracks the live
    connection, while game.Player tracks hand and score. A seat outlives
    its connection so the same name can reconnect to it.

    Attributes:
        id: Unique player identifier.
        name: Display name, unique within the room.
        websocket: Current connection, or None while disconnected.
    """

    id: str
    name: str
    websocket: Optional[WebSocket] = None


@dataclass
class Room:
    """
    A room hosting one two-player match.

    Attributes:
        code: Room id as supplied by the first joiner (normalized).
        game: The Game instance containing actual match state.
        players: Dict mapping player IDs to RoomPlayer objects.
        game_lock: asyncio.Lock serializing commands (mutation + delivery).
    """

    code: str
    game: Game = field(default_factory=Game)
    players: dict[str, RoomPlayer] = field(default_factory=dict)
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def add_player(self, player_id: str, name: str) -> Optional[RoomPlayer]:
        """
        Seat a new player.

        Returns:
            The created RoomPlayer, or None if the room is full.
        """
        if self.is_full():
            return None

        room_player = RoomPlayer(id=player_id, name=name)
        self.players[player_id] = room_player
        self.game.add_player(Player(id=player_id, name=name))
        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        """Get a player by ID, or None if not found."""
        return self.players.get(player_id)

    def find_player_by_name(self, name: str) -> Optional[RoomPlayer]:
        for player in self.players.values():
            if player.name == name:
                return player
        return None

    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    def attach(self, player_id: str, websocket: WebSocket) -> None:
        """Point a seat at a (new) connection, replacing any previous one."""
        player = self.players.get(player_id)
        if player:
            player.websocket = websocket

    def detach(self, player_id: str, websocket: Optional[WebSocket] = None) -> None:
        """
        Drop a seat's connection. Hand and score are kept for reconnection.

        Args:
            player_id: The seat to detach.
            websocket: If given, only detach when it is still the seat's
                current connection (a newer tab may have taken over).
        """
        player = self.players.get(player_id)
        if not player:
            return
        if websocket is not None and player.websocket is not websocket:
            return
        player.websocket = None

    def connected_count(self) -> int:
        return sum(1 for p in self.players.values() if p.websocket is not None)

    async def send_to(self, player_id: str, message: dict) -> bool:
        """
        Send a message to a specific player.

        Returns:
            False if the player is disconnected or the send failed.
        """
        player = self.players.get(player_id)
        if not player or not player.websocket:
            return False
        try:
            await player.websocket.send_json(message)
        except Exception as e:
            logger.warning(f"Send to {player.name} in room {self.code} failed: {e}")
            return False
        return True


class RoomManager:
    """
    Repository of all rooms.

    Owned by the application's composition root and handed to the engine.
    Each room gets its own Random, derived from the configured seed when
    there is one, so a seeded server replays identically per room.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        options_factory: Callable[[], GameOptions] = GameOptions.from_config,
        max_room_id_length: Optional[int] = None,
    ) -> None:
        self.rooms: dict[str, Room] = {}
        self.seed = seed
        self.options_factory = options_factory
        self.max_room_id_length = max_room_id_length or config.ROOM_ID_MAX_LENGTH

    def normalize_room_id(self, raw: str) -> str:
        """Trim whitespace and cap the length of a caller-supplied room id."""
        return raw.strip()[: self.max_room_id_length]

    def _make_rng(self, code: str) -> Random:
        if self.seed is None:
            return Random()
        return Random(f"{self.seed}:{code}")

    def create_room(self, code: str) -> Room:
        """
        Create a room with the given (already normalized) id.

        Returns:
            The newly created Room.
        """
        game = Game(options=self.options_factory(), rng=self._make_rng(code))
        room = Room(code=code, game=game)
        self.rooms[code] = room
        logger.info(f"Room {code} created")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        return self.rooms.get(code)

    def get_or_create_room(self, code: str) -> Room:
        return self.rooms.get(code) or self.create_room(code)
