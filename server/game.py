"""
Game logic for two-player UNO.

This module implements the core game mechanics: card/deck management, player
state, the turn and card-effect state machine, the stacking and +4 challenge
house rules, UNO declarations, scoring and the round/match lifecycle.

Two-Player UNO Rules Summary:
    - Each player is dealt 7 cards; one card is flipped to start the discard
    - Play a card matching the active color or the top card's face, or a wild
    - Skip and Reverse both give the turn straight back to the player who
      played them (there is no third seat to reverse toward)
    - +2 / +4 stack onto a pending draw of the same type (house rule)
    - A player left with one card must call UNO or risk being called out
    - First to empty their hand scores the opponent's cards; first to the
      target score wins the match

The engine is synchronous and transport-free. Every public action returns
True when accepted and False when rejected; a rejected action never mutates
state.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import Optional

from config import config
from constants import (
    ACTION_CARD_VALUE,
    ACTION_FACES,
    COPIES_PER_NONZERO_FACE,
    DRAW_FOUR_AMOUNT,
    DRAW_TWO_AMOUNT,
    FAILED_CHALLENGE_PENALTY,
    HAND_SIZE,
    ILLEGAL_PLUS4_PENALTY,
    MAX_PLAYERS,
    NUMBER_FACES,
    WILD_CARD_VALUE,
    WILD_COPIES,
)

logger = logging.getLogger(__name__)


class Color(str, Enum):
    """Card colors. WILD marks colorless cards and is never an active color."""

    RED = "R"
    YELLOW = "Y"
    GREEN = "G"
    BLUE = "B"
    WILD = "W"

    @property
    def display_name(self) -> str:
        return _COLOR_NAMES[self]


_COLOR_NAMES = {
    Color.RED: "Red",
    Color.YELLOW: "Yellow",
    Color.GREEN: "Green",
    Color.BLUE: "Blue",
    Color.WILD: "Wild",
}

# The four suits, in tie-break precedence order for automatic color choice.
SUITS: tuple[Color, ...] = (Color.RED, Color.YELLOW, Color.GREEN, Color.BLUE)


class Face(str, Enum):
    """Card face values."""

    ZERO = "0"
    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    SKIP = "Skip"
    REVERSE = "Reverse"
    DRAW_TWO = "+2"
    WILD = "Wild"
    WILD_DRAW_FOUR = "+4"

    @property
    def is_number(self) -> bool:
        return self.value in NUMBER_FACES

    @property
    def is_force_draw(self) -> bool:
        return self in (Face.DRAW_TWO, Face.WILD_DRAW_FOUR)


@dataclass(frozen=True)
class Card:
    """
    A single UNO card.

    Attributes:
        id: Unique token identifying this physical card for the round.
        color: One of the four suits, or Color.WILD for colorless cards.
        face: Numeral or action/wild label.
    """

    id: str
    color: Color
    face: Face

    @property
    def is_wild(self) -> bool:
        return self.color == Color.WILD

    def points(self) -> int:
        """Point value when left in a losing hand."""
        if self.face.is_number:
            return int(self.face.value)
        if self.is_wild:
            return WILD_CARD_VALUE
        return ACTION_CARD_VALUE

    def describe(self) -> str:
        """Human-readable name used in last-action text."""
        if self.is_wild:
            return self.face.value
        return f"{self.color.display_name} {self.face.value}"

    def to_dict(self) -> dict:
        return {"id": self.id, "color": self.color.value, "value": self.face.value}


def score_hand(cards: list[Card]) -> int:
    """Total points of a losing hand (numerals face value, actions 20, wilds 50)."""
    return sum(card.points() for card in cards)


class Deck:
    """
    The draw pile.

    Built as the standard 108-card UNO deck and shuffled with the injected
    random source, so a seeded Random gives an exactly replayable game.
    The top of the pile is the end of the list.
    """

    def __init__(self, rng: Random) -> None:
        self.rng = rng
        self.cards: list[Card] = []

        for color in SUITS:
            self.cards.append(self._make_card(color, Face.ZERO))
            for face_value in NUMBER_FACES[1:] + ACTION_FACES:
                for _ in range(COPIES_PER_NONZERO_FACE):
                    self.cards.append(self._make_card(color, Face(face_value)))

        for _ in range(WILD_COPIES):
            self.cards.append(self._make_card(Color.WILD, Face.WILD))
            self.cards.append(self._make_card(Color.WILD, Face.WILD_DRAW_FOUR))

        self.shuffle()

    def _make_card(self, color: Color, face: Face) -> Card:
        token = uuid.UUID(int=self.rng.getrandbits(128), version=4).hex
        return Card(id=token, color=color, face=face)

    def shuffle(self) -> None:
        """Uniform random permutation (Fisher-Yates) of the pile."""
        self.rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        """
        Draw the top card from the pile.

        Returns:
            The drawn Card, or None if the pile is empty.
        """
        if self.cards:
            return self.cards.pop()
        return None

    def draw_starter(self) -> Optional[Card]:
        """
        Draw the first card of the discard pile.

        Wild +4 cards can't start a round; any drawn on the way are tucked
        back under the pile.

        Returns:
            The starter card, or None if the pile holds only +4 cards.
        """
        for _ in range(len(self.cards)):
            card = self.cards.pop()
            if card.face != Face.WILD_DRAW_FOUR:
                return card
            self.cards.insert(0, card)
        return None

    def cards_remaining(self) -> int:
        """Return the number of cards left in the pile."""
        return len(self.cards)

    def add_cards(self, cards: list[Card]) -> None:
        """
        Add cards to the pile and shuffle.

        Used when recycling the discard pile back into the draw pile.
        """
        self.cards.extend(cards)
        self.shuffle()


@dataclass
class Player:
    """
    A seated player.

    Attributes:
        id: Unique identifier for the player.
        name: Display name (unique within a room).
        score: Cumulative match points; survives rounds, cleared on reset.
        hand: Cards currently held.
    """

    id: str
    name: str
    score: int = 0
    hand: list[Card] = field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None


class GamePhase(Enum):
    """
    Phases of a match.

    Flow: WAITING -> PLAYING -> ROUND_OVER -> PLAYING -> ... -> MATCH_OVER
    """

    WAITING = "waiting"        # Fewer than two players have joined
    PLAYING = "playing"        # A round is in progress
    ROUND_OVER = "round_over"  # Someone went out, waiting for next round
    MATCH_OVER = "match_over"  # Someone reached the target score


@dataclass
class GameOptions:
    """House rules for a match. Defaults mirror the server configuration."""

    target_score: int = 200
    stacking: bool = True
    must_play_if_can: bool = True
    draw_to_match: bool = True
    plus4_challenge: bool = True
    uno_penalty: int = 2

    @classmethod
    def from_config(cls) -> "GameOptions":
        """Build options from the server's configured house rules."""
        rules = config.house_rules
        return cls(
            target_score=rules.TARGET_SCORE,
            stacking=rules.STACKING,
            must_play_if_can=rules.MUST_PLAY_IF_CAN,
            draw_to_match=rules.DRAW_TO_MATCH,
            plus4_challenge=rules.PLUS4_CHALLENGE,
            uno_penalty=rules.UNO_PENALTY,
        )

    def to_dict(self) -> dict:
        return {
            "targetScore": self.target_score,
            "stacking": self.stacking,
            "mustPlayIfCan": self.must_play_if_can,
            "drawToMatch": self.draw_to_match,
            "plus4Challenge": self.plus4_challenge,
            "unoPenalty": self.uno_penalty,
        }


@dataclass
class ChallengeWindow:
    """
    An open chance to contest a stacked Wild +4.

    Attributes:
        offender_id: Player who played the +4.
        target_id: Player who may challenge it.
        card: The contested +4.
        prior_color: Active color immediately before the +4 was played.
        hand_snapshot: Offender's hand at the moment of play (including the +4).
    """

    offender_id: str
    target_id: str
    card: Card
    prior_color: Color
    hand_snapshot: tuple[Card, ...]

    def was_illegal(self) -> bool:
        """A +4 is illegal if the offender held a card of the prior color."""
        return any(card.color == self.prior_color for card in self.hand_snapshot)


class Game:
    """
    The canonical record and rule engine for one room's match.

    Attributes:
        players: The (at most two) seated players, in seat order.
        options: House rules.
        rng: Random source for shuffles, wild starters and first player.
        phase: Current GamePhase.
        deck: The draw pile.
        discard_pile: Played cards; the last element is the top.
        active_color: Suit currently governing play (never Color.WILD).
        turn_id: Player to act, or None when no round is in progress.
        round_winner_id: Winner of the round just finished.
        match_winner_id: Winner of the match, once decided.
        last_action: Human-readable description of the latest change.
        pending_draw: Accumulated forced-draw count from stacking.
        pending_face: Face of the force-draw card being stacked (or None).
        must_declare: Players holding one card who haven't called UNO.
        declared: Players who validly called UNO.
        challenge_window: Open +4 challenge, if any.
        current_round: 1-based round counter within the match.
    """

    def __init__(self, options: Optional[GameOptions] = None, rng: Optional[Random] = None) -> None:
        self.players: list[Player] = []
        self.options = options or GameOptions.from_config()
        self.rng = rng or Random()
        self.phase = GamePhase.WAITING
        self.deck: Optional[Deck] = None
        self.discard_pile: list[Card] = []
        self.active_color: Optional[Color] = None
        self.turn_id: Optional[str] = None
        self.round_winner_id: Optional[str] = None
        self.match_winner_id: Optional[str] = None
        self.last_action = "Waiting for players…"
        self.pending_draw = 0
        self.pending_face: Optional[Face] = None
        self.must_declare: set[str] = set()
        self.declared: set[str] = set()
        self.challenge_window: Optional[ChallengeWindow] = None
        self.current_round = 0

    # -------------------------------------------------------------------------
    # Player Management
    # -------------------------------------------------------------------------

    def add_player(self, player: Player) -> bool:
        """
        Seat a player.

        Returns:
            False if both seats are taken.
        """
        if len(self.players) >= MAX_PLAYERS:
            return False
        self.players.append(player)
        return True

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def opponent_of(self, player_id: str) -> Optional[Player]:
        """The other seated player, or None if the seat is empty."""
        for player in self.players:
            if player.id != player_id:
                return player
        return None

    def current_player(self) -> Optional[Player]:
        if self.turn_id is None:
            return None
        return self.get_player(self.turn_id)

    @property
    def started(self) -> bool:
        return self.phase != GamePhase.WAITING

    @property
    def round_active(self) -> bool:
        return self.phase == GamePhase.PLAYING

    def _player_after(self, player_id: str, steps: int = 1) -> str:
        """
        Seat that acts `steps` positions after the given player.

        With two seats, one step is the opponent and two steps is the
        player again (how Skip and Reverse play out).
        """
        idx = next(i for i, p in enumerate(self.players) if p.id == player_id)
        return self.players[(idx + steps) % len(self.players)].id

    # -------------------------------------------------------------------------
    # Match & Round Setup
    # -------------------------------------------------------------------------

    def start_match(self) -> bool:
        """
        Start a fresh match once both seats are filled.

        Returns:
            False if fewer than two players are seated.
        """
        if len(self.players) < MAX_PLAYERS:
            return False

        for player in self.players:
            player.score = 0
        self.match_winner_id = None
        self.current_round = 0
        self._deal_round()

        first = self.current_player()
        self.last_action = f"Game started. {first.name}'s turn."
        logger.info(f"Match started: {', '.join(p.name for p in self.players)}")
        return True

    def start_next_round(self) -> bool:
        """
        Deal the next round, keeping cumulative scores.

        Returns:
            False unless a round has ended and the match is still undecided.
        """
        if self.phase != GamePhase.ROUND_OVER:
            return False

        self._deal_round()
        first = self.current_player()
        self.last_action = f"New round. {first.name} starts."
        return True

    def reset_match(self) -> bool:
        """
        Clear all cumulative scores and start over.

        A new match begins immediately when both seats are occupied;
        otherwise the room goes back to waiting.
        """
        for player in self.players:
            player.score = 0
            player.hand = []
        self.round_winner_id = None
        self.match_winner_id = None
        self.turn_id = None
        self._clear_round_counters()

        if len(self.players) >= MAX_PLAYERS:
            return self.start_match()

        self.phase = GamePhase.WAITING
        self.deck = None
        self.discard_pile = []
        self.active_color = None
        self.last_action = "Resetting…"
        return True

    def _deal_round(self) -> None:
        """Shuffle a new deck, deal hands, flip a starter and pick who goes first."""
        self.deck = Deck(self.rng)
        self.discard_pile = []

        for player in self.players:
            player.hand = [self.deck.draw() for _ in range(HAND_SIZE)]

        starter = self.deck.draw_starter()
        self.discard_pile.append(starter)
        if starter.is_wild:
            self.active_color = self.rng.choice(SUITS)
        else:
            self.active_color = starter.color

        self._clear_round_counters()
        self.round_winner_id = None
        self.current_round += 1
        self.phase = GamePhase.PLAYING
        self.turn_id = self.rng.choice(self.players).id

    def _clear_round_counters(self) -> None:
        self.pending_draw = 0
        self.pending_face = None
        self.must_declare.clear()
        self.declared.clear()
        self.challenge_window = None

    # -------------------------------------------------------------------------
    # Piles
    # -------------------------------------------------------------------------

    def discard_top(self) -> Optional[Card]:
        """Get the top card of the discard pile (if any)."""
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    def _reshuffle_discard_pile(self) -> bool:
        """
        Recycle all but the top discard into the draw pile.

        Returns:
            False if there was nothing to recycle.
        """
        if len(self.discard_pile) <= 1:
            return False

        top = self.discard_pile.pop()
        self.deck.add_cards(self.discard_pile)
        self.discard_pile = [top]
        logger.debug(f"Reshuffled discard pile, {self.deck.cards_remaining()} cards in deck")
        return True

    def _draw_cards(self, player: Player, count: int) -> int:
        """
        Move up to `count` cards from the draw pile into a hand.

        Stops early, without error, when both piles are exhausted.

        Returns:
            Number of cards actually drawn.
        """
        drawn = 0
        for _ in range(count):
            if self.deck.cards_remaining() == 0 and not self._reshuffle_discard_pile():
                break
            player.hand.append(self.deck.draw())
            drawn += 1
        if drawn:
            self._track_declaration(player)
        return drawn

    def all_card_ids(self) -> list[str]:
        """Every card id in the draw pile, discard pile and hands."""
        ids = [c.id for c in self.deck.cards] if self.deck else []
        ids.extend(c.id for c in self.discard_pile)
        for player in self.players:
            ids.extend(c.id for c in player.hand)
        return ids

    # -------------------------------------------------------------------------
    # Legality
    # -------------------------------------------------------------------------

    def _is_playable(self, card: Card) -> bool:
        if self.pending_draw > 0:
            return card.face == self.pending_face
        if card.is_wild:
            return True
        top = self.discard_top()
        if top is None:
            return True
        return card.color == self.active_color or card.face == top.face

    def legal_plays(self, player_id: str) -> list[Card]:
        """
        Cards the player could legally play right now, ignoring whose turn it is.

        While a forced draw is pending only the same force-draw type stacks.
        """
        player = self.get_player(player_id)
        if not player:
            return []
        return [card for card in player.hand if self._is_playable(card)]

    def is_players_turn(self, player_id: str) -> bool:
        return self.round_active and self.turn_id == player_id

    # -------------------------------------------------------------------------
    # Playing Cards
    # -------------------------------------------------------------------------

    def play_card(self, player_id: str, card_id: str, chosen_color: Optional[Color] = None) -> bool:
        """
        Play a card from the player's hand.

        Args:
            player_id: The acting player.
            card_id: Id of the card to play.
            chosen_color: Suit to switch to; required for wild cards.

        Returns:
            True if the play was accepted.
        """
        if not self.is_players_turn(player_id):
            return False

        player = self.get_player(player_id)
        card = player.find_card(card_id)
        if not card or not self._is_playable(card):
            return False

        if card.is_wild:
            if chosen_color not in SUITS:
                return False
            chosen_color = Color(chosen_color)
        else:
            chosen_color = None

        self._play(player, card, chosen_color)
        return True

    def _play(self, player: Player, card: Card, chosen_color: Optional[Color]) -> None:
        """Apply an already-validated play, then settle turn, round end and UNO state."""
        prior_color = self.active_color
        hand_snapshot = tuple(player.hand)

        player.hand.remove(card)
        self.discard_pile.append(card)
        self.active_color = chosen_color if card.is_wild else card.color
        self.challenge_window = None

        self._apply_effects(player, card, prior_color, hand_snapshot)

        if not player.hand:
            self._end_round(player)
            return

        self._track_declaration(player)

        next_player = self.current_player()
        if self.pending_draw > 0 and not self.legal_plays(next_player.id):
            drawn = self._resolve_pending_draw(next_player)
            self.last_action += f" {next_player.name} drew {drawn} and was skipped."

    def _apply_effects(
        self,
        player: Player,
        card: Card,
        prior_color: Color,
        hand_snapshot: tuple[Card, ...],
    ) -> None:
        """
        Apply the played card's effect and move the turn pointer.

        Two-seat effect table:
            number        -> opponent's turn
            Skip/Reverse  -> actor goes again
            +2 / +4       -> stacked onto the pending draw (opponent's turn),
                             or opponent draws immediately and is skipped
            Wild          -> opponent's turn (color already switched)
        """
        name = player.name
        opponent = self.opponent_of(player.id)
        steps = 1

        if card.face.is_force_draw:
            amount = DRAW_TWO_AMOUNT if card.face == Face.DRAW_TWO else DRAW_FOUR_AMOUNT
            color_note = f" ({self.active_color.display_name})" if card.is_wild else ""

            if self.options.stacking:
                self.pending_draw += amount
                self.pending_face = card.face
                self.last_action = (
                    f"{name} played {card.face.value}{color_note}. Pending draw: {self.pending_draw}."
                )
                if card.face == Face.WILD_DRAW_FOUR and self.options.plus4_challenge:
                    self.challenge_window = ChallengeWindow(
                        offender_id=player.id,
                        target_id=opponent.id,
                        card=card,
                        prior_color=prior_color,
                        hand_snapshot=hand_snapshot,
                    )
            else:
                drawn = self._draw_cards(opponent, amount)
                steps = 2
                self.last_action = (
                    f"{name} played {card.face.value}{color_note}. "
                    f"{opponent.name} drew {drawn} and was skipped."
                )
        elif card.face == Face.SKIP:
            steps = 2
            self.last_action = f"{name} played Skip."
        elif card.face == Face.REVERSE:
            steps = 2
            self.last_action = f"{name} played Reverse (skip)."
        elif card.face == Face.WILD:
            self.last_action = f"{name} played Wild. Color is now {self.active_color.display_name}."
        else:
            self.last_action = f"{name} played {card.describe()}."

        self.turn_id = self._player_after(player.id, steps)

    # -------------------------------------------------------------------------
    # Stacking & Challenge
    # -------------------------------------------------------------------------

    def _resolve_pending_draw(self, player: Player) -> int:
        """
        Make the player absorb the whole pending draw and skip their turn.

        Returns:
            Number of cards actually drawn.
        """
        drawn = self._draw_cards(player, self.pending_draw)
        self.pending_draw = 0
        self.pending_face = None
        self.challenge_window = None
        self.turn_id = self._player_after(player.id)
        return drawn

    def can_challenge(self, player_id: str) -> bool:
        """True while a +4 challenge window names this player as its target."""
        window = self.challenge_window
        if not self.options.plus4_challenge or window is None:
            return False
        return (
            self.round_active
            and window.target_id == player_id
            and self.pending_draw > 0
            and self.pending_face == Face.WILD_DRAW_FOUR
        )

    def challenge(self, player_id: str) -> bool:
        """
        Challenge the +4 just played against this player.

        Successful (offender held a card of the prior color): offender draws 4
        and the pending draw loses that +4's contribution. Failed: challenger
        draws 2 extra and the pending draw stands. Either way the window closes.
        """
        if not self.can_challenge(player_id):
            return False

        window = self.challenge_window
        offender = self.get_player(window.offender_id)
        challenger = self.get_player(window.target_id)

        if window.was_illegal():
            self._draw_cards(offender, ILLEGAL_PLUS4_PENALTY)
            self.pending_draw = max(0, self.pending_draw - DRAW_FOUR_AMOUNT)
            if self.pending_draw == 0:
                self.pending_face = None
            self.last_action = (
                f"{challenger.name} challenged successfully. "
                f"{offender.name} draws {ILLEGAL_PLUS4_PENALTY}."
            )
        else:
            self._draw_cards(challenger, FAILED_CHALLENGE_PENALTY)
            self.last_action = (
                f"{challenger.name} challenge failed and draws +{FAILED_CHALLENGE_PENALTY}."
            )

        self.challenge_window = None
        return True

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def must_play_first(self, player_id: str) -> bool:
        """True when a draw is refused because the player holds a playable card."""
        return (
            self.is_players_turn(player_id)
            and self.options.must_play_if_can
            and self.pending_draw == 0
            and bool(self.legal_plays(player_id))
        )

    def can_draw(self, player_id: str) -> bool:
        return self.is_players_turn(player_id) and not self.must_play_first(player_id)

    def draw(self, player_id: str) -> bool:
        """
        Take the draw action.

        A pending forced draw is absorbed in full. Otherwise the player draws
        until something is playable and that card is played automatically
        (or, without the draw-to-match rule, draws one card and passes).

        Returns:
            True if the draw was accepted.
        """
        if not self.can_draw(player_id):
            return False

        player = self.get_player(player_id)

        if self.pending_draw > 0:
            drawn = self._resolve_pending_draw(player)
            self.last_action = f"{player.name} drew {drawn} and was skipped."
            return True

        if self.options.draw_to_match:
            self._draw_to_match(player)
        else:
            self._draw_cards(player, 1)
            self.last_action = f"{player.name} drew a card."
            self.turn_id = self._player_after(player.id)
        return True

    def _draw_to_match(self, player: Player) -> None:
        while self._draw_cards(player, 1):
            card = player.hand[-1]
            if self._is_playable(card):
                chosen = self._best_color(player) if card.is_wild else None
                self._play(player, card, chosen)
                return

        self.last_action = f"{player.name} drew to match but couldn't play."
        self.turn_id = self._player_after(player.id)

    def _best_color(self, player: Player) -> Color:
        """The suit the player holds most of; ties go to the earlier suit in SUITS."""
        counts = Counter(card.color for card in player.hand if not card.is_wild)
        return max(SUITS, key=lambda color: counts[color])

    # -------------------------------------------------------------------------
    # UNO Declarations
    # -------------------------------------------------------------------------

    def _track_declaration(self, player: Player) -> None:
        """
        Sync declaration state with hand size.

        Arriving at one card means the player must call UNO (again); any other
        hand size clears both flags.
        """
        self.declared.discard(player.id)
        if len(player.hand) == 1:
            self.must_declare.add(player.id)
        else:
            self.must_declare.discard(player.id)

    def needs_declaration(self, player_id: str) -> bool:
        return player_id in self.must_declare and player_id not in self.declared

    def can_declare(self, player_id: str) -> bool:
        player = self.get_player(player_id)
        return self.round_active and player is not None and len(player.hand) == 1

    def declare_uno(self, player_id: str) -> bool:
        """
        Call UNO while holding exactly one card.

        Returns:
            False if the player doesn't hold exactly one card.
        """
        if not self.can_declare(player_id):
            return False

        self.must_declare.discard(player_id)
        self.declared.add(player_id)
        self.last_action = f"{self.get_player(player_id).name} called UNO!"
        return True

    def can_callout(self, caller_id: str) -> bool:
        """True while the caller's opponent owes an UNO call they haven't made."""
        if not self.round_active or self.get_player(caller_id) is None:
            return False
        opponent = self.opponent_of(caller_id)
        if opponent is None:
            return False
        return self.needs_declaration(opponent.id)

    def callout(self, caller_id: str) -> bool:
        """
        Catch the opponent holding one card without having called UNO.

        The opponent draws the UNO penalty.
        """
        if not self.can_callout(caller_id):
            return False

        caller = self.get_player(caller_id)
        opponent = self.opponent_of(caller_id)
        self._draw_cards(opponent, self.options.uno_penalty)
        self.must_declare.discard(opponent.id)
        self.declared.discard(opponent.id)
        self.last_action = (
            f"{caller.name} called out! {opponent.name} draws {self.options.uno_penalty}."
        )
        return True

    # -------------------------------------------------------------------------
    # Scoring & Round End
    # -------------------------------------------------------------------------

    def _end_round(self, winner: Player) -> None:
        """
        Score the loser's hand for the winner and close the round.

        Reaching the target score ends the match as well.
        """
        loser = self.opponent_of(winner.id)
        points = score_hand(loser.hand) if loser else 0
        winner.score += points

        self.round_winner_id = winner.id
        self.turn_id = None
        self.pending_draw = 0
        self.pending_face = None
        self.challenge_window = None
        self.last_action = f"{winner.name} wins the round and gains {points} points."

        if winner.score >= self.options.target_score:
            self.match_winner_id = winner.id
            self.phase = GamePhase.MATCH_OVER
            self.last_action += f" {winner.name} wins the match!"
            logger.info(f"Match won by {winner.name} with {winner.score} points")
        else:
            self.phase = GamePhase.ROUND_OVER
            logger.info(f"Round {self.current_round} won by {winner.name} (+{points})")

    # -------------------------------------------------------------------------
    # State Queries
    # -------------------------------------------------------------------------

    def get_state(self, for_player_id: str) -> dict:
        """
        Build the view of the match for one player.

        Only the viewer's own hand is revealed; the opponent's hand is
        reduced to a count. Action eligibility is precomputed here so
        clients never re-derive legality. Keys are camelCase, the same
        convention as inbound frames.

        Args:
            for_player_id: The player who will receive this state.

        Returns:
            Dict suitable for JSON serialization.
        """
        you = self.get_player(for_player_id)
        top = self.discard_top()
        your_turn = self.turn_id is not None and self.turn_id == for_player_id

        players_data = [
            {
                "id": p.id,
                "name": p.name,
                "handCount": len(p.hand),
                "score": p.score,
            }
            for p in self.players
        ]

        legal_ids = [c.id for c in self.legal_plays(for_player_id)] if your_turn else []

        return {
            "phase": self.phase.value,
            "started": self.started,
            "you": {"id": you.id, "name": you.name, "score": you.score} if you else None,
            "players": players_data,
            "yourHand": [c.to_dict() for c in you.hand] if you else [],
            "legalCardIds": legal_ids,
            "topCard": top.to_dict() if top else None,
            "currentColor": self.active_color.value if self.active_color else None,
            "yourTurn": your_turn,
            "currentRound": self.current_round,
            "winner": self.round_winner_id,
            "matchWinner": self.match_winner_id,
            "lastAction": self.last_action,
            "pendingDraw": self.pending_draw,
            "stackingType": self.pending_face.value if self.pending_face else None,
            "deckRemaining": self.deck.cards_remaining() if self.deck else 0,
            "mustPressUno": self.needs_declaration(for_player_id),
            "canDeclare": self.can_declare(for_player_id),
            "canCallout": self.can_callout(for_player_id),
            "canChallenge": self.can_challenge(for_player_id),
            "canDraw": self.can_draw(for_player_id),
            "targetScore": self.options.target_score,
            "houseRules": self.options.to_dict(),
        }
