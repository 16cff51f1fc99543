"""
Fixed rule constants for two-player UNO.

House rules that operators may tune (target score, stacking, UNO penalty, ...)
live in config.py. The numbers here define the game itself.

Standard UNO Scoring (points the round winner collects from the loser's hand):
    - Number cards: face value
    - Skip, Reverse, +2: 20 points
    - Wild, Wild +4: 50 points
"""

# =============================================================================
# Deck Composition
# =============================================================================

NUMBER_FACES: tuple[str, ...] = ("0", "1", "2", "3", "4", "5", "6", "7", "8", "9")
ACTION_FACES: tuple[str, ...] = ("Skip", "Reverse", "+2")

COPIES_PER_NONZERO_FACE = 2   # 1-9 and each action appear twice per suit
WILD_COPIES = 4               # Wild and Wild +4 each

DECK_SIZE = 108
HAND_SIZE = 7


# =============================================================================
# Scoring
# =============================================================================

ACTION_CARD_VALUE = 20
WILD_CARD_VALUE = 50


# =============================================================================
# Penalties
# =============================================================================

DRAW_TWO_AMOUNT = 2
DRAW_FOUR_AMOUNT = 4
ILLEGAL_PLUS4_PENALTY = 4     # offender draws this on a successful challenge
FAILED_CHALLENGE_PENALTY = 2  # challenger draws this on a failed challenge


# =============================================================================
# Room Constants
# =============================================================================

MAX_PLAYERS = 2
