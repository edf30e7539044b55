"""Five-card draw engine primitives reused by the table host."""

from .cards import Card, Deck, RANKS, SUITS, build_deck, parse_cards, parse_label
from .errors import (
    EmptyDeck,
    IllegalAction,
    InsufficientCards,
    InsufficientChips,
    InvalidPlayerCount,
    NoPlayers,
    PokerError,
)
from .evaluator import Category, HandValue, Outcome, best_five, compare, evaluate, evaluate_winner
from .game import GameEngine, HandContext, new_round
from .models import ActionType, PendingDecision, PlayerSeat, RoundState, TableConfig

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "build_deck",
    "parse_cards",
    "parse_label",
    "EmptyDeck",
    "IllegalAction",
    "InsufficientCards",
    "InsufficientChips",
    "InvalidPlayerCount",
    "NoPlayers",
    "PokerError",
    "Category",
    "HandValue",
    "Outcome",
    "best_five",
    "compare",
    "evaluate",
    "evaluate_winner",
    "GameEngine",
    "HandContext",
    "new_round",
    "ActionType",
    "PendingDecision",
    "PlayerSeat",
    "RoundState",
    "TableConfig",
]
