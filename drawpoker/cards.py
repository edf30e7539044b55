from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import EmptyDeck

RANKS = "23456789TJQKA"
SUITS = "hdcs"
# Ranks and suits are single characters.
_RANK_SET = frozenset(RANKS)
_SUIT_SET = frozenset(SUITS)

RANK_NAMES = {
    "2": "Two",
    "3": "Three",
    "4": "Four",
    "5": "Five",
    "6": "Six",
    "7": "Seven",
    "8": "Eight",
    "9": "Nine",
    "T": "Ten",
    "J": "Jack",
    "Q": "Queen",
    "K": "King",
    "A": "Ace",
}
SUIT_NAMES = {"h": "Hearts", "d": "Diamonds", "c": "Clubs", "s": "Spades"}


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in _RANK_SET:
            raise ValueError(f"Invalid rank: {self.rank!r}")
        if self.suit not in _SUIT_SET:
            raise ValueError(f"Invalid suit: {self.suit!r}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    @property
    def rank_index(self) -> int:
        # Two=0 ... Ace=12; the only ordinal used anywhere in the package.
        return RANKS.index(self.rank)

    @property
    def suit_index(self) -> int:
        return SUITS.index(self.suit)

    @property
    def value(self) -> int:
        return self.rank_index + 2

    @property
    def name(self) -> str:
        return f"{RANK_NAMES[self.rank]} of {SUIT_NAMES[self.suit]}"


class Deck:
    """The 52 distinct cards; only ever shrinks from the top."""

    def __init__(self, cards: Optional[Iterable[Card]] = None) -> None:
        if cards is None:
            cards = (Card(rank, suit) for rank in RANKS for suit in SUITS)
        self._cards: List[Card] = list(cards)

    def __len__(self) -> int:
        return len(self._cards)

    @property
    def is_empty(self) -> bool:
        return not self._cards

    @property
    def cards(self) -> Tuple[Card, ...]:
        return tuple(self._cards)

    def shuffle(self, rng: random.Random) -> None:
        # random.shuffle is an in-place Fisher-Yates pass.
        rng.shuffle(self._cards)

    def draw(self) -> Card:
        if not self._cards:
            raise EmptyDeck("Deck is empty")
        return self._cards.pop(0)

    def deal(self, count: int) -> List[Card]:
        if len(self._cards) < count:
            raise EmptyDeck(f"Not enough cards left in deck ({len(self._cards)} < {count})")
        return [self.draw() for _ in range(count)]


def build_deck(seed: Optional[int] = None) -> Deck:
    deck = Deck()
    deck.shuffle(random.Random(seed))
    return deck


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[0], label[1])


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
