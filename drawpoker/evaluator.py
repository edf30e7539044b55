from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .cards import Card, RANKS, SUITS
from .errors import InsufficientCards, NoPlayers

HAND_SIZE = 5
ACE = len(RANKS) - 1


class Category(IntEnum):
    HIGH_CARD = 1
    ONE_PAIR = 2
    TWO_PAIR = 3
    THREE_OF_A_KIND = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    FOUR_OF_A_KIND = 8
    STRAIGHT_FLUSH = 9
    ROYAL_FLUSH = 10

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Category.HIGH_CARD: "High Card",
    Category.ONE_PAIR: "One Pair",
    Category.TWO_PAIR: "Two Pair",
    Category.THREE_OF_A_KIND: "Three of a Kind",
    Category.STRAIGHT: "Straight",
    Category.FLUSH: "Flush",
    Category.FULL_HOUSE: "Full House",
    Category.FOUR_OF_A_KIND: "Four of a Kind",
    Category.STRAIGHT_FLUSH: "Straight Flush",
    Category.ROYAL_FLUSH: "Royal Flush",
}

_STRAIGHTS = (Category.STRAIGHT, Category.STRAIGHT_FLUSH, Category.ROYAL_FLUSH)


@dataclass(frozen=True, order=True)
class HandValue:
    """Category plus the tie-break key for that category. Higher is better."""

    category: Category
    key: Tuple[int, ...]

    @property
    def label(self) -> str:
        return self.category.label


@dataclass(frozen=True)
class Outcome:
    winners: Tuple[str, ...]
    losers: Tuple[str, ...]
    category: Category
    best_hands: Dict[str, Tuple[Card, ...]] = field(default_factory=dict)

    @property
    def hand_name(self) -> str:
        return self.category.label

    @property
    def hand_rank(self) -> int:
        return int(self.category)


# Counting --------------------------------------------------------------

def _rank_counts(cards: Sequence[Card]) -> List[int]:
    counts = [0] * len(RANKS)
    for card in cards:
        counts[card.rank_index] += 1
    return counts


def _suit_counts(cards: Sequence[Card]) -> List[int]:
    counts = [0] * len(SUITS)
    for card in cards:
        counts[card.suit_index] += 1
    return counts


def _ordered(cards: Sequence[Card]) -> List[Card]:
    return sorted(cards, key=lambda card: (-card.rank_index, card.suit_index))


def _straight_high(counts: Sequence[int]) -> Optional[int]:
    """Value of the top card of the best straight, 5 for the wheel, else None."""
    for top in range(ACE, 3, -1):
        if all(counts[top - offset] for offset in range(HAND_SIZE)):
            return top + 2
    # Ace plays low here and nowhere else.
    if counts[ACE] and all(counts[idx] for idx in range(4)):
        return 5
    return None


def _straight_flush_high(cards: Sequence[Card]) -> Optional[Tuple[int, str]]:
    best: Optional[Tuple[int, str]] = None
    for suit in SUITS:
        suited = [card for card in cards if card.suit == suit]
        if len(suited) < HAND_SIZE:
            continue
        high = _straight_high(_rank_counts(suited))
        if high is not None and (best is None or high > best[0]):
            best = (high, suit)
    return best


def _detect(cards: Sequence[Card]) -> Category:
    counts = _rank_counts(cards)

    straight_flush = _straight_flush_high(cards)
    if straight_flush is not None:
        return Category.ROYAL_FLUSH if straight_flush[0] == 14 else Category.STRAIGHT_FLUSH
    if 4 in counts:
        return Category.FOUR_OF_A_KIND
    trips = [idx for idx, count in enumerate(counts) if count == 3]
    # A second triplet is enough to supply the pair.
    if trips and any(count >= 2 for idx, count in enumerate(counts) if idx != trips[-1]):
        return Category.FULL_HOUSE
    if max(_suit_counts(cards)) >= HAND_SIZE:
        return Category.FLUSH
    if _straight_high(counts) is not None:
        return Category.STRAIGHT
    if trips:
        return Category.THREE_OF_A_KIND
    pairs = counts.count(2)
    if pairs >= 2:
        return Category.TWO_PAIR
    if pairs == 1:
        return Category.ONE_PAIR
    return Category.HIGH_CARD


# Best-five selection ---------------------------------------------------

def _select_groups(ordered: List[Card], sizes: Sequence[int]) -> Optional[List[Card]]:
    counts = _rank_counts(ordered)
    picked: List[Card] = []
    used: List[int] = []
    for size in sizes:
        rank = next(
            (idx for idx in range(ACE, -1, -1) if idx not in used and counts[idx] >= size),
            None,
        )
        if rank is None:
            return None
        used.append(rank)
        picked.extend([card for card in ordered if card.rank_index == rank][:size])
    kickers = [card for card in ordered if card.rank_index not in used]
    return picked + kickers[: HAND_SIZE - len(picked)]


def _straight_run(ordered: List[Card], high: int) -> List[Card]:
    run = []
    for value in range(high, high - HAND_SIZE, -1):
        rank_index = ACE if value == 1 else value - 2
        run.append(next(card for card in ordered if card.rank_index == rank_index))
    return run


def _select_straight_flush(ordered: List[Card]) -> Optional[List[Card]]:
    found = _straight_flush_high(ordered)
    if found is None:
        return None
    high, suit = found
    return _straight_run([card for card in ordered if card.suit == suit], high)


def _select_royal_flush(ordered: List[Card]) -> Optional[List[Card]]:
    found = _straight_flush_high(ordered)
    if found is None or found[0] != 14:
        return None
    return _select_straight_flush(ordered)


def _select_flush(ordered: List[Card]) -> Optional[List[Card]]:
    candidates = []
    for suit in SUITS:
        suited = [card for card in ordered if card.suit == suit]
        if len(suited) >= HAND_SIZE:
            candidates.append(suited[:HAND_SIZE])
    if not candidates:
        return None
    return max(candidates, key=lambda five: [card.rank_index for card in five])


def _select_straight(ordered: List[Card]) -> Optional[List[Card]]:
    high = _straight_high(_rank_counts(ordered))
    if high is None:
        return None
    return _straight_run(ordered, high)


_SELECTORS: Dict[Category, Callable[[List[Card]], Optional[List[Card]]]] = {
    Category.ROYAL_FLUSH: _select_royal_flush,
    Category.STRAIGHT_FLUSH: _select_straight_flush,
    Category.FOUR_OF_A_KIND: lambda ordered: _select_groups(ordered, (4,)),
    Category.FULL_HOUSE: lambda ordered: _select_groups(ordered, (3, 2)),
    Category.FLUSH: _select_flush,
    Category.STRAIGHT: _select_straight,
    Category.THREE_OF_A_KIND: lambda ordered: _select_groups(ordered, (3,)),
    Category.TWO_PAIR: lambda ordered: _select_groups(ordered, (2, 2)),
    Category.ONE_PAIR: lambda ordered: _select_groups(ordered, (2,)),
    Category.HIGH_CARD: lambda ordered: ordered[:HAND_SIZE],
}


def best_five(cards: Sequence[Card], category: Category) -> List[Card]:
    """Pick the five cards that make ``category``: grouped cards first, kickers after.

    Wheels come back as 5-4-3-2-A. When the cards do not hold ``category`` the
    five highest cards are returned instead.
    """
    if len(cards) < HAND_SIZE:
        raise InsufficientCards(f"Hand must contain at least {HAND_SIZE} cards (got {len(cards)})")
    ordered = _ordered(cards)
    picked = _SELECTORS[Category(category)](ordered)
    if picked is None:
        return ordered[:HAND_SIZE]
    return picked


def _ordering_key(five: Sequence[Card], category: Category) -> Tuple[int, ...]:
    if category in _STRAIGHTS:
        return (five[0].value,)
    return tuple(card.value for card in five)


# Public API ------------------------------------------------------------

def evaluate(cards: Sequence[Card]) -> HandValue:
    """Return the category and tie-break key for 5 to 7 cards."""
    if len(cards) < HAND_SIZE:
        raise InsufficientCards(f"Hand must contain at least {HAND_SIZE} cards (got {len(cards)})")
    category = _detect(cards)
    return HandValue(category, _ordering_key(best_five(cards, category), category))


def compare(hand_a: Sequence[Card], hand_b: Sequence[Card], category: Category) -> int:
    """1 if ``hand_a`` wins, -1 if ``hand_b`` wins, 0 for a true tie."""
    key_a = _ordering_key(best_five(hand_a, category), category)
    key_b = _ordering_key(best_five(hand_b, category), category)
    return (key_a > key_b) - (key_a < key_b)


def describe(value: HandValue) -> str:
    return value.category.label


def evaluate_winner(hands: Mapping[str, Sequence[Card]]) -> Outcome:
    if not hands:
        raise NoPlayers("At least one player is required")

    categories: Dict[str, Category] = {}
    winners: List[str] = []
    best_category: Optional[Category] = None
    best_cards: Sequence[Card] = ()

    for player_id, cards in hands.items():
        category = evaluate(cards).category
        categories[player_id] = category
        if best_category is None or category > best_category:
            winners = [player_id]
            best_category = category
            best_cards = cards
            continue
        if category < best_category:
            continue
        result = compare(best_cards, cards, category)
        if result < 0:
            winners = [player_id]
            best_cards = cards
        elif result == 0:
            winners.append(player_id)

    assert best_category is not None
    losers = tuple(player_id for player_id in hands if player_id not in winners)
    best_hands = {
        player_id: tuple(best_five(cards, categories[player_id]))
        for player_id, cards in hands.items()
    }
    return Outcome(
        winners=tuple(winners),
        losers=losers,
        category=best_category,
        best_hands=best_hands,
    )
