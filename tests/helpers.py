from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from drawpoker.cards import Card, Deck, RANKS, SUITS, parse_cards
from drawpoker.game import GameEngine, HandContext
from drawpoker.models import ActionType, TableConfig


def create_engine(
    *,
    players: int = 2,
    starting_stack: int = 100,
    ante: int = 1,
    max_discards: int = 3,
) -> GameEngine:
    """Instantiate an engine with Player0..PlayerN seated in order."""
    return GameEngine(
        [f"Player{idx}" for idx in range(players)],
        TableConfig(starting_stack=starting_stack, ante=ante, max_discards=max_discards),
    )


def start_hand(engine: GameEngine, seed: int = 42) -> HandContext:
    ctx = engine.start_hand(seed=seed)
    assert ctx is not None
    return ctx


def stacked_deck(labels: Sequence[str]) -> Deck:
    """Deck whose top cards are ``labels`` in order; the rest follow in canonical order."""
    top = parse_cards(labels)
    rest = [Card(rank, suit) for rank in RANKS for suit in SUITS if Card(rank, suit) not in top]
    return Deck(top + rest)


def deal_order(hands: Sequence[Sequence[str]]) -> List[str]:
    """Interleave per-seat hands (given in acting order) into round-robin deal order."""
    return [hand[idx] for idx in range(len(hands[0])) for hand in hands]


def perform_actions(engine: GameEngine, actions: Iterable[Tuple[str, ActionType, Optional[int]]]) -> None:
    """Apply a scripted sequence of actions (player, action, amount)."""
    for player_id, action, amount in actions:
        engine.apply_action(player_id, action, amount)


def passive_step(engine: GameEngine) -> None:
    pending = engine.awaiting()
    assert pending is not None
    if pending.kind == "discard":
        engine.apply_discard(pending.player_id, [])
        return
    legal, *_ = engine.legal_actions(pending.player_id)
    if ActionType.CHECK in legal:
        engine.apply_action(pending.player_id, ActionType.CHECK)
    elif ActionType.CALL in legal:
        engine.apply_action(pending.player_id, ActionType.CALL)
    else:
        engine.apply_action(pending.player_id, ActionType.FOLD)


def auto_complete_hand(engine: GameEngine) -> None:
    """Scripted decision provider: check or call everything and stand pat on the draw."""
    while not engine.is_hand_complete():
        passive_step(engine)


def play_until(engine: GameEngine, state) -> None:
    while engine.is_hand_in_progress() and engine.hand.state != state:
        passive_step(engine)
