from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .cards import Card


class RoundState(str, Enum):
    ANTE = "ANTE"
    INITIAL_DEAL = "INITIAL_DEAL"
    FIRST_BETTING = "FIRST_BETTING"
    DRAW = "DRAW"
    SECOND_BETTING = "SECOND_BETTING"
    SHOWDOWN = "SHOWDOWN"
    HAND_COMPLETE = "HAND_COMPLETE"


BETTING_STATES = (RoundState.FIRST_BETTING, RoundState.SECOND_BETTING)


class ActionType(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"
    RAISE = "raise"


@dataclass
class TableConfig:
    starting_stack: int = 100
    ante: int = 1
    hand_size: int = 5
    max_discards: int = 3
    min_players: int = 2
    max_players: int = 10


@dataclass
class PlayerSeat:
    seat: int
    player_id: str
    chips: int
    hand: List[Card] = field(default_factory=list)
    has_folded: bool = False
    is_dealer: bool = False
    committed: int = 0
    total_in_pot: int = 0

    def reset_for_hand(self) -> None:
        self.hand.clear()
        self.has_folded = False
        self.committed = 0
        self.total_in_pot = 0

    def reset_for_round(self) -> None:
        self.committed = 0


@dataclass(frozen=True)
class PendingDecision:
    """Who the engine is waiting on, and for what ("action" or "discard")."""

    player_id: str
    seat: int
    kind: str
