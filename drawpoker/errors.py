from __future__ import annotations


class PokerError(Exception):
    """Base for every failure the engine reports back to its caller."""

    code = "POKER_ERROR"

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class InvalidPlayerCount(PokerError, ValueError):
    code = "INVALID_PLAYER_COUNT"


class InsufficientChips(PokerError, ValueError):
    code = "INSUFFICIENT_CHIPS"


class IllegalAction(PokerError, ValueError):
    code = "ILLEGAL_ACTION"


class InsufficientCards(PokerError, ValueError):
    code = "INSUFFICIENT_CARDS"


class NoPlayers(PokerError, ValueError):
    code = "NO_PLAYERS"


class EmptyDeck(PokerError, RuntimeError):
    # Draw counts are bounded, so running dry means the table is misconfigured.
    code = "EMPTY_DECK"
