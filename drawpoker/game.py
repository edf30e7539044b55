from __future__ import annotations

import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .cards import Deck, build_deck, cards_to_labels
from .errors import EmptyDeck, IllegalAction, InsufficientChips, InvalidPlayerCount
from .evaluator import Outcome, evaluate_winner
from .models import BETTING_STATES, ActionType, PendingDecision, PlayerSeat, RoundState, TableConfig

LOGGER = logging.getLogger("drawpoker.engine")

# Label for a pot won because everyone else folded; ranks below every category.
LAST_PLAYER_STANDING = "Last Player Standing"

# GameEngine owns all table state: seats, deck, pot and bets. It never makes a
# decision for a player; callers feed it one action or discard at a time.


@dataclass
class HandContext:
    # All mutable info about the current hand (deck, pot, actor queue, etc.).
    hand_id: str
    seed: Optional[int]
    button: int
    deck: Deck
    state: RoundState = RoundState.ANTE
    pot: int = 0
    current_bet: int = 0
    last_raise_seat: Optional[int] = None
    pending_callers: Set[int] = field(default_factory=set)
    actor_queue: Deque[int] = field(default_factory=deque)
    outcome: Optional[Outcome] = None
    winners: List[str] = field(default_factory=list)
    aborted: bool = False
    pre_events: List[Dict[str, object]] = field(default_factory=list)


class GameEngine:
    """Five-card draw engine for a single table of 2-10 players."""

    def __init__(
        self,
        player_ids: Sequence[str],
        config: Optional[TableConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or TableConfig()
        count = len(player_ids)
        if not self.config.min_players <= count <= self.config.max_players:
            raise InvalidPlayerCount(
                f"Invalid number of players: {count}. "
                f"Must be between {self.config.min_players} and {self.config.max_players}."
            )
        if len(set(player_ids)) != count:
            raise ValueError("Player ids must be distinct")

        self.seats: List[PlayerSeat] = [
            PlayerSeat(seat=idx, player_id=player_id, chips=self.config.starting_stack)
            for idx, player_id in enumerate(player_ids)
        ]
        self.rng = rng
        self.button = 0
        self.seats[0].is_dealer = True
        self.hand_counter = 0
        self.hand: Optional[HandContext] = None
        self.hand_log: List[Dict[str, object]] = []

    # Seat helpers ----------------------------------------------------

    def _seat_for(self, player_id: str) -> PlayerSeat:
        for seat in self.seats:
            if seat.player_id == player_id:
                return seat
        raise IllegalAction(f"Unknown player: {player_id}")

    def _can_cover_ante(self, seat: PlayerSeat) -> bool:
        return seat.chips > 0 and seat.chips >= self.config.ante

    def _active_seats(self) -> List[int]:
        return [seat.seat for seat in self.seats if not seat.has_folded]

    def _rotation_from(self, start: int) -> List[int]:
        seats = []
        idx = start % len(self.seats)
        for _ in range(len(self.seats)):
            if not self.seats[idx].has_folded:
                seats.append(idx)
            idx = (idx + 1) % len(self.seats)
        return seats

    def _acting_order(self, ctx: HandContext) -> List[int]:
        # Action always opens with the seat left of the dealer.
        return self._rotation_from(ctx.button + 1)

    def _commit_chips(self, seat: PlayerSeat, amount: int, ctx: HandContext) -> None:
        seat.chips -= amount
        seat.committed += amount
        seat.total_in_pot += amount
        ctx.pot += amount

    # Hand lifecycle --------------------------------------------------

    def can_start_hand(self) -> bool:
        return len([seat for seat in self.seats if self._can_cover_ante(seat)]) >= 2

    def is_hand_in_progress(self) -> bool:
        return self.hand is not None and self.hand.state != RoundState.HAND_COMPLETE

    def is_hand_complete(self) -> bool:
        return bool(self.hand and self.hand.state == RoundState.HAND_COMPLETE)

    def is_session_over(self) -> bool:
        return not self.is_hand_in_progress() and not self.can_start_hand()

    def start_hand(self, seed: Optional[int] = None) -> HandContext:
        if self.is_hand_in_progress():
            raise IllegalAction("Hand already in progress")
        if not self.can_start_hand():
            raise IllegalAction("Not enough players with chips to start a hand")

        for seat in self.seats:
            seat.reset_for_hand()

        hand_id = f"H-{time.strftime('%Y%m%d')}-{self.hand_counter:05d}"
        self.hand_counter += 1

        ctx = HandContext(hand_id=hand_id, seed=seed, button=self.button, deck=self._fresh_deck(seed))
        self.hand = ctx
        LOGGER.info("Starting hand %s (dealer=%s)", hand_id, self.seats[ctx.button].player_id)

        self._collect_antes(ctx)
        self._deal_initial_cards(ctx)
        self._enter(ctx, RoundState.FIRST_BETTING, ctx.pre_events)
        self._setup_betting_round(ctx)
        return ctx

    def _fresh_deck(self, seed: Optional[int]) -> Deck:
        if seed is None and self.rng is not None:
            deck = Deck()
            deck.shuffle(self.rng)
            return deck
        return build_deck(seed)

    def _enter(self, ctx: HandContext, state: RoundState, events: List[Dict[str, object]]) -> None:
        ctx.state = state
        events.append({"ev": "STATE", "state": state.value})

    def _collect_antes(self, ctx: HandContext) -> None:
        self._enter(ctx, RoundState.ANTE, ctx.pre_events)
        ante = self.config.ante
        paid = []
        for seat in self.seats:
            if self._can_cover_ante(seat):
                self._commit_chips(seat, ante, ctx)
                paid.append(seat.player_id)
            else:
                # Short stacks sit the hand out; they are not eliminated.
                seat.has_folded = True
                ctx.pre_events.append({"ev": "AUTO_FOLD", "player": seat.player_id, "reason": "ante"})
        for seat in self.seats:
            seat.reset_for_round()
        ctx.pre_events.append({"ev": "ANTE", "players": paid, "amount": ante, "pot": ctx.pot})

    def _deal_initial_cards(self, ctx: HandContext) -> None:
        self._enter(ctx, RoundState.INITIAL_DEAL, ctx.pre_events)
        order = self._acting_order(ctx)
        needed = self.config.hand_size * len(order)
        if len(ctx.deck) < needed:
            self._abort_hand(ctx, f"deck holds {len(ctx.deck)} cards, deal needs {needed}")
            raise EmptyDeck(f"Not enough cards to deal {needed}")
        # One card at a time around the table, not five at once.
        for _ in range(self.config.hand_size):
            for seat_idx in order:
                self.seats[seat_idx].hand.append(ctx.deck.draw())
        ctx.pre_events.append(
            {"ev": "DEAL", "players": [self.seats[idx].player_id for idx in order], "cards": self.config.hand_size}
        )

    def _setup_betting_round(self, ctx: HandContext) -> None:
        for seat in self.seats:
            seat.reset_for_round()
        ctx.current_bet = 0
        ctx.last_raise_seat = None
        ctx.pending_callers = set(self._active_seats())
        ctx.actor_queue = deque(self._acting_order(ctx))

    def consume_pre_events(self) -> List[Dict[str, object]]:
        if not self.hand:
            return []
        events = list(self.hand.pre_events)
        self.hand.pre_events.clear()
        return events

    # Turn handling ---------------------------------------------------

    def next_actor(self) -> Optional[int]:
        ctx = self.hand
        if ctx is None or (ctx.state not in BETTING_STATES and ctx.state != RoundState.DRAW):
            return None
        while ctx.actor_queue and self.seats[ctx.actor_queue[0]].has_folded:
            ctx.actor_queue.popleft()
        return ctx.actor_queue[0] if ctx.actor_queue else None

    def awaiting(self) -> Optional[PendingDecision]:
        seat_idx = self.next_actor()
        if seat_idx is None:
            return None
        assert self.hand is not None
        kind = "discard" if self.hand.state == RoundState.DRAW else "action"
        return PendingDecision(player_id=self.seats[seat_idx].player_id, seat=seat_idx, kind=kind)

    def _require_hand(self) -> HandContext:
        if not self.hand:
            raise IllegalAction("Hand not in progress")
        return self.hand

    def _require_turn(self, seat: PlayerSeat) -> None:
        if seat.has_folded:
            raise IllegalAction(f"{seat.player_id} has folded")
        if self.next_actor() != seat.seat:
            raise IllegalAction(f"Not {seat.player_id}'s turn")

    @staticmethod
    def _coerce_action(action: Union[ActionType, str]) -> ActionType:
        if isinstance(action, ActionType):
            return action
        try:
            return ActionType(str(action).strip().lower())
        except ValueError:
            raise IllegalAction(f"Unsupported action {action}") from None

    def legal_actions(self, player_id: str) -> Tuple[List[ActionType], int, Optional[int], Optional[int]]:
        ctx = self._require_hand()
        seat = self._seat_for(player_id)
        if ctx.state not in BETTING_STATES:
            raise IllegalAction(f"No betting during {ctx.state.value}")
        if seat.has_folded:
            raise IllegalAction(f"{player_id} has folded")

        # Every legal move plus helper numbers (amount owed, min/max bet level).
        legal: List[ActionType] = [ActionType.FOLD]
        owed = ctx.current_bet - seat.committed
        if owed == 0:
            legal.append(ActionType.CHECK)
        if owed <= seat.chips:
            legal.append(ActionType.CALL)

        min_bet_to = ctx.current_bet + 1
        max_bet_to = seat.committed + seat.chips
        if max_bet_to < min_bet_to:
            return legal, owed, None, None
        legal.append(ActionType.RAISE if ctx.current_bet else ActionType.BET)
        return legal, owed, min_bet_to, max_bet_to

    def act(self, player_id: str, action: Union[ActionType, str], amount: Optional[int] = None) -> Dict[str, object]:
        events = self.apply_action(player_id, action, amount)
        return {"events": events, **self.public_state(player_id)}

    def apply_action(
        self,
        player_id: str,
        action: Union[ActionType, str],
        amount: Optional[int] = None,
    ) -> List[Dict[str, object]]:
        ctx = self._require_hand()
        seat = self._seat_for(player_id)
        action = self._coerce_action(action)
        if ctx.state not in BETTING_STATES:
            raise IllegalAction(f"Cannot {action.value} during {ctx.state.value}")
        self._require_turn(seat)

        events: List[Dict[str, object]] = []
        owed = ctx.current_bet - seat.committed

        # Every check happens before any mutation so a rejected action changes nothing.
        if action == ActionType.FOLD:
            seat.has_folded = True
            ctx.pending_callers.discard(seat.seat)
            events.append({"ev": "FOLD", "player": player_id})
        elif action == ActionType.CHECK:
            if owed > 0:
                raise IllegalAction(f"Cannot check when facing a bet of {ctx.current_bet}")
            ctx.pending_callers.discard(seat.seat)
            events.append({"ev": "CHECK", "player": player_id})
        elif action == ActionType.CALL:
            if owed > seat.chips:
                raise InsufficientChips(f"{player_id} needs {owed} chips to call but has {seat.chips}")
            self._commit_chips(seat, owed, ctx)
            ctx.pending_callers.discard(seat.seat)
            events.append({"ev": "CALL", "player": player_id, "amount": owed})
        else:
            target = ctx.current_bet + 1 if amount is None else amount
            if isinstance(target, bool) or not isinstance(target, int):
                raise IllegalAction("Bet amount must be a whole number of chips")
            if target <= ctx.current_bet:
                raise IllegalAction(f"Bet must be at least {ctx.current_bet + 1}")
            additional = target - seat.committed
            if additional > seat.chips:
                raise InsufficientChips(f"{player_id} needs {additional} chips to bet {target} but has {seat.chips}")
            self._commit_chips(seat, additional, ctx)
            ctx.current_bet = target
            ctx.last_raise_seat = seat.seat
            ctx.pending_callers = {idx for idx in self._active_seats() if idx != seat.seat}
            events.append({"ev": action.name, "player": player_id, "amount": additional, "bet_to": target})

        events.extend(self._advance_after_action(ctx))
        return events

    def _advance_after_action(self, ctx: HandContext) -> List[Dict[str, object]]:
        events: List[Dict[str, object]] = []
        if len(self._active_seats()) == 1:
            events.extend(self._resolve_showdown(ctx))
            return events

        if ctx.actor_queue:
            ctx.actor_queue.append(ctx.actor_queue.popleft())
        while ctx.actor_queue and self.seats[ctx.actor_queue[0]].has_folded:
            ctx.actor_queue.popleft()

        if not ctx.pending_callers:
            events.extend(self._advance_phase(ctx))
        return events

    def _advance_phase(self, ctx: HandContext) -> List[Dict[str, object]]:
        events: List[Dict[str, object]] = []
        if ctx.state == RoundState.FIRST_BETTING:
            for seat in self.seats:
                seat.reset_for_round()
            ctx.current_bet = 0
            ctx.last_raise_seat = None
            ctx.pending_callers.clear()
            ctx.actor_queue = deque(self._acting_order(ctx))
            self._enter(ctx, RoundState.DRAW, events)
        else:
            events.extend(self._resolve_showdown(ctx))
        return events

    # Draw phase ------------------------------------------------------

    def discard(self, player_id: str, indices: Iterable[int]) -> Dict[str, object]:
        events = self.apply_discard(player_id, indices)
        return {"events": events, **self.public_state(player_id)}

    def apply_discard(self, player_id: str, indices: Iterable[int]) -> List[Dict[str, object]]:
        ctx = self._require_hand()
        seat = self._seat_for(player_id)
        if ctx.state != RoundState.DRAW:
            raise IllegalAction(f"Cannot draw during {ctx.state.value}")
        self._require_turn(seat)

        picked = list(indices)
        if len(picked) > self.config.max_discards:
            raise IllegalAction(f"Can discard at most {self.config.max_discards} cards")
        if len(set(picked)) != len(picked):
            raise IllegalAction("Discard indices must be distinct")
        for idx in picked:
            if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < len(seat.hand):
                raise IllegalAction(f"Discard index out of range: {idx}")
        if len(ctx.deck) < len(picked):
            self._abort_hand(ctx, f"{player_id} asked for {len(picked)} cards, {len(ctx.deck)} left")
            raise EmptyDeck(f"Not enough cards left in deck to replace {len(picked)}")

        kept = [card for idx, card in enumerate(seat.hand) if idx not in picked]
        seat.hand[:] = kept + ctx.deck.deal(len(picked))
        ctx.actor_queue.popleft()

        events: List[Dict[str, object]] = [{"ev": "DRAW", "player": player_id, "count": len(picked)}]
        if not ctx.actor_queue:
            self._enter(ctx, RoundState.SECOND_BETTING, events)
            self._setup_betting_round(ctx)
        return events

    # Showdown and payout ---------------------------------------------

    def _resolve_showdown(self, ctx: HandContext) -> List[Dict[str, object]]:
        events: List[Dict[str, object]] = []
        self._enter(ctx, RoundState.SHOWDOWN, events)
        order = self._acting_order(ctx)

        if len(order) == 1:
            winner = self.seats[order[0]]
            winner.chips += ctx.pot
            ctx.winners = [winner.player_id]
            events.append(
                {
                    "ev": "POT_AWARD",
                    "player": winner.player_id,
                    "amount": ctx.pot,
                    "hand_name": LAST_PLAYER_STANDING,
                }
            )
        else:
            hands = {self.seats[idx].player_id: list(self.seats[idx].hand) for idx in order}
            outcome = evaluate_winner(hands)
            ctx.outcome = outcome
            ctx.winners = list(outcome.winners)
            for player_id, cards in hands.items():
                events.append(
                    {
                        "ev": "SHOWDOWN",
                        "player": player_id,
                        "hand": cards_to_labels(cards),
                        "best_five": cards_to_labels(outcome.best_hands[player_id]),
                    }
                )
            # Winners come back in acting order, so odd chips go to the earliest actor.
            share, remainder = divmod(ctx.pot, len(outcome.winners))
            for idx, player_id in enumerate(outcome.winners):
                payout = share + (1 if idx < remainder else 0)
                self._seat_for(player_id).chips += payout
                events.append({"ev": "POT_AWARD", "player": player_id, "amount": payout, "hand_name": outcome.hand_name})

        ctx.pot = 0
        events.extend(self._complete_hand(ctx))
        return events

    def _abort_hand(self, ctx: HandContext, reason: str) -> None:
        LOGGER.warning("Aborting hand %s: %s", ctx.hand_id, reason)
        for seat in self.seats:
            seat.chips += seat.total_in_pot
        ctx.pot = 0
        ctx.aborted = True
        self._complete_hand(ctx)

    def _complete_hand(self, ctx: HandContext) -> List[Dict[str, object]]:
        events: List[Dict[str, object]] = []
        self._enter(ctx, RoundState.HAND_COMPLETE, events)
        ctx.current_bet = 0
        ctx.last_raise_seat = None
        ctx.pending_callers.clear()
        ctx.actor_queue.clear()
        for seat in self.seats:
            seat.committed = 0
            seat.total_in_pot = 0
        self._rotate_button()

        summary = self.end_hand_payload()
        self.hand_log.append(summary)
        events.append({"ev": "HAND_COMPLETE", **summary})
        LOGGER.info("Hand %s complete (winners=%s)", ctx.hand_id, ctx.winners)
        return events

    def _rotate_button(self) -> None:
        self.seats[self.button].is_dealer = False
        count = len(self.seats)
        candidates = [(self.button + step) % count for step in range(1, count + 1)]
        funded = [idx for idx in candidates if self._can_cover_ante(self.seats[idx])]
        self.button = funded[0] if funded else candidates[0]
        self.seats[self.button].is_dealer = True

    # Public/Snapshot helpers -----------------------------------------

    def _outcome_payload(self, outcome: Outcome) -> Dict[str, object]:
        return {
            "winners": list(outcome.winners),
            "losers": list(outcome.losers),
            "hand_name": outcome.hand_name,
            "hand_rank": outcome.hand_rank,
            "hands": {player_id: cards_to_labels(cards) for player_id, cards in outcome.best_hands.items()},
        }

    def public_state(self, viewer: Optional[str] = None) -> Dict[str, object]:
        ctx = self.hand
        revealed = bool(ctx and ctx.outcome is not None)
        pending = self.awaiting()

        players = []
        for seat in self.seats:
            show = seat.player_id == viewer or (revealed and not seat.has_folded)
            players.append(
                {
                    "id": seat.player_id,
                    "seat": seat.seat,
                    "chips": seat.chips,
                    "has_folded": seat.has_folded,
                    "is_dealer": seat.is_dealer,
                    "committed": seat.committed,
                    "card_count": len(seat.hand),
                    "hand": cards_to_labels(seat.hand) if show else None,
                }
            )

        return {
            "hand_id": ctx.hand_id if ctx else None,
            "state": ctx.state.value if ctx else None,
            "pot": ctx.pot if ctx else 0,
            "current_bet": ctx.current_bet if ctx else 0,
            "dealer": self.seats[ctx.button if self.is_hand_in_progress() and ctx else self.button].player_id,
            "awaiting": {"player": pending.player_id, "kind": pending.kind} if pending else None,
            "players": players,
            "outcome": self._outcome_payload(ctx.outcome) if ctx and ctx.outcome else None,
            "winners": list(ctx.winners) if ctx else [],
        }

    def end_hand_payload(self) -> Dict[str, object]:
        if not self.hand:
            raise IllegalAction("Hand not in progress")
        ctx = self.hand
        hand_name: Optional[str] = None
        hand_rank: Optional[int] = None
        if ctx.outcome:
            hand_name, hand_rank = ctx.outcome.hand_name, ctx.outcome.hand_rank
        elif ctx.winners:
            hand_name, hand_rank = LAST_PLAYER_STANDING, 0
        return {
            "hand_id": ctx.hand_id,
            "seed": ctx.seed,
            "aborted": ctx.aborted,
            "winners": list(ctx.winners),
            "hand_name": hand_name,
            "hand_rank": hand_rank,
            "stacks": [{"player": seat.player_id, "chips": seat.chips} for seat in self.seats],
        }

    def session_result_payload(self) -> Dict[str, object]:
        funded = [seat for seat in self.seats if self._can_cover_ante(seat)]
        winner = funded[0] if len(funded) == 1 else None
        return {
            "winner": winner.player_id if winner else None,
            "hands_played": self.hand_counter,
            "final_stacks": [{"player": seat.player_id, "chips": seat.chips} for seat in self.seats],
        }


def new_round(
    player_ids: Sequence[str],
    config: Optional[TableConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> GameEngine:
    """Seat the players and deal the first hand."""
    engine = GameEngine(player_ids, config=config, rng=rng)
    engine.start_hand(seed=seed)
    return engine
