import random
import re

from drawpoker.game import GameEngine, new_round
from drawpoker.models import ActionType, RoundState, TableConfig

from .helpers import auto_complete_hand, create_engine, deal_order, stacked_deck, start_hand


def test_new_round_deals_first_hand():
    engine = new_round(["alice", "bob", "carol"], seed=5)
    assert engine.hand.state == RoundState.FIRST_BETTING
    assert engine.hand.pot == 3
    assert engine.awaiting().player_id == "bob"


def test_default_config_values():
    config = TableConfig()
    assert (config.starting_stack, config.ante, config.hand_size, config.max_discards) == (100, 1, 5, 3)


def test_hand_ids_are_unique_and_sequential():
    engine = create_engine()
    ids = []
    for seed in range(3):
        ids.append(start_hand(engine, seed=seed).hand_id)
        auto_complete_hand(engine)
    assert len(set(ids)) == 3
    assert all(re.fullmatch(r"H-\d{8}-\d{5}", hand_id) for hand_id in ids)
    assert ids[-1].endswith("00002")
    assert len(engine.hand_log) == 3


def test_seed_and_rng_make_hands_reproducible():
    first = create_engine()
    second = create_engine()
    start_hand(first, seed=9)
    start_hand(second, seed=9)
    assert [seat.hand for seat in first.seats] == [seat.hand for seat in second.seats]

    left = GameEngine(["a", "b"], rng=random.Random(4))
    right = GameEngine(["a", "b"], rng=random.Random(4))
    left.start_hand()
    right.start_hand()
    assert [seat.hand for seat in left.seats] == [seat.hand for seat in right.seats]


def test_viewer_only_sees_own_hand_mid_hand():
    engine = create_engine()
    start_hand(engine)
    state = engine.public_state("Player1")
    by_id = {player["id"]: player for player in state["players"]}
    assert by_id["Player1"]["hand"] is not None
    assert by_id["Player0"]["hand"] is None
    assert by_id["Player0"]["card_count"] == 5
    assert state["awaiting"] == {"player": "Player1", "kind": "action"}
    assert state["dealer"] == "Player0"
    assert state["outcome"] is None


def test_showdown_reveals_only_players_still_in(monkeypatch):
    hands = [
        ["Ah", "As", "Kd", "Qc", "Jh"],
        ["2c", "3d", "4h", "5s", "7c"],
        ["Kh", "Ks", "Kc", "Qd", "Jc"],
    ]
    monkeypatch.setattr("drawpoker.game.build_deck", lambda seed=None: stacked_deck(deal_order(hands)))
    engine = create_engine(players=3)
    start_hand(engine)
    engine.apply_action("Player1", ActionType.CHECK)
    engine.apply_action("Player2", ActionType.FOLD)
    auto_complete_hand(engine)

    state = engine.public_state()
    by_id = {player["id"]: player for player in state["players"]}
    assert by_id["Player0"]["hand"] == ["Kh", "Ks", "Kc", "Qd", "Jc"]
    assert by_id["Player1"]["hand"] is not None
    assert by_id["Player2"]["hand"] is None
    assert state["outcome"]["winners"] == ["Player0"]
    assert state["outcome"]["hand_rank"] == 4
    assert set(state["outcome"]["hands"]) == {"Player0", "Player1"}
    assert state["winners"] == ["Player0"]
    assert state["pot"] == 0


def test_fold_win_keeps_hands_hidden():
    engine = create_engine()
    start_hand(engine)
    result = engine.act("Player1", "fold")
    assert result["state"] == "HAND_COMPLETE"
    assert result["events"][-1]["ev"] == "HAND_COMPLETE"
    by_id = {player["id"]: player for player in result["players"]}
    assert by_id["Player0"]["hand"] is None
    assert by_id["Player1"]["hand"] is not None


def test_discard_returns_state_for_the_drawing_player():
    engine = create_engine()
    start_hand(engine)
    engine.act("Player1", "check")
    engine.act("Player0", "check")
    result = engine.discard("Player1", [0])
    assert result["events"][0] == {"ev": "DRAW", "player": "Player1", "count": 1}
    assert result["awaiting"] == {"player": "Player0", "kind": "discard"}


def test_hand_log_records_stacks():
    engine = create_engine()
    start_hand(engine)
    engine.apply_action("Player1", ActionType.FOLD)
    summary = engine.hand_log[-1]
    assert summary["winners"] == ["Player0"]
    assert summary["aborted"] is False
    assert summary["stacks"] == [{"player": "Player0", "chips": 101}, {"player": "Player1", "chips": 99}]
    assert summary["hand_name"] == "Last Player Standing"
    assert summary["hand_rank"] == 0
    assert summary["seed"] == 42
    assert engine.hand_log[-1] == engine.end_hand_payload()


def test_session_plays_until_one_player_is_left():
    engine = create_engine(starting_stack=3)
    while not engine.is_session_over():
        start_hand(engine, seed=engine.hand_counter)
        while engine.is_hand_in_progress():
            pending = engine.awaiting()
            action = ActionType.FOLD if pending.player_id == "Player1" else ActionType.CHECK
            engine.apply_action(pending.player_id, action)
    result = engine.session_result_payload()
    assert result["winner"] == "Player0"
    assert result["hands_played"] == 3
    assert result["final_stacks"] == [{"player": "Player0", "chips": 6}, {"player": "Player1", "chips": 0}]
