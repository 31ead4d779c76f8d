from backend.engine.actions import end_turn, purchase_building, roll_dice
from backend.engine.definitions import NINE_TRIPOD_TEMPLE, TRIBUTE_OF_NATIONS
from backend.engine.dice import DiceRoll
from backend.engine.events import ACTION_DECLINED, GAME_OVER, VICTORY
from backend.engine.reducer import apply_action
from backend.engine.settlement import resolve_settlement
from backend.engine.utils import initialize_game_state
from backend.engine.victory import (
    CONDITION_INSTANT,
    CONDITION_THRESHOLD,
    check_win_condition,
    total_assets,
    winning_condition,
)


def test_no_winner_at_start(state, catalog):
    assert check_win_condition(state, catalog) is None


def test_threshold_needs_the_tribute(state, catalog):
    east = state.get_player("east")
    east.gold = 500
    assert winning_condition(east, catalog) is None


def test_threshold_win_at_99(catalog, give):
    state = initialize_game_state(["east", "west"], "calm", {TRIBUTE_OF_NATIONS: True}, catalog)
    east = give(state, "east", TRIBUTE_OF_NATIONS)
    east.gold = 98
    assert winning_condition(east, catalog) is None
    east.gold = 99
    assert winning_condition(east, catalog) == (CONDITION_THRESHOLD, TRIBUTE_OF_NATIONS)
    assert check_win_condition(state, catalog) is east


def test_tribute_stipend(catalog, give):
    state = initialize_game_state(["east", "west"], "calm", {TRIBUTE_OF_NATIONS: True}, catalog)
    give(state, "east", TRIBUTE_OF_NATIONS)
    resolve_settlement(DiceRoll(faces=(5,)), state, "east", catalog)
    assert state.get_player("east").gold == 15


def test_temple_purchase_wins(catalog):
    state = initialize_game_state(["east", "west"], "calm", {NINE_TRIPOD_TEMPLE: True}, catalog)
    state.get_player("east").gold = 99
    state, _ = apply_action(state, roll_dice("east", faces=[5]), catalog)
    state, events = apply_action(state, purchase_building("east", NINE_TRIPOD_TEMPLE), catalog)

    assert state.winner == "east"
    assert state.ended
    win = events[-1]
    assert win.type == VICTORY
    assert win.payload["condition"] == CONDITION_INSTANT
    assert win.payload["building_id"] == NINE_TRIPOD_TEMPLE

    after, events = apply_action(state, end_turn("east"), catalog)
    assert after is state
    assert events[0].type == ACTION_DECLINED
    assert events[0].payload["reason"] == GAME_OVER


def test_threshold_is_checked_after_purchases_only(catalog, give):
    state = initialize_game_state(["east", "west"], "calm", {TRIBUTE_OF_NATIONS: True}, catalog)
    give(state, "east", TRIBUTE_OF_NATIONS)
    state.get_player("east").gold = 95
    state, _ = apply_action(state, roll_dice("east", faces=[5]), catalog)
    # the stipend lifts east past 99 but settlement alone does not end the game
    assert state.get_player("east").gold == 105
    assert state.winner is None
    state, events = apply_action(state, purchase_building("east", "wood_basic_tea_house"), catalog)
    assert state.winner == "east"
    assert events[-1].payload["condition"] == CONDITION_THRESHOLD


def test_total_assets(state, catalog):
    # 5 gold and four 2-gold buildings
    assert total_assets(state.get_player("east"), catalog) == 13
