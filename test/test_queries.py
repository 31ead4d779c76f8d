from backend.engine.actions import end_turn, purchase_building, roll_dice
from backend.engine.events import NOT_YOUR_TURN, SOLD_OUT
from backend.engine.queries import (
    get_available_action_types,
    get_game_summary,
    get_player_summary,
    get_purchasable_buildings,
    get_standings,
    validate_action,
)
from backend.engine.reducer import apply_action


def test_available_actions_follow_stage(state, catalog):
    assert get_available_action_types(state) == ["roll_dice"]
    state, _ = apply_action(state, roll_dice("east", faces=[5]), catalog)
    assert get_available_action_types(state) == ["purchase_building", "end_turn"]
    state.ended = True
    assert get_available_action_types(state) == []


def test_validate_action(state, catalog):
    assert validate_action(state, roll_dice("east"), catalog).valid
    result = validate_action(state, roll_dice("west"), catalog)
    assert not result.valid
    assert result.reason == NOT_YOUR_TURN


def test_validate_purchase_matches_apply(state, catalog):
    state, _ = apply_action(state, roll_dice("east", faces=[5]), catalog)
    state.inventory["fire_basic_tavern"] = 0
    state.pool_sizes["fire_basic_tavern"] = 0
    result = validate_action(state, purchase_building("east", "fire_basic_tavern"), catalog)
    assert result.reason == SOLD_OUT
    assert validate_action(state, end_turn("east"), catalog).valid


def test_purchasable_buildings_skip_disabled_legendaries(state, catalog):
    options = {o["building_id"]: o for o in get_purchasable_buildings(state, "east", catalog)}
    assert "legendary_daming_palace" not in options
    assert "legendary_observatory" in options
    assert options["wood_basic_tea_house"]["available"]
    assert not options["legendary_observatory"]["available"]
    assert options["wood_advanced_hanlin_academy"]["reason"] == "missing_upgrade_source"


def test_purchasable_price_reflects_upgrade_discount(state, catalog, give):
    east = give(state, "east", "wood_intermediate_herb_shop")
    east.gold = 20
    east.upgrade_tokens = 3
    options = {o["building_id"]: o for o in get_purchasable_buildings(state, "east", catalog)}
    assert options["wood_advanced_hanlin_academy"]["price"] == 7
    assert options["wood_advanced_hanlin_academy"]["list_price"] == 12


def test_player_summary(state, catalog):
    summary = get_player_summary(state, "east", catalog)
    assert summary["gold"] == 5
    assert summary["elements"] == {"wood": 1, "water": 1, "fire": 0, "metal": 1, "earth": 1}
    assert summary["element_diversity"] == 4
    assert summary["purchases_left"] == 1
    assert get_player_summary(state, "nobody", catalog) == {}


def test_standings_order(state, catalog):
    state.get_player("west").gold = 9
    assert [row["id"] for row in get_standings(state, catalog)] == ["west", "east"]


def test_game_summary(state, catalog):
    summary = get_game_summary(state, catalog)
    assert summary["current_player"] == "east"
    assert summary["round_number"] == 1
    assert summary["weather_mode"] == "calm"
