import pytest

from backend.engine import STARTING_BUILDINGS, STARTING_GOLD
from backend.engine.definitions import (
    DAMING_PALACE,
    NINE_TRIPOD_TEMPLE,
    OBSERVATORY,
    TRIBUTE_OF_NATIONS,
)
from backend.engine.state import GameState, STAGE_AWAITING_ROLL
from backend.engine.utils import (
    check_inventory_invariant,
    initialize_game_state,
    pool_size,
    resolve_enabled_legendaries,
)


@pytest.mark.parametrize("quantity,players,expected", [
    (8, 4, 8),
    (8, 2, 4),
    (6, 3, 5),
    (6, 6, 9),
    (4, 5, 5),
])
def test_pool_size_scales_and_rounds_up(quantity, players, expected):
    assert pool_size(quantity, players) == expected


@pytest.mark.parametrize("players", [2, 3, 4, 5, 6])
def test_inventory_round_trip(catalog, players):
    state = initialize_game_state([f"p{i}" for i in range(players)], "calm", {}, catalog)
    for definition in catalog:
        if definition.is_legendary:
            continue
        owned = sum(p.count(definition.id) for p in state.players)
        assert state.inventory[definition.id] + owned == pool_size(definition.quantity, players)
    check_inventory_invariant(state, catalog)


def test_players_start_equal(state):
    for player in state.players:
        assert player.gold == STARTING_GOLD
        assert player.buildings == list(STARTING_BUILDINGS)
        assert player.dice_count == 1
        assert player.upgrade_tokens == 0
    assert state.current_player.id == "east"
    assert state.round_number == 1
    assert state.treasury == 0
    assert state.stage == STAGE_AWAITING_ROLL


def test_roster_accepts_dicts_and_tuples(catalog):
    state = initialize_game_state([{"id": "a", "name": "Ann"}, ("b", "Bo")], "calm", {}, catalog)
    assert [(p.id, p.name) for p in state.players] == [("a", "Ann"), ("b", "Bo")]


@pytest.mark.parametrize("roster", [["solo"], [f"p{i}" for i in range(7)], ["a", "a"]])
def test_bad_rosters_are_rejected(catalog, roster):
    with pytest.raises(ValueError):
        initialize_game_state(roster, "calm", {}, catalog)


def test_unknown_weather_mode_is_rejected(catalog):
    with pytest.raises(ValueError):
        initialize_game_state(["a", "b"], "monsoon", {}, catalog)


def test_legendary_pools_follow_toggles(catalog):
    state = initialize_game_state(["a", "b", "c"], "calm", {OBSERVATORY: False, DAMING_PALACE: True}, catalog)
    assert state.pool_sizes[OBSERVATORY] == 0
    assert state.pool_sizes[DAMING_PALACE] == 3
    assert DAMING_PALACE in state.enabled_legendaries
    assert OBSERVATORY not in state.enabled_legendaries


def test_default_legendaries(catalog):
    enabled = resolve_enabled_legendaries(catalog)
    assert OBSERVATORY in enabled
    assert TRIBUTE_OF_NATIONS not in enabled
    assert NINE_TRIPOD_TEMPLE not in enabled


def test_both_win_legendaries_cannot_be_enabled(catalog):
    with pytest.raises(ValueError, match="win legendary"):
        resolve_enabled_legendaries(catalog, {TRIBUTE_OF_NATIONS: True, NINE_TRIPOD_TEMPLE: True})


@pytest.mark.parametrize("building_id", ["legendary_moon_gate", "metal_basic_smithy"])
def test_toggles_must_name_legendaries(catalog, building_id):
    with pytest.raises(ValueError):
        resolve_enabled_legendaries(catalog, {building_id: True})


def test_state_json_round_trip(state, catalog, give):
    give(state, "west", "fire_basic_tavern")
    state.treasury = 4
    state.players[1].flags.extra_purchase = True
    restored = GameState.from_json(state.to_json())
    assert restored.to_dict() == state.to_dict()


def test_state_save_and_load(state, tmp_path):
    path = tmp_path / "game.json"
    state.save(str(path))
    assert GameState.load(str(path)).to_dict() == state.to_dict()


def test_from_dict_tolerates_missing_fields():
    restored = GameState.from_dict({"players": [{"id": "a", "gold": 3}]})
    assert restored.players[0].name == "a"
    assert restored.players[0].gold == 3
    assert restored.stage == STAGE_AWAITING_ROLL
    assert restored.weather_mode == "calm"


def test_copy_is_deep(state):
    clone = state.copy()
    clone.players[0].buildings.append("fire_basic_tavern")
    clone.inventory["fire_basic_tavern"] -= 1
    assert "fire_basic_tavern" not in state.players[0].buildings
    assert state.inventory["fire_basic_tavern"] == clone.inventory["fire_basic_tavern"] + 1
