import pytest

from backend.engine.definitions import DAMING_PALACE, OBSERVATORY
from backend.engine.events import (
    ALREADY_PURCHASED,
    INSUFFICIENT_GOLD,
    INSUFFICIENT_UPGRADE_TOKENS,
    MISSING_UPGRADE_SOURCE,
    NOT_YOUR_TURN,
    PLAYER_CAP_REACHED,
    SOLD_OUT,
    UNKNOWN_BUILDING,
)
from backend.engine.purchase import (
    check_purchase,
    purchase,
    purchase_allowance,
)
from backend.engine.utils import check_inventory_invariant


def test_declined_purchase_changes_nothing(state, catalog):
    before = state.to_dict()
    result = purchase(OBSERVATORY, state, "east", catalog)
    assert not result.accepted
    assert result.reason == INSUFFICIENT_GOLD
    assert state.to_dict() == before


def test_purchase_pays_cost_and_treasury_share(state, catalog):
    state.get_player("east").gold = 10
    result = purchase("water_intermediate_salt_field", state, "east", catalog)
    assert result.accepted
    assert result.cost == 5
    assert result.treasury_share == 1
    east = state.get_player("east")
    assert east.gold == 5
    assert state.treasury == 1
    assert east.buildings[-1] == "water_intermediate_salt_field"
    assert east.flags.purchases_made == 1
    check_inventory_invariant(state, catalog)


def test_cheap_purchase_adds_nothing_to_treasury(state, catalog):
    result = purchase("wood_basic_tea_house", state, "east", catalog)
    assert result.accepted
    assert result.treasury_share == 0
    assert state.get_player("east").gold == 2


def test_one_purchase_per_turn(state, catalog):
    state.get_player("east").gold = 20
    assert purchase("wood_basic_tea_house", state, "east", catalog).accepted
    result = purchase("fire_basic_tavern", state, "east", catalog)
    assert result.reason == ALREADY_PURCHASED
    assert purchase_allowance(state.get_player("east")) == 0


def test_extra_purchase_allows_exactly_one_more(state, catalog):
    east = state.get_player("east")
    east.gold = 20
    east.flags.extra_purchase = True
    assert purchase_allowance(east) == 2
    assert purchase("wood_basic_tea_house", state, "east", catalog).accepted
    assert purchase("fire_basic_tavern", state, "east", catalog).accepted
    assert not east.flags.extra_purchase
    assert purchase("fire_basic_wine_house", state, "east", catalog).reason == ALREADY_PURCHASED


def test_unknown_building(state, catalog):
    result = purchase("wood_basic_bamboo_grove", state, "east", catalog)
    assert not result.accepted
    assert result.reason == UNKNOWN_BUILDING


def test_unknown_player_raises(state, catalog):
    with pytest.raises(ValueError):
        purchase("wood_basic_tea_house", state, "nobody", catalog)


def test_sold_out(state, catalog):
    state.inventory["wood_basic_tea_house"] = 0
    state.pool_sizes["wood_basic_tea_house"] = 0
    assert purchase("wood_basic_tea_house", state, "east", catalog).reason == SOLD_OUT


def test_disabled_legendary_is_sold_out(state, catalog):
    state.get_player("east").gold = 50
    assert purchase(DAMING_PALACE, state, "east", catalog).reason == SOLD_OUT


def test_legendary_cap(state, catalog, give):
    give(state, "east", OBSERVATORY)
    state.get_player("east").gold = 50
    assert state.inventory[OBSERVATORY] == 1
    assert purchase(OBSERVATORY, state, "east", catalog).reason == PLAYER_CAP_REACHED


def test_observatory_adds_second_die(state, catalog):
    east = state.get_player("east")
    east.gold = 12
    assert purchase(OBSERVATORY, state, "east", catalog).accepted
    assert east.dice_count == 2
    assert state.treasury == 2


def test_upgrade_returns_source_to_inventory(state, catalog, give):
    east = give(state, "east", "wood_intermediate_herb_shop")
    east.gold = 20
    east.upgrade_tokens = 3
    herb_left = state.inventory["wood_intermediate_herb_shop"]

    result = purchase("wood_advanced_hanlin_academy", state, "east", catalog)
    assert result.accepted
    assert result.upgrade_source == "wood_intermediate_herb_shop"
    # 12 less the herb shop's 5
    assert result.cost == 7
    assert east.gold == 13
    assert east.upgrade_tokens == 0
    assert "wood_intermediate_herb_shop" not in east.buildings
    assert state.inventory["wood_intermediate_herb_shop"] == herb_left + 1
    check_inventory_invariant(state, catalog)


def test_upgrade_needs_source(state, catalog):
    east = state.get_player("east")
    east.gold = 20
    east.upgrade_tokens = 3
    result = purchase("wood_advanced_hanlin_academy", state, "east", catalog)
    assert result.reason == MISSING_UPGRADE_SOURCE


def test_upgrade_needs_tokens(state, catalog, give):
    east = give(state, "east", "wood_intermediate_herb_shop")
    east.gold = 20
    east.upgrade_tokens = 2
    result = purchase("wood_advanced_hanlin_academy", state, "east", catalog)
    assert result.reason == INSUFFICIENT_UPGRADE_TOKENS


def test_free_building_is_waived_and_uncounted(state, catalog):
    east = state.get_player("east")
    east.gold = 0
    east.flags.free_building = True
    result = purchase("water_intermediate_salt_field", state, "east", catalog)
    assert result.accepted
    assert result.cost == 0
    assert result.waiver == "free_building"
    assert not east.flags.free_building
    assert east.flags.purchases_made == 0
    assert state.treasury == 0
    # the regular purchase is still available
    east.gold = 3
    assert purchase("wood_basic_tea_house", state, "east", catalog).accepted


def test_free_building_does_not_cover_advanced(state, catalog):
    east = state.get_player("east")
    east.gold = 0
    east.flags.free_building = True
    result = purchase("fire_advanced_red_sleeves_house", state, "east", catalog)
    assert result.reason == MISSING_UPGRADE_SOURCE
    assert east.flags.free_building


def test_free_building_works_after_regular_purchase(state, catalog):
    east = state.get_player("east")
    assert purchase("wood_basic_tea_house", state, "east", catalog).accepted
    east.flags.free_building = True
    assert purchase("fire_basic_tavern", state, "east", catalog).accepted


def test_direct_advanced_skips_upgrade_chain(state, catalog):
    east = state.get_player("east")
    east.gold = 0
    east.flags.direct_advanced = True
    result = purchase("wood_advanced_hanlin_academy", state, "east", catalog)
    assert result.accepted
    assert result.cost == 0
    assert result.upgrade_source is None
    assert result.waiver == "direct_advanced"
    assert east.upgrade_tokens == 0
    assert not east.flags.direct_advanced
    assert east.flags.purchases_made == 0
    check_inventory_invariant(state, catalog)


def test_check_purchase_does_not_mutate(state, catalog):
    before = state.to_dict()
    result = check_purchase("wood_basic_tea_house", state, state.get_player("east"), catalog)
    assert result.accepted
    assert result.cost == 3
    assert state.to_dict() == before


def test_purchase_out_of_turn_is_declined(state, catalog):
    before = state.to_dict()
    result = purchase("metal_basic_smithy", state, "west", catalog)
    assert not result.accepted
    assert result.reason == NOT_YOUR_TURN
    assert state.to_dict() == before
