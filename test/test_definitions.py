import pytest

from backend.engine import DEFAULT_UPGRADE_TOKENS, ELEMENTS
from backend.engine.definitions import (
    WIN_LEGENDARIES,
    EffectKind,
    catalog_from_dict,
    count_by_element,
    element_diversity_count,
)


def test_catalog_loads_every_building(catalog):
    assert len(catalog) == 30
    assert len(catalog.legendaries()) == 9
    for element in ELEMENTS:
        tiers = {d.tier for d in catalog if d.element == element}
        assert tiers == {"basic", "intermediate", "advanced"}


def test_every_effect_kind_is_used(catalog):
    assert {d.effect.kind for d in catalog} == set(EffectKind)


def test_legendaries_are_capped_at_one(catalog):
    for definition in catalog.legendaries():
        assert definition.max_per_player == 1
        assert definition.element == "none"


def test_win_legendaries_are_off_by_default(catalog):
    for building_id in WIN_LEGENDARIES:
        assert not catalog.lookup(building_id).enabled_by_default


def test_upgrade_chain_points_at_same_element(catalog):
    upgrades = [d for d in catalog if d.upgrade_from]
    assert upgrades
    for definition in upgrades:
        source = catalog.lookup(definition.upgrade_from)
        assert source.element == definition.element
        assert source.cost < definition.cost
        assert definition.upgrade_tokens == DEFAULT_UPGRADE_TOKENS


def test_lookup_unknown_returns_none(catalog):
    assert catalog.lookup("metal_basic_printing_press") is None
    assert "metal_basic_printing_press" not in catalog
    assert "metal_basic_smithy" in catalog


def test_to_dict_is_keyed_by_id(catalog):
    data = catalog.to_dict()
    assert set(data) == set(catalog.ids())
    assert data["fire_basic_wine_house"]["triggers"] == [7]
    assert data["fire_basic_wine_house"]["effect"] == {"kind": "fire_fee", "amount": 3}


def _entry(**overrides):
    entry = {
        "display_name": "Test",
        "element": "wood",
        "tier": "basic",
        "cost": 1,
        "quantity": 2,
        "triggers": [5],
        "effect": {"kind": "flat_income", "amount": 1},
    }
    entry.update(overrides)
    return entry


def test_catalog_rejects_unknown_effect_kind():
    with pytest.raises(ValueError, match="unknown effect kind"):
        catalog_from_dict({"x": _entry(effect={"kind": "lottery"})})


def test_catalog_rejects_unknown_element():
    with pytest.raises(ValueError, match="unknown element"):
        catalog_from_dict({"x": _entry(element="air")})


def test_catalog_rejects_dangling_upgrade_source():
    with pytest.raises(ValueError, match="upgrade source"):
        catalog_from_dict({"x": _entry(upgrade_from="missing")})


def test_element_queries(state, catalog, give):
    east = give(state, "east", "wood_basic_tea_house")
    assert count_by_element(east, "wood", catalog) == 2
    assert count_by_element(east, "fire", catalog) == 0
    assert element_diversity_count(east, catalog) == 4
    give(state, "east", "legendary_grand_canal")
    assert element_diversity_count(east, catalog) == 4
