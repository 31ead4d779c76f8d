"""
Building effect helpers shared by the settlement phases and the weather resolver.
"""

import math
import random

from backend.engine import FIRE_SHIELD_DIVISOR
from backend.engine.definitions import (
    BuildingCatalog,
    BuildingDefinition,
    EffectKind,
    count_by_element,
)
from backend.engine.ledger import Ledger
from backend.engine.state import GameState, PlayerState


def _element_scaled(effect, owner, state, catalog) -> int:
    return effect.amount + effect.per_unit * count_by_element(owner, effect.element, catalog)


def _global_element_scaled(effect, owner, state, catalog) -> int:
    return effect.amount + effect.per_unit * global_element_count(state, effect.element, catalog)


def _bank_interest(effect, owner, state, catalog) -> int:
    return min(owner.gold * effect.percent // 100, effect.cap)


def _flat(effect, owner, state, catalog) -> int:
    return effect.amount


# Gold paid by the bank when an income building triggers (before any multiplier)
INCOME_PAYOUTS = {
    EffectKind.FLAT_INCOME: _flat,
    EffectKind.SHIELDED_INCOME: _flat,
    EffectKind.UPGRADE_TOKEN_INCOME: _flat,
    EffectKind.EXTRA_PURCHASE: _flat,
    EffectKind.FREE_BUILDING: _flat,
    EffectKind.DIRECT_ADVANCED: _flat,
    EffectKind.ELEMENT_SCALED_INCOME: _element_scaled,
    EffectKind.GLOBAL_ELEMENT_SCALED_INCOME: _global_element_scaled,
    EffectKind.BANK_INTEREST: _bank_interest,
}

FIRE_KINDS = frozenset({
    EffectKind.FIRE_FEE,
    EffectKind.FIRE_BALANCE_FEE,
    EffectKind.FIRE_ESCORT_LEVY,
})

TURN_START_KINDS = frozenset({
    EffectKind.TURN_STIPEND,
    EffectKind.TREASURY_INTEREST,
    EffectKind.ELEMENT_RESONANCE,
})


def owned_definitions(player: PlayerState, catalog: BuildingCatalog) -> list[BuildingDefinition]:
    """One definition per owned instance, in acquisition order. Unknown ids are skipped."""
    out = []
    for building_id in player.buildings:
        definition = catalog.lookup(building_id)
        if definition is not None:
            out.append(definition)
    return out


def owns_effect(player: PlayerState, kind: EffectKind, catalog: BuildingCatalog) -> BuildingDefinition | None:
    """First owned definition with the given effect kind, or None."""
    for definition in owned_definitions(player, catalog):
        if definition.effect.kind == kind:
            return definition
    return None


def global_element_count(state: GameState, element: str, catalog: BuildingCatalog) -> int:
    return sum(count_by_element(p, element, catalog) for p in state.players)


def shielded_fee(fee: int, payer: PlayerState, catalog: BuildingCatalog) -> int:
    """Flat fire fees owed by a Mine owner are halved, rounding up."""
    if owns_effect(payer, EffectKind.SHIELDED_INCOME, catalog) is None:
        return fee
    return math.ceil(fee / FIRE_SHIELD_DIVISOR)


def settle_income(
    definition: BuildingDefinition,
    owner: PlayerState,
    state: GameState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    multiplier: int = 1,
    side_effects: bool = True,
    reason_prefix: str = "income",
) -> int:
    """
    Pay an income building's gold to its owner and, when side_effects is set, apply its
    non-gold effect (upgrade tokens or a turn flag). Returns the gold paid.
    """
    effect = definition.effect
    payout = INCOME_PAYOUTS.get(effect.kind)
    if payout is None:
        raise ValueError(f"{definition.id} has no income effect ({effect.kind.value})")
    reason = f"{reason_prefix}:{definition.id}"
    paid = ledger.mint(owner, payout(effect, owner, state, catalog) * multiplier, reason)
    if effect.kind == EffectKind.BANK_INTEREST:
        paid += ledger.draw_treasury(owner, effect.treasury_amount * multiplier, reason)
    if not side_effects:
        return paid
    if effect.kind == EffectKind.UPGRADE_TOKEN_INCOME and effect.tokens > 0:
        owner.upgrade_tokens += effect.tokens
        ledger.note(owner, f"upgrade_token:{definition.id}")
    elif effect.kind == EffectKind.EXTRA_PURCHASE:
        owner.flags.extra_purchase = True
        ledger.note(owner, f"extra_purchase:{definition.id}")
    elif effect.kind == EffectKind.FREE_BUILDING:
        owner.flags.free_building = True
        ledger.note(owner, f"free_building:{definition.id}")
    elif effect.kind == EffectKind.DIRECT_ADVANCED:
        owner.flags.direct_advanced = True
        ledger.note(owner, f"direct_advanced:{definition.id}")
    return paid


def fire_metal_bonus(owner: PlayerState, catalog: BuildingCatalog, ledger: Ledger) -> int:
    """Tiance Mansion: paid each time one of the owner's fire buildings collects."""
    bonus_building = owns_effect(owner, EffectKind.FIRE_METAL_BONUS, catalog)
    if bonus_building is None:
        return 0
    effect = bonus_building.effect
    amount = effect.per_unit * count_by_element(owner, effect.element, catalog)
    return ledger.mint(owner, amount, f"fire_bonus:{bonus_building.id}")


def collect_fire_fee(
    definition: BuildingDefinition,
    owner: PlayerState,
    payer: PlayerState,
    fee: int,
    catalog: BuildingCatalog,
    ledger: Ledger,
    reason_prefix: str = "fire",
) -> int:
    paid = ledger.transfer(payer, owner, fee, f"{reason_prefix}:{definition.id}")
    if paid > 0:
        fire_metal_bonus(owner, catalog, ledger)
    return paid


def forced_demolition(
    payer: PlayerState,
    shortfall: int,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None = None,
) -> str | None:
    """
    Return one random non-legendary building worth at most `shortfall` to inventory.
    When the ledger carries planned demolitions the next one is taken instead of a random pick.
    Returns the demolished id, or None when nothing qualifies.
    """
    candidates = []
    for building_id in payer.buildings:
        definition = catalog.lookup(building_id)
        if definition is None or definition.is_legendary:
            continue
        if definition.cost <= shortfall:
            candidates.append(building_id)
    if not candidates:
        return None
    planned = ledger.planned_demolitions
    if planned is not None:
        if not planned or planned[0] not in candidates:
            raise ValueError(f"Logged demolitions {planned} do not match {payer.id}'s candidates {candidates}")
        chosen = planned.pop(0)
    else:
        source = rng if rng is not None else random
        chosen = source.choice(candidates)
    ledger.demolish(payer, chosen)
    return chosen


def escort_levy(
    definition: BuildingDefinition,
    owner: PlayerState,
    state: GameState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None = None,
    multiplier: int = 1,
    reason_prefix: str = "escort",
) -> int:
    """Every other player pays the flat levy; anyone short loses a building. Returns total collected."""
    fee = definition.effect.amount * multiplier
    collected = 0
    for payer in state.others(owner.id):
        paid = ledger.transfer(payer, owner, fee, f"{reason_prefix}:{definition.id}")
        collected += paid
        if paid < fee:
            forced_demolition(payer, fee - paid, catalog, ledger, rng)
    if collected > 0:
        fire_metal_bonus(owner, catalog, ledger)
    return collected
