"""
Weather phase, run at the end of settlement on double rolls.

Calm weather pays the roller a bonus keyed to the doubled face.
Turbulent weather force-settles the roller's buildings of the keyed element, taxes the other
players' buildings of the element it counters, and on double six triggers an eclipse.
"""

import random

from backend.engine import DICE_SIDES, WEATHER_CALM, WEATHER_TURBULENT
from backend.engine.definitions import (
    OBSERVATORY,
    BuildingCatalog,
    BuildingDefinition,
    EffectKind,
    count_by_element,
    has_building,
)
from backend.engine.effects import (
    INCOME_PAYOUTS,
    collect_fire_fee,
    escort_levy,
    owned_definitions,
    settle_income,
    shielded_fee,
)
from backend.engine.dice import DiceRoll
from backend.engine.ledger import Ledger
from backend.engine.state import GameState, PlayerState

# Doubled face -> element
FACE_ELEMENTS = {
    1: "water",
    2: "wood",
    3: "earth",
    4: "fire",
    5: "metal",
}

# element -> the element it beats
COUNTERS = {
    "water": "fire",
    "fire": "metal",
    "metal": "wood",
    "wood": "earth",
    "earth": "water",
}

CALM_BASE = 5
CALM_PER_BUILDING = 1
CALM_TOP_DOUBLE_BONUS = 12

TURBULENT_MULTIPLIER = 2
TURBULENT_TAX_PER_BUILDING = 3
ECLIPSE_STIPEND = 10
ECLIPSE_TAX_PER_BUILDING = 1


def _calm(face: int, acting: PlayerState, catalog: BuildingCatalog, ledger: Ledger) -> None:
    if face == DICE_SIDES:
        ledger.mint(acting, CALM_TOP_DOUBLE_BONUS, "weather:calm:double_six")
        return
    element = FACE_ELEMENTS[face]
    bonus = CALM_BASE + CALM_PER_BUILDING * count_by_element(acting, element, catalog)
    ledger.mint(acting, bonus, f"weather:calm:{element}")


def _force_settle(
    definition: BuildingDefinition,
    acting: PlayerState,
    state: GameState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None,
) -> None:
    """Settle one building at the turbulent multiplier regardless of its trigger numbers. Gold only."""
    effect = definition.effect
    multiplier = TURBULENT_MULTIPLIER
    reason = f"weather:{definition.id}"
    if effect.kind in INCOME_PAYOUTS:
        settle_income(
            definition, acting, state, catalog, ledger,
            multiplier=multiplier, side_effects=False, reason_prefix="weather",
        )
    elif effect.kind == EffectKind.FIRE_FEE:
        for payer in state.others(acting.id):
            fee = shielded_fee(effect.amount, payer, catalog) * multiplier
            collect_fire_fee(definition, acting, payer, fee, catalog, ledger, reason_prefix="weather")
    elif effect.kind == EffectKind.FIRE_BALANCE_FEE:
        for payer in state.others(acting.id):
            fee = min(payer.gold // effect.divisor, effect.cap) * multiplier
            collect_fire_fee(definition, acting, payer, fee, catalog, ledger, reason_prefix="weather")
    elif effect.kind == EffectKind.FIRE_ESCORT_LEVY:
        escort_levy(
            definition, acting, state, catalog, ledger, rng,
            multiplier=multiplier, reason_prefix="weather",
        )
    elif effect.kind == EffectKind.TURN_STIPEND:
        ledger.mint(acting, effect.amount * multiplier, reason)
    elif effect.kind == EffectKind.TREASURY_INTEREST:
        interest = min(acting.gold // effect.divisor, effect.cap)
        ledger.draw_treasury(acting, interest * multiplier, reason)


def _eclipse(state: GameState, acting: PlayerState, catalog: BuildingCatalog, ledger: Ledger) -> None:
    if has_building(acting, OBSERVATORY):
        share = state.treasury
    else:
        share = state.treasury // 2
    ledger.mint(acting, ECLIPSE_STIPEND, "weather:eclipse")
    ledger.draw_treasury(acting, share, "weather:eclipse")
    for payer in state.others(acting.id):
        tax = ECLIPSE_TAX_PER_BUILDING * len(payer.buildings)
        ledger.pay_treasury(payer, tax, "weather:eclipse_tax")


def _turbulent(
    face: int,
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None,
) -> None:
    if face == DICE_SIDES:
        _eclipse(state, acting, catalog, ledger)
        return
    element = FACE_ELEMENTS[face]
    for definition in owned_definitions(acting, catalog):
        if definition.element == element:
            _force_settle(definition, acting, state, catalog, ledger, rng)
    countered = COUNTERS[element]
    for payer in state.others(acting.id):
        tax = TURBULENT_TAX_PER_BUILDING * count_by_element(payer, countered, catalog)
        ledger.pay_treasury(payer, tax, f"weather:tax:{countered}")


def resolve_weather(
    roll: DiceRoll,
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None = None,
) -> None:
    """Apply the active weather mode for a double roll. Non-double rolls are ignored."""
    if not roll.is_double:
        return
    face = roll.faces[0]
    if state.weather_mode == WEATHER_TURBULENT:
        _turbulent(face, state, acting, catalog, ledger, rng)
    elif state.weather_mode == WEATHER_CALM:
        _calm(face, acting, catalog, ledger)
    else:
        raise ValueError(f"Unknown weather mode {state.weather_mode!r}")
