"""
Settlement of one dice roll.

Phases run in a fixed order and later phases read balances changed by earlier ones:
    1. turn-start passives of the acting player
    2. fire (other players' fire buildings charge the roller; the roller's escort levy)
    3. self (acting player's wood/metal/earth buildings)
    4. water (every player's water buildings)
    5. grand canal synergy
    6. threshold bonus
    7. per-turn legendary stipends
    8. weather, on doubles only
"""

import logging
import random

from backend.engine import BANK, THRESHOLD_BONUS_TOTAL, TREASURY
from backend.engine.definitions import (
    BuildingCatalog,
    EffectKind,
    TRIGGER_ANY,
    TRIGGER_OTHERS,
    TRIGGER_OWN,
    count_by_element,
)
from backend.engine.dice import DiceRoll
from backend.engine.effects import (
    FIRE_KINDS,
    INCOME_PAYOUTS,
    TURN_START_KINDS,
    collect_fire_fee,
    escort_levy,
    owned_definitions,
    owns_effect,
    settle_income,
    shielded_fee,
)
from backend.engine.ledger import Ledger
from backend.engine.state import GameState, PlayerState, SettlementEntry
from backend.engine.weather import resolve_weather

logger = logging.getLogger(__name__)

SELF_PHASE_ELEMENTS = ("wood", "metal", "earth")

# Grand canal: (element that triggered, element whose holdings are counted)
SYNERGY_PAIRS = (("wood", "water"), ("water", "wood"))

LEGENDARY_KINDS = frozenset({
    EffectKind.CANAL_SYNERGY,
    EffectKind.FIRE_METAL_BONUS,
    EffectKind.THRESHOLD_BONUS,
    EffectKind.SECOND_DIE,
    EffectKind.THRESHOLD_WIN,
})

# Per-turn stipend paid in phase 7 (effect.amount) by these legendaries
STIPEND_KINDS = (EffectKind.SECOND_DIE, EffectKind.THRESHOLD_WIN)

# face_flip is read by the reducer, instant_win by victory
_HANDLED_OUTSIDE_SETTLEMENT = frozenset({EffectKind.FACE_FLIP, EffectKind.INSTANT_WIN})

_unhandled = (
    set(EffectKind)
    - set(INCOME_PAYOUTS)
    - FIRE_KINDS
    - TURN_START_KINDS
    - LEGENDARY_KINDS
    - _HANDLED_OUTSIDE_SETTLEMENT
)
if _unhandled:
    raise RuntimeError(f"Effect kinds without a handler: {sorted(k.value for k in _unhandled)}")


def _turn_start_passives(
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
) -> None:
    """All amounts are computed from the pre-roll state before anything is paid."""
    payouts: list[tuple[str, int, str]] = []  # (source, amount, reason)
    for definition in owned_definitions(acting, catalog):
        effect = definition.effect
        if effect.kind == EffectKind.TURN_STIPEND:
            payouts.append((BANK, effect.amount, f"stipend:{definition.id}"))
        elif effect.kind == EffectKind.TREASURY_INTEREST:
            interest = min(acting.gold // effect.divisor, effect.cap)
            payouts.append((TREASURY, interest, f"interest:{definition.id}"))
        elif effect.kind == EffectKind.ELEMENT_RESONANCE:
            bonus = effect.per_unit * count_by_element(acting, effect.element, catalog)
            payouts.append((BANK, bonus, f"resonance:{definition.id}"))
    for source, amount, reason in payouts:
        if source == TREASURY:
            ledger.draw_treasury(acting, amount, reason)
        else:
            ledger.mint(acting, amount, reason)


def _fire_phase(
    total: int,
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
    rng: random.Random | None,
) -> None:
    # Balance-scaled fees all read the same snapshot, so owner order cannot change them
    pre_phase_gold = acting.gold
    others = state.others(acting.id)
    for owner in others:
        for definition in owned_definitions(owner, catalog):
            effect = definition.effect
            if effect.kind != EffectKind.FIRE_BALANCE_FEE or definition.trigger_mode != TRIGGER_OTHERS:
                continue
            if not definition.triggered_by(total):
                continue
            fee = min(pre_phase_gold // effect.divisor, effect.cap)
            collect_fire_fee(definition, owner, acting, fee, catalog, ledger)

    for owner in others:
        for definition in owned_definitions(owner, catalog):
            if definition.effect.kind != EffectKind.FIRE_FEE or definition.trigger_mode != TRIGGER_OTHERS:
                continue
            if not definition.triggered_by(total):
                continue
            fee = shielded_fee(definition.effect.amount, acting, catalog)
            collect_fire_fee(definition, owner, acting, fee, catalog, ledger)

    for definition in owned_definitions(acting, catalog):
        if definition.effect.kind != EffectKind.FIRE_ESCORT_LEVY or definition.trigger_mode != TRIGGER_OWN:
            continue
        if definition.triggered_by(total):
            escort_levy(definition, acting, state, catalog, ledger, rng)


def _self_phase(
    total: int,
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
) -> set[str]:
    """Returns the elements of the acting player's buildings that paid out."""
    triggered = set()
    for definition in owned_definitions(acting, catalog):
        if definition.trigger_mode != TRIGGER_OWN or definition.element not in SELF_PHASE_ELEMENTS:
            continue
        if not definition.triggered_by(total):
            continue
        settle_income(definition, acting, state, catalog, ledger)
        triggered.add(definition.element)
    return triggered


def _water_phase(
    total: int,
    state: GameState,
    acting: PlayerState,
    catalog: BuildingCatalog,
    ledger: Ledger,
) -> set[str]:
    """Pays every owner. Returns the elements that paid out for the acting player."""
    triggered = set()
    for owner in state.players:
        for definition in owned_definitions(owner, catalog):
            if definition.trigger_mode != TRIGGER_ANY or not definition.triggered_by(total):
                continue
            settle_income(definition, owner, state, catalog, ledger)
            if owner is acting:
                triggered.add(definition.element)
    return triggered


def _synergy_bonus(
    acting: PlayerState,
    triggered_elements: set[str],
    catalog: BuildingCatalog,
    ledger: Ledger,
) -> None:
    if acting.flags.synergy_applied:
        return
    canal = owns_effect(acting, EffectKind.CANAL_SYNERGY, catalog)
    if canal is None:
        return
    for element, complement in SYNERGY_PAIRS:
        if element in triggered_elements:
            bonus = canal.effect.per_unit * count_by_element(acting, complement, catalog)
            ledger.mint(acting, bonus, f"synergy:{canal.id}")
            acting.flags.synergy_applied = True
            return


def _threshold_bonus(total: int, state: GameState, catalog: BuildingCatalog, ledger: Ledger) -> None:
    if total < THRESHOLD_BONUS_TOTAL:
        return
    for player in state.players:
        for definition in owned_definitions(player, catalog):
            if definition.effect.kind == EffectKind.THRESHOLD_BONUS:
                ledger.mint(player, definition.effect.amount, f"threshold:{definition.id}")


def _legendary_stipends(acting: PlayerState, catalog: BuildingCatalog, ledger: Ledger) -> None:
    for definition in owned_definitions(acting, catalog):
        if definition.effect.kind in STIPEND_KINDS:
            ledger.mint(acting, definition.effect.amount, f"stipend:{definition.id}")


def resolve_settlement(
    roll: DiceRoll,
    state: GameState,
    acting_player_id: str,
    catalog: BuildingCatalog,
    rng: random.Random | None = None,
    demolitions: list[str] | None = None,
) -> list[SettlementEntry]:
    """
    Apply every gold movement and flag change caused by `roll` to `state`.

    Args:
        roll: The confirmed dice roll
        state: Game state, mutated in place (the reducer passes a copy)
        acting_player_id: Player who rolled; must be the current player
        catalog: Building catalog
        rng: Random source for forced demolition (defaults to the random module)
        demolitions: Logged demolition picks to reuse instead of rng (replays)

    Returns:
        Audit log of the roll, in the order the movements happened
    """
    acting = state.get_player(acting_player_id)
    if acting is None:
        raise ValueError(f"Unknown player {acting_player_id}")
    if state.current_player.id != acting.id:
        raise ValueError(f"{acting.id} is not the current player ({state.current_player.id})")
    ledger = Ledger(state, demolitions)
    total = roll.total

    _turn_start_passives(state, acting, catalog, ledger)
    _fire_phase(total, state, acting, catalog, ledger, rng)
    triggered = _self_phase(total, state, acting, catalog, ledger)
    triggered |= _water_phase(total, state, acting, catalog, ledger)
    _synergy_bonus(acting, triggered, catalog, ledger)
    _threshold_bonus(total, state, catalog, ledger)
    _legendary_stipends(acting, catalog, ledger)
    if roll.is_double:
        resolve_weather(roll, state, acting, catalog, ledger, rng)
    if ledger.planned_demolitions:
        raise ValueError(f"Logged demolitions not used: {ledger.planned_demolitions}")

    logger.debug(
        "Settled roll %s for %s: %d entries, treasury %d",
        list(roll.faces), acting.id, len(ledger.entries), state.treasury,
    )
    return ledger.entries
