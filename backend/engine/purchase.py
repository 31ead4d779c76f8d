"""
Building purchases.

check_purchase evaluates a purchase without touching the state; purchase applies it.
Checks run in a fixed order and the first failure decides the decline reason.
"""

import logging
from dataclasses import dataclass
from typing import Any

from backend.engine import TREASURY_TAX_PERCENT
from backend.engine.definitions import BuildingCatalog, EffectKind
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
from backend.engine.state import GameState, PlayerState

logger = logging.getLogger(__name__)

# Tiers a free-building flag or a direct-advanced flag can pay for
FREE_BUILDING_TIERS = ("basic", "intermediate")
DIRECT_ADVANCED_TIERS = ("advanced",)

WAIVER_FREE_BUILDING = "free_building"
WAIVER_DIRECT_ADVANCED = "direct_advanced"


@dataclass
class PurchaseResult:
    """Outcome of a purchase. Declined results carry a reason and leave the state untouched."""
    accepted: bool
    reason: str | None = None
    building_id: str | None = None
    cost: int = 0
    treasury_share: int = 0
    upgrade_source: str | None = None  # instance traded in for an upgrade
    tokens_spent: int = 0
    waiver: str | None = None  # "free_building" / "direct_advanced" when the price was waived

    def to_dict(self) -> dict[str, Any]:
        return {
            "accepted": self.accepted,
            "reason": self.reason,
            "building_id": self.building_id,
            "cost": self.cost,
            "treasury_share": self.treasury_share,
            "upgrade_source": self.upgrade_source,
            "tokens_spent": self.tokens_spent,
            "waiver": self.waiver,
        }


def _declined(reason: str, building_id: str | None = None) -> PurchaseResult:
    return PurchaseResult(accepted=False, reason=reason, building_id=building_id)


def purchase_allowance(player: PlayerState) -> int:
    """Counted purchases still allowed this turn."""
    limit = 2 if player.flags.extra_purchase else 1
    return max(0, limit - player.flags.purchases_made)


def check_purchase(
    building_id: str,
    state: GameState,
    player: PlayerState,
    catalog: BuildingCatalog,
) -> PurchaseResult:
    """
    Evaluate a purchase without mutating anything.
    Returns an accepted result carrying the price that purchase() would charge, or a declined one.
    """
    definition = catalog.lookup(building_id)
    if definition is None:
        return _declined(UNKNOWN_BUILDING, building_id)

    if state.inventory.get(building_id, 0) <= 0:
        return _declined(SOLD_OUT, building_id)

    if definition.max_per_player is not None and player.count(building_id) >= definition.max_per_player:
        return _declined(PLAYER_CAP_REACHED, building_id)

    waiver = None
    if player.flags.direct_advanced and definition.tier in DIRECT_ADVANCED_TIERS:
        waiver = WAIVER_DIRECT_ADVANCED
    elif player.flags.free_building and definition.tier in FREE_BUILDING_TIERS:
        waiver = WAIVER_FREE_BUILDING

    # Direct purchases skip the upgrade chain entirely
    upgrade_source = None
    tokens = 0
    if definition.upgrade_from and waiver != WAIVER_DIRECT_ADVANCED:
        if player.count(definition.upgrade_from) == 0:
            return _declined(MISSING_UPGRADE_SOURCE, building_id)
        if player.upgrade_tokens < definition.upgrade_tokens:
            return _declined(INSUFFICIENT_UPGRADE_TOKENS, building_id)
        upgrade_source = definition.upgrade_from
        tokens = definition.upgrade_tokens

    if waiver is not None:
        cost = 0
    elif upgrade_source is not None:
        source = catalog.lookup(upgrade_source)
        cost = max(0, definition.cost - (source.cost if source else 0))
    else:
        cost = definition.cost

    # Waived purchases do not count against the one-per-turn limit
    if waiver is None and purchase_allowance(player) <= 0:
        return _declined(ALREADY_PURCHASED, building_id)

    if player.gold < cost:
        return _declined(INSUFFICIENT_GOLD, building_id)

    return PurchaseResult(
        accepted=True,
        building_id=building_id,
        cost=cost,
        treasury_share=cost * TREASURY_TAX_PERCENT // 100,
        upgrade_source=upgrade_source,
        tokens_spent=tokens,
        waiver=waiver,
    )


def purchase(
    building_id: str,
    state: GameState,
    acting_player_id: str,
    catalog: BuildingCatalog,
) -> PurchaseResult:
    """
    Buy one instance of building_id for the acting player, mutating state on success.
    Only the current player may buy. Unknown building ids decline with "unknown_building";
    nothing is raised.
    """
    player = state.get_player(acting_player_id)
    if player is None:
        raise ValueError(f"Unknown player {acting_player_id}")
    if state.current_player.id != player.id:
        logger.debug("Purchase of %s by %s declined: not their turn", building_id, player.id)
        return _declined(NOT_YOUR_TURN, building_id)
    result = check_purchase(building_id, state, player, catalog)
    if not result.accepted:
        logger.debug("Purchase of %s by %s declined: %s", building_id, player.id, result.reason)
        return result

    definition = catalog.lookup(building_id)
    player.gold -= result.cost
    state.treasury += result.treasury_share

    if result.upgrade_source is not None:
        player.upgrade_tokens -= result.tokens_spent
        player.buildings.remove(result.upgrade_source)
        state.inventory[result.upgrade_source] = state.inventory.get(result.upgrade_source, 0) + 1

    player.buildings.append(building_id)
    state.inventory[building_id] -= 1

    if result.waiver == WAIVER_DIRECT_ADVANCED:
        player.flags.direct_advanced = False
    elif result.waiver == WAIVER_FREE_BUILDING:
        player.flags.free_building = False
    else:
        player.flags.purchases_made += 1
        if player.flags.purchases_made > 1:
            # the extra purchase has been used
            player.flags.extra_purchase = False

    if definition.effect.kind == EffectKind.SECOND_DIE:
        player.dice_count = 2

    logger.debug(
        "%s bought %s for %d (treasury +%d)", player.id, building_id, result.cost, result.treasury_share
    )
    return result
