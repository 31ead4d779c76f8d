"""
Query functions for UI integration.
These functions help the UI understand what actions are available
without mutating game state.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any

from backend.engine import ELEMENTS
from backend.engine.state import GameState
from backend.engine.actions import Action, PURCHASE_BUILDING
from backend.engine.definitions import (
    BuildingCatalog,
    EffectKind,
    count_by_element,
    element_diversity_count,
)
from backend.engine.effects import owns_effect
from backend.engine.purchase import check_purchase, purchase_allowance
from backend.engine.reducer import STAGE_ALLOWED_ACTIONS, validate_turn
from backend.engine.victory import total_assets


@dataclass
class ValidationResult:
    """Result of action validation."""
    valid: bool
    error: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error, "reason": self.reason}


# ===== Action Validation =====

def validate_action(state: GameState, action: Action, catalog: BuildingCatalog) -> ValidationResult:
    """
    Validate an action without applying it.
    Returns ValidationResult with valid=True or valid=False with error message and reason tag.
    Dice actions are only checked for turn order and stage.
    """
    problem = validate_turn(state, action)
    if problem is not None:
        reason, message = problem
        return ValidationResult(False, message, reason)

    if action.type == PURCHASE_BUILDING:
        building_id = str(action.payload.get("building_id") or "")
        result = check_purchase(building_id, state, state.current_player, catalog)
        if not result.accepted:
            return ValidationResult(False, f"Cannot buy {building_id}: {result.reason}", result.reason)
    return ValidationResult(True)


def get_available_action_types(state: GameState) -> list[str]:
    """Get action types available in the current stage."""
    if state.ended or state.winner is not None:
        return []
    return list(STAGE_ALLOWED_ACTIONS.get(state.stage, []))


def get_purchasable_buildings(
    state: GameState,
    player_id: str,
    catalog: BuildingCatalog,
) -> list[dict[str, Any]]:
    """
    Every catalog building with the price this player would pay right now.
    Returns list of {building_id, display_name, tier, element, price, available, reason}.
    """
    player = state.get_player(player_id)
    if player is None:
        return []
    result = []
    for definition in catalog:
        if definition.is_legendary and definition.id not in state.enabled_legendaries:
            continue
        check = check_purchase(definition.id, state, player, catalog)
        result.append({
            "building_id": definition.id,
            "display_name": definition.display_name,
            "tier": definition.tier,
            "element": definition.element,
            "list_price": definition.cost,
            "price": check.cost if check.accepted else definition.cost,
            "remaining": state.inventory.get(definition.id, 0),
            "available": check.accepted,
            "reason": check.reason,
        })
    return result


def get_player_summary(state: GameState, player_id: str, catalog: BuildingCatalog) -> dict[str, Any]:
    """Holdings, element counts and standings for one player."""
    player = state.get_player(player_id)
    if player is None:
        return {}
    return {
        "id": player.id,
        "name": player.name,
        "gold": player.gold,
        "dice_count": player.dice_count,
        "upgrade_tokens": player.upgrade_tokens,
        "buildings": dict(Counter(player.buildings)),
        "elements": {e: count_by_element(player, e, catalog) for e in ELEMENTS},
        "element_diversity": element_diversity_count(player, catalog),
        "total_assets": total_assets(player, catalog),
        "purchases_left": purchase_allowance(player),
        "flags": player.flags.to_dict(),
    }


def get_standings(state: GameState, catalog: BuildingCatalog) -> list[dict[str, Any]]:
    """Players ranked by total assets (gold + building list prices), seat order breaks ties."""
    rows = [
        {"id": p.id, "name": p.name, "gold": p.gold, "total_assets": total_assets(p, catalog)}
        for p in state.players
    ]
    return sorted(rows, key=lambda r: -r["total_assets"])


def get_game_summary(state: GameState, catalog: BuildingCatalog) -> dict[str, Any]:
    """
    Get a summary of the current game state for UI display.
    """
    current = state.current_player
    return {
        "round_number": state.round_number,
        "current_player": current.id,
        "stage": state.stage,
        "weather_mode": state.weather_mode,
        "treasury": state.treasury,
        "winner": state.winner,
        "can_flip": state.pending_roll is not None
        and owns_effect(current, EffectKind.FACE_FLIP, catalog) is not None,
        "pending_roll": state.pending_roll.to_dict() if state.pending_roll else None,
        "last_roll": state.last_roll.to_dict() if state.last_roll else None,
        "standings": get_standings(state, catalog),
        "available_actions": get_available_action_types(state),
    }
