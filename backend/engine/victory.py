"""
Victory checks.
A session enables at most one win legendary: the instant-win temple or the threshold-win tribute.
"""

from backend.engine import WIN_GOLD_THRESHOLD
from backend.engine.definitions import BuildingCatalog, EffectKind
from backend.engine.effects import owns_effect
from backend.engine.state import GameState, PlayerState

CONDITION_INSTANT = EffectKind.INSTANT_WIN.value
CONDITION_THRESHOLD = EffectKind.THRESHOLD_WIN.value


def winning_condition(player: PlayerState, catalog: BuildingCatalog) -> tuple[str, str] | None:
    """(condition, building_id) if the player currently meets a win condition, else None."""
    instant = owns_effect(player, EffectKind.INSTANT_WIN, catalog)
    if instant is not None:
        return CONDITION_INSTANT, instant.id
    threshold = owns_effect(player, EffectKind.THRESHOLD_WIN, catalog)
    if threshold is not None and player.gold >= WIN_GOLD_THRESHOLD:
        return CONDITION_THRESHOLD, threshold.id
    return None


def check_win_condition(state: GameState, catalog: BuildingCatalog) -> PlayerState | None:
    """First player in seat order who meets a win condition, or None."""
    for player in state.players:
        if winning_condition(player, catalog) is not None:
            return player
    return None


def total_assets(player: PlayerState, catalog: BuildingCatalog) -> int:
    """Gold plus the list price of every owned building. Used for standings."""
    total = player.gold
    for building_id in player.buildings:
        definition = catalog.lookup(building_id)
        if definition is not None:
            total += definition.cost
    return total
