"""
Session setup and helpers.
"""

import math
from collections import Counter
from typing import Any

from backend.engine import (
    BASE_PLAYER_COUNT,
    MAX_PLAYERS,
    MIN_PLAYERS,
    STARTING_BUILDINGS,
    STARTING_DICE,
    STARTING_GOLD,
    WEATHER_MODES,
)
from backend.engine.definitions import WIN_LEGENDARIES, BuildingCatalog
from backend.engine.state import GameState, PlayerState


def pool_size(quantity: int, player_count: int) -> int:
    """Scale a base (4-player) quantity to the table size, rounding up."""
    return math.ceil(quantity * player_count / BASE_PLAYER_COUNT)


def resolve_enabled_legendaries(
    catalog: BuildingCatalog,
    legendary_toggles: dict[str, bool] | None = None,
) -> list[str]:
    """
    Legendary ids enabled for a session: catalog defaults overridden by legendary_toggles.
    Raises ValueError for ids that are not legendary or when both win legendaries are on.
    """
    toggles = legendary_toggles or {}
    for building_id in toggles:
        definition = catalog.lookup(building_id)
        if definition is None or not definition.is_legendary:
            raise ValueError(f"{building_id} is not a legendary building")
    enabled = [
        d.id for d in catalog.legendaries()
        if toggles.get(d.id, d.enabled_by_default)
    ]
    win_enabled = [b for b in enabled if b in WIN_LEGENDARIES]
    if len(win_enabled) > 1:
        raise ValueError(f"At most one win legendary may be enabled, got {win_enabled}")
    return enabled


def _normalize_roster(roster: list[Any]) -> list[tuple[str, str]]:
    """Accept [{"id", "name"}], [(id, name)] or [id] entries."""
    seats = []
    for entry in roster:
        if isinstance(entry, dict):
            player_id = str(entry["id"])
            name = str(entry.get("name") or player_id)
        elif isinstance(entry, (tuple, list)):
            player_id, name = str(entry[0]), str(entry[1])
        else:
            player_id = name = str(entry)
        seats.append((player_id, name))
    ids = [player_id for player_id, _ in seats]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate player ids in roster: {ids}")
    return seats


def initialize_game_state(
    roster: list[Any],
    weather_mode: str,
    legendary_toggles: dict[str, bool] | None,
    catalog: BuildingCatalog,
) -> GameState:
    """
    Create the initial game state for an ordered roster.

    Args:
        roster: Seats in turn order; each {"id": str, "name": str} (tuples or bare ids also accepted)
        weather_mode: "calm" or "turbulent"
        legendary_toggles: legendary id -> enabled, overriding the catalog defaults
        catalog: Building catalog

    Every player starts with STARTING_GOLD, one die and one copy of each STARTING_BUILDINGS entry,
    which is taken out of the shared inventory.
    """
    seats = _normalize_roster(roster)
    if not MIN_PLAYERS <= len(seats) <= MAX_PLAYERS:
        raise ValueError(f"Need {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(seats)}")
    if weather_mode not in WEATHER_MODES:
        raise ValueError(f"Unknown weather mode {weather_mode!r}")
    for building_id in STARTING_BUILDINGS:
        if building_id not in catalog:
            raise ValueError(f"Starting building {building_id} is not in the catalog")

    player_count = len(seats)
    enabled = resolve_enabled_legendaries(catalog, legendary_toggles)

    pool_sizes: dict[str, int] = {}
    for definition in catalog:
        if definition.is_legendary:
            pool_sizes[definition.id] = player_count if definition.id in enabled else 0
        else:
            pool_sizes[definition.id] = pool_size(definition.quantity, player_count)

    players = [
        PlayerState(
            id=player_id,
            name=name,
            gold=STARTING_GOLD,
            buildings=list(STARTING_BUILDINGS),
            dice_count=STARTING_DICE,
        )
        for player_id, name in seats
    ]

    inventory = dict(pool_sizes)
    for building_id in STARTING_BUILDINGS:
        inventory[building_id] -= player_count
        if inventory[building_id] < 0:
            raise ValueError(f"Pool for {building_id} is too small for {player_count} players")

    return GameState(
        players=players,
        inventory=inventory,
        pool_sizes=pool_sizes,
        weather_mode=weather_mode,
        enabled_legendaries=enabled,
    )


def check_inventory_invariant(state: GameState, catalog: BuildingCatalog) -> None:
    """
    Assert inventory + owned == pool for every building and legendary caps of one per player.
    Uses assert so it disappears under python -O.
    """
    for building_id, pool in state.pool_sizes.items():
        remaining = state.inventory.get(building_id, 0)
        owned = state.owned_count(building_id)
        assert remaining >= 0, f"Inventory for {building_id} went negative ({remaining})"
        assert remaining + owned == pool, (
            f"Inventory mismatch for {building_id}: {remaining} left + {owned} owned != pool {pool}"
        )
    for player in state.players:
        assert player.gold >= 0, f"{player.id} has negative gold"
        for building_id, count in Counter(player.buildings).items():
            definition = catalog.lookup(building_id)
            if definition is not None and definition.max_per_player is not None:
                assert count <= definition.max_per_player, (
                    f"{player.id} owns {count} x {building_id} (cap {definition.max_per_player})"
                )
    assert state.treasury >= 0, "Treasury went negative"


def print_game_state(state: GameState, catalog: BuildingCatalog) -> None:
    """Pretty-print the current game state."""
    current = state.current_player
    print(f"\n{'='*60}")
    print(f"Round {state.round_number} | Player: {current.name} | Stage: {state.stage} | Weather: {state.weather_mode}")
    print(f"Treasury: {state.treasury}")
    print(f"{'='*60}")

    for player in state.players:
        marker = "*" if player is current else " "
        print(f"\n{marker} {player.name} ({player.id}) gold={player.gold} dice={player.dice_count} "
              f"tokens={player.upgrade_tokens}")
        building_counts = Counter(player.buildings)
        for building_id, count in sorted(building_counts.items()):
            definition = catalog.lookup(building_id)
            label = definition.display_name if definition else building_id
            print(f"    - {label}: {count}")

    if state.last_roll is not None:
        print(f"\nLast roll: {list(state.last_roll.faces)} (total {state.last_roll.total})")
        for entry in state.last_settlement:
            print(f"    {entry.player_id:>10} {entry.delta:+4d}  {entry.reason}")
    if state.winner:
        print(f"\n*** GAME OVER - {state.winner} WINS ***")
    print()
