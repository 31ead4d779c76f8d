"""
Static building definitions.
The catalog lives in data/buildings.json and is loaded once into an immutable BuildingCatalog.
Each building carries one Effect whose kind is a member of the closed EffectKind enumeration.
"""

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator, Optional

from backend.engine import DEFAULT_UPGRADE_TOKENS, ELEMENTS

if TYPE_CHECKING:
    from backend.engine.state import PlayerState

DATA_DIR = Path(__file__).parent.parent / "data"
BUILDINGS_FILE = DATA_DIR / "buildings.json"

ELEMENT_NONE = "none"
TIERS = ("basic", "intermediate", "advanced", "legendary")
TIER_LEGENDARY = "legendary"

TRIGGER_OWN = "own"  # acting player's roll only
TRIGGER_ANY = "any"  # every roll, for every owner
TRIGGER_OTHERS = "others"  # rolls made by other players
TRIGGER_MODES = (TRIGGER_OWN, TRIGGER_ANY, TRIGGER_OTHERS)

# Legendary buildings referenced by rule code
OBSERVATORY = "legendary_observatory"
GRAND_CANAL = "legendary_grand_canal"
WILD_GOOSE_PAGODA = "legendary_wild_goose_pagoda"
KUNMING_LAKE = "legendary_kunming_lake"
TIANCE_MANSION = "legendary_tiance_mansion"
LEYOU_PLATEAU = "legendary_leyou_plateau"
DAMING_PALACE = "legendary_daming_palace"
TRIBUTE_OF_NATIONS = "legendary_tribute_of_nations"
NINE_TRIPOD_TEMPLE = "legendary_nine_tripod_temple"

# Mutually exclusive win legendaries; a session enables at most one
WIN_LEGENDARIES = (TRIBUTE_OF_NATIONS, NINE_TRIPOD_TEMPLE)


class EffectKind(str, Enum):
    """Closed set of building effects. Every kind is handled by exactly one settlement step."""
    # Dice-triggered income
    FLAT_INCOME = "flat_income"
    ELEMENT_SCALED_INCOME = "element_scaled_income"  # amount + per_unit * own buildings of element
    GLOBAL_ELEMENT_SCALED_INCOME = "global_element_scaled_income"  # counts every player's buildings
    SHIELDED_INCOME = "shielded_income"  # flat income; owner's flat fire fees are halved
    BANK_INTEREST = "bank_interest"  # percent of own gold (capped) plus a draw from the treasury
    UPGRADE_TOKEN_INCOME = "upgrade_token_income"
    EXTRA_PURCHASE = "extra_purchase"
    FREE_BUILDING = "free_building"
    DIRECT_ADVANCED = "direct_advanced"
    # Fire
    FIRE_FEE = "fire_fee"
    FIRE_BALANCE_FEE = "fire_balance_fee"
    FIRE_ESCORT_LEVY = "fire_escort_levy"
    # Turn-start passives
    TURN_STIPEND = "turn_stipend"
    TREASURY_INTEREST = "treasury_interest"
    ELEMENT_RESONANCE = "element_resonance"
    # Legendary
    SECOND_DIE = "second_die"
    CANAL_SYNERGY = "canal_synergy"
    FIRE_METAL_BONUS = "fire_metal_bonus"
    THRESHOLD_BONUS = "threshold_bonus"
    FACE_FLIP = "face_flip"
    THRESHOLD_WIN = "threshold_win"
    INSTANT_WIN = "instant_win"


@dataclass(frozen=True)
class Effect:
    """Effect kind plus the numeric parameters it reads. Unused parameters stay 0/None."""
    kind: EffectKind
    amount: int = 0
    per_unit: int = 0
    element: Optional[str] = None
    percent: int = 0
    divisor: int = 0
    cap: int = 0
    treasury_amount: int = 0
    tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["kind"] = self.kind.value
        return {k: v for k, v in out.items() if v not in (0, None) or k == "kind"}


@dataclass(frozen=True)
class BuildingDefinition:
    """Defines immutable properties of a building type."""
    id: str
    display_name: str
    element: str  # one of ELEMENTS or "none" (legendary)
    tier: str  # "basic", "intermediate", "advanced", "legendary"
    cost: int
    effect: Effect
    triggers: frozenset[int] = frozenset()
    trigger_mode: str = TRIGGER_OWN
    quantity: int = 0  # pool size for BASE_PLAYER_COUNT players; legendary pools scale 1 per player
    upgrade_from: Optional[str] = None
    upgrade_tokens: int = 0
    max_per_player: Optional[int] = None
    enabled_by_default: bool = True
    description: str = ""

    @property
    def is_legendary(self) -> bool:
        return self.tier == TIER_LEGENDARY

    def triggered_by(self, total: int) -> bool:
        return total in self.triggers

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "element": self.element,
            "tier": self.tier,
            "cost": self.cost,
            "effect": self.effect.to_dict(),
            "triggers": sorted(self.triggers),
            "trigger_mode": self.trigger_mode,
            "quantity": self.quantity,
            "upgrade_from": self.upgrade_from,
            "upgrade_tokens": self.upgrade_tokens,
            "max_per_player": self.max_per_player,
            "enabled_by_default": self.enabled_by_default,
            "description": self.description,
        }


@dataclass(frozen=True)
class BuildingCatalog:
    """Read-only registry of building definitions, in catalog file order."""
    _definitions: MappingProxyType = field(repr=False)

    def lookup(self, building_id: str) -> BuildingDefinition | None:
        """Return the definition for building_id, or None when the id is unknown."""
        return self._definitions.get(building_id)

    def __contains__(self, building_id: object) -> bool:
        return building_id in self._definitions

    def __iter__(self) -> Iterator[BuildingDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def ids(self) -> list[str]:
        return list(self._definitions.keys())

    def legendaries(self) -> list[BuildingDefinition]:
        return [d for d in self if d.is_legendary]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {d.id: d.to_dict() for d in self}


def _parse_effect(building_id: str, data: Any) -> Effect:
    if not isinstance(data, dict) or "kind" not in data:
        raise ValueError(f"Building {building_id}: effect must be an object with a 'kind'")
    try:
        kind = EffectKind(data["kind"])
    except ValueError:
        raise ValueError(f"Building {building_id}: unknown effect kind {data['kind']!r}") from None
    element = data.get("element")
    if element is not None and element not in ELEMENTS:
        raise ValueError(f"Building {building_id}: unknown effect element {element!r}")
    return Effect(
        kind=kind,
        amount=int(data.get("amount", 0)),
        per_unit=int(data.get("per_unit", 0)),
        element=element,
        percent=int(data.get("percent", 0)),
        divisor=int(data.get("divisor", 0)),
        cap=int(data.get("cap", 0)),
        treasury_amount=int(data.get("treasury_amount", 0)),
        tokens=int(data.get("tokens", 0)),
    )


def _parse_building(building_id: str, data: dict[str, Any]) -> BuildingDefinition:
    element = data["element"]
    if element not in ELEMENTS and element != ELEMENT_NONE:
        raise ValueError(f"Building {building_id}: unknown element {element!r}")
    tier = data["tier"]
    if tier not in TIERS:
        raise ValueError(f"Building {building_id}: unknown tier {tier!r}")
    trigger_mode = data.get("trigger_mode", TRIGGER_OWN)
    if trigger_mode not in TRIGGER_MODES:
        raise ValueError(f"Building {building_id}: unknown trigger mode {trigger_mode!r}")
    upgrade_from = data.get("upgrade_from")
    upgrade_tokens = int(data.get("upgrade_tokens", DEFAULT_UPGRADE_TOKENS if upgrade_from else 0))
    max_per_player = data.get("max_per_player")
    if tier == TIER_LEGENDARY:
        max_per_player = 1
    return BuildingDefinition(
        id=building_id,
        display_name=data["display_name"],
        element=element,
        tier=tier,
        cost=int(data["cost"]),
        effect=_parse_effect(building_id, data.get("effect")),
        triggers=frozenset(int(t) for t in data.get("triggers", [])),
        trigger_mode=trigger_mode,
        quantity=int(data.get("quantity", 0)),
        upgrade_from=upgrade_from,
        upgrade_tokens=upgrade_tokens,
        max_per_player=int(max_per_player) if max_per_player is not None else None,
        enabled_by_default=bool(data.get("enabled_by_default", True)),
        description=data.get("description", ""),
    )


def catalog_from_dict(data: dict[str, dict[str, Any]]) -> BuildingCatalog:
    """
    Build a catalog from {building_id: fields}.
    Raises ValueError on malformed entries or dangling upgrade sources.
    """
    definitions: dict[str, BuildingDefinition] = {}
    for building_id, fields in data.items():
        definitions[building_id] = _parse_building(building_id, fields)
    for definition in definitions.values():
        if definition.upgrade_from and definition.upgrade_from not in definitions:
            raise ValueError(
                f"Building {definition.id}: upgrade source {definition.upgrade_from} is not in the catalog"
            )
    return BuildingCatalog(MappingProxyType(definitions))


def load_building_catalog(path: Path | str | None = None) -> BuildingCatalog:
    """
    Load the building catalog from JSON.

    Args:
        path: Path to a buildings JSON file. Defaults to data/buildings.json.
    """
    path = Path(path) if path is not None else BUILDINGS_FILE
    with open(path, "r") as f:
        data = json.load(f)
    return catalog_from_dict(data)


# ===== Derived queries =====

def count_by_element(player: "PlayerState", element: str, catalog: BuildingCatalog) -> int:
    """Number of building instances the player owns whose element is `element`."""
    count = 0
    for building_id in player.buildings:
        definition = catalog.lookup(building_id)
        if definition and definition.element == element:
            count += 1
    return count


def has_building(player: "PlayerState", building_id: str) -> bool:
    return building_id in player.buildings


def element_diversity_count(player: "PlayerState", catalog: BuildingCatalog) -> int:
    """Count of distinct elements the player holds at least one building of."""
    held = set()
    for building_id in player.buildings:
        definition = catalog.lookup(building_id)
        if definition and definition.element in ELEMENTS:
            held.add(definition.element)
    return len(held)
