"""
Game state representation.
The reducer never mutates the state it is given; it works on a copy and returns it.
Includes JSON serialization for save/load functionality.
"""

import json
from dataclasses import dataclass, field
from copy import deepcopy
from typing import Any

from backend.engine import WEATHER_CALM, WEATHER_MODES
from backend.engine.dice import DiceRoll

# Turn stages
STAGE_AWAITING_ROLL = "awaiting_roll"
STAGE_AWAITING_CONFIRM = "awaiting_confirm"  # rolled, faces may still be flipped
STAGE_AWAITING_POST_ROLL = "awaiting_post_roll"  # settled; purchases and end_turn
STAGES = (STAGE_AWAITING_ROLL, STAGE_AWAITING_CONFIRM, STAGE_AWAITING_POST_ROLL)


def _int(v: Any, default: int) -> int:
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _ensure_str_list(value: Any) -> list[str]:
    """Ensure value is a list of strings (building ids, legendary toggles from DB)."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(x) for x in value]
    return []


def _ensure_int_map(value: Any) -> dict[str, int]:
    if not isinstance(value, dict):
        return {}
    return {str(k): _int(v, 0) for k, v in value.items()}


@dataclass
class TurnFlags:
    """Turn-scoped flags of one player. Replaced as a unit at end of turn."""
    extra_purchase: bool = False  # one more counted purchase allowed
    free_building: bool = False  # next basic/intermediate purchase costs nothing
    direct_advanced: bool = False  # next advanced purchase costs nothing and skips the upgrade chain
    synergy_applied: bool = False  # grand canal bonus already paid this turn
    purchases_made: int = 0  # counted purchases this turn

    def to_dict(self) -> dict[str, Any]:
        return {
            "extra_purchase": self.extra_purchase,
            "free_building": self.free_building,
            "direct_advanced": self.direct_advanced,
            "synergy_applied": self.synergy_applied,
            "purchases_made": self.purchases_made,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TurnFlags":
        if not isinstance(data, dict):
            data = {}
        return cls(
            extra_purchase=bool(data.get("extra_purchase", False)),
            free_building=bool(data.get("free_building", False)),
            direct_advanced=bool(data.get("direct_advanced", False)),
            synergy_applied=bool(data.get("synergy_applied", False)),
            purchases_made=max(0, _int(data.get("purchases_made"), 0)),
        )


@dataclass
class PlayerState:
    """One seat at the table."""
    id: str
    name: str
    gold: int
    buildings: list[str] = field(default_factory=list)  # one building id per owned instance
    dice_count: int = 1
    upgrade_tokens: int = 0
    flags: TurnFlags = field(default_factory=TurnFlags)

    def count(self, building_id: str) -> int:
        return self.buildings.count(building_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gold": self.gold,
            "buildings": list(self.buildings),
            "dice_count": self.dice_count,
            "upgrade_tokens": self.upgrade_tokens,
            "flags": self.flags.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerState":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or data.get("id") or ""),
            gold=max(0, _int(data.get("gold"), 0)),
            buildings=_ensure_str_list(data.get("buildings")),
            dice_count=2 if _int(data.get("dice_count"), 1) == 2 else 1,
            upgrade_tokens=max(0, _int(data.get("upgrade_tokens"), 0)),
            flags=TurnFlags.from_dict(data.get("flags")),
        )


@dataclass
class SettlementEntry:
    """
    One gold movement (or zero-delta note) produced while settling a roll.
    counterparty is another player id, "treasury" or "bank".
    nominal is set only when a payer could not cover the full amount.
    """
    player_id: str
    delta: int
    reason: str
    counterparty: str
    nominal: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {
            "player_id": self.player_id,
            "delta": self.delta,
            "reason": self.reason,
            "counterparty": self.counterparty,
        }
        if self.nominal is not None:
            out["nominal"] = self.nominal
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SettlementEntry":
        nominal = data.get("nominal")
        return cls(
            player_id=str(data.get("player_id") or ""),
            delta=_int(data.get("delta"), 0),
            reason=str(data.get("reason") or ""),
            counterparty=str(data.get("counterparty") or ""),
            nominal=_int(nominal, 0) if nominal is not None else None,
        )


@dataclass
class GameState:
    """Complete game state."""
    players: list[PlayerState]  # seat order
    inventory: dict[str, int]  # building_id -> copies still purchasable
    # building_id -> scaled pool for this player count (inventory + owned always equals it)
    pool_sizes: dict[str, int] = field(default_factory=dict)
    current_player_index: int = 0
    round_number: int = 1
    treasury: int = 0
    weather_mode: str = WEATHER_CALM
    enabled_legendaries: list[str] = field(default_factory=list)
    stage: str = STAGE_AWAITING_ROLL
    # Rolled but not yet settled (only while a face flip is possible)
    pending_roll: DiceRoll | None = None
    last_roll: DiceRoll | None = None
    last_settlement: list[SettlementEntry] = field(default_factory=list)
    # Winning player id (None while the game is running)
    winner: str | None = None
    ended: bool = False

    def copy(self) -> "GameState":
        """Return a deep copy of this game state."""
        return deepcopy(self)

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    def get_player(self, player_id: str) -> PlayerState | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def others(self, player_id: str) -> list[PlayerState]:
        """All players except player_id, in seat order."""
        return [p for p in self.players if p.id != player_id]

    def owned_count(self, building_id: str) -> int:
        return sum(p.count(building_id) for p in self.players)

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameState to a dictionary for JSON serialization."""
        return {
            "players": [p.to_dict() for p in self.players],
            "inventory": dict(self.inventory),
            "pool_sizes": dict(self.pool_sizes),
            "current_player_index": self.current_player_index,
            "round_number": self.round_number,
            "treasury": self.treasury,
            "weather_mode": self.weather_mode,
            "enabled_legendaries": list(self.enabled_legendaries),
            "stage": self.stage,
            "pending_roll": self.pending_roll.to_dict() if self.pending_roll else None,
            "last_roll": self.last_roll.to_dict() if self.last_roll else None,
            "last_settlement": [e.to_dict() for e in self.last_settlement],
            "winner": self.winner,
            "ended": self.ended,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """Create GameState from a dictionary (handles missing/None for stored snapshots)."""
        players = [
            PlayerState.from_dict(p) for p in (data.get("players") or []) if isinstance(p, dict)
        ]
        index = _int(data.get("current_player_index"), 0)
        if players and not 0 <= index < len(players):
            index = 0
        weather_mode = data.get("weather_mode")
        stage = data.get("stage")
        pending = data.get("pending_roll")
        last = data.get("last_roll")
        settlement = data.get("last_settlement") or []
        return cls(
            players=players,
            inventory=_ensure_int_map(data.get("inventory")),
            pool_sizes=_ensure_int_map(data.get("pool_sizes")),
            current_player_index=index,
            round_number=max(1, _int(data.get("round_number"), 1)),
            treasury=max(0, _int(data.get("treasury"), 0)),
            weather_mode=weather_mode if weather_mode in WEATHER_MODES else WEATHER_CALM,
            enabled_legendaries=_ensure_str_list(data.get("enabled_legendaries")),
            stage=stage if stage in STAGES else STAGE_AWAITING_ROLL,
            pending_roll=DiceRoll.from_dict(pending) if isinstance(pending, dict) else None,
            last_roll=DiceRoll.from_dict(last) if isinstance(last, dict) else None,
            last_settlement=[
                SettlementEntry.from_dict(e) for e in settlement if isinstance(e, dict)
            ],
            winner=data.get("winner"),
            ended=bool(data.get("ended", False)),
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize GameState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "GameState":
        """Deserialize GameState from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    def save(self, filepath: str) -> None:
        """Save GameState to a JSON file."""
        with open(filepath, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, filepath: str) -> "GameState":
        """Load GameState from a JSON file."""
        with open(filepath, "r") as f:
            return cls.from_json(f.read())
