"""
Game events for UI hooks and logging.
Events describe what happened during action processing.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Turn events
TURN_STARTED = "turn_started"
TURN_ENDED = "turn_ended"
ROUND_STARTED = "round_started"

# Dice events
DICE_ROLLED = "dice_rolled"
DIE_FLIPPED = "die_flipped"
ROLL_CONFIRMED = "roll_confirmed"

# Gold events
SETTLEMENT_RESOLVED = "settlement_resolved"
BUILDING_PURCHASED = "building_purchased"

# Rejections
ACTION_DECLINED = "action_declined"

# Victory events
VICTORY = "victory"


# ===== Decline Reasons =====

UNKNOWN_BUILDING = "unknown_building"
SOLD_OUT = "sold_out"
PLAYER_CAP_REACHED = "player_cap_reached"
MISSING_UPGRADE_SOURCE = "missing_upgrade_source"
INSUFFICIENT_UPGRADE_TOKENS = "insufficient_upgrade_tokens"
ALREADY_PURCHASED = "already_purchased"
INSUFFICIENT_GOLD = "insufficient_gold"
NOT_YOUR_TURN = "not_your_turn"
WRONG_STAGE = "wrong_stage"
GAME_OVER = "game_over"
NO_FACE_FLIP = "no_face_flip"
INVALID_DIE = "invalid_die"


# ===== Event Factory Functions =====

def turn_started(round_number: int, player_id: str) -> GameEvent:
    return GameEvent(TURN_STARTED, {
        "round_number": round_number,
        "player_id": player_id,
    })


def turn_ended(round_number: int, player_id: str) -> GameEvent:
    return GameEvent(TURN_ENDED, {
        "round_number": round_number,
        "player_id": player_id,
    })


def round_started(round_number: int) -> GameEvent:
    return GameEvent(ROUND_STARTED, {"round_number": round_number})


def dice_rolled(player_id: str, faces: list[int], total: int, is_double: bool, can_flip: bool) -> GameEvent:
    return GameEvent(DICE_ROLLED, {
        "player_id": player_id,
        "faces": faces,
        "total": total,
        "is_double": is_double,
        "can_flip": can_flip,  # True when settlement waits for confirm_roll
    })


def die_flipped(player_id: str, index: int, old_face: int, new_face: int) -> GameEvent:
    return GameEvent(DIE_FLIPPED, {
        "player_id": player_id,
        "index": index,
        "old_face": old_face,
        "new_face": new_face,
    })


def roll_confirmed(player_id: str, faces: list[int], total: int) -> GameEvent:
    return GameEvent(ROLL_CONFIRMED, {
        "player_id": player_id,
        "faces": faces,
        "total": total,
    })


def settlement_resolved(
    player_id: str,
    total: int,
    entries: list[dict[str, Any]],
    balances: dict[str, int],
    treasury: int,
    demolished: list[str],
) -> GameEvent:
    """Emitted after a roll is settled. entries is the audit log in payment order."""
    return GameEvent(SETTLEMENT_RESOLVED, {
        "player_id": player_id,
        "total": total,
        "entries": entries,
        "balances": balances,  # player_id -> gold after settlement
        "treasury": treasury,
        "demolished": demolished,  # building ids taken by forced demolition, in order
    })


def building_purchased(
    player_id: str,
    building_id: str,
    cost_paid: int,
    treasury_share: int,
    upgraded_from: str | None,
) -> GameEvent:
    return GameEvent(BUILDING_PURCHASED, {
        "player_id": player_id,
        "building_id": building_id,
        "cost_paid": cost_paid,
        "treasury_share": treasury_share,
        "upgraded_from": upgraded_from,
    })


def action_declined(player_id: str, action_type: str, reason: str, message: str = "") -> GameEvent:
    return GameEvent(ACTION_DECLINED, {
        "player_id": player_id,
        "action_type": action_type,
        "reason": reason,
        "message": message,
    })


def victory(winner: str, condition: str, building_id: str, gold: int) -> GameEvent:
    """
    Emitted when a player wins.

    Args:
        winner: Winning player id
        condition: "instant_win" or "threshold_win"
        building_id: The win legendary that decided it
        gold: Winner's gold at the time
    """
    return GameEvent(VICTORY, {
        "winner": winner,
        "condition": condition,
        "building_id": building_id,
        "gold": gold,
    })
