"""
Action definitions for the game.
Actions are immutable, deterministic instructions.
"""

from dataclasses import dataclass, field
from typing import Any

ROLL_DICE = "roll_dice"
FLIP_DIE = "flip_die"
CONFIRM_ROLL = "confirm_roll"
PURCHASE_BUILDING = "purchase_building"
END_TURN = "end_turn"


@dataclass
class Action:
    """Base action class. All actions have a type, the acting player, and payload."""
    type: str  # e.g., "roll_dice", "purchase_building", "end_turn"
    player_id: str  # player performing the action
    payload: dict = field(default_factory=dict)  # Action-specific data

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "player_id": self.player_id, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        return cls(
            type=str(data["type"]),
            player_id=str(data["player_id"]),
            payload=dict(data.get("payload") or {}),
        )


def roll_dice(
    player_id: str,
    faces: list[int] | None = None,
    demolitions: list[str] | None = None,
) -> Action:
    """
    Roll the player's dice.
    faces: fixed die faces (replays and tests). Omitted = drawn from the reducer's RNG.
    demolitions: building ids a forced demolition takes, in order (replays). Omitted = random picks.
    The number of dice always comes from the player's state.
    """
    payload = {}
    if faces is not None:
        payload["faces"] = list(faces)
    if demolitions is not None:
        payload["demolitions"] = list(demolitions)
    return Action(type=ROLL_DICE, player_id=player_id, payload=payload)


def flip_die(player_id: str, index: int) -> Action:
    """Flip die `index` of an unconfirmed roll to its opposite face (Daming Palace owners)."""
    return Action(type=FLIP_DIE, player_id=player_id, payload={"index": index})


def confirm_roll(player_id: str, demolitions: list[str] | None = None) -> Action:
    """Lock in an unconfirmed roll and settle it."""
    payload = {} if demolitions is None else {"demolitions": list(demolitions)}
    return Action(type=CONFIRM_ROLL, player_id=player_id, payload=payload)


def purchase_building(player_id: str, building_id: str) -> Action:
    """
    Buy one building.
    Example: purchase_building("p1", "fire_basic_wine_house")
    """
    return Action(type=PURCHASE_BUILDING, player_id=player_id, payload={"building_id": building_id})


def end_turn(player_id: str) -> Action:
    """End the turn and pass the dice to the next seat."""
    return Action(type=END_TURN, player_id=player_id)
