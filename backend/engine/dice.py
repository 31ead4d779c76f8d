"""
Dice rolls.
Rolls are value objects; the random source is injectable so tests and replays can fix the faces.
"""

import random
from dataclasses import dataclass
from typing import Any

from backend.engine import DICE_SIDES


@dataclass(frozen=True)
class DiceRoll:
    """One or two die faces in [1, DICE_SIDES]."""
    faces: tuple[int, ...]

    def __post_init__(self):
        if len(self.faces) not in (1, 2):
            raise ValueError(f"A roll has 1 or 2 dice, got {len(self.faces)}")
        for face in self.faces:
            if not 1 <= face <= DICE_SIDES:
                raise ValueError(f"Die face {face} is outside 1..{DICE_SIDES}")

    @property
    def total(self) -> int:
        return sum(self.faces)

    @property
    def is_double(self) -> bool:
        return len(self.faces) == 2 and self.faces[0] == self.faces[1]

    def to_dict(self) -> dict[str, Any]:
        return {"faces": list(self.faces), "total": self.total, "is_double": self.is_double}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiceRoll":
        return cls(faces=tuple(int(f) for f in data["faces"]))


def roll_dice(count: int, rng: random.Random | None = None) -> DiceRoll:
    """Roll `count` (1 or 2) independent fair dice."""
    if count not in (1, 2):
        raise ValueError(f"Can only roll 1 or 2 dice, got {count}")
    source = rng if rng is not None else random
    return DiceRoll(faces=tuple(source.randint(1, DICE_SIDES) for _ in range(count)))


def flip_face(roll: DiceRoll, index: int) -> DiceRoll:
    """Turn die `index` over: face v becomes 7 - v."""
    if not 0 <= index < len(roll.faces):
        raise ValueError(f"No die at index {index}")
    faces = list(roll.faces)
    faces[index] = DICE_SIDES + 1 - faces[index]
    return DiceRoll(faces=tuple(faces))
