import random

import pytest

from backend.engine.dice import DiceRoll, flip_face, roll_dice


@pytest.mark.parametrize("face", range(1, 7))
def test_two_equal_faces_are_a_double(face):
    roll = DiceRoll(faces=(face, face))
    assert roll.is_double
    assert roll.total == 2 * face


def test_single_die_is_never_a_double():
    assert not DiceRoll(faces=(3,)).is_double
    assert not DiceRoll(faces=(3, 4)).is_double


@pytest.mark.parametrize("faces", [(), (0,), (7,), (1, 2, 3), (6, 9)])
def test_invalid_faces_are_rejected(faces):
    with pytest.raises(ValueError):
        DiceRoll(faces=faces)


def test_roll_dice_stays_in_range():
    rng = random.Random(1234)
    for _ in range(200):
        roll = roll_dice(2, rng)
        assert len(roll.faces) == 2
        assert all(1 <= f <= 6 for f in roll.faces)
        assert 2 <= roll.total <= 12


def test_roll_dice_is_reproducible_with_a_seed():
    first = [roll_dice(2, random.Random(99)).faces for _ in range(3)]
    second = [roll_dice(2, random.Random(99)).faces for _ in range(3)]
    assert first == second


@pytest.mark.parametrize("count", [0, 3])
def test_roll_dice_rejects_other_counts(count):
    with pytest.raises(ValueError):
        roll_dice(count)


def test_flip_face_turns_die_over():
    roll = DiceRoll(faces=(2, 6))
    assert flip_face(roll, 0).faces == (5, 6)
    assert flip_face(roll, 1).faces == (2, 1)
    # original roll is untouched
    assert roll.faces == (2, 6)


def test_flip_face_rejects_missing_die():
    with pytest.raises(ValueError):
        flip_face(DiceRoll(faces=(4,)), 1)


def test_dict_round_trip():
    roll = DiceRoll(faces=(3, 3))
    data = roll.to_dict()
    assert data == {"faces": [3, 3], "total": 6, "is_double": True}
    assert DiceRoll.from_dict(data) == roll
