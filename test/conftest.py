"""
Shared fixtures: the building catalog, fresh games and a helper to hand out buildings.
"""

import os

# The API module binds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random

import pytest

from backend.engine.definitions import load_building_catalog
from backend.engine.utils import initialize_game_state


class FirstChoiceRandom(random.Random):
    """Random whose choice() always picks the first candidate."""

    def choice(self, seq):
        return seq[0]


@pytest.fixture(scope="session")
def catalog():
    return load_building_catalog()


@pytest.fixture
def state(catalog):
    """Two-player calm game, east to act."""
    return initialize_game_state(["east", "west"], "calm", {}, catalog)


@pytest.fixture
def three_player_state(catalog):
    return initialize_game_state(["east", "west", "north"], "calm", {}, catalog)


@pytest.fixture
def turbulent_state(catalog):
    return initialize_game_state(["east", "west", "north"], "turbulent", {}, catalog)


@pytest.fixture
def give():
    """Move copies of a building from the shared inventory to a player."""
    def _give(state, player_id, building_id, count=1):
        player = state.get_player(player_id)
        for _ in range(count):
            assert state.inventory[building_id] > 0, f"{building_id} sold out"
            state.inventory[building_id] -= 1
            player.buildings.append(building_id)
        return player
    return _give


@pytest.fixture
def first_choice_rng():
    return FirstChoiceRandom(0)
