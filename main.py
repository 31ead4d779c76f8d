"""
Main entry point for the Five Elements Market rules engine.
Demonstrates core functionality with a short scripted game.
"""

import random

from backend.engine.definitions import load_building_catalog
from backend.engine.actions import (
    roll_dice,
    purchase_building,
    end_turn,
)
from backend.engine.reducer import apply_action
from backend.engine.events import ACTION_DECLINED
from backend.engine.utils import initialize_game_state, print_game_state


def play(state, action, catalog, rng):
    """Apply an action and print what happened."""
    state, events = apply_action(state, action, catalog, rng)
    for e in events:
        if e.type == ACTION_DECLINED:
            print(f"✗ {action.type} declined: {e.payload['reason']}")
        elif e.type == "settlement_resolved":
            p = e.payload
            print(f"  Settled total {p['total']}: {len(p['entries'])} entries, balances {p['balances']}")
        elif e.type == "building_purchased":
            p = e.payload
            print(f"✓ {p['player_id']} bought {p['building_id']} for {p['cost_paid']}")
        elif e.type == "dice_rolled":
            p = e.payload
            print(f"{p['player_id']} rolled {p['faces']} (total {p['total']})")
        elif e.type == "victory":
            print(f"*** {e.payload['winner']} WINS ***")
    return state


def main():
    print("Five Elements Market - rules engine demo")
    print("=" * 60)

    catalog = load_building_catalog()
    rng = random.Random(7)
    roster = [{"id": "li", "name": "Li"}, {"id": "wang", "name": "Wang"}, {"id": "zhao", "name": "Zhao"}]
    state = initialize_game_state(roster, "turbulent", {}, catalog)

    print("\n[INITIAL STATE]")
    print_game_state(state, catalog)

    # ===== SCENARIO 1: A few rounds of random rolls with simple purchases =====
    print("\n[SCENARIO 1: Three rounds]")
    wish_list = ["fire_basic_wine_house", "wood_basic_tea_house", "metal_basic_smithy"]
    while state.round_number <= 3 and not state.ended:
        player = state.current_player
        state = play(state, roll_dice(player.id), catalog, rng)
        for building_id in wish_list:
            state = play(state, purchase_building(player.id, building_id), catalog, rng)
            if state.current_player.flags.purchases_made:
                break
        state = play(state, end_turn(player.id), catalog, rng)

    print_game_state(state, catalog)

    # ===== SCENARIO 2: Fixed roll - a wine house owner collects on a 7 =====
    print("\n[SCENARIO 2: Fire payment on a fixed roll]")
    state = initialize_game_state(roster[:2], "calm", {}, catalog)
    state.players[0].buildings.append("fire_basic_wine_house")
    state.inventory["fire_basic_wine_house"] -= 1
    state = play(state, end_turn("li"), catalog, rng)  # declined: li has not rolled
    state = play(state, roll_dice("li", faces=[3]), catalog, rng)
    state = play(state, end_turn("li"), catalog, rng)
    state.players[1].dice_count = 2
    state = play(state, roll_dice("wang", faces=[3, 4]), catalog, rng)
    print_game_state(state, catalog)


if __name__ == "__main__":
    main()
