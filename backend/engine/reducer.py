"""
Main game reducer (turn controller).
Applies actions to state, enforcing turn order and stage rules.
Returns (new_state, events) where events describe what happened.

Stages of a turn:
    awaiting_roll      -> roll_dice      -> awaiting_post_roll
                                            (awaiting_confirm when the roller owns the Daming Palace)
    awaiting_confirm   -> flip_die*      -> confirm_roll -> awaiting_post_roll
    awaiting_post_roll -> purchase_building* -> end_turn -> awaiting_roll (next seat)

Declined actions leave the state untouched: the same state object is returned with a
single action_declined event. Unknown action types and malformed payloads raise ValueError.
"""

import logging
import random

from backend.engine.state import (
    GameState,
    TurnFlags,
    STAGE_AWAITING_CONFIRM,
    STAGE_AWAITING_POST_ROLL,
    STAGE_AWAITING_ROLL,
)
from backend.engine.actions import (
    Action,
    CONFIRM_ROLL,
    END_TURN,
    FLIP_DIE,
    PURCHASE_BUILDING,
    ROLL_DICE,
)
from backend.engine.definitions import BuildingCatalog, EffectKind
from backend.engine.dice import DiceRoll, flip_face, roll_dice
from backend.engine.effects import owns_effect
from backend.engine.ledger import demolished_ids
from backend.engine.purchase import purchase
from backend.engine.settlement import resolve_settlement
from backend.engine.utils import check_inventory_invariant
from backend.engine.victory import check_win_condition, winning_condition
from backend.engine.events import (
    GameEvent,
    GAME_OVER,
    INVALID_DIE,
    NO_FACE_FLIP,
    NOT_YOUR_TURN,
    WRONG_STAGE,
    action_declined,
    building_purchased,
    dice_rolled,
    die_flipped,
    roll_confirmed,
    round_started,
    settlement_resolved,
    turn_ended,
    turn_started,
    victory,
)

logger = logging.getLogger(__name__)


# Stage rules: which action types are allowed in which stage
STAGE_ALLOWED_ACTIONS = {
    STAGE_AWAITING_ROLL: [ROLL_DICE],
    STAGE_AWAITING_CONFIRM: [FLIP_DIE, CONFIRM_ROLL],
    STAGE_AWAITING_POST_ROLL: [PURCHASE_BUILDING, END_TURN],
}

ACTION_TYPES = (ROLL_DICE, FLIP_DIE, CONFIRM_ROLL, PURCHASE_BUILDING, END_TURN)


class Declined(Exception):
    """Raised inside handlers to abandon the working copy and decline the action."""

    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason)
        self.reason = reason
        self.message = message


def validate_turn(state: GameState, action: Action) -> tuple[str, str] | None:
    """
    Check game-over, turn order and stage for an action.
    Returns (reason, message) when the action must be declined, else None.
    """
    if state.ended or state.winner is not None:
        return GAME_OVER, f"Game is over. {state.winner} has won."
    current = state.current_player
    if action.player_id != current.id:
        return NOT_YOUR_TURN, f"Not {action.player_id}'s turn. Current player: {current.id}"
    allowed = STAGE_ALLOWED_ACTIONS.get(state.stage, [])
    if action.type not in allowed:
        return WRONG_STAGE, (
            f"Action '{action.type}' is not allowed in stage '{state.stage}'. "
            f"Allowed actions: {', '.join(allowed)}"
        )
    return None


def apply_action(
    state: GameState,
    action: Action,
    catalog: BuildingCatalog,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Apply a single action to the current state, returning new state and events.

    Validates:
    - The game is not over
    - Action player matches the current seat
    - Action is allowed in the current stage

    Args:
        state: Current game state (never mutated)
        action: Action to apply
        catalog: Building catalog
        rng: Random source for dice and forced demolition (defaults to the random module)

    Returns:
        Tuple of (new_state, events). On a decline new_state is `state` itself.
    """
    if action.type not in ACTION_TYPES:
        raise ValueError(f"Unknown action type: {action.type}")

    problem = validate_turn(state, action)
    if problem is not None:
        reason, message = problem
        logger.debug("Declined %s from %s: %s", action.type, action.player_id, reason)
        return state, [action_declined(action.player_id, action.type, reason, message)]

    new_state = state.copy()
    events: list[GameEvent] = []

    try:
        if action.type == ROLL_DICE:
            _handle_roll_dice(new_state, action, catalog, rng, events)
        elif action.type == FLIP_DIE:
            _handle_flip_die(new_state, action, catalog, events)
        elif action.type == CONFIRM_ROLL:
            _handle_confirm_roll(new_state, action, catalog, rng, events)
        elif action.type == PURCHASE_BUILDING:
            _handle_purchase_building(new_state, action, catalog, events)
        elif action.type == END_TURN:
            _advance_turn(new_state, events)
    except Declined as d:
        logger.debug("Declined %s from %s: %s", action.type, action.player_id, d.reason)
        return state, [action_declined(action.player_id, action.type, d.reason, d.message)]

    check_inventory_invariant(new_state, catalog)
    return new_state, events


def _settle(
    state: GameState,
    roll: DiceRoll,
    catalog: BuildingCatalog,
    rng: random.Random | None,
    events: list[GameEvent],
    demolitions: list[str] | None = None,
) -> None:
    player = state.current_player
    entries = resolve_settlement(roll, state, player.id, catalog, rng, demolitions)
    state.pending_roll = None
    state.last_roll = roll
    state.last_settlement = entries
    state.stage = STAGE_AWAITING_POST_ROLL
    events.append(settlement_resolved(
        player.id,
        roll.total,
        [e.to_dict() for e in entries],
        {p.id: p.gold for p in state.players},
        state.treasury,
        demolished_ids(entries),
    ))


def _handle_roll_dice(
    state: GameState,
    action: Action,
    catalog: BuildingCatalog,
    rng: random.Random | None,
    events: list[GameEvent],
) -> None:
    player = state.current_player
    faces = action.payload.get("faces")
    if faces is not None:
        if len(faces) != player.dice_count:
            raise ValueError(f"{player.id} rolls {player.dice_count} dice, got faces {faces}")
        roll = DiceRoll(faces=tuple(int(f) for f in faces))
    else:
        roll = roll_dice(player.dice_count, rng)

    can_flip = owns_effect(player, EffectKind.FACE_FLIP, catalog) is not None
    events.append(dice_rolled(player.id, list(roll.faces), roll.total, roll.is_double, can_flip))
    if can_flip:
        state.pending_roll = roll
        state.stage = STAGE_AWAITING_CONFIRM
        return
    _settle(state, roll, catalog, rng, events, action.payload.get("demolitions"))


def _handle_flip_die(
    state: GameState,
    action: Action,
    catalog: BuildingCatalog,
    events: list[GameEvent],
) -> None:
    player = state.current_player
    if owns_effect(player, EffectKind.FACE_FLIP, catalog) is None or state.pending_roll is None:
        raise Declined(NO_FACE_FLIP, f"{player.id} cannot flip dice")
    try:
        index = int(action.payload.get("index", 0))
        flipped = flip_face(state.pending_roll, index)
    except (TypeError, ValueError):
        raise Declined(INVALID_DIE, f"No die at index {action.payload.get('index')}") from None
    events.append(die_flipped(player.id, index, state.pending_roll.faces[index], flipped.faces[index]))
    state.pending_roll = flipped


def _handle_confirm_roll(
    state: GameState,
    action: Action,
    catalog: BuildingCatalog,
    rng: random.Random | None,
    events: list[GameEvent],
) -> None:
    roll = state.pending_roll
    if roll is None:
        raise Declined(WRONG_STAGE, "No roll to confirm")
    events.append(roll_confirmed(state.current_player.id, list(roll.faces), roll.total))
    _settle(state, roll, catalog, rng, events, action.payload.get("demolitions"))


def _handle_purchase_building(
    state: GameState,
    action: Action,
    catalog: BuildingCatalog,
    events: list[GameEvent],
) -> None:
    player = state.current_player
    building_id = str(action.payload.get("building_id") or "")
    result = purchase(building_id, state, player.id, catalog)
    if not result.accepted:
        raise Declined(result.reason, f"Cannot buy {building_id}: {result.reason}")
    events.append(building_purchased(
        player.id, building_id, result.cost, result.treasury_share, result.upgrade_source,
    ))

    winner = check_win_condition(state, catalog)
    if winner is not None:
        condition, win_building = winning_condition(winner, catalog)
        state.winner = winner.id
        state.ended = True
        events.append(victory(winner.id, condition, win_building, winner.gold))
        logger.info("%s wins by %s (%s)", winner.id, condition, win_building)


def _advance_turn(state: GameState, events: list[GameEvent]) -> None:
    """
    Reset the acting player's turn flags and pass to the next seat.
    The round number goes up when play wraps back to seat 0.
    """
    player = state.current_player
    player.flags = TurnFlags()
    events.append(turn_ended(state.round_number, player.id))

    state.pending_roll = None
    state.stage = STAGE_AWAITING_ROLL
    next_idx = (state.current_player_index + 1) % len(state.players)
    if next_idx == 0:
        state.round_number += 1
        events.append(round_started(state.round_number))
    state.current_player_index = next_idx
    events.append(turn_started(state.round_number, state.current_player.id))


def end_turn(state: GameState) -> GameState:
    """End the current player's turn. Returns a new state; `state` is not modified."""
    new_state = state.copy()
    _advance_turn(new_state, [])
    return new_state


def replay_from_actions(
    initial_state: GameState,
    actions: list[Action],
    catalog: BuildingCatalog,
    rng: random.Random | None = None,
) -> tuple[GameState, list[GameEvent]]:
    """
    Replay a series of actions from an initial state.
    Event sourcing: state is derived from action log. Deterministic when every roll carries
    its faces and every settling action (roll or confirm) carries its demolitions, as the
    API log stores them. A logged demolition that no longer fits raises ValueError.

    Returns:
        Tuple of (final_state, all_events) after all actions applied
    """
    current_state = initial_state.copy()
    all_events: list[GameEvent] = []

    for action in actions:
        current_state, events = apply_action(current_state, action, catalog, rng)
        all_events.extend(events)

    return current_state, all_events
