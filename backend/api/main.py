"""
FastAPI backend for Five Elements Market.
Provides REST API endpoints for game state management and actions.
The engine is pure; this layer loads a snapshot, applies one action under a per-game lock, and saves it.
"""

import json
import logging
import random
import threading
import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .database import get_db, init_db
from .models import Game as GameModel

from backend.config import CORS_ORIGINS, DEFAULT_LEGENDARY_TOGGLES, DEFAULT_WEATHER_MODE, LOG_LEVEL
from backend.engine.state import GameState
from backend.engine.actions import (
    Action,
    CONFIRM_ROLL,
    ROLL_DICE,
    confirm_roll,
    end_turn,
    flip_die,
    purchase_building,
    roll_dice,
)
from backend.engine.definitions import load_building_catalog
from backend.engine.events import ACTION_DECLINED, DICE_ROLLED, NOT_YOUR_TURN, SETTLEMENT_RESOLVED
from backend.engine.queries import get_available_action_types, get_game_summary, get_purchasable_buildings
from backend.engine.reducer import apply_action
from backend.engine.utils import initialize_game_state

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Five Elements Market API",
    description="Backend API for Five Elements Market - a dice-driven economic board game",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    response = await call_next(request)
    if response.status_code >= 500:
        logger.error("[500] %s %s", method, path)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 as JSON (with CORS headers) so the frontend can read the error."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    origin = request.headers.get("origin")
    allow_origin = origin if origin in CORS_ORIGINS else (CORS_ORIGINS[0] if CORS_ORIGINS else "*")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


# Loaded once; every game shares the same immutable catalog
catalog = load_building_catalog()

# One writer per game: game_id -> lock held across load/apply/save
_game_locks: dict[str, threading.Lock] = {}
_game_locks_guard = threading.Lock()


def _lock_for(game_id: str) -> threading.Lock:
    with _game_locks_guard:
        lock = _game_locks.get(game_id)
        if lock is None:
            lock = _game_locks[game_id] = threading.Lock()
        return lock


# ===== Pydantic Models =====

class PlayerEntry(BaseModel):
    id: str
    name: str | None = None


class CreateGameRequest(BaseModel):
    name: str
    players: list[PlayerEntry]  # seat order
    """calm | turbulent. Omitted = backend.config.DEFAULT_WEATHER_MODE."""
    weather_mode: str | None = None
    legendary_toggles: dict[str, bool] | None = None


class PlayerRequest(BaseModel):
    player_id: str


class FlipRequest(BaseModel):
    player_id: str
    index: int


class PurchaseRequest(BaseModel):
    player_id: str
    building_id: str


# ===== Helper Functions =====

def _get_row(game_id: str, db: Session) -> GameModel:
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    return row


def get_game(game_id: str, db: Session) -> GameState:
    """Load game state from DB; raise 404 if not found."""
    row = _get_row(game_id, db)
    try:
        raw = json.loads(row.game_state)
    except (TypeError, json.JSONDecodeError):
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    return GameState.from_dict(raw if isinstance(raw, dict) else {})


def save_game(row: GameModel, state: GameState, db: Session, logged: list[dict] | None = None) -> None:
    """Persist game state (and newly applied actions) to DB."""
    row.game_state = json.dumps(state.to_dict())
    row.status = "finished" if state.ended else "active"
    if logged:
        log = _read_json(row.action_log, [])
        log.extend(logged)
        row.action_log = json.dumps(log)
    db.commit()


def state_for_response(state: GameState, game_id: str) -> dict[str, Any]:
    return {
        "game_id": game_id,
        "state": state.to_dict(),
        "summary": get_game_summary(state, catalog),
    }


def _loggable(action: Action, events: list) -> dict:
    """
    Action as stored in the log. Rolls are stored with their faces and settling actions with
    their demolitions, so replaying the log never draws from an rng.
    """
    data = action.to_dict()
    payload = dict(data["payload"])
    for event in events:
        if event.type == DICE_ROLLED and action.type == ROLL_DICE:
            payload["faces"] = event.payload["faces"]
        elif event.type == SETTLEMENT_RESOLVED and action.type in (ROLL_DICE, CONFIRM_ROLL):
            payload["demolitions"] = event.payload["demolished"]
    data["payload"] = payload
    return data


def _new_seed() -> str:
    return uuid.uuid4().hex


def _read_json(text: str | None, default: Any) -> Any:
    try:
        return json.loads(text) if text else default
    except (TypeError, json.JSONDecodeError):
        return default


def _rng_for(row: GameModel) -> random.Random:
    """
    Random source for the next action of one game, seeded from the game's own seed and the
    number of actions logged so far. Games never share a generator.
    """
    config = _read_json(row.config, {})
    seed = config.get("seed") or row.id
    log = _read_json(row.action_log, [])
    return random.Random(f"{seed}:{len(log)}")


def run_action(game_id: str, action: Action, db: Session) -> dict[str, Any]:
    """Apply one action to a stored game. Declines become 400 (403 for turn order)."""
    with _lock_for(game_id):
        row = _get_row(game_id, db)
        state = get_game(game_id, db)
        try:
            new_state, events = apply_action(state, action, catalog, _rng_for(row))
        except ValueError as e:
            raise HTTPException(status_code=400, detail={"reason": "invalid_action", "message": str(e)})
        if events and events[0].type == ACTION_DECLINED:
            payload = events[0].payload
            status = 403 if payload["reason"] == NOT_YOUR_TURN else 400
            raise HTTPException(
                status_code=status,
                detail={"reason": payload["reason"], "message": payload["message"]},
            )
        save_game(row, new_state, db, [_loggable(action, events)])
    out = state_for_response(new_state, game_id)
    out["events"] = [e.to_dict() for e in events]
    return out


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Five Elements Market API", "version": "1.0.0"}


@app.get("/definitions")
def get_definitions():
    """Building catalog (static data)."""
    return {"buildings": catalog.to_dict()}


@app.post("/games")
def create_game(request: CreateGameRequest, db: Session = Depends(get_db)):
    """Create a game for an ordered roster."""
    weather_mode = request.weather_mode or DEFAULT_WEATHER_MODE
    toggles = request.legendary_toggles if request.legendary_toggles is not None else DEFAULT_LEGENDARY_TOGGLES
    roster = [{"id": p.id, "name": p.name or p.id} for p in request.players]
    try:
        state = initialize_game_state(roster, weather_mode, toggles, catalog)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    game_id = str(uuid.uuid4())
    config = {
        "roster": roster,
        "weather_mode": weather_mode,
        "legendary_toggles": toggles,
        "seed": _new_seed(),
    }
    row = GameModel(
        id=game_id,
        name=request.name,
        status="active",
        game_state=json.dumps(state.to_dict()),
        config=json.dumps(config),
        action_log="[]",
    )
    db.add(row)
    db.commit()
    logger.info("Created game %s with %d players (%s)", game_id, len(roster), weather_mode)
    return state_for_response(state, game_id)


@app.get("/games/{game_id}")
def get_game_state(game_id: str, db: Session = Depends(get_db)):
    """Get current game state."""
    state = get_game(game_id, db)
    return state_for_response(state, game_id)


@app.get("/games/{game_id}/meta")
def get_game_meta(game_id: str, db: Session = Depends(get_db)):
    """Get game metadata (name, status, roster) for lobby etc."""
    row = _get_row(game_id, db)
    config = _read_json(row.config, {})
    config.pop("seed", None)  # would reveal upcoming dice
    return {
        "id": row.id,
        "name": row.name,
        "status": row.status,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "config": config,
    }


@app.get("/games/{game_id}/log")
def get_action_log(game_id: str, db: Session = Depends(get_db)):
    """Applied actions in order; replaying them from the initial state reproduces the game."""
    row = _get_row(game_id, db)
    return {"game_id": game_id, "actions": _read_json(row.action_log, [])}


@app.get("/games/{game_id}/available-actions")
def get_available_actions(game_id: str, db: Session = Depends(get_db)):
    """Action types for the current stage and the current player's purchase options."""
    state = get_game(game_id, db)
    player = state.current_player
    return {
        "player_id": player.id,
        "stage": state.stage,
        "actions": get_available_action_types(state),
        "purchasable_buildings": get_purchasable_buildings(state, player.id, catalog),
    }


@app.post("/games/{game_id}/roll")
def do_roll(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Roll the current player's dice (settles immediately unless faces can be flipped)."""
    return run_action(game_id, roll_dice(request.player_id), db)


@app.post("/games/{game_id}/flip")
def do_flip(game_id: str, request: FlipRequest, db: Session = Depends(get_db)):
    return run_action(game_id, flip_die(request.player_id, request.index), db)


@app.post("/games/{game_id}/confirm")
def do_confirm(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    return run_action(game_id, confirm_roll(request.player_id), db)


@app.post("/games/{game_id}/purchase")
def do_purchase(game_id: str, request: PurchaseRequest, db: Session = Depends(get_db)):
    """Buy one building. Only the current player can act."""
    return run_action(game_id, purchase_building(request.player_id, request.building_id), db)


@app.post("/games/{game_id}/end-turn")
def do_end_turn(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    return run_action(game_id, end_turn(request.player_id), db)


@app.post("/games/{game_id}/restart")
def restart_game(game_id: str, db: Session = Depends(get_db)):
    """Start the game over with the roster and options it was created with."""
    with _lock_for(game_id):
        row = _get_row(game_id, db)
        config = json.loads(row.config)
        state = initialize_game_state(
            config["roster"], config["weather_mode"], config.get("legendary_toggles"), catalog,
        )
        config["seed"] = _new_seed()
        row.config = json.dumps(config)
        row.action_log = "[]"
        save_game(row, state, db)
    logger.info("Restarted game %s", game_id)
    return state_for_response(state, game_id)


@app.delete("/games/{game_id}")
def delete_game(game_id: str, db: Session = Depends(get_db)):
    """Delete a game from DB."""
    row = _get_row(game_id, db)
    db.delete(row)
    db.commit()
    with _game_locks_guard:
        _game_locks.pop(game_id, None)
    return {"message": f"Game {game_id} deleted"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
