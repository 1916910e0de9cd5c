"""Game API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    ActionRequest,
    AssetRequest,
    BetRequest,
    GameStateResponse,
    game_state_response,
)
from api.session import GameSession, create_session, get_session, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_game_session(
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> GameSession:
    """Resolve the session named by the X-Session-ID header."""
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return session


SessionDep = Annotated[GameSession, Depends(get_game_session)]


@router.post("/new")
async def new_game(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> dict[str, str]:
    """Create a new game session, or reset the caller's existing one."""
    if session_id is not None and get_session_store().reset(session_id) is not None:
        return {"session_id": session_id}
    return {"session_id": create_session()}


@router.get("/state")
async def get_state(session: SessionDep) -> GameStateResponse:
    """Get current game state."""
    async with session.lock:
        return game_state_response(session.game.snapshot())


@router.post("/asset")
async def select_asset(request: AssetRequest, session: SessionDep) -> GameStateResponse:
    """Select the asset to play in."""
    async with session.lock:
        return game_state_response(session.game.select_asset(request.asset))


@router.post("/bet")
async def set_bet(request: BetRequest, session: SessionDep) -> GameStateResponse:
    """Set the table bet (clamped to the minimum and the balance)."""
    async with session.lock:
        return game_state_response(session.game.set_bet(request.amount))


@router.post("/bet/half")
async def halve_bet(session: SessionDep) -> GameStateResponse:
    """Halve the table bet."""
    async with session.lock:
        return game_state_response(session.game.halve_bet())


@router.post("/bet/double")
async def double_bet(session: SessionDep) -> GameStateResponse:
    """Double the table bet."""
    async with session.lock:
        return game_state_response(session.game.double_bet())


@router.post("/deal")
async def deal(session: SessionDep) -> GameStateResponse:
    """Stake the table bet and deal a round."""
    async with session.lock:
        return game_state_response(session.game.deal())


@router.post("/action")
async def player_action(request: ActionRequest, session: SessionDep) -> GameStateResponse:
    """Execute a player action."""
    async with session.lock:
        game = session.game
        actions = {
            "hit": game.hit,
            "stand": game.stand,
            "double": game.double,
        }
        return game_state_response(actions[request.action]())


@router.post("/play-again")
async def play_again(session: SessionDep) -> GameStateResponse:
    """Clear the settled round and return to betting."""
    async with session.lock:
        return game_state_response(session.game.play_again())
