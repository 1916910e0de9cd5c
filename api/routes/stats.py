"""Statistics API endpoints."""

from fastapi import APIRouter

from api.routes.game import SessionDep
from api.schemas import HistoryResponse, PricesResponse, history_response
from config import config

router = APIRouter()


@router.get("/history")
async def get_history(session: SessionDep) -> HistoryResponse:
    """Recent rounds, win/loss counts and the balance sparkline."""
    async with session.lock:
        game = session.game
        baseline = game.ledger.record(game.asset).deposited
        return history_response(game.history, baseline)


@router.get("/prices")
async def get_prices() -> PricesResponse:
    """Display prices used for USD conversions."""
    return PricesResponse(prices={str(a): p for a, p in config.prices.prices.items()})
