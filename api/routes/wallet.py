"""Cashier endpoints: balances, deposits and withdrawals."""

from fastapi import APIRouter

from api.routes.game import SessionDep
from api.schemas import (
    DepositAddressResponse,
    DepositRequest,
    WalletResponse,
    WithdrawRequest,
    wallet_response,
)
from core.ledger import Asset, deposit_address

router = APIRouter()


@router.get("/balances")
async def get_balances(session: SessionDep) -> WalletResponse:
    """Balances and wager requirements for every asset."""
    async with session.lock:
        game = session.game
        return wallet_response(game.ledger, game.asset)


@router.post("/deposit")
async def deposit(request: DepositRequest, session: SessionDep) -> WalletResponse:
    """Credit a (simulated) deposit."""
    async with session.lock:
        game = session.game
        game.deposit(request.asset or game.asset, request.amount)
        return wallet_response(game.ledger, game.asset)


@router.post("/withdraw")
async def withdraw(request: WithdrawRequest, session: SessionDep) -> WalletResponse:
    """Withdraw once the wager requirement is met."""
    async with session.lock:
        game = session.game
        game.withdraw(request.asset or game.asset, request.amount, request.destination)
        return wallet_response(game.ledger, game.asset)


@router.get("/address/{asset}")
async def get_deposit_address(asset: str) -> DepositAddressResponse:
    """Placeholder deposit address for an asset."""
    selected = Asset.parse(asset)
    return DepositAddressResponse(asset=str(selected), address=deposit_address(selected))
