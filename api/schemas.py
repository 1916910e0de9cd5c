"""Pydantic schemas for API requests and responses."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from core.cards import Card
from core.game import GameSnapshot
from core.history import RoundHistory
from core.ledger import Asset, Ledger

# Amounts are validated by the engine so that bad input maps to InvalidAmount
AmountInput = str | float | int


# Game schemas
class AssetRequest(BaseModel):
    """Request to select the playing asset."""

    asset: str = Field(..., description="Asset symbol, e.g. BTC")


class BetRequest(BaseModel):
    """Request to set the table bet."""

    amount: AmountInput = Field(..., description="Bet amount in the selected asset")


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand", "double"]


class CardResponse(BaseModel):
    """Card representation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    rank: str
    suit: str
    value: int
    is_red: bool


class HandResponse(BaseModel):
    """Hand representation; ``hidden`` counts face-down cards."""

    cards: list[CardResponse]
    value: int
    hidden: int = 0


class HistoryEntryResponse(BaseModel):
    """Settled round."""

    outcome: Literal["win", "lose", "push", "blackjack"]
    net: Decimal


class GameStateResponse(BaseModel):
    """Current game state."""

    state: str
    asset: str
    bet: Decimal
    round_bet: Decimal | None
    balance: Decimal
    balances: dict[str, Decimal]
    wager_remaining: dict[str, Decimal]
    player_hand: HandResponse
    dealer_hand: HandResponse
    dealer_frames: list[list[CardResponse]]
    can_deal: bool
    can_hit: bool
    can_stand: bool
    can_double: bool
    message: str
    outcome: str | None
    payout: Decimal | None
    shoe_cards_remaining: int
    history: list[HistoryEntryResponse]


# Wallet schemas
class DepositRequest(BaseModel):
    """Request to deposit into an asset (defaults to the selected one)."""

    asset: str | None = None
    amount: AmountInput


class WithdrawRequest(BaseModel):
    """Request to withdraw from an asset (defaults to the selected one)."""

    asset: str | None = None
    amount: AmountInput
    destination: str = ""


class AssetWalletResponse(BaseModel):
    """Balance and rollover status of one asset."""

    asset: str
    name: str
    balance: Decimal
    balance_usd: Decimal
    deposited: Decimal
    wagered: Decimal
    wager_required: Decimal
    wager_remaining: Decimal
    wager_remaining_usd: Decimal
    can_withdraw: bool


class WalletResponse(BaseModel):
    """All asset balances."""

    selected: str
    assets: list[AssetWalletResponse]


class DepositAddressResponse(BaseModel):
    """Placeholder deposit address."""

    asset: str
    address: str


# Statistics schemas
class HistoryStatsResponse(BaseModel):
    """Aggregates over the retained history."""

    rounds: int
    wins: int
    losses: int
    pushes: int
    blackjacks: int
    net: Decimal


class TrendPointResponse(BaseModel):
    """One sparkline bar."""

    balance: Decimal
    height_percent: Decimal
    is_profit: bool


class HistoryResponse(BaseModel):
    """Round history with statistics and sparkline series."""

    entries: list[HistoryEntryResponse]
    stats: HistoryStatsResponse
    trend: list[TrendPointResponse]


class PricesResponse(BaseModel):
    """Display price table."""

    prices: dict[str, Decimal]


# Converters
def card_response(card: Card) -> CardResponse:
    """Convert a Card to CardResponse."""
    return CardResponse(
        id=card.id,
        rank=str(card.rank),
        suit=str(card.suit),
        value=card.value,
        is_red=card.suit.is_red,
    )


def game_state_response(snapshot: GameSnapshot) -> GameStateResponse:
    """Convert a game snapshot to response."""
    return GameStateResponse(
        state=snapshot.state.name,
        asset=str(snapshot.asset),
        bet=snapshot.bet,
        round_bet=snapshot.round_bet,
        balance=snapshot.balance,
        balances={str(a): v for a, v in snapshot.balances.items()},
        wager_remaining={str(a): v for a, v in snapshot.wager_remaining.items()},
        player_hand=HandResponse(
            cards=[card_response(c) for c in snapshot.player_cards],
            value=snapshot.player_value,
        ),
        dealer_hand=HandResponse(
            cards=[card_response(c) for c in snapshot.dealer_cards],
            value=snapshot.dealer_value,
            hidden=snapshot.dealer_hidden,
        ),
        dealer_frames=[[card_response(c) for c in frame] for frame in snapshot.dealer_frames],
        can_deal=snapshot.can_deal,
        can_hit=snapshot.can_hit,
        can_stand=snapshot.can_stand,
        can_double=snapshot.can_double,
        message=snapshot.message,
        outcome=snapshot.outcome.value if snapshot.outcome else None,
        payout=snapshot.payout,
        shoe_cards_remaining=snapshot.shoe_remaining,
        history=[
            HistoryEntryResponse(outcome=e.outcome.value, net=e.net) for e in snapshot.history
        ],
    )


def wallet_response(ledger: Ledger, selected: Asset) -> WalletResponse:
    """Summarize every asset ledger."""
    assets = []
    for asset in Asset:
        record = ledger.record(asset)
        remaining = ledger.wager_remaining(asset)
        balance = ledger.balance(asset)
        assets.append(
            AssetWalletResponse(
                asset=str(asset),
                name=asset.display_name,
                balance=balance,
                balance_usd=ledger.to_usd(asset, balance),
                deposited=record.deposited,
                wagered=record.wagered,
                wager_required=ledger.wager_required(asset),
                wager_remaining=remaining,
                wager_remaining_usd=ledger.to_usd(asset, remaining),
                can_withdraw=remaining == 0 and balance > 0,
            )
        )
    return WalletResponse(selected=str(selected), assets=assets)


def history_response(history: RoundHistory, baseline: Decimal) -> HistoryResponse:
    """Summarize the round history against a deposited baseline."""
    stats = history.stats()
    return HistoryResponse(
        entries=[HistoryEntryResponse(outcome=e.outcome.value, net=e.net) for e in history],
        stats=HistoryStatsResponse(
            rounds=stats.rounds,
            wins=stats.wins,
            losses=stats.losses,
            pushes=stats.pushes,
            blackjacks=stats.blackjacks,
            net=stats.net,
        ),
        trend=[
            TrendPointResponse(
                balance=p.balance,
                height_percent=p.height_percent,
                is_profit=p.is_profit,
            )
            for p in history.trend(baseline)
        ],
    )
