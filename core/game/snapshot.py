"""Read-only views of a game returned by every command."""

from dataclasses import dataclass
from decimal import Decimal

from core.cards import Card
from core.dealer import DealerFrame
from core.game.state import GameState
from core.hand import Outcome
from core.history import HistoryEntry
from core.ledger import Asset


@dataclass(frozen=True)
class GameSnapshot:
    """
    Everything a presentation layer needs to draw the table.

    The dealer's hole card is left out of ``dealer_cards`` until it is
    revealed; ``dealer_hidden`` counts the cards held back.
    """

    state: GameState
    asset: Asset
    bet: Decimal
    round_bet: Decimal | None
    balances: dict[Asset, Decimal]
    wager_remaining: dict[Asset, Decimal]
    player_cards: tuple[Card, ...]
    player_value: int
    dealer_cards: tuple[Card, ...]
    dealer_hidden: int
    dealer_value: int
    dealer_frames: tuple[DealerFrame, ...]
    can_deal: bool
    can_hit: bool
    can_stand: bool
    can_double: bool
    message: str
    outcome: Outcome | None
    payout: Decimal | None
    shoe_remaining: int
    history: tuple[HistoryEntry, ...]

    @property
    def balance(self) -> Decimal:
        """Balance of the selected asset."""
        return self.balances[self.asset]
