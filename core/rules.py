"""Table and cashier rules."""

from dataclasses import dataclass, field
from decimal import Decimal

from core.hand import Outcome


def _default_payouts() -> dict[Outcome, Decimal]:
    return {
        Outcome.WIN: Decimal("2"),
        Outcome.BLACKJACK: Decimal("2.5"),
        Outcome.PUSH: Decimal("1"),
        Outcome.LOSE: Decimal("0"),
    }


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Payout multipliers are total returns on the stake, so a win at 2x
    hands back the stake plus an equal profit.
    """

    # Shoe configuration
    num_decks: int = 6
    reshoe_threshold: int = 52

    # Dealer stands on any 17, soft or hard
    dealer_stands_on: int = 17

    # Smallest bet unit
    min_bet: Decimal = Decimal("0.001")

    # Rollover required before withdrawing, as a multiple of deposits
    wager_multiplier: Decimal = Decimal("50")

    # Settled rounds kept for statistics
    history_limit: int = 20

    payouts: dict[Outcome, Decimal] = field(default_factory=_default_payouts)

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.num_decks < 1:
            raise ValueError("num_decks must be at least 1")
        if self.reshoe_threshold > self.num_decks * 52:
            raise ValueError("reshoe_threshold cannot exceed the shoe size")
        if self.min_bet <= 0:
            raise ValueError("min_bet must be positive")
        if self.wager_multiplier < 0:
            raise ValueError("wager_multiplier cannot be negative")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if set(self.payouts) != set(Outcome):
            raise ValueError("payouts must cover every outcome")

    def payout(self, outcome: Outcome, bet: Decimal) -> Decimal:
        """Return the total amount credited back for ``outcome``."""
        return bet * self.payouts[outcome]
