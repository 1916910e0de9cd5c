"""Per-asset balances and wager-requirement (rollover) bookkeeping."""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from core.errors import (
    InsufficientBalance,
    InvalidAmount,
    MissingDestination,
    UnknownAsset,
    WagerRequirementUnmet,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Amounts outside 1e-18 .. 1e18 are rejected before any arithmetic
MAX_AMOUNT_EXPONENT = 18


class Asset(Enum):
    """Supported wagering assets."""

    BTC = "BTC"
    LTC = "LTC"
    ETH = "ETH"
    SOL = "SOL"

    def __str__(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        """Human-readable asset name."""
        return {
            Asset.BTC: "Bitcoin",
            Asset.LTC: "Litecoin",
            Asset.ETH: "Ethereum",
            Asset.SOL: "Solana",
        }[self]

    @classmethod
    def parse(cls, value: "Asset | str") -> "Asset":
        """Resolve an asset from an ``Asset`` or a case-insensitive symbol."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise UnknownAsset(f"Unsupported asset: {value}") from None


def parse_amount(value: Any, purpose: str = "") -> Decimal:
    """
    Parse a user-supplied amount into a positive ``Decimal``.

    Floats go through ``str`` so 0.001 stays 0.001 rather than its binary
    approximation.

    Raises:
        InvalidAmount: if the value is unparsable, non-finite, not positive
            or outside the supported magnitude
    """
    label = f"{purpose} amount" if purpose else "amount"
    if isinstance(value, bool):
        raise InvalidAmount(f"Please enter a valid {label}.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Please enter a valid {label}.") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Please enter a valid {label}.")
    if abs(amount.adjusted()) > MAX_AMOUNT_EXPONENT:
        raise InvalidAmount(f"Please enter a valid {label}.")
    return amount


def deposit_address(asset: Asset | str) -> str:
    """Return the placeholder deposit address shown for ``asset``."""
    return f"{Asset.parse(asset)}fake1234567890address"


@dataclass(frozen=True)
class WagerRecord:
    """Cumulative deposits and settled stakes for one asset."""

    deposited: Decimal = ZERO
    wagered: Decimal = ZERO

    def required(self, multiplier: Decimal) -> Decimal:
        """Total stake needed before withdrawing."""
        return self.deposited * multiplier

    def remaining(self, multiplier: Decimal) -> Decimal:
        """Stake still owed before withdrawing, never negative."""
        return max(ZERO, self.required(multiplier) - self.wagered)


class Ledger:
    """
    Balances and wager records for every supported asset.

    Each asset is an independent ledger; nothing flows between them.
    """

    def __init__(
        self,
        prices: Mapping[Asset, Decimal] | None = None,
        wager_multiplier: Decimal = Decimal("50"),
    ) -> None:
        """
        Initialize empty balances.

        Args:
            prices: USD conversion rate per asset, used only for display
            wager_multiplier: Rollover multiple of deposits required before
                a withdrawal is honored
        """
        self._balances: dict[Asset, Decimal] = {asset: ZERO for asset in Asset}
        self._records: dict[Asset, WagerRecord] = {asset: WagerRecord() for asset in Asset}
        self._prices: dict[Asset, Decimal] = {asset: ZERO for asset in Asset}
        if prices:
            self._prices.update({Asset.parse(a): Decimal(str(p)) for a, p in prices.items()})
        self._wager_multiplier = wager_multiplier

    # Queries

    def balance(self, asset: Asset) -> Decimal:
        """Return the balance held in ``asset``."""
        return self._balances[asset]

    @property
    def balances(self) -> dict[Asset, Decimal]:
        """Return a copy of all balances."""
        return dict(self._balances)

    def record(self, asset: Asset) -> WagerRecord:
        """Return the wager record for ``asset``."""
        return self._records[asset]

    @property
    def wager_multiplier(self) -> Decimal:
        return self._wager_multiplier

    def wager_required(self, asset: Asset) -> Decimal:
        """Total stake required on ``asset`` before withdrawing."""
        return self._records[asset].required(self._wager_multiplier)

    def wager_remaining(self, asset: Asset) -> Decimal:
        """Stake still owed on ``asset`` before a withdrawal is allowed."""
        return self._records[asset].remaining(self._wager_multiplier)

    def to_usd(self, asset: Asset, amount: Decimal) -> Decimal:
        """Convert ``amount`` of ``asset`` at the configured price."""
        return amount * self._prices[asset]

    def format(self, asset: Asset, amount: Decimal, show_usd: bool = False) -> str:
        """Format an amount as the cashier displays it."""
        if show_usd:
            return f"${self.to_usd(asset, amount):.2f}"
        return f"{amount:.6f} {asset}"

    # Cashier commands

    def deposit(self, asset: Asset, amount: Any) -> Decimal:
        """
        Credit a deposit.

        Returns:
            The parsed amount credited
        """
        value = parse_amount(amount, "deposit")
        self._balances[asset] += value
        record = self._records[asset]
        self._records[asset] = replace(record, deposited=record.deposited + value)
        logger.info("Deposited %s %s, balance %s", value, asset, self._balances[asset])
        return value

    def withdraw(self, asset: Asset, amount: Any, destination: str | None) -> Decimal:
        """
        Honor a withdrawal.

        Validation order: amount, destination, wager requirement, balance.
        A successful withdrawal also consumes the same amount of deposited and
        wagered credit, floored at zero.

        Returns:
            The parsed amount withdrawn
        """
        value = parse_amount(amount, "withdrawal")

        if destination is None or not str(destination).strip():
            raise MissingDestination("Please enter a withdrawal address.")

        remaining = self.wager_remaining(asset)
        if remaining > 0:
            raise WagerRequirementUnmet(str(asset), remaining, self.to_usd(asset, remaining))

        available = self._balances[asset]
        if value > available:
            raise InsufficientBalance(
                value,
                available,
                f"You don't have enough {asset} to withdraw.",
            )

        self._balances[asset] = available - value
        record = self._records[asset]
        self._records[asset] = WagerRecord(
            deposited=max(ZERO, record.deposited - value),
            wagered=max(ZERO, record.wagered - value),
        )
        logger.info("Withdrew %s %s to %s", value, asset, str(destination).strip())
        return value

    # Round bookkeeping

    def ensure_available(self, asset: Asset, amount: Decimal, message: str | None = None) -> None:
        """Raise ``InsufficientBalance`` unless ``amount`` can be staked."""
        available = self._balances[asset]
        if amount > available:
            raise InsufficientBalance(amount, available, message)

    def debit(self, asset: Asset, amount: Decimal) -> None:
        """Take a stake out of the balance."""
        self.ensure_available(asset, amount)
        self._balances[asset] -= amount

    def credit(self, asset: Asset, amount: Decimal) -> None:
        """Return a payout to the balance."""
        if amount < 0:
            raise ValueError("Cannot credit a negative amount")
        self._balances[asset] += amount

    def record_wager(self, asset: Asset, amount: Decimal) -> None:
        """Count a settled stake toward the rollover requirement."""
        record = self._records[asset]
        self._records[asset] = replace(record, wagered=record.wagered + amount)
