"""Validation errors raised by the engine.

Every error is recoverable: validation always runs before any state is
mutated, so a rejected command leaves the game exactly as it was.
"""

from decimal import Decimal
from typing import Any


class GameError(Exception):
    """Base class for user-facing engine errors."""

    title = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly description of the error."""
        return {
            "error": type(self).__name__,
            "title": self.title,
            "message": self.message,
        }


class InvalidAmount(GameError):
    """A non-positive or unparsable amount was supplied."""

    title = "Invalid Amount"


class UnknownAsset(GameError):
    """An asset symbol outside the supported set was supplied."""

    title = "Unknown Asset"


class MissingDestination(GameError):
    """A withdrawal was requested without a destination address."""

    title = "Address Required"


class WagerRequirementUnmet(GameError):
    """Withdrawal attempted before the rollover requirement is satisfied."""

    title = "Wager Requirement Not Met"

    def __init__(self, asset: str, remaining: Decimal, remaining_usd: Decimal) -> None:
        self.asset = asset
        self.remaining = remaining
        self.remaining_usd = remaining_usd
        super().__init__(
            f"You need to wager {remaining:.6f} {asset} more "
            f"({remaining_usd:.2f} USD) before withdrawing."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["asset"] = self.asset
        data["remaining"] = str(self.remaining)
        data["remaining_usd"] = str(self.remaining_usd)
        return data


class InsufficientBalance(GameError):
    """A stake or withdrawal exceeds the available balance."""

    title = "Insufficient Balance"

    def __init__(self, required: Decimal, available: Decimal, message: str | None = None) -> None:
        self.required = required
        self.available = available
        super().__init__(message or "You don't have enough balance for this action.")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["required"] = str(self.required)
        data["available"] = str(self.available)
        return data


class IllegalTransition(GameError):
    """An action was invoked outside the state it is valid in."""

    title = "Illegal Action"

    def __init__(self, action: str, state: str) -> None:
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while {state}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["action"] = self.action
        data["state"] = self.state
        return data


class ShoeExhausted(GameError):
    """A card was drawn from an empty shoe."""

    title = "Shoe Exhausted"

    def __init__(self) -> None:
        super().__init__("Cannot draw from empty shoe")
