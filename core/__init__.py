"""Core blackjack engine - 100% UI-agnostic."""

from core.cards import Card, Shoe, Rank, Suit, fresh_shoe
from core.dealer import DealerPolicy
from core.hand import Hand, Outcome
from core.history import RoundHistory
from core.ledger import Asset, Ledger
from core.rules import RuleSet

__all__ = [
    "Card",
    "Shoe",
    "Rank",
    "Suit",
    "fresh_shoe",
    "DealerPolicy",
    "Hand",
    "Outcome",
    "RoundHistory",
    "Asset",
    "Ledger",
    "RuleSet",
]
