"""Pytest fixtures for blackjack engine tests."""

from decimal import Decimal
from random import Random

import pytest
from hypothesis import strategies as st

from core.cards import Card, Shoe, Rank, Suit
from core.game import BlackjackGame
from core.hand import Hand
from core.ledger import Asset, Ledger
from core.rules import RuleSet

PRICES = {
    Asset.BTC: Decimal("97000"),
    Asset.LTC: Decimal("88"),
    Asset.ETH: Decimal("3600"),
    Asset.SOL: Decimal("210"),
}

# Dealt after the scripted cards so a stacked shoe never triggers a reshoe
FILLER = [Card(Rank.TWO, Suit.CLUBS, 5)] * 60


def make_cards(spec: str) -> list[Card]:
    """Build cards from a spec like '10S 9H AD'."""
    return [Card.from_string(code) for code in spec.split()]


def make_hand(spec: str) -> Hand:
    """Build a hand from a spec like 'AS KH'."""
    return Hand.of(make_cards(spec))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def shoe(rng):
    """A shuffled 6-deck shoe."""
    return Shoe(num_decks=6, rng=rng)


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def ledger():
    """An empty ledger with the display price table."""
    return Ledger(prices=PRICES)


@pytest.fixture
def game(rng):
    """A new game funded with 1 BTC."""
    g = BlackjackGame(prices=PRICES, rng=rng)
    g.deposit(Asset.BTC, "1")
    return g


@pytest.fixture
def stacked_game():
    """
    Factory for a game whose shoe deals cards in a scripted order.

    Deal order is player, player, dealer up-card, dealer hole card, then
    player hits and dealer draws.
    """

    def _make(
        deal_order: str,
        balance: str | None = "0.01",
        bet: str = "0.001",
        asset: Asset = Asset.BTC,
    ) -> BlackjackGame:
        shoe = Shoe.stacked(make_cards(deal_order) + FILLER)
        g = BlackjackGame(prices=PRICES, shoe=shoe, asset=asset)
        if balance is not None:
            g.deposit(asset, balance)
        g.set_bet(bet)
        return g

    return _make


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return make_hand("AS KH")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return make_hand("AS 6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return make_hand("10S 6H")


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return make_hand("10S 6H KC")


# Hypothesis strategies for property-based testing
@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    deck = draw(st.integers(min_value=0, max_value=5))
    return Card(rank, suit, deck)


@st.composite
def hand_strategy(draw, min_cards=1, max_cards=8):
    """Generate a random hand."""
    return Hand.of(draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards)))
