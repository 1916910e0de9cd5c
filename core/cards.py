"""Card and Shoe classes - immutable card representations."""

from dataclasses import dataclass
from enum import Enum, auto
from random import Random
from typing import Iterable, Iterator

from core.errors import ShoeExhausted

CARDS_PER_DECK = 52


class Suit(Enum):
    """Card suits."""

    SPADES = auto()
    HEARTS = auto()
    DIAMONDS = auto()
    CLUBS = auto()

    def __str__(self) -> str:
        symbols = {
            Suit.SPADES: "♠",
            Suit.HEARTS: "♥",
            Suit.DIAMONDS: "♦",
            Suit.CLUBS: "♣",
        }
        return symbols[self]

    @property
    def is_red(self) -> bool:
        """Check if this suit is printed in red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)


class Rank(Enum):
    """Card ranks with blackjack values."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def __str__(self) -> str:
        return {
            Rank.ACE: "A",
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
        }.get(self, str(self.value))

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self == Rank.ACE:
            return 11
        return min(self.value, 10)

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


_RANK_CODES = {str(rank): rank for rank in Rank}
_RANK_CODES["T"] = Rank.TEN

_SUIT_CODES = {
    "S": Suit.SPADES,
    "♠": Suit.SPADES,
    "H": Suit.HEARTS,
    "♥": Suit.HEARTS,
    "D": Suit.DIAMONDS,
    "♦": Suit.DIAMONDS,
    "C": Suit.CLUBS,
    "♣": Suit.CLUBS,
}


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable playing card.

    ``deck`` is the index of the deck the card was printed in, so the six
    copies of a rank/suit pair in a shoe stay distinguishable.
    """

    rank: Rank
    suit: Suit
    deck: int = 0

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name}, deck={self.deck})"

    @property
    def id(self) -> str:
        """Stable identity of this physical card within a shoe."""
        return f"{self.suit}{self.rank}{self.deck}"

    @property
    def value(self) -> int:
        """Return the blackjack point value."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    @classmethod
    def from_string(cls, s: str, deck: int = 0) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh', '10d'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str, suit_str = s[:-1], s[-1]
        if rank_str not in _RANK_CODES:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in _SUIT_CODES:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(_RANK_CODES[rank_str], _SUIT_CODES[suit_str], deck)


def build_cards(num_decks: int) -> list[Card]:
    """Return every card of ``num_decks`` decks in printing order."""
    return [
        Card(rank, suit, deck)
        for deck in range(num_decks)
        for suit in Suit
        for rank in Rank
    ]


class Shoe:
    """
    A multi-deck shoe dealt from one end.

    Cards are never returned mid-shoe; once fewer than ``reshoe_threshold``
    cards remain, the next round starts from a freshly shuffled shoe.
    """

    def __init__(
        self,
        num_decks: int = 6,
        reshoe_threshold: int = CARDS_PER_DECK,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a shoe with multiple decks.

        Args:
            num_decks: Number of decks in the shoe
            reshoe_threshold: Replace the shoe before a round when fewer
                cards than this remain
            rng: Random number generator for shuffling
        """
        if num_decks < 1:
            raise ValueError("Shoe must have at least 1 deck")
        if reshoe_threshold < 0:
            raise ValueError("Reshoe threshold cannot be negative")

        self._num_decks = num_decks
        self._reshoe_threshold = reshoe_threshold
        self._rng = rng or Random()
        self._cards: list[Card] = []
        self.shuffle()

    @classmethod
    def stacked(
        cls,
        cards: Iterable[Card],
        num_decks: int = 6,
        reshoe_threshold: int = CARDS_PER_DECK,
        rng: Random | None = None,
    ) -> "Shoe":
        """Build a shoe that deals ``cards`` in the given order."""
        shoe = cls(num_decks=num_decks, reshoe_threshold=reshoe_threshold, rng=rng)
        shoe._cards = list(cards)[::-1]
        return shoe

    def shuffle(self) -> None:
        """Refill the shoe with every card and shuffle it uniformly."""
        self._cards = build_cards(self._num_decks)
        self._rng.shuffle(self._cards)

    def reshoe_if_needed(self) -> bool:
        """Replace a depleted shoe. Returns True if a fresh shoe was built."""
        if self.needs_reshoe:
            self.shuffle()
            return True
        return False

    def draw(self) -> Card:
        """Remove and return the next card."""
        if not self._cards:
            raise ShoeExhausted()
        return self._cards.pop()

    @property
    def needs_reshoe(self) -> bool:
        """Check if too few cards remain to start a round."""
        return len(self._cards) < self._reshoe_threshold

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards)

    @property
    def total_cards(self) -> int:
        """Return the total number of cards in a full shoe."""
        return self._num_decks * CARDS_PER_DECK

    @property
    def num_decks(self) -> int:
        """Return the number of decks in the shoe."""
        return self._num_decks

    @property
    def reshoe_threshold(self) -> int:
        """Return the reshoe threshold."""
        return self._reshoe_threshold

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)


def fresh_shoe(num_decks: int = 6, rng: Random | None = None) -> list[Card]:
    """Return a uniformly shuffled list of every card in ``num_decks`` decks."""
    cards = build_cards(num_decks)
    (rng or Random()).shuffle(cards)
    return cards
