"""Dealer drawing policy."""

from dataclasses import dataclass

from core.cards import Card, Shoe
from core.hand import Hand

# One snapshot of the dealer's cards, in dealing order
DealerFrame = tuple[Card, ...]


@dataclass(frozen=True)
class DealerPolicy:
    """
    Draw-until-threshold dealer strategy.

    The dealer stands on any total at or above ``stand_on``; soft and hard
    totals are treated alike.
    """

    stand_on: int = 17

    def should_hit(self, hand: Hand) -> bool:
        """Determine if the dealer should take another card."""
        return hand.value < self.stand_on

    def play(self, hand: Hand, shoe: Shoe) -> tuple[DealerFrame, ...]:
        """
        Play the dealer hand to completion.

        Returns one frame for the revealed hand plus one per drawn card, so
        a presentation layer can replay the draw at its own pace.
        """
        frames = [tuple(hand.cards)]
        while self.should_hit(hand):
            hand.add_card(shoe.draw())
            frames.append(tuple(hand.cards))
        return tuple(frames)
