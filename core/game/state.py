"""Game state enumeration."""

from enum import Enum, auto


class GameState(Enum):
    """
    Round state machine states.

    Flow: BETTING → PLAYER_TURN → DEALER_TURN → SETTLED → BETTING
    """

    # No active hands; bets, deposits and asset changes happen here
    BETTING = auto()

    # Player may hit, stand or double
    PLAYER_TURN = auto()

    # Dealer draws to 17
    DEALER_TURN = auto()

    # Round paid out, waiting for play again
    SETTLED = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").lower()

    @property
    def in_round(self) -> bool:
        """Check if a round is being played out."""
        return self in (GameState.PLAYER_TURN, GameState.DEALER_TURN)
