"""Game engine and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import GameState
from core.game.snapshot import GameSnapshot
from core.game.engine import BlackjackGame

__all__ = [
    "GameEvent",
    "EventType",
    "GameState",
    "GameSnapshot",
    "BlackjackGame",
]
