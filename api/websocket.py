"""WebSocket connection management with game engine integration."""

import asyncio
import json
import logging
from typing import Any, Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.schemas import game_state_response
from api.session import GameSession, get_session, get_session_store
from core.errors import GameError
from core.game import BlackjackGame, GameEvent

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Manage WebSocket connections and relay game events to them."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._event_queues: dict[str, asyncio.Queue[GameEvent]] = {}
        self._watching: dict[str, tuple[BlackjackGame, Callable[[GameEvent], None]]] = {}

    async def connect(self, websocket: WebSocket, session_id: str) -> None:
        """Accept and register a new connection."""
        await websocket.accept()
        self._connections[session_id] = websocket
        self._event_queues[session_id] = asyncio.Queue()

    def disconnect(self, session_id: str) -> None:
        """Remove a connection. The game itself stays in the session store."""
        self._connections.pop(session_id, None)
        self._event_queues.pop(session_id, None)
        self._unwatch(session_id)

    def watch(self, session_id: str, game: BlackjackGame) -> None:
        """Forward events of ``game`` to the session's queue, once per game."""
        current = self._watching.get(session_id)
        if current is not None and current[0] is game:
            return
        self._unwatch(session_id)

        def handler(event: GameEvent) -> None:
            self._queue_event(session_id, event)

        game.subscribe(handler)
        self._watching[session_id] = (game, handler)

    def _unwatch(self, session_id: str) -> None:
        watched = self._watching.pop(session_id, None)
        if watched is not None:
            game, handler = watched
            game.unsubscribe(handler)

    def _queue_event(self, session_id: str, event: GameEvent) -> None:
        """Queue an event for async delivery."""
        queue = self._event_queues.get(session_id)
        if queue is not None:
            queue.put_nowait(event)

    async def get_event(self, session_id: str) -> GameEvent | None:
        """Get the next event from the queue."""
        queue = self._event_queues.get(session_id)
        if queue is None:
            return None
        try:
            return await asyncio.wait_for(queue.get(), timeout=0.1)
        except asyncio.TimeoutError:
            return None

    async def send_message(self, session_id: str, message: dict[str, Any]) -> None:
        """Send a message to a specific session."""
        websocket = self._connections.get(session_id)
        if websocket is not None:
            await websocket.send_json(message)

    @property
    def active_connections(self) -> int:
        """Return number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


def _state_message(game: BlackjackGame) -> dict[str, Any]:
    return {
        "type": "state_update",
        "state": game_state_response(game.snapshot()).model_dump(mode="json"),
    }


def _event_to_message(event: GameEvent) -> dict[str, Any]:
    """Convert a game event to a WebSocket message."""
    return {
        "type": "event",
        "event_type": event.event_type.name,
        "data": event.data,
    }


def _command(game: BlackjackGame, message: dict[str, Any]) -> Callable[[], Any] | None:
    """Map a client message onto a game command."""
    msg_type = message.get("type")
    if msg_type == "select_asset":
        return lambda: game.select_asset(message.get("asset", ""))
    if msg_type == "deposit":
        return lambda: game.deposit(message.get("asset") or game.asset, message.get("amount"))
    if msg_type == "withdraw":
        return lambda: game.withdraw(
            message.get("asset") or game.asset,
            message.get("amount"),
            message.get("destination"),
        )
    if msg_type == "bet":
        return lambda: game.set_bet(message.get("amount"))
    if msg_type == "deal":
        return game.deal
    if msg_type == "action":
        return {
            "hit": game.hit,
            "stand": game.stand,
            "double": game.double,
        }.get(message.get("action", ""))
    if msg_type == "play_again":
        return game.play_again
    return None


@router.websocket("/game/{session_id}")
async def game_websocket(websocket: WebSocket, session_id: str) -> None:
    """
    WebSocket endpoint for real-time game updates.

    Messages from client:
    - {"type": "get_state"}
    - {"type": "select_asset", "asset": "ETH"}
    - {"type": "deposit", "amount": 0.01, "asset": "BTC"}
    - {"type": "withdraw", "amount": 0.01, "destination": "...", "asset": "BTC"}
    - {"type": "bet", "amount": 0.001}
    - {"type": "deal"}
    - {"type": "action", "action": "hit"|"stand"|"double"}
    - {"type": "play_again"}
    - {"type": "reset_game"}

    Messages to client:
    - {"type": "state_update", "state": {...}}
    - {"type": "event", "event_type": "...", "data": {...}}
    - {"type": "error", "error": {...}}
    """
    session: GameSession | None = get_session(session_id)
    if session is None:
        await websocket.close(code=4404)
        return

    await manager.connect(websocket, session_id)
    manager.watch(session_id, session.game)
    await manager.send_message(session_id, _state_message(session.game))

    async def process_events() -> None:
        """Process game events and send to client."""
        while True:
            event = await manager.get_event(session_id)
            if event is not None:
                await manager.send_message(session_id, _event_to_message(event))

    event_task = asyncio.create_task(process_events())

    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                message = None

            if not isinstance(message, dict):
                await manager.send_message(session_id, {
                    "type": "error",
                    "error": {"error": "BadMessage", "message": "Messages must be JSON objects"},
                })
                continue

            async with session.lock:
                if message.get("type") == "get_state":
                    await manager.send_message(session_id, _state_message(session.game))
                    continue

                if message.get("type") == "reset_game":
                    get_session_store().reset(session_id)
                    manager.watch(session_id, session.game)
                    await manager.send_message(session_id, _state_message(session.game))
                    continue

                command = _command(session.game, message)
                if command is None:
                    await manager.send_message(session_id, {
                        "type": "error",
                        "error": {
                            "error": "UnknownCommand",
                            "message": f"Unknown message: {message.get('type')}",
                        },
                    })
                    continue

                try:
                    command()
                except GameError as exc:
                    await manager.send_message(session_id, {
                        "type": "error",
                        "error": exc.to_dict(),
                    })
                    continue

                await manager.send_message(session_id, _state_message(session.game))

    except WebSocketDisconnect:
        logger.debug("WebSocket for session closed")
    finally:
        event_task.cancel()
        try:
            await event_task
        except asyncio.CancelledError:
            pass
        manager.disconnect(session_id)
