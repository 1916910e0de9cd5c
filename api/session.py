"""In-memory game sessions with signed session IDs."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import uuid4

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from config import config
from core.game import BlackjackGame

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify session IDs using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._secret_key = secret_key or config.security.secret_key
        self._serializer = URLSafeTimedSerializer(self._secret_key)

    def sign(self, session_id: str) -> str:
        """Create a signed token from a session ID."""
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract session_id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The session ID if valid, None otherwise
        """
        max_age = max_age or config.session_ttl
        try:
            return self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return None


# Global signer instance
_session_signer: SessionSigner | None = None


def get_session_signer() -> SessionSigner:
    """Get or create the session signer."""
    global _session_signer
    if _session_signer is None:
        _session_signer = SessionSigner()
    return _session_signer


def new_game() -> BlackjackGame:
    """Create a game with the configured rules, prices and defaults."""
    return BlackjackGame(
        rules=config.game.rules(),
        prices=config.prices.prices,
        asset=config.game.default_asset,
        bet=config.game.default_bet,
    )


@dataclass
class GameSession:
    """
    A player's game plus the lock that serializes its commands.

    The engine assumes one command at a time, so every handler that touches
    ``game`` must hold ``lock``.
    """

    game: BlackjackGame
    expires_at: datetime
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class InMemorySessionStore:
    """Session store keyed by raw session ID; nothing survives a restart."""

    def __init__(self, signer: SessionSigner | None = None, ttl: int | None = None) -> None:
        self._sessions: dict[str, GameSession] = {}
        self._signer = signer
        self._ttl = ttl or config.session_ttl

    @property
    def signer(self) -> SessionSigner:
        return self._signer or get_session_signer()

    def _expiry(self) -> datetime:
        return datetime.now() + timedelta(seconds=self._ttl)

    def create(self, game: BlackjackGame | None = None) -> str:
        """
        Register a new session.

        Returns:
            A signed session token
        """
        swept = self.cleanup_expired()
        if swept:
            logger.debug("Dropped %d expired sessions", swept)

        session_id = str(uuid4())
        self._sessions[session_id] = GameSession(
            game=game or new_game(),
            expires_at=self._expiry(),
        )
        logger.info("Created session %s", session_id)
        return self.signer.sign(session_id)

    def get(self, token: str) -> GameSession | None:
        """Look up a live session by its signed token, refreshing its expiry."""
        session_id = self.signer.unsign(token, max_age=self._ttl)
        if session_id is None or session_id not in self._sessions:
            return None

        session = self._sessions[session_id]
        if session.expires_at < datetime.now():
            self.delete(token)
            return None

        session.expires_at = self._expiry()
        return session

    def reset(self, token: str) -> GameSession | None:
        """Replace the game of an existing session with a fresh one."""
        session = self.get(token)
        if session is not None:
            session.game = new_game()
        return session

    def delete(self, token: str) -> None:
        """Delete session."""
        session_id = self.signer.unsign(token, max_age=self._ttl)
        if session_id is not None:
            self._sessions.pop(session_id, None)

    def cleanup_expired(self) -> int:
        """Remove expired sessions."""
        now = datetime.now()
        expired = [
            sid for sid, session in self._sessions.items() if session.expires_at < now
        ]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


# Global session store instance
_session_store: InMemorySessionStore | None = None


def get_session_store() -> InMemorySessionStore:
    """Get or create the session store."""
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore()
    return _session_store


def create_session(game: BlackjackGame | None = None) -> str:
    """Create a new session and return its signed token."""
    return get_session_store().create(game)


def get_session(token: str) -> GameSession | None:
    """Get a live session by token."""
    return get_session_store().get(token)

