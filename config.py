"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field
from decimal import Decimal

from core.ledger import Asset
from core.rules import RuleSet

DEFAULT_PRICES = {
    Asset.BTC: "97000",
    Asset.LTC: "88",
    Asset.ETH: "3600",
    Asset.SOL: "210",
}


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _parse_prices() -> dict[Asset, Decimal]:
    """Read PRICE_<SYMBOL> overrides on top of the default price table."""
    return {
        asset: Decimal(os.getenv(f"PRICE_{asset.value}", default))
        for asset, default in DEFAULT_PRICES.items()
    }


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    )
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class PriceConfig:
    """USD display price per asset. Never used for game logic."""

    prices: dict[Asset, Decimal] = field(default_factory=_parse_prices)

    def price(self, asset: Asset) -> Decimal:
        return self.prices[asset]


@dataclass(frozen=True)
class GameConfig:
    """Default game configuration."""

    num_decks: int = 6
    reshoe_threshold: int = 52
    dealer_stands_on: int = 17
    min_bet: Decimal = Decimal("0.001")
    default_bet: Decimal = Decimal("0.001")
    wager_multiplier: Decimal = Decimal("50")
    history_limit: int = 20
    default_asset: str = field(default_factory=lambda: os.getenv("DEFAULT_ASSET", "BTC"))

    def rules(self) -> RuleSet:
        """Build the engine rule set from this configuration."""
        return RuleSet(
            num_decks=self.num_decks,
            reshoe_threshold=self.reshoe_threshold,
            dealer_stands_on=self.dealer_stands_on,
            min_bet=self.min_bet,
            wager_multiplier=self.wager_multiplier,
            history_limit=self.history_limit,
        )


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    session_ttl: int = 3600  # Session timeout in seconds

    game: GameConfig = field(default_factory=GameConfig)
    prices: PriceConfig = field(default_factory=PriceConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


# Global configuration instance
config = AppConfig()
