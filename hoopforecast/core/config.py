"""
Application configuration with environment-specific secrets management.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Provider API keys are optional: a provider without a key is skipped by the
odds service and the injury service returns empty reports.
"""
import os
import logging
from pathlib import Path
from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

# Project root is two levels up from this file
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Allow extra fields from .env
    )

    # Application
    APP_NAME: str = "HoopForecast API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5001

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # SportsGameOdds (aggregator A)
    SPORTSGAMEODDS_API_KEY: str = ""
    SPORTSGAMEODDS_BASE_URL: str = "https://api.sportsgameodds.com"

    # The Odds API (aggregator B)
    THE_ODDS_API_KEY: str = ""
    THE_ODDS_API_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_API_REGIONS: str = "us"  # us, uk, eu, au
    ODDS_API_MONTHLY_QUOTA: int = 20000
    ODDS_API_MAX_EVENTS: int = 10

    # Legacy aggregator (bookmakers/sites shape)
    LEGACY_ODDS_API_KEY: str = ""
    LEGACY_ODDS_API_URL: str = "https://api.the-odds-api.com/v3/odds"

    # RapidAPI NBA injuries
    RAPIDAPI_KEY: str = ""
    RAPIDAPI_INJURIES_HOST: str = "nba-injuries-reports.p.rapidapi.com"
    INJURY_CACHE_TTL: int = 3600  # 1 hour
    INJURY_TIMEOUT_SECONDS: float = 8.0

    # Shared provider HTTP policy
    PROVIDER_TIMEOUT_SECONDS: float = 15.0
    PROVIDER_MAX_RETRIES: int = 2  # extra attempts on 403/429
    PROVIDER_BACKOFF_SECONDS: float = 2.0

    # Comma-separated provider order and bookmaker preference
    PROVIDER_ORDER: str = "aggregatorA,aggregatorB,legacyAggregator"
    BOOKMAKER_PREFERENCE: str = (
        "draftkings,fanduel,betmgm,caesars,pointsbet,"
        "barstool,betrivers,wynnbet,unibet,foxbet"
    )

    # Trending props
    TRENDING_CACHE_TTL: int = 300  # 5 minutes

    # CORS - comma-separated string for env var parsing
    CORS_ORIGINS_STR: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get CORS origins with environment-aware defaults."""
        if self.CORS_ORIGINS_STR:
            origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
            if origins:
                # Reject wildcard in production
                if self.is_production() and "*" in origins:
                    logger.warning(
                        "Wildcard CORS origins (*) are not allowed in production. "
                        "Please set explicit origins in CORS_ORIGINS_STR environment variable."
                    )
                    return []
                return origins

        if self.is_production():
            logger.warning(
                "CORS_ORIGINS_STR not set in production. "
                "Please set CORS_ORIGINS_STR environment variable with explicit origins."
            )
            return []

        # Development defaults to the Vite/CRA frontends on localhost
        return [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]

    @property
    def bookmaker_preference(self) -> tuple[str, ...]:
        """Ordered, immutable bookmaker preference list."""
        return tuple(
            b.strip().lower() for b in self.BOOKMAKER_PREFERENCE.split(",") if b.strip()
        )

    @property
    def provider_order(self) -> tuple[str, ...]:
        """Ordered provider names tried by the odds service."""
        return tuple(p.strip() for p in self.PROVIDER_ORDER.split(",") if p.strip())

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def configured_providers(self) -> dict[str, bool]:
        """
        Report which upstream providers have credentials.

        Returns:
            Mapping of provider name to whether an API key is set
        """
        return {
            "aggregatorA": bool(self.SPORTSGAMEODDS_API_KEY),
            "aggregatorB": bool(self.THE_ODDS_API_KEY),
            "legacyAggregator": bool(self.LEGACY_ODDS_API_KEY),
            "injuries": bool(self.RAPIDAPI_KEY),
        }

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that at least one odds provider is configured in production.

        Returns:
            List of missing secret names (empty if all present)
        """
        missing = []
        providers = self.configured_providers()
        if self.is_production() and not any(
            providers[name] for name in ("aggregatorA", "aggregatorB", "legacyAggregator")
        ):
            missing.append("SPORTSGAMEODDS_API_KEY|THE_ODDS_API_KEY|LEGACY_ODDS_API_KEY")
        return missing


def _load_env_file() -> Path:
    """
    Load the appropriate environment file based on ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
        return default_env

    logger.debug(f"No environment file found for '{environment}' (checked .env.{environment}, .env)")
    return default_env


_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = ConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()

# Validate secrets on startup
missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required secrets for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing secrets: {', '.join(missing_secrets)}. "
            f"Please set these environment variables in .env.production"
        )
