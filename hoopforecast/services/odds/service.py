"""
Odds service: player line lookup with fallback across providers.

Providers are asked one at a time in the configured order. The first
provider whose candidates resolve to a line wins. A ``ProviderError`` from
one provider is logged and the next provider is tried; the lookup reports
``all_failed`` when every provider raised, so callers can tell "no line for
this player" apart from "no provider reachable".
"""
from typing import Dict, List, Optional, Sequence

from hoopforecast.core.config import Settings, settings
from hoopforecast.core.logging import get_logger
from hoopforecast.core.metrics import record_resolution
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.models import GameContext, LineLookup, ResolvedLine
from hoopforecast.services.odds.providers.base import BaseOddsProvider
from hoopforecast.services.odds.providers.legacy import LegacyOddsProvider
from hoopforecast.services.odds.providers.sportsgameodds import SportsGameOddsProvider
from hoopforecast.services.odds.providers.the_odds_api import TheOddsApiProvider
from hoopforecast.services.odds.resolver import LineResolver

logger = get_logger(__name__)


class OddsService:
    """
    Resolve player points lines across odds providers.

    Args:
        providers: Providers in the order they are tried
        resolver: Line resolver holding the bookmaker preference
    """

    def __init__(self, providers: Sequence[BaseOddsProvider], resolver: Optional[LineResolver] = None):
        self.providers = list(providers)
        self.resolver = resolver or LineResolver()

    def get_provider(self, name: str) -> Optional[BaseOddsProvider]:
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None

    async def resolve(
        self,
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> LineLookup:
        """
        Find the best line for a player.

        Args:
            player_name: Player to search for (e.g. "LeBron James")
            game_context: Optional team/opponent used to pick the game

        Returns:
            LineLookup with the line (or None), per-provider errors and the
            providers that were tried
        """
        lookup = LineLookup(player=player_name)

        for provider in self.providers:
            if not provider.is_configured:
                logger.debug(f"Skipping {provider.name}: no API key configured")
                continue

            lookup.providers_tried.append(provider.name)
            try:
                candidates = await provider.fetch_candidates(player_name, game_context)
            except ProviderError as e:
                logger.warning(f"Provider {provider.name} failed for {player_name}, trying next: {e}")
                lookup.errors.append(e)
                continue

            result = self.resolver.resolve(player_name, candidates)
            if isinstance(result, ResolvedLine):
                logger.info(
                    f"Resolved {player_name}: {result.line} from {result.bookmaker} "
                    f"via {provider.name} ({len(result.alternate_lines)} lines)"
                )
                lookup.line = result
                record_resolution("found")
                return lookup

            logger.info(f"{provider.name} has no line for {player_name}")

        if lookup.all_failed:
            record_resolution("all_failed")
        else:
            record_resolution("not_found")
        return lookup

    def get_quota_status(self) -> Dict:
        """Quota snapshot from The Odds API provider (empty if not configured)."""
        provider = self.get_provider(TheOddsApiProvider.name)
        if isinstance(provider, TheOddsApiProvider):
            return provider.get_quota_status()
        return {}

    async def close(self):
        """Close every provider's HTTP client."""
        for provider in self.providers:
            await provider.close()


def build_providers(config: Settings) -> List[BaseOddsProvider]:
    """Create providers from settings, ordered by ``PROVIDER_ORDER``."""
    common = dict(
        timeout=config.PROVIDER_TIMEOUT_SECONDS,
        max_retries=config.PROVIDER_MAX_RETRIES,
        backoff_seconds=config.PROVIDER_BACKOFF_SECONDS,
    )
    available: Dict[str, BaseOddsProvider] = {
        SportsGameOddsProvider.name: SportsGameOddsProvider(
            api_key=config.SPORTSGAMEODDS_API_KEY,
            base_url=config.SPORTSGAMEODDS_BASE_URL,
            **common,
        ),
        TheOddsApiProvider.name: TheOddsApiProvider(
            api_key=config.THE_ODDS_API_KEY,
            base_url=config.THE_ODDS_API_BASE_URL,
            regions=config.ODDS_API_REGIONS,
            max_events=config.ODDS_API_MAX_EVENTS,
            monthly_quota=config.ODDS_API_MONTHLY_QUOTA,
            **common,
        ),
        LegacyOddsProvider.name: LegacyOddsProvider(
            api_key=config.LEGACY_ODDS_API_KEY,
            base_url=config.LEGACY_ODDS_API_URL,
            **common,
        ),
    }

    providers = []
    for name in config.provider_order:
        if name not in available:
            logger.warning(f"Unknown provider in PROVIDER_ORDER: {name}")
            continue
        providers.append(available[name])
    return providers


# Singleton instance
_odds_service: Optional[OddsService] = None


def get_odds_service() -> OddsService:
    """Get or create OddsService singleton."""
    global _odds_service
    if _odds_service is None:
        _odds_service = OddsService(
            providers=build_providers(settings),
            resolver=LineResolver(settings.bookmaker_preference),
        )
    return _odds_service


async def close_odds_service():
    """Close and drop the singleton (application shutdown)."""
    global _odds_service
    if _odds_service is not None:
        await _odds_service.close()
        _odds_service = None
