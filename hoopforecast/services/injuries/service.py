"""
Team injury lookups with a read-through cache.

Injury lookups feed predictions, so they must never break them: every
failure is logged and turned into an empty report.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from hoopforecast.core.config import settings
from hoopforecast.core.logging import get_logger
from hoopforecast.core.metrics import record_injury_cache
from hoopforecast.services.injuries.models import InjuryRecord, MatchupInjuries
from hoopforecast.services.injuries.provider import InjuryProvider
from hoopforecast.services.team_mapping import canonical_team

logger = get_logger(__name__)


class CacheEntry:
    """Simple cache entry with TTL."""
    def __init__(self, data: List[InjuryRecord], valid_until: datetime):
        self.data = data
        self.valid_until = valid_until

    def is_valid(self) -> bool:
        """Check if cache entry is still valid."""
        return datetime.now() < self.valid_until


def _team_key(team: Optional[str]) -> Optional[str]:
    """Upper-cased canonical abbreviation; None for missing or 'N/A' teams."""
    if not team or team.strip().upper() == "N/A":
        return None
    return canonical_team(team) or team.strip().upper()


class InjuryService:
    """
    Team and matchup injury reports.

    Args:
        provider: Injuries feed client
        cache_ttl: Cache TTL in seconds (default: 1 hour)
    """

    def __init__(self, provider: InjuryProvider, cache_ttl: int = 3600):
        self.provider = provider
        self.cache_ttl = cache_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def _get_cache_key(self, endpoint: str, **kwargs) -> str:
        """Generate cache key from endpoint name and parameters."""
        params = ",".join(f"{k}={v}" for k, v in sorted(kwargs.items()))
        return f"{endpoint}:{params}" if params else endpoint

    async def _get_cached(self, key: str) -> Optional[List[InjuryRecord]]:
        """Get data from cache if valid."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry and entry.is_valid():
                return entry.data
        return None

    async def _set_cache(self, key: str, data: List[InjuryRecord], ttl: Optional[int] = None):
        """Set data in cache with TTL."""
        ttl = ttl or self.cache_ttl
        valid_until = datetime.now() + timedelta(seconds=ttl)
        async with self._lock:
            self._cache[key] = CacheEntry(data, valid_until)

    async def _load_teams(self, teams: List[str]) -> Dict[str, List[InjuryRecord]]:
        """
        Injuries for several teams, fetching the report at most once.

        Misses are filled from one provider call and cached, including
        teams with no injuries.
        """
        result: Dict[str, List[InjuryRecord]] = {}
        missing = []

        for team in teams:
            cached = await self._get_cached(self._get_cache_key("injuries", team=team))
            record_injury_cache(hit=cached is not None)
            if cached is not None:
                result[team] = cached
            else:
                missing.append(team)

        if missing:
            records = await self.provider.fetch_records()
            for team in missing:
                team_records = [r for r in records if r.team_abbreviation == team]
                logger.info(f"Found {len(team_records)} injuries for {team}")
                await self._set_cache(self._get_cache_key("injuries", team=team), team_records)
                result[team] = team_records

        return result

    async def get_team_injuries(self, team: Optional[str]) -> List[InjuryRecord]:
        """
        Get a team's injury report.

        Args:
            team: Team abbreviation or name (e.g. "LAL", "GS", "Golden State")

        Returns:
            Injury records; empty for unknown/'N/A' teams or on any failure
        """
        key = _team_key(team)
        if key is None:
            return []

        try:
            teams = await self._load_teams([key])
            return teams[key]
        except Exception as e:
            logger.error(f"Error fetching injuries for {team}: {e}")
            return []

    async def get_matchup_injuries(
        self,
        team: Optional[str],
        opponent: Optional[str],
    ) -> MatchupInjuries:
        """
        Injuries for both sides of a matchup.

        Returns:
            MatchupInjuries; both sides empty when either team is missing or
            on any failure
        """
        team_key = _team_key(team)
        opponent_key = _team_key(opponent)
        if team_key is None or opponent_key is None:
            return MatchupInjuries.empty()

        try:
            teams = await self._load_teams(list(dict.fromkeys([team_key, opponent_key])))
        except Exception as e:
            logger.error(f"Error fetching matchup injuries for {team} vs {opponent}: {e}")
            return MatchupInjuries.empty()

        player_team = teams.get(team_key, [])
        opponents = teams.get(opponent_key, [])
        return MatchupInjuries(
            player_team_injuries=player_team,
            opponent_injuries=opponents,
            has_player_team_injuries=bool(player_team),
            has_opponent_injuries=bool(opponents),
        )

    async def close(self):
        await self.provider.close()


# Singleton instance
_injury_service: Optional[InjuryService] = None


def get_injury_service() -> InjuryService:
    """Get or create InjuryService singleton."""
    global _injury_service
    if _injury_service is None:
        provider = InjuryProvider(
            api_key=settings.RAPIDAPI_KEY,
            host=settings.RAPIDAPI_INJURIES_HOST,
            timeout=settings.INJURY_TIMEOUT_SECONDS,
        )
        _injury_service = InjuryService(provider=provider, cache_ttl=settings.INJURY_CACHE_TTL)
    return _injury_service


async def close_injury_service():
    """Close and drop the singleton (application shutdown)."""
    global _injury_service
    if _injury_service is not None:
        await _injury_service.close()
        _injury_service = None
