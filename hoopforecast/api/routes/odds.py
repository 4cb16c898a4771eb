"""
Odds routes.

Provides endpoints for:
- Player points line lookup with provider fallback
- The Odds API quota status
- Trending props (most widely listed across sportsbooks)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from hoopforecast.core.config import settings
from hoopforecast.core.logging import get_logger
from hoopforecast.core.rate_limit import limiter
from hoopforecast.services.odds.models import GameContext, ResolvedLine
from hoopforecast.services.odds.providers.the_odds_api import TheOddsApiProvider
from hoopforecast.services.odds.service import OddsService, get_odds_service
from hoopforecast.services.odds.trending import TrendingProp, TrendingService, get_trending_service

logger = get_logger(__name__)

router = APIRouter(prefix="/odds", tags=["odds"])


def get_trending(odds_service: OddsService = Depends(get_odds_service)) -> Optional[TrendingService]:
    """Trending service backed by the configured The Odds API provider."""
    provider = odds_service.get_provider(TheOddsApiProvider.name)
    if not isinstance(provider, TheOddsApiProvider):
        return None
    return get_trending_service(provider, cache_ttl=settings.TRENDING_CACHE_TTL)


@router.get("/player-line", response_model=ResolvedLine)
@limiter.limit("30/minute")
async def get_player_line(
    request: Request,
    player: str = Query(..., min_length=1, description="Player name, e.g. 'LeBron James'"),
    team: Optional[str] = Query(None, description="Player's team (abbreviation or name)"),
    opponent: Optional[str] = Query(None, description="Opponent team (abbreviation or name)"),
    odds_service: OddsService = Depends(get_odds_service),
):
    """
    Get the best points line for a player.

    Providers are tried in order until one lists the player. Returns 404
    when no provider lists a line and 503 when no provider could be reached.
    """
    lookup = await odds_service.resolve(player, GameContext(team=team, opponent=opponent))

    if lookup.line is not None:
        return lookup.line

    if lookup.all_failed:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "All odds providers failed",
                "providers": [e.to_dict() for e in lookup.errors],
            },
        )

    raise HTTPException(status_code=404, detail=f"No player line found for {player}")


@router.get("/quota")
async def get_quota_status(odds_service: OddsService = Depends(get_odds_service)):
    """
    Get The Odds API quota as of the last response received.

    Values are null until the first request has been made.
    """
    status = odds_service.get_quota_status()
    if not status:
        raise HTTPException(
            status_code=404,
            detail="The Odds API provider is not enabled. Check PROVIDER_ORDER.",
        )
    return status


@router.get("/trending", response_model=List[TrendingProp])
@limiter.limit("30/minute")
async def get_trending_props(
    request: Request,
    limit: int = Query(15, ge=1, le=50, description="Maximum props to return"),
    trending: Optional[TrendingService] = Depends(get_trending),
):
    """
    Get props listed by the most sportsbooks across upcoming games.

    Only props listed by at least 3 books are included.
    """
    if trending is None:
        return []
    return await trending.get_trending_props(limit=limit)
