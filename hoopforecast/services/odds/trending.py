"""
Trending player props.

A prop is "trending" when many sportsbooks list the same player, prop type
and line. Upcoming events are pulled from The Odds API, every player prop
outcome is grouped by (player, prop type, line), and groups listed by at
least ``MIN_BOOKS`` sportsbooks are returned, most widely listed first.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from hoopforecast.core.logging import get_logger
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.providers.base import as_list, parse_line, parse_price
from hoopforecast.services.odds.providers.the_odds_api import TheOddsApiProvider

logger = get_logger(__name__)

PROP_MARKETS = (
    "player_points",
    "player_rebounds",
    "player_assists",
    "player_threes",
    "player_points_rebounds_assists",
    "player_points_rebounds",
    "player_points_assists",
    "player_rebounds_assists",
)

PROP_TYPE_MAP = {
    "points": "points",
    "rebounds": "rebounds",
    "assists": "assists",
    "threes": "threes",
    "points_rebounds_assists": "pra",
    "points_rebounds": "pr",
    "points_assists": "pa",
    "rebounds_assists": "ra",
}

MIN_BOOKS = 3
DEFAULT_LIMIT = 15
MAX_EVENTS = 10


class BestOdds(BaseModel):
    sportsbook: str
    odds: int
    type: str  # over / under


class TrendingProp(BaseModel):
    player: str
    prop_type: str
    line: float
    book_count: int
    books: List[str]
    best_odds: Optional[BestOdds] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    event_id: Optional[str] = None


def prop_type_for_market(market_key: str) -> str:
    """``player_points_rebounds`` -> ``pr``; unknown markets keep their suffix."""
    suffix = market_key.replace("player_", "", 1)
    return PROP_TYPE_MAP.get(suffix, suffix)


def odds_value(odds: Optional[int]) -> float:
    """
    Comparable value for American odds; higher means a better return.

    American odds rise with the payout across both signs, so the price
    itself orders them: +150 beats +120 beats -105 beats -150.
    """
    if odds is None:
        return float("-inf")
    return float(odds)


def find_best_odds(sportsbooks: Dict[str, Dict[str, int]]) -> Optional[BestOdds]:
    """
    Highest-return price across every book and side.

    Args:
        sportsbooks: sportsbook -> {"over": price, "under": price}
    """
    best: Optional[BestOdds] = None
    best_value = float("-inf")

    for sportsbook, sides in sportsbooks.items():
        for side in ("over", "under"):
            price = sides.get(side)
            if not price:
                continue
            value = odds_value(price)
            if value > best_value:
                best_value = value
                best = BestOdds(sportsbook=sportsbook, odds=price, type=side)

    return best


def aggregate_props(events_with_odds: List[Tuple[Dict, Dict]]) -> List[TrendingProp]:
    """
    Group outcomes from several events and keep widely listed props.

    Args:
        events_with_odds: (event, event odds response) pairs

    Returns:
        Props listed by at least ``MIN_BOOKS`` books, sorted by book count
        then line, both descending
    """
    groups: Dict[str, Dict[str, Any]] = {}

    for event, event_odds in events_with_odds:
        if not isinstance(event_odds, dict):
            continue
        for bookmaker in as_list(event_odds.get("bookmakers")):
            if not isinstance(bookmaker, dict):
                continue
            sportsbook = bookmaker.get("title") or bookmaker.get("key")
            if not isinstance(sportsbook, str) or not sportsbook:
                continue

            for market in as_list(bookmaker.get("markets")):
                if not isinstance(market, dict) or not isinstance(market.get("key"), str):
                    continue
                prop_type = prop_type_for_market(market["key"])

                for outcome in as_list(market.get("outcomes")):
                    if not isinstance(outcome, dict):
                        continue
                    player = outcome.get("description")
                    line = parse_line(outcome.get("point"))
                    if not isinstance(player, str) or not player or line is None or line <= 0:
                        continue

                    key = f"{player.lower()}|{prop_type}|{line}"
                    group = groups.setdefault(key, {
                        "player": player,
                        "prop_type": prop_type,
                        "line": line,
                        "event_id": event.get("id"),
                        "home_team": event.get("home_team"),
                        "away_team": event.get("away_team"),
                        "sportsbooks": {},
                    })

                    book_sides = group["sportsbooks"].setdefault(sportsbook, {})
                    side = str(outcome.get("name") or "").lower()
                    price = parse_price(outcome.get("price"))
                    if side in ("over", "under") and price is not None:
                        book_sides[side] = price

    props = []
    for group in groups.values():
        sportsbooks = group.pop("sportsbooks")
        if len(sportsbooks) < MIN_BOOKS:
            continue
        props.append(TrendingProp(
            book_count=len(sportsbooks),
            books=list(sportsbooks.keys()),
            best_odds=find_best_odds(sportsbooks),
            **group,
        ))

    props.sort(key=lambda p: (-p.book_count, -p.line))
    return props


class TrendingService:
    """
    Trending props with a short-lived cache.

    Args:
        provider: The Odds API provider used for events and odds
        cache_ttl: Seconds to keep the computed list
        max_events: Events analysed per refresh
    """

    def __init__(self, provider: TheOddsApiProvider, cache_ttl: int = 300, max_events: int = MAX_EVENTS):
        self.provider = provider
        self.cache_ttl = cache_ttl
        self.max_events = max_events
        self._cache: Optional[Tuple[List[TrendingProp], datetime]] = None
        self._lock = asyncio.Lock()

    async def get_trending_props(self, limit: int = DEFAULT_LIMIT) -> List[TrendingProp]:
        """
        Get the most widely listed props.

        Returns:
            Up to ``limit`` props; empty when The Odds API is not configured

        Raises:
            ProviderError: If the event list cannot be fetched
        """
        if not self.provider.is_configured:
            logger.info("No Odds API key configured - no trending props")
            return []

        async with self._lock:
            if self._cache is not None:
                props, expiry = self._cache
                if datetime.now() < expiry:
                    return props[:limit]

            props = await self._compute()
            self._cache = (props, datetime.now() + timedelta(seconds=self.cache_ttl))
            return props[:limit]

    async def _compute(self) -> List[TrendingProp]:
        events = (await self.provider.list_events())[: self.max_events]
        logger.info(f"Analysing {len(events)} events for trending props")

        events_with_odds = []
        for event in events:
            try:
                event_odds = await self.provider.get_event_odds(event["id"], markets=",".join(PROP_MARKETS))
            except ProviderError as e:
                logger.warning(f"Skipping event {event['id']} for trending props: {e}")
                continue
            events_with_odds.append((event, event_odds))

        props = aggregate_props(events_with_odds)
        logger.info(f"Found {len(props)} trending props")
        return props


# Singleton instance
_trending_service: Optional[TrendingService] = None


def get_trending_service(provider: TheOddsApiProvider, cache_ttl: int = 300) -> TrendingService:
    """Get or create TrendingService singleton."""
    global _trending_service
    if _trending_service is None:
        _trending_service = TrendingService(provider=provider, cache_ttl=cache_ttl)
    return _trending_service
