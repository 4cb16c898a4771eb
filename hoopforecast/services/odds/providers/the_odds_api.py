"""
The Odds API adapter (aggregatorB).

Two-step protocol:
1. ``GET /sports/basketball_nba/events`` lists upcoming games
2. ``GET /sports/basketball_nba/events/{id}/odds`` returns bookmaker-keyed
   markets for one game; player prop outcomes are ``Over`` / ``Under`` with
   the player in ``description``

The second call depends on the first, so the flow is sequential.

Paid Plan: 20,000 requests/month (~666/day)
Quota Tracking: Response headers x-requests-remaining, x-requests-used
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from hoopforecast.core.logging import get_logger
from hoopforecast.core.metrics import update_odds_api_quota
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.models import CandidateOutcome, GameContext, Provenance, Side
from hoopforecast.services.odds.providers.base import (
    BaseOddsProvider,
    as_list,
    pair_by_line,
    parse_line,
    parse_price,
)
from hoopforecast.services.team_mapping import team_matches
from hoopforecast.utils.name_normalizer import matches_query, tokenize

logger = get_logger(__name__)

SPORT_KEY = "basketball_nba"


class TheOddsApiProvider(BaseOddsProvider):
    """
    The Odds API player props.

    Quota Tracking: Captures x-requests-remaining and x-requests-used headers
    from every response.
    """

    name = "aggregatorB"
    provenance = Provenance.AGGREGATOR_B

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.the-odds-api.com/v4",
        regions: str = "us",
        market: str = "player_points",
        max_events: int = 10,
        monthly_quota: int = 20000,
        timeout: float = 15.0,
        max_retries: int = 2,
        backoff_seconds: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_seconds=backoff_seconds,
            client=client,
        )
        self.regions = regions
        self.market = market
        self.max_events = max_events
        self.monthly_quota = monthly_quota

        # Quota tracking (from response headers)
        self._requests_remaining: Optional[int] = None
        self._requests_used: Optional[int] = None
        self._quota_last_updated: Optional[datetime] = None

    def _on_response(self, response: httpx.Response):
        self._update_quota_from_headers(response)

    def _update_quota_from_headers(self, response: httpx.Response):
        """
        Update quota tracking from response headers.

        The Odds API returns:
        - x-requests-remaining: Requests left in current billing period
        - x-requests-used: Requests used in current billing period

        Args:
            response: HTTP response object
        """
        remaining = response.headers.get("x-requests-remaining")
        used = response.headers.get("x-requests-used")
        if remaining is None and used is None:
            return

        try:
            if remaining is not None:
                self._requests_remaining = int(float(remaining))
            if used is not None:
                self._requests_used = int(float(used))
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to parse quota headers: {e}")
            return

        self._quota_last_updated = datetime.now()
        logger.debug(
            f"The Odds API Quota: {self._requests_remaining} remaining, "
            f"{self._requests_used} used"
        )

        # WARNING below 20% remaining, ERROR below 5%
        if self._requests_remaining is not None:
            if self._requests_remaining < self.monthly_quota * 0.05:
                logger.error(
                    f"CRITICAL: Odds API quota critically low! "
                    f"Only {self._requests_remaining} requests remaining (< 5%)."
                )
            elif self._requests_remaining < self.monthly_quota * 0.20:
                logger.warning(
                    f"WARNING: Odds API quota running low. "
                    f"{self._requests_remaining} requests remaining (< 20%)."
                )

        if self._requests_remaining is not None and self._requests_used is not None:
            update_odds_api_quota(
                remaining=self._requests_remaining,
                used=self._requests_used,
                monthly_quota=self.monthly_quota,
            )

    def get_quota_status(self) -> Dict:
        """
        Get current quota status.

        Returns:
            Dict with remaining/used requests and last update time
        """
        return {
            "requests_remaining": self._requests_remaining,
            "requests_used": self._requests_used,
            "last_updated": self._quota_last_updated.isoformat() if self._quota_last_updated else None,
            "monthly_quota": self.monthly_quota,
            "quota_percentage": round(
                (self._requests_used / self.monthly_quota * 100)
                if self._requests_used and self.monthly_quota else 0, 2
            ),
        }

    async def list_events(self) -> List[Dict]:
        """
        Step one: list upcoming NBA events.

        Raises:
            ProviderError: On HTTP failure or unexpected shape
        """
        data = await self._get_json(
            f"{self.base_url}/sports/{SPORT_KEY}/events",
            params={"apiKey": self.api_key},
        )
        return [e for e in self._extract_events(data) if isinstance(e, dict) and e.get("id")]

    async def get_event_odds(self, event_id: str, markets: Optional[str] = None) -> Dict:
        """
        Step two: fetch odds for one event.

        Args:
            event_id: The Odds API event ID
            markets: Comma-separated market keys (default: configured market)
        """
        data = await self._get_json(
            f"{self.base_url}/sports/{SPORT_KEY}/events/{event_id}/odds",
            params={
                "apiKey": self.api_key,
                "regions": self.regions,
                "markets": markets or self.market,
                "oddsFormat": "american",
            },
        )
        if not isinstance(data, dict):
            raise ProviderError(self.name, "Unrecognized event odds shape")
        return data

    def match_events(self, events: List[Dict], game_context: Optional[GameContext]) -> List[Dict]:
        """
        Pick the events to scan for the game context.

        With team and opponent, both must match the event's home/away teams
        (either order). With only one side, either team may match. With no
        context every event is scanned, up to ``max_events``.
        """
        if game_context is None or game_context.is_empty:
            return events[: self.max_events]

        matched = []
        for event in events:
            home = event.get("home_team")
            away = event.get("away_team")
            team, opponent = game_context.team, game_context.opponent

            if team and opponent:
                ok = (
                    (team_matches(home, team) and team_matches(away, opponent))
                    or (team_matches(away, team) and team_matches(home, opponent))
                )
            else:
                wanted = team or opponent
                ok = team_matches(home, wanted) or team_matches(away, wanted)

            if ok:
                matched.append(event)

        return matched[: self.max_events]

    async def fetch_candidates(
        self,
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        """
        List events, match the requested game, then scan each matched event's
        odds for the player.

        Raises:
            ProviderError: If listing fails, or every event odds fetch fails
        """
        events = self.match_events(await self.list_events(), game_context)
        if not events:
            logger.info(f"{self.name}: no events matched {game_context}")
            return []

        candidates: List[CandidateOutcome] = []
        errors: List[ProviderError] = []

        for event in events:
            try:
                event_odds = await self.get_event_odds(event["id"])
            except ProviderError as e:
                logger.warning(f"{self.name}: odds fetch failed for event {event['id']}: {e}")
                errors.append(e)
                continue

            candidates.extend(self.parse_event_odds(event_odds, player_name))
            if candidates:
                break

        if not candidates and errors and len(errors) == len(events):
            raise errors[-1]

        return candidates

    def parse_event_odds(self, event_odds: Dict[str, Any], player_name: str) -> List[CandidateOutcome]:
        """Extract matching Over/Under outcomes for the configured market."""
        query_tokens = frozenset(tokenize(player_name))
        candidates: List[CandidateOutcome] = []

        bookmakers = event_odds.get("bookmakers")
        if not isinstance(bookmakers, list):
            return candidates

        for bookmaker in bookmakers:
            if not isinstance(bookmaker, dict) or not bookmaker.get("key"):
                logger.debug("Skipping malformed bookmaker entry")
                continue

            for market in as_list(bookmaker.get("markets")):
                if not isinstance(market, dict) or market.get("key") != self.market:
                    continue

                for outcome in as_list(market.get("outcomes")):
                    candidate = self._parse_outcome(bookmaker, market, outcome, player_name, query_tokens)
                    if candidate is not None:
                        candidates.append(candidate)

        return pair_by_line(candidates)

    def _parse_outcome(
        self,
        bookmaker: Dict,
        market: Dict,
        outcome: Any,
        player_name: str,
        query_tokens: frozenset,
    ) -> Optional[CandidateOutcome]:
        if not isinstance(outcome, dict):
            logger.debug(f"Skipping malformed outcome in {bookmaker.get('key')}")
            return None

        description = outcome.get("description")
        if not matches_query(player_name, description):
            return None

        side_name = str(outcome.get("name") or "").strip().lower()
        if side_name not in ("over", "under"):
            return None

        return CandidateOutcome(
            bookmaker_key=str(bookmaker["key"]).lower(),
            bookmaker_title=bookmaker.get("title") or bookmaker["key"],
            side=Side(side_name),
            line=parse_line(outcome.get("point")),
            price=parse_price(outcome.get("price")),
            provenance=self.provenance,
            player_name=str(description),
            matched_tokens=query_tokens,
            raw_timestamp=market.get("last_update") or bookmaker.get("last_update"),
        )
