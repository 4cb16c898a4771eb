"""
Legacy odds aggregator adapter (legacyAggregator).

Handles the older bookmaker/site array shape: each game lists ``bookmakers``
(or ``sites``), each bookmaker lists ``markets`` (or ``odds``), and each
player points market lists ``outcomes`` (or ``results``). Field names vary
between feed versions, so every lookup tries several keys.
"""
from typing import Any, Dict, List, Optional

import httpx

from hoopforecast.core.logging import get_logger
from hoopforecast.services.odds.models import CandidateOutcome, GameContext, Provenance, Side
from hoopforecast.services.odds.providers.base import (
    BaseOddsProvider,
    pair_by_line,
    parse_line,
    parse_price,
)
from hoopforecast.services.team_mapping import team_matches
from hoopforecast.utils.name_normalizer import matches_query, tokenize

logger = get_logger(__name__)

NAME_FIELDS = ("name", "description", "label", "title", "player", "participant")
LINE_FIELDS = ("point", "line", "total")
POINTS_MARKET_KEYS = ("player_points", "player_points_over_under")


def is_player_points_market(market_key: str) -> bool:
    key = market_key.lower()
    return (
        key in POINTS_MARKET_KEYS
        or ("player" in key and ("point" in key or "pts" in key))
    )


def _first(obj: Dict, fields) -> Any:
    for f in fields:
        value = obj.get(f)
        if value not in (None, ""):
            return value
    return None


class LegacyOddsProvider(BaseOddsProvider):
    """Player points lines from the legacy bookmakers/sites feed."""

    name = "legacyAggregator"
    provenance = Provenance.LEGACY

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.the-odds-api.com/v3/odds",
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

    async def fetch_candidates(
        self,
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        data = await self._get_json(
            self.base_url,
            params={
                "apiKey": self.api_key,
                "sport": "basketball_nba",
                "region": "us",
                "mkt": "player_points",
                "oddsFormat": "american",
            },
        )
        games = self._extract_events(data)
        return self.parse_games(games, player_name, game_context)

    def parse_games(
        self,
        games: List[Any],
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        query_tokens = frozenset(tokenize(player_name))
        candidates: List[CandidateOutcome] = []

        for game in games:
            if not isinstance(game, dict):
                logger.debug("Skipping malformed game entry")
                continue
            if game_context and not game_context.is_empty and not self._game_in_context(game, game_context):
                continue

            bookmakers = game.get("bookmakers") or game.get("sites") or []
            if not isinstance(bookmakers, list):
                continue

            for bookmaker in bookmakers:
                if not isinstance(bookmaker, dict):
                    logger.debug("Skipping malformed bookmaker entry")
                    continue
                candidates.extend(self._parse_bookmaker(bookmaker, player_name, query_tokens))

        return pair_by_line(candidates)

    def _parse_bookmaker(
        self,
        bookmaker: Dict,
        player_name: str,
        query_tokens: frozenset,
    ) -> List[CandidateOutcome]:
        title = bookmaker.get("title") or bookmaker.get("key") or bookmaker.get("site_nice") or "Unknown"
        key = str(bookmaker.get("key") or title).lower()
        timestamp = bookmaker.get("last_update")

        markets = bookmaker.get("markets") or bookmaker.get("odds") or []
        if not isinstance(markets, list):
            return []

        found = []
        for market in markets:
            if not isinstance(market, dict):
                continue
            if not is_player_points_market(str(market.get("key") or market.get("name") or "")):
                continue

            outcomes = market.get("outcomes") or market.get("results") or []
            if not isinstance(outcomes, list):
                continue

            for outcome in outcomes:
                if not isinstance(outcome, dict):
                    logger.debug(f"Skipping malformed outcome in {title}")
                    continue
                try:
                    candidate = self._parse_outcome(outcome, key, str(title), player_name, query_tokens, timestamp)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.debug(f"Skipping malformed outcome in {title}: {e}")
                    continue
                if candidate is not None:
                    found.append(candidate)

        return found

    def _parse_outcome(
        self,
        outcome: Dict,
        bookmaker_key: str,
        bookmaker_title: str,
        player_name: str,
        query_tokens: frozenset,
        timestamp: Optional[str],
    ) -> Optional[CandidateOutcome]:
        names = [outcome.get(f) for f in NAME_FIELDS if isinstance(outcome.get(f), str)]
        if not matches_query(player_name, *names):
            return None

        over = outcome.get("over") if isinstance(outcome.get("over"), dict) else {}
        under = outcome.get("under") if isinstance(outcome.get("under"), dict) else {}

        line = parse_line(_first(outcome, LINE_FIELDS))
        if line is None:
            line = parse_line(over.get("point"))
        if line is None:
            line = parse_line(under.get("point"))
        if line is None:
            return None

        flat_price = parse_price(outcome.get("price"))
        side_name = str(outcome.get("name") or "").strip().lower()
        side = Side.UNDER if side_name == "under" else Side.OVER
        player = next(
            (n for n in names if n.strip().lower() not in ("over", "under")),
            player_name,
        )

        candidate = CandidateOutcome(
            bookmaker_key=bookmaker_key,
            bookmaker_title=bookmaker_title,
            side=side,
            line=line,
            price=flat_price,
            provenance=self.provenance,
            player_name=player,
            matched_tokens=query_tokens,
            raw_timestamp=timestamp,
        )

        over_price = parse_price(over.get("price"))
        under_price = parse_price(under.get("price"))

        if side_name in ("over", "under"):
            # One side per entry; the partner is found by pair_by_line
            if flat_price is not None:
                if side is Side.OVER:
                    candidate.over_price = flat_price
                else:
                    candidate.under_price = flat_price
        else:
            if over_price is not None:
                candidate.over_price = over_price
            elif flat_price is not None:
                candidate.over_price = flat_price
            if under_price is not None:
                candidate.under_price = under_price
            elif flat_price is not None:
                candidate.under_price = flat_price

        return candidate

    @staticmethod
    def _game_in_context(game: Dict, game_context: GameContext) -> bool:
        """Games without team fields are kept."""
        names = [
            game.get(f) for f in ("home_team", "away_team")
            if isinstance(game.get(f), str)
        ]
        if isinstance(game.get("teams"), list):
            names.extend(t for t in game["teams"] if isinstance(t, str))
        if not names:
            return True

        wanted = [t for t in (game_context.team, game_context.opponent) if t]
        return all(any(team_matches(name, t) for name in names) for t in wanted)
