"""
SportsGameOdds adapter (aggregatorA).

Response structure: a list of events (bare, or under ``data``), each with
- ``odds``: object keyed by composite odd IDs such as
  ``points-LEBRON_JAMES_1_NBA-game-ou-over``. Each odd carries ``playerID``,
  ``marketName``, ``bookOverUnder``, ``opposingOddID``, ``lastUpdatedAt`` and
  per-book prices under ``byBookmaker``.
- ``players``: object keyed by playerID with ``firstName`` / ``lastName``.
- ``teams``: home/away team names, used to honour the game context.

Authentication is the ``X-API-Key`` header.
"""
from typing import Any, Dict, List, Optional, Tuple

import httpx

from hoopforecast.core.logging import get_logger
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.models import (
    CandidateOutcome,
    GameContext,
    Provenance,
    Side,
)
from hoopforecast.services.odds.providers.base import BaseOddsProvider, parse_line, parse_price
from hoopforecast.services.team_mapping import team_matches
from hoopforecast.utils.name_normalizer import matches_query, tokenize

logger = get_logger(__name__)

# Endpoint attempts, tried in order until one yields candidates
DEFAULT_ATTEMPTS: Tuple[Tuple[str, Dict[str, str]], ...] = (
    ("/v2/events", {"oddsAvailable": "true", "leagueID": "NBA"}),
    ("/v1/events", {"leagueID": "NBA"}),
)

POINTS_PREFIX = "points-"
OVER_UNDER_MARKER = "-game-ou-"


class SportsGameOddsProvider(BaseOddsProvider):
    """Player points lines from SportsGameOdds events."""

    name = "aggregatorA"
    provenance = Provenance.AGGREGATOR_A

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.sportsgameodds.com",
        attempts: Tuple[Tuple[str, Dict[str, str]], ...] = DEFAULT_ATTEMPTS,
        timeout: float = 20.0,
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
        self.attempts = attempts

    async def fetch_candidates(
        self,
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        """
        Try each endpoint attempt in order; the first that yields candidates
        wins.

        Returns:
            Matching candidates (empty if every reachable endpoint had none)

        Raises:
            ProviderError: If every attempt failed
        """
        headers = {"X-API-Key": self.api_key}
        last_error: Optional[ProviderError] = None
        any_succeeded = False

        for path, params in self.attempts:
            url = f"{self.base_url}{path}"
            try:
                data = await self._get_json(url, params=params, headers=headers)
                events = self._extract_events(data)
            except ProviderError as e:
                logger.info(f"{self.name} attempt {path} failed: {e}")
                last_error = e
                continue

            any_succeeded = True
            candidates = self.parse_events(events, player_name, game_context)
            if candidates:
                logger.info(f"{self.name} found {len(candidates)} candidates for {player_name} via {path}")
                return candidates

        if not any_succeeded and last_error is not None:
            raise last_error
        return []

    def parse_events(
        self,
        events: List[Any],
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        """Scan events for matching points over/under odds."""
        query_tokens = frozenset(tokenize(player_name))
        candidates: List[CandidateOutcome] = []

        for event in events:
            if not isinstance(event, dict) or not isinstance(event.get("odds"), dict):
                continue
            if game_context and not game_context.is_empty and not self._event_in_context(event, game_context):
                continue

            odds = event["odds"]
            players = event.get("players") if isinstance(event.get("players"), dict) else {}

            for odd_id, odd in odds.items():
                if not odd_id.startswith(POINTS_PREFIX) or OVER_UNDER_MARKER not in odd_id:
                    continue
                if not isinstance(odd, dict):
                    logger.debug(f"Skipping malformed odd {odd_id}")
                    continue

                try:
                    candidates.extend(
                        self._parse_odd(odd_id, odd, odds, players, player_name, query_tokens)
                    )
                except (AttributeError, TypeError, ValueError) as e:
                    logger.debug(f"Skipping malformed odd {odd_id}: {e}")

        return candidates

    def _parse_odd(
        self,
        odd_id: str,
        odd: Dict,
        odds: Dict,
        players: Dict,
        player_name: str,
        query_tokens: frozenset,
    ) -> List[CandidateOutcome]:
        player_info = players.get(odd.get("playerID")) or {}
        full_name = f"{player_info.get('firstName') or ''} {player_info.get('lastName') or ''}".strip()

        if not matches_query(player_name, odd.get("marketName"), full_name):
            return []

        line = parse_line(odd.get("bookOverUnder"))
        if line is None:
            return []

        side = Side.OVER if odd_id.endswith("-over") else Side.UNDER
        opposing = odds.get(odd.get("opposingOddID")) if odd.get("opposingOddID") else None
        opposing_books = opposing.get("byBookmaker") if isinstance(opposing, dict) else None
        if not isinstance(opposing_books, dict):
            opposing_books = {}

        books = odd.get("byBookmaker")
        display_name = full_name or player_name

        if not isinstance(books, dict) or not books:
            # No per-book prices: a single consensus line at default prices
            return [CandidateOutcome(
                bookmaker_key="unknown",
                bookmaker_title="Unknown",
                side=side,
                line=line,
                price=None,
                provenance=self.provenance,
                player_name=display_name,
                matched_tokens=query_tokens,
                raw_timestamp=odd.get("lastUpdatedAt"),
            )]

        found = []
        for book_key, book_data in books.items():
            if not isinstance(book_data, dict):
                logger.debug(f"Skipping malformed bookmaker entry {book_key} on {odd_id}")
                continue

            book_line = parse_line(book_data.get("overUnder"))
            candidate = CandidateOutcome(
                bookmaker_key=str(book_key).lower(),
                bookmaker_title=str(book_key).title(),
                side=side,
                line=book_line if book_line is not None else line,
                price=parse_price(book_data.get("odds")),
                provenance=self.provenance,
                player_name=display_name,
                matched_tokens=query_tokens,
                raw_timestamp=book_data.get("lastUpdatedAt") or odd.get("lastUpdatedAt"),
            )

            opposing_price = None
            if isinstance(opposing_books.get(book_key), dict):
                opposing_price = parse_price(opposing_books[book_key].get("odds"))

            if side is Side.OVER:
                if candidate.price is not None:
                    candidate.over_price = candidate.price
                if opposing_price is not None:
                    candidate.under_price = opposing_price
            else:
                if candidate.price is not None:
                    candidate.under_price = candidate.price
                if opposing_price is not None:
                    candidate.over_price = opposing_price

            found.append(candidate)

        return found

    @staticmethod
    def _event_in_context(event: Dict, game_context: GameContext) -> bool:
        """
        Check the event's teams against the game context.

        Events without team information are kept.
        """
        teams = event.get("teams")
        if not isinstance(teams, dict):
            return True

        names = []
        for side in ("home", "away"):
            team = teams.get(side)
            if not isinstance(team, dict):
                continue
            team_names = team.get("names")
            if isinstance(team_names, dict):
                names.extend(str(v) for v in team_names.values() if v)
            if team.get("teamID"):
                # e.g. "GOLDEN_STATE_WARRIORS_NBA"
                names.append(str(team["teamID"]).replace("_NBA", "").replace("_", " "))

        if not names:
            return True

        wanted = [t for t in (game_context.team, game_context.opponent) if t]
        return all(any(team_matches(name, t) for name in names) for t in wanted)
