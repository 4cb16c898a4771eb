"""Shared pytest fixtures for HoopForecast tests.

Provider payloads here are frozen samples of each upstream response shape;
every adapter is tested against its sample through ``httpx.MockTransport``
so no test touches the network.
"""
import os
import sys
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

# Settings are read at import time: pin a test environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

import httpx
import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from hoopforecast.services.odds.errors import ProviderError  # noqa: E402
from hoopforecast.services.odds.models import (  # noqa: E402
    CandidateOutcome,
    GameContext,
    Provenance,
    Side,
)
from hoopforecast.services.odds.providers.base import BaseOddsProvider  # noqa: E402

REPORT_DATE = date(2025, 1, 15)


# =============================================================================
# HTTP HELPERS
# =============================================================================

def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class RecordingHandler:
    """
    MockTransport handler that records requests and replays responses.

    Args:
        routes: path -> Response, or list of Responses served in order
            (the last one repeats)
    """

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get(request.url.path)
        if response is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(response, list):
            served = sum(1 for r in self.requests if r.url.path == request.url.path)
            return response[min(served, len(response)) - 1]
        if callable(response):
            return response(request)
        return response

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)


class StaticProvider(BaseOddsProvider):
    """Provider stub that returns fixed candidates or raises."""

    def __init__(
        self,
        name: str,
        candidates: Optional[List[CandidateOutcome]] = None,
        error: Optional[ProviderError] = None,
        api_key: str = "test-key",
    ):
        super().__init__(api_key=api_key, base_url="http://stub")
        self.name = name
        self.candidates = candidates or []
        self.error = error
        self.calls = 0

    async def fetch_candidates(self, player_name, game_context=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.candidates)


def candidate(
    bookmaker: str,
    line: Optional[float],
    side: Side = Side.OVER,
    over_price: int = -110,
    under_price: int = -110,
    provenance: Provenance = Provenance.AGGREGATOR_A,
    player: str = "LeBron James",
    timestamp: Optional[str] = None,
) -> CandidateOutcome:
    """Build a candidate outcome with sensible defaults."""
    return CandidateOutcome(
        bookmaker_key=bookmaker,
        bookmaker_title=bookmaker.title(),
        side=side,
        line=line,
        price=over_price if side is Side.OVER else under_price,
        provenance=provenance,
        player_name=player,
        raw_timestamp=timestamp,
        over_price=over_price,
        under_price=under_price,
    )


# =============================================================================
# FROZEN PROVIDER PAYLOADS
# =============================================================================

# SportsGameOdds (aggregatorA): events with composite odd IDs
SGO_EVENTS = {
    "success": True,
    "data": [
        {
            "eventID": "LAL_GSW_20250115",
            "teams": {
                "home": {
                    "teamID": "LOS_ANGELES_LAKERS_NBA",
                    "names": {"long": "Los Angeles Lakers", "short": "LAL"},
                },
                "away": {
                    "teamID": "GOLDEN_STATE_WARRIORS_NBA",
                    "names": {"long": "Golden State Warriors", "short": "GSW"},
                },
            },
            "players": {
                "LEBRON_JAMES_1_NBA": {"firstName": "LeBron", "lastName": "James"},
                "STEPHEN_CURRY_1_NBA": {"firstName": "Stephen", "lastName": "Curry"},
            },
            "odds": {
                "points-LEBRON_JAMES_1_NBA-game-ou-over": {
                    "playerID": "LEBRON_JAMES_1_NBA",
                    "marketName": "LeBron James Points Over/Under",
                    "bookOverUnder": "24.5",
                    "opposingOddID": "points-LEBRON_JAMES_1_NBA-game-ou-under",
                    "lastUpdatedAt": "2025-01-15T18:00:00Z",
                    "byBookmaker": {
                        "fanduel": {"odds": "-115"},
                        "draftkings": {"odds": "-110", "overUnder": "25.5"},
                    },
                },
                "points-LEBRON_JAMES_1_NBA-game-ou-under": {
                    "playerID": "LEBRON_JAMES_1_NBA",
                    "marketName": "LeBron James Points Over/Under",
                    "bookOverUnder": "24.5",
                    "opposingOddID": "points-LEBRON_JAMES_1_NBA-game-ou-over",
                    "lastUpdatedAt": "2025-01-15T18:00:00Z",
                    "byBookmaker": {
                        "fanduel": {"odds": "-105"},
                        "draftkings": {"odds": "-120", "overUnder": "25.5"},
                    },
                },
                "points-STEPHEN_CURRY_1_NBA-game-ou-over": {
                    "playerID": "STEPHEN_CURRY_1_NBA",
                    "marketName": "Stephen Curry Points Over/Under",
                    "bookOverUnder": 27.5,
                    "byBookmaker": {"betmgm": {"odds": "+100"}},
                },
                "rebounds-LEBRON_JAMES_1_NBA-game-ou-over": {
                    "playerID": "LEBRON_JAMES_1_NBA",
                    "marketName": "LeBron James Rebounds Over/Under",
                    "bookOverUnder": "7.5",
                    "byBookmaker": {"draftkings": {"odds": "-110"}},
                },
                "points-BROKEN_PLAYER-game-ou-over": "not-an-object",
            },
        },
    ],
}

# The Odds API (aggregatorB): step one, event list
ODDS_API_EVENTS = [
    {
        "id": "evt-gsw-lal",
        "sport_key": "basketball_nba",
        "commence_time": "2025-01-16T03:30:00Z",
        "home_team": "Golden State Warriors",
        "away_team": "Los Angeles Lakers",
    },
    {
        "id": "evt-bos-mia",
        "sport_key": "basketball_nba",
        "commence_time": "2025-01-16T00:30:00Z",
        "home_team": "Boston Celtics",
        "away_team": "Miami Heat",
    },
]

# The Odds API (aggregatorB): step two, event odds
ODDS_API_EVENT_ODDS = {
    "id": "evt-gsw-lal",
    "home_team": "Golden State Warriors",
    "away_team": "Los Angeles Lakers",
    "bookmakers": [
        {
            "key": "fanduel",
            "title": "FanDuel",
            "last_update": "2025-01-15T19:00:00Z",
            "markets": [
                {
                    "key": "player_points",
                    "last_update": "2025-01-15T19:00:00Z",
                    "outcomes": [
                        {"name": "Over", "description": "LeBron James", "price": -115, "point": 24.5},
                        {"name": "Under", "description": "LeBron James", "price": -105, "point": 24.5},
                        {"name": "Over", "description": "Stephen Curry", "price": -110, "point": 28.5},
                        {"name": "Under", "description": "Stephen Curry", "price": -110, "point": 28.5},
                    ],
                },
            ],
        },
        {
            "key": "draftkings",
            "title": "DraftKings",
            "last_update": "2025-01-15T19:05:00Z",
            "markets": [
                {
                    "key": "player_points",
                    "outcomes": [
                        {"name": "Over", "description": "LeBron James", "price": -110, "point": 25.5},
                        {"name": "Under", "description": "LeBron James", "price": -120, "point": 25.5},
                        "malformed-outcome",
                    ],
                },
                {
                    "key": "player_rebounds",
                    "outcomes": [
                        {"name": "Over", "description": "LeBron James", "price": -110, "point": 7.5},
                    ],
                },
            ],
        },
        "malformed-bookmaker",
    ],
}

# Legacy aggregator: sites/odds/results shape with nested over/under prices
LEGACY_GAMES = {
    "success": True,
    "data": [
        {
            "home_team": "Denver Nuggets",
            "away_team": "Phoenix Suns",
            "sites": [
                {
                    "site_nice": "BetRivers",
                    "key": "betrivers",
                    "last_update": "2025-01-15T17:00:00Z",
                    "odds": [
                        {
                            "key": "player_points",
                            "results": [
                                {
                                    "player": "Nikola Jokić",
                                    "line": 26.5,
                                    "over": {"price": -125},
                                    "under": {"price": 105},
                                },
                                "garbage",
                            ],
                        },
                    ],
                },
                {
                    "title": "PointsBet",
                    "key": "pointsbet",
                    "markets": [
                        {
                            "name": "Player Points",
                            "outcomes": [
                                {"description": "Nikola Jokic", "point": 27.0, "price": -110},
                                {"description": "Devin Booker", "point": 0, "price": -110},
                            ],
                        },
                    ],
                },
            ],
        },
    ],
}

# RapidAPI injuries report
INJURY_REPORT = [
    {
        "date": "2025-01-15",
        "team": "Los Angeles Lakers",
        "player": "Anthony Davis",
        "status": "Out",
        "reason": "Injury/Illness - Left Ankle; Sprain",
    },
    {
        "date": "2025-01-15",
        "team": "Los Angeles Lakers",
        "player": "Jarred Vanderbilt",
        "status": "Questionable",
        "reason": "Injury/Illness - Right Foot; Surgery",
    },
    {
        "date": "2025-01-15",
        "team": "Golden State Warriors",
        "player": "Stephen Curry",
        "status": "Probable",
        "reason": "Injury/Illness - Bilateral Knee; Soreness",
    },
    {
        "date": "2025-01-15",
        "team": "Seattle SuperSonics",
        "player": "Shawn Kemp",
        "status": "Out",
        "reason": "Relocation",
    },
]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def lal_gsw() -> GameContext:
    return GameContext(team="LAL", opponent="GS")


@pytest.fixture
def injury_handler() -> RecordingHandler:
    """Injury feed with a report for yesterday only; today's probe fails."""
    return RecordingHandler({
        "/injuries/nba/2025-01-15": httpx.Response(500, text="upstream exploded"),
        "/injuries/nba/2025-01-14": httpx.Response(200, json={"data": INJURY_REPORT}),
    })


@pytest.fixture
def injury_service(injury_handler):
    """InjuryService wired to the frozen injury report."""
    from hoopforecast.services.injuries.provider import InjuryProvider
    from hoopforecast.services.injuries.service import InjuryService

    provider = InjuryProvider(
        api_key="test-rapidapi-key",
        client=make_client(injury_handler),
        today=lambda: REPORT_DATE,
    )
    return InjuryService(provider=provider, cache_ttl=3600)


@pytest.fixture(scope="function")
def test_client():
    """
    FastAPI TestClient.

    Note: We don't use context manager (with TestClient) because it conflicts
    with Prometheus middleware that's added during app module initialization.
    """
    from fastapi.testclient import TestClient
    from hoopforecast.main import app

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
