"""
HTTP endpoint integration tests for the HoopForecast API.

These tests verify that FastAPI endpoints:
- Return correct HTTP status codes
- Validate request/response schemas
- Map provider failures to 503 and missing lines to 404

Services are replaced through app.dependency_overrides; nothing here talks
to a real provider.
"""
import pytest
from fastapi.testclient import TestClient

from hoopforecast.main import app
from hoopforecast.core.rate_limit import limiter
from hoopforecast.api.routes.odds import get_trending
from hoopforecast.services.injuries.service import get_injury_service
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.providers.the_odds_api import TheOddsApiProvider
from hoopforecast.services.odds.service import OddsService, get_odds_service
from hoopforecast.services.odds.trending import BestOdds, TrendingProp
from tests.conftest import StaticProvider, candidate


# =============================================================================
# FIXTURES
# =============================================================================

def use_odds_service(*providers):
    service = OddsService(list(providers))
    app.dependency_overrides[get_odds_service] = lambda: service
    return service


class StubTrending:
    """Stands in for TrendingService."""

    def __init__(self, props=None, error=None):
        self.props = props or []
        self.error = error
        self.limits = []

    async def get_trending_props(self, limit=15):
        self.limits.append(limit)
        if self.error is not None:
            raise self.error
        return self.props[:limit]


@pytest.fixture
def injuries_client(test_client, injury_service):
    app.dependency_overrides[get_injury_service] = lambda: injury_service
    return test_client


# =============================================================================
# ROOT AND HEALTH ENDPOINTS
# =============================================================================

class TestRootAndHealthEndpoints:
    """Test root and health check endpoints."""

    def test_root_endpoint(self, test_client: TestClient):
        """Test root endpoint returns API information."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "running"
        assert data["endpoints"]["odds"]["player_line"] == "/api/v1/odds/player-line"

    def test_health_endpoint(self, test_client: TestClient):
        """Test basic health check endpoint."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_health_endpoint(self, test_client: TestClient):
        """Test detailed health check lists every provider."""
        response = test_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()

        assert data["status"] in ["healthy", "degraded"]
        providers = data["components"]["providers"]
        assert set(providers) == {"aggregatorA", "aggregatorB", "legacyAggregator", "injuries"}
        assert set(providers.values()) <= {"configured", "missing_api_key"}

    def test_correlation_id_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Correlation-ID": "req-123"})

        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_correlation_id_generated(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.headers["X-Correlation-ID"]

    def test_metrics_endpoint(self, test_client: TestClient):
        response = test_client.get("/metrics")

        assert response.status_code == 200


# =============================================================================
# PLAYER LINE ENDPOINT
# =============================================================================

class TestPlayerLineEndpoint:
    """Test /api/v1/odds/player-line."""

    def test_resolved_line(self, test_client: TestClient):
        use_odds_service(StaticProvider("aggregatorA", [
            candidate("fanduel", 24.5, over_price=-115, under_price=-105),
            candidate("draftkings", 25.5, timestamp="2025-01-15T18:00:00Z"),
        ]))

        response = test_client.get("/api/v1/odds/player-line", params={"player": "LeBron James"})

        assert response.status_code == 200
        data = response.json()
        assert data["player"] == "LeBron James"
        assert data["line"] == 25.5
        assert data["bookmaker"] == "draftkings"
        assert data["over_price"] == -110
        assert data["under_price"] == -110
        assert data["provenance"] == "aggregatorA"
        assert data["last_update"].startswith("2025-01-15T18:00:00")
        assert [a["bookmaker"] for a in data["alternate_lines"]] == ["draftkings", "fanduel"]

    def test_game_context_passed_through(self, test_client: TestClient):
        seen = []

        class ContextProvider(StaticProvider):
            async def fetch_candidates(self, player_name, game_context=None):
                seen.append(game_context)
                return [candidate("draftkings", 25.5)]

        use_odds_service(ContextProvider("aggregatorA"))

        response = test_client.get(
            "/api/v1/odds/player-line",
            params={"player": "LeBron James", "team": "LAL", "opponent": "GS"},
        )

        assert response.status_code == 200
        assert seen[0].team == "LAL"
        assert seen[0].opponent == "GS"

    def test_not_found(self, test_client: TestClient):
        use_odds_service(StaticProvider("aggregatorA", []))

        response = test_client.get("/api/v1/odds/player-line", params={"player": "Unknown Player"})

        assert response.status_code == 404
        assert response.json()["detail"] == "No player line found for Unknown Player"

    def test_all_providers_failed(self, test_client: TestClient):
        use_odds_service(
            StaticProvider("aggregatorA", error=ProviderError("aggregatorA", "HTTP error", 500, "down")),
            StaticProvider("aggregatorB", error=ProviderError("aggregatorB", "timed out")),
        )

        response = test_client.get("/api/v1/odds/player-line", params={"player": "LeBron James"})

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["error"] == "All odds providers failed"
        assert [p["provider"] for p in detail["providers"]] == ["aggregatorA", "aggregatorB"]
        assert detail["providers"][0]["status_code"] == 500

    def test_one_failure_then_not_found_is_404(self, test_client: TestClient):
        use_odds_service(
            StaticProvider("aggregatorA", error=ProviderError("aggregatorA", "HTTP error", 429)),
            StaticProvider("aggregatorB", []),
        )

        response = test_client.get("/api/v1/odds/player-line", params={"player": "LeBron James"})

        assert response.status_code == 404

    def test_player_required(self, test_client: TestClient):
        use_odds_service()

        response = test_client.get("/api/v1/odds/player-line")

        assert response.status_code == 422


# =============================================================================
# QUOTA AND TRENDING ENDPOINTS
# =============================================================================

class TestQuotaEndpoint:

    def test_quota_status(self, test_client: TestClient):
        use_odds_service(TheOddsApiProvider(api_key="odds-key"))

        response = test_client.get("/api/v1/odds/quota")

        assert response.status_code == 200
        data = response.json()
        assert data["monthly_quota"] == 20000
        assert data["requests_remaining"] is None

    def test_quota_without_odds_api(self, test_client: TestClient):
        use_odds_service(StaticProvider("aggregatorA"))

        response = test_client.get("/api/v1/odds/quota")

        assert response.status_code == 404


class TestTrendingEndpoint:

    def test_trending_props(self, test_client: TestClient):
        prop = TrendingProp(
            player="LeBron James",
            prop_type="points",
            line=24.5,
            book_count=3,
            books=["FanDuel", "DraftKings", "BetMGM"],
            best_odds=BestOdds(sportsbook="BetMGM", odds=120, type="over"),
        )
        stub = StubTrending([prop])
        app.dependency_overrides[get_trending] = lambda: stub

        response = test_client.get("/api/v1/odds/trending", params={"limit": 5})

        assert response.status_code == 200
        data = response.json()
        assert data[0]["player"] == "LeBron James"
        assert data[0]["best_odds"]["odds"] == 120
        assert stub.limits == [5]

    def test_trending_without_odds_api(self, test_client: TestClient):
        app.dependency_overrides[get_trending] = lambda: None

        response = test_client.get("/api/v1/odds/trending")

        assert response.status_code == 200
        assert response.json() == []

    def test_trending_limit_validated(self, test_client: TestClient):
        app.dependency_overrides[get_trending] = lambda: StubTrending()

        assert test_client.get("/api/v1/odds/trending", params={"limit": 0}).status_code == 422
        assert test_client.get("/api/v1/odds/trending", params={"limit": 51}).status_code == 422

    def test_provider_error_maps_to_503(self, test_client: TestClient):
        error = ProviderError("aggregatorB", "HTTP error", status_code=401, body="bad key")
        app.dependency_overrides[get_trending] = lambda: StubTrending(error=error)

        response = test_client.get("/api/v1/odds/trending")

        assert response.status_code == 503
        assert response.json() == {
            "error": "Upstream provider error",
            "provider": "aggregatorB",
            "status_code": 401,
        }


# =============================================================================
# INJURY ENDPOINTS
# =============================================================================

class TestInjuryEndpoints:
    """Test /api/v1/injuries."""

    def test_team_injuries(self, injuries_client: TestClient):
        response = injuries_client.get("/api/v1/injuries/team/LAL")

        assert response.status_code == 200
        data = response.json()
        assert {i["player_name"] for i in data} == {"Anthony Davis", "Jarred Vanderbilt"}
        davis = next(i for i in data if i["player_name"] == "Anthony Davis")
        assert davis["structured_status"] == "out"
        assert davis["injury"] == "Ankle"

    def test_team_without_injuries(self, injuries_client: TestClient):
        response = injuries_client.get("/api/v1/injuries/team/BOS")

        assert response.status_code == 200
        assert response.json() == []

    def test_matchup(self, injuries_client: TestClient):
        response = injuries_client.get("/api/v1/injuries/matchup", params={"team": "LAL", "opponent": "GS"})

        assert response.status_code == 200
        data = response.json()
        assert data["has_player_team_injuries"] is True
        assert data["has_opponent_injuries"] is True
        assert data["opponent_injuries"][0]["player_name"] == "Stephen Curry"

    def test_adjustment_from_team_report(self, injuries_client: TestClient):
        response = injuries_client.get(
            "/api/v1/injuries/adjustment", params={"player": "LeBron James", "team": "LAL"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "player": "LeBron James",
            "team": "LAL",
            "adjustment": 1.0,
            "injuries_considered": 2,
        }

    def test_adjustment_for_injured_player(self, injuries_client: TestClient):
        response = injuries_client.get(
            "/api/v1/injuries/adjustment", params={"player": "Anthony Davis", "team": "LAL"}
        )

        assert response.json()["adjustment"] == 0.3

    def test_adjustment_from_supplied_injuries(self, test_client: TestClient):
        response = test_client.post("/api/v1/injuries/adjustment", json={
            "player": "LeBron James",
            "team": "LAL",
            "injuries": [
                {"player_name": "Anthony Davis", "team_abbreviation": "LAL", "impact_score": 100},
            ],
        })

        assert response.status_code == 200
        assert response.json()["adjustment"] == 1.18
        assert response.json()["injuries_considered"] == 1

    def test_adjustment_rejects_bad_impact(self, test_client: TestClient):
        response = test_client.post("/api/v1/injuries/adjustment", json={
            "player": "LeBron James",
            "team": "LAL",
            "injuries": [
                {"player_name": "Anthony Davis", "team_abbreviation": "LAL", "impact_score": 150},
            ],
        })

        assert response.status_code == 422


# =============================================================================
# RATE LIMITS
# =============================================================================

class TestRateLimits:
    """Lookup routes are registered with the shared limiter."""

    @pytest.mark.parametrize("route", [
        "hoopforecast.api.routes.odds.get_player_line",
        "hoopforecast.api.routes.odds.get_trending_props",
        "hoopforecast.api.routes.injuries.get_team_injuries",
        "hoopforecast.api.routes.injuries.get_matchup_injuries",
        "hoopforecast.api.routes.injuries.get_adjustment",
        "hoopforecast.api.routes.injuries.post_adjustment",
    ])
    def test_route_is_rate_limited(self, route):
        assert route in limiter._route_limits


# =============================================================================
# CORS HEADERS
# =============================================================================

class TestCORSHeaders:
    """Test CORS headers are properly set."""

    def test_cors_headers_on_get(self, test_client: TestClient):
        """Development origins are allowed outside production."""
        response = test_client.get("/health", headers={"Origin": "http://localhost:3000"})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
