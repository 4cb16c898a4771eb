"""
Prometheus metrics for the HoopForecast API.

Metrics exposed:
- Upstream provider request success/failure counters
- Player line resolution outcomes
- Injury cache hit/miss counters
- The Odds API quota gauges

HTTP request metrics are produced by prometheus-fastapi-instrumentator in
``hoopforecast.main``.
"""
from prometheus_client import Counter, Gauge

# Upstream provider metrics
provider_requests_success_total = Counter(
    "provider_requests_success_total",
    "Total successful upstream provider requests",
    ["provider"]
)

provider_requests_failure_total = Counter(
    "provider_requests_failure_total",
    "Total failed upstream provider requests",
    ["provider", "error_type"]
)

# Resolution metrics
line_resolutions_total = Counter(
    "line_resolutions_total",
    "Player line lookups by outcome",
    ["outcome"]  # found, not_found, all_failed
)

# Injury cache metrics
injury_cache_requests_total = Counter(
    "injury_cache_requests_total",
    "Injury cache lookups",
    ["result"]  # hit, miss
)

# The Odds API quota
odds_api_quota_remaining = Gauge(
    "odds_api_quota_remaining",
    "Remaining Odds API requests for current billing period"
)

odds_api_quota_used = Gauge(
    "odds_api_quota_used",
    "Used Odds API requests in current billing period"
)

odds_api_quota_percentage = Gauge(
    "odds_api_quota_percentage",
    "Percentage of Odds API quota used"
)


def record_provider_success(provider: str) -> None:
    """Record a successful upstream request."""
    provider_requests_success_total.labels(provider=provider).inc()


def record_provider_failure(provider: str, error_type: str = "unknown") -> None:
    """Record a failed upstream request."""
    provider_requests_failure_total.labels(provider=provider, error_type=error_type).inc()


def record_resolution(outcome: str) -> None:
    """Record the outcome of a player line lookup."""
    line_resolutions_total.labels(outcome=outcome).inc()


def record_injury_cache(hit: bool) -> None:
    injury_cache_requests_total.labels(result="hit" if hit else "miss").inc()


def update_odds_api_quota(remaining: int, used: int, monthly_quota: int = 20000) -> None:
    """
    Update Odds API quota gauges.

    Args:
        remaining: Remaining requests
        used: Used requests
        monthly_quota: Monthly quota (default: 20000)
    """
    odds_api_quota_remaining.set(remaining)
    odds_api_quota_used.set(used)

    if used > 0 and monthly_quota > 0:
        odds_api_quota_percentage.set((used / monthly_quota) * 100)
    else:
        odds_api_quota_percentage.set(0)
