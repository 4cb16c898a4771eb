"""
Base class for odds provider adapters.

The base adapter provides:
- A lazily created, shared ``httpx.AsyncClient`` per provider
- The retry policy: 403/429 are retried with exponential backoff,
  everything else fails at once with ``ProviderError``
- Lenient value parsing helpers for loosely typed provider JSON

Subclasses implement ``fetch_candidates`` for one provider's response shape.

Usage:
    class MyProvider(BaseOddsProvider):
        name = "myProvider"
        provenance = Provenance.LEGACY

        async def fetch_candidates(self, player_name, game_context=None):
            data = await self._get_json(url, params={...})
            ...
"""
import math
from typing import Any, Dict, Iterable, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from hoopforecast.core.logging import get_logger
from hoopforecast.core.metrics import record_provider_failure, record_provider_success
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.models import CandidateOutcome, GameContext, Provenance

logger = get_logger(__name__)

# Statuses that mean "slow down" rather than "broken"
RATE_LIMIT_STATUSES = frozenset({403, 429})


def _is_rate_limited(exc: BaseException) -> bool:
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code in RATE_LIMIT_STATUSES
    )


class BaseOddsProvider:
    """
    Base class for odds provider adapters.

    Attributes:
        name: Provider name used in logs, metrics and errors
        provenance: Provenance tag stamped on every candidate
        api_key: Provider API key (empty means "not configured")
        base_url: Provider base URL
    """

    name: str = "provider"
    provenance: Provenance = Provenance.LEGACY

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 15.0,
        max_retries: int = 2,
        backoff_seconds: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Provider API key
            base_url: Provider base URL (no trailing slash)
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts after a 403/429 response
            backoff_seconds: Backoff multiplier; waits are backoff, 2*backoff, ...
            client: Optional pre-built HTTP client (tests inject a MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._client = client
        self._owns_client = client is None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self):
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _on_response(self, response: httpx.Response):
        """Hook for subclasses that read headers (quota tracking)."""

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        GET a URL and decode its JSON body.

        Args:
            url: Absolute URL
            params: Query parameters
            headers: Extra request headers

        Returns:
            Decoded JSON

        Raises:
            ProviderError: On a non-2xx status (after retries for 403/429),
                transport error, timeout or undecodable body
        """
        client = await self._get_client()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=self.backoff_seconds),
                retry=retry_if_exception(_is_rate_limited),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    response = await client.get(url, params=params, headers=headers)
                    self._on_response(response)
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            record_provider_failure(self.name, f"http_{status}")
            raise ProviderError(
                self.name,
                f"HTTP error from {url}",
                status_code=status,
                body=e.response.text,
            ) from e
        except httpx.TimeoutException as e:
            record_provider_failure(self.name, "timeout")
            raise ProviderError(self.name, f"Request to {url} timed out") from e
        except httpx.RequestError as e:
            record_provider_failure(self.name, "transport")
            raise ProviderError(self.name, f"Request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            record_provider_failure(self.name, "invalid_json")
            raise ProviderError(
                self.name,
                "Response is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e

        record_provider_success(self.name)
        return data

    def _log_retry(self, retry_state):
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
        logger.warning(
            f"{self.name} rate limited (HTTP {status}), "
            f"retry {retry_state.attempt_number}/{self.max_retries}"
        )

    def _extract_events(self, data: Any, keys: Iterable[str] = ("data", "events")) -> List[Dict]:
        """
        Recognise the top-level response shape: a bare list of events or an
        object wrapping one under one of ``keys``.

        Raises:
            ProviderError: If neither shape matches
        """
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in keys:
                if isinstance(data.get(key), list):
                    return data[key]
        raise ProviderError(self.name, "Unrecognized response shape")

    async def fetch_candidates(
        self,
        player_name: str,
        game_context: Optional[GameContext] = None,
    ) -> List[CandidateOutcome]:
        """
        Find matching player points outcomes.

        Raises:
            ProviderError: On network, auth or shape failure
        """
        raise NotImplementedError


def pair_by_line(candidates: List[CandidateOutcome]) -> List[CandidateOutcome]:
    """
    Fill in both prices for outcomes listed as separate over/under entries.

    Outcomes are paired when they share bookmaker, player and line. Sides
    with no partner keep the default price.
    """
    sides: Dict[tuple, Dict[str, int]] = {}
    for candidate in candidates:
        if candidate.price is None:
            continue
        key = (candidate.bookmaker_key, candidate.player_name.lower(), candidate.line)
        sides.setdefault(key, {}).setdefault(candidate.side.value, candidate.price)

    for candidate in candidates:
        prices = sides.get((candidate.bookmaker_key, candidate.player_name.lower(), candidate.line), {})
        if "over" in prices:
            candidate.over_price = prices["over"]
        if "under" in prices:
            candidate.under_price = prices["under"]

    return candidates


def as_list(value: Any) -> List[Any]:
    """Nested payload collection, or an empty list when the field is not a list."""
    return value if isinstance(value, list) else []


def parse_line(value: Any) -> Optional[float]:
    """Coerce a provider line value to float; None when missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        line = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(line) or math.isinf(line):
        return None
    return line


def parse_price(value: Any) -> Optional[int]:
    """
    Coerce an American odds value ("+120", "-110", 120.0) to int.

    Returns:
        Price, or None when missing or unparseable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().lstrip("+")
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(price) or math.isinf(price):
        return None
    return int(round(price))
