"""
RapidAPI NBA injuries feed.

Reports are published per day, and not always on the day of the games, so
today's and yesterday's reports are requested concurrently and the first
non-empty one wins. The slower probe is cancelled. Probe failures are
logged at debug level and otherwise ignored.
"""
import asyncio
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx

from hoopforecast.core.logging import get_logger
from hoopforecast.services.injuries.models import DEFAULT_IMPACT_SCORE, InjuryRecord, StructuredStatus
from hoopforecast.services.team_mapping import team_abbrev_from_full_name

logger = get_logger(__name__)

# Keys a report may be wrapped under
_LIST_KEYS = ("data", "injuries", "items")


def normalize_status(status: Optional[str]) -> StructuredStatus:
    """
    Map free-text status onto the four structured statuses.

    Examples:
        >>> normalize_status("Out")
        <StructuredStatus.OUT: 'out'>
        >>> normalize_status("Doubtful")
        <StructuredStatus.QUESTIONABLE: 'questionable'>
    """
    if not status:
        return StructuredStatus.ACTIVE

    text = status.lower()
    if "out" in text or "injured reserve" in text:
        return StructuredStatus.OUT
    if "questionable" in text or "doubtful" in text:
        return StructuredStatus.QUESTIONABLE
    if "probable" in text or "likely" in text:
        return StructuredStatus.PROBABLE
    return StructuredStatus.ACTIVE


def extract_injury_type(reason: Optional[str]) -> Optional[str]:
    """
    Pull the body part out of a report reason.

    Examples:
        >>> extract_injury_type("Injury/Illness - Left Ankle; Sprain")
        'Ankle'
        >>> extract_injury_type("Right; Soreness")
        'Soreness'
    """
    if not reason:
        return None

    parts = reason.split(";")
    injury = parts[0].strip()
    if injury.lower().startswith("injury/illness"):
        injury = injury[len("injury/illness"):].lstrip(" -").strip()

    words = injury.split()
    if words and words[0].lower() in ("left", "right", "bilateral"):
        words = words[1:]
    cleaned = " ".join(words)

    if len(cleaned) < 2:
        if len(parts) > 1 and parts[1].strip():
            return parts[1].strip().capitalize()
        return None

    return cleaned.capitalize()


def _unwrap(data: Any) -> List[Dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _LIST_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def to_injury_record(entry: Dict) -> Optional[InjuryRecord]:
    """
    Convert one raw report entry.

    Returns:
        InjuryRecord, or None for entries without a player or a known team
    """
    player = entry.get("player")
    team = team_abbrev_from_full_name(entry.get("team"))
    if not player or not team:
        return None

    reason = entry.get("reason") or ""
    return InjuryRecord(
        player_name=str(player),
        team_abbreviation=team,
        structured_status=normalize_status(entry.get("status")),
        impact_score=DEFAULT_IMPACT_SCORE,
        status=entry.get("status"),
        injury=extract_injury_type(reason) or "Not specified",
        comment=reason,
        date=entry.get("date"),
    )


class InjuryProvider:
    """
    Client for the RapidAPI NBA injuries reports API.

    Args:
        api_key: RapidAPI key (empty means "not configured")
        host: RapidAPI host
        timeout: Per-probe timeout in seconds
        client: Optional pre-built HTTP client
        today: Callable returning today's date (tests pin the clock)
    """

    def __init__(
        self,
        api_key: str,
        host: str = "nba-injuries-reports.p.rapidapi.com",
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
        today: Callable[[], date] = date.today,
    ):
        self.api_key = api_key
        self.host = host
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._today = today

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def probe_dates(self) -> List[str]:
        today = self._today()
        return [today.isoformat(), (today - timedelta(days=1)).isoformat()]

    async def _fetch_date(self, report_date: str) -> List[Dict]:
        client = await self._get_client()
        response = await client.get(
            f"https://{self.host}/injuries/nba/{report_date}",
            headers={
                "X-RapidAPI-Key": self.api_key,
                "X-RapidAPI-Host": self.host,
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        return _unwrap(response.json())

    async def fetch_reports(self) -> List[Dict]:
        """
        Race the date probes and return the first non-empty report.

        Returns:
            Raw report entries, or an empty list if every probe failed or was
            empty (or no key is configured)
        """
        if not self.is_configured:
            return []

        pending = {
            asyncio.create_task(self._fetch_date(d), name=f"injuries-{d}")
            for d in self.probe_dates()
        }

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.cancelled():
                        continue
                    exc = task.exception()
                    if exc is not None:
                        logger.debug(f"Injury probe {task.get_name()} failed: {exc}")
                        continue
                    entries = task.result()
                    if entries:
                        logger.info(f"Injury report from {task.get_name()}: {len(entries)} entries")
                        return entries
        finally:
            for task in pending:
                task.cancel()

        return []

    async def fetch_records(self) -> List[InjuryRecord]:
        """Fetch the latest report and convert it, skipping unusable entries."""
        records = []
        for entry in await self.fetch_reports():
            if not isinstance(entry, dict):
                continue
            record = to_injury_record(entry)
            if record is not None:
                records.append(record)
        return records
