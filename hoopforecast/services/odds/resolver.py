"""
Line resolver: turns provider candidates into a single canonical line.

Matching happens in the adapters, where the raw JSON is still available.
Ranking happens here so that every provider's candidates are ordered the
same way:

1. Drop candidates without a usable line (missing, NaN, zero or negative)
2. Drop repeated (bookmaker, line) pairs, keeping the first
3. Stable sort by position in the bookmaker preference list; unlisted
   bookmakers go last in first-seen order
4. The top candidate becomes the ``ResolvedLine``; every survivor becomes
   an alternate line in ranked order
"""
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Union

from hoopforecast.core.logging import get_logger
from hoopforecast.services.odds.models import (
    AlternateLine,
    CandidateOutcome,
    NotFound,
    ResolvedLine,
)

logger = get_logger(__name__)

DEFAULT_BOOKMAKER_PREFERENCE = (
    "draftkings",
    "fanduel",
    "betmgm",
    "caesars",
    "pointsbet",
    "barstool",
    "betrivers",
    "wynnbet",
    "unibet",
    "foxbet",
)

# Priority for bookmakers not in the preference list
UNLISTED_PRIORITY = 999


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); None if unparseable."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LineResolver:
    """
    Rank candidates by bookmaker preference.

    Args:
        bookmaker_preference: Ordered bookmaker keys, most preferred first
    """

    def __init__(self, bookmaker_preference: Sequence[str] = DEFAULT_BOOKMAKER_PREFERENCE):
        self.bookmaker_preference = tuple(b.lower() for b in bookmaker_preference)

    def bookmaker_priority(self, bookmaker_key: str) -> int:
        """
        Lower number = higher priority.

        A key matches a preference entry when it contains it, so region
        suffixed keys ("betmgm_us") rank with their book.
        """
        key = (bookmaker_key or "").lower()
        for index, preferred in enumerate(self.bookmaker_preference):
            if preferred in key:
                return index
        return UNLISTED_PRIORITY

    def rank(self, candidates: Iterable[CandidateOutcome]) -> List[CandidateOutcome]:
        """Filter, deduplicate and sort candidates (steps 1-3)."""
        seen = set()
        survivors = []

        for candidate in candidates:
            line = candidate.line
            if line is None or math.isnan(line) or line <= 0:
                continue

            key = (candidate.bookmaker_key, line)
            if key in seen:
                continue
            seen.add(key)
            survivors.append(candidate)

        return sorted(survivors, key=lambda c: self.bookmaker_priority(c.bookmaker_key))

    def resolve(
        self,
        player_name: str,
        candidates: Iterable[CandidateOutcome],
    ) -> Union[ResolvedLine, NotFound]:
        """
        Select the best line for a player.

        Args:
            player_name: Player as requested by the caller
            candidates: Candidates from one provider scan

        Returns:
            ResolvedLine, or NotFound when no candidate has a usable line
        """
        ranked = self.rank(candidates)
        if not ranked:
            logger.debug(f"No usable line for {player_name}")
            return NotFound(player=player_name)

        best = ranked[0]
        last_update = parse_timestamp(best.raw_timestamp) or datetime.now(timezone.utc)

        return ResolvedLine(
            player=best.player_name or player_name,
            line=best.line,
            over_price=best.over_price,
            under_price=best.under_price,
            bookmaker=best.bookmaker_key,
            last_update=last_update,
            provenance=best.provenance,
            alternate_lines=[
                AlternateLine(bookmaker=c.bookmaker_key, line=c.line) for c in ranked
            ],
        )
