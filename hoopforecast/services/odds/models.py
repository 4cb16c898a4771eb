"""
Data types for player prop line resolution.

``CandidateOutcome`` is the intermediate record every provider adapter
produces while scanning its raw JSON. The line resolver ranks candidates and
builds a single ``ResolvedLine`` (returned by the API) or ``NotFound``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, Field

from hoopforecast.services.odds.errors import ProviderError

# Price used when a provider omits one side of the market (standard vig)
DEFAULT_PRICE = -110


class Side(str, Enum):
    OVER = "over"
    UNDER = "under"


class Provenance(str, Enum):
    """Which upstream source produced a line."""
    AGGREGATOR_A = "aggregatorA"
    AGGREGATOR_B = "aggregatorB"
    LEGACY = "legacyAggregator"


@dataclass(frozen=True)
class GameContext:
    """Optional game context used to pick the right event."""
    team: Optional[str] = None
    opponent: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.team and not self.opponent


@dataclass
class CandidateOutcome:
    """
    One matched outcome from a provider scan.

    ``side`` and ``price`` describe the outcome as the provider listed it;
    ``over_price`` / ``under_price`` are filled in by pairing the outcome
    with its opposite side and default to -110 when the pair is missing.
    """
    bookmaker_key: str
    bookmaker_title: str
    side: Side
    line: Optional[float]
    price: Optional[int]
    provenance: Provenance
    player_name: str = ""
    matched_tokens: FrozenSet[str] = field(default_factory=frozenset)
    raw_timestamp: Optional[str] = None
    over_price: int = DEFAULT_PRICE
    under_price: int = DEFAULT_PRICE


class AlternateLine(BaseModel):
    bookmaker: str
    line: float


class ResolvedLine(BaseModel):
    """Canonical player line returned to callers."""
    player: str
    line: float = Field(gt=0)
    over_price: int = DEFAULT_PRICE
    under_price: int = DEFAULT_PRICE
    bookmaker: str
    last_update: datetime
    provenance: Provenance
    alternate_lines: List[AlternateLine] = []


@dataclass(frozen=True)
class NotFound:
    """
    No line is listed for the player.

    A normal, frequent outcome rather than an error. Falsy, so callers can
    write ``if result:``.
    """
    player: str
    reason: str = "No player line found"

    def __bool__(self) -> bool:
        return False


@dataclass
class LineLookup:
    """Result of asking every configured provider for a player's line."""
    player: str
    line: Optional[ResolvedLine] = None
    errors: List[ProviderError] = field(default_factory=list)
    providers_tried: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.line is not None

    @property
    def all_failed(self) -> bool:
        """True when at least one provider was tried and every one raised."""
        return (
            self.line is None
            and bool(self.providers_tried)
            and len(self.errors) == len(self.providers_tried)
        )
