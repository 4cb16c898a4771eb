"""
Injury data types.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_IMPACT_SCORE = 50


class StructuredStatus(str, Enum):
    ACTIVE = "active"
    QUESTIONABLE = "questionable"
    PROBABLE = "probable"
    OUT = "out"


class InjuryRecord(BaseModel):
    """One player's entry in a team injury report."""
    player_name: str
    team_abbreviation: str
    structured_status: StructuredStatus = StructuredStatus.ACTIVE
    impact_score: int = Field(default=DEFAULT_IMPACT_SCORE, ge=0, le=100)

    # Display fields, passed through from the report
    status: Optional[str] = None
    injury: str = "Not specified"
    comment: str = ""
    date: Optional[str] = None
    position: str = "Unknown"


class MatchupInjuries(BaseModel):
    player_team_injuries: List[InjuryRecord] = []
    opponent_injuries: List[InjuryRecord] = []
    has_player_team_injuries: bool = False
    has_opponent_injuries: bool = False

    @classmethod
    def empty(cls) -> "MatchupInjuries":
        return cls()
