"""
Injury routes.

Injury lookups never fail: provider problems come back as empty reports.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from hoopforecast.core.logging import get_logger
from hoopforecast.core.rate_limit import limiter
from hoopforecast.services.injuries.adjustment import compute_adjustment
from hoopforecast.services.injuries.models import InjuryRecord, MatchupInjuries
from hoopforecast.services.injuries.service import InjuryService, get_injury_service

logger = get_logger(__name__)

router = APIRouter(prefix="/injuries", tags=["injuries"])


class AdjustmentRequest(BaseModel):
    """Request body for computing an adjustment over a supplied injury list."""
    player: str
    team: str
    injuries: List[InjuryRecord] = []


class AdjustmentResponse(BaseModel):
    player: str
    team: str
    adjustment: float
    injuries_considered: int


@router.get("/team/{team}", response_model=List[InjuryRecord])
@limiter.limit("60/minute")
async def get_team_injuries(
    request: Request,
    team: str,
    injury_service: InjuryService = Depends(get_injury_service),
):
    """
    Get a team's current injury report.

    The team may be an abbreviation in any provider's style ("GS", "GSW")
    or a full name.
    """
    return await injury_service.get_team_injuries(team)


@router.get("/matchup", response_model=MatchupInjuries)
@limiter.limit("60/minute")
async def get_matchup_injuries(
    request: Request,
    team: str = Query(..., description="Player's team"),
    opponent: str = Query(..., description="Opponent team"),
    injury_service: InjuryService = Depends(get_injury_service),
):
    """Get injury reports for both teams in a matchup."""
    return await injury_service.get_matchup_injuries(team, opponent)


@router.get("/adjustment", response_model=AdjustmentResponse)
@limiter.limit("60/minute")
async def get_adjustment(
    request: Request,
    player: str = Query(..., min_length=1),
    team: str = Query(..., min_length=1),
    injury_service: InjuryService = Depends(get_injury_service),
):
    """
    Injury multiplier for a player's projection, using the team's current
    injury report.
    """
    injuries = await injury_service.get_team_injuries(team)
    return AdjustmentResponse(
        player=player,
        team=team,
        adjustment=compute_adjustment(player, team, injuries),
        injuries_considered=len(injuries),
    )


@router.post("/adjustment", response_model=AdjustmentResponse)
@limiter.limit("60/minute")
async def post_adjustment(request: Request, body: AdjustmentRequest):
    """Injury multiplier computed over a caller-supplied injury list."""
    return AdjustmentResponse(
        player=body.player,
        team=body.team,
        adjustment=compute_adjustment(body.player, body.team, body.injuries),
        injuries_considered=len(body.injuries),
    )
