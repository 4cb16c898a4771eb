"""
Injury adjustment heuristic.

When rotation players on a team are out, the remaining players pick up
shots and possessions. This converts a team injury list into a multiplier
for a player's projected value:

- The player is on the injury list: 0.30
- No injured teammate with impact score >= 80: 1.0
- Otherwise a bucketed uplift on the summed impact of those teammates,
  plus a bonus for a single high-impact absence, capped at 1.30
"""
from typing import Sequence

from hoopforecast.core.logging import get_logger
from hoopforecast.services.injuries.models import InjuryRecord
from hoopforecast.utils.name_normalizer import names_overlap

logger = get_logger(__name__)

INJURED_SELF_FACTOR = 0.30
NEUTRAL_FACTOR = 1.0
MAX_FACTOR = 1.30

# Teammates below this impact score do not move the projection
ROTATION_IMPACT_THRESHOLD = 80

# (minimum summed impact, base multiplier), highest first
SUM_BUCKETS = (
    (180, 1.25),
    (120, 1.15),
    (80, 1.08),
)

# (minimum single impact, bonus), highest first
TOP_IMPACT_BONUS = (
    (100, 0.10),
    (90, 0.05),
)


def compute_adjustment(
    target_player: str,
    target_team: str,
    injuries: Sequence[InjuryRecord],
) -> float:
    """
    Compute the injury multiplier for a player.

    Args:
        target_player: Player being projected
        target_team: Player's team abbreviation
        injuries: The team's injury records

    Returns:
        Multiplier in [0.30, 1.30], rounded to 2 decimals
    """
    if not injuries:
        return NEUTRAL_FACTOR

    if any(names_overlap(target_player, injury.player_name) for injury in injuries):
        logger.debug(f"{target_player} ({target_team}) is on the injury report")
        return INJURED_SELF_FACTOR

    rotation = [
        injury for injury in injuries
        if injury.impact_score >= ROTATION_IMPACT_THRESHOLD
    ]
    if not rotation:
        return NEUTRAL_FACTOR

    total_impact = sum(injury.impact_score for injury in rotation)
    factor = NEUTRAL_FACTOR
    for minimum, base in SUM_BUCKETS:
        if total_impact >= minimum:
            factor = base
            break

    top_impact = max(injury.impact_score for injury in rotation)
    for minimum, bonus in TOP_IMPACT_BONUS:
        if top_impact >= minimum:
            factor += bonus
            break

    factor = round(min(factor, MAX_FACTOR), 2)
    logger.debug(
        f"Injury adjustment for {target_player} ({target_team}): {factor} "
        f"from {len(rotation)} rotation injuries (impact {total_impact})"
    )
    return factor
