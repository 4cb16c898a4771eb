"""
Team name mapping between provider formats and canonical abbreviations.

Odds and injury providers identify teams inconsistently: The Odds API and the
injuries feed use full names ("Golden State Warriors", "LA Clippers") while
callers and other feeds use abbreviations that differ by source ("GS" vs
"GSW", "NO" vs "NOP", "PHO" vs "PHX"). Everything here resolves to the
three-letter abbreviations used throughout the API.

The tables are read-only ``MappingProxyType`` views.
"""
from types import MappingProxyType
from typing import Optional

from hoopforecast.core.logging import get_logger
from hoopforecast.utils.name_normalizer import normalize

logger = get_logger(__name__)

# Full team names -> canonical abbreviation
TEAM_NAME_TO_ABBREV = MappingProxyType({
    "Atlanta Hawks": "ATL",
    "Boston Celtics": "BOS",
    "Brooklyn Nets": "BKN",
    "Charlotte Hornets": "CHA",
    "Chicago Bulls": "CHI",
    "Cleveland Cavaliers": "CLE",
    "Dallas Mavericks": "DAL",
    "Denver Nuggets": "DEN",
    "Detroit Pistons": "DET",
    "Golden State Warriors": "GSW",
    "Houston Rockets": "HOU",
    "Indiana Pacers": "IND",
    "LA Clippers": "LAC",
    "Los Angeles Clippers": "LAC",
    "Los Angeles Lakers": "LAL",
    "Memphis Grizzlies": "MEM",
    "Miami Heat": "MIA",
    "Milwaukee Bucks": "MIL",
    "Minnesota Timberwolves": "MIN",
    "New Orleans Pelicans": "NOP",
    "New York Knicks": "NYK",
    "Oklahoma City Thunder": "OKC",
    "Orlando Magic": "ORL",
    "Philadelphia 76ers": "PHI",
    "Phoenix Suns": "PHX",
    "Portland Trail Blazers": "POR",
    "Sacramento Kings": "SAC",
    "San Antonio Spurs": "SAS",
    "Toronto Raptors": "TOR",
    "Utah Jazz": "UTA",
    "Washington Wizards": "WAS",
})

# Canonical abbreviation -> other spellings seen across providers.
# Ambiguous cities ("Los Angeles", "LA") are deliberately absent.
TEAM_VARIANTS = MappingProxyType({
    "ATL": ("Atlanta", "Hawks"),
    "BOS": ("Boston", "Celtics"),
    "BKN": ("BRK", "BK", "Brooklyn", "Nets"),
    "CHA": ("CHO", "CHH", "Charlotte", "Hornets"),
    "CHI": ("Chicago", "Bulls"),
    "CLE": ("Cleveland", "Cavaliers", "Cavs"),
    "DAL": ("Dallas", "Mavericks", "Mavs"),
    "DEN": ("Denver", "Nuggets"),
    "DET": ("Detroit", "Pistons"),
    "GSW": ("GS", "Golden State", "Warriors"),
    "HOU": ("Houston", "Rockets"),
    "IND": ("Indiana", "Pacers"),
    "LAC": ("Clippers", "LA Clippers"),
    "LAL": ("Lakers", "LA Lakers"),
    "MEM": ("Memphis", "Grizzlies"),
    "MIA": ("Miami", "Heat"),
    "MIL": ("Milwaukee", "Bucks"),
    "MIN": ("Minnesota", "Timberwolves", "Wolves"),
    "NOP": ("NO", "NOR", "New Orleans", "Pelicans"),
    "NYK": ("NY", "New York", "Knicks"),
    "OKC": ("OKL", "Oklahoma City", "Thunder"),
    "ORL": ("Orlando", "Magic"),
    "PHI": ("PHL", "Philadelphia", "76ers", "Sixers"),
    "PHX": ("PHO", "Phoenix", "Suns"),
    "POR": ("Portland", "Trail Blazers", "Blazers"),
    "SAC": ("Sacramento", "Kings"),
    "SAS": ("SA", "San Antonio", "Spurs"),
    "TOR": ("Toronto", "Raptors"),
    "UTA": ("UTAH", "UTH", "Utah", "Jazz"),
    "WAS": ("WSH", "Washington", "Wizards"),
})


def _build_lookup() -> MappingProxyType:
    lookup = {}
    for full_name, abbrev in TEAM_NAME_TO_ABBREV.items():
        lookup[normalize(full_name)] = abbrev
    for abbrev, variants in TEAM_VARIANTS.items():
        lookup[normalize(abbrev)] = abbrev
        for variant in variants:
            lookup[normalize(variant)] = abbrev
    return MappingProxyType(lookup)


# normalized spelling -> canonical abbreviation
_LOOKUP = _build_lookup()


def team_abbrev_from_full_name(full_name: Optional[str]) -> Optional[str]:
    """
    Get a team abbreviation from its full name.

    Args:
        full_name: Full team name (e.g. "Washington Wizards"), any case

    Returns:
        Abbreviation (e.g. "WAS"), or None if the name is unknown
    """
    if not full_name:
        return None

    key = normalize(full_name)
    for name, abbrev in TEAM_NAME_TO_ABBREV.items():
        if normalize(name) == key:
            return abbrev

    logger.debug(f"No abbreviation found for team name: {full_name!r}")
    return None


def canonical_team(value: Optional[str]) -> Optional[str]:
    """
    Resolve any known spelling (full name, city, nickname, abbreviation
    variant) to the canonical abbreviation.

    Returns:
        Canonical abbreviation, or None when the value is not recognised
    """
    if not value:
        return None
    return _LOOKUP.get(normalize(value))


def team_matches(provider_team: Optional[str], query_team: Optional[str]) -> bool:
    """
    Check whether a provider's team field refers to the queried team.

    Both sides are resolved through the variant tables; when either side is
    unknown, fall back to a normalized substring comparison so that
    unlisted spellings still get a chance to match.

    Examples:
        >>> team_matches("Golden State Warriors", "GS")
        True
        >>> team_matches("Los Angeles Lakers", "LAC")
        False
    """
    if not provider_team or not query_team:
        return False

    provider_abbrev = canonical_team(provider_team)
    query_abbrev = canonical_team(query_team)
    if provider_abbrev and query_abbrev:
        return provider_abbrev == query_abbrev

    a = normalize(provider_team)
    b = normalize(query_team)
    if not a or not b:
        return False
    return a in b or b in a
