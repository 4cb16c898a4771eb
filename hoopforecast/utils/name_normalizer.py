"""Name normalization utilities for player and team name matching.

Odds and injury providers render the same player differently:
- Accents: "Luka Dončić" → "luka doncic"
- Punctuation: "P.J. Tucker" → "pj tucker", "Gilgeous-Alexander" → "gilgeousalexander"
- Case: "LEBRON JAMES" → "lebron james"
- Extra spaces: "Kyle  Lowry" → "kyle lowry"

The same normalization must be applied to the search query and to every
candidate before they are compared.
"""
import re
import unicodedata
from typing import List, Optional

_NON_ALNUM_SPACE = re.compile(r'[^a-z0-9 ]')
_WHITESPACE = re.compile(r'\s+')


def normalize(name: Optional[str]) -> str:
    """
    Normalize a name for comparison.

    Steps:
    1. Decompose unicode (NFD) and drop combining marks (accents)
    2. Convert to lowercase
    3. Turn any whitespace into a plain space
    4. Remove everything that is not an ASCII letter, digit or space
    5. Collapse repeated spaces and trim

    Never raises; ``None`` and empty input give an empty string. The result
    is a fixed point: ``normalize(normalize(s)) == normalize(s)``.

    Examples:
        >>> normalize("José Alvarado")
        'jose alvarado'
        >>> normalize("P.J. Tucker")
        'pj tucker'
        >>> normalize("  Kyle \\t Lowry ")
        'kyle lowry'
    """
    if not name:
        return ""

    decomposed = unicodedata.normalize('NFD', str(name))
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))

    lowered = _WHITESPACE.sub(' ', stripped.lower())
    cleaned = _NON_ALNUM_SPACE.sub('', lowered)

    return ' '.join(cleaned.split())


def tokenize(name: Optional[str]) -> List[str]:
    """Split the normalized form of ``name`` into its non-empty tokens."""
    return [token for token in normalize(name).split(' ') if token]


def matches_query(query: Optional[str], *candidate_fields: Optional[str]) -> bool:
    """
    Check whether a candidate's name fields match a player query.

    Every token of the normalized query must appear as a substring of the
    combined normalized candidate fields. A one-token query only needs that
    token to appear. Superset matches are accepted, so "James" matches
    "LeBron James".

    Args:
        query: Player name supplied by the caller
        *candidate_fields: Name-like fields from one provider outcome
            (name, description, first/last name, ...). ``None`` is ignored.

    Returns:
        True if the candidate matches, False otherwise (including an
        empty query)
    """
    tokens = tokenize(query)
    if not tokens:
        return False

    haystack = ' '.join(normalize(f) for f in candidate_fields if f)
    if not haystack:
        return False

    if len(tokens) == 1:
        return tokens[0] in haystack

    return all(token in haystack for token in tokens)


def names_overlap(first: Optional[str], second: Optional[str]) -> bool:
    """
    Substring match in either direction after normalization.

    Empty names never overlap.

    Examples:
        >>> names_overlap("LeBron James", "lebron")
        True
        >>> names_overlap("", "lebron")
        False
    """
    a = normalize(first)
    b = normalize(second)
    if not a or not b:
        return False
    return a in b or b in a
