"""
"Did you mean ...?" suggestions for misspelled symbols, members and fonts.
"""

import os
from typing import Dict, Iterable, List, Optional, Sequence

from .ast import KEYWORDS


# Names users commonly reach for that the language spells differently.
ALTERNATIVES: Dict[str, List[str]] = {
    "box": ["cube"],
    "rect": ["square"],
    "rectangle": ["square"],
    "ellipse": ["circle"],
    "elipse": ["circle"],
    "squircle": ["roundrect"],
    "rotate": ["orientation"],
    "rotation": ["orientation"],
    "orientation": ["rotate"],
    "translate": ["position"],
    "translation": ["position"],
    "position": ["translate"],
    "scale": ["size"],
    "size": ["scale"],
    "width": ["size", "x"],
    "height": ["size", "y"],
    "depth": ["size", "z"],
    "length": ["size"],
    "radius": ["size"],
    "x": ["width", "position"],
    "y": ["height", "position"],
    "z": ["depth", "position"],
    "option": ["define"],
    "subtract": ["difference"],
    "subtraction": ["difference"],
}


def edit_distance(lhs: str, rhs: str) -> int:
    """
    Damerau-Levenshtein distance (optimal string alignment variant):
    insertions, deletions, substitutions and adjacent transpositions each
    cost one.
    """
    dist = [[0] * (len(rhs) + 1) for _ in range(len(lhs) + 1)]
    for i in range(len(lhs) + 1):
        dist[i][0] = i
    for j in range(len(rhs) + 1):
        dist[0][j] = j
    for i in range(1, len(lhs) + 1):
        for j in range(1, len(rhs) + 1):
            if lhs[i - 1] == rhs[j - 1]:
                dist[i][j] = dist[i - 1][j - 1]
            else:
                dist[i][j] = min(dist[i - 1][j], dist[i][j - 1], dist[i - 1][j - 1]) + 1
            if i > 1 and j > 1 and lhs[i - 1] == rhs[j - 2] and lhs[i - 2] == rhs[j - 1]:
                dist[i][j] = min(dist[i][j], dist[i - 2][j - 2] + 1)
    return dist[len(lhs)][len(rhs)]


def best_matches(query: str, options: Iterable[str]) -> List[str]:
    """
    Rank options by similarity to query, best first.

    Comparison is case-insensitive. Options sharing no prefix with the query
    whose distance exceeds half the query length are dropped; equal
    distances prefer the longer common prefix.
    """
    lowercase_query = query.lower()
    ranked = []
    for option in options:
        lowercase_option = option.lower()
        distance = edit_distance(lowercase_option, lowercase_query)
        common_prefix = len(os.path.commonprefix([lowercase_option, lowercase_query]))
        if common_prefix == 0 and distance > len(lowercase_query) // 2:
            continue
        ranked.append((distance, -common_prefix, option))
    ranked.sort(key=lambda entry: entry[:2])
    return [option for _, _, option in ranked]


def suggest(name: str, options: Sequence[str]) -> Optional[str]:
    """
    The single best suggestion for an unknown name: a curated alternative
    when one is available (or is a keyword), else the closest option.
    """
    for alternative in ALTERNATIVES.get(name.lower(), []):
        if alternative in options or alternative in KEYWORDS:
            return alternative
    matches = best_matches(name, options)
    return matches[0] if matches else None
