"""Physician name matching: word-boundary prefix match with a typo fallback.

Dependencies:
    pip install rapidfuzz
"""

import re

from rapidfuzz.distance import Levenshtein

# Edit distance at or below which two names are treated as the same person.
NAME_DISTANCE_THRESHOLD = 4

_TITLE_PREFIX = re.compile(r"^\s*dr\.?\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Strip a leading "Dr." title, collapse whitespace and casefold."""
    if not name:
        return ""
    stripped = _TITLE_PREFIX.sub("", str(name))
    return _WHITESPACE.sub(" ", stripped).strip().casefold()


def name_distance(name_a: str, name_b: str) -> int:
    """Levenshtein distance between two names after normalisation."""
    return Levenshtein.distance(normalize_name(name_a), normalize_name(name_b))


def word_prefix_match(fragment: str, name: str) -> bool:
    """True when the fragment starts at a word boundary inside the name."""
    needle = normalize_name(fragment)
    if not needle:
        return True
    return re.search(r"\b" + re.escape(needle), normalize_name(name)) is not None


def name_matches(fragment: str, physician_name: str, threshold: int = NAME_DISTANCE_THRESHOLD) -> bool:
    if not fragment or not fragment.strip():
        return True
    if word_prefix_match(fragment, physician_name):
        return True
    return name_distance(fragment, physician_name) <= threshold
