"""
Fuzzy string matching for duplicate vendor detection.

Levenshtein-based similarity in [0, 1]. `similarity_ratio` compares its
arguments exactly as given; the list helpers lowercase and trim first.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

DEFAULT_THRESHOLD = 0.8


@dataclass(frozen=True)
class SimilarMatch:
    """A candidate that scored at or above the threshold."""
    value: str
    score: float


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two-row dynamic programming table
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def similarity_ratio(a: str, b: str) -> float:
    """
    Normalized similarity: 1 - distance / max(len(a), len(b)).

    Identical strings (including two empty strings) score 1.0; one empty
    string against a non-empty one scores 0.0. Case-sensitive.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    longest = max(len(a), len(b))
    return 1.0 - levenshtein_distance(a, b) / longest


def _normalize(value: str) -> str:
    return value.strip().lower()


def _length_ratio(a: str, b: str) -> float:
    """Upper bound of similarity_ratio(a, b) given only the lengths."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - (longest - min(len(a), len(b))) / longest


def find_similar(
    query: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD
) -> List[SimilarMatch]:
    """
    Candidates similar to query, best first.

    Comparison is case-insensitive and ignores surrounding whitespace.
    Returned values are the original candidate strings. Ties keep the
    candidate order.
    """
    needle = _normalize(query)
    matches = []
    for candidate in candidates:
        normalized = _normalize(candidate)
        # Distance is at least the length difference, so this bound is exact
        if normalized != needle and _length_ratio(needle, normalized) < threshold:
            continue
        score = similarity_ratio(needle, normalized)
        if score >= threshold:
            matches.append(SimilarMatch(value=candidate, score=score))

    matches.sort(key=lambda match: match.score, reverse=True)
    return matches


def has_similar(
    query: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD
) -> bool:
    """True if any candidate reaches the threshold."""
    return len(find_similar(query, candidates, threshold)) > 0


def get_best_match(
    query: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD
) -> Optional[SimilarMatch]:
    """Highest-scoring candidate, or None if nothing reaches the threshold."""
    matches = find_similar(query, candidates, threshold)
    return matches[0] if matches else None
