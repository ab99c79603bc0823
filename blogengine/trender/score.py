"""Keyword relevance scoring for trend candidates.

Each configured keyword found in a candidate's text adds its word count to
a cumulative weight, so multi-word phrases count more than single words.
The weight maps onto a stepped score in [0, 1]:

    0 -> 0.00, 1 -> 0.15, 2 -> 0.30, 3 -> 0.45, 4 -> 0.60,
    n > 4 -> min(1.0, 0.60 + 0.10 * (n - 4))
"""

from typing import Iterable, Sequence

from .models import TrendCandidate

SCORE_STEPS = (0.0, 0.15, 0.30, 0.45, 0.60)
SCORE_STEP_AFTER_TABLE = 0.10
MAX_SCORE = 1.0


def candidate_text(candidate: TrendCandidate) -> str:
    """Lowercased topic, title, description and tags joined by spaces."""
    parts = [candidate.topic, candidate.title, candidate.description, *candidate.tags]
    return " ".join(part for part in parts if part).lower()


def keyword_weight(text: str, keywords: Iterable[str]) -> int:
    """Sum of word counts of every keyword occurring in ``text`` as a substring."""
    if not text:
        return 0

    weight = 0
    for keyword in keywords:
        keyword_lower = keyword.lower().strip()
        if keyword_lower and keyword_lower in text:
            weight += len(keyword_lower.split())
    return weight


def weight_to_score(weight: int) -> float:
    """Map a cumulative keyword weight to the stepped relevance score."""
    if weight <= 0:
        return 0.0
    if weight < len(SCORE_STEPS):
        return SCORE_STEPS[weight]
    extra = SCORE_STEPS[-1] + SCORE_STEP_AFTER_TABLE * (weight - (len(SCORE_STEPS) - 1))
    return round(min(MAX_SCORE, extra), 2)


def calculate_relevance_score(candidate: TrendCandidate, keywords: Sequence[str]) -> float:
    """Score a candidate against the topical keyword set. Pure and deterministic."""
    return weight_to_score(keyword_weight(candidate_text(candidate), keywords))
