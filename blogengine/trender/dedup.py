"""Fuzzy near-duplicate detection against recently published titles.

Titles are reduced to their significant words (longer than a minimum
length, plus an optional allow-list of short words that carry meaning).
A candidate is a duplicate when its word overlap with any recent title,
divided by the smaller of the two word sets, reaches the threshold.

The ``min`` denominator lets a topic with one or two significant words be
flagged by any short recent title that shares them.
"""

from typing import Collection, Iterable, Optional, Set

DEFAULT_MIN_WORD_LENGTH = 3
DUPLICATE_THRESHOLD = 0.7


def significant_words(
    text: str,
    min_length: int = DEFAULT_MIN_WORD_LENGTH,
    preserve_words: Collection[str] = (),
) -> Set[str]:
    """Lowercased whitespace-separated words longer than ``min_length``."""
    if not text:
        return set()
    return {
        word
        for word in text.lower().split()
        if len(word) > min_length or word in preserve_words
    }


def overlap_ratio(candidate_words: Set[str], recent_words: Set[str]) -> float:
    """|A ∩ B| / min(|A|, |B|), or 0.0 when either set is empty."""
    if not candidate_words or not recent_words:
        return 0.0
    shared = len(candidate_words & recent_words)
    return shared / min(len(candidate_words), len(recent_words))


def find_duplicate(
    candidate_topic: str,
    recent_titles: Iterable[str],
    threshold: float = DUPLICATE_THRESHOLD,
    min_length: int = DEFAULT_MIN_WORD_LENGTH,
    preserve_words: Collection[str] = (),
) -> Optional[str]:
    """Return the first recent title the candidate duplicates, if any."""
    candidate_words = significant_words(candidate_topic, min_length, preserve_words)
    if not candidate_words:
        return None

    for title in recent_titles:
        recent_words = significant_words(title, min_length, preserve_words)
        if overlap_ratio(candidate_words, recent_words) >= threshold:
            return title
    return None


def is_duplicate(
    candidate_topic: str,
    recent_titles: Iterable[str],
    threshold: float = DUPLICATE_THRESHOLD,
    min_length: int = DEFAULT_MIN_WORD_LENGTH,
    preserve_words: Collection[str] = (),
) -> bool:
    """True when the topic overlaps strongly with any one recent title."""
    return find_duplicate(candidate_topic, recent_titles, threshold, min_length, preserve_words) is not None
