"""
Change Detector
===============

Decides whether a new scene description is a significant change.

Similarity Measure:
    Both descriptions are lower-cased and split on whitespace into word sets.

        similarity = |A ∩ B| / max(|A|, |B|)

    A description is significant when similarity falls below the threshold
    (0.7 by default). The first description is always significant.
"""

import logging
from typing import Set


logger = logging.getLogger(__name__)


def word_set(text: str) -> Set[str]:
    """Lower-cased whitespace-separated words of `text`."""
    return set(text.lower().split())


class ChangeDetector:
    """
    Lexical-overlap scene change detector.

    Attributes:
        threshold: Similarity below which a change is significant

    Example:
        detector = ChangeDetector(threshold=0.7)
        detector.is_significant("a cat on a mat", "a dog in the yard")  # True
    """

    def __init__(self, threshold: float = 0.7) -> None:
        """
        Initialize change detector.

        Args:
            threshold: Similarity threshold in (0, 1]
        """
        if not 0 < threshold <= 1:
            raise ValueError("threshold must be in (0, 1]")
        self.threshold = threshold

    def similarity(self, current: str, candidate: str) -> float:
        """
        Word-overlap similarity of two descriptions.

        Returns:
            Value in [0, 1]; 1.0 when both are empty
        """
        current_words = word_set(current)
        candidate_words = word_set(candidate)
        denominator = max(len(current_words), len(candidate_words))
        if denominator == 0:
            return 1.0
        return len(current_words & candidate_words) / denominator

    def is_significant(self, current: str, candidate: str) -> bool:
        """
        Whether `candidate` differs enough from `current` to be reported.

        Args:
            current: Current description (empty if none yet)
            candidate: Newly received description
        """
        if not current:
            return True

        score = self.similarity(current, candidate)
        logger.debug(f"Description similarity={score:.3f} (threshold={self.threshold})")
        return score < self.threshold
