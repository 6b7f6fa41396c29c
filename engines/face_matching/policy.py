"""
Match Policies: decide whether a best candidate counts as recognized.

Two thresholding policies exist and they are not equivalent:

    NormalizedScorePolicy      (Policy A) comparator score >= 0.7
    DimensionDifferencePolicy  (Policy B) raw |dw| + |dh| < 50 pixels

Policy A is the default. Policy B reproduces the older check-in flow and is
kept for compatibility testing.
"""

import logging
from typing import Optional, Sequence

from engines.face_matching.comparator import dimension_difference, NORMALIZE_FIRST
from engines.face_matching.matcher import FaceMatcher, MatchResult

logger = logging.getLogger(__name__)

POLICY_NORMALIZED = 'normalized'
POLICY_LEGACY = 'legacy'


class MatchPolicy:
    """Strategy interface: choose a candidate, then accept or reject its score."""

    name = 'base'

    def select(self, detected, roster: Sequence) -> Optional[MatchResult]:
        raise NotImplementedError

    def evaluate(self, score: float) -> bool:
        raise NotImplementedError

    def match(self, detected, roster: Sequence) -> Optional[MatchResult]:
        """
        Best candidate if it passes the threshold.

        Returns:
            MatchResult, or None when no member clears the threshold
        """
        candidate = self.select(detected, roster)
        if candidate is None:
            return None
        if not self.evaluate(candidate.score):
            logger.debug(
                f"{self.name} policy rejected {candidate.member_id} "
                f"(score {candidate.score:.3f})"
            )
            return None
        return candidate


class NormalizedScorePolicy(MatchPolicy):
    """Policy A: comparator similarity must reach the threshold."""

    name = POLICY_NORMALIZED

    def __init__(self, threshold: float = 0.7, matcher: Optional[FaceMatcher] = None):
        self.threshold = threshold
        self.matcher = matcher or FaceMatcher()

    def select(self, detected, roster):
        return self.matcher.find_best_match(detected, roster)

    def evaluate(self, score: float) -> bool:
        return score >= self.threshold


class DimensionDifferencePolicy(MatchPolicy):
    """
    Policy B: smallest raw box-size difference wins, accepted below max_difference.

    The result's score is the pixel difference itself, so lower is better.
    """

    name = POLICY_LEGACY

    def __init__(self, max_difference: float = 50.0):
        self.max_difference = max_difference

    def select(self, detected, roster):
        if detected is None or not roster:
            return None

        best_member = None
        smallest = float('inf')
        for member in roster:
            if member.face_signature is None:
                continue
            diff = dimension_difference(detected, member.face_signature)
            if diff < smallest:
                smallest = diff
                best_member = member

        if best_member is None:
            return None
        return MatchResult(member=best_member, score=smallest)

    def evaluate(self, score: float) -> bool:
        return score < self.max_difference


def build_policy(name: str = POLICY_NORMALIZED, threshold: float = 0.7,
                 max_difference: float = 50.0,
                 normalization: str = NORMALIZE_FIRST) -> MatchPolicy:
    """Construct a policy by config name ('normalized' or 'legacy')."""
    if name == POLICY_NORMALIZED:
        return NormalizedScorePolicy(threshold=threshold,
                                     matcher=FaceMatcher(normalization=normalization))
    if name == POLICY_LEGACY:
        return DimensionDifferencePolicy(max_difference=max_difference)
    raise ValueError(f"Unknown match policy: {name}")
