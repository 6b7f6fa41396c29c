"""
Face Matching Engine
Scores detected face signatures against registered members and applies
a match policy.

Usage:
    from engines.face_matching import FaceMatcher, NormalizedScorePolicy

    matcher = FaceMatcher()
    best = matcher.find_best_match(detected_box, roster)

    policy = NormalizedScorePolicy(threshold=0.7)
    result = policy.match(detected_box, roster)   # None → no match
"""

from engines.face_matching.signature import FaceSignature, parse_signature
from engines.face_matching.comparator import compare, dimension_difference
from engines.face_matching.matcher import FaceMatcher, MatchResult
from engines.face_matching.policy import (
    MatchPolicy, NormalizedScorePolicy, DimensionDifferencePolicy, build_policy,
)

__all__ = [
    'FaceSignature', 'parse_signature',
    'compare', 'dimension_difference',
    'FaceMatcher', 'MatchResult',
    'MatchPolicy', 'NormalizedScorePolicy', 'DimensionDifferencePolicy', 'build_policy',
]
