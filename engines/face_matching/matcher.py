"""
Face Matcher: picks the best-scoring member for a detected face.
Scores each roster entry with the signature comparator; thresholding is
left to a MatchPolicy (see policy.py).
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from engines.face_matching.comparator import compare, NORMALIZE_FIRST

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Best candidate member and its score."""
    member: Any
    score: float = 0.0

    @property
    def member_id(self):
        return getattr(self.member, 'id', None)

    def to_dict(self) -> dict:
        return {
            'member_id': self.member_id,
            'member_name': getattr(self.member, 'name', None),
            'score': round(self.score, 3),
        }


class FaceMatcher:
    """
    Matches a detected face signature against a roster snapshot.

    Members without a stored face_signature are skipped. The highest score
    wins; comparison is strict, so on an exact tie the first member seen is
    kept. Stateless between calls.
    """

    def __init__(self, normalization: str = NORMALIZE_FIRST):
        self.normalization = normalization

    def score(self, detected, member) -> float:
        # stored signature is the reference side of the comparison
        return compare(member.face_signature, detected, self.normalization)

    def find_best_match(self, detected, roster: Sequence) -> Optional[MatchResult]:
        """
        Find the best matching member for a detected face.

        Args:
            detected: signature of the detected face (width/height)
            roster: members, each with an optional face_signature

        Returns:
            MatchResult for the top-scoring member, or None if the roster is
            empty or nobody has a stored signature
        """
        if detected is None or not roster:
            return None

        best_member = None
        best_score = -1.0

        for member in roster:
            if member.face_signature is None:
                continue
            score = self.score(detected, member)
            if score > best_score:
                best_score = score
                best_member = member

        if best_member is None:
            return None

        logger.debug(f"FaceMatcher: best candidate {best_member.id} (score {best_score:.3f})")
        return MatchResult(member=best_member, score=best_score)
