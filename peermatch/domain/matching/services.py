"""
Matching domain service selecting the best partner from scored candidates.
"""

from typing import List, Optional, Sequence
import logging
import time

from peermatch.config.matching_config import MatchingConfig, get_matching_config
from .entities import CompatibilityScoreBreakdown, MatchResult, ScoredCandidate
from .scoring import CompatibilityScorer
from .value_objects import MatchingRequest, UserProfile

logger = logging.getLogger(__name__)


class MatchSelector:
    """
    Applies the compatibility scorer to every candidate, enforces the hard
    minimums and picks the single best match.

    Selection is pure: it never touches the queue, so it is safe to call
    concurrently and repeatedly with the same inputs. The caller owns
    claiming the chosen candidate and recording analytics.
    """

    def __init__(
        self,
        scorer: Optional[CompatibilityScorer] = None,
        config: Optional[MatchingConfig] = None,
    ):
        """Initialize with a scorer and threshold configuration."""
        self.config = config or get_matching_config()
        self.scorer = scorer or CompatibilityScorer(config=self.config)

    def is_qualified(self, breakdown: CompatibilityScoreBreakdown) -> bool:
        """Check a breakdown against every hard minimum."""
        thresholds = self.config.thresholds
        return (
            breakdown.total >= thresholds.min_total_score
            and breakdown.skill >= thresholds.min_skill_score
            and breakdown.availability >= thresholds.min_availability_score
        )

    def rank_candidates(
        self,
        requester: UserProfile,
        candidates: Sequence[UserProfile],
        request: MatchingRequest,
    ) -> List[ScoredCandidate]:
        """
        Score and rank candidates that meet all minimums.

        Args:
            requester: Profile of the user asking for a match
            candidates: Candidate profiles in candidate pool order
            request: The requester's matching request

        Returns:
            Qualified candidates sorted by total score, highest first. Equal
            totals keep pool order (queue priority, then longest waiting).
        """
        scored = [
            ScoredCandidate(profile=candidate, breakdown=self.scorer.score(requester, candidate, request))
            for candidate in candidates
            if candidate.user_id != requester.user_id
        ]

        qualified = [candidate for candidate in scored if self.is_qualified(candidate.breakdown)]

        logger.debug(
            f"Scored {len(scored)} candidates for {request.user_id}, {len(qualified)} qualified"
        )

        # sorted() is stable, which preserves queue order between equal totals
        return sorted(qualified, key=lambda candidate: candidate.total, reverse=True)

    def select_best_match(
        self,
        requester: UserProfile,
        candidates: Sequence[UserProfile],
        request: MatchingRequest,
    ) -> Optional[MatchResult]:
        """
        Pick the single best qualified candidate.

        Returns:
            MatchResult for the top candidate, or None when the pool is empty
            or nobody meets the thresholds
        """
        started = time.perf_counter()
        if not candidates:
            return None

        ranked = self.rank_candidates(requester, candidates, request)
        if not ranked:
            return None

        return build_match_result(ranked[0], started)


def build_match_result(candidate: ScoredCandidate, started: float) -> MatchResult:
    """Wrap a scored candidate as a MatchResult timed from ``started``."""
    return MatchResult(
        partner_id=candidate.user_id,
        compatibility_score=candidate.total,
        score_breakdown=candidate.breakdown,
        latency_ms=round((time.perf_counter() - started) * 1000, 3),
    )
