"""
Matching domain entities representing core business objects.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .value_objects import UserProfile


@dataclass(frozen=True)
class CompatibilityScoreBreakdown:
    """
    Five weighted sub-scores and their weighted total.

    Every component lies in [0, 1]; ``total`` is rounded to two decimals.
    """

    skill: float
    timezone: float
    availability: float
    communication: float
    session_history: float
    total: float

    def __post_init__(self):
        """Validate that every component is a proper score."""
        for component, value in self.components().items():
            if not 0 <= value <= 1:
                raise ValueError(f"Score component {component} must be between 0 and 1")
        if not 0 <= self.total <= 1:
            raise ValueError("Total score must be between 0 and 1")

    def components(self) -> Dict[str, float]:
        return {
            "skill": self.skill,
            "timezone": self.timezone,
            "availability": self.availability,
            "communication": self.communication,
            "session_history": self.session_history,
        }

    def to_dict(self) -> Dict[str, float]:
        breakdown = self.components()
        breakdown["total"] = self.total
        return breakdown


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate profile paired with its compatibility breakdown."""

    profile: UserProfile
    breakdown: CompatibilityScoreBreakdown

    @property
    def user_id(self) -> str:
        return self.profile.user_id

    @property
    def total(self) -> float:
        return self.breakdown.total


@dataclass(frozen=True)
class MatchResult:
    """
    The selected partner for a matching request.

    Ephemeral: computed per request and never persisted by the core.
    """

    partner_id: str
    compatibility_score: float
    score_breakdown: CompatibilityScoreBreakdown
    latency_ms: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert match result to dictionary representation."""
        return {
            "partner_id": self.partner_id,
            "compatibility_score": self.compatibility_score,
            "score_breakdown": self.score_breakdown.to_dict(),
            "latency_ms": self.latency_ms,
        }
