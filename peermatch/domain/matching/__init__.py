"""
Matching domain module containing value objects, the compatibility scorer,
the match selector and the profile repository contract.
"""

from .entities import CompatibilityScoreBreakdown, MatchResult, ScoredCandidate
from .value_objects import (
    AvailabilitySchedule,
    CommunicationPreferences,
    CommunicationStyle,
    MatchingRequest,
    SessionRecord,
    SessionType,
    SkillProficiency,
    TimeSlot,
    Urgency,
    UserProfile,
    UserStats,
)
from .scoring import CompatibilityScorer, skill_complementarity
from .services import MatchSelector
from .repositories import ProfileStore, InMemoryProfileStore

__all__ = [
    "CompatibilityScoreBreakdown",
    "MatchResult",
    "ScoredCandidate",
    "AvailabilitySchedule",
    "CommunicationPreferences",
    "CommunicationStyle",
    "MatchingRequest",
    "SessionRecord",
    "SessionType",
    "SkillProficiency",
    "TimeSlot",
    "Urgency",
    "UserProfile",
    "UserStats",
    "CompatibilityScorer",
    "skill_complementarity",
    "MatchSelector",
    "ProfileStore",
    "InMemoryProfileStore",
]
