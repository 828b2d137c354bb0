"""
Business rules and algorithm constants for the peer matching service.
"""

from typing import Dict, Tuple


class MatchingWeights:
    """Sub-score weights of the compatibility score (must total 1.0)."""

    SKILL_COMPATIBILITY = 0.30
    TIMEZONE_COMPATIBILITY = 0.15
    AVAILABILITY_COMPATIBILITY = 0.15
    COMMUNICATION_COMPATIBILITY = 0.15
    SESSION_HISTORY_COMPATIBILITY = 0.25

    @classmethod
    def as_dict(cls) -> Dict[str, float]:
        return {
            "skill": cls.SKILL_COMPATIBILITY,
            "timezone": cls.TIMEZONE_COMPATIBILITY,
            "availability": cls.AVAILABILITY_COMPATIBILITY,
            "communication": cls.COMMUNICATION_COMPATIBILITY,
            "session_history": cls.SESSION_HISTORY_COMPATIBILITY,
        }


class MatchingThresholds:
    """Hard minimums a candidate must meet to be matchable."""

    MINIMUM_TOTAL_SCORE = 0.4
    MINIMUM_SKILL_SCORE = 0.2
    MINIMUM_AVAILABILITY_SCORE = 0.1


class ScoringFallbacks:
    """Named fallback values used when scoring data is missing or sparse."""

    NEUTRAL = 0.5
    MINIMAL = 0.1
    MAXIMUM = 1.0

    NO_SKILL_OVERLAP = MINIMAL
    UNKNOWN_TIMEZONE = NEUTRAL
    MISSING_SCHEDULE = NEUTRAL
    NO_USABLE_SCHEDULE = MINIMAL
    MISSING_PREFERENCES = NEUTRAL
    NO_SESSION_HISTORY = NEUTRAL
    HISTORY_FLOOR = MINIMAL


class SkillScoring:
    """Constants for skill overlap and complementarity scoring."""

    MIN_PROFICIENCY = 1
    MAX_PROFICIENCY = 5

    PREFERRED_SKILL_WEIGHT = 2
    OTHER_SKILL_WEIGHT = 1

    # Breadth bonus = min(weight_count / BREADTH_DIVISOR, BREADTH_BONUS_CAP)
    BREADTH_DIVISOR = 10
    BREADTH_BONUS_CAP = 0.2

    # Score by level gap when the gap points the right way
    DIRECTIONAL_GAP_SCORES: Dict[int, float] = {1: 1.0, 2: 0.9, 3: 0.7}
    DIRECTIONAL_WIDE_GAP = 0.5

    LEARNING_PEER = 0.6
    LEARNING_WRONG_WAY = 0.3
    TEACHING_PEER = 0.4
    TEACHING_WRONG_WAY = 0.2

    COLLABORATION_GAP_SCORES: Dict[int, float] = {0: 1.0, 1: 0.9, 2: 0.7}
    COLLABORATION_WIDE_GAP = 0.4


class TimezoneScoring:
    """Hour-difference bands for timezone compatibility, checked in order."""

    BANDS: Tuple[Tuple[int, float], ...] = (
        (0, 1.0),
        (2, 0.9),
        (4, 0.7),
        (6, 0.5),
        (8, 0.3),
    )
    BEYOND_BANDS = 0.1


class AvailabilityScoring:
    """Constants for schedule overlap scoring."""

    WEEKDAYS: Tuple[str, ...] = (
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
    )
    OVERLAP_BOOST = 2.0


class CommunicationScoring:
    """Constants for communication preference scoring."""

    SAME_STYLE = 1.0
    BALANCED_STYLE = 0.8
    DIFFERENT_STYLE = 0.4

    SHARED_LANGUAGE = 1.0
    NO_SHARED_LANGUAGE = 0.2

    DURATION_BANDS: Tuple[Tuple[int, float], ...] = (
        (15, 1.0),
        (30, 0.8),
        (60, 0.6),
    )
    DURATION_BEYOND_BANDS = 0.3


class SessionHistoryScoring:
    """Constants for session history scoring."""

    RATING_SCALE = 5.0
    REPEAT_PAIRING_MIN_RATING = 4.0
    REPEAT_PAIRING_BONUS = 0.2


class QueueExpiration:
    """Queue entry time-to-live by urgency, in minutes."""

    HIGH_URGENCY = 15
    MEDIUM_URGENCY = 30
    LOW_URGENCY = 60


class QueuePriority:
    """Priority points used to order the waiting queue."""

    URGENCY_BASE: Dict[str, float] = {"high": 1000, "medium": 500, "low": 100}
    POINTS_PER_MINUTE_WAITED = 2
    SESSION_TYPE_BONUS: Dict[str, float] = {
        "collaboration": 50,
        "learning": 30,
        "teaching": 20,
    }
    POINTS_PER_PREFERRED_SKILL = 10
    MAX_SKILL_POINTS = 50

    WAIT_FACTOR_BY_URGENCY: Dict[str, float] = {"high": 0.5, "medium": 0.8, "low": 1.2}
    DEFAULT_AVERAGE_MATCH_SECONDS = 120.0
    MIN_ESTIMATED_WAIT_SECONDS = 30.0


class SessionCompatibility:
    """Which queued session types may be paired with a requested type."""

    MATRIX: Dict[str, Tuple[str, ...]] = {
        "learning": ("teaching", "collaboration"),
        "teaching": ("learning", "collaboration"),
        "collaboration": ("collaboration", "learning", "teaching"),
    }


class RequestLimits:
    """Validation limits for incoming matching requests."""

    MIN_SESSION_DURATION_MINUTES = 15
    MAX_SESSION_DURATION_MINUTES = 180
    DEFAULT_CANDIDATE_LIMIT = 20
