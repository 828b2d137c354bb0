"""
Compatibility scoring for pairing two users in a peer session.

The scorer is pure and deterministic: given the same profiles, request and
clock reading it always returns the same breakdown. The only time-dependent
factor, the timezone sub-score, reads "now" from an injected clock.
"""

from datetime import datetime, timezone as dt_timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging
import math

import pytz

from peermatch.config.matching_config import MatchingConfig, get_matching_config
from peermatch.core.constants import (
    AvailabilityScoring,
    CommunicationScoring,
    ScoringFallbacks,
    SessionHistoryScoring,
    SkillScoring,
    TimezoneScoring,
)
from peermatch.utils.error_handling import DegradedInputWarning
from .entities import CompatibilityScoreBreakdown
from .value_objects import (
    AvailabilitySchedule,
    CommunicationPreferences,
    CommunicationStyle,
    MatchingRequest,
    SessionType,
    TimeSlot,
    UserProfile,
    UserStats,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def _note_degraded(factor: str, reason: str) -> None:
    logger.debug(
        f"Degraded input for {factor} score: {reason}",
        extra={"category": DegradedInputWarning.__name__, "factor": factor},
    )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))


def _band_score(value: float, bands: Iterable[Tuple[int, float]], beyond: float) -> float:
    """Score of the first band whose upper bound covers ``value``."""
    for upper_bound, score in bands:
        if value <= upper_bound:
            return score
    return beyond


def skill_complementarity(requester_level: int, candidate_level: int, session_type: SessionType) -> float:
    """
    Score how well two proficiency levels fit a session's direction.

    Learning wants a stronger candidate, teaching wants a stronger requester,
    collaboration wants peers.
    """
    level_diff = abs(requester_level - candidate_level)

    match session_type:
        case SessionType.LEARNING:
            if candidate_level > requester_level:
                return SkillScoring.DIRECTIONAL_GAP_SCORES.get(level_diff, SkillScoring.DIRECTIONAL_WIDE_GAP)
            if candidate_level == requester_level:
                return SkillScoring.LEARNING_PEER
            return SkillScoring.LEARNING_WRONG_WAY
        case SessionType.TEACHING:
            if requester_level > candidate_level:
                return SkillScoring.DIRECTIONAL_GAP_SCORES.get(level_diff, SkillScoring.DIRECTIONAL_WIDE_GAP)
            if requester_level == candidate_level:
                return SkillScoring.TEACHING_PEER
            return SkillScoring.TEACHING_WRONG_WAY
        case SessionType.COLLABORATION:
            return SkillScoring.COLLABORATION_GAP_SCORES.get(level_diff, SkillScoring.COLLABORATION_WIDE_GAP)
        case _:
            raise ValueError(f"Unhandled session type: {session_type!r}")


class CompatibilityScorer:
    """
    Computes the five-part weighted compatibility score between a requester
    and one candidate for one matching request.
    """

    def __init__(self, config: Optional[MatchingConfig] = None, clock: Clock = utc_now):
        """Initialize with weights from config and an injectable clock."""
        self.config = config or get_matching_config()
        self.clock = clock
        self._weights = dict(self.config.weights)

    def score(
        self,
        requester: UserProfile,
        candidate: UserProfile,
        request: MatchingRequest,
    ) -> CompatibilityScoreBreakdown:
        """
        Calculate the compatibility breakdown for a candidate.

        Args:
            requester: Profile of the user asking for a match
            candidate: Profile of a waiting user
            request: The requester's matching request

        Returns:
            Breakdown with five sub-scores and the rounded weighted total
        """
        components = {
            "skill": self.skill_score(requester, candidate, request),
            "timezone": self.timezone_score(requester.timezone, candidate.timezone),
            "availability": self.availability_score(requester.availability, candidate.availability),
            "communication": self.communication_score(requester.preferences, candidate.preferences),
            "session_history": self.session_history_score(requester, candidate),
        }

        weighted_total = math.fsum(
            components[name] * weight for name, weight in self._weights.items()
        )

        return CompatibilityScoreBreakdown(
            total=_clamp(round(weighted_total, 2)),
            **components,
        )

    def skill_score(
        self,
        requester: UserProfile,
        candidate: UserProfile,
        request: MatchingRequest,
    ) -> float:
        """
        Skill overlap weighted toward the request's preferred skills.

        Preferred skills held by both users count double; any other shared
        skill counts once. A small breadth bonus rewards many shared skills.
        """
        requester_levels = requester.skill_levels()
        candidate_levels = candidate.skill_levels()
        preferred = request.normalized_skills

        total_score = 0.0
        weight_count = 0

        for skill_name in sorted(preferred):
            if skill_name in requester_levels and skill_name in candidate_levels:
                complementarity = skill_complementarity(
                    requester_levels[skill_name], candidate_levels[skill_name], request.session_type
                )
                total_score += complementarity * SkillScoring.PREFERRED_SKILL_WEIGHT
                weight_count += SkillScoring.PREFERRED_SKILL_WEIGHT

        for skill_name, requester_level in sorted(requester_levels.items()):
            if skill_name in preferred or skill_name not in candidate_levels:
                continue
            complementarity = skill_complementarity(
                requester_level, candidate_levels[skill_name], request.session_type
            )
            total_score += complementarity * SkillScoring.OTHER_SKILL_WEIGHT
            weight_count += SkillScoring.OTHER_SKILL_WEIGHT

        if weight_count == 0:
            return ScoringFallbacks.NO_SKILL_OVERLAP

        average_score = total_score / weight_count
        breadth_bonus = min(weight_count / SkillScoring.BREADTH_DIVISOR, SkillScoring.BREADTH_BONUS_CAP)
        return min(average_score + breadth_bonus, ScoringFallbacks.MAXIMUM)

    def local_hour(self, zone_name: str, now: datetime) -> int:
        """Wall-clock hour in ``zone_name`` at ``now``; raises on unknown zones."""
        if not zone_name:
            raise pytz.UnknownTimeZoneError(zone_name)
        zone = pytz.timezone(zone_name)
        if now.tzinfo is None:
            now = pytz.utc.localize(now)
        return now.astimezone(zone).hour

    def timezone_score(self, requester_zone: str, candidate_zone: str) -> float:
        """Score how far apart the two users' local clocks are right now."""
        now = self.clock()
        try:
            hour_diff = abs(self.local_hour(requester_zone, now) - self.local_hour(candidate_zone, now))
        except (pytz.UnknownTimeZoneError, AttributeError, ValueError) as e:
            _note_degraded("timezone", f"cannot resolve {requester_zone!r} or {candidate_zone!r}: {e}")
            return ScoringFallbacks.UNKNOWN_TIMEZONE

        adjusted_diff = min(hour_diff, 24 - hour_diff)
        return _band_score(adjusted_diff, TimezoneScoring.BANDS, TimezoneScoring.BEYOND_BANDS)

    @staticmethod
    def slot_overlap_minutes(slots_a: Iterable[TimeSlot], slots_b: Iterable[TimeSlot]) -> int:
        """Sum of pairwise intersections between two lists of slots."""
        slots_b = list(slots_b)
        return sum(slot_a.overlap_minutes(slot_b) for slot_a in slots_a for slot_b in slots_b)

    def availability_score(
        self,
        requester_schedule: Optional[AvailabilitySchedule],
        candidate_schedule: Optional[AvailabilitySchedule],
    ) -> float:
        """
        Weekly schedule overlap.

        Days where either side has no slots are ignored. Any overlap is
        boosted, since partial schedules are common.
        """
        if requester_schedule is None or candidate_schedule is None:
            _note_degraded("availability", "schedule missing")
            return ScoringFallbacks.MISSING_SCHEDULE

        total_overlap = 0
        total_possible = 0

        for day in AvailabilityScoring.WEEKDAYS:
            requester_slots = requester_schedule.for_day(day)
            candidate_slots = candidate_schedule.for_day(day)
            if not requester_slots or not candidate_slots:
                continue

            total_overlap += self.slot_overlap_minutes(requester_slots, candidate_slots)
            total_possible += max(
                requester_schedule.total_minutes(day),
                candidate_schedule.total_minutes(day),
            )

        if total_possible == 0:
            return ScoringFallbacks.NO_USABLE_SCHEDULE

        overlap_ratio = total_overlap / total_possible
        if overlap_ratio > 0:
            return min(overlap_ratio * AvailabilityScoring.OVERLAP_BOOST, ScoringFallbacks.MAXIMUM)

        return ScoringFallbacks.NO_USABLE_SCHEDULE

    def communication_score(
        self,
        requester_prefs: Optional[CommunicationPreferences],
        candidate_prefs: Optional[CommunicationPreferences],
    ) -> float:
        """Average of style, language and session-length agreement."""
        if requester_prefs is None or candidate_prefs is None:
            _note_degraded("communication", "preferences missing")
            return ScoringFallbacks.MISSING_PREFERENCES

        factors: List[float] = []

        if requester_prefs.style is not None and candidate_prefs.style is not None:
            if requester_prefs.style == candidate_prefs.style:
                factors.append(CommunicationScoring.SAME_STYLE)
            elif CommunicationStyle.BALANCED in (requester_prefs.style, candidate_prefs.style):
                factors.append(CommunicationScoring.BALANCED_STYLE)
            else:
                factors.append(CommunicationScoring.DIFFERENT_STYLE)

        if requester_prefs.languages & candidate_prefs.languages:
            factors.append(CommunicationScoring.SHARED_LANGUAGE)
        else:
            factors.append(CommunicationScoring.NO_SHARED_LANGUAGE)

        if (
            requester_prefs.max_session_duration is not None
            and candidate_prefs.max_session_duration is not None
        ):
            duration_diff = abs(requester_prefs.max_session_duration - candidate_prefs.max_session_duration)
            factors.append(
                _band_score(
                    duration_diff,
                    CommunicationScoring.DURATION_BANDS,
                    CommunicationScoring.DURATION_BEYOND_BANDS,
                )
            )

        return sum(factors) / len(factors)

    def session_history_score(self, requester: UserProfile, candidate: UserProfile) -> float:
        """
        Score from the pair's shared sessions, or from lifetime stats.

        Shared sessions are collected from both users' histories and
        de-duplicated by session id.
        """
        shared: Dict[str, Tuple[float, ...]] = {}
        for record in requester.sessions_with(candidate.user_id) + candidate.sessions_with(requester.user_id):
            shared.setdefault(record.session_id, record.recorded_ratings())

        if shared:
            score = self._shared_history_score(len(shared), [r for ratings in shared.values() for r in ratings])
        else:
            score = self._stats_estimate(requester.stats, candidate.stats)

        return _clamp(score, ScoringFallbacks.HISTORY_FLOOR, ScoringFallbacks.MAXIMUM)

    @staticmethod
    def _shared_history_score(session_count: int, ratings: List[float]) -> float:
        if not ratings:
            return ScoringFallbacks.NO_SESSION_HISTORY

        average_rating = sum(ratings) / len(ratings)
        score = average_rating / SessionHistoryScoring.RATING_SCALE

        # Reward a pairing that keeps working
        if session_count > 1 and average_rating >= SessionHistoryScoring.REPEAT_PAIRING_MIN_RATING:
            score = min(score + SessionHistoryScoring.REPEAT_PAIRING_BONUS, ScoringFallbacks.MAXIMUM)

        return score

    @staticmethod
    def _stats_estimate(requester_stats: Optional[UserStats], candidate_stats: Optional[UserStats]) -> float:
        if requester_stats is None or candidate_stats is None:
            return ScoringFallbacks.NO_SESSION_HISTORY

        factors: List[float] = []

        if requester_stats.average_rating and candidate_stats.average_rating:
            average_rating = (requester_stats.average_rating + candidate_stats.average_rating) / 2
            factors.append(average_rating / SessionHistoryScoring.RATING_SCALE)

        if requester_stats.total_sessions > 0 and candidate_stats.total_sessions > 0:
            factors.append(
                min(requester_stats.total_sessions, candidate_stats.total_sessions)
                / max(requester_stats.total_sessions, candidate_stats.total_sessions)
            )

        if requester_stats.current_streak > 0 and candidate_stats.current_streak > 0:
            factors.append(
                min(requester_stats.current_streak, candidate_stats.current_streak)
                / max(requester_stats.current_streak, candidate_stats.current_streak)
            )

        if not factors:
            return ScoringFallbacks.NO_SESSION_HISTORY

        return sum(factors) / len(factors)
