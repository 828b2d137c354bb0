"""
Matching domain value objects representing immutable business concepts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from peermatch.core.constants import AvailabilityScoring, SkillScoring


class SessionType(Enum):
    """Pedagogical direction of a requested session"""
    LEARNING = "learning"
    TEACHING = "teaching"
    COLLABORATION = "collaboration"


class Urgency(Enum):
    """How long a request may wait in the queue"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CommunicationStyle(Enum):
    """Preferred tone of a session"""
    FORMAL = "formal"
    CASUAL = "casual"
    BALANCED = "balanced"


@dataclass(frozen=True)
class MatchingRequest:
    """A user's request to be paired, immutable once submitted."""

    user_id: str
    preferred_skills: FrozenSet[str]
    session_type: SessionType
    max_duration: int
    urgency: Urgency

    def __post_init__(self):
        object.__setattr__(self, "preferred_skills", frozenset(self.preferred_skills))

    @property
    def normalized_skills(self) -> FrozenSet[str]:
        """Preferred skill names lower-cased for lookups."""
        return frozenset(skill.strip().lower() for skill in self.preferred_skills)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "preferred_skills": sorted(self.preferred_skills),
            "session_type": self.session_type.value,
            "max_duration": self.max_duration,
            "urgency": self.urgency.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatchingRequest":
        return cls(
            user_id=str(data["user_id"]),
            preferred_skills=frozenset(data["preferred_skills"]),
            session_type=SessionType(data["session_type"]),
            max_duration=int(data["max_duration"]),
            urgency=Urgency(data["urgency"]),
        )


@dataclass(frozen=True)
class SkillProficiency:
    """Individual skill with a 1-5 proficiency level."""

    name: str
    level: int

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Skill name cannot be empty")
        if not SkillScoring.MIN_PROFICIENCY <= self.level <= SkillScoring.MAX_PROFICIENCY:
            raise ValueError(
                f"Proficiency level must be between {SkillScoring.MIN_PROFICIENCY} "
                f"and {SkillScoring.MAX_PROFICIENCY}"
            )

        # Normalize skill name
        object.__setattr__(self, "name", self.name.strip().lower())


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class TimeSlot:
    """Time-of-day interval in "HH:MM" notation."""

    start: str
    end: str

    def __post_init__(self):
        if self.end_minutes < self.start_minutes:
            raise ValueError(f"Time slot ends before it starts: {self.start}-{self.end}")

    @property
    def start_minutes(self) -> int:
        return _to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return _to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def overlap_minutes(self, other: "TimeSlot") -> int:
        """Minutes shared by this slot and another."""
        overlap_start = max(self.start_minutes, other.start_minutes)
        overlap_end = min(self.end_minutes, other.end_minutes)
        return max(0, overlap_end - overlap_start)


@dataclass(frozen=True)
class AvailabilitySchedule:
    """Weekly availability as weekday -> time slots."""

    slots: Mapping[str, Tuple[TimeSlot, ...]] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {}
        for day, day_slots in self.slots.items():
            day_name = day.strip().lower()
            if day_name not in AvailabilityScoring.WEEKDAYS:
                raise ValueError(f"Unknown weekday: {day}")
            normalized[day_name] = tuple(day_slots)
        object.__setattr__(self, "slots", normalized)

    def for_day(self, day: str) -> Tuple[TimeSlot, ...]:
        return self.slots.get(day, ())

    def total_minutes(self, day: str) -> int:
        return sum(slot.duration_minutes for slot in self.for_day(day))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[Mapping[str, str]]]) -> "AvailabilitySchedule":
        """Build from {"monday": [{"start": "09:00", "end": "10:00"}], ...}."""
        return cls(
            {
                day: tuple(TimeSlot(slot["start"], slot["end"]) for slot in day_slots)
                for day, day_slots in data.items()
            }
        )


@dataclass(frozen=True)
class CommunicationPreferences:
    """How a user likes to communicate during sessions."""

    style: Optional[CommunicationStyle] = None
    languages: FrozenSet[str] = frozenset()
    max_session_duration: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(
            self, "languages", frozenset(lang.strip().lower() for lang in self.languages)
        )


@dataclass(frozen=True)
class UserStats:
    """Lifetime session statistics."""

    average_rating: Optional[float] = None
    total_sessions: int = 0
    current_streak: int = 0


@dataclass(frozen=True)
class SessionRecord:
    """A completed session and the ratings its participants gave."""

    session_id: str
    partner_id: str
    ratings: Tuple[Optional[float], ...] = ()

    def recorded_ratings(self) -> Tuple[float, ...]:
        return tuple(rating for rating in self.ratings if rating is not None)


@dataclass(frozen=True)
class UserProfile:
    """Read-only snapshot of a user, supplied by the profile store."""

    user_id: str
    timezone: str = "UTC"
    skills: Tuple[SkillProficiency, ...] = ()
    availability: Optional[AvailabilitySchedule] = None
    preferences: Optional[CommunicationPreferences] = None
    stats: Optional[UserStats] = None
    session_history: Tuple[SessionRecord, ...] = ()
    is_active: bool = True

    def skill_levels(self) -> Dict[str, int]:
        """Map of normalized skill name to proficiency level."""
        return {skill.name: skill.level for skill in self.skills}

    def sessions_with(self, partner_id: str) -> Tuple[SessionRecord, ...]:
        return tuple(record for record in self.session_history if record.partner_id == partner_id)
