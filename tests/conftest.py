from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional, Sequence, Tuple

import pytest

from peermatch.config.matching_config import MatchingConfig
from peermatch.domain.matching.repositories import InMemoryProfileStore
from peermatch.domain.matching.value_objects import (
    AvailabilitySchedule,
    CommunicationPreferences,
    CommunicationStyle,
    MatchingRequest,
    SessionRecord,
    SessionType,
    SkillProficiency,
    Urgency,
    UserProfile,
    UserStats,
)
from peermatch.domain.queue.repositories import InMemoryQueueStore
from peermatch.domain.queue.services import QueueLifecycle


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    # A Monday, noon UTC
    return FixedClock(datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def matching_config():
    return MatchingConfig()


def build_profile(
    user_id: str,
    skills: Mapping[str, int] = None,
    timezone_name: str = "America/New_York",
    availability: Optional[Mapping[str, Iterable[Tuple[str, str]]]] = None,
    style: Optional[CommunicationStyle] = CommunicationStyle.CASUAL,
    languages: Sequence[str] = ("english",),
    max_session_duration: Optional[int] = 60,
    stats: Optional[UserStats] = None,
    session_history: Sequence[SessionRecord] = (),
    is_active: bool = True,
    with_preferences: bool = True,
) -> UserProfile:
    schedule = None
    if availability is not None:
        schedule = AvailabilitySchedule.from_mapping(
            {
                day: [{"start": start, "end": end} for start, end in slots]
                for day, slots in availability.items()
            }
        )
    preferences = (
        CommunicationPreferences(
            style=style,
            languages=frozenset(languages),
            max_session_duration=max_session_duration,
        )
        if with_preferences
        else None
    )
    return UserProfile(
        user_id=user_id,
        timezone=timezone_name,
        skills=tuple(SkillProficiency(name, level) for name, level in (skills or {}).items()),
        availability=schedule,
        preferences=preferences,
        stats=stats,
        session_history=tuple(session_history),
        is_active=is_active,
    )


def build_request(
    user_id: str,
    skills: Iterable[str] = ("python",),
    session_type: SessionType = SessionType.LEARNING,
    urgency: Urgency = Urgency.MEDIUM,
    max_duration: int = 60,
) -> MatchingRequest:
    return MatchingRequest(
        user_id=user_id,
        preferred_skills=frozenset(skills),
        session_type=session_type,
        max_duration=max_duration,
        urgency=urgency,
    )


@pytest.fixture
def make_profile():
    return build_profile


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def weekday_morning():
    """Two hours on Monday morning."""
    return {"monday": [("10:00", "12:00")]}


@pytest.fixture
def python_learner(weekday_morning):
    return build_profile(
        "learner",
        skills={"Python": 2},
        availability=weekday_morning,
        stats=UserStats(average_rating=4.0, total_sessions=10, current_streak=2),
    )


@pytest.fixture
def python_mentor(weekday_morning):
    return build_profile(
        "mentor",
        skills={"Python": 4},
        availability=weekday_morning,
        stats=UserStats(average_rating=4.5, total_sessions=20, current_streak=4),
    )


@pytest.fixture
def queue_store():
    return InMemoryQueueStore()


@pytest.fixture
def lifecycle(queue_store, matching_config, clock):
    return QueueLifecycle(queue_store, config=matching_config, clock=clock)


@pytest.fixture
def profile_store(python_learner, python_mentor):
    return InMemoryProfileStore([python_learner, python_mentor])
