import math

import pytest

from peermatch.config.matching_config import MatchingConfig
from peermatch.domain.matching.scoring import CompatibilityScorer, skill_complementarity
from peermatch.domain.matching.value_objects import (
    CommunicationPreferences,
    CommunicationStyle,
    SessionRecord,
    SessionType,
    UserStats,
)


@pytest.fixture
def scorer(matching_config, clock):
    return CompatibilityScorer(config=matching_config, clock=clock)


def test_default_weights_sum_to_one():
    assert math.isclose(math.fsum(MatchingConfig().weights.values()), 1.0)


@pytest.mark.parametrize(
    "requester_level, candidate_level, session_type, expected",
    [
        (3, 3, SessionType.COLLABORATION, 1.0),
        (3, 4, SessionType.COLLABORATION, 0.9),
        (1, 4, SessionType.COLLABORATION, 0.4),
        (2, 4, SessionType.LEARNING, 0.9),
        (4, 2, SessionType.LEARNING, 0.3),
        (3, 3, SessionType.LEARNING, 0.6),
        (1, 5, SessionType.LEARNING, 0.5),
        (4, 3, SessionType.TEACHING, 1.0),
        (3, 3, SessionType.TEACHING, 0.4),
        (2, 4, SessionType.TEACHING, 0.2),
    ],
)
def test_skill_complementarity(requester_level, candidate_level, session_type, expected):
    assert skill_complementarity(requester_level, candidate_level, session_type) == expected


class TestSkillScore:
    def test_no_shared_skills_scores_minimal(self, scorer, make_profile, make_request):
        requester = make_profile("a", skills={"python": 2})
        candidate = make_profile("b", skills={"rust": 4})

        assert scorer.skill_score(requester, candidate, make_request("a")) == 0.1

    def test_empty_skill_lists_score_minimal(self, scorer, make_profile, make_request):
        assert scorer.skill_score(make_profile("a"), make_profile("b"), make_request("a")) == 0.1

    def test_preferred_skill_names_are_case_insensitive(self, scorer, make_profile, make_request):
        requester = make_profile("a", skills={"Python": 2})
        candidate = make_profile("b", skills={"python": 4})

        score = scorer.skill_score(requester, candidate, make_request("a", skills=["PYTHON"]))

        assert score > 0.1

    def test_wrong_direction_is_penalized(self, scorer, make_profile, make_request):
        requester = make_profile("a", skills={"python": 2})
        candidate = make_profile("b", skills={"python": 4})

        score = scorer.skill_score(
            requester, candidate, make_request("a", session_type=SessionType.TEACHING)
        )

        # 0.2 complementarity plus the breadth bonus for one preferred skill
        assert score == pytest.approx(0.4)


class TestTimezoneScore:
    def test_same_zone_scores_full(self, scorer):
        assert scorer.timezone_score("Europe/Berlin", "Europe/Berlin") == 1.0

    def test_nine_hours_apart_scores_minimal(self, scorer):
        assert scorer.timezone_score("UTC", "Asia/Tokyo") == 0.1

    def test_difference_wraps_around_midnight(self, scorer):
        # Noon UTC is 01:00 next day in Auckland (UTC+13 in March): 11 hours apart
        # on the short side of the clock rather than 13.
        assert scorer.timezone_score("UTC", "Pacific/Auckland") == 0.1
        assert scorer.timezone_score("Europe/London", "Europe/Berlin") == 0.9

    @pytest.mark.parametrize("zone", ["Mars/Olympus_Mons", "", None])
    def test_unresolvable_zone_is_neutral(self, scorer, zone):
        assert scorer.timezone_score("UTC", zone) == 0.5


class TestAvailabilityScore:
    def test_missing_schedule_is_neutral(self, scorer, make_profile, weekday_morning):
        with_schedule = make_profile("a", availability=weekday_morning)

        assert scorer.availability_score(with_schedule.availability, None) == 0.5
        assert scorer.availability_score(None, None) == 0.5

    def test_empty_schedules_score_minimal(self, scorer, make_profile):
        empty = make_profile("a", availability={})

        assert scorer.availability_score(empty.availability, empty.availability) == 0.1

    def test_no_overlap_on_shared_day_scores_minimal(self, scorer, make_profile):
        morning = make_profile("a", availability={"tuesday": [("08:00", "09:00")]})
        evening = make_profile("b", availability={"tuesday": [("18:00", "19:00")]})

        assert scorer.availability_score(morning.availability, evening.availability) == 0.1

    def test_days_without_slots_on_both_sides_are_ignored(self, scorer, make_profile):
        requester = make_profile(
            "a", availability={"monday": [("10:00", "12:00")], "friday": [("09:00", "17:00")]}
        )
        candidate = make_profile("b", availability={"monday": [("10:00", "12:00")]})

        assert scorer.availability_score(requester.availability, candidate.availability) == 1.0

    def test_partial_overlap_is_boosted(self, scorer, make_profile):
        requester = make_profile("a", availability={"monday": [("10:00", "12:00")]})
        candidate = make_profile("b", availability={"monday": [("11:30", "14:30")]})

        # 30 of 180 possible minutes, doubled
        assert scorer.availability_score(
            requester.availability, candidate.availability
        ) == pytest.approx(1 / 3)


class TestCommunicationScore:
    def test_missing_preferences_are_neutral(self, scorer):
        assert scorer.communication_score(None, CommunicationPreferences()) == 0.5

    def test_identical_preferences_score_full(self, scorer):
        prefs = CommunicationPreferences(
            style=CommunicationStyle.FORMAL, languages=frozenset({"English"}), max_session_duration=45
        )
        assert scorer.communication_score(prefs, prefs) == 1.0

    def test_balanced_style_and_duration_gap(self, scorer):
        requester = CommunicationPreferences(
            style=CommunicationStyle.BALANCED, languages=frozenset({"english"}), max_session_duration=60
        )
        candidate = CommunicationPreferences(
            style=CommunicationStyle.CASUAL, languages=frozenset({"English"}), max_session_duration=30
        )
        assert scorer.communication_score(requester, candidate) == pytest.approx((0.8 + 1.0 + 0.8) / 3)

    def test_language_mismatch_counts_even_without_other_fields(self, scorer):
        requester = CommunicationPreferences(languages=frozenset({"english"}))
        candidate = CommunicationPreferences(languages=frozenset({"spanish"}))

        assert scorer.communication_score(requester, candidate) == pytest.approx(0.2)


class TestSessionHistoryScore:
    def test_no_history_or_stats_is_neutral(self, scorer, make_profile):
        assert scorer.session_history_score(make_profile("a"), make_profile("b")) == 0.5

    def test_stats_blend(self, scorer, python_learner, python_mentor):
        # rating 4.25/5, sessions 10/20, streak 2/4
        expected = (0.85 + 0.5 + 0.5) / 3
        assert scorer.session_history_score(python_learner, python_mentor) == pytest.approx(expected)

    def test_shared_sessions_are_deduplicated_and_rewarded(self, scorer, make_profile):
        shared = SessionRecord("s1", partner_id="b", ratings=(5, 4))
        requester = make_profile("a", session_history=[shared, SessionRecord("s2", "b", (4, None))])
        candidate = make_profile("b", session_history=[SessionRecord("s1", "a", (5, 4))])

        # ratings 5, 4, 4 average 4.33 over two sessions earns the repeat bonus
        assert scorer.session_history_score(requester, candidate) == 1.0

    def test_single_low_rated_session(self, scorer, make_profile):
        requester = make_profile("a", session_history=[SessionRecord("s1", "b", (3, 3))])

        assert scorer.session_history_score(requester, make_profile("b")) == pytest.approx(0.6)

    def test_shared_sessions_without_ratings_are_neutral(self, scorer, make_profile):
        requester = make_profile("a", session_history=[SessionRecord("s1", "b", (None, None))])

        assert scorer.session_history_score(requester, make_profile("b")) == 0.5

    def test_poor_history_is_floored(self, scorer, make_profile):
        requester = make_profile("a", session_history=[SessionRecord("s1", "b", (0, 0))])

        assert scorer.session_history_score(requester, make_profile("b")) == 0.1


class TestScore:
    def test_learning_scenario(self, scorer, python_learner, python_mentor, make_request):
        breakdown = scorer.score(python_learner, python_mentor, make_request("learner"))

        assert breakdown.skill >= 0.9
        assert breakdown.timezone == 1.0
        assert 0.5 <= breakdown.session_history <= 0.7
        assert breakdown.total > 0.4

    def test_sparse_profiles_stay_in_range(self, scorer, make_profile, make_request):
        requester = make_profile("a", timezone_name="", with_preferences=False)
        candidate = make_profile("b", timezone_name="Nowhere/Special", with_preferences=False)

        breakdown = scorer.score(requester, candidate, make_request("a"))

        for value in breakdown.to_dict().values():
            assert 0.0 <= value <= 1.0
        assert breakdown.total == pytest.approx(0.38)

    def test_total_is_rounded_to_two_places(self, scorer, python_learner, python_mentor, make_request):
        breakdown = scorer.score(python_learner, python_mentor, make_request("learner"))

        assert breakdown.total == round(breakdown.total, 2)

    def test_deterministic_under_fixed_clock(self, scorer, python_learner, python_mentor, make_request):
        request = make_request("learner")

        assert scorer.score(python_learner, python_mentor, request) == scorer.score(
            python_learner, python_mentor, request
        )
