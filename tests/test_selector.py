from typing import Dict

import pytest

from peermatch.domain.matching.entities import CompatibilityScoreBreakdown
from peermatch.domain.matching.services import MatchSelector


class StubScorer:
    """Returns canned breakdowns keyed by candidate user id."""

    def __init__(self, breakdowns: Dict[str, CompatibilityScoreBreakdown]):
        self.breakdowns = breakdowns

    def score(self, requester, candidate, request):
        return self.breakdowns[candidate.user_id]


def breakdown(total=0.8, skill=0.8, availability=0.8):
    return CompatibilityScoreBreakdown(
        skill=skill,
        timezone=0.8,
        availability=availability,
        communication=0.8,
        session_history=0.8,
        total=total,
    )


@pytest.fixture
def requester(make_profile):
    return make_profile("requester")


@pytest.fixture
def request_(make_request):
    return make_request("requester")


def selector_for(matching_config, **breakdowns):
    return MatchSelector(scorer=StubScorer(breakdowns), config=matching_config)


def test_empty_pool_returns_none(matching_config, requester, request_):
    selector = MatchSelector(config=matching_config)

    assert selector.select_best_match(requester, [], request_) is None


def test_highest_total_wins(matching_config, make_profile, requester, request_):
    selector = selector_for(matching_config, a=breakdown(total=0.6), b=breakdown(total=0.9))
    candidates = [make_profile("a"), make_profile("b")]

    result = selector.select_best_match(requester, candidates, request_)

    assert result.partner_id == "b"
    assert result.compatibility_score == 0.9
    assert result.score_breakdown.total == 0.9
    assert result.latency_ms >= 0


def test_low_skill_is_never_selected(matching_config, make_profile, requester, request_):
    selector = selector_for(matching_config, a=breakdown(total=0.95, skill=0.15))

    assert selector.select_best_match(requester, [make_profile("a")], request_) is None


@pytest.mark.parametrize(
    "scores",
    [
        {"total": 0.39},
        {"skill": 0.19},
        {"availability": 0.09},
    ],
)
def test_each_hard_minimum_filters(matching_config, make_profile, requester, request_, scores):
    selector = selector_for(matching_config, a=breakdown(**scores))

    assert selector.rank_candidates(requester, [make_profile("a")], request_) == []


def test_minimums_are_inclusive(matching_config, make_profile, requester, request_):
    selector = selector_for(
        matching_config, a=breakdown(total=0.4, skill=0.2, availability=0.1)
    )

    ranked = selector.rank_candidates(requester, [make_profile("a")], request_)

    assert [candidate.user_id for candidate in ranked] == ["a"]


def test_ties_keep_pool_order(matching_config, make_profile, requester, request_):
    selector = selector_for(
        matching_config,
        first=breakdown(total=0.7),
        second=breakdown(total=0.7),
        best=breakdown(total=0.75),
    )
    candidates = [make_profile("first"), make_profile("second"), make_profile("best")]

    ranked = selector.rank_candidates(requester, candidates, request_)

    assert [candidate.user_id for candidate in ranked] == ["best", "first", "second"]


def test_requester_is_not_their_own_candidate(matching_config, make_profile, requester, request_):
    selector = selector_for(matching_config, requester=breakdown(total=1.0))

    assert selector.rank_candidates(requester, [make_profile("requester")], request_) == []


def test_real_scorer_picks_mentor(matching_config, python_learner, python_mentor, make_profile, make_request):
    stranger = make_profile("stranger", skills={"cobol": 5})
    selector = MatchSelector(config=matching_config)

    result = selector.select_best_match(
        python_learner, [stranger, python_mentor], make_request("learner")
    )

    assert result is not None
    assert result.partner_id == "mentor"
    assert result.compatibility_score > 0.4
