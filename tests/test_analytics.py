import pytest
from prometheus_client import CollectorRegistry

from peermatch.services.analytics import (
    InMemoryAnalyticsSink,
    LoggingAnalyticsSink,
    MatchingAttempt,
    PrometheusAnalyticsSink,
)


def attempt(clock, match_found=True, score=0.8, latency_ms=20.0, user_id="u1"):
    return MatchingAttempt(
        timestamp=clock(),
        user_id=user_id,
        match_found=match_found,
        compatibility_score=score if match_found else None,
        latency_ms=latency_ms,
        pool_size=3,
    )


async def test_in_memory_metrics(clock):
    sink = InMemoryAnalyticsSink()
    await sink.record(attempt(clock, score=0.9, latency_ms=10))
    await sink.record(attempt(clock, score=0.7, latency_ms=30))
    await sink.record(attempt(clock, match_found=False, latency_ms=50))

    metrics = sink.metrics()

    assert metrics.total_attempts == 3
    assert metrics.successful_matches == 2
    assert metrics.match_success_rate == pytest.approx(0.6667)
    assert metrics.average_match_time_ms == 30
    assert metrics.average_compatibility_score == pytest.approx(0.8)


def test_empty_metrics():
    metrics = InMemoryAnalyticsSink().metrics()

    assert metrics.to_dict() == {
        "total_attempts": 0,
        "successful_matches": 0,
        "match_success_rate": 0.0,
        "average_match_time_ms": 0.0,
        "average_compatibility_score": 0.0,
    }


async def test_recent_attempts_are_bounded(clock):
    sink = InMemoryAnalyticsSink(max_recent=2)
    for index in range(5):
        await sink.record(attempt(clock, user_id=f"u{index}"))

    assert [recorded.user_id for recorded in sink.attempts] == ["u3", "u4"]
    assert sink.metrics().total_attempts == 5


async def test_logging_sink_accepts_attempts(clock):
    await LoggingAnalyticsSink().record(attempt(clock))


async def test_prometheus_sink_counts_outcomes(clock):
    registry = CollectorRegistry()
    sink = PrometheusAnalyticsSink(registry=registry)

    await sink.record(attempt(clock))
    await sink.record(attempt(clock, match_found=False))

    assert registry.get_sample_value("peermatch_match_attempts_total", {"outcome": "matched"}) == 1
    assert registry.get_sample_value("peermatch_match_attempts_total", {"outcome": "unmatched"}) == 1
    assert registry.get_sample_value("peermatch_match_compatibility_score_count") == 1


def test_attempt_serialization(clock):
    data = attempt(clock).to_dict()

    assert data["timestamp"] == clock().isoformat()
    assert data["match_found"] is True
    assert data["pool_size"] == 3
