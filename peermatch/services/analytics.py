"""
Analytics sinks receiving one record per matching attempt.

Sinks are fire-and-forget from the matcher's point of view: a failing sink
is logged by the caller and never fails the attempt.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY

from peermatch.utils.logger import logger


@dataclass(frozen=True)
class MatchingAttempt:
    """Outcome of a single find-match call."""

    timestamp: datetime
    user_id: str
    match_found: bool
    latency_ms: float
    pool_size: int
    compatibility_score: Optional[float] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "match_found": self.match_found,
            "compatibility_score": self.compatibility_score,
            "latency_ms": self.latency_ms,
            "pool_size": self.pool_size,
        }


@dataclass(frozen=True)
class MatchingMetrics:
    """Aggregates over recorded matching attempts."""

    total_attempts: int
    successful_matches: int
    match_success_rate: float
    average_match_time_ms: float
    average_compatibility_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_attempts": self.total_attempts,
            "successful_matches": self.successful_matches,
            "match_success_rate": self.match_success_rate,
            "average_match_time_ms": self.average_match_time_ms,
            "average_compatibility_score": self.average_compatibility_score,
        }


class AnalyticsSink(ABC):
    """Receives matching attempts."""

    @abstractmethod
    async def record(self, attempt: MatchingAttempt) -> None:
        pass


class LoggingAnalyticsSink(AnalyticsSink):
    """Writes each attempt as a structured log event."""

    async def record(self, attempt: MatchingAttempt) -> None:
        event = attempt.to_dict()
        # "timestamp" is owned by the structlog TimeStamper
        event["attempted_at"] = event.pop("timestamp")
        logger.info("matching_attempt", **event)


class InMemoryAnalyticsSink(AnalyticsSink):
    """
    Keeps recent attempts in memory and aggregates them into MatchingMetrics.

    Counters cover every attempt ever recorded; only the most recent
    ``max_recent`` attempts are retained for inspection.
    """

    def __init__(self, max_recent: int = 1000):
        self.recent: Deque[MatchingAttempt] = deque(maxlen=max_recent)
        self._total_attempts = 0
        self._successful_matches = 0
        self._total_latency_ms = 0.0
        self._total_score = 0.0

    async def record(self, attempt: MatchingAttempt) -> None:
        self.recent.append(attempt)
        self._total_attempts += 1
        self._total_latency_ms += attempt.latency_ms
        if attempt.match_found:
            self._successful_matches += 1
            if attempt.compatibility_score is not None:
                self._total_score += attempt.compatibility_score

    @property
    def attempts(self) -> List[MatchingAttempt]:
        return list(self.recent)

    def metrics(self) -> MatchingMetrics:
        """Aggregate everything recorded so far."""
        total = self._total_attempts
        successful = self._successful_matches
        return MatchingMetrics(
            total_attempts=total,
            successful_matches=successful,
            match_success_rate=round(successful / total, 4) if total else 0.0,
            average_match_time_ms=round(self._total_latency_ms / total, 3) if total else 0.0,
            average_compatibility_score=(
                round(self._total_score / successful, 4) if successful else 0.0
            ),
        )


class PrometheusAnalyticsSink(AnalyticsSink):
    """Exports attempt counters and latency/score histograms to Prometheus."""

    def __init__(
        self, registry: Optional[CollectorRegistry] = None, namespace: str = "peermatch"
    ):
        registry = registry or REGISTRY
        self.attempts = Counter(
            "match_attempts",
            "Total matching attempts by outcome",
            ["outcome"],
            namespace=namespace,
            registry=registry,
        )
        self.latency = Histogram(
            "match_latency_seconds",
            "Time spent computing a match",
            namespace=namespace,
            registry=registry,
        )
        self.score = Histogram(
            "match_compatibility_score",
            "Compatibility score of selected partners",
            buckets=(0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
            namespace=namespace,
            registry=registry,
        )

    async def record(self, attempt: MatchingAttempt) -> None:
        self.attempts.labels(outcome="matched" if attempt.match_found else "unmatched").inc()
        self.latency.observe(attempt.latency_ms / 1000)
        if attempt.compatibility_score is not None:
            self.score.observe(attempt.compatibility_score)
