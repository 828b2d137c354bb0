from .analytics import (
    AnalyticsSink,
    InMemoryAnalyticsSink,
    LoggingAnalyticsSink,
    MatchingAttempt,
    MatchingMetrics,
    PrometheusAnalyticsSink,
)
from .matching_service import MatchingService, build_queue_store, create_matching_service

__all__ = [
    "AnalyticsSink",
    "InMemoryAnalyticsSink",
    "LoggingAnalyticsSink",
    "MatchingAttempt",
    "MatchingMetrics",
    "PrometheusAnalyticsSink",
    "MatchingService",
    "build_queue_store",
    "create_matching_service",
]
