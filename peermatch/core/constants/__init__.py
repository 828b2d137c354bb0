"""
Centralized constants module for the peer matching service.

This module provides centralized access to the scoring weights, thresholds,
fallback values, queue rules and error codes used across the application.
"""

from .business_constants import (
    MatchingWeights,
    MatchingThresholds,
    ScoringFallbacks,
    SkillScoring,
    TimezoneScoring,
    AvailabilityScoring,
    CommunicationScoring,
    SessionHistoryScoring,
    QueueExpiration,
    QueuePriority,
    SessionCompatibility,
    RequestLimits,
)
from .error_constants import ErrorCodes, ErrorMessages

__all__ = [
    "MatchingWeights",
    "MatchingThresholds",
    "ScoringFallbacks",
    "SkillScoring",
    "TimezoneScoring",
    "AvailabilityScoring",
    "CommunicationScoring",
    "SessionHistoryScoring",
    "QueueExpiration",
    "QueuePriority",
    "SessionCompatibility",
    "RequestLimits",
    "ErrorCodes",
    "ErrorMessages",
]
