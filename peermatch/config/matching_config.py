from functools import lru_cache
from typing import Any, Dict
import math

from pydantic import BaseModel, Field, ValidationError, field_validator

from peermatch.utils.error_handling import ConfigurationError
from peermatch.core.constants import (
    MatchingThresholds,
    MatchingWeights,
    QueueExpiration,
    RequestLimits,
)

WEIGHT_KEYS = ("skill", "timezone", "availability", "communication", "session_history")
WEIGHT_SUM_TOLERANCE = 1e-9


class ThresholdConfig(BaseModel):
    min_total_score: float = Field(default=MatchingThresholds.MINIMUM_TOTAL_SCORE, ge=0, le=1)
    min_skill_score: float = Field(default=MatchingThresholds.MINIMUM_SKILL_SCORE, ge=0, le=1)
    min_availability_score: float = Field(
        default=MatchingThresholds.MINIMUM_AVAILABILITY_SCORE, ge=0, le=1
    )


class QueueConfig(BaseModel):
    # Minutes a waiting entry lives, by urgency
    ttl_minutes: Dict[str, int] = {
        "high": QueueExpiration.HIGH_URGENCY,
        "medium": QueueExpiration.MEDIUM_URGENCY,
        "low": QueueExpiration.LOW_URGENCY,
    }
    candidate_limit: int = Field(default=RequestLimits.DEFAULT_CANDIDATE_LIMIT, gt=0)

    @field_validator("ttl_minutes")
    @classmethod
    def check_ttls(cls, v: Dict[str, int]) -> Dict[str, int]:
        missing = {"high", "medium", "low"} - set(v)
        if missing:
            raise ValueError(f"Missing TTL for urgency levels: {sorted(missing)}")
        if any(minutes <= 0 for minutes in v.values()):
            raise ValueError("Queue TTLs must be positive")
        return v


class MatchingConfig(BaseModel):
    # Compatibility weights (must sum to exactly 1.0)
    weights: Dict[str, float] = MatchingWeights.as_dict()

    thresholds: ThresholdConfig = ThresholdConfig()
    queue: QueueConfig = QueueConfig()

    # A lost claim is retried this many times against the next-best candidate
    claim_retry_limit: int = Field(default=1, ge=0)

    @field_validator("weights")
    @classmethod
    def check_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        if set(v) != set(WEIGHT_KEYS):
            raise ValueError(
                f"Weights must define exactly {list(WEIGHT_KEYS)}, got {sorted(v)}"
            )
        if any(weight < 0 for weight in v.values()):
            raise ValueError("Weights cannot be negative")
        total = math.fsum(v.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Weights must sum to 1.0, got {total}")
        return v


def build_matching_config(**overrides: Any) -> MatchingConfig:
    """Build a MatchingConfig, surfacing invalid tunables as ConfigurationError."""
    try:
        return MatchingConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


@lru_cache()
def get_matching_config() -> MatchingConfig:
    return build_matching_config()
