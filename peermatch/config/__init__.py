from .matching_config import (
    MatchingConfig,
    ThresholdConfig,
    QueueConfig,
    build_matching_config,
    get_matching_config,
)

__all__ = [
    "MatchingConfig",
    "ThresholdConfig",
    "QueueConfig",
    "build_matching_config",
    "get_matching_config",
]
