from .loader import load_settings
from .schema import (
    CallSitesConfig,
    LeaderboardConfig,
    LoggingConfig,
    MetadataConfig,
    ModelConfig,
    RetryPolicy,
    Settings,
)

__all__ = [
    "CallSitesConfig",
    "LeaderboardConfig",
    "LoggingConfig",
    "MetadataConfig",
    "ModelConfig",
    "RetryPolicy",
    "Settings",
    "load_settings",
]
