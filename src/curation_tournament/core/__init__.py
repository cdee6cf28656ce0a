"""Core configuration and utilities for curation tournaments."""

from curation_tournament.core.config import (
    API_KEY_ENV_VAR,
    DEFAULT_STORE_URL,
    FeatureFlags,
    JudgeConfig,
    StoreConfig,
    TournamentConfig,
    load_config,
)
from curation_tournament.core.errors import (
    ConcurrentAdvanceConflict,
    ConfigurationError,
    FeatureDisabledError,
    InvalidTournamentSize,
    InvalidTransition,
    InvalidWorkId,
    JudgeError,
    JudgeTimeoutError,
    RoundNotReady,
    SessionNotFound,
    TournamentError,
    UnknownCuratorError,
)
from curation_tournament.core.progress import TournamentProgress

__all__ = [
    "API_KEY_ENV_VAR",
    "DEFAULT_STORE_URL",
    "FeatureFlags",
    "JudgeConfig",
    "StoreConfig",
    "TournamentConfig",
    "TournamentProgress",
    "load_config",
    "ConcurrentAdvanceConflict",
    "ConfigurationError",
    "FeatureDisabledError",
    "InvalidTournamentSize",
    "InvalidTransition",
    "InvalidWorkId",
    "JudgeError",
    "JudgeTimeoutError",
    "RoundNotReady",
    "SessionNotFound",
    "TournamentError",
    "UnknownCuratorError",
]
