"""Configuration schemas and loading for curation tournaments."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationInfo, field_validator

DEFAULT_STORE_URL = "duckdb:///./tournaments.duckdb"
API_KEY_ENV_VAR = "CURATION_JUDGE_API_KEY"

PairingPolicy = Literal["consecutive", "seeded"]


class JudgeConfig(BaseModel):
    """Judge adapter settings.

    Attributes:
        kind: "fake" for the deterministic offline judge, "http" for a remote
            judging service.
        endpoint: URL of the remote judging service (required for "http").
        api_key: Bearer token for the remote service. Falls back to the
            CURATION_JUDGE_API_KEY environment variable.
        timeout_seconds: Per-comparison timeout. None disables it.
        max_attempts: Attempts per comparison before the bracket is left
            unresolved.
        backoff_min: Minimum wait between attempts, in seconds.
        backoff_max: Maximum wait between attempts, in seconds.
        seed: Seed for the fake judge.
    """

    kind: Literal["fake", "http"] = "fake"
    endpoint: str | None = None
    api_key: str | None = None
    timeout_seconds: float | None = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    backoff_min: float = Field(default=1.0, ge=0)
    backoff_max: float = Field(default=30.0, ge=0)
    seed: int = 42

    def get_api_key(self) -> str | None:
        """Get API key from config or environment."""
        return self.api_key or os.environ.get(API_KEY_ENV_VAR)


class StoreConfig(BaseModel):
    """Session store settings."""

    backend: Literal["memory", "db"] = "db"
    url: str = DEFAULT_STORE_URL


class FeatureFlags(BaseModel):
    """Feature switches guarding the curation surface."""

    curation_enabled: bool = True
    tournament_mode_enabled: bool = True


class TournamentConfig(BaseModel):
    """Complete engine configuration."""

    max_concurrency: int = Field(default=5, ge=1)
    pairing: PairingPolicy = "consecutive"
    default_page_limit: int = Field(default=10, ge=1)
    max_page_limit: int = Field(default=20, ge=1)
    judge: JudgeConfig = Field(default_factory=JudgeConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)

    @field_validator("max_page_limit")
    @classmethod
    def validate_page_limits(cls, v: int, info: ValidationInfo) -> int:
        default = info.data.get("default_page_limit")
        if default is not None and v < default:
            msg = "max_page_limit must be >= default_page_limit"
            raise ValueError(msg)
        return v


def load_config(path: str | Path) -> TournamentConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated TournamentConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    return TournamentConfig.model_validate(data)
