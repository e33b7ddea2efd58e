"""Configuration models for section routing."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClassificationConfig(BaseModel):
    """Thresholds applied when turning assignments into reviewer slices."""

    mismatch_threshold_percent: int = Field(default=10, ge=0, le=100)
    full_document_threshold_percent: int = Field(default=80, ge=0, le=100)


class CacheConfig(BaseModel):
    """Configures the document query result cache."""

    max_entries: int = Field(default=128, ge=1)
    ttl_seconds: float = Field(default=3600.0, gt=0.0)


class QueryConfig(BaseModel):
    """Limits applied to files sent along with a document query."""

    max_file_bytes: int = Field(default=1 << 20, ge=1)
    max_file_lines: int = Field(default=10000, ge=1)
    head_lines: int = Field(default=5000, ge=1)
    tail_lines: int = Field(default=2000, ge=1)


class DispatchConfig(BaseModel):
    """Arguments passed to the dispatch script for every oracle call."""

    tier: str = Field(default="fast", min_length=1)
    sandbox: str = Field(default="read-only", min_length=1)
    timeout_seconds: float | None = Field(default=None, gt=0.0)
    poll_interval_seconds: float = Field(default=0.05, gt=0.0)


class RouterSettings(BaseSettings):
    """Environment-driven settings for the API entrypoint."""

    model_config = SettingsConfigDict(env_prefix="SECTION_ROUTER_", env_file=".env")

    dispatch_path: Path = Path("scripts/dispatch.sh")
    dispatch_timeout_seconds: float | None = None
    cache_enabled: bool = True
