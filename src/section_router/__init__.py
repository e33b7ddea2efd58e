"""Section routing package."""

from .config import CacheConfig, ClassificationConfig, DispatchConfig, QueryConfig

__all__ = ["CacheConfig", "ClassificationConfig", "DispatchConfig", "QueryConfig"]
