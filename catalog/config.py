"""
Catalog Configuration

Unified, defaulted configuration for every layer of the catalog core.
Environment overrides are read once, explicitly, via CatalogConfig.from_env().
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional
import os


@dataclass(frozen=True)
class RatingScaleConfig:
    """
    Accepted rating ranges.

    Raters choose from min_value..max_value; the creator's base rating may use
    the wider base_min..base_max range.
    """
    min_value: int = 6
    max_value: int = 10
    base_min: int = 1
    base_max: int = 10

    def __post_init__(self):
        if self.min_value > self.max_value:
            raise ValueError("rating scale min_value must not exceed max_value")
        if self.base_min > self.base_max:
            raise ValueError("rating scale base_min must not exceed base_max")
        if self.min_value < self.base_min or self.max_value > self.base_max:
            raise ValueError("rater scale must lie within the base rating scale")

    @property
    def choices(self) -> tuple:
        return tuple(range(self.min_value, self.max_value + 1))


@dataclass(frozen=True)
class ProjectionConfig:
    page_size: int = 15

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")


@dataclass(frozen=True)
class SyncConfig:
    collection_path: str = "movies"


@dataclass(frozen=True)
class DecorationConfig:
    """Metadata image lookup settings."""
    enabled: bool = True
    api_key: Optional[str] = None
    base_url: str = "https://api.themoviedb.org/3"
    image_base_url: str = "https://image.tmdb.org/t/p/w200"
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class WriteConfig:
    timeout_seconds: float = 15.0
    earliest_release_year: int = 1900


@dataclass
class CatalogConfig:
    """Unified configuration for the catalog core."""
    ratings: RatingScaleConfig = None
    projection: ProjectionConfig = None
    sync: SyncConfig = None
    decoration: DecorationConfig = None
    writes: WriteConfig = None

    def __post_init__(self):
        self.ratings = self.ratings or RatingScaleConfig()
        self.projection = self.projection or ProjectionConfig()
        self.sync = self.sync or SyncConfig()
        self.decoration = self.decoration or DecorationConfig()
        self.writes = self.writes or WriteConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'CatalogConfig':
        """
        Build configuration from CATALOG_* environment variables.

        Unset variables fall back to defaults. Decoration is disabled when no
        CATALOG_TMDB_API_KEY is present.
        """
        env = os.environ if environ is None else environ

        defaults_ratings = RatingScaleConfig()
        defaults_decoration = DecorationConfig()
        defaults_writes = WriteConfig()

        api_key = env.get("CATALOG_TMDB_API_KEY") or None

        return cls(
            ratings=RatingScaleConfig(
                min_value=_int_env(env, "CATALOG_RATING_MIN", defaults_ratings.min_value),
                max_value=_int_env(env, "CATALOG_RATING_MAX", defaults_ratings.max_value),
            ),
            projection=ProjectionConfig(
                page_size=_int_env(env, "CATALOG_PAGE_SIZE", ProjectionConfig().page_size)
            ),
            sync=SyncConfig(
                collection_path=env.get("CATALOG_COLLECTION_PATH", SyncConfig().collection_path)
            ),
            decoration=DecorationConfig(
                enabled=api_key is not None,
                api_key=api_key,
                timeout_seconds=_float_env(
                    env, "CATALOG_TMDB_TIMEOUT", defaults_decoration.timeout_seconds
                ),
            ),
            writes=WriteConfig(
                timeout_seconds=_float_env(
                    env, "CATALOG_WRITE_TIMEOUT", defaults_writes.timeout_seconds
                ),
            ),
        )


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
