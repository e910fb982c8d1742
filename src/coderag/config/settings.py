"""Runtime settings.

Resolution order (first wins): keyword arguments, ``CODERAG_*`` environment
variables, built-in defaults.

Examples:
    CODERAG_DB_PATH=/var/lib/coderag
    CODERAG_LCOM_STRATEGY=lcom4
    CODERAG_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .defaults import (
    DB_DIRNAME,
    DEFAULT_DB_PATH,
    DEFAULT_ENTITY_BATCH_SIZE,
    DEFAULT_LCOM_STRATEGY,
    DEFAULT_LIST_LIMIT,
    DEFAULT_MAX_CYCLE_LENGTH,
    DEFAULT_MAX_TRAVERSAL_DEPTH,
    DEFAULT_RELATIONSHIP_BATCH_SIZE,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_THRESHOLDS_FILENAME,
)
from .thresholds import MetricThresholds

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
LcomStrategyName = Literal["pairwise", "henderson_sellers", "lcom4"]


class CodeRAGSettings(BaseSettings):
    """Root settings. Env vars: CODERAG_DB_PATH, CODERAG_LOG_LEVEL, etc."""

    model_config = SettingsConfigDict(
        env_prefix="CODERAG_",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: Path = Field(
        default=DEFAULT_DB_PATH,
        description="Directory holding the embedded Kuzu database.",
    )
    entity_batch_size: int = Field(default=DEFAULT_ENTITY_BATCH_SIZE, ge=1)
    relationship_batch_size: int = Field(default=DEFAULT_RELATIONSHIP_BATCH_SIZE, ge=1)
    search_limit: int = Field(default=DEFAULT_SEARCH_LIMIT, ge=1)
    list_limit: int = Field(default=DEFAULT_LIST_LIMIT, ge=1)
    max_traversal_depth: int = Field(default=DEFAULT_MAX_TRAVERSAL_DEPTH, ge=1)
    max_cycle_length: int = Field(default=DEFAULT_MAX_CYCLE_LENGTH, ge=2)
    lcom_strategy: LcomStrategyName = DEFAULT_LCOM_STRATEGY
    thresholds_path: Path | None = Field(
        default=None,
        description="YAML file with metric thresholds; defaults apply when unset.",
    )
    log_level: LogLevel = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @property
    def database_dir(self) -> Path:
        return self.db_path / DB_DIRNAME

    def load_thresholds(self) -> MetricThresholds:
        """Thresholds from ``thresholds_path``, else ``<db_path>/thresholds.yaml``."""
        path = self.thresholds_path or self.db_path / DEFAULT_THRESHOLDS_FILENAME
        return MetricThresholds.load(path)
