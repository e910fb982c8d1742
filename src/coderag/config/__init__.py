"""Configuration for coderag."""

from .settings import CodeRAGSettings
from .thresholds import (
    ClassThresholds,
    IssueThresholds,
    MetricThresholds,
    PackageThresholds,
    QualityThresholds,
)

__all__ = [
    "ClassThresholds",
    "CodeRAGSettings",
    "IssueThresholds",
    "MetricThresholds",
    "PackageThresholds",
    "QualityThresholds",
]
