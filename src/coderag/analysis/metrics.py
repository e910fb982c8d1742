"""Metric records produced by the metrics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class IssueType(StrEnum):
    CIRCULAR_DEPENDENCY = "circular_dependency"
    GOD_CLASS = "god_class"
    EXCESSIVE_COUPLING = "excessive_coupling"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QualityBand(StrEnum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


@dataclass
class CKMetrics:
    """Chidamber & Kemerer metrics for one class.

    Attributes:
        wmc: Methods contained by the class
        dit: Ancestors above the class
        noc: Direct subclasses
        cbo: Distinct other classes coupled to the class
        rfc: Own methods plus the distinct methods they call
        lcom: Lack of cohesion in [0, 1]
    """

    class_id: str
    class_name: str
    project_id: str
    wmc: int = 0
    dit: int = 0
    noc: int = 0
    cbo: int = 0
    rfc: int = 0
    lcom: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_id": self.class_id,
            "class_name": self.class_name,
            "project_id": self.project_id,
            "wmc": self.wmc,
            "dit": self.dit,
            "noc": self.noc,
            "cbo": self.cbo,
            "rfc": self.rfc,
            "lcom": self.lcom,
        }


@dataclass
class PackageMetrics:
    """Robert C. Martin package metrics."""

    package_name: str
    project_id: str
    class_count: int = 0
    abstract_count: int = 0
    ca: int = 0  # Afferent coupling: outside classes depending on this package
    ce: int = 0  # Efferent coupling: outside classes this package depends on
    instability: float = 0.0
    abstractness: float = 0.0
    distance: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_name": self.package_name,
            "project_id": self.project_id,
            "class_count": self.class_count,
            "abstract_count": self.abstract_count,
            "ca": self.ca,
            "ce": self.ce,
            "instability": self.instability,
            "abstractness": self.abstractness,
            "distance": self.distance,
        }


@dataclass
class Assessment:
    """Findings for a class or package; no findings means healthy."""

    findings: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.findings

    def to_dict(self) -> dict[str, Any]:
        return {"healthy": self.healthy, "findings": list(self.findings)}


@dataclass
class ArchitecturalIssue:
    """A project-level design problem."""

    type: IssueType
    severity: Severity
    description: str
    entities: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "entities": list(self.entities),
        }


@dataclass
class AverageMetrics:
    cbo: float = 0.0
    rfc: float = 0.0
    dit: float = 0.0
    wmc: float = 0.0
    lcom: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cbo": self.cbo,
            "rfc": self.rfc,
            "dit": self.dit,
            "wmc": self.wmc,
            "lcom": self.lcom,
        }


@dataclass
class QualityScore:
    score: int
    band: QualityBand

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "band": self.band.value}


@dataclass
class ProjectSummary:
    """Project-wide totals, averages and quality score."""

    project_id: str
    total_classes: int
    total_methods: int
    total_packages: int
    averages: AverageMetrics
    issue_count: int
    quality: QualityScore
    issues: list[ArchitecturalIssue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "total_classes": self.total_classes,
            "total_methods": self.total_methods,
            "total_packages": self.total_packages,
            "averages": self.averages.to_dict(),
            "issue_count": self.issue_count,
            "quality": self.quality.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
        }
