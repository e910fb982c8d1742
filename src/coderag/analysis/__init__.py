"""Software quality metrics over the code graph.

Key Components:
    - MetricsEngine: CK, package and project-wide metrics for one project
    - CKMetrics / PackageMetrics: plain metric records with ``to_dict()``
    - ArchitecturalIssue: circular dependencies, god classes, excessive coupling
    - Cohesion strategies: pairwise (default), henderson_sellers, lcom4

Example:
    engine = MetricsEngine(store)
    ck = await engine.calculate_ck_metrics("com.acme.Invoice", "billing")
    assessment = assess_ck_metrics(ck)
    if not assessment.healthy:
        print(assessment.findings)
"""

from .assessment import (
    assess_ck_metrics,
    assess_package_metrics,
    calculate_quality_score,
    quality_band,
)
from .cohesion import CohesionStrategy, get_cohesion_strategy
from .engine import MetricsEngine
from .metrics import (
    ArchitecturalIssue,
    Assessment,
    AverageMetrics,
    CKMetrics,
    IssueType,
    PackageMetrics,
    ProjectSummary,
    QualityBand,
    QualityScore,
    Severity,
)

__all__ = [
    "ArchitecturalIssue",
    "Assessment",
    "AverageMetrics",
    "CKMetrics",
    "CohesionStrategy",
    "IssueType",
    "MetricsEngine",
    "PackageMetrics",
    "ProjectSummary",
    "QualityBand",
    "QualityScore",
    "Severity",
    "assess_ck_metrics",
    "assess_package_metrics",
    "calculate_quality_score",
    "get_cohesion_strategy",
    "quality_band",
]
