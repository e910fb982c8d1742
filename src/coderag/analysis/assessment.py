"""Threshold checks and the project quality score."""

from __future__ import annotations

from ..config.thresholds import (
    ClassThresholds,
    PackageThresholds,
    QualityThresholds,
)
from .metrics import Assessment, CKMetrics, PackageMetrics, QualityBand, QualityScore

HIGH_WMC = "High WMC: Consider breaking down this class"
DEEP_INHERITANCE = "Deep inheritance: Consider composition over inheritance"
MANY_CHILDREN = "Many children: Consider interface segregation"
HIGH_COUPLING = "High coupling: Reduce dependencies"
HIGH_RFC = "High RFC: Class is doing too much"
LOW_COHESION = "Low cohesion: Methods don't work together well"

ZONE_OF_PAIN = "Zone of Pain: Stable and concrete - hard to extend"
ZONE_OF_USELESSNESS = "Zone of Uselessness: Abstract and stable but not used"
POORLY_BALANCED = "Poorly balanced abstraction vs instability"
ISOLATED_PACKAGE = "Isolated package - no dependencies"

# Lower bound (inclusive) of each band, best first
QUALITY_BANDS: tuple[tuple[int, QualityBand], ...] = (
    (90, QualityBand.EXCELLENT),
    (75, QualityBand.GOOD),
    (60, QualityBand.FAIR),
    (40, QualityBand.POOR),
)


def assess_ck_metrics(
    metrics: CKMetrics, thresholds: ClassThresholds | None = None
) -> Assessment:
    t = thresholds or ClassThresholds()
    findings = []
    if metrics.wmc > t.wmc:
        findings.append(HIGH_WMC)
    if metrics.dit > t.dit:
        findings.append(DEEP_INHERITANCE)
    if metrics.noc > t.noc:
        findings.append(MANY_CHILDREN)
    if metrics.cbo > t.cbo:
        findings.append(HIGH_COUPLING)
    if metrics.rfc > t.rfc:
        findings.append(HIGH_RFC)
    if metrics.lcom > t.lcom:
        findings.append(LOW_COHESION)
    return Assessment(findings)


def assess_package_metrics(
    metrics: PackageMetrics, thresholds: PackageThresholds | None = None
) -> Assessment:
    t = thresholds or PackageThresholds()
    findings = []
    if metrics.instability > t.pain_instability and metrics.abstractness < t.pain_abstractness:
        findings.append(ZONE_OF_PAIN)
    if (
        metrics.instability < t.useless_instability
        and metrics.abstractness > t.useless_abstractness
    ):
        findings.append(ZONE_OF_USELESSNESS)
    if metrics.distance > t.max_distance:
        findings.append(POORLY_BALANCED)
    if metrics.ca == 0 and metrics.ce == 0:
        findings.append(ISOLATED_PACKAGE)
    return Assessment(findings)


def quality_band(score: int) -> QualityBand:
    for lower, band in QUALITY_BANDS:
        if score >= lower:
            return band
    return QualityBand.CRITICAL


def calculate_quality_score(
    avg_cbo: float,
    avg_rfc: float,
    avg_dit: float,
    issue_count: int,
    thresholds: QualityThresholds | None = None,
) -> QualityScore:
    """Score a project from 0 to 100.

    Examples:
        >>> calculate_quality_score(11, 31, 5, 2)
        QualityScore(score=45, band=<QualityBand.POOR: 'Poor'>)
    """
    t = thresholds or QualityThresholds()
    score = 100
    if avg_cbo > t.avg_cbo:
        score -= t.cbo_penalty
    if avg_rfc > t.avg_rfc:
        score -= t.rfc_penalty
    if avg_dit > t.avg_dit:
        score -= t.dit_penalty
    score -= t.issue_penalty * issue_count
    score = max(0, min(100, score))
    return QualityScore(score=score, band=quality_band(score))
