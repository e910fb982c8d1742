"""Threshold configuration for class, package and architecture metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ConfigError


@dataclass
class ClassThresholds:
    """CK metric limits; a value strictly above a limit is a finding."""

    wmc: int = 15  # Weighted methods per class
    dit: int = 4  # Depth of inheritance tree
    noc: int = 7  # Number of children
    cbo: int = 10  # Coupling between objects
    rfc: int = 30  # Response for a class
    lcom: float = 0.7  # Lack of cohesion (0..1)


@dataclass
class PackageThresholds:
    """Main-sequence zone boundaries."""

    pain_instability: float = 0.7  # I above this...
    pain_abstractness: float = 0.3  # ...and A below this: Zone of Pain
    useless_instability: float = 0.3  # I below this...
    useless_abstractness: float = 0.7  # ...and A above this: Zone of Uselessness
    max_distance: float = 0.7  # D above this: poorly balanced


@dataclass
class IssueThresholds:
    """Architectural issue detection limits."""

    god_class_wmc: int = 30
    god_class_rfc: int = 60
    excessive_cbo: int = 10
    # Coupling above excessive_cbo * high_severity_factor is reported as high
    high_severity_factor: float = 2.0


@dataclass
class QualityThresholds:
    """Quality score penalties and the averages that trigger them."""

    avg_cbo: float = 10
    avg_rfc: float = 30
    avg_dit: float = 4
    cbo_penalty: int = 20
    rfc_penalty: int = 15
    dit_penalty: int = 10
    issue_penalty: int = 5


def _section(cls: type, data: Any, name: str) -> Any:
    if not data:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Threshold section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(
            f"Unknown keys in threshold section '{name}': {', '.join(sorted(unknown))}"
        )
    return cls(**data)


@dataclass
class MetricThresholds:
    """Complete threshold configuration."""

    classes: ClassThresholds = field(default_factory=ClassThresholds)
    packages: PackageThresholds = field(default_factory=PackageThresholds)
    issues: IssueThresholds = field(default_factory=IssueThresholds)
    quality: QualityThresholds = field(default_factory=QualityThresholds)

    @classmethod
    def load(cls, path: Path | None) -> MetricThresholds:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            MetricThresholds instance (defaults when the file is missing)
        """
        if path is None or not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid threshold file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Threshold file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricThresholds:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            MetricThresholds instance
        """
        return cls(
            classes=_section(ClassThresholds, data.get("classes"), "classes"),
            packages=_section(PackageThresholds, data.get("packages"), "packages"),
            issues=_section(IssueThresholds, data.get("issues"), "issues"),
            quality=_section(QualityThresholds, data.get("quality"), "quality"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "classes": asdict(self.classes),
            "packages": asdict(self.packages),
            "issues": asdict(self.issues),
            "quality": asdict(self.quality),
        }

    def save(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path to save configuration
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
