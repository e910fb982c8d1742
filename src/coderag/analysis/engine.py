"""Metrics engine: CK class metrics, package metrics and architectural issues.

The engine is read-only. Each public call loads a fresh ``ClassGraph`` for
the project, so results always reflect what is stored at call time, and a
metric is either computed completely or the call raises.
"""

from __future__ import annotations

from loguru import logger

from ..config.thresholds import MetricThresholds
from ..core.edge_manager import EdgeManager
from ..core.exceptions import NotFoundError
from ..core.graph_store import GraphStore
from ..core.models import NodeType
from .assessment import assess_ck_metrics, assess_package_metrics, calculate_quality_score
from .class_graph import ClassGraph
from .cohesion import CohesionStrategy, get_cohesion_strategy
from .cycles import find_cycles
from .metrics import (
    ArchitecturalIssue,
    Assessment,
    AverageMetrics,
    CKMetrics,
    IssueType,
    PackageMetrics,
    ProjectSummary,
    Severity,
)


class MetricsEngine:
    """Computes software quality metrics over one project's graph."""

    def __init__(
        self,
        store: GraphStore,
        edges: EdgeManager | None = None,
        thresholds: MetricThresholds | None = None,
        cohesion: CohesionStrategy | None = None,
    ):
        self.store = store
        self.edges = edges or EdgeManager(store)
        self.thresholds = thresholds or MetricThresholds()
        self.cohesion = cohesion or get_cohesion_strategy(store.settings.lcom_strategy)

    # ── Class metrics ───────────────────────────────────────────────────

    async def _ck_for(self, graph: ClassGraph, class_id: str) -> CKMetrics:
        node = graph.nodes[class_id]
        methods = graph.methods.get(class_id, [])
        own_methods = set(methods)

        responses = set(own_methods)
        for method in methods:
            for callee in graph.calls.get(method, ()):
                target = graph.nodes.get(callee)
                if target is not None and target.type in (NodeType.METHOD, NodeType.FUNCTION):
                    responses.add(callee)

        method_calls = {m: graph.calls.get(m, set()) & own_methods for m in methods}
        lcom = self.cohesion.compute(methods, graph.field_access, method_calls)
        hierarchy = await self.edges.find_inheritance_hierarchy(class_id, graph.project_id)

        return CKMetrics(
            class_id=class_id,
            class_name=node.name,
            project_id=graph.project_id,
            wmc=len(methods),
            dit=len(hierarchy),
            noc=len(graph.children.get(class_id, ())),
            cbo=len(graph.coupled.get(class_id, ())),
            rfc=len(responses),
            lcom=lcom,
        )

    async def calculate_ck_metrics(self, class_id: str, project_id: str) -> CKMetrics:
        """CK metrics for one class.

        ``class_id`` may also be a qualified or simple class name.

        Raises:
            NotFoundError: If no class-like node matches in the project
        """
        graph = ClassGraph.load(self.store, project_id)
        node = graph.find_class(class_id)
        if node is None:
            raise NotFoundError(
                f"Class {class_id} not found in project {project_id}",
                {"class_id": class_id, "project_id": project_id},
            )
        return await self._ck_for(graph, node.id)

    async def assess_class(self, class_id: str, project_id: str) -> tuple[CKMetrics, Assessment]:
        metrics = await self.calculate_ck_metrics(class_id, project_id)
        return metrics, assess_ck_metrics(metrics, self.thresholds.classes)

    # ── Package metrics ─────────────────────────────────────────────────

    def _package_members(self, graph: ClassGraph, package_name: str) -> tuple[bool, set[str]]:
        packages = [
            n
            for n in graph.nodes_of_type(NodeType.PACKAGE)
            if package_name in (n.id, n.name, n.qualified_name)
        ]
        members: set[str] = set()
        for package in packages:
            members |= graph.package_members.get(package.id, set())
        prefix = package_name + "."
        for node in graph.classes:
            if node.qualified_name == prefix + node.name:
                members.add(node.id)
        return bool(packages), members

    def _package_metrics_for(
        self, graph: ClassGraph, package_name: str, members: set[str]
    ) -> PackageMetrics:
        efferent: set[str] = set()
        for member in members:
            efferent |= graph.depends_on.get(member, set()) - members
        afferent = {
            klass
            for klass, targets in graph.depends_on.items()
            if klass not in members and targets & members
        }

        ca, ce = len(afferent), len(efferent)
        instability = ce / (ca + ce) if ca + ce else 0.0
        abstract = sum(1 for m in members if graph.nodes[m].is_abstract)
        abstractness = abstract / len(members) if members else 0.0

        return PackageMetrics(
            package_name=package_name,
            project_id=graph.project_id,
            class_count=len(members),
            abstract_count=abstract,
            ca=ca,
            ce=ce,
            instability=instability,
            abstractness=abstractness,
            distance=abs(abstractness + instability - 1),
        )

    async def calculate_package_metrics(self, package_name: str, project_id: str) -> PackageMetrics:
        """Martin package metrics for a package given by name or qualified name.

        Raises:
            NotFoundError: If there is neither a package node nor a member class
        """
        graph = ClassGraph.load(self.store, project_id)
        found, members = self._package_members(graph, package_name)
        if not found and not members:
            raise NotFoundError(
                f"Package {package_name} not found in project {project_id}",
                {"package": package_name, "project_id": project_id},
            )
        return self._package_metrics_for(graph, package_name, members)

    async def assess_package(
        self, package_name: str, project_id: str
    ) -> tuple[PackageMetrics, Assessment]:
        metrics = await self.calculate_package_metrics(package_name, project_id)
        return metrics, assess_package_metrics(metrics, self.thresholds.packages)

    # ── Project-wide ────────────────────────────────────────────────────

    def _cycle_issues(self, graph: ClassGraph) -> list[ArchitecturalIssue]:
        cycles = find_cycles(graph.depends_on, self.store.settings.max_cycle_length)
        issues = []
        for cycle in cycles:
            names = [graph.nodes[c].name for c in cycle]
            issues.append(
                ArchitecturalIssue(
                    type=IssueType.CIRCULAR_DEPENDENCY,
                    severity=Severity.HIGH,
                    description="Circular dependency: " + " -> ".join(names + names[:1]),
                    entities=list(cycle),
                )
            )
        return issues

    def _class_issues(
        self, all_metrics: list[CKMetrics]
    ) -> tuple[list[ArchitecturalIssue], list[ArchitecturalIssue]]:
        t = self.thresholds.issues
        god_classes = []
        coupling = []
        for m in all_metrics:
            if m.wmc > t.god_class_wmc or m.rfc > t.god_class_rfc:
                god_classes.append(
                    ArchitecturalIssue(
                        type=IssueType.GOD_CLASS,
                        severity=Severity.HIGH,
                        description=f"God class {m.class_name}: WMC={m.wmc}, RFC={m.rfc}",
                        entities=[m.class_id],
                    )
                )
            if m.cbo > t.excessive_cbo:
                severe = m.cbo > t.excessive_cbo * t.high_severity_factor
                coupling.append(
                    ArchitecturalIssue(
                        type=IssueType.EXCESSIVE_COUPLING,
                        severity=Severity.HIGH if severe else Severity.MEDIUM,
                        description=(
                            f"Excessive coupling in {m.class_name}: CBO={m.cbo} "
                            f"(threshold {t.excessive_cbo})"
                        ),
                        entities=[m.class_id],
                    )
                )
        return god_classes, coupling

    async def _all_ck(self, graph: ClassGraph) -> list[CKMetrics]:
        return [await self._ck_for(graph, node.id) for node in graph.classes]

    async def find_architectural_issues(self, project_id: str) -> list[ArchitecturalIssue]:
        """Circular dependencies, then god classes, then excessive coupling."""
        graph = ClassGraph.load(self.store, project_id)
        return self._issues(graph, await self._all_ck(graph))

    def _issues(self, graph: ClassGraph, all_metrics: list[CKMetrics]) -> list[ArchitecturalIssue]:
        god_classes, coupling = self._class_issues(all_metrics)
        issues = self._cycle_issues(graph) + god_classes + coupling
        logger.debug(f"Found {len(issues)} architectural issues in {graph.project_id}")
        return issues

    async def calculate_project_summary(self, project_id: str) -> ProjectSummary:
        graph = ClassGraph.load(self.store, project_id)
        all_metrics = await self._all_ck(graph)
        issues = self._issues(graph, all_metrics)

        count = len(all_metrics)

        def avg(attr: str) -> float:
            return sum(getattr(m, attr) for m in all_metrics) / count if count else 0.0

        averages = AverageMetrics(
            cbo=avg("cbo"), rfc=avg("rfc"), dit=avg("dit"), wmc=avg("wmc"), lcom=avg("lcom")
        )
        quality = calculate_quality_score(
            averages.cbo, averages.rfc, averages.dit, len(issues), self.thresholds.quality
        )
        return ProjectSummary(
            project_id=project_id,
            total_classes=count,
            total_methods=len(graph.nodes_of_type(NodeType.METHOD)),
            total_packages=len(graph.nodes_of_type(NodeType.PACKAGE)),
            averages=averages,
            issue_count=len(issues),
            quality=quality,
            issues=issues,
        )
