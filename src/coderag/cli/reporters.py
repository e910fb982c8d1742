"""Console reporter for graph and metric results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

from ..analysis.metrics import Severity
from .output import console

if TYPE_CHECKING:
    from ..analysis.metrics import (
        ArchitecturalIssue,
        Assessment,
        CKMetrics,
        PackageMetrics,
        ProjectSummary,
    )
    from ..core.annotations import AnnotatedNode, AnnotationUsageGroup, DeprecatedNode
    from ..core.ingest import IngestResult
    from ..core.models import CodeNode, ProjectContext, ProjectStats

_SEVERITY_COLORS = {
    Severity.LOW: "blue",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "bold red",
}

_BAND_COLORS = {
    "Excellent": "green",
    "Good": "blue",
    "Fair": "yellow",
    "Poor": "orange1",
    "Critical": "red",
}


class ConsoleReporter:
    """Prints store and metric records as rich tables."""

    def print_assessment(self, assessment: Assessment) -> None:
        if assessment.healthy:
            console.print("[green]✓ Healthy - no findings[/green]")
        else:
            for finding in assessment.findings:
                console.print(f"  [yellow]•[/yellow] {finding}")
        console.print()

    def print_ck_metrics(self, metrics: CKMetrics, assessment: Assessment) -> None:
        console.print(f"\n[bold blue]CK Metrics: {metrics.class_name}[/bold blue]")
        console.print(f"[dim]{metrics.project_id}:{metrics.class_id}[/dim]")

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Metric", style="bold", width=8)
        table.add_column("Description", width=34)
        table.add_column("Value", justify="right", width=8)
        table.add_row("WMC", "Weighted methods per class", str(metrics.wmc))
        table.add_row("DIT", "Depth of inheritance tree", str(metrics.dit))
        table.add_row("NOC", "Number of children", str(metrics.noc))
        table.add_row("CBO", "Coupling between objects", str(metrics.cbo))
        table.add_row("RFC", "Response for a class", str(metrics.rfc))
        table.add_row("LCOM", "Lack of cohesion in methods", f"{metrics.lcom:.2f}")
        console.print(table)
        console.print()
        self.print_assessment(assessment)

    def print_package_metrics(self, metrics: PackageMetrics, assessment: Assessment) -> None:
        console.print(f"\n[bold blue]Package Metrics: {metrics.package_name}[/bold blue]")

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Metric", style="bold", width=14)
        table.add_column("Value", justify="right", width=10)
        table.add_row("Classes", str(metrics.class_count))
        table.add_row("Abstract", str(metrics.abstract_count))
        table.add_row("Ca", str(metrics.ca))
        table.add_row("Ce", str(metrics.ce))
        table.add_row("Instability", f"{metrics.instability:.2f}")
        table.add_row("Abstractness", f"{metrics.abstractness:.2f}")
        table.add_row("Distance", f"{metrics.distance:.2f}")
        console.print(table)
        console.print()
        self.print_assessment(assessment)

    def print_issues(self, issues: list[ArchitecturalIssue]) -> None:
        console.print("\n[bold]🏗️  Architectural Issues[/bold]")
        if not issues:
            console.print("  No issues found")
            console.print()
            return

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Type", width=22)
        table.add_column("Severity", width=10)
        table.add_column("Description")
        for issue in issues:
            color = _SEVERITY_COLORS[issue.severity]
            table.add_row(
                issue.type.value,
                f"[{color}]{issue.severity.value}[/{color}]",
                issue.description,
            )
        console.print(table)
        console.print()

    def print_summary(self, summary: ProjectSummary) -> None:
        color = _BAND_COLORS.get(summary.quality.band.value, "white")
        console.print(f"\n[bold blue]📈 Project Summary: {summary.project_id}[/bold blue]")
        console.print("━" * 60)
        console.print(f"  Classes: {summary.total_classes}")
        console.print(f"  Methods: {summary.total_methods}")
        console.print(f"  Packages: {summary.total_packages}")
        avg = summary.averages
        console.print(
            f"  Avg CBO {avg.cbo:.1f} · RFC {avg.rfc:.1f} · DIT {avg.dit:.1f} · "
            f"WMC {avg.wmc:.1f} · LCOM {avg.lcom:.2f}"
        )
        console.print(f"  Issues: {summary.issue_count}")
        console.print(
            f"  Quality: [{color}]{summary.quality.score}/100 "
            f"({summary.quality.band.value})[/{color}]"
        )
        console.print()

    def print_ingest_result(self, result: IngestResult) -> None:
        table = Table(title=f"Ingestion: {result.project_id}")
        table.add_column("Item", style="cyan")
        table.add_column("Created", justify="right", style="green")
        table.add_column("Skipped", justify="right", style="yellow")
        table.add_row("Entities", str(result.entities_created), str(result.entities_skipped))
        table.add_row(
            "Relationships",
            str(result.relationships_created),
            str(result.relationships_skipped),
        )
        console.print(table)

        if result.failures:
            console.print(f"[yellow]⚠ {len(result.failures)} item(s) failed:[/yellow]")
            for failure in result.failures[:20]:
                console.print(f"  [red]•[/red] {failure.item_id}: {failure.message}")
            if len(result.failures) > 20:
                console.print(f"  [dim]... and {len(result.failures) - 20} more[/dim]")
        if result.parse_errors:
            console.print(f"[dim]{len(result.parse_errors)} parse error(s) reported by the parser[/dim]")

    def print_projects(self, projects: list[tuple[ProjectContext, ProjectStats | None]]) -> None:
        if not projects:
            console.print("No projects found")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Project", style="cyan")
        table.add_column("Name")
        table.add_column("Updated")
        table.add_column("Entities", justify="right")
        table.add_column("Relationships", justify="right")
        for project, stats in projects:
            table.add_row(
                project.project_id,
                project.name or "",
                project.updated_at.strftime("%Y-%m-%d %H:%M") if project.updated_at else "",
                str(stats.entity_count) if stats else "-",
                str(stats.relationship_count) if stats else "-",
            )
        console.print(table)

    def print_nodes(self, nodes: list[CodeNode]) -> None:
        if not nodes:
            console.print("[yellow]No matching nodes[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Project", style="dim")
        table.add_column("Type", width=10)
        table.add_column("Qualified name", style="cyan")
        table.add_column("Location")
        for node in nodes:
            location = node.source_file or ""
            if location and node.start_line is not None:
                location += f":{node.start_line}"
            table.add_row(node.project_id, node.type.value, node.qualified_name, location)
        console.print(table)

    def print_annotated_nodes(self, matches: list[AnnotatedNode]) -> None:
        if not matches:
            console.print("[yellow]No annotated nodes found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Type", width=10)
        table.add_column("Qualified name", style="cyan")
        table.add_column("Annotation")
        table.add_column("Framework", style="dim")
        for match in matches:
            table.add_row(
                match.node.type.value,
                match.node.qualified_name,
                match.annotation.name,
                match.annotation.framework or "",
            )
        console.print(table)

    def print_deprecated(self, found: list[DeprecatedNode]) -> None:
        if not found:
            console.print("[green]✓ No deprecated code[/green]")
            return

        console.print(f"\n[bold]⚠️  Deprecated code ({len(found)})[/bold]")
        for item in found:
            line = f"  [yellow]•[/yellow] {item.node.qualified_name} [dim]({item.node.type.value})[/dim]"
            if item.dependents is not None:
                line += f" - used by {item.dependency_count}"
            console.print(line)
            for dep in (item.dependents or [])[:10]:
                console.print(f"      [dim]{dep.relationship}[/dim] {dep.qualified_name}")
            if item.dependency_count > 10:
                console.print(f"      [dim]... and {item.dependency_count - 10} more[/dim]")
        console.print()

    def print_annotation_usage(self, groups: list[AnnotationUsageGroup], group_by: str) -> None:
        if not groups:
            console.print("[yellow]No annotations found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column(group_by.capitalize(), style="cyan")
        table.add_column("Annotation")
        table.add_column("Uses", justify="right")
        table.add_column("Node types", style="dim")
        for group in groups:
            for usage in group.annotations:
                table.add_row(
                    group.key or "-",
                    usage.name,
                    str(usage.usage_count),
                    ", ".join(usage.node_types),
                )
        console.print(table)
