"""Metric report commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer

from ...core.exceptions import CodeRAGError, NotFoundError
from ..context import GraphContext, get_settings, open_graph
from ..output import print_error, print_json
from ..reporters import ConsoleReporter

T = TypeVar("T")

metrics_app = typer.Typer(help="📈 Software quality metrics")


def _run(ctx: typer.Context, action: Callable[[GraphContext], Awaitable[T]]) -> T:
    settings = get_settings(ctx)

    async def _inner() -> T:
        async with open_graph(settings) as g:
            return await action(g)

    try:
        return asyncio.run(_inner())
    except NotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    except CodeRAGError as e:
        print_error(f"Metric computation failed: {e}")
        raise typer.Exit(1) from e


def _project_option() -> Any:
    return typer.Option(..., "--project", "-p", help="Project id")


def _json_option() -> Any:
    return typer.Option(False, "--json", help="Output results in JSON format")


@metrics_app.command("class")
def class_metrics(
    ctx: typer.Context,
    class_ref: str = typer.Argument(..., help="Class id, qualified name or name"),
    project: str = _project_option(),
    json_output: bool = _json_option(),
) -> None:
    """CK metrics (WMC, DIT, NOC, CBO, RFC, LCOM) for one class."""
    metrics, assessment = _run(ctx, lambda g: g.metrics_engine().assess_class(class_ref, project))
    if json_output:
        print_json({**metrics.to_dict(), "assessment": assessment.to_dict()})
    else:
        ConsoleReporter().print_ck_metrics(metrics, assessment)


@metrics_app.command("package")
def package_metrics(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package name or qualified name"),
    project: str = _project_option(),
    json_output: bool = _json_option(),
) -> None:
    """Coupling, instability, abstractness and distance for a package."""
    metrics, assessment = _run(ctx, lambda g: g.metrics_engine().assess_package(package, project))
    if json_output:
        print_json({**metrics.to_dict(), "assessment": assessment.to_dict()})
    else:
        ConsoleReporter().print_package_metrics(metrics, assessment)


@metrics_app.command("issues")
def issues(
    ctx: typer.Context,
    project: str = _project_option(),
    json_output: bool = _json_option(),
) -> None:
    """Circular dependencies, god classes and excessive coupling."""
    found = _run(ctx, lambda g: g.metrics_engine().find_architectural_issues(project))
    if json_output:
        print_json([i.to_dict() for i in found])
    else:
        ConsoleReporter().print_issues(found)


@metrics_app.command("summary")
def summary(
    ctx: typer.Context,
    project: str = _project_option(),
    json_output: bool = _json_option(),
) -> None:
    """Project totals, averages and quality score."""
    result = _run(ctx, lambda g: g.metrics_engine().calculate_project_summary(project))
    if json_output:
        print_json(result.to_dict())
    else:
        reporter = ConsoleReporter()
        reporter.print_summary(result)
        reporter.print_issues(result.issues)
