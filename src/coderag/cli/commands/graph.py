"""Graph store commands: ingest, projects, search, annotations, clear."""

from __future__ import annotations

import asyncio
from pathlib import Path

import orjson
import typer

from ...core.exceptions import CodeRAGError
from ...core.ingest import BatchWriter
from ..context import get_settings, open_graph
from ..output import console, print_error, print_json, print_success
from ..reporters import ConsoleReporter

graph_app = typer.Typer(help="📊 Code graph operations")


@graph_app.command("ingest")
def ingest(
    ctx: typer.Context,
    document: Path = typer.Argument(
        ..., help="JSON ingest document (entities, relationships, errors)", exists=True, dir_okay=False
    ),
    project: str | None = typer.Option(
        None, "--project", "-p", help="Project id (overrides the document's project_id)"
    ),
    no_packages: bool = typer.Option(
        False, "--no-packages", help="Do not synthesize package nodes from entity attributes"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """Load parser output into the graph.

    Example:
        coderag graph ingest parsed.json --project billing
    """
    settings = get_settings(ctx)
    try:
        payload = orjson.loads(document.read_bytes())
    except orjson.JSONDecodeError as e:
        print_error(f"Invalid JSON in {document}: {e}")
        raise typer.Exit(1) from e

    async def _ingest():
        async with open_graph(settings) as g:
            writer = BatchWriter(g.nodes, g.edges, synthesize_packages=not no_packages)
            return await writer.ingest_payload(payload, project_id=project)

    try:
        result = asyncio.run(_ingest())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json(result.to_dict())
    else:
        ConsoleReporter().print_ingest_result(result)


@graph_app.command("projects")
def list_projects(
    ctx: typer.Context,
    sort_by: str = typer.Option(
        "name", "--sort", help="Sort by name, created_at, updated_at or entity_count"
    ),
    descending: bool = typer.Option(False, "--desc", help="Reverse sort order"),
    stats: bool = typer.Option(False, "--stats", help="Include entity and relationship counts"),
    limit: int = typer.Option(100, "--limit", min=1, help="Maximum number of projects"),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """List projects stored in the graph."""
    settings = get_settings(ctx)

    async def _list():
        async with open_graph(settings) as g:
            return await g.store.list_projects(
                sort_by=sort_by, descending=descending, include_stats=stats, limit=limit
            )

    try:
        projects = asyncio.run(_list())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json(
            [
                {**p.to_dict(), "stats": s.to_dict() if s else None}
                for p, s in projects
            ]
        )
    else:
        ConsoleReporter().print_projects(projects)


@graph_app.command("search")
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Substring of a name, qualified name or description"),
    project: str | None = typer.Option(None, "--project", "-p", help="Project id"),
    all_projects: bool = typer.Option(False, "--all-projects", help="Search every project"),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """Search nodes by name (case-insensitive)."""
    if not project and not all_projects:
        print_error("Pass --project or --all-projects")
        raise typer.Exit(2)
    settings = get_settings(ctx)

    async def _search():
        async with open_graph(settings) as g:
            if all_projects:
                return await g.nodes.search_nodes_across_projects(query)
            return await g.nodes.search_nodes(query, project)

    try:
        nodes = asyncio.run(_search())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json([n.to_dict() for n in nodes])
    else:
        ConsoleReporter().print_nodes(nodes)


@graph_app.command("clear")
def clear(
    ctx: typer.Context,
    project: str | None = typer.Option(None, "--project", "-p", help="Project to clear"),
    all_projects: bool = typer.Option(False, "--all", help="Clear every project"),
    delete: bool = typer.Option(False, "--delete", help="Also remove the project record"),
    force: bool = typer.Option(False, "-f", "--force", help="Do not ask for confirmation"),
) -> None:
    """Remove a project's nodes and edges, or everything with --all."""
    if not project and not all_projects:
        print_error("Pass --project or --all")
        raise typer.Exit(2)

    target = "ALL projects" if all_projects else f"project '{project}'"
    if not force and not typer.confirm(f"Remove every node and edge of {target}?"):
        console.print("Aborted")
        raise typer.Exit(1)

    settings = get_settings(ctx)

    async def _clear():
        async with open_graph(settings) as g:
            if all_projects:
                await g.store.clear_all()
            elif delete:
                await g.store.delete_project(project)
            else:
                await g.store.clear_project(project)

    try:
        asyncio.run(_clear())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    print_success(f"Cleared {target}")


@graph_app.command("health")
def health(ctx: typer.Context) -> None:
    """Check that the graph database answers queries."""
    settings = get_settings(ctx)

    async def _health():
        async with open_graph(settings) as g:
            return await g.store.health_check()

    try:
        ok = asyncio.run(_health())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if not ok:
        print_error("Graph database is not healthy")
        raise typer.Exit(1)
    print_success(f"Graph database OK at {settings.database_dir}")


@graph_app.command("annotated")
def annotated(
    ctx: typer.Context,
    annotation: str = typer.Argument(..., help="Annotation or decorator name, e.g. @Component"),
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    framework: str | None = typer.Option(None, "--framework", help="Only this framework"),
    category: str | None = typer.Option(None, "--category", help="Only this category"),
    node_type: str | None = typer.Option(None, "--type", "-t", help="Only this node type"),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """Find nodes carrying an annotation.

    Example:
        coderag graph annotated @Transactional --project billing --type method
    """
    settings = get_settings(ctx)

    async def _find():
        async with open_graph(settings) as g:
            return await g.nodes.find_nodes_by_annotation(
                annotation, project, framework=framework, category=category, node_type=node_type
            )

    try:
        matches = asyncio.run(_find())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json({"nodes": [m.to_dict() for m in matches], "total_count": len(matches)})
    else:
        ConsoleReporter().print_annotated_nodes(matches)


@graph_app.command("deprecated")
def deprecated(
    ctx: typer.Context,
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    node_type: str | None = typer.Option(None, "--type", "-t", help="Only this node type"),
    dependents: bool = typer.Option(
        False, "--dependents", help="Also list nodes that call, reference or extend them"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """List deprecated code and, optionally, what still depends on it."""
    settings = get_settings(ctx)

    async def _find():
        async with open_graph(settings) as g:
            return await g.edges.find_deprecated_code(
                project, node_type=node_type, include_dependencies=dependents
            )

    try:
        found = asyncio.run(_find())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json({"deprecated_nodes": [d.to_dict() for d in found], "total_count": len(found)})
    else:
        ConsoleReporter().print_deprecated(found)


@graph_app.command("annotation-usage")
def annotation_usage(
    ctx: typer.Context,
    project: str = typer.Option(..., "--project", "-p", help="Project id"),
    group_by: str = typer.Option(
        "annotation", "--group-by", help="Group by annotation, category or framework"
    ),
    category: str | None = typer.Option(None, "--category", help="Only this category"),
    framework: str | None = typer.Option(None, "--framework", help="Only this framework"),
    no_deprecated: bool = typer.Option(
        False, "--no-deprecated", help="Leave deprecation markers out of the counts"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results in JSON format"),
) -> None:
    """Count annotation usage in a project."""
    settings = get_settings(ctx)

    async def _usage():
        async with open_graph(settings) as g:
            return await g.nodes.get_annotation_usage(
                project,
                category=category,
                framework=framework,
                include_deprecated=not no_deprecated,
                group_by=group_by,
            )

    try:
        groups = asyncio.run(_usage())
    except CodeRAGError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if json_output:
        print_json(
            {"group_by": group_by, "groups": [g.to_dict() for g in groups], "total_groups": len(groups)}
        )
    else:
        ConsoleReporter().print_annotation_usage(groups, group_by)
