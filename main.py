#!/usr/bin/env python3
"""Effort Engine CLI - AI effort estimates, rollups and hierarchy views.

Usage:
    # Add work items
    python main.py add --project 1 --title "Checkout epic" --epic
    python main.py add --project 1 --title "Payment form" --parent 1 --hours 8

    # AI estimate for a stored item (writes a new version)
    python main.py estimate 2

    # Roll descendant effort up onto a parent, or across a whole project
    python main.py rollup 1
    python main.py rollup-project 1

    # Dependency-adjusted effort and the display tree
    python main.py deps 2
    python main.py tree 2
"""

import logging
import sys
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.panel import Panel
    from rich.table import Table
    from rich.tree import Tree
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from config import settings
from contracts import EstimateSource, HierarchyNode, ItemKind
from engine import EffortEstimationService
from errors import EffortEngineError
from providers import get_provider, list_providers as get_available_providers
from store import get_store


console = Console()

KIND_CHOICE = click.Choice([kind.value for kind in ItemKind])
SOURCE_CHOICE = click.Choice([source.value for source in EstimateSource])


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _service(ctx: click.Context) -> EffortEstimationService:
    """Build the service once per invocation from the group options."""
    obj = ctx.ensure_object(dict)
    if "service" not in obj:
        provider = obj.get("provider")
        model = obj.get("model")
        obj["service"] = EffortEstimationService(
            store=get_store(obj.get("database")),
            llm_provider=get_provider(provider, model) if provider else None,
            model=model,
        )
    return obj["service"]


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


@click.group()
@click.option(
    "--database", "-d",
    default=None,
    help=f"Store URL (default: {settings.database_url}; memory:// for a throwaway store)"
)
@click.option(
    "--provider", "-p",
    type=click.Choice(["openai", "anthropic", "litellm"]),
    default=None,
    help=f"LLM provider (default: {settings.default_provider})"
)
@click.option(
    "--model",
    default=None,
    help=f"Model name (default: {settings.default_model})"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
@click.pass_context
def cli(ctx: click.Context, database: Optional[str], provider: Optional[str], model: Optional[str], verbose: bool):
    """Effort Engine: hierarchical effort estimation and rollup."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.update(database=database, provider=provider, model=model)


@cli.command()
@click.option("--project", "project_id", type=int, required=True, help="Project ID")
@click.option("--title", required=True, help="Work item title")
@click.option("--description", default=None, help="Work item description")
@click.option("--parent", "parent_id", type=int, default=None, help="Parent item ID")
@click.option("--hours", type=float, default=None, help="Base estimated effort in hours")
@click.option("--status", default="To Do", help="Status (default: To Do)")
@click.option("--assignee", default=None, help="Assignee name")
@click.option("--epic", is_flag=True, help="Mark as an epic (grouping item)")
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.pass_context
def add(ctx, project_id, title, description, parent_id, hours, status, assignee, epic, kind):
    """Add a work item to the store."""
    try:
        item = _service(ctx).store.add_item(
            ItemKind(kind),
            project_id=project_id,
            title=title,
            description=description,
            parent_id=parent_id,
            status=status,
            assignee=assignee,
            estimated_hours=hours,
            is_epic=epic,
        )
    except EffortEngineError as e:
        _fail(e)
    console.print(f"[green]Created {kind} {item.id}:[/green] {item.title}")


@cli.command()
@click.argument("prerequisite_id", type=int)
@click.argument("dependent_id", type=int)
@click.option("--type", "dependency_type", default="blocks", help="Dependency type (default: blocks)")
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.pass_context
def link(ctx, prerequisite_id, dependent_id, dependency_type, kind):
    """Record that DEPENDENT_ID waits on PREREQUISITE_ID."""
    try:
        edge = _service(ctx).store.add_dependency(
            ItemKind(kind), prerequisite_id, dependent_id, dependency_type=dependency_type
        )
    except EffortEngineError as e:
        _fail(e)
    console.print(f"[green]Linked:[/green] {edge.prerequisite_id} {edge.dependency_type} {edge.dependent_id}")


@cli.command()
@click.argument("item_id", type=int, required=False)
@click.option("--title", default=None, help="Estimate free text instead of a stored item")
@click.option("--description", default=None, help="Description for --title")
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.option("--user-id", type=int, default=None, help="User requesting the estimate")
@click.option("--source", type=SOURCE_CHOICE, default=EstimateSource.MANUAL_REGENERATE.value, help="Provenance tag")
@click.pass_context
def estimate(ctx, item_id, title, description, kind, user_id, source):
    """Generate an AI effort estimate.

    With ITEM_ID the estimate is saved as the item's next version; with
    --title it is only displayed.
    """
    if item_id is None and not title:
        console.print("[red]Error: give an ITEM_ID or --title[/red]")
        sys.exit(1)

    service = _service(ctx)
    with console.status("Estimating..."):
        try:
            if item_id is not None:
                result = service.generate_estimate_from_item(ItemKind(kind), item_id, user_id, EstimateSource(source))
            else:
                result = service.generate_effort_estimate(title, description, ItemKind(kind), user_id)
        except EffortEngineError as e:
            _fail(e)

    if not result.success:
        console.print(f"[yellow]{result.error}:[/yellow] {result.message}")
        sys.exit(1)

    header = f"[bold blue]{result.total_hours:.1f} hours[/bold blue]  [dim]({result.confidence.value} confidence)[/dim]"
    if getattr(result, "version", None):
        header += f"\n[dim]Saved as version {result.version}[/dim]"
    console.print(Panel.fit(header, border_style="blue"))

    table = Table(title="Breakdown")
    table.add_column("Task")
    table.add_column("Hours", justify="right")
    table.add_column("Complexity")
    table.add_column("Category")
    for line in result.breakdown:
        table.add_row(line.task, f"{line.hours:.1f}", line.complexity.value, line.category)
    console.print(table)

    if result.confidence_reasoning:
        console.print(f"[dim]Confidence:[/dim] {result.confidence_reasoning}")
    for assumption in result.assumptions:
        console.print(f"  [green]Assumption:[/green] {assumption}")
    for risk in result.risks:
        console.print(f"  [yellow]Risk:[/yellow] {risk}")

    meta = result.metadata
    console.print(
        f"\n[dim]{meta.model} · {meta.tokens.total:,} tokens · ${meta.cost_usd:.4f} · {meta.execution_time_ms} ms[/dim]"
    )


@cli.command()
@click.argument("item_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.option("--version", "version", type=int, default=None, help="Show one version in detail")
@click.pass_context
def history(ctx, item_id, kind, version):
    """Show the estimate history of an item."""
    service = _service(ctx)
    if version is not None:
        record = service.get_estimate_breakdown(ItemKind(kind), item_id, version)
        if record is None:
            console.print(f"[yellow]No estimate version {version} for {kind} {item_id}[/yellow]")
            sys.exit(1)
        table = Table(title=f"{kind} {item_id} v{record.version}: {record.estimate_hours:.1f}h ({record.confidence.value})")
        table.add_column("Task")
        table.add_column("Hours", justify="right")
        table.add_column("Reasoning")
        for line in record.breakdown:
            table.add_row(line.task, f"{line.hours:.1f}", line.reasoning)
        console.print(table)
        return

    records = service.get_estimate_history(ItemKind(kind), item_id)
    if not records:
        console.print(f"[dim]No estimates recorded for {kind} {item_id}[/dim]")
        return
    table = Table(title=f"Estimate history for {kind} {item_id}")
    table.add_column("Version", justify="right")
    table.add_column("Hours", justify="right")
    table.add_column("Confidence")
    table.add_column("Source")
    table.add_column("Created")
    for record in records:
        table.add_row(
            str(record.version),
            f"{record.estimate_hours:.1f}",
            record.confidence.value,
            record.source.value,
            record.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@cli.command()
@click.argument("parent_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.option("--dry-run", is_flag=True, help="Calculate without writing onto the parent")
@click.pass_context
def rollup(ctx, parent_id, kind, dry_run):
    """Sum descendant effort onto PARENT_ID."""
    try:
        result = _service(ctx).calculate_rollup_effort(parent_id, not dry_run, ItemKind(kind))
    except EffortEngineError as e:
        _fail(e)

    if result.is_leaf_node:
        console.print(f"[dim]{kind} {parent_id} has no children; nothing to roll up[/dim]")
        return

    table = Table(title=f"Rollup for {kind} {parent_id}: {result.total_hours:.1f}h from {result.child_count} item(s)")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Depth", justify="right")
    table.add_column("Effort", justify="right")
    table.add_column("Assignee")
    table.add_column("Status")
    for child in result.breakdown:
        table.add_row(
            str(child.id),
            child.title,
            str(child.depth),
            f"{child.effort:.1f}",
            child.assignee or "-",
            child.status,
        )
    console.print(table)

    for group in result.by_assignee.values():
        console.print(f"  {group.assignee:20} {group.total_hours:6.1f}h  ({group.task_count} task(s))")
    if result.metadata.updated_parent:
        console.print(f"\n[green]Updated {kind} {parent_id}[/green]")


@cli.command("rollup-project")
@click.argument("project_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.pass_context
def rollup_project(ctx, project_id, kind):
    """Recompute every parent in PROJECT_ID, deepest first."""
    try:
        summary = _service(ctx).update_all_parent_efforts(project_id, ItemKind(kind))
    except EffortEngineError as e:
        _fail(e)

    console.print(f"[bold]{summary.message}[/bold]")
    for outcome in summary.parents:
        if outcome.error:
            console.print(f"  [red]✗[/red] {outcome.parent_id}: {outcome.error}")
        else:
            console.print(f"  [green]✓[/green] {outcome.parent_id}: {outcome.total_hours:.1f}h from {outcome.child_count} item(s)")
    console.print(f"[dim]Total:[/dim] {summary.total_hours:.1f}h")


@cli.command()
@click.argument("item_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.pass_context
def deps(ctx, item_id, kind):
    """Show ITEM_ID's effort adjusted for incomplete prerequisites."""
    try:
        result = _service(ctx).estimate_with_dependencies(item_id, ItemKind(kind))
    except EffortEngineError as e:
        _fail(e)

    if result.dependencies:
        table = Table(title=f"Prerequisites of {kind} {item_id}")
        table.add_column("ID", justify="right")
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Effort", justify="right")
        table.add_column("Type")
        for dep in result.dependencies:
            status = f"[green]{dep.prerequisite_status}[/green]" if dep.is_complete else (dep.prerequisite_status or "-")
            table.add_row(
                str(dep.prerequisite_id),
                dep.prerequisite_title or "-",
                status,
                f"{dep.prerequisite_effort:.1f}",
                dep.type,
            )
        console.print(table)

    console.print(f"  Base effort:       {result.breakdown.base_effort:.1f}h")
    console.print(f"  Dependency buffer: {result.breakdown.dependency_buffer:.1f}h ({result.buffer_percentage:g}%)")
    console.print(f"  [bold]Adjusted effort:   {result.breakdown.total:.1f}h[/bold]")


def _add_branch(branch: Tree, node: HierarchyNode, focus_id: int) -> None:
    label = f"{node.id} {node.title}  [dim]{node.total_effort:.1f}h · {node.status}[/dim]"
    if node.id == focus_id:
        label = f"[bold]{label}[/bold]"
    child_branch = branch.add(label)
    for child in node.children:
        _add_branch(child_branch, child, focus_id)


@cli.command()
@click.argument("item_id", type=int)
@click.option("--kind", type=KIND_CHOICE, default=ItemKind.ISSUE.value, help="Item kind")
@click.pass_context
def tree(ctx, item_id, kind):
    """Show the hierarchy containing ITEM_ID."""
    try:
        result = _service(ctx).get_hierarchical_breakdown(item_id, ItemKind(kind))
    except EffortEngineError as e:
        _fail(e)

    view = Tree(f"[bold]Hierarchy[/bold] [dim]({result.total_effort:.1f}h total)[/dim]")
    _add_branch(view, result.tree, item_id)
    console.print(view)


@cli.command()
@click.argument("project_id", type=int)
@click.option("--feature", default=None, help="Only this feature")
@click.pass_context
def usage(ctx, project_id, feature):
    """Show AI usage and cost for PROJECT_ID."""
    summaries = _service(ctx).get_project_usage(project_id, feature)
    if not summaries:
        console.print(f"[dim]No AI usage recorded for project {project_id}[/dim]")
        return
    table = Table(title=f"AI usage for project {project_id}")
    table.add_column("Feature")
    table.add_column("Operation")
    table.add_column("Calls", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    for summary in summaries:
        table.add_row(
            summary.feature,
            summary.operation_type,
            str(summary.operation_count),
            f"{summary.total_tokens:,}",
            f"${summary.total_cost:.4f}",
        )
    console.print(table)


@cli.command()
def providers():
    """List LLM providers and whether an API key is set."""
    console.print("[bold]Available LLM Providers:[/bold]\n")
    for name, available in get_available_providers().items():
        status = "[green]✓ Ready[/green]" if available else "[red]✗ No API key[/red]"
        console.print(f"  {name:12} {status}")
    console.print("\n[dim]Set API keys via environment variables:[/dim]")
    console.print("  OPENAI_API_KEY, ANTHROPIC_API_KEY (or EFFORT_ENGINE_OPENAI_API_KEY, ...)")


if __name__ == "__main__":
    cli()
