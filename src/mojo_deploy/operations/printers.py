"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin.
"""
from __future__ import annotations

from pathlib import Path
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..coordinator import DeploymentResult, ProbeResult
from ..plan import SchemaDeploymentPlan
from ..reassembly import ReassembledArtifact

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)


def print_probe_result(plan: SchemaDeploymentPlan, result: ProbeResult) -> None:
    """Print whether the plan's schema is present."""
    _console.print(f"[bold]Plan:[/] {plan.name}")
    _console.print(f"[bold]Probe:[/] {plan.probe.procedure}")
    if result.present:
        _console.print("[bold]State:[/] present")
    else:
        _console.print("[bold]State:[/] absent")
        if result.reason:
            _console.print(f"[dim]{escape(result.reason)}[/]")


def print_deployment_result(plan: SchemaDeploymentPlan, result: DeploymentResult,
                            verbose: bool = False) -> None:
    """
    Print a deployment summary.

    Args:
        plan: Plan that was deployed
        result: What the deployment did
        verbose: List every uploaded bundle and applied statement
    """
    if not result.performed:
        _console.print(f"Schema for {plan.name} already present; nothing to do")
        return

    if result.concurrent:
        _console.print(f"Schema for {plan.name} was completed by another writer")
    else:
        _console.print(f"Deployed {plan.name}")
    _console.print(f"[bold]Bundles uploaded:[/] {len(result.uploaded_bundles)}")
    _console.print(f"[bold]Statements applied:[/] {len(result.applied_statements)}")

    if verbose:
        for bundle_id in result.uploaded_bundles:
            _console.print(f"  [cyan]bundle[/] {bundle_id}")
        for statement in result.applied_statements:
            _console.print(f"  [yellow]statement[/] {escape(statement)}")


def print_plan(plan: SchemaDeploymentPlan) -> None:
    """Print the contents of a deployment plan."""
    _console.print(f"[bold]Plan:[/] {plan.name}")
    if plan.description:
        _console.print(f"[dim]{escape(plan.description)}[/]")
    _console.print(f"[bold]Main bundle:[/] {plan.main_bundle_id}")
    _console.print(f"[bold]Probe:[/] {plan.probe.procedure}{escape(str(tuple(plan.probe.params)))}")

    table = Table(title="Contents")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="yellow", overflow="fold")
    for name in plan.code_entries:
        table.add_row("code", name)
    for name in plan.resources:
        table.add_row("resource", name)
    for statement in plan.statements:
        table.add_row("statement", escape(statement.text))
    _console.print(table)


def print_fragments(source: str, fragments: List[Path]) -> None:
    """Print the fragment files written by a split."""
    if not fragments:
        _console.print(f"{source} is below the chunk size; not split")
        return
    _console.print(f"Split {source} into {len(fragments)} fragments")
    for path in fragments:
        _console.print(f"  {path.name} {_format_bytes(path.stat().st_size)}")


def print_artifact(artifact: ReassembledArtifact) -> None:
    """Print the entries of a reassembled artifact."""
    _console.print(f"[bold]Artifact:[/] {artifact.name}")
    _console.print(f"[bold]Fragments:[/] {artifact.fragment_count}")
    _console.print(f"[bold]Size:[/] {_format_bytes(artifact.total_size)}")

    table = Table(title="Entries")
    table.add_column("Entry", style="cyan", overflow="fold")
    table.add_column("Size", style="yellow", justify="right")
    for name in sorted(artifact):
        table.add_row(name, _format_bytes(len(artifact[name])))
    _console.print(table)


def print_error(exc: BaseException) -> None:
    """Print an error to stderr."""
    _err_console.print(f"[bold red]Error:[/] {type(exc).__name__}: {escape(str(exc))}")


def _format_bytes(size: int) -> str:
    """Format byte count in human-readable format."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != 'B' else f"{size} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
