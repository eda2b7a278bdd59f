"""
mojo-deploy CLI

Implements the CLI verbs with Operations facade integration:
- deploy: Ship code, model artifacts and schema to the engine if not present
- probe: Report whether a plan's schema is already deployed
- plan: Show the contents of a deployment plan
- split: Split a local file into numbered fragments
- inspect: Reassemble an artifact from local fragments and list its entries
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import (
    print_artifact, print_deployment_result, print_fragments, print_plan, print_probe_result
)
from .plan import SchemaDeploymentPlan, load_packaged_plan
from .resources import DirectoryResourceLocator

app = typer.Typer(name="mojo-deploy", help="Deploy split model artifacts and schema to a remote engine")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_plan(plan_path: Optional[Path]) -> SchemaDeploymentPlan:
    """Load a plan file, or the packaged flight delay plan if none is given."""
    if plan_path is None:
        return load_packaged_plan()
    return SchemaDeploymentPlan.from_yaml_file(plan_path)


@app.command()
def deploy(
    resources: Path = typer.Option(..., "--resources", help="Directory holding compiled code and resources"),
    plan_path: Optional[Path] = typer.Option(None, "--plan", help="Deployment plan YAML (default: packaged flight delay plan)"),
    hosts: Optional[str] = typer.Option(None, "--hosts", help="Comma-separated engine hosts (default: MOJO_DEPLOY_HOSTS)"),
    retries: int = typer.Option(0, "--retries", min=0, help="Re-run the whole deployment this many times on failure"),
    strict_probe: Optional[bool] = typer.Option(
        None, "--strict-probe/--lenient-probe", help="Fail on unrecognized probe errors instead of deploying"
    ),
    max_chunk_size: Optional[int] = typer.Option(None, "--max-chunk-size", min=1, help="Split resources of at least this many bytes"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output"),
) -> None:
    """Deploy the plan unless its schema is already present."""
    _configure_logging(verbose)

    def _deploy() -> None:
        plan = _load_plan(plan_path)
        if max_chunk_size is not None:
            plan = plan.model_copy(update={"max_chunk_size": max_chunk_size})
        context = CLIContext.from_env(hosts=hosts, strict_probe=strict_probe)
        try:
            ops = Operations(OpsConfig(retries=retries, verbose=verbose), context.settings, context.client)
            result = ops.deploy(plan, DirectoryResourceLocator(resources))
        finally:
            context.close()
        print_deployment_result(plan, result, verbose=verbose)

    run_and_exit(_deploy)


@app.command()
def probe(
    plan_path: Optional[Path] = typer.Option(None, "--plan", help="Deployment plan YAML (default: packaged flight delay plan)"),
    hosts: Optional[str] = typer.Option(None, "--hosts", help="Comma-separated engine hosts (default: MOJO_DEPLOY_HOSTS)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output"),
) -> None:
    """Report whether the plan's schema is already deployed."""
    _configure_logging(verbose)

    def _probe() -> None:
        plan = _load_plan(plan_path)
        context = CLIContext.from_env(hosts=hosts)
        try:
            ops = Operations(OpsConfig(verbose=verbose), context.settings, context.client)
            result = ops.probe(plan, DirectoryResourceLocator("."))
        finally:
            context.close()
        print_probe_result(plan, result)

    run_and_exit(_probe)


@app.command("plan")
def show_plan(
    plan_path: Optional[Path] = typer.Option(None, "--plan", help="Deployment plan YAML (default: packaged flight delay plan)"),
) -> None:
    """Show the contents of a deployment plan."""
    run_and_exit(lambda: print_plan(_load_plan(plan_path)))


@app.command()
def split(
    path: Path = typer.Argument(..., help="File to split"),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", help="Where to write fragments (default: next to the file)"),
    max_chunk_size: Optional[int] = typer.Option(None, "--max-chunk-size", min=1, help="Fragment size in bytes"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output"),
) -> None:
    """Split a file into name.0, name.1, ... fragments."""
    _configure_logging(verbose)

    def _split() -> None:
        context = CLIContext.from_env(max_chunk_size=max_chunk_size)
        ops = Operations(OpsConfig(verbose=verbose), context.settings)
        fragments = ops.split(str(path), out_dir=str(out_dir) if out_dir else None)
        print_fragments(path.name, fragments)

    run_and_exit(_split)


@app.command()
def inspect(
    name: str = typer.Argument(..., help="Logical artifact name, relative to --resources"),
    resources: Path = typer.Option(Path("."), "--resources", help="Directory holding the artifact or its fragments"),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed output"),
) -> None:
    """Reassemble an artifact from local fragments and list its entries."""
    _configure_logging(verbose)

    def _inspect() -> None:
        context = CLIContext.from_env()
        ops = Operations(OpsConfig(verbose=verbose), context.settings)
        print_artifact(ops.inspect(name, DirectoryResourceLocator(resources)))

    run_and_exit(_inspect)


if __name__ == "__main__":
    app()
