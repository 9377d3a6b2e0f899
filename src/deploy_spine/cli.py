"""
CLI: ``deploy-spine`` — run deployer actions from a deployment plan.

Usage::

    deploy-spine deploy plan.yaml                 # Deploy every deployable
    deploy-spine undeploy plan.yaml               # Undeploy, wait until gone
    deploy-spine start plan.yaml
    deploy-spine stop plan.yaml
    deploy-spine redeploy plan.yaml

    deploy-spine deploy plan.yaml --dry-run       # StubDeployer, no monitoring
    deploy-spine deploy plan.yaml --json          # Result as JSON on stdout
    deploy-spine deploy plan.yaml --policy location

    deploy-spine registrations                    # Installed default deployers

Deployers are discovered from the ``deploy_spine.deployers`` entry-point
group, or named explicitly in the plan's ``deployer.implementation``.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from deploy_spine.config import (
    DeployableConfig,
    DeployerConfig,
    DeploymentPlan,
    DeploySettings,
    IdentityPolicy,
)
from deploy_spine.deployables import Deployable
from deploy_spine.deployers import DeployerAction
from deploy_spine.errors import (
    DeploymentActionError,
    DeploySpineError,
    PlanError,
    ResolutionError,
    UnsupportedBackendError,
    categorize_error,
)
from deploy_spine.logging import configure_logging
from deploy_spine.model import Container
from deploy_spine.orchestrator import DeploymentOrchestrator
from deploy_spine.results import ArtifactOutcome, OrchestrationResult, OverallStatus
from deploy_spine.selector import DeployerRegistry, DeployerSelector

app = typer.Typer(
    name="deploy-spine",
    help="deploy-spine — deploy, undeploy, start and stop artifacts on a container.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)

_STUB_DEPLOYER = "deploy_spine.deployers:StubDeployer"


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError, version

        try:
            v = version("deploy-spine")
        except PackageNotFoundError:
            v = "unknown"
        typer.echo(f"deploy-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """deploy-spine CLI — orchestrate deployer actions on a runtime container."""


# ── Actions ──────────────────────────────────────────────────────────────


class _NoMonitors:
    """Monitor factory for dry runs: nothing is really deployed, nothing to watch."""

    def create(self, container: Container, descriptor: DeployableConfig, deployable: Deployable) -> None:
        return None


def _setup_logging(settings: DeploySettings, *, verbose: bool, json_out: bool) -> None:
    # Keep stderr quiet under --json unless debugging was asked for.
    if verbose:
        level = "DEBUG"
    elif json_out:
        level = "ERROR"
    else:
        level = settings.log_level
    json_format = None if settings.log_format is None else settings.log_format == "json"
    configure_logging(level=level, json_format=json_format, force=True)


def _fail(exc: DeploySpineError) -> typer.Exit:
    err_console.print(
        f"[bold red]Error[/bold red] ({categorize_error(exc).value}): {escape(exc.message)}"
    )
    return typer.Exit(code=1)


def _run_action(
    action: DeployerAction,
    plan_path: Path,
    *,
    dry_run: bool,
    json_out: bool,
    policy: IdentityPolicy | None,
    verbose: bool,
) -> None:
    settings = DeploySettings()
    if policy is not None:
        settings = settings.model_copy(update={"identity_policy": policy})
    _setup_logging(settings, verbose=verbose, json_out=json_out)

    try:
        plan = DeploymentPlan.from_file(plan_path)
    except PlanError as exc:
        raise _fail(exc) from exc

    container = plan.to_container()
    project = plan.to_project()
    override = plan.deployer
    orchestrator_kwargs: dict = {}
    if dry_run:
        override = DeployerConfig(
            type=override.type if override is not None else None,
            implementation=_STUB_DEPLOYER,
        )
        orchestrator_kwargs["monitor_factory"] = _NoMonitors()

    orchestrator = DeploymentOrchestrator(
        selector=DeployerSelector(DeployerRegistry.from_entry_points()),
        settings=settings,
        **orchestrator_kwargs,
    )

    if not json_out:
        mode = " [dim](dry run)[/]" if dry_run else ""
        console.print(f"[bold]deploy-spine {action.value}[/]{mode} — run_id: {plan.run_id}")
        console.print(f"  container: {container.name} ({container.id}, {container.type.value})")

    try:
        result = orchestrator.execute(
            container,
            project,
            plan.deployables,
            action=action,
            override=override,
            run_id=plan.run_id,
        )
    except (ResolutionError, DeploymentActionError) as exc:
        if exc.result is not None:
            _emit(exc.result, json_out)
        raise _fail(exc) from exc
    except UnsupportedBackendError as exc:
        raise _fail(exc) from exc

    _emit(result, json_out)
    if not result.succeeded:
        raise typer.Exit(code=1)


def _action_command(action: DeployerAction, help_text: str) -> None:
    def command(
        plan: Path = typer.Argument(..., exists=True, dir_okay=False, help="Deployment plan (YAML or JSON)."),
        dry_run: bool = typer.Option(False, "--dry-run", help="Use the stub deployer; nothing is touched."),
        json_out: bool = typer.Option(False, "--json", help="Output the result as JSON."),
        policy: IdentityPolicy | None = typer.Option(
            None, "--policy", help="Identity policy for duplicate detection."
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    ) -> None:
        _run_action(
            action,
            plan,
            dry_run=dry_run,
            json_out=json_out,
            policy=policy,
            verbose=verbose,
        )

    command.__doc__ = help_text
    app.command(action.value)(command)


_action_command(DeployerAction.DEPLOY, "Deploy every deployable of the plan and wait until each is live.")
_action_command(DeployerAction.UNDEPLOY, "Undeploy every deployable of the plan and wait until each is gone.")
_action_command(DeployerAction.START, "Start every deployable of the plan.")
_action_command(DeployerAction.STOP, "Stop every deployable of the plan.")
_action_command(DeployerAction.REDEPLOY, "Redeploy every deployable of the plan.")


# ── Info commands ────────────────────────────────────────────────────────


@app.command("registrations")
def list_registrations(
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List default deployers registered through entry points."""
    _setup_logging(DeploySettings(), verbose=False, json_out=json_out)
    registry = DeployerRegistry.from_entry_points()
    rows = [
        (container_id, deployer_type.value, _factory_name(registry.get(container_id, deployer_type)))
        for container_id, deployer_type in registry.list_registrations()
    ]

    if json_out:
        out = [{"container": c, "deployer_type": t, "factory": f} for c, t, f in rows]
        typer.echo(json.dumps(out, indent=2))
        return

    if not rows:
        console.print("[dim]No deployers registered.[/]")
        return

    table = Table(title="Registered Deployers")
    table.add_column("Container", style="bold cyan")
    table.add_column("Deployer type")
    table.add_column("Factory")
    for row in rows:
        table.add_row(*row)
    console.print(table)


# ── Output formatters ────────────────────────────────────────────────────


def _factory_name(factory: object) -> str:
    module = getattr(factory, "__module__", "")
    name = getattr(factory, "__qualname__", type(factory).__name__)
    return f"{module}:{name}" if module else name


def _emit(result: OrchestrationResult, json_out: bool) -> None:
    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_result(result)


def _print_result(result: OrchestrationResult) -> None:
    """Pretty-print an OrchestrationResult."""
    if result.noop:
        console.print(f"[dim]{escape(result.summary)}[/]")
        return

    outcome_style = {
        ArtifactOutcome.SUCCEEDED: "green",
        ArtifactOutcome.SUCCEEDED_WITH_TIMEOUT: "yellow",
        ArtifactOutcome.FAILED: "red bold",
        ArtifactOutcome.SKIPPED: "dim",
    }

    table = Table(title=f"{result.action} on {result.container_name}")
    table.add_column("Deployable", style="bold")
    table.add_column("Type")
    table.add_column("Outcome")
    table.add_column("Monitor")
    table.add_column("Time")

    for artifact in result.artifacts:
        style = outcome_style.get(artifact.outcome, "white")
        name = escape(artifact.name)
        if artifact.auto:
            name += " [dim](auto)[/]"
        table.add_row(
            name,
            artifact.type or "—",
            f"[{style}]{artifact.outcome.value}[/{style}]",
            artifact.monitor_status or "—",
            f"{artifact.duration_seconds:.1f}s",
        )

    console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]⚠ {escape(warning)}[/]")

    colour = "green" if result.overall_status == OverallStatus.PASSED else "red"
    console.print(f"[{colour}]{escape(result.summary)}[/{colour}]")
