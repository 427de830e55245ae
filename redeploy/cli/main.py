"""Main CLI entry point for redeploy."""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import psutil
import typer
from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ..core.config import ConfigManager
from ..core.context import DeploymentContext
from ..core.enums import DeploymentOutcome
from ..core.errors import ConfigurationError, FilesystemError, PrecheckError
from ..core.log import configure_logging, get_logger
from ..core.types import DeploymentReport, RedeployConfig
from ..core.value_objects import ProcessMatcher, ServerInstallation
from ..deploy import DeploymentOrchestrator, HostInspector
from ..utils.filesystem import atomic_write


class GlobalCliOptions(BaseModel):
    """Global CLI options that can be used across all commands."""

    verbose: int = Field(0, description="Increase verbosity level")
    config_file: Optional[Path] = Field(None, description="Configuration file path")
    log_level: str = Field(
        "WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_file: Optional[Path] = Field(None, description="JSON log file path")


app = typer.Typer(
    name="redeploy",
    help="Stop-swap-start deployment for host application servers",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
console = Console()
logger = get_logger(__name__)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset CLI values so they never shadow file or env configuration."""
    result: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _compact(value)
            if not value:
                continue
        if value is None:
            continue
        result[key] = value
    return result


def _load_config(ctx: typer.Context, **overrides: Any) -> RedeployConfig:
    options: GlobalCliOptions = ctx.obj["cli_options"]
    try:
        return ConfigManager().load_config(
            config_file=options.config_file, **_compact(overrides)
        )
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(1)


def _build_context(config: RedeployConfig) -> DeploymentContext:
    return DeploymentContext.create(config)


def _write_report(report: DeploymentReport, report_file: Path) -> None:
    try:
        atomic_write(report_file, report.model_dump_json(indent=2))
    except FilesystemError as e:
        logger.error("Could not write report to %s: %s", report_file, e.message)
        console.print(f"[yellow]Could not write report file: {e.message}[/yellow]")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity level"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR) - explicit level",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path (YAML)"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write structured JSON logs to this file"
    ),
) -> None:
    """redeploy: stop-swap-start deployment for host application servers."""
    if verbose > 0 and log_level is not None:
        console.print("[red]Error: Cannot specify both --verbose and --log-level[/red]")
        raise typer.Exit(1)

    if log_level is None:
        resolved_log_level = (
            "DEBUG" if verbose >= 2 else "INFO" if verbose == 1 else "WARNING"
        )
    else:
        resolved_log_level = log_level.upper()

    cli_options = GlobalCliOptions(
        verbose=verbose,
        config_file=config_file,
        log_level=resolved_log_level,
        log_file=log_file,
    )

    ctx.ensure_object(dict)
    ctx.obj["cli_options"] = cli_options

    configure_logging(
        level=resolved_log_level,
        log_file=log_file,
        enable_console=True,
        enable_json=log_file is not None,
    )


@app.command()
def deploy(
    ctx: typer.Context,
    artifact: Optional[Path] = typer.Option(
        None, "--artifact", "-a", help="Artifact file produced by the packaging stage"
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Logical artifact name (deployed as NAME.<suffix>)"
    ),
    artifact_version: Optional[str] = typer.Option(
        None, "--artifact-version", help="Informational artifact version"
    ),
    root: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Application server installation root"
    ),
    report_file: Optional[Path] = typer.Option(
        None, "--report-file", help="Write the deployment report as JSON"
    ),
    warn_on_lingering: bool = typer.Option(
        False,
        "--warn-on-lingering",
        help="Continue with a warning if the server survives forced stop",
    ),
) -> None:
    """Stop the server, replace the artifact, start and verify."""
    config = _load_config(
        ctx,
        installation={"root": root},
        artifact={"source": artifact, "name": name, "version": artifact_version},
        fail_on_lingering_process=False if warn_on_lingering else None,
    )

    orchestrator = DeploymentOrchestrator.from_context(_build_context(config))
    try:
        report = orchestrator.run()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(1)

    if report_file is not None:
        _write_report(report, report_file)

    for warning in report.warnings:
        logger.info("Warning recorded: %s", warning)
    raise typer.Exit(report.exit_code)


@app.command()
def check(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Application server installation root"
    ),
) -> None:
    """Run the installation precheck only."""
    config = _load_config(ctx, installation={"root": root})
    context = _build_context(config)
    installation = ServerInstallation.from_config(config.installation)
    try:
        HostInspector(context.logger, context.filesystem).check(installation)
    except PrecheckError as e:
        console.print(f"[red]{e.failure.value}: {e.message}[/red]")
        raise typer.Exit(DeploymentOutcome.PRECHECK_FAILED.exit_code)
    console.print(f"[green]Installation at {installation.root} is ready[/green]")


@app.command()
def status(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Application server installation root"
    ),
) -> None:
    """Show whether the application server process is running."""
    config = _load_config(ctx, installation={"root": root})
    context = _build_context(config)
    matcher = ProcessMatcher(config.installation.process_pattern)
    pids = context.process_table.find(matcher)
    if pids:
        console.print(
            f"[green]running[/green] ({len(pids)} process(es): "
            f"{', '.join(str(pid) for pid in pids)})"
        )
    else:
        console.print("[yellow]stopped[/yellow]")


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    table = Table(title="redeploy Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("redeploy", __version__)
    table.add_row("psutil", psutil.__version__)
    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(
        None, "--root", "-r", help="Application server installation root"
    ),
) -> None:
    """Show the effective configuration."""
    current_config = _load_config(ctx, installation={"root": root})
    installation = ServerInstallation.from_config(current_config.installation)

    table = Table(title="redeploy Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Installation Root", str(installation.root))
    table.add_row("Start Script", str(installation.start_script))
    table.add_row("Stop Script", str(installation.stop_script))
    table.add_row("Deploy Directory", str(installation.content_dir))
    table.add_row("Server Log", str(installation.log_file))
    table.add_row("Process Pattern", current_config.installation.process_pattern)
    table.add_row("Artifact Name", current_config.artifact.name)
    if current_config.artifact.version:
        table.add_row("Artifact Version", current_config.artifact.version)
    if current_config.artifact.source:
        table.add_row("Artifact Source", str(current_config.artifact.source))
    table.add_row("Stop Grace", f"{current_config.timeouts.stop_grace}s")
    table.add_row("Kill Wait", f"{current_config.timeouts.kill_wait}s")
    table.add_row("Start Settle", f"{current_config.timeouts.start_settle}s")
    table.add_row("Verify Settle", f"{current_config.timeouts.verify_settle}s")
    table.add_row("Poll Interval", f"{current_config.polling.poll_interval}s")
    table.add_row(
        "Fail On Lingering Process", str(current_config.fail_on_lingering_process)
    )
    table.add_row("Diagnostic Tail Lines", str(current_config.diagnostic_tail_lines))
    console.print(table)


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (RuntimeError, OSError, ValueError, ImportError) as e:
        logger.error("Unexpected error: %s", e)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
