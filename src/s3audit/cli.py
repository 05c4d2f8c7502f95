from __future__ import annotations
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence

import click
import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from typer.core import TyperCommand

from .core import config as cfg
from .core import runner
from .core.discovery import default_registry
from .core.errors import ConfigurationError, DiscoveryError, UnknownCheck
from .core.models import Action, Directive, Status
from .core.registry import CheckRegistry
from .core.reporting import FORMATS, render, to_table
from .core.selector import parse_directives, resolve
from .providers.aws import S3Account

app = typer.Typer(
    help="s3audit – Audit S3 buckets against recommended practices.",
    invoke_without_command=True,
)
# Diagnostics, progress and summaries; reports go to STDOUT
console = Console(stderr=True)

EXIT_FINDINGS = 1
EXIT_FATAL = 2

_DIRECTIVES_KEY = "s3audit.directives"
_DIRECTIVE_FLAGS = {
    "--enable-check": Action.ENABLE,
    "--disable-check": Action.DISABLE,
}


def directives_from_args(args: Sequence[str]) -> List[Directive]:
    """Collect --enable-check/--disable-check values in command-line order.

    Click groups repeated options per flag, which loses the interleaving
    between the two flags, so the raw arguments are scanned instead.
    """
    directives: List[Directive] = []
    iterator = iter(args)
    for arg in iterator:
        if arg == "--":
            break
        flag, sep, value = arg.partition("=")
        action = _DIRECTIVE_FLAGS.get(flag)
        if action is None:
            continue
        if not sep:
            value = next(iterator, None)
            if value is None:
                break
        directives += parse_directives(action, value)
    return directives


class DirectiveOrderCommand(TyperCommand):
    """Command recording check directives before click parses the options."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        ctx.meta[_DIRECTIVES_KEY] = directives_from_args(args)
        return super().parse_args(ctx, args)


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # botocore is chatty at DEBUG; keep it one level quieter than ours
    logging.getLogger("botocore").setLevel(max(level + 10, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(level + 10, logging.INFO))


def _fatal(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/] {escape(message)}")
    return typer.Exit(code=EXIT_FATAL)


def _color_enabled(color: bool) -> bool:
    """Colors are disabled by --no-color or by NO_COLOR set to any non-empty value."""
    return color and not os.environ.get("NO_COLOR")


def _checks_table(registry: CheckRegistry, names: Sequence[str] | None, color: bool) -> Table:
    table = Table(
        title="S3 Audit Checks",
        title_style="bold cyan" if color else "",
        show_lines=True,
        box=box.SQUARE,
    )
    table.add_column("Name", style="bold" if color else "")
    table.add_column("Aliases")
    table.add_column("Severity")
    table.add_column("Description", overflow="fold")
    for check in registry:
        if names is not None and check.name not in names:
            continue
        meta = check.meta
        table.add_row(meta.name, ", ".join(meta.aliases) or "-", meta.severity.value, meta.description)
    return table


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.command.get_help(ctx))
        raise typer.Exit(code=0)


@app.command(cls=DirectiveOrderCommand)
def run(
    ctx: typer.Context,
    format: str = typer.Option("table", "--format", "-f", help="Output format: table|csv|json"),
    enable_check: List[str] = typer.Option(
        [], "--enable-check", metavar="NAME|all", help="Enable a check (repeatable, applied in order)"
    ),
    disable_check: List[str] = typer.Option(
        [], "--disable-check", metavar="NAME|all", help="Disable a check (repeatable, applied in order)"
    ),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile to use"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region for the S3 client"),
    endpoint_url: Optional[str] = typer.Option(None, "--endpoint-url", help="Custom S3 endpoint URL"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Buckets audited concurrently"),
    max_requests: Optional[int] = typer.Option(None, "--max-requests", min=1, help="Concurrent S3 API calls"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write report to file instead of STDOUT"),
    config_files: List[Path] = typer.Option(
        [],
        "--config",
        help="Configuration file(s) to load after defaults (can be passed multiple times)",
    ),
    set_kv: List[str] = typer.Option([], "--set", help="Override key=val (deep)"),
    plugins: bool = typer.Option(True, help="Load checks from entry points (s3audit.checks)"),
    color: bool = typer.Option(True, "--color/--no-color", help="Colorize table output (NO_COLOR also disables)"),
    list_checks: bool = typer.Option(False, "--list-checks", help="List the active checks and exit"),
    show_duration: bool = typer.Option(True, "--show-duration/--no-show-duration", help="Display total execution time when finished"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show progress during execution"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv)"),
):
    """Audit every bucket in the account with the active checks.

    Exits 0 when no check failed or errored, 1 otherwise, and 2 on
    configuration or discovery errors.
    """
    start_time = time.perf_counter()
    _configure_logging(verbose)
    log = logging.getLogger(__name__)

    fmt = format.lower().strip()
    if fmt not in FORMATS:
        raise typer.BadParameter(f"must be one of: {', '.join(FORMATS)}", param_hint="--format")
    color = _color_enabled(color)

    registry = default_registry(plugins=plugins)

    try:
        cfg_raw = cfg.load_project_config(explicit_files=config_files or None)
        cfg_raw = cfg.merge_overrides(cfg_raw, set_kv=set_kv, env=os.environ)
        settings = cfg.AuditSettings.from_config(cfg_raw)
        # enable_check/disable_check only feed --help; the order lives in ctx.meta
        directives = [*settings.directives, *ctx.meta[_DIRECTIVES_KEY]]
        active = resolve(directives, registry)
    except UnknownCheck as e:
        console.print(f"[dim]Known checks: {', '.join(registry.names())}[/]")
        raise _fatal(str(e))
    except ConfigurationError as e:
        raise _fatal(str(e))
    log.info("Active checks: %s", ", ".join(c.name for c in registry.ordered(active)) or "none")

    if list_checks:
        if not active:
            console.print("[yellow]No checks are enabled.[/]")
        else:
            Console(force_terminal=color, no_color=not color).print(_checks_table(registry, active, color))
        raise typer.Exit(code=0)

    try:
        account = S3Account(
            profile=profile or settings.profile,
            region=region or settings.region,
            endpoint_url=endpoint_url or settings.endpoint_url,
        )
        buckets = account.list_buckets()
    except DiscoveryError as e:
        raise _fatal(str(e))

    if not buckets:
        console.print("[yellow]No buckets found in this account.[/]")

    checks_progress: Progress | None = None
    task_id: Any = None
    if progress and buckets:
        checks_progress = Progress(
            SpinnerColumn(spinner_name="dots"),
            BarColumn(bar_width=40),
            TextColumn("{task.completed}/{task.total} buckets", justify="right"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        checks_progress.start()
        task_id = checks_progress.add_task("Auditing buckets", total=len(buckets))

    def on_progress(done: int, total: int) -> None:
        if checks_progress is not None:
            checks_progress.update(task_id, completed=done, total=total)

    try:
        report = runner.run(
            buckets,
            active,
            account,
            registry=registry,
            workers=workers or settings.workers,
            max_requests=max_requests or settings.max_requests,
            on_progress=on_progress,
        )
    finally:
        if checks_progress is not None:
            checks_progress.stop()

    if output:
        output.write_text(render(report, fmt, registry=registry, color=False))
        console.print(f"Wrote report to {output}")
    elif fmt == "table":
        Console(force_terminal=color, no_color=not color).print(to_table(report, registry=registry, color=color))
    else:
        typer.echo(render(report, fmt, registry=registry).rstrip("\n"))

    counts = report.status_counts()
    ordered_statuses = [Status.PASS, Status.WARN, Status.FAIL, Status.SKIP, Status.ERROR]
    summary_parts = [f"{counts[status]} {status.value}" for status in ordered_statuses if counts.get(status)]
    if progress:
        console.print(f"Summary: {', '.join(summary_parts) or 'No checks executed'}", style="dim")
    if show_duration:
        console.print(f"Elapsed time: {time.perf_counter() - start_time:.2f}s", style="dim")

    if report.has_findings():
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command()
def checks(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table|json"),
    plugins: bool = typer.Option(True, help="Load checks from entry points (s3audit.checks)"),
    color: bool = typer.Option(True, "--color/--no-color", help="Colorize table output"),
):
    """List every known check with its aliases and guidance."""
    registry = default_registry(plugins=plugins)
    fmt = format.lower().strip()

    if fmt == "json":
        payload = [
            {
                "name": check.meta.name,
                "title": check.meta.title,
                "aliases": list(check.meta.aliases),
                "concern": check.meta.concern.value,
                "severity": check.meta.severity.value,
                "tags": sorted(check.meta.tags),
                "description": check.meta.description,
                "explanation": check.meta.explanation,
                "remediation": check.meta.remediation,
            }
            for check in registry
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if fmt == "table":
        color = _color_enabled(color)
        Console(force_terminal=color, no_color=not color).print(_checks_table(registry, None, color))
        return

    raise typer.BadParameter("must be one of: table, json", param_hint="--format")


if __name__ == "__main__":
    app()
