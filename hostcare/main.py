"""
hostcare — CLI entrypoint.

Usage:
    python -m hostcare.main --help
    python -m hostcare.main run web1 web2
    python -m hostcare.main run --step apt-update --mock localhost
    python -m hostcare.main config check
"""

from __future__ import annotations

import json
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from hostcare import __version__
from hostcare.core.engine.orchestrator import STEP_NAMES
from hostcare.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="hostcare")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostcare.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostcare — routine maintenance for a small fleet of hosts."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@contextmanager
def _cancel_on_signal(cancel: threading.Event) -> Iterator[None]:
    """Set ``cancel`` on SIGINT/SIGTERM for the duration of the block.

    Steps already running finish; the orchestrator stops between steps.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        if not cancel.is_set():
            click.secho(
                "\n⚠️  Cancelling: waiting for running steps to finish...",
                fg="yellow",
                err=True,
            )
        cancel.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


_OUTCOME_STYLE = {
    "success": ("✓", "green"),
    "failed": ("✗", "red"),
    "skipped": ("⊘", "yellow"),
}


@cli.command()
@click.argument("hosts", nargs=-1)
@click.option(
    "--step",
    "-s",
    "steps",
    multiple=True,
    type=click.Choice(STEP_NAMES),
    help="Run only this step (repeatable). Default: all steps.",
)
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None,
              help="Hosts processed in parallel.")
@click.option("--disk-threshold", type=click.IntRange(min=0), default=None,
              help="Low-disk warning threshold in KB.")
@click.option("--cache-valid-time", type=click.IntRange(min=0), default=None,
              help="Seconds a package index refresh stays fresh.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Per-command timeout in seconds.")
@click.option("--upgrade-timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Timeout for upgrade and autoremove in seconds.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use mock transport (no real execution).")
@click.option("--no-audit", is_flag=True, help="Don't append the run to the audit ledger.")
@click.pass_context
def run(
    ctx: click.Context,
    hosts: tuple[str, ...],
    steps: tuple[str, ...],
    workers: int | None,
    disk_threshold: int | None,
    cache_valid_time: int | None,
    timeout: float | None,
    upgrade_timeout: float | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
) -> None:
    """Run maintenance on HOSTS (default: every host in hostcare.yml).

    Examples:

        hostcare run web1 web2

        hostcare run --step apt-update --step docker-cleanup pve1

        hostcare run --mock localhost
    """
    from hostcare.core.use_cases.run import run_maintenance

    cancel = threading.Event()
    with _cancel_on_signal(cancel):
        result = run_maintenance(
            host_names=list(hosts) or None,
            config_path=ctx.obj.get("config_path"),
            step_names=list(steps) or None,
            overrides={
                "disk_space_threshold_kb": disk_threshold,
                "cache_valid_time": cache_valid_time,
                "command_timeout": timeout,
                "upgrade_timeout": upgrade_timeout,
                "max_workers": workers,
            },
            mock_mode=mock,
            cancel=cancel,
            audit=not no_audit,
        )

    if result.no_hosts:
        raise click.UsageError(result.error or "No target hosts.", ctx=ctx)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None
    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    if not quiet:
        mode_label = "[mock] " if mock else ""
        click.secho(f"\n🔧 {mode_label}Maintenance run {report.operation_id}", fg="cyan", bold=True)
        click.echo(f"   Hosts: {len(report.hosts)} | Steps: {', '.join(report.steps)}")

    for host_name, results in report.by_host().items():
        click.echo()
        click.secho(f"   {host_name}", fg="white", bold=True)
        for step_result in results:
            marker, color = _OUTCOME_STYLE[step_result.outcome.value]
            click.secho(f"     {marker} {step_result.step}", fg=color, nl=False)
            click.echo(f"  {step_result.detail}" if step_result.detail else "")
            for note in step_result.annotations:
                click.secho(f"       ⚠️  {note}", fg="yellow")
            if verbose or step_result.failed:
                for sub in step_result.substeps:
                    if not verbose and not sub.failed:
                        continue
                    sub_marker, sub_color = _OUTCOME_STYLE[sub.outcome.value]
                    click.secho(f"       {sub_marker} {sub.name}", fg=sub_color, nl=False)
                    click.echo(f"  {sub.detail}" if sub.detail else "")

    # Summary
    click.echo()
    if report.cancelled:
        click.secho("   ⚠️  Run was cancelled; remaining steps were skipped.", fg="yellow")
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
        report.status, "white"
    )
    click.secho(
        f"   Result: {report.succeeded} succeeded, {report.failed} failed, "
        f"{report.skipped} skipped ({report.duration_ms}ms)",
        fg=status_color,
        bold=True,
    )
    if result.audit_path and not quiet:
        click.echo(f"   📝 Logged to {result.audit_path}")
    click.echo()

    sys.exit(report.exit_code)


@cli.command()
@click.argument("hosts", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use mock transport (no real execution).")
@click.pass_context
def detect(ctx: click.Context, hosts: tuple[str, ...], as_json: bool, mock: bool) -> None:
    """Detect capabilities of HOSTS without changing anything."""
    from hostcare.core.use_cases.detect import detect_capabilities

    result = detect_capabilities(
        host_names=list(hosts) or None,
        config_path=ctx.obj.get("config_path"),
        mock_mode=mock,
    )

    if result.no_hosts:
        raise click.UsageError(result.error or "No target hosts.", ctx=ctx)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if not result.error and result.all_reachable else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho("\n🔍 Capabilities", fg="cyan", bold=True)
    for detection in result.hosts:
        click.echo()
        if detection.capabilities is None:
            click.secho(f"   ✗ {detection.host} ", fg="red", nl=False)
            click.echo(f"(unreachable: {detection.error})")
            continue

        click.secho(f"   ✓ {detection.host}", fg="green", bold=True)
        for capability, present in detection.capabilities.to_dict().items():
            marker = "✓" if present else "·"
            click.echo(f"     {marker} {capability}")
        steps_label = ", ".join(detection.applicable_steps) or "none"
        click.echo(f"     → steps: {steps_label}")

    click.echo()
    if not result.all_reachable:
        sys.exit(1)


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate hostcare.yml configuration."""
    from hostcare.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        settings = result.config.settings
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path}")
        click.echo(f"   Hosts: {len(result.config.hosts)}")
        for host in result.config.hosts:
            become = " (sudo)" if host.become else ""
            click.echo(f"     • {host.name} → {host.transport}:{host.target}{become}")
        click.echo(f"   Disk threshold: {settings.disk_space_threshold_kb} KB")
        click.echo(f"   Cache valid time: {settings.cache_valid_time}s")
        click.echo(f"   Workers: {settings.max_workers}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


# ── Register sub-command groups from hostcare/ui/cli/ ─────────────

from hostcare.ui.cli.history import history  # noqa: E402

cli.add_command(history)


if __name__ == "__main__":
    cli()
