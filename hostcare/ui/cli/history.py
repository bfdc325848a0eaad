"""
CLI command for run history — reads the audit ledger.

Usage::

    hostcare history
    hostcare history -n 5 --json
"""

from __future__ import annotations

import json

import click

from hostcare.core.config.loader import base_dir, find_config_file
from hostcare.core.persistence.audit import AuditWriter


@click.command()
@click.option("-n", "count", type=click.IntRange(min=1), default=10, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show the most recent maintenance runs."""
    config_path = ctx.obj.get("config_path") or find_config_file()
    writer = AuditWriter(base_dir=base_dir(config_path))
    entries = writer.read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho(f"No runs recorded in {writer.path}", fg="yellow")
        return

    click.secho(f"\n📜 Last {len(entries)} run(s)", fg="cyan", bold=True)
    for entry in reversed(entries):
        status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
            entry.status, "white"
        )
        click.echo()
        click.echo(f"   {entry.timestamp}  {entry.operation_id}  ", nl=False)
        click.secho(entry.status, fg=status_color, bold=True)
        click.echo(
            f"     {len(entry.hosts)} host(s), "
            f"{entry.results_succeeded} ok, {entry.results_failed} failed, "
            f"{entry.results_skipped} skipped ({entry.duration_ms}ms)"
        )
        if entry.context.get("cancelled"):
            click.secho("     cancelled", fg="yellow")
        for error in entry.errors[:5]:
            click.echo(f"     │ {error}")
    click.echo()
