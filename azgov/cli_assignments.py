"""CLI commands for listing and removing a principal's role assignments."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import print

from .assignments import CSV_FIELDS, find_user_assignments, remove_assignments
from .cli_common import get_runner, load_config, resolve_subscriptions
from .reporting.report import print_assignments, write_csv

assignments_app = typer.Typer(help="Role assignments of a user or principal")


@assignments_app.command("list", help="List a principal's role assignments across subscriptions")
def list_cmd(
    assignee: str = typer.Argument(..., help="User principal name, object id or app id"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    subscriptions: Optional[str] = typer.Option(None, help="Comma-separated subscription ids"),
    out_csv: Optional[Path] = typer.Option(None, help="Write assignments to CSV"),
):
    cfg = load_config(config)
    runner = get_runner(cfg)
    subs = resolve_subscriptions(cfg, runner, subscriptions)

    found, errors = find_user_assignments(assignee, subs, runner=runner)
    print_assignments(found)
    print(f"[cyan]{len(found)} unique assignment(s) for {assignee} across {len(subs)} subscription(s)")
    for sub, err in errors.items():
        print(f"[yellow]Subscription {sub} skipped: {err}")
    if out_csv:
        write_csv((a.to_row() for a in found), out_csv, CSV_FIELDS)
        print(f"[green]Wrote {out_csv}")


@assignments_app.command("remove", help="Remove all of a principal's role assignments")
def remove_cmd(
    assignee: str = typer.Argument(..., help="User principal name, object id or app id"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    subscriptions: Optional[str] = typer.Option(None, help="Comma-separated subscription ids"),
    include_inherited: bool = typer.Option(
        False, help="Also remove management-group and root scope assignments"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show what would be removed"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not prompt for confirmation"),
    out_csv: Optional[Path] = typer.Option(None, help="Write removed assignments to CSV"),
):
    cfg = load_config(config)
    runner = get_runner(cfg)
    subs = resolve_subscriptions(cfg, runner, subscriptions)

    found, errors = find_user_assignments(assignee, subs, runner=runner)
    for sub, err in errors.items():
        print(f"[yellow]Subscription {sub} skipped: {err}")

    targets = found if include_inherited else [a for a in found if not a.is_inherited]
    kept = len(found) - len(targets)
    if kept:
        print(f"[yellow]Leaving {kept} inherited assignment(s); pass --include-inherited to remove them")
    if not targets:
        print(f"[green]No role assignments to remove for {assignee}")
        return

    print_assignments(targets)
    if not dry_run and not yes:
        typer.confirm(f"Remove {len(targets)} role assignment(s) for {assignee}?", abort=True)

    result = remove_assignments(targets, runner=runner, dry_run=dry_run)
    verb = "Would remove" if dry_run else "Removed"
    print(f"[green]{verb} {len(result.removed)} assignment(s)")
    for assignment_id, err in result.failed.items():
        print(f"[red]Failed {assignment_id}: {err}")

    if out_csv:
        write_csv((a.to_row() for a in result.removed), out_csv, CSV_FIELDS)
        print(f"[green]Wrote {out_csv}")
    if result.failed:
        raise typer.Exit(code=1)
