"""CLI commands for policy compliance reports and remediation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import print

from .cli_common import get_runner, load_config, output_path, resolve_subscriptions
from .compliance import (
    CSV_FIELDS,
    DISCOVERY_MODES,
    build_compliance_report,
    remediation_targets,
    trigger_remediations,
)
from .reporting.report import (
    print_compliance_summary,
    print_remediation_outcomes,
    write_csv,
    write_json,
)

compliance_app = typer.Typer(help="Policy compliance reporting and remediation")


@compliance_app.command("report", help="Export non-compliant resources to CSV")
def report_cmd(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    subscriptions: Optional[str] = typer.Option(None, help="Comma-separated subscription ids"),
    policy_assignment: Optional[str] = typer.Option(None, help="Restrict to one policy assignment"),
    out_csv: Optional[Path] = typer.Option(None, help="CSV path (default: <output_dir>/compliance-report.csv)"),
    out_json: Optional[Path] = typer.Option(None, help="Also write the summary to JSON"),
):
    cfg = load_config(config)
    runner = get_runner(cfg)
    subs = resolve_subscriptions(cfg, runner, subscriptions)

    report = build_compliance_report(
        subs,
        runner=runner,
        exclude_assignments=cfg.compliance.exclude_assignments,
        policy_assignment=policy_assignment,
    )
    print_compliance_summary(report)

    csv_path = output_path(cfg, out_csv, "compliance-report.csv")
    write_csv((r.to_row() for r in report.records), csv_path, CSV_FIELDS)
    print(f"[green]Wrote {len(report.records)} record(s) to {csv_path}")
    if out_json:
        write_json(report.summary(), out_json)
        print(f"[green]Wrote summary to {out_json}")

    if report.errors and len(report.errors) == len(report.subscriptions):
        raise typer.Exit(code=1)


@compliance_app.command("remediate", help="Create remediation tasks for non-compliant assignments")
def remediate_cmd(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    subscriptions: Optional[str] = typer.Option(None, help="Comma-separated subscription ids"),
    policy_assignment: Optional[str] = typer.Option(None, help="Restrict to one policy assignment"),
    discovery_mode: Optional[str] = typer.Option(
        None, help=f"Resource discovery mode ({', '.join(DISCOVERY_MODES)})"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show what would be created"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not prompt for confirmation"),
):
    cfg = load_config(config)
    mode = discovery_mode or cfg.compliance.discovery_mode
    if mode not in DISCOVERY_MODES:
        raise typer.BadParameter(f"discovery mode must be one of {', '.join(DISCOVERY_MODES)}")

    runner = get_runner(cfg)
    subs = resolve_subscriptions(cfg, runner, subscriptions)
    report = build_compliance_report(
        subs,
        runner=runner,
        exclude_assignments=cfg.compliance.exclude_assignments,
        policy_assignment=policy_assignment,
    )
    targets = remediation_targets(report.records)
    if not targets:
        print("[green]Nothing to remediate")
        return

    print(f"[cyan]{len(targets)} remediation task(s) across {len(subs)} subscription(s)")
    if not dry_run and not yes:
        typer.confirm("Create remediation tasks?", abort=True)

    outcomes = trigger_remediations(targets, mode, runner=runner, dry_run=dry_run)
    print_remediation_outcomes(outcomes)
    if any(o.status == "failed" for o in outcomes):
        raise typer.Exit(code=1)
