"""Console tables and file exports for azgov reports."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable

from rich.console import Console
from rich.table import Table

from ..assignments import RoleAssignment
from ..compliance import ComplianceReport, RemediationOutcome
from ..roles import RoleValidationReport


def write_csv(rows: Iterable[dict[str, Any]], path: Path | str, fieldnames: list[str]) -> Path:
    """Write rows to a CSV file with a fixed column order."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return p


def write_json(data: Any, path: Path | str) -> Path:
    """Write data as indented JSON."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return p


def role_validation_rows(reports: Iterable[RoleValidationReport]) -> list[dict[str, Any]]:
    """Flatten role reports to one row per action pattern."""
    rows = []
    for r in reports:
        sections = {"actions": r.actions, "not_actions": r.not_actions}
        if r.data_actions is not None:
            sections["data_actions"] = r.data_actions
        if r.not_data_actions is not None:
            sections["not_data_actions"] = r.not_data_actions
        for facet, result in sections.items():
            for pattern in result.valid:
                rows.append({"role": r.role.name, "facet": facet, "action": pattern, "valid": True})
            for pattern in result.invalid:
                rows.append({"role": r.role.name, "facet": facet, "action": pattern, "valid": False})
    return rows


ROLE_CSV_FIELDS = ["role", "facet", "action", "valid"]


def print_role_reports(
    reports: list[RoleValidationReport],
    skipped: list[str] | None = None,
    console: Console | None = None,
) -> None:
    """Print per-role invalid actions and an overall summary."""
    console = console or Console()
    table = Table(title="Custom Role Action Validation")
    table.add_column("Role", style="cyan")
    table.add_column("Valid", justify="right", style="green")
    table.add_column("Invalid", justify="right", style="red")
    table.add_column("Status")

    for r in reports:
        status = "[green]✓ OK[/green]" if r.is_valid else "[red]✗ Invalid actions[/red]"
        table.add_row(r.role.name, str(r.valid_count), str(r.invalid_count), status)
    console.print(table)

    for r in reports:
        if r.is_valid:
            continue
        console.print(f"\n[bold]{r.role.name}[/bold]")
        for label, result in (
            ("Actions", r.actions),
            ("NotActions", r.not_actions),
            ("DataActions", r.data_actions),
            ("NotDataActions", r.not_data_actions),
        ):
            if result is None:
                continue
            for pattern in result.invalid:
                console.print(f"  [red]✗[/red] {label}: {pattern}")

    total_valid = sum(r.valid_count for r in reports)
    total_invalid = sum(r.invalid_count for r in reports)
    console.print(
        f"\nRoles: {len(reports)} | [green]Valid actions: {total_valid}[/green] | "
        f"[red]Invalid actions: {total_invalid}[/red]"
    )
    if skipped:
        console.print(f"[yellow]Skipped roles: {', '.join(skipped)}[/yellow]")


def print_compliance_summary(report: ComplianceReport, console: Console | None = None) -> None:
    """Print non-compliant counts per subscription and assignment."""
    console = console or Console()
    summary = report.summary()

    table = Table(title="Non-compliant Resources by Policy Assignment")
    table.add_column("Policy Assignment", style="cyan")
    table.add_column("Resources", justify="right", style="red")
    for name, count in summary["by_assignment"].items():
        table.add_row(name, str(count))
    console.print(table)

    console.print(
        f"Subscriptions scanned: {summary['subscriptions_scanned']} | "
        f"Non-compliant states: {summary['total_noncompliant']} | "
        f"Unique resources: {summary['unique_resources']}"
    )
    for sub, err in report.errors.items():
        console.print(f"[yellow]Subscription {sub} failed: {err}[/yellow]")


def print_remediation_outcomes(outcomes: list[RemediationOutcome], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="Remediation Tasks")
    table.add_column("Subscription", style="cyan")
    table.add_column("Assignment")
    table.add_column("Reference Id")
    table.add_column("Resources", justify="right")
    table.add_column("Task")
    table.add_column("Status")
    colors = {"created": "green", "dry-run": "yellow", "failed": "red"}
    for o in outcomes:
        color = colors.get(o.status, "white")
        table.add_row(
            o.target.subscription_id,
            o.target.policy_assignment_name,
            o.target.definition_reference_id or "—",
            str(o.target.resource_count),
            o.task_name or "—",
            f"[{color}]{o.status}[/{color}]",
        )
    console.print(table)


def print_assignments(assignments: list[RoleAssignment], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="Role Assignments")
    table.add_column("Role", style="cyan")
    table.add_column("Scope")
    table.add_column("Seen In", justify="right")
    for a in assignments:
        scope = a.scope or "—"
        if a.is_inherited:
            scope += " [dim](inherited)[/dim]"
        table.add_row(a.role_name or "—", scope, str(len(a.subscriptions_seen)))
    console.print(table)


def print_waf_exceptions(exceptions: list[dict[str, Any]], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="WAF Managed Rule Exceptions")
    table.add_column("Match Variable", style="cyan")
    table.add_column("Operator")
    table.add_column("Values")
    table.add_column("Rule Sets")
    for ex in exceptions:
        rule_sets = []
        for rs in ex.get("exceptionManagedRuleSets") or ex.get("ruleSets") or []:
            groups = [g.get("ruleGroupName", "") for g in rs.get("ruleGroups") or []]
            label = f"{rs.get('ruleSetType', '')} {rs.get('ruleSetVersion', '')}".strip()
            if groups:
                label += f" ({', '.join(groups)})"
            rule_sets.append(label)
        table.add_row(
            str(ex.get("matchVariable", "")),
            str(ex.get("valueMatchOperator") or ex.get("valueOperator") or ""),
            ", ".join(ex.get("values") or []),
            "; ".join(rule_sets) or "—",
        )
    console.print(table)
