"""CLI commands for Application Gateway WAF policy exceptions."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import print

from .azcli import AzureCliError
from .cli_common import get_runner, load_config
from .config import AppConfig
from .reporting.report import print_waf_exceptions
from .waf import add_exception, build_exception, list_exceptions, parse_rule_ids

waf_app = typer.Typer(help="WAF policy managed-rule exceptions")


def _policy(cfg: AppConfig, resource_group: str | None, policy_name: str | None) -> tuple[str, str]:
    rg = resource_group or cfg.waf.resource_group
    name = policy_name or cfg.waf.policy_name
    if not rg or not name:
        raise typer.BadParameter("--resource-group and --policy-name are required (or set waf in config)")
    return rg, name


@waf_app.command("add", help="Add a managed-rule exception to a WAF policy")
def add_cmd(
    values: List[str] = typer.Argument(..., help="Values to match"),
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    resource_group: Optional[str] = typer.Option(None, help="Resource group of the WAF policy"),
    policy_name: Optional[str] = typer.Option(None, help="WAF policy name"),
    match_variable: str = typer.Option("RequestURI", help="Request part to match"),
    value_operator: str = typer.Option("Contains", help="Equals, Contains, StartsWith, EndsWith, EqualsAny, IPMatch"),
    rule_set_type: str = typer.Option("OWASP", help="Managed rule set type"),
    rule_set_version: str = typer.Option("3.2", help="Managed rule set version"),
    rule_group: Optional[str] = typer.Option(None, help="Rule group, e.g. REQUEST-942-APPLICATION-ATTACK-SQLI"),
    rule_ids: Optional[str] = typer.Option(None, help="Comma-separated rule ids within the group"),
):
    cfg = load_config(config)
    rg, name = _policy(cfg, resource_group, policy_name)
    try:
        exception = build_exception(
            match_variable,
            value_operator,
            values,
            rule_group=rule_group,
            rule_ids=parse_rule_ids(rule_ids),
            rule_set_type=rule_set_type,
            rule_set_version=rule_set_version,
        )
    except (ValidationError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e

    try:
        add_exception(rg, name, exception, runner=get_runner(cfg))
    except AzureCliError as e:
        print(f"[red]Failed to add exception:[/red] {e}")
        raise typer.Exit(code=1) from e
    print(f"[green]Added exception to {rg}/{name}")


@waf_app.command("list", help="List managed-rule exceptions on a WAF policy")
def list_cmd(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    resource_group: Optional[str] = typer.Option(None, help="Resource group of the WAF policy"),
    policy_name: Optional[str] = typer.Option(None, help="WAF policy name"),
):
    cfg = load_config(config)
    rg, name = _policy(cfg, resource_group, policy_name)
    try:
        exceptions = list_exceptions(rg, name, runner=get_runner(cfg))
    except AzureCliError as e:
        print(f"[red]Failed to list exceptions:[/red] {e}")
        raise typer.Exit(code=1) from e
    print_waf_exceptions(exceptions)
