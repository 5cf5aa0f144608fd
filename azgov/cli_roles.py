"""CLI commands for validating custom role definitions against provider operations."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import print

from .azcli import AzureCliError
from .catalog import CatalogLoadError, get_catalog, save_catalog_file
from .cli_common import get_runner, load_config, split_csv
from .reporting.report import (
    ROLE_CSV_FIELDS,
    print_role_reports,
    role_validation_rows,
    write_csv,
    write_json,
)
from .roles import fetch_role_definitions, load_role_file, validate_role, validate_roles

roles_app = typer.Typer(help="Validate custom role definitions")


@roles_app.command("validate", help="Check role actions against registered provider operations")
def validate_cmd(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    role: Optional[str] = typer.Option(None, help="Comma-separated role names or ids"),
    role_file: Optional[Path] = typer.Option(None, exists=True, help="Custom role JSON file"),
    all_custom: bool = typer.Option(False, "--all-custom", help="Validate every custom role"),
    scope: Optional[str] = typer.Option(None, help="Scope to look roles up at"),
    namespaces: Optional[str] = typer.Option(None, help="Comma-separated provider namespaces"),
    refresh: bool = typer.Option(False, help="Ignore the cached operation catalog"),
    data_actions: bool = typer.Option(False, "--data-actions", help="Also validate data actions"),
    out_csv: Optional[Path] = typer.Option(None, help="Write per-action results to CSV"),
    out_json: Optional[Path] = typer.Option(None, help="Write results to JSON"),
):
    """Validate Actions/NotActions of one or more roles. Exits 2 if any action is invalid."""
    if not (role or role_file or all_custom):
        raise typer.BadParameter("Provide --role, --role-file or --all-custom")

    cfg = load_config(config)
    runner = get_runner(cfg)

    try:
        catalog = get_catalog(
            runner=runner,
            namespaces=split_csv(namespaces) or cfg.catalog.namespaces or None,
            cache_file=cfg.catalog.cache_file,
            refresh=refresh,
        )
    except CatalogLoadError as e:
        print(f"[red]Cannot load provider operations:[/red] {e}")
        raise typer.Exit(code=1) from e
    print(f"[cyan]Loaded {len(catalog)} provider operations")

    reports = []
    skipped: list[str] = []
    if role_file:
        try:
            definitions = load_role_file(role_file)
        except ValueError as e:
            raise typer.BadParameter(f"Invalid role file {role_file}: {e}") from e
        for definition in definitions:
            reports.append(validate_role(definition, catalog, include_data_actions=data_actions))
    if role:
        found, missing = validate_roles(
            split_csv(role),
            catalog,
            runner=runner,
            custom_only=False,
            scope=scope,
            include_data_actions=data_actions,
        )
        reports.extend(found)
        skipped.extend(missing)
    if all_custom:
        try:
            definitions = fetch_role_definitions(custom_only=True, scope=scope, runner=runner)
        except AzureCliError as e:
            print(f"[red]Could not list custom roles:[/red] {e}")
            raise typer.Exit(code=1) from e
        for definition in definitions:
            reports.append(validate_role(definition, catalog, include_data_actions=data_actions))

    print_role_reports(reports, skipped)

    if out_csv:
        write_csv(role_validation_rows(reports), out_csv, ROLE_CSV_FIELDS)
        print(f"[green]Wrote {out_csv}")
    if out_json:
        write_json({"roles": [r.to_dict() for r in reports], "skipped": skipped}, out_json)
        print(f"[green]Wrote {out_json}")

    if any(not r.is_valid for r in reports):
        raise typer.Exit(code=2)


@roles_app.command("catalog", help="Download the provider operation catalog to a JSON file")
def catalog_cmd(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    out: Optional[Path] = typer.Option(None, help="Output JSON (default: configured cache file)"),
    namespaces: Optional[str] = typer.Option(None, help="Comma-separated provider namespaces"),
):
    cfg = load_config(config)
    target = out or (Path(cfg.catalog.cache_file) if cfg.catalog.cache_file else Path("operations.json"))
    selected = split_csv(namespaces) or cfg.catalog.namespaces or None
    try:
        catalog = get_catalog(runner=get_runner(cfg), namespaces=selected, refresh=True)
    except CatalogLoadError as e:
        print(f"[red]Cannot load provider operations:[/red] {e}")
        raise typer.Exit(code=1) from e
    save_catalog_file(catalog, target, namespaces=selected)
    print(f"[green]Wrote {len(catalog)} operations across {len(catalog.namespaces())} namespace(s) to {target}")
