from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich import print

from .azcli import AzRunner, AzureCliError, list_subscriptions, make_runner
from .config import AppConfig

DEFAULT_CONFIG = Path("config.yaml")


def load_config(path: Path | None) -> AppConfig:
    """Load the config file if given (or ./config.yaml if present), else defaults."""
    if path is None:
        if not DEFAULT_CONFIG.exists():
            return AppConfig()
        path = DEFAULT_CONFIG
    try:
        return AppConfig.load(path)
    except (OSError, ValidationError) as e:
        raise typer.BadParameter(f"Invalid config {path}: {e}") from e


def get_runner(cfg: AppConfig) -> AzRunner:
    return make_runner(cfg.az_path)


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def resolve_subscriptions(cfg: AppConfig, runner: AzRunner, explicit: str | None = None) -> list[str]:
    """Subscriptions from the flag, else the config, else every enabled subscription."""
    subs = split_csv(explicit) or list(cfg.subscriptions)
    if subs:
        return subs
    try:
        found = list_subscriptions(runner=runner)
    except AzureCliError as e:
        print(f"[red]Could not list subscriptions:[/red] {e}")
        raise typer.Exit(code=1) from e
    if cfg.tenant_id:
        found = [s for s in found if s.get("tenantId") == cfg.tenant_id]
    if not found:
        print("[yellow]No enabled subscriptions found")
        raise typer.Exit(code=1)
    return [s["id"] for s in found]


def output_path(cfg: AppConfig, out: Path | None, default_name: str) -> Path:
    return out if out is not None else Path(cfg.output_dir) / default_name
