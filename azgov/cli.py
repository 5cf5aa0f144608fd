from __future__ import annotations

from pathlib import Path

import typer
from rich import print

from .cli_assignments import assignments_app
from .cli_compliance import compliance_app
from .cli_roles import roles_app
from .cli_waf import waf_app
from .logging_utils import setup_logging

app = typer.Typer(help="Azure governance utility CLI")
app.add_typer(roles_app, name="roles")
app.add_typer(compliance_app, name="compliance")
app.add_typer(assignments_app, name="assignments")
app.add_typer(waf_app, name="waf")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", envvar="AZGOV_LOG_LEVEL", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
):
    setup_logging(log_level, json=json_logs)


@app.command()
def init_config(out: Path = typer.Option("config.yaml", help="Output config path")):
    """Create a starter config file."""
    example = Path(__file__).resolve().parent / "config.example.yaml"
    if not example.exists():
        print(f"[red]Template not found: {example}")
        raise typer.Exit(code=1)
    out_path = Path(out)
    out_path.write_text(example.read_text())
    print(f"[green]Wrote config template to {out_path}")


if __name__ == "__main__":
    app()
