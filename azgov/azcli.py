"""Thin wrapper around the Azure CLI used by every azgov workflow."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Callable

logger = logging.getLogger(__name__)

AzRunner = Callable[[list[str]], Any]


class AzureCliError(RuntimeError):
    """Raised when an ``az`` command fails or returns output that is not JSON."""

    def __init__(self, message: str, cmd: list[str] | None = None, stderr: str | None = None):
        super().__init__(message)
        self.cmd = cmd or []
        self.stderr = stderr


def run_az(args: list[str], az_path: str = "az") -> Any:
    """Run an Azure CLI command and return its parsed JSON output.

    Args:
        args: Arguments after the ``az`` executable, e.g. ``["account", "list"]``.
        az_path: Azure CLI executable to invoke.

    Returns:
        Parsed JSON (list or dict), or None when the command printed nothing
        (delete operations, for instance).
    """
    cmd = [az_path, *args]
    if "-o" not in args and "--output" not in args:
        cmd += ["-o", "json"]
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    except FileNotFoundError as e:
        raise AzureCliError(f"Azure CLI not found: {az_path}", cmd=cmd) from e
    except subprocess.CalledProcessError as e:
        raise AzureCliError(
            f"Azure CLI command failed: {e.stderr.strip() if e.stderr else e}",
            cmd=cmd,
            stderr=e.stderr,
        ) from e

    out = result.stdout.strip()
    if not out:
        return None
    try:
        return json.loads(out)
    except json.JSONDecodeError as e:
        raise AzureCliError(f"Could not parse Azure CLI output as JSON: {e}", cmd=cmd) from e


def make_runner(az_path: str = "az") -> AzRunner:
    """Return a runner bound to a specific Azure CLI executable."""

    def _runner(args: list[str]) -> Any:
        return run_az(args, az_path=az_path)

    return _runner


def list_subscriptions(runner: AzRunner | None = None, include_disabled: bool = False) -> list[dict]:
    """List subscriptions visible to the signed-in account."""
    run = runner or run_az
    subs = run(["account", "list", "--all"]) or []
    if not include_disabled:
        subs = [s for s in subs if s.get("state", "Enabled") == "Enabled"]
    logger.info("Found %d subscription(s)", len(subs))
    return subs
