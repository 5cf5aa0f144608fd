"""Tests for the Azure CLI wrapper."""

import subprocess
import types

import pytest

from azgov.azcli import AzureCliError, list_subscriptions, make_runner, run_az


def _completed(stdout):
    return types.SimpleNamespace(stdout=stdout, stderr="", returncode=0)


def test_run_az_parses_json_and_adds_output_flag(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        return _completed('[{"id": "1"}]')

    monkeypatch.setattr("azgov.azcli.subprocess.run", fake_run)
    assert run_az(["account", "list"]) == [{"id": "1"}]
    assert seen["cmd"] == ["az", "account", "list", "-o", "json"]


def test_run_az_empty_output_is_none(monkeypatch):
    monkeypatch.setattr("azgov.azcli.subprocess.run", lambda cmd, **kw: _completed("  \n"))
    assert run_az(["role", "assignment", "delete", "--ids", "x"]) is None


def test_run_az_failure_carries_stderr(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, output="", stderr="ERROR: Please run 'az login'")

    monkeypatch.setattr("azgov.azcli.subprocess.run", fake_run)
    with pytest.raises(AzureCliError) as exc:
        run_az(["account", "list"])
    assert "az login" in str(exc.value)
    assert exc.value.stderr == "ERROR: Please run 'az login'"


def test_run_az_missing_executable(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("azgov.azcli.subprocess.run", fake_run)
    with pytest.raises(AzureCliError, match="not found"):
        run_az(["account", "list"], az_path="/opt/az")


def test_run_az_non_json_output(monkeypatch):
    monkeypatch.setattr("azgov.azcli.subprocess.run", lambda cmd, **kw: _completed("Done."))
    with pytest.raises(AzureCliError, match="JSON"):
        run_az(["version"])


def test_make_runner_uses_configured_executable(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        return _completed("{}")

    monkeypatch.setattr("azgov.azcli.subprocess.run", fake_run)
    make_runner("/usr/local/bin/az")(["account", "show"])
    assert seen["cmd"][0] == "/usr/local/bin/az"


def test_list_subscriptions_filters_disabled(fake_az):
    fake_az.on(
        "account",
        "list",
        returns=[{"id": "a", "state": "Enabled"}, {"id": "b", "state": "Disabled"}],
    )
    assert [s["id"] for s in list_subscriptions(runner=fake_az)] == ["a"]
    assert [s["id"] for s in list_subscriptions(runner=fake_az, include_disabled=True)] == ["a", "b"]
