import copy

import pytest

from azgov.azcli import AzureCliError


class FakeAz:
    """Records az invocations and replays canned JSON for matching arguments."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self._responses: list[tuple[tuple[str, ...], object, Exception | None]] = []

    def on(self, *tokens, returns=None, raises=None):
        self._responses.append((tokens, returns, raises))
        return self

    def fail(self, *tokens, message="az failed"):
        return self.on(*tokens, raises=AzureCliError(message, cmd=list(tokens), stderr=message))

    def __call__(self, args):
        self.calls.append(list(args))
        for tokens, returns, raises in self._responses:
            if all(t in args for t in tokens):
                if raises is not None:
                    raise raises
                return copy.deepcopy(returns)
        raise AssertionError(f"Unexpected az call: {args}")

    def calls_with(self, *tokens):
        return [c for c in self.calls if all(t in c for t in tokens)]


@pytest.fixture
def fake_az():
    return FakeAz()


@pytest.fixture
def cli_az(fake_az, monkeypatch, tmp_path):
    """Route CLI commands to the fake runner and isolate them from any local config.yaml."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("azgov.cli_common.make_runner", lambda az_path="az": fake_az)
    return fake_az


SUB_A = "11111111-1111-1111-1111-111111111111"
SUB_B = "22222222-2222-2222-2222-222222222222"

PROVIDER_OPERATIONS = [
    {
        "name": "Microsoft.Compute",
        "operations": [{"name": "Microsoft.Compute/register/action"}],
        "resourceTypes": [
            {
                "name": "virtualMachines",
                "operations": [
                    {"name": "Microsoft.Compute/virtualMachines/read"},
                    {"name": "Microsoft.Compute/virtualMachines/write"},
                ],
            }
        ],
    },
    {
        "name": "Microsoft.Storage",
        "operations": [],
        "resourceTypes": [
            {
                "name": "storageAccounts",
                "operations": [{"name": "Microsoft.Storage/storageAccounts/read"}],
            }
        ],
    },
]
