"""Custom role definitions and validation of their actions against live operations."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .actions import ActionValidation, OperationCatalog, validate_actions
from .azcli import AzRunner, AzureCliError, run_az

logger = logging.getLogger(__name__)


def _field(data: dict[str, Any], *keys: str) -> Any:
    """Return the first key present in ``data``, trying PascalCase and camelCase spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _patterns(block: dict[str, Any], *keys: str) -> list[str]:
    """Return an action facet as a list of non-empty strings, raising ValueError otherwise."""
    value = _field(block, *keys)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ValueError(f"{keys[-1]} must be a list of non-empty strings, got {value!r}")
    return value


@dataclass
class RoleDefinition:
    """A named set of allow and deny action patterns."""

    name: str
    role_id: str | None = None
    description: str | None = None
    role_type: str | None = None
    actions: list[str] = field(default_factory=list)
    not_actions: list[str] = field(default_factory=list)
    data_actions: list[str] = field(default_factory=list)
    not_data_actions: list[str] = field(default_factory=list)
    assignable_scopes: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoleDefinition:
        """Build a role from ``az role definition`` output or a custom role JSON file.

        CLI output nests permissions under ``permissions[]``; role files keep
        ``Actions``/``NotActions`` at the top level. Both are accepted.
        """
        name = _field(data, "roleName", "RoleName", "Name")
        if not name:
            # az output carries the GUID under "name" and the display name under "roleName"
            name = _field(data, "name")
        if not name:
            raise ValueError("Role definition has no name")

        role = cls(
            name=name,
            role_id=_field(data, "id", "Id", "ID"),
            description=_field(data, "description", "Description"),
            role_type=_field(data, "roleType", "RoleType"),
            assignable_scopes=list(_field(data, "assignableScopes", "AssignableScopes") or []),
        )

        permissions = _field(data, "permissions", "Permissions")
        blocks = permissions if isinstance(permissions, list) else [data]
        for block in blocks:
            if not isinstance(block, dict):
                raise ValueError(f"permissions entries must be objects, got {block!r}")
            role.actions.extend(_patterns(block, "actions", "Actions"))
            role.not_actions.extend(_patterns(block, "notActions", "NotActions"))
            role.data_actions.extend(_patterns(block, "dataActions", "DataActions"))
            role.not_data_actions.extend(_patterns(block, "notDataActions", "NotDataActions"))
        return role


def load_role_file(path: Path | str) -> list[RoleDefinition]:
    """Load one role definition, or a list of them, from a JSON file."""
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    items = data if isinstance(data, list) else [data]
    return [RoleDefinition.from_dict(item) for item in items]


def fetch_role_definitions(
    name: str | None = None,
    custom_only: bool = True,
    scope: str | None = None,
    runner: AzRunner | None = None,
) -> list[RoleDefinition]:
    """Fetch role definitions via ``az role definition list``.

    Args:
        name: Role name or id to look up. All roles when omitted.
        custom_only: Only return custom roles.
        scope: Scope to list roles at (defaults to the current subscription).
        runner: Azure CLI runner.

    Definitions with malformed action lists are logged and left out.
    """
    run = runner or run_az
    args = ["role", "definition", "list"]
    if name:
        args += ["--name", name]
    if custom_only:
        args += ["--custom-role-only", "true"]
    if scope:
        args += ["--scope", scope]
    roles: list[RoleDefinition] = []
    for item in run(args) or []:
        try:
            roles.append(RoleDefinition.from_dict(item))
        except ValueError as e:
            logger.warning("Skipping malformed role definition %s: %s", item.get("roleName") or item.get("name"), e)
    return roles


@dataclass
class RoleValidationReport:
    """Validation outcome for a single role."""

    role: RoleDefinition
    actions: ActionValidation
    not_actions: ActionValidation
    data_actions: ActionValidation | None = None
    not_data_actions: ActionValidation | None = None

    def _sections(self) -> list[ActionValidation]:
        sections = [self.actions, self.not_actions]
        for extra in (self.data_actions, self.not_data_actions):
            if extra is not None:
                sections.append(extra)
        return sections

    @property
    def valid_count(self) -> int:
        return sum(len(s.valid) for s in self._sections())

    @property
    def invalid_count(self) -> int:
        return sum(len(s.invalid) for s in self._sections())

    @property
    def is_valid(self) -> bool:
        return self.invalid_count == 0

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "role": self.role.name,
            "role_id": self.role.role_id,
            "actions": self.actions.to_dict(),
            "not_actions": self.not_actions.to_dict(),
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
        }
        if self.data_actions is not None:
            out["data_actions"] = self.data_actions.to_dict()
        if self.not_data_actions is not None:
            out["not_data_actions"] = self.not_data_actions.to_dict()
        return out


def validate_role(
    role: RoleDefinition,
    catalog: OperationCatalog,
    include_data_actions: bool = False,
) -> RoleValidationReport:
    """Validate every action and not-action of ``role`` against ``catalog``."""
    report = RoleValidationReport(
        role=role,
        actions=validate_actions(role.actions, catalog),
        not_actions=validate_actions(role.not_actions, catalog),
    )
    if include_data_actions:
        report.data_actions = validate_actions(role.data_actions, catalog)
        report.not_data_actions = validate_actions(role.not_data_actions, catalog)
    logger.info(
        "Role %s: %d valid, %d invalid action(s)",
        role.name,
        report.valid_count,
        report.invalid_count,
    )
    return report


def validate_roles(
    names: list[str],
    catalog: OperationCatalog,
    runner: AzRunner | None = None,
    custom_only: bool = True,
    scope: str | None = None,
    include_data_actions: bool = False,
) -> tuple[list[RoleValidationReport], list[str]]:
    """Look up and validate each named role.

    A role that cannot be fetched, or whose definition is malformed, is skipped
    with a warning so the remaining roles are still validated.

    Returns:
        Tuple of (reports, skipped role names)
    """
    reports: list[RoleValidationReport] = []
    skipped: list[str] = []
    for name in names:
        try:
            roles = fetch_role_definitions(name=name, custom_only=custom_only, scope=scope, runner=runner)
        except AzureCliError as e:
            logger.warning("Skipping role %s: %s", name, e)
            skipped.append(name)
            continue
        if not roles:
            logger.warning("Skipping role %s: no usable definition found", name)
            skipped.append(name)
            continue
        for role in roles:
            reports.append(validate_role(role, catalog, include_data_actions=include_data_actions))
    return reports, skipped
