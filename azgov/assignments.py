"""Finding and removing a principal's role assignments across subscriptions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .azcli import AzRunner, AzureCliError, run_az

logger = logging.getLogger(__name__)


@dataclass
class RoleAssignment:
    """A role assignment seen from one or more subscription contexts."""

    assignment_id: str
    role_name: str | None
    scope: str | None
    principal_name: str | None = None
    principal_id: str | None = None
    principal_type: str | None = None
    subscriptions_seen: list[str] = field(default_factory=list)

    @classmethod
    def from_cli(cls, data: dict[str, Any]) -> RoleAssignment:
        return cls(
            assignment_id=data["id"],
            role_name=data.get("roleDefinitionName"),
            scope=data.get("scope"),
            principal_name=data.get("principalName"),
            principal_id=data.get("principalId"),
            principal_type=data.get("principalType"),
        )

    @property
    def is_inherited(self) -> bool:
        """True for assignments above subscription level (management group or root)."""
        scope = (self.scope or "").lower()
        return scope == "/" or scope.startswith("/providers/microsoft.management/")

    def to_row(self) -> dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "role_name": self.role_name,
            "scope": self.scope,
            "principal_name": self.principal_name,
            "principal_id": self.principal_id,
            "principal_type": self.principal_type,
            "subscriptions_seen": ";".join(self.subscriptions_seen),
        }


CSV_FIELDS = [
    "assignment_id",
    "role_name",
    "scope",
    "principal_name",
    "principal_id",
    "principal_type",
    "subscriptions_seen",
]


def list_assignments_for(
    assignee: str,
    subscription_id: str,
    runner: AzRunner | None = None,
) -> list[dict[str, Any]]:
    """Raw ``az role assignment list`` output for one subscription, inherited included."""
    run = runner or run_az
    return (
        run(
            [
                "role",
                "assignment",
                "list",
                "--assignee",
                assignee,
                "--all",
                "--include-inherited",
                "--subscription",
                subscription_id,
            ]
        )
        or []
    )


def find_user_assignments(
    assignee: str,
    subscriptions: Iterable[str],
    runner: AzRunner | None = None,
) -> tuple[list[RoleAssignment], dict[str, str]]:
    """Collect the assignee's role assignments, de-duplicated by assignment id.

    Assignments made at management-group or root scope are reported by every
    subscription beneath them; each is kept once, in first-seen order, with the
    subscriptions that reported it.

    Returns:
        Tuple of (assignments, errors keyed by subscription id)
    """
    found: dict[str, RoleAssignment] = {}
    errors: dict[str, str] = {}
    for sub in subscriptions:
        logger.info("Listing role assignments for %s in %s", assignee, sub)
        try:
            raw = list_assignments_for(assignee, sub, runner=runner)
        except AzureCliError as e:
            logger.warning("Could not list assignments in %s: %s", sub, e)
            errors[sub] = str(e)
            continue
        for item in raw:
            key = item.get("id", "").lower()
            if not key:
                continue
            if key not in found:
                found[key] = RoleAssignment.from_cli(item)
            if sub not in found[key].subscriptions_seen:
                found[key].subscriptions_seen.append(sub)
    logger.info("Found %d unique role assignment(s) for %s", len(found), assignee)
    return list(found.values()), errors


@dataclass
class RemovalResult:
    removed: list[RoleAssignment] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    dry_run: bool = False


def remove_assignments(
    assignments: Iterable[RoleAssignment],
    runner: AzRunner | None = None,
    dry_run: bool = False,
) -> RemovalResult:
    """Delete each assignment by id. One failure does not stop the others."""
    run = runner or run_az
    result = RemovalResult(dry_run=dry_run)
    for a in assignments:
        if dry_run:
            logger.info(
                "DRY-RUN: would remove %s (role=%s scope=%s)", a.assignment_id, a.role_name, a.scope
            )
            result.removed.append(a)
            continue
        try:
            run(["role", "assignment", "delete", "--ids", a.assignment_id])
            logger.info("Removed assignment %s", a.assignment_id)
            result.removed.append(a)
        except AzureCliError as e:
            logger.error("Failed to remove assignment %s: %s", a.assignment_id, e)
            result.failed[a.assignment_id] = str(e)
    return result
