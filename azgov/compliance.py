"""Policy compliance reporting and remediation across subscriptions."""

from __future__ import annotations

import hashlib
import logging
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable

from .azcli import AzRunner, AzureCliError, run_az

logger = logging.getLogger(__name__)

NONCOMPLIANT_FILTER = "complianceState eq 'NonCompliant'"
DISCOVERY_MODES = ("ExistingNonCompliant", "ReEvaluateCompliance")
REMEDIATION_NAME_MAX = 64


@dataclass
class ComplianceRecord:
    """One non-compliant resource as reported by the policy insights service."""

    subscription_id: str
    resource_id: str
    resource_type: str | None = None
    resource_group: str | None = None
    resource_location: str | None = None
    policy_assignment_name: str | None = None
    policy_assignment_id: str | None = None
    policy_definition_name: str | None = None
    policy_definition_reference_id: str | None = None
    compliance_state: str | None = None
    timestamp: str | None = None

    @classmethod
    def from_state(cls, state: dict[str, Any], subscription_id: str) -> ComplianceRecord:
        return cls(
            subscription_id=state.get("subscriptionId") or subscription_id,
            resource_id=state.get("resourceId", ""),
            resource_type=state.get("resourceType"),
            resource_group=state.get("resourceGroup"),
            resource_location=state.get("resourceLocation"),
            policy_assignment_name=state.get("policyAssignmentName"),
            policy_assignment_id=state.get("policyAssignmentId"),
            policy_definition_name=state.get("policyDefinitionName"),
            policy_definition_reference_id=state.get("policyDefinitionReferenceId") or None,
            compliance_state=state.get("complianceState"),
            timestamp=state.get("timestamp"),
        )

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


CSV_FIELDS = list(ComplianceRecord.__dataclass_fields__.keys())


@dataclass
class ComplianceReport:
    """Non-compliant resources gathered from one or more subscriptions."""

    records: list[ComplianceRecord] = field(default_factory=list)
    subscriptions: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    generated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def summary(self) -> dict[str, Any]:
        return summarize(self.records) | {
            "subscriptions_scanned": len(self.subscriptions),
            "subscriptions_failed": len(self.errors),
            "generated_at": self.generated_at,
        }


def list_noncompliant_states(
    subscription_id: str,
    runner: AzRunner | None = None,
    policy_assignment: str | None = None,
) -> list[dict[str, Any]]:
    """Return raw non-compliant policy states for a subscription."""
    run = runner or run_az
    args = [
        "policy",
        "state",
        "list",
        "--subscription",
        subscription_id,
        "--filter",
        NONCOMPLIANT_FILTER,
        "--all",
    ]
    if policy_assignment:
        args += ["--policy-assignment", policy_assignment]
    return run(args) or []


def build_compliance_report(
    subscriptions: Iterable[str],
    runner: AzRunner | None = None,
    exclude_assignments: Iterable[str] = (),
    policy_assignment: str | None = None,
) -> ComplianceReport:
    """Collect non-compliant resources from each subscription in turn.

    A subscription whose query fails is recorded in ``errors`` and skipped.
    """
    excluded = set(exclude_assignments)
    report = ComplianceReport()
    for sub in subscriptions:
        report.subscriptions.append(sub)
        logger.info("Querying policy states for subscription %s", sub)
        try:
            states = list_noncompliant_states(sub, runner=runner, policy_assignment=policy_assignment)
        except AzureCliError as e:
            logger.error("Policy state query failed for %s: %s", sub, e)
            report.errors[sub] = str(e)
            continue
        for state in states:
            record = ComplianceRecord.from_state(state, sub)
            if record.policy_assignment_name in excluded:
                continue
            report.records.append(record)
    logger.info(
        "Compliance report: %d non-compliant resource state(s) across %d subscription(s)",
        len(report.records),
        len(report.subscriptions),
    )
    return report


def summarize(records: list[ComplianceRecord]) -> dict[str, Any]:
    """Count non-compliant records by subscription, assignment and resource type."""
    return {
        "total_noncompliant": len(records),
        "unique_resources": len({r.resource_id.lower() for r in records}),
        "by_subscription": dict(Counter(r.subscription_id for r in records).most_common()),
        "by_assignment": dict(
            Counter(r.policy_assignment_name or "unknown" for r in records).most_common()
        ),
        "by_resource_type": dict(
            Counter((r.resource_type or "unknown").lower() for r in records).most_common()
        ),
    }


@dataclass(frozen=True)
class RemediationTarget:
    """A policy assignment (and optional initiative member) to remediate in one subscription."""

    subscription_id: str
    policy_assignment_id: str
    policy_assignment_name: str
    definition_reference_id: str | None = None
    resource_count: int = 0


def remediation_targets(records: Iterable[ComplianceRecord]) -> list[RemediationTarget]:
    """Group records into unique remediation targets, largest first."""
    counts: Counter[tuple[str, str, str, str | None]] = Counter()
    for r in records:
        if not r.policy_assignment_id:
            continue
        key = (
            r.subscription_id,
            r.policy_assignment_id,
            r.policy_assignment_name or r.policy_assignment_id.rsplit("/", 1)[-1],
            r.policy_definition_reference_id,
        )
        counts[key] += 1
    return [
        RemediationTarget(
            subscription_id=sub,
            policy_assignment_id=assignment_id,
            policy_assignment_name=assignment_name,
            definition_reference_id=ref_id,
            resource_count=n,
        )
        for (sub, assignment_id, assignment_name, ref_id), n in counts.most_common()
    ]


def remediation_name(target: RemediationTarget, now: datetime | None = None) -> str:
    """Build a remediation task name from the assignment name and a timestamp.

    A short digest of the assignment id and definition reference id keeps names
    distinct after the readable part is cut to fit the length limit.
    """
    stamp = (now or datetime.utcnow()).strftime("%Y%m%d%H%M%S")
    base = target.policy_assignment_name
    if target.definition_reference_id:
        base = f"{base}-{target.definition_reference_id}"
    base = re.sub(r"[^A-Za-z0-9_.-]", "-", base)
    key = f"{target.policy_assignment_id}|{target.definition_reference_id or ''}"
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
    suffix = f"-{digest}-{stamp}"
    return f"remediate-{base}"[: REMEDIATION_NAME_MAX - len(suffix)] + suffix


def create_remediation(
    target: RemediationTarget,
    discovery_mode: str = "ExistingNonCompliant",
    runner: AzRunner | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    """Start a remediation task for ``target`` via ``az policy remediation create``."""
    if discovery_mode not in DISCOVERY_MODES:
        raise ValueError(f"Unknown resource discovery mode: {discovery_mode}")
    run = runner or run_az
    task_name = name or remediation_name(target)
    args = [
        "policy",
        "remediation",
        "create",
        "--name",
        task_name,
        "--policy-assignment",
        target.policy_assignment_id,
        "--resource-discovery-mode",
        discovery_mode,
        "--subscription",
        target.subscription_id,
    ]
    if target.definition_reference_id:
        args += ["--definition-reference-id", target.definition_reference_id]
    logger.info("Creating remediation %s in %s", task_name, target.subscription_id)
    return run(args) or {"name": task_name}


@dataclass
class RemediationOutcome:
    target: RemediationTarget
    task_name: str | None = None
    status: str = "pending"  # created, dry-run, failed
    error: str | None = None


def trigger_remediations(
    targets: Iterable[RemediationTarget],
    discovery_mode: str = "ExistingNonCompliant",
    runner: AzRunner | None = None,
    dry_run: bool = False,
) -> list[RemediationOutcome]:
    """Create a remediation task per target; failures are recorded, not raised."""
    outcomes: list[RemediationOutcome] = []
    for target in targets:
        task_name = remediation_name(target)
        if dry_run:
            logger.info("DRY-RUN: would create remediation %s", task_name)
            outcomes.append(RemediationOutcome(target, task_name, "dry-run"))
            continue
        try:
            result = create_remediation(target, discovery_mode, runner=runner, name=task_name)
            outcomes.append(RemediationOutcome(target, result.get("name", task_name), "created"))
        except AzureCliError as e:
            logger.error("Remediation for %s failed: %s", target.policy_assignment_name, e)
            outcomes.append(RemediationOutcome(target, task_name, "failed", str(e)))
    return outcomes
