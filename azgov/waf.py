"""Application Gateway WAF policy managed-rule exceptions."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from .azcli import AzRunner, run_az

logger = logging.getLogger(__name__)

MatchVariable = Literal[
    "RequestURI",
    "RemoteAddr",
    "RequestIPAddress",
    "RequestHeaderValues",
    "RequestHeaderKeys",
    "RequestHeaderNames",
    "RequestCookieValues",
    "RequestCookieKeys",
    "RequestCookieNames",
    "RequestArgValues",
    "RequestArgKeys",
    "RequestArgNames",
]
ValueOperator = Literal["Equals", "Contains", "StartsWith", "EndsWith", "EqualsAny", "IPMatch"]


class RuleGroupRef(BaseModel):
    """A managed rule group, optionally narrowed to specific rule ids."""

    rule_group_name: str
    rules: list[str] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def validate_rule_ids(cls, v: list[str]) -> list[str]:
        for rule_id in v:
            if not rule_id.isdigit():
                raise ValueError(f"Rule id must be numeric: {rule_id}")
        return v


class ManagedRuleSetRef(BaseModel):
    """Managed rule set the exception applies to."""

    rule_set_type: str = "OWASP"
    rule_set_version: str = "3.2"
    rule_groups: list[RuleGroupRef] = Field(default_factory=list)


class WafException(BaseModel):
    """A managed-rule exception on a WAF policy."""

    match_variable: MatchVariable
    value_operator: ValueOperator
    values: list[str]
    rule_sets: list[ManagedRuleSetRef] = Field(default_factory=list)

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: list[str]) -> list[str]:
        if not v or not all(s.strip() for s in v):
            raise ValueError("At least one non-empty match value is required")
        return v


def rule_sets_payload(exception: WafException) -> list[dict[str, Any]]:
    """Render the rule sets in the provider's camelCase shape."""
    payload = []
    for rs in exception.rule_sets:
        groups = []
        for g in rs.rule_groups:
            group: dict[str, Any] = {"ruleGroupName": g.rule_group_name}
            if g.rules:
                group["rules"] = [{"ruleId": r} for r in g.rules]
            groups.append(group)
        entry: dict[str, Any] = {"ruleSetType": rs.rule_set_type, "ruleSetVersion": rs.rule_set_version}
        if groups:
            entry["ruleGroups"] = groups
        payload.append(entry)
    return payload


def rule_sets_json(exception: WafException) -> str:
    return json.dumps(rule_sets_payload(exception))


def parse_rule_ids(raw: str | None) -> list[str]:
    """Split a comma-separated rule id list, ignoring blanks."""
    if not raw:
        return []
    return [r.strip() for r in raw.split(",") if r.strip()]


def build_exception(
    match_variable: str,
    value_operator: str,
    values: list[str],
    rule_group: str | None = None,
    rule_ids: list[str] | None = None,
    rule_set_type: str = "OWASP",
    rule_set_version: str = "3.2",
) -> WafException:
    """Assemble a single-rule-set exception from flat CLI parameters."""
    groups = []
    if rule_group:
        groups.append({"rule_group_name": rule_group, "rules": rule_ids or []})
    elif rule_ids:
        raise ValueError("Rule ids require a rule group")
    return WafException.model_validate(
        {
            "match_variable": match_variable,
            "value_operator": value_operator,
            "values": values,
            "rule_sets": [
                {
                    "rule_set_type": rule_set_type,
                    "rule_set_version": rule_set_version,
                    "rule_groups": groups,
                }
            ],
        }
    )


def add_exception(
    resource_group: str,
    policy_name: str,
    exception: WafException,
    runner: AzRunner | None = None,
) -> Any:
    """Append an exception to the policy's managed rules."""
    run = runner or run_az
    args = [
        "network",
        "application-gateway",
        "waf-policy",
        "managed-rule",
        "exception",
        "add",
        "--resource-group",
        resource_group,
        "--policy-name",
        policy_name,
        "--match-variable",
        exception.match_variable,
        "--value-operator",
        exception.value_operator,
        "--values",
        *exception.values,
    ]
    if exception.rule_sets:
        args += ["--rule-sets", rule_sets_json(exception)]
    logger.info(
        "Adding WAF exception to %s/%s: %s %s %s",
        resource_group,
        policy_name,
        exception.match_variable,
        exception.value_operator,
        ", ".join(exception.values),
    )
    return run(args)


def list_exceptions(
    resource_group: str,
    policy_name: str,
    runner: AzRunner | None = None,
) -> list[dict[str, Any]]:
    """Return the exceptions currently configured on the policy."""
    run = runner or run_az
    data = run(
        [
            "network",
            "application-gateway",
            "waf-policy",
            "managed-rule",
            "exception",
            "list",
            "--resource-group",
            resource_group,
            "--policy-name",
            policy_name,
        ]
    )
    return data or []
