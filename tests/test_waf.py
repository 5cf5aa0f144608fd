"""Tests for WAF policy managed-rule exceptions."""

import json

import pytest
from pydantic import ValidationError

from azgov.waf import (
    WafException,
    add_exception,
    build_exception,
    list_exceptions,
    parse_rule_ids,
    rule_sets_payload,
)

SQLI = "REQUEST-942-APPLICATION-ATTACK-SQLI"


def test_rule_group_exception_payload():
    ex = build_exception("RequestURI", "Contains", ["app/modules/ajaxgrid/ajaxgridactions.ashx"], rule_group=SQLI)
    assert rule_sets_payload(ex) == [
        {"ruleSetType": "OWASP", "ruleSetVersion": "3.2", "ruleGroups": [{"ruleGroupName": SQLI}]}
    ]


def test_specific_rule_payload():
    ex = build_exception("RequestURI", "Contains", ["x.ashx"], rule_group=SQLI, rule_ids=["942420"])
    groups = rule_sets_payload(ex)[0]["ruleGroups"]
    assert groups == [{"ruleGroupName": SQLI, "rules": [{"ruleId": "942420"}]}]


def test_rule_ids_need_a_group():
    with pytest.raises(ValueError):
        build_exception("RequestURI", "Contains", ["x"], rule_ids=["942420"])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"match_variable": "RequestBody", "value_operator": "Contains", "values": ["x"]},
        {"match_variable": "RequestURI", "value_operator": "Regex", "values": ["x"]},
        {"match_variable": "RequestURI", "value_operator": "Contains", "values": []},
        {"match_variable": "RequestURI", "value_operator": "Contains", "values": ["  "]},
    ],
)
def test_invalid_exceptions_rejected(kwargs):
    with pytest.raises(ValidationError):
        WafException(**kwargs)


def test_non_numeric_rule_id_rejected():
    with pytest.raises(ValidationError):
        build_exception("RequestURI", "Contains", ["x"], rule_group=SQLI, rule_ids=["abc"])


def test_parse_rule_ids():
    assert parse_rule_ids(" 942420, ,942430 ") == ["942420", "942430"]
    assert parse_rule_ids(None) == []


def test_add_exception_command(fake_az):
    fake_az.on("exception", "add", returns={"exceptions": []})
    ex = build_exception("RequestURI", "Contains", ["a.ashx", "b.ashx"], rule_group=SQLI, rule_ids=["942420"])
    add_exception("EBSAPP-GATEWAY", "EBS-WAFPolicy", ex, runner=fake_az)

    call = fake_az.calls[0]
    assert call[:6] == ["network", "application-gateway", "waf-policy", "managed-rule", "exception", "add"]
    assert call[call.index("--policy-name") + 1] == "EBS-WAFPolicy"
    values_at = call.index("--values")
    assert call[values_at + 1 : values_at + 3] == ["a.ashx", "b.ashx"]
    rule_sets = json.loads(call[call.index("--rule-sets") + 1])
    assert rule_sets[0]["ruleGroups"][0]["rules"] == [{"ruleId": "942420"}]


def test_list_exceptions(fake_az):
    fake_az.on("exception", "list", returns=[{"matchVariable": "RequestURI", "values": ["x"]}])
    assert list_exceptions("rg", "policy", runner=fake_az)[0]["matchVariable"] == "RequestURI"


def test_list_exceptions_empty_output(fake_az):
    fake_az.on("exception", "list", returns=None)
    assert list_exceptions("rg", "policy", runner=fake_az) == []
