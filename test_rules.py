# test_rules.py
"""
Unit tests for the rule engine.

- Sizing branches for maxActive / maxTotal.
- Derived sizing (maxIdle, initialSize, minIdle) follows the effective pool size.
- Mandatory parameters of the baseline.
"""

import pytest

import auditor.rules as rules
from auditor.rules import (
    audit_resource,
    audit_resources,
    effective_pool_size,
    initial_size,
    parse_int,
)
from config import DEFAULT_BASELINE, FACTORY_PLUS, NOT_DEFINED, Baseline, MandatoryParam
from models import ResourceRecord

MANDATORY = {p.name: p.value for p in DEFAULT_BASELINE.mandatory}

COMPLIANT = {
    "name": "jdbc/Ok",
    "type": "javax.sql.DataSource",
    "maxActive": "50",
    "maxIdle": "50",
    "initialSize": "5",
    "minIdle": "5",
    **MANDATORY,
}


def make_record(rid=0, **attrs):
    attrs.setdefault("name", "jdbc/Foo")
    attrs.setdefault("type", "javax.sql.DataSource")
    return ResourceRecord(id=rid, name=attrs["name"], type=attrs["type"], attributes=attrs)


def issue_for(result, param):
    matches = [i for i in result.issues if i.param == param]
    assert len(matches) <= 1
    return matches[0] if matches else None


def test_compliant_record_has_no_issues():
    result = audit_resource(make_record(**COMPLIANT))
    assert result.issues == ()
    assert result.suggestions == {}
    assert result.is_compliant


@pytest.mark.parametrize("value", ["1", "0", "-3"])
def test_pool_size_at_most_one_is_critical(value):
    result = audit_resource(make_record(maxActive=value))
    issue = issue_for(result, "maxActive")
    assert issue.level == "critical"
    assert result.suggestions["maxActive"] == "50"


def test_missing_pool_size_is_critical():
    result = audit_resource(make_record())
    issue = issue_for(result, "maxActive")
    assert issue.level == "critical"
    assert issue.original == NOT_DEFINED
    assert result.suggestions["maxActive"] == "50"


@pytest.mark.parametrize("value", ["2", "5", "9"])
def test_small_pool_is_warning(value):
    result = audit_resource(make_record(maxActive=value))
    issue = issue_for(result, "maxActive")
    assert issue.level == "warning"
    assert issue.original == value
    assert result.suggestions["maxActive"] == "50"


@pytest.mark.parametrize("value", ["10", "50", "300"])
def test_pool_of_ten_or_more_is_accepted(value):
    result = audit_resource(make_record(maxActive=value))
    assert issue_for(result, "maxActive") is None
    assert "maxActive" not in result.suggestions
    assert result.suggestions["maxIdle"] == value


def test_max_total_is_used_when_max_active_absent():
    attrs = dict(COMPLIANT)
    del attrs["maxActive"]
    attrs.update(maxTotal="100", maxIdle="100", initialSize="10", minIdle="10")
    result = audit_resource(make_record(**attrs))
    assert result.issues == ()


def test_empty_max_active_falls_through_to_max_total():
    result = audit_resource(make_record(maxActive="", maxTotal="20"))
    assert issue_for(result, "maxActive") is None
    assert result.suggestions["maxIdle"] == "20"
    assert result.suggestions["initialSize"] == "2"


@pytest.mark.parametrize("size,expected", [(1, 1), (5, 1), (10, 1), (50, 5), (200, 20)])
def test_initial_size(size, expected):
    assert initial_size(size) == expected


def test_effective_pool_size_prefers_suggestion():
    assert effective_pool_size({"maxActive": "3"}, {"maxActive": "50"}) == 50
    assert effective_pool_size({"maxActive": "30"}, {}) == 30
    assert effective_pool_size({"maxTotal": "40"}, {}) == 40
    assert effective_pool_size({}, {}) == 50


@pytest.mark.parametrize("value,expected", [
    ("42", 42),
    ("  15", 15),
    ("-2", -2),
    ("20abc", 20),
    ("abc", 0),
    ("${pool.max}", 0),
    ("", 0),
    ("\u0665", 0),
    ("1\u0665", 1),
    (None, 0),
])
def test_parse_int(value, expected):
    assert parse_int(value) == expected


@pytest.mark.parametrize("value", ["abc", "${pool.max}"])
def test_non_numeric_pool_size_is_treated_as_zero(value):
    result = audit_resource(make_record(maxActive=value))
    issue = issue_for(result, "maxActive")
    assert issue.level == "critical"
    assert issue.original == value
    assert "M=0" in issue.message
    # downstream sizing uses the suggested pool size
    assert result.suggestions["maxActive"] == "50"
    assert result.suggestions["maxIdle"] == "50"
    assert result.suggestions["initialSize"] == "5"
    assert result.suggestions["minIdle"] == "5"


def test_numeric_prefix_is_used_as_pool_size():
    result = audit_resource(make_record(maxActive="20abc"))
    assert issue_for(result, "maxActive") is None
    assert result.suggestions["maxIdle"] == "20"


def test_small_pool_scenario():
    result = audit_resource(make_record(maxActive="5"))

    assert len(result.issues) == 13
    head = [(i.param, i.level, result.suggestions[i.param]) for i in result.issues[:4]]
    assert head == [
        ("maxActive", "warning", "50"),
        ("maxIdle", "warning", "50"),
        ("initialSize", "info", "5"),
        ("minIdle", "info", "5"),
    ]

    mandatory = result.issues[4:]
    assert [i.param for i in mandatory] == [p.name for p in DEFAULT_BASELINE.mandatory]
    assert mandatory[0].param == "factory"
    assert mandatory[0].level == "critical"
    assert result.suggestions["factory"] == FACTORY_PLUS
    assert all(i.level == "warning" for i in mandatory[1:])
    assert all(i.original == NOT_DEFINED for i in mandatory)
    assert result.counts() == {"critical": 1, "warning": 10, "info": 2}


def test_mandatory_issue_carries_rationale_and_original():
    attrs = dict(COMPLIANT, testOnBorrow="false")
    result = audit_resource(make_record(**attrs))
    assert len(result.issues) == 1
    issue = result.issues[0]
    assert issue.level == "warning"
    assert issue.original == "false"
    assert issue.message == "Validate the connection before use"
    assert result.suggestions == {"testOnBorrow": "true"}


def test_wrong_factory_is_critical():
    attrs = dict(COMPLIANT, factory="org.apache.tomcat.jdbc.pool.DataSourceFactory")
    result = audit_resource(make_record(**attrs))
    assert [(i.param, i.level) for i in result.issues] == [("factory", "critical")]


@pytest.mark.parametrize("attrs", [
    {"maxActive": "5"},
    {"maxActive": "1", "maxIdle": "1", "testOnBorrow": "false"},
    {"maxTotal": "80", "factory": "x"},
    {},
])
def test_every_issue_has_exactly_one_suggestion(attrs):
    result = audit_resource(make_record(**attrs))
    params = [i.param for i in result.issues]
    assert len(params) == len(set(params))
    assert set(params) == set(result.suggestions)


@pytest.mark.parametrize("attrs", [
    {"maxActive": "5"},
    {"maxActive": "abc", "maxIdle": "7"},
    {"maxTotal": "25", "removeAbandoned": "false"},
])
def test_applying_suggestions_reaches_compliance(attrs):
    record = make_record(**attrs)
    first = audit_resource(record)
    fixed = make_record(**{**record.attributes, **first.suggestions})
    assert audit_resource(fixed).issues == ()


def test_audit_resources_keys_by_id():
    records = [make_record(0, **COMPLIANT), make_record(1, name="jdbc/Small", maxActive="5")]
    results = audit_resources(records)
    assert set(results) == {0, 1}
    assert results[0].is_compliant
    assert len(results[1].issues) == 13


def test_failing_record_does_not_abort_others(monkeypatch):
    def exploding(attrs, suggestions, baseline):
        if attrs.get("name") == "jdbc/Bad":
            raise ValueError("boom")
        return []

    monkeypatch.setattr(rules, "STAGES", rules.STAGES + (exploding,))
    records = [make_record(0, name="jdbc/Bad"), make_record(1, name="jdbc/Small", maxActive="5")]
    results = audit_resources(records)
    assert results[0].issues == ()
    assert len(results[1].issues) == 13


def test_factory_level_follows_parameter_name():
    baseline = Baseline(
        factory="com.example.PoolFactory",
        mandatory=(
            MandatoryParam("factory", "com.example.OtherFactory", "Required factory"),
            MandatoryParam("jmxName", "com.example.PoolFactory", "Registered JMX name"),
        ),
    )
    attrs = {"maxActive": "50", "maxIdle": "50", "initialSize": "5", "minIdle": "5"}
    result = audit_resource(make_record(**attrs), baseline)
    assert [(i.param, i.level) for i in result.issues] == [
        ("factory", "critical"),
        ("jmxName", "warning"),
    ]
