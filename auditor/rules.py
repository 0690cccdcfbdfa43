# auditor/rules.py
"""
Rule engine for JDBC pool declarations.

- Rules are pure functions over an attribute snapshot; no I/O.
- audit_resource runs an ordered pipeline of stages:
  * pool size (maxActive / maxTotal)
  * derived sizing (maxIdle, initialSize, minIdle), which reads the pool size
    suggested by the previous stage
  * mandatory parameters of the baseline
- Each stage returns (Issue, suggested value) pairs; a reducer folds them into
  an AuditResult in order.
"""

import logging
import math
import re
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from config import (
    DEFAULT_BASELINE,
    LEVEL_CRITICAL,
    LEVEL_INFO,
    LEVEL_WARNING,
    NOT_DEFINED,
    Baseline,
)
from models import AuditResult, Issue, ResourceRecord

logger = logging.getLogger(__name__)

Finding = Tuple[Issue, str]
Stage = Callable[[Mapping[str, str], Mapping[str, str], Baseline], List[Finding]]

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")

# --- Pure rule helpers -----------------------------------------------------

def parse_int(value: Optional[str]) -> int:
    """
    Lenient integer parse: reads the leading ASCII digits of `value`.

    "20abc" gives 20. A value with no leading digits ("abc", "${size}") or
    None gives 0, which puts the pool on the critical branch.
    """
    if value is None:
        return 0
    m = _LEADING_INT.match(value)
    if not m:
        return 0
    return int(m.group(1))


def declared_pool_size(attrs: Mapping[str, str]) -> int:
    return parse_int(attrs.get("maxActive") or attrs.get("maxTotal") or "0")


def effective_pool_size(attrs: Mapping[str, str], suggestions: Mapping[str, str],
                        baseline: Baseline = DEFAULT_BASELINE) -> int:
    """
    Pool size used by the derived sizing rules: the suggested maxActive if the
    pool size stage produced one, otherwise the declared value.
    """
    return parse_int(
        suggestions.get("maxActive")
        or attrs.get("maxActive")
        or attrs.get("maxTotal")
        or str(baseline.recommended_pool_size)
    )


def initial_size(pool_size: int, baseline: Baseline = DEFAULT_BASELINE) -> int:
    """max(1, floor(M * ratio))"""
    return max(1, math.floor(pool_size * baseline.initial_size_ratio))


def _original(attrs: Mapping[str, str], param: str) -> str:
    return attrs.get(param) or NOT_DEFINED

# --- Stages ------------------------------------------------------------------

def check_pool_size(attrs: Mapping[str, str], suggestions: Mapping[str, str],
                    baseline: Baseline) -> List[Finding]:
    size = declared_pool_size(attrs)
    target = str(baseline.recommended_pool_size)
    original = attrs.get("maxActive") or attrs.get("maxTotal") or NOT_DEFINED
    if size <= baseline.critical_pool_size:
        return [(Issue(
            level=LEVEL_CRITICAL,
            param="maxActive",
            message=f"Pool with M={size} is critical. Risk of total blocking.",
            original=original,
        ), target)]
    if size < baseline.min_pool_size:
        return [(Issue(
            level=LEVEL_WARNING,
            param="maxActive",
            message=f"Pool with M={size} is low for production. Suggested: {target}",
            original=original,
        ), target)]
    return []


def check_derived_sizing(attrs: Mapping[str, str], suggestions: Mapping[str, str],
                         baseline: Baseline) -> List[Finding]:
    size = effective_pool_size(attrs, suggestions, baseline)
    initial = str(initial_size(size, baseline))
    findings: List[Finding] = []

    if attrs.get("maxIdle") != str(size):
        findings.append((Issue(
            level=LEVEL_WARNING,
            param="maxIdle",
            message=f"maxIdle must equal M ({size})",
            original=_original(attrs, "maxIdle"),
        ), str(size)))

    if attrs.get("initialSize") != initial:
        findings.append((Issue(
            level=LEVEL_INFO,
            param="initialSize",
            message=f"Suggested initialSize: max(1, floor(M*{baseline.initial_size_ratio})) = {initial}",
            original=_original(attrs, "initialSize"),
        ), initial))

    if attrs.get("minIdle") != initial:
        findings.append((Issue(
            level=LEVEL_INFO,
            param="minIdle",
            message=f"minIdle must equal initialSize ({initial})",
            original=_original(attrs, "minIdle"),
        ), initial))

    return findings


def check_mandatory_params(attrs: Mapping[str, str], suggestions: Mapping[str, str],
                           baseline: Baseline) -> List[Finding]:
    findings: List[Finding] = []
    for p in baseline.mandatory:
        if attrs.get(p.name) == p.value:
            continue
        level = LEVEL_CRITICAL if p.name == "factory" else LEVEL_WARNING
        findings.append((Issue(
            level=level,
            param=p.name,
            message=p.rationale,
            original=_original(attrs, p.name),
        ), p.value))
    return findings


STAGES: Tuple[Stage, ...] = (
    check_pool_size,
    check_derived_sizing,
    check_mandatory_params,
)

# --- Reducer -----------------------------------------------------------------

def audit_resource(record: ResourceRecord, baseline: Baseline = DEFAULT_BASELINE) -> AuditResult:
    """
    Run every stage over the record's attributes and fold the findings.

    Later stages see the suggestions of earlier ones (read-only).
    """
    attrs = dict(record.attributes)
    issues: List[Issue] = []
    suggestions: Dict[str, str] = {}
    for stage in STAGES:
        for issue, value in stage(attrs, dict(suggestions), baseline):
            if issue.param in suggestions:
                raise ValueError(f"Rule stages produced two findings for {issue.param!r}")
            issues.append(issue)
            suggestions[issue.param] = value
    return AuditResult(issues=tuple(issues), suggestions=suggestions)


def audit_resources(records: List[ResourceRecord],
                    baseline: Baseline = DEFAULT_BASELINE) -> Dict[int, AuditResult]:
    """
    Audit every record, keyed by record id.

    A record that fails to audit is logged and gets an empty result; the
    others are still processed.
    """
    results: Dict[int, AuditResult] = {}
    for r in records:
        try:
            results[r.id] = audit_resource(r, baseline)
        except (ValueError, TypeError) as e:
            logger.error("Could not audit resource %s: %s", r.name, e)
            results[r.id] = AuditResult()
            continue
        logger.debug("Resource %s: %d issue(s)", r.name, len(results[r.id].issues))
    return results
