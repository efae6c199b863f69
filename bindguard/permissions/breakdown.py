"""Split compound RBAC policy rules into atomic, independently-checkable rules."""

from __future__ import annotations

from typing import Iterable, List

from bindguard.core.errors import InvalidRuleError
from bindguard.core.models import AtomicRule, PolicyRule


def breakdown_rule(rule: PolicyRule, *, all_resource_names: bool = False) -> List[AtomicRule]:
    """
    Decompose `rule` into atomic rules, ordered group -> resource -> verb.

    With resource names present, only the first name is carried as a proxy for
    the whole named set unless `all_resource_names` is set, in which case every
    name gets its own atomic rule.

    Non-resource URLs pair only with verbs and are appended after the resource rules.
    """
    if not rule.verbs:
        raise InvalidRuleError("policy rule has no verbs")
    has_resources = bool(rule.api_groups) and bool(rule.resources)
    if not has_resources and not rule.non_resource_urls:
        raise InvalidRuleError(
            f"policy rule must name apiGroups and resources, or nonResourceURLs "
            f"(apiGroups={list(rule.api_groups)}, resources={list(rule.resources)})"
        )

    if not rule.resource_names:
        names = [""]
    elif all_resource_names:
        names = list(rule.resource_names)
    else:
        names = [rule.resource_names[0]]

    out: List[AtomicRule] = []
    if has_resources:
        for group in rule.api_groups:
            for resource in rule.resources:
                for verb in rule.verbs:
                    for name in names:
                        out.append(AtomicRule(api_group=group, resource=resource, resource_name=name, verb=verb))

    for url in rule.non_resource_urls:
        for verb in rule.verbs:
            out.append(AtomicRule(non_resource_url=url, verb=verb))
    return out


def breakdown_rules(rules: Iterable[PolicyRule], *, all_resource_names: bool = False) -> List[AtomicRule]:
    """Decompose every rule; identical atomic rules are kept once, first occurrence wins."""
    seen = set()
    out: List[AtomicRule] = []
    for rule in rules:
        for atomic in breakdown_rule(rule, all_resource_names=all_resource_names):
            if atomic in seen:
                continue
            seen.add(atomic)
            out.append(atomic)
    return out
