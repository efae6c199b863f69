from __future__ import annotations

import logging
from typing import List

from bindguard.core.errors import NotFoundError, TransportError
from bindguard.core.models import BindingResource, PolicyRule
from bindguard.permissions.base import RuleResolver
from bindguard.providers.k8s_provider import call_k8s

logger = logging.getLogger(__name__)


def _policy_rule_from_client(rule) -> PolicyRule:
    return PolicyRule(
        api_groups=tuple(rule.api_groups or ()),
        resources=tuple(rule.resources or ()),
        resource_names=tuple(rule.resource_names or ()),
        verbs=tuple(rule.verbs or ()),
        non_resource_urls=tuple(getattr(rule, "non_resource_ur_ls", None) or ()),
    )


class RbacRuleResolver(RuleResolver):
    """Fetches the rules of the Role/ClusterRole a binding references."""

    def __init__(self, rbac_api, *, timeout: float = 10.0) -> None:
        self._api = rbac_api
        self._timeout = timeout

    async def resolve_rules(self, binding: BindingResource) -> List[PolicyRule]:
        ref = binding.role_ref
        try:
            if ref.kind == "ClusterRole":
                role = await call_k8s(
                    self._api.read_cluster_role, ref.name, timeout=self._timeout, what=f"read ClusterRole {ref.name}"
                )
                namespace = ""
            else:
                # Role references resolve in the binding's own namespace.
                role = await call_k8s(
                    self._api.read_namespaced_role,
                    ref.name,
                    binding.namespace,
                    timeout=self._timeout,
                    what=f"read Role {binding.namespace}/{ref.name}",
                )
                namespace = binding.namespace
        except TransportError as e:
            if e.status == 404:
                raise NotFoundError(ref.kind, ref.name, binding.namespace if ref.kind == "Role" else "") from e
            raise

        rules = [_policy_rule_from_client(r) for r in (role.rules or [])]
        logger.debug("Resolved %d rule(s) for %s %r (namespace=%r)", len(rules), ref.kind, ref.name, namespace)
        return rules
