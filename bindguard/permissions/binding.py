"""Authorization of (Cluster)RoleBinding writes without privilege escalation."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from bindguard.config import ValidatorConfig
from bindguard.core.errors import InvalidResourceError, PrivilegeEscalationError
from bindguard.core.models import (
    ESCALATION_VERBS,
    VERB_BIND,
    AtomicRule,
    BindingResource,
    MissingGrant,
    ResourceAttributes,
    ResourceRef,
    RestMapping,
    ValidationVerb,
)
from bindguard.permissions.base import PermissionChecker, RestMapper, RuleResolver, Validator
from bindguard.permissions.breakdown import breakdown_rules
from bindguard.permissions.checker import validate_permissions

logger = logging.getLogger(__name__)


class BindingValidator(Validator):
    """
    Decides whether the current principal may act on a (Cluster)RoleBinding.

    For create/update:
    1. an allowed "bind" on the binding authorizes immediately;
    2. otherwise the principal needs the verb itself on the binding;
    3. and must already hold every atomic permission the referenced role grants.

    Any other verb is a single direct check.
    """

    def __init__(
        self,
        checker: PermissionChecker,
        resolver: RuleResolver,
        mapper: RestMapper,
        *,
        config: Optional[ValidatorConfig] = None,
    ) -> None:
        self._checker = checker
        self._resolver = resolver
        self._mapper = mapper
        self._config = config or ValidatorConfig()

    async def validate(self, resource: ResourceRef, verb: ValidationVerb) -> None:
        if not isinstance(resource, BindingResource):
            raise InvalidResourceError(f"{resource.kind} {resource.name!r} is not a binding (no roleRef)")

        mapping = await self._mapper.rest_mapping(
            resource.group, resource.kind, resource.version or self._config.preferred_version
        )
        # Cluster-scoped bindings grant cluster-wide, whatever namespace the manifest carries.
        namespace = resource.namespace if mapping.namespaced else ""

        if verb not in ESCALATION_VERBS:
            await validate_permissions(self._checker, self._attrs(mapping, resource.name, namespace, verb))
            return

        # Transport failures propagate; only a definite denial falls through.
        if await self._checker.check(self._attrs(mapping, resource.name, namespace, VERB_BIND)):
            logger.info("Principal may %r %s %r; skipping escalation checks", VERB_BIND, resource.kind, resource.name)
            return

        await validate_permissions(self._checker, self._attrs(mapping, resource.name, namespace, verb))

        rules = await self._resolver.resolve_rules(resource)
        atomic = breakdown_rules(rules, all_resource_names=self._config.check_all_resource_names)
        missing = await self._check_atomic_rules(atomic, namespace)
        if missing:
            logger.info(
                "Rejecting %r on %s %r: %d of %d grant(s) not held",
                verb,
                resource.kind,
                resource.name,
                len(missing),
                len(atomic),
            )
            raise PrivilegeEscalationError(verb, resource.qualified_kind, missing)
        ref = resource.role_ref
        logger.debug("Principal holds all %d grant(s) of %s %r", len(atomic), ref.kind, ref.name)

    async def _check_atomic_rules(self, rules: List[AtomicRule], namespace: str) -> List[MissingGrant]:
        """Check every rule (no early exit) and return the ones not held, sorted."""
        sem = asyncio.Semaphore(self._config.max_concurrent_checks)

        async def _guarded(rule: AtomicRule) -> bool:
            async with sem:
                return await self._checker.check(rule.to_attributes(namespace))

        results = await asyncio.gather(*(_guarded(r) for r in rules), return_exceptions=True)

        missing: List[MissingGrant] = []
        for rule, res in zip(rules, results):
            if isinstance(res, BaseException):
                if not isinstance(res, Exception):
                    # CancelledError and friends are never folded into the report.
                    raise res
                missing.append(MissingGrant(rule=rule, error=str(res)))
            elif not res:
                missing.append(MissingGrant(rule=rule))
        missing.sort(key=lambda m: m.rule.sort_key())
        return missing

    @staticmethod
    def _attrs(mapping: RestMapping, name: str, namespace: str, verb: str) -> ResourceAttributes:
        return ResourceAttributes(
            group=mapping.group,
            version=mapping.version,
            resource=mapping.resource,
            namespace=namespace,
            name=name,
            verb=verb,
        )
