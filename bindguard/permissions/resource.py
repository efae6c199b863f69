from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from bindguard.config import ValidatorConfig
from bindguard.core.models import BINDING_KINDS, RBAC_GROUP, ResourceAttributes, ResourceRef
from bindguard.permissions.base import PermissionChecker, RestMapper, Validator
from bindguard.permissions.checker import validate_permissions

logger = logging.getLogger(__name__)


class ResourceValidator(Validator):
    """Direct permission check for kinds with no escalation semantics."""

    def __init__(
        self,
        checker: PermissionChecker,
        mapper: RestMapper,
        *,
        config: Optional[ValidatorConfig] = None,
    ) -> None:
        self._checker = checker
        self._mapper = mapper
        self._config = config or ValidatorConfig()

    async def validate(self, resource: ResourceRef, verb: str) -> None:
        mapping = await self._mapper.rest_mapping(
            resource.group, resource.kind, resource.version or self._config.preferred_version
        )
        attrs = ResourceAttributes(
            group=mapping.group,
            version=mapping.version,
            resource=mapping.resource,
            namespace=resource.namespace if mapping.namespaced else "",
            name=resource.name,
            verb=verb,
        )
        await validate_permissions(self._checker, attrs)


class CompositeValidator(Validator):
    """Routes each resource to the validator registered for its (group, kind)."""

    def __init__(self, *, default: Validator, bindings: Optional[Validator] = None) -> None:
        self._default = default
        self._by_kind: Dict[Tuple[str, str], Validator] = {}
        if bindings is not None:
            for kind in sorted(BINDING_KINDS):
                self.register(RBAC_GROUP, kind, bindings)

    def register(self, group: str, kind: str, validator: Validator) -> None:
        self._by_kind[(group, kind)] = validator

    def validator_for(self, resource: ResourceRef) -> Validator:
        return self._by_kind.get((resource.group, resource.kind), self._default)

    async def validate(self, resource: ResourceRef, verb: str) -> None:
        v = self.validator_for(resource)
        logger.debug("Validating %r on %s %r with %s", verb, resource.kind, resource.name, type(v).__name__)
        await v.validate(resource, verb)
