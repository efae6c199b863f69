"""Kind-to-REST-resource mapping."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

from bindguard.core.errors import AddressingError
from bindguard.core.models import RBAC_GROUP, RestMapping
from bindguard.permissions.base import RestMapper
from bindguard.providers.k8s_provider import call_k8s

logger = logging.getLogger(__name__)

# (group, kind) -> (resource, namespaced)
_RBAC_RESOURCES: Dict[Tuple[str, str], Tuple[str, bool]] = {
    (RBAC_GROUP, "Role"): ("roles", True),
    (RBAC_GROUP, "RoleBinding"): ("rolebindings", True),
    (RBAC_GROUP, "ClusterRole"): ("clusterroles", False),
    (RBAC_GROUP, "ClusterRoleBinding"): ("clusterrolebindings", False),
}


class StaticRestMapper(RestMapper):
    """Offline mapper for a fixed table of kinds (RBAC v1 by default)."""

    def __init__(
        self,
        resources: Optional[Dict[Tuple[str, str], Tuple[str, bool]]] = None,
        *,
        default_version: str = "v1",
    ) -> None:
        self._resources = dict(_RBAC_RESOURCES if resources is None else resources)
        self._default_version = default_version

    async def rest_mapping(self, group: str, kind: str, version: str = "") -> RestMapping:
        hit = self._resources.get((group, kind))
        if hit is None:
            raise AddressingError(group, kind, "kind not in static mapping table")
        resource, namespaced = hit
        version = version or self._default_version
        return RestMapping(group=group, version=version, resource=resource, namespaced=namespaced)


class DiscoveryRestMapper(RestMapper):
    """
    Mapper backed by the API server's discovery documents.

    `client_factory` returns a `kubernetes.dynamic.DynamicClient`; it is invoked
    off the event loop because the first call performs discovery.
    """

    def __init__(self, client_factory: Callable[[], object], *, timeout: float = 10.0) -> None:
        self._client_factory = client_factory
        self._timeout = timeout

    def _lookup(self, group: str, kind: str, version: str):
        dyn = self._client_factory()
        if version:
            api_version = f"{group}/{version}" if group else version
            return dyn.resources.get(api_version=api_version, kind=kind)
        candidates = [r for r in dyn.resources.search(group=group, kind=kind) if "/" not in r.name]
        if not candidates:
            from kubernetes.dynamic.exceptions import ResourceNotFoundError

            raise ResourceNotFoundError(f"No matches found for group={group!r} kind={kind!r}")
        preferred = [r for r in candidates if getattr(r, "preferred", False)]
        return (preferred or candidates)[0]

    async def rest_mapping(self, group: str, kind: str, version: str = "") -> RestMapping:
        from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError

        gk = f"{kind}.{group}" if group else kind
        try:
            res = await call_k8s(
                self._lookup,
                group,
                kind,
                version,
                timeout=self._timeout,
                what=f"discover {gk}",
                pass_request_timeout=False,
            )
        except (ResourceNotFoundError, ResourceNotUniqueError) as e:
            raise AddressingError(group, kind, str(e)) from e

        mapping = RestMapping(
            group=res.group or "",
            version=res.api_version,
            resource=res.name,
            namespaced=bool(res.namespaced),
        )
        logger.debug("Mapped %s to %s", gk, mapping)
        return mapping
