"""Request-scoped value models for binding authorization.

Every model here is frozen: values are built once per `validate` call and
never mutated afterwards.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from bindguard.core.errors import InvalidResourceError

RBAC_GROUP = "rbac.authorization.k8s.io"

BINDING_KINDS = frozenset({"RoleBinding", "ClusterRoleBinding"})

VERB_BIND = "bind"
# Verbs that can hand out new permissions through a binding.
ESCALATION_VERBS = frozenset({"create", "update"})

ValidationVerb = Literal["create", "update", "patch", "delete", "get", "list", "watch"]


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ResourceAttributes(BaseModelFrozen):
    """One fully-specified permission check. Empty name/namespace mean "any"."""

    group: str = ""
    version: str = ""
    resource: str = ""
    namespace: str = ""
    name: str = ""
    verb: str
    # Set instead of group/resource for non-resource URL checks ("/healthz").
    non_resource_url: str = ""

    def describe(self) -> str:
        if self.non_resource_url:
            return f"non-resource URL {self.non_resource_url!r}"
        gv = f"{self.group}/{self.version}" if self.version else (self.group or "core")
        out = f"{gv}, Resource={self.resource}"
        if self.name:
            out += f" name={self.name!r}"
        if self.namespace:
            out += f" namespace={self.namespace!r}"
        return out


class PolicyRule(BaseModelFrozen):
    """Compound RBAC grant: cross-product of verbs x groups x resources (x names)."""

    api_groups: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()
    resource_names: Tuple[str, ...] = ()
    verbs: Tuple[str, ...] = ()
    non_resource_urls: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PolicyRule":
        # Accepts manifest (camelCase) keys and kubernetes-client `to_dict()` keys
        # (the client spells nonResourceURLs as `non_resource_ur_ls`).
        def _get(*keys: str) -> Tuple[str, ...]:
            for k in keys:
                v = raw.get(k)
                if v:
                    return tuple(str(x) for x in v)
            return ()

        return cls(
            api_groups=_get("apiGroups", "api_groups"),
            resources=_get("resources"),
            resource_names=_get("resourceNames", "resource_names"),
            verbs=_get("verbs"),
            non_resource_urls=_get("nonResourceURLs", "non_resource_ur_ls", "non_resource_urls"),
        )


class AtomicRule(BaseModelFrozen):
    """Exactly one verb, one group, one resource and at most one resource name."""

    api_group: str = ""
    resource: str = ""
    resource_name: str = ""
    verb: str
    non_resource_url: str = ""

    def sort_key(self) -> Tuple[str, str, str, str, str]:
        return (self.api_group, self.resource, self.resource_name, self.non_resource_url, self.verb)

    def to_attributes(self, namespace: str = "") -> ResourceAttributes:
        if self.non_resource_url:
            return ResourceAttributes(verb=self.verb, non_resource_url=self.non_resource_url)
        return ResourceAttributes(
            group=self.api_group,
            resource=self.resource,
            namespace=namespace,
            name=self.resource_name,
            verb=self.verb,
        )

    def __str__(self) -> str:
        if self.non_resource_url:
            return f"{{nonResourceURL:{self.non_resource_url!r}, verb:{self.verb!r}}}"
        out = f"{{group:{self.api_group!r}, resource:{self.resource!r}"
        if self.resource_name:
            out += f", name:{self.resource_name!r}"
        return out + f", verb:{self.verb!r}}}"


class RoleRef(BaseModelFrozen):
    api_group: str = RBAC_GROUP
    kind: Literal["Role", "ClusterRole"]
    name: str


class Subject(BaseModelFrozen):
    kind: str
    name: str
    namespace: Optional[str] = None
    api_group: Optional[str] = None


class ResourceRef(BaseModelFrozen):
    """Identity of any Kubernetes object: apiVersion, kind, namespace, name."""

    api_version: str
    kind: str
    name: str
    namespace: str = ""

    @property
    def group(self) -> str:
        return self.api_version.split("/", 1)[0] if "/" in self.api_version else ""

    @property
    def version(self) -> str:
        return self.api_version.split("/", 1)[1] if "/" in self.api_version else self.api_version

    @property
    def qualified_kind(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"

    @classmethod
    def from_manifest(cls, doc: Dict[str, Any]) -> "ResourceRef":
        kind, name, namespace = _identity(doc)
        return cls(api_version=(doc.get("apiVersion") or "").strip(), kind=kind, name=name, namespace=namespace)


class BindingResource(ResourceRef):
    """A (Cluster)RoleBinding under evaluation. Subjects are carried, not evaluated."""

    role_ref: RoleRef
    subjects: Tuple[Subject, ...] = ()

    @classmethod
    def from_manifest(cls, doc: Dict[str, Any]) -> "BindingResource":
        kind, name, namespace = _identity(doc)
        ref = doc.get("roleRef")
        if not isinstance(ref, dict) or not ref.get("name"):
            raise InvalidResourceError(f"{kind} {name!r} has no roleRef")
        ref_kind = ref.get("kind")
        if ref_kind not in ("Role", "ClusterRole"):
            raise InvalidResourceError(f"{kind} {name!r}: unsupported roleRef kind {ref_kind!r}")
        if kind == "ClusterRoleBinding" and ref_kind != "ClusterRole":
            raise InvalidResourceError(f"ClusterRoleBinding {name!r} can only reference a ClusterRole")
        if kind == "ClusterRoleBinding":
            # Cluster-scoped: the API server ignores metadata.namespace.
            namespace = ""
        elif not namespace:
            raise InvalidResourceError(f"{kind} {name!r} requires metadata.namespace")

        subjects: List[Subject] = []
        for s in doc.get("subjects") or []:
            subjects.append(
                Subject(
                    kind=s.get("kind", ""),
                    name=s.get("name", ""),
                    namespace=s.get("namespace"),
                    api_group=s.get("apiGroup"),
                )
            )
        return cls(
            api_version=(doc.get("apiVersion") or "").strip(),
            kind=kind,
            name=name,
            namespace=namespace,
            role_ref=RoleRef(api_group=ref.get("apiGroup") or RBAC_GROUP, kind=ref_kind, name=ref["name"]),
            subjects=tuple(subjects),
        )


def _identity(doc: Dict[str, Any]) -> Tuple[str, str, str]:
    if not isinstance(doc, dict):
        raise InvalidResourceError("manifest must be a mapping")
    meta = doc.get("metadata") or {}
    kind = (doc.get("kind") or "").strip()
    name = (meta.get("name") or "").strip()
    if not kind or not name:
        raise InvalidResourceError("manifest requires kind and metadata.name")
    return kind, name, (meta.get("namespace") or "").strip()


def is_binding_kind(group: str, kind: str) -> bool:
    return group == RBAC_GROUP and kind in BINDING_KINDS


def resource_from_manifest(doc: Dict[str, Any]) -> ResourceRef:
    """Parse a manifest into a `BindingResource` for RBAC bindings, else a plain `ResourceRef`."""
    ref = ResourceRef.from_manifest(doc)
    if is_binding_kind(ref.group, ref.kind):
        return BindingResource.from_manifest(doc)
    return ref


class RestMapping(BaseModelFrozen):
    group: str
    version: str
    resource: str
    namespaced: bool = True


class MissingGrant(BaseModelFrozen):
    """An atomic rule the principal does not hold (error is set when the check itself failed)."""

    rule: AtomicRule
    error: Optional[str] = Field(default=None)

    def __str__(self) -> str:
        if self.error:
            return f"unable to check {self.rule}: {self.error}"
        return f"missing {self.rule}"
