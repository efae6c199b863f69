from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from bindguard.core.models import BindingResource, PolicyRule, ResourceAttributes, ResourceRef, RestMapping


@runtime_checkable
class Validator(Protocol):
    """
    Per-kind authorization contract.

    `validate` returns None when the principal may perform `verb` on `resource`
    and raises a `PermissionsError` subclass otherwise.
    """

    async def validate(self, resource: ResourceRef, verb: str) -> None: ...


@runtime_checkable
class PermissionChecker(Protocol):
    async def check(self, attrs: ResourceAttributes) -> bool:
        """
        Ask the authorization service whether the acting principal holds `attrs`.

        Returns the service's answer; raises `TransportError` if the call did not complete.
        """


@runtime_checkable
class RuleResolver(Protocol):
    async def resolve_rules(self, binding: BindingResource) -> List[PolicyRule]:
        """Rules of the role referenced by `binding`, in the order the cluster returns them."""


@runtime_checkable
class RestMapper(Protocol):
    async def rest_mapping(self, group: str, kind: str, version: str = "") -> RestMapping:
        """Resolve a group/kind (optionally pinned to `version`); raises `AddressingError`."""
