"""Error taxonomy for binding authorization.

Only a definite "bind" denial is control flow; everything else here is
surfaced to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from bindguard.core.models import MissingGrant, ResourceAttributes


class PermissionsError(Exception):
    """Base class for every error raised by bindguard."""


class AddressingError(PermissionsError):
    """A resource kind could not be mapped to a REST resource."""

    def __init__(self, group: str, kind: str, message: str = "") -> None:
        self.group = group
        self.kind = kind
        gk = f"{kind}.{group}" if group else kind
        super().__init__(f"unable to resolve resource for kind {gk!r}" + (f": {message}" if message else ""))


class TransportError(PermissionsError):
    """A remote call did not complete (network, auth, timeout, server error)."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class NotFoundError(PermissionsError):
    """The role referenced by a binding does not exist."""

    def __init__(self, kind: str, name: str, namespace: str = "") -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace!r}" if namespace else ""
        super().__init__(f"{kind} {name!r} not found{where}")


class PermissionDeniedError(PermissionsError):
    def __init__(self, attrs: "ResourceAttributes") -> None:
        self.attrs = attrs
        super().__init__(f"not permitted to {attrs.verb!r} {attrs.describe()}")


class PrivilegeEscalationError(PermissionsError):
    """
    Binding would grant permissions the principal does not hold.

    `missing` lists every absent (or uncheckable) atomic grant, sorted so the
    message is stable across runs regardless of check completion order.
    """

    def __init__(self, verb: str, kind: str, missing: Sequence["MissingGrant"]) -> None:
        self.verb = verb
        self.kind = kind
        self.missing: List["MissingGrant"] = sorted(missing, key=lambda m: m.rule.sort_key())
        lines = [f"potential privilege escalation, not permitted to {verb!r} {kind}"]
        lines.extend(str(m) for m in self.missing)
        super().__init__("\n".join(lines))


class InvalidRuleError(PermissionsError, ValueError):
    """A policy rule that cannot decompose into any atomic rule."""


class InvalidResourceError(PermissionsError, ValueError):
    """A binding manifest that is missing required fields."""
