"""
Pytest config.

Pins the repo root on sys.path so `import bindguard` and `import main` work
whether or not the package is installed, and provides fake collaborators so
the validators can be exercised without a cluster.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from bindguard.core.models import BindingResource, PolicyRule, ResourceAttributes, RoleRef  # noqa: E402
from bindguard.permissions.mapper import StaticRestMapper  # noqa: E402


class FakeChecker:
    """
    Answers access reviews from a predicate; records every request.

    `decide` may return a bool or raise to simulate transport failures.
    """

    def __init__(self, decide: Callable[[ResourceAttributes], bool]) -> None:
        self.decide = decide
        self.calls: List[ResourceAttributes] = []

    async def check(self, attrs: ResourceAttributes) -> bool:
        self.calls.append(attrs)
        return self.decide(attrs)

    def verbs(self) -> List[str]:
        return [c.verb for c in self.calls]


class FakeResolver:
    def __init__(self, rules: Optional[List[PolicyRule]] = None, error: Optional[Exception] = None) -> None:
        self.rules = list(rules or [])
        self.error = error
        self.calls: List[BindingResource] = []

    async def resolve_rules(self, binding: BindingResource) -> List[PolicyRule]:
        self.calls.append(binding)
        if self.error is not None:
            raise self.error
        return list(self.rules)


def grants(*held: Dict[str, str]) -> Callable[[ResourceAttributes], bool]:
    """Predicate allowing exactly the listed partial attribute sets."""

    def _decide(attrs: ResourceAttributes) -> bool:
        for h in held:
            if all(getattr(attrs, k) == v for k, v in h.items()):
                return True
        return False

    return _decide


@pytest.fixture
def role_binding() -> BindingResource:
    return BindingResource(
        api_version="rbac.authorization.k8s.io/v1",
        kind="RoleBinding",
        name="pod-readers",
        namespace="team-a",
        role_ref=RoleRef(kind="Role", name="pod-reader"),
    )


@pytest.fixture
def mapper() -> StaticRestMapper:
    return StaticRestMapper()
