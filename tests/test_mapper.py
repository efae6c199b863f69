from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from bindguard.core.errors import AddressingError
from bindguard.core.models import RestMapping
from bindguard.permissions.mapper import DiscoveryRestMapper, StaticRestMapper


@pytest.mark.asyncio
async def test_static_mapper_knows_rbac_kinds() -> None:
    m = StaticRestMapper()
    rb = await m.rest_mapping("rbac.authorization.k8s.io", "RoleBinding", "v1")
    crb = await m.rest_mapping("rbac.authorization.k8s.io", "ClusterRoleBinding")
    assert rb == RestMapping(group="rbac.authorization.k8s.io", version="v1", resource="rolebindings", namespaced=True)
    assert crb.resource == "clusterrolebindings"
    assert crb.version == "v1"
    assert crb.namespaced is False


@pytest.mark.asyncio
async def test_static_mapper_unknown_kind() -> None:
    with pytest.raises(AddressingError, match="Widget.example.com"):
        await StaticRestMapper().rest_mapping("example.com", "Widget", "v1")


def _res(name: str, preferred: bool = False, version: str = "v1"):  # type: ignore[no-untyped-def]
    return SimpleNamespace(group="example.com", api_version=version, name=name, namespaced=True, preferred=preferred)


@pytest.mark.asyncio
async def test_discovery_mapper_with_version() -> None:
    dyn = MagicMock()
    dyn.resources.get.return_value = _res("widgets")
    m = DiscoveryRestMapper(lambda: dyn)

    out = await m.rest_mapping("example.com", "Widget", "v1")

    dyn.resources.get.assert_called_once_with(api_version="example.com/v1", kind="Widget")
    assert out == RestMapping(group="example.com", version="v1", resource="widgets", namespaced=True)


@pytest.mark.asyncio
async def test_discovery_mapper_prefers_preferred_version_and_skips_subresources() -> None:
    dyn = MagicMock()
    dyn.resources.search.return_value = [
        _res("widgets/status", preferred=True, version="v2"),
        _res("widgets", version="v1beta1"),
        _res("widgets", preferred=True, version="v2"),
    ]
    out = await DiscoveryRestMapper(lambda: dyn).rest_mapping("example.com", "Widget")
    assert (out.version, out.resource) == ("v2", "widgets")


@pytest.mark.asyncio
async def test_discovery_mapper_unknown_kind_is_addressing_error() -> None:
    dyn = MagicMock()
    dyn.resources.get.side_effect = ResourceNotFoundError("No matches found")
    with pytest.raises(AddressingError):
        await DiscoveryRestMapper(lambda: dyn).rest_mapping("example.com", "Widget", "v1")

    dyn.resources.search.return_value = []
    with pytest.raises(AddressingError):
        await DiscoveryRestMapper(lambda: dyn).rest_mapping("example.com", "Widget")
