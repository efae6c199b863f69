"""Kubernetes API clients used by the binding validator, plus the live wiring."""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from typing import Any, Callable, Optional

from bindguard.config import ValidatorConfig, get_validator_config
from bindguard.core.errors import TransportError

logger = logging.getLogger(__name__)

_api_client = None
_dynamic_client = None
_config_loaded = False
_init_lock = threading.Lock()


def _load_config_once() -> None:
    global _config_loaded
    if _config_loaded:
        return
    from kubernetes import config

    # Works for both in-cluster and local kubeconfig.
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    _config_loaded = True


def get_api_client():
    """
    Return a cached `kubernetes.client.ApiClient`.

    Config loading and the client object are both cached; the client is
    stateless per request and safe to share across concurrent validations.
    """
    global _api_client

    if _api_client is not None:
        return _api_client

    with _init_lock:
        if _api_client is not None:
            return _api_client
        try:
            from kubernetes import client
        except Exception as import_err:
            raise RuntimeError(f"Kubernetes client not available: {import_err}") from import_err

        _load_config_once()
        _api_client = client.ApiClient()
        return _api_client


def get_authorization_v1():
    from kubernetes import client

    return client.AuthorizationV1Api(get_api_client())


def get_rbac_v1():
    from kubernetes import client

    return client.RbacAuthorizationV1Api(get_api_client())


def get_dynamic_client():
    """Return a cached DynamicClient (construction performs API discovery)."""
    global _dynamic_client
    if _dynamic_client is not None:
        return _dynamic_client

    api_client = get_api_client()
    with _init_lock:
        if _dynamic_client is not None:
            return _dynamic_client
        from kubernetes.dynamic import DynamicClient

        _dynamic_client = DynamicClient(api_client)
        return _dynamic_client


async def call_k8s(
    fn: Callable[..., Any],
    *args: Any,
    timeout: float,
    what: str,
    pass_request_timeout: bool = True,
    **kwargs: Any,
) -> Any:
    """
    Run a blocking kubernetes-client call off the event loop with a deadline.

    Any failure to complete the call becomes `TransportError` (with `.status`
    set for API errors). Cancellation propagates unchanged.
    """
    from kubernetes.client.rest import ApiException
    from urllib3.exceptions import HTTPError

    if pass_request_timeout:
        kwargs["_request_timeout"] = timeout
    call = functools.partial(fn, *args, **kwargs)
    try:
        return await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("%s timed out after %.1fs", what, timeout)
        raise TransportError(f"{what}: timed out after {timeout:g}s") from e
    except ApiException as e:
        if e.status != 404:
            logger.warning("%s failed: %s %s", what, e.status, e.reason)
        raise TransportError(f"{what}: Kubernetes API error: {e.status} {e.reason}", status=e.status) from e
    except (HTTPError, OSError) as e:
        logger.warning("%s failed: %s", what, e)
        raise TransportError(f"{what}: {e}") from e


def build_validator(cfg: Optional[ValidatorConfig] = None):
    """Wire live cluster collaborators into the kind-dispatching validator."""
    from bindguard.permissions.binding import BindingValidator
    from bindguard.permissions.checker import SelfSubjectAccessReviewChecker
    from bindguard.permissions.mapper import DiscoveryRestMapper, StaticRestMapper
    from bindguard.permissions.resource import CompositeValidator, ResourceValidator
    from bindguard.permissions.rules import RbacRuleResolver

    cfg = cfg or get_validator_config()
    checker = SelfSubjectAccessReviewChecker(get_authorization_v1(), timeout=cfg.request_timeout_seconds)
    if cfg.use_discovery:
        mapper = DiscoveryRestMapper(get_dynamic_client, timeout=cfg.request_timeout_seconds)
    else:
        mapper = StaticRestMapper()
    resolver = RbacRuleResolver(get_rbac_v1(), timeout=cfg.request_timeout_seconds)

    binding = BindingValidator(checker, resolver, mapper, config=cfg)
    return CompositeValidator(default=ResourceValidator(checker, mapper, config=cfg), bindings=binding)
