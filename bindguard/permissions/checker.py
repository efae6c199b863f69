"""SelfSubjectAccessReview-backed permission checks."""

from __future__ import annotations

import logging

from bindguard.core.errors import PermissionDeniedError, TransportError
from bindguard.core.models import ResourceAttributes
from bindguard.permissions.base import PermissionChecker
from bindguard.providers.k8s_provider import call_k8s

logger = logging.getLogger(__name__)


class SelfSubjectAccessReviewChecker(PermissionChecker):
    """
    Asks the API server whether the current principal may perform one action.

    One round-trip per call and no caching: authorization state can change
    between calls.
    """

    def __init__(self, authorization_api, *, timeout: float = 10.0) -> None:
        self._api = authorization_api
        self._timeout = timeout

    async def check(self, attrs: ResourceAttributes) -> bool:
        from kubernetes import client

        if attrs.non_resource_url:
            spec = client.V1SelfSubjectAccessReviewSpec(
                non_resource_attributes=client.V1NonResourceAttributes(path=attrs.non_resource_url, verb=attrs.verb)
            )
        else:
            spec = client.V1SelfSubjectAccessReviewSpec(
                resource_attributes=client.V1ResourceAttributes(
                    group=attrs.group,
                    version=attrs.version,
                    resource=attrs.resource,
                    namespace=attrs.namespace,
                    name=attrs.name,
                    verb=attrs.verb,
                )
            )
        review = await call_k8s(
            self._api.create_self_subject_access_review,
            client.V1SelfSubjectAccessReview(spec=spec),
            timeout=self._timeout,
            what="SelfSubjectAccessReview",
        )
        status = getattr(review, "status", None)
        if status is None:
            raise TransportError("SelfSubjectAccessReview returned no status")

        allowed = bool(status.allowed)
        if not allowed and getattr(status, "evaluation_error", None):
            logger.warning("Access review for %s had evaluation error: %s", attrs.describe(), status.evaluation_error)
        logger.debug("Access review %r %s -> allowed=%s", attrs.verb, attrs.describe(), allowed)
        return allowed


async def validate_permissions(checker: PermissionChecker, attrs: ResourceAttributes) -> None:
    """Raise `PermissionDeniedError` unless `checker` allows `attrs`."""
    if not await checker.check(attrs):
        raise PermissionDeniedError(attrs)
