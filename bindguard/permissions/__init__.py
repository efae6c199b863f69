"""Permission validators for resources applied to a cluster.

- `BindingValidator`: (Cluster)RoleBinding create/update with escalation prevention
- `ResourceValidator`: single direct check for every other kind
- `CompositeValidator`: picks one of the above by (group, kind)
"""

from bindguard.permissions.base import PermissionChecker, RestMapper, RuleResolver, Validator
from bindguard.permissions.binding import BindingValidator
from bindguard.permissions.breakdown import breakdown_rule, breakdown_rules
from bindguard.permissions.checker import SelfSubjectAccessReviewChecker, validate_permissions
from bindguard.permissions.mapper import DiscoveryRestMapper, StaticRestMapper
from bindguard.permissions.resource import CompositeValidator, ResourceValidator
from bindguard.permissions.rules import RbacRuleResolver

__all__ = [
    "BindingValidator",
    "CompositeValidator",
    "DiscoveryRestMapper",
    "PermissionChecker",
    "RbacRuleResolver",
    "ResourceValidator",
    "RestMapper",
    "RuleResolver",
    "SelfSubjectAccessReviewChecker",
    "StaticRestMapper",
    "Validator",
    "breakdown_rule",
    "breakdown_rules",
    "validate_permissions",
]
