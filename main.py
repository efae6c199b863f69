#!/usr/bin/env python3
"""
bindguard - check (Cluster)RoleBinding manifests for privilege escalation
before applying them.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List

import yaml

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

logger = logging.getLogger(__name__)


def load_documents(path: str) -> List[Dict[str, Any]]:
    """Read every non-empty YAML document from `path` ("-" for stdin)."""
    if path == "-":
        docs = list(yaml.safe_load_all(sys.stdin))
    else:
        with open(path, "r", encoding="utf-8") as f:
            docs = list(yaml.safe_load_all(f))
    out: List[Dict[str, Any]] = []
    for d in docs:
        if not d:
            continue
        # Expand `kind: List` wrappers.
        if isinstance(d, dict) and d.get("kind") == "List":
            out.extend(x for x in (d.get("items") or []) if x)
        else:
            out.append(d)
    return out


async def check_documents(docs: List[Dict[str, Any]], verb: str, validator=None) -> int:
    """Validate each document; returns the number of failures."""
    from bindguard.core.errors import PermissionsError
    from bindguard.core.models import resource_from_manifest

    if validator is None:
        from bindguard.providers.k8s_provider import build_validator

        validator = build_validator()

    failures = 0
    for doc in docs:
        try:
            res = resource_from_manifest(doc)
        except PermissionsError as e:
            print(f"✗ invalid manifest: {e}")
            failures += 1
            continue
        label = f"{res.kind} {res.namespace + '/' if res.namespace else ''}{res.name}"
        try:
            await validator.validate(res, verb)
        except PermissionsError as e:
            print(f"✗ {label}: {e}")
            failures += 1
        else:
            print(f"✓ {label}: authorized to {verb}")
    return failures


def breakdown_documents(docs: List[Dict[str, Any]], *, all_resource_names: bool = False) -> List[str]:
    """Render the atomic rules of every Role/ClusterRole document."""
    from bindguard.core.models import PolicyRule
    from bindguard.permissions.breakdown import breakdown_rules

    lines: List[str] = []
    for doc in docs:
        if doc.get("kind") not in ("Role", "ClusterRole"):
            continue
        name = (doc.get("metadata") or {}).get("name", "")
        rules = [PolicyRule.from_dict(r) for r in (doc.get("rules") or [])]
        atomic = breakdown_rules(rules, all_resource_names=all_resource_names)
        lines.append(f"{doc['kind']} {name}: {len(atomic)} atomic rule(s)")
        lines.extend(f"  {a}" for a in atomic)
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description="Privilege-escalation-aware RBAC binding checks")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Check whether the current principal may apply binding manifests")
    check.add_argument("-f", "--file", required=True, help="YAML manifest file ('-' for stdin)")
    check.add_argument("--verb", default="create", help="Verb to validate (default: create)")

    bd = sub.add_parser("breakdown", help="Print the atomic rules of Role/ClusterRole manifests")
    bd.add_argument("-f", "--file", required=True, help="YAML manifest file ('-' for stdin)")
    bd.add_argument("--all-resource-names", action="store_true", help="One atomic rule per resourceName")

    args = parser.parse_args()
    docs = load_documents(args.file)

    if args.command == "breakdown":
        from bindguard.core.errors import InvalidRuleError

        try:
            for line in breakdown_documents(docs, all_resource_names=args.all_resource_names):
                print(line)
        except InvalidRuleError as e:
            logger.error("Invalid rule: %s", e)
            sys.exit(1)
        return

    from kubernetes.config import ConfigException

    from bindguard.providers.k8s_provider import build_validator

    try:
        validator = build_validator()
    except ConfigException as e:
        logger.error("Unable to load Kubernetes configuration: %s", e)
        sys.exit(1)

    failures = asyncio.run(check_documents(docs, args.verb, validator=validator))
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
