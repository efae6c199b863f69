"""Privilege-escalation-aware authorization for Kubernetes (Cluster)RoleBindings."""
