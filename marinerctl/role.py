"""Provisioning of namespaced RBAC roles."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marinerctl.resource import Cluster, create_or_update, load_object


def ensure_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Create or update the Role described by ``yaml_text``; True if it was created."""
    role = load_object(yaml_text)
    if role["kind"] != "Role":
        raise ValueError(f"expected a Role, got a {role['kind']}")
    return ensure(cluster, namespace, role)


def ensure(cluster: Cluster, namespace: str, role: Mapping[str, Any]) -> bool:
    """Create or update ``role`` in ``namespace``; True if it was created."""
    return create_or_update(cluster.resource("Role", namespace), role)