"""Provisioning of namespaced RBAC role bindings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marinerctl.resource import Cluster, create_or_update, load_object


def ensure_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Create or update the RoleBinding described by ``yaml_text``; True if it was created."""
    role_binding = load_object(yaml_text)
    if role_binding["kind"] != "RoleBinding":
        raise ValueError(f"expected a RoleBinding, got a {role_binding['kind']}")
    return ensure(cluster, namespace, role_binding)


def ensure(cluster: Cluster, namespace: str, role_binding: Mapping[str, Any]) -> bool:
    """Create or update ``role_binding`` in ``namespace``; True if it was created."""
    return create_or_update(cluster.resource("RoleBinding", namespace), role_binding)