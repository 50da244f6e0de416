"""Provisioning of secrets."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marinerctl.resource import ApiError, Cluster, Object, create_anew


def ensure(cluster: Cluster, namespace: str, secret: Mapping[str, Any]) -> Object:
    """Create ``secret`` afresh in ``namespace`` and return the stored object."""
    try:
        return create_anew(cluster.resource("Secret", namespace), secret)
    except ApiError as exc:
        raise ApiError(f"error creating secret: {exc}") from exc