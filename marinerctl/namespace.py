"""Provisioning of namespaces."""

from __future__ import annotations

from collections.abc import Mapping

from marinerctl.resource import AlreadyExistsError, ApiError, Cluster, NotFoundError, update


def ensure(cluster: Cluster, namespace: str, labels: Mapping[str, str] | None = None) -> bool:
    """Create ``namespace`` or merge ``labels`` into it.

    Returns False only when a concurrent creation got there first.
    """
    wanted = dict(labels or {})
    client = cluster.resource("Namespace")
    desired = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace, "labels": wanted}}

    def merge(existing):
        meta = existing["metadata"]
        meta["labels"] = {**(meta.get("labels") or {}), **wanted}
        return existing

    try:
        try:
            update(client, desired, merge)
        except NotFoundError:
            client.create(desired)
    except AlreadyExistsError:
        return False
    except ApiError as exc:
        raise ApiError(f"error creating Namespace: {exc}") from exc
    return True