"""Provisioning of the operator's custom resources and their definitions."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from marinerctl.resource import ApiError, Cluster, Object, create_anew, create_or_update

OPERATOR_API_VERSION = "submariner.io/v1alpha1"
SUBMARINER_CR_NAME = "submariner"
SERVICE_DISCOVERY_CR_NAME = "service-discovery"

SUBMARINER_CRD = "submariners.submariner.io"
SERVICE_DISCOVERY_CRD = "servicediscoveries.submariner.io"
BROKER_CRD = "brokers.submariner.io"


def _wrap(exc: ApiError, message: str) -> ApiError:
    return type(exc)(f"{message}: {exc}")


def ensure_submariner(cluster: Cluster, namespace: str, spec: Mapping[str, Any]) -> Object:
    """Create the Submariner resource afresh with ``spec`` and return it."""
    submariner = {
        "apiVersion": OPERATOR_API_VERSION,
        "kind": "Submariner",
        "metadata": {"name": SUBMARINER_CR_NAME, "namespace": namespace},
        "spec": dict(spec),
    }
    try:
        return create_anew(cluster.resource("Submariner", namespace), submariner)
    except ApiError as exc:
        raise _wrap(exc, "error creating Submariner resource") from exc


def ensure_service_discovery(cluster: Cluster, namespace: str, spec: Mapping[str, Any]) -> bool:
    """Create or update the ServiceDiscovery resource; True if it was created."""
    service_discovery = {
        "apiVersion": OPERATOR_API_VERSION,
        "kind": "ServiceDiscovery",
        "metadata": {"name": SERVICE_DISCOVERY_CR_NAME, "namespace": namespace},
        "spec": dict(spec),
    }
    try:
        return create_or_update(cluster.resource("ServiceDiscovery", namespace), service_discovery)
    except ApiError as exc:
        raise _wrap(exc, "error creating/updating ServiceDiscovery resource") from exc


def ensure_crds(updater: Callable[[str], bool]) -> bool:
    """Install or update the operator CRDs through ``updater``; True if any was created.

    ``updater`` takes a CRD name and returns whether it created it.
    """
    steps = (
        (SUBMARINER_CRD, "error provisioning Submariner CRD"),
        (SERVICE_DISCOVERY_CRD, "error provisioning ServiceDiscovery CRD"),
        (BROKER_CRD, "error provisioning Broker CRD"),
    )
    created = False
    for crd_name, message in steps:
        try:
            created = updater(crd_name) or created
        except ApiError as exc:
            raise _wrap(exc, message) from exc
    return created