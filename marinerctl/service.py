"""Exporting services to other clusters of the set."""

from __future__ import annotations

from marinerctl.reporter import Reporter
from marinerctl.resource import AlreadyExistsError, ApiError, Cluster, NotFoundError

SERVICE_EXPORT_KIND = "ServiceExport"
SERVICE_EXPORT_API_VERSION = "multicluster.x-k8s.io/v1alpha1"


def export(cluster: Cluster, service_namespace: str, service_name: str, status: Reporter) -> None:
    """Create a ServiceExport for an existing Service; exporting twice is not an error."""
    try:
        cluster.resource("Service", service_namespace).get(service_name)
    except ApiError as exc:
        raise status.error(
            exc, f'Unable to find the Service "{service_name}" in namespace "{service_namespace}"'
        ) from exc

    service_export = {
        "apiVersion": SERVICE_EXPORT_API_VERSION,
        "kind": SERVICE_EXPORT_KIND,
        "metadata": {"name": service_name, "namespace": service_namespace},
    }
    try:
        cluster.resource(SERVICE_EXPORT_KIND, service_namespace).create(service_export)
    except AlreadyExistsError:
        status.success("Service already exported")
        return
    except ApiError as exc:
        raise status.error(exc, "Failed to export Service") from exc

    status.success("Service exported successfully")


def unexport(cluster: Cluster, namespace: str, service_name: str, status: Reporter) -> None:
    """Delete the ServiceExport of a Service."""
    try:
        cluster.resource(SERVICE_EXPORT_KIND, namespace).delete(service_name)
    except NotFoundError as exc:
        raise status.error(exc, "Service %s/%s was not previously exported", namespace, service_name) from exc
    except ApiError as exc:
        raise status.error(exc, "Failed to unexport Service") from exc

    status.success("Service successfully unexported")