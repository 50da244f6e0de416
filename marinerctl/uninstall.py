"""Removal of every component the tool installs on a cluster."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Mapping
from typing import Any

from marinerctl.customresources import SERVICE_DISCOVERY_CR_NAME, SUBMARINER_CR_NAME
from marinerctl.operator_deployment import OPERATOR_NAME, get_pod_label_selector
from marinerctl.reporter import Reporter
from marinerctl.resource import (
    ApiError,
    Cluster,
    NoMatchError,
    NotFoundError,
    label_selector_from_set,
    update,
)

SUBMARINER_GATEWAY_LABEL = "submariner.io/gateway"
CLEANUP_FINALIZER = "submariner.io/cleanup"
CRD_SUFFIX = ".submariner.io"
COMPONENT_PREFIX = "submariner-"

COMPONENT_READY_TIMEOUT = 120.0
DEFAULT_MAX_WAIT = COMPONENT_READY_TIMEOUT + 30.0
DEFAULT_CHECK_INTERVAL = 2.0


class _WaitTimeoutError(ApiError):
    def __init__(self, message: str = "timed out waiting for the condition"):
        super().__init__(message)


def uninstall_all(
    cluster: Cluster,
    cluster_name: str,
    submariner_namespace: str,
    status: Reporter,
    *,
    check_interval: float = DEFAULT_CHECK_INTERVAL,
    max_wait: float = DEFAULT_MAX_WAIT,
) -> None:
    """Delete the components, the broker if unused, the roles, CRDs and gateway labels."""
    timing = (check_interval, max_wait)
    found = _ensure_component_deleted(
        cluster, cluster_name, submariner_namespace, status, timing,
        kind="Submariner", name=SUBMARINER_CR_NAME, component="connectivity",
    )
    if not found:
        _ensure_component_deleted(
            cluster, cluster_name, submariner_namespace, status, timing,
            kind="ServiceDiscovery", name=SERVICE_DISCOVERY_CR_NAME, component="service discovery",
        )

    broker_namespace = _find_broker_namespace(cluster, cluster_name, status)
    deleted = _delete_broker_if_unused(cluster, broker_namespace, cluster_name, status)
    _delete_cluster_roles_and_bindings(cluster, cluster_name, status, keep_operator=not deleted)

    with contextlib.ExitStack() as stack:
        if deleted:
            status.start('Deleting the Submariner namespace "%s" on cluster "%s"', submariner_namespace, cluster_name)
            stack.callback(status.end)
            try:
                cluster.resource("Namespace").delete(submariner_namespace)
            except NotFoundError:
                pass
            except ApiError as exc:
                raise status.error(exc, "Error deleting the Submariner namespace") from exc
            _delete_crds(cluster, cluster_name, status)

        _unlabel_gateway_nodes(cluster, cluster_name, status)


def _unlabel_gateway_nodes(cluster: Cluster, cluster_name: str, status: Reporter) -> None:
    status.start('Unlabeling gateway nodes on cluster "%s"', cluster_name)
    try:
        nodes_client = cluster.resource("Node")
        try:
            nodes = nodes_client.list(label_selector=label_selector_from_set({SUBMARINER_GATEWAY_LABEL: "true"}))
        except ApiError as exc:
            raise status.error(exc, "Error listing Nodes") from exc

        def drop_label(existing: dict[str, Any]) -> dict[str, Any]:
            (existing["metadata"].get("labels") or {}).pop(SUBMARINER_GATEWAY_LABEL, None)
            return existing

        for node in nodes:
            try:
                update(nodes_client, node, drop_label)
            except ApiError as exc:
                raise status.error(exc, 'Error updating Node "%s"', node["metadata"]["name"]) from exc
    finally:
        status.end()


def _delete_crds(cluster: Cluster, cluster_name: str, status: Reporter) -> None:
    status.start('Deleting the Submariner custom resource definitions on cluster "%s"', cluster_name)
    try:
        client = cluster.resource("CustomResourceDefinition")
        try:
            crds = client.list()
        except ApiError as exc:
            raise status.error(exc, "Error listing CustomResourceDefinitions") from exc

        for crd in crds:
            name = crd["metadata"]["name"]
            if not name.endswith(CRD_SUFFIX):
                continue
            try:
                client.delete(name)
            except ApiError as exc:
                raise status.error(exc, 'Error deleting CustomResourceDefinition "%s"', name) from exc
            status.success('Deleted the "%s" custom resource definition', name)
    finally:
        status.end()


def _delete_cluster_roles_and_bindings(
    cluster: Cluster, cluster_name: str, status: Reporter, *, keep_operator: bool
) -> None:
    status.start('Deleting the Submariner cluster roles and bindings on cluster "%s"', cluster_name)
    try:
        bindings_client = cluster.resource("ClusterRoleBinding")
        roles_client = cluster.resource("ClusterRole")
        try:
            bindings = bindings_client.list()
        except ApiError as exc:
            raise status.error(exc, "Error listing ClusterRoleBindings") from exc

        for binding in bindings:
            name = binding["metadata"]["name"]
            if not name.startswith(COMPONENT_PREFIX) or (keep_operator and name == OPERATOR_NAME):
                continue
            try:
                bindings_client.delete(name)
            except ApiError as exc:
                raise status.error(exc, 'Error deleting ClusterRoleBinding "%s"', name) from exc

            role_name = (binding.get("roleRef") or {}).get("name", "")
            try:
                roles_client.delete(role_name)
            except NotFoundError:
                pass
            except ApiError as exc:
                raise status.error(exc, 'Error deleting ClusterRole "%s"', role_name) from exc

            status.success('Deleted the "%s" cluster role and binding', name)
    finally:
        status.end()


def _ensure_component_deleted(
    cluster: Cluster,
    cluster_name: str,
    namespace: str,
    status: Reporter,
    timing: tuple[float, float],
    *,
    kind: str,
    name: str,
    component: str,
) -> bool:
    try:
        status.start('Checking if the %s component is installed on cluster "%s"', component, cluster_name)
        client = cluster.resource(kind, namespace)
        try:
            obj = client.get(name)
        except (NotFoundError, NoMatchError):
            status.success('The %s component is not installed on cluster "%s" - skipping', component, cluster_name)
            return False
        except ApiError as exc:
            raise status.error(exc, "Error retrieving the %s resource", kind) from exc

        status.success('The %s component is installed on cluster "%s"', component, cluster_name)
        status.start("Deleting the %s resource - this may take some time", kind)
        try:
            _ensure_deleted(cluster, obj, status, timing)
        except Exception as exc:
            raise status.error(exc, 'Error deleting %s resource "%s"', kind, name) from exc
        return True
    finally:
        status.end()


def _await_deleted(cluster: Cluster, obj: Mapping[str, Any], timing: tuple[float, float]) -> None:
    check_interval, max_wait = timing
    meta = obj["metadata"]
    client = cluster.resource(obj["kind"], meta.get("namespace"))
    deadline = time.monotonic() + max_wait
    while True:
        try:
            client.delete(meta["name"])
        except NotFoundError:
            return
        if time.monotonic() >= deadline:
            raise _WaitTimeoutError()
        time.sleep(check_interval)


def _remove_finalizer(cluster: Cluster, obj: Mapping[str, Any], finalizer: str) -> None:
    meta = obj["metadata"]
    client = cluster.resource(obj["kind"], meta.get("namespace"))

    def strip(existing: dict[str, Any]) -> dict[str, Any]:
        existing_meta = existing["metadata"]
        existing_meta["finalizers"] = [f for f in existing_meta.get("finalizers") or [] if f != finalizer]
        return existing

    try:
        update(client, obj, strip)
    except NotFoundError:
        pass


def _ensure_deleted(
    cluster: Cluster, obj: Mapping[str, Any], status: Reporter, timing: tuple[float, float]
) -> None:
    try:
        _await_deleted(cluster, obj, timing)
        return
    except _WaitTimeoutError:
        pass

    namespace = obj["metadata"].get("namespace")
    try:
        selector = get_pod_label_selector(cluster, namespace)
    except ApiError as exc:
        raise type(exc)(f"error obtaining the operator deployment label: {exc}") from exc

    if not selector:
        status.warning(
            "The Submariner operator deployment does not exist so deletion of the resource was not completed - "
            "the resource will be force-deleted"
        )
    else:
        try:
            pods = cluster.resource("Pod", namespace).list(label_selector=selector)
        except ApiError as exc:
            raise type(exc)(f"error listing pods: {exc}") from exc

        if not pods:
            pod_status = "does not exist"
        else:
            phase = (pods[0].get("status") or {}).get("phase", "")
            if phase == "Running":
                raise status.error(
                    RuntimeError(
                        "the Submariner operator pod appears to be running but did not "
                        "complete deletion of the resource. Please check the pod logs"
                    ),
                    "",
                )
            pod_status = f'is not running (status is "{phase}")'

        status.warning(
            "The Submariner operator pod %s so deletion of the resource was not completed - "
            "the resource will be force-deleted",
            pod_status,
        )

    _remove_finalizer(cluster, obj, CLEANUP_FINALIZER)
    _await_deleted(cluster, obj, timing)


def _delete_broker_if_unused(cluster: Cluster, namespace: str, cluster_name: str, status: Reporter) -> bool:
    if not namespace:
        return True

    namespaces = cluster.resource("Namespace")
    try:
        namespaces.get(namespace)
    except NotFoundError:
        return True
    except ApiError as exc:
        raise status.error(exc, 'Error retrieving broker namespace "%s"', namespace) from exc

    if _broker_in_use(cluster, namespace, cluster_name, status):
        return False

    status.start('Deleting the broker namespace "%s"', namespace)
    try:
        try:
            namespaces.delete(namespace)
        except NotFoundError:
            pass
        except ApiError as exc:
            raise status.error(exc, "Error deleting the broker namespace") from exc
    finally:
        status.end()
    return True


def _broker_in_use(cluster: Cluster, namespace: str, cluster_name: str, status: Reporter) -> bool:
    status.start('Verifying broker namespace "%s" is not in use', namespace)
    try:
        try:
            endpoints = cluster.resource("Endpoint", namespace).list()
        except ApiError as exc:
            raise status.error(exc, "error retrieving Endpoints") from exc

        remote = [
            cluster_id
            for cluster_id in ((endpoint.get("spec") or {}).get("clusterID", "") for endpoint in endpoints)
            if cluster_id != cluster_name
        ]
        if remote:
            status.warning(
                'Broker namespace "%s" appears to be in use by other clusters ([%s]) - keeping the broker components.',
                namespace,
                " ".join(remote),
            )
            return True
        return False
    finally:
        status.end()


def _find_broker_namespace(cluster: Cluster, cluster_name: str, status: Reporter) -> str:
    status.start('Checking if the broker component is installed on cluster "%s"', cluster_name)
    try:
        try:
            brokers = cluster.resource("Broker").list()
        except NoMatchError:
            brokers = []
        except ApiError as exc:
            raise status.error(exc, "Error listing broker resources") from exc

        for broker in brokers:
            broker_namespace = broker["metadata"]["namespace"]
            status.success('The broker component is installed in namespace "%s"', broker_namespace)
            return broker_namespace

        status.success('The broker component is not installed on cluster "%s"', cluster_name)
        return ""
    finally:
        status.end()