"""Provisioning of service accounts and their token secrets."""

from __future__ import annotations

from collections.abc import Mapping
from secrets import token_hex
from typing import Any

from marinerctl import secret
from marinerctl.resource import (
    ApiError,
    Cluster,
    NotFoundError,
    Object,
    create_or_update,
    load_object,
)

SERVICE_ACCOUNT_NAME_ANNOTATION = "kubernetes.io/service-account.name"
SERVICE_ACCOUNT_TYPE = "kubernetes.io/service-account-token"
CREATED_BY_ANNOTATION = "kubernetes.io/created-by"
CREATOR_NAME = "subctl"

SERVICE_ACCOUNT_NAME_KEY = SERVICE_ACCOUNT_NAME_ANNOTATION
SERVICE_ACCOUNT_TOKEN_TYPE = SERVICE_ACCOUNT_TYPE


def _wrap(exc: Exception, message: str) -> Exception:
    text = f"{message}: {exc}"
    if isinstance(exc, (ApiError, ValueError)):
        return type(exc)(text)
    return ApiError(text)


def _sa_name(service_account: Mapping[str, Any]) -> str:
    name = (service_account.get("metadata") or {}).get("name")
    if not name:
        raise ValueError("ServiceAccount name may not be empty")
    return name


def _ensure(cluster: Cluster, namespace: str, service_account: Mapping[str, Any], only_create: bool) -> None:
    client = cluster.resource("ServiceAccount", namespace)
    if only_create:
        try:
            client.get(_sa_name(service_account))
        except NotFoundError:
            pass
        else:
            return
    create_or_update(client, service_account)


def ensure(cluster: Cluster, namespace: str, service_account: Mapping[str, Any], only_create: bool = False) -> Object:
    """Create or update ``service_account``, make sure it has a token secret, and return it."""
    _ensure(cluster, namespace, service_account, only_create)
    name = _sa_name(service_account)
    try:
        ensure_secret_from_sa(cluster, name, namespace)
    except ApiError as exc:
        raise _wrap(exc, "failed to get secret for broker SA") from exc
    return cluster.resource("ServiceAccount", namespace).get(name)


def ensure_from_yaml(cluster: Cluster, namespace: str, yaml_text: str) -> bool:
    """Create the ServiceAccount described by ``yaml_text`` if missing, plus its token secret."""
    try:
        service_account = load_object(yaml_text)
        if service_account["kind"] != "ServiceAccount":
            raise ValueError(f"expected a ServiceAccount, got a {service_account['kind']}")
        _ensure(cluster, namespace, service_account, True)
    except (ApiError, ValueError) as exc:
        raise _wrap(exc, "error provisioning the ServiceAccount resource") from exc

    try:
        ensure_secret_from_sa(cluster, _sa_name(service_account), namespace)
    except ApiError as exc:
        raise _wrap(exc, "error creating secret for ServiceAccount resource") from exc
    return True


def _belongs_to(candidate: Mapping[str, Any], sa_name: str) -> bool:
    annotations = (candidate.get("metadata") or {}).get("annotations") or {}
    return annotations.get(SERVICE_ACCOUNT_NAME_ANNOTATION) == sa_name


def _secret_from_sa(cluster: Cluster, service_account: Mapping[str, Any]) -> Object | None:
    """Find a token secret among those the service account already references."""
    meta = service_account["metadata"]
    prefix = f"{meta['name']}-token-"
    secrets_client = cluster.resource("Secret", meta.get("namespace"))
    for ref in service_account.get("secrets") or []:
        ref_name = ref.get("name", "")
        if not ref_name.startswith(prefix):
            continue
        try:
            candidate = secrets_client.get(ref_name)
        except ApiError:
            continue
        if _belongs_to(candidate, meta["name"]) and candidate.get("type") == SERVICE_ACCOUNT_TYPE:
            return candidate
    return None


def _secret_for_sa(cluster: Cluster, service_account: Mapping[str, Any]) -> Object | None:
    """Search all token secrets in the namespace for one belonging to the service account."""
    meta = service_account["metadata"]
    namespace = meta.get("namespace")
    try:
        candidates = cluster.resource("Secret", namespace).list(field_selector=f"type={SERVICE_ACCOUNT_TYPE}")
    except ApiError as exc:
        raise _wrap(exc, f"failed to get secrets of type service-account-token in {namespace}") from exc
    return next((candidate for candidate in candidates if _belongs_to(candidate, meta["name"])), None)


def _random_suffix(length: int) -> str:
    return token_hex(length)[:length]


def ensure_secret_from_sa(cluster: Cluster, sa_name: str, namespace: str) -> Object:
    """Return the token secret of a service account, creating and linking one if needed."""
    try:
        service_account = cluster.resource("ServiceAccount", namespace).get(sa_name)
    except ApiError as exc:
        raise _wrap(exc, f"failed to get ServiceAccount {namespace}/{sa_name}") from exc

    found = _secret_from_sa(cluster, service_account)
    if found is not None:
        return found

    found = _secret_for_sa(cluster, service_account)
    if found is None:
        generated = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "name": f"{sa_name}-token-{_random_suffix(5)}",
                "namespace": namespace,
                "annotations": {
                    SERVICE_ACCOUNT_NAME_ANNOTATION: sa_name,
                    CREATED_BY_ANNOTATION: CREATOR_NAME,
                },
            },
            "type": SERVICE_ACCOUNT_TYPE,
        }
        try:
            found = secret.ensure(cluster, namespace, generated)
        except ApiError as exc:
            raise _wrap(exc, f"failed to create secret for ServiceAccount {sa_name}") from exc

    ref_name = found["metadata"]["name"]
    service_account["secrets"] = [*(service_account.get("secrets") or []), {"name": ref_name}]
    try:
        _ensure(cluster, namespace, service_account, False)
    except ApiError as exc:
        raise _wrap(
            exc, f"failed to update ServiceAccount {sa_name} with Secret reference {ref_name}"
        ) from exc
    return found