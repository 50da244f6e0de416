"""The operator's Deployment."""

from __future__ import annotations

from marinerctl.resource import ApiError, Cluster, NotFoundError, Object, label_selector_from_set

OPERATOR_NAME = "submariner-operator"
PULL_ALWAYS = "Always"
PULL_IF_NOT_PRESENT = "IfNotPresent"


def _field_env(name: str, field_path: str) -> dict:
    return {"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}}


def build_operator_deployment(namespace: str, image: str, debug: bool = False) -> Object:
    """Return the Deployment that runs the operator from ``image``."""
    # A local development image is never pulled from a registry.
    pull_policy = PULL_IF_NOT_PRESENT if image.endswith(":local") else PULL_ALWAYS
    command = [OPERATOR_NAME, "-v=3" if debug else "-v=1"]
    labels = {"name": OPERATOR_NAME}
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"namespace": namespace, "name": OPERATOR_NAME},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "serviceAccountName": OPERATOR_NAME,
                    "containers": [
                        {
                            "name": OPERATOR_NAME,
                            "image": image,
                            "command": command,
                            "imagePullPolicy": pull_policy,
                            "securityContext": {
                                "runAsNonRoot": True,
                                "allowPrivilegeEscalation": False,
                            },
                            "env": [
                                _field_env("WATCH_NAMESPACE", "metadata.namespace"),
                                _field_env("POD_NAME", "metadata.name"),
                                {"name": "OPERATOR_NAME", "value": OPERATOR_NAME},
                            ],
                        }
                    ],
                },
            },
        },
    }


def get_pod_label_selector(cluster: Cluster, namespace: str) -> str:
    """Return the label selector of the operator's pods, or "" if it is not deployed."""
    try:
        deployment = cluster.resource("Deployment", namespace).get(OPERATOR_NAME)
    except NotFoundError:
        return ""
    except ApiError as exc:
        raise type(exc)(f"error retrieving operator deployment: {exc}") from exc
    labels = deployment.get("spec", {}).get("template", {}).get("metadata", {}).get("labels") or {}
    return label_selector_from_set(labels)