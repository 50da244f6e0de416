"""An in-memory cluster API and the create/update helpers built on top of it."""

from __future__ import annotations

import copy
import itertools
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import yaml

Object = dict[str, Any]

NAMESPACED_KINDS = frozenset(
    {"ConfigMap", "Deployment", "Pod", "Role", "RoleBinding", "Secret", "Service", "ServiceAccount"}
)
CLUSTER_SCOPED_KINDS = frozenset(
    {"ClusterRole", "ClusterRoleBinding", "CustomResourceDefinition", "Namespace", "Node"}
)
DEFAULT_SERVER_VERSION = {"major": "1", "minor": "25", "gitVersion": "v1.25.0"}

_SERVER_MANAGED_FIELDS = ("namespace", "resourceVersion", "uid", "creationTimestamp", "deletionTimestamp")
_CREATE_ANEW_ATTEMPTS = 5


class ApiError(Exception):
    """An error reported by the cluster API."""


class NotFoundError(ApiError):
    """The requested object does not exist."""


class AlreadyExistsError(ApiError):
    """An object with the same name already exists."""


class NoMatchError(ApiError):
    """The cluster does not know the requested kind."""


def _name_of(obj: Mapping[str, Any]) -> str:
    name = (obj.get("metadata") or {}).get("name")
    if not name:
        raise ApiError("resource name may not be empty")
    return name


class Cluster:
    """A cluster whose objects are kept in memory.

    Custom kinds must be registered before use; ``faults`` maps a
    ``(verb, kind)`` pair to an exception that the API raises for it.
    """

    def __init__(self, *, server_version: Mapping[str, str] | None = DEFAULT_SERVER_VERSION, kinds=()):
        self.server_version = dict(server_version) if server_version is not None else None
        self.faults: dict[tuple[str, str], Exception] = {}
        self._custom_kinds: set[str] = set(kinds)
        self._objects: dict[tuple[str, str | None, str], Object] = {}
        self._versions = itertools.count(1)

    def register_kind(self, kind: str) -> None:
        """Make a namespaced custom kind known to the cluster."""
        self._custom_kinds.add(kind)

    def resource(self, kind: str, namespace: str | None = None) -> ResourceClient:
        """Return a client for objects of ``kind`` in ``namespace``."""
        return ResourceClient(self, kind, namespace)

    def _knows(self, kind: str) -> bool:
        return kind in NAMESPACED_KINDS or kind in CLUSTER_SCOPED_KINDS or kind in self._custom_kinds

    def _next_version(self) -> str:
        return str(next(self._versions))


class ResourceClient:
    """CRUD access to one kind of object, optionally within one namespace."""

    def __init__(self, cluster: Cluster, kind: str, namespace: str | None):
        self.cluster = cluster
        self.kind = kind
        self._namespaced = kind not in CLUSTER_SCOPED_KINDS
        self.namespace = namespace if self._namespaced else None

    def _check(self, verb: str) -> None:
        if not self.cluster._knows(self.kind):
            raise NoMatchError(f'no matches for kind "{self.kind}"')
        fault = self.cluster.faults.get((verb, self.kind))
        if fault is not None:
            raise fault

    def _key(self, name: str) -> tuple[str, str | None, str]:
        if self._namespaced and not self.namespace:
            raise ValueError(f"a namespace is required to access {self.kind} {name!r}")
        return (self.kind, self.namespace, name)

    def _prepare(self, obj: Mapping[str, Any]) -> tuple[Object, tuple[str, str | None, str]]:
        new = copy.deepcopy(dict(obj))
        if new.setdefault("kind", self.kind) != self.kind:
            raise ValueError(f"expected a {self.kind}, got a {new['kind']}")
        meta = new.setdefault("metadata", {})
        name = _name_of(new)
        if not self._namespaced:
            meta.pop("namespace", None)
            return new, (self.kind, None, name)
        namespace = self.namespace or meta.get("namespace")
        if not namespace:
            raise ValueError(f"a namespace is required for {self.kind} {name!r}")
        if meta.get("namespace") not in (None, "", namespace):
            raise ApiError("the namespace of the provided object does not match the namespace sent on the request")
        meta["namespace"] = namespace
        return new, (self.kind, namespace, name)

    def get(self, name: str) -> Object:
        self._check("get")
        stored = self.cluster._objects.get(self._key(name))
        if stored is None:
            raise NotFoundError(f'{self.kind} "{name}" not found')
        return copy.deepcopy(stored)

    def create(self, obj: Mapping[str, Any]) -> Object:
        self._check("create")
        new, key = self._prepare(obj)
        if key in self.cluster._objects:
            raise AlreadyExistsError(f'{self.kind} "{key[2]}" already exists')
        meta = new["metadata"]
        meta.pop("deletionTimestamp", None)
        meta["resourceVersion"] = self.cluster._next_version()
        self.cluster._objects[key] = new
        return copy.deepcopy(new)

    def update(self, obj: Mapping[str, Any]) -> Object:
        self._check("update")
        new, key = self._prepare(obj)
        existing = self.cluster._objects.get(key)
        if existing is None:
            raise NotFoundError(f'{self.kind} "{key[2]}" not found')
        meta = new["metadata"]
        deleting = existing["metadata"].get("deletionTimestamp")
        meta.pop("deletionTimestamp", None)
        meta["resourceVersion"] = self.cluster._next_version()
        if deleting:
            meta["deletionTimestamp"] = deleting
            if not meta.get("finalizers"):
                del self.cluster._objects[key]
                return copy.deepcopy(new)
        self.cluster._objects[key] = new
        return copy.deepcopy(new)

    def delete(self, name: str) -> None:
        self._check("delete")
        key = self._key(name)
        existing = self.cluster._objects.get(key)
        if existing is None:
            raise NotFoundError(f'{self.kind} "{name}" not found')
        meta = existing["metadata"]
        if meta.get("finalizers"):
            meta.setdefault("deletionTimestamp", datetime.now(timezone.utc).isoformat())
        else:
            del self.cluster._objects[key]

    def list(self, label_selector: str = "", field_selector: str = "") -> list[Object]:
        self._check("list")
        labels_wanted = _parse_selector(label_selector)
        fields_wanted = _parse_selector(field_selector)
        found = []
        for (kind, namespace, _), obj in sorted(self.cluster._objects.items(), key=lambda item: item[0][1:]):
            if kind != self.kind or (self.namespace and namespace != self.namespace):
                continue
            labels = obj["metadata"].get("labels") or {}
            if all(_matches(labels.get(k), v, eq) for k, v, eq in labels_wanted) and all(
                _matches(_field_value(obj, k), v, eq) for k, v, eq in fields_wanted
            ):
                found.append(copy.deepcopy(obj))
        return found


def _parse_selector(text: str) -> list[tuple[str, str, bool]]:
    requirements = []
    for term in (part.strip() for part in text.split(",")):
        if not term:
            continue
        for operator, equal in (("!=", False), ("==", True), ("=", True)):
            if operator in term:
                key, value = term.split(operator, 1)
                requirements.append((key.strip(), value.strip(), equal))
                break
        else:
            raise ValueError(f"invalid selector term {term!r}")
    return requirements


def _matches(actual: str | None, wanted: str, equal: bool) -> bool:
    return (actual == wanted) if equal else (actual != wanted)


def _field_value(obj: Mapping[str, Any], path: str) -> str | None:
    value: Any = obj
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return None if value is None else str(value)


def _with_server_fields(obj: Mapping[str, Any], existing: Mapping[str, Any]) -> Object:
    desired = copy.deepcopy(dict(obj))
    desired.setdefault("kind", existing["kind"])
    meta = desired.setdefault("metadata", {})
    for field in _SERVER_MANAGED_FIELDS:
        if field in existing["metadata"]:
            meta[field] = existing["metadata"][field]
    if "status" not in desired and "status" in existing:
        desired["status"] = copy.deepcopy(existing["status"])
    return desired


def create_or_update(client: ResourceClient, obj: Mapping[str, Any]) -> bool:
    """Create ``obj`` or replace the existing one; return True if it was created."""
    try:
        existing = client.get(_name_of(obj))
    except NotFoundError:
        client.create(obj)
        return True
    desired = _with_server_fields(obj, existing)
    if desired != existing:
        client.update(desired)
    return False


def update(client: ResourceClient, obj: Mapping[str, Any], mutate: Callable[[Object], Object]) -> Object:
    """Apply ``mutate`` to the stored copy of ``obj`` and write it back if it changed."""
    existing = client.get(_name_of(obj))
    changed = mutate(copy.deepcopy(existing))
    if changed == existing:
        return existing
    return client.update(changed)


def _content(obj: Mapping[str, Any]) -> dict[str, Any]:
    meta = obj.get("metadata") or {}
    body = {k: v for k, v in obj.items() if k not in ("metadata", "status", "kind", "apiVersion")}
    body["labels"] = meta.get("labels") or {}
    body["annotations"] = meta.get("annotations") or {}
    return body


def create_anew(client: ResourceClient, obj: Mapping[str, Any]) -> Object:
    """Create ``obj``, deleting and re-creating any existing object that differs from it."""
    name = _name_of(obj)
    for _ in range(_CREATE_ANEW_ATTEMPTS):
        try:
            return client.create(obj)
        except AlreadyExistsError:
            pass
        try:
            existing = client.get(name)
        except NotFoundError:
            continue
        if _content(existing) == _content(obj):
            return existing
        try:
            client.delete(name)
        except NotFoundError:
            pass
    raise ApiError(f"timed out re-creating {client.kind} {name!r}")


def load_object(yaml_text: str) -> Object:
    """Decode one Kubernetes object from YAML."""
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        raise ValueError(f"error decoding YAML: {exc}") from exc
    if not isinstance(data, dict) or "kind" not in data:
        raise ValueError("YAML document is not a Kubernetes object")
    return data


def label_selector_from_set(labels: Mapping[str, str]) -> str:
    """Render an equality label selector, keys in sorted order."""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))