# marinerctl

`marinerctl` is a library of idempotent helpers that set up, and later tear
down, the resources a multi-cluster connectivity operator needs. These are
namespaces, roles, role bindings, service accounts with their token secrets,
the operator deployment, custom resources, and service exports.

Most `ensure` helpers create an object when it is missing and bring an existing
object in line with the desired state. Where a helper returns a boolean, it
tells whether something was newly created.

## Installation

```
pip install marinerctl
```

To run the test suite:

```
pip install "marinerctl[test]"
pytest
```

## The cluster model

Every operation goes through a `marinerctl.resource.Cluster`, which keeps its
objects in memory. Objects are plain dictionaries shaped like Kubernetes
manifests.

- `Cluster.resource(kind, namespace)` returns a `ResourceClient` with `get`,
  `create`, `update`, `delete` and `list(label_selector, field_selector)`.
- Failures raise `NotFoundError`, `AlreadyExistsError` or `NoMatchError`. All
  three are subclasses of `ApiError`.
- Built-in kinds are known from the start. Any other kind, such as
  `Submariner`, `ServiceDiscovery`, `Broker`, `Endpoint` or `ServiceExport`,
  must be made known with `Cluster.register_kind(kind)` or
  `Cluster(kinds=[...])`. Until then, using it raises `NoMatchError`.
- `Cluster.faults` maps a `(verb, kind)` pair to an exception that the API will
  raise. `Cluster.server_version` holds what `version.check_requirements`
  reads.
- When an object carries finalizers, deleting it only marks it as being
  deleted. It goes away once an update leaves it with no finalizers.

```python
from marinerctl.resource import Cluster
from marinerctl import namespace, role

cluster = Cluster()

namespace.ensure(cluster, "submariner-operator",
                 {"pod-security.kubernetes.io/enforce": "privileged"})

created = role.ensure_from_yaml(cluster, "submariner-operator", """
apiVersion: rbac.authorization.k8s.io/v1
kind: Role
metadata:
  name: test-role
rules:
  - apiGroups: [""]
    resources: [pods]
    verbs: ["*"]
""")
```

## Modules

- **`marinerctl.resource`**: the cluster store and its clients. It also provides:
  - `create_or_update`, which returns True when it creates the object.
  - `create_anew`, which deletes and re-creates an object that differs.
  - `update`, which applies a mutate function and writes back only on change.
  - `load_object`, which decodes one object from YAML.
  - `label_selector_from_set`.
- **`marinerctl.reporter`**: progress reporting through `Reporter`, with
  `start`, `end`, `success`, `warning` and `error`.
  - `error` returns the error prefixed with the message.
  - The base class discards events.
  - `StreamReporter` writes them as lines.
  - `RecordingReporter` keeps them in `events`.
- **`marinerctl.role`, `marinerctl.rolebinding`**: `ensure` and
  `ensure_from_yaml`.
- **`marinerctl.namespace`**: `ensure` creates a namespace or merges labels into
  it.
- **`marinerctl.secret`**: `ensure` creates a secret afresh.
- **`marinerctl.serviceaccount`**: `ensure`, `ensure_from_yaml` and
  `ensure_secret_from_sa`. They make sure a service account exists and
  references a `kubernetes.io/service-account-token` secret, generating one
  when none is found.
- **`marinerctl.service`**: `export` and `unexport` for `ServiceExport` objects.
  Each reports through a `Reporter`.
- **`marinerctl.customresources`**:
  - `ensure_submariner` creates the Submariner resource afresh.
  - `ensure_service_discovery` creates or updates the ServiceDiscovery
    resource.
  - `ensure_crds(updater)` calls `updater` for each operator CRD name. The
    callable returns whether it created that CRD.
- **`marinerctl.operator_deployment`**:
  - `build_operator_deployment(namespace, image, debug)` returns the operator
    Deployment. An image tagged `:local` is not pulled.
  - `get_pod_label_selector` returns `""` when the operator is not deployed.
- **`marinerctl.version`**:
  - `print_subctl_version(stream)` writes the tool's version.
  - `check_requirements(cluster)` returns the server's version string and a list
    of failed requirements. The list is non-empty for servers older than 1.19.
- **`marinerctl.uninstall`**: `uninstall_all` removes the following:
  - the connectivity component, or else the service discovery component;
  - the broker namespace, unless endpoints of other clusters still use it;
  - the `submariner-` cluster roles and bindings;
  - the submariner namespace and `.submariner.io` CRDs, when the broker was
    removed;
  - the gateway node labels.

  A component whose deletion does not finish within `max_wait` seconds has its
  cleanup finalizer removed and is force-deleted. If the operator pod is still
  running, it is left alone and an error is raised instead.

```python
import sys
from marinerctl.reporter import StreamReporter
from marinerctl.uninstall import uninstall_all

uninstall_all(cluster, "cluster1", "submariner-operator", StreamReporter(sys.stdout),
              check_interval=2.0, max_wait=150.0)
```

## What this package does not do

- There is no command-line tool. Everything is called from Python.
- It does not talk to a real cluster. All objects live in the in-memory
  `Cluster`.
- It ships no RBAC or CRD manifests. Callers supply the YAML, and for CRDs the
  updater callable.
- It has no higher-level flows for deploying the operator, joining a cluster to
  a broker, or cloud preparation.