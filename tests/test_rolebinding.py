import pytest

from marinerctl import rolebinding
from marinerctl.resource import Cluster

ROLE_BINDING_YAML = """
kind: RoleBinding
apiVersion: rbac.authorization.k8s.io/v1
metadata:
  name: test-rolebinding
subjects:
  - kind: ServiceAccount
    name: test-sa
roleRef:
  kind: Role
  name: test-role
  apiGroup: rbac.authorization.k8s.io
"""

NAMESPACE = "test-namespace"


@pytest.fixture
def cluster():
    return Cluster()


def _assert_role_binding(cluster):
    r = cluster.resource("RoleBinding", NAMESPACE).get("test-rolebinding")
    assert r["roleRef"]["apiGroup"] == "rbac.authorization.k8s.io"
    assert r["roleRef"]["name"] == "test-role"
    assert r["roleRef"]["kind"] == "Role"
    assert len(r["subjects"]) == 1
    assert r["subjects"][0]["kind"] == "ServiceAccount"
    assert r["subjects"][0]["name"] == "test-sa"


def test_creates_missing_role_binding(cluster):
    assert rolebinding.ensure_from_yaml(cluster, NAMESPACE, ROLE_BINDING_YAML) is True
    _assert_role_binding(cluster)


def test_existing_role_binding_is_not_created_again(cluster):
    rolebinding.ensure(
        cluster,
        NAMESPACE,
        {
            "kind": "RoleBinding",
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "metadata": {"name": "test-rolebinding"},
            "subjects": [{"kind": "ServiceAccount", "name": "test-sa"}],
            "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "Role", "name": "test-role"},
        },
    )
    _assert_role_binding(cluster)
    assert rolebinding.ensure_from_yaml(cluster, NAMESPACE, ROLE_BINDING_YAML) is False


def test_wrong_kind_is_rejected(cluster):
    with pytest.raises(ValueError):
        rolebinding.ensure_from_yaml(cluster, NAMESPACE, "kind: Role\nmetadata:\n  name: x\n")