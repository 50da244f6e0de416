import pytest

from marinerctl import secret
from marinerctl.resource import ApiError, Cluster


def _secret(value):
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "creds", "annotations": {"kubernetes.io/created-by": "subctl"}},
        "type": "Opaque",
        "stringData": {"value": value},
    }


@pytest.fixture
def cluster():
    return Cluster()


def test_creates_secret(cluster):
    result = secret.ensure(cluster, "ns", _secret("token"))
    assert result["metadata"]["namespace"] == "ns"
    assert cluster.resource("Secret", "ns").get("creds") == result


def test_replaces_differing_secret(cluster):
    secret.ensure(cluster, "ns", _secret("token"))
    result = secret.ensure(cluster, "ns", _secret("placeholder"))
    assert result["stringData"] == {"value": "placeholder"}
    assert cluster.resource("Secret", "ns").get("creds")["stringData"] == {"value": "placeholder"}


def test_identical_secret_is_kept(cluster):
    first = secret.ensure(cluster, "ns", _secret("token"))
    assert secret.ensure(cluster, "ns", _secret("token")) == first


def test_errors_are_wrapped(cluster):
    cluster.faults[("create", "Secret")] = ApiError("denied")
    with pytest.raises(ApiError, match="error creating secret"):
        secret.ensure(cluster, "ns", _secret("token"))