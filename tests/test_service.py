import pytest

from marinerctl import service
from marinerctl.reporter import RecordingReporter
from marinerctl.resource import ApiError, Cluster, NoMatchError, NotFoundError

NAMESPACE = "apps"


@pytest.fixture
def cluster():
    c = Cluster(kinds={service.SERVICE_EXPORT_KIND})
    c.resource("Service", NAMESPACE).create({"kind": "Service", "metadata": {"name": "web"}})
    return c


@pytest.fixture
def status():
    return RecordingReporter()


def test_export_creates_service_export(cluster, status):
    service.export(cluster, NAMESPACE, "web", status)
    stored = cluster.resource(service.SERVICE_EXPORT_KIND, NAMESPACE).get("web")
    assert stored["metadata"]["namespace"] == NAMESPACE
    assert stored["apiVersion"] == service.SERVICE_EXPORT_API_VERSION
    assert status.events[-1] == ("success", "Service exported successfully")


def test_export_twice_reports_already_exported(cluster, status):
    service.export(cluster, NAMESPACE, "web", status)
    service.export(cluster, NAMESPACE, "web", status)
    assert status.events[-1] == ("success", "Service already exported")
    assert len(cluster.resource(service.SERVICE_EXPORT_KIND, NAMESPACE).list()) == 1


def test_export_missing_service_fails(cluster, status):
    with pytest.raises(NotFoundError, match='Unable to find the Service "db" in namespace "apps"'):
        service.export(cluster, NAMESPACE, "db", status)
    assert status.events[-1][0] == "failure"


def test_export_without_export_kind_fails():
    cluster = Cluster()
    cluster.resource("Service", NAMESPACE).create({"kind": "Service", "metadata": {"name": "web"}})
    with pytest.raises(NoMatchError, match="Failed to export Service"):
        service.export(cluster, NAMESPACE, "web", RecordingReporter())


def test_unexport_removes_service_export(cluster, status):
    service.export(cluster, NAMESPACE, "web", status)
    service.unexport(cluster, NAMESPACE, "web", status)
    assert cluster.resource(service.SERVICE_EXPORT_KIND, NAMESPACE).list() == []
    assert status.events[-1] == ("success", "Service successfully unexported")


def test_unexport_when_not_exported_fails(cluster, status):
    with pytest.raises(NotFoundError, match="Service apps/web was not previously exported"):
        service.unexport(cluster, NAMESPACE, "web", status)


def test_unexport_other_error_is_reported(cluster, status):
    cluster.faults[("delete", service.SERVICE_EXPORT_KIND)] = ApiError("denied")
    with pytest.raises(ApiError, match="Failed to unexport Service: denied"):
        service.unexport(cluster, NAMESPACE, "web", status)