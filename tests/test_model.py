import pytest

from devlb.model import Route, Service


def test_service_fields():
    service = Service(name="api", port=3000)
    assert service.name == "api"
    assert service.port == 3000


def test_service_requires_name_and_port():
    with pytest.raises(TypeError):
        Service()


def test_route_fields():
    route = Route(backend_port=13000, label="feat-x", active=True)
    assert route.backend_port == 13000
    assert route.label == "feat-x"
    assert route.active is True


def test_route_defaults():
    route = Route()
    assert route.backend_port == 0
    assert route.label == ""
    assert route.active is False


def test_route_equality():
    assert Route(backend_port=1, label="a") == Route(backend_port=1, label="a", active=False)
    assert Route(backend_port=1) != Route(backend_port=2)