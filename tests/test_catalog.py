"""Tests for the service catalog."""

from urban_auto.catalog import (
    SERVICE_CATALOG,
    SERVICE_CATEGORIES,
    get_all_services,
    get_service_by_id,
    get_services_by_category,
    resolve_service_name,
)


class TestCatalog:
    def test_all_services_listed(self):
        services = get_all_services()
        assert len(services) == len(SERVICE_CATALOG) == 12
        assert {"id": "car-wash", "name": "Car Wash", "category": "wash"} in services

    def test_every_category_is_known(self):
        assert {info["category"] for info in SERVICE_CATALOG.values()} <= set(SERVICE_CATEGORIES)

    def test_services_by_category(self):
        repair = {s["id"] for s in get_services_by_category("repair")}
        assert "denting-painting" in repair
        assert "car-wash" not in repair

    def test_get_service_by_id(self):
        service = get_service_by_id(" oil-change ")
        assert service["id"] == "oil-change"
        assert "Oil Filter" in service["features"]

    def test_unknown_service(self):
        assert get_service_by_id("spaceship") is None


class TestResolveServiceName:
    def test_known_id(self):
        assert resolve_service_name("periodic-service") == "Periodic Service"

    def test_unknown_id_returned_as_is(self):
        assert resolve_service_name(" Custom Job ") == "Custom Job"
