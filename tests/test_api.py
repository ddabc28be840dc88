"""Tests for the partition API."""

import pytest
from fastapi.testclient import TestClient
from shapely.geometry import box, mapping

from py_zones.api.main import app
from py_zones.core.styling import zone_color


@pytest.fixture
def client():
    return TestClient(app)


def facilities():
    return [
        {"id": "0670001A", "longitude": 7.25, "latitude": 48.25, "zone": "PAS A", "sub_region": "STRASBOURG 1"},
        {"id": "0670002B", "longitude": 7.25, "latitude": 48.75, "zone": "PAS A", "sub_region": "STRASBOURG 1"},
        {"id": "0670003C", "longitude": 7.75, "latitude": 48.25, "zone": "PAS B", "sub_region": "STRASBOURG 2"},
        {"id": "0670004D", "longitude": 7.75, "latitude": 48.75, "zone": "PAS B", "sub_region": "STRASBOURG 2"},
    ]


def boundaries():
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": mapping(box(7.0, 48.0, 7.5, 49.0)),
             "properties": {"circo_nom": "STRASBOURG 1", "code_departement": "67"}},
            {"type": "Feature", "geometry": mapping(box(7.5, 48.0, 8.0, 49.0)),
             "properties": {"circo_nom": "STRASBOURG 2", "code_departement": "67"}},
            {"type": "Feature", "geometry": mapping(box(8.0, 48.0, 9.0, 49.0)),
             "properties": {"circo_nom": "COLMAR", "code_departement": "68"}},
        ],
    }


class TestServiceEndpoints:
    """Test informational endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_zone_color(self, client):
        response = client.get("/zones/PAS A/color")

        assert response.status_code == 200
        assert response.json() == {"zone": "PAS A", "color": zone_color("PAS A")}


class TestPartitionEndpoint:
    """Test POST /partition."""

    def test_sub_region_mode(self, client):
        response = client.post("/partition", json={
            "facilities": facilities(),
            "boundaries": boundaries(),
            "mode": "sub_region",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "FeatureCollection"
        assert [f["properties"]["pas"] for f in body["features"]] == ["PAS A", "PAS B"]

    def test_global_mode_with_department_filter(self, client):
        response = client.post("/partition", json={
            "facilities": facilities(),
            "boundaries": boundaries(),
            "department": "67",
            "zones": ["PAS A"],
            "include_masks": True,
        })

        body = response.json()
        assert response.status_code == 200
        assert [f["properties"].get("pas") for f in body["features"]] == ["PAS A", None]
        assert body["features"][1]["properties"]["mask"] is True

    def test_too_few_schools(self, client):
        response = client.post("/partition", json={
            "facilities": facilities()[:2],
            "boundaries": boundaries(),
        })

        assert response.status_code == 200
        assert response.json() == {"type": "FeatureCollection", "features": []}

    def test_rejects_non_geojson(self, client):
        response = client.post("/partition", json={
            "facilities": facilities(),
            "boundaries": {"foo": "bar"},
        })
        assert response.status_code == 400

    def test_rejects_unknown_mode(self, client):
        response = client.post("/partition", json={
            "facilities": facilities(),
            "boundaries": boundaries(),
            "mode": "hexagons",
        })
        assert response.status_code == 422
