import pytest

from conftest import make_grid
from street_coverage.models import (
    CATALOG_SCHEMA_VERSION,
    BoundingBox,
    CompletionStatus,
    CoverageResult,
    StreetCatalog,
)


def test_catalog_rejects_unknown_version():
    with pytest.raises(ValueError):
        StreetCatalog(streets=(), version=CATALOG_SCHEMA_VERSION + 1)


def test_catalog_from_geojson():
    payload = {
        "type": "FeatureCollection",
        "bbox": [-0.11, 51.49, -0.09, 51.51],
        "features": [
            {
                "type": "Feature",
                "id": "way/10",
                "geometry": {"type": "LineString", "coordinates": [[-0.1, 51.5, 12.0], [-0.099, 51.5]]},
                "properties": {"name": "Main Street", "highway": "residential"},
            },
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [[-0.1, 51.5], [-0.1, 51.501]]},
                "properties": {"length_m": 111.0},
            },
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-0.1, 51.5]}},
            {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[-0.1, 51.5]]}},
        ],
    }
    catalog = StreetCatalog.from_geojson(payload)
    assert len(catalog) == 2
    main, unnamed = catalog.streets
    assert main.street_id == "way/10"
    assert main.coordinates == ((-0.1, 51.5), (-0.099, 51.5))
    assert main.length_m == pytest.approx(69.4, abs=0.5)
    assert unnamed.street_id == "street/1"
    assert unnamed.name == "Unnamed Road"
    assert unnamed.highway_type == "unknown"
    assert unnamed.length_m == 111.0
    assert catalog.bbox == BoundingBox(south=51.49, west=-0.11, north=51.51, east=-0.09)
    assert catalog.source == "geojson"


def test_catalog_geojson_round_trip():
    catalog = StreetCatalog.from_streets(
        make_grid(), bbox=BoundingBox(51.49, -0.11, 51.51, -0.09), source="test"
    )
    restored = StreetCatalog.from_geojson(catalog.to_geojson())
    assert restored == catalog
    assert set(restored.by_id()) == {"way/1", "way/2", "way/3"}


def test_coverage_result_to_dict():
    result = CoverageResult(
        street_id="way/1",
        name="Main Street",
        highway_type="residential",
        length_m=400.0,
        distance_covered_m=200.0,
        projected_distance_covered_m=199.5,
        coverage_ratio=0.5,
        projected_coverage_ratio=0.499,
        completion_status=CompletionStatus.PARTIAL,
        matched_points_count=21,
        coverage_interval=(0, 50),
    )
    data = result.to_dict()
    assert data["completion_status"] == "PARTIAL"
    assert data["coverage_interval"] == [0, 50]
    assert data["geometry"] == []
