"""Global pytest fixtures & helpers.

Adds project root to path and provides a small synthetic street grid so
matching tests share one set of coordinates.

Grid (metres from an origin in central London)::

    Side Lane    north=100   east 0..400
    Main Street  north=0     east 0..400
    Cross Road   east=200    north -200..200
"""
from __future__ import annotations

import json
import math
import os
import sys
from typing import Iterable, List, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from street_coverage.matching.geometry import polyline_length_m
from street_coverage.models import GpsPoint, StreetCatalog, StreetSegment

LAT0 = 51.5
LON0 = -0.1
M_PER_DEG_LAT = 111_320.0


# --- Factory helpers -------------------------------------------------
def offset(north_m: float, east_m: float) -> Tuple[float, float]:
    """Return (lat, lon) roughly ``north_m``/``east_m`` metres from the origin."""
    lat = LAT0 + north_m / M_PER_DEG_LAT
    lon = LON0 + east_m / (M_PER_DEG_LAT * math.cos(math.radians(LAT0)))
    return lat, lon


def gps(north_m: float, east_m: float, **kwargs) -> GpsPoint:
    lat, lon = offset(north_m, east_m)
    return GpsPoint(lat=lat, lon=lon, **kwargs)


def make_street(
    street_id: str,
    name: str,
    path_m: Sequence[Tuple[float, float]],
    highway: str = "residential",
    length_m: float | None = None,
) -> StreetSegment:
    coords = tuple((lon, lat) for lat, lon in (offset(n, e) for n, e in path_m))
    return StreetSegment(
        street_id=street_id,
        name=name,
        highway_type=highway,
        length_m=polyline_length_m(coords) if length_m is None else length_m,
        coordinates=coords,
    )


def make_grid() -> List[StreetSegment]:
    return [
        make_street("way/1", "Main Street", [(0, 0), (0, 200), (0, 400)]),
        make_street("way/2", "Cross Road", [(-200, 200), (200, 200)]),
        make_street("way/3", "Side Lane", [(100, 0), (100, 400)]),
    ]


def walk_east(north_m: float, start_m: float, end_m: float, step_m: float = 10.0) -> List[GpsPoint]:
    count = int(round((end_m - start_m) / step_m))
    return [gps(north_m, start_m + i * step_m) for i in range(count + 1)]


def walk_north(east_m: float, start_m: float, end_m: float, step_m: float = 10.0) -> List[GpsPoint]:
    count = int(round((end_m - start_m) / step_m))
    return [gps(start_m + i * step_m, east_m) for i in range(count + 1)]


def by_id(results: Iterable) -> dict:
    return {result.street_id: result for result in results}


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, text=None, url=""):
        self.status_code = status_code
        self._data = data
        self._text = text
        self.url = url

    def json(self):
        if self._data is None:
            raise ValueError("No JSON body")
        return self._data

    @property
    def text(self):
        if self._text is not None:
            return self._text
        return json.dumps(self._data) if self._data is not None else ""


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def grid_streets():
    return make_grid()


@pytest.fixture
def grid_catalog():
    return StreetCatalog.from_streets(make_grid(), source="test")
