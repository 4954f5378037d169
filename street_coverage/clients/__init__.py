"""HTTP clients for the map-snapping and street catalog providers."""

from .mapbox import MapboxMatchingClient, MatchResponse  # noqa: F401
from .overpass import OverpassCatalogClient  # noqa: F401
from .session import create_catalog_session, create_matching_session  # noqa: F401
from .throttle import RequestThrottle  # noqa: F401
