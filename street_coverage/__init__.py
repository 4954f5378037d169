"""Street coverage matching package."""

from .errors import MapMatchingError, StreetCatalogError
from .matching import match_points_to_streets, match_points_to_streets_hybrid
from .models import CompletionStatus, CoverageResult, GpsPoint, StreetCatalog, StreetSegment

__all__ = [
    "CompletionStatus",
    "CoverageResult",
    "GpsPoint",
    "MapMatchingError",
    "StreetCatalog",
    "StreetCatalogError",
    "StreetSegment",
    "match_points_to_streets",
    "match_points_to_streets_hybrid",
]
