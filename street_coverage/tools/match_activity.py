#!/usr/bin/env python3
"""Match a GPS trace against a street catalog and report street coverage.

The catalog is read from a GeoJSON file or fetched from Overpass for the
trace bounding box. Map matching through Mapbox is used when
``MAPBOX_ACCESS_TOKEN`` is set (or stored in ``.env``) unless
``--local-only`` is given.

Usage examples:

    # Local catalog, JSON report on stdout
    python -m street_coverage.tools.match_activity \
        --trace run.gpx \
        --catalog streets.geojson

    # Fetch streets from Overpass and write an Excel report
    python -m street_coverage.tools.match_activity \
        --trace run.gpx \
        --overpass \
        --output-format xlsx \
        --output-file coverage.xlsx
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import List, Optional, Sequence

from street_coverage.clients import MapboxMatchingClient, OverpassCatalogClient
from street_coverage.config import OVERPASS_BBOX_BUFFER_M
from street_coverage.errors import StreetCatalogError
from street_coverage.matching import HybridMatcher
from street_coverage.matching.geometry import track_bounding_box
from street_coverage.models import GpsPoint, StreetCatalog
from street_coverage.report import (
    summarize_results,
    write_results_excel,
    write_results_json,
)
from street_coverage.traces import load_trace

LOGGER = logging.getLogger("match_activity")

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compute per-street coverage for a GPS trace."
    )
    parser.add_argument(
        "--trace",
        required=True,
        help="GPX file or JSON list of {lat, lon, elevation?, time?} points",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--catalog",
        help="GeoJSON FeatureCollection of street LineStrings",
    )
    source.add_argument(
        "--overpass",
        action="store_true",
        help="Fetch streets from Overpass for the trace bounding box",
    )
    parser.add_argument(
        "--buffer-m",
        type=float,
        default=OVERPASS_BBOX_BUFFER_M,
        help="Bounding box buffer in metres for --overpass (default: %(default)s)",
    )
    parser.add_argument(
        "--local-only",
        action="store_true",
        help="Skip Mapbox map matching even when a token is configured",
    )
    parser.add_argument(
        "--output-format",
        choices=["json", "xlsx"],
        default="json",
        help="Report format (default: json)",
    )
    parser.add_argument(
        "--output-file",
        help="Where to write the report (required for xlsx; stdout for json)",
    )
    parser.add_argument(
        "--no-geometry",
        action="store_true",
        help="Omit street geometry from JSON output",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def load_catalog(
    args: argparse.Namespace,
    points: Sequence[GpsPoint],
    catalog_client: Optional[OverpassCatalogClient] = None,
) -> StreetCatalog:
    if args.catalog:
        payload = json.loads(Path(args.catalog).read_text(encoding="utf-8"))
        catalog = StreetCatalog.from_geojson(payload)
        LOGGER.info("Loaded %d streets from %s", len(catalog), args.catalog)
        return catalog
    client = catalog_client or OverpassCatalogClient()
    return client.streets_in_bbox(track_bounding_box(points, args.buffer_m))


def main(
    argv: Optional[List[str]] = None,
    *,
    matching_client: Optional[MapboxMatchingClient] = None,
    catalog_client: Optional[OverpassCatalogClient] = None,
) -> int:
    """Entry point for the match_activity tool. Returns a process exit code."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    if args.output_format == "xlsx" and not args.output_file:
        parser.error("--output-file is required for xlsx output")

    points = load_trace(args.trace)
    if len(points) < 2:
        LOGGER.warning("Trace %s has fewer than 2 points; nothing to match", args.trace)

    try:
        catalog = load_catalog(args, points, catalog_client)
    except StreetCatalogError as exc:
        LOGGER.error("Could not fetch street catalog (%s): %s", exc.kind.value, exc)
        return 1

    client = None if args.local_only else (matching_client or MapboxMatchingClient())
    report = HybridMatcher(client=client).match_with_report(points, catalog)
    summary = summarize_results(report.results)
    LOGGER.info(
        "Path %s: %d streets (%d full, %d partial), %.2f m covered",
        report.path.value,
        summary["streets"],
        summary["full"],
        summary["partial"],
        summary["total_distance_m"],
    )

    extra = {
        "match_path": report.path.value,
        "confidence": report.confidence,
        "error_kind": report.error_kind.value if report.error_kind else None,
    }
    if args.output_format == "xlsx":
        write_results_excel(args.output_file, report.results)
    elif args.output_file:
        write_results_json(
            args.output_file,
            report.results,
            include_geometry=not args.no_geometry,
            extra=extra,
        )
    else:
        payload = {
            "summary": summary,
            **extra,
            "results": [
                {
                    k: v
                    for k, v in result.to_dict().items()
                    if not (args.no_geometry and k == "geometry")
                }
                for result in report.results
            ],
        }
        print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
