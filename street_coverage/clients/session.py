"""HTTP session factories for the map-snapping and street catalog providers."""

from __future__ import annotations

from typing import Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import HTTP_POOL_CONNECTIONS, HTTP_POOL_MAXSIZE

__all__ = ["create_catalog_session", "create_matching_session"]


def _build_catalog_retry() -> Retry:
    return Retry(
        total=2,
        backoff_factor=1.0,
        status_forcelist=[500],
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )


def _build_session(retry: Optional[Retry]) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=retry if retry is not None else 0,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    return session


def create_matching_session() -> Session:
    """Session for Mapbox calls. Failures surface immediately so the caller can fall back."""

    return _build_session(None)


def create_catalog_session() -> Session:
    """Session for Overpass calls with adapter-level retries on internal errors.

    502/503/504 are left to the client's own server rotation.
    """

    return _build_session(_build_catalog_retry())
