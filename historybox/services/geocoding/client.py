"""
Forward geocoding through Nominatim (search box of the location picker).
"""
import logging
from dataclasses import dataclass

import httpx
import pybreaker

from historybox.core.config import settings
from historybox.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 10


@dataclass
class GeocodeResult:
    display_name: str
    lat: float
    lon: float
    boundingbox: list[str] | None = None
    importance: float | None = None
    type: str | None = None


class GeocoderClient(UpstreamClient):
    provider = "geocoder"

    def __init__(
        self,
        base_url: str | None = None,
        contact_email: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
    ) -> None:
        email = contact_email or settings.geocoder_contact_email
        super().__init__(
            base_url=base_url or settings.geocoder_base_url,
            timeout=timeout or settings.geocoder_timeout,
            http_client=http_client,
            breaker=breaker,
            # Nominatim usage policy requires an identifying User-Agent
            headers={"User-Agent": f"history_box/1.0 ({email})", "Accept": "application/json"},
        )

    def search(self, query: str | None, limit: int = 5) -> list[GeocodeResult]:
        q = (query or "").strip()
        if len(q) < MIN_QUERY_LENGTH:
            return []
        limit = min(max(1, limit), MAX_RESULTS)
        rows = self._request(
            "GET",
            "/search",
            params={"format": "jsonv2", "addressdetails": 1, "limit": limit, "q": q},
        )
        if not isinstance(rows, list):
            logger.warning("geocoder_unknown_shape", extra={"payload": rows})
            return []
        results = []
        for row in rows:
            try:
                results.append(GeocodeResult(
                    display_name=row["display_name"],
                    lat=float(row["lat"]),
                    lon=float(row["lon"]),
                    boundingbox=row.get("boundingbox"),
                    importance=row.get("importance"),
                    type=row.get("type"),
                ))
            except (KeyError, TypeError, ValueError):
                logger.warning("geocoder_row_skipped", extra={"payload": row})
        return results
