"""Postal-code geocoding providers."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    formatted_address: str


class Geocoder(Protocol):
    def geocode(self, zipcode: str) -> GeoPoint | None:
        """Resolve a postal code, or return None when it is unknown."""
        ...

    def close(self) -> None:
        """Release network resources held by the provider."""
        ...


class StaticGeocoder:
    """Resolves postal codes from a fixed table.

    Unknown codes fall back to ``default`` (the origin unless configured),
    which keeps local development free of network calls.
    """

    def __init__(
        self,
        points: dict[str, GeoPoint] | None = None,
        default: GeoPoint | None = GeoPoint(0.0, 0.0, "Unknown Location"),
    ):
        self.points = dict(points or {})
        self.default = default

    def geocode(self, zipcode: str) -> GeoPoint | None:
        point = self.points.get(zipcode)
        if point is not None:
            return point
        if self.default is None:
            return None
        return GeoPoint(
            self.default.latitude,
            self.default.longitude,
            f"{zipcode}, {self.default.formatted_address}",
        )

    def close(self) -> None:
        pass


class NominatimGeocoder:
    """Geocoder backed by a Nominatim-compatible search API."""

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.Client | None = None):
        self.url = url
        # Only a client created here is closed here
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": "meter-reader-api"},
        )

    def geocode(self, zipcode: str) -> GeoPoint | None:
        try:
            response = self.client.get(
                self.url,
                params={"postalcode": zipcode, "format": "json", "limit": 1},
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as exc:
            logger.error("Geocoding %s failed: %s", zipcode, exc)
            return None

        if not results:
            return None
        first = results[0]
        return GeoPoint(
            latitude=float(first["lat"]),
            longitude=float(first["lon"]),
            formatted_address=first.get("display_name", zipcode),
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()


def build_geocoder(settings: Settings) -> Geocoder:
    """Create the geocoder selected by ``GEOCODER_PROVIDER``."""
    provider = settings.GEOCODER_PROVIDER.lower()
    if provider == "nominatim":
        return NominatimGeocoder(settings.GEOCODER_URL, settings.GEOCODER_TIMEOUT_SECONDS)
    if provider == "static":
        return StaticGeocoder()
    raise ValueError(f"Unknown geocoder provider: {settings.GEOCODER_PROVIDER}")
