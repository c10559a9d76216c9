"""
External distance and geocoding provider.

* ``route`` -- driving distance/duration between two Eircodes via the
  Google Distance Matrix API (used when quoting).
* ``resolve_coordinates`` -- free-text address to lat/lng via Nominatim
  (used for the arrival proximity check).

Every call has an explicit timeout.  Transport and payload problems are
raised as ``ExternalServiceError``; "no such place" is ``None`` for
geocoding so callers can fail open.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import httpx
from pydantic import BaseModel

from src.config import settings
from src.domain.entities import Location
from src.domain.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)


class RouteEstimate(BaseModel):
    distance_km: Decimal
    duration_minutes: int
    origin_address: str
    destination_address: str


class DistanceProvider:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        maps_base_url: Optional[str] = None,
        geocoder_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        country_prefix: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.maps_base_url = (maps_base_url or settings.google_maps_base_url).rstrip("/")
        self.geocoder_url = geocoder_url or settings.geocoder_url
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.country_prefix = (
            country_prefix if country_prefix is not None else settings.geocode_country_prefix
        )
        self.timeout = timeout or settings.external_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": self.user_agent},
        )

    def _qualify(self, place: str) -> str:
        # Eircodes geocode reliably only with the country attached
        if self.country_prefix and self.country_prefix.lower() not in place.lower():
            return f"{self.country_prefix}, {place}"
        return place

    async def _get_json(self, url: str, params: dict):
        try:
            async with self._client() as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                f"Request timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"HTTP error: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Malformed response: {e}") from e

    async def route(self, origin: str, destination: str) -> RouteEstimate:
        if not origin or not destination:
            raise ValidationError("Both pickup and destination Eircodes are required.")
        if not self.api_key:
            raise ExternalServiceError("Missing GOOGLE_MAPS_API_KEY")

        data = await self._get_json(
            f"{self.maps_base_url}/distancematrix/json",
            {
                "origins": self._qualify(origin),
                "destinations": self._qualify(destination),
                "mode": "driving",
                "units": "metric",
                "key": self.api_key,
            },
        )
        if data.get("status") != "OK":
            raise ExternalServiceError(
                f"Google Maps API error: {data.get('status')} - "
                f"{data.get('error_message', 'Unknown error')}"
            )
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError("No route results returned") from e
        if element.get("status") != "OK":
            raise ValidationError(
                f"Could not calculate distance: {element.get('status')}. "
                "Please verify both Eircodes are valid."
            )

        metres = Decimal(str(element["distance"]["value"]))
        seconds = Decimal(str(element["duration"]["value"]))
        return RouteEstimate(
            distance_km=(metres / 1000).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
            duration_minutes=int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            origin_address=(data.get("origin_addresses") or [origin])[0] or origin,
            destination_address=(data.get("destination_addresses") or [destination])[0]
            or destination,
        )

    async def resolve_coordinates(self, address: str) -> Optional[Location]:
        if not address:
            return None
        results = await self._get_json(
            self.geocoder_url,
            {"q": self._qualify(address), "format": "json", "limit": 1},
        )
        if not results:
            logger.info("No geocoding match for %r", address)
            return None
        try:
            return Location(float(results[0]["lat"]), float(results[0]["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ExternalServiceError(f"Malformed geocoding result: {e}") from e
