"""
Reverse geocoding providers over HTTP.

``NominatimGeocoder`` queries an OpenStreetMap Nominatim-compatible
``/reverse`` endpoint; ``MapplsGeocoder`` queries the Mappls rev-geocode
API. ``ChainedGeocoder`` tries providers in order and fails only when all
of them fail.

Nominatim usage policy requires a User-Agent identifying the application.
"""

import logging
from typing import Any, Optional, Sequence

import httpx

from urban_auto.backend.interfaces import ReverseGeocoder
from urban_auto.config import settings
from urban_auto.errors import LocationError, LocationErrorCode
from urban_auto.schemas.location_schema import AddressData

logger = logging.getLogger(__name__)

MAPPLS_REV_GEOCODE_URL = "https://search.mappls.com/search/address/rev-geocode"


class _HttpGeocoder:
    """Shared GET-and-decode logic. Pass ``client`` to reuse a connection pool."""

    name = "http"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.backend.http_timeout_sec,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def _get_json(
        self, url: str, params: dict[str, Any], headers: Optional[dict[str, str]] = None
    ) -> Any:
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "%s reverse geocoding returned HTTP %s", self.name, exc.response.status_code
            )
            raise LocationError(
                LocationErrorCode.GEOCODE_ERROR, "Failed to fetch address details"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("%s reverse geocoding failed: %s", self.name, exc)
            raise LocationError(
                LocationErrorCode.GEOCODE_ERROR, "Failed to fetch address details"
            ) from exc


class NominatimGeocoder(_HttpGeocoder):
    name = "nominatim"

    def __init__(
        self,
        base_url: str = settings.location.nominatim_url,
        user_agent: str = settings.location.nominatim_user_agent,
        language: str = settings.location.geocode_language,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.backend.http_timeout_sec,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Accept-Language": language, "User-Agent": user_agent}

    async def reverse(self, latitude: float, longitude: float) -> AddressData:
        data = await self._get_json(
            f"{self._base_url}/reverse",
            params={"format": "jsonv2", "lat": latitude, "lon": longitude},
            headers=self._headers,
        )
        if not isinstance(data, dict) or data.get("error") or not data.get("display_name"):
            raise LocationError(LocationErrorCode.GEOCODE_ERROR, "Failed to fetch address details")

        address = data.get("address") or {}
        return AddressData(
            display_name=data["display_name"],
            road=address.get("road"),
            suburb=address.get("suburb") or address.get("neighbourhood"),
            city=address.get("city") or address.get("town") or address.get("village"),
            postcode=address.get("postcode"),
            lat=latitude,
            lon=longitude,
        )


class MapplsGeocoder(_HttpGeocoder):
    name = "mappls"

    def __init__(
        self,
        access_token: str = settings.location.mappls_token,
        url: str = MAPPLS_REV_GEOCODE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.backend.http_timeout_sec,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._access_token = access_token
        self._url = url

    async def reverse(self, latitude: float, longitude: float) -> AddressData:
        if not self._access_token:
            raise LocationError(LocationErrorCode.GEOCODE_ERROR, "Mappls token is not configured")
        data = await self._get_json(
            self._url,
            params={"lat": latitude, "lng": longitude, "access_token": self._access_token},
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not results or not results[0].get("formatted_address"):
            raise LocationError(LocationErrorCode.GEOCODE_ERROR, "Failed to fetch address details")

        top = results[0]
        return AddressData(
            display_name=top["formatted_address"],
            road=top.get("street") or None,
            suburb=top.get("subLocality") or top.get("locality") or None,
            city=top.get("city") or top.get("district") or None,
            postcode=top.get("pincode") or None,
            lat=latitude,
            lon=longitude,
        )


class ChainedGeocoder:
    """Try each geocoder in order; raise the last error if every one fails."""

    name = "chained"

    def __init__(self, geocoders: Sequence[ReverseGeocoder]) -> None:
        if not geocoders:
            raise ValueError("ChainedGeocoder needs at least one geocoder")
        self._geocoders = list(geocoders)

    async def reverse(self, latitude: float, longitude: float) -> AddressData:
        last_error: Optional[LocationError] = None
        for geocoder in self._geocoders:
            try:
                return await geocoder.reverse(latitude, longitude)
            except LocationError as exc:
                logger.info("Geocoder %s failed, trying next: %s", geocoder.name, exc.message)
                last_error = exc
        if last_error is None:
            raise LocationError(LocationErrorCode.GEOCODE_ERROR, "No geocoder configured")
        raise last_error
