"""
HTTP signal providers.

Both providers call a small JSON API:

    GET {weather_api_url}/v1/weather?lat=..&lon=..
        -> {"temperature": 4.5}
    GET {incidents_api_url}/v1/incidents?lat=..&lon=..&proximity_km=..
        -> {"number_of_incidents": 3, "proximity_km": 10}

A 404 means the signal is absent and maps to None. Any other error status,
transport failure, timeout or malformed body raises ProviderException.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ...core.exceptions import ProviderException
from ...schemas.reservation import Location
from .base import IncidentsInfo, IncidentsProvider, Weather, WeatherProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0


class _HttpSignalClient:
    """Shared request handling for the HTTP providers."""

    name = "signal"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("%s provider timed out calling %s", self.name, url)
            raise ProviderException(f"{self.name} provider timed out", provider=self.name) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s provider transport error: %s", self.name, exc)
            raise ProviderException(
                f"{self.name} provider request failed: {exc}", provider=self.name
            ) from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            logger.warning("%s provider returned HTTP %s", self.name, resp.status_code)
            raise ProviderException(
                f"{self.name} provider returned HTTP {resp.status_code}", provider=self.name
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderException(
                f"{self.name} provider returned invalid JSON", provider=self.name
            ) from exc
        if not isinstance(data, dict):
            raise ProviderException(
                f"{self.name} provider returned an unexpected payload", provider=self.name
            )
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class HttpWeatherProvider(_HttpSignalClient, WeatherProvider):
    name = "weather"

    async def get_weather(self, location: Location) -> Optional[Weather]:
        data = await self._get_json(
            "/v1/weather", {"lat": location.latitude, "lon": location.longitude}
        )
        if data is None:
            return None
        try:
            return Weather.model_validate(data)
        except ValidationError as exc:
            raise ProviderException(
                "weather provider returned a malformed reading", provider=self.name
            ) from exc


class HttpIncidentsProvider(_HttpSignalClient, IncidentsProvider):
    name = "incidents"

    async def get_incidents(
        self, location: Location, proximity_km: float
    ) -> Optional[IncidentsInfo]:
        data = await self._get_json(
            "/v1/incidents",
            {
                "lat": location.latitude,
                "lon": location.longitude,
                "proximity_km": proximity_km,
            },
        )
        if data is None:
            return None
        data.setdefault("proximity_km", proximity_km)
        try:
            return IncidentsInfo.model_validate(data)
        except ValidationError as exc:
            raise ProviderException(
                "incidents provider returned a malformed payload", provider=self.name
            ) from exc
