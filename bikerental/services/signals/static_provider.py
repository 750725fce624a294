"""Deterministic signal providers for local runs and tests (no network calls)."""

from typing import Optional

from ...schemas.reservation import Location
from .base import IncidentsInfo, IncidentsProvider, Weather, WeatherProvider


class StaticWeatherProvider(WeatherProvider):
    def __init__(self, temperature: Optional[float] = None) -> None:
        self.temperature = temperature

    async def get_weather(self, location: Location) -> Optional[Weather]:
        if self.temperature is None:
            return None
        return Weather(temperature=self.temperature)


class StaticIncidentsProvider(IncidentsProvider):
    def __init__(self, number_of_incidents: Optional[int] = None) -> None:
        self.number_of_incidents = number_of_incidents

    async def get_incidents(
        self, location: Location, proximity_km: float
    ) -> Optional[IncidentsInfo]:
        if self.number_of_incidents is None:
            return None
        return IncidentsInfo(
            number_of_incidents=self.number_of_incidents, proximity_km=proximity_km
        )
