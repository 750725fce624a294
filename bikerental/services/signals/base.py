"""Provider-agnostic interfaces for discount signals."""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from ...schemas.reservation import Location


class Weather(BaseModel):
    temperature: float


class IncidentsInfo(BaseModel):
    number_of_incidents: int
    proximity_km: float


class WeatherProvider(ABC):
    name = "weather"

    @abstractmethod
    async def get_weather(self, location: Location) -> Optional[Weather]:
        """Current weather at the location; None when no reading exists."""

    async def aclose(self) -> None:
        return None


class IncidentsProvider(ABC):
    name = "incidents"

    @abstractmethod
    async def get_incidents(
        self, location: Location, proximity_km: float
    ) -> Optional[IncidentsInfo]:
        """Incident count around the location; None when no history exists."""

    async def aclose(self) -> None:
        return None
