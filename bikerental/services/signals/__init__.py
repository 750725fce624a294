from .base import IncidentsInfo, IncidentsProvider, Weather, WeatherProvider
from .factory import create_signal_providers
from .http_provider import HttpIncidentsProvider, HttpWeatherProvider
from .static_provider import StaticIncidentsProvider, StaticWeatherProvider

__all__ = [
    "HttpIncidentsProvider",
    "HttpWeatherProvider",
    "IncidentsInfo",
    "IncidentsProvider",
    "StaticIncidentsProvider",
    "StaticWeatherProvider",
    "Weather",
    "WeatherProvider",
    "create_signal_providers",
]
