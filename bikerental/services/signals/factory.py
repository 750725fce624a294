"""Factory for discount signal providers."""

from typing import Optional, Tuple

from ...core.config import Settings, settings as default_settings
from .base import IncidentsProvider, WeatherProvider
from .http_provider import HttpIncidentsProvider, HttpWeatherProvider
from .static_provider import StaticIncidentsProvider, StaticWeatherProvider


def create_signal_providers(
    config: Optional[Settings] = None, provider_override: Optional[str] = None
) -> Tuple[WeatherProvider, IncidentsProvider]:
    config = config or default_settings
    name = (provider_override or config.signal_provider or "http").lower()
    if name == "static":
        return StaticWeatherProvider(), StaticIncidentsProvider()
    return (
        HttpWeatherProvider(config.weather_api_url, timeout=config.provider_timeout_seconds),
        HttpIncidentsProvider(config.incidents_api_url, timeout=config.provider_timeout_seconds),
    )
