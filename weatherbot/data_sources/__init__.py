"""Weather provider adapters."""

from .base import CallableWeatherProvider, WeatherProvider
from .factory import build_weather_provider
from .openweathermap_client import (
    FORECAST_MAX_ENTRIES,
    fetch_current_weather,
    fetch_current_weather_by_coords,
    fetch_forecast,
)

__all__ = [
    "build_weather_provider",
    "WeatherProvider",
    "CallableWeatherProvider",
    "FORECAST_MAX_ENTRIES",
    "fetch_current_weather",
    "fetch_current_weather_by_coords",
    "fetch_forecast",
]
