"""Interfaces and helpers for weather providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from weatherbot.domain import ForecastSeries, WeatherSummary


class WeatherProvider(Protocol):
    """
    Anything that can answer the three weather queries the bot issues.

    Implementations raise `NotFound`, `ProviderError` or `DecodeError`
    (see `weatherbot.errors`) and never cache.
    """

    def current_weather(self, location_query: str) -> WeatherSummary:
        """Return the current weather for a free-text location."""
        ...

    def forecast(self, location_query: str) -> ForecastSeries:
        """Return the forecast series for a free-text location."""
        ...

    def current_weather_by_coordinates(self, latitude: float, longitude: float) -> WeatherSummary:
        """Return the current weather at a point."""
        ...


@dataclass
class CallableWeatherProvider(WeatherProvider):
    """Wrap three callables so they can be swapped for different backends."""

    current: Callable[[str], WeatherSummary]
    forecast_series: Callable[[str], ForecastSeries]
    current_by_coordinates: Callable[[float, float], WeatherSummary]

    def current_weather(self, location_query: str) -> WeatherSummary:
        """Delegate to the configured current-weather callable."""
        return self.current(location_query)

    def forecast(self, location_query: str) -> ForecastSeries:
        """Delegate to the configured forecast callable."""
        return self.forecast_series(location_query)

    def current_weather_by_coordinates(self, latitude: float, longitude: float) -> WeatherSummary:
        """Delegate to the configured coordinate lookup callable."""
        return self.current_by_coordinates(latitude, longitude)
