"""Factory helpers for choosing the weather provider at startup."""

from __future__ import annotations

from functools import partial

from weatherbot import config
from weatherbot.data_sources.base import CallableWeatherProvider, WeatherProvider
from weatherbot.data_sources.openweathermap_client import (
    fetch_current_weather,
    fetch_current_weather_by_coords,
    fetch_forecast,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "openweathermap"


def build_weather_provider(settings: config.Settings | None = None) -> WeatherProvider:
    """Instantiate the configured weather provider."""
    settings = settings or config.settings
    source = (settings.weather_source or DEFAULT_SOURCE_NAME).lower()

    if source == "openweathermap":
        if not settings.owm_api_key:
            raise ValueError("owm_api_key must be set for the OpenWeatherMap provider")
        logger.info(f"Using OpenWeatherMap provider at {settings.owm_base_url}")
        options = dict(
            api_key=settings.owm_api_key,
            base_url=settings.owm_base_url,
            units=settings.owm_units,
            lang=settings.owm_lang,
            timeout=settings.request_timeout_seconds,
        )
        return CallableWeatherProvider(
            current=partial(fetch_current_weather, **options),
            forecast_series=partial(fetch_forecast, **options),
            current_by_coordinates=partial(fetch_current_weather_by_coords, **options),
        )

    raise ValueError(f"Unknown weather source '{source}'")
