"""Helpers for fetching current weather and forecasts from the OpenWeatherMap API."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from weatherbot.domain import ForecastEntry, ForecastSeries, WeatherSummary
from weatherbot.errors import DecodeError, NotFound, ProviderError
from utils.logging_utils import get_tagged_logger, mask_url
logger = get_tagged_logger(__name__, tag='openweathermap_client')

session = requests.Session()

OWM_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_TIMEOUT_SECONDS = 10.0
# 5 days at 3-hour steps is 40 entries; replies stay readable with the first 15.
FORECAST_MAX_ENTRIES = 15


class _Payload(BaseModel):
    """Lenient about extra fields, strict about the ones we read."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class OwmMain(_Payload):
    temp: float
    feels_like: float
    humidity: int = Field(ge=0, le=100)


class OwmWind(_Payload):
    speed: float


class OwmCondition(_Payload):
    description: str
    icon: Optional[str] = None


class OwmCurrentPayload(_Payload):
    """Body of /weather."""
    name: str = ""
    main: OwmMain
    wind: OwmWind
    weather: List[OwmCondition] = Field(min_length=1)

    def to_summary(self) -> WeatherSummary:
        return _summary(self.name, self.main, self.wind, self.weather)


class OwmForecastItem(_Payload):
    dt: int
    main: OwmMain
    wind: OwmWind
    weather: List[OwmCondition] = Field(min_length=1)
    dt_txt: Optional[str] = None


class OwmCity(_Payload):
    name: str = ""


class OwmForecastPayload(_Payload):
    """Body of /forecast."""
    city: OwmCity
    items: List[OwmForecastItem] = Field(alias="list")


def _summary(name: str, main: OwmMain, wind: OwmWind, weather: List[OwmCondition]) -> WeatherSummary:
    return WeatherSummary(
        location_name=name,
        temperature=main.temp,
        feels_like=main.feels_like,
        humidity_percent=main.humidity,
        wind_speed=wind.speed,
        description=weather[0].description,
    )


P = TypeVar("P", bound=_Payload)


def _decode(model: Type[P], data: Any, *, context: str) -> P:
    """Validate a decoded JSON body, mapping shape errors to DecodeError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning(f"Unexpected OpenWeatherMap payload ({context}): {exc.error_count()} validation error(s)")
        raise DecodeError() from exc


def _get_json(
    path: str,
    params: dict,
    *,
    api_key: str,
    base_url: str,
    units: str,
    lang: str,
    timeout: float,
) -> Any:
    """
    GET an OpenWeatherMap endpoint and return the decoded JSON body.

    `timeout` bounds the connect and each socket read separately, as requests
    applies it; it is not a cap on the total transfer time.
    """
    url = f"{base_url.rstrip('/')}/{path}"
    query = {**params, "appid": api_key, "units": units, "lang": lang}

    try:
        resp = session.get(url, params=query, timeout=timeout)
    except requests.Timeout as exc:
        logger.warning(f"OpenWeatherMap request timed out: {mask_url(url)}")
        raise ProviderError(f"weather service did not answer within {timeout:g}s") from exc
    except requests.RequestException as exc:
        logger.warning(f"OpenWeatherMap request failed: {exc}")
        raise ProviderError() from exc

    if resp.status_code == 404:
        raise NotFound()
    try:
        resp.raise_for_status()
    except requests.HTTPError as exc:
        logger.warning(f"OpenWeatherMap returned HTTP {resp.status_code} for {path}")
        raise ProviderError(f"weather service returned HTTP {resp.status_code}") from exc

    try:
        return resp.json()
    except ValueError as exc:
        raise DecodeError() from exc


def fetch_current_weather(
    city: str,
    *,
    api_key: str,
    base_url: str = OWM_BASE_URL,
    units: str = "metric",
    lang: str = "en",
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> WeatherSummary:
    """Fetch the current weather for a free-text city query."""
    data = _get_json(
        "weather", {"q": city},
        api_key=api_key, base_url=base_url, units=units, lang=lang, timeout=timeout,
    )
    return _decode(OwmCurrentPayload, data, context="weather_current").to_summary()


def fetch_current_weather_by_coords(
    latitude: float,
    longitude: float,
    *,
    api_key: str,
    base_url: str = OWM_BASE_URL,
    units: str = "metric",
    lang: str = "en",
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> WeatherSummary:
    """Fetch the current weather at the given coordinates."""
    params = {"lat": f"{latitude:.6f}", "lon": f"{longitude:.6f}"}
    data = _get_json(
        "weather", params,
        api_key=api_key, base_url=base_url, units=units, lang=lang, timeout=timeout,
    )
    return _decode(OwmCurrentPayload, data, context="weather_coords").to_summary()


def fetch_forecast(
    city: str,
    *,
    api_key: str,
    base_url: str = OWM_BASE_URL,
    units: str = "metric",
    lang: str = "en",
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_entries: int = FORECAST_MAX_ENTRIES,
) -> ForecastSeries:
    """Fetch the 3-hourly forecast for a city, truncated to `max_entries`."""
    data = _get_json(
        "forecast", {"q": city},
        api_key=api_key, base_url=base_url, units=units, lang=lang, timeout=timeout,
    )
    payload = _decode(OwmForecastPayload, data, context="forecast")

    name = payload.city.name or city
    entries: List[ForecastEntry] = []
    for item in payload.items[:max_entries]:
        entries.append(
            ForecastEntry(
                timestamp=dt.datetime.fromtimestamp(item.dt, tz=dt.timezone.utc),
                summary=_summary(name, item.main, item.wind, item.weather),
            )
        )
    return ForecastSeries(location_name=name, entries=entries)
