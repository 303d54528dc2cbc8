"""Value objects exchanged between the dispatcher and its collaborators.

Weather data flows in from the provider adapter as `WeatherSummary` and
`ForecastSeries`; chat traffic flows in as one of the inbound event types and
out as text plus optional affordances the gateway renders as buttons.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import List, Union

FORECAST_CALLBACK_PREFIX = "forecast:"


@dataclass(frozen=True)
class WeatherSummary:
    """Weather for a single location and point in time."""
    location_name: str
    temperature: float
    feels_like: float
    humidity_percent: int
    wind_speed: float
    description: str


@dataclass(frozen=True)
class ForecastEntry:
    """One step of a forecast series."""
    timestamp: dt.datetime  # timezone-aware, UTC
    summary: WeatherSummary


@dataclass(frozen=True)
class ForecastSeries:
    """Forecast entries for a location, in provider order."""
    location_name: str
    entries: List[ForecastEntry] = field(default_factory=list)


@dataclass(frozen=True)
class TextMessage:
    user_id: int
    chat_id: int
    text: str


@dataclass(frozen=True)
class LocationShare:
    user_id: int
    chat_id: int
    latitude: float
    longitude: float


@dataclass(frozen=True)
class CallbackEvent:
    user_id: int
    chat_id: int
    callback_id: str
    payload: str


InboundEvent = Union[TextMessage, LocationShare, CallbackEvent]


@dataclass(frozen=True)
class ForecastAffordance:
    """Offer to run the forecast for `city`; comes back as a `forecast:<city>` callback."""
    city: str

    @property
    def callback_payload(self) -> str:
        return f"{FORECAST_CALLBACK_PREFIX}{self.city}"


@dataclass(frozen=True)
class ShareLocationAffordance:
    """Ask the user to share their current location."""


ReplyAffordance = Union[ForecastAffordance, ShareLocationAffordance]
