"""Reply templates for weather summaries, forecasts and service messages."""

from __future__ import annotations

from weatherbot.domain import ForecastSeries, WeatherSummary
from weatherbot.errors import WeatherProviderError

HELP_TEXT = (
    "Hi! I'm a weather bot. 🌤\n\n"
    "You can:\n"
    "• Send a city name to get the current weather\n"
    "• Press the '5-day forecast' button to get the forecast\n"
    "• Share your location to get the weather where you are\n\n"
    "Commands:\n"
    "/start - About this bot\n"
    "/help - Show this help\n"
    "/forecast - 5-day forecast for the last city you asked about"
)

FORECAST_GUIDANCE_TEXT = "Please ask for the weather in a city first."

FORECAST_BUTTON_LABEL = "🔮 5-day forecast"
SHARE_LOCATION_BUTTON_LABEL = "📍 Share location"


def _weather_body(summary: WeatherSummary) -> str:
    return (
        f"🌡 Temperature: {summary.temperature:.0f}°C (feels like {summary.feels_like:.0f}°C)\n"
        f"💧 Humidity: {summary.humidity_percent}%\n"
        f"🌬 Wind: {summary.wind_speed:.0f} m/s\n"
        f"📝 {summary.description}"
    )


def render_current_weather(summary: WeatherSummary) -> str:
    """Reply for a city lookup."""
    return f"🌤 Weather in {summary.location_name}:\n{_weather_body(summary)}"


def render_location_weather(summary: WeatherSummary) -> str:
    """Reply for a shared location."""
    return f"📍 Weather at your location ({summary.location_name}):\n{_weather_body(summary)}"


def render_forecast(series: ForecastSeries) -> str:
    """Group forecast entries under one header per calendar day."""
    lines = [f"🔮 5-day forecast for {series.location_name}:", ""]
    current_day = None
    for entry in series.entries:
        day = entry.timestamp.strftime("%d.%m")
        if day != current_day:
            current_day = day
            lines.append("")
            lines.append(f"📅 {day}:")
        lines.append(
            f"⏰ {entry.timestamp:%H}:00: {entry.summary.temperature:.0f}°C, {entry.summary.description}"
        )
    return "\n".join(lines) + "\n"


def render_error(exc: WeatherProviderError) -> str:
    """Single user-visible error line for any provider failure."""
    return f"❌ Error: {exc.message}"
