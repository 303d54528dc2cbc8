"""Turn inbound chat events into weather lookups and replies.

The dispatcher owns no state of its own: the freshness cache and the
conversation state store are injected, and every outbound call goes through
the weather provider or the messaging gateway. Provider failures become a
single error reply and leave cache and state untouched; gateway failures are
logged and end the handling of that event.
"""

from __future__ import annotations

from typing import Optional, Sequence

from weatherbot.cache import FreshnessCache
from weatherbot.data_sources.base import WeatherProvider
from weatherbot.domain import (
    FORECAST_CALLBACK_PREFIX,
    CallbackEvent,
    ForecastAffordance,
    InboundEvent,
    LocationShare,
    ReplyAffordance,
    ShareLocationAffordance,
    TextMessage,
)
from weatherbot.errors import GatewayError, WeatherProviderError
from weatherbot.gateway.base import MessagingGateway
from weatherbot.rendering import (
    FORECAST_GUIDANCE_TEXT,
    HELP_TEXT,
    render_current_weather,
    render_error,
    render_forecast,
    render_location_weather,
)
from weatherbot.session_store import ConversationStateStore, InMemoryConversationStateStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="dispatcher")

HELP_COMMANDS = ("/start", "/help")
FORECAST_COMMAND = "/forecast"


def _command_name(text: str) -> str:
    """Strip a trailing @botname so '/forecast@MyBot' matches '/forecast'."""
    if text.startswith("/"):
        return text.split("@", 1)[0]
    return text


class Dispatcher:
    """Routes each inbound event to the matching weather query."""

    def __init__(
        self,
        provider: WeatherProvider,
        gateway: MessagingGateway,
        cache: Optional[FreshnessCache[str]] = None,
        state_store: Optional[ConversationStateStore] = None,
    ) -> None:
        self.provider = provider
        self.gateway = gateway
        self.cache: FreshnessCache[str] = cache if cache is not None else FreshnessCache()
        self.state_store = state_store if state_store is not None else InMemoryConversationStateStore()

    def dispatch(self, event: InboundEvent) -> None:
        """Handle one event end to end."""
        if isinstance(event, TextMessage):
            self.handle_text(event)
        elif isinstance(event, LocationShare):
            self.handle_location(event)
        elif isinstance(event, CallbackEvent):
            self.handle_callback(event)
        else:
            logger.warning(f"Ignoring unsupported event type {type(event).__name__}")

    def handle_text(self, event: TextMessage) -> None:
        text = event.text.strip()
        if not text:
            logger.debug(f"Ignoring empty text message from user {event.user_id}")
            return

        command = _command_name(text)
        if command in HELP_COMMANDS:
            self._reply(event.chat_id, HELP_TEXT, [ShareLocationAffordance()])
        elif command == FORECAST_COMMAND:
            city = self.state_store.get_last_location(event.user_id)
            if city is None:
                self._reply(event.chat_id, FORECAST_GUIDANCE_TEXT)
            else:
                self._send_forecast(event.chat_id, city)
        else:
            self._send_city_weather(event.user_id, event.chat_id, text)

    def handle_location(self, event: LocationShare) -> None:
        try:
            summary = self.provider.current_weather_by_coordinates(event.latitude, event.longitude)
        except WeatherProviderError as exc:
            logger.info(f"Coordinate lookup failed ({exc.kind.value}): {exc}")
            self._reply(event.chat_id, render_error(exc))
            return
        self._reply(event.chat_id, render_location_weather(summary))

    def handle_callback(self, event: CallbackEvent) -> None:
        try:
            self.gateway.acknowledge_callback(event.callback_id)
        except GatewayError as exc:
            logger.warning(f"Failed to acknowledge callback: {exc}")

        if not event.payload.startswith(FORECAST_CALLBACK_PREFIX):
            logger.debug(f"Ignoring callback with unknown payload '{event.payload}'")
            return
        city = event.payload[len(FORECAST_CALLBACK_PREFIX):].strip()
        if not city:
            self._reply(event.chat_id, FORECAST_GUIDANCE_TEXT)
            return
        self._send_forecast(event.chat_id, city)

    def _send_city_weather(self, user_id: int, chat_id: int, city: str) -> None:
        rendered = self.cache.get(city)
        if rendered is not None:
            logger.debug(f"Cache hit for '{city}'")
        else:
            try:
                summary = self.provider.current_weather(city)
            except WeatherProviderError as exc:
                logger.info(f"Weather lookup for '{city}' failed ({exc.kind.value}): {exc}")
                self._reply(chat_id, render_error(exc))
                return
            rendered = render_current_weather(summary)
            self.cache.set(city, rendered)

        # A cache hit is a successful answer too, so it moves the follow-up target.
        self.state_store.set_last_location(user_id, city)
        self._reply(chat_id, rendered, [ForecastAffordance(city)])

    def _send_forecast(self, chat_id: int, city: str) -> None:
        try:
            series = self.provider.forecast(city)
        except WeatherProviderError as exc:
            logger.info(f"Forecast for '{city}' failed ({exc.kind.value}): {exc}")
            self._reply(chat_id, render_error(exc))
            return
        self._reply(chat_id, render_forecast(series))

    def _reply(self, chat_id: int, text: str, affordances: Optional[Sequence[ReplyAffordance]] = None) -> None:
        try:
            self.gateway.send_message(chat_id, text, affordances)
        except GatewayError as exc:
            logger.error(f"Failed to send reply to chat {chat_id}: {exc}")
