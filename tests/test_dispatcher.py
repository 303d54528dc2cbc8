import datetime as dt
import unittest

from weatherbot.cache import CACHE_TTL, FreshnessCache
from weatherbot.data_sources.base import CallableWeatherProvider
from weatherbot.dispatcher import Dispatcher
from weatherbot.domain import (
    CallbackEvent,
    ForecastAffordance,
    ForecastEntry,
    ForecastSeries,
    LocationShare,
    ShareLocationAffordance,
    TextMessage,
    WeatherSummary,
)
from weatherbot.errors import DecodeError, GatewayError, NotFound, ProviderError
from weatherbot.rendering import FORECAST_GUIDANCE_TEXT, HELP_TEXT
from weatherbot.session_store import InMemoryConversationStateStore


class FakeGateway:
    def __init__(self, fail_send=False, fail_ack=False):
        self.sent = []
        self.acks = []
        self.fail_send = fail_send
        self.fail_ack = fail_ack

    def send_message(self, chat_id, text, affordances=None):
        if self.fail_send:
            raise GatewayError("sendMessage failed: Forbidden")
        self.sent.append((chat_id, text, list(affordances or [])))

    def acknowledge_callback(self, callback_id):
        self.acks.append(callback_id)
        if self.fail_ack:
            raise GatewayError("answerCallbackQuery failed")


class FakeProvider:
    """Records calls; each endpoint returns a value or raises the configured error."""

    def __init__(self):
        self.calls = []
        self.current_result = WeatherSummary(
            location_name="London",
            temperature=15,
            feels_like=14,
            humidity_percent=70,
            wind_speed=3,
            description="clear sky",
        )
        self.forecast_result = ForecastSeries(
            location_name="London",
            entries=[
                ForecastEntry(
                    timestamp=dt.datetime(2024, 5, 15, 12, tzinfo=dt.timezone.utc),
                    summary=self.current_result,
                )
            ],
        )
        self.coords_result = self.current_result
        self.current_error = None
        self.forecast_error = None
        self.coords_error = None

    def _answer(self, result, error):
        if error is not None:
            raise error
        return result

    def current(self, city):
        self.calls.append(("current", city))
        return self._answer(self.current_result, self.current_error)

    def forecast(self, city):
        self.calls.append(("forecast", city))
        return self._answer(self.forecast_result, self.forecast_error)

    def coords(self, lat, lon):
        self.calls.append(("coords", (lat, lon)))
        return self._answer(self.coords_result, self.coords_error)

    def as_provider(self):
        return CallableWeatherProvider(
            current=self.current,
            forecast_series=self.forecast,
            current_by_coordinates=self.coords,
        )


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestDispatcher(unittest.TestCase):
    def setUp(self):
        self.provider = FakeProvider()
        self.gateway = FakeGateway()
        self.clock = FakeClock()
        self.cache = FreshnessCache(clock=self.clock)
        self.state = InMemoryConversationStateStore()
        self.dispatcher = Dispatcher(
            provider=self.provider.as_provider(),
            gateway=self.gateway,
            cache=self.cache,
            state_store=self.state,
        )

    def _text(self, text, user_id=1, chat_id=100):
        self.dispatcher.dispatch(TextMessage(user_id=user_id, chat_id=chat_id, text=text))

    def test_end_to_end_city_then_forecast(self):
        self._text("London")

        chat_id, reply, affordances = self.gateway.sent[-1]
        self.assertEqual(chat_id, 100)
        for fragment in ("London", "15", "70", "clear sky"):
            self.assertIn(fragment, reply)
        self.assertEqual(affordances, [ForecastAffordance("London")])
        self.assertEqual(self.cache.get("london"), reply)
        self.assertEqual(self.state.get_last_location(1), "London")

        self.provider.calls.clear()
        self._text("/forecast")

        self.assertEqual(self.provider.calls, [("forecast", "London")])
        self.assertIn("5-day forecast for London", self.gateway.sent[-1][1])

    def test_help_commands(self):
        for command in ("/start", "/help", "/help@WeatherBot"):
            self._text(command)
            _, reply, affordances = self.gateway.sent[-1]
            self.assertEqual(reply, HELP_TEXT)
            self.assertEqual(affordances, [ShareLocationAffordance()])
        self.assertEqual(self.provider.calls, [])
        self.assertEqual(len(self.cache), 0)

    def test_forecast_without_history_is_guarded(self):
        self._text("/forecast")
        self.assertEqual(self.gateway.sent[-1][1], FORECAST_GUIDANCE_TEXT)
        self.assertEqual(self.provider.calls, [])

    def test_forecast_with_bot_suffix(self):
        self.state.set_last_location(1, "Berlin")
        self._text("/forecast@WeatherBot")
        self.assertEqual(self.provider.calls, [("forecast", "Berlin")])

    def test_cache_hit_skips_provider_and_records_city(self):
        self._text("Paris", user_id=1)
        self.provider.calls.clear()

        self._text("PARIS", user_id=2)

        self.assertEqual(self.provider.calls, [])
        self.assertEqual(self.state.get_last_location(2), "PARIS")
        _, reply, affordances = self.gateway.sent[-1]
        self.assertIn("London", reply)  # the cached rendering
        self.assertEqual(affordances, [ForecastAffordance("PARIS")])

    def test_expired_cache_queries_provider_again(self):
        self._text("Paris")
        self.clock.now += CACHE_TTL.total_seconds()
        self._text("Paris")
        self.assertEqual(self.provider.calls, [("current", "Paris"), ("current", "Paris")])

    def test_failures_leave_state_and_cache_untouched(self):
        self._text("Berlin")
        self.provider.calls.clear()

        for error in (NotFound(), ProviderError("timed out"), DecodeError()):
            self.provider.current_error = error
            self._text("Atlantis")
            _, reply, affordances = self.gateway.sent[-1]
            self.assertTrue(reply.startswith("❌ Error: "))
            self.assertEqual(affordances, [])
            self.assertEqual(self.state.get_last_location(1), "Berlin")
            self.assertIsNone(self.cache.get("Atlantis"))

    def test_failure_without_prior_state_keeps_user_absent(self):
        self.provider.current_error = NotFound()
        self._text("Atlantis")
        self.assertIsNone(self.state.get_last_location(1))
        self.assertEqual(len(self.cache), 0)

    def test_forecast_failure_replies_error(self):
        self.state.set_last_location(1, "Berlin")
        self.provider.forecast_error = ProviderError()
        self._text("/forecast")
        self.assertEqual(self.gateway.sent[-1][1], "❌ Error: weather service is unavailable")

    def test_city_text_is_stripped(self):
        self._text("  Berlin  ")
        self.assertEqual(self.provider.calls, [("current", "Berlin")])
        self.assertEqual(self.state.get_last_location(1), "Berlin")

    def test_empty_text_is_ignored(self):
        self._text("   ")
        self.assertEqual(self.gateway.sent, [])
        self.assertEqual(self.provider.calls, [])

    def test_location_share_does_not_touch_cache_or_state(self):
        self.dispatcher.dispatch(LocationShare(user_id=1, chat_id=100, latitude=51.5, longitude=-0.1))

        self.assertEqual(self.provider.calls, [("coords", (51.5, -0.1))])
        self.assertTrue(self.gateway.sent[-1][1].startswith("📍 Weather at your location (London)"))
        self.assertEqual(len(self.cache), 0)
        self.assertIsNone(self.state.get_last_location(1))

    def test_location_share_failure(self):
        self.provider.coords_error = ProviderError()
        self.dispatcher.dispatch(LocationShare(user_id=1, chat_id=100, latitude=95.0, longitude=0.0))
        self.assertTrue(self.gateway.sent[-1][1].startswith("❌ Error: "))

    def test_forecast_callback_acknowledges_first(self):
        self.dispatcher.dispatch(CallbackEvent(user_id=1, chat_id=100, callback_id="cb1", payload="forecast:Rome"))

        self.assertEqual(self.gateway.acks, ["cb1"])
        self.assertEqual(self.provider.calls, [("forecast", "Rome")])
        self.assertIsNone(self.state.get_last_location(1))

    def test_callback_with_unknown_payload_is_only_acknowledged(self):
        self.dispatcher.dispatch(CallbackEvent(user_id=1, chat_id=100, callback_id="cb2", payload="noop"))
        self.assertEqual(self.gateway.acks, ["cb2"])
        self.assertEqual(self.gateway.sent, [])
        self.assertEqual(self.provider.calls, [])

    def test_callback_with_empty_city_gets_guidance(self):
        self.dispatcher.dispatch(CallbackEvent(user_id=1, chat_id=100, callback_id="cb3", payload="forecast:"))
        self.assertEqual(self.gateway.sent[-1][1], FORECAST_GUIDANCE_TEXT)
        self.assertEqual(self.provider.calls, [])

    def test_failed_ack_still_sends_forecast(self):
        self.gateway.fail_ack = True
        self.dispatcher.dispatch(CallbackEvent(user_id=1, chat_id=100, callback_id="cb4", payload="forecast:Rome"))
        self.assertEqual(self.provider.calls, [("forecast", "Rome")])
        self.assertEqual(len(self.gateway.sent), 1)

    def test_send_failure_is_not_raised(self):
        self.gateway.fail_send = True
        self._text("London")
        # the lookup itself succeeded, so cache and state are kept
        self.assertIsNotNone(self.cache.get("London"))
        self.assertEqual(self.state.get_last_location(1), "London")

    def test_default_stores_are_created_per_dispatcher(self):
        a = Dispatcher(provider=self.provider.as_provider(), gateway=FakeGateway())
        b = Dispatcher(provider=self.provider.as_provider(), gateway=FakeGateway())
        a.dispatch(TextMessage(user_id=1, chat_id=1, text="Oslo"))
        self.assertIsNotNone(a.cache.get("Oslo"))
        self.assertIsNone(b.cache.get("Oslo"))
        self.assertIsNone(b.state_store.get_last_location(1))


if __name__ == "__main__":
    unittest.main()
