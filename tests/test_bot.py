import threading
import unittest
from unittest import mock

from weatherbot import bot
from weatherbot.config import Settings
from weatherbot.domain import CallbackEvent, TextMessage
from weatherbot.errors import GatewayError
from weatherbot.gateway.telegram import TelegramGateway


class RecordingPool:
    def __init__(self):
        self.events = []

    def submit(self, event):
        self.events.append(event)


class ScriptedGateway:
    """Returns one scripted batch per poll and stops the loop when the script runs out."""

    def __init__(self, batches, stop_event):
        self.batches = list(batches)
        self.stop_event = stop_event
        self.offsets = []

    def get_updates(self, offset=None, timeout=60):
        self.offsets.append(offset)
        if not self.batches:
            self.stop_event.set()
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch


def _text_update(update_id, text, user=1):
    return {"update_id": update_id, "message": {"from": {"id": user}, "chat": {"id": user}, "text": text}}


class TestRunPolling(unittest.TestCase):
    def test_updates_are_queued_and_offset_advances(self):
        stop = threading.Event()
        gateway = ScriptedGateway(
            [
                [_text_update(10, "London"), _text_update(11, "/forecast")],
                [{"update_id": 12, "callback_query": {"id": "q", "from": {"id": 1}, "data": "forecast:London"}}],
            ],
            stop,
        )
        pool = RecordingPool()

        bot.run_polling(gateway, pool, poll_timeout=1, stop_event=stop, retry_delay=0)

        self.assertEqual(gateway.offsets, [None, 12, 13])
        self.assertEqual(
            pool.events,
            [
                TextMessage(user_id=1, chat_id=1, text="London"),
                TextMessage(user_id=1, chat_id=1, text="/forecast"),
                CallbackEvent(user_id=1, chat_id=1, callback_id="q", payload="forecast:London"),
            ],
        )

    def test_gateway_errors_do_not_end_the_loop(self):
        stop = threading.Event()
        gateway = ScriptedGateway([GatewayError("getUpdates failed: HTTP 502"), [_text_update(1, "Oslo")]], stop)
        pool = RecordingPool()

        bot.run_polling(gateway, pool, poll_timeout=1, stop_event=stop, retry_delay=0)

        self.assertEqual(len(pool.events), 1)

    def test_malformed_and_irrelevant_updates_are_skipped(self):
        stop = threading.Event()
        malformed = {"update_id": 5, "message": {"chat": {"id": 1}, "location": {"latitude": "north"}}}
        gateway = ScriptedGateway([[malformed, {"update_id": 6, "poll": {}}, _text_update(7, "Rome")]], stop)
        pool = RecordingPool()

        bot.run_polling(gateway, pool, poll_timeout=1, stop_event=stop, retry_delay=0)

        self.assertEqual([e.text for e in pool.events], ["Rome"])
        self.assertEqual(gateway.offsets[-1], 8)

    def test_wrongly_typed_updates_do_not_end_the_loop(self):
        stop = threading.Event()
        batch = [
            {"update_id": 20, "message": "x"},
            {"update_id": 21, "callback_query": {"id": "c", "data": "forecast:X", "from": "abc"}},
            "not an update",
            _text_update(22, "Lima"),
        ]
        gateway = ScriptedGateway([batch], stop)
        pool = RecordingPool()

        bot.run_polling(gateway, pool, poll_timeout=1, stop_event=stop, retry_delay=0)

        self.assertEqual([e.text for e in pool.events], ["Lima"])
        self.assertEqual(gateway.offsets[-1], 23)


class TestSubmitUpdate(unittest.TestCase):
    def test_string_message_is_skipped(self):
        pool = RecordingPool()
        self.assertFalse(bot.submit_update(pool, {"update_id": 1, "message": "x"}))
        self.assertEqual(pool.events, [])

    def test_non_object_update_is_skipped(self):
        pool = RecordingPool()
        self.assertFalse(bot.submit_update(pool, [1, 2]))
        self.assertFalse(bot.submit_update(pool, None))
        self.assertEqual(pool.events, [])

    def test_bad_location_is_skipped(self):
        pool = RecordingPool()
        update = {"update_id": 3, "message": {"chat": {"id": 1}, "location": "here"}}
        self.assertFalse(bot.submit_update(pool, update))


class TestBuildRuntime(unittest.TestCase):
    def test_wires_components_from_settings(self):
        cfg = Settings(telegram_token="1:A", owm_api_key="k", worker_count=3)
        runtime = bot.build_runtime(cfg)

        self.assertIsInstance(runtime.gateway, TelegramGateway)
        self.assertIs(runtime.dispatcher.gateway, runtime.gateway)
        self.assertEqual(runtime.pool.size, 3)
        self.assertFalse(runtime.pool.running)

    def test_main_exits_without_credentials(self):
        cfg = Settings(telegram_token=None, owm_api_key=None)
        with self.assertRaises(SystemExit):
            bot.main(cfg)


class TestMain(unittest.TestCase):
    def test_empty_get_me_result_does_not_abort_startup(self):
        cfg = Settings(telegram_token="1:A", owm_api_key="k")
        gateway = mock.Mock()
        gateway.get_me.return_value = None
        pool = mock.Mock()
        runtime = bot.BotRuntime(gateway=gateway, dispatcher=mock.Mock(), pool=pool)

        with mock.patch.object(bot, "build_runtime", return_value=runtime), \
                mock.patch.object(bot, "run_polling") as run_polling:
            bot.main(cfg)

        run_polling.assert_called_once()
        pool.start.assert_called_once()
        pool.stop.assert_called_once()

    def test_unreachable_telegram_exits(self):
        cfg = Settings(telegram_token="1:A", owm_api_key="k")
        gateway = mock.Mock()
        gateway.get_me.side_effect = GatewayError("getMe failed: Unauthorized")
        runtime = bot.BotRuntime(gateway=gateway, dispatcher=mock.Mock(), pool=mock.Mock())

        with mock.patch.object(bot, "build_runtime", return_value=runtime):
            with self.assertRaises(SystemExit) as ctx:
                bot.main(cfg)
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
