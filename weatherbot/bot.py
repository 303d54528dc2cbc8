"""Wiring of the bot components and the long-polling update loop."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from weatherbot import config
from weatherbot.cache import FreshnessCache
from weatherbot.data_sources import build_weather_provider
from weatherbot.dispatcher import Dispatcher
from weatherbot.errors import GatewayError
from weatherbot.gateway.telegram import TelegramGateway, parse_update
from weatherbot.session_store import InMemoryConversationStateStore
from weatherbot.worker_pool import EventWorkerPool
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bot")

RETRY_DELAY_SECONDS = 3.0


@dataclass
class BotRuntime:
    """Everything a running bot needs, built once per process."""
    gateway: TelegramGateway
    dispatcher: Dispatcher
    pool: EventWorkerPool


def build_runtime(settings: config.Settings | None = None) -> BotRuntime:
    """Build gateway, provider, stores, dispatcher and worker pool from settings."""
    settings = settings or config.settings
    gateway = TelegramGateway(
        settings.telegram_token or "",
        base_url=settings.telegram_base_url,
        timeout=settings.request_timeout_seconds,
    )
    dispatcher = Dispatcher(
        provider=build_weather_provider(settings),
        gateway=gateway,
        cache=FreshnessCache(),
        state_store=InMemoryConversationStateStore(),
    )
    pool = EventWorkerPool(dispatcher.dispatch, workers=settings.worker_count)
    return BotRuntime(gateway=gateway, dispatcher=dispatcher, pool=pool)


def submit_update(pool: EventWorkerPool, update: Any) -> bool:
    """Parse a raw update and queue it; returns False if it was skipped."""
    if not isinstance(update, dict):
        logger.warning(f"Skipping update that is not an object: {type(update).__name__}")
        return False
    try:
        event = parse_update(update)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning(f"Skipping malformed update {update.get('update_id')}: {exc!r}")
        return False
    if event is None:
        return False
    pool.submit(event)
    return True


def run_polling(
    gateway: TelegramGateway,
    pool: EventWorkerPool,
    *,
    poll_timeout: int = 60,
    stop_event: Optional[threading.Event] = None,
    retry_delay: float = RETRY_DELAY_SECONDS,
) -> None:
    """Feed updates from getUpdates into the pool until `stop_event` is set."""
    stop_event = stop_event or threading.Event()
    offset: Optional[int] = None
    while not stop_event.is_set():
        try:
            updates = gateway.get_updates(offset=offset, timeout=poll_timeout)
        except GatewayError as exc:
            logger.warning(f"Polling failed, retrying in {retry_delay:g}s: {exc}")
            stop_event.wait(retry_delay)
            continue

        for update in updates:
            update_id = update.get("update_id") if isinstance(update, dict) else None
            if isinstance(update_id, int):
                offset = update_id + 1
            submit_update(pool, update)


def main(settings: config.Settings | None = None) -> None:
    """Run the bot in long-polling mode until interrupted."""
    settings = settings or config.settings
    config.ensure_credentials(settings)
    runtime = build_runtime(settings)
    try:
        me = runtime.gateway.get_me()
    except GatewayError as exc:
        logger.error(f"Could not reach Telegram with the configured token: {exc}")
        raise SystemExit(1)
    logger.info(f"Bot started: @{(me or {}).get('username')}")

    runtime.pool.start()
    try:
        run_polling(runtime.gateway, runtime.pool, poll_timeout=settings.poll_timeout_seconds)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        runtime.pool.stop(timeout=settings.request_timeout_seconds)
