"""Telegram Bot API client: long polling, replies and update parsing."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import requests

from weatherbot.domain import (
    CallbackEvent,
    ForecastAffordance,
    InboundEvent,
    LocationShare,
    ReplyAffordance,
    ShareLocationAffordance,
    TextMessage,
)
from weatherbot.errors import GatewayError
from weatherbot.rendering import FORECAST_BUTTON_LABEL, SHARE_LOCATION_BUTTON_LABEL
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="gateway/telegram")

TELEGRAM_API_URL = "https://api.telegram.org"
CALLBACK_DATA_MAX_BYTES = 64
ALLOWED_UPDATES = ["message", "callback_query"]


def build_reply_markup(affordances: Optional[Sequence[ReplyAffordance]]) -> Optional[Dict[str, Any]]:
    """
    Render affordances as Telegram reply markup.

    A message carries one keyboard, so inline buttons win over the reply
    keyboard when both kinds are requested.
    """
    if not affordances:
        return None

    inline_rows: List[List[Dict[str, Any]]] = []
    wants_location = False
    for affordance in affordances:
        if isinstance(affordance, ForecastAffordance):
            data = affordance.callback_payload
            if len(data.encode("utf-8")) > CALLBACK_DATA_MAX_BYTES:
                logger.warning(f"Skipping forecast button; callback data exceeds {CALLBACK_DATA_MAX_BYTES} bytes")
                continue
            inline_rows.append([{"text": FORECAST_BUTTON_LABEL, "callback_data": data}])
        elif isinstance(affordance, ShareLocationAffordance):
            wants_location = True

    if inline_rows:
        return {"inline_keyboard": inline_rows}
    if wants_location:
        return {
            "keyboard": [[{"text": SHARE_LOCATION_BUTTON_LABEL, "request_location": True}]],
            "resize_keyboard": True,
        }
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_update(update: Dict[str, Any]) -> Optional[InboundEvent]:
    """
    Convert a raw Telegram update into an inbound event, or None if irrelevant.

    Nested objects of the wrong type are treated as absent. Raises KeyError,
    TypeError or ValueError only for a location without usable coordinates.
    """
    if not isinstance(update, dict):
        return None

    callback = _as_dict(update.get("callback_query"))
    if callback:
        data = callback.get("data")
        if not isinstance(data, str) or "id" not in callback:
            return None
        user_id = _as_dict(callback.get("from")).get("id")
        chat_id = _as_dict(_as_dict(callback.get("message")).get("chat")).get("id", user_id)
        if user_id is None or chat_id is None:
            return None
        return CallbackEvent(user_id=user_id, chat_id=chat_id, callback_id=str(callback["id"]), payload=data)

    message = _as_dict(update.get("message"))
    if not message:
        return None
    chat_id = _as_dict(message.get("chat")).get("id")
    if chat_id is None:
        return None
    user_id = _as_dict(message.get("from")).get("id", chat_id)

    location = message.get("location")
    if location:
        return LocationShare(
            user_id=user_id,
            chat_id=chat_id,
            latitude=float(location["latitude"]),
            longitude=float(location["longitude"]),
        )
    text = message.get("text")
    if isinstance(text, str):
        return TextMessage(user_id=user_id, chat_id=chat_id, text=text)
    return None


class TelegramGateway:
    """Synchronous Telegram Bot API client over a requests session."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = TELEGRAM_API_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram bot token must be set")
        self._endpoint = f"{base_url.rstrip('/')}/bot{token}"
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, payload: Dict[str, Any] | None = None, *, timeout: float | None = None) -> Any:
        """POST a Bot API method and return its `result` field."""
        try:
            resp = self.session.post(f"{self._endpoint}/{method}", json=payload or {}, timeout=timeout or self.timeout)
        except requests.RequestException as exc:
            raise GatewayError(f"{method} request failed: {type(exc).__name__}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if resp.status_code >= 400 or not body.get("ok", False):
            description = body.get("description") or f"HTTP {resp.status_code}"
            raise GatewayError(f"{method} failed: {description}")
        return body.get("result")

    def get_me(self) -> Dict[str, Any]:
        """Return the bot's own user record."""
        return self._call("getMe")

    def get_updates(self, offset: int | None = None, timeout: int = 60) -> List[Dict[str, Any]]:
        """Long-poll for new updates starting at `offset`."""
        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ALLOWED_UPDATES}
        if offset is not None:
            payload["offset"] = offset
        # The HTTP request must outlive the server-side long poll.
        return self._call("getUpdates", payload, timeout=timeout + self.timeout) or []

    def send_message(
        self,
        chat_id: int,
        text: str,
        affordances: Optional[Sequence[ReplyAffordance]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        markup = build_reply_markup(affordances)
        if markup:
            payload["reply_markup"] = markup
        self._call("sendMessage", payload)

    def acknowledge_callback(self, callback_id: str) -> None:
        self._call("answerCallbackQuery", {"callback_query_id": callback_id})

    def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        """Register the webhook URL Telegram should deliver updates to."""
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ALLOWED_UPDATES}
        if secret_token:
            payload["secret_token"] = secret_token
        self._call("setWebhook", payload)
