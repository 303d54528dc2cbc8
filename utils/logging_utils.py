"""
Central logging configuration for the weather bot.

Usage
-----
In the entrypoint:

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="weatherbot")

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="dispatcher")

Every record carries `job_name` and `tag` fields, and secrets (bot tokens,
provider API keys) are masked before anything is written.
"""

from __future__ import annotations

import logging
import logging.config
import re
from typing import Any, Mapping, Optional


BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BOOTSTRAP_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Early logs (before setup_logging) still get timestamps and levels.
logging.basicConfig(
    level=logging.INFO,
    format=BOOTSTRAP_FORMAT,
    datefmt=BOOTSTRAP_DATEFMT,
)

DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_JOB_NAME = "weatherbot"

_CONFIGURED: bool = False

# Telegram puts the bot token in the URL path: /bot123456:ABC-def/sendMessage
_BOT_TOKEN_RE = re.compile(r"/bot[0-9]+:[A-Za-z0-9_-]+")
# OpenWeatherMap passes the key as a query parameter.
_APPID_RE = re.compile(r"(appid=)[^&\s'\"]+", re.IGNORECASE)
_SENSITIVE_QUERY_TOKENS = ("pass", "pwd", "secret", "token", "key", "appid")


def redact_secrets(text: str) -> str:
    """Mask bot tokens and provider API keys inside free text."""
    if not text:
        return text
    text = _BOT_TOKEN_RE.sub("/bot***", text)
    return _APPID_RE.sub(r"\1***", text)


class MaxLevelFilter(logging.Filter):
    """Allow only records up to (and including) `max_level`."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """
    Ensure every LogRecord has a `tag` attribute.

    Records coming from a tagged adapter keep their tag; third-party records
    (requests, urllib3, uvicorn) get the last segment of their logger name.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        return True


class JobNameFilter(logging.Filter):
    """Inject a fixed `job_name` attribute into every LogRecord."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


class RedactSecretsFilter(logging.Filter):
    """
    Mask credentials in the rendered message.

    urllib3 logs full request URLs at DEBUG level, and the Telegram Bot API
    URL embeds the bot token, so the message is rendered once and scrubbed.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
) -> Mapping[str, Any]:
    """
    Build a dictConfig-style logging configuration.

    Parameters
    ----------
    level:
        Root logger level (e.g., "DEBUG", "INFO", logging.INFO).
    log_format:
        Formatter pattern for log messages.
    date_format:
        Formatter pattern for timestamps.
    job_name:
        Logical name for this process, used for the `job_name` field.

    Returns
    -------
    dict suitable for logging.config.dictConfig().
    """
    shared_filters = ["redact_secrets", "ensure_tag", "job_name"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact_secrets": {"()": RedactSecretsFilter},
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {
                "()": MaxLevelFilter,
                "max_level": logging.INFO,
            },
        },
        "formatters": {
            "standard": {
                "format": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": shared_filters + ["stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": shared_filters,
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["stdout", "stderr"],
        },
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
    override_existing: bool = False,
) -> None:
    """
    Configure application-wide logging once per process.

    Repeated calls are no-ops unless `override_existing` is True.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    config_dict = build_logging_config(
        level=level,
        log_format=log_format,
        date_format=date_format,
        job_name=job_name,
    )
    logging.config.dictConfig(config_dict)
    _CONFIGURED = True


def get_tagged_logger(
    name: str,
    *,
    tag: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Return a LoggerAdapter that always carries a `tag` field.

    If `tag` is omitted it defaults to the last segment of `name`,
    e.g. "weatherbot.gateway.telegram" -> "telegram".
    """
    base_logger = logging.getLogger(name)
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(base_logger, {"tag": tag})


def mask_url(url: str) -> str:
    """Return a copy of an outbound API URL with credentials masked.

    Examples
    --------
    - https://api.telegram.org/bot123:ABC/getMe -> https://api.telegram.org/bot***/getMe
    - https://api.openweathermap.org/data/2.5/weather?q=Oslo&appid=abc
      -> https://api.openweathermap.org/data/2.5/weather?q=Oslo&appid=%2A%2A%2A
    """
    from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    masked_query_pairs = []
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if any(token in key.lower() for token in _SENSITIVE_QUERY_TOKENS):
            masked_query_pairs.append((key, "***"))
        else:
            masked_query_pairs.append((key, value))
    masked_query = urlencode(masked_query_pairs)
    masked_path = _BOT_TOKEN_RE.sub("/bot***", parsed.path or "")

    return urlunparse(
        (parsed.scheme, parsed.netloc, masked_path, parsed.params or "", masked_query, parsed.fragment or "")
    )
