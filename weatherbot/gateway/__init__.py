"""Messaging platform gateways."""

from .base import MessagingGateway
from .telegram import TelegramGateway, build_reply_markup, parse_update

__all__ = [
    "MessagingGateway",
    "TelegramGateway",
    "build_reply_markup",
    "parse_update",
]
