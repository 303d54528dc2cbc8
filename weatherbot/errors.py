"""Failure taxonomy shared by the weather provider, the gateway and the dispatcher."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Classification of an unsuccessful provider call."""
    NOT_FOUND = "not_found"
    PROVIDER_ERROR = "provider_error"
    DECODE_ERROR = "decode_error"


class WeatherProviderError(Exception):
    """Base class for every failure surfaced by a weather provider."""

    kind: FailureKind = FailureKind.PROVIDER_ERROR
    default_message = "weather service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFound(WeatherProviderError):
    """The provider does not know the requested location."""
    kind = FailureKind.NOT_FOUND
    default_message = "city not found"


class ProviderError(WeatherProviderError):
    """Transport failure, timeout or non-success status from the provider."""
    kind = FailureKind.PROVIDER_ERROR
    default_message = "weather service is unavailable"


class DecodeError(WeatherProviderError):
    """The provider response does not have the expected shape."""
    kind = FailureKind.DECODE_ERROR
    default_message = "could not read the weather service response"


class GatewayError(Exception):
    """Failure talking to the messaging platform."""
