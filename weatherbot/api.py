"""HTTP API for receiving Telegram updates in webhook mode."""

import hmac
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from .bot import submit_update
from .config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")


def require_webhook_secret(
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
):
    """
    Validate the secret token Telegram echoes on every webhook call.

    With no secret configured every caller is accepted (dev/default mode).
    """
    if not settings.webhook_secret:
        logger.debug("No webhook secret configured; accepting update")
        return

    if not x_telegram_bot_api_secret_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing secret token")
    if not hmac.compare_digest(str(x_telegram_bot_api_secret_token), str(settings.webhook_secret)):
        logger.warning("Webhook called with an invalid secret token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret token")


router = APIRouter()


class WebhookResponse(BaseModel):
    """Acknowledgement for a delivered update."""
    ok: bool = True
    queued: bool


class HealthResponse(BaseModel):
    """Liveness payload."""
    status: str
    workers: int


def _pool(request: Request):
    pool = getattr(request.app.state, "worker_pool", None)
    if pool is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Bot runtime not started")
    return pool


@router.post("/telegram/webhook", response_model=WebhookResponse, dependencies=[Depends(require_webhook_secret)])
def telegram_webhook(request: Request, update: Any = Body(...)) -> WebhookResponse:
    """
    Queue an update for the worker pool and return immediately.

    Unusable updates are still answered with 200 so Telegram does not keep
    redelivering them.
    """
    queued = submit_update(_pool(request), update)
    return WebhookResponse(queued=queued)


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Report whether the worker pool is up."""
    pool = _pool(request)
    return HealthResponse(status="ok" if pool.running else "stopped", workers=pool.size)
