"""FastAPI application for webhook mode."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import router as api_router
from .bot import build_runtime
from .config import ensure_credentials, settings
from .errors import GatewayError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the bot runtime on startup and drain the workers on shutdown."""
    ensure_credentials(settings)
    runtime = build_runtime(settings)
    if settings.webhook_url:
        try:
            runtime.gateway.set_webhook(settings.webhook_url, settings.webhook_secret)
            logger.info("Registered Telegram webhook")
        except GatewayError as exc:
            logger.error(f"Failed to register Telegram webhook: {exc}")
    runtime.pool.start()
    app.state.worker_pool = runtime.pool
    try:
        yield
    finally:
        runtime.pool.stop(timeout=settings.request_timeout_seconds)


app = FastAPI(title="Weather Bot", lifespan=lifespan)

app.include_router(api_router, prefix="/v1")
