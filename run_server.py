import uvicorn

from weatherbot import bot
from weatherbot.config import ensure_credentials, settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def run() -> None:
    """
    Start the bot in the configured mode:
    - WEATHERBOT_RUN_MODE=polling (default) runs the getUpdates loop in-process
    - WEATHERBOT_RUN_MODE=webhook serves the FastAPI app with uvicorn.
    Missing credentials end the process before anything else starts.
    """
    setup_logging(level=settings.log_level)
    ensure_credentials(settings)

    if settings.run_mode == "webhook":
        logger.info(f"Starting webhook server on {settings.host}:{settings.port}")
        uvicorn.run(
            "weatherbot.main:app",
            host=settings.host,
            port=settings.port,
            reload=False,
        )
        return

    logger.info("Starting long-polling bot")
    bot.main(settings)


if __name__ == "__main__":
    run()
