import logging
import uvicorn
from relay.core.config import settings
from relay.core.logging import setup_logging

setup_logging()
logger = logging.getLogger("relay.server")


def main():
    logger.info("Starting %s on %s:%d", settings.APP_NAME, settings.HOST, settings.PORT)
    # log_config=None keeps uvicorn on the root JSON handler
    uvicorn.run(
        "relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        timeout_graceful_shutdown=5,
    )


if __name__ == "__main__":
    main()
