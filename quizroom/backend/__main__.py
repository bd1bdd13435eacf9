"""Run the quiz backend with uvicorn."""

from __future__ import annotations

import uvicorn

from quizroom.backend.config import load_settings
from quizroom.backend.logging_config import configure_logging


def main() -> None:
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("starting quiz backend on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "quizroom.backend.api:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
