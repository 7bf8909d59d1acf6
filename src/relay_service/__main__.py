"""Entrypoint: python -m relay_service"""
from __future__ import annotations

import logging

import uvicorn

from relay_service.api.middleware.correlation_id import CorrelationIdFilter
from relay_service.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "relay_service.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
