from __future__ import annotations

import logging

PACKAGE_LOGGER = "catalog_authz"


def configure_app_logging(level: str = "INFO") -> logging.Logger:
    """
    Set the level of the ``catalog_authz`` logger tree and return its root.

    Handlers stay with uvicorn or whatever embeds the app. Decisions log at
    DEBUG and denials at INFO, so ``AUTHZ_LOG_LEVEL=DEBUG`` shows the matched
    rule of every check.
    """

    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level {level!r}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolved)
    return logger
