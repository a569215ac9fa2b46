"""Logging setup for processes embedding the pricing engine."""

from __future__ import annotations

import logging

from quote_pricing.core.config import Settings, get_settings
from quote_pricing.security.logging_filters import SensitiveFilter

_LOGGER_NAMES = ("", "quote_pricing", "sqlalchemy.engine")


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured level and attach the credential scrubber once."""

    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("quote_pricing").setLevel(level)

    for logger_name in _LOGGER_NAMES:
        _logger = logging.getLogger(logger_name)
        if not any(isinstance(flt, SensitiveFilter) for flt in _logger.filters):
            _logger.addFilter(SensitiveFilter())
