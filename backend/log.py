"""Logging helper for the fuel formula fitter."""

import logging
import os

_LEVEL_NAME = os.getenv("FUELFIT_LOG_LEVEL", "INFO").upper()
_PACKAGE_LOGGER_LEVEL = getattr(logging, _LEVEL_NAME, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; handlers are left to the application."""
    logger = logging.getLogger(name)
    logger.setLevel(_PACKAGE_LOGGER_LEVEL)
    return logger
