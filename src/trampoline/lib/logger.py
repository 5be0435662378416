"""
Dual-mode diagnostic logging for trampoline runs.

Provides human-readable console logs by default and JSON structured logs
for log collectors that index them.
"""

import logging
import os
import sys
import time

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "trampoline"


def setup_logger(name: str = LOGGER_NAME, verbose: bool = False) -> logging.Logger:
    """
    Setup dual-mode logger for the trampoline.

    Mode is determined by the TRAMPOLINE_LOG_FORMAT environment variable:
    - text: Human-readable console logging with timestamps (default)
    - json: JSON structured logging

    Parameters
    ----------
    name : str, optional
        Logger name, by default "trampoline".
    verbose : bool, optional
        Force DEBUG level regardless of LOG_LEVEL, by default False.

    Returns
    -------
    logging.Logger
        Configured logger instance

    Examples
    --------
    >>> logger = setup_logger(verbose=True)
    >>> logger.debug("Executing: docker pull gcr.io/project/image")

    Environment Variables
    ---------------------
    TRAMPOLINE_LOG_FORMAT : str
        Output format: "text" or "json" (default: text)
    LOG_LEVEL : str
        Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    """
    logger = logging.getLogger(name)

    if verbose:
        logger.setLevel(logging.DEBUG)
    else:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Remove existing handlers to avoid duplicates if called multiple times
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logger.level)

    log_format = os.getenv("TRAMPOLINE_LOG_FORMAT", "text").lower()
    if log_format == "json":
        formatter = _create_json_formatter(name)
    else:
        formatter = _create_text_formatter(name)

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger (prevents duplicate logs)
    logger.propagate = False

    return logger


def _create_json_formatter(component: str) -> logging.Formatter:
    """
    Create JSON formatter using python-json-logger.

    Renames ``levelname`` to ``severity`` so Cloud Logging picks the level up.
    """

    class TrampolineJsonFormatter(JsonFormatter):
        def add_fields(self, log_record, record, message_dict):
            super().add_fields(log_record, record, message_dict)

            log_record["component"] = component

            if "levelname" in log_record:
                log_record["severity"] = log_record.pop("levelname")

    formatter = TrampolineJsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    # Timestamps carry a Z suffix, so they must be UTC
    formatter.converter = time.gmtime
    return formatter


def _create_text_formatter(component: str) -> logging.Formatter:
    """Create human-readable formatter with timestamp, component and severity."""
    return logging.Formatter(
        fmt=f"%(asctime)s {component} %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
