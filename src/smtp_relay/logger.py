"""Logging utilities for the SMTP relay.

Handlers, level and format are configured once by the entry point
(:func:`configure_logging`); modules only ask for a named logger.

Example:
    Typical usage in a module::

        from smtp_relay.logger import get_logger

        logger = get_logger("Dispatcher")
        logger.info("Email sent")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "SMTPRelay") -> logging.Logger:
    """Retrieve a logger instance.

    Args:
        name: The logger name. Defaults to "SMTPRelay".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the process.

    Unknown level names fall back to ``INFO``. ``force=True`` replaces any
    handler installed earlier so repeated calls do not duplicate output.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,
    )
