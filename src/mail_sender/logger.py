# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail sender.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) is configured via ``logging.basicConfig()`` in the
CLI entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from mail_sender.logger import get_logger

        logger = get_logger("Attachments")
        logger.warning("Attachment skipped")
"""

import logging

ROOT_LOGGER_NAME = "mail_sender"


def get_logger(name: str | None = None) -> logging.Logger:
    """Retrieve a logger in the ``mail_sender`` hierarchy.

    Handlers and formatters are not configured here; that responsibility
    lies with the application entry point.

    Args:
        name: Optional child name. ``None`` returns the package root logger.

    Returns:
        A ``logging.Logger`` instance bound to ``mail_sender[.name]``.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for command-line use.

    Unknown level names fall back to INFO.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,  # Force reconfiguration to avoid duplicate handlers
    )
