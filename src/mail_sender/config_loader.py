# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for the mail sender.

Settings come from an INI file with environment variables as fallbacks.
Values passed explicitly (for example from CLI options) override both.

Example:
    Configuration file format (mail-sender.ini)::

        [smtp]
        server = smtp.example.com
        port = 587
        security = start_tls
        username = mailer@example.com
        password = secret
        timeout = 30

        [message]
        from = mailer@example.com
        from_name = Nightly Reports
        priority = normal

        [attachments]
        max_total_mb = 20
        locked_extensions = .xls, .xlsx, .xlsm, .xlsb

    Loading it::

        settings = load_settings("/etc/mail-sender.ini", {"port": 2525})
"""

from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import Any

from .logger import get_logger
from .models import DEFAULT_MAX_ATTACHMENT_BYTES, MEGABYTE, SenderSettings

logger = get_logger("Config")

DEFAULT_CONFIG_PATH = "mail-sender.ini"


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> SenderSettings:
    """
    Load settings from an INI file (default: mail-sender.ini) with environment variables as fallbacks.

    A missing file is not an error: environment variables and overrides may
    supply everything.

    Environment variables (all prefixed with MAILSENDER_):
      MAILSENDER_CONFIG - Path to the INI file (default: mail-sender.ini)
      MAILSENDER_SERVER - SMTP server hostname
      MAILSENDER_PORT - SMTP port (default: 25)
      MAILSENDER_SECURITY - none, auto, ssl_on_connect, start_tls, start_tls_when_available
      MAILSENDER_USERNAME - SMTP username
      MAILSENDER_PASSWORD - SMTP password
      MAILSENDER_TIMEOUT - SMTP timeout in seconds (default: 60)
      MAILSENDER_FROM - Sender address
      MAILSENDER_FROM_NAME - Sender display name
      MAILSENDER_PRIORITY - low, normal, high (default: normal)
      MAILSENDER_MAX_ATTACHMENT_MB - Attachment size budget in MB (default: 20)
      MAILSENDER_LOCKED_EXTENSIONS - Comma separated extensions copied before reading

    Config file sections/keys:
      [smtp] server, port, security, username, password, timeout
      [message] from, from_name, priority
      [attachments] max_total_mb, locked_extensions

    Raises:
        pydantic.ValidationError: If the merged settings are incomplete or invalid.
    """
    path = Path(config_path or os.getenv("MAILSENDER_CONFIG", DEFAULT_CONFIG_PATH))
    parser = configparser.ConfigParser(interpolation=None)
    if path.exists():
        parser.read(path)
        logger.debug("Loaded configuration from %s", path)
    elif config_path is not None:
        raise FileNotFoundError(f"Config file not found: {path}")

    def get(section: str, option: str, fallback: str | None = None) -> str | None:
        if parser.has_option(section, option):
            value = parser.get(section, option).strip()
            return value or fallback
        return fallback

    def get_int(section: str, option: str, fallback: str | None = None, default: int | None = None) -> int | None:
        value = get(section, option, fallback)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {section}.{option}, using default {default}")
            return default

    def get_float(section: str, option: str, fallback: str | None = None, default: float | None = None) -> float | None:
        value = get(section, option, fallback)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {section}.{option}, using default {default}")
            return default

    max_mb = get_float("attachments", "max_total_mb", os.getenv("MAILSENDER_MAX_ATTACHMENT_MB"))

    settings: dict[str, Any] = {
        "server": get("smtp", "server", os.getenv("MAILSENDER_SERVER")),
        "port": get_int("smtp", "port", os.getenv("MAILSENDER_PORT"), default=25),
        "security_mode": get("smtp", "security", os.getenv("MAILSENDER_SECURITY")),
        "username": get("smtp", "username", os.getenv("MAILSENDER_USERNAME")),
        "password": get("smtp", "password", os.getenv("MAILSENDER_PASSWORD")),
        "timeout": get_float("smtp", "timeout", os.getenv("MAILSENDER_TIMEOUT"), default=60.0),
        "sender": get("message", "from", os.getenv("MAILSENDER_FROM")),
        "sender_name": get("message", "from_name", os.getenv("MAILSENDER_FROM_NAME")),
        "priority": get("message", "priority", os.getenv("MAILSENDER_PRIORITY")),
        "max_attachment_bytes": int(max_mb * MEGABYTE) if max_mb is not None else DEFAULT_MAX_ATTACHMENT_BYTES,
        "locked_extensions": get("attachments", "locked_extensions", os.getenv("MAILSENDER_LOCKED_EXTENSIONS")),
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            settings[key] = value

    # Unset values fall back to the model defaults
    return SenderSettings(**{key: value for key, value in settings.items() if value is not None})
