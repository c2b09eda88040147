# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the mail sender.

This module defines the settings and request payloads used by the CLI and by
:class:`mail_sender.sender.MailSender` for validation and type safety.

Models:
    - Priority: Message priority (low, normal, high)
    - SecurityMode: SMTP connection security
    - SenderSettings: SMTP account and sender identity
    - MessageRequest: Per-call message payload
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

MEGABYTE = 1024 * 1024
DEFAULT_MAX_ATTACHMENT_BYTES = 20 * MEGABYTE
DEFAULT_LOCKED_EXTENSIONS = (".xls", ".xlsx", ".xlsm", ".xlsb")


def _normalise_name(value: str) -> str:
    """Turn ``StartTlsWhenAvailable``, ``start-tls`` or ``START_TLS`` into snake case."""
    value = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", value.strip())
    return value.replace("-", "_").lower()


class Priority(str, Enum):
    """Message priority as requested by the caller."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class SecurityMode(str, Enum):
    """Connection security for the SMTP session.

    Attributes:
        NONE: Plain SMTP, never upgrade.
        AUTO: Implicit TLS on port 465, STARTTLS when offered otherwise.
        SSL_ON_CONNECT: Implicit TLS from the first byte.
        START_TLS: Require a STARTTLS upgrade.
        START_TLS_WHEN_AVAILABLE: Upgrade only if the server offers STARTTLS.
    """

    NONE = "none"
    AUTO = "auto"
    SSL_ON_CONNECT = "ssl_on_connect"
    START_TLS = "start_tls"
    START_TLS_WHEN_AVAILABLE = "start_tls_when_available"


class SenderSettings(BaseModel):
    """SMTP account, sender identity and attachment policy.

    Attributes:
        server: SMTP server hostname.
        port: SMTP server port.
        security_mode: Connection security mode.
        sender: Envelope and From address.
        sender_name: Optional display name for the From header.
        username: SMTP username (no authentication when empty).
        password: SMTP password.
        priority: Default priority for messages.
        max_attachment_bytes: Cumulative attachment size budget.
        locked_extensions: Extensions copied to a temporary directory before reading.
        timeout: SMTP timeout in seconds.
    """

    model_config = ConfigDict(extra="forbid")

    server: Annotated[str, Field(min_length=1, description="SMTP server hostname")]
    port: Annotated[int, Field(default=25, ge=1, le=65535, description="SMTP port")]
    security_mode: Annotated[
        SecurityMode,
        Field(default=SecurityMode.AUTO, description="Connection security mode"),
    ]
    sender: Annotated[str, Field(min_length=1, description="Sender email address")]
    sender_name: Annotated[
        str | None,
        Field(default=None, description="Sender display name"),
    ]
    username: Annotated[
        str | None,
        Field(default=None, description="SMTP username"),
    ]
    password: Annotated[
        SecretStr | None,
        Field(default=None, description="SMTP password"),
    ]
    priority: Annotated[
        Priority,
        Field(default=Priority.NORMAL, description="Default message priority"),
    ]
    max_attachment_bytes: Annotated[
        int,
        Field(default=DEFAULT_MAX_ATTACHMENT_BYTES, gt=0, description="Attachment size budget in bytes"),
    ]
    locked_extensions: Annotated[
        tuple[str, ...],
        Field(default=DEFAULT_LOCKED_EXTENSIONS, description="Extensions read from a temporary copy"),
    ]
    timeout: Annotated[
        float | None,
        Field(default=60.0, gt=0, description="SMTP timeout in seconds"),
    ]

    @field_validator("security_mode", "priority", mode="before")
    @classmethod
    def normalise_enum_names(cls, v):
        """Accept ``StartTls``-style spellings from config files and the CLI."""
        if isinstance(v, str):
            return _normalise_name(v)
        return v

    @field_validator("locked_extensions", mode="before")
    @classmethod
    def normalise_extensions(cls, v):
        """Accept a comma separated string and lower-case every extension with a leading dot."""
        if isinstance(v, str):
            v = [part for part in v.split(",")]
        items = []
        for ext in v:
            ext = str(ext).strip().lower()
            if not ext:
                continue
            items.append(ext if ext.startswith(".") else f".{ext}")
        return tuple(items)


class MessageRequest(BaseModel):
    """A single message to compose and deliver.

    Address syntax is checked by the assembler, not here, so that a malformed
    address always surfaces as :class:`mail_sender.errors.ValidationError`.
    """

    model_config = ConfigDict(extra="forbid")

    to: Annotated[list[str], Field(default_factory=list, description="Recipients")]
    bcc: Annotated[list[str], Field(default_factory=list, description="Blind-copy recipients")]
    subject: Annotated[str, Field(default="", description="Subject line")]
    body_html: Annotated[str, Field(default="", description="HTML body")]
    priority: Annotated[
        Priority | None,
        Field(default=None, description="Priority (defaults to the settings value)"),
    ]
    attachments: Annotated[
        list[str],
        Field(default_factory=list, description="Attachment file paths"),
    ]

    @field_validator("priority", mode="before")
    @classmethod
    def normalise_priority(cls, v):
        if isinstance(v, str):
            return _normalise_name(v)
        return v
