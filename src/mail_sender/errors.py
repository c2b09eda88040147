# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for the mail sender.

Every error raised by this package derives from :class:`MailSenderError` and
carries a :class:`ErrorKind` plus structured context attributes, so callers
can branch on ``exc.kind`` instead of parsing messages.

Per-file attachment problems are not exceptions: they are recorded as
:class:`AttachmentWarning` values on the resolved batch and the send goes on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Kinds of failures a send can surface."""

    VALIDATION = "validation"
    UNSUPPORTED_PRIORITY = "unsupported_priority"
    CONNECT = "connect"
    AUTHENTICATE = "authenticate"
    SEND = "send"
    DISCONNECT = "disconnect"


class WarningKind(str, Enum):
    """Kinds of non-fatal, per-file attachment problems."""

    MISSING = "missing"
    DIRECTORY = "directory"
    STAT_FAILED = "stat_failed"
    COPY_FAILED = "copy_failed"
    OPEN_FAILED = "open_failed"


@dataclass(frozen=True)
class AttachmentWarning:
    """A file excluded from the attachment batch and the reason why."""

    kind: WarningKind
    path: str
    detail: str = ""

    def __str__(self) -> str:
        text = {
            WarningKind.MISSING: "Attachment not found",
            WarningKind.DIRECTORY: "Attachment is a directory",
            WarningKind.STAT_FAILED: "Could not read attachment",
            WarningKind.COPY_FAILED: "Could not copy locked attachment",
            WarningKind.OPEN_FAILED: "Could not open attachment",
        }[self.kind]
        if self.detail:
            return f"{text}: {self.path} ({self.detail})"
        return f"{text}: {self.path}"


class MailSenderError(Exception):
    """Base class for all mail sender errors."""

    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind):
        super().__init__(message)
        self.kind = kind

    @property
    def context(self) -> dict[str, Any]:
        """Structured context fields, without the message."""
        return {}


class ValidationError(MailSenderError):
    """Raised when the sender or a recipient is malformed, or no recipient is given."""

    def __init__(self, message: str, field: str | None = None, address: str | None = None):
        super().__init__(message, ErrorKind.VALIDATION)
        self.field = field
        self.address = address

    @property
    def context(self) -> dict[str, Any]:
        return {"field": self.field, "address": self.address}


class UnsupportedPriorityError(MailSenderError):
    """Raised for a priority outside the Low/Normal/High table."""

    def __init__(self, value: Any):
        super().__init__(f"Unsupported priority: {value!r}", ErrorKind.UNSUPPORTED_PRIORITY)
        self.value = value

    @property
    def context(self) -> dict[str, Any]:
        return {"value": self.value}


class TransportError(MailSenderError):
    """Raised when the SMTP conversation fails.

    Attributes:
        server: SMTP host the transport was talking to.
        port: SMTP port.
        security_mode: Connection security mode name.
        username: Account used for authentication, if any.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        *,
        server: str | None = None,
        port: int | None = None,
        security_mode: str | None = None,
        username: str | None = None,
    ):
        super().__init__(message, kind)
        self.server = server
        self.port = port
        self.security_mode = security_mode
        self.username = username

    @property
    def context(self) -> dict[str, Any]:
        return {
            "server": self.server,
            "port": self.port,
            "security_mode": self.security_mode,
            "username": self.username,
        }


class SendError(MailSenderError):
    """Single error surfaced by a failed send, naming the recipients and the cause."""

    def __init__(self, to: list[str], bcc: list[str], cause: MailSenderError):
        recipients = ", ".join([*to, *bcc]) or "<none>"
        super().__init__(f"Failed to send email to {recipients}: {cause}", cause.kind)
        self.to = list(to)
        self.bcc = list(bcc)
        self.cause = cause

    @property
    def context(self) -> dict[str, Any]:
        return {"to": self.to, "bcc": self.bcc, **self.cause.context}
