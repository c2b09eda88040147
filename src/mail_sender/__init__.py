"""Single-message SMTP sender with budgeted attachments.

This package composes one HTML email and delivers it over SMTP:

- Attachment intake with duplicate folding, missing/directory skipping and a
  cumulative size budget that keeps partial progress
- Copy-before-read handling for office files that may be locked elsewhere
- Priority header, sender display name, To/Bcc recipients
- aiosmtplib transport with selectable connection security
- INI configuration with environment fallbacks and a click CLI

Example:
    Sending from Python::

        from mail_sender import MailSender, MessageRequest, load_settings

        sender = MailSender(load_settings("mail-sender.ini"))
        sender.send(MessageRequest(to=["ops@example.com"], subject="Hi", body_html="<p>Hi</p>"))
"""

from .assembler import MessageAssembler, OutgoingMessage
from .attachments import AttachmentBatchResult, AttachmentResolver, ResolvedAttachment
from .config_loader import load_settings
from .errors import (
    AttachmentWarning,
    ErrorKind,
    MailSenderError,
    SendError,
    TransportError,
    UnsupportedPriorityError,
    ValidationError,
    WarningKind,
)
from .models import MessageRequest, Priority, SecurityMode, SenderSettings
from .sender import MailSender, SendReport

__all__ = [
    "AttachmentBatchResult",
    "AttachmentResolver",
    "AttachmentWarning",
    "ErrorKind",
    "MailSender",
    "MailSenderError",
    "MessageAssembler",
    "MessageRequest",
    "OutgoingMessage",
    "Priority",
    "ResolvedAttachment",
    "SecurityMode",
    "SendError",
    "SendReport",
    "SenderSettings",
    "TransportError",
    "UnsupportedPriorityError",
    "ValidationError",
    "WarningKind",
    "load_settings",
]
