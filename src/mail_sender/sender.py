# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Send orchestration.

This module provides the MailSender class, which runs one send end to end:

1. validate sender and recipients (no I/O before this succeeds)
2. resolve attachments against the size budget
3. assemble the outgoing message
4. deliver it through the SMTP transport
5. close attachment handles and remove temporary copies

Example:
    Sending a message with the settings loaded from config::

        settings = load_settings()
        sender = MailSender(settings)
        report = sender.send(MessageRequest(
            to=["ops@example.com"],
            subject="Nightly export",
            body_html="<p>See attached.</p>",
            attachments=["/data/export.xlsx"],
        ))
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .assembler import MessageAssembler
from .attachments import AttachmentResolver, MkdtempProvider
from .credentials import CredentialProvider, StaticCredentialProvider
from .errors import AttachmentWarning, SendError, TransportError
from .logger import get_logger
from .models import MessageRequest, SenderSettings
from .transport import SmtpTransport, run_async

logger = get_logger("Sender")


@dataclass
class SendReport:
    """Summary of a successful send."""

    to: list[str]
    bcc: list[str]
    attached: list[str] = field(default_factory=list)
    warnings: list[AttachmentWarning] = field(default_factory=list)
    overflow_message: str | None = None


class MailSender:
    """Compose and deliver single messages with one SMTP account.

    Attributes:
        settings: SMTP account, sender identity and attachment policy.
        credentials: Credential source; ``None`` credentials mean no login.
        assembler: Message assembler.
        transport_factory: Callable returning a fresh transport per send.
    """

    def __init__(
        self,
        settings: SenderSettings,
        credentials: CredentialProvider | None = None,
        assembler: MessageAssembler | None = None,
        resolver_factory: Callable[[], AttachmentResolver] | None = None,
        transport_factory: Callable[[], SmtpTransport] | None = None,
    ):
        self.settings = settings
        self.credentials = credentials or StaticCredentialProvider(settings.username, settings.password)
        self.assembler = assembler or MessageAssembler()
        self._resolver_factory = resolver_factory
        self.transport_factory = transport_factory or (lambda: SmtpTransport(timeout=settings.timeout))

    def send(self, request: MessageRequest) -> SendReport:
        """Send ``request`` and report what was attached.

        Raises:
            ValidationError: Before any I/O, for missing or malformed addresses.
            UnsupportedPriorityError: For a priority outside the table.
            SendError: Wrapping the TransportError of a failed delivery.
        """
        to, bcc = self.assembler.validate_addresses(self.settings.sender, request.to, request.bcc)
        priority = request.priority or self.settings.priority

        tempdirs = MkdtempProvider()
        if self._resolver_factory is not None:
            resolver = self._resolver_factory()
        else:
            resolver = AttachmentResolver(tempdirs=tempdirs, locked_extensions=self.settings.locked_extensions)

        try:
            with resolver.resolve(request.attachments, self.settings.max_attachment_bytes) as batch:
                message = self.assembler.assemble(
                    sender=self.settings.sender,
                    sender_name=self.settings.sender_name,
                    to=to,
                    bcc=bcc,
                    subject=request.subject,
                    body_html=request.body_html,
                    priority=priority,
                    batch=batch,
                )
                logger.info(
                    "Sending '%s' to %d recipient(s) via %s:%s",
                    message.subject,
                    len(message.envelope_recipients),
                    self.settings.server,
                    self.settings.port,
                )
                transport = self.transport_factory()
                try:
                    run_async(
                        transport.deliver(
                            message,
                            self.settings.server,
                            self.settings.port,
                            self.settings.security_mode,
                            self.credentials.get_credential(),
                        )
                    )
                except TransportError as exc:
                    logger.error("Failed to send email: %s", exc)
                    raise SendError(list(to), list(bcc), exc) from exc
        finally:
            tempdirs.cleanup()

        logger.info("Email sent to %s", ", ".join([*to, *bcc]))
        return SendReport(
            to=list(to),
            bcc=list(bcc),
            attached=[att.display_name for att in message.attachments],
            warnings=list(batch.warnings),
            overflow_message=batch.overflow_message,
        )
