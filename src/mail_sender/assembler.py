# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Outgoing message assembly.

This module validates sender and recipients, maps the priority to its
``X-Priority`` header value and drives a :class:`MessageBuilder` to produce a
single immutable :class:`OutgoingMessage` ready for the transport.

Example:
    Assembling a message without attachments::

        assembler = MessageAssembler()
        message = assembler.assemble(
            sender="noreply@example.com",
            sender_name="Reports",
            to=["ops@example.com"],
            bcc=[],
            subject="Nightly run",
            body_html="<p>All good</p>",
            priority=Priority.NORMAL,
            batch=AttachmentBatchResult(),
        )
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .attachments import AttachmentBatchResult, ResolvedAttachment
from .builder import MessageBuilder, MimeMessageBuilder
from .errors import UnsupportedPriorityError, ValidationError
from .logger import get_logger
from .models import Priority

logger = get_logger("Assembler")

PRIORITY_HEADER = "X-Priority"
PRIORITY_VALUES = {
    Priority.LOW: "5 (Lowest)",
    Priority.NORMAL: "3 (Normal)",
    Priority.HIGH: "1 (Highest)",
}

# local-part@label.label...tld, top-level label alphabetic and at least 2 chars
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)+[A-Za-z]{2,}$"
)


@dataclass(frozen=True)
class OutgoingMessage:
    """A fully assembled message.

    Attributes:
        sender: Sender address.
        sender_name: Optional sender display name.
        to: Recipients, caller order, duplicates removed.
        bcc: Blind-copy recipients, caller order, duplicates removed.
        subject: Subject line as given.
        body_html: HTML body, including the overflow notice if any.
        attachments: Attachments folded into the message.
        priority_header: Value of the ``X-Priority`` header.
        mime: Library message produced by the builder.
    """

    sender: str
    sender_name: str | None
    to: tuple[str, ...]
    bcc: tuple[str, ...]
    subject: str
    body_html: str
    attachments: tuple[ResolvedAttachment, ...]
    priority_header: str
    mime: Any

    @property
    def envelope_recipients(self) -> list[str]:
        return [*self.to, *self.bcc]


def is_valid_address(address: str) -> bool:
    """Syntactic email address check."""
    return bool(EMAIL_PATTERN.match(address or ""))


def priority_header(priority: Priority | str) -> str:
    """Map a priority to its ``X-Priority`` header value.

    Raises:
        UnsupportedPriorityError: For anything outside the Low/Normal/High table.
    """
    try:
        return PRIORITY_VALUES[Priority(priority)]
    except ValueError as exc:
        raise UnsupportedPriorityError(priority) from exc


def overflow_markup(message: str) -> str:
    return f"<p><i>{html.escape(message)}</i></p>"


def _unique(addresses: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(addr.strip() for addr in addresses if addr and addr.strip()))


class MessageAssembler:
    """Build :class:`OutgoingMessage` instances through a :class:`MessageBuilder`.

    Attributes:
        builder_factory: Callable returning a fresh builder for every message.
    """

    def __init__(self, builder_factory: Callable[[], MessageBuilder] = MimeMessageBuilder):
        self.builder_factory = builder_factory

    def validate_addresses(
        self,
        sender: str,
        to: Iterable[str],
        bcc: Iterable[str],
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Check sender and recipients and return the cleaned recipient lists.

        Raises:
            ValidationError: If no recipient is given or an address is malformed.
        """
        to_list = _unique(to)
        bcc_list = _unique(bcc)
        if not to_list and not bcc_list:
            raise ValidationError("At least one recipient (to or bcc) is required", field="to")
        if not is_valid_address(sender):
            raise ValidationError(f"Invalid sender address: {sender!r}", field="from", address=sender)
        for field_name, addresses in (("to", to_list), ("bcc", bcc_list)):
            for address in addresses:
                if not is_valid_address(address):
                    raise ValidationError(
                        f"Invalid {field_name} address: {address!r}",
                        field=field_name,
                        address=address,
                    )
        return to_list, bcc_list

    def assemble(
        self,
        sender: str,
        sender_name: str | None,
        to: Iterable[str],
        bcc: Iterable[str],
        subject: str,
        body_html: str,
        priority: Priority | str,
        batch: AttachmentBatchResult,
    ) -> OutgoingMessage:
        """Assemble a message from validated inputs and a resolved attachment batch.

        Raises:
            ValidationError: If no recipient is given or an address is malformed.
            UnsupportedPriorityError: If ``priority`` is not Low/Normal/High.
        """
        to_list, bcc_list = self.validate_addresses(sender, to, bcc)
        header_value = priority_header(priority)

        body = body_html or ""
        if batch.overflow_message:
            body += overflow_markup(batch.overflow_message)

        builder = self.builder_factory()
        builder.set_sender(sender, sender_name or None)
        for address in to_list:
            builder.add_recipient(address)
        for address in bcc_list:
            builder.add_blind_copy(address)
        builder.set_subject(subject)
        builder.set_header(PRIORITY_HEADER, header_value)
        builder.set_body(body)
        for attachment in batch.attachments:
            builder.add_attachment_part(attachment)

        logger.debug(
            "Assembled message to=%d bcc=%d attachments=%d priority=%s",
            len(to_list),
            len(bcc_list),
            len(batch.attachments),
            header_value,
        )
        return OutgoingMessage(
            sender=sender,
            sender_name=sender_name or None,
            to=to_list,
            bcc=bcc_list,
            subject=subject,
            body_html=body,
            attachments=tuple(batch.attachments),
            priority_header=header_value,
            mime=builder.build(),
        )
