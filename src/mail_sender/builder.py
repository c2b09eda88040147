# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Message builder capability and its standard-library MIME binding.

The assembler only talks to a :class:`MessageBuilder`; everything specific to
a mail library lives in the concrete builder. :class:`MimeMessageBuilder`
produces a ``multipart/mixed`` :class:`email.message.EmailMessage` with the
HTML body first and one base64 part per attachment.
"""

from __future__ import annotations

from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import Any, Protocol

from .attachments import ResolvedAttachment


class MessageBuilder(Protocol):
    """Operations the assembler needs from a mail library."""

    def set_sender(self, address: str, display_name: str | None = None) -> None: ...

    def add_recipient(self, address: str) -> None: ...

    def add_blind_copy(self, address: str) -> None: ...

    def set_subject(self, subject: str) -> None: ...

    def set_header(self, name: str, value: str) -> None: ...

    def set_body(self, html: str) -> None: ...

    def add_attachment_part(self, attachment: ResolvedAttachment) -> None: ...

    def build(self) -> Any: ...


class MimeMessageBuilder:
    """Build a MIME message with the ``email`` package.

    Blind-copy addresses are kept as envelope recipients only and never
    written to a header.
    """

    def __init__(self) -> None:
        self._sender: str | None = None
        self._to: list[str] = []
        self._bcc: list[str] = []
        self._subject = ""
        self._headers: dict[str, str] = {}
        self._body = ""
        self._parts: list[tuple[bytes, str, str, str]] = []

    def set_sender(self, address: str, display_name: str | None = None) -> None:
        self._sender = formataddr((display_name, address)) if display_name else address

    def add_recipient(self, address: str) -> None:
        self._to.append(address)

    def add_blind_copy(self, address: str) -> None:
        self._bcc.append(address)

    def set_subject(self, subject: str) -> None:
        self._subject = subject

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def set_body(self, html: str) -> None:
        self._body = html

    def add_attachment_part(self, attachment: ResolvedAttachment) -> None:
        if attachment.content is None:
            raise ValueError(f"Attachment {attachment.display_name} has no open content")
        maintype, _, subtype = attachment.content_type.partition("/")
        attachment.content.seek(0)
        self._parts.append(
            (
                attachment.content.read(),
                maintype or "application",
                subtype or "octet-stream",
                attachment.display_name,
            )
        )

    def build(self) -> EmailMessage:
        msg = EmailMessage()
        if self._sender:
            msg["From"] = self._sender
        if self._to:
            msg["To"] = ", ".join(self._to)
        msg["Subject"] = self._subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        for name, value in self._headers.items():
            if name in msg:
                msg.replace_header(name, value)
            else:
                msg[name] = value
        msg.set_content(self._body, subtype="html")
        # Always multipart/mixed, even without attachments
        msg.make_mixed()
        for content, maintype, subtype, filename in self._parts:
            msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)
        return msg
