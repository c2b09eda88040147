# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP transport built on aiosmtplib.

This module provides the SmtpTransport class, a thin wrapper over a single
aiosmtplib session: connect, optionally authenticate, send one message and
disconnect. Every failure is re-raised as a
:class:`mail_sender.errors.TransportError` carrying the server, port,
security mode or username involved. Nothing is retried.

Security mode mapping (aiosmtplib flags):
- NONE: use_tls=False, start_tls=False
- AUTO: implicit TLS on port 465, otherwise STARTTLS when offered
- SSL_ON_CONNECT: use_tls=True
- START_TLS: start_tls=True (fails if the server does not offer it)
- START_TLS_WHEN_AVAILABLE: start_tls=None

Example:
    Sending an assembled message::

        transport = SmtpTransport(timeout=30)
        await transport.deliver(message, "smtp.example.com", 587, SecurityMode.START_TLS, credential)
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import aiosmtplib

from .assembler import OutgoingMessage
from .credentials import Credential
from .errors import ErrorKind, TransportError
from .logger import get_logger
from .models import SecurityMode

logger = get_logger("Transport")

T = TypeVar("T")

IMPLICIT_TLS_PORT = 465


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def tls_flags(security_mode: SecurityMode, port: int) -> tuple[bool, bool | None]:
    """Return the ``(use_tls, start_tls)`` pair for aiosmtplib."""
    if security_mode == SecurityMode.NONE:
        return False, False
    if security_mode == SecurityMode.SSL_ON_CONNECT:
        return True, False
    if security_mode == SecurityMode.START_TLS:
        return False, True
    if security_mode == SecurityMode.START_TLS_WHEN_AVAILABLE:
        return False, None
    # AUTO
    if port == IMPLICIT_TLS_PORT:
        return True, False
    return False, None


class SmtpTransport:
    """One-shot SMTP session.

    Attributes:
        timeout: aiosmtplib timeout in seconds for every SMTP command.
        smtp: The active aiosmtplib client, ``None`` when disconnected.
    """

    def __init__(self, timeout: float | None = 60.0):
        self.timeout = timeout
        self.smtp: aiosmtplib.SMTP | None = None
        self._server: str | None = None
        self._port: int | None = None
        self._security_mode: SecurityMode | None = None
        self._username: str | None = None

    def _error(self, message: str, kind: ErrorKind) -> TransportError:
        return TransportError(
            message,
            kind,
            server=self._server,
            port=self._port,
            security_mode=self._security_mode.value if self._security_mode else None,
            username=self._username,
        )

    async def connect(self, server: str, port: int, security_mode: SecurityMode) -> None:
        """Open the connection, negotiating TLS according to ``security_mode``.

        Raises:
            TransportError: With kind CONNECT if the server cannot be reached
                or the TLS negotiation fails.
        """
        self._server, self._port, self._security_mode = server, port, security_mode
        use_tls, start_tls = tls_flags(security_mode, port)
        smtp = aiosmtplib.SMTP(
            hostname=server,
            port=port,
            use_tls=use_tls,
            start_tls=start_tls,
            timeout=self.timeout,
        )
        logger.debug("Connecting to %s:%s (security=%s)", server, port, security_mode.value)
        try:
            await smtp.connect()
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise self._error(
                f"Could not connect to {server}:{port} using {security_mode.value}: {exc}",
                ErrorKind.CONNECT,
            ) from exc
        self.smtp = smtp

    async def authenticate(self, username: str, password: str) -> None:
        """Log in with the given credentials.

        Raises:
            TransportError: With kind AUTHENTICATE if the login is refused.
        """
        self._username = username
        smtp = self._require_connection(ErrorKind.AUTHENTICATE)
        try:
            await smtp.login(username, password)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise self._error(f"Authentication failed for {username}: {exc}", ErrorKind.AUTHENTICATE) from exc
        logger.debug("Authenticated as %s", username)

    async def send(self, message: OutgoingMessage) -> None:
        """Send ``message`` to its To and Bcc recipients.

        Raises:
            TransportError: With kind SEND if the server rejects the message.
        """
        smtp = self._require_connection(ErrorKind.SEND)
        try:
            await smtp.send_message(
                message.mime,
                sender=message.sender,
                recipients=message.envelope_recipients,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise self._error(f"Sending failed: {exc}", ErrorKind.SEND) from exc

    async def disconnect(self, graceful: bool = True) -> None:
        """Close the session; ``graceful`` sends QUIT first.

        Raises:
            TransportError: With kind DISCONNECT if QUIT fails.
        """
        smtp, self.smtp = self.smtp, None
        if smtp is None:
            return
        if not graceful:
            smtp.close()
            return
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            smtp.close()
            raise self._error(f"Disconnect failed: {exc}", ErrorKind.DISCONNECT) from exc

    def _require_connection(self, kind: ErrorKind) -> aiosmtplib.SMTP:
        if self.smtp is None:
            raise self._error("Not connected", kind)
        return self.smtp

    async def deliver(
        self,
        message: OutgoingMessage,
        server: str,
        port: int,
        security_mode: SecurityMode,
        credential: Credential | None = None,
    ) -> None:
        """Connect, authenticate when a credential is given, send and disconnect.

        The connection is closed without QUIT when any step fails. A failing
        QUIT after a successful send is logged, not raised, since the server
        has already accepted the message.
        """
        await self.connect(server, port, security_mode)
        try:
            if credential is not None:
                await self.authenticate(credential.username, credential.password.get_secret_value())
            await self.send(message)
        except TransportError:
            await self.disconnect(graceful=False)
            raise
        try:
            await self.disconnect(graceful=True)
        except TransportError as exc:
            logger.warning("%s", exc)
