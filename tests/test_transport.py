"""Tests for the aiosmtplib transport."""

import aiosmtplib
import pytest
from pydantic import SecretStr

from mail_sender.assembler import MessageAssembler
from mail_sender.attachments import AttachmentBatchResult
from mail_sender.credentials import Credential
from mail_sender.errors import ErrorKind, TransportError
from mail_sender.models import Priority, SecurityMode
from mail_sender.transport import SmtpTransport, run_async, tls_flags


class DummySMTP:
    def __init__(self, hostname, port, start_tls=True, use_tls=False, timeout=None):
        self.hostname = hostname
        self.port = port
        self.start_tls = start_tls
        self.use_tls = use_tls
        self.timeout = timeout
        self.login_credentials = None
        self.sent = []
        self.quit_called = False
        self.closed = False
        self.fail_on = None

    async def connect(self):
        if self.fail_on == "connect":
            raise OSError("Connection refused")

    async def login(self, user, password):
        if self.fail_on == "login":
            raise aiosmtplib.SMTPAuthenticationError(535, "Authentication credentials invalid")
        self.login_credentials = (user, password)

    async def send_message(self, message, sender=None, recipients=None):
        if self.fail_on == "send":
            raise aiosmtplib.SMTPDataError(554, "Message rejected")
        self.sent.append((message, sender, recipients))
        return {}, "OK"

    async def quit(self):
        if self.fail_on == "quit":
            raise aiosmtplib.SMTPServerDisconnected("Server closed the connection")
        self.quit_called = True

    def close(self):
        self.closed = True


class _Created(list):
    pass


@pytest.fixture
def smtp_factory(monkeypatch):
    created = _Created()
    created.fail_on = None

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        smtp.fail_on = created.fail_on
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_sender.transport.aiosmtplib.SMTP", factory)
    return created


@pytest.fixture
def message():
    return MessageAssembler().assemble(
        sender="noreply@example.com",
        sender_name=None,
        to=["ops@example.com"],
        bcc=["audit@example.com"],
        subject="Hello",
        body_html="<p>Hi</p>",
        priority=Priority.NORMAL,
        batch=AttachmentBatchResult(),
    )


@pytest.mark.parametrize(
    "mode,port,expected",
    [
        (SecurityMode.NONE, 25, (False, False)),
        (SecurityMode.AUTO, 465, (True, False)),
        (SecurityMode.AUTO, 587, (False, None)),
        (SecurityMode.SSL_ON_CONNECT, 2465, (True, False)),
        (SecurityMode.START_TLS, 587, (False, True)),
        (SecurityMode.START_TLS_WHEN_AVAILABLE, 25, (False, None)),
    ],
)
def test_tls_flags(mode, port, expected):
    assert tls_flags(mode, port) == expected


@pytest.mark.asyncio
async def test_deliver_without_credential_skips_login(smtp_factory, message):
    transport = SmtpTransport(timeout=5)

    await transport.deliver(message, "smtp.local", 25, SecurityMode.NONE)

    (smtp,) = smtp_factory
    assert smtp.hostname == "smtp.local"
    assert smtp.timeout == 5
    assert smtp.login_credentials is None
    assert smtp.quit_called is True
    mime, sender, recipients = smtp.sent[0]
    assert mime is message.mime
    assert sender == "noreply@example.com"
    assert recipients == ["ops@example.com", "audit@example.com"]
    assert transport.smtp is None


@pytest.mark.asyncio
async def test_deliver_with_credential_logs_in(smtp_factory, message):
    credential = Credential(username="mailer", password=SecretStr("s3cret"))

    await SmtpTransport().deliver(message, "smtp.secure", 465, SecurityMode.AUTO, credential)

    (smtp,) = smtp_factory
    assert smtp.login_credentials == ("mailer", "s3cret")
    assert smtp.use_tls is True
    assert smtp.start_tls is False


@pytest.mark.asyncio
async def test_connect_failure_wrapped(smtp_factory, message):
    smtp_factory.fail_on = "connect"

    with pytest.raises(TransportError) as exc_info:
        await SmtpTransport().deliver(message, "smtp.down", 587, SecurityMode.START_TLS)

    error = exc_info.value
    assert error.kind == ErrorKind.CONNECT
    assert error.server == "smtp.down"
    assert error.port == 587
    assert error.security_mode == "start_tls"
    assert isinstance(error.__cause__, OSError)


@pytest.mark.asyncio
async def test_auth_failure_wrapped_and_connection_closed(smtp_factory, message):
    smtp_factory.fail_on = "login"
    credential = Credential(username="mailer", password=SecretStr("wrong"))

    with pytest.raises(TransportError) as exc_info:
        await SmtpTransport().deliver(message, "smtp.local", 587, SecurityMode.AUTO, credential)

    assert exc_info.value.kind == ErrorKind.AUTHENTICATE
    assert exc_info.value.username == "mailer"
    assert "wrong" not in str(exc_info.value)
    (smtp,) = smtp_factory
    assert smtp.closed is True
    assert smtp.quit_called is False
    assert smtp.sent == []


@pytest.mark.asyncio
async def test_send_failure_wrapped(smtp_factory, message):
    smtp_factory.fail_on = "send"

    with pytest.raises(TransportError) as exc_info:
        await SmtpTransport().deliver(message, "smtp.local", 25, SecurityMode.NONE)

    assert exc_info.value.kind == ErrorKind.SEND
    assert smtp_factory[0].closed is True


@pytest.mark.asyncio
async def test_quit_failure_after_send_is_not_raised(smtp_factory, message):
    smtp_factory.fail_on = "quit"

    await SmtpTransport().deliver(message, "smtp.local", 25, SecurityMode.NONE)

    (smtp,) = smtp_factory
    assert len(smtp.sent) == 1
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_disconnect_raises_on_quit_failure(smtp_factory):
    smtp_factory.fail_on = "quit"
    transport = SmtpTransport()
    await transport.connect("smtp.local", 25, SecurityMode.NONE)

    with pytest.raises(TransportError) as exc_info:
        await transport.disconnect(graceful=True)

    assert exc_info.value.kind == ErrorKind.DISCONNECT


@pytest.mark.asyncio
async def test_send_without_connection(message):
    with pytest.raises(TransportError) as exc_info:
        await SmtpTransport().send(message)

    assert exc_info.value.kind == ErrorKind.SEND


@pytest.mark.asyncio
async def test_disconnect_when_not_connected_is_noop():
    await SmtpTransport().disconnect()


def test_run_async():
    async def compute():
        return 42

    assert run_async(compute()) == 42
