"""Tests for message assembly, address validation and priority mapping."""

import base64
import io

import pytest

from mail_sender.assembler import (
    PRIORITY_HEADER,
    MessageAssembler,
    is_valid_address,
    priority_header,
)
from mail_sender.attachments import AttachmentBatchResult, ResolvedAttachment
from mail_sender.builder import MimeMessageBuilder
from mail_sender.errors import ErrorKind, UnsupportedPriorityError, ValidationError
from mail_sender.models import Priority


def _assemble(assembler=None, **overrides):
    kwargs = dict(
        sender="noreply@example.com",
        sender_name=None,
        to=["ops@example.com"],
        bcc=[],
        subject="Subject",
        body_html="<p>Body</p>",
        priority=Priority.NORMAL,
        batch=AttachmentBatchResult(),
    )
    kwargs.update(overrides)
    return (assembler or MessageAssembler()).assemble(**kwargs)


def _attachment(name: str, data: bytes, content_type: str = "text/plain") -> ResolvedAttachment:
    return ResolvedAttachment(
        source_path=f"/tmp/{name}",
        display_name=name,
        size_bytes=len(data),
        content=io.BytesIO(data),
        content_type=content_type,
    )


class RecordingBuilder:
    def __init__(self):
        self.calls = []

    def set_sender(self, address, display_name=None):
        self.calls.append(("set_sender", address, display_name))

    def add_recipient(self, address):
        self.calls.append(("add_recipient", address))

    def add_blind_copy(self, address):
        self.calls.append(("add_blind_copy", address))

    def set_subject(self, subject):
        self.calls.append(("set_subject", subject))

    def set_header(self, name, value):
        self.calls.append(("set_header", name, value))

    def set_body(self, html):
        self.calls.append(("set_body", html))

    def add_attachment_part(self, attachment):
        self.calls.append(("add_attachment_part", attachment.display_name))

    def build(self):
        return "built"


class TestValidation:
    def test_no_recipients_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _assemble(to=[], bcc=[])
        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_bcc_only_is_enough(self):
        message = _assemble(to=[], bcc=["ops@example.com"], subject="X", body_html="<p>y</p>")

        assert message.to == ()
        assert message.bcc == ("ops@example.com",)
        assert message.envelope_recipients == ["ops@example.com"]
        assert "To" not in message.mime
        assert "Bcc" not in message.mime

    def test_invalid_recipient_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _assemble(to=["not-an-email"])
        assert exc_info.value.address == "not-an-email"
        assert exc_info.value.field == "to"

    def test_invalid_bcc_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _assemble(bcc=["ops@localhost"])
        assert exc_info.value.field == "bcc"

    def test_invalid_sender_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _assemble(sender="nobody")
        assert exc_info.value.field == "from"

    @pytest.mark.parametrize(
        "address",
        ["a@example.com", "first.last+tag@mail.example.co.uk", "o'brien@example.org", "x_y@sub-domain.io"],
    )
    def test_valid_addresses(self, address):
        assert is_valid_address(address)

    @pytest.mark.parametrize(
        "address",
        ["", "plain", "a@b", "a@example.c", "a@@example.com", "a b@example.com", "a@-example.com", "a@example.123"],
    )
    def test_invalid_addresses(self, address):
        assert not is_valid_address(address)


class TestPriority:
    def test_mapping_table(self):
        assert priority_header(Priority.LOW) == "5 (Lowest)"
        assert priority_header(Priority.NORMAL) == "3 (Normal)"
        assert priority_header(Priority.HIGH) == "1 (Highest)"

    def test_string_values_accepted(self):
        assert priority_header("high") == "1 (Highest)"

    @pytest.mark.parametrize("value", ["urgent", 7, None])
    def test_unsupported_priority(self, value):
        with pytest.raises(UnsupportedPriorityError) as exc_info:
            priority_header(value)
        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PRIORITY
        assert exc_info.value.value == value

    def test_header_set_on_message(self):
        message = _assemble(priority=Priority.HIGH)

        assert message.priority_header == "1 (Highest)"
        assert message.mime[PRIORITY_HEADER] == "1 (Highest)"

    def test_unsupported_priority_fails_assembly(self):
        with pytest.raises(UnsupportedPriorityError):
            _assemble(priority="urgent")


class TestAssembly:
    def test_builder_capability_calls(self):
        builder = RecordingBuilder()
        assembler = MessageAssembler(builder_factory=lambda: builder)
        batch = AttachmentBatchResult(attachments=[_attachment("a.txt", b"a")])

        message = _assemble(
            assembler,
            sender_name="Reports",
            to=["b@example.com", "a@example.com"],
            bcc=["c@example.com"],
            priority=Priority.LOW,
            batch=batch,
        )

        assert builder.calls == [
            ("set_sender", "noreply@example.com", "Reports"),
            ("add_recipient", "b@example.com"),
            ("add_recipient", "a@example.com"),
            ("add_blind_copy", "c@example.com"),
            ("set_subject", "Subject"),
            ("set_header", "X-Priority", "5 (Lowest)"),
            ("set_body", "<p>Body</p>"),
            ("add_attachment_part", "a.txt"),
        ]
        assert message.mime == "built"

    def test_recipient_order_preserved_and_deduplicated(self):
        message = _assemble(to=["z@example.com", "a@example.com", "z@example.com"])

        assert message.to == ("z@example.com", "a@example.com")
        assert message.mime["To"] == "z@example.com, a@example.com"

    def test_sender_display_name(self):
        message = _assemble(sender_name="Nightly Reports")

        assert message.mime["From"] == "Nightly Reports <noreply@example.com>"

    def test_subject_verbatim(self):
        message = _assemble(subject="  Spaces & symbols: 100%  ")

        assert message.subject == "  Spaces & symbols: 100%  "

    def test_overflow_notice_appended_in_italics(self):
        batch = AttachmentBatchResult(overflow_message="Limit of 20 MB reached (22.00 MB) <sic>")

        message = _assemble(batch=batch)

        assert message.body_html == "<p>Body</p><p><i>Limit of 20 MB reached (22.00 MB) &lt;sic&gt;</i></p>"

    def test_no_overflow_body_untouched(self):
        assert _assemble().body_html == "<p>Body</p>"

    def test_multipart_structure(self):
        batch = AttachmentBatchResult(
            attachments=[
                _attachment("notes.txt", b"hello"),
                _attachment("data.bin", bytes(range(10)), "application/octet-stream"),
            ]
        )

        message = _assemble(batch=batch)
        parts = message.mime.get_payload()

        assert message.mime.get_content_type() == "multipart/mixed"
        assert len(parts) == 3
        assert parts[0].get_content_type() == "text/html"
        assert parts[0].get_content().strip() == "<p>Body</p>"
        assert parts[1].get_filename() == "notes.txt"
        assert parts[1]["Content-Transfer-Encoding"] == "base64"
        assert base64.b64decode(parts[1].get_payload()) == b"hello"
        assert parts[2].get_content_type() == "application/octet-stream"
        assert parts[2].get_payload(decode=True) == bytes(range(10))
        assert message.attachments == tuple(batch.attachments)

    def test_message_is_immutable(self):
        message = _assemble()

        with pytest.raises(AttributeError):
            message.subject = "changed"


def test_builder_rejects_unopened_attachment():
    builder = MimeMessageBuilder()
    att = ResolvedAttachment(source_path="/tmp/a", display_name="a", size_bytes=1)

    with pytest.raises(ValueError, match="no open content"):
        builder.add_attachment_part(att)


def test_message_without_attachments_is_still_mixed():
    message = _assemble()
    (body,) = message.mime.get_payload()

    assert message.mime.get_content_type() == "multipart/mixed"
    assert body.get_content_type() == "text/html"
    assert body.get_content_charset() == "utf-8"


def test_builder_keeps_blind_copies_out_of_headers():
    builder = MimeMessageBuilder()
    builder.set_sender("noreply@example.com")
    builder.add_recipient("ops@example.com")
    builder.add_blind_copy("audit@example.com")
    builder.set_body("<p>Body</p>")

    msg = builder.build()

    assert "Bcc" not in msg
    assert "audit@example.com" not in msg.as_string()
