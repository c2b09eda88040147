# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Attachment intake with a cumulative size budget.

This module provides the AttachmentResolver class, which turns the file paths
requested by the caller into a batch of open, attachable files.

Processing rules:
- Exact duplicate paths are collapsed, the rest is processed in sorted order
- Missing paths and directories are skipped with a warning
- Locked office formats (spreadsheets that may be open in another program)
  are copied to a per-call temporary directory and read from the copy
- Once the running total reaches the budget, processing stops: files already
  accepted are kept, the rest is dropped and an overflow message is returned

Example:
    Resolving attachments for a message::

        from mail_sender.attachments import AttachmentResolver

        resolver = AttachmentResolver()
        with resolver.resolve(["report.xlsx", "notes.txt"], 20 * 1024 * 1024) as batch:
            for att in batch.attachments:
                print(att.display_name, att.size_bytes)
            if batch.overflow_message:
                print(batch.overflow_message)
"""

from __future__ import annotations

import dataclasses
import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from ..errors import AttachmentWarning, WarningKind
from ..logger import get_logger
from ..models import DEFAULT_LOCKED_EXTENSIONS, MEGABYTE
from .filesystem import LocalFileSystem
from .tempdir import MkdtempProvider, TempDirProvider

logger = get_logger("Attachments")

OVERFLOW_TEMPLATE = (
    "Not all attachments could be included: the attachment size limit of "
    "{limit} MB was reached ({actual:.2f} MB)."
)


@dataclass(frozen=True)
class ResolvedAttachment:
    """A file accepted for attachment.

    Attributes:
        source_path: Path the content is read from (the temporary copy for
            locked formats).
        display_name: File name shown to the recipient, always the name of
            the file the caller asked for.
        size_bytes: Size of the file in bytes.
        content: Open binary handle, set by the second resolution pass.
        content_type: MIME type guessed from the display name.
        transfer_encoding: Content-Transfer-Encoding for the MIME part.
    """

    source_path: str
    display_name: str
    size_bytes: int
    content: BinaryIO | None = None
    content_type: str = "application/octet-stream"
    transfer_encoding: str = "base64"


@dataclass
class AttachmentBatchResult:
    """Outcome of a resolution call.

    The batch owns the open handles of its attachments; use it as a context
    manager or call :meth:`close` once the message has been sent.
    """

    attachments: list[ResolvedAttachment] = field(default_factory=list)
    overflow_message: str | None = None
    warnings: list[AttachmentWarning] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(att.size_bytes for att in self.attachments)

    def close(self) -> None:
        for att in self.attachments:
            if att.content is not None and not att.content.closed:
                att.content.close()

    def __enter__(self) -> AttachmentBatchResult:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def guess_content_type(filename: str) -> str:
    """Return the MIME type for ``filename``, application/octet-stream if unknown."""
    mt, _ = mimetypes.guess_type(filename)
    return mt or "application/octet-stream"


def format_overflow_message(max_total_bytes: int, total_bytes: int) -> str:
    """Build the notice appended to the body when the budget is exceeded.

    The limit is reported in whole megabytes (two decimals for budgets that
    are not a whole number of megabytes), the actual total with two decimals.
    """
    if max_total_bytes % MEGABYTE:
        limit = f"{max_total_bytes / MEGABYTE:.2f}"
    else:
        limit = str(max_total_bytes // MEGABYTE)
    return OVERFLOW_TEMPLATE.format(limit=limit, actual=total_bytes / MEGABYTE)


class AttachmentResolver:
    """Turn requested paths into a size-budgeted batch of open files.

    Attributes:
        filesystem: File operations backend.
        tempdirs: Provider of the per-call directory for locked-file copies.
        locked_extensions: Lower-cased extensions that are copied before reading.
    """

    def __init__(
        self,
        filesystem: LocalFileSystem | None = None,
        tempdirs: TempDirProvider | None = None,
        locked_extensions: Iterable[str] = DEFAULT_LOCKED_EXTENSIONS,
    ):
        self.filesystem = filesystem or LocalFileSystem()
        self.tempdirs = tempdirs if tempdirs is not None else MkdtempProvider()
        self.locked_extensions = frozenset(ext.lower() for ext in locked_extensions)

    def is_locked_format(self, path: str) -> bool:
        return self.filesystem.extension(path) in self.locked_extensions

    def resolve(self, paths: Iterable[str], max_total_bytes: int) -> AttachmentBatchResult:
        """Resolve ``paths`` into an attachment batch.

        Args:
            paths: Requested file paths. Only exact duplicates are folded.
            max_total_bytes: Cumulative size budget. Reaching it stops the
                whole loop; the file that reached it is not attached.

        Returns:
            AttachmentBatchResult with open attachments, the overflow message
            (if the budget was reached) and the per-file warnings.
        """
        batch = AttachmentBatchResult()
        accepted = self._discover(sorted(set(paths)), max_total_bytes, batch)
        batch.attachments = self._open_all(accepted, batch)
        logger.info(
            "Resolved %d attachment(s), %d skipped%s",
            len(batch.attachments),
            len(batch.warnings),
            ", size limit reached" if batch.overflow_message else "",
        )
        return batch

    def _warn(self, batch: AttachmentBatchResult, kind: WarningKind, path: str, detail: str = "") -> None:
        warning = AttachmentWarning(kind=kind, path=path, detail=detail)
        batch.warnings.append(warning)
        logger.warning("%s", warning)

    def _discover(
        self,
        paths: list[str],
        max_total_bytes: int,
        batch: AttachmentBatchResult,
    ) -> list[ResolvedAttachment]:
        """First pass: existence, type, budget and locked-file copies."""
        accepted: list[ResolvedAttachment] = []
        total = 0
        tempdir: Path | None = None

        for path in paths:
            try:
                if not self.filesystem.exists(path):
                    self._warn(batch, WarningKind.MISSING, path)
                    continue
                if self.filesystem.is_dir(path):
                    self._warn(batch, WarningKind.DIRECTORY, path)
                    continue
                size = self.filesystem.size(path)
            except OSError as exc:
                self._warn(batch, WarningKind.STAT_FAILED, path, str(exc))
                continue
            total += size

            display_name = Path(path).name
            source = path
            if self.is_locked_format(path):
                try:
                    if tempdir is None:
                        tempdir = self.tempdirs.create()
                    copy = self.filesystem.copy_to_dir(path, tempdir)
                    size = self.filesystem.size(copy)
                    source = str(copy)
                    logger.debug("Copied locked file %s to %s", path, copy)
                except OSError as exc:
                    # The size stays in the running total
                    self._warn(batch, WarningKind.COPY_FAILED, path, str(exc))
                    continue

            if total >= max_total_bytes:
                batch.overflow_message = format_overflow_message(max_total_bytes, total)
                logger.warning(
                    "Attachment size limit reached at %s (%d of %d bytes), remaining files dropped",
                    path,
                    total,
                    max_total_bytes,
                )
                break

            accepted.append(
                ResolvedAttachment(
                    source_path=source,
                    display_name=display_name,
                    size_bytes=size,
                    content_type=guess_content_type(display_name),
                )
            )
        return accepted

    def _open_all(
        self,
        accepted: list[ResolvedAttachment],
        batch: AttachmentBatchResult,
    ) -> list[ResolvedAttachment]:
        """Second pass: open every accepted file for reading."""
        opened: list[ResolvedAttachment] = []
        for att in accepted:
            try:
                handle = self.filesystem.open_read(att.source_path)
            except OSError as exc:
                self._warn(batch, WarningKind.OPEN_FAILED, att.source_path, str(exc))
                continue
            opened.append(dataclasses.replace(att, content=handle))
        return opened


__all__ = [
    "AttachmentBatchResult",
    "AttachmentResolver",
    "LocalFileSystem",
    "MkdtempProvider",
    "ResolvedAttachment",
    "TempDirProvider",
    "format_overflow_message",
    "guess_content_type",
]
