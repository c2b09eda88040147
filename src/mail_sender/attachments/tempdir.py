# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Temporary directory providers for locked-file copies.

The resolver asks its provider for a directory at most once per ``resolve``
call, and only when a locked file actually needs copying.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from ..logger import get_logger

logger = get_logger("TempDir")


class TempDirProvider(Protocol):
    """Source of per-invocation temporary directories."""

    def create(self) -> Path:
        """Return a new directory, unique to this call."""
        ...


class MkdtempProvider:
    """Create directories with :func:`tempfile.mkdtemp` and remember them.

    Attributes:
        created: Directories created so far and not yet removed.
    """

    def __init__(self, prefix: str = "mail-sender-", base_dir: str | Path | None = None):
        self.prefix = prefix
        self.base_dir = str(base_dir) if base_dir is not None else None
        self.created: list[Path] = []

    def create(self) -> Path:
        path = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.base_dir))
        self.created.append(path)
        logger.debug("Created temporary directory %s", path)
        return path

    def cleanup(self) -> None:
        """Remove every directory this provider created.

        Removal errors are logged and do not raise: by the time this runs the
        message has already been handed to the transport.
        """
        while self.created:
            path = self.created.pop()
            try:
                shutil.rmtree(path)
            except OSError as exc:
                logger.warning("Could not remove temporary directory %s: %s", path, exc)
