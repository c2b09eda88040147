# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Local filesystem access for attachment intake.

The resolver never touches ``os`` or ``shutil`` directly; it goes through a
:class:`LocalFileSystem` instance so tests and embedders can substitute the
file operations.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import BinaryIO


class LocalFileSystem:
    """File operations needed to turn paths into attachable content."""

    def exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def is_dir(self, path: str | Path) -> bool:
        return Path(path).is_dir()

    def size(self, path: str | Path) -> int:
        return Path(path).stat().st_size

    def extension(self, path: str | Path) -> str:
        """Lower-cased suffix including the dot, empty when there is none."""
        return Path(path).suffix.lower()

    def open_read(self, path: str | Path) -> BinaryIO:
        return open(path, "rb")

    def copy_to_dir(self, path: str | Path, directory: str | Path) -> Path:
        """Copy ``path`` into ``directory`` and return the copy's path.

        Files with the same name already present in ``directory`` are never
        overwritten; the copy goes into a numbered subdirectory instead so the
        original file name is kept.

        Raises:
            OSError: If the source cannot be read or the copy cannot be written.
        """
        source = Path(path)
        target_dir = Path(directory)
        target = target_dir / source.name
        counter = 1
        while target.exists():
            target_dir = Path(directory) / str(counter)
            target = target_dir / source.name
            counter += 1
        target_dir.mkdir(parents=True, exist_ok=True)
        return Path(shutil.copy2(source, target))
