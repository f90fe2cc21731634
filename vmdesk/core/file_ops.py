# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/core/file_ops.py
"""
File operation helpers.

Atomic writes with temporary files, VM file moves and the
``{dir}/{name}.{ext}`` path builder used for vmx/vmdk siblings.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Union

from .exceptions import FileAccessError, NotFound

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@contextmanager
def atomic_write(
    target_path: Path,
    *,
    suffix: str = ".part",
    dir: Optional[Path] = None,
    delete_on_error: bool = True,
) -> Generator[Path, None, None]:
    """
    Context manager for atomic file writes using temporary file + rename.

    Creates a temporary file, yields its path for writing, then atomically
    renames it to the target path on success. Cleans up temp file on failure.

    Example:
        with atomic_write(Path("/vms/win10/win10.vmx")) as temp_path:
            temp_path.write_bytes(data)
    """
    target_path = Path(target_path)
    temp_dir = Path(dir) if dir else target_path.parent
    temp_dir.mkdir(parents=True, exist_ok=True)

    # Temp file lives next to the target so the rename stays on one filesystem.
    fd, temp_name = tempfile.mkstemp(
        suffix=suffix,
        prefix=f".{target_path.name}.",
        dir=str(temp_dir),
    )
    temp_path = Path(temp_name)

    try:
        os.close(fd)
        yield temp_path
        os.replace(temp_path, target_path)
    except Exception:
        if delete_on_error:
            temp_path.unlink(missing_ok=True)
        raise


def move_file(src: PathLike, dst: PathLike) -> None:
    """
    Move a file from src to dst.

    Moving a file onto itself is a no-op and never touches the filesystem.
    Raises NotFound if src does not exist and FileAccessError if the move
    itself fails.
    """
    src_s, dst_s = os.fspath(src), os.fspath(dst)
    if src_s == dst_s:
        return

    if not os.path.exists(src_s):
        raise NotFound(msg=f"file {src_s} does not exist")

    logger.debug("Moving %s -> %s", src_s, dst_s)
    try:
        shutil.move(src_s, dst_s)
    except OSError as e:
        raise FileAccessError(msg=f"failed to move file to {dst_s}", cause=e).with_context(src=src_s) from e


def make_path(directory: PathLike, name: str, ext: str) -> str:
    """Return ``{directory}/{name}.{ext}``."""
    return f"{os.fspath(directory)}/{name}.{ext}"
