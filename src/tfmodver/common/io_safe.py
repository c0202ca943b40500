"""Atomic file writes.

Content goes to a temporary sibling file, is flushed and fsynced, then
renamed over the target so readers only ever see the old or the new file.
"""

from __future__ import annotations

import os
import stat
import tempfile
from typing import Optional


def read_text(path: str) -> str:
    """Read UTF-8 text without translating line endings."""
    with open(path, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def atomic_write(path: str, text: str, *, prefix: Optional[str] = None, keep_mode: bool = True) -> None:
    """Atomically write UTF-8 ``text`` to ``path``.

    Line endings in ``text`` are written as given. When ``keep_mode`` is set
    and ``path`` exists, its permission bits are carried over to the new
    file. On failure the temporary file is removed, ``path`` is left as it
    was and the ``OSError`` propagates.
    """
    directory = os.path.dirname(os.path.abspath(path))
    mode = None
    if keep_mode:
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = None

    fd, tmppath = tempfile.mkstemp(
        prefix=prefix or (os.path.basename(path) + "."), suffix=".tmp", dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmppath, mode)
        os.replace(tmppath, path)
    except BaseException:
        try:
            os.remove(tmppath)
        except FileNotFoundError:
            pass
        raise
