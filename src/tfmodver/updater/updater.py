"""Rewrite module versions in Terraform files, one atomic write per file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, Optional, TextIO

from tfmodver.common.io_safe import atomic_write, read_text
from tfmodver.common.logging_utils import extra_context
from tfmodver.constants import Constants
from tfmodver.errors import UpdateReadError, WriteFailureError
from tfmodver.updater.diff import DiffRenderer, format_unified_diff
from tfmodver.updater.replacer import count_occurrences, replace_version

logger = logging.getLogger(__name__)


@dataclass
class DirectoryResult:
    """Per-file outcome of a directory walk.

    ``counts`` only lists files with at least one match; ``errors`` holds
    files that could not be processed.
    """
    counts: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


class FileUpdater:
    """Counts and replaces ``version`` values of module blocks using a given source."""

    def __init__(self, extensions: Iterable[str] = Constants.TERRAFORM_EXTENSIONS, diff_tool: Optional[str] = None):
        self.extensions = tuple(extensions)
        self.renderer = DiffRenderer(diff_tool)

    def _read(self, path: str) -> str:
        try:
            return read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise UpdateReadError(f"failed to read file {path}: {exc}") from exc

    def count(self, path: str, source: str, old_version: str) -> int:
        """Number of blocks in ``path`` using ``source`` at ``old_version``; never writes."""
        return count_occurrences(self._read(path), source, old_version)

    def update(self, path: str, source: str, old_version: str, new_version: str) -> int:
        """Replace ``old_version`` with ``new_version`` for ``source`` in ``path``.

        Returns:
            Number of replaced values; 0 means the file was not touched.

        Raises:
            UpdateReadError: ``path`` could not be read.
            WriteFailureError: the new content could not be written; the
                original file is unchanged.
        """
        content = self._read(path)
        matches = count_occurrences(content, source, old_version)
        if matches == 0:
            return 0

        updated = replace_version(content, source, old_version, new_version)
        if updated == content:
            return 0

        try:
            atomic_write(path, updated, prefix=Constants.TEMP_FILE_PREFIX)
        except OSError as exc:
            raise WriteFailureError(path, exc) from exc

        logger.debug(
            "Updated %s: %s %s -> %s (%d)",
            path,
            source,
            old_version,
            new_version,
            matches,
            extra=extra_context(event="file_update", component="updater", outcome="written", target=path),
        )
        return matches

    def iter_files(self, root: str) -> Iterator[str]:
        """Yield files under ``root`` with a recognized extension, in sorted order."""
        if os.path.isfile(root):
            if root.endswith(self.extensions):
                yield root
            return
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                if name.endswith(self.extensions):
                    yield os.path.join(dirpath, name)

    def _walk(self, root: str, action: str, handler: Callable[[str], int]) -> DirectoryResult:
        result = DirectoryResult()
        for path in self.iter_files(root):
            try:
                n = handler(path)
            except (UpdateReadError, WriteFailureError) as exc:
                logger.warning(
                    "Error %s %s: %s",
                    action,
                    path,
                    exc,
                    extra=extra_context(event="file_update", component="updater", outcome="error", target=path),
                )
                result.errors[path] = exc
                continue
            if n > 0:
                result.counts[path] = n
        return result

    def count_directory(self, root: str, source: str, old_version: str) -> DirectoryResult:
        return self._walk(root, "scanning", lambda p: self.count(p, source, old_version))

    def update_directory(self, root: str, source: str, old_version: str, new_version: str) -> DirectoryResult:
        """Update every recognized file under ``root``; failures are collected, not raised."""
        return self._walk(root, "updating", lambda p: self.update(p, source, old_version, new_version))

    def write_diff(
        self, stream: TextIO, root: str, source: str, old_version: str, new_version: str
    ) -> DirectoryResult:
        """Write the diff the update would produce to ``stream`` without touching files.

        Raises:
            DiffToolError: the configured diff tool failed.
        """

        def _diff(path: str) -> int:
            content = self._read(path)
            matches = count_occurrences(content, source, old_version)
            if matches == 0:
                return 0
            updated = replace_version(content, source, old_version, new_version)
            text = format_unified_diff(path, content, updated)
            if text:
                stream.write(self.renderer.render(text))
            return matches

        return self._walk(root, "diffing", _diff)
