"""Unified diff rendering, optionally piped through an external formatter."""

from __future__ import annotations

import difflib
import logging
import shlex
import subprocess
from typing import List, Optional

from tfmodver.constants import Constants
from tfmodver.errors import DiffToolError

logger = logging.getLogger(__name__)


def _lines(text: str) -> List[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith(("\n", "\r")):
        lines[-1] += "\n"
    return lines


def format_unified_diff(filename: str, before: str, after: str) -> str:
    """Return a unified diff of ``before`` and ``after``, or "" when equal."""
    if before == after:
        return ""
    return "".join(
        difflib.unified_diff(_lines(before), _lines(after), fromfile=filename, tofile=filename)
    )


class DiffRenderer:
    """Pass diff text through ``command`` (e.g. ``delta``), or return it unchanged."""

    def __init__(self, command: Optional[str] = None, timeout: float = Constants.DIFF_TOOL_TIMEOUT_SEC):
        self.command = command
        self.timeout = timeout

    def render(self, text: str) -> str:
        if not self.command:
            return text
        argv = shlex.split(self.command)
        if not argv:
            raise DiffToolError("diff tool command is empty")

        logger.debug("Running diff tool: %s", argv[0])
        try:
            result = subprocess.run(  # noqa: S603
                argv,
                input=text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise DiffToolError(f"diff tool timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise DiffToolError(f"diff tool failed: {exc}") from exc

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit status {result.returncode}"
            raise DiffToolError(f"diff tool failed: {detail}")
        return result.stdout
