"""Extract module calls from Terraform configuration with python-hcl2."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

import hcl2

from tfmodver.common.logging_utils import extra_context
from tfmodver.constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleUsage:
    """One ``module`` block as written in a ``.tf`` file."""
    source: str
    version: str
    file_path: str
    block_name: str


def _unquote(value: Any) -> str:
    """Normalize a python-hcl2 scalar: unwrap lists and strip literal quotes."""
    if isinstance(value, list):
        value = value[0] if value else ""
    if value is None:
        return ""
    text = str(value)
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1]
    return text


def _module_calls(doc: dict, file_path: str) -> Iterator[ModuleUsage]:
    for block in doc.get("module") or []:
        if not isinstance(block, dict):
            continue
        for raw_name, attrs in block.items():
            if raw_name.startswith("__") or not isinstance(attrs, dict):
                continue
            yield ModuleUsage(
                source=_unquote(attrs.get("source")),
                version=_unquote(attrs.get("version")),
                file_path=file_path,
                block_name=_unquote(raw_name),
            )


def inspect_file(file_path: str) -> Optional[List[ModuleUsage]]:
    """Parse one file; returns None when it cannot be read or parsed."""
    try:
        with open(file_path, "r", encoding="utf-8") as fh:
            doc = hcl2.load(fh)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.warning(
            "Failed to parse %s: %s",
            file_path,
            exc,
            extra=extra_context(event="parse", component="finder", outcome="error", target=file_path),
        )
        return None
    return list(_module_calls(doc, file_path))


def inspect_directory(path: str) -> List[ModuleUsage]:
    """Return module calls of the Terraform files directly inside ``path``.

    Subdirectories are not visited. Files that fail to parse are logged
    and skipped.
    """
    usages: List[ModuleUsage] = []
    try:
        names = sorted(os.listdir(path))
    except OSError as exc:
        logger.warning("Failed to list %s: %s", path, exc)
        return usages
    for name in names:
        full = os.path.join(path, name)
        if not name.endswith(Constants.TERRAFORM_EXTENSIONS) or not os.path.isfile(full):
            continue
        calls = inspect_file(full)
        if calls:
            usages.extend(calls)
    return usages
