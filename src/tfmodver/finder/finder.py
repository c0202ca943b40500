"""Recursive discovery of module usages below a root directory."""

from __future__ import annotations

import os
from typing import Iterator, List, Optional, TYPE_CHECKING

from tfmodver.finder.inspector import ModuleUsage, inspect_directory

if TYPE_CHECKING:
    from tfmodver.filter.module_filter import ModuleFilter

# Provider plugins and downloaded modules; never part of the user's configuration.
_SKIP_DIRS = (".terraform", ".git")


def _walk_dirs(root: str) -> Iterator[str]:
    for dirpath, dirnames, _ in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        yield dirpath


def find_all_modules(root: str) -> List[ModuleUsage]:
    """Every module call under ``root``, with or without a version."""
    usages: List[ModuleUsage] = []
    for directory in _walk_dirs(root):
        usages.extend(inspect_directory(directory))
    return usages


def find_modules_with_versions(root: str, module_filter: Optional["ModuleFilter"] = None) -> List[ModuleUsage]:
    """Module calls under ``root`` that pin a ``version``.

    When ``module_filter`` is given, only calls whose source it matches are
    returned.
    """
    results: List[ModuleUsage] = []
    for usage in find_all_modules(root):
        if not usage.version:
            continue
        if module_filter is not None:
            _, matched = module_filter.get_version_strategy(usage.source)
            if not matched:
                continue
        results.append(usage)
    return results
