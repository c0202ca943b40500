"""Atomic in-place rewriting of module versions in Terraform files."""

from .diff import DiffRenderer, format_unified_diff
from .replacer import ModuleBlock, Span, count_occurrences, find_module_blocks, find_version_matches, replace_version
from .updater import DirectoryResult, FileUpdater

__all__ = [
    "DiffRenderer",
    "format_unified_diff",
    "ModuleBlock",
    "Span",
    "count_occurrences",
    "find_module_blocks",
    "find_version_matches",
    "replace_version",
    "DirectoryResult",
    "FileUpdater",
]
