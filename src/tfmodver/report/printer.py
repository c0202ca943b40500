"""Plain-text rendering of an ``UpdateSummary``."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from tfmodver.report.builder import ModuleReport, UpdateSummary

_MAX_LISTED_FILES = 5


def _heading(stream: TextIO, title: str) -> None:
    stream.write(f"\n{title}\n{'-' * len(title)}\n")


def _print_module(stream: TextIO, mod: ModuleReport) -> None:
    stream.write(f"\n* {mod.source} ({mod.type.value})\n")
    versions = ", ".join(sorted(f"{v} ({n})" for v, n in mod.current_versions.items()))
    stream.write(f"  Current Versions:  {versions}\n")
    stream.write(f"  Latest Version:    {mod.latest_version or 'unknown'}\n")
    if mod.target_version and mod.target_version != mod.latest_version:
        stream.write(f"  Target Version:    {mod.target_version}\n")
    stream.write(f"  Modules to Update: {mod.update_count}\n")
    if not mod.latest_version:
        status = "VERSIONS UNAVAILABLE"
    elif mod.update_count > 0:
        status = "UPDATE AVAILABLE"
    else:
        status = "UP TO DATE"
    stream.write(f"  Status:            {status}\n")

    if 0 < len(mod.locations) <= _MAX_LISTED_FILES:
        stream.write("  Files:\n")
        for loc in mod.locations:
            stream.write(f"    - {loc}\n")
    elif len(mod.locations) > _MAX_LISTED_FILES:
        stream.write(f"  Files: {len(mod.locations)} files\n")


def print_summary(summary: UpdateSummary, stream: Optional[TextIO] = None) -> None:
    """Write the module summary to ``stream`` (stdout by default)."""
    stream = stream or sys.stdout

    stream.write("Terraform Module Update Summary\n")
    _heading(stream, "Module Status Overview")
    stream.write(f"  Supported Modules:        {summary.supported_count}\n")
    stream.write(f"  Unsupported Modules:      {summary.unsupported_count}\n")
    stream.write(f"  Total Module Usages:      {summary.total_usages}\n")

    if summary.modules:
        _heading(stream, "Supported Modules")
        for mod in summary.modules:
            _print_module(stream, mod)

    if summary.unsupported:
        _heading(stream, "Unsupported Modules")
        for unsup in summary.unsupported:
            stream.write(f"\n* {unsup.source} ({unsup.type.value})\n")
            stream.write(f"  Total Usages: {unsup.count}\n")
            stream.write("  Status:       NOT SUPPORTED\n")

    _heading(stream, "Summary")
    stream.write(f"  Total Module Invocations:           {summary.total_usages}\n")
    stream.write(f"  Module Invocations to Update:       {summary.total_updated}\n")
    stream.write(f"  Module Invocations Already Current: {summary.total_usages - summary.total_updated}\n")

    if summary.by_version_change:
        _heading(stream, "Version Changes")
        for change in sorted(summary.by_version_change):
            stream.write(f"  {change} ({summary.by_version_change[change]} changes)\n")
    stream.write("\n")
