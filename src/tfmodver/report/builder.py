"""Aggregate module usages, classifications and registry versions into a summary."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from tfmodver.constants import Constants
from tfmodver.finder.inspector import ModuleUsage
from tfmodver.source.models import Source, SourceType


@dataclass
class ModuleReport:
    """Summary of every usage of one module source."""
    source: str
    type: SourceType = SourceType.UNKNOWN
    supported: bool = False
    current_versions: Counter = field(default_factory=Counter)
    latest_version: str = ""
    target_version: str = ""
    total_usages: int = 0
    update_count: int = 0
    locations: List[str] = field(default_factory=list)

    def recount(self) -> None:
        target = self.target_version
        self.update_count = 0
        if target:
            self.update_count = sum(n for v, n in self.current_versions.items() if v != target)


@dataclass
class UnsupportedSource:
    source: str
    type: SourceType
    count: int


@dataclass
class UpdateSummary:
    modules: List[ModuleReport] = field(default_factory=list)
    unsupported: List[UnsupportedSource] = field(default_factory=list)
    total_usages: int = 0
    total_updated: int = 0
    by_version_change: Dict[str, int] = field(default_factory=dict)
    supported_count: int = 0
    unsupported_count: int = 0


class SummaryBuilder:
    """Incrementally builds an ``UpdateSummary`` keyed by module source string."""

    def __init__(self, max_locations: int = Constants.MAX_TRACKED_LOCATIONS):
        self.max_locations = max_locations
        self._modules: Dict[str, ModuleReport] = {}

    def add_module_usages(self, usages: Iterable[ModuleUsage]) -> "SummaryBuilder":
        for usage in usages:
            mod = self._modules.get(usage.source)
            if mod is None:
                mod = self._modules[usage.source] = ModuleReport(source=usage.source)
            mod.current_versions[usage.version] += 1
            mod.total_usages += 1
            if len(mod.locations) < self.max_locations and usage.file_path not in mod.locations:
                mod.locations.append(usage.file_path)
        return self

    def add_source_info(self, sources: Mapping[str, Source]) -> "SummaryBuilder":
        for source_str, src in sources.items():
            mod = self._modules.get(source_str)
            if mod is not None:
                mod.type = src.type
                mod.supported = src.supported
        return self

    def add_latest_versions(self, versions: Mapping[str, Sequence[str]]) -> "SummaryBuilder":
        """Record the newest version per source; lists are sorted latest first."""
        for source_str, available in versions.items():
            mod = self._modules.get(source_str)
            if mod is None or not available:
                continue
            mod.latest_version = available[0]
            if not mod.target_version:
                mod.target_version = mod.latest_version
            mod.recount()
        return self

    def set_target_version(self, source: str, target: str) -> "SummaryBuilder":
        """Override the version ``source`` would be updated to."""
        mod = self._modules.get(source)
        if mod is not None:
            mod.target_version = target
            mod.recount()
        return self

    def get(self, source: str) -> Optional[ModuleReport]:
        return self._modules.get(source)

    def build(self) -> UpdateSummary:
        summary = UpdateSummary()
        for source in sorted(self._modules):
            mod = self._modules[source]
            summary.total_usages += mod.total_usages
            if not mod.supported:
                summary.unsupported.append(UnsupportedSource(source=mod.source, type=mod.type, count=mod.total_usages))
                continue
            summary.modules.append(mod)
            summary.total_updated += mod.update_count
            if not mod.target_version:
                continue
            for version, count in mod.current_versions.items():
                if version != mod.target_version:
                    change = f"{version} -> {mod.target_version}"
                    summary.by_version_change[change] = summary.by_version_change.get(change, 0) + count
        summary.supported_count = len(summary.modules)
        summary.unsupported_count = len(summary.unsupported)
        return summary
