"""Command-line entry point: wire components together and run ``show`` / ``update``."""

from __future__ import annotations

import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO

from tfmodver.args import parse_args
from tfmodver.cache.disk_store import DiskStore
from tfmodver.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from tfmodver.config import Config, default_cache_dir, load_config, parse_duration
from tfmodver.constants import Constants, ExitCodes
from tfmodver.errors import (
    CacheWriteError,
    ConfigError,
    DiffToolError,
    InvalidConstraintError,
    InvalidPatternError,
    RegistryError,
    UsageError,
)
from tfmodver.filter.module_filter import ModuleFilter, parse_module_patterns
from tfmodver.finder.finder import find_modules_with_versions
from tfmodver.finder.inspector import ModuleUsage
from tfmodver.registry.client import RegistryClient
from tfmodver.registry.fetcher import VersionFetcher
from tfmodver.report.builder import SummaryBuilder, UpdateSummary
from tfmodver.report.printer import print_summary
from tfmodver.source.models import Source
from tfmodver.source.resolver import Resolver
from tfmodver.updater.updater import FileUpdater
from tfmodver.versioning.constraints import Constraints, parse_constraints
from tfmodver.versioning.models import Strategy
from tfmodver.versioning.strategy import select_version

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Components shared by one CLI invocation."""
    store: Optional[DiskStore]
    resolver: Resolver
    client: RegistryClient
    fetcher: VersionFetcher
    updater: FileUpdater
    cancel_event: threading.Event = field(default_factory=threading.Event)
    out: TextIO = field(default_factory=lambda: sys.stdout)
    warnings: int = 0
    analysis: Optional["Analysis"] = None

    def close(self) -> None:
        if self.store is not None:
            self.store.close()


@dataclass
class Analysis:
    """Result of scanning a configuration and querying registries."""
    usages: List[ModuleUsage]
    sources: Dict[str, Source]
    versions: Dict[str, List[str]]
    builder: SummaryBuilder
    summary: UpdateSummary
    source_errors: Dict[str, Exception] = field(default_factory=dict)
    fetch_errors: Dict[str, Exception] = field(default_factory=dict)


def _resolve_cache_ttl(args, config: Config) -> float:
    if getattr(args, "CACHE_TTL", None):
        try:
            return parse_duration(args.CACHE_TTL)
        except ConfigError as exc:
            raise UsageError(f"invalid --cache-ttl: {exc}") from exc
    if config.cache_ttl is not None:
        return config.cache_ttl
    return Constants.REGISTRY_CACHE_TTL_SEC


def _open_store(args, config: Config) -> Optional[DiskStore]:
    cache_dir = getattr(args, "CACHE_DIR", None) or config.cache_dir or default_cache_dir()
    no_cache = getattr(args, "NO_CACHE", False)

    if no_cache and not getattr(args, "CACHE_CLEAR", False):
        return None
    store = DiskStore(cache_dir, cleanup_interval=0 if no_cache else Constants.CACHE_CLEANUP_INTERVAL_SEC)
    if getattr(args, "CACHE_CLEAR", False):
        store.clear()
        logger.info("Cleared cache at %s", cache_dir)
    if no_cache:
        store.close()
        return None
    return store


def build_context(args, config: Optional[Config] = None, out: Optional[TextIO] = None) -> RunContext:
    """Construct the store, client, fetcher and updater for one run.

    Precedence for every setting is command-line flag, then configuration
    file, then built-in default.
    """
    config = config or Config()
    cache_ttl = _resolve_cache_ttl(args, config)
    store = _open_store(args, config)
    client = RegistryClient(store=store, cache_ttl=cache_ttl)
    fetcher = VersionFetcher(client=client, workers=getattr(args, "WORKERS", Constants.DEFAULT_WORKERS))
    diff_tool = getattr(args, "DIFF_TOOL", None) or config.diff_tool
    return RunContext(
        store=store,
        resolver=Resolver(),
        client=client,
        fetcher=fetcher,
        updater=FileUpdater(diff_tool=diff_tool),
        out=out or sys.stdout,
    )


def load_constraints(args) -> Optional[Constraints]:
    """Parse ``--constraint`` or ``--constraint-file``, if given."""
    text = getattr(args, "CONSTRAINT", None)
    path = getattr(args, "CONSTRAINT_FILE", None)
    if path:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as exc:
            raise UsageError(f"failed to read constraint file {path}: {exc}") from exc
    if not text:
        return None
    try:
        return parse_constraints(text)
    except InvalidConstraintError as exc:
        raise UsageError(f"invalid constraint: {exc}") from exc


def build_module_filter(args) -> Optional[ModuleFilter]:
    patterns = getattr(args, "MODULES", None) or []
    strategy = getattr(args, "VERSION_STRATEGY", None)
    if patterns and strategy:
        raise UsageError("cannot use both --module and --version-strategy")
    if not patterns and not strategy:
        return None
    try:
        return ModuleFilter(parse_module_patterns(patterns), strategy)
    except InvalidPatternError as exc:
        raise UsageError(str(exc)) from exc


def analyze(
    ctx: RunContext,
    root: str,
    module_filter: Optional[ModuleFilter] = None,
    constraints: Optional[Constraints] = None,
) -> Analysis:
    """Find module usages under ``root``, classify their sources and fetch versions.

    ``versions`` in the result is keyed by the source string as written in
    the configuration and, when ``constraints`` are given, only holds
    versions satisfying them.
    """
    logger.info("Finding modules in %s...", root)
    usages = find_modules_with_versions(root, module_filter)
    logger.info("Found %d module invocations", len(usages))

    sources, source_errors = ctx.resolver.resolve_all(u.source for u in usages)

    logger.info("Fetching versions from registries...")
    fetched = ctx.fetcher.fetch_multiple_versions(sources.values(), ctx.cancel_event)
    fetch_errors = ctx.fetcher.errors()

    versions: Dict[str, List[str]] = {}
    for source_str, src in sources.items():
        available = fetched.get(src.key)
        if available is None:
            continue
        if constraints:
            available = constraints.filter(available)
        versions[source_str] = available

    builder = SummaryBuilder()
    builder.add_module_usages(usages).add_source_info(sources).add_latest_versions(versions)

    if is_debug_enabled(logger):
        logger.debug(
            "Analysis complete",
            extra=extra_context(
                event="analyze",
                component="cli",
                usages=len(usages),
                sources=len(sources),
                fetched=len(versions),
                errors=len(source_errors) + len(fetch_errors),
            ),
        )
    ctx.analysis = Analysis(
        usages=usages,
        sources=sources,
        versions=versions,
        builder=builder,
        summary=builder.build(),
        source_errors=dict(source_errors),
        fetch_errors=fetch_errors,
    )
    return ctx.analysis


def _count_warnings(ctx: RunContext, analysis: Analysis) -> None:
    ctx.warnings += len(analysis.source_errors) + len(analysis.fetch_errors)


def _all_fetches_failed(analysis: Analysis) -> bool:
    supported = {src.key for src in analysis.sources.values() if src.supported}
    failed = {k for k, exc in analysis.fetch_errors.items() if isinstance(exc, RegistryError)}
    return bool(supported) and supported <= failed


def run_show(ctx: RunContext, root: str, constraints: Optional[Constraints] = None) -> Analysis:
    """Print the summary for ``root`` without changing any file."""
    if constraints:
        logger.info("Applied constraints: %s", constraints)
    analysis = analyze(ctx, root, None, constraints)
    _count_warnings(ctx, analysis)
    if not analysis.usages:
        ctx.out.write("No modules with version constraints found.\n")
        return analysis
    print_summary(analysis.summary, ctx.out)
    return analysis


def _select_target(
    ctx: RunContext,
    source_str: str,
    current: str,
    available: List[str],
    strategy: str,
    constraints: Optional[Constraints],
) -> Optional[str]:
    try:
        return select_version(current, available, strategy, constraints)
    except ValueError as exc:
        ctx.warnings += 1
        logger.warning("Could not select version for %s %s: %s", source_str, current, exc)
        return None


def _warn_unmatched_patterns(ctx: RunContext, module_filter: Optional[ModuleFilter], analysis: Analysis) -> None:
    if module_filter is None:
        return
    for pattern in module_filter.unmatched_patterns({u.source for u in analysis.usages}):
        ctx.warnings += 1
        logger.warning("Module pattern %r did not match any module source", pattern)


def run_update(
    ctx: RunContext,
    root: str,
    module_filter: Optional[ModuleFilter] = None,
    constraints: Optional[Constraints] = None,
    diff: bool = False,
) -> int:
    """Update (or, with ``diff``, preview) module versions under ``root``.

    Returns:
        Number of version values changed (or that would change).

    Raises:
        DiffToolError: the diff formatting command failed.
    """
    if constraints:
        logger.info("Applied constraints: %s", constraints)
    analysis = analyze(ctx, root, module_filter, None)
    _count_warnings(ctx, analysis)
    _warn_unmatched_patterns(ctx, module_filter, analysis)
    if not analysis.usages:
        ctx.out.write("No modules with version constraints found.\n")
        return 0

    builder = analysis.builder
    plan = []
    for source_str, src in sorted(analysis.sources.items()):
        available = analysis.versions.get(source_str)
        if not src.supported or not available:
            continue
        strategy = Strategy.LATEST.value
        if module_filter is not None:
            matched_strategy, matched = module_filter.get_version_strategy(source_str)
            if not matched:
                continue
            strategy = matched_strategy or strategy

        report = builder.get(source_str)
        for current in sorted(report.current_versions):
            target = _select_target(ctx, source_str, current, available, strategy, constraints)
            if target is None or target == current:
                continue
            plan.append((source_str, current, target))
            builder.set_target_version(source_str, target)

    if not diff:
        print_summary(builder.build(), ctx.out)

    files = set()
    changes = 0
    for source_str, current, target in plan:
        if diff:
            result = ctx.updater.write_diff(ctx.out, root, source_str, current, target)
        else:
            result = ctx.updater.update_directory(root, source_str, current, target)
            for path, count in sorted(result.counts.items()):
                ctx.out.write(f"{path}: {source_str} {current} -> {target} ({count} changes)\n")
        ctx.warnings += len(result.errors)
        files.update(result.counts)
        changes += result.total

    if not diff:
        ctx.out.write(f"\nFiles Updated: {len(files)}\nTotal Changes: {changes}\n")
    return changes


def _run(args, ctx: RunContext) -> ExitCodes:
    root = args.PATH
    if not os.path.exists(root):
        raise UsageError(f"invalid path: {root} does not exist")
    constraints = load_constraints(args)

    if args.COMMAND == "show":
        run_show(ctx, root, constraints)
    else:
        module_filter = build_module_filter(args)
        run_update(ctx, root, module_filter, constraints, diff=getattr(args, "DIFF", False))

    if ctx.analysis is not None and _all_fetches_failed(ctx.analysis):
        logger.error("Could not reach any registry")
        return ExitCodes.CONNECTION_ERROR
    if ctx.warnings and getattr(args, "ERROR_ON_WARNINGS", False):
        logger.warning("%d warnings reported", ctx.warnings)
        return ExitCodes.EXIT_WARNINGS
    return ExitCodes.SUCCESS


def main(argv=None) -> int:
    """Main function of the program."""
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        # argparse exits 0 for --help and 2 for bad usage
        return ExitCodes.USAGE_ERROR.value if exc.code else ExitCodes.SUCCESS.value
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(event="function_entry", component="cli", action=args.COMMAND))

    ctx: Optional[RunContext] = None
    try:
        config = load_config()
        ctx = build_context(args, config)
        code = _run(args, ctx).value
    except (UsageError, ConfigError) as exc:
        logger.error("%s", exc)
        code = ExitCodes.USAGE_ERROR.value
    except (CacheWriteError, DiffToolError) as exc:
        logger.error("%s", exc)
        code = ExitCodes.FILE_ERROR.value
    except KeyboardInterrupt:
        if ctx is not None:
            ctx.cancel_event.set()
        logger.info("Interrupted by user")
        code = 130  # Standard SIGINT exit code
    finally:
        if ctx is not None:
            ctx.close()
    return code


if __name__ == "__main__":
    sys.exit(main())
