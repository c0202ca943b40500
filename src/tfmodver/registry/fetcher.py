"""Bounded parallel retrieval of available versions for many module sources."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional

from tfmodver.common.logging_utils import Timer, extra_context
from tfmodver.constants import Constants
from tfmodver.errors import CancelledError, RegistryError, TfModVerError
from tfmodver.registry.client import RegistryClient
from tfmodver.registry.models import Module
from tfmodver.source.models import Source
from tfmodver.versioning.comparator import sort_valid_versions

logger = logging.getLogger(__name__)


class VersionFetcher:
    """Fetch versions for module sources with at most ``workers`` calls in flight.

    Results and errors are keyed by ``Source.key`` and accumulate across
    calls. A failure for one source never affects another.
    """

    def __init__(
        self,
        client: Optional[RegistryClient] = None,
        workers: int = Constants.DEFAULT_WORKERS,
        fetch_info: bool = True,
    ):
        if workers is None or workers <= 0:
            workers = Constants.DEFAULT_WORKERS
        self.client = client or RegistryClient()
        self.workers = workers
        self.fetch_info = fetch_info
        self._slots = threading.BoundedSemaphore(workers)
        self._lock = threading.Lock()
        self._results: Dict[str, List[str]] = {}
        self._errors: Dict[str, Exception] = {}
        self._metadata_errors: Dict[str, Dict[str, Exception]] = {}
        self._modules: Dict[str, Module] = {}

    def _acquire_slot(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            self._slots.acquire()
            return
        while not self._slots.acquire(timeout=Constants.CANCEL_POLL_INTERVAL_SEC):
            if cancel_event.is_set():
                raise CancelledError("cancelled while waiting for a fetch slot")

    def fetch_versions(self, source: Source, cancel_event: Optional[threading.Event] = None) -> List[str]:
        """Fetch and sort (newest first) the published versions of ``source``.

        The outcome is also recorded under ``source.key`` in ``get_result``
        or ``errors``.

        Raises:
            CancelledError: the batch was cancelled before or during the
                fetch; the source is then recorded only in ``errors``.
            RegistryError: the source is not a registry module, or the
                registry call failed.
        """
        key = source.key
        try:
            versions = self._fetch(source, cancel_event)
        except TfModVerError as exc:
            with self._lock:
                self._errors[key] = exc
            raise
        with self._lock:
            self._results[key] = versions
            self._errors.pop(key, None)
        return versions

    def _fetch(self, source: Source, cancel_event: Optional[threading.Event]) -> List[str]:
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError(f"fetch for {source.key} cancelled before start")
        if not source.supported:
            raise RegistryError(f"source {source.original} is not a registry module")

        self._acquire_slot(cancel_event)
        try:
            with Timer() as t:
                module = self.client.fetch_module_versions(
                    source.host, source.namespace, source.name, source.provider, cancel_event=cancel_event
                )
        finally:
            self._slots.release()
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError(f"fetch for {source.key} cancelled")

        logger.debug(
            "Fetched versions for %s",
            source.key,
            extra=extra_context(
                event="fetch_versions",
                component="version_fetcher",
                outcome="found" if module else "not_found",
                duration_ms=t.duration_ms(),
                target=source.key,
            ),
        )
        if module is None:
            return []

        if self.fetch_info:
            self._enrich(source, module, cancel_event)
        with self._lock:
            self._modules[source.key] = module

        raw = module.version_strings()
        versions = sort_valid_versions(raw)
        if len(versions) != len(raw):
            logger.debug("Dropped %d unparsable versions for %s", len(raw) - len(versions), source.key)
        return versions

    def _enrich(self, source: Source, module: Module, cancel_event: Optional[threading.Event]) -> None:
        try:
            failures = self.client.fetch_module_info(
                source.host, source.namespace, source.name, source.provider, module, cancel_event=cancel_event
            )
        except CancelledError:
            logger.debug("Metadata enrichment for %s cancelled", source.key)
            raise
        if failures:
            logger.warning("Failed to fetch metadata for %d versions of %s", len(failures), source.key)
            with self._lock:
                self._metadata_errors[source.key] = dict(failures)

    def fetch_multiple_versions(
        self,
        sources: Iterable[Source],
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, List[str]]:
        """Fetch every supported source concurrently and wait for all of them.

        Returns:
            Snapshot of successful results keyed by ``Source.key``. Failures
            are only visible through ``errors()``.
        """
        unique: Dict[str, Source] = {}
        for source in sources:
            if source.supported:
                unique.setdefault(source.key, source)

        if cancel_event is None:
            cancel_event = threading.Event()

        executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            futures = {
                executor.submit(self.fetch_versions, source, cancel_event): key
                for key, source in unique.items()
            }
            wait(futures)
        except BaseException:
            # interrupted while waiting: stop queued and in-flight fetches
            cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        for future, key in futures.items():
            exc = future.exception()
            if exc is not None:
                logger.warning(
                    "Failed to fetch versions for %s: %s",
                    key,
                    exc,
                    extra=extra_context(event="fetch_versions", outcome="error", target=key),
                )

        with self._lock:
            return {k: list(v) for k, v in self._results.items()}

    def errors(self) -> Dict[str, Exception]:
        with self._lock:
            return dict(self._errors)

    def metadata_errors(self) -> Dict[str, Dict[str, Exception]]:
        with self._lock:
            return {k: dict(v) for k, v in self._metadata_errors.items()}

    def get_result(self, source: Source) -> Optional[List[str]]:
        with self._lock:
            versions = self._results.get(source.key)
            return list(versions) if versions is not None else None

    def modules(self) -> Dict[str, Module]:
        with self._lock:
            return dict(self._modules)
