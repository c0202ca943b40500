"""Registry client: cache-aside retrieval of module versions and metadata."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import requests
from jsonschema import Draft7Validator

from tfmodver.cache.disk_store import DiskStore
from tfmodver.common.http_client import get_json, new_session
from tfmodver.common.logging_utils import extra_context, is_debug_enabled, safe_url
from tfmodver.constants import Constants
from tfmodver.errors import CacheWriteError, CancelledError, RegistryError
from tfmodver.registry.models import (
    MODULE_INFO_SCHEMA,
    VERSIONS_RESPONSE_SCHEMA,
    Module,
    ModuleInfo,
)

logger = logging.getLogger(__name__)

_VERSIONS_VALIDATOR = Draft7Validator(VERSIONS_RESPONSE_SCHEMA)
_INFO_VALIDATOR = Draft7Validator(MODULE_INFO_SCHEMA)


def _validate(validator: Draft7Validator, data: Any, url: str) -> None:
    errs = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join(str(p) for p in first.path)
        raise RegistryError(f"unexpected registry response from {safe_url(url)} at '{path}': {first.message}", 200)


def versions_cache_key(host: str, namespace: str, name: str, provider: str) -> str:
    return f"module_versions:{host}:{namespace}:{name}:{provider}"


def info_cache_key(host: str, namespace: str, name: str, provider: str, version: str) -> str:
    return f"module_info:{host}:{namespace}:{name}:{provider}:{version}"


class RegistryClient:
    """HTTP client for the module registry protocol.

    Every call consults ``store`` (when given) before touching the network
    and caches successful responses for ``cache_ttl`` seconds.
    """

    def __init__(
        self,
        store: Optional[DiskStore] = None,
        timeout: float = Constants.REGISTRY_TIMEOUT,
        session: Optional[requests.Session] = None,
        cache_ttl: float = Constants.REGISTRY_CACHE_TTL_SEC,
    ):
        self.store = store
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._session = session or new_session()

    def fetch_module_versions(
        self,
        host: str,
        namespace: str,
        name: str,
        provider: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Module]:
        """Fetch all published versions of a module.

        Returns:
            The module, or None when the registry knows no such module.

        Raises:
            RegistryTimeoutError: the request timed out.
            RegistryError: transport failure, non-200 status or bad payload.
            CancelledError: ``cancel_event`` fired before or during the request.
        """
        cache_key = versions_cache_key(host, namespace, name, provider)
        cached = self._cache_get(cache_key)
        if cached is not None:
            try:
                return Module.from_dict(cached)
            except (KeyError, TypeError, AttributeError):
                logger.debug("Ignoring malformed cached module for %s", cache_key)

        url = Constants.REGISTRY_URL_TEMPLATE.format(
            host=host, namespace=namespace, name=name, provider=provider
        ) + "/versions"
        status_code, _, payload = get_json(
            self._session, url, context="registry", timeout=self.timeout, cancel_event=cancel_event
        )
        if status_code != 200:
            raise RegistryError(
                f"registry API returned {status_code} for {namespace}/{name}/{provider}", status_code
            )
        _validate(_VERSIONS_VALIDATOR, payload, url)

        modules = payload.get("modules") or []
        if not modules:
            logger.info(
                "Module %s/%s/%s not found on %s",
                namespace,
                name,
                provider,
                host,
                extra=extra_context(event="registry_lookup", outcome="not_found", target=host),
            )
            return None

        module = Module.from_dict(modules[0])
        self._cache_set(cache_key, module.to_dict())
        return module

    def fetch_module_info(
        self,
        host: str,
        namespace: str,
        name: str,
        provider: str,
        module: Module,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Exception]:
        """Attach per-version registry metadata to ``module`` in place.

        Metadata is best effort: a failure for one version is recorded and
        the remaining versions are still processed.

        Returns:
            Mapping of version string to the error that prevented its
            metadata from being fetched (empty on full success).

        Raises:
            CancelledError: ``cancel_event`` fired; already enriched
                versions keep their metadata.
        """
        failures: Dict[str, Exception] = {}
        for mv in module.versions:
            cache_key = info_cache_key(host, namespace, name, provider, mv.version)
            cached = self._cache_get(cache_key)
            if isinstance(cached, dict):
                mv.module_info = ModuleInfo.from_dict(cached)
                continue

            url = Constants.REGISTRY_URL_TEMPLATE.format(
                host=host, namespace=namespace, name=name, provider=provider
            ) + f"/{mv.version}"
            try:
                status_code, _, payload = get_json(
                    self._session, url, context="registry", timeout=self.timeout, cancel_event=cancel_event
                )
                if status_code != 200:
                    raise RegistryError(f"registry API returned {status_code}", status_code)
                _validate(_INFO_VALIDATOR, payload, url)
            except CancelledError:
                raise
            except RegistryError as exc:
                failures[mv.version] = exc
                continue

            info = ModuleInfo.from_dict(payload)
            mv.module_info = info
            self._cache_set(cache_key, info.to_dict())
        return failures

    def _cache_get(self, key: str) -> Optional[Any]:
        if self.store is None:
            return None
        value = self.store.get(key)
        if value is not None and is_debug_enabled(logger):
            logger.debug(
                "Registry cache hit",
                extra=extra_context(event="cache_hit", component="registry_client", target=key),
            )
        return value

    def _cache_set(self, key: str, value: Any) -> None:
        if self.store is None:
            return
        try:
            self.store.set(key, value, self.cache_ttl)
        except CacheWriteError as exc:
            logger.warning("Failed to cache %s: %s", key, exc)
