"""Classify raw module source strings.

Supported shapes:
 - ``namespace/name/provider[//subdir]`` on the public Terraform registry
 - ``host/namespace/name/provider[//subdir]`` on a custom registry
 - ``github.com/owner/repo[//subdir]`` (recognized, not supported)
"""

import logging
from typing import Dict, Iterable, Tuple

from tfmodver.constants import Constants
from tfmodver.errors import EmptySourceError, InvalidSourceFormatError, TfModVerError
from tfmodver.source.models import Source, SourceType

logger = logging.getLogger(__name__)

_GITHUB_PREFIX = Constants.GITHUB_HOST + "/"
_LOCAL_PREFIXES = ("./", "../")


class Resolver:
    """Parses module source strings into ``Source`` values."""

    def resolve(self, source_str: str) -> Source:
        """Analyze a module source string.

        Raises:
            EmptySourceError: if ``source_str`` is empty.
            InvalidSourceFormatError: if it matches no known shape.
        """
        if not source_str:
            raise EmptySourceError("empty source string")

        if source_str.startswith(_LOCAL_PREFIXES):
            raise InvalidSourceFormatError(f"local module path has no registry versions: {source_str}")
        if source_str.startswith(_GITHUB_PREFIX):
            return self._parse_github_source(source_str)
        return self._parse_registry_source(source_str)

    def resolve_all(self, source_strs: Iterable[str]) -> Tuple[Dict[str, Source], Dict[str, TfModVerError]]:
        """Resolve every distinct string, isolating failures per string."""
        sources: Dict[str, Source] = {}
        errors: Dict[str, TfModVerError] = {}
        for source_str in source_strs:
            if source_str in sources or source_str in errors:
                continue
            try:
                sources[source_str] = self.resolve(source_str)
            except (EmptySourceError, InvalidSourceFormatError) as exc:
                logger.warning("Failed to parse source %s: %s", source_str, exc)
                errors[source_str] = exc
        return sources, errors

    @staticmethod
    def _parse_github_source(source_str: str) -> Source:
        repo_path = source_str[len(_GITHUB_PREFIX):].split("//", 1)[0]
        segments = repo_path.split("/")
        if len(segments) < 2 or not all(segments[:2]):
            raise InvalidSourceFormatError(f"invalid github source format: {source_str}")
        return Source(
            original=source_str,
            type=SourceType.GITHUB,
            host=Constants.GITHUB_HOST,
            path=repo_path,
            supported=False,
        )

    @staticmethod
    def _parse_registry_source(source_str: str) -> Source:
        module_path, _, sub_path = source_str.partition("//")
        parts = module_path.split("/")

        if len(parts) == 3:
            host = Constants.TERRAFORM_REGISTRY_HOST
            namespace, name, provider = parts
        elif len(parts) >= 4:
            host, namespace, name, provider = parts[:4]
        else:
            raise InvalidSourceFormatError(f"invalid registry source format: {source_str}")

        if not all((host, namespace, name, provider)):
            raise InvalidSourceFormatError(f"invalid registry source format: {source_str}")

        source_type = SourceType.CUSTOM_REGISTRY
        if host == Constants.TERRAFORM_REGISTRY_HOST:
            source_type = SourceType.TERRAFORM_REGISTRY

        return Source(
            original=source_str,
            type=source_type,
            host=host,
            namespace=namespace,
            name=name,
            provider=provider,
            path=sub_path,
            supported=True,
        )
