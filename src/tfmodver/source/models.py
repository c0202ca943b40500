"""Typed description of a module source string."""

from dataclasses import dataclass
from enum import Enum


class SourceType(Enum):
    """Kind of module source."""
    TERRAFORM_REGISTRY = "terraform_registry"
    CUSTOM_REGISTRY = "custom_registry"
    GITHUB = "github"
    UNKNOWN = "unknown"

    @property
    def is_registry(self) -> bool:
        return self in (SourceType.TERRAFORM_REGISTRY, SourceType.CUSTOM_REGISTRY)


@dataclass(frozen=True)
class Source:
    """Classification of a raw module source string.

    Only registry sources are ``supported``: their versions can be fetched.
    """
    original: str
    type: SourceType
    host: str = ""
    namespace: str = ""
    name: str = ""
    provider: str = ""
    path: str = ""
    supported: bool = False

    @property
    def registry_path(self) -> str:
        """``namespace/name/provider``, or an empty string for non-registry sources."""
        if not (self.namespace and self.name and self.provider):
            return ""
        return f"{self.namespace}/{self.name}/{self.provider}"

    @property
    def key(self) -> str:
        """Stable identity used to key fetch results and errors."""
        if self.registry_path:
            return f"{self.host}/{self.registry_path}"
        return self.original

    def __str__(self) -> str:
        return self.original
