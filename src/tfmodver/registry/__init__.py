"""Module registry client and parallel version fetcher."""

from .client import RegistryClient
from .fetcher import VersionFetcher
from .models import Module, ModuleInfo, ModuleVersion, ProviderRequirement, RootModule

__all__ = [
    "RegistryClient",
    "VersionFetcher",
    "Module",
    "ModuleInfo",
    "ModuleVersion",
    "ProviderRequirement",
    "RootModule",
]
