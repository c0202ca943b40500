"""Terraform module call discovery."""

from .finder import find_all_modules, find_modules_with_versions
from .inspector import ModuleUsage, inspect_directory, inspect_file

__all__ = ["ModuleUsage", "inspect_directory", "inspect_file", "find_all_modules", "find_modules_with_versions"]
