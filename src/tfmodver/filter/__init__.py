"""Module selection by source pattern."""

from .module_filter import Matcher, ModuleFilter, has_regex_metacharacters, parse_module_patterns

__all__ = ["Matcher", "ModuleFilter", "has_regex_metacharacters", "parse_module_patterns"]
