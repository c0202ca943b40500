"""Select modules and their update strategy by source pattern."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Tuple

from tfmodver.errors import InvalidPatternError
from tfmodver.versioning.models import Strategy
from tfmodver.versioning.strategy import is_valid_strategy

_REGEX_METACHARACTERS = frozenset("*+?[](){}^$|\\.")


def has_regex_metacharacters(pattern: str) -> bool:
    return any(ch in _REGEX_METACHARACTERS for ch in pattern)


class Matcher:
    """Matches module sources against one pattern.

    A pattern without regex metacharacters must equal the source exactly;
    anything else is compiled and searched for anywhere in the source.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.regex: Optional[re.Pattern] = None
        if has_regex_metacharacters(pattern):
            try:
                self.regex = re.compile(pattern)
            except re.error as exc:
                raise InvalidPatternError(f"invalid regex pattern {pattern!r}: {exc}") from exc

    @property
    def is_regex(self) -> bool:
        return self.regex is not None

    def matches(self, source: str) -> bool:
        if self.regex is not None:
            return self.regex.search(source) is not None
        return self.pattern == source


class ModuleFilter:
    """Maps module sources to a version strategy.

    A global strategy applies to every module. Otherwise patterns are tried
    in insertion order and the first match decides.
    """

    def __init__(self, module_patterns: Optional[Dict[str, str]] = None, global_strategy: Optional[str] = None):
        self.module_patterns: Dict[str, str] = dict(module_patterns or {})
        self.global_strategy = global_strategy or None
        self._matchers = [(Matcher(p), s) for p, s in self.module_patterns.items()]

    def get_version_strategy(self, source: str) -> Tuple[Optional[str], bool]:
        """Return ``(strategy, matched)`` for ``source``."""
        if self.global_strategy:
            return self.global_strategy, True
        for matcher, strategy in self._matchers:
            if matcher.matches(source):
                return strategy, True
        return None, False

    def unmatched_patterns(self, sources: Iterable[str]) -> list:
        """Patterns that match none of ``sources``."""
        seen = list(sources)
        return [m.pattern for m, _ in self._matchers if not any(m.matches(s) for s in seen)]


def parse_module_patterns(specs: Iterable[str]) -> Dict[str, str]:
    """Parse ``pattern=strategy`` arguments into an ordered mapping.

    Raises:
        InvalidPatternError: malformed argument, unknown strategy or a
            regex that does not compile.
    """
    patterns: Dict[str, str] = {}
    for spec in specs:
        pattern, sep, strategy = spec.rpartition("=")
        pattern = pattern.strip()
        strategy = strategy.strip().lower()
        if not sep or not pattern or not strategy:
            raise InvalidPatternError(
                f"invalid module filter {spec!r}: expected pattern=strategy "
                f"with strategy one of {', '.join(Strategy.values())}"
            )
        if not is_valid_strategy(strategy):
            raise InvalidPatternError(
                f"invalid strategy {strategy!r} in {spec!r}: must be one of {', '.join(Strategy.values())}"
            )
        Matcher(pattern)
        patterns[pattern] = strategy
    return patterns
