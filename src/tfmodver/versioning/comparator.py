"""Semantic version parsing, comparison and sorting.

Module registries publish plain semantic versions, but configuration often
carries shortened forms (``1.2``) or a ``v`` prefix. ``parse_version``
accepts those and zero-fills missing components before handing the result
to ``semantic_version`` for validation and ordering.
"""

import re
from typing import Iterable, List, Tuple

import semantic_version

from tfmodver.errors import InvalidVersionError, NoMatchingVersionError

_LOOSE_VERSION_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)"
    r"(?:\.(?P<minor>0|[1-9]\d*))?"
    r"(?:\.(?P<patch>0|[1-9]\d*))?"
    r"(?P<rest>(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)


def parse_version(version: str) -> semantic_version.Version:
    """Parse ``version`` into a ``semantic_version.Version``.

    Raises:
        InvalidVersionError: if the string is not a (possibly shortened)
            semantic version.
    """
    if not isinstance(version, str):
        raise InvalidVersionError(str(version), "not a string")
    m = _LOOSE_VERSION_RE.match(version.strip())
    if not m:
        raise InvalidVersionError(version)
    normalized = "{}.{}.{}{}".format(
        m.group("major"), m.group("minor") or "0", m.group("patch") or "0", m.group("rest")
    )
    try:
        return semantic_version.Version(normalized)
    except ValueError as exc:
        raise InvalidVersionError(version, str(exc)) from exc


def is_valid_version(version: str) -> bool:
    try:
        parse_version(version)
    except InvalidVersionError:
        return False
    return True


def compare_versions(v1: str, v2: str) -> int:
    """Compare two semantic versions.

    Returns -1 if v1 < v2, 0 if they are equal and 1 if v1 > v2.

    Raises:
        InvalidVersionError: if either version is invalid.
    """
    a = parse_version(v1)
    b = parse_version(v2)
    return (a > b) - (a < b)


def is_newer(v1: str, v2: str) -> bool:
    """Return True if ``v2`` is newer than ``v1``."""
    return compare_versions(v1, v2) < 0


def is_same_or_newer(v1: str, v2: str) -> bool:
    """Return True if ``v2`` is the same as or newer than ``v1``."""
    return compare_versions(v1, v2) <= 0


def _sorted_pairs(pairs: List[Tuple[semantic_version.Version, str]]) -> List[str]:
    # Stable sort keeps registry order for versions of equal precedence.
    pairs.sort(key=lambda p: p[0], reverse=True)
    return [original for _, original in pairs]


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort version strings in descending order (latest first).

    The strings are returned as given so they can be written back verbatim.

    Raises:
        InvalidVersionError: on the first version that does not parse.
    """
    return _sorted_pairs([(parse_version(v), v) for v in versions])


def sort_valid_versions(versions: Iterable[str]) -> List[str]:
    """Like ``sort_versions`` but silently drops unparseable entries."""
    pairs = []
    for v in versions:
        try:
            pairs.append((parse_version(v), v))
        except InvalidVersionError:
            continue
    return _sorted_pairs(pairs)


def get_latest_version(versions: Iterable[str]) -> str:
    """Return the latest version of ``versions``.

    Raises:
        NoMatchingVersionError: if ``versions`` is empty.
        InvalidVersionError: if any version is invalid.
    """
    ordered = sort_versions(versions)
    if not ordered:
        raise NoMatchingVersionError("no versions provided")
    return ordered[0]
