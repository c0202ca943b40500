"""Target version selection for a module given its available versions."""

from typing import Optional, Sequence, Union

from tfmodver.errors import (
    InvalidVersionError,
    NoMatchingMajorError,
    NoMatchingVersionError,
    UnknownStrategyError,
)
from tfmodver.versioning.comparator import parse_version
from tfmodver.versioning.constraints import Constraints
from tfmodver.versioning.models import Strategy


def is_valid_strategy(value: str) -> bool:
    """Return True if ``value`` names a supported strategy."""
    return value in Strategy.values()


def _coerce_strategy(strategy: Union[Strategy, str]) -> Strategy:
    if isinstance(strategy, Strategy):
        return strategy
    try:
        return Strategy(strategy)
    except ValueError as exc:
        raise UnknownStrategyError(f"unknown version strategy: {strategy}") from exc


def select_version(
    current_version: str,
    available_versions: Sequence[str],
    strategy: Union[Strategy, str],
    constraints: Optional[Constraints] = None,
) -> str:
    """Choose the target version for a module.

    Args:
        current_version: The version currently declared in configuration.
        available_versions: Versions published by the registry, sorted
            latest first.
        strategy: ``latest`` picks the newest candidate, ``minor`` the newest
            candidate sharing the current major version.
        constraints: Optional constraints narrowing the candidates first.

    Returns:
        The selected version string, as published.

    Raises:
        NoMatchingVersionError: no versions, or none satisfy the constraints.
        NoMatchingMajorError: ``minor`` found no candidate on the current major.
        InvalidVersionError: ``minor`` was given an unparseable current version.
        UnknownStrategyError: ``strategy`` is not supported.
    """
    if not available_versions:
        raise NoMatchingVersionError("no available versions")

    candidates = list(available_versions)
    if constraints:
        candidates = constraints.filter(candidates)
        if not candidates:
            raise NoMatchingVersionError(f"no versions satisfy the constraints: {constraints}")

    resolved = _coerce_strategy(strategy)
    if resolved is Strategy.LATEST:
        return candidates[0]
    if resolved is Strategy.MINOR:
        return _select_minor_version(current_version, candidates)
    raise UnknownStrategyError(f"unknown version strategy: {strategy}")


def _select_minor_version(current_version: str, candidates: Sequence[str]) -> str:
    """Return the first candidate on the current major version.

    Example: current "1.2.3" over ["2.0.0", "1.5.2", "1.5.1"] gives "1.5.2".
    """
    current_major = parse_version(current_version).major

    for candidate in candidates:
        try:
            parsed = parse_version(candidate)
        except InvalidVersionError:
            continue
        if parsed.major == current_major:
            return candidate

    raise NoMatchingMajorError(current_major)
