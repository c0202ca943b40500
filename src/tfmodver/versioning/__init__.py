"""Semantic version comparison, constraints and selection strategies."""

from .comparator import (
    compare_versions,
    get_latest_version,
    is_newer,
    is_same_or_newer,
    parse_version,
    sort_valid_versions,
    sort_versions,
)
from .constraints import Constraint, Constraints, parse_constraint, parse_constraints
from .models import Operator, Strategy
from .strategy import is_valid_strategy, select_version

__all__ = [
    "compare_versions",
    "get_latest_version",
    "is_newer",
    "is_same_or_newer",
    "parse_version",
    "sort_valid_versions",
    "sort_versions",
    "Constraint",
    "Constraints",
    "parse_constraint",
    "parse_constraints",
    "Operator",
    "Strategy",
    "is_valid_strategy",
    "select_version",
]
