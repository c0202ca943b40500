"""Data models for version selection."""

from enum import Enum


class Strategy(Enum):
    """Version selection strategy applied to a module's available versions."""
    LATEST = "latest"
    MINOR = "minor"

    @classmethod
    def values(cls):
        return [s.value for s in cls]


class Operator(Enum):
    """Constraint operators understood by ``parse_constraint``."""
    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    PESSIMISTIC = "~>"
