"""Update summaries for discovered modules."""

from .builder import ModuleReport, SummaryBuilder, UnsupportedSource, UpdateSummary
from .printer import print_summary

__all__ = ["ModuleReport", "SummaryBuilder", "UnsupportedSource", "UpdateSummary", "print_summary"]
