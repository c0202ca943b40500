"""Module source classification."""

from .models import Source, SourceType
from .resolver import Resolver

__all__ = ["Source", "SourceType", "Resolver"]
