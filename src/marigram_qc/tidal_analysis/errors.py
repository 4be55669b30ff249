"""
Error kinds raised by the tidal analysis core.

Every stage either returns a complete result or raises one of these.  They
all derive from :class:`ValueError` so callers that already guard against
bad input with ``except ValueError`` keep working.
"""
from __future__ import annotations


class TidalAnalysisError(ValueError):
    """Base class for all tidal analysis failures."""


class InsufficientDataError(TidalAnalysisError):
    """Too few, or too short a span of, observations for the requested fit."""


class InterpolationRangeError(TidalAnalysisError):
    """A query time lies outside the interval covered by the reference."""


class EmptySeriesError(TidalAnalysisError):
    """An operation that needs data was given a zero-length series."""


class InconsistentUnitsError(TidalAnalysisError):
    """Series being compared are expressed in different height units."""
