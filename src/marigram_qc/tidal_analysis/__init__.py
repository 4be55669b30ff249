"""
Tidal Analysis Subpackage

Provides functionality for:
- Tide series, harmonic model and event value types
- Constituent catalogues (NOS 37 and the extended standard set)
- Regular time grids and hourly resampling
- Least-squares harmonic analysis of water level records
- Tidal prediction from a fitted model or published constants
- High/low water extraction with strict alternation
- Alignment of independently timed readings (spline or nearest event)
- Residual statistics, overall and per week
- End-to-end validation of digitized readings
- Comparison of readings with a precomputed reference series
"""

from marigram_qc.tidal_analysis.alignment import (
    NearestMatch,
    interpolate_to_series,
    nearest_match,
)
from marigram_qc.tidal_analysis.constituents import (
    CONSTITUENT_SPEEDS,
    NOS_37_CONSTITUENTS,
    PRINCIPAL_CONSTITUENTS,
    STANDARD_CONSTITUENTS,
    ConstituentCatalogue,
    get_catalogue,
    normalize_constituent_name,
)
from marigram_qc.tidal_analysis.errors import (
    EmptySeriesError,
    InconsistentUnitsError,
    InsufficientDataError,
    InterpolationRangeError,
    TidalAnalysisError,
)
from marigram_qc.tidal_analysis.extremes import (
    extract_water_level_extrema,
    extrema_to_frame,
)
from marigram_qc.tidal_analysis.harmonic_analysis import (
    FitOptions,
    harmonic_analysis,
)
from marigram_qc.tidal_analysis.residuals import (
    ResidualSummary,
    WeeklyBucket,
    WeeklySummary,
    add_event_intervals,
    compute_residuals,
    join_on_timestamp,
    partition_by_week,
    summarize_by_week,
    summarize_residuals,
    week_number,
    weeks_between,
)
from marigram_qc.tidal_analysis.series import (
    ConstituentFit,
    ExtremaEvent,
    HarmonicModel,
    ResidualRecord,
    TideSeries,
    check_units,
    events_to_series,
)
from marigram_qc.tidal_analysis.tidal_prediction import (
    build_model_from_constants,
    predict_from_constants,
    predict_tide,
)
from marigram_qc.tidal_analysis.time_grid import (
    build_time_grid,
    resample_to_grid,
)
from marigram_qc.tidal_analysis.validation import (
    ReferenceComparison,
    ValidationResult,
    compare_to_reference,
    validate_against_prediction,
)

__all__ = [
    # Value types
    'TideSeries',
    'HarmonicModel',
    'ConstituentFit',
    'ExtremaEvent',
    'ResidualRecord',
    'check_units',
    'events_to_series',
    # Errors
    'TidalAnalysisError',
    'InsufficientDataError',
    'InterpolationRangeError',
    'EmptySeriesError',
    'InconsistentUnitsError',
    # Constituent definitions
    'NOS_37_CONSTITUENTS',
    'STANDARD_CONSTITUENTS',
    'PRINCIPAL_CONSTITUENTS',
    'CONSTITUENT_SPEEDS',
    'ConstituentCatalogue',
    'get_catalogue',
    'normalize_constituent_name',
    # Time grids
    'build_time_grid',
    'resample_to_grid',
    # Harmonic analysis
    'FitOptions',
    'harmonic_analysis',
    # Tidal prediction
    'predict_tide',
    'predict_from_constants',
    'build_model_from_constants',
    # Extrema extraction
    'extract_water_level_extrema',
    'extrema_to_frame',
    # Alignment
    'interpolate_to_series',
    'nearest_match',
    'NearestMatch',
    # Residuals
    'join_on_timestamp',
    'compute_residuals',
    'add_event_intervals',
    'summarize_residuals',
    'ResidualSummary',
    'week_number',
    'weeks_between',
    'partition_by_week',
    'WeeklyBucket',
    'summarize_by_week',
    'WeeklySummary',
    # Validation pipeline
    'validate_against_prediction',
    'ValidationResult',
    'compare_to_reference',
    'ReferenceComparison',
]
