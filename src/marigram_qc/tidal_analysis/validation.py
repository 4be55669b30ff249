"""
End-to-end validation of digitized tide readings against a harmonic
reconstruction.

Chains the pipeline stages: fit a harmonic model to the gauge record,
predict it on a dense grid over the validation window, extract high and
low waters, align the digitized readings to the prediction and summarise
the residuals overall and per week.  :func:`compare_to_reference` skips the
fit and checks the readings against an already computed series (for
example a stored hourly prediction or published reference heights).  No
file I/O happens here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np
import pandas as pd

from .alignment import interpolate_to_series, nearest_match
from .constituents import get_catalogue
from .errors import EmptySeriesError
from .extremes import extract_water_level_extrema
from .harmonic_analysis import harmonic_analysis
from .residuals import (
    ResidualSummary,
    WeeklySummary,
    add_event_intervals,
    compute_residuals,
    join_on_timestamp,
    summarize_by_week,
    summarize_residuals,
    weeks_between,
)
from .series import ExtremaEvent, HarmonicModel, TideSeries, check_units, events_to_series
from .time_grid import build_time_grid, resample_to_grid
from .tidal_prediction import predict_tide

if TYPE_CHECKING:
    from marigram_qc.config import AnalysisConfig

logger = logging.getLogger(__name__)

MATCH_MODES = ('dense', 'extrema')


@dataclass(frozen=True, eq=False)
class ValidationResult:
    """Every intermediate product of :func:`validate_against_prediction`."""

    mode: str
    model: HarmonicModel
    prediction: TideSeries
    hourly: TideSeries
    extrema: list[ExtremaEvent]
    aligned: TideSeries
    joined: pd.DataFrame
    residuals: pd.DataFrame
    summary: ResidualSummary
    weekly: list[WeeklySummary]


@dataclass(frozen=True, eq=False)
class ReferenceComparison:
    """Products of :func:`compare_to_reference`."""

    joined: pd.DataFrame
    residuals: pd.DataFrame
    summary: ResidualSummary
    weekly: list[WeeklySummary]


def validate_against_prediction(
    observed: TideSeries,
    digitized: TideSeries,
    config: 'AnalysisConfig',
    start: Optional[object] = None,
    end: Optional[object] = None,
    mode: Optional[str] = None,
    logger: logging.Logger | None = None,
) -> ValidationResult:
    """
    Validate *digitized* readings against a model fitted to *observed*.

    Parameters
    ----------
    observed : TideSeries
        Gauge record used to fit the harmonic model.
    digitized : TideSeries
        Independently produced readings to check (optionally tagged
        high/low).
    config : AnalysisConfig
        Catalogue, fit options, grid steps and reporting settings.
    start, end : datetime-like, optional
        Prediction window.  Defaults to the digitized span widened to
        whole prediction steps; in extrema mode it is further widened by
        ``config.extrema_padding`` on each side so that turning points
        just outside the readings are still found.
    mode : str, optional
        ``'dense'`` to spline-interpolate the prediction at each reading,
        ``'extrema'`` to compare each reading with the nearest predicted
        high or low water.  Defaults to ``config.match_mode``.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Raises
    ------
    EmptySeriesError
        If *digitized* is empty.
    InconsistentUnitsError
        If the two series use different units.
    InsufficientDataError, InterpolationRangeError
        Propagated from the fit and the alignment.
    """
    _log = logger or logging.getLogger(__name__)

    mode = config.match_mode if mode is None else mode
    if mode not in MATCH_MODES:
        raise ValueError(
            f"Unknown match mode '{mode}'; expected one of {MATCH_MODES}."
        )
    unit = check_units(observed, digitized)
    if len(digitized) == 0:
        raise EmptySeriesError('No digitized readings to validate.')

    step = config.prediction_freq
    padding = config.extrema_padding if mode == 'extrema' else pd.Timedelta(0)
    start = (digitized.start - padding).floor(step) if start is None else start
    end = (digitized.end + padding).ceil(step) if end is None else end
    _log.info(
        "Validating %d readings of '%s' against '%s' (%s mode, %s to %s).",
        len(digitized), digitized.name, observed.name, mode, start, end,
    )

    model = harmonic_analysis(
        observed, get_catalogue(config.catalogue), config.fit_options,
        logger=_log,
    )
    prediction = predict_tide(
        model, build_time_grid(start, end, step), name='AstroTide',
        logger=_log,
    )
    hourly = _thin_prediction(prediction, config.hourly_freq, _log)
    extrema = extract_water_level_extrema(prediction, logger=_log)

    if mode == 'dense':
        aligned = interpolate_to_series(digitized, prediction, logger=_log)
    else:
        events = events_to_series(extrema, unit=unit, name='AstroTide')
        aligned = nearest_match(
            digitized, events, max_distance=config.max_match_distance,
            logger=_log,
        ).aligned

    comparison = _summarise(digitized, aligned, config, _log)
    return ValidationResult(
        mode=mode,
        model=model,
        prediction=prediction,
        hourly=hourly,
        extrema=extrema,
        aligned=aligned,
        joined=comparison.joined,
        residuals=comparison.residuals,
        summary=comparison.summary,
        weekly=comparison.weekly,
    )


def compare_to_reference(
    reference: TideSeries,
    digitized: TideSeries,
    config: 'AnalysisConfig',
    logger: logging.Logger | None = None,
) -> ReferenceComparison:
    """
    Check *digitized* readings against a precomputed *reference* series.

    Readings are paired with reference values by exact timestamp; readings
    without a reference value at the same time are dropped.  No model is
    fitted.

    Raises
    ------
    EmptySeriesError
        If *digitized* is empty.
    InconsistentUnitsError
        If the two series use different units.
    """
    _log = logger or logging.getLogger(__name__)

    check_units(reference, digitized)
    if len(digitized) == 0:
        raise EmptySeriesError('No digitized readings to compare.')
    _log.info(
        "Comparing %d readings of '%s' with reference '%s'.",
        len(digitized), digitized.name, reference.name,
    )
    return _summarise(digitized, reference, config, _log)


def _summarise(
    digitized: TideSeries,
    predicted: TideSeries,
    config: 'AnalysisConfig',
    log: logging.Logger,
) -> ReferenceComparison:
    joined = join_on_timestamp(digitized, predicted, logger=log)
    residuals = add_event_intervals(compute_residuals(joined))
    summary = summarize_residuals(joined, top_n=config.top_n, logger=log)
    weekly = summarize_by_week(
        joined,
        top_n=config.top_n,
        scheme=config.week_scheme,
        weeks=weeks_between(digitized.start, digitized.end, config.week_scheme),
        logger=log,
    )

    if summary.no_data:
        log.warning('No reading could be compared with the prediction.')
    else:
        log.info(
            'Comparison complete: %d residuals, mean %.3f %s, largest |r| %.3f.',
            summary.count, summary.mean, digitized.unit,
            abs(summary.top_residuals[0].residual),
        )
    return ReferenceComparison(
        joined=joined, residuals=residuals, summary=summary, weekly=weekly,
    )


def _thin_prediction(
    prediction: TideSeries,
    freq: str,
    log: logging.Logger,
) -> TideSeries:
    """Prediction values at whole multiples of *freq* inside its span."""
    lo = prediction.start.ceil(freq)
    hi = prediction.end.floor(freq)
    if hi < lo:
        log.warning('Prediction window is shorter than one %s step.', freq)
        return prediction.select(np.zeros(len(prediction), dtype=bool))
    return resample_to_grid(prediction, freq, start=lo, end=hi, logger=log)
