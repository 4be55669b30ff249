"""
High and low water extraction from a dense predicted curve.

A sample is a high water when it is at least as high as both neighbours
and strictly higher than one of them; low water is the mirror rule.  The
first and last samples have only one neighbour and are never reported.
Flat tops and noise can produce several highs (or lows) in a row; each
such run is collapsed to its most extreme sample so that the returned
events always alternate high/low.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .errors import EmptySeriesError
from .series import HIGH, LOW, ExtremaEvent, TideSeries

logger = logging.getLogger(__name__)

# Relative spread of sample intervals tolerated before warning.
_SPACING_TOLERANCE = 0.01


def extract_water_level_extrema(
    series: TideSeries,
    logger: logging.Logger | None = None,
) -> list[ExtremaEvent]:
    """
    Extract alternating high and low water events from *series*.

    Parameters
    ----------
    series : TideSeries
        Dense, regularly spaced predicted water levels with no missing
        heights.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of ExtremaEvent
        Events in time order with strictly alternating ``kind``.  Fewer
        than three samples give an empty list.

    Raises
    ------
    EmptySeriesError
        If *series* has no samples.
    ValueError
        If any height is missing or non-finite.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) == 0:
        raise EmptySeriesError('Cannot extract extrema from an empty series.')
    if series.n_finite != len(series):
        raise ValueError(
            f"{len(series) - series.n_finite} non-finite heights in "
            f"'{series.name or 'series'}'; extrema need a complete curve."
        )
    if len(series) < 3:
        _log.debug('Fewer than 3 samples; no extrema possible.')
        return []

    _check_spacing(series.time, _log)

    h = series.height
    rise = h[1:-1] - h[:-2]   # change from the previous sample
    fall = h[1:-1] - h[2:]    # drop to the next sample

    is_high = (rise >= 0) & (fall >= 0) & ((rise > 0) | (fall > 0))
    is_low = (rise <= 0) & (fall <= 0) & ((rise < 0) | (fall < 0))

    candidates = np.flatnonzero(is_high | is_low) + 1
    kinds = np.where(is_high[candidates - 1], HIGH, LOW)

    kept = _collapse_runs(h, candidates, kinds)
    events = [
        ExtremaEvent(time=series.time[i], height=float(h[i]), kind=k)
        for i, k in kept
    ]

    n_high = sum(1 for e in events if e.kind == HIGH)
    _log.info(
        'Extrema extraction: %d HW, %d LW from %d samples '
        '(%d raw detections collapsed).',
        n_high, len(events) - n_high, len(series), len(candidates) - len(kept),
    )
    return events


def _collapse_runs(
    height: np.ndarray,
    candidates: np.ndarray,
    kinds: np.ndarray,
) -> list[tuple[int, str]]:
    """Reduce consecutive same-kind detections to the most extreme one."""
    kept: list[tuple[int, str]] = []
    for i, kind in zip(candidates, kinds):
        if kept and kept[-1][1] == kind:
            j = kept[-1][0]
            higher = height[i] > height[j]
            if (kind == HIGH and higher) or (
                kind == LOW and height[i] < height[j]
            ):
                kept[-1] = (int(i), str(kind))
            continue
        kept.append((int(i), str(kind)))
    return kept


def _check_spacing(time: pd.DatetimeIndex, log: logging.Logger) -> None:
    step = time[1:] - time[:-1]
    shortest, longest = step.min(), step.max()
    if shortest * (1.0 + _SPACING_TOLERANCE) < longest:
        log.warning(
            'Extrema input is irregularly spaced (steps %s to %s); '
            'turning points may be displaced.',
            shortest, longest,
        )


def extrema_to_frame(events: list[ExtremaEvent]) -> pd.DataFrame:
    """``DateTime``, ``Height``, ``Kind`` columns, one row per event."""
    return pd.DataFrame({
        'DateTime': pd.DatetimeIndex([e.time for e in events], tz='UTC'),
        'Height': [e.height for e in events],
        'Kind': [e.kind for e in events],
    })
