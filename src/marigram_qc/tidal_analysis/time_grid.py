"""
Regular time grids and grid resampling.

Builds the dense prediction grid (typically one-minute steps over a year)
and places an existing series onto a coarser regular grid (typically hourly)
by exact timestamp matching.  No gap filling is done here: grid slots with
no matching sample stay ``NaN``.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from pandas.tseries.frequencies import to_offset

from .errors import EmptySeriesError
from .series import TideSeries, to_utc_index

logger = logging.getLogger(__name__)


def build_time_grid(
    start: object,
    end: object,
    freq: str = '1min',
) -> pd.DatetimeIndex:
    """
    Build an inclusive, regularly spaced UTC time grid.

    Parameters
    ----------
    start, end : datetime-like
        First and last grid times.  Naive values are taken to be UTC.
    freq : str, optional
        Grid step as a pandas frequency string (default ``"1min"``).

    Returns
    -------
    pd.DatetimeIndex
        Grid from *start* to *end* (end included when it falls on a step).

    Raises
    ------
    ValueError
        If *end* precedes *start* or *freq* is not a positive step.
    """
    lo, hi = to_utc_index([start, end])
    if hi < lo:
        raise ValueError(f"end ({hi}) must not precede start ({lo}).")
    try:
        step = pd.Timedelta(to_offset(freq))
    except ValueError:
        raise ValueError(
            f"freq must be a fixed time step, got '{freq}'."
        ) from None
    if step <= pd.Timedelta(0):
        raise ValueError(f"freq must be a positive step, got '{freq}'.")
    return pd.date_range(start=lo, end=hi, freq=freq)


def resample_to_grid(
    series: TideSeries,
    freq: str = '1h',
    start: object | None = None,
    end: object | None = None,
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Place *series* onto a regular grid by exact timestamp (left join).

    Used to thin a dense one-minute prediction to hourly values for
    persistence.  Grid times without an identical sample time in *series*
    are ``NaN``; nothing is interpolated.

    Parameters
    ----------
    series : TideSeries
        Source series.
    freq : str, optional
        Grid step (default ``"1h"``).
    start, end : datetime-like, optional
        Grid bounds; default to the first and last sample of *series*.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    TideSeries
        Series on the regular grid, same unit as *series*.

    Raises
    ------
    EmptySeriesError
        If *series* has no samples and no explicit bounds were given.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) == 0 and (start is None or end is None):
        raise EmptySeriesError('Cannot resample an empty series.')

    grid = build_time_grid(
        series.start if start is None else start,
        series.end if end is None else end,
        freq,
    )
    reindexed = pd.Series(series.height, index=series.time).reindex(grid)

    n_missing = int(reindexed.isna().sum())
    _log.info(
        'Resampled %d samples to %d-point %s grid; %d grid slots empty.',
        len(series), len(grid), freq, n_missing,
    )
    return TideSeries(
        time=grid,
        height=np.asarray(reindexed.values, dtype=float),
        unit=series.unit,
        name=series.name,
    )
