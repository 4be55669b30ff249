"""
Bring an independently timed series onto the prediction.

Two explicit modes:

* :func:`interpolate_to_series` evaluates a not-a-knot cubic spline through
  the dense prediction at each observation time.  It never extrapolates.
* :func:`nearest_match` pairs each observation with the reference event
  (typically a predicted high or low water) closest in time, optionally
  within a maximum distance.

Both return series stamped with the *observation* times, so the result can
be inner-joined with the observations by exact timestamp.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy.interpolate import CubicSpline

from .errors import EmptySeriesError, InterpolationRangeError
from .series import TideSeries, check_units

logger = logging.getLogger(__name__)


def interpolate_to_series(
    target: TideSeries,
    reference: TideSeries,
    name: str = 'AstroTide',
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Spline-interpolate *reference* at the timestamps of *target*.

    Parameters
    ----------
    target : TideSeries
        Series whose timestamps are wanted (e.g. digitized readings).  Its
        heights are not used; its high/low tags are carried over.
    reference : TideSeries
        Dense series to interpolate (e.g. a one-minute prediction).
        Missing reference heights are left out of the spline.
    name : str, optional
        Label of the returned series.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    TideSeries
        Interpolated heights on ``target.time`` in the reference unit.
        Where a target time coincides with a reference sample the reference
        height is returned unchanged.

    Raises
    ------
    EmptySeriesError
        If *reference* has fewer than two finite samples.
    InconsistentUnitsError
        If the two series use different units.
    InterpolationRangeError
        If any target time lies outside the span of the finite reference
        samples.
    """
    _log = logger or logging.getLogger(__name__)

    check_units(target, reference)

    finite = reference.finite_mask
    if np.count_nonzero(finite) < 2:
        raise EmptySeriesError(
            f"Reference '{reference.name or 'series'}' needs at least 2 "
            f"finite samples for interpolation."
        )
    knots = reference.time[finite]
    values = reference.height[finite]

    if len(target) == 0:
        return target.with_height([], unit=reference.unit, name=name)

    outside = (target.time < knots[0]) | (target.time > knots[-1])
    if outside.any():
        first_bad = target.time[outside][0]
        raise InterpolationRangeError(
            f"{int(outside.sum())} target times fall outside the reference "
            f"interval {knots[0]} to {knots[-1]} (first: {first_bad})."
        )

    origin = knots[0]
    x = np.asarray((knots - origin) / pd.Timedelta(hours=1), dtype=float)
    xq = np.asarray((target.time - origin) / pd.Timedelta(hours=1), dtype=float)

    spline = CubicSpline(x, values, bc_type='not-a-knot')
    height = spline(xq)

    # Exact reference values at shared timestamps.
    pos = knots.get_indexer(target.time)
    on_knot = pos >= 0
    height[on_knot] = values[pos[on_knot]]

    _log.info(
        'Interpolated %d target times from %d reference samples '
        '(%d on reference timestamps).',
        len(target), len(knots), int(on_knot.sum()),
    )
    return target.with_height(height, unit=reference.unit, name=name)


@dataclass(frozen=True, eq=False)
class NearestMatch:
    """
    Result of :func:`nearest_match`, indexed like the observations.

    Attributes
    ----------
    aligned : TideSeries
        On the observation timestamps: the matched reference height and
        kind, or ``NaN``/``None`` where no reference event was close enough.
    reference_time : pd.DatetimeIndex
        Time of the matched reference event (``NaT`` when unmatched).
    offset : pd.TimedeltaIndex
        Observation time minus matched reference time (``NaT`` when
        unmatched).
    """

    aligned: TideSeries
    reference_time: pd.DatetimeIndex
    offset: pd.TimedeltaIndex

    @property
    def matched(self) -> np.ndarray:
        return np.asarray(self.reference_time.notna())

    def to_frame(self) -> pd.DataFrame:
        frame = self.aligned.to_frame()
        frame['ReferenceTime'] = self.reference_time
        frame['Offset'] = self.offset
        return frame


def nearest_match(
    observations: TideSeries,
    reference_events: TideSeries,
    max_distance: Optional[Union[str, pd.Timedelta]] = None,
    logger: logging.Logger | None = None,
) -> NearestMatch:
    """
    Pair each observation with the reference event nearest in time.

    Ties (an observation exactly halfway between two events) go to the
    earlier event.

    Parameters
    ----------
    observations : TideSeries
        Independently timed observations.
    reference_events : TideSeries
        Reference events, e.g. ``events_to_series(extrema)``.
    max_distance : str or pd.Timedelta, optional
        Largest accepted time difference.  ``None`` (default) accepts any.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Raises
    ------
    EmptySeriesError
        If *reference_events* is empty.
    InconsistentUnitsError
        If the two series use different units.
    ValueError
        If *max_distance* is negative.
    """
    _log = logger or logging.getLogger(__name__)

    check_units(observations, reference_events)
    if len(reference_events) == 0:
        raise EmptySeriesError('No reference events to match against.')

    limit = None if max_distance is None else pd.Timedelta(max_distance)
    if limit is not None and limit < pd.Timedelta(0):
        raise ValueError(f"max_distance must be non-negative, got {limit}.")

    ref_ns = reference_events.time.as_unit('ns').asi8
    obs_ns = observations.time.as_unit('ns').asi8

    right = np.searchsorted(ref_ns, obs_ns, side='left')
    right = np.clip(right, 0, len(ref_ns) - 1)
    left = np.clip(right - 1, 0, len(ref_ns) - 1)
    d_left = np.abs(obs_ns - ref_ns[left])
    d_right = np.abs(ref_ns[right] - obs_ns)
    idx = np.where(d_right < d_left, right, left)
    distance = np.minimum(d_left, d_right)

    matched = np.ones(len(obs_ns), dtype=bool)
    if limit is not None:
        matched = distance <= limit.value

    height = np.where(matched, reference_events.height[idx], np.nan)
    if reference_events.kind is not None:
        kind = np.where(matched, reference_events.kind[idx], None)
    else:
        kind = None

    ref_time = reference_events.time[idx].where(matched)
    offset = pd.TimedeltaIndex(observations.time - ref_time)

    n_unmatched = int(np.count_nonzero(~matched))
    if n_unmatched:
        _log.warning(
            '%d of %d observations have no reference event within %s.',
            n_unmatched, len(obs_ns), limit,
        )
    _log.info(
        'Matched %d observations to %d reference events.',
        len(obs_ns) - n_unmatched, len(ref_ns),
    )

    aligned = TideSeries(
        time=observations.time,
        height=height,
        unit=reference_events.unit,
        kind=kind,
        name=reference_events.name,
    )
    return NearestMatch(aligned=aligned, reference_time=ref_time, offset=offset)
