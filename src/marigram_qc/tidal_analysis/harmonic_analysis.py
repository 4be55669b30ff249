"""
Least-squares harmonic analysis of a water level series.

Fits a fixed catalogue of tidal constituents to observed heights::

    h(t) = H0 + sum_i [ a_i * f_i cos(w_i t + u_i) + b_i * f_i sin(w_i t + u_i) ]

with ``t`` in hours since a fixed epoch.  The cos/sin coefficient pairs are
converted to amplitude ``A = sqrt(a^2 + b^2)`` and phase lag
``g = atan2(b, a)``, so that the same curve reads::

    h(t) = H0 + sum_i f_i A_i cos(w_i t + u_i - g_i)

which is exactly what :func:`~marigram_qc.tidal_analysis.tidal_prediction.predict_tide`
evaluates.  ``f = 1`` and ``u = 0`` unless nodal modulation is switched on.

References
----------
- Foreman, M.G.G. (1977). Manual for Tidal Heights Analysis and Prediction.
  Pacific Marine Science Report 77-10.
- Pugh, D.T. (1987). Tides, Surges and Mean Sea-Level, ch. 4.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

import numpy as np
import pandas as pd

from .constituents import ConstituentCatalogue, get_catalogue
from .errors import EmptySeriesError, InsufficientDataError
from .nodal import nodal_factors
from .series import ConstituentFit, HarmonicModel, TideSeries, hours_since

logger = logging.getLogger(__name__)

DEFAULT_EPOCH = pd.Timestamp('1970-01-01 00:00', tz='UTC')
"""Reference time for ``t = 0`` in the harmonic model."""


@dataclass(frozen=True)
class FitOptions:
    """
    Options for :func:`harmonic_analysis`.

    Attributes
    ----------
    subtract_msl : bool
        Remove a centred running mean level (window *msl_window*) before
        fitting.  Off by default.
    msl_window : str
        Time window of the running mean, as a pandas offset string.
    nodal : bool
        Apply 18.6-year nodal amplitude/phase modulation.  Off by default.
    latitude : float, optional
        Station latitude; required when *nodal* is set.
    epoch : pd.Timestamp
        Time origin of the model.
    min_span_cycles : float
        The record must span at least this many periods of the slowest
        constituent (default 0.9).
    rayleigh_min : float, optional
        If set, every pair of neighbouring constituent frequencies must be
        separated by at least ``rayleigh_min / span``.
    """

    subtract_msl: bool = False
    msl_window: str = '30D'
    nodal: bool = False
    latitude: Optional[float] = None
    epoch: pd.Timestamp = DEFAULT_EPOCH
    min_span_cycles: float = 0.9
    rayleigh_min: Optional[float] = None


def constituent_arguments(
    time: pd.DatetimeIndex,
    names: Sequence[str],
    speeds: Sequence[float],
    epoch: pd.Timestamp,
    nodal: bool = False,
    latitude: Optional[float] = None,
) -> Iterator[tuple[np.ndarray | float, np.ndarray]]:
    """
    Yield ``(f, w*t + u)`` for each constituent at every time in *time*.

    Shared by the fit and the prediction so both use one time convention.
    *f* is the scalar ``1.0`` when nodal modulation is off.
    """
    hours = hours_since(time, epoch)
    omega = np.radians(np.asarray(speeds, dtype=float))

    if nodal:
        if latitude is None:
            raise ValueError(
                'latitude is required when nodal corrections are enabled.'
            )
        f, u, day_index = nodal_factors(time, list(names), latitude)
        for j, w in enumerate(omega):
            yield f[day_index, j], w * hours + u[day_index, j]
    else:
        for w in omega:
            yield 1.0, w * hours


def harmonic_analysis(
    series: TideSeries,
    catalogue: ConstituentCatalogue | None = None,
    options: FitOptions | None = None,
    logger: logging.Logger | None = None,
) -> HarmonicModel:
    """
    Fit a harmonic tide model to an observed series.

    Parameters
    ----------
    series : TideSeries
        Observed water levels.  Missing (``NaN``) heights are ignored.
    catalogue : ConstituentCatalogue, optional
        Constituents to fit.  Defaults to the ``'standard'`` catalogue.
    options : FitOptions, optional
        Fit options; defaults leave mean-level removal and nodal
        modulation off.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    HarmonicModel
        Mean level plus amplitude/phase per constituent, in the unit of
        *series*.

    Raises
    ------
    EmptySeriesError
        If *series* has no samples.
    InsufficientDataError
        If there are fewer finite samples than unknowns, the record is too
        short for the slowest constituent (or, with *rayleigh_min*, for
        separating neighbouring constituents), or the samples do not
        determine every unknown.
    """
    _log = logger or logging.getLogger(__name__)

    if catalogue is None:
        catalogue = get_catalogue('standard')
    if options is None:
        options = FitOptions()

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------
    if len(series) == 0:
        raise EmptySeriesError('Cannot fit a harmonic model to an empty series.')

    finite = series.finite_mask
    n_obs = int(np.count_nonzero(finite))
    n_unknowns = 2 * len(catalogue) + 1
    if n_obs < n_unknowns:
        raise InsufficientDataError(
            f"{n_obs} finite observations cannot determine {n_unknowns} "
            f"unknowns ({len(catalogue)} constituents plus mean level)."
        )

    time = series.time[finite]
    values = series.height[finite]

    span_hours = (time[-1] - time[0]) / pd.Timedelta(hours=1)
    required_hours = options.min_span_cycles * catalogue.longest_period_hours()
    if span_hours < required_hours:
        slowest = catalogue.names[int(np.argmin(catalogue.speeds))]
        raise InsufficientDataError(
            f"Record length {span_hours / 24.0:.1f} days is less than the "
            f"{required_hours / 24.0:.1f} days required to resolve {slowest}."
        )
    if options.rayleigh_min is not None:
        _check_rayleigh(catalogue, span_hours, options.rayleigh_min)

    _log.info(
        'Running harmonic analysis: %.1f-day record, %d observations, '
        "%d constituents, record class '%s'.",
        span_hours / 24.0, n_obs, len(catalogue),
        _classify_record(span_hours / 24.0),
    )

    # ------------------------------------------------------------------
    # Optional running mean level removal
    # ------------------------------------------------------------------
    if options.subtract_msl:
        running_level = _running_mean_level(time, values, options.msl_window)
        target = values - running_level
        level_offset = float(np.mean(running_level))
        _log.info(
            'Removed running mean level (%s window), mean %.4f %s.',
            options.msl_window, level_offset, series.unit,
        )
    else:
        target = values
        level_offset = 0.0

    # ------------------------------------------------------------------
    # Design matrix: [1, f cos(wt+u), f sin(wt+u), ...]
    # ------------------------------------------------------------------
    design = np.empty((n_obs, n_unknowns))
    design[:, 0] = 1.0
    arguments = constituent_arguments(
        time, catalogue.names, catalogue.speeds, options.epoch,
        nodal=options.nodal, latitude=options.latitude,
    )
    for j, (f, theta) in enumerate(arguments):
        design[:, 1 + 2 * j] = f * np.cos(theta)
        design[:, 2 + 2 * j] = f * np.sin(theta)

    coef, _, rank, _ = np.linalg.lstsq(design, target, rcond=None)
    if rank < n_unknowns:
        raise InsufficientDataError(
            f"Design matrix is rank deficient (rank {rank} of {n_unknowns}); "
            f"the sample times cannot separate the requested constituents."
        )

    rms = float(np.sqrt(np.mean((target - design @ coef) ** 2)))

    # ------------------------------------------------------------------
    # Package results
    # ------------------------------------------------------------------
    a = coef[1::2]
    b = coef[2::2]
    amplitude = np.hypot(a, b)
    phase = np.degrees(np.arctan2(b, a)) % 360.0

    fits = tuple(
        ConstituentFit(name=name, speed=speed, amplitude=float(amp),
                       phase=float(g))
        for (name, speed), amp, g in zip(catalogue, amplitude, phase)
    )
    model = HarmonicModel(
        mean_level=float(coef[0]) + level_offset,
        constituents=fits,
        fit_start=time[0],
        fit_end=time[-1],
        epoch=options.epoch,
        unit=series.unit,
        nodal=options.nodal,
        latitude=options.latitude,
        msl_removed=options.subtract_msl,
        n_observations=n_obs,
        rms_residual=rms,
    )

    _log.info(
        'Harmonic analysis complete. Mean=%.4f %s, rms residual=%.4f, '
        '%d constituents resolved.',
        model.mean_level, series.unit, rms, len(fits),
    )
    return model


def _running_mean_level(
    time: pd.DatetimeIndex,
    values: np.ndarray,
    window: str,
) -> np.ndarray:
    """Centred running mean over a time window."""
    level = pd.Series(values, index=time).rolling(
        window, center=True, min_periods=1
    ).mean()
    return level.to_numpy(dtype=float)


def _check_rayleigh(
    catalogue: ConstituentCatalogue,
    span_hours: float,
    rayleigh_min: float,
) -> None:
    """Raise if neighbouring frequencies are closer than the record allows."""
    order = np.argsort(catalogue.speeds)
    names = [catalogue.names[i] for i in order]
    freqs = np.array([catalogue.speeds[i] for i in order]) / 360.0  # cycles/h

    # The slowest constituent must also separate from the mean (f = 0).
    pairs = [('mean level', names[0], freqs[0])]
    pairs += [
        (names[i - 1], names[i], freqs[i] - freqs[i - 1])
        for i in range(1, len(names))
    ]
    unresolved = [
        f"{lo}/{hi}" for lo, hi, df in pairs if span_hours * df < rayleigh_min
    ]
    if unresolved:
        raise InsufficientDataError(
            f"Record length {span_hours / 24.0:.1f} days does not meet the "
            f"Rayleigh criterion ({rayleigh_min}) for: "
            f"{', '.join(unresolved)}."
        )


def _classify_record(duration_days: float) -> str:
    """Return a human-readable label for the record length."""
    if duration_days < 20:
        return 'short_record'
    elif duration_days < 180:
        return 'standard'
    else:
        return 'long_record'
