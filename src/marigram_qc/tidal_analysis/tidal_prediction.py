"""
Tidal prediction from harmonic constants.

Evaluates the harmonic prediction formula::

    h = H0 + sum{ f * A * cos[w*t + u - g] }

on an arbitrary, strictly increasing time grid, using the same epoch and
time unit as :func:`~marigram_qc.tidal_analysis.harmonic_analysis.harmonic_analysis`.

Two entry points are provided:

* :func:`predict_tide` — predict from a fitted :class:`HarmonicModel`.
* :func:`predict_from_constants` — predict from plain amplitude/phase
  dictionaries (e.g. published harmonic constants for a port).

Prediction outside the fitting window is plain extrapolation of the
periodic model; it is allowed and only noted in the debug log.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from .constituents import CONSTITUENT_SPEEDS, ConstituentCatalogue
from .errors import EmptySeriesError
from .harmonic_analysis import DEFAULT_EPOCH, constituent_arguments
from .series import ConstituentFit, HarmonicModel, TideSeries, to_utc_index

logger = logging.getLogger(__name__)


def predict_tide(
    model: HarmonicModel,
    time: Union[pd.DatetimeIndex, TideSeries],
    name: str = 'prediction',
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Generate tidal predictions from a harmonic model.

    Parameters
    ----------
    model : HarmonicModel
        Model from :func:`harmonic_analysis` or
        :func:`build_model_from_constants`.
    time : pd.DatetimeIndex or TideSeries
        Prediction times (UTC), strictly increasing.  A series supplies
        its own timestamps.
    name : str, optional
        Label of the returned series.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    TideSeries
        Predicted heights at every requested time, in the model's unit.

    Raises
    ------
    EmptySeriesError
        If *time* is empty.
    ValueError
        If *time* is not strictly increasing.
    """
    _log = logger or logging.getLogger(__name__)

    grid = time.time if isinstance(time, TideSeries) else to_utc_index(time)
    if len(grid) == 0:
        raise EmptySeriesError('Cannot predict on an empty time grid.')
    if not (grid.is_monotonic_increasing and grid.is_unique):
        raise ValueError('Prediction times must be strictly increasing.')

    _log.info(
        'Generating tidal predictions for %d time steps (%d constituents).',
        len(grid), len(model.constituents),
    )
    if model.fit_start is not None and model.fit_end is not None:
        outside = int(np.count_nonzero(
            (grid < model.fit_start) | (grid > model.fit_end)
        ))
        if outside:
            _log.debug(
                'Extrapolating %d of %d prediction times outside the fit '
                'window %s to %s.',
                outside, len(grid), model.fit_start, model.fit_end,
            )

    height = np.full(len(grid), model.mean_level, dtype=float)
    arguments = constituent_arguments(
        grid, model.names, model.speeds, model.epoch,
        nodal=model.nodal, latitude=model.latitude,
    )
    for constituent, (f, theta) in zip(model.constituents, arguments):
        height += f * constituent.amplitude * np.cos(
            theta - np.radians(constituent.phase)
        )

    return TideSeries(time=grid, height=height, unit=model.unit, name=name)


def predict_from_constants(
    time: Union[pd.DatetimeIndex, TideSeries],
    amplitudes: dict[str, float],
    phases: dict[str, float],
    mean_level: float,
    speeds: dict[str, float] | None = None,
    unit: str = 'm',
    epoch: pd.Timestamp = DEFAULT_EPOCH,
    nodal: bool = False,
    latitude: Optional[float] = None,
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Generate predictions from amplitude/phase dictionaries.

    Parameters
    ----------
    time : pd.DatetimeIndex or TideSeries
        Prediction times (UTC).
    amplitudes : dict
        ``{constituent_name: amplitude}`` in *unit*.
    phases : dict
        ``{constituent_name: phase_lag}`` in degrees relative to *epoch*.
    mean_level : float
        Mean water level H0.
    speeds : dict, optional
        ``{constituent_name: speed}`` in degrees/hour; defaults to
        :data:`~marigram_qc.tidal_analysis.constituents.CONSTITUENT_SPEEDS`.
    unit : str, optional
        Height unit of the constants (default ``"m"``).
    epoch : pd.Timestamp, optional
        Time origin the phases refer to.
    nodal : bool, optional
        Apply nodal modulation (default ``False``).
    latitude : float, optional
        Station latitude, required with *nodal*.
    logger : logging.Logger, optional
        Logger instance.

    Returns
    -------
    TideSeries
        Predicted tidal heights.
    """
    model = build_model_from_constants(
        amplitudes, phases, mean_level, speeds=speeds, unit=unit,
        epoch=epoch, nodal=nodal, latitude=latitude,
    )
    return predict_tide(model, time, logger=logger)


def build_model_from_constants(
    amplitudes: dict[str, float],
    phases: dict[str, float],
    mean_level: float,
    speeds: dict[str, float] | None = None,
    unit: str = 'm',
    epoch: pd.Timestamp = DEFAULT_EPOCH,
    nodal: bool = False,
    latitude: Optional[float] = None,
) -> HarmonicModel:
    """
    Build a :class:`HarmonicModel` from amplitude and phase dictionaries.

    Only constituents present in both dictionaries are used, in the order
    they appear in *amplitudes*.

    Raises
    ------
    ValueError
        If the dictionaries share no constituent, or a constituent has no
        known speed.
    """
    names = [n for n in amplitudes if n in phases]
    if not names:
        raise ValueError('No common constituents found in amplitudes and phases.')

    catalogue = ConstituentCatalogue.from_names(
        names, speeds=CONSTITUENT_SPEEDS if speeds is None else speeds,
    )
    fits = tuple(
        ConstituentFit(
            name=canonical,
            speed=speed,
            amplitude=float(amplitudes[raw]),
            phase=float(phases[raw]),
        )
        for raw, (canonical, speed) in zip(names, catalogue)
    )
    return HarmonicModel(
        mean_level=float(mean_level),
        constituents=fits,
        fit_start=None,
        fit_end=None,
        epoch=to_utc_index([epoch])[0],
        unit=unit,
        nodal=nodal,
        latitude=latitude,
    )
