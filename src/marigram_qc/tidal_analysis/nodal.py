"""
Nodal (18.6-year) amplitude and phase modulation factors.

Only used when a fit or prediction is run with ``nodal=True``; the default
pipeline leaves nodal modulation off.  The factors come from UTide's
``FUV`` routine with the Greenwich equilibrium argument disabled, so the
fitted phases stay relative to the model epoch.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from utide._ut_constants import ut_constants
from utide.harmonics import FUV

logger = logging.getLogger(__name__)

# Julian date of 0001-01-01T00:00 less one day: subtracting it gives the
# proleptic Gregorian ordinal day count UTide works in.
_ORDINAL_JD_OFFSET = 1721424.5

# Catalogue names that UTide spells differently.
_UTIDE_NAMES: dict[str, str] = {
    'M1': 'NO1',
}


def utide_constituent_indices(names: list[str]) -> np.ndarray:
    """
    Look up each constituent in UTide's constituent table.

    Raises
    ------
    ValueError
        If a constituent has no entry in the UTide table.
    """
    const_names = [n.strip() for n in ut_constants['const']['name']]
    indices = []
    for name in names:
        utide_name = _UTIDE_NAMES.get(name, name)
        if utide_name not in const_names:
            raise ValueError(
                f"No nodal correction available for constituent '{name}'."
            )
        indices.append(const_names.index(utide_name))
    return np.array(indices)


def nodal_factors(
    time: pd.DatetimeIndex,
    names: list[str],
    latitude: float,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Nodal amplitude factors *f* and phase corrections *u*, one row per day.

    Factors change by well under 0.1 % per day, so they are evaluated at
    noon of each distinct UTC day in *time* and shared by every sample on
    that day.

    Parameters
    ----------
    time : pd.DatetimeIndex
        Sample times (UTC).
    names : list of str
        Constituent names in model order.
    latitude : float
        Station latitude in decimal degrees.

    Returns
    -------
    f : np.ndarray
        Amplitude factors, shape ``(n_days, n_constituents)``.
    u : np.ndarray
        Phase corrections in radians, same shape as *f*.
    day_index : np.ndarray
        For each element of *time*, its row in *f* and *u*.
    """
    ordinal = np.asarray(time.to_julian_date(), dtype=float) - _ORDINAL_JD_OFFSET
    days, day_index = np.unique(np.floor(ordinal), return_inverse=True)
    day_centres = days + 0.5

    lind = utide_constituent_indices(names)
    # ngflgs: [nodsatlint, nodsatnone, gwchlint, gwchnone]
    f, u, _ = FUV(
        day_centres,
        float(np.mean(day_centres)),
        lind,
        latitude,
        [False, False, False, True],
    )
    f = np.atleast_2d(np.asarray(f, dtype=float))
    u = np.atleast_2d(np.asarray(u, dtype=float)) * 2.0 * np.pi

    logger.debug(
        'Nodal factors for %d constituents over %d days (lat=%.2f).',
        len(names), len(days), latitude,
    )
    return f, u, day_index.ravel()
