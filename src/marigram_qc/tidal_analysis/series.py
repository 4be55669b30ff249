"""
Immutable value types passed between the pipeline stages.

A :class:`TideSeries` is a strictly time-ordered, UTC-stamped sequence of
heights in a single unit.  Missing heights are carried as ``NaN`` and are
never coerced to zero.  Fitting produces a :class:`HarmonicModel`; the
extrema detector produces :class:`ExtremaEvent` lists; the residual
analyzer reports :class:`ResidualRecord` values.  None of these objects is
modified after construction: derived results are always new values.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import InconsistentUnitsError

logger = logging.getLogger(__name__)

HIGH = 'high'
LOW = 'low'

METRES_PER_FOOT = 0.3048

UNIT_ALIASES: dict[str, str] = {
    'm': 'm',
    'meter': 'm',
    'meters': 'm',
    'metre': 'm',
    'metres': 'm',
    'ft': 'ft',
    'foot': 'ft',
    'feet': 'ft',
}
"""Accepted spellings of the two supported height units."""

KIND_LABELS: dict[str, str] = {
    'h': HIGH,
    'high': HIGH,
    'hw': HIGH,
    'l': LOW,
    'low': LOW,
    'lw': LOW,
}
"""Accepted high/low tags (compared case-insensitively)."""


def normalize_unit(unit: str) -> str:
    """Return the canonical unit code (``'m'`` or ``'ft'``) for *unit*."""
    cleaned = str(unit).strip().lower()
    if cleaned not in UNIT_ALIASES:
        raise ValueError(
            f"Unsupported height unit '{unit}'; expected one of "
            f"{sorted(set(UNIT_ALIASES.values()))}."
        )
    return UNIT_ALIASES[cleaned]


def normalize_kind(label: object) -> Optional[str]:
    """Map a high/low tag to ``'high'``/``'low'``; missing tags give ``None``."""
    if label is None:
        return None
    if isinstance(label, float) and np.isnan(label):
        return None
    cleaned = str(label).strip().lower()
    if cleaned == '':
        return None
    if cleaned not in KIND_LABELS:
        raise ValueError(f"Unrecognised high/low label '{label}'.")
    return KIND_LABELS[cleaned]


def to_utc_index(time: object) -> pd.DatetimeIndex:
    """Coerce *time* to a UTC :class:`pandas.DatetimeIndex`."""
    index = pd.DatetimeIndex(time)
    if index.tz is None:
        return index.tz_localize('UTC')
    return index.tz_convert('UTC')


def _readonly(values: np.ndarray) -> np.ndarray:
    values.setflags(write=False)
    return values


@dataclass(frozen=True, eq=False)
class TideSeries:
    """
    Ordered ``(timestamp, height)`` samples in one height unit.

    Attributes
    ----------
    time : pd.DatetimeIndex
        Sample times.  Naive input is taken to be UTC; aware input is
        converted to UTC.  Must be strictly increasing.
    height : np.ndarray
        Heights (float64).  ``NaN`` marks a missing observation.
    unit : str
        ``'m'`` or ``'ft'`` (common spellings are accepted).
    kind : np.ndarray, optional
        Per-sample ``'high'``/``'low'``/``None`` tags, e.g. for digitized
        high and low water readings.
    name : str
        Free-form label used in log messages and reports.
    """

    time: pd.DatetimeIndex
    height: np.ndarray
    unit: str = 'm'
    kind: Optional[np.ndarray] = None
    name: str = ''

    def __post_init__(self) -> None:
        time = to_utc_index(self.time)
        height = np.array(self.height, dtype=float)

        if height.ndim != 1:
            raise ValueError('height must be one-dimensional.')
        if len(time) != len(height):
            raise ValueError(
                f"time ({len(time)}) and height ({len(height)}) must have "
                f"the same length."
            )
        if len(time) > 1 and not (
            time.is_monotonic_increasing and time.is_unique
        ):
            raise ValueError(
                'time must be strictly increasing (sorted, no duplicate '
                'timestamps).'
            )

        kind = self.kind
        if kind is not None:
            kind = np.array([normalize_kind(k) for k in kind], dtype=object)
            if len(kind) != len(time):
                raise ValueError(
                    f"kind ({len(kind)}) and time ({len(time)}) must have "
                    f"the same length."
                )
            kind = _readonly(kind)

        object.__setattr__(self, 'time', time)
        object.__setattr__(self, 'height', _readonly(height))
        object.__setattr__(self, 'unit', normalize_unit(self.unit))
        object.__setattr__(self, 'kind', kind)

    def __len__(self) -> int:
        return len(self.time)

    @property
    def start(self) -> pd.Timestamp:
        return self.time[0]

    @property
    def end(self) -> pd.Timestamp:
        return self.time[-1]

    @property
    def span_hours(self) -> float:
        """Elapsed hours between the first and last sample."""
        if len(self) < 2:
            return 0.0
        return (self.end - self.start) / pd.Timedelta(hours=1)

    @property
    def finite_mask(self) -> np.ndarray:
        return np.isfinite(self.height)

    @property
    def n_finite(self) -> int:
        return int(np.count_nonzero(self.finite_mask))

    def with_height(
        self,
        height: Sequence[float],
        unit: Optional[str] = None,
        kind: object = 'keep',
        name: Optional[str] = None,
    ) -> 'TideSeries':
        """Return a new series on the same timestamps with new heights."""
        return TideSeries(
            time=self.time,
            height=height,
            unit=self.unit if unit is None else unit,
            kind=self.kind if isinstance(kind, str) and kind == 'keep' else kind,
            name=self.name if name is None else name,
        )

    def select(self, mask: np.ndarray) -> 'TideSeries':
        """Return the samples where boolean *mask* is true."""
        mask = np.asarray(mask, dtype=bool)
        return TideSeries(
            time=self.time[mask],
            height=self.height[mask],
            unit=self.unit,
            kind=None if self.kind is None else self.kind[mask],
            name=self.name,
        )

    def between(self, start: object, end: object) -> 'TideSeries':
        """Return the samples with ``start <= time <= end``."""
        lo = to_utc_index([start])[0]
        hi = to_utc_index([end])[0]
        return self.select((self.time >= lo) & (self.time <= hi))

    def to_unit(self, unit: str) -> 'TideSeries':
        """Return the series converted to *unit* (exact foot/metre factor)."""
        target = normalize_unit(unit)
        if target == self.unit:
            return self
        factor = METRES_PER_FOOT if target == 'm' else 1.0 / METRES_PER_FOOT
        return self.with_height(self.height * factor, unit=target)

    def to_frame(self) -> pd.DataFrame:
        """``DateTime``/``Height`` (and ``Kind`` when tagged) columns."""
        frame = pd.DataFrame({'DateTime': self.time, 'Height': self.height})
        if self.kind is not None:
            frame['Kind'] = self.kind
        return frame


def hours_since(time: pd.DatetimeIndex, epoch: pd.Timestamp) -> np.ndarray:
    """Float hours from *epoch* to each element of *time* (both UTC)."""
    time = to_utc_index(time)
    epoch = to_utc_index([epoch])[0]
    return np.asarray((time - epoch) / pd.Timedelta(hours=1), dtype=float)


def check_units(*series: TideSeries) -> str:
    """
    Verify that all *series* share one height unit and return it.

    Raises
    ------
    InconsistentUnitsError
        If two series carry different units.
    """
    units = {s.unit for s in series}
    if len(units) > 1:
        labels = ', '.join(
            f"{s.name or 'series'} [{s.unit}]" for s in series
        )
        raise InconsistentUnitsError(
            f"Series use different height units: {labels}."
        )
    return units.pop() if units else ''


@dataclass(frozen=True)
class ConstituentFit:
    """Fitted amplitude and phase lag (degrees) of one constituent."""

    name: str
    speed: float
    amplitude: float
    phase: float

    def __post_init__(self) -> None:
        if not self.amplitude >= 0.0:
            raise ValueError(
                f"{self.name}: amplitude must be non-negative, got "
                f"{self.amplitude}."
            )
        object.__setattr__(self, 'phase', float(self.phase) % 360.0)


@dataclass(frozen=True)
class HarmonicModel:
    """
    Result of a harmonic fit.

    The model value at hour ``t`` after :attr:`epoch` is::

        mean_level + sum_i f_i * A_i * cos(w_i * t + u_i - g_i)

    with ``w_i`` the constituent speed in radians/hour and phases in
    degrees.  ``f_i = 1`` and ``u_i = 0`` unless :attr:`nodal` is set.
    :attr:`fit_start` and :attr:`fit_end` are ``None`` for models built
    from published constants rather than fitted.
    """

    mean_level: float
    constituents: tuple[ConstituentFit, ...]
    fit_start: Optional[pd.Timestamp]
    fit_end: Optional[pd.Timestamp]
    epoch: pd.Timestamp
    unit: str = 'm'
    nodal: bool = False
    latitude: Optional[float] = None
    msl_removed: bool = False
    n_observations: int = 0
    rms_residual: float = float('nan')

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.constituents]

    @property
    def speeds(self) -> np.ndarray:
        return np.array([c.speed for c in self.constituents], dtype=float)

    @property
    def amplitudes(self) -> dict[str, float]:
        return {c.name: c.amplitude for c in self.constituents}

    @property
    def phases(self) -> dict[str, float]:
        return {c.name: c.phase for c in self.constituents}

    def to_frame(self) -> pd.DataFrame:
        """``Name``, ``Speed``, ``Amplitude``, ``Phase`` per constituent."""
        return pd.DataFrame({
            'Name': self.names,
            'Speed': self.speeds,
            'Amplitude': [c.amplitude for c in self.constituents],
            'Phase': [c.phase for c in self.constituents],
        })


@dataclass(frozen=True)
class ExtremaEvent:
    """A high or low water turning point on a predicted curve."""

    time: pd.Timestamp
    height: float
    kind: str

    def __post_init__(self) -> None:
        if self.kind not in (HIGH, LOW):
            raise ValueError(f"kind must be 'high' or 'low', got '{self.kind}'.")


def events_to_series(
    events: Iterable[ExtremaEvent],
    unit: str = 'm',
    name: str = 'extrema',
) -> TideSeries:
    """Pack an ordered event list into a kind-tagged :class:`TideSeries`."""
    events = list(events)
    return TideSeries(
        time=[e.time for e in events],
        height=[e.height for e in events],
        unit=unit,
        kind=[e.kind for e in events],
        name=name,
    )


@dataclass(frozen=True)
class ResidualRecord:
    """One observed-minus-predicted comparison at a shared timestamp."""

    time: pd.Timestamp
    observed: float
    predicted: float
    residual: float
    kind: Optional[str] = field(default=None)
