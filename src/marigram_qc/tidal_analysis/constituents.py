"""
Tidal constituent catalogues: names and angular speeds.

Two named catalogues are provided:

* ``'nos37'`` — the 37 NOS standard constituents, in Appendix C order of
  NOAA Technical Report NOS CS 24 (Zhang et al. 2006).
* ``'standard'`` — the extended 65-constituent set used for year-long
  tide-gauge fits (long-period, diurnal through eighth-diurnal).

Speeds are in degrees per solar hour, from Schureman (1958) Special
Publication No. 98 and Foreman (1977).  A catalogue is fixed design input to
the harmonic fit, never something that is learned.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# The 37 NOS standard tidal constituents, grouped by type.
# ---------------------------------------------------------------------------

_SEMIDIURNAL = [
    'M2', 'S2', 'N2', 'K2', '2N2', 'MU2', 'NU2', 'L2', 'T2', 'R2', 'LDA2',
]

_DIURNAL = [
    'K1', 'O1', 'P1', 'Q1', 'J1', 'M1', 'OO1', '2Q1', 'RHO1',
]

_LONG_PERIOD = [
    'MF', 'MM', 'SSA', 'SA', 'MSM', 'MSF',
]

_SHALLOW_WATER = [
    'M4', 'M6', 'M8', 'MS4', 'MN4', 'MK3', 'S4', 'S6', '2MK3', '2SM2', 'MO3',
]

NOS_37_CONSTITUENTS: list[str] = (
    _SEMIDIURNAL + _DIURNAL + _LONG_PERIOD + _SHALLOW_WATER
)
"""List of the 37 NOS standard tidal constituents in Appendix C order."""

STANDARD_CONSTITUENTS: list[str] = [
    # Long-period
    'SA', 'SSA', 'MSM', 'MM', 'MSF', 'MF',
    # Diurnal
    'ALP1', '2Q1', 'SIG1', 'Q1', 'RHO1', 'O1', 'TAU1', 'BET1', 'M1',
    'CHI1', 'PI1', 'P1', 'S1', 'K1', 'PSI1', 'PHI1', 'THE1', 'J1', 'SO1',
    'OO1', 'UPS1',
    # Semidiurnal
    'OQ2', 'EPS2', '2N2', 'MU2', 'N2', 'NU2', 'M2', 'MKS2', 'LDA2', 'L2',
    'T2', 'S2', 'R2', 'K2', 'MSN2', 'ETA2',
    # Terdiurnal
    'MO3', 'M3', 'SO3', 'MK3', 'SK3',
    # Quarter-diurnal
    'MN4', 'M4', 'SN4', 'MS4', 'MK4', 'S4', 'SK4',
    # Fifth- to eighth-diurnal
    '2MK5', '2SK5', '2MN6', 'M6', '2MS6', '2MK6', '2SM6', 'MSK6', '3MK7',
    'M8',
]
"""Extended 65-constituent set, ordered by species then speed."""

PRINCIPAL_CONSTITUENTS: list[str] = ['M2', 'S2', 'N2', 'K1', 'O1']
"""Five largest constituents; resolvable from about a month of data."""

# ---------------------------------------------------------------------------
# Constituent angular speeds in degrees per hour.
# ---------------------------------------------------------------------------

CONSTITUENT_SPEEDS: dict[str, float] = {
    # Long-period
    'SA':    0.0410686,
    'SSA':   0.0821373,
    'MSM':   0.4715211,
    'MM':    0.5443747,
    'MSF':   1.0158958,
    'MF':    1.0980331,
    # Diurnal
    'ALP1': 12.3827651,
    '2Q1':  12.8542862,
    'SIG1': 12.9271398,
    'Q1':   13.3986609,
    'RHO1': 13.4715145,
    'O1':   13.9430356,
    'TAU1': 14.0251729,
    'BET1': 14.4145567,
    'M1':   14.4966939,
    'CHI1': 14.5695476,
    'PI1':  14.9178647,
    'P1':   14.9589314,
    'S1':   15.0000000,
    'K1':   15.0410686,
    'PSI1': 15.0821353,
    'PHI1': 15.1232059,
    'THE1': 15.5125897,
    'J1':   15.5854433,
    'SO1':  16.0569644,
    'OO1':  16.1391017,
    'UPS1': 16.6834764,
    # Semidiurnal
    'OQ2':  27.3416964,
    'EPS2': 27.4238337,
    '2N2':  27.8953548,
    'MU2':  27.9682084,
    'N2':   28.4397295,
    'NU2':  28.5125831,
    'M2':   28.9841042,
    'MKS2': 29.0662415,
    'LDA2': 29.4556253,
    'L2':   29.5284789,
    'T2':   29.9589333,
    'S2':   30.0000000,
    'R2':   30.0410667,
    'K2':   30.0821373,
    'MSN2': 30.5443747,
    'ETA2': 30.6265120,
    '2SM2': 31.0158958,
    # Terdiurnal
    'MO3':  42.9271398,
    '2MK3': 42.9271398,
    'M3':   43.4761563,
    'SO3':  43.9430356,
    'MK3':  44.0251729,
    'SK3':  45.0410686,
    # Quarter-diurnal
    'MN4':  57.4238337,
    'M4':   57.9682084,
    'SN4':  58.4397295,
    'MS4':  58.9841042,
    'MK4':  59.0662415,
    'S4':   60.0000000,
    'SK4':  60.0821373,
    # Higher harmonics
    '2MK5': 73.0092771,
    '2SK5': 75.0410686,
    '2MN6': 86.4079380,
    'M6':   86.9523127,
    '2MS6': 87.9682084,
    '2MK6': 88.0503457,
    '2SM6': 88.9841042,
    'MSK6': 89.0662415,
    'S6':   90.0000000,
    '3MK7': 101.9933813,
    'M8':  115.9364169,
}
"""Angular speeds (degrees/hour) for every constituent in either catalogue."""

# ---------------------------------------------------------------------------
# Alternative spellings seen in published constant tables and in other
# harmonic packages, mapped to the names used here.  Lookups are made on the
# upper-cased name, so mixed-case forms such as "Sa" or "lda2" need no entry.
# ---------------------------------------------------------------------------

CONSTITUENT_ALIASES: dict[str, str] = {
    'LAM2': 'LDA2',
    'LAMBDA2': 'LDA2',
    'RHO': 'RHO1',
    'NO1': 'M1',
    'ALPHA1': 'ALP1',
    'SIGMA1': 'SIG1',
    'THETA1': 'THE1',
    'UPSILON1': 'UPS1',
    'EPSILON2': 'EPS2',
}
"""Mapping of alternative constituent names to catalogue names."""


def normalize_constituent_name(name: str) -> str:
    """
    Normalize a constituent name to the catalogue convention.

    Parameters
    ----------
    name : str
        Constituent name as found in an external table.

    Returns
    -------
    str
        Normalized name.  Unrecognized names are returned stripped and
        upper-cased.
    """
    cleaned = name.strip().upper()
    return CONSTITUENT_ALIASES.get(cleaned, cleaned)


@dataclass(frozen=True)
class ConstituentCatalogue:
    """
    Validated, ordered list of ``(name, speed)`` design frequencies.

    Names must be unique, speeds finite and positive, and no two
    constituents may share a speed: identical frequencies produce identical
    design-matrix columns and an unsolvable fit.
    """

    names: tuple[str, ...]
    speeds: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.names) != len(self.speeds):
            raise ValueError(
                f"names ({len(self.names)}) and speeds ({len(self.speeds)}) "
                f"must have the same length."
            )
        if not self.names:
            raise ValueError('A constituent catalogue cannot be empty.')
        if len(set(self.names)) != len(self.names):
            raise ValueError('Constituent names must be unique.')
        for name, speed in zip(self.names, self.speeds):
            if not (math.isfinite(speed) and speed > 0.0):
                raise ValueError(
                    f"Constituent {name} has invalid speed {speed}."
                )
        seen: dict[float, str] = {}
        for name, speed in zip(self.names, self.speeds):
            if speed in seen:
                raise ValueError(
                    f"Constituents {seen[speed]} and {name} share the speed "
                    f"{speed} deg/h and cannot be fitted together."
                )
            seen[speed] = name

    @classmethod
    def from_names(
        cls,
        names: Iterable[str],
        speeds: dict[str, float] | None = None,
        drop_aliases: bool = False,
    ) -> 'ConstituentCatalogue':
        """
        Build a catalogue by looking each name up in a speed table.

        Parameters
        ----------
        names : iterable of str
            Constituent names (aliases and mixed case are normalized).
        speeds : dict, optional
            Speed table; defaults to :data:`CONSTITUENT_SPEEDS`.
        drop_aliases : bool, optional
            If ``True``, a constituent whose speed equals that of an earlier
            entry is dropped with a warning instead of raising.

        Raises
        ------
        ValueError
            If a name has no speed in the table.
        """
        table = CONSTITUENT_SPEEDS if speeds is None else speeds
        kept_names: list[str] = []
        kept_speeds: list[float] = []
        for raw in names:
            name = normalize_constituent_name(raw)
            if name not in table:
                raise ValueError(f"No speed known for constituent '{raw}'.")
            speed = float(table[name])
            if drop_aliases and speed in kept_speeds:
                twin = kept_names[kept_speeds.index(speed)]
                logger.warning(
                    'Dropping constituent %s: same speed as %s (%.7f deg/h).',
                    name, twin, speed,
                )
                continue
            kept_names.append(name)
            kept_speeds.append(speed)
        return cls(tuple(kept_names), tuple(kept_speeds))

    @property
    def min_speed(self) -> float:
        return min(self.speeds)

    def longest_period_hours(self) -> float:
        """Period (hours) of the slowest constituent."""
        return 360.0 / self.min_speed

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[tuple[str, float]]:
        return iter(zip(self.names, self.speeds))


CATALOGUES: dict[str, list[str]] = {
    'nos37': NOS_37_CONSTITUENTS,
    'standard': STANDARD_CONSTITUENTS,
    'principal': PRINCIPAL_CONSTITUENTS,
}
"""Named catalogues accepted by :func:`get_catalogue`."""


def get_catalogue(name: str = 'standard') -> ConstituentCatalogue:
    """
    Return one of the named catalogues.

    The NOS 37 list contains MO3 and 2MK3, which share a speed; the later
    of the two is dropped so the catalogue can be fitted.
    """
    key = name.strip().lower()
    if key not in CATALOGUES:
        raise ValueError(
            f"Unknown catalogue '{name}'; expected one of {sorted(CATALOGUES)}."
        )
    return ConstituentCatalogue.from_names(CATALOGUES[key], drop_aliases=True)
