"""
Residual statistics between observed and predicted water levels.

The observed and predicted series are joined on exact timestamp equality
(rows present in only one of them are dropped without error), residuals are
``observed - predicted``, and the result is summarised overall and per
calendar week.  Missing values never enter a statistic: a set of rows with
no usable residual yields a summary flagged ``no_data`` instead of ``NaN``
statistics.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .series import HIGH, LOW, ResidualRecord, TideSeries, check_units, to_utc_index

logger = logging.getLogger(__name__)

WEEK_SCHEMES = ('ordinal', 'iso')
"""
``'ordinal'``: week ``(day_of_year - 1) // 7 + 1`` of the calendar year
(1-53, never crossing into another year).  ``'iso'``: ISO-8601 week and
ISO year.
"""


def join_on_timestamp(
    observed: TideSeries,
    predicted: TideSeries,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Inner-join two series on identical timestamps.

    Returns
    -------
    pd.DataFrame
        ``DateTime``, ``Observed``, ``Predicted`` and, when either input is
        tagged, ``Kind`` (taken from *observed* if it carries tags,
        otherwise from *predicted*).  Missing heights are kept as ``NaN``.

    Raises
    ------
    InconsistentUnitsError
        If the series use different units.
    """
    _log = logger or logging.getLogger(__name__)

    check_units(observed, predicted)

    obs = pd.DataFrame({
        'DateTime': observed.time.as_unit('ns'), 'Observed': observed.height,
    })
    pred = pd.DataFrame({
        'DateTime': predicted.time.as_unit('ns'), 'Predicted': predicted.height,
    })
    tagged = observed if observed.kind is not None else predicted
    if tagged.kind is not None:
        target = obs if tagged is observed else pred
        target['Kind'] = tagged.kind

    joined = obs.merge(pred, on='DateTime', how='inner')
    joined = joined.sort_values('DateTime', kind='stable').reset_index(drop=True)

    _log.info(
        'Joined %d observed and %d predicted samples on timestamp: %d shared.',
        len(observed), len(predicted), len(joined),
    )
    return joined


def compute_residuals(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Add ``Residual = Observed - Predicted``.

    Only rows where both values are present are returned.
    """
    valid = joined.dropna(subset=['Observed', 'Predicted']).copy()
    valid['Residual'] = valid['Observed'] - valid['Predicted']
    return valid.reset_index(drop=True)


def add_event_intervals(frame: pd.DataFrame) -> pd.DataFrame:
    """Add ``Interval``: minutes from each row to the next (last row ``NaN``)."""
    out = frame.copy()
    out['Interval'] = (
        out['DateTime'].shift(-1) - out['DateTime']
    ) / pd.Timedelta(minutes=1)
    return out


@dataclass(frozen=True)
class ResidualSummary:
    """
    Residual statistics over one set of joined rows.

    When :attr:`no_data` is true the numeric statistics are ``None``.
    """

    count: int
    mean: Optional[float]
    median: Optional[float]
    max: Optional[float]
    min: Optional[float]
    top_residuals: tuple[ResidualRecord, ...]
    n_high: int = 0
    n_low: int = 0

    @property
    def no_data(self) -> bool:
        return self.count == 0

    def to_dict(self) -> dict:
        return {
            'count': self.count,
            'mean': self.mean,
            'median': self.median,
            'max': self.max,
            'min': self.min,
            'n_high': self.n_high,
            'n_low': self.n_low,
            'no_data': self.no_data,
        }


def summarize_residuals(
    joined: pd.DataFrame,
    top_n: int = 5,
    logger: logging.Logger | None = None,
) -> ResidualSummary:
    """
    Summarise residuals of a joined frame.

    Parameters
    ----------
    joined : pd.DataFrame
        Output of :func:`join_on_timestamp` (a ``Residual`` column is
        computed when absent).
    top_n : int, optional
        Number of largest-magnitude residuals to report (default 5).  Ties
        are ordered by time, earliest first.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    ResidualSummary
        ``n_high``/``n_low`` count every tagged input row, including rows
        without a usable residual.
    """
    _log = logger or logging.getLogger(__name__)

    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}.")

    n_high, n_low = _count_kinds(joined)
    valid = joined if 'Residual' in joined.columns else compute_residuals(joined)
    valid = valid.dropna(subset=['Observed', 'Predicted', 'Residual'])

    if valid.empty:
        _log.info('No valid residuals among %d rows.', len(joined))
        return ResidualSummary(
            count=0, mean=None, median=None, max=None, min=None,
            top_residuals=(), n_high=n_high, n_low=n_low,
        )

    residual = valid['Residual'].to_numpy(dtype=float)
    valid = valid.sort_values('DateTime', kind='stable')
    magnitude = valid['Residual'].abs().to_numpy(dtype=float)
    order = np.argsort(-magnitude, kind='stable')[:top_n]
    top = tuple(_to_record(valid.iloc[i]) for i in order)

    summary = ResidualSummary(
        count=len(residual),
        mean=float(np.mean(residual)),
        median=float(np.median(residual)),
        max=float(np.max(residual)),
        min=float(np.min(residual)),
        top_residuals=top,
        n_high=n_high,
        n_low=n_low,
    )
    _log.debug(
        'Residual summary: n=%d mean=%.4f median=%.4f max=%.4f min=%.4f.',
        summary.count, summary.mean, summary.median, summary.max, summary.min,
    )
    return summary


def _count_kinds(frame: pd.DataFrame) -> tuple[int, int]:
    if 'Kind' not in frame.columns:
        return 0, 0
    kinds = frame['Kind']
    return int((kinds == HIGH).sum()), int((kinds == LOW).sum())


def _to_record(row: pd.Series) -> ResidualRecord:
    kind = row['Kind'] if 'Kind' in row.index else None
    if not isinstance(kind, str):
        kind = None
    return ResidualRecord(
        time=row['DateTime'],
        observed=float(row['Observed']),
        predicted=float(row['Predicted']),
        residual=float(row['Residual']),
        kind=kind,
    )


# ----------------------------------------------------------------------
# Weekly partitioning
# ----------------------------------------------------------------------

def week_number(
    time: object,
    scheme: str = 'ordinal',
) -> tuple[np.ndarray, np.ndarray]:
    """
    Week key of each timestamp.

    Returns
    -------
    (year, week) : tuple of np.ndarray
        Integer arrays.  For ``'iso'`` the year is the ISO year.
    """
    if scheme not in WEEK_SCHEMES:
        raise ValueError(
            f"Unknown week scheme '{scheme}'; expected one of {WEEK_SCHEMES}."
        )
    index = to_utc_index(time)
    if scheme == 'iso':
        iso = index.isocalendar()
        return (
            iso['year'].to_numpy(dtype=int),
            iso['week'].to_numpy(dtype=int),
        )
    year = np.asarray(index.year, dtype=int)
    week = (np.asarray(index.dayofyear, dtype=int) - 1) // 7 + 1
    return year, week


def weeks_between(
    start: object,
    end: object,
    scheme: str = 'ordinal',
) -> list[tuple[int, int]]:
    """Every ``(year, week)`` key touched by the days from *start* to *end*."""
    days = pd.date_range(
        to_utc_index([start])[0].normalize(),
        to_utc_index([end])[0].normalize(),
        freq='1D',
    )
    year, week = week_number(days, scheme)
    return list(dict.fromkeys(zip(year.tolist(), week.tolist())))


@dataclass(frozen=True, eq=False)
class WeeklyBucket:
    """Rows of a joined frame that fall in one week."""

    year: int
    week: int
    frame: pd.DataFrame


@dataclass(frozen=True)
class WeeklySummary:
    """:class:`ResidualSummary` for one week."""

    year: int
    week: int
    summary: ResidualSummary

    @property
    def no_data(self) -> bool:
        return self.summary.no_data


def partition_by_week(
    joined: pd.DataFrame,
    scheme: str = 'ordinal',
) -> list[WeeklyBucket]:
    """Split *joined* into non-empty weekly buckets in chronological order."""
    if joined.empty:
        return []
    year, week = week_number(joined['DateTime'], scheme)
    buckets = []
    for (y, w), rows in joined.groupby([year, week], sort=True):
        buckets.append(WeeklyBucket(
            year=int(y), week=int(w), frame=rows.reset_index(drop=True),
        ))
    return buckets


def summarize_by_week(
    joined: pd.DataFrame,
    top_n: int = 5,
    scheme: str = 'ordinal',
    weeks: Optional[Iterable[tuple[int, int]]] = None,
    logger: logging.Logger | None = None,
) -> list[WeeklySummary]:
    """
    One :class:`ResidualSummary` per week.

    Parameters
    ----------
    joined : pd.DataFrame
        Output of :func:`join_on_timestamp` or :func:`compute_residuals`.
    top_n : int, optional
        Largest residuals reported per week (default 5).
    scheme : str, optional
        Week numbering, see :data:`WEEK_SCHEMES`.
    weeks : iterable of (year, week), optional
        Weeks to report, in the given order.  Weeks with no rows are
        reported as no data.  By default every week present in *joined*.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.
    """
    _log = logger or logging.getLogger(__name__)

    buckets = {(b.year, b.week): b for b in partition_by_week(joined, scheme)}
    keys = list(buckets) if weeks is None else [
        (int(y), int(w)) for y, w in weeks
    ]

    summaries = []
    for key in keys:
        bucket = buckets.get(key)
        frame = joined.iloc[0:0] if bucket is None else bucket.frame
        summary = summarize_residuals(frame, top_n=top_n, logger=_log)
        summaries.append(WeeklySummary(year=key[0], week=key[1], summary=summary))

    n_empty = sum(1 for s in summaries if s.no_data)
    _log.info(
        'Weekly residual summary: %d weeks, %d with no data.',
        len(summaries), n_empty,
    )
    return summaries
