"""
Load tide series from delimited text and spreadsheet files.

Every reader goes through :func:`series_from_frame`, which applies a
:class:`SeriesSchema` to a raw table and enforces what the analysis core
expects of a series: UTC timestamps, strictly increasing, no duplicates,
one declared unit and normalised high/low tags.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd

from marigram_qc.tidal_analysis.series import KIND_LABELS, TideSeries, normalize_kind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesSchema:
    """
    Column mapping of a raw table.

    Attributes
    ----------
    time_column : str
        Column holding timestamps.
    height_column : str
        Column holding heights.
    unit : str
        Height unit of *height_column*.
    kind_column : str, optional
        Column holding high/low tags.
    time_format : str, optional
        ``strftime`` format of text timestamps; parsed leniently if unset.
    timezone : str
        Zone of naive timestamps (converted to UTC).
    kind_labels : dict
        Extra tag spellings mapped to ``'high'``/``'low'``.
    name : str
        Label given to the series.
    """

    time_column: str = 'DateTime'
    height_column: str = 'Height'
    unit: str = 'm'
    kind_column: Optional[str] = None
    time_format: Optional[str] = None
    timezone: str = 'UTC'
    kind_labels: dict[str, str] = field(default_factory=dict)
    name: str = ''


GAUGE_SCHEMA = SeriesSchema(
    time_column='time',
    height_column='Water_Level_OD_Malin',
    unit='m',
    name='gauge',
)
"""Tide-gauge network export (ISO ``...Z`` timestamps, metres)."""

HIGH_LOW_SCHEMA = SeriesSchema(
    time_column='Datetime',
    height_column='Height',
    unit='m',
    kind_column='High or Low',
    name='digitized',
)
"""High and low water readings spreadsheet (``h``/``l`` tags)."""

REFERENCE_SCHEMA = SeriesSchema(
    time_column='DateTime',
    height_column='AstroTide',
    unit='m',
    name='reference',
)
"""Stored prediction, as written by the hourly prediction CSV writer."""


def series_from_frame(
    frame: pd.DataFrame,
    schema: SeriesSchema,
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Convert a raw table to a :class:`TideSeries`.

    Rows without a parseable timestamp are dropped, rows are sorted by
    time and only the first of several rows with the same timestamp is
    kept.  Unparseable or empty heights become ``NaN``.

    Raises
    ------
    KeyError
        If a schema column is missing from *frame*.
    ValueError
        If a high/low tag is not recognised.
    """
    _log = logger or logging.getLogger(__name__)

    columns = [schema.time_column, schema.height_column]
    if schema.kind_column:
        columns.append(schema.kind_column)
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise KeyError(f"Columns {missing} not found; have {list(frame.columns)}.")

    time = pd.to_datetime(
        frame[schema.time_column], format=schema.time_format, errors='coerce',
    )
    if time.dt.tz is None:
        time = time.dt.tz_localize(schema.timezone)
    time = time.dt.tz_convert('UTC')

    table = pd.DataFrame({
        'DateTime': time,
        'Height': pd.to_numeric(frame[schema.height_column], errors='coerce'),
    })
    if schema.kind_column:
        labels = {**KIND_LABELS, **{k.lower(): v for k, v in schema.kind_labels.items()}}
        table['Kind'] = [
            _map_kind(v, labels) for v in frame[schema.kind_column]
        ]

    n_raw = len(table)
    table = table.dropna(subset=['DateTime'])
    n_bad_time = n_raw - len(table)
    if n_bad_time:
        _log.warning('Dropped %d rows without a valid timestamp.', n_bad_time)

    table = table.sort_values('DateTime', kind='stable')
    duplicated = table['DateTime'].duplicated(keep='first')
    if duplicated.any():
        _log.warning(
            'Dropped %d rows with duplicate timestamps (first kept).',
            int(duplicated.sum()),
        )
        table = table[~duplicated]

    n_missing = int(table['Height'].isna().sum())
    _log.info(
        "Loaded %d samples for '%s' (%s to %s, %d missing heights).",
        len(table), schema.name,
        table['DateTime'].iloc[0] if len(table) else None,
        table['DateTime'].iloc[-1] if len(table) else None,
        n_missing,
    )
    return TideSeries(
        time=pd.DatetimeIndex(table['DateTime']),
        height=table['Height'].to_numpy(dtype=float),
        unit=schema.unit,
        kind=table['Kind'].to_numpy(dtype=object) if schema.kind_column else None,
        name=schema.name,
    )


def _map_kind(value: Any, labels: dict[str, str]) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in labels:
        return labels[value.strip().lower()]
    return normalize_kind(value)


def read_series_csv(
    path: str | Path,
    schema: SeriesSchema,
    logger: logging.Logger | None = None,
    **read_kwargs: Any,
) -> TideSeries:
    """
    Read a delimited text file into a :class:`TideSeries`.

    Extra keyword arguments go to :func:`pandas.read_csv`.
    """
    _log = logger or logging.getLogger(__name__)
    _log.info('Reading %s', path)
    frame = pd.read_csv(path, **read_kwargs)
    return series_from_frame(frame, schema, logger=_log)


def read_series_excel(
    path: str | Path,
    schema: SeriesSchema,
    sheet_name: int | str = 0,
    skiprows: Optional[int] = None,
    column_names: Optional[list[str]] = None,
    logger: logging.Logger | None = None,
) -> TideSeries:
    """
    Read a spreadsheet of readings into a :class:`TideSeries`.

    Spreadsheets transcribed by hand often carry a title block above the
    table and repeat the header row between pages: *skiprows* skips the
    title block, and rows that repeat a column heading, or have no tag
    when the schema expects one, are dropped.

    Parameters
    ----------
    path : str or Path
        ``.xlsx`` file.
    schema : SeriesSchema
        Column mapping.
    sheet_name : int or str, optional
        Sheet to read (default the first).
    skiprows : int, optional
        Rows above the header row.
    column_names : list of str, optional
        Replacement column names, applied before the schema.
    logger : logging.Logger, optional
        Logger instance.
    """
    _log = logger or logging.getLogger(__name__)
    _log.info('Reading %s (sheet %s)', path, sheet_name)

    frame = pd.read_excel(
        path, sheet_name=sheet_name, skiprows=skiprows, engine='openpyxl',
    )
    if column_names is not None:
        frame.columns = column_names

    if schema.kind_column and schema.kind_column in frame.columns:
        tags = frame[schema.kind_column]
        keep = tags.notna() & (tags.astype(str).str.strip() != schema.kind_column)
        n_dropped = int((~keep).sum())
        if n_dropped:
            _log.info('Dropped %d untagged or repeated header rows.', n_dropped)
        frame = frame[keep]
    else:
        header = frame[schema.time_column].astype(str).str.strip() == schema.time_column
        frame = frame[~np.asarray(header)]

    return series_from_frame(frame, schema, logger=_log)
