"""
Export of predictions, events and residual summaries.

CSV tables use pandas; the plain-text residual reports keep the layout of
the station error-checking summaries (three-decimal statistics followed by
the largest residuals).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from marigram_qc.tidal_analysis.extremes import extrema_to_frame
from marigram_qc.tidal_analysis.residuals import ResidualSummary, WeeklySummary
from marigram_qc.tidal_analysis.series import ExtremaEvent, HarmonicModel, ResidualRecord, TideSeries

logger = logging.getLogger(__name__)

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'
NO_DATA = 'No data'


def _prepare(path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_hourly_prediction_csv(
    series: TideSeries,
    output_path: str | Path,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Write a (typically hourly) prediction as ``DateTime,AstroTide`` CSV.

    Missing values are written as empty fields.
    """
    _log = logger or logging.getLogger(__name__)

    path = _prepare(output_path)
    frame = pd.DataFrame({'DateTime': series.time, 'AstroTide': series.height})
    frame.to_csv(path, index=False, date_format=TIME_FORMAT, na_rep='')

    _log.info('Prediction (%d rows, %s) written to %s.', len(frame), series.unit, path)
    return path


def write_extrema_csv(
    events: list[ExtremaEvent],
    output_path: str | Path,
    logger: logging.Logger | None = None,
) -> Path:
    """Write high/low water events as ``DateTime,Height,Kind`` CSV."""
    _log = logger or logging.getLogger(__name__)

    path = _prepare(output_path)
    extrema_to_frame(events).to_csv(path, index=False, date_format=TIME_FORMAT)
    _log.info('%d extrema written to %s.', len(events), path)
    return path


def write_residuals_csv(
    residuals: pd.DataFrame,
    output_path: str | Path,
    logger: logging.Logger | None = None,
) -> Path:
    """Write the per-reading residual table."""
    _log = logger or logging.getLogger(__name__)

    path = _prepare(output_path)
    residuals.to_csv(path, index=False, date_format=TIME_FORMAT)
    _log.info('%d residual rows written to %s.', len(residuals), path)
    return path


def records_to_frame(records: Iterable[ResidualRecord]) -> pd.DataFrame:
    """Tabulate residual records (``Kind`` only when any record has one)."""
    records = list(records)
    frame = pd.DataFrame({
        'DateTime': [r.time for r in records],
        'Observed': [r.observed for r in records],
        'Predicted': [r.predicted for r in records],
        'Residual': [r.residual for r in records],
    })
    if any(r.kind is not None for r in records):
        frame.insert(1, 'Kind', [r.kind or '' for r in records])
    return frame


def _records_text(records: Iterable[ResidualRecord], digits: int) -> str:
    frame = records_to_frame(records)
    if frame.empty:
        return NO_DATA
    frame['DateTime'] = pd.DatetimeIndex(frame['DateTime']).strftime(TIME_FORMAT)
    return frame.round(digits).to_string(index=False)


def format_residual_summary(summary: ResidualSummary, digits: int = 3) -> str:
    """Overall residual report."""
    if summary.no_data:
        return (
            'Summary of Residuals:\n'
            'Total observations: 0\n'
            f'{NO_DATA}\n'
        )
    return (
        'Summary of Residuals:\n'
        f'Total observations: {summary.count}\n'
        f'Mean Residual: {round(summary.mean, digits)}\n'
        f'Median Residual: {round(summary.median, digits)}\n'
        f'Max Residual: {round(summary.max, digits)}\n'
        f'Min Residual: {round(summary.min, digits)}\n'
        '\n'
        f'Top {len(summary.top_residuals)} Largest Residuals:\n'
        f'{_records_text(summary.top_residuals, digits)}\n'
    )


def format_weekly_summary(weekly: WeeklySummary, digits: int = 3) -> str:
    """Report block for one week."""
    summary = weekly.summary
    text = (
        f'\nWeek: {weekly.week} ({weekly.year})\n'
        f'Number of highs: {summary.n_high}\n'
        f'Number of lows: {summary.n_low}\n'
        '\n'
    )
    if summary.no_data:
        return text + f'{NO_DATA}\n'
    return (
        text
        + f'{len(summary.top_residuals)} largest residuals:\n'
        + f'{_records_text(summary.top_residuals, digits)}\n'
    )


def write_text_report(
    text: str | Iterable[str],
    output_path: str | Path,
    logger: logging.Logger | None = None,
) -> Path:
    """Write one text block, or several concatenated, to *output_path*."""
    _log = logger or logging.getLogger(__name__)

    path = _prepare(output_path)
    body = text if isinstance(text, str) else ''.join(text)
    path.write_text(body)
    _log.info('Report written to %s.', path)
    return path


def write_constituent_table_csv(
    model: HarmonicModel,
    output_path: str | Path,
    station_id: str = '',
    metadata: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Write fitted constituents to CSV with a metadata header.

    Parameters
    ----------
    model : HarmonicModel
        Fitted model.
    output_path : str or Path
        Destination file path.
    station_id : str, optional
        Station identifier (written in the header).
    metadata : dict, optional
        Extra key/value pairs to include in the header.
    logger : logging.Logger, optional
        Logger instance.
    """
    _log = logger or logging.getLogger(__name__)

    path = _prepare(output_path)

    header_lines = []
    if station_id:
        header_lines.append(f"# Station: {station_id}")
    header_lines.append(f"# Unit: {model.unit}")
    header_lines.append(f"# Mean Level: {model.mean_level:.4f}")
    header_lines.append(f"# Epoch: {model.epoch.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    if model.fit_start is not None and model.fit_end is not None:
        header_lines.append(
            f"# Fit Window: {model.fit_start.strftime('%Y-%m-%dT%H:%M:%SZ')} "
            f"to {model.fit_end.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        )
    header_lines.append(f"# Nodal: {model.nodal}")
    header_lines.append(
        f"# Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')}"
    )
    if metadata:
        for key, value in metadata.items():
            header_lines.append(f"# {key}: {value}")

    table = model.to_frame()
    table.insert(0, 'N', range(1, len(table) + 1))

    with open(path, 'w', newline='') as f:
        for line in header_lines:
            f.write(line + '\n')
        table.to_csv(f, index=False)

    _log.info('Constituent table written to %s.', path)
    return path
