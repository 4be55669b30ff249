"""
Data I/O Subpackage

Provides functionality for:
- Loading tide series from CSV and Excel through a column schema
- Writing hourly predictions, extrema and residual tables to CSV
- Plain-text residual reports (overall and weekly)
- Fitted constituent tables with a metadata header
"""

from marigram_qc.data_io.readers import (
    GAUGE_SCHEMA,
    HIGH_LOW_SCHEMA,
    REFERENCE_SCHEMA,
    SeriesSchema,
    read_series_csv,
    read_series_excel,
    series_from_frame,
)
from marigram_qc.data_io.reports import (
    format_residual_summary,
    format_weekly_summary,
    records_to_frame,
    write_constituent_table_csv,
    write_extrema_csv,
    write_hourly_prediction_csv,
    write_residuals_csv,
    write_text_report,
)

__all__ = [
    # Readers
    'SeriesSchema',
    'GAUGE_SCHEMA',
    'HIGH_LOW_SCHEMA',
    'REFERENCE_SCHEMA',
    'series_from_frame',
    'read_series_csv',
    'read_series_excel',
    # Writers and reports
    'write_hourly_prediction_csv',
    'write_extrema_csv',
    'write_residuals_csv',
    'records_to_frame',
    'format_residual_summary',
    'format_weekly_summary',
    'write_text_report',
    'write_constituent_table_csv',
]
