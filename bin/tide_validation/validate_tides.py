"""
Check digitized high/low water readings against a harmonic reconstruction
of a tide-gauge record.

Fits the gauge record, predicts it over the validation window, writes the
hourly prediction and predicted extrema, and reports residuals overall and
per week.  With ``--reference`` the readings are instead compared with a
stored prediction (DateTime, AstroTide) and no fit is made.
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from marigram_qc.config import AnalysisConfig, setup_logger
from marigram_qc.data_io import (
    GAUGE_SCHEMA,
    HIGH_LOW_SCHEMA,
    REFERENCE_SCHEMA,
    format_residual_summary,
    format_weekly_summary,
    read_series_csv,
    read_series_excel,
    write_constituent_table_csv,
    write_extrema_csv,
    write_hourly_prediction_csv,
    write_residuals_csv,
    write_text_report,
)
from marigram_qc.data_io.readers import SeriesSchema
from marigram_qc.tidal_analysis import (
    TidalAnalysisError,
    compare_to_reference,
    validate_against_prediction,
)


def _read(
    path: str,
    schema: SeriesSchema,
    skiprows: int | None,
    logger: logging.Logger,
    column_names: list[str] | None = None,
):
    if Path(path).suffix.lower() in ('.xlsx', '.xlsm'):
        return read_series_excel(
            path, schema, skiprows=skiprows, column_names=column_names,
            logger=logger,
        )
    if column_names:
        return read_series_csv(path, schema, logger=logger, names=column_names, header=0)
    return read_series_csv(path, schema, logger=logger)


def _split_names(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [name.strip() for name in value.split(',')]


def _write_residual_reports(comparison, output_dir: Path, prefix: str, logger) -> None:
    write_residuals_csv(
        comparison.residuals, output_dir / f'{prefix}_residuals.csv', logger=logger,
    )
    write_text_report(
        format_residual_summary(comparison.summary),
        output_dir / f'{prefix}_residuals_summary.txt', logger=logger,
    )
    write_text_report(
        [format_weekly_summary(w) for w in comparison.weekly],
        output_dir / f'{prefix}_weekly_residuals_summary.txt', logger=logger,
    )


def validate_tides(args: argparse.Namespace, logger: logging.Logger | None = None) -> int:
    """Run one validation; returns the process exit status."""
    logger = setup_logger(logger)
    logger.info(
        '--- Starting tide validation for %s ---',
        args.station or args.observed or args.reference,
    )

    config = AnalysisConfig.from_file(args.config, logger=logger)
    output_dir = Path(args.output_dir)
    prefix = args.station or 'station'

    schema = replace(HIGH_LOW_SCHEMA, unit=args.digitized_unit)
    digitized = _read(
        args.digitized, schema, args.skiprows, logger,
        column_names=_split_names(args.column_names),
    )
    if args.unit:
        digitized = digitized.to_unit(args.unit)

    if args.reference:
        reference = _read(args.reference, REFERENCE_SCHEMA, None, logger)
        if args.unit:
            reference = reference.to_unit(args.unit)
        try:
            comparison = compare_to_reference(reference, digitized, config, logger=logger)
        except TidalAnalysisError as ex:
            logger.error('Comparison failed: %s', ex)
            return 1
        _write_residual_reports(comparison, output_dir, prefix, logger)
        logger.info('--- Reference comparison finished ---')
        return 0

    observed = _read(args.observed, GAUGE_SCHEMA, None, logger)
    if args.fit_start or args.fit_end:
        observed = observed.between(
            args.fit_start or observed.start, args.fit_end or observed.end,
        )
    if args.unit:
        observed = observed.to_unit(args.unit)

    try:
        result = validate_against_prediction(
            observed, digitized, config,
            start=args.start, end=args.end, mode=args.mode, logger=logger,
        )
    except TidalAnalysisError as ex:
        logger.error('Validation failed: %s', ex)
        return 1

    write_constituent_table_csv(
        result.model, output_dir / f'{prefix}_constituents.csv',
        station_id=args.station or '', logger=logger,
    )
    write_hourly_prediction_csv(
        result.hourly, output_dir / f'{prefix}_hourly_prediction.csv', logger=logger,
    )
    write_extrema_csv(
        result.extrema, output_dir / f'{prefix}_predicted_extrema.csv', logger=logger,
    )
    _write_residual_reports(result, output_dir, prefix, logger)
    logger.info('--- Tide validation finished ---')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(
        prog='python validate_tides.py',
        description='Validate digitized tide readings against a harmonic '
                    'reconstruction of a gauge record',
    )
    parser.add_argument('-g', '--observed', required=False,
                        help='Gauge record CSV (time, Water_Level_OD_Malin)')
    parser.add_argument('-r', '--reference', required=False,
                        help='Stored prediction CSV (DateTime, AstroTide); '
                             'replaces the fit when given')
    parser.add_argument('-d', '--digitized', required=True,
                        help='Digitized readings, .xlsx or .csv')
    parser.add_argument('-o', '--output_dir', required=True, help='Output directory')
    parser.add_argument('-c', '--config', required=False,
                        help='Analysis INI file (packaged default if omitted)')
    parser.add_argument('-n', '--station', required=False, help='Station name')
    parser.add_argument('-m', '--mode', required=False, choices=['dense', 'extrema'],
                        help='Alignment mode (config value if omitted)')
    parser.add_argument('-s', '--start', required=False,
                        help='Prediction start YYYY-MM-DDThh:mm:ssZ')
    parser.add_argument('-e', '--end', required=False,
                        help='Prediction end YYYY-MM-DDThh:mm:ssZ')
    parser.add_argument('--fit_start', required=False, help='First gauge time used in the fit')
    parser.add_argument('--fit_end', required=False, help='Last gauge time used in the fit')
    parser.add_argument('--skiprows', required=False, type=int, default=8,
                        help='Title rows above the spreadsheet header (default 8)')
    parser.add_argument('--column_names', required=False,
                        help='Comma-separated names replacing the readings header, '
                             'e.g. "Datetime,Height,High or Low"')
    parser.add_argument('--digitized_unit', required=False, default='m',
                        choices=['m', 'ft'], help='Unit of the digitized heights')
    parser.add_argument('-u', '--unit', required=False, choices=['m', 'ft'],
                        help='Convert both series to this unit')

    arguments = parser.parse_args()
    if not (arguments.observed or arguments.reference):
        parser.error('one of -g/--observed or -r/--reference is required')
    sys.exit(validate_tides(arguments))
