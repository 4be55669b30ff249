"""
Unit tests for the data_io subpackage.

Tests cover:
- Schema-driven loading of CSV and Excel tables
- CSV export of predictions, extrema and constituents
- Plain-text residual reports
"""
import numpy as np
import pandas as pd
import pytest


# -----------------------------------------------------------------------
# Reader tests
# -----------------------------------------------------------------------

class TestSeriesFromFrame:
    """Tests for readers.series_from_frame."""

    def test_sort_and_deduplicate(self):
        """Rows are sorted by time and the first duplicate is kept."""
        from marigram_qc.data_io.readers import GAUGE_SCHEMA, series_from_frame

        frame = pd.DataFrame({
            'time': [
                '2021-01-01T02:00:00Z', '2021-01-01T00:00:00Z',
                '2021-01-01T01:00:00Z', '2021-01-01T01:00:00Z',
            ],
            'Water_Level_OD_Malin': [3.0, 1.0, 2.0, 9.0],
        })
        series = series_from_frame(frame, GAUGE_SCHEMA)

        assert len(series) == 3
        np.testing.assert_array_equal(series.height, [1.0, 2.0, 3.0])
        assert series.name == 'gauge'
        assert str(series.time.tz) == 'UTC'

    def test_bad_values(self):
        """Unparseable times drop the row; unparseable heights become NaN."""
        from marigram_qc.data_io.readers import GAUGE_SCHEMA, series_from_frame

        frame = pd.DataFrame({
            'time': ['2021-01-01T00:00:00Z', 'not a time', '2021-01-01T02:00:00Z'],
            'Water_Level_OD_Malin': ['1.5', '2.0', ''],
        })
        series = series_from_frame(frame, GAUGE_SCHEMA)

        assert len(series) == 2
        assert series.height[0] == 1.5
        assert np.isnan(series.height[1])

    def test_local_timezone(self):
        """Naive times in a declared zone are converted to UTC."""
        from marigram_qc.data_io.readers import SeriesSchema, series_from_frame

        schema = SeriesSchema(timezone='Europe/Dublin')
        frame = pd.DataFrame({'DateTime': ['2021-07-01 13:00'], 'Height': [1.0]})
        series = series_from_frame(frame, schema)
        assert series.start == pd.Timestamp('2021-07-01 12:00', tz='UTC')

    def test_kind_column(self):
        """Tags are normalised, including schema-specific spellings."""
        from marigram_qc.data_io.readers import SeriesSchema, series_from_frame

        schema = SeriesSchema(kind_column='Tag', kind_labels={'HT': 'high'}, unit='ft')
        frame = pd.DataFrame({
            'DateTime': ['2021-01-01 00:00', '2021-01-01 06:00', '2021-01-01 12:00'],
            'Height': [10.0, 1.0, 9.5],
            'Tag': ['ht', 'L', np.nan],
        })
        series = series_from_frame(frame, schema)
        assert list(series.kind) == ['high', 'low', None]
        assert series.unit == 'ft'

    def test_missing_column_raises(self):
        """A schema column absent from the table is a KeyError."""
        from marigram_qc.data_io.readers import HIGH_LOW_SCHEMA, series_from_frame

        frame = pd.DataFrame({'Datetime': ['2021-01-01'], 'Height': [1.0]})
        with pytest.raises(KeyError, match='High or Low'):
            series_from_frame(frame, HIGH_LOW_SCHEMA)


class TestFileReaders:
    """Tests for read_series_csv and read_series_excel."""

    def test_read_csv(self, tmp_path):
        """A gauge export loads through the gauge schema."""
        from marigram_qc.data_io.readers import GAUGE_SCHEMA, read_series_csv

        path = tmp_path / 'gauge.csv'
        path.write_text(
            'time,Water_Level_OD_Malin,QC\n'
            '2021-01-01T00:00:00Z,1.25,1\n'
            '2021-01-01T00:05:00Z,1.30,1\n'
            '2021-01-01T00:10:00Z,,4\n'
        )
        series = read_series_csv(path, GAUGE_SCHEMA)

        assert len(series) == 3
        assert series.n_finite == 2
        assert series.time[1] == pd.Timestamp('2021-01-01 00:05', tz='UTC')

    def test_read_excel(self, tmp_path):
        """Title rows, repeated headers and untagged rows are skipped."""
        from marigram_qc.data_io.readers import HIGH_LOW_SCHEMA, read_series_excel

        header = ['Datetime', 'Height', 'High or Low']
        rows = [['Digitized marigram', None, None]]
        rows += [[f'note {i}', None, None] for i in range(7)]
        rows += [
            header,
            [pd.Timestamp('2021-01-01 03:10'), 2.1, 'h'],
            [pd.Timestamp('2021-01-01 09:25'), -1.9, 'l'],
            header,
            [pd.Timestamp('2021-01-01 12:00'), 0.0, None],
            [pd.Timestamp('2021-01-01 15:40'), 2.0, 'H'],
        ]
        path = tmp_path / 'readings.xlsx'
        pd.DataFrame(rows).to_excel(path, header=False, index=False)

        series = read_series_excel(path, HIGH_LOW_SCHEMA, skiprows=8)

        assert len(series) == 3
        np.testing.assert_allclose(series.height, [2.1, -1.9, 2.0])
        assert list(series.kind) == ['high', 'low', 'high']
        assert series.name == 'digitized'

    def test_read_excel_column_names(self, tmp_path):
        """Replacement column names let the schema read a relabelled sheet."""
        from marigram_qc.data_io.readers import HIGH_LOW_SCHEMA, read_series_excel

        path = tmp_path / 'relabelled.xlsx'
        pd.DataFrame({
            'Time': [pd.Timestamp('2021-01-01 03:10'), pd.Timestamp('2021-01-01 09:25')],
            'Level': [2.1, -1.9],
            'Tag': ['h', 'l'],
        }).to_excel(path, index=False)

        series = read_series_excel(
            path, HIGH_LOW_SCHEMA, column_names=['Datetime', 'Height', 'High or Low'],
        )
        assert len(series) == 2
        assert list(series.kind) == ['high', 'low']


# -----------------------------------------------------------------------
# Writer tests
# -----------------------------------------------------------------------

class TestWriters:
    """Tests for the CSV writers."""

    def test_hourly_prediction_csv(self, tmp_path):
        """DateTime/AstroTide columns; missing values left empty."""
        from marigram_qc.data_io.reports import write_hourly_prediction_csv
        from marigram_qc.tidal_analysis.series import TideSeries

        series = TideSeries(
            time=pd.date_range('2021-01-01', periods=3, freq='1h'),
            height=[1.0, np.nan, 0.5],
        )
        path = write_hourly_prediction_csv(series, tmp_path / 'out' / 'hourly.csv')

        lines = path.read_text().splitlines()
        assert lines[0] == 'DateTime,AstroTide'
        assert lines[1] == '2021-01-01 00:00:00,1.0'
        assert lines[2] == '2021-01-01 01:00:00,'

    def test_extrema_csv(self, tmp_path):
        """Events are written one per row."""
        from marigram_qc.data_io.reports import write_extrema_csv
        from marigram_qc.tidal_analysis.series import ExtremaEvent

        events = [
            ExtremaEvent(pd.Timestamp('2021-01-01 03:00', tz='UTC'), 2.0, 'high'),
            ExtremaEvent(pd.Timestamp('2021-01-01 09:12', tz='UTC'), -2.0, 'low'),
        ]
        path = write_extrema_csv(events, tmp_path / 'extrema.csv')

        frame = pd.read_csv(path)
        assert list(frame.columns) == ['DateTime', 'Height', 'Kind']
        assert list(frame['Kind']) == ['high', 'low']
        assert frame['DateTime'][1] == '2021-01-01 09:12:00'

    def test_constituent_table(self, tmp_path):
        """Metadata header lines precede the constituent table."""
        from marigram_qc.data_io.reports import write_constituent_table_csv
        from marigram_qc.tidal_analysis.tidal_prediction import build_model_from_constants

        model = build_model_from_constants(
            {'M2': 1.2, 'S2': 0.4}, {'M2': 45.0, 'S2': 300.0}, 2.5,
        )
        path = write_constituent_table_csv(
            model, tmp_path / 'constituents.csv', station_id='Dublin',
            metadata={'Source': 'test'},
        )

        lines = path.read_text().splitlines()
        assert lines[0] == '# Station: Dublin'
        assert '# Source: test' in lines
        assert not any(line.startswith('# Fit Window') for line in lines)

        table = pd.read_csv(path, comment='#')
        assert list(table.columns) == ['N', 'Name', 'Speed', 'Amplitude', 'Phase']
        assert list(table['Name']) == ['M2', 'S2']
        assert table['Amplitude'][0] == pytest.approx(1.2)


# -----------------------------------------------------------------------
# Report tests
# -----------------------------------------------------------------------

class TestReports:
    """Tests for the plain-text residual reports."""

    @staticmethod
    def _joined(residuals, kind=None):
        from marigram_qc.tidal_analysis.residuals import join_on_timestamp
        from marigram_qc.tidal_analysis.series import TideSeries

        times = pd.date_range('2021-01-04', periods=len(residuals), freq='6h')
        predicted = TideSeries(time=times, height=np.zeros(len(residuals)))
        observed = TideSeries(time=times, height=residuals, kind=kind)
        return join_on_timestamp(observed, predicted)

    def test_summary_text(self):
        """Overall report lists statistics then the top residuals."""
        from marigram_qc.data_io.reports import format_residual_summary
        from marigram_qc.tidal_analysis.residuals import summarize_residuals

        summary = summarize_residuals(self._joined([0.25, -0.5, 0.25, 1.0]), top_n=2)
        text = format_residual_summary(summary)

        assert text.startswith('Summary of Residuals:\nTotal observations: 4\n')
        assert 'Mean Residual: 0.25\n' in text
        assert 'Max Residual: 1.0\n' in text
        assert 'Top 2 Largest Residuals:' in text
        assert '2021-01-04 18:00:00' in text

    def test_summary_text_no_data(self):
        """An empty summary says so."""
        from marigram_qc.data_io.reports import format_residual_summary
        from marigram_qc.tidal_analysis.residuals import summarize_residuals

        text = format_residual_summary(summarize_residuals(self._joined([np.nan])))
        assert 'Total observations: 0' in text
        assert 'No data' in text
        assert 'Mean' not in text

    def test_weekly_text(self):
        """Weekly blocks show week, counts and largest residuals."""
        from marigram_qc.data_io.reports import format_weekly_summary
        from marigram_qc.tidal_analysis.residuals import summarize_by_week

        joined = self._joined([0.1, -0.2, 0.3, -0.4], kind=['h', 'l', 'h', 'l'])
        weekly = summarize_by_week(joined, top_n=3, weeks=[(2021, 1), (2021, 2)])

        first = format_weekly_summary(weekly[0])
        assert 'Week: 1 (2021)' in first
        assert 'Number of highs: 2' in first
        assert 'Number of lows: 2' in first
        assert '3 largest residuals:' in first

        second = format_weekly_summary(weekly[1])
        assert 'Week: 2 (2021)' in second
        assert 'No data' in second

    def test_write_text_report(self, tmp_path):
        """Several blocks are concatenated into one file."""
        from marigram_qc.data_io.reports import write_text_report

        path = write_text_report(['a\n', 'b\n'], tmp_path / 'sub' / 'report.txt')
        assert path.read_text() == 'a\nb\n'
