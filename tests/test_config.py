"""
Unit tests for config.py.

Tests cover:
- The packaged default INI and logging files
- Parsing custom analysis files
- Validation of settings
"""
import logging

import pandas as pd
import pytest


class TestAnalysisConfig:
    """Tests for AnalysisConfig and read_config_section."""

    def test_packaged_defaults(self):
        """The packaged INI matches the dataclass defaults."""
        from marigram_qc.config import AnalysisConfig

        config = AnalysisConfig.from_file()
        assert config == AnalysisConfig()
        assert config.catalogue == 'standard'
        assert config.prediction_freq == '1min'
        assert config.week_scheme == 'ordinal'
        assert config.max_match_distance is None
        assert not config.fit_options.nodal
        assert config.fit_options.min_span_cycles == pytest.approx(0.9)

    def test_custom_file(self, tmp_path):
        """Values from a user file override the defaults."""
        from marigram_qc.config import AnalysisConfig

        path = tmp_path / 'station.ini'
        path.write_text(
            '[analysis]\n'
            'catalogue = principal\n'
            'top_n = 10\n'
            'week_scheme = iso\n'
            'match_mode = extrema\n'
            'max_match_distance = 2h\n'
            '\n'
            '[fit]\n'
            'nodal = yes\n'
            'latitude = 53.35\n'
            'rayleigh_min = 1.0\n'
        )
        config = AnalysisConfig.from_file(path)

        assert config.catalogue == 'principal'
        assert config.top_n == 10
        assert config.week_scheme == 'iso'
        assert config.match_mode == 'extrema'
        assert config.max_match_distance == pd.Timedelta(hours=2)
        assert config.fit_options.nodal
        assert config.fit_options.latitude == pytest.approx(53.35)
        assert config.fit_options.rayleigh_min == pytest.approx(1.0)
        assert config.fit_options.msl_window == '30D'
        assert config.extrema_padding == pd.Timedelta(days=1)

    def test_extrema_padding(self, tmp_path):
        """extrema_padding is read as a duration and must not be negative."""
        from marigram_qc.config import AnalysisConfig

        path = tmp_path / 'padding.ini'
        path.write_text('[analysis]\nextrema_padding = 36h\n')
        assert AnalysisConfig.from_file(path).extrema_padding == pd.Timedelta(hours=36)

        with pytest.raises(ValueError, match='extrema_padding'):
            AnalysisConfig(extrema_padding=pd.Timedelta(hours=-1))

    def test_fit_section_optional(self, tmp_path):
        """A file without [fit] uses the default fit options."""
        from marigram_qc.config import AnalysisConfig
        from marigram_qc.tidal_analysis.harmonic_analysis import FitOptions

        path = tmp_path / 'minimal.ini'
        path.write_text('[analysis]\ntop_n = 3\n')
        config = AnalysisConfig.from_file(path)
        assert config.top_n == 3
        assert config.fit_options == FitOptions()

    def test_invalid_values_raise(self):
        """Unknown schemes and modes are rejected."""
        from marigram_qc.config import AnalysisConfig

        with pytest.raises(ValueError, match='week_scheme'):
            AnalysisConfig(week_scheme='monthly')
        with pytest.raises(ValueError, match='match_mode'):
            AnalysisConfig(match_mode='spline')
        with pytest.raises(ValueError, match='top_n'):
            AnalysisConfig(top_n=-1)

    def test_bad_flag_raises(self):
        """Boolean settings accept only INI boolean spellings."""
        from marigram_qc.config import AnalysisConfig

        with pytest.raises(ValueError, match='Not a boolean'):
            AnalysisConfig.from_sections({}, {'nodal': 'maybe'})

    def test_missing_section_raises(self, tmp_path):
        """A file without [analysis] is a KeyError."""
        from marigram_qc.config import read_config_section

        path = tmp_path / 'empty.ini'
        path.write_text('[other]\nkey = value\n')
        with pytest.raises(KeyError, match='analysis'):
            read_config_section('analysis', path)

    def test_missing_file_raises(self, tmp_path):
        """A missing config file is reported."""
        from marigram_qc.config import read_config_section

        with pytest.raises(FileNotFoundError):
            read_config_section('analysis', tmp_path / 'nope.ini')


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_passthrough(self):
        """An explicit logger is returned unchanged."""
        from marigram_qc.config import setup_logger

        log = logging.getLogger('test_passthrough')
        assert setup_logger(log) is log

    def test_packaged_log_config(self):
        """The packaged logging.conf loads."""
        from marigram_qc.config import get_log_config_file, setup_logger

        assert get_log_config_file().is_file()
        assert isinstance(setup_logger(), logging.Logger)

    def test_missing_log_config_raises(self, tmp_path):
        """A missing logging file is reported."""
        from marigram_qc.config import setup_logger

        with pytest.raises(FileNotFoundError):
            setup_logger(log_config_file=tmp_path / 'missing.conf')
