"""
Configuration files and logging set-up.

Analysis settings live in an INI file (a packaged default is used when none
is given) and are parsed into an immutable :class:`AnalysisConfig` that is
passed explicitly to the pipeline.
"""
from __future__ import annotations

import configparser
import logging
import logging.config
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from marigram_qc.tidal_analysis.harmonic_analysis import FitOptions
from marigram_qc.tidal_analysis.residuals import WEEK_SCHEMES
from marigram_qc.tidal_analysis.validation import MATCH_MODES

logger = logging.getLogger(__name__)

CONF_DIR = Path(__file__).parent / 'conf'


def get_config_file() -> Path:
    """Path of the packaged default analysis configuration."""
    return CONF_DIR / 'marigram_qc.ini'


def get_log_config_file() -> Path:
    """Path of the packaged logging configuration."""
    return CONF_DIR / 'logging.conf'


def read_config_section(
    section: str,
    config_file: str | Path | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, str]:
    """
    Read one section of an INI file as a plain ``{key: value}`` dict.

    Raises
    ------
    FileNotFoundError
        If *config_file* does not exist.
    KeyError
        If the file has no *section*.
    """
    _log = logger or logging.getLogger(__name__)

    path = Path(get_config_file() if config_file is None else config_file)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path)
    if not parser.has_section(section):
        raise KeyError(f"Section [{section}] not found in {path}.")

    _log.debug('Read section [%s] from %s.', section, path)
    return dict(parser.items(section))


def _optional_float(value: str | None) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value.strip() == '':
        return default
    states = configparser.ConfigParser.BOOLEAN_STATES
    key = value.strip().lower()
    if key not in states:
        raise ValueError(f"Not a boolean: '{value}'.")
    return states[key]


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Settings for one validation run.

    Attributes
    ----------
    catalogue : str
        Named constituent catalogue (``'standard'`` or ``'nos37'``).
    fit_options : FitOptions
        Harmonic fit options.
    prediction_freq : str
        Step of the dense prediction grid.
    hourly_freq : str
        Step of the persisted (thinned) prediction.
    top_n : int
        Largest residuals listed per summary.
    week_scheme : str
        Week numbering for the weekly summaries.
    match_mode : str
        ``'dense'`` or ``'extrema'`` alignment.
    max_match_distance : pd.Timedelta, optional
        Cutoff for extrema matching; ``None`` accepts any distance.
    extrema_padding : pd.Timedelta
        Extra prediction on each side of the readings in extrema mode when
        no window is given, so that edge turning points are found.
    """

    catalogue: str = 'standard'
    fit_options: FitOptions = field(default_factory=FitOptions)
    prediction_freq: str = '1min'
    hourly_freq: str = '1h'
    top_n: int = 5
    week_scheme: str = 'ordinal'
    match_mode: str = 'dense'
    max_match_distance: Optional[pd.Timedelta] = None
    extrema_padding: pd.Timedelta = pd.Timedelta('1D')

    def __post_init__(self) -> None:
        if self.top_n < 0:
            raise ValueError(f"top_n must be non-negative, got {self.top_n}.")
        if self.week_scheme not in WEEK_SCHEMES:
            raise ValueError(
                f"week_scheme must be one of {WEEK_SCHEMES}, got "
                f"'{self.week_scheme}'."
            )
        if self.match_mode not in MATCH_MODES:
            raise ValueError(
                f"match_mode must be one of {MATCH_MODES}, got "
                f"'{self.match_mode}'."
            )
        if self.extrema_padding < pd.Timedelta(0):
            raise ValueError(
                f"extrema_padding must be non-negative, got {self.extrema_padding}."
            )

    @classmethod
    def from_sections(
        cls,
        analysis: dict[str, str],
        fit: dict[str, str] | None = None,
    ) -> 'AnalysisConfig':
        """Build a config from ``[analysis]`` and ``[fit]`` key/value dicts."""
        fit = fit or {}
        defaults = cls()
        base = defaults.fit_options

        fit_options = FitOptions(
            subtract_msl=_flag(fit.get('subtract_msl'), base.subtract_msl),
            msl_window=fit.get('msl_window') or base.msl_window,
            nodal=_flag(fit.get('nodal'), base.nodal),
            latitude=_optional_float(fit.get('latitude')),
            min_span_cycles=(
                _optional_float(fit.get('min_span_cycles'))
                or base.min_span_cycles
            ),
            rayleigh_min=_optional_float(fit.get('rayleigh_min')),
        )
        cutoff = (analysis.get('max_match_distance') or '').strip()
        padding = (analysis.get('extrema_padding') or '').strip()
        return cls(
            catalogue=analysis.get('catalogue') or defaults.catalogue,
            fit_options=fit_options,
            prediction_freq=analysis.get('prediction_freq') or defaults.prediction_freq,
            hourly_freq=analysis.get('hourly_freq') or defaults.hourly_freq,
            top_n=int(analysis.get('top_n') or defaults.top_n),
            week_scheme=analysis.get('week_scheme') or defaults.week_scheme,
            match_mode=analysis.get('match_mode') or defaults.match_mode,
            max_match_distance=pd.Timedelta(cutoff) if cutoff else None,
            extrema_padding=(
                pd.Timedelta(padding) if padding else defaults.extrema_padding
            ),
        )

    @classmethod
    def from_file(
        cls,
        config_file: str | Path | None = None,
        logger: logging.Logger | None = None,
    ) -> 'AnalysisConfig':
        """Read ``[analysis]`` (required) and ``[fit]`` (optional) sections."""
        _log = logger or logging.getLogger(__name__)

        analysis = read_config_section('analysis', config_file, logger=_log)
        try:
            fit = read_config_section('fit', config_file, logger=_log)
        except KeyError:
            fit = {}
        config = cls.from_sections(analysis, fit)
        _log.info(
            "Analysis config: catalogue '%s', %s prediction grid, %s mode.",
            config.catalogue, config.prediction_freq, config.match_mode,
        )
        return config


def setup_logger(
    logger: logging.Logger | None = None,
    log_config_file: str | Path | None = None,
) -> logging.Logger:
    """
    Return *logger*, or configure logging from a file and return the root
    logger.

    Raises
    ------
    FileNotFoundError
        If the logging configuration file does not exist.
    """
    if logger is not None:
        return logger

    path = Path(get_log_config_file() if log_config_file is None else log_config_file)
    if not path.is_file():
        raise FileNotFoundError(f"Log config file not found: {path}")

    logging.config.fileConfig(path, disable_existing_loggers=False)
    logger = logging.getLogger('root')
    logger.info('Using log config %s', path)
    return logger
