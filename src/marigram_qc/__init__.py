"""
marigram_qc: harmonic tide reconstruction and residual checks for
digitized marigrams and tide-gauge records.
"""

__version__ = '0.1.0'
