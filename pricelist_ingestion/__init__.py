"""Healthcare price list extraction and normalization pipeline."""

__version__ = "0.1.0"
