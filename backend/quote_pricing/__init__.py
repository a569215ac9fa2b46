"""Quote pricing and financial totals engine."""

__version__ = "0.1.0"
