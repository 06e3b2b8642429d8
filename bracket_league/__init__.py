"""Single-elimination tournament brackets for casual gaming, tracked by wallet."""

__version__ = "0.1.0"
