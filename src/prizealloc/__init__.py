"""Tournament prize allocation engine."""

__version__ = "0.1.0"
