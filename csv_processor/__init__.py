"""CSV cleaning and statistical analysis engine."""

__version__ = "1.0.0"
