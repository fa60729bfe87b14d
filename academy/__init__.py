"""Leap Academy: guided module study with generated assignments and assessments."""

__version__ = "1.0.0"
