"""Local stand-in for a scheduled webhook delivery platform."""

__version__ = "1.0.0"
