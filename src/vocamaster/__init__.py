"""Vocabulary study scheduling, progress tracking and quiz engine."""

__version__ = "0.1.0"
