"""Kyndall blog engine: trend-driven article drafts for a Sanity-backed blog."""

__version__ = "0.1.0"
