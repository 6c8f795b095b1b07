"""Polymer: synthetic browser probe exporting step timings to Prometheus."""

__version__ = "0.1.0"
