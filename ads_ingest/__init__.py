"""Classify and ingest advertising/sales report exports."""

__version__ = "0.3.0"
