"""Spreadsheet -> PostgreSQL contact import pipeline."""

__version__ = "0.1.0"
