"""Debt-collection agreement tracking: spreadsheet import, promise overlays and outreach lists."""

__version__ = "0.3.0"
