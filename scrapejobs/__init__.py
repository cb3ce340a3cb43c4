"""Scrape job lifecycle management and projected CSV export."""

__version__ = "0.3.0"
