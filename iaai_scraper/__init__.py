"""Resumable IAAI listing scraper"""

__version__ = "0.1.0"
