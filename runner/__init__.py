"""
Runner module for gmaps-crawler.

This module contains:
- Logging setup shared by the scraper modules
"""

from runner.logging_setup import configure_logging, setup_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "configure_logging",
    "setup_logging",
    "get_logger",
]
