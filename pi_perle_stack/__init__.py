"""Perle: scrape gruppoclasse perle, turn them into short videos, publish them."""

__version__ = "1.0.0"
