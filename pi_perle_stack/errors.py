# -*- coding: utf-8 -*-
"""
Error Taxonomy
==============
Every failure a cycle can hit maps to one of these.
"""

from typing import Optional


class PerleError(Exception):
    """Base class for all pipeline errors."""


class SourceUnavailable(PerleError):
    """The content source could not be fetched or parsed."""


class ProductionFailed(PerleError):
    """Narration, rendering or encoding failed for one perla."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class DeliveryRejected(PerleError):
    """The destination declined the video or could not be reached."""


class ConfigurationError(PerleError):
    """A required credential or setting is missing."""


class StoreCorrupt(PerleError):
    """The persisted content database is unreadable."""
