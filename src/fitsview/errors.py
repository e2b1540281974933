"""
Error taxonomy for fitsview.

Degenerate numeric ranges (flat frames, empty sample sets) are not errors:
they are resolved locally by the statistics code and never raised.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging


class FitsviewError(Exception):
    """Base class for fitsview errors."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error
        logger = logging.getLogger(self.__class__.__module__)
        logger.debug("%s: %s", self.__class__.__name__, message)


class InputInvalidError(FitsviewError, ValueError):
    """Empty or zero-dimension frame, bad sample count, or unsupported pattern."""


class ResourceUnavailableError(FitsviewError, RuntimeError):
    """Device allocation, upload or readback failed in the raster path."""
