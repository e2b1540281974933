"""
Utility functions for fitsview.

Includes:
- Version info
- 8-bit conversion of display buffers

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import platform
import sys

import numpy as np

__version__ = "0.3.0"
__version_info__ = {
    "major": 0,
    "minor": 3,
    "patch": 0,
    "status": "beta",
    "date": "2026-10-19",
}


def get_version_banner() -> str:
    """Return a formatted version banner for logging."""
    return f"fitsview v{__version__} | FITS debayer & stretch previewer"


def get_version() -> str:
    """Return the library version string."""
    return __version__


def get_platform_info() -> str:
    """Return platform information string."""
    return f"{platform.system()} {platform.release()} / Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"


def to_uint8(data: np.ndarray) -> np.ndarray:
    """
    Convert normalized [0,1] float array to uint8 [0,255].

    Values are rounded to nearest (``v * 255 + 0.5`` truncated); NaN maps to 0.

    Parameters
    ----------
    data : np.ndarray
        Input array with values in [0, 1] range.

    Returns
    -------
    np.ndarray
        Output array with dtype uint8.
    """
    clipped = np.clip(np.nan_to_num(data, nan=0.0), 0.0, 1.0)
    return (clipped * 255.0 + 0.5).astype(np.uint8)


def format_size(width: int, height: int) -> str:
    """Format image dimensions with megapixel count."""
    return f"{width}x{height} ({width * height / 1e6:.1f} MP)"
