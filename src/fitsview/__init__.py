"""
fitsview - Debayer, stretch and export FITS astrophotography frames.

Loads raw single-channel (optionally Bayer-mosaiced) or 3-plane FITS
exposures, reconstructs color, computes robust auto levels, applies
white balance and a nonlinear stretch, and renders either a zoomable
preview or a full-resolution 8-bit PNG.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com

Example
-------
>>> from fitsview import RenderPipeline, StretchParams, StretchMode
>>> with RenderPipeline() as pipe:
...     pipe.load_fits("m42.fits", "RGGB")
...     pipe.set_stretch_params(StretchParams(mode=StretchMode.ASINH, strength=8))
...     pipe.compute_auto_white_balance()
...     pipe.export_png("m42.png")
"""

from .config import (
    AutoLevels,
    BayerPattern,
    CurveParams,
    ExportImage,
    PipelineState,
    RawFrame,
    RenderConfig,
    StretchMode,
    StretchParams,
    ViewParams,
    WhiteBalance,
)
from .errors import FitsviewError, InputInvalidError, ResourceUnavailableError
from .utils import __version__, __version_info__, get_version_banner

# Primary entry point
from .pipeline import RenderPipeline

# I/O functions
from .io import default_export_path, read_fits, write_png

# Debayer
from .debayer import (
    conceptual_to_physical,
    debayer_at,
    debayer_bilinear,
    debayer_frame,
    mosaic_from_rgb,
)

# Statistics
from .stats import (
    compute_auto_levels,
    luminance_histogram,
    median_and_mad,
    normalize_minmax,
    percentile_nearest_rank,
)

# Tone mapping
from .stretch import apply_display_transform, luminance, stretch, tone_curve

# White balance
from .color import channel_means, estimate_white_balance

# Render substrates
from .render import RasterRenderer, render_rgb_scalar, viewport_uv

# Backend / GPU acceleration
from .backend import (
    ArrayBackend,
    get_array_module,
    get_backend_summary,
    get_device_info,
    is_gpu_available,
)

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    "get_version_banner",
    # Config
    "AutoLevels",
    "BayerPattern",
    "CurveParams",
    "ExportImage",
    "PipelineState",
    "RawFrame",
    "RenderConfig",
    "StretchMode",
    "StretchParams",
    "ViewParams",
    "WhiteBalance",
    # Errors
    "FitsviewError",
    "InputInvalidError",
    "ResourceUnavailableError",
    # Main entry point
    "RenderPipeline",
    # I/O
    "read_fits",
    "write_png",
    "default_export_path",
    # Debayer
    "conceptual_to_physical",
    "debayer_at",
    "debayer_bilinear",
    "debayer_frame",
    "mosaic_from_rgb",
    # Statistics
    "compute_auto_levels",
    "luminance_histogram",
    "median_and_mad",
    "normalize_minmax",
    "percentile_nearest_rank",
    # Tone mapping
    "apply_display_transform",
    "luminance",
    "stretch",
    "tone_curve",
    # White balance
    "channel_means",
    "estimate_white_balance",
    # Render
    "RasterRenderer",
    "render_rgb_scalar",
    "viewport_uv",
    # Backend / GPU
    "is_gpu_available",
    "get_device_info",
    "get_backend_summary",
    "get_array_module",
    "ArrayBackend",
]
