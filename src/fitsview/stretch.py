"""
Tone stretch and manual tone curve.

The functions take an array module ``xp`` so that the same code serves the
deterministic NumPy pass and the raster renderer (NumPy or CuPy). Python
floats and NumPy scalars work as inputs too.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging
import math

import numpy as np

from .config import CurveParams, StretchMode, StretchParams, WhiteBalance

logger = logging.getLogger(__name__)

# Minimum width of the [low, high] band
MIN_RANGE = 1e-3

# Floor for stretch denominators
MIN_DENOM = 1e-6

# Rec. 709 luminance weights
LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)


def clamp01(x, xp=np):
    """Clamp to [0, 1], mapping NaN to 0."""
    return xp.clip(xp.nan_to_num(x, nan=0.0), 0.0, 1.0)


def stretch(
    x,
    low: float,
    high: float,
    strength: float,
    mode: StretchMode,
    xp=np,
):
    """
    Apply the nonlinear contrast stretch.

    Parameters
    ----------
    x : float or array
        Input intensity in [0, 1].
    low, high : float
        Black and white points.
    strength : float
        Asinh/log strength; values below 1 are treated as 1.
    mode : StretchMode
        Stretch family.
    xp : module, default numpy
        Array module for array inputs.

    Returns
    -------
    float or array
        Stretched value in [0, 1], float32 for arrays.

    Notes
    -----
    ``t = clamp01((x - low) / max(high - low, 1e-3))``, then:

    - LINEAR: t
    - ASINH: asinh(s * t) / asinh(s)
    - LOG: ln(1 + s * t) / ln(1 + s)
    - SQRT: sqrt(t)
    """
    rng = max(float(high) - float(low), MIN_RANGE)
    t = clamp01((xp.asarray(x, dtype=xp.float32) - xp.float32(low)) / xp.float32(rng), xp)

    s = max(float(strength), 1.0)
    if mode is StretchMode.ASINH:
        denom = max(math.asinh(s), MIN_DENOM)
        y = xp.arcsinh(xp.float32(s) * t) / xp.float32(denom)
    elif mode is StretchMode.LOG:
        denom = max(math.log1p(s), MIN_DENOM)
        y = xp.log1p(xp.float32(s) * t) / xp.float32(denom)
    elif mode is StretchMode.SQRT:
        y = xp.sqrt(t)
    else:
        y = t

    return clamp01(y, xp).astype(xp.float32)


def tone_curve(x, black: float, white: float, gamma: float, xp=np):
    """
    Manual black/white/gamma curve.

    ``x <= black -> 0``, ``x >= white -> 1``, otherwise
    ``((x - black) / (white - black)) ** (1 / gamma)``.
    A non-positive gamma falls back to 1.
    """
    if not gamma > 0.0:
        gamma = 1.0
    span = max(float(white) - float(black), MIN_DENOM)

    x = xp.asarray(x, dtype=xp.float32)
    t = clamp01((x - xp.float32(black)) / xp.float32(span), xp)
    y = xp.power(t, xp.float32(1.0 / gamma))
    y = xp.where(x <= black, 0.0, xp.where(x >= white, 1.0, y))
    return clamp01(y, xp).astype(xp.float32)


def luminance(rgb, xp=np):
    """
    Rec. 709 luminance of an (..., 3) RGB array, clamped to [0, 1].
    """
    wr, wg, wb = LUMA_WEIGHTS
    lum = (
        xp.float32(wr) * rgb[..., 0]
        + xp.float32(wg) * rgb[..., 1]
        + xp.float32(wb) * rgb[..., 2]
    )
    return clamp01(lum, xp).astype(xp.float32)


def apply_white_balance(rgb, wb: WhiteBalance, xp=np):
    """Multiply channels by white balance gains and clamp to [0, 1]."""
    gains = xp.asarray(wb.as_tuple(), dtype=xp.float32)
    return clamp01(xp.asarray(rgb, dtype=xp.float32) * gains, xp).astype(xp.float32)


def apply_display_transform(
    rgb,
    wb: WhiteBalance,
    stretch_params: StretchParams,
    curve: CurveParams,
    low: float,
    high: float,
    xp=np,
):
    """
    Per-pixel display pipeline shared by both render substrates.

    white balance -> clamp -> auto stretch (if enabled) -> curve (if enabled)

    Parameters
    ----------
    rgb : array
        Debayered RGB samples (..., 3).
    wb : WhiteBalance
        Channel gains.
    stretch_params : StretchParams
        Stretch settings; the same low/high/strength apply to every channel.
    curve : CurveParams
        Manual curve settings.
    low, high : float
        Auto levels from luminance statistics.
    xp : module, default numpy
        Array module.

    Returns
    -------
    array
        Display RGB in [0, 1], float32.
    """
    c = apply_white_balance(rgb, wb, xp)

    if stretch_params.auto_stretch:
        c = stretch(c, low, high, stretch_params.strength, stretch_params.mode, xp)

    if curve.enabled:
        c = tone_curve(c, curve.black, curve.white, curve.gamma, xp)

    return c
