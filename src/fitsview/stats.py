"""
Normalization and luminance statistics.

- Global min-max normalization of raw samples
- Auto levels: percentile clipping blended with a median/MAD estimate
- 64-bin display histogram of the stretched luminance

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging

import numpy as np

from .config import AutoLevels, StretchMode
from .stretch import MIN_RANGE, clamp01, stretch

logger = logging.getLogger(__name__)

# Floor for the median absolute deviation
MAD_FLOOR = 1e-6

# Band collapse threshold for the auto levels fallback
COLLAPSE_EPS = 1e-4


def normalize_minmax(samples: np.ndarray) -> np.ndarray:
    """
    Map raw samples to [0, 1] with a global min-max.

    Parameters
    ----------
    samples : np.ndarray
        Raw samples of any shape.

    Returns
    -------
    np.ndarray
        float32 array of the same shape in [0, 1].

    Notes
    -----
    Non-finite samples are ignored for the range and mapped to 0.
    A flat frame (min == max) or a frame without finite samples has no
    usable range; the output is then constant 0.
    """
    data = np.asarray(samples, dtype=np.float64)
    finite = np.isfinite(data)

    if not finite.any():
        logger.debug("Normalization: no finite samples, output is zero")
        return np.zeros(data.shape, dtype=np.float32)

    mn = float(data[finite].min())
    mx = float(data[finite].max())
    if mx <= mn:
        logger.debug("Normalization: flat frame (%.6g), output is zero", mn)
        return np.zeros(data.shape, dtype=np.float32)

    out = (np.where(finite, data, mn) - mn) / (mx - mn)
    out = np.clip(out, 0.0, 1.0).astype(np.float32)

    logger.debug("Normalization: range [%.6g, %.6g] over %d samples", mn, mx, data.size)
    return out


def percentile_nearest_rank(sorted_values: np.ndarray, percent: float) -> float:
    """
    Nearest-rank percentile of an ascending array.

    ``idx = floor(p * (n - 1))`` with ``p = clamp(percent, 0, 100) / 100``.
    Returns 0.0 for an empty array.
    """
    n = sorted_values.size
    if n == 0:
        return 0.0
    p = min(max(float(percent), 0.0), 100.0) / 100.0
    idx = min(int(p * (n - 1)), n - 1)
    return float(sorted_values[idx])


def median_and_mad(values: np.ndarray) -> tuple[float, float]:
    """
    Median and median absolute deviation.

    Returns
    -------
    tuple[float, float]
        (median, mad) with mad floored at 1e-6; (0.0, 0.0) for empty input.
    """
    values = np.asarray(values, dtype=np.float32).ravel()
    if values.size == 0:
        return 0.0, 0.0

    median = float(np.median(values))
    mad = float(np.median(np.abs(values - np.float32(median))))
    return median, max(mad, MAD_FLOOR)


def compute_auto_levels(
    lum: np.ndarray,
    black_clip: float,
    white_clip: float,
    robust_sigma: float = 1.5,
) -> AutoLevels:
    """
    Derive black and white points from a luminance sample set.

    Parameters
    ----------
    lum : np.ndarray
        Luminance samples (any shape), white balance already applied.
    black_clip : float
        Percentage of dark samples clipped (0-100).
    white_clip : float
        Percentage of bright samples clipped (0-100).
    robust_sigma : float, default 1.5
        MAD multiplier of the robust black point candidate.

    Returns
    -------
    AutoLevels
        Levels with high > low. (0, 1) for an empty or all-zero sample set.

    Notes
    -----
    1. lowP / highP: nearest-rank percentiles at black_clip and
       100 - white_clip; lowP resets to the minimum when the clips cross.
    2. candidate = clamp01(median - robust_sigma * MAD).
    3. low = max(candidate, lowP), high = max(highP, low + 1e-3).
    4. If the band still collapses, low = lowP and
       high = max(highP, low + 1e-3).

    The percentile bounds follow the user clip settings while the median/MAD
    candidate keeps isolated hot and cold pixels from setting the black point.
    """
    values = clamp01(np.asarray(lum, dtype=np.float32).ravel())
    n = values.size
    if n == 0:
        return AutoLevels(0.0, 1.0)

    ordered = np.sort(values)
    if ordered[-1] <= 0.0:
        logger.debug("Auto levels: all-zero luminance, using [0, 1]")
        return AutoLevels(0.0, 1.0)

    p_low = min(max(float(black_clip), 0.0), 100.0) / 100.0
    p_high = (100.0 - min(max(float(white_clip), 0.0), 100.0)) / 100.0
    idx_low = min(int(p_low * (n - 1)), n - 1)
    idx_high = min(int(p_high * (n - 1)), n - 1)
    if idx_low > idx_high:
        idx_low = 0

    low_p = float(ordered[idx_low])
    high_p = float(ordered[idx_high])

    median, mad = median_and_mad(ordered)
    candidate = min(max(median - robust_sigma * mad, 0.0), 1.0)

    low = max(candidate, low_p)
    high = max(high_p, low + MIN_RANGE)

    if high <= low + COLLAPSE_EPS:
        low = low_p
        high = max(high_p, low + MIN_RANGE)

    logger.debug(
        "Auto levels: n=%d lowP=%.5f highP=%.5f median=%.5f mad=%.5f -> [%.5f, %.5f]",
        n, low_p, high_p, median, mad, low, high,
    )
    return AutoLevels(low=low, high=high)


def luminance_histogram(
    lum: np.ndarray,
    levels: AutoLevels,
    strength: float,
    mode: StretchMode,
    bins: int = 64,
) -> np.ndarray:
    """
    Display histogram of the stretched luminance.

    Parameters
    ----------
    lum : np.ndarray
        Luminance samples.
    levels : AutoLevels
        Black and white points.
    strength : float
        Stretch strength.
    mode : StretchMode
        Stretch family.
    bins : int, default 64
        Number of bins.

    Returns
    -------
    np.ndarray
        float32 array of ``bins`` values, normalized to a peak of 1 and
        square-root compressed. All zeros for an empty sample set.
    """
    values = np.asarray(lum, dtype=np.float32).ravel()
    hist = np.zeros(bins, dtype=np.float32)
    if values.size == 0:
        return hist

    y = stretch(values, levels.low, levels.high, strength, mode)
    idx = np.clip((y * bins).astype(np.int64), 0, bins - 1)
    counts = np.bincount(idx, minlength=bins).astype(np.float32)

    peak = counts.max()
    if peak > 0:
        hist = np.sqrt(counts / peak).astype(np.float32)
    return hist
