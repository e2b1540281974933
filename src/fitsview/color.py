"""
Grey-world white balance estimation.

The estimate is point-in-time: it is computed on explicit request from the
debayered (linear, normalized) RGB image and is not updated afterwards.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging
import math

import numpy as np

from .config import WhiteBalance
from .stretch import LUMA_WEIGHTS

logger = logging.getLogger(__name__)

# Default number of pixels sampled by the estimator
TARGET_SAMPLES = 200_000


def sampling_stride(total_pixels: int, target_samples: int = TARGET_SAMPLES) -> int:
    """
    Stride giving roughly ``target_samples`` pixels on a regular grid.

    ``ceil(sqrt(total_pixels / target_samples))``, at least 1.
    """
    if total_pixels <= 0:
        return 1
    return max(1, math.ceil(math.sqrt(total_pixels / target_samples)))


def estimate_white_balance(
    rgb: np.ndarray,
    target_samples: int = TARGET_SAMPLES,
    luma_range: tuple[float, float] = (0.10, 0.90),
    gain_range: tuple[float, float] = (0.25, 4.0),
) -> WhiteBalance | None:
    """
    Estimate white balance gains with the grey-world assumption.

    Parameters
    ----------
    rgb : np.ndarray
        RGB image (H, W, 3).
    target_samples : int, default 200000
        Approximate number of sampled pixels.
    luma_range : tuple[float, float], default (0.10, 0.90)
        Luminance band kept; darker pixels (sky background) and brighter
        pixels (saturated stars) are discarded.
    gain_range : tuple[float, float], default (0.25, 4.0)
        Clamp applied to each gain.

    Returns
    -------
    WhiteBalance or None
        Gains clamped to ``gain_range``, or None when no sample survives the
        luminance filter or a channel mean is not positive.

    Notes
    -----
    The sampled buffer is min-max renormalized before filtering, so the
    estimate does not depend on the input scaling. The grey target is the
    mean of the three channel means and each gain is ``grey / mean``.
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"Expected (H, W, 3) array, got shape {rgb.shape}")

    h, w, _ = rgb.shape
    step = sampling_stride(h * w, target_samples)
    sampled = np.asarray(rgb[::step, ::step, :], dtype=np.float64).reshape(-1, 3)

    if sampled.size == 0:
        return None

    sampled = np.nan_to_num(sampled, nan=0.0, posinf=0.0, neginf=0.0)
    mn, mx = float(sampled.min()), float(sampled.max())
    if mx <= mn:
        mn, mx = 0.0, 1.0
    sampled = np.clip((sampled - mn) / (mx - mn), 0.0, 1.0)

    lum = sampled @ np.asarray(LUMA_WEIGHTS, dtype=np.float64)
    lo, hi = luma_range
    keep = (lum >= lo) & (lum <= hi)
    count = int(keep.sum())

    if count == 0:
        logger.warning("White balance: no samples in luminance band [%.2f, %.2f]", lo, hi)
        return None

    means = sampled[keep].mean(axis=0)
    if np.any(means <= 0.0):
        logger.warning(
            "White balance: non-positive channel mean (R=%.4f, G=%.4f, B=%.4f)", *means
        )
        return None

    grey = float(means.mean())
    gains = grey / means
    wb = WhiteBalance.clamped(*gains, gain_range=gain_range)

    logger.info(
        "White balance (grey world, n=%d, stride=%d): R=%.3f, G=%.3f, B=%.3f",
        count, step, wb.r, wb.g, wb.b,
    )
    return wb


def channel_means(rgb: np.ndarray, wb: WhiteBalance | None = None) -> tuple[float, float, float]:
    """
    Mean of each channel, optionally after applying white balance gains.

    Parameters
    ----------
    rgb : np.ndarray
        RGB image (H, W, 3).
    wb : WhiteBalance, optional
        Gains applied (without clamping) before averaging.

    Returns
    -------
    tuple[float, float, float]
        (mean_r, mean_g, mean_b).
    """
    data = np.asarray(rgb, dtype=np.float64)
    if wb is not None:
        data = data * np.asarray(wb.as_tuple(), dtype=np.float64)
    means = data.reshape(-1, 3).mean(axis=0)
    return float(means[0]), float(means[1]), float(means[2])
