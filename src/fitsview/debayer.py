"""
Bayer geometry and bilinear debayering.

Every supported mosaic is treated as RGGB in "conceptual" coordinates;
the other layouts are closed-form flips of it:

    RGGB  identity          R G      BGGR  rotated 180 deg   B G
                            G B                              G R

    GRBG  horizontal flip   G R      GBRG  vertical flip     G B
                            B G                              R G

Two implementations of the same bilinear reconstruction live here:

- ``debayer_bilinear``: whole-array, deterministic (NumPy/SciPy)
- ``debayer_at``: per-output-pixel gather used by the raster renderer
  (NumPy or CuPy through ``xp``)

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.ndimage import convolve

from .config import BayerPattern
from .errors import InputInvalidError

logger = logging.getLogger(__name__)

# Fixed bilinear averaging kernels (edges handled by mode="nearest",
# which equals clamping neighbor coordinates to the image)
_KERNEL_CROSS = np.array([
    [0.0, 0.25, 0.0],
    [0.25, 0.0, 0.25],
    [0.0, 0.25, 0.0],
], dtype=np.float32)

_KERNEL_DIAG = np.array([
    [0.25, 0.0, 0.25],
    [0.0, 0.0, 0.0],
    [0.25, 0.0, 0.25],
], dtype=np.float32)

_KERNEL_HORIZ = np.array([
    [0.0, 0.0, 0.0],
    [0.5, 0.0, 0.5],
    [0.0, 0.0, 0.0],
], dtype=np.float32)

_KERNEL_VERT = _KERNEL_HORIZ.T.copy()


def conceptual_to_physical(cx, cy, width: int, height: int, pattern: BayerPattern, xp=np):
    """
    Map conceptual RGGB coordinates to physical sensor coordinates.

    Parameters
    ----------
    cx, cy : int or integer array
        Conceptual column and row. Arrays of the module ``xp`` are mapped
        element-wise.
    width, height : int
        Sensor dimensions.
    pattern : BayerPattern
        Active mosaic layout.
    xp : module, default numpy
        Array module (numpy or cupy) for array inputs.

    Returns
    -------
    tuple
        (px, py), clamped to [0, width-1] x [0, height-1].

    Notes
    -----
    The mapping is an involution for BGGR, GRBG and GBRG and the identity
    for RGGB and NONE. Coordinates are clamped before and after mapping.
    """
    cx = xp.clip(cx, 0, width - 1)
    cy = xp.clip(cy, 0, height - 1)

    if pattern is BayerPattern.BGGR:
        px, py = (width - 1) - cx, (height - 1) - cy
    elif pattern is BayerPattern.GRBG:
        px, py = (width - 1) - cx, cy
    elif pattern is BayerPattern.GBRG:
        px, py = cx, (height - 1) - cy
    else:
        px, py = cx, cy

    return xp.clip(px, 0, width - 1), xp.clip(py, 0, height - 1)


def to_conceptual(mosaic: np.ndarray, pattern: BayerPattern) -> np.ndarray:
    """
    Re-index a whole mosaic into conceptual RGGB space.

    ``out[y, x] == mosaic[py, px]`` with ``(px, py)`` given by
    ``conceptual_to_physical(x, y, ...)``. Returns a view.
    """
    if pattern is BayerPattern.BGGR:
        return mosaic[::-1, ::-1]
    if pattern is BayerPattern.GRBG:
        return mosaic[:, ::-1]
    if pattern is BayerPattern.GBRG:
        return mosaic[::-1, :]
    return mosaic


def debayer_bilinear(mosaic: np.ndarray, pattern: BayerPattern) -> np.ndarray:
    """
    Bilinear debayer of a normalized single-channel mosaic.

    Parameters
    ----------
    mosaic : np.ndarray
        2D mosaic (H, W), typically normalized to [0, 1].
    pattern : BayerPattern
        Mosaic layout. NONE replicates the gray values into three channels.

    Returns
    -------
    np.ndarray
        RGB image (H, W, 3), float32, indexed by conceptual coordinates.

    Notes
    -----
    Per conceptual pixel (x, y):

    - even row, even col (R site): G = cross average, B = diagonal average
    - even row, odd col (G on R row): R = horizontal, B = vertical average
    - odd row, even col (G on B row): R = vertical, B = horizontal average
    - odd row, odd col (B site): G = cross average, R = diagonal average
    """
    if mosaic.ndim != 2:
        raise InputInvalidError(f"Expected 2D mosaic, got shape {mosaic.shape}")

    pattern = BayerPattern.parse(pattern)
    data = np.ascontiguousarray(mosaic, dtype=np.float32)

    if pattern is BayerPattern.NONE:
        return np.repeat(data[:, :, None], 3, axis=2)

    c = np.ascontiguousarray(to_conceptual(data, pattern))
    h, w = c.shape

    cross = convolve(c, _KERNEL_CROSS, mode="nearest")
    diag = convolve(c, _KERNEL_DIAG, mode="nearest")
    horiz = convolve(c, _KERNEL_HORIZ, mode="nearest")
    vert = convolve(c, _KERNEL_VERT, mode="nearest")

    rgb = np.empty((h, w, 3), dtype=np.float32)

    # R sites
    rgb[0::2, 0::2, 0] = c[0::2, 0::2]
    rgb[0::2, 0::2, 1] = cross[0::2, 0::2]
    rgb[0::2, 0::2, 2] = diag[0::2, 0::2]

    # G on R rows
    rgb[0::2, 1::2, 0] = horiz[0::2, 1::2]
    rgb[0::2, 1::2, 1] = c[0::2, 1::2]
    rgb[0::2, 1::2, 2] = vert[0::2, 1::2]

    # G on B rows
    rgb[1::2, 0::2, 0] = vert[1::2, 0::2]
    rgb[1::2, 0::2, 1] = c[1::2, 0::2]
    rgb[1::2, 0::2, 2] = horiz[1::2, 0::2]

    # B sites
    rgb[1::2, 1::2, 0] = diag[1::2, 1::2]
    rgb[1::2, 1::2, 1] = cross[1::2, 1::2]
    rgb[1::2, 1::2, 2] = c[1::2, 1::2]

    logger.debug("Bilinear debayer (%s): %s -> %s", pattern.name, data.shape, rgb.shape)
    return rgb


def debayer_at(base, cx, cy, pattern: BayerPattern, xp=np):
    """
    Evaluate the bilinear debayer at conceptual pixel coordinates.

    This is the gather form of ``debayer_bilinear``: each output sample
    fetches its own neighbors through ``conceptual_to_physical``.

    Parameters
    ----------
    base : array
        Normalized source (H, W) mosaic/grayscale or (H, W, 3) RGB.
    cx, cy : integer arrays
        Conceptual coordinates, any matching shape.
    pattern : BayerPattern
        Mosaic layout. Ignored for (H, W, 3) sources.
    xp : module, default numpy
        Array module holding ``base``.

    Returns
    -------
    array
        RGB samples with shape ``cx.shape + (3,)``, float32.
    """
    h, w = base.shape[:2]

    if base.ndim == 3:
        px, py = conceptual_to_physical(cx, cy, w, h, BayerPattern.NONE, xp)
        return base[py, px, :].astype(xp.float32)

    if pattern is BayerPattern.NONE:
        px, py = conceptual_to_physical(cx, cy, w, h, BayerPattern.NONE, xp)
        v = base[py, px]
        return xp.stack([v, v, v], axis=-1).astype(xp.float32)

    def fetch(dx, dy):
        px, py = conceptual_to_physical(cx + dx, cy + dy, w, h, pattern, xp)
        return base[py, px]

    center = fetch(0, 0)
    west, east = fetch(-1, 0), fetch(1, 0)
    north, south = fetch(0, -1), fetch(0, 1)
    cross = 0.25 * (west + east + north + south)
    diag = 0.25 * (fetch(-1, -1) + fetch(1, -1) + fetch(-1, 1) + fetch(1, 1))
    horiz = 0.5 * (west + east)
    vert = 0.5 * (north + south)

    y_even = (cy % 2) == 0
    x_even = (cx % 2) == 0
    r_site = y_even & x_even
    g_r_row = y_even & ~x_even
    g_b_row = ~y_even & x_even

    r = xp.where(r_site, center, xp.where(g_r_row, horiz, xp.where(g_b_row, vert, diag)))
    g = xp.where(r_site | ~(g_r_row | g_b_row), cross, center)
    b = xp.where(r_site, diag, xp.where(g_r_row, vert, xp.where(g_b_row, horiz, center)))

    return xp.stack([r, g, b], axis=-1).astype(xp.float32)


def to_base_layout(normalized: np.ndarray) -> np.ndarray:
    """
    Convert normalized frame samples to the renderer source layout.

    (H, W) stays as is; plane-major (3, H, W) becomes (H, W, 3).
    """
    data = np.asarray(normalized, dtype=np.float32)
    if data.ndim == 3:
        return np.ascontiguousarray(np.moveaxis(data, 0, -1))
    return np.ascontiguousarray(data)


def debayer_frame(normalized: np.ndarray, pattern: BayerPattern) -> np.ndarray:
    """
    Build the RGB image of a frame from its normalized samples.

    Parameters
    ----------
    normalized : np.ndarray
        Normalized samples, (H, W) mosaic/grayscale or (3, H, W) planes.
    pattern : BayerPattern
        Mosaic layout, ignored for 3-plane data.

    Returns
    -------
    np.ndarray
        RGB image (H, W, 3), float32.
    """
    base = to_base_layout(normalized)
    if base.ndim == 3:
        return base
    return debayer_bilinear(base, pattern)


def mosaic_from_rgb(rgb: np.ndarray, pattern: BayerPattern) -> np.ndarray:
    """
    Sample an RGB image through a Bayer pattern.

    Conceptual site (x, y) keeps the channel given by its RGGB parity;
    the value is written at the physical location of that site.

    Parameters
    ----------
    rgb : np.ndarray
        RGB image (H, W, 3).
    pattern : BayerPattern
        Target mosaic layout (not NONE).

    Returns
    -------
    np.ndarray
        2D mosaic (H, W), float32.
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise InputInvalidError(f"Expected (H, W, 3) array, got shape {rgb.shape}")
    pattern = BayerPattern.parse(pattern)
    if pattern is BayerPattern.NONE:
        raise InputInvalidError("Cannot build a mosaic with pattern NONE")

    h, w, _ = rgb.shape
    conceptual = np.zeros((h, w), dtype=np.float32)
    conceptual[0::2, 0::2] = rgb[0::2, 0::2, 0]
    conceptual[0::2, 1::2] = rgb[0::2, 1::2, 1]
    conceptual[1::2, 0::2] = rgb[1::2, 0::2, 1]
    conceptual[1::2, 1::2] = rgb[1::2, 1::2, 2]

    # to_conceptual is an involution, so applying it again maps back
    return np.ascontiguousarray(to_conceptual(conceptual, pattern))
