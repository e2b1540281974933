"""
Render substrates for the display pipeline.

- ``RasterRenderer``: per-output-pixel evaluation on the device array module
  (CuPy or NumPy). Debayer, white balance, stretch and curve are fused into
  one gather pass per output pixel, with viewport mapping for previews.
- ``render_rgb_scalar``: deterministic full-resolution pass over a
  pre-debayered RGB image.

Both substrates call the same ``apply_display_transform``.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging

import numpy as np

from .backend import ArrayBackend
from .config import (
    AutoLevels,
    BayerPattern,
    CurveParams,
    StretchParams,
    ViewParams,
    WhiteBalance,
)
from .debayer import debayer_at
from .errors import InputInvalidError, ResourceUnavailableError
from .stretch import apply_display_transform, apply_white_balance, luminance

logger = logging.getLogger(__name__)


def render_rgb_scalar(
    rgb: np.ndarray,
    wb: WhiteBalance,
    stretch_params: StretchParams,
    curve: CurveParams,
    levels: AutoLevels,
) -> np.ndarray:
    """
    Deterministic display pass over a full-resolution RGB image.

    Parameters
    ----------
    rgb : np.ndarray
        Debayered RGB image (H, W, 3).
    wb : WhiteBalance
        Channel gains.
    stretch_params : StretchParams
        Stretch settings.
    curve : CurveParams
        Manual curve settings.
    levels : AutoLevels
        Black and white points.

    Returns
    -------
    np.ndarray
        Display RGB (H, W, 3) in [0, 1], float32.
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise InputInvalidError(f"Expected (H, W, 3) array, got shape {rgb.shape}")

    out = apply_display_transform(
        rgb, wb, stretch_params, curve, levels.low, levels.high, xp=np
    )
    logger.debug("Scalar render: %s", out.shape)
    return out


def viewport_uv(
    out_width: int,
    out_height: int,
    tex_width: int,
    tex_height: int,
    view: ViewParams | None = None,
    letterbox: bool = True,
    xp=np,
):
    """
    Map output pixel centers to normalized source coordinates.

    Parameters
    ----------
    out_width, out_height : int
        Output raster size.
    tex_width, tex_height : int
        Source image size.
    view : ViewParams, optional
        Zoom and pan; identity when None.
    letterbox : bool, default True
        Preserve the source aspect ratio, leaving bars outside the image.
    xp : module, default numpy
        Array module.

    Returns
    -------
    tuple
        (u, v, inside): float64 arrays of shape (out_height, out_width) with
        top-left origin, and the mask of samples that fall on the source.
    """
    u = (xp.arange(out_width, dtype=xp.float64) + 0.5) / out_width
    v = (xp.arange(out_height, dtype=xp.float64) + 0.5) / out_height
    u, v = xp.meshgrid(u, v)

    if letterbox:
        tex_aspect = tex_width / tex_height
        screen_aspect = out_width / out_height
        if screen_aspect > tex_aspect:
            u = (u - 0.5) / (tex_aspect / screen_aspect) + 0.5
        elif screen_aspect < tex_aspect:
            v = (v - 0.5) / (screen_aspect / tex_aspect) + 0.5

    if view is not None:
        zoom = max(view.zoom, ViewParams.ZOOM_MIN)
        u = (u - 0.5) / zoom + 0.5 + view.pan_x
        v = (v - 0.5) / zoom + 0.5 + view.pan_y

    inside = (u >= 0.0) & (u <= 1.0) & (v >= 0.0) & (v <= 1.0)
    return u, v, inside


class RasterRenderer:
    """
    Raster render substrate.

    Owns the device copy of the normalized source ("base texture") and
    evaluates the fused display pipeline for every output pixel. Resources
    are created by ``init()`` and released by ``shutdown()``; the renderer
    is also a context manager.

    Parameters
    ----------
    use_gpu : bool, default False
        Use CuPy when a GPU is available.

    Examples
    --------
    >>> with RasterRenderer() as renderer:
    ...     renderer.upload_base(normalized)
    ...     preview = renderer.render(640, 480, BayerPattern.RGGB, ...)
    """

    def __init__(self, use_gpu: bool = False):
        self.use_gpu = use_gpu
        self._backend: ArrayBackend | None = None
        self._base = None
        self._width = 0
        self._height = 0

    def __enter__(self) -> RasterRenderer:
        self.init()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._backend is not None

    @property
    def has_image(self) -> bool:
        return self._base is not None

    @property
    def backend_name(self) -> str:
        return self._backend.name if self._backend is not None else "none"

    def init(self) -> None:
        """Create the array backend."""
        if self._backend is not None:
            return
        try:
            self._backend = ArrayBackend(use_gpu=self.use_gpu)
        except Exception as e:
            raise ResourceUnavailableError(f"Backend creation failed: {e}", original_error=e) from e
        logger.debug("Raster renderer initialized (%s)", self._backend.name)

    def shutdown(self) -> None:
        """Release the base texture and cached device memory."""
        self._base = None
        self._width = self._height = 0
        if self._backend is not None:
            self._backend.free()
            self._backend = None
        logger.debug("Raster renderer shut down")

    def upload_base(self, base: np.ndarray) -> None:
        """
        Upload the normalized source to the device.

        Parameters
        ----------
        base : np.ndarray
            (H, W) mosaic/grayscale or (H, W, 3) RGB, float32 in [0, 1].
        """
        if self._backend is None:
            raise ResourceUnavailableError("Raster renderer is not initialized")
        if base.ndim not in (2, 3) or base.size == 0:
            raise InputInvalidError(f"Invalid base texture shape {base.shape}")

        self._base = None
        self._base = self._backend.asarray(base, dtype=np.float32)
        self._height, self._width = base.shape[:2]
        logger.debug("Uploaded base texture %s to %s", base.shape, self._backend.name)

    def _require_base(self):
        if self._backend is None or self._base is None:
            raise ResourceUnavailableError("No base texture on the raster renderer")
        return self._backend.xp

    def _texel_coords(self, u, v, xp):
        cx = xp.clip(xp.floor(u * self._width), 0, self._width - 1).astype(xp.int64)
        cy = xp.clip(xp.floor(v * self._height), 0, self._height - 1).astype(xp.int64)
        return cx, cy

    def render(
        self,
        width: int,
        height: int,
        pattern: BayerPattern,
        wb: WhiteBalance,
        stretch_params: StretchParams,
        curve: CurveParams,
        levels: AutoLevels,
        view: ViewParams | None = None,
        letterbox: bool = True,
    ) -> np.ndarray:
        """
        Render the display image into a ``width`` x ``height`` raster.

        Samples that fall outside the source after aspect correction,
        zoom and pan are black.

        Returns
        -------
        np.ndarray
            Host RGB (height, width, 3) in [0, 1], float32.
        """
        if width <= 0 or height <= 0:
            raise InputInvalidError(f"Viewport must be positive, got {width}x{height}")
        xp = self._require_base()

        try:
            u, v, inside = viewport_uv(
                width, height, self._width, self._height, view, letterbox, xp
            )
            cx, cy = self._texel_coords(u, v, xp)
            rgb = debayer_at(self._base, cx, cy, pattern, xp)
            out = apply_display_transform(
                rgb, wb, stretch_params, curve, levels.low, levels.high, xp
            )
            out = xp.where(inside[..., None], out, xp.float32(0.0)).astype(xp.float32)
        except MemoryError as e:
            raise ResourceUnavailableError(f"Raster render failed: {e}", original_error=e) from e

        return self._backend.to_numpy(out)

    def render_full(
        self,
        pattern: BayerPattern,
        wb: WhiteBalance,
        stretch_params: StretchParams,
        curve: CurveParams,
        levels: AutoLevels,
    ) -> np.ndarray:
        """Render at native resolution with an identity view."""
        self._require_base()
        return self.render(
            self._width, self._height, pattern, wb, stretch_params, curve, levels,
            view=None, letterbox=False,
        )

    def render_luminance_samples(
        self,
        size: int,
        pattern: BayerPattern,
        wb: WhiteBalance,
    ) -> np.ndarray:
        """
        Render white-balanced luminance on a ``size`` x ``size`` grid.

        Each grid cell takes the nearest source pixel; the result is the
        downsampled sample set used for raster statistics.

        Returns
        -------
        np.ndarray
            Host luminance (size, size), float32 in [0, 1].
        """
        if size <= 0:
            raise InputInvalidError(f"Statistics raster size must be positive, got {size}")
        xp = self._require_base()

        try:
            u, v, _ = viewport_uv(size, size, self._width, self._height, None, False, xp)
            cx, cy = self._texel_coords(u, v, xp)
            rgb = apply_white_balance(debayer_at(self._base, cx, cy, pattern, xp), wb, xp)
            lum = luminance(rgb, xp)
        except MemoryError as e:
            raise ResourceUnavailableError(f"Statistics render failed: {e}", original_error=e) from e

        return self._backend.to_numpy(lum)
