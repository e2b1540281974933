"""
Render pipeline orchestration.

Holds one loaded exposure and its derived buffers, and drives:

    load -> normalize -> debayer -> statistics -> render / export

State transitions:

    UNLOADED -> LOADED -> NORMALIZED -> STATISTICS_COMPUTED -> READY

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import numpy as np

from .color import estimate_white_balance
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
from .debayer import debayer_frame, to_base_layout
from .errors import FitsviewError, ResourceUnavailableError
from .io import default_export_path, read_fits, write_png
from .render import RasterRenderer, render_rgb_scalar
from .stats import compute_auto_levels, luminance_histogram, normalize_minmax
from .stretch import apply_white_balance, luminance
from .utils import to_uint8

logger = logging.getLogger(__name__)


class RenderPipeline:
    """
    Debayer, stretch and render pipeline for a single exposure.

    The deterministic path (NumPy/SciPy, full resolution) always works;
    the raster path (``RasterRenderer``) serves previews and, when
    configured, statistics and export. Raster failures never corrupt the
    loaded state.

    Parameters
    ----------
    config : RenderConfig, optional
        Pipeline configuration. Defaults to ``RenderConfig()``.

    Examples
    --------
    >>> with RenderPipeline() as pipe:
    ...     pipe.load_fits("m42.fits", "RGGB")
    ...     pipe.compute_auto_white_balance()
    ...     pipe.export_png("m42.png")
    """

    def __init__(self, config: RenderConfig | None = None):
        self.config = config or RenderConfig()
        self.config.validate()

        self._renderer = RasterRenderer(use_gpu=self.config.use_gpu)
        self._raster_ok = False

        self._state = PipelineState.UNLOADED
        self._frame: RawFrame | None = None
        self._source_path: Path | None = None
        self._normalized: np.ndarray | None = None
        self._rgb: np.ndarray | None = None

        self._pattern = BayerPattern.RGGB
        self._stretch = StretchParams()
        self._curve = CurveParams()
        self._wb = WhiteBalance()
        self._view = ViewParams()

        self._levels = AutoLevels()
        self._histogram = np.zeros(self.config.histogram_bins, dtype=np.float32)

    def __enter__(self) -> RenderPipeline:
        self.init()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def levels(self) -> AutoLevels:
        return self._levels

    @property
    def width(self) -> int:
        return self._frame.width if self._frame is not None else 0

    @property
    def height(self) -> int:
        return self._frame.height if self._frame is not None else 0

    @property
    def has_image(self) -> bool:
        return self._rgb is not None

    @property
    def pattern(self) -> BayerPattern:
        return self._pattern

    @property
    def stretch_params(self) -> StretchParams:
        return replace(self._stretch)

    @property
    def curve_params(self) -> CurveParams:
        return replace(self._curve)

    @property
    def white_balance(self) -> WhiteBalance:
        return replace(self._wb)

    @property
    def view_params(self) -> ViewParams:
        return replace(self._view)

    @property
    def debayered(self) -> np.ndarray | None:
        """Read-only view of the debayered RGB image (H, W, 3), or None."""
        if self._rgb is None:
            return None
        view = self._rgb.view()
        view.setflags(write=False)
        return view

    @property
    def raster_available(self) -> bool:
        return self._raster_ok and self._renderer.has_image

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _set_state(self, state: PipelineState) -> None:
        if state is not self._state:
            logger.debug("Pipeline state: %s -> %s", self._state.value, state.value)
        self._state = state

    def init(self) -> bool:
        """
        Create raster resources.

        Returns
        -------
        bool
            True if the raster path is available. On failure only the
            deterministic path is used.
        """
        if self._renderer.initialized:
            return self._raster_ok
        try:
            self._renderer.init()
            self._raster_ok = True
        except ResourceUnavailableError as e:
            logger.warning("Raster renderer unavailable, using CPU path only: %s", e)
            self._raster_ok = False
            return False

        if self._normalized is not None:
            self._upload_base()
        return True

    def shutdown(self) -> None:
        """Release raster resources and drop the loaded exposure."""
        self._renderer.shutdown()
        self._raster_ok = False
        self._frame = None
        self._source_path = None
        self._normalized = None
        self._rgb = None
        self._levels = AutoLevels()
        self._histogram = np.zeros(self.config.histogram_bins, dtype=np.float32)
        self._set_state(PipelineState.UNLOADED)

    def _upload_base(self) -> None:
        try:
            self._renderer.upload_base(to_base_layout(self._normalized))
        except ResourceUnavailableError as e:
            logger.warning("Base upload failed, raster path disabled: %s", e)
            self._raster_ok = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_frame(self, frame: RawFrame) -> None:
        """
        Load a raw exposure, replacing any previous one.

        Parameters
        ----------
        frame : RawFrame
            Raw samples and mosaic pattern.

        Raises
        ------
        InputInvalidError
            If the frame is empty or inconsistent. The previous exposure
            and its derived state are kept.
        """
        frame.validate()

        pattern = BayerPattern.NONE if frame.channels == 3 else frame.pattern
        normalized = normalize_minmax(frame.as_array())
        rgb = debayer_frame(normalized, pattern)

        self._frame = frame
        self._source_path = None
        self._pattern = pattern
        self._set_state(PipelineState.LOADED)
        logger.info(
            "Loaded frame %dx%d (%d channel(s), pattern %s)",
            frame.width, frame.height, frame.channels, pattern.name,
        )

        self._normalized = normalized
        self._rgb = rgb
        self._set_state(PipelineState.NORMALIZED)

        if self._renderer.initialized:
            self._raster_ok = True
            self._upload_base()
        else:
            self.init()

        self._view = ViewParams()
        self.recompute_auto_stretch()

    def load_fits(
        self,
        path: str | Path,
        bayer_hint: BayerPattern | str | int | None = BayerPattern.NONE,
    ) -> None:
        """
        Read a FITS file and load it.

        An unsupported ``bayer_hint`` falls back to grayscale display.
        """
        frame = read_fits(path, bayer_hint)
        self.load_frame(frame)
        self._source_path = Path(path)

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def set_stretch_params(self, params: StretchParams) -> None:
        """Set stretch parameters and recompute statistics."""
        params = replace(params)
        params.validate()
        self._stretch = params
        self.recompute_auto_stretch()

    def set_curve_params(self, params: CurveParams) -> None:
        """Set the manual curve. Statistics are not affected."""
        params = replace(params)
        params.validate()
        self._curve = params

    def set_white_balance(self, wb: WhiteBalance) -> None:
        """
        Set white balance gains (clamped to [0.25, 4]) and recompute statistics.

        Raises
        ------
        ValueError
            If a gain is not finite; the current gains are kept.
        """
        clamped = WhiteBalance.clamped(wb.r, wb.g, wb.b)
        clamped.validate()
        self._wb = clamped
        logger.debug("White balance set: R=%.3f G=%.3f B=%.3f", self._wb.r, self._wb.g, self._wb.b)
        self.recompute_auto_stretch()

    def set_view_params(self, view: ViewParams) -> None:
        """Set preview zoom and pan. Export is not affected."""
        self._view = view.clamped()

    def set_bayer_pattern(self, pattern: BayerPattern | str | int) -> None:
        """
        Change the mosaic layout, re-debayer and recompute statistics.

        Raises
        ------
        InputInvalidError
            If ``pattern`` is not a supported value.
        """
        pattern = BayerPattern.parse(pattern)
        if self._frame is not None and self._frame.channels == 3:
            pattern = BayerPattern.NONE
        if pattern is self._pattern:
            return

        self._pattern = pattern
        logger.debug("Bayer pattern set: %s", pattern.name)
        if self._normalized is not None:
            self._rgb = debayer_frame(self._normalized, pattern)
            self._set_state(PipelineState.NORMALIZED)
            self.recompute_auto_stretch()

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _luminance_samples(self) -> np.ndarray:
        if self.config.stats_source == "raster" and self.raster_available:
            try:
                return self._renderer.render_luminance_samples(
                    self.config.stats_size, self._pattern, self._wb
                )
            except ResourceUnavailableError as e:
                logger.warning("Raster statistics failed, using full resolution: %s", e)
        return luminance(apply_white_balance(self._rgb, self._wb))

    def recompute_auto_stretch(self) -> AutoLevels:
        """
        Recompute auto levels and the display histogram.

        Returns
        -------
        AutoLevels
            The new levels; (0, 1) when no image is loaded or auto stretch
            is disabled.
        """
        if self._rgb is None:
            return self._levels

        lum = self._luminance_samples()
        bins = self.config.histogram_bins

        if self._stretch.auto_stretch:
            levels = compute_auto_levels(
                lum,
                self._stretch.black_clip,
                self._stretch.white_clip,
                self.config.robust_sigma,
            )
            hist = luminance_histogram(
                lum, levels, self._stretch.strength, self._stretch.mode, bins
            )
        else:
            levels = AutoLevels(0.0, 1.0)
            hist = luminance_histogram(lum, levels, 1.0, StretchMode.LINEAR, bins)

        self._levels = levels
        self._histogram = hist
        self._set_state(PipelineState.STATISTICS_COMPUTED)
        logger.debug("Levels: low=%.5f high=%.5f (%d samples)", levels.low, levels.high, lum.size)
        self._set_state(PipelineState.READY)
        return levels

    def estimate_white_balance(self) -> WhiteBalance | None:
        """Grey-world gains of the current image, without applying them."""
        if self._rgb is None:
            return None
        return estimate_white_balance(
            self._rgb,
            self.config.wb_target_samples,
            self.config.wb_luma_range,
            self.config.wb_gain_range,
        )

    def compute_auto_white_balance(self) -> bool:
        """
        Estimate grey-world gains from the current image and apply them.

        Returns
        -------
        bool
            False when no image is loaded or no pixel survives the
            luminance band; gains are then unchanged.
        """
        if self._rgb is None:
            return False
        wb = self.estimate_white_balance()
        if wb is None:
            logger.warning("Auto white balance: no usable samples, gains unchanged")
            return False
        self.set_white_balance(wb)
        return True

    def luminance_histogram(self) -> np.ndarray:
        """Return a copy of the display histogram (peak 1, sqrt compressed)."""
        return self._histogram.copy()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _require_image(self) -> None:
        if self._rgb is None:
            raise FitsviewError("No image loaded")

    def render_preview(self, width: int, height: int) -> np.ndarray:
        """
        Render the interactive preview into a ``width`` x ``height`` raster.

        Returns
        -------
        np.ndarray
            Read-only RGB (height, width, 3) float32 in [0, 1].

        Raises
        ------
        ResourceUnavailableError
            If the raster path is unavailable or fails. Pipeline state is
            kept.
        """
        self._require_image()
        if not self.raster_available:
            raise ResourceUnavailableError("Raster renderer unavailable for preview")

        out = self._renderer.render(
            width, height, self._pattern, self._wb,
            self._stretch, self._curve, self._levels, self._view,
        )
        out.setflags(write=False)
        return out

    def render_rgb(self) -> np.ndarray:
        """
        Render the display image at native resolution, ignoring zoom and pan.

        Returns
        -------
        np.ndarray
            RGB (height, width, 3) float32 in [0, 1].
        """
        self._require_image()

        if self.config.export_source == "raster" and self.raster_available:
            try:
                return self._renderer.render_full(
                    self._pattern, self._wb, self._stretch, self._curve, self._levels
                )
            except ResourceUnavailableError as e:
                logger.warning("Raster export failed, using CPU path: %s", e)

        return render_rgb_scalar(self._rgb, self._wb, self._stretch, self._curve, self._levels)

    def render_to_image(self) -> ExportImage:
        """Render the full-resolution 8-bit export image."""
        rgb = self.render_rgb()
        pixels = to_uint8(rgb)
        return ExportImage(width=self.width, height=self.height, pixels=pixels)

    def export_png(self, path: str | Path | None = None) -> Path:
        """
        Export the full-resolution image as PNG.

        Parameters
        ----------
        path : str or Path, optional
            Output path. Defaults to the loaded FITS path with a .png suffix.

        Returns
        -------
        Path
            The written path.
        """
        image = self.render_to_image()
        if path is None:
            path = default_export_path(self._source_path)
        return write_png(path, image)
