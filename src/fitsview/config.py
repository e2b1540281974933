"""
Configuration and data model dataclasses for the fitsview pipeline.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import numpy as np

from .errors import InputInvalidError


class BayerPattern(Enum):
    """Mosaic layout of a single-channel sensor readout."""

    NONE = 0  # Grayscale or already-RGB data
    RGGB = 1
    BGGR = 2  # RGGB rotated 180 degrees
    GRBG = 3  # RGGB flipped horizontally
    GBRG = 4  # RGGB flipped vertically

    @classmethod
    def parse(cls, value: BayerPattern | str | int | None) -> BayerPattern:
        """
        Convert a user-supplied value to a BayerPattern.

        Accepts members, names (case-insensitive, "none" or "" for NONE)
        and integer codes.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str):
            name = value.strip().upper()
            if name in ("", "NONE", "MONO", "GRAY"):
                return cls.NONE
            if name in cls.__members__:
                return cls[name]
        elif isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass
        raise InputInvalidError(f"Unsupported Bayer pattern: {value!r}")


class StretchMode(Enum):
    """Nonlinear tone stretch family."""

    LINEAR = 0
    ASINH = 1
    LOG = 2
    SQRT = 3

    @classmethod
    def parse(cls, value: StretchMode | str | int) -> StretchMode:
        """Convert a name or integer code to a StretchMode."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass
        raise InputInvalidError(f"Unsupported stretch mode: {value!r}")


class PipelineState(Enum):
    """Lifecycle of one loaded exposure."""

    UNLOADED = "unloaded"
    LOADED = "loaded"
    NORMALIZED = "normalized"
    STATISTICS_COMPUTED = "statistics_computed"
    READY = "ready"


@dataclass(frozen=True)
class RawFrame:
    """
    Raw exposure as delivered by a FITS reader.

    Samples are float64 and flat: row-major for a single channel,
    plane-major (3 x H x W) for three channels.
    """

    width: int
    height: int
    samples: np.ndarray
    channels: int = 1
    pattern: BayerPattern = BayerPattern.NONE

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).ravel()
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "pattern", BayerPattern.parse(self.pattern))
        if self.channels == 3:
            object.__setattr__(self, "pattern", BayerPattern.NONE)

    def validate(self) -> None:
        """Validate dimensions and sample count."""
        if self.width <= 0 or self.height <= 0:
            raise InputInvalidError(
                f"Frame dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.channels not in (1, 3):
            raise InputInvalidError(f"Expected 1 or 3 channels, got {self.channels}")
        expected = self.width * self.height * self.channels
        if self.samples.size != expected:
            raise InputInvalidError(
                f"Sample count mismatch: got {self.samples.size}, expected {expected}"
            )

    @property
    def shape(self) -> tuple[int, ...]:
        """Array shape of the sample data: (H, W) or (3, H, W)."""
        if self.channels == 3:
            return (3, self.height, self.width)
        return (self.height, self.width)

    def as_array(self) -> np.ndarray:
        """Return samples reshaped to (H, W) or (3, H, W)."""
        return self.samples.reshape(self.shape)

    @classmethod
    def from_array(
        cls,
        data: np.ndarray,
        pattern: BayerPattern | str | int | None = BayerPattern.NONE,
    ) -> RawFrame:
        """
        Build a frame from a 2D mosaic or a 3-plane cube.

        Parameters
        ----------
        data : np.ndarray
            (H, W), (3, H, W) or (H, W, 3) array.
        pattern : BayerPattern or str, default NONE
            Mosaic hint, forced to NONE for 3-plane input.
        """
        data = np.asarray(data)
        if data.ndim == 2:
            h, w = data.shape
            return cls(width=w, height=h, samples=data, channels=1, pattern=pattern)
        if data.ndim == 3 and data.shape[0] == 3:
            _, h, w = data.shape
            return cls(width=w, height=h, samples=data, channels=3)
        if data.ndim == 3 and data.shape[2] == 3:
            h, w, _ = data.shape
            return cls(
                width=w, height=h, samples=np.moveaxis(data, -1, 0), channels=3
            )
        raise InputInvalidError(f"Expected (H, W) or 3-plane array, got shape {data.shape}")


@dataclass
class StretchParams:
    """Automatic stretch settings."""

    auto_stretch: bool = True
    """Apply the auto stretch; when False pixels pass through unstretched."""

    black_clip: float = 0.1
    """Percentage of darkest luminance samples clipped to black."""

    white_clip: float = 0.1
    """Percentage of brightest luminance samples clipped to white."""

    strength: float = 5.0
    """Asinh/log stretch strength (values below 1 act as 1)."""

    mode: StretchMode = StretchMode.ASINH

    def validate(self) -> None:
        """Validate configuration parameters."""
        self.mode = StretchMode.parse(self.mode)
        if not 0.0 <= self.black_clip <= 100.0:
            raise ValueError(f"black_clip must be in [0, 100], got {self.black_clip}")
        if not 0.0 <= self.white_clip <= 100.0:
            raise ValueError(f"white_clip must be in [0, 100], got {self.white_clip}")
        if not np.isfinite(self.strength) or self.strength < 1.0:
            raise ValueError(f"strength must be >= 1, got {self.strength}")


@dataclass
class CurveParams:
    """Manual black/white/gamma tone curve, applied after the stretch."""

    enabled: bool = False
    black: float = 0.0
    white: float = 1.0
    gamma: float = 1.0

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not 0.0 <= self.black <= 0.5:
            raise ValueError(f"curve black must be in [0, 0.5], got {self.black}")
        if not 0.5 <= self.white <= 1.0:
            raise ValueError(f"curve white must be in [0.5, 1], got {self.white}")
        if not self.gamma > 0.0:
            raise ValueError(f"curve gamma must be positive, got {self.gamma}")


@dataclass
class WhiteBalance:
    """Per-channel white balance gains."""

    r: float = 1.0
    g: float = 1.0
    b: float = 1.0

    GAIN_MIN = 0.25
    GAIN_MAX = 4.0

    @classmethod
    def clamped(
        cls,
        r: float,
        g: float,
        b: float,
        gain_range: tuple[float, float] | None = None,
    ) -> WhiteBalance:
        """Create gains clamped to ``gain_range`` (default [0.25, 4.0])."""
        lo, hi = gain_range if gain_range is not None else (cls.GAIN_MIN, cls.GAIN_MAX)
        return cls(
            r=float(min(max(r, lo), hi)),
            g=float(min(max(g, lo), hi)),
            b=float(min(max(b, lo), hi)),
        )

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)

    def validate(self) -> None:
        """Validate configuration parameters."""
        for name, gain in zip("rgb", self.as_tuple()):
            if not self.GAIN_MIN <= gain <= self.GAIN_MAX:
                raise ValueError(
                    f"white balance gain {name} must be in "
                    f"[{self.GAIN_MIN}, {self.GAIN_MAX}], got {gain}"
                )


@dataclass
class ViewParams:
    """Zoom and pan of the interactive preview (presentation only)."""

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    ZOOM_MIN = 0.1
    ZOOM_MAX = 20.0

    def validate(self) -> None:
        """Validate configuration parameters."""
        for name in ("zoom", "pan_x", "pan_y"):
            value = getattr(self, name)
            if not np.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")

    def clamped(self) -> ViewParams:
        """
        Return a copy with zoom clamped to [0.1, 20].

        Raises
        ------
        ValueError
            If zoom or pan is not finite.
        """
        self.validate()
        zoom = min(max(self.zoom, self.ZOOM_MIN), self.ZOOM_MAX)
        return ViewParams(zoom=zoom, pan_x=self.pan_x, pan_y=self.pan_y)


@dataclass(frozen=True)
class AutoLevels:
    """Black and white points derived from luminance statistics."""

    low: float = 0.0
    high: float = 1.0


@dataclass
class RenderConfig:
    """
    Configuration for the render pipeline.

    All parameters are explicitly documented and have sensible defaults.
    """

    # --- Compute backend ---
    use_gpu: bool = False
    """Run the raster path on CuPy when a GPU is available."""

    # --- Statistics ---
    stats_source: Literal["full", "raster"] = "full"
    """Luminance population for auto levels: 'full' (every pixel, deterministic)
    or 'raster' (stats_size x stats_size nearest-sample render)."""

    stats_size: int = 256
    """Side of the square raster used for downsampled statistics."""

    histogram_bins: int = 64
    """Number of bins of the display histogram."""

    robust_sigma: float = 1.5
    """MAD multiplier for the robust black point candidate."""

    # --- White balance ---
    wb_target_samples: int = 200_000
    """Approximate number of pixels sampled by the grey-world estimator."""

    wb_luma_range: tuple[float, float] = (0.10, 0.90)
    """Luminance band kept by the grey-world estimator."""

    wb_gain_range: tuple[float, float] = (0.25, 4.0)
    """Clamp applied to estimated gains; must lie within [0.25, 4.0]."""

    # --- Export ---
    export_source: Literal["cpu", "raster"] = "cpu"
    """Substrate used for export: deterministic 'cpu' pass or 'raster' render."""

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.stats_source not in ("full", "raster"):
            raise ValueError(f"stats_source must be 'full' or 'raster', got {self.stats_source}")
        if self.export_source not in ("cpu", "raster"):
            raise ValueError(f"export_source must be 'cpu' or 'raster', got {self.export_source}")
        if self.stats_size < 1:
            raise ValueError(f"stats_size must be >= 1, got {self.stats_size}")
        if self.histogram_bins < 1:
            raise ValueError(f"histogram_bins must be >= 1, got {self.histogram_bins}")
        if self.robust_sigma < 0:
            raise ValueError(f"robust_sigma must be >= 0, got {self.robust_sigma}")
        if self.wb_target_samples < 1:
            raise ValueError(
                f"wb_target_samples must be >= 1, got {self.wb_target_samples}"
            )
        lo, hi = self.wb_luma_range
        if not 0.0 <= lo < hi <= 1.0:
            raise ValueError(f"wb_luma_range must satisfy 0 <= lo < hi <= 1, got {self.wb_luma_range}")
        g_lo, g_hi = self.wb_gain_range
        if not WhiteBalance.GAIN_MIN <= g_lo <= 1.0 <= g_hi <= WhiteBalance.GAIN_MAX:
            raise ValueError(
                f"wb_gain_range must satisfy {WhiteBalance.GAIN_MIN} <= lo <= 1 <= hi <= "
                f"{WhiteBalance.GAIN_MAX}, got {self.wb_gain_range}"
            )


@dataclass
class ExportImage:
    """8-bit RGB export buffer, row-major with top-left origin."""

    width: int
    height: int
    pixels: np.ndarray = field(repr=False)

    @property
    def row_stride(self) -> int:
        """Bytes per row (tightly packed RGB8)."""
        return self.width * 3

    def tobytes(self) -> bytes:
        return np.ascontiguousarray(self.pixels, dtype=np.uint8).tobytes()
