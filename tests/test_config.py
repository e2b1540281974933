"""
Tests for configuration and data model dataclasses.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

import numpy as np
import pytest

from fitsview.config import (
    BayerPattern,
    CurveParams,
    RawFrame,
    RenderConfig,
    StretchMode,
    StretchParams,
    ViewParams,
    WhiteBalance,
)
from fitsview.errors import FitsviewError, InputInvalidError


class TestEnums:
    """Tests for BayerPattern and StretchMode parsing."""

    @pytest.mark.parametrize("value", ["RGGB", "rggb", " Rggb ", 1, np.int64(1), BayerPattern.RGGB])
    def test_parse_rggb(self, value):
        assert BayerPattern.parse(value) is BayerPattern.RGGB

    @pytest.mark.parametrize("value", [None, "", "none", "mono", "GRAY", 0])
    def test_parse_none(self, value):
        assert BayerPattern.parse(value) is BayerPattern.NONE

    @pytest.mark.parametrize("value", ["XTRANS", 7, True, 1.5])
    def test_parse_invalid(self, value):
        with pytest.raises(InputInvalidError):
            BayerPattern.parse(value)

    def test_invalid_input_is_value_error(self):
        """InputInvalidError is both a FitsviewError and a ValueError."""
        with pytest.raises(ValueError):
            BayerPattern.parse("XTRANS")
        assert issubclass(InputInvalidError, FitsviewError)

    def test_stretch_mode_parse(self):
        assert StretchMode.parse("asinh") is StretchMode.ASINH
        assert StretchMode.parse(3) is StretchMode.SQRT
        with pytest.raises(InputInvalidError):
            StretchMode.parse("gamma")


class TestRawFrame:
    """Tests for RawFrame."""

    def test_from_2d_array(self):
        frame = RawFrame.from_array(np.zeros((3, 5)), "BGGR")
        assert (frame.width, frame.height, frame.channels) == (5, 3, 1)
        assert frame.pattern is BayerPattern.BGGR
        frame.validate()

    def test_from_planes_forces_none(self):
        frame = RawFrame.from_array(np.zeros((3, 4, 5)), BayerPattern.RGGB)
        assert frame.channels == 3
        assert frame.pattern is BayerPattern.NONE
        assert frame.shape == (3, 4, 5)

    def test_from_interleaved_rgb(self):
        rgb = np.zeros((4, 5, 3))
        rgb[..., 2] = 1.0
        frame = RawFrame.from_array(rgb)
        assert frame.shape == (3, 4, 5)
        assert np.all(frame.as_array()[2] == 1.0)
        assert np.all(frame.as_array()[0] == 0.0)

    def test_samples_read_only(self):
        frame = RawFrame.from_array(np.zeros((2, 2)))
        assert frame.samples.dtype == np.float64
        with pytest.raises(ValueError):
            frame.samples[0] = 1.0

    def test_samples_copied(self):
        data = np.zeros((2, 2))
        frame = RawFrame.from_array(data)
        data[0, 0] = 5.0
        assert frame.samples[0] == 0.0

    def test_validate_sample_count(self):
        with pytest.raises(InputInvalidError, match="Sample count"):
            RawFrame(width=3, height=3, samples=np.zeros(8)).validate()

    def test_validate_dimensions(self):
        with pytest.raises(InputInvalidError):
            RawFrame(width=0, height=3, samples=np.zeros(0)).validate()

    def test_validate_channels(self):
        with pytest.raises(InputInvalidError):
            RawFrame(width=2, height=2, samples=np.zeros(8), channels=2).validate()

    def test_from_array_rejects_bad_shape(self):
        with pytest.raises(InputInvalidError):
            RawFrame.from_array(np.zeros((2, 4, 4)))


class TestParams:
    """Tests for parameter dataclasses."""

    def test_stretch_defaults_valid(self):
        params = StretchParams()
        params.validate()
        assert params.mode is StretchMode.ASINH
        assert params.black_clip == 0.1 and params.white_clip == 0.1

    def test_stretch_mode_name_accepted(self):
        params = StretchParams(mode="log")
        params.validate()
        assert params.mode is StretchMode.LOG

    @pytest.mark.parametrize("kwargs", [
        {"black_clip": -1.0},
        {"white_clip": 101.0},
        {"strength": 0.9},
        {"strength": float("nan")},
    ])
    def test_stretch_invalid(self, kwargs):
        with pytest.raises(ValueError):
            StretchParams(**kwargs).validate()

    @pytest.mark.parametrize("kwargs", [
        {"black": 0.6},
        {"white": 0.4},
        {"gamma": 0.0},
    ])
    def test_curve_invalid(self, kwargs):
        with pytest.raises(ValueError):
            CurveParams(**kwargs).validate()

    def test_white_balance_clamped(self):
        wb = WhiteBalance.clamped(0.1, 1.0, 9.0)
        assert wb.as_tuple() == (0.25, 1.0, 4.0)
        wb.validate()

    def test_white_balance_validate(self):
        with pytest.raises(ValueError):
            WhiteBalance(5.0, 1.0, 1.0).validate()

    def test_view_clamped(self):
        assert ViewParams(zoom=0.01).clamped().zoom == ViewParams.ZOOM_MIN
        assert ViewParams(zoom=50.0).clamped().zoom == ViewParams.ZOOM_MAX
        assert ViewParams(zoom=2.0, pan_x=0.3).clamped() == ViewParams(zoom=2.0, pan_x=0.3)

    @pytest.mark.parametrize("kwargs", [
        {"zoom": float("nan")},
        {"zoom": float("inf")},
        {"pan_x": float("nan")},
        {"pan_y": float("-inf")},
    ])
    def test_view_non_finite_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ViewParams(**kwargs).clamped()

    def test_white_balance_custom_range(self):
        wb = WhiteBalance.clamped(0.5, 1.0, 3.0, gain_range=(0.8, 1.25))
        assert wb.as_tuple() == (0.8, 1.0, 1.25)

    def test_white_balance_nan_invalid(self):
        with pytest.raises(ValueError):
            WhiteBalance.clamped(float("nan"), 1.0, 1.0).validate()


class TestRenderConfig:
    """Tests for RenderConfig."""

    def test_defaults_valid(self):
        config = RenderConfig()
        config.validate()
        assert config.stats_size == 256
        assert config.histogram_bins == 64

    @pytest.mark.parametrize("kwargs", [
        {"stats_source": "gpu"},
        {"export_source": "gl"},
        {"stats_size": 0},
        {"histogram_bins": 0},
        {"wb_luma_range": (0.9, 0.1)},
        {"wb_target_samples": 0},
        {"wb_gain_range": (0.1, 4.0)},
        {"wb_gain_range": (0.25, 8.0)},
        {"wb_gain_range": (1.5, 2.0)},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RenderConfig(**kwargs).validate()
