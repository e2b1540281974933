"""
Tests for the render module.

Tests cover:
- Viewport mapping (letterbox, zoom, pan)
- RasterRenderer lifecycle and error handling
- Agreement of the raster and scalar render substrates

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

import numpy as np
import pytest

from fitsview.config import (
    AutoLevels,
    BayerPattern,
    CurveParams,
    StretchMode,
    StretchParams,
    ViewParams,
    WhiteBalance,
)
from fitsview.debayer import debayer_bilinear
from fitsview.errors import InputInvalidError, ResourceUnavailableError
from fitsview.render import RasterRenderer, render_rgb_scalar, viewport_uv
from fitsview.stretch import apply_white_balance, luminance

PASSTHROUGH = StretchParams(auto_stretch=False)
NO_CURVE = CurveParams()
UNIT_LEVELS = AutoLevels(0.0, 1.0)


@pytest.fixture
def renderer():
    with RasterRenderer(use_gpu=False) as r:
        yield r


class TestViewport:
    """Tests for viewport_uv."""

    def test_identity_hits_pixel_centers(self):
        u, v, inside = viewport_uv(4, 2, 4, 2, letterbox=False)
        np.testing.assert_allclose(u[0], [0.125, 0.375, 0.625, 0.875])
        np.testing.assert_allclose(v[:, 0], [0.25, 0.75])
        assert inside.all()

    def test_letterbox_wide_image(self):
        """A 2:1 image in a square viewport leaves bars top and bottom."""
        _, v, inside = viewport_uv(100, 100, 100, 50)
        assert not inside[0].any()
        assert not inside[-1].any()
        assert inside[50].all()
        # middle rows cover [0.25, 0.75] of the viewport height
        assert inside[:, 0].sum() == 50

    def test_letterbox_tall_image(self):
        u, _, inside = viewport_uv(100, 100, 50, 100)
        assert not inside[:, 0].any()
        assert inside[:, 50].all()

    def test_zoom_centers(self):
        u, _, _ = viewport_uv(4, 4, 4, 4, ViewParams(zoom=2.0), letterbox=False)
        np.testing.assert_allclose(u[0], [0.3125, 0.4375, 0.5625, 0.6875])

    def test_zoom_floor(self):
        u1, _, _ = viewport_uv(4, 4, 4, 4, ViewParams(zoom=0.01), letterbox=False)
        u2, _, _ = viewport_uv(4, 4, 4, 4, ViewParams(zoom=0.1), letterbox=False)
        np.testing.assert_allclose(u1, u2)

    def test_pan_out_of_image(self):
        _, _, inside = viewport_uv(8, 8, 8, 8, ViewParams(pan_x=1.0), letterbox=False)
        assert not inside.any()


class TestRasterRendererLifecycle:
    """Tests for RasterRenderer resource handling."""

    def test_context_manager(self):
        with RasterRenderer() as r:
            assert r.initialized
            assert r.backend_name == "numpy"
        assert not r.initialized
        assert not r.has_image

    def test_upload_requires_init(self):
        r = RasterRenderer()
        with pytest.raises(ResourceUnavailableError):
            r.upload_base(np.zeros((4, 4), dtype=np.float32))

    def test_render_requires_base(self, renderer):
        with pytest.raises(ResourceUnavailableError):
            renderer.render(4, 4, BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS)

    def test_rejects_empty_base(self, renderer):
        with pytest.raises(InputInvalidError):
            renderer.upload_base(np.zeros((0, 4), dtype=np.float32))

    def test_rejects_empty_viewport(self, renderer):
        renderer.upload_base(np.zeros((4, 4), dtype=np.float32))
        with pytest.raises(InputInvalidError):
            renderer.render(0, 4, BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS)

    def test_shutdown_releases_base(self, renderer):
        renderer.upload_base(np.zeros((4, 4), dtype=np.float32))
        assert renderer.has_image
        renderer.shutdown()
        assert not renderer.has_image


class TestRasterRendering:
    """Tests for the raster substrate output."""

    def test_output_shape_and_range(self, renderer):
        renderer.upload_base(np.random.default_rng(0).random((30, 40)).astype(np.float32))
        out = renderer.render(64, 48, BayerPattern.RGGB, WhiteBalance(), StretchParams(), NO_CURVE, AutoLevels(0.1, 0.9))
        assert out.shape == (48, 64, 3)
        assert out.dtype == np.float32
        assert out.min() >= 0.0 and out.max() <= 1.0

    def test_background_is_black(self, renderer):
        """Letterbox bars carry no source data."""
        renderer.upload_base(np.ones((50, 100), dtype=np.float32))
        out = renderer.render(100, 100, BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS)
        assert np.all(out[0] == 0.0)
        assert np.all(out[50] == 1.0)

    def test_pan_outside_is_black(self, renderer):
        renderer.upload_base(np.ones((8, 8), dtype=np.float32))
        out = renderer.render(
            8, 8, BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS,
            view=ViewParams(pan_y=-1.5),
        )
        assert np.all(out == 0.0)

    def test_zoom_out_shrinks_image(self, renderer):
        renderer.upload_base(np.ones((16, 16), dtype=np.float32))
        out = renderer.render(
            16, 16, BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS,
            view=ViewParams(zoom=0.5),
        )
        assert np.all(out[0, 0] == 0.0)
        assert np.all(out[8, 8] == 1.0)

    @pytest.mark.parametrize("pattern", [BayerPattern.RGGB, BayerPattern.BGGR, BayerPattern.GRBG, BayerPattern.GBRG])
    def test_native_render_matches_scalar(self, renderer, pattern):
        """Identity view at native size equals the deterministic pass."""
        mosaic = np.random.default_rng(3).random((21, 34)).astype(np.float32)
        wb = WhiteBalance(1.2, 1.0, 0.8)
        params = StretchParams(mode=StretchMode.ASINH, strength=8.0)
        curve = CurveParams(enabled=True, black=0.05, white=0.95, gamma=1.4)
        levels = AutoLevels(0.15, 0.85)

        renderer.upload_base(mosaic)
        raster = renderer.render_full(pattern, wb, params, curve, levels)
        scalar = render_rgb_scalar(debayer_bilinear(mosaic, pattern), wb, params, curve, levels)

        assert raster.shape == scalar.shape == (21, 34, 3)
        np.testing.assert_allclose(raster, scalar, atol=1e-4)

    def test_luminance_samples_at_native_grid(self, renderer):
        """A 16x16 image on a 16x16 statistics grid samples every pixel once."""
        mosaic = np.random.default_rng(5).random((16, 16)).astype(np.float32)
        wb = WhiteBalance(0.9, 1.0, 1.3)
        renderer.upload_base(mosaic)

        lum = renderer.render_luminance_samples(16, BayerPattern.RGGB, wb)
        expected = luminance(apply_white_balance(debayer_bilinear(mosaic, BayerPattern.RGGB), wb))
        assert lum.shape == (16, 16)
        np.testing.assert_allclose(lum, expected, atol=1e-6)

    def test_rgb_base(self, renderer):
        rgb = np.random.default_rng(9).random((6, 5, 3)).astype(np.float32)
        renderer.upload_base(rgb)
        out = renderer.render_full(BayerPattern.NONE, WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS)
        np.testing.assert_allclose(out, rgb, atol=1e-7)


class TestScalarRender:
    """Tests for render_rgb_scalar."""

    def test_rejects_bad_shape(self):
        with pytest.raises(InputInvalidError):
            render_rgb_scalar(np.zeros((4, 4)), WhiteBalance(), PASSTHROUGH, NO_CURVE, UNIT_LEVELS)

    def test_all_zero_stays_zero(self):
        out = render_rgb_scalar(np.zeros((4, 4, 3)), WhiteBalance(), StretchParams(), NO_CURVE, UNIT_LEVELS)
        assert np.all(out == 0.0)
        assert np.all(np.isfinite(out))
