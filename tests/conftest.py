"""
Pytest configuration and fixtures.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

import numpy as np
import pytest
from astropy.io import fits

from fitsview.config import BayerPattern
from fitsview.debayer import mosaic_from_rgb


@pytest.fixture
def synthetic_bayer_rggb():
    """Create a synthetic RGGB Bayer pattern image."""
    def _create(height=8, width=8, r_value=0.8, g_value=0.4, b_value=0.2):
        """
        Create a synthetic RGGB Bayer mosaic.

        RGGB pattern:
            R  G  R  G  ...  (even rows)
            G  B  G  B  ...  (odd rows)
        """
        bayer = np.zeros((height, width), dtype=np.float32)

        # R at (even row, even col)
        bayer[0::2, 0::2] = r_value
        # G at (even row, odd col)
        bayer[0::2, 1::2] = g_value
        # G at (odd row, even col)
        bayer[1::2, 0::2] = g_value
        # B at (odd row, odd col)
        bayer[1::2, 1::2] = b_value

        return bayer

    return _create


@pytest.fixture
def synthetic_rgb():
    """Create a constant-color RGB image."""
    def _create(height=8, width=8, r_value=0.8, g_value=0.4, b_value=0.2):
        rgb = np.zeros((height, width, 3), dtype=np.float32)
        rgb[:, :, 0] = r_value
        rgb[:, :, 1] = g_value
        rgb[:, :, 2] = b_value
        return rgb

    return _create


@pytest.fixture
def synthetic_mosaic(synthetic_rgb):
    """Create a constant-color mosaic for any Bayer pattern."""
    def _create(pattern, height=8, width=8, r_value=0.8, g_value=0.4, b_value=0.2):
        rgb = synthetic_rgb(height, width, r_value, g_value, b_value)
        return mosaic_from_rgb(rgb, BayerPattern.parse(pattern))

    return _create


@pytest.fixture
def ramp_rgb():
    """
    Create a red-dominant RGB ramp: (t, t/2, t/2) with t from 0 to 1.

    Min-max renormalization leaves it unchanged, so grey-world gains are
    exactly (2/3, 4/3, 4/3).
    """
    def _create(height=32, width=32):
        t = np.linspace(0.0, 1.0, height * width, dtype=np.float64).reshape(height, width)
        return np.stack([t, 0.5 * t, 0.5 * t], axis=-1).astype(np.float32)

    return _create


@pytest.fixture
def synthetic_star_field():
    """Create a synthetic star field with Gaussian stars."""
    def _create(height=64, width=64, n_stars=12, background=1000, seed=42):
        rng = np.random.default_rng(seed)

        # Background
        image = np.full((height, width), background, dtype=np.float64)

        # Add Gaussian noise
        image += rng.normal(0, 50, (height, width))

        # Add stars (2D Gaussians)
        yy, xx = np.mgrid[0:height, 0:width]
        for _ in range(n_stars):
            y0 = rng.uniform(4, height - 4)
            x0 = rng.uniform(4, width - 4)
            sigma = rng.uniform(1, 3)
            amplitude = rng.uniform(5000, 50000)
            image += amplitude * np.exp(-((xx - x0)**2 + (yy - y0)**2) / (2 * sigma**2))

        return np.clip(image, 0, 65535)

    return _create


@pytest.fixture
def fits_file(tmp_path):
    """Write an array to a temporary FITS file and return its path."""
    def _create(data, name="frame.fits"):
        path = tmp_path / name
        fits.PrimaryHDU(data=np.asarray(data)).writeto(path, overwrite=True)
        return path

    return _create
