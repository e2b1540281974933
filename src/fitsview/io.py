"""
I/O adapters for fitsview.

Handles:
- FITS reading into a RawFrame (parsing delegated to astropy)
- PNG writing of export images (encoding delegated to imageio)

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging
from pathlib import Path

import imageio.v3 as iio
import numpy as np
from astropy.io import fits

from .config import BayerPattern, ExportImage, RawFrame
from .errors import InputInvalidError

logger = logging.getLogger(__name__)


def parse_bayer_hint(hint: BayerPattern | str | int | None) -> BayerPattern:
    """
    Parse a caller-supplied mosaic hint, falling back to NONE.

    An unsupported hint is not fatal: the frame is then displayed as
    grayscale.
    """
    try:
        return BayerPattern.parse(hint)
    except InputInvalidError:
        logger.warning("Unsupported Bayer pattern %r, displaying as grayscale", hint)
        return BayerPattern.NONE


def read_fits(
    path: str | Path,
    bayer_hint: BayerPattern | str | int | None = BayerPattern.NONE,
) -> RawFrame:
    """
    Read a FITS image into a RawFrame.

    Parameters
    ----------
    path : str or Path
        Path to the FITS file.
    bayer_hint : BayerPattern or str, default NONE
        Mosaic layout supplied by the caller. Forced to NONE when the file
        holds three planes.

    Returns
    -------
    RawFrame
        float64 samples in file storage order.

    Notes
    -----
    The first HDU holding image data is used. BZERO/BSCALE are applied by
    astropy. Cubes with three planes are read as RGB; other cubes keep only
    their first plane.
    """
    path = Path(path)
    pattern = parse_bayer_hint(bayer_hint)

    with fits.open(path) as hdul:
        data = None
        for hdu in hdul:
            if hdu.data is not None and getattr(hdu.data, "ndim", 0) >= 2:
                data = np.asarray(hdu.data, dtype=np.float64)
                break

    if data is None:
        raise InputInvalidError(f"No image data in FITS file: {path}")

    data = np.squeeze(data) if data.ndim > 2 else data
    if data.ndim > 3:
        raise InputInvalidError(f"Unsupported FITS dimensionality {data.shape}: {path}")

    if data.ndim == 3 and data.shape[0] != 3:
        logger.warning("FITS cube with %d planes, using the first plane", data.shape[0])
        data = data[0]

    frame = RawFrame.from_array(data, pattern)
    frame.validate()

    logger.info(
        "Read FITS %s: %dx%d, %d channel(s), pattern %s",
        path.name, frame.width, frame.height, frame.channels, frame.pattern.name,
    )
    return frame


def default_export_path(input_path: str | Path | None) -> Path:
    """
    Export path for an input file: same name with a .png suffix.

    Falls back to ``output.png`` in the current directory.
    """
    if input_path is None or str(input_path) == "":
        return Path.cwd() / "output.png"
    return Path(input_path).with_suffix(".png")


def write_png(path: str | Path, image: ExportImage) -> Path:
    """
    Write an export image as PNG.

    Parameters
    ----------
    path : str or Path
        Output path.
    image : ExportImage
        8-bit RGB buffer with top-left origin.

    Returns
    -------
    Path
        The written path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    pixels = np.ascontiguousarray(image.pixels, dtype=np.uint8)
    if pixels.shape != (image.height, image.width, 3):
        raise InputInvalidError(
            f"Export buffer shape {pixels.shape} does not match {image.width}x{image.height}"
        )

    iio.imwrite(path, pixels)
    logger.info("Wrote PNG: %s", path)
    return path
