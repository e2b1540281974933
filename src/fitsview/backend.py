"""
Computational backend abstraction for fitsview.

Provides NumPy-compatible array operations with optional GPU acceleration
via CuPy when available. Falls back to NumPy for CPU-only systems.

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import logging

import numpy as np

from .errors import ResourceUnavailableError

logger = logging.getLogger(__name__)

# Try to import CuPy
_CUPY_AVAILABLE = False
_cupy = None

try:
    import cupy as cp
    _cupy = cp
    _CUPY_AVAILABLE = True
    logger.debug("CuPy available: GPU acceleration enabled")
except ImportError:
    logger.debug("CuPy not available: using NumPy (CPU only)")


def is_gpu_available() -> bool:
    """
    Check if GPU acceleration is available.

    Returns
    -------
    bool
        True if CuPy is installed and a GPU is available.
    """
    if not _CUPY_AVAILABLE:
        return False

    try:
        # Try to access a GPU
        return _cupy.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


def get_device_info() -> dict:
    """
    Get information about the compute device.

    Returns
    -------
    dict
        Device information including name, memory, and backend type.
    """
    if is_gpu_available():
        device = _cupy.cuda.Device()
        props = _cupy.cuda.runtime.getDeviceProperties(device.id)
        return {
            "backend": "cupy",
            "device_name": props["name"].decode() if isinstance(props["name"], bytes) else props["name"],
            "device_id": device.id,
            "total_memory_gb": props["totalGlobalMem"] / (1024**3),
            "compute_capability": f"{props['major']}.{props['minor']}",
        }
    return {
        "backend": "numpy",
        "device_name": "CPU",
        "device_id": -1,
        "total_memory_gb": None,
        "compute_capability": None,
    }


class ArrayBackend:
    """
    Array computation backend abstraction.

    Holds the array module used by the raster renderer and moves buffers
    between host and device. Transfer failures raise
    ``ResourceUnavailableError``.

    Parameters
    ----------
    use_gpu : bool, default True
        Whether to use GPU if available.

    Examples
    --------
    >>> backend = ArrayBackend(use_gpu=True)
    >>> x = backend.asarray([1, 2, 3])
    >>> result = backend.to_numpy(x * 2)
    """

    def __init__(self, use_gpu: bool = True):
        self.use_gpu = use_gpu and is_gpu_available()

        if self.use_gpu:
            self._xp = _cupy
            logger.info("Using CuPy backend (GPU)")
        else:
            self._xp = np
            logger.debug("Using NumPy backend (CPU)")

    @property
    def xp(self):
        """Get the array module (NumPy or CuPy)."""
        return self._xp

    @property
    def name(self) -> str:
        return "cupy" if self.use_gpu else "numpy"

    def asarray(self, data, dtype=None):
        """Convert data to array on the appropriate device."""
        try:
            return self._xp.asarray(data, dtype=dtype)
        except MemoryError as e:
            raise ResourceUnavailableError(f"Device upload failed: {e}", original_error=e) from e
        except Exception as e:
            if self.use_gpu:
                raise ResourceUnavailableError(f"Device upload failed: {e}", original_error=e) from e
            raise

    def to_numpy(self, arr) -> np.ndarray:
        """Convert array back to NumPy (CPU) array."""
        if self.use_gpu and hasattr(arr, "get"):
            try:
                return arr.get()
            except Exception as e:
                raise ResourceUnavailableError(f"Device readback failed: {e}", original_error=e) from e
        return np.asarray(arr)

    def free(self) -> None:
        """Release cached device memory."""
        if self.use_gpu:
            _cupy.get_default_memory_pool().free_all_blocks()


def get_backend_summary() -> str:
    """
    Get a human-readable summary of the compute backend.

    Returns
    -------
    str
        Summary string describing the backend configuration.
    """
    info = get_device_info()
    if info["backend"] == "cupy":
        return (
            f"CuPy/GPU: {info['device_name']} "
            f"({info['total_memory_gb']:.1f} GB, "
            f"compute {info['compute_capability']})"
        )
    return "NumPy/CPU"


def get_array_module(use_gpu: bool = True):
    """
    Get the appropriate array module (NumPy or CuPy).

    Parameters
    ----------
    use_gpu : bool, default True
        Whether to use GPU if available.

    Returns
    -------
    module
        Either numpy or cupy module.
    """
    if use_gpu and is_gpu_available():
        return _cupy
    return np
