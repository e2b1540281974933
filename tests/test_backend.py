"""
Tests for the backend module (GPU/CPU abstraction).

Tests cover:
- GPU availability detection
- Device info retrieval
- ArrayBackend class (NumPy path, transfer error mapping)

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

import numpy as np
import pytest

from fitsview.backend import (
    ArrayBackend,
    get_array_module,
    get_backend_summary,
    get_device_info,
    is_gpu_available,
)
from fitsview.errors import ResourceUnavailableError


class TestGPUAvailability:
    """Tests for GPU availability detection."""

    def test_is_gpu_available_returns_bool(self):
        """is_gpu_available should return a boolean."""
        assert isinstance(is_gpu_available(), bool)

    def test_get_device_info_returns_dict(self):
        """get_device_info should return a dict with required keys."""
        info = get_device_info()
        assert isinstance(info, dict)
        assert "backend" in info
        assert "device_name" in info
        assert "device_id" in info
        assert info["backend"] in ("numpy", "cupy")

    def test_get_backend_summary_returns_string(self):
        """get_backend_summary should return a non-empty string."""
        summary = get_backend_summary()
        assert isinstance(summary, str)
        assert len(summary) > 0


class TestArrayBackend:
    """Tests for ArrayBackend class."""

    def test_cpu_backend_creation(self):
        """ArrayBackend with use_gpu=False should use NumPy."""
        backend = ArrayBackend(use_gpu=False)
        assert backend.xp is np
        assert not backend.use_gpu
        assert backend.name == "numpy"

    def test_asarray_with_dtype(self):
        backend = ArrayBackend(use_gpu=False)
        arr = backend.asarray([1, 2, 3], dtype=np.float32)
        assert arr.dtype == np.float32
        np.testing.assert_array_equal(arr, [1, 2, 3])

    def test_to_numpy_passthrough(self):
        """to_numpy should return NumPy array unchanged."""
        backend = ArrayBackend(use_gpu=False)
        arr = np.array([1, 2, 3])
        np.testing.assert_array_equal(backend.to_numpy(arr), arr)

    def test_free_is_noop_on_cpu(self):
        ArrayBackend(use_gpu=False).free()

    def test_upload_memory_error_mapped(self, monkeypatch):
        """Allocation failures surface as ResourceUnavailableError."""
        backend = ArrayBackend(use_gpu=False)

        class _FailingModule:
            def asarray(self, data, dtype=None):
                raise MemoryError("out of memory")

        monkeypatch.setattr(backend, "_xp", _FailingModule())
        with pytest.raises(ResourceUnavailableError) as excinfo:
            backend.asarray(np.zeros(4))
        assert isinstance(excinfo.value.original_error, MemoryError)


class TestGetArrayModule:
    """Tests for get_array_module function."""

    def test_returns_numpy_without_gpu(self):
        """Should return numpy when GPU is not requested or available."""
        assert get_array_module(use_gpu=False) is np
