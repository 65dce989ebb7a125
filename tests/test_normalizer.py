"""Tests for sample normalizer."""

import logging

import numpy as np
import pytest

from srt_editor._types import DecodedBuffer
from srt_editor.normalizer import to_mono


class TestToMono:
    """Tests for downmix and scaling."""

    def test_mono_float_is_identity(self):
        """Test single-channel float input passes through unchanged."""
        data = np.array([[0.1], [-0.5], [0.9]], dtype=np.float32)
        result = to_mono(DecodedBuffer(data, "float32"))
        assert result.dtype == np.float32
        np.testing.assert_array_equal(result, data[:, 0])

    def test_stereo_float_average(self):
        """Test channels are averaged per frame."""
        data = np.array([[1.0, 0.0], [0.5, -0.5], [-1.0, -1.0]], dtype=np.float32)
        result = to_mono(DecodedBuffer(data, "float32"))
        np.testing.assert_allclose(result, [0.5, 0.0, -1.0])

    def test_int16_scaling(self):
        """Test int16 values are scaled into [-1, 1]."""
        data = np.array([[-32768], [16384], [0]], dtype=np.int16)
        result = to_mono(DecodedBuffer(data, "int16"))
        np.testing.assert_allclose(result, [-1.0, 0.5, 0.0])

    def test_int32_scaling_and_average(self):
        """Test int32 values are scaled and averaged."""
        data = np.array([[-2147483648, 0]], dtype=np.int32)
        result = to_mono(DecodedBuffer(data, "int32"))
        np.testing.assert_allclose(result, [-0.5])

    def test_uint8_recentered(self):
        """Test unsigned 8-bit samples are re-centred on 128."""
        data = np.array([[128], [0], [255]], dtype=np.uint8)
        result = to_mono(DecodedBuffer(data, "uint8"))
        np.testing.assert_allclose(result, [0.0, -1.0, 127 / 128])

    def test_output_range(self):
        """Test extreme integer inputs stay in range."""
        data = np.array([[32767, -32768], [-32768, -32768]], dtype=np.int16)
        result = to_mono(DecodedBuffer(data, "int16"))
        assert np.all(result >= -1.0)
        assert np.all(result <= 1.0)

    def test_unsupported_format_yields_empty(self):
        """Test unsupported formats degrade to an empty fragment."""
        data = np.zeros((4, 2), dtype=np.float64)
        result = to_mono(DecodedBuffer(data, "float64"))
        assert result.dtype == np.float32
        assert len(result) == 0

    def test_unsupported_format_is_logged(self, caplog):
        """Test dropped buffers are reported with the format name."""
        data = np.zeros((4, 2), dtype=np.float64)

        with caplog.at_level(logging.WARNING):
            to_mono(DecodedBuffer(data, "float64"))

        assert "Unsupported sample format 'float64'; dropping 4 frames" in caplog.text

    def test_flat_array_treated_as_mono(self):
        """Test 1-D input is treated as one channel."""
        data = np.array([0.25, -0.25], dtype=np.float32)
        result = to_mono(DecodedBuffer(data, "float32"))
        np.testing.assert_array_equal(result, data)

    @pytest.mark.parametrize("fmt", ["float32", "int16", "int32", "uint8"])
    def test_empty_buffer(self, fmt):
        """Test empty buffers produce empty fragments."""
        data = np.zeros((0, 2), dtype=np.float32)
        assert len(to_mono(DecodedBuffer(data, fmt))) == 0
