"""
Tests for the gzip FIT adapter.
"""

from unittest.mock import Mock

import pytest

from trackflow.processors import DecodeError, GzipFitDecoder, gunzip_bounded


class TestGunzipBounded:
    """Test bounded gzip decompression."""

    def test_round_trip(self, gzip_bytes):
        """Test a small payload decompresses unchanged."""
        assert gunzip_bounded(gzip_bytes(b"payload" * 10)) == b"payload" * 10

    def test_limit_exceeded(self, gzip_bytes):
        """Test a payload inflating past the limit is refused."""
        with pytest.raises(DecodeError, match="exceeds size limit"):
            gunzip_bounded(gzip_bytes(b"\x00" * 200_000), max_bytes=100_000)

    def test_limit_not_exceeded_at_boundary(self, gzip_bytes):
        """Test a payload exactly at the limit is accepted."""
        assert len(gunzip_bounded(gzip_bytes(b"a" * 1000), max_bytes=1000)) == 1000

    @pytest.mark.parametrize("payload", [b"definitely not gzip", b"\x1f\x8b\x08\x00broken"])
    def test_corrupt_stream(self, payload):
        """Test corrupt streams raise decode errors."""
        with pytest.raises(DecodeError, match="Error decompressing gzipped FIT file"):
            gunzip_bounded(payload)

    def test_truncated_stream(self, gzip_bytes):
        """Test a stream cut short raises a decode error."""
        data = gzip_bytes(b"x" * 5000)
        with pytest.raises(DecodeError):
            gunzip_bounded(data[:len(data) // 2])


class TestGzipFitDecoder:
    """Test decoding gzip-wrapped FIT files."""

    def test_decodes_like_plain_fit(self, sample_fit_bytes, gzip_bytes):
        """Test the inner FIT payload is decoded."""
        activity = GzipFitDecoder().decode(gzip_bytes(sample_fit_bytes))

        assert activity.activity_type == "Running"
        assert activity.duration_s == 1800
        assert activity.sample_count == 3

    def test_delegates_to_fit_decoder(self, gzip_bytes):
        """Test the decompressed bytes are handed to the FIT decoder."""
        fit_decoder = Mock()
        fit_decoder.decode.return_value = "parsed"

        result = GzipFitDecoder(fit_decoder).decode(gzip_bytes(b"inner"))

        assert result == "parsed"
        fit_decoder.decode.assert_called_once_with(b"inner")

    def test_gzipped_garbage(self, gzip_bytes):
        """Test valid gzip wrapping an invalid FIT payload."""
        with pytest.raises(DecodeError, match="FIT"):
            GzipFitDecoder().decode(gzip_bytes(b"not a fit file"))

    def test_size_limit(self, sample_fit_bytes, gzip_bytes):
        """Test the configured decompression limit applies."""
        with pytest.raises(DecodeError, match="exceeds size limit"):
            GzipFitDecoder(max_decompressed_bytes=16).decode(gzip_bytes(sample_fit_bytes))
