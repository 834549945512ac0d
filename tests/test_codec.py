# ABOUTME: Test suite for the spz stream encoder and decoder
# ABOUTME: Covers a known byte vector, round trips, SH omission and malformed streams

import io

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spz_codec.decoder import SpzReader, SpzReaderOptions, decode_spz, load_spz_from_stream, read_spz_header
from spz_codec.encoder import SpzWriter, SpzWriterOptions, encode_spz, write_spz_to_stream
from spz_codec.errors import (
    InvalidHeaderError,
    MixedShOrderError,
    SpzError,
    TrailingDataError,
    TruncatedStreamError,
)
from spz_codec.gaussian import Gaussian, GaussianCloud
from spz_codec.spherical_harmonics import SphericalHarmonics, SphericalHarmonicsOrder

KNOWN_STREAM = bytes.fromhex(
    '4e475350' '02000000' '01000000' '000c0000'
    '004006' '00800c' '00c0f9'
    'b8'
    'a69389'
    'b090b0'
    '8080ff'
)


def make_gaussians(n, order=SphericalHarmonicsOrder.ORDER0, seed=0):
    """Create random gaussians sharing one SH order."""
    rng = np.random.default_rng(seed)
    gaussians = []
    for _ in range(n):
        rotation = rng.normal(size=4)
        rotation /= np.linalg.norm(rotation)
        if rotation[3] < 0:
            rotation = -rotation
        gaussians.append(Gaussian(
            position=rng.uniform(-50.0, 50.0, size=3),
            rotation=rotation,
            scales=rng.uniform(-5.0, 2.0, size=3),
            color=rng.uniform(-1.0, 1.0, size=3),
            alpha=rng.uniform(-2.0, 2.0),
            spherical_harmonics=SphericalHarmonics(order, rng.uniform(-0.5, 0.5, size=(order.vector_count, 3))),
        ))
    return gaussians


class TestKnownStream:
    """Test decoding a hand-checked byte stream."""

    def test_decode(self):
        """Test every attribute of the single gaussian."""
        gaussians = decode_spz(KNOWN_STREAM)
        assert len(gaussians) == 1
        g = gaussians[0]
        np.testing.assert_array_equal(g.position, [100.0, 200.0, -100.0])
        np.testing.assert_array_equal(g.scales, [1.0, -1.0, 1.0])
        np.testing.assert_allclose(g.rotation, [0.0, 0.0, 1.0, 0.0], atol=0.01)
        assert abs(g.alpha - 0.95) < 0.01
        np.testing.assert_allclose(g.color, [1.0, 0.5, 0.25], atol=0.01)
        assert g.spherical_harmonics.order == SphericalHarmonicsOrder.ORDER0

    def test_read_header_only(self):
        """Test reading just the header."""
        header = read_spz_header(io.BytesIO(KNOWN_STREAM))
        assert header.num_points == 1
        assert header.fractional_bits == 12

    def test_bytes_consumed(self):
        """Test the reader consumes exactly the expected size."""
        reader = SpzReader(io.BytesIO(KNOWN_STREAM))
        reader.read()
        assert reader.bytes_consumed == len(KNOWN_STREAM) == reader.header.expected_uncompressed_size()

    def test_reencode_decodes_the_same(self):
        """Test decoded values re-encode to a stream that decodes identically."""
        gaussians = decode_spz(KNOWN_STREAM)
        again = decode_spz(encode_spz(gaussians))
        assert again[0].alpha == gaussians[0].alpha
        np.testing.assert_array_equal(again[0].position, gaussians[0].position)
        np.testing.assert_array_equal(again[0].color, gaussians[0].color)
        np.testing.assert_array_equal(again[0].scales, gaussians[0].scales)


class TestEncoder:
    """Test stream layout produced by the encoder."""

    @pytest.mark.parametrize("order,per_point", [
        (SphericalHarmonicsOrder.ORDER0, 19),
        (SphericalHarmonicsOrder.ORDER1, 28),
        (SphericalHarmonicsOrder.ORDER2, 43),
        (SphericalHarmonicsOrder.ORDER3, 64),
    ])
    def test_stream_size(self, order, per_point):
        """Test the stream length matches header plus blocks."""
        data = encode_spz(make_gaussians(7, order))
        assert len(data) == 16 + 7 * per_point
        assert data[12] == int(order)

    def test_omit_spherical_harmonics(self):
        """Test omitting SH drops the block but keeps the header degree."""
        data = encode_spz(make_gaussians(5, SphericalHarmonicsOrder.ORDER3), omit_spherical_harmonics=True)
        assert len(data) == 16 + 5 * 19
        assert data[12] == 3

    def test_empty_list(self):
        """Test an empty list encodes to a bare header."""
        data = encode_spz([])
        assert len(data) == 16
        assert decode_spz(data) == []

    def test_mixed_orders_write_nothing(self):
        """Test mixed SH orders fail before any byte is written."""
        gaussians = make_gaussians(2, SphericalHarmonicsOrder.ORDER1)
        gaussians += make_gaussians(1, SphericalHarmonicsOrder.ORDER2)
        stream = io.BytesIO()
        with pytest.raises(MixedShOrderError):
            write_spz_to_stream(gaussians, stream)
        assert stream.getvalue() == b''

    def test_writer_returns_size(self):
        """Test the writer reports bytes written."""
        stream = io.BytesIO()
        writer = SpzWriter(stream, SpzWriterOptions(flags=1))
        size = writer.write(make_gaussians(3))
        assert size == len(stream.getvalue()) == 16 + 3 * 19
        assert stream.getvalue()[14] == 1

    def test_writer_accepts_cloud(self):
        """Test a pre-stacked GaussianCloud encodes the same as the list."""
        gaussians = make_gaussians(4, SphericalHarmonicsOrder.ORDER1)
        stream = io.BytesIO()
        SpzWriter(stream).write(GaussianCloud.from_gaussians(gaussians))
        assert stream.getvalue() == encode_spz(gaussians)

    def test_size_mismatch_raises(self):
        """Test a stream size that disagrees with the header is an error, not an assert."""
        class ShortWriter(SpzWriter):
            def _write_block(self, name, data):
                if name != "rotations":
                    super()._write_block(name, data)

        with pytest.raises(RuntimeError, match="header describes"):
            ShortWriter(io.BytesIO()).write(make_gaussians(2))

    def test_invalid_flags(self):
        """Test flags must fit in a byte."""
        with pytest.raises(ValueError):
            SpzWriterOptions(flags=256)


class TestRoundTrip:
    """Test encode then decode stays within quantization error."""

    @pytest.mark.parametrize("order", list(SphericalHarmonicsOrder))
    def test_round_trip(self, order):
        """Test every attribute comes back close to the input."""
        gaussians = make_gaussians(50, order)
        decoded = decode_spz(encode_spz(gaussians))
        assert len(decoded) == len(gaussians)

        for original, result in zip(gaussians, decoded):
            np.testing.assert_allclose(result.position, original.position, atol=1.0 / 2 ** 15)
            np.testing.assert_allclose(result.scales, original.scales, atol=1.0 / 32 + 1e-6)
            np.testing.assert_allclose(result.color, original.color, atol=0.5 / (255 * 0.15) + 1e-5)
            assert abs(result.alpha - original.alpha) < 0.1
            assert abs(np.dot(result.rotation, original.rotation)) > 0.98
            assert result.spherical_harmonics.order == order
            np.testing.assert_allclose(result.spherical_harmonics.scalars(),
                                       original.spherical_harmonics.scalars(), atol=8.5 / 128)

    @pytest.mark.parametrize("order", list(SphericalHarmonicsOrder))
    def test_bytes_consumed_matches_header(self, order):
        """Test the decoder consumes exactly the size the header promises."""
        data = encode_spz(make_gaussians(9, order))
        reader = SpzReader(io.BytesIO(data))
        reader.read()
        assert reader.bytes_consumed == reader.header.expected_uncompressed_size() == len(data)

    def test_decoded_values_are_stable(self):
        """Test decoding is a fixed point after one round trip."""
        once = decode_spz(encode_spz(make_gaussians(20, SphericalHarmonicsOrder.ORDER2)))
        twice = decode_spz(encode_spz(once))
        for a, b in zip(once, twice):
            np.testing.assert_array_equal(a.position, b.position)
            np.testing.assert_array_equal(a.color, b.color)
            np.testing.assert_array_equal(a.scales, b.scales)
            assert a.alpha == b.alpha
            np.testing.assert_array_equal(a.spherical_harmonics.scalars(), b.spherical_harmonics.scalars())

    def test_stream_helpers(self):
        """Test the stream-level helpers match the bytes helpers."""
        gaussians = make_gaussians(3, SphericalHarmonicsOrder.ORDER1)
        stream = io.BytesIO()
        size = write_spz_to_stream(gaussians, stream)
        stream.seek(0)
        assert size == len(stream.getvalue())
        decoded = load_spz_from_stream(stream)
        assert decoded == decode_spz(encode_spz(gaussians))


class TestSphericalHarmonicsOmission:
    """Test reading with and without the SH block."""

    def test_decode_without_sh_block_fails_by_default(self):
        """Test a stream missing its SH block is truncated for a strict reader."""
        data = encode_spz(make_gaussians(4, SphericalHarmonicsOrder.ORDER1), omit_spherical_harmonics=True)
        with pytest.raises(TruncatedStreamError):
            decode_spz(data)

    def test_omit_on_decode_accepts_missing_block(self):
        """Test omit mode reads a stream without SH."""
        data = encode_spz(make_gaussians(4, SphericalHarmonicsOrder.ORDER1), omit_spherical_harmonics=True)
        decoded = decode_spz(data, omit_spherical_harmonics=True)
        assert len(decoded) == 4
        assert all(g.spherical_harmonics.order == SphericalHarmonicsOrder.ORDER0 for g in decoded)

    def test_omit_on_decode_skips_present_block(self):
        """Test omit mode drops a full SH block."""
        data = encode_spz(make_gaussians(4, SphericalHarmonicsOrder.ORDER2))
        reader = SpzReader(io.BytesIO(data), SpzReaderOptions(omit_spherical_harmonics=True))
        decoded = reader.read()
        assert reader.sh_present
        assert reader.bytes_consumed == len(data)
        assert all(len(g.spherical_harmonics) == 0 for g in decoded)

    def test_omit_on_decode_rejects_partial_block(self):
        """Test omit mode rejects an SH block of the wrong length."""
        data = encode_spz(make_gaussians(4, SphericalHarmonicsOrder.ORDER1))
        with pytest.raises(TrailingDataError):
            decode_spz(data[:-5], omit_spherical_harmonics=True)


class TestMalformedStreams:
    """Test error reporting for broken input."""

    def test_bad_magic(self):
        """Test a wrong magic number."""
        with pytest.raises(InvalidHeaderError):
            decode_spz(b'\x00' * 4 + KNOWN_STREAM[4:])

    def test_bad_version(self):
        """Test an unsupported version."""
        data = bytearray(KNOWN_STREAM)
        data[4] = 3
        with pytest.raises(InvalidHeaderError):
            decode_spz(bytes(data))

    def test_bad_sh_degree(self):
        """Test an SH degree above 3."""
        data = bytearray(KNOWN_STREAM)
        data[12] = 4
        with pytest.raises(InvalidHeaderError):
            decode_spz(bytes(data))

    def test_bad_fractional_bits(self):
        """Test an out-of-range fractional bit count is a header error."""
        data = bytearray(KNOWN_STREAM)
        data[13] = 30
        with pytest.raises(InvalidHeaderError):
            decode_spz(bytes(data))

    def test_truncated_header(self):
        """Test a stream shorter than the header."""
        with pytest.raises(TruncatedStreamError):
            decode_spz(KNOWN_STREAM[:10])

    @pytest.mark.parametrize("cut", [1, 3, 10, 19])
    def test_truncated_body(self, cut):
        """Test a stream cut inside the attribute blocks."""
        with pytest.raises(TruncatedStreamError):
            decode_spz(KNOWN_STREAM[:-cut])

    def test_truncation_is_eof_error(self):
        """Test truncation errors are EOFErrors with a readable message."""
        with pytest.raises(EOFError, match="Unexpected EOF"):
            decode_spz(KNOWN_STREAM[:-1])

    def test_trailing_data(self):
        """Test extra bytes after the last block."""
        with pytest.raises(TrailingDataError):
            decode_spz(KNOWN_STREAM + b'\x00')

    def test_trailing_data_allowed_when_unchecked(self):
        """Test trailing bytes are ignored when the check is off."""
        decoded = load_spz_from_stream(io.BytesIO(KNOWN_STREAM + b'\x00'), check_trailing_data=False)
        assert len(decoded) == 1

    def test_errors_share_a_base(self):
        """Test all codec errors derive from SpzError."""
        for error in (InvalidHeaderError, TruncatedStreamError, TrailingDataError, MixedShOrderError):
            assert issubclass(error, SpzError)

    def test_read_before_header(self):
        """Test reading gaussians without a header is a usage error."""
        with pytest.raises(RuntimeError):
            SpzReader(io.BytesIO(KNOWN_STREAM)).read_gaussians()
