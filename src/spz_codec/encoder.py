# ABOUTME: spz stream encoder
# ABOUTME: Quantizes a gaussian list into a header followed by per-attribute byte blocks

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Sequence, Union

from .fixed_point import compute_fixed_point_fractional_bits, encode_fixed24_array, FIXED24_BITS
from .gaussian import Gaussian, GaussianCloud
from .header import SpzHeader
from .quantize import quantize_alpha, quantize_color, quantize_scale, quantize_rotation
from .spherical_harmonics import quantize_sh_bytes


@dataclass
class SpzWriterOptions:
    """Options for writing an spz stream."""

    omit_spherical_harmonics: bool = False
    flags: int = 0

    def __post_init__(self):
        if not 0 <= self.flags <= 0xFF:
            raise ValueError(f"Flags must fit in one byte, got {self.flags}")


class SpzWriter:
    """
    Writes gaussians to a binary stream in the spz layout.

    Block order is fixed: header, positions, alphas, colors, scales,
    rotations, then spherical harmonics unless omitted. All gaussians must
    share one SH order; this is checked before anything is written.

    Usage:
        with open('out.spz.raw', 'wb') as f:
            SpzWriter(f).write(gaussians)
    """

    def __init__(self, stream: BinaryIO, options: SpzWriterOptions = None):
        self.stream = stream
        self.options = options or SpzWriterOptions()
        self.logger = logging.getLogger('spz_codec')
        self.bytes_written = 0

    def write(self, gaussians: Union[Sequence[Gaussian], GaussianCloud]) -> int:
        """
        Encode gaussians and write them to the stream.

        Args:
            gaussians: Gaussian records or an already stacked GaussianCloud

        Returns:
            Number of bytes written

        Raises:
            MixedShOrderError: If the gaussians carry different SH orders
        """
        self.bytes_written = 0
        if isinstance(gaussians, GaussianCloud):
            cloud = gaussians
        else:
            cloud = GaussianCloud.from_gaussians(gaussians)

        fractional_bits = compute_fixed_point_fractional_bits(cloud.positions.ravel(), FIXED24_BITS)
        header = SpzHeader.new(
            num_points=cloud.count,
            sh_degree=int(cloud.sh_order),
            fractional_bits=fractional_bits,
            flags=self.options.flags,
        )
        self.logger.debug("Encoding %d gaussians (SH degree %d, %d fractional bits)",
                          cloud.count, header.sh_degree, fractional_bits)

        self._write_block("header", header.to_bytes())
        self._write_block("positions", encode_fixed24_array(cloud.positions, fractional_bits))
        self._write_block("alphas", quantize_alpha(cloud.alphas))
        self._write_block("colors", quantize_color(cloud.colors))
        self._write_block("scales", quantize_scale(cloud.scales))
        self._write_block("rotations", quantize_rotation(cloud.rotations))

        if self.options.omit_spherical_harmonics:
            self.logger.debug("Omitting spherical harmonics block")
        elif cloud.sh_order.scalar_count > 0:
            self._write_block("spherical harmonics", quantize_sh_bytes(cloud.sh))

        expected = header.expected_uncompressed_size(
            include_spherical_harmonics=not self.options.omit_spherical_harmonics)
        if self.bytes_written != expected:
            raise RuntimeError(f"Encoded {self.bytes_written} bytes, header describes {expected}")

        return self.bytes_written

    def _write_block(self, name: str, data) -> None:
        data = bytes(data) if isinstance(data, (bytes, bytearray)) else data.tobytes()
        self.stream.write(data)
        self.bytes_written += len(data)
        self.logger.debug("Wrote %s block (%d bytes)", name, len(data))


def write_spz_to_stream(gaussians: Union[Sequence[Gaussian], GaussianCloud],
                        stream: BinaryIO,
                        omit_spherical_harmonics: bool = False) -> int:
    """Encode gaussians to an uncompressed spz byte stream. Returns bytes written."""
    options = SpzWriterOptions(omit_spherical_harmonics=omit_spherical_harmonics)
    return SpzWriter(stream, options).write(gaussians)


def encode_spz(gaussians: Union[Sequence[Gaussian], GaussianCloud],
               omit_spherical_harmonics: bool = False) -> bytes:
    """Encode gaussians to uncompressed spz bytes."""
    buffer = io.BytesIO()
    write_spz_to_stream(gaussians, buffer, omit_spherical_harmonics=omit_spherical_harmonics)
    return buffer.getvalue()
