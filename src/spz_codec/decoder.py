# ABOUTME: spz stream decoder
# ABOUTME: Validates the header, reads each attribute block and rebuilds gaussian records

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

import numpy as np

from .errors import TrailingDataError, TruncatedStreamError
from .fixed_point import decode_fixed24_array
from .gaussian import Gaussian, GaussianCloud
from .header import HEADER_SIZE, SpzHeader
from .quantize import unquantize_alpha, unquantize_color, unquantize_scale, unquantize_rotation
from .spherical_harmonics import SphericalHarmonicsOrder, unquantize_sh_bytes


@dataclass
class SpzReaderOptions:
    """
    Options for reading an spz stream.

    Attributes:
        omit_spherical_harmonics: Drop SH from the result; also accepts streams
            whose SH block was omitted at encode time
        check_trailing_data: Fail if bytes remain after the last block
    """

    omit_spherical_harmonics: bool = False
    check_trailing_data: bool = True


class SpzReader:
    """
    Reads gaussians from an uncompressed spz byte stream.

    Usage:
        reader = SpzReader(stream)
        header = reader.read_header()
        gaussians = reader.read_gaussians()
    """

    def __init__(self, stream: BinaryIO, options: SpzReaderOptions = None):
        self.stream = stream
        self.options = options or SpzReaderOptions()
        self.logger = logging.getLogger('spz_codec')
        self.header: Optional[SpzHeader] = None
        self.bytes_consumed = 0
        self._sh_present = False

    @property
    def sh_present(self) -> bool:
        """Whether the stream carried a spherical harmonics block (known after reading)."""
        return self._sh_present

    def read(self) -> List[Gaussian]:
        """Read the header and all gaussians."""
        self.read_header()
        return self.read_gaussians()

    def read_header(self) -> SpzHeader:
        """
        Read and validate the 16-byte header.

        Raises:
            InvalidHeaderError: On bad magic, version or SH degree
            TruncatedStreamError: If the stream is shorter than a header
        """
        header = SpzHeader.from_bytes(self._read_exact(HEADER_SIZE, "header"))
        header.validate()
        self.header = header
        self.logger.debug("Read header: %d points, SH degree %d, %d fractional bits, flags 0x%02X",
                          header.num_points, header.sh_degree, header.fractional_bits, header.flags)
        return header

    def read_cloud(self) -> GaussianCloud:
        """Read all attribute blocks into a GaussianCloud."""
        if self.header is None:
            raise RuntimeError("read_header() must be called before reading gaussians")
        header = self.header
        n = header.num_points

        position_data = self._read_array(n * 9, "positions").reshape(n, 3, 3)
        positions = decode_fixed24_array(position_data, header.fractional_bits)

        alphas = unquantize_alpha(self._read_array(n, "alphas"))
        colors = unquantize_color(self._read_array(n * 3, "colors").reshape(n, 3))
        scales = unquantize_scale(self._read_array(n * 3, "scales").reshape(n, 3))
        rotations = unquantize_rotation(self._read_array(n * 3, "rotations").reshape(n, 3))

        order = header.sh_order
        sh = self._read_spherical_harmonics(n, order)
        if sh is None:
            order = SphericalHarmonicsOrder.ORDER0
            sh = np.zeros((n, 0), dtype=np.float32)

        if self.options.check_trailing_data:
            self._check_consumed()

        return GaussianCloud(
            positions=positions,
            rotations=rotations,
            scales=scales,
            colors=colors,
            alphas=alphas,
            sh=sh,
            sh_order=order,
        )

    def read_gaussians(self) -> List[Gaussian]:
        """
        Read all attribute blocks and zip them into gaussian records.

        Raises:
            TruncatedStreamError: If the stream ends inside a block
            TrailingDataError: If bytes remain or the consumed size is wrong
        """
        gaussians = self.read_cloud().to_gaussians()
        self.logger.debug("Decoded %d gaussians from %d bytes", len(gaussians), self.bytes_consumed)
        return gaussians

    def _read_spherical_harmonics(self, n: int, order: SphericalHarmonicsOrder) -> Optional[np.ndarray]:
        count = n * order.scalar_count
        if not self.options.omit_spherical_harmonics:
            if count == 0:
                self._sh_present = True
                return np.zeros((n, 0), dtype=np.float32)
            data = self._read_array(count, "spherical harmonics")
            self._sh_present = True
            return unquantize_sh_bytes(data.reshape(n, order.scalar_count))

        # Caller does not want SH: accept either an omitted block or a full one
        rest = self._read_available(count)
        if len(rest) == count:
            self._sh_present = count > 0
        elif len(rest) == 0:
            self._sh_present = False
        else:
            raise TrailingDataError(
                f"Spherical harmonics block has {len(rest)} bytes, expected 0 or {count}"
            )
        self.logger.debug("Skipped spherical harmonics (%d bytes present)", len(rest))
        return None

    def _check_consumed(self) -> None:
        if self.stream.read(1):
            raise TrailingDataError("Did not consume all of stream: trailing data after last block")
        expected = self.header.expected_uncompressed_size(include_spherical_harmonics=self._sh_present)
        if self.bytes_consumed != expected:
            raise TrailingDataError(
                f"Consumed {self.bytes_consumed} bytes, expected {expected} from header"
            )

    def _read_available(self, size: int) -> bytes:
        """Read up to size bytes, stopping early only at end of stream."""
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self.stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b''.join(chunks)
        self.bytes_consumed += len(data)
        return data

    def _read_exact(self, size: int, what: str) -> bytes:
        data = self._read_available(size)
        if len(data) != size:
            raise TruncatedStreamError(what, size, len(data))
        return data

    def _read_array(self, size: int, what: str) -> np.ndarray:
        return np.frombuffer(self._read_exact(size, what), dtype=np.uint8)


def read_spz_header(stream: BinaryIO) -> SpzHeader:
    """Read and validate only the header of an uncompressed spz stream."""
    return SpzReader(stream).read_header()


def load_spz_from_stream(stream: BinaryIO,
                         omit_spherical_harmonics: bool = False,
                         check_trailing_data: bool = True) -> List[Gaussian]:
    """Decode gaussians from an uncompressed spz byte stream."""
    options = SpzReaderOptions(
        omit_spherical_harmonics=omit_spherical_harmonics,
        check_trailing_data=check_trailing_data,
    )
    return SpzReader(stream, options).read()


def decode_spz(data: bytes, omit_spherical_harmonics: bool = False) -> List[Gaussian]:
    """Decode gaussians from uncompressed spz bytes."""
    return load_spz_from_stream(io.BytesIO(data), omit_spherical_harmonics=omit_spherical_harmonics)
