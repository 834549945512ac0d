# ABOUTME: Fixed 16-byte spz stream header
# ABOUTME: Packs/unpacks magic, version, point count, SH degree and fractional bits

import struct
from dataclasses import dataclass

from .errors import InvalidHeaderError, TruncatedStreamError
from .fixed_point import FIXED24_BITS
from .spherical_harmonics import SphericalHarmonicsOrder

SPZ_MAGIC = 0x5053474E  # "NGSP" little-endian
SPZ_VERSION = 2
HEADER_FORMAT = '<IIIBBBB'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

# position 9 + alpha 1 + color 3 + scale 3 + rotation 3
BYTES_PER_POINT_BASE = 19


@dataclass(frozen=True)
class SpzHeader:
    """Header of an uncompressed spz stream (all integers little-endian)."""

    magic: int
    version: int
    num_points: int
    sh_degree: int
    fractional_bits: int
    flags: int = 0
    reserved: int = 0

    @classmethod
    def new(cls, num_points: int, sh_degree: int, fractional_bits: int, flags: int = 0) -> 'SpzHeader':
        """Header for a new stream with the current magic and version."""
        return cls(
            magic=SPZ_MAGIC,
            version=SPZ_VERSION,
            num_points=num_points,
            sh_degree=sh_degree,
            fractional_bits=fractional_bits,
            flags=flags,
            reserved=0,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SpzHeader':
        if len(data) < HEADER_SIZE:
            raise TruncatedStreamError("header", HEADER_SIZE, len(data))
        return cls(*struct.unpack(HEADER_FORMAT, bytes(data[:HEADER_SIZE])))

    def to_bytes(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT,
            self.magic,
            self.version,
            self.num_points,
            self.sh_degree,
            self.fractional_bits,
            self.flags,
            self.reserved,
        )

    def is_valid(self) -> bool:
        return (self.magic == SPZ_MAGIC and self.version == SPZ_VERSION and self.sh_degree <= 3
                and self.fractional_bits <= FIXED24_BITS)

    def validate(self) -> None:
        """
        Raise if the header cannot describe an spz stream.

        Raises:
            InvalidHeaderError: On bad magic, version, SH degree or fractional bits
        """
        if self.magic != SPZ_MAGIC:
            raise InvalidHeaderError(f"Invalid header: bad magic 0x{self.magic:08X} (expected 0x{SPZ_MAGIC:08X})")
        if self.version != SPZ_VERSION:
            raise InvalidHeaderError(f"Invalid header: unsupported version {self.version} (expected {SPZ_VERSION})")
        if self.sh_degree > 3:
            raise InvalidHeaderError(f"Invalid header: SH degree {self.sh_degree} out of range (0-3)")
        if self.fractional_bits > FIXED24_BITS:
            raise InvalidHeaderError(
                f"Invalid header: {self.fractional_bits} fractional bits out of range (0-{FIXED24_BITS})"
            )

    @property
    def sh_order(self) -> SphericalHarmonicsOrder:
        return SphericalHarmonicsOrder.from_degree(self.sh_degree)

    @property
    def sh_scalar_count(self) -> int:
        return self.sh_order.scalar_count

    def expected_uncompressed_size(self, include_spherical_harmonics: bool = True) -> int:
        """Total stream size in bytes, header included."""
        per_point = BYTES_PER_POINT_BASE
        if include_spherical_harmonics:
            per_point += self.sh_scalar_count
        return HEADER_SIZE + self.num_points * per_point
