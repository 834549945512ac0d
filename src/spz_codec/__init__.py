# ABOUTME: Packed gaussian splat (.spz) codec package
# ABOUTME: Re-exports the gaussian model, codec entry points and file helpers

from .errors import (
    SpzError,
    InvalidHeaderError,
    TruncatedStreamError,
    TrailingDataError,
    MixedShOrderError,
    InvalidShCountError,
)
from .spherical_harmonics import SphericalHarmonics, SphericalHarmonicsOrder
from .gaussian import Gaussian, GaussianCloud
from .header import SpzHeader, SPZ_MAGIC, SPZ_VERSION, HEADER_SIZE
from .encoder import SpzWriter, SpzWriterOptions, write_spz_to_stream, encode_spz
from .decoder import SpzReader, SpzReaderOptions, load_spz_from_stream, decode_spz, read_spz_header
from .spz_io import save_spz, load_spz, read_spz_info
from .ply_io import load_ply, save_ply
from .hilbert import hilbert_sort

__version__ = "0.1.0"

__all__ = [
    'SpzError', 'InvalidHeaderError', 'TruncatedStreamError', 'TrailingDataError',
    'MixedShOrderError', 'InvalidShCountError',
    'SphericalHarmonics', 'SphericalHarmonicsOrder',
    'Gaussian', 'GaussianCloud',
    'SpzHeader', 'SPZ_MAGIC', 'SPZ_VERSION', 'HEADER_SIZE',
    'SpzWriter', 'SpzWriterOptions', 'write_spz_to_stream', 'encode_spz',
    'SpzReader', 'SpzReaderOptions', 'load_spz_from_stream', 'decode_spz', 'read_spz_header',
    'save_spz', 'load_spz', 'read_spz_info',
    'load_ply', 'save_ply',
    'hilbert_sort',
]
