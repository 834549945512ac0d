# ABOUTME: File-level spz I/O with optional gzip framing
# ABOUTME: Wraps the stream encoder/decoder for paths on disk

import gzip
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .decoder import SpzReader, SpzReaderOptions
from .encoder import SpzWriter, SpzWriterOptions
from .gaussian import Gaussian, GaussianCloud
from .header import SpzHeader

GZIP_MAGIC = b'\x1f\x8b'

logger = logging.getLogger('spz_codec')


def is_gzip_file(filepath: Union[str, Path]) -> bool:
    """Check the first two bytes for the gzip magic."""
    with open(filepath, 'rb') as f:
        return f.read(2) == GZIP_MAGIC


def save_spz(gaussians: Sequence[Gaussian],
             filepath: Union[str, Path],
             compressed: bool = True,
             omit_spherical_harmonics: bool = False) -> int:
    """
    Save gaussians to an spz file.

    Args:
        gaussians: Gaussians to save, all with the same SH order
        filepath: Output path
        compressed: Gzip the stream at the best compression level. An
            uncompressed file is not a valid .spz for other readers.
        omit_spherical_harmonics: Leave out the SH block

    Returns:
        Uncompressed stream size in bytes

    Raises:
        MixedShOrderError: If the SH orders differ; no file is created

    A write that fails after the file is opened leaves the partial file on disk.
    """
    filepath = Path(filepath)
    options = SpzWriterOptions(omit_spherical_harmonics=omit_spherical_harmonics)
    cloud = GaussianCloud.from_gaussians(gaussians)

    # Choose file handle (compressed or uncompressed)
    if compressed:
        f = gzip.open(filepath, 'wb', compresslevel=9)
    else:
        f = open(filepath, 'wb')

    try:
        size = SpzWriter(f, options).write(cloud)
    finally:
        f.close()

    file_size = filepath.stat().st_size
    logger.info("Saved %d gaussians to %s (%d bytes, %s)", cloud.count, filepath, file_size,
                "gzip compressed" if compressed else "uncompressed")
    return size


def load_spz(filepath: Union[str, Path],
             compressed: Optional[bool] = None,
             omit_spherical_harmonics: bool = False) -> List[Gaussian]:
    """
    Load gaussians from an spz file.

    Args:
        filepath: Input path
        compressed: Whether the file is gzipped; None detects it from the magic
        omit_spherical_harmonics: Drop SH from the result

    Returns:
        List of gaussians

    Raises:
        InvalidHeaderError: On a malformed header
        TruncatedStreamError: If the file ends early
        TrailingDataError: If the file holds more data than the header describes
    """
    filepath = Path(filepath)
    if compressed is None:
        compressed = is_gzip_file(filepath)

    options = SpzReaderOptions(omit_spherical_harmonics=omit_spherical_harmonics)
    if compressed:
        f = gzip.open(filepath, 'rb')
    else:
        f = open(filepath, 'rb')

    with f:
        gaussians = SpzReader(f, options).read()

    logger.info("Loaded %d gaussians from %s", len(gaussians), filepath)
    return gaussians


def read_spz_info(filepath: Union[str, Path]) -> dict:
    """
    Summarize an spz file: header fields plus the position bounding box.

    Returns:
        {
            'header': SpzHeader,
            'expected_size': int,
            'spherical_harmonics_present': bool,
            'bbox_min': [x, y, z] or None,
            'bbox_max': [x, y, z] or None,
            'center': [x, y, z] or None,
        }
    """
    filepath = Path(filepath)
    opener = gzip.open if is_gzip_file(filepath) else open
    with opener(filepath, 'rb') as f:
        reader = SpzReader(f, SpzReaderOptions(omit_spherical_harmonics=True))
        header: SpzHeader = reader.read_header()
        cloud = reader.read_cloud()

    info = {
        'header': header,
        'expected_size': header.expected_uncompressed_size(reader.sh_present),
        'spherical_harmonics_present': reader.sh_present,
        'bbox_min': None,
        'bbox_max': None,
        'center': None,
    }
    if cloud.count > 0:
        bbox_min = cloud.positions.min(axis=0)
        bbox_max = cloud.positions.max(axis=0)
        info['bbox_min'] = bbox_min.tolist()
        info['bbox_max'] = bbox_max.tolist()
        info['center'] = ((bbox_min + bbox_max) / np.float32(2.0)).tolist()
    return info
