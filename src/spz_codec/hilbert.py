# ABOUTME: Hilbert-curve ordering of gaussians
# ABOUTME: Reorders points so spatial neighbours sit close together, which helps gzip

import numpy as np
from typing import List, Sequence

from .gaussian import Gaussian

DEFAULT_BITS = 16


def _axes_to_transpose(coords: np.ndarray, bits: int) -> np.ndarray:
    """
    Skilling's AxesToTranspose on (N, D) unsigned integer coordinates.

    Returns the Hilbert index in "transposed" form: bit j of the index for
    dimension i sits in bit j of column i.
    """
    x = coords.astype(np.uint64).copy()
    dims = x.shape[1]
    m = np.uint64(1 << (bits - 1))

    # Inverse undo
    q = m
    while q > 1:
        p = q - np.uint64(1)
        for i in range(dims):
            high = (x[:, i] & q) != 0
            t = (x[:, 0] ^ x[:, i]) & p
            x[:, 0] = np.where(high, x[:, 0] ^ p, x[:, 0] ^ t)
            x[:, i] = np.where(high, x[:, i], x[:, i] ^ t)
        q >>= np.uint64(1)

    # Gray encode
    for i in range(1, dims):
        x[:, i] ^= x[:, i - 1]
    t = np.zeros(len(x), dtype=np.uint64)
    q = m
    while q > 1:
        t = np.where((x[:, dims - 1] & q) != 0, t ^ (q - np.uint64(1)), t)
        q >>= np.uint64(1)
    x ^= t[:, None]
    return x


def hilbert_indices(positions: np.ndarray, bits: int = DEFAULT_BITS) -> np.ndarray:
    """
    Hilbert index of each position inside the positions' bounding box.

    Args:
        positions: (N, 3) array of points
        bits: Bits per axis used to discretize the bounding box (1-21)

    Returns:
        (N,) uint64 Hilbert indices
    """
    if not 1 <= bits <= 21:
        raise ValueError(f"Bits per axis must be between 1 and 21, got {bits}")
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if len(positions) == 0:
        return np.zeros(0, dtype=np.uint64)

    max_coord = (1 << bits) - 1
    min_corner = positions.min(axis=0)
    max_corner = positions.max(axis=0)
    # Avoid zero range if all points coincide in any axis
    extent = np.maximum(max_corner - min_corner, np.finfo(np.float32).eps)

    normalized = (positions - min_corner) / extent
    coords = np.clip(np.round(normalized * max_coord), 0, max_coord).astype(np.uint64)

    transposed = _axes_to_transpose(coords, bits)
    index = np.zeros(len(coords), dtype=np.uint64)
    for bit in range(bits - 1, -1, -1):
        for axis in range(3):
            index = (index << np.uint64(1)) | ((transposed[:, axis] >> np.uint64(bit)) & np.uint64(1))
    return index


def hilbert_sort(gaussians: Sequence[Gaussian], bits: int = DEFAULT_BITS) -> List[Gaussian]:
    """
    Return the gaussians reordered along a 3D Hilbert curve.

    Only the order changes; the input sequence is left untouched and points
    with equal indices keep their relative order.
    """
    if len(gaussians) == 0:
        return []
    positions = np.stack([g.position for g in gaussians])
    order = np.argsort(hilbert_indices(positions, bits), kind='stable')
    return [gaussians[i] for i in order]
