# ABOUTME: Spherical harmonics coefficients for a single gaussian
# ABOUTME: Order 0-3 variant holding 0/3/8/15 RGB vectors, plus spz byte quantization

from enum import IntEnum

import numpy as np

from .errors import InvalidShCountError
from .fixed_point import round_half_away

SH1_BITS = 5
SH_REST_BITS = 4
# The first 9 scalars are the degree-1 coefficients
SH1_SCALAR_COUNT = 9

_VECTOR_COUNTS = (0, 3, 8, 15)


class SphericalHarmonicsOrder(IntEnum):
    """Spherical harmonics degree; the value is the degree stored in the header."""

    ORDER0 = 0
    ORDER1 = 1
    ORDER2 = 2
    ORDER3 = 3

    @property
    def vector_count(self) -> int:
        return _VECTOR_COUNTS[self.value]

    @property
    def scalar_count(self) -> int:
        return _VECTOR_COUNTS[self.value] * 3

    @classmethod
    def from_degree(cls, degree: int) -> 'SphericalHarmonicsOrder':
        if degree not in (0, 1, 2, 3):
            raise InvalidShCountError(f"Invalid SH degree: {degree}")
        return cls(degree)

    @classmethod
    def from_vector_count(cls, count: int) -> 'SphericalHarmonicsOrder':
        if count not in _VECTOR_COUNTS:
            raise InvalidShCountError(
                f"Invalid number of spherical harmonics vectors: {count} (expected 0, 3, 8 or 15)"
            )
        return cls(_VECTOR_COUNTS.index(count))

    @classmethod
    def from_scalar_count(cls, count: int) -> 'SphericalHarmonicsOrder':
        if count % 3 != 0:
            raise InvalidShCountError(
                f"Invalid number of spherical harmonics scalars: {count} (expected 0, 9, 24 or 45)"
            )
        return cls.from_vector_count(count // 3)

    @classmethod
    def smallest_holding(cls, scalar_index: int) -> 'SphericalHarmonicsOrder':
        """Smallest order whose scalars include flat index scalar_index."""
        for order in cls:
            if scalar_index < order.scalar_count:
                return order
        raise InvalidShCountError(
            f"Spherical harmonics scalar index {scalar_index} exceeds order 3 (45 scalars)"
        )


class SphericalHarmonics:
    """
    Color detail coefficients of one gaussian.

    The order fixes the coefficient array shape to (vector_count, 3); the
    array is read-only, so operations that change the order return a new
    instance.

    Usage:
        sh = SphericalHarmonics.from_vectors(np.zeros((3, 3)))
        sh.order                    # SphericalHarmonicsOrder.ORDER1
        sh = sh.resize(SphericalHarmonicsOrder.ORDER3)
        data = sh.to_spz_bytes()    # 45 bytes
    """

    __slots__ = ('_order', '_vectors')

    def __init__(self, order: SphericalHarmonicsOrder = SphericalHarmonicsOrder.ORDER0,
                 vectors=None):
        order = SphericalHarmonicsOrder(order)
        if vectors is None:
            vectors = np.zeros((order.vector_count, 3), dtype=np.float32)
        else:
            vectors = np.array(vectors, dtype=np.float32).reshape(-1, 3)
            if len(vectors) != order.vector_count:
                raise InvalidShCountError(
                    f"Order {int(order)} needs {order.vector_count} vectors, got {len(vectors)}"
                )
        vectors.flags.writeable = False
        self._order = order
        self._vectors = vectors

    @classmethod
    def from_vectors(cls, vectors) -> 'SphericalHarmonics':
        """Build from a sequence of RGB vectors; the order is inferred from the count."""
        vectors = np.asarray(vectors, dtype=np.float32)
        if vectors.size == 0:
            return cls()
        if vectors.ndim != 2 or vectors.shape[1] != 3:
            raise InvalidShCountError(f"Spherical harmonics vectors must be (K, 3), got {vectors.shape}")
        return cls(SphericalHarmonicsOrder.from_vector_count(len(vectors)), vectors)

    @classmethod
    def from_scalars(cls, values) -> 'SphericalHarmonics':
        """Build from a flat vector-major scalar sequence (0, 9, 24 or 45 values)."""
        values = np.asarray(values, dtype=np.float32).ravel()
        order = SphericalHarmonicsOrder.from_scalar_count(len(values))
        return cls(order, values.reshape(-1, 3))

    @classmethod
    def from_spz_bytes(cls, data) -> 'SphericalHarmonics':
        return cls.from_scalars(unquantize_sh_bytes(np.frombuffer(bytes(data), dtype=np.uint8)))

    @property
    def order(self) -> SphericalHarmonicsOrder:
        return self._order

    @property
    def vectors(self) -> np.ndarray:
        return self._vectors

    def __len__(self) -> int:
        return len(self._vectors)

    def scalars(self) -> np.ndarray:
        """Flatten to vector-major, component-minor scalars."""
        return self._vectors.reshape(-1)

    def resize(self, order: SphericalHarmonicsOrder) -> 'SphericalHarmonics':
        """Change order, keeping leading vectors and zero-filling new ones."""
        order = SphericalHarmonicsOrder(order)
        if order == self._order:
            return self
        vectors = np.zeros((order.vector_count, 3), dtype=np.float32)
        keep = min(order.vector_count, len(self._vectors))
        vectors[:keep] = self._vectors[:keep]
        return SphericalHarmonics(order, vectors)

    def extend_scalar(self, index: int, value: float) -> 'SphericalHarmonics':
        """
        Set scalar `index` (vector index // 3, component index % 3).

        Grows to the smallest order that holds the index, zero-filling the
        new vectors. Lets callers fill SH from per-scalar named fields one at a time.
        """
        if index < 0:
            raise InvalidShCountError(f"Spherical harmonics scalar index must be >= 0, got {index}")
        order = self._order
        if index >= order.scalar_count:
            order = SphericalHarmonicsOrder.smallest_holding(index)
        vectors = self.resize(order)._vectors.copy()
        vectors[index // 3, index % 3] = value
        return SphericalHarmonics(order, vectors)

    def to_spz_bytes(self) -> bytes:
        return quantize_sh_bytes(self.scalars()).tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, SphericalHarmonics):
            return NotImplemented
        return self._order == other._order and np.array_equal(self._vectors, other._vectors)

    def __hash__(self):
        return hash((int(self._order), self._vectors.tobytes()))

    def __repr__(self) -> str:
        return f"SphericalHarmonics(order={int(self._order)}, vectors={self._vectors.tolist()})"


def _quantize_sh(values: np.ndarray, bucket_size: int) -> np.ndarray:
    q = round_half_away(values * 128.0).astype(np.int64) + 128
    q = (q + bucket_size // 2) // bucket_size * bucket_size
    return np.clip(q, 0, 255).astype(np.uint8)


def quantize_sh_bytes(scalars) -> np.ndarray:
    """
    Quantize SH scalars to bytes.

    Works on a flat (S,) array or an (N, S) array. The first 9 scalars of each
    row keep 5 bits, the remaining ones 4 bits.
    """
    scalars = np.asarray(scalars, dtype=np.float64)
    scalars = np.nan_to_num(scalars, nan=0.0, posinf=2.0, neginf=-2.0)
    out = np.empty(scalars.shape, dtype=np.uint8)
    out[..., :SH1_SCALAR_COUNT] = _quantize_sh(scalars[..., :SH1_SCALAR_COUNT], 1 << (8 - SH1_BITS))
    out[..., SH1_SCALAR_COUNT:] = _quantize_sh(scalars[..., SH1_SCALAR_COUNT:], 1 << (8 - SH_REST_BITS))
    return out


def unquantize_sh_bytes(data) -> np.ndarray:
    data = np.asarray(data, dtype=np.float32)
    return ((data - np.float32(128.0)) / np.float32(128.0)).astype(np.float32)
