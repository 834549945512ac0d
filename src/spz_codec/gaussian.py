# ABOUTME: Data structures for gaussian splat point clouds
# ABOUTME: Per-point Gaussian records and the column-oriented GaussianCloud used by the codec

import numpy as np
from dataclasses import dataclass, field
from typing import List, Sequence

from .errors import MixedShOrderError
from .spherical_harmonics import SphericalHarmonics, SphericalHarmonicsOrder


def _vector(value, size: int, name: str) -> np.ndarray:
    array = np.array(value, dtype=np.float32).reshape(-1)
    if array.shape != (size,):
        raise ValueError(f"{name} must have {size} components, got shape {np.shape(value)}")
    return array


@dataclass(eq=False)
class Gaussian:
    """
    A single gaussian splat.

    Attributes:
        position: (3,) world-space center
        rotation: (4,) quaternion in (x, y, z, w) order
        scales: (3,) per-axis size (log space)
        color: (3,) linear color, nominally color * 0.15 + 0.5 in [0, 1]
        alpha: opacity before the sigmoid (any real)
        spherical_harmonics: color detail coefficients
    """
    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    rotation: np.ndarray = field(default_factory=lambda: np.array([0, 0, 0, 1], dtype=np.float32))
    scales: np.ndarray = field(default_factory=lambda: np.ones(3, dtype=np.float32))
    color: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    alpha: float = 0.0
    spherical_harmonics: SphericalHarmonics = field(default_factory=SphericalHarmonics)

    def __post_init__(self):
        """Coerce attributes to float32 arrays and validate their sizes."""
        self.position = _vector(self.position, 3, "Position")
        self.rotation = _vector(self.rotation, 4, "Rotation")
        self.scales = _vector(self.scales, 3, "Scales")
        self.color = _vector(self.color, 3, "Color")
        self.alpha = float(np.float32(self.alpha))
        if not isinstance(self.spherical_harmonics, SphericalHarmonics):
            self.spherical_harmonics = SphericalHarmonics.from_vectors(self.spherical_harmonics)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Gaussian):
            return NotImplemented
        return (np.array_equal(self.position, other.position)
                and np.array_equal(self.rotation, other.rotation)
                and np.array_equal(self.scales, other.scales)
                and np.array_equal(self.color, other.color)
                and self.alpha == other.alpha
                and self.spherical_harmonics == other.spherical_harmonics)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            'position': self.position.tolist(),
            'rotation': self.rotation.tolist(),
            'scales': self.scales.tolist(),
            'color': self.color.tolist(),
            'alpha': self.alpha,
            'spherical_harmonics': self.spherical_harmonics.vectors.tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Gaussian':
        """Create from dictionary."""
        return cls(
            position=data['position'],
            rotation=data['rotation'],
            scales=data['scales'],
            color=data['color'],
            alpha=data['alpha'],
            spherical_harmonics=SphericalHarmonics.from_vectors(data.get('spherical_harmonics', [])),
        )


@dataclass
class GaussianCloud:
    """
    Column-oriented view of a list of gaussians.

    Attributes:
        positions: (N, 3) gaussian centers
        rotations: (N, 4) quaternions (x, y, z, w)
        scales: (N, 3) log-space scales
        colors: (N, 3) linear colors
        alphas: (N,) opacity before the sigmoid
        sh: (N, S) flat spherical harmonics scalars, S = order.scalar_count
        sh_order: shared spherical harmonics order
    """
    positions: np.ndarray
    rotations: np.ndarray
    scales: np.ndarray
    colors: np.ndarray
    alphas: np.ndarray
    sh: np.ndarray
    sh_order: SphericalHarmonicsOrder = SphericalHarmonicsOrder.ORDER0

    def __post_init__(self):
        """Validate column shapes."""
        n = len(self.positions)
        self.sh_order = SphericalHarmonicsOrder(self.sh_order)

        if self.positions.shape != (n, 3):
            raise ValueError("Positions must be (N, 3)")
        if self.rotations.shape != (n, 4):
            raise ValueError("Rotations must be (N, 4) quaternions")
        if self.scales.shape != (n, 3):
            raise ValueError("Scales must be (N, 3)")
        if self.colors.shape != (n, 3):
            raise ValueError("Colors must be (N, 3)")
        if self.alphas.shape != (n,):
            raise ValueError("Alphas must be (N,)")
        if self.sh.shape != (n, self.sh_order.scalar_count):
            raise ValueError(f"SH must be (N, {self.sh_order.scalar_count}) for order {int(self.sh_order)}")

    @property
    def count(self) -> int:
        """Return number of gaussians."""
        return len(self.positions)

    def subset(self, indices: np.ndarray) -> 'GaussianCloud':
        """Create a subset of gaussians by indices."""
        return GaussianCloud(
            positions=self.positions[indices],
            rotations=self.rotations[indices],
            scales=self.scales[indices],
            colors=self.colors[indices],
            alphas=self.alphas[indices],
            sh=self.sh[indices],
            sh_order=self.sh_order,
        )

    @classmethod
    def from_gaussians(cls, gaussians: Sequence[Gaussian]) -> 'GaussianCloud':
        """
        Stack gaussian records into columns.

        Raises:
            MixedShOrderError: If the gaussians do not share one SH order
        """
        orders = {g.spherical_harmonics.order for g in gaussians}
        if len(orders) > 1:
            raise MixedShOrderError(
                "All gaussians must have the same spherical harmonic degree, found degrees "
                f"{sorted(int(o) for o in orders)}"
            )
        order = orders.pop() if orders else SphericalHarmonicsOrder.ORDER0
        n = len(gaussians)

        def stack(attr: str, width: int) -> np.ndarray:
            if n == 0:
                return np.zeros((0, width), dtype=np.float32)
            return np.stack([getattr(g, attr) for g in gaussians]).astype(np.float32)

        if n == 0 or order.scalar_count == 0:
            sh = np.zeros((n, order.scalar_count), dtype=np.float32)
        else:
            sh = np.stack([g.spherical_harmonics.scalars() for g in gaussians]).astype(np.float32)

        return cls(
            positions=stack('position', 3),
            rotations=stack('rotation', 4),
            scales=stack('scales', 3),
            colors=stack('color', 3),
            alphas=np.array([g.alpha for g in gaussians], dtype=np.float32).reshape(n),
            sh=sh,
            sh_order=order,
        )

    def to_gaussians(self) -> List[Gaussian]:
        """Split columns back into per-point records."""
        gaussians = []
        for i in range(self.count):
            gaussians.append(Gaussian(
                position=self.positions[i],
                rotation=self.rotations[i],
                scales=self.scales[i],
                color=self.colors[i],
                alpha=self.alphas[i],
                spherical_harmonics=SphericalHarmonics(self.sh_order, self.sh[i].reshape(-1, 3)),
            ))
        return gaussians
