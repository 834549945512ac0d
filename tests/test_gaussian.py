# ABOUTME: Test suite for gaussian records and column clouds
# ABOUTME: Covers validation, equality, dict conversion and stacking

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spz_codec.errors import MixedShOrderError
from spz_codec.gaussian import Gaussian, GaussianCloud
from spz_codec.spherical_harmonics import SphericalHarmonics, SphericalHarmonicsOrder


class TestGaussian:
    """Test the per-point record."""

    def test_defaults(self):
        """Test a default gaussian is an identity at the origin."""
        g = Gaussian()
        np.testing.assert_array_equal(g.position, [0, 0, 0])
        np.testing.assert_array_equal(g.rotation, [0, 0, 0, 1])
        np.testing.assert_array_equal(g.scales, [1, 1, 1])
        assert g.alpha == 0.0
        assert g.spherical_harmonics.order == SphericalHarmonicsOrder.ORDER0

    def test_coerces_to_float32(self):
        """Test list inputs become float32 arrays."""
        g = Gaussian(position=[1, 2, 3])
        assert g.position.dtype == np.float32

    def test_wrong_size(self):
        """Test wrongly sized attributes are rejected."""
        with pytest.raises(ValueError, match="Position"):
            Gaussian(position=[1, 2])
        with pytest.raises(ValueError, match="Rotation"):
            Gaussian(rotation=[0, 0, 1])

    def test_equality(self):
        """Test value equality."""
        a = Gaussian(position=[1, 2, 3], alpha=0.5)
        b = Gaussian(position=[1, 2, 3], alpha=0.5)
        assert a == b
        assert a != Gaussian(position=[1, 2, 3], alpha=0.25)

    def test_dict_round_trip(self):
        """Test conversion through a plain dictionary."""
        g = Gaussian(position=[1, 2, 3], color=[0.1, 0.2, 0.3], alpha=-1.5,
                     spherical_harmonics=SphericalHarmonics.from_vectors(np.ones((3, 3))))
        data = g.to_dict()
        assert data['position'] == [1.0, 2.0, 3.0]
        assert len(data['spherical_harmonics']) == 3
        assert Gaussian.from_dict(data) == g


class TestGaussianCloud:
    """Test the column view."""

    def test_from_gaussians(self):
        """Test stacking records into columns."""
        gaussians = [Gaussian(position=[i, 0, 0], alpha=float(i)) for i in range(4)]
        cloud = GaussianCloud.from_gaussians(gaussians)
        assert cloud.count == 4
        assert cloud.positions.shape == (4, 3)
        assert cloud.sh.shape == (4, 0)
        np.testing.assert_array_equal(cloud.alphas, [0, 1, 2, 3])
        assert cloud.to_gaussians() == gaussians

    def test_mixed_orders(self):
        """Test records with different SH orders cannot be stacked."""
        gaussians = [
            Gaussian(),
            Gaussian(spherical_harmonics=SphericalHarmonics.from_vectors(np.zeros((3, 3)))),
        ]
        with pytest.raises(MixedShOrderError):
            GaussianCloud.from_gaussians(gaussians)

    def test_empty(self):
        """Test an empty list gives an empty order-0 cloud."""
        cloud = GaussianCloud.from_gaussians([])
        assert cloud.count == 0
        assert cloud.sh_order == SphericalHarmonicsOrder.ORDER0

    def test_subset(self):
        """Test selecting rows."""
        gaussians = [Gaussian(position=[i, i, i]) for i in range(10)]
        subset = GaussianCloud.from_gaussians(gaussians).subset(np.array([1, 5]))
        assert subset.count == 2
        np.testing.assert_array_equal(subset.positions[1], [5, 5, 5])

    def test_shape_validation(self):
        """Test mismatched column shapes are rejected."""
        with pytest.raises(ValueError, match="SH"):
            GaussianCloud(
                positions=np.zeros((2, 3)),
                rotations=np.zeros((2, 4)),
                scales=np.zeros((2, 3)),
                colors=np.zeros((2, 3)),
                alphas=np.zeros(2),
                sh=np.zeros((2, 5)),
                sh_order=SphericalHarmonicsOrder.ORDER1,
            )
