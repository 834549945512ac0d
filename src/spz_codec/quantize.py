# ABOUTME: Single-byte quantizers for opacity, color, scale and rotation
# ABOUTME: Vectorized over numpy arrays; each encoder has a matching inverse

import numpy as np
from scipy.special import expit, logit

from .fixed_point import round_half_away

COLOR_SCALE = 0.15
SCALE_OFFSET = 10.0
SCALE_STEPS = 16.0
ROTATION_HALF_RANGE = 127.5

# Opacity bytes 0 and 255 decode a quarter step inside (0, 1) so the
# result is finite and re-encodes to the same byte.
_ALPHA_EDGE = 0.25 / 255.0


def _to_bytes(values: np.ndarray) -> np.ndarray:
    values = np.nan_to_num(values, nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(round_half_away(values), 0, 255).astype(np.uint8)


def quantize_alpha(alpha) -> np.ndarray:
    """Linear opacity (any real) -> byte via sigmoid."""
    alpha = np.asarray(alpha, dtype=np.float64)
    return _to_bytes(expit(alpha) * 255.0)


def unquantize_alpha(data) -> np.ndarray:
    """Byte -> linear opacity via inverse sigmoid."""
    p = np.asarray(data, dtype=np.float64) / 255.0
    p = np.clip(p, _ALPHA_EDGE, 1.0 - _ALPHA_EDGE)
    return logit(p).astype(np.float32)


def quantize_color(color) -> np.ndarray:
    color = np.asarray(color, dtype=np.float64)
    return _to_bytes((color * COLOR_SCALE + 0.5) * 255.0)


def unquantize_color(data) -> np.ndarray:
    data = np.asarray(data, dtype=np.float32)
    return ((data / np.float32(255.0) - np.float32(0.5)) / np.float32(COLOR_SCALE)).astype(np.float32)


def quantize_scale(scales) -> np.ndarray:
    """Log-domain scale -> byte. Values outside about [-10, 5.9] clamp."""
    scales = np.asarray(scales, dtype=np.float64)
    return _to_bytes((scales + SCALE_OFFSET) * SCALE_STEPS)


def unquantize_scale(data) -> np.ndarray:
    data = np.asarray(data, dtype=np.float32)
    return (data / np.float32(SCALE_STEPS) - np.float32(SCALE_OFFSET)).astype(np.float32)


def normalize_quaternions(rotations) -> np.ndarray:
    """
    Normalize (N, 4) quaternions stored x, y, z, w.

    Zero-length quaternions become the identity.
    """
    rotations = np.asarray(rotations, dtype=np.float64).reshape(-1, 4)
    norms = np.linalg.norm(rotations, axis=1, keepdims=True)
    degenerate = ~np.isfinite(norms[:, 0]) | (norms[:, 0] == 0.0)
    safe = np.where(norms > 0, norms, 1.0)
    normalized = rotations / safe
    normalized[degenerate] = (0.0, 0.0, 0.0, 1.0)
    return normalized


def quantize_rotation(rotations) -> np.ndarray:
    """
    Quaternions (N, 4) in x, y, z, w order -> (N, 3) bytes.

    The sign is flipped when w < 0 so only x, y, z need storing.
    """
    q = normalize_quaternions(rotations)
    sign = np.where(q[:, 3:4] < 0.0, -ROTATION_HALF_RANGE, ROTATION_HALF_RANGE)
    return _to_bytes(q[:, :3] * sign + ROTATION_HALF_RANGE)


def unquantize_rotation(data) -> np.ndarray:
    """(N, 3) bytes -> (N, 4) quaternions x, y, z, w with w >= 0."""
    data = np.asarray(data, dtype=np.float32).reshape(-1, 3)
    xyz = data / np.float32(ROTATION_HALF_RANGE) - np.float32(1.0)
    w = np.sqrt(np.maximum(np.float32(0.0), np.float32(1.0) - np.sum(xyz * xyz, axis=1)))
    return np.column_stack([xyz, w]).astype(np.float32)
