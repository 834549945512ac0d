# ABOUTME: 24-bit signed fixed-point codec for gaussian positions
# ABOUTME: Encodes floats to 3 little-endian bytes and picks the fractional bit count per batch

import numpy as np
from typing import Iterable

FIXED24_BITS = 24
FIXED24_MIN = -(1 << 23)
FIXED24_MAX = (1 << 23) - 1
FIXED24_MASK = 0xFFFFFF


def round_half_away(values) -> np.ndarray:
    """Round to nearest integer, ties away from zero (np.round ties to even)."""
    values = np.asarray(values, dtype=np.float64)
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def encode_fixed24_array(values, fractional_bits: int) -> np.ndarray:
    """
    Encode an array of floats as 24-bit signed fixed point.

    Args:
        values: Array-like of floats, any shape
        fractional_bits: Number of bits after the binary point (0-24)

    Returns:
        uint8 array with a trailing axis of 3 (little-endian bytes)
    """
    _check_fractional_bits(fractional_bits)
    values = np.asarray(values, dtype=np.float64)

    scaled = round_half_away(values * float(1 << fractional_bits))
    # NaN maps to 0, infinities saturate
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=FIXED24_MAX, neginf=FIXED24_MIN)
    clipped = np.clip(scaled, FIXED24_MIN, FIXED24_MAX).astype(np.int64)
    bits = clipped & FIXED24_MASK

    out = np.empty(values.shape + (3,), dtype=np.uint8)
    out[..., 0] = bits & 0xFF
    out[..., 1] = (bits >> 8) & 0xFF
    out[..., 2] = (bits >> 16) & 0xFF
    return out


def decode_fixed24_array(data, fractional_bits: int) -> np.ndarray:
    """
    Decode 24-bit signed fixed point bytes back to floats.

    Args:
        data: uint8 array-like whose trailing axis has length 3
        fractional_bits: Number of fractional bits used at encode time

    Returns:
        float32 array with the trailing axis removed
    """
    _check_fractional_bits(fractional_bits)
    data = np.asarray(data, dtype=np.uint8)
    if data.shape[-1:] != (3,):
        raise ValueError(f"Fixed-point data must have a trailing axis of 3, got shape {data.shape}")

    raw = (data[..., 0].astype(np.int64)
           | (data[..., 1].astype(np.int64) << 8)
           | (data[..., 2].astype(np.int64) << 16))
    # Sign-extend from bit 23
    raw = np.where(raw & 0x800000, raw - (1 << 24), raw)
    return (raw / float(1 << fractional_bits)).astype(np.float32)


def encode_fixed24(value: float, fractional_bits: int) -> bytes:
    """Encode a single float to 3 bytes."""
    return encode_fixed24_array(value, fractional_bits).tobytes()


def decode_fixed24(data: bytes, fractional_bits: int) -> float:
    """Decode 3 bytes to a single float."""
    if len(data) != 3:
        raise ValueError(f"Fixed-point value needs exactly 3 bytes, got {len(data)}")
    return float(decode_fixed24_array(np.frombuffer(bytes(data), dtype=np.uint8), fractional_bits))


def integer_bits_needed(values) -> np.ndarray:
    """
    Number of integer bits needed to hold ceil(|v|) for each value.

    Zero needs 0 bits. Non-finite values report 0 since they saturate anyway.
    """
    values = np.asarray(values, dtype=np.float64)
    finite = np.isfinite(values)
    magnitude = np.ceil(np.abs(np.where(finite, values, 0.0)))
    # frexp exponent equals bit_length for positive integers
    _, exponent = np.frexp(magnitude)
    return np.where(magnitude > 0, exponent, 0).astype(np.int64)


def optimal_fractional_bits(value: float, bit_count: int = FIXED24_BITS) -> int:
    """Fractional bits that keep one value in range with the most precision."""
    return compute_fixed_point_fractional_bits([value], bit_count)


def compute_fixed_point_fractional_bits(floats: Iterable[float], bit_count: int = FIXED24_BITS) -> int:
    """
    Work out the fractional bit count for a batch of floats.

    Each value needs 1 sign bit plus enough integer bits for ceil(|v|); the
    rest of the 24 bits are fraction. The batch uses the smallest per-value
    count so the largest magnitude still fits, clamped to [0, bit_count].

    Args:
        floats: Values that will share one fractional bit count
        bit_count: Upper bound for the result

    Returns:
        Fractional bit count for the batch
    """
    values = np.asarray(list(floats) if not isinstance(floats, np.ndarray) else floats,
                        dtype=np.float64).ravel()
    if values.size == 0:
        needed = 0
    else:
        needed = int(integer_bits_needed(values).max())
    fractional_bits = FIXED24_BITS - needed - 1
    return int(max(0, min(fractional_bits, bit_count)))


def _check_fractional_bits(fractional_bits: int) -> None:
    if not 0 <= fractional_bits <= FIXED24_BITS:
        raise ValueError(f"Fractional bits must be in [0, {FIXED24_BITS}], got {fractional_bits}")
