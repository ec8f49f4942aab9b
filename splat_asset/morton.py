"""
Morton order sorting (for better compression) and texture tile addressing.
"""

from typing import Optional

import numpy as np

from .formats import TEXTURE_WIDTH
from .splats import SplatData, calc_bounds

MORTON_BITS = 21
MORTON_SCALER = float((1 << MORTON_BITS) - 1)


def spread_bits(v: np.ndarray) -> np.ndarray:
    """Spread bits for 21-bit input to 63-bit output."""
    v = np.asarray(v).astype(np.uint64) & np.uint64(0x1fffff)
    v = (v | (v << np.uint64(32))) & np.uint64(0x1f00000000ffff)
    v = (v | (v << np.uint64(16))) & np.uint64(0x1f0000ff0000ff)
    v = (v | (v << np.uint64(8))) & np.uint64(0x100f00f00f00f00f)
    v = (v | (v << np.uint64(4))) & np.uint64(0x10c30c30c30c30c3)
    v = (v | (v << np.uint64(2))) & np.uint64(0x1249249249249249)
    return v


def morton_encode_3d(x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    """Encode 3D coordinates to Morton code (Z-order curve)."""
    return spread_bits(x) | (spread_bits(y) << np.uint64(1)) | (spread_bits(z) << np.uint64(2))


def quantize_positions(pos: np.ndarray, bounds_min: np.ndarray, bounds_max: np.ndarray) -> np.ndarray:
    """Map positions to 21-bit integer cells inside the bounds. Flat axes map to 0."""
    size = np.asarray(bounds_max, dtype=np.float64) - np.asarray(bounds_min, dtype=np.float64)
    inv_size = np.zeros_like(size)
    np.divide(1.0, size, out=inv_size, where=size > 0)
    norm = (np.asarray(pos, dtype=np.float64) - bounds_min) * inv_size * MORTON_SCALER
    return np.floor(np.clip(norm, 0.0, MORTON_SCALER)).astype(np.uint32)


def morton_codes(pos: np.ndarray, bounds_min: np.ndarray, bounds_max: np.ndarray) -> np.ndarray:
    q = quantize_positions(pos, bounds_min, bounds_max)
    return morton_encode_3d(q[:, 0], q[:, 1], q[:, 2])


def sort_morton_order(data: SplatData, bounds_min: Optional[np.ndarray] = None,
                      bounds_max: Optional[np.ndarray] = None) -> np.ndarray:
    """Indices that sort splats by Morton code; ties keep their original order."""
    if bounds_min is None or bounds_max is None:
        bounds_min, bounds_max = calc_bounds(data)
    codes = morton_codes(data.pos, bounds_min, bounds_max)
    return np.argsort(codes, kind='stable')


def reorder_morton(data: SplatData, bounds_min: np.ndarray, bounds_max: np.ndarray) -> np.ndarray:
    """Sort splats into Morton order in place. Returns the applied permutation."""
    order = sort_morton_order(data, bounds_min, bounds_max)
    data.permute(order)
    return order


# =============================================================================
# Texture addressing
# =============================================================================

def _compact_bits_8(v: np.ndarray) -> np.ndarray:
    v = v & 0x55
    v = (v | (v >> 1)) & 0x33
    v = (v | (v >> 2)) & 0x0f
    return v


def decode_morton2d_16x16(t: np.ndarray):
    """Split the low 8 bits of a Morton index into (x, y) inside a 16x16 tile."""
    t = np.asarray(t).astype(np.uint32) & 0xFF
    return _compact_bits_8(t), _compact_bits_8(t >> 1)


def splat_index_to_texture_index(idx: np.ndarray, width: int = TEXTURE_WIDTH) -> np.ndarray:
    """Pixel address of each splat: 256 consecutive splats fill one 16x16 tile in Z order."""
    idx = np.asarray(idx).astype(np.uint32)
    x_in_tile, y_in_tile = decode_morton2d_16x16(idx)
    tiles_per_row = width // 16
    tile = idx >> 8
    x = (tile % tiles_per_row) * 16 + x_in_tile
    y = (tile // tiles_per_row) * 16 + y_in_tile
    return (y * width + x).astype(np.int64)


def _part1by1_8(v: np.ndarray) -> np.ndarray:
    v = v & 0x0f
    v = (v | (v << 2)) & 0x33
    v = (v | (v << 1)) & 0x55
    return v


def texture_index_to_splat_index(tex: np.ndarray, width: int = TEXTURE_WIDTH) -> np.ndarray:
    """Inverse of splat_index_to_texture_index."""
    tex = np.asarray(tex).astype(np.uint32)
    x = tex % width
    y = tex // width
    tiles_per_row = width // 16
    tile = (y // 16) * tiles_per_row + x // 16
    in_tile = _part1by1_8(x % 16) | (_part1by1_8(y % 16) << 1)
    return (tile * 256 + in_tile).astype(np.int64)
