"""
Per-chunk range compression.

Splats (already in Morton order) are split into runs of CHUNK_SIZE. Each chunk
records the min/max of its attributes and every attribute is rescaled into the
chunk-local [0, 1] range, which is what the Norm* encoders then quantize.
"""

from typing import Optional

import numpy as np

from .formats import CHUNK_SIZE, chunk_count
from .packing import pack_half2, unpack_half2
from .splats import SplatData, square_centered01

CHUNK_EPSILON = 1.0e-5

CHUNK_INFO_DTYPE = np.dtype([
    ('colR', '<u4'), ('colG', '<u4'), ('colB', '<u4'), ('colA', '<u4'),
    ('posX', '<f4', (2,)), ('posY', '<f4', (2,)), ('posZ', '<f4', (2,)),
    ('sclX', '<u4'), ('sclY', '<u4'), ('sclZ', '<u4'),
    ('shR', '<u4'), ('shG', '<u4'), ('shB', '<u4'),
])


def transform_for_chunking(data: SplatData):
    """Flatten the scale and opacity distributions before taking bounds."""
    data.scale[...] = np.power(np.maximum(data.scale, 0.0), 1.0 / 8.0)
    data.opacity[...] = square_centered01(data.opacity)


def _chunk_bounds(values: np.ndarray, starts: np.ndarray, max_values: Optional[np.ndarray] = None):
    if max_values is None:
        max_values = values
    vmin = np.minimum.reduceat(values, starts, axis=0)
    vmax = np.maximum.reduceat(max_values, starts, axis=0)
    # non-zero ranges only; at large coordinates one float32 step exceeds the epsilon
    widened = (vmin.astype(np.float64) + CHUNK_EPSILON).astype(np.float32)
    short = widened.astype(np.float64) - vmin.astype(np.float64) < CHUNK_EPSILON
    widened = np.where(short, np.nextafter(widened, np.float32(np.inf)), widened)
    vmax = np.maximum(vmax, widened)
    return vmin, vmax


def _normalize(values: np.ndarray, vmin: np.ndarray, vmax: np.ndarray, chunk_of: np.ndarray):
    values[...] = (values - vmin[chunk_of]) / (vmax[chunk_of] - vmin[chunk_of])


def create_chunk_data(data: SplatData) -> np.ndarray:
    """Compute chunk bounds, rewrite splat attributes into chunk-local [0, 1].

    Returns a structured array with one CHUNK_INFO_DTYPE record per chunk.
    """
    n = data.num
    count = chunk_count(n)
    starts = np.arange(count) * CHUNK_SIZE
    chunk_of = np.arange(n) // CHUNK_SIZE

    transform_for_chunking(data)

    col = np.concatenate([data.dc0, data.opacity[:, None]], axis=1)
    pos_min, pos_max = _chunk_bounds(data.pos, starts)
    scl_min, scl_max = _chunk_bounds(data.scale, starts)
    col_min, col_max = _chunk_bounds(col, starts)
    # one shared range for all 15 bands
    sh_min, sh_max = _chunk_bounds(data.sh.min(axis=1), starts, data.sh.max(axis=1))

    chunks = np.zeros(count, dtype=CHUNK_INFO_DTYPE)
    for c, name in enumerate(('posX', 'posY', 'posZ')):
        chunks[name][:, 0] = pos_min[:, c]
        chunks[name][:, 1] = pos_max[:, c]
    for c, name in enumerate(('sclX', 'sclY', 'sclZ')):
        chunks[name] = pack_half2(scl_min[:, c], scl_max[:, c])
    for c, name in enumerate(('colR', 'colG', 'colB', 'colA')):
        chunks[name] = pack_half2(col_min[:, c], col_max[:, c])
    for c, name in enumerate(('shR', 'shG', 'shB')):
        chunks[name] = pack_half2(sh_min[:, c], sh_max[:, c])

    _normalize(data.pos, pos_min, pos_max, chunk_of)
    _normalize(data.scale, scl_min, scl_max, chunk_of)
    _normalize(col, col_min, col_max, chunk_of)
    data.dc0[...] = col[:, :3]
    data.opacity[...] = col[:, 3]
    data.sh[...] = (data.sh - sh_min[chunk_of][:, None, :]) / (sh_max - sh_min)[chunk_of][:, None, :]

    return chunks


def chunk_bounds(chunks: np.ndarray, prefix: str, channels: str):
    """Read back (min, max) arrays of shape [chunks, channels] from chunk records.

    Position bounds are float32 pairs; all others are packed half pairs.
    """
    mins, maxs = [], []
    for ch in channels:
        field = chunks[prefix + ch]
        if field.ndim == 2:
            mins.append(field[:, 0])
            maxs.append(field[:, 1])
        else:
            lo, hi = unpack_half2(field)
            mins.append(lo)
            maxs.append(hi)
    return np.stack(mins, axis=1), np.stack(maxs, axis=1)
