"""
Bit-packed encodings shared by the attribute encoders.

The layouts are read back by the renderer's shaders, so every encoder has an
explicit decoder next to it. Inputs are arrays of shape [N, 3] (or [N, 4] for
quaternions) in [0, 1]; values are saturated and then truncated after scaling
by (2^bits - 1) + 0.5.
"""

import numpy as np


def saturate(v: np.ndarray) -> np.ndarray:
    return np.clip(v, 0.0, 1.0)


def _quantize(v: np.ndarray, bits: int) -> np.ndarray:
    return (v * ((1 << bits) - 0.5)).astype(np.uint64)


def _dequantize(q: np.ndarray, bits: int) -> np.ndarray:
    return (q & ((1 << bits) - 1)).astype(np.float32) / np.float32((1 << bits) - 1)


def _pack3(v: np.ndarray, bits) -> np.ndarray:
    v = saturate(np.asarray(v, dtype=np.float32))
    out = np.zeros(v.shape[:-1], dtype=np.uint64)
    shift = 0
    for c, b in enumerate(bits):
        out |= _quantize(v[..., c], b) << np.uint64(shift)
        shift += b
    return out


def _unpack3(enc: np.ndarray, bits) -> np.ndarray:
    enc = np.asarray(enc).astype(np.uint64)
    channels = []
    shift = 0
    for b in bits:
        channels.append(_dequantize(enc >> np.uint64(shift), b))
        shift += b
    return np.stack(channels, axis=-1)


# 48 bits: 16.16.16, stored as a uint32 followed by a uint16
def encode_norm16(v: np.ndarray) -> np.ndarray:
    return _pack3(v, (16, 16, 16))


def decode_norm16(enc: np.ndarray) -> np.ndarray:
    return _unpack3(enc, (16, 16, 16))


# 32 bits: 11.10.11
def encode_norm11(v: np.ndarray) -> np.ndarray:
    return _pack3(v, (11, 10, 11)).astype(np.uint32)


def decode_norm11(enc: np.ndarray) -> np.ndarray:
    return _unpack3(enc, (11, 10, 11))


# 16 bits: 6.5.5
def encode_norm655(v: np.ndarray) -> np.ndarray:
    return _pack3(v, (6, 5, 5)).astype(np.uint16)


def decode_norm655(enc: np.ndarray) -> np.ndarray:
    return _unpack3(enc, (6, 5, 5))


# 16 bits: 5.6.5
def encode_norm565(v: np.ndarray) -> np.ndarray:
    return _pack3(v, (5, 6, 5)).astype(np.uint16)


def decode_norm565(enc: np.ndarray) -> np.ndarray:
    return _unpack3(enc, (5, 6, 5))


# 32 bits: 10.10.10.2
def encode_quat_norm10(q: np.ndarray) -> np.ndarray:
    q = saturate(np.asarray(q, dtype=np.float32))
    enc = (_quantize(q[..., 0], 10)
           | (_quantize(q[..., 1], 10) << np.uint64(10))
           | (_quantize(q[..., 2], 10) << np.uint64(20))
           | (_quantize(q[..., 3], 2) << np.uint64(30)))
    return enc.astype(np.uint32)


def decode_quat_norm10(enc: np.ndarray) -> np.ndarray:
    enc = np.asarray(enc).astype(np.uint64)
    return np.stack([
        _dequantize(enc, 10),
        _dequantize(enc >> np.uint64(10), 10),
        _dequantize(enc >> np.uint64(20), 10),
        _dequantize(enc >> np.uint64(30), 2),
    ], axis=-1)


# =============================================================================
# Half floats
# =============================================================================

def pack_half2(lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    """Two float16 values in one uint32: low 16 bits = lo, high 16 bits = hi."""
    lo_bits = np.asarray(lo, dtype=np.float32).astype(np.float16).view(np.uint16).astype(np.uint32)
    hi_bits = np.asarray(hi, dtype=np.float32).astype(np.float16).view(np.uint16).astype(np.uint32)
    return lo_bits | (hi_bits << np.uint32(16))


def unpack_half2(packed: np.ndarray):
    packed = np.asarray(packed, dtype=np.uint32)
    lo = (packed & np.uint32(0xFFFF)).astype(np.uint16).view(np.float16).astype(np.float32)
    hi = (packed >> np.uint32(16)).astype(np.uint16).view(np.float16).astype(np.float32)
    return lo, hi
