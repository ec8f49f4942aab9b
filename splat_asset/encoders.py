"""
Attribute encoders: positions, "other" (rotation + scale + SH index), color, SH.

Each encoder picks its per-format function once, runs it over the whole
attribute array and returns a flat byte buffer padded to a multiple of 8 bytes.
"""

from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .errors import FormatRangeError
from .formats import (
    ColorFormat, SHFormat, VectorFormat, calc_texture_size, color_bytes_per_pixel,
    is_cluster_format, is_compressed_color_format, next_multiple_of,
)
from .morton import splat_index_to_texture_index
from .packing import (
    encode_norm11, encode_norm16, encode_norm565, encode_norm655, encode_quat_norm10, saturate,
)
from .splats import SplatData

# (image [H, W, 4] float32, format) -> compressed bytes
TextureCompressor = Callable[[np.ndarray, ColorFormat], bytes]


def _as_rows(values: np.ndarray, dtype: str) -> np.ndarray:
    """View [N, ...] values as [N, bytes] little-endian rows."""
    arr = np.ascontiguousarray(values, dtype=dtype)
    return arr.view(np.uint8).reshape(len(arr), -1)


def pad_to_8(data: np.ndarray) -> bytes:
    flat = np.ascontiguousarray(data, dtype=np.uint8).reshape(-1)
    padded = next_multiple_of(len(flat), 8)
    if padded != len(flat):
        flat = np.concatenate([flat, np.zeros(padded - len(flat), dtype=np.uint8)])
    return flat.tobytes()


# =============================================================================
# Vectors (positions, scales)
# =============================================================================

def _vector_float32(v: np.ndarray) -> np.ndarray:
    return _as_rows(v, '<f4')


def _vector_norm16(v: np.ndarray) -> np.ndarray:
    # uint32 low bits followed by uint16 high bits
    return _as_rows(encode_norm16(v), '<u8')[:, :6]


def _vector_norm11(v: np.ndarray) -> np.ndarray:
    return _as_rows(encode_norm11(v), '<u4')


def _vector_norm6(v: np.ndarray) -> np.ndarray:
    return _as_rows(encode_norm655(v), '<u2')


_VECTOR_ENCODERS: Dict[VectorFormat, Callable[[np.ndarray], np.ndarray]] = {
    VectorFormat.FLOAT32: _vector_float32,
    VectorFormat.NORM16: _vector_norm16,
    VectorFormat.NORM11: _vector_norm11,
    VectorFormat.NORM6: _vector_norm6,
}


def emit_encoded_vectors(v: np.ndarray, fmt: VectorFormat) -> np.ndarray:
    """Encode [N, 3] vectors into [N, vector_size(fmt)] bytes."""
    try:
        encode = _VECTOR_ENCODERS[fmt]
    except KeyError:
        raise FormatRangeError(f"Unsupported vector format: {fmt!r}")
    return encode(v)


def create_positions_data(fmt: VectorFormat, data: SplatData) -> bytes:
    print("  Encoding positions...")
    return pad_to_8(emit_encoded_vectors(data.pos, fmt))


def create_other_data(scale_format: VectorFormat, data: SplatData,
                      sh_indices: Optional[np.ndarray] = None) -> bytes:
    """Per splat: 10.10.10.2 rotation, scale, then the SH palette index if any."""
    print("  Encoding rotations and scales...")
    parts = [
        _as_rows(encode_quat_norm10(data.rot), '<u4'),
        emit_encoded_vectors(data.scale, scale_format),
    ]
    if sh_indices is not None:
        parts.append(_as_rows(np.asarray(sh_indices), '<u2'))
    return pad_to_8(np.concatenate(parts, axis=1))


# =============================================================================
# Color
# =============================================================================

def build_color_image(data: SplatData) -> np.ndarray:
    """RGBA32F texture [H, W, 4]; splat i lands at its 16x16 tile Morton address."""
    width, height = calc_texture_size(data.num)
    image = np.zeros((width * height, 4), dtype=np.float32)
    tex_idx = splat_index_to_texture_index(np.arange(data.num), width)
    image[tex_idx, :3] = data.dc0
    image[tex_idx, 3] = data.opacity
    return image.reshape(height, width, 4)


def _color_float32x4(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(image, dtype='<f4').view(np.uint8)


def _color_float16x4(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(image, dtype='<f2').view(np.uint8)


def _color_norm8x4(image: np.ndarray) -> np.ndarray:
    return (saturate(image) * 255.5).astype(np.uint8)


_COLOR_ENCODERS = {
    ColorFormat.FLOAT32X4: _color_float32x4,
    ColorFormat.FLOAT16X4: _color_float16x4,
    ColorFormat.NORM8X4: _color_norm8x4,
}


def create_color_data(fmt: ColorFormat, data: SplatData,
                      compressor: Optional[TextureCompressor] = None) -> Tuple[bytes, np.ndarray]:
    """Returns (encoded color buffer, intermediate RGBA32F image)."""
    print("  Encoding colors...")
    bpp = color_bytes_per_pixel(fmt)
    image = build_color_image(data)

    if is_compressed_color_format(fmt):
        if compressor is None:
            raise FormatRangeError(f"Color format {fmt.name} needs a texture compressor")
        encoded = bytes(compressor(image, fmt))
        expected = image.shape[0] * image.shape[1] * bpp
        if len(encoded) != expected:
            raise FormatRangeError(
                f"Texture compressor returned {len(encoded)} bytes for {fmt.name}, expected {expected}")
        return encoded, image

    encode = _COLOR_ENCODERS.get(fmt)
    if encode is None:
        raise FormatRangeError(f"Unsupported color format: {fmt!r}")
    return pad_to_8(encode(image)), image


# =============================================================================
# Spherical harmonics
# =============================================================================

def _padded_bands(sh: np.ndarray) -> np.ndarray:
    """[N, 15, 3] -> [N, 16, 3] with a zero padding band."""
    out = np.zeros((len(sh), 16, 3), dtype=np.float32)
    out[:, :15] = sh
    return out


def _sh_float32(sh: np.ndarray) -> np.ndarray:
    return _as_rows(_padded_bands(sh), '<f4')


def _sh_float16(sh: np.ndarray) -> np.ndarray:
    return _as_rows(_padded_bands(sh), '<f2')


def _sh_norm11(sh: np.ndarray) -> np.ndarray:
    return _as_rows(encode_norm11(sh), '<u4')


def _sh_norm6(sh: np.ndarray) -> np.ndarray:
    enc = np.zeros((len(sh), 16), dtype=np.uint16)
    enc[:, :15] = encode_norm565(sh)
    return _as_rows(enc, '<u2')


_SH_ENCODERS = {
    SHFormat.FLOAT32: _sh_float32,
    SHFormat.FLOAT16: _sh_float16,
    SHFormat.NORM11: _sh_norm11,
    SHFormat.NORM6: _sh_norm6,
}


def create_sh_data(fmt: SHFormat, data: SplatData, palette: Optional[np.ndarray] = None) -> bytes:
    """SH palette if clustering ran, otherwise one record per splat.

    Cluster formats without a palette (too few splats to cluster) store each
    splat as a Float16 record, the same layout palette entries use.
    """
    if palette is not None:
        print(f"  Encoding SH palette ({len(palette)} entries)...")
        return pad_to_8(_sh_float16(np.asarray(palette, dtype=np.float32)))

    print("  Encoding SH coefficients...")
    if is_cluster_format(fmt):
        encode = _sh_float16
    else:
        encode = _SH_ENCODERS.get(fmt)
        if encode is None:
            raise FormatRangeError(f"Unsupported SH format: {fmt!r}")
    return pad_to_8(encode(data.sh))
