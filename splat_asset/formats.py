"""
Data formats, quality presets and buffer size calculations.

Every size here is the exact byte length the encoders produce, so the CLI can
print an estimate before doing any work.
"""

from enum import IntEnum
from typing import Dict, Optional, Tuple

from .errors import FormatRangeError


# =============================================================================
# Constants
# =============================================================================

FORMAT_VERSION = 2023_10_20
CHUNK_SIZE = 256
TEXTURE_WIDTH = 2048  # 2k wide x 16k high covers 32M splats
TEXTURE_BLOCK_HEIGHT = 16
MAX_SPLATS = 8_600_000  # 2GB GPU buffer / 248 bytes per splat
CHUNK_INFO_SIZE = 64

SH_BANDS = 15


# =============================================================================
# Format enums
# =============================================================================

class VectorFormat(IntEnum):
    FLOAT32 = 0  # 12 bytes: 32.32.32
    NORM16 = 1   # 6 bytes: 16.16.16
    NORM11 = 2   # 4 bytes: 11.10.11
    NORM6 = 3    # 2 bytes: 6.5.5


class ColorFormat(IntEnum):
    FLOAT32X4 = 0
    FLOAT16X4 = 1
    NORM8X4 = 2
    BC7 = 3


class SHFormat(IntEnum):
    FLOAT32 = 0
    FLOAT16 = 1
    NORM11 = 2
    NORM6 = 3
    CLUSTER64K = 4
    CLUSTER32K = 5
    CLUSTER16K = 6
    CLUSTER8K = 7
    CLUSTER4K = 8


class DataQuality(IntEnum):
    VERY_HIGH = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3
    VERY_LOW = 4
    CUSTOM = 5


FormatTuple = Tuple[VectorFormat, VectorFormat, ColorFormat, SHFormat]

# (position, scale, color, sh); comments are size reduction vs. PLY and PSNR
QUALITY_PRESETS: Dict[DataQuality, FormatTuple] = {
    # 1.05x smaller
    DataQuality.VERY_HIGH: (VectorFormat.FLOAT32, VectorFormat.FLOAT32, ColorFormat.FLOAT32X4, SHFormat.FLOAT32),
    # 2.94x smaller, 57.77 PSNR
    DataQuality.HIGH: (VectorFormat.NORM16, VectorFormat.NORM16, ColorFormat.FLOAT16X4, SHFormat.NORM11),
    # 5.14x smaller, 47.46 PSNR
    DataQuality.MEDIUM: (VectorFormat.NORM11, VectorFormat.NORM11, ColorFormat.NORM8X4, SHFormat.NORM6),
    # 14.01x smaller, 35.17 PSNR
    DataQuality.LOW: (VectorFormat.NORM11, VectorFormat.NORM6, ColorFormat.NORM8X4, SHFormat.CLUSTER16K),
    # 18.62x smaller, 32.27 PSNR
    DataQuality.VERY_LOW: (VectorFormat.NORM11, VectorFormat.NORM6, ColorFormat.BC7, SHFormat.CLUSTER4K),
}


def formats_for_quality(quality: DataQuality) -> FormatTuple:
    """Return (pos, scale, color, sh) formats of a preset. Custom has none."""
    quality = DataQuality(quality)
    if quality == DataQuality.CUSTOM:
        raise FormatRangeError("Custom quality has no preset formats; set them explicitly")
    return QUALITY_PRESETS[quality]


def is_cluster_format(fmt: SHFormat) -> bool:
    return fmt >= SHFormat.CLUSTER64K


def is_compressed_color_format(fmt: ColorFormat) -> bool:
    return fmt == ColorFormat.BC7


def is_lossless(pos: VectorFormat, scale: VectorFormat, color: ColorFormat, sh: SHFormat) -> bool:
    """All-Float32 assets skip chunking and keep raw values."""
    return (pos == VectorFormat.FLOAT32 and scale == VectorFormat.FLOAT32
            and color == ColorFormat.FLOAT32X4 and sh == SHFormat.FLOAT32)


def parse_format(enum_cls, name: str):
    """Look up an enum member by case-insensitive name, e.g. 'norm11' or 'Cluster4k'."""
    key = name.strip().upper().replace('-', '_')
    try:
        return enum_cls[key]
    except KeyError:
        valid = ', '.join(m.name.lower() for m in enum_cls)
        raise FormatRangeError(f"Unknown {enum_cls.__name__} '{name}' (expected one of: {valid})")


# =============================================================================
# Sizes
# =============================================================================

_VECTOR_SIZES = {
    VectorFormat.FLOAT32: 12,
    VectorFormat.NORM16: 6,
    VectorFormat.NORM11: 4,
    VectorFormat.NORM6: 2,
}

# per-splat (or per-palette entry) SH record sizes, padding included
SH_ITEM_SIZES = {
    SHFormat.FLOAT32: 16 * 3 * 4,
    SHFormat.FLOAT16: 16 * 3 * 2,
    SHFormat.NORM11: 15 * 4,
    SHFormat.NORM6: 16 * 2,
}

_CLUSTER_COUNTS = {
    SHFormat.CLUSTER64K: 64 * 1024,
    SHFormat.CLUSTER32K: 32 * 1024,
    SHFormat.CLUSTER16K: 16 * 1024,
    SHFormat.CLUSTER8K: 8 * 1024,
    SHFormat.CLUSTER4K: 4 * 1024,
}

_COLOR_BYTES_PER_PIXEL = {
    ColorFormat.FLOAT32X4: 16,
    ColorFormat.FLOAT16X4: 8,
    ColorFormat.NORM8X4: 4,
    ColorFormat.BC7: 1,  # 16 bytes per 4x4 block
}


def next_multiple_of(size: int, multiple: int) -> int:
    return (size + multiple - 1) // multiple * multiple


def vector_size(fmt: VectorFormat) -> int:
    try:
        return _VECTOR_SIZES[fmt]
    except KeyError:
        raise FormatRangeError(f"Unsupported vector format: {fmt!r}")


def other_size_no_sh_index(scale_format: VectorFormat) -> int:
    """Rotation (4 bytes) plus scale."""
    return 4 + vector_size(scale_format)


def sh_count(fmt: SHFormat, splat_count: int) -> int:
    """Number of SH records: palette size for cluster formats, else one per splat."""
    if fmt in _CLUSTER_COUNTS:
        return _CLUSTER_COUNTS[fmt]
    if fmt in SH_ITEM_SIZES:
        return splat_count
    raise FormatRangeError(f"Unsupported SH format: {fmt!r}")


def sh_item_size(fmt: SHFormat) -> int:
    if is_cluster_format(fmt):
        return SH_ITEM_SIZES[SHFormat.FLOAT16]
    try:
        return SH_ITEM_SIZES[fmt]
    except KeyError:
        raise FormatRangeError(f"Unsupported SH format: {fmt!r}")


def color_bytes_per_pixel(fmt: ColorFormat) -> int:
    try:
        return _COLOR_BYTES_PER_PIXEL[fmt]
    except KeyError:
        raise FormatRangeError(f"Unsupported color format: {fmt!r}")


def calc_texture_size(splat_count: int) -> Tuple[int, int]:
    """Color texture is a fixed 2048 wide, height padded to whole 16-row tiles."""
    width = TEXTURE_WIDTH
    height = max(1, (splat_count + width - 1) // width)
    height = next_multiple_of(height, TEXTURE_BLOCK_HEIGHT)
    return width, height


def chunk_count(splat_count: int) -> int:
    return (splat_count + CHUNK_SIZE - 1) // CHUNK_SIZE


def calc_chunk_data_size(splat_count: int) -> int:
    return chunk_count(splat_count) * CHUNK_INFO_SIZE


def calc_pos_data_size(splat_count: int, fmt: VectorFormat) -> int:
    return next_multiple_of(splat_count * vector_size(fmt), 8)


def calc_other_data_size(splat_count: int, scale_format: VectorFormat, with_sh_index: bool = False) -> int:
    size = other_size_no_sh_index(scale_format)
    if with_sh_index:
        size += 2
    return next_multiple_of(splat_count * size, 8)


def calc_color_data_size(splat_count: int, fmt: ColorFormat) -> int:
    width, height = calc_texture_size(splat_count)
    return width * height * color_bytes_per_pixel(fmt)


def clustering_applies(fmt: SHFormat, splat_count: int) -> bool:
    """Clustering only runs when the palette is smaller than the splat count."""
    return is_cluster_format(fmt) and sh_count(fmt, splat_count) < splat_count


def calc_sh_data_size(splat_count: int, fmt: SHFormat) -> int:
    records = sh_count(fmt, splat_count) if clustering_applies(fmt, splat_count) else splat_count
    return next_multiple_of(records * sh_item_size(fmt), 8)


def estimate_asset_size(splat_count: int, pos: VectorFormat, scale: VectorFormat,
                        color: ColorFormat, sh: SHFormat) -> Dict[str, int]:
    """Per-buffer byte sizes of an asset, plus 'total'."""
    sizes = {
        'chunk': 0 if is_lossless(pos, scale, color, sh) else calc_chunk_data_size(splat_count),
        'pos': calc_pos_data_size(splat_count, pos),
        'other': calc_other_data_size(splat_count, scale, clustering_applies(sh, splat_count)),
        'color': calc_color_data_size(splat_count, color),
        'sh': calc_sh_data_size(splat_count, sh),
    }
    sizes['total'] = sum(sizes.values())
    return sizes


def describe_formats(pos: Optional[VectorFormat], scale: Optional[VectorFormat],
                     color: Optional[ColorFormat], sh: Optional[SHFormat]) -> str:
    def n(f):
        return f.name.lower() if f is not None else '?'
    return f"pos={n(pos)} scale={n(scale)} color={n(color)} sh={n(sh)}"
