"""
Asset creation pipeline.

    load -> bounds -> Morton reorder -> [cluster SH] -> metadata -> [chunks]
         -> positions -> other -> color -> SH -> hash -> asset

Chunking is skipped when every format is lossless Float32. The splat arrays
are reordered and rewritten in place; pass a copy if the caller still needs
the original values.
"""

from enum import Enum
from typing import List, Optional

import numpy as np

from .asset import SplatAsset, encode_color_preview
from .cameras import CAMERAS_JSON, CameraInfo, load_json_cameras
from .chunks import create_chunk_data
from .clustering import ClusterResult, ProgressCallback, cluster_shs
from .encoders import (
    TextureCompressor, create_color_data, create_other_data, create_positions_data, create_sh_data,
)
from .errors import EmptyInputError, FormatRangeError, SplatAssetError
from .formats import (
    FORMAT_VERSION, ColorFormat, DataQuality, SHFormat, VectorFormat, calc_texture_size,
    chunk_count, describe_formats, formats_for_quality, is_cluster_format,
    is_compressed_color_format, is_lossless,
)
from .hashing import ContentHash
from .morton import reorder_morton
from .ply_reader import read_splats
from .splats import SplatData, calc_bounds


class Stage(Enum):
    IDLE = 'idle'
    LOAD_INPUTS = 'load inputs'
    COMPUTE_BOUNDS = 'compute bounds'
    REORDER_MORTON = 'Morton reorder'
    CLUSTER_SH = 'cluster SH'
    INITIALIZE_METADATA = 'initialize metadata'
    BUILD_CHUNKS = 'build chunks'
    ENCODE_POSITIONS = 'encode positions'
    ENCODE_OTHER = 'encode other'
    ENCODE_COLOR = 'encode color'
    ENCODE_SH = 'encode SH'
    FINALIZE_HASH = 'finalize hash'
    ATTACH_BUFFERS = 'attach buffers'
    READY = 'ready'
    FAILED = 'failed'


class AssetCreator:
    """Turns splat clouds into SplatAssets at a chosen quality level."""

    def __init__(self, quality: DataQuality = DataQuality.MEDIUM,
                 texture_compressor: Optional[TextureCompressor] = None,
                 make_preview: bool = False, seed: Optional[int] = None):
        self.quality = DataQuality.CUSTOM
        self.pos_format: Optional[VectorFormat] = None
        self.scale_format: Optional[VectorFormat] = None
        self.color_format: Optional[ColorFormat] = None
        self.sh_format: Optional[SHFormat] = None
        self.texture_compressor = texture_compressor
        self.make_preview = make_preview
        self.seed = seed
        self.stage = Stage.IDLE
        self.cluster_result: Optional[ClusterResult] = None
        self.set_quality_level(quality)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_quality_level(self, quality: DataQuality):
        """Select a preset. Custom clears the formats; set them with set_formats()."""
        self.quality = DataQuality(quality)
        if self.quality == DataQuality.CUSTOM:
            self.pos_format = self.scale_format = self.color_format = self.sh_format = None
            return
        self.pos_format, self.scale_format, self.color_format, self.sh_format = formats_for_quality(self.quality)

    def set_formats(self, pos: VectorFormat, scale: VectorFormat, color: ColorFormat, sh: SHFormat):
        self.quality = DataQuality.CUSTOM
        self.pos_format = pos
        self.scale_format = scale
        self.color_format = color
        self.sh_format = sh

    @property
    def is_using_chunks(self) -> bool:
        return not is_lossless(self.pos_format, self.scale_format, self.color_format, self.sh_format)

    def validate_formats(self):
        """Raise FormatRangeError unless all four formats are set and encodable."""
        checks = (
            ('position', self.pos_format, VectorFormat),
            ('scale', self.scale_format, VectorFormat),
            ('color', self.color_format, ColorFormat),
            ('SH', self.sh_format, SHFormat),
        )
        for label, value, enum_cls in checks:
            if value is None:
                raise FormatRangeError(f"No {label} format set (Custom quality needs all four formats)")
            try:
                enum_cls(value)
            except ValueError as e:
                raise FormatRangeError(f"Unsupported {label} format: {value!r}") from e
        self.pos_format = VectorFormat(self.pos_format)
        self.scale_format = VectorFormat(self.scale_format)
        self.color_format = ColorFormat(self.color_format)
        self.sh_format = SHFormat(self.sh_format)
        if is_compressed_color_format(self.color_format) and self.texture_compressor is None:
            raise FormatRangeError(f"Color format {self.color_format.name} needs a texture compressor")

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def create_asset_from_file(self, name: str, input_file: str, import_cameras: bool = False,
                               progress: Optional[ProgressCallback] = None,
                               max_splats: Optional[int] = None) -> SplatAsset:
        self.stage = Stage.LOAD_INPUTS
        try:
            self.validate_formats()
            cameras = load_json_cameras(input_file, CAMERAS_JSON, import_cameras)
            splats = read_splats(input_file, max_splats=max_splats, seed=self.seed or 0)
        except SplatAssetError as e:
            self._fail(e)
            raise
        return self.create_asset(name, splats, cameras, progress)

    def create_asset(self, name: str, splats: SplatData, cameras: Optional[List[CameraInfo]] = None,
                     progress: Optional[ProgressCallback] = None) -> SplatAsset:
        """Run the whole pipeline over `splats` (modified in place)."""
        self.stage = Stage.LOAD_INPUTS
        self.cluster_result = None
        try:
            return self._run(name, splats, cameras, progress)
        except SplatAssetError as e:
            self._fail(e)
            raise

    def _fail(self, e: SplatAssetError):
        if e.stage is None:
            e.stage = self.stage.value
        self.stage = Stage.FAILED

    def _run(self, name: str, splats: SplatData, cameras: Optional[List[CameraInfo]],
             progress: Optional[ProgressCallback]) -> SplatAsset:
        self.validate_formats()
        if splats.num == 0:
            raise EmptyInputError("No splats found in input")

        print(f"Creating asset '{name}': {splats.num} splats, {describe_formats(self.pos_format, self.scale_format, self.color_format, self.sh_format)}")

        self.stage = Stage.COMPUTE_BOUNDS
        bounds_min, bounds_max = calc_bounds(splats)

        self.stage = Stage.REORDER_MORTON
        print("\nSorting by Morton order...")
        reorder_morton(splats, bounds_min, bounds_max)

        sh_indices = None
        palette = None
        if is_cluster_format(self.sh_format):
            self.stage = Stage.CLUSTER_SH
            print("\nClustering SHs...")
            self.cluster_result = cluster_shs(splats, self.sh_format, progress, self.seed)
            if self.cluster_result is not None:
                sh_indices = self.cluster_result.indices
                palette = self.cluster_result.palette

        self.stage = Stage.INITIALIZE_METADATA
        data_hash = ContentHash(splats.num, FORMAT_VERSION)

        print("\nEncoding attributes...")
        chunk_data = None
        if self.is_using_chunks:
            self.stage = Stage.BUILD_CHUNKS
            print(f"  Building {chunk_count(splats.num)} chunks...")
            chunk_data = create_chunk_data(splats).tobytes()
            data_hash.append(chunk_data)

        self.stage = Stage.ENCODE_POSITIONS
        pos_data = create_positions_data(self.pos_format, splats)
        data_hash.append(pos_data)

        self.stage = Stage.ENCODE_OTHER
        other_data = create_other_data(self.scale_format, splats, sh_indices)
        data_hash.append(other_data)

        self.stage = Stage.ENCODE_COLOR
        width, height = calc_texture_size(splats.num)
        print(f"  Texture size: {width} x {height} ({width * height} pixels for {splats.num} splats)")
        color_data, color_image = create_color_data(self.color_format, splats, self.texture_compressor)
        data_hash.append(color_data)
        data_hash.append_int(int(self.color_format))
        preview = encode_color_preview(color_image) if self.make_preview else None

        self.stage = Stage.ENCODE_SH
        sh_data = create_sh_data(self.sh_format, splats, palette)
        data_hash.append(sh_data)

        self.stage = Stage.FINALIZE_HASH
        digest = data_hash.hexdigest()

        self.stage = Stage.ATTACH_BUFFERS
        asset = SplatAsset(
            name=name,
            format_version=FORMAT_VERSION,
            splat_count=splats.num,
            pos_format=self.pos_format,
            scale_format=self.scale_format,
            color_format=self.color_format,
            sh_format=self.sh_format,
            bounds_min=tuple(float(v) for v in np.asarray(bounds_min)),
            bounds_max=tuple(float(v) for v in np.asarray(bounds_max)),
            data_hash=digest,
            pos_data=pos_data,
            other_data=other_data,
            color_data=color_data,
            sh_data=sh_data,
            chunk_data=chunk_data,
            cameras=cameras,
            preview=preview,
        )
        self.stage = Stage.READY
        print(f"\nAsset ready: {asset.total_size / 1024 / 1024:.2f} MB, hash {digest}")
        return asset
