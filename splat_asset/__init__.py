"""Gaussian splat point cloud to compact GPU asset conversion."""

from .asset import SplatAsset, read_asset, write_asset
from .cameras import CameraInfo, load_json_cameras
from .clustering import ClusterResult, cluster_shs
from .creator import AssetCreator, Stage
from .errors import EmptyInputError, FormatRangeError, InputError, SplatAssetError
from .formats import (
    CHUNK_SIZE, FORMAT_VERSION, ColorFormat, DataQuality, SHFormat, VectorFormat,
    estimate_asset_size, formats_for_quality,
)
from .ply_reader import read_splat_count, read_splats
from .splats import SplatData

__version__ = '0.1.0'

__all__ = [
    'AssetCreator', 'Stage', 'SplatAsset', 'SplatData', 'CameraInfo', 'ClusterResult',
    'read_asset', 'write_asset', 'load_json_cameras', 'cluster_shs', 'read_splats', 'read_splat_count',
    'SplatAssetError', 'InputError', 'EmptyInputError', 'FormatRangeError',
    'CHUNK_SIZE', 'FORMAT_VERSION', 'VectorFormat', 'ColorFormat', 'SHFormat', 'DataQuality',
    'estimate_asset_size', 'formats_for_quality',
]
