"""
The finished splat asset and its on-disk bundle.

A bundle is a zip file holding meta.json, one .bytes file per data buffer and
optionally a WebP preview of the color texture.
"""

import io
import json
import os
import zipfile
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
from PIL import Image

from .cameras import CameraInfo
from .errors import InputError
from .formats import ColorFormat, SHFormat, VectorFormat

BUFFER_SUFFIXES = {
    'chunk': '_chk.bytes',
    'pos': '_pos.bytes',
    'other': '_oth.bytes',
    'color': '_col.bytes',
    'sh': '_shs.bytes',
}
PREVIEW_FILE = 'preview.webp'


@dataclass(frozen=True)
class SplatAsset:
    name: str
    format_version: int
    splat_count: int
    pos_format: VectorFormat
    scale_format: VectorFormat
    color_format: ColorFormat
    sh_format: SHFormat
    bounds_min: tuple
    bounds_max: tuple
    data_hash: str
    pos_data: bytes
    other_data: bytes
    color_data: bytes
    sh_data: bytes
    # absent when all formats are lossless
    chunk_data: Optional[bytes] = None
    cameras: Optional[List[CameraInfo]] = None
    preview: Optional[bytes] = None

    @property
    def buffers(self) -> Dict[str, Optional[bytes]]:
        return {
            'chunk': self.chunk_data,
            'pos': self.pos_data,
            'other': self.other_data,
            'color': self.color_data,
            'sh': self.sh_data,
        }

    @property
    def total_size(self) -> int:
        return sum(len(b) for b in self.buffers.values() if b is not None)

    def to_meta(self) -> dict:
        meta = {
            'version': self.format_version,
            'name': self.name,
            'count': self.splat_count,
            'formats': {
                'pos': self.pos_format.name.lower(),
                'scale': self.scale_format.name.lower(),
                'color': self.color_format.name.lower(),
                'sh': self.sh_format.name.lower(),
            },
            'bounds': {
                'min': [float(v) for v in self.bounds_min],
                'max': [float(v) for v in self.bounds_max],
            },
            'hash': self.data_hash,
            'files': {k: self.name + BUFFER_SUFFIXES[k] for k, b in self.buffers.items() if b is not None},
        }
        if self.cameras:
            meta['cameras'] = [c.to_dict() for c in self.cameras]
        if self.preview is not None:
            meta['preview'] = PREVIEW_FILE
        return meta


def encode_webp_lossless(rgba: np.ndarray, width: int, height: int) -> bytes:
    """Encode RGBA data to lossless WebP."""
    img = Image.frombytes('RGBA', (width, height), rgba.tobytes())
    buf = io.BytesIO()
    img.save(buf, format='WEBP', lossless=True)
    return buf.getvalue()


def encode_color_preview(image: np.ndarray) -> bytes:
    """8-bit lossless WebP of an RGBA32F color texture [H, W, 4]."""
    height, width = image.shape[:2]
    rgba = (np.clip(image, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    return encode_webp_lossless(rgba, width, height)


def write_asset(output_path: str, asset: SplatAsset) -> str:
    """Write the asset bundle. Returns the path actually written."""
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    meta = asset.to_meta()
    print(f"\nWriting {output_path}...")
    with zipfile.ZipFile(output_path, 'w', zipfile.ZIP_DEFLATED) as zf:
        for key, filename in meta['files'].items():
            zf.writestr(filename, asset.buffers[key])
        if asset.preview is not None:
            zf.writestr(PREVIEW_FILE, asset.preview)
        zf.writestr('meta.json', json.dumps(meta, indent=2))

    file_size = os.path.getsize(output_path)
    print(f"Output: {output_path}")
    print(f"Size: {file_size / 1024 / 1024:.2f} MB (uncompressed data {asset.total_size / 1024 / 1024:.2f} MB)")
    return output_path


def read_asset(path: str) -> SplatAsset:
    if not zipfile.is_zipfile(path):
        raise InputError(f"Not a splat asset bundle: {path}", path=path)

    with zipfile.ZipFile(path, 'r') as zf:
        try:
            meta = json.loads(zf.read('meta.json'))
        except KeyError as e:
            raise InputError(f"Asset bundle has no meta.json: {path}", path=path) from e
        files = meta['files']
        buffers = {k: zf.read(files[k]) if k in files else None for k in BUFFER_SUFFIXES}
        preview = zf.read(meta['preview']) if 'preview' in meta else None

    formats = meta['formats']
    cameras = [CameraInfo.from_dict(c) for c in meta['cameras']] if 'cameras' in meta else None
    return SplatAsset(
        name=meta['name'],
        format_version=meta['version'],
        splat_count=meta['count'],
        pos_format=VectorFormat[formats['pos'].upper()],
        scale_format=VectorFormat[formats['scale'].upper()],
        color_format=ColorFormat[formats['color'].upper()],
        sh_format=SHFormat[formats['sh'].upper()],
        bounds_min=tuple(meta['bounds']['min']),
        bounds_max=tuple(meta['bounds']['max']),
        data_hash=meta['hash'],
        pos_data=buffers['pos'],
        other_data=buffers['other'],
        color_data=buffers['color'],
        sh_data=buffers['sh'],
        chunk_data=buffers['chunk'],
        cameras=cameras,
        preview=preview,
    )
