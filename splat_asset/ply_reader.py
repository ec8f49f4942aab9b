"""
Gaussian splat PLY loading.

Reads the usual 3DGS vertex properties and converts them into linear splat
values: exp'd scales, sigmoid'd opacity, SH DC as a color, SH rest grouped
into 15 RGB bands, and rotations packed as smallest-three in [0, 1].
"""

import os
from typing import Dict, Optional

import numpy as np
from plyfile import PlyData

from .errors import EmptyInputError, InputError
from .formats import MAX_SPLATS, SH_BANDS
from .splats import (
    SplatData, normalize_swizzle_rotation, pack_smallest3_rotation, sh0_to_color, sigmoid,
)

SUPPORTED_EXTENSIONS = ('.ply',)

BASE_PROPERTIES = [
    'x', 'y', 'z',
    'scale_0', 'scale_1', 'scale_2',
    'rot_0', 'rot_1', 'rot_2', 'rot_3',
    'f_dc_0', 'f_dc_1', 'f_dc_2',
    'opacity',
]


def _check_input_path(path: str):
    if not os.path.isfile(path):
        raise InputError(f"Did not find {path} file", path=path)
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise InputError(f"Unsupported point cloud file type '{ext}' ({path})", path=path)


def read_header_lines(path: str):
    """Header lines of a PLY file, up to and including 'end_header'."""
    header_lines = []
    with open(path, 'rb') as f:
        while True:
            line = f.readline()
            if not line:
                break
            line_str = line.decode('latin-1').strip()
            header_lines.append(line_str)
            if line_str == 'end_header':
                break
    return header_lines


def read_splat_count(path: str) -> int:
    """Vertex count from the PLY header, without reading the payload."""
    _check_input_path(path)
    header = read_header_lines(path)
    if not header or header[0] != 'ply':
        raise InputError(f"Not a PLY file: {path}", path=path)
    for line in header:
        parts = line.split()
        if len(parts) == 3 and parts[0] == 'element' and parts[1] == 'vertex':
            return int(parts[2])
    raise InputError(f"PLY file has no vertex element: {path}", path=path)


def _sh_rest_bands(fields: Dict[str, np.ndarray], names, num: int) -> np.ndarray:
    """Regroup planar f_rest_* (all R, then all G, then all B) into [N, 15, 3].

    Files with a lower SH degree fill the remaining bands with zeros.
    """
    rest_names = [n for n in names if n.startswith('f_rest_')]
    rest_count = len(rest_names) // 3
    sh = np.zeros((num, SH_BANDS, 3), dtype=np.float32)
    if rest_count == 0:
        return sh
    if len(rest_names) % 3 != 0:
        print(f"Warning: f_rest_* count ({len(rest_names)}) is not divisible by 3, ignoring SH")
        return sh
    for i in range(min(rest_count, SH_BANDS)):
        for c in range(3):
            sh[:, i, c] = fields[f'f_rest_{i + c * rest_count}']
    return sh


def read_splats(path: str, max_splats: Optional[int] = None, seed: int = 0) -> SplatData:
    """Load a gaussian splat PLY file.

    Raises InputError when the file is missing or unreadable, EmptyInputError
    when it holds no splats.
    """
    _check_input_path(path)
    print(f"Loading PLY: {path}")
    try:
        ply = PlyData.read(path)
    except Exception as e:
        raise InputError(f"Error occurred while reading file {path}: {e}", path=path) from e

    if len(ply.elements) == 0:
        raise InputError(f"PLY file has no elements: {path}", path=path)
    v = ply.elements[0]
    names = v.data.dtype.names or ()

    missing = [n for n in BASE_PROPERTIES if n not in names]
    if missing:
        raise InputError(f"PLY missing properties: {missing}", path=path)

    num_full = v.count
    if num_full == 0:
        raise EmptyInputError(f"No splats found in input file {path}", path=path)

    def f32(name: str) -> np.ndarray:
        return np.asarray(v.data[name], dtype=np.float32)

    fields = {n: f32(n) for n in names if n in BASE_PROPERTIES or n.startswith('f_rest_')}

    pos = np.stack([fields['x'], fields['y'], fields['z']], axis=1)
    rot = np.stack([fields['rot_0'], fields['rot_1'], fields['rot_2'], fields['rot_3']], axis=1)
    scale = np.stack([fields['scale_0'], fields['scale_1'], fields['scale_2']], axis=1)
    dc = np.stack([fields['f_dc_0'], fields['f_dc_1'], fields['f_dc_2']], axis=1)

    data = SplatData(
        pos=pos,
        rot=pack_smallest3_rotation(normalize_swizzle_rotation(rot)),
        scale=np.exp(scale),
        opacity=sigmoid(fields['opacity']),
        dc0=sh0_to_color(dc),
        sh=_sh_rest_bands(fields, names, num_full),
    )

    # Subsample if requested
    if max_splats is not None and 0 < max_splats < num_full:
        print(f"Subsampling {max_splats} splats from {num_full}")
        rng = np.random.default_rng(seed)
        idx = rng.choice(num_full, size=max_splats, replace=False)
        idx.sort()
        data = data.subset(idx)

    if data.num > MAX_SPLATS:
        print(f"Warning: {data.num} splats is above the renderer limit of {MAX_SPLATS}")

    print(f"Loaded {data.num} splats")
    return data
