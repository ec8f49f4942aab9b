"""Camera list import from a cameras.json found next to (or above) the input file."""

import json
import os
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .errors import InputError

CAMERAS_JSON = 'cameras.json'
DEFAULT_FOV = 25.0


@dataclass
class CameraInfo:
    pos: np.ndarray
    axis_x: np.ndarray
    axis_y: np.ndarray
    axis_z: np.ndarray
    fov: float = DEFAULT_FOV

    def to_dict(self) -> dict:
        return {
            'pos': [float(v) for v in self.pos],
            'axisX': [float(v) for v in self.axis_x],
            'axisY': [float(v) for v in self.axis_y],
            'axisZ': [float(v) for v in self.axis_z],
            'fov': float(self.fov),
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'CameraInfo':
        return cls(
            pos=np.asarray(d['pos'], dtype=np.float32),
            axis_x=np.asarray(d['axisX'], dtype=np.float32),
            axis_y=np.asarray(d['axisY'], dtype=np.float32),
            axis_z=np.asarray(d['axisZ'], dtype=np.float32),
            fov=float(d.get('fov', DEFAULT_FOV)),
        )


def find_cameras_file(input_path: str, file_name: str = CAMERAS_JSON) -> Optional[str]:
    """Look for `file_name` in the input's directory and each parent directory."""
    cur = os.path.abspath(input_path)
    while True:
        parent = os.path.dirname(cur)
        if not os.path.isdir(parent):
            return None
        candidate = os.path.join(parent, file_name)
        if os.path.isfile(candidate):
            return candidate
        if parent == cur:
            return None
        cur = parent


def camera_from_json(entry: dict) -> CameraInfo:
    pos = np.asarray(entry['position'], dtype=np.float32)
    # stored matrix is a view rotation: camera axes are its columns
    rot = np.asarray(entry['rotation'], dtype=np.float32)
    return CameraInfo(
        pos=pos,
        axis_x=rot[:, 0].copy(),
        axis_y=-rot[:, 1],
        axis_z=-rot[:, 2],
    )


def load_json_cameras(input_path: str, file_name: str = CAMERAS_JSON,
                      do_import: bool = True) -> Optional[List[CameraInfo]]:
    """Cameras for an input file, or None if disabled / not found / empty."""
    if not do_import:
        return None

    cameras_path = find_cameras_file(input_path, file_name)
    if cameras_path is None:
        return None

    try:
        with open(cameras_path, 'r', encoding='utf-8') as f:
            entries = json.load(f)
        if not entries:
            return None
        cameras = [camera_from_json(e) for e in entries]
    except (ValueError, KeyError, TypeError, IndexError) as e:
        raise InputError(f"Could not parse cameras file {cameras_path}: {e}", path=cameras_path) from e

    print(f"Loaded {len(cameras)} cameras from {cameras_path}")
    return cameras
