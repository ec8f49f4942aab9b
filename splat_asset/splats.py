"""In-memory splat arrays and the value transforms applied to them."""

from dataclasses import dataclass, fields
from typing import Tuple

import numpy as np

from .errors import InputError
from .formats import SH_BANDS

SH_C0 = 0.28209479177387814


@dataclass
class SplatData:
    """Struct-of-arrays splat cloud. The pipeline permutes and rewrites it in place.

    pos: [N, 3] position
    rot: [N, 4] rotation, smallest-three packed into [0, 1]
    scale: [N, 3] linear scale (positive)
    opacity: [N] in [0, 1]
    dc0: [N, 3] base color
    sh: [N, 15, 3] higher order SH coefficients
    """
    pos: np.ndarray
    rot: np.ndarray
    scale: np.ndarray
    opacity: np.ndarray
    dc0: np.ndarray
    sh: np.ndarray

    def __post_init__(self):
        n = len(self.pos)
        expected = {
            'pos': (n, 3),
            'rot': (n, 4),
            'scale': (n, 3),
            'opacity': (n,),
            'dc0': (n, 3),
            'sh': (n, SH_BANDS, 3),
        }
        for f in fields(self):
            arr = np.ascontiguousarray(getattr(self, f.name), dtype=np.float32)
            if arr.shape != expected[f.name]:
                raise InputError(f"Splat field '{f.name}' has shape {arr.shape}, expected {expected[f.name]}")
            setattr(self, f.name, arr)

    @property
    def num(self) -> int:
        return len(self.pos)

    def __len__(self) -> int:
        return self.num

    def permute(self, order: np.ndarray):
        """Reorder every attribute in place."""
        for f in fields(self):
            arr = getattr(self, f.name)
            arr[...] = arr[order]

    def subset(self, idx: np.ndarray) -> 'SplatData':
        return SplatData(**{f.name: getattr(self, f.name)[idx] for f in fields(self)})

    def copy(self) -> 'SplatData':
        return SplatData(**{f.name: getattr(self, f.name).copy() for f in fields(self)})

    @classmethod
    def empty(cls) -> 'SplatData':
        return cls(
            pos=np.zeros((0, 3)), rot=np.zeros((0, 4)), scale=np.zeros((0, 3)),
            opacity=np.zeros((0,)), dc0=np.zeros((0, 3)), sh=np.zeros((0, SH_BANDS, 3)),
        )


def calc_bounds(data: SplatData) -> Tuple[np.ndarray, np.ndarray]:
    """Per-axis min/max of all positions."""
    return data.pos.min(axis=0), data.pos.max(axis=0)


# =============================================================================
# Value transforms
# =============================================================================

def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -20, 20)))


def sh0_to_color(dc: np.ndarray) -> np.ndarray:
    return dc * SH_C0 + 0.5


def square_centered01(x: np.ndarray) -> np.ndarray:
    """Spread values away from 0.5: (x-0.5)^2 with sign kept, rescaled to [0, 1]."""
    x = x - 0.5
    x = x * np.abs(x)
    return x * 2 + 0.5


def inv_square_centered01(x: np.ndarray) -> np.ndarray:
    x = (x - 0.5) * 0.5
    x = np.sqrt(np.abs(x)) * np.sign(x)
    return x + 0.5


def normalize_swizzle_rotation(wxyz: np.ndarray) -> np.ndarray:
    """PLY stores (w, x, y, z); return unit quaternions as (x, y, z, w)."""
    q = np.asarray(wxyz, dtype=np.float32)
    length = np.linalg.norm(q, axis=1, keepdims=True)
    length[length == 0] = 1.0
    q = q / length
    return q[:, [1, 2, 3, 0]]


_SMALLEST_THREE_KEEP = np.array([[1, 2, 3], [0, 2, 3], [0, 1, 3], [0, 1, 2]])


def pack_smallest3_rotation(q: np.ndarray) -> np.ndarray:
    """Drop the largest component of each (x, y, z, w) quaternion.

    Result is (a, b, c, index / 3): the remaining three components, sign-flipped
    so the dropped one is positive, scaled into [0, 1]; the fourth channel says
    which component was dropped.
    """
    q = np.asarray(q, dtype=np.float32)
    index = np.argmax(np.abs(q), axis=1)
    rows = np.arange(len(q))
    largest = q[rows, index]
    three = q[rows[:, None], _SMALLEST_THREE_KEEP[index]]
    three = three * np.where(largest >= 0, 1.0, -1.0)[:, None].astype(np.float32)
    three = (three * np.sqrt(2.0)) * 0.5 + 0.5
    return np.concatenate([three, (index / 3.0)[:, None]], axis=1).astype(np.float32)


def unpack_smallest3_rotation(packed: np.ndarray) -> np.ndarray:
    """Inverse of pack_smallest3_rotation, returns (x, y, z, w)."""
    packed = np.asarray(packed, dtype=np.float32)
    index = np.rint(packed[:, 3] * 3.0).astype(np.int64)
    three = (packed[:, :3] * 2.0 - 1.0) / np.sqrt(2.0)
    largest = np.sqrt(np.maximum(0.0, 1.0 - np.sum(three * three, axis=1)))
    q = np.empty((len(packed), 4), dtype=np.float32)
    rows = np.arange(len(packed))
    q[rows[:, None], _SMALLEST_THREE_KEEP[index]] = three
    q[rows, index] = largest
    return q
