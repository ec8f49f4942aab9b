"""
Spherical harmonics palette clustering.

The 15 SH bands of a splat are one 45-dim vector. Cluster* formats replace the
per-splat SH records with a palette of K centroids plus a 16-bit index per
splat. Centroids are trained with mini-batch k-means: each batch is assigned to
its nearest centroids and every touched centroid moves toward the batch mean
with a learning rate of 1 / (points seen so far).
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from sklearn.metrics import pairwise_distances_argmin

from .errors import FormatRangeError
from .formats import SH_BANDS, SHFormat, sh_count
from .splats import SplatData

SH_DIM = SH_BANDS * 3
BATCH_SIZE = 2048

# smaller palettes must resolve finer structure, so they get more passes
PASSES_OVER_DATA = {
    SHFormat.CLUSTER64K: 0.3,
    SHFormat.CLUSTER32K: 0.4,
    SHFormat.CLUSTER16K: 0.5,
    SHFormat.CLUSTER8K: 0.8,
    SHFormat.CLUSTER4K: 1.2,
}

# called with progress in [0, 1]; returning False stops training
ProgressCallback = Callable[[float], bool]


@dataclass
class ClusterResult:
    palette: np.ndarray  # [K, 15, 3] float16
    indices: np.ndarray  # [N] uint16
    interrupted: bool = False

    @property
    def count(self) -> int:
        return len(self.palette)


def gather_shs(data: SplatData) -> np.ndarray:
    """Flatten SH bands into [N, 45] vectors."""
    return data.sh.reshape(data.num, SH_DIM).astype(np.float32, copy=True)


def assign_clusters(points: np.ndarray, means: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid (euclidean) for every point."""
    return pairwise_distances_argmin(points, means, metric='euclidean')


def kmeans_minibatch(points: np.ndarray, k: int, batch_size: int, passes_over_data: float,
                     progress: Optional[ProgressCallback] = None,
                     seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray, bool]:
    """Mini-batch k-means over `points` [N, D].

    Returns (means [k, D], labels [N], interrupted). Labels are always computed
    against the final means, also when `progress` asked to stop early.
    """
    n = len(points)
    if not 0 < k <= n:
        raise ValueError(f"Cannot cluster {n} points into {k} clusters")

    rng = np.random.default_rng(seed)
    means = points[rng.choice(n, size=k, replace=False)].astype(np.float64)
    counts = np.zeros(k, dtype=np.int64)

    batch_size = min(batch_size, n)
    num_batches = max(1, int(np.ceil(passes_over_data * n / batch_size)))
    interrupted = False

    for b in range(num_batches):
        batch = points[rng.integers(0, n, size=batch_size)]
        labels = assign_clusters(batch, means)

        batch_counts = np.bincount(labels, minlength=k)
        sums = np.zeros_like(means)
        np.add.at(sums, labels, batch)

        hit = batch_counts > 0
        counts[hit] += batch_counts[hit]
        means[hit] += (sums[hit] - batch_counts[hit][:, None] * means[hit]) / counts[hit][:, None]

        if progress is not None and not progress((b + 1) / num_batches):
            interrupted = True
            break

    means = means.astype(np.float32)
    labels = assign_clusters(points, means)
    return means, labels, interrupted


def cluster_shs(data: SplatData, fmt: SHFormat, progress: Optional[ProgressCallback] = None,
                seed: Optional[int] = None) -> Optional[ClusterResult]:
    """Build the SH palette for a Cluster* format.

    Returns None when the palette would not be smaller than the splat count;
    the caller then stores SH per splat.
    """
    if fmt not in PASSES_OVER_DATA:
        raise FormatRangeError(f"SH format {SHFormat(fmt).name} is not a cluster format")

    k = sh_count(fmt, data.num)
    if k >= data.num:
        print(f"  Skipping SH clustering: {data.num} splats <= {k} palette entries")
        return None

    passes = PASSES_OVER_DATA[fmt]
    t0 = time.perf_counter()
    points = gather_shs(data)
    means, labels, interrupted = kmeans_minibatch(points, k, BATCH_SIZE, passes, progress, seed)

    palette = means.reshape(k, SH_BANDS, 3).astype(np.float16)
    t1 = time.perf_counter()
    print(f"  Clustered {data.num / 1_000_000:.2f}M SHs into {k // 1024}K "
          f"({passes:.1f}pass/{BATCH_SIZE}batch) in {t1 - t0:.0f}s")
    if interrupted:
        print("  Warning: SH clustering stopped early, palette is partially trained")

    return ClusterResult(palette=palette, indices=labels.astype(np.uint16), interrupted=interrupted)
