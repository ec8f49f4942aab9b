import numpy as np
import pytest

from splat_asset.clustering import cluster_shs, kmeans_minibatch
from splat_asset.errors import FormatRangeError
from splat_asset.formats import SHFormat


def _blobs(n_per=200, dim=45, seed=0):
    rng = np.random.default_rng(seed)
    centers = np.eye(3, dim) * 10.0
    return np.concatenate([c + rng.normal(0, 0.1, size=(n_per, dim)) for c in centers]).astype(np.float32)


def test_kmeans_minibatch_contract():
    points = _blobs()
    seen = []

    def progress(p):
        seen.append(p)
        return True

    means, labels, interrupted = kmeans_minibatch(points, 8, 64, 2.0, progress, seed=0)
    assert means.shape == (8, 45)
    assert labels.shape == (len(points),)
    assert labels.min() >= 0 and labels.max() < 8
    assert not interrupted
    assert seen[-1] == pytest.approx(1.0)
    assert all(a < b for a, b in zip(seen, seen[1:]))


def test_kmeans_labels_are_nearest_means():
    points = _blobs(seed=1)
    means, labels, _ = kmeans_minibatch(points, 6, 64, 2.0, seed=1)
    d = ((points[:, None, :] - means[None, :, :]) ** 2).sum(axis=2)
    chosen = d[np.arange(len(points)), labels]
    np.testing.assert_allclose(chosen, d.min(axis=1), rtol=1e-4, atol=1e-4)


def test_kmeans_stops_when_progress_returns_false():
    points = _blobs(seed=2)
    calls = []

    def progress(p):
        calls.append(p)
        return False

    means, labels, interrupted = kmeans_minibatch(points, 8, 16, 10.0, progress, seed=0)
    assert interrupted
    assert len(calls) == 1
    assert labels.shape == (len(points),)
    assert labels.max() < 8


def test_kmeans_rejects_bad_cluster_count():
    with pytest.raises(ValueError):
        kmeans_minibatch(_blobs(n_per=2), 100, 16, 1.0)


def test_cluster_shs_palette(splat_factory):
    data = splat_factory(5000, seed=1)
    result = cluster_shs(data, SHFormat.CLUSTER4K, seed=0)
    assert result.count == 4096
    assert result.palette.shape == (4096, 15, 3)
    assert result.palette.dtype == np.float16
    assert result.indices.shape == (5000,)
    assert result.indices.dtype == np.uint16
    assert result.indices.max() < 4096
    assert not result.interrupted


def test_cluster_shs_skipped_for_small_inputs(splat_factory):
    assert cluster_shs(splat_factory(1000), SHFormat.CLUSTER4K) is None
    assert cluster_shs(splat_factory(4096), SHFormat.CLUSTER4K) is None


def test_cluster_shs_needs_cluster_format(splat_factory):
    with pytest.raises(FormatRangeError):
        cluster_shs(splat_factory(10), SHFormat.NORM6)
