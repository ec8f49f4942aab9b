import numpy as np
import pytest

from splat_asset.splats import SplatData, normalize_swizzle_rotation, pack_smallest3_rotation


def make_splats(n: int, seed: int = 0, extent: float = 10.0) -> SplatData:
    """Random splats with positions uniform in [0, extent]^3."""
    rng = np.random.default_rng(seed)
    quats = rng.normal(size=(n, 4))
    return SplatData(
        pos=rng.uniform(0.0, extent, size=(n, 3)),
        rot=pack_smallest3_rotation(normalize_swizzle_rotation(quats)) if n else np.zeros((0, 4)),
        scale=rng.uniform(0.001, 0.5, size=(n, 3)),
        opacity=rng.uniform(0.0, 1.0, size=n),
        dc0=rng.uniform(0.0, 1.0, size=(n, 3)),
        sh=rng.normal(0.0, 0.2, size=(n, 15, 3)),
    )


@pytest.fixture
def splat_factory():
    return make_splats
