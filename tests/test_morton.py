import numpy as np

from splat_asset.morton import (
    morton_codes, morton_encode_3d, reorder_morton, sort_morton_order, spread_bits,
    splat_index_to_texture_index, texture_index_to_splat_index,
)
from splat_asset.splats import SplatData, calc_bounds


def _splats_at(pos):
    n = len(pos)
    return SplatData(
        pos=pos, rot=np.zeros((n, 4)), scale=np.ones((n, 3)),
        opacity=np.arange(n, dtype=np.float32), dc0=np.zeros((n, 3)), sh=np.zeros((n, 15, 3)),
    )


def test_spread_bits():
    assert spread_bits(np.array([1, 2, 3])).tolist() == [1, 8, 9]
    assert int(spread_bits(np.array([0x1fffff]))[0]) == 0x1249249249249249


def test_morton_encode_axis_order():
    codes = morton_encode_3d(np.array([1, 0, 0]), np.array([0, 1, 0]), np.array([0, 0, 1]))
    assert codes.tolist() == [1, 2, 4]


def test_reorder_sorts_codes_and_permutes_all_attributes(splat_factory):
    data = splat_factory(3000, seed=1)
    original = data.copy()
    bmin, bmax = calc_bounds(data)

    order = reorder_morton(data, bmin, bmax)

    assert np.array_equal(np.sort(order), np.arange(3000))
    codes = morton_codes(data.pos, bmin, bmax)
    assert np.all(codes[1:] >= codes[:-1])
    np.testing.assert_array_equal(data.pos, original.pos[order])
    np.testing.assert_array_equal(data.rot, original.rot[order])
    np.testing.assert_array_equal(data.sh, original.sh[order])
    np.testing.assert_array_equal(data.opacity, original.opacity[order])


def test_equal_codes_keep_input_order():
    pos = np.array([[1, 1, 1], [0, 0, 0], [1, 1, 1], [0, 0, 0], [1, 1, 1]], dtype=np.float32)
    data = _splats_at(pos)
    order = reorder_morton(data, *calc_bounds(data))
    assert order.tolist() == [1, 3, 0, 2, 4]
    assert data.opacity.tolist() == [1, 3, 0, 2, 4]


def test_flat_axis_is_handled():
    rng = np.random.default_rng(0)
    pos = rng.uniform(0, 1, size=(100, 3)).astype(np.float32)
    pos[:, 2] = 5.0
    data = _splats_at(pos)
    order = sort_morton_order(data)
    assert np.array_equal(np.sort(order), np.arange(100))


def test_texture_addresses_are_unique():
    idx = np.arange(2048 * 32)
    tex = splat_index_to_texture_index(idx)
    assert len(np.unique(tex)) == len(idx)
    assert tex.min() == 0 and tex.max() == len(idx) - 1


def test_first_tile_is_16x16_z_order():
    tex = splat_index_to_texture_index(np.arange(256))
    x, y = tex % 2048, tex // 2048
    assert x.max() == 15 and y.max() == 15
    # 0: (0,0), 1: (1,0), 2: (0,1), 3: (1,1)
    assert tex[:4].tolist() == [0, 1, 2048, 2049]
    assert int(splat_index_to_texture_index(np.array([256]))[0]) == 16
    # second row of tiles starts after 128 tiles
    assert int(splat_index_to_texture_index(np.array([128 * 256]))[0]) == 16 * 2048


def test_texture_index_inverse():
    idx = np.arange(2048 * 48)
    np.testing.assert_array_equal(texture_index_to_splat_index(splat_index_to_texture_index(idx)), idx)
