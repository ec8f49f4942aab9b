import numpy as np

from splat_asset.packing import (
    decode_norm11, decode_norm16, decode_norm565, decode_norm655, decode_quat_norm10,
    encode_norm11, encode_norm16, encode_norm565, encode_norm655, encode_quat_norm10,
    pack_half2, unpack_half2,
)

TOL = 1e-6


def _random_unit(n=5000, d=3, seed=0):
    return np.random.default_rng(seed).uniform(0.0, 1.0, size=(n, d)).astype(np.float32)


def test_norm11_bit_layout():
    v = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=np.float32)
    assert encode_norm11(v).tolist() == [2047, 1023 << 11, 2047 << 21]


def test_norm11_error_within_one_step():
    v = _random_unit()
    err = np.abs(decode_norm11(encode_norm11(v)) - v)
    assert err[:, 0].max() <= 1 / 2047 + TOL
    assert err[:, 1].max() <= 1 / 1023 + TOL
    assert err[:, 2].max() <= 1 / 2047 + TOL


def test_norm16_error_within_one_step():
    v = _random_unit(seed=1)
    enc = encode_norm16(v)
    assert enc.max() < (1 << 48)
    err = np.abs(decode_norm16(enc) - v)
    assert err.max() <= 1 / 65535 + TOL


def test_norm655_and_norm565_error():
    v = _random_unit(seed=2)
    err = np.abs(decode_norm655(encode_norm655(v)) - v)
    assert err[:, 0].max() <= 1 / 63 + TOL
    assert err[:, 1:].max() <= 1 / 31 + TOL

    err = np.abs(decode_norm565(encode_norm565(v)) - v)
    assert err[:, [0, 2]].max() <= 1 / 31 + TOL
    assert err[:, 1].max() <= 1 / 63 + TOL


def test_norm565_bit_layout():
    v = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=np.float32)
    assert encode_norm565(v).tolist() == [31, 63 << 5, 31 << 11]


def test_values_are_saturated():
    v = np.array([[2.0, -1.0, 0.0]], dtype=np.float32)
    assert encode_norm11(v).tolist() == [2047]
    assert encode_norm655(v).tolist() == [63]


def test_quat_norm10():
    q = _random_unit(d=4, seed=3)
    q[:, 3] = np.random.default_rng(4).integers(0, 4, size=len(q)) / 3.0
    dec = decode_quat_norm10(encode_quat_norm10(q))
    assert np.abs(dec[:, :3] - q[:, :3]).max() <= 1 / 1023 + TOL
    np.testing.assert_allclose(dec[:, 3], q[:, 3], atol=TOL)


def test_quat_norm10_index_bits():
    enc = encode_quat_norm10(np.array([[0, 0, 0, 1.0]], dtype=np.float32))
    assert enc.tolist() == [3 << 30]


def test_half2_round_trip():
    packed = pack_half2(np.array([0.25, -2.0]), np.array([0.75, 1024.0]))
    assert packed.dtype == np.uint32
    lo, hi = unpack_half2(packed)
    assert lo.tolist() == [0.25, -2.0]
    assert hi.tolist() == [0.75, 1024.0]
    assert int(packed[0]) & 0xFFFF == int(np.float16(0.25).view(np.uint16))
