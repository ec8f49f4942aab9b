import pytest

from splat_asset.errors import FormatRangeError
from splat_asset.formats import (
    ColorFormat, DataQuality, SHFormat, VectorFormat, calc_other_data_size, calc_sh_data_size,
    calc_texture_size, estimate_asset_size, formats_for_quality, is_lossless, parse_format, sh_count,
    vector_size,
)


def test_quality_presets():
    assert formats_for_quality(DataQuality.VERY_HIGH) == (
        VectorFormat.FLOAT32, VectorFormat.FLOAT32, ColorFormat.FLOAT32X4, SHFormat.FLOAT32)
    assert formats_for_quality(DataQuality.HIGH) == (
        VectorFormat.NORM16, VectorFormat.NORM16, ColorFormat.FLOAT16X4, SHFormat.NORM11)
    assert formats_for_quality(DataQuality.MEDIUM) == (
        VectorFormat.NORM11, VectorFormat.NORM11, ColorFormat.NORM8X4, SHFormat.NORM6)
    assert formats_for_quality(DataQuality.LOW) == (
        VectorFormat.NORM11, VectorFormat.NORM6, ColorFormat.NORM8X4, SHFormat.CLUSTER16K)
    assert formats_for_quality(DataQuality.VERY_LOW) == (
        VectorFormat.NORM11, VectorFormat.NORM6, ColorFormat.BC7, SHFormat.CLUSTER4K)


def test_custom_quality_has_no_preset():
    with pytest.raises(FormatRangeError):
        formats_for_quality(DataQuality.CUSTOM)


def test_only_very_high_is_lossless():
    lossless = [q for q in DataQuality if q != DataQuality.CUSTOM and is_lossless(*formats_for_quality(q))]
    assert lossless == [DataQuality.VERY_HIGH]


def test_texture_size():
    assert calc_texture_size(1) == (2048, 16)
    assert calc_texture_size(1000) == (2048, 16)
    assert calc_texture_size(2048 * 16) == (2048, 16)
    assert calc_texture_size(2048 * 16 + 1) == (2048, 32)


def test_vector_sizes():
    assert [vector_size(f) for f in VectorFormat] == [12, 6, 4, 2]
    with pytest.raises(FormatRangeError):
        vector_size(42)


def test_sh_counts():
    assert sh_count(SHFormat.CLUSTER64K, 10) == 65536
    assert sh_count(SHFormat.CLUSTER4K, 10) == 4096
    assert sh_count(SHFormat.NORM6, 10) == 10


def test_sh_size_falls_back_when_palette_too_large():
    assert calc_sh_data_size(1000, SHFormat.CLUSTER4K) == 96000
    assert calc_sh_data_size(5000, SHFormat.CLUSTER4K) == 4096 * 96
    assert calc_other_data_size(1000, VectorFormat.NORM6, with_sh_index=True) == 8000


def test_presets_get_smaller():
    n = 100_000
    totals = [estimate_asset_size(n, *formats_for_quality(q))['total']
              for q in DataQuality if q != DataQuality.CUSTOM]
    assert totals == sorted(totals, reverse=True)
    assert len(set(totals)) == len(totals)


def test_estimate_has_no_chunks_when_lossless():
    sizes = estimate_asset_size(1000, *formats_for_quality(DataQuality.VERY_HIGH))
    assert sizes['chunk'] == 0
    assert sizes['pos'] == 12000
    assert sizes['sh'] == 192000


def test_parse_format():
    assert parse_format(VectorFormat, 'norm11') == VectorFormat.NORM11
    assert parse_format(SHFormat, 'Cluster4k') == SHFormat.CLUSTER4K
    assert parse_format(DataQuality, 'very-high') == DataQuality.VERY_HIGH
    with pytest.raises(FormatRangeError):
        parse_format(ColorFormat, 'rgb565')
