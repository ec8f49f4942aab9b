import io
import json
import zipfile

import numpy as np
import pytest
from PIL import Image

from splat_asset.asset import read_asset, write_asset
from splat_asset.cameras import CameraInfo
from splat_asset.creator import AssetCreator
from splat_asset.errors import InputError
from splat_asset.formats import DataQuality


def _camera():
    return CameraInfo(pos=np.zeros(3), axis_x=np.array([1.0, 0, 0]),
                      axis_y=np.array([0, 1.0, 0]), axis_z=np.array([0, 0, 1.0]))


def test_bundle_round_trip(tmp_path, splat_factory):
    creator = AssetCreator(DataQuality.MEDIUM, make_preview=True)
    asset = creator.create_asset('garden', splat_factory(600, seed=5), cameras=[_camera()])
    path = str(tmp_path / 'out' / 'garden.gsasset')

    write_asset(path, asset)
    loaded = read_asset(path)

    assert loaded.buffers == asset.buffers
    assert loaded.data_hash == asset.data_hash
    assert loaded.splat_count == 600
    assert (loaded.pos_format, loaded.scale_format, loaded.color_format, loaded.sh_format) == (
        asset.pos_format, asset.scale_format, asset.color_format, asset.sh_format)
    assert loaded.bounds_min == pytest.approx(asset.bounds_min)
    assert len(loaded.cameras) == 1
    assert Image.open(io.BytesIO(loaded.preview)).size == (2048, 16)


def test_bundle_contents(tmp_path, splat_factory):
    asset = AssetCreator(DataQuality.VERY_HIGH).create_asset('raw', splat_factory(10))
    path = str(tmp_path / 'raw.gsasset')
    write_asset(path, asset)

    with zipfile.ZipFile(path) as zf:
        names = set(zf.namelist())
        meta = json.loads(zf.read('meta.json'))
    assert names == {'meta.json', 'raw_pos.bytes', 'raw_oth.bytes', 'raw_col.bytes', 'raw_shs.bytes'}
    assert meta['formats'] == {'pos': 'float32', 'scale': 'float32', 'color': 'float32x4', 'sh': 'float32'}
    assert 'chunk' not in meta['files']
    assert 'cameras' not in meta


def test_read_rejects_non_bundle(tmp_path):
    path = tmp_path / 'plain.txt'
    path.write_text('hello')
    with pytest.raises(InputError):
        read_asset(str(path))


def test_read_rejects_bundle_without_meta(tmp_path):
    path = tmp_path / 'nometa.gsasset'
    with zipfile.ZipFile(path, 'w') as zf:
        zf.writestr('x_pos.bytes', b'\0' * 8)
    with pytest.raises(InputError):
        read_asset(str(path))
