#!/usr/bin/env python3
"""
Convert a gaussian splatting PLY to a compact GPU splat asset.

The asset is written as a single zip bundle with meta.json and one .bytes file
per data buffer (chunks, positions, other, color, SH).

Dependencies:
    pip install numpy plyfile pillow scikit-learn
"""

import argparse
import os
import sys

from splat_asset import (
    AssetCreator, DataQuality, SplatAssetError, estimate_asset_size, read_splat_count, write_asset,
)
from splat_asset.formats import ColorFormat, SHFormat, VectorFormat, describe_formats, parse_format


def _choices(enum_cls):
    return [m.name.lower() for m in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Convert a gaussian splat PLY to a compressed splat asset bundle'
    )
    parser.add_argument('--ply', required=True,
                        help='Path to point_cloud.ply')
    parser.add_argument('--output', '-o', required=False,
                        help='Output bundle path (default: <name>.gsasset next to the PLY)')
    parser.add_argument('--name', default=None,
                        help='Asset name (default: PLY file name without extension)')
    parser.add_argument('--quality', default='medium', choices=_choices(DataQuality),
                        help='Quality preset (default: medium). Ignored when any --*-format is given.')
    parser.add_argument('--pos-format', choices=_choices(VectorFormat),
                        help='Position format (implies custom quality)')
    parser.add_argument('--scale-format', choices=_choices(VectorFormat),
                        help='Scale format (implies custom quality)')
    parser.add_argument('--color-format', choices=_choices(ColorFormat),
                        help='Color format (implies custom quality)')
    parser.add_argument('--sh-format', choices=_choices(SHFormat),
                        help='SH format (implies custom quality). Cluster formats are slow on large inputs.')
    parser.add_argument('--import-cameras', action='store_true',
                        help='Import cameras.json found next to the PLY or in a parent folder')
    parser.add_argument('--max_splats', type=int, default=0,
                        help='If >0, randomly sample this many splats (for debugging)')
    parser.add_argument('--seed', type=int, default=0,
                        help='Random seed for --max_splats sampling and SH clustering')
    parser.add_argument('--preview', action='store_true',
                        help='Store a lossless WebP preview of the color texture in the bundle')
    parser.add_argument('--dry-run', action='store_true',
                        help='Only print the estimated size of each buffer')
    return parser


def configure_creator(args) -> AssetCreator:
    creator = AssetCreator(make_preview=args.preview, seed=args.seed)
    custom = [args.pos_format, args.scale_format, args.color_format, args.sh_format]
    if any(f is not None for f in custom):
        # start from the preset and override what was given
        creator.set_quality_level(parse_format(DataQuality, args.quality))
        if creator.quality == DataQuality.CUSTOM:
            creator.set_quality_level(DataQuality.MEDIUM)
        creator.set_formats(
            parse_format(VectorFormat, args.pos_format) if args.pos_format else creator.pos_format,
            parse_format(VectorFormat, args.scale_format) if args.scale_format else creator.scale_format,
            parse_format(ColorFormat, args.color_format) if args.color_format else creator.color_format,
            parse_format(SHFormat, args.sh_format) if args.sh_format else creator.sh_format,
        )
    else:
        quality = parse_format(DataQuality, args.quality)
        if quality == DataQuality.CUSTOM:
            raise SplatAssetError("Custom quality needs --pos-format/--scale-format/--color-format/--sh-format")
        creator.set_quality_level(quality)
    return creator


def print_size_estimate(creator: AssetCreator, splat_count: int, file_size: int):
    sizes = estimate_asset_size(splat_count, creator.pos_format, creator.scale_format,
                                creator.color_format, creator.sh_format)
    print(f"\nInput: {splat_count:,} splats, {file_size / 1024 / 1024:.2f} MB")
    print(f"Formats: {describe_formats(creator.pos_format, creator.scale_format, creator.color_format, creator.sh_format)}")
    for key in ('chunk', 'pos', 'other', 'color', 'sh'):
        print(f"  {key:>6}: {sizes[key] / 1024 / 1024:8.2f} MB")
    total = sizes['total']
    print(f"  {'total':>6}: {total / 1024 / 1024:8.2f} MB - {file_size / total:.2f}x smaller")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        creator = configure_creator(args)
        splat_count = read_splat_count(args.ply)
        if args.max_splats > 0:
            splat_count = min(splat_count, args.max_splats)
        print_size_estimate(creator, splat_count, os.path.getsize(args.ply))
        if args.dry_run:
            return 0

        name = args.name or os.path.splitext(os.path.basename(args.ply))[0]
        output_path = args.output or os.path.join(os.path.dirname(args.ply), name + '.gsasset')

        max_splats = args.max_splats if args.max_splats > 0 else None
        asset = creator.create_asset_from_file(name, args.ply, import_cameras=args.import_cameras,
                                               max_splats=max_splats)
        write_asset(output_path, asset)
    except SplatAssetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Splats: {asset.splat_count}")
    print(f"Hash: {asset.data_hash}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
