#!/usr/bin/env python3
# ABOUTME: Command-line interface for the spz codec
# ABOUTME: Converts, inspects, dumps and compares gaussian splat files

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from .errors import SpzError
from .gaussian import Gaussian
from .pipeline import Converter, ConvertConfig, load_gaussians
from .spz_io import read_spz_info
from .utils.logging_utils import setup_logging


def _format_vector(values) -> str:
    return '[' + ', '.join('%.6g' % v for v in values) + ']'


def format_gaussian(gaussian: Gaussian) -> str:
    """Render one gaussian as a single debug line."""
    sh = gaussian.spherical_harmonics
    return (f"position={_format_vector(gaussian.position)} "
            f"rotation={_format_vector(gaussian.rotation)} "
            f"scales={_format_vector(gaussian.scales)} "
            f"color={_format_vector(gaussian.color)} "
            f"alpha={gaussian.alpha:.6g} "
            f"sh_order={int(sh.order)} "
            f"sh={_format_vector(sh.scalars())}")


def cmd_convert(args) -> None:
    config = ConvertConfig(
        input_file=args.input,
        output_file=args.output,
        compress=not args.uncompressed,
        omit_spherical_harmonics=args.omit_spherical_harmonics,
        use_hilbert_sort=args.hilbert_sort,
        limit=args.limit,
    )
    output = Converter(config).run()
    logging.getLogger('spz_codec').info("Wrote %s", output)


def cmd_info(args) -> None:
    info = read_spz_info(args.input)
    header = info['header']
    print(f"File:            {args.input}")
    print(f"Magic:           0x{header.magic:08X}")
    print(f"Version:         {header.version}")
    print(f"Points:          {header.num_points}")
    print(f"SH degree:       {header.sh_degree}")
    print(f"Fractional bits: {header.fractional_bits}")
    print(f"Flags:           0x{header.flags:02X}")
    print(f"SH present:      {info['spherical_harmonics_present']}")
    print(f"Expected size:   {info['expected_size']} bytes")
    if info['center'] is not None:
        print(f"Bounding box:    {_format_vector(info['bbox_min'])} .. {_format_vector(info['bbox_max'])}")
        print(f"Center:          {_format_vector(info['center'])}")


def cmd_dump(args) -> None:
    gaussians = load_gaussians(args.input)
    if args.limit is not None:
        gaussians = gaussians[:args.limit]

    if args.format == 'json':
        json.dump([g.to_dict() for g in gaussians], sys.stdout, indent=2)
        sys.stdout.write('\n')
    else:
        for i, gaussian in enumerate(gaussians):
            print(f"{i}: {format_gaussian(gaussian)}")


def diff_gaussians(old: Sequence[Gaussian], new: Sequence[Gaussian],
                   limit: Optional[int] = None) -> List[str]:
    """
    Compare two gaussian lists record by record.

    Returns:
        Report lines; empty when the lists are identical
    """
    if len(old) != len(new):
        return [f"Gaussian count differs: {len(old)} != {len(new)}"]

    lines = []
    differing = 0
    for i, (a, b) in enumerate(zip(old, new)):
        if a == b:
            continue
        differing += 1
        if limit is None or differing <= limit:
            lines.append(f"{i}:")
            lines.append(f"  - {format_gaussian(a)}")
            lines.append(f"  + {format_gaussian(b)}")
    if differing:
        lines.append(f"{differing} of {len(old)} gaussians differ")
    return lines


def cmd_diff(args) -> None:
    lines = diff_gaussians(load_gaussians(args.old), load_gaussians(args.new), args.limit)
    if not lines:
        print("Files are identical")
    for line in lines:
        print(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='spz',
        description='Packed gaussian splat (.spz) codec - convert and inspect splat files',
        epilog="""
Examples:
  spz convert scene.ply scene.spz
  spz convert scene.ply scene.spz --hilbert-sort --omit-spherical-harmonics
  spz convert scene.spz scene.ply
  spz info scene.spz
  spz dump scene.spz --limit 10 --format json
  spz diff before.spz after.spz
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--verbose', action='store_true',
                       help='Enable verbose logging (DEBUG level)')
    parser.add_argument('--quiet', action='store_true',
                       help='Quiet mode - only show warnings and errors')

    subparsers = parser.add_subparsers(dest='command', required=True)

    convert = subparsers.add_parser('convert', help='Convert between .ply, .ply.gz and .spz')
    convert.add_argument('input', type=str, help='Input file (.ply, .ply.gz, .spz)')
    convert.add_argument('output', type=str, help='Output file (.ply, .ply.gz, .spz)')
    convert.add_argument('--uncompressed', action='store_true',
                        help='Write the raw spz payload without gzip framing')
    convert.add_argument('--omit-spherical-harmonics', action='store_true',
                        help='Drop the spherical harmonics block from spz output')
    convert.add_argument('--hilbert-sort', action='store_true',
                        help='Reorder gaussians along a 3D Hilbert curve before saving')
    convert.add_argument('--limit', type=int, default=None,
                        help='Keep only the first N gaussians')
    convert.set_defaults(func=cmd_convert)

    info = subparsers.add_parser('info', help='Show spz header and bounding box')
    info.add_argument('input', type=str, help='Input .spz file')
    info.set_defaults(func=cmd_info)

    dump = subparsers.add_parser('dump', help='Print gaussians')
    dump.add_argument('input', type=str, help='Input file (.ply, .ply.gz, .spz)')
    dump.add_argument('--limit', type=int, default=None,
                     help='Print only the first N gaussians')
    dump.add_argument('--format', type=str, default='debug', choices=['debug', 'json'],
                     help='Output format. Default: debug')
    dump.set_defaults(func=cmd_dump)

    diff = subparsers.add_parser('diff', help='Compare two files record by record')
    diff.add_argument('old', type=str, help='First file')
    diff.add_argument('new', type=str, help='Second file')
    diff.add_argument('--limit', type=int, default=None,
                     help='Show at most N differing records')
    diff.set_defaults(func=cmd_diff)

    return parser


def main(argv: Optional[Sequence[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logger = setup_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        args.func(args)
    except FileNotFoundError as e:
        logger.error("File not found: %s", e)
        sys.exit(1)
    except (SpzError, ValueError) as e:
        logger.error("Invalid input: %s", e)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
