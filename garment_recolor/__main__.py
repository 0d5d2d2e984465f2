"""Command-line interface for the garment recoloring engine."""

import argparse
import json
import logging
import sys
from pathlib import Path


def _read_optional(path):
    return path.read_bytes() if path is not None else None


def _parse_logo_box(text):
    from .masks import LogoBox
    return LogoBox.parse(text)


def _add_region_args(parser, masks_required=True):
    parser.add_argument('--body', type=Path, required=masks_required, help='Body mask')
    parser.add_argument('--sleeves', type=Path, required=masks_required, help='Sleeves mask')
    parser.add_argument('--trims', type=Path, default=None, help='Trims mask (optional)')
    parser.add_argument('--primary', type=str, required=True, help='Body color, #RRGGBB')
    parser.add_argument('--secondary', type=str, default=None, help='Sleeves color, #RRGGBB')
    parser.add_argument('--tertiary', type=str, default=None, help='Trims color, #RRGGBB')


def _print_outcomes(outcomes):
    for outcome in outcomes:
        label = outcome.region or outcome.guard
        print(f"  [{outcome.status.value.upper():7s}] {label}: {outcome.reason}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Template-based garment recoloring')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Recolor
    rc = subparsers.add_parser('recolor', help='Recolor a template with region masks')
    rc.add_argument('template', type=Path)
    _add_region_args(rc)
    rc.add_argument('--logo-box', action='append', default=[], metavar='X,Y,W,H',
                    type=_parse_logo_box,
                    help='Protected rectangle (repeatable)')
    rc.add_argument('--no-invert', action='store_true',
                    help='Masks are already white = editable')
    rc.add_argument('--spec-out', type=Path, default=None, help='Write render spec JSON here')
    rc.add_argument('--output', '-o', type=Path, required=True)

    # Geometry guard
    geo = subparsers.add_parser('check-geometry', help='Compare silhouettes of two images')
    geo.add_argument('base', type=Path)
    geo.add_argument('result', type=Path)
    geo.add_argument('--threshold', type=float, default=None)

    # Color guard
    col = subparsers.add_parser('check-colors', help='Compare region colors against targets')
    col.add_argument('result', type=Path)
    _add_region_args(col, masks_required=False)
    col.add_argument('--threshold', type=float, default=None)

    # Palette
    pal = subparsers.add_parser('palette', help='Detect dominant colors')
    pal.add_argument('image', type=Path)
    pal.add_argument('--mask', type=Path, default=None)
    pal.add_argument('-k', type=int, default=None, help='Cluster count (default: colorway)')

    # Rectangle mask
    mm = subparsers.add_parser('make-mask', help='Create a padded rectangle mask')
    mm.add_argument('width', type=int)
    mm.add_argument('height', type=int)
    mm.add_argument('--padding', type=int, default=None)
    mm.add_argument('--output', '-o', type=Path, required=True)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    from .errors import GeometryChanged, RecolorInputError

    try:
        if args.command == 'recolor':
            from .pipeline import recolor_garment

            result = recolor_garment(
                args.template.read_bytes(),
                colors={
                    'primary': args.primary,
                    'secondary': args.secondary,
                    'tertiary': args.tertiary,
                },
                masks={
                    'body': _read_optional(args.body),
                    'sleeves': _read_optional(args.sleeves),
                    'trims': _read_optional(args.trims),
                },
                logo_boxes=args.logo_box,
                invert_masks=not args.no_invert,
            )
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_bytes(result.image)
            print(f"Saved: {args.output} ({result.width}x{result.height})")
            _print_outcomes(result.outcomes)
            if args.spec_out is not None:
                args.spec_out.write_text(json.dumps(result.to_render_spec(), indent=2))
                print(f"Render spec: {args.spec_out}")

        elif args.command == 'check-geometry':
            from .config import GEOMETRY_DIFF_THRESHOLD
            from .guards import check_geometry_locked

            threshold = args.threshold if args.threshold is not None else GEOMETRY_DIFF_THRESHOLD
            outcome = check_geometry_locked(
                args.base.read_bytes(), args.result.read_bytes(), threshold=threshold
            )
            _print_outcomes([outcome])
            if not outcome.is_usable:
                return 1

        elif args.command == 'check-colors':
            from .config import COLOR_DISTANCE_THRESHOLD
            from .guards import assert_color_targets

            threshold = args.threshold if args.threshold is not None else COLOR_DISTANCE_THRESHOLD
            outcomes = assert_color_targets(
                args.result.read_bytes(),
                masks={
                    'body': _read_optional(args.body),
                    'sleeves': _read_optional(args.sleeves),
                    'trims': _read_optional(args.trims),
                },
                colors={
                    'primary': args.primary,
                    'secondary': args.secondary,
                    'tertiary': args.tertiary,
                },
                threshold=threshold,
            )
            _print_outcomes(outcomes)

        elif args.command == 'palette':
            from .palette import detect_dominant_colors, kmeans_lab

            image = args.image.read_bytes()
            mask = _read_optional(args.mask)
            if args.k is None:
                colors = detect_dominant_colors(image, mask)
                for slot, value in colors.to_dict().items():
                    print(f"  {slot}: {value}")
            else:
                for cluster in kmeans_lab(image, mask, k=args.k):
                    print(f"  {cluster.hex}  {cluster.proportion * 100:5.1f}%  ({cluster.pixel_count} px)")

        elif args.command == 'make-mask':
            from .config import RECTANGLE_MASK_PADDING
            from .masks import create_rectangle_mask

            padding = args.padding if args.padding is not None else RECTANGLE_MASK_PADDING
            mask = create_rectangle_mask(args.width, args.height, padding)
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_bytes(mask.to_png())
            print(f"Saved: {args.output}")

        else:
            parser.print_help()

    except (RecolorInputError, GeometryChanged) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
