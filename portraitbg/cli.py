#!/usr/bin/env python3
"""
Portrait Background Replacement CLI

Heuristic pipeline: corner-sampled background estimate, center-protected
color classification, largest component, opening/closing and feathered
compositing over a flat backdrop.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from portraitbg.pipeline import (
    BackgroundReplacementPipeline,
    PipelineConfig,
    PipelineError,
    PipelineLogger,
)
from portraitbg.pipeline.config import COMPONENT_METHODS
from portraitbg.pipeline.logger import DEFAULT_LOG_FILE
from portraitbg.pipeline.raster import BACKDROP_PRESETS, parse_color


def _color(value: str) -> tuple[int, int, int]:
    try:
        return parse_color(value)
    except PipelineError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portraitbg",
        description="Replace portrait backgrounds with a flat color",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Backdrop presets: {", ".join(BACKDROP_PRESETS)} (or any #rrggbb hex)

Examples:
  # Basic usage (white backdrop)
  %(prog)s photo.jpg

  # Blue backdrop, custom output
  %(prog)s -b blue -o formal.png photo.jpg

  # Keep fine hair detail, softer edges
  %(prog)s --passes 0 --blur-radius 6 photo.jpg

  # Debug logging to a custom file
  %(prog)s --debug --log-file ~/debug.log photo.jpg
        """,
    )

    # Positional arguments
    parser.add_argument("files", nargs="+", type=Path, help="Input image files")

    # Output options
    parser.add_argument(
        "-o", "--output", type=Path, help="Output path (for single file only)"
    )
    parser.add_argument(
        "-b",
        "--backdrop",
        type=_color,
        default=None,
        help="Backdrop color: preset name or hex (default: white)",
    )

    # Tuning options
    parser.add_argument(
        "--passes",
        type=int,
        default=None,
        metavar="N",
        help="Morphological opening/closing iterations (0-10, default: 1)",
    )
    parser.add_argument(
        "--blur-passes",
        type=int,
        default=None,
        metavar="N",
        help="Feathering box blur passes (0-10, default: 3)",
    )
    parser.add_argument(
        "--blur-radius",
        type=int,
        default=None,
        metavar="PX",
        help="Fixed feathering radius (default: shorter side / 120)",
    )
    parser.add_argument(
        "--corner-fraction",
        type=float,
        default=None,
        help="Corner sample size as fraction of shorter side (default: 0.15)",
    )
    parser.add_argument(
        "--protect-radius",
        type=float,
        default=None,
        help="Center radius that is always kept (default: 0.3)",
    )
    parser.add_argument(
        "--component-method",
        choices=COMPONENT_METHODS,
        default=None,
        help="Connected component backend (default: opencv)",
    )
    parser.add_argument(
        "--upscale",
        action="store_true",
        help="Upscale images smaller than 400px before processing",
    )

    # Logging options
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode with detailed logging"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=DEFAULT_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_LOG_FILE})",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Environment settings, overridden by any options given on the command line"""
    overrides = {}

    if args.backdrop is not None:
        overrides["backdrop_color"] = args.backdrop
    if args.passes is not None:
        overrides["morphology_iterations"] = max(0, min(10, args.passes))
    if args.blur_passes is not None:
        overrides["blur_passes"] = max(0, min(10, args.blur_passes))
    if args.blur_radius is not None:
        overrides["blur_radius"] = args.blur_radius
    if args.corner_fraction is not None:
        overrides["corner_fraction"] = args.corner_fraction
    if args.protect_radius is not None:
        overrides["protect_radius"] = args.protect_radius
    if args.component_method is not None:
        overrides["component_method"] = args.component_method
    if args.upscale:
        overrides["upscale_small_images"] = True

    return PipelineConfig.from_env(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate arguments
    if args.output and len(args.files) > 1:
        parser.error("--output can only be used with a single input file")

    try:
        config = config_from_args(args)
    except PipelineError as e:
        parser.error(str(e))

    # Create logger
    logger = PipelineLogger(
        log_file=args.log_file, debug_mode=args.debug, verbose=args.verbose
    )

    logger.log_info(f"Processing {len(args.files)} image(s)...")

    pipeline = BackgroundReplacementPipeline(config=config, logger=logger)
    success_count = 0

    for file_path in args.files:
        if not file_path.exists():
            logger.log_error(f"✗ File not found: {file_path}")
            continue

        try:
            output_path = pipeline.process(file_path, output_path=args.output)
            logger.log_info(f"✓ Success: {file_path} → {output_path}")

            success_count += 1

        except PipelineError as e:
            logger.log_error(f"✗ Failed: {e}", exc_info=args.verbose or args.debug)
        except OSError as e:
            logger.log_error(f"✗ Could not write output: {e}")

    print(f"Done! Processed {success_count}/{len(args.files)} images.")

    return 0 if success_count == len(args.files) else 1


if __name__ == "__main__":
    sys.exit(main())
