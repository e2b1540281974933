"""
Command-line interface for fitsview.

Usage:
    python -m fitsview render <file.fits> [file.fits ...] [options]
    fitsview render <file.fits> --bayer RGGB --auto-wb
    fitsview stats <file.fits> --bayer RGGB
    fitsview info

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from .backend import get_backend_summary, is_gpu_available
from .cli_output import (
    create_progress_bar,
    format_duration,
    print_banner,
    print_error,
    print_header,
    print_histogram,
    print_info,
    print_metric,
    print_path,
    print_success,
    print_warning,
    setup_terminal,
)
from .color import channel_means
from .config import (
    BayerPattern,
    CurveParams,
    RenderConfig,
    StretchMode,
    StretchParams,
    WhiteBalance,
)
from .errors import FitsviewError
from .io import default_export_path
from .pipeline import RenderPipeline
from .utils import format_size, get_platform_info, get_version

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging for CLI."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    )


def _stretch_from_args(args: argparse.Namespace) -> StretchParams:
    return StretchParams(
        auto_stretch=not args.no_auto,
        black_clip=args.black_clip,
        white_clip=args.white_clip,
        strength=args.strength,
        mode=StretchMode.parse(args.mode),
    )


def _curve_from_args(args: argparse.Namespace) -> CurveParams:
    return CurveParams(
        enabled=args.curve,
        black=args.curve_black,
        white=args.curve_white,
        gamma=args.curve_gamma,
    )


def resolve_output_path(input_path: Path, out: str | None, n_inputs: int) -> Path:
    """
    Output PNG path for one input file.

    ``out`` names the PNG itself when a single input is rendered and it
    ends with ``.png``; otherwise it is a directory receiving
    ``<stem>.png``. Without ``out`` the PNG sits next to the input.
    """
    if out is None:
        return default_export_path(input_path)
    out_path = Path(out)
    if n_inputs == 1 and out_path.suffix.lower() == ".png":
        return out_path
    return out_path / default_export_path(input_path).name


def render_files(
    paths: list[str | Path],
    bayer: str = "NONE",
    stretch_params: StretchParams | None = None,
    curve: CurveParams | None = None,
    wb: WhiteBalance | None = None,
    auto_wb: bool = False,
    config: RenderConfig | None = None,
    out: str | None = None,
    quiet: bool = False,
) -> list[Path]:
    """
    Render FITS files to PNG.

    Parameters
    ----------
    paths : list of str or Path
        Input FITS files.
    bayer : str, default "NONE"
        Mosaic pattern of the inputs.
    stretch_params : StretchParams, optional
        Stretch settings (defaults when None).
    curve : CurveParams, optional
        Manual curve (disabled when None).
    wb : WhiteBalance, optional
        Fixed white balance gains; ignored when ``auto_wb`` is set.
    auto_wb : bool, default False
        Estimate grey-world gains for each file.
    config : RenderConfig, optional
        Pipeline configuration.
    out : str, optional
        Output PNG path (single input) or directory.
    quiet : bool, default False
        Hide the progress bar.

    Returns
    -------
    list[Path]
        Written PNG paths, in input order. Files that fail are skipped.
    """
    written = []
    pbar = create_progress_bar(len(paths), "Rendering", disable=quiet)

    with RenderPipeline(config) as pipe:
        if stretch_params is not None:
            pipe.set_stretch_params(stretch_params)
        if curve is not None:
            pipe.set_curve_params(curve)

        for path in paths:
            path = Path(path)
            try:
                pipe.load_fits(path, bayer)
                if auto_wb:
                    if not pipe.compute_auto_white_balance():
                        logger.warning("%s: auto white balance failed, using unit gains", path.name)
                        pipe.set_white_balance(WhiteBalance())
                elif wb is not None:
                    pipe.set_white_balance(wb)

                target = resolve_output_path(path, out, len(paths))
                written.append(pipe.export_png(target))
            except (FitsviewError, OSError, ValueError) as e:
                logger.error("Failed to render %s: %s", path, e)
            pbar.update(1)

    pbar.close()
    return written


def cmd_render(args: argparse.Namespace) -> int:
    """Handle the render command."""
    setup_terminal()
    if not args.quiet:
        print_banner(get_version())

    config = RenderConfig(use_gpu=args.use_gpu, stats_source=args.stats)
    wb = WhiteBalance.clamped(*args.wb) if args.wb else None

    missing = [p for p in args.files if not Path(p).exists()]
    for p in missing:
        print_warning(f"Input file not found: {p}")
    files = [p for p in args.files if Path(p).exists()]
    if not files:
        print_error("No input files")
        return 1

    start = time.time()
    try:
        written = render_files(
            files,
            bayer=args.bayer,
            stretch_params=_stretch_from_args(args),
            curve=_curve_from_args(args),
            wb=wb,
            auto_wb=args.auto_wb,
            config=config,
            out=args.out,
            quiet=args.quiet,
        )
    except (FitsviewError, ValueError) as e:
        print_error(f"Rendering failed: {e}")
        return 1

    if not args.quiet:
        for path in written:
            print_path("PNG", str(path))
        print_success(
            f"Rendered {len(written)}/{len(files)} file(s) in {format_duration(time.time() - start)}"
        )
    return 0 if len(written) == len(args.files) else 1


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the stats command."""
    setup_terminal()
    path = Path(args.file)
    if not path.exists():
        print_error(f"Input file not found: {path}")
        return 1

    config = RenderConfig(use_gpu=args.use_gpu, stats_source=args.stats)
    try:
        with RenderPipeline(config) as pipe:
            pipe.load_fits(path, args.bayer)
            pipe.set_stretch_params(_stretch_from_args(args))
            levels = pipe.levels
            hist = pipe.luminance_histogram()
            wb = pipe.estimate_white_balance()
            means = channel_means(pipe.debayered)
            size = format_size(pipe.width, pipe.height)
            pattern = pipe.pattern
    except (FitsviewError, OSError, ValueError) as e:
        print_error(f"Statistics failed: {e}")
        return 1

    print_header(f"Statistics: {path.name}")
    print_metric("Size", size)
    print_metric("Pattern", pattern.name)
    print_metric("Channel means (R, G, B)", f"{means[0]:.4f}, {means[1]:.4f}, {means[2]:.4f}")
    print_metric("Black point", f"{levels.low:.5f}")
    print_metric("White point", f"{levels.high:.5f}")
    if wb is None:
        print_warning("Grey-world white balance: no usable samples")
    else:
        print_metric("Grey-world gains (R, G, B)", f"{wb.r:.3f}, {wb.g:.3f}, {wb.b:.3f}")
    print_info(f"Display histogram ({hist.size} bins)")
    print_histogram(hist)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle the info command."""
    print_header(f"fitsview {get_version()}")
    print_metric("Platform", get_platform_info())
    print_metric("Backend", get_backend_summary())
    print_metric("GPU available", "yes" if is_gpu_available() else "no")
    print_info(f"Patterns: {', '.join(p.name for p in BayerPattern)}")
    print_info(f"Stretch modes: {', '.join(m.name.lower() for m in StretchMode)}")
    return 0


def _add_stretch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--bayer",
        type=str,
        default="NONE",
        help="Mosaic pattern: none, rggb, bggr, grbg, gbrg (default: none)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.name.lower() for m in StretchMode],
        default="asinh",
        help="Stretch mode (default: asinh)",
    )
    parser.add_argument(
        "--black-clip",
        type=float,
        default=0.1,
        help="Percent of dark samples clipped to black (default: 0.1)",
    )
    parser.add_argument(
        "--white-clip",
        type=float,
        default=0.1,
        help="Percent of bright samples clipped to white (default: 0.1)",
    )
    parser.add_argument(
        "--strength",
        type=float,
        default=5.0,
        help="Asinh/log stretch strength, >= 1 (default: 5.0)",
    )
    parser.add_argument(
        "--no-auto",
        action="store_true",
        help="Disable the automatic stretch",
    )
    parser.add_argument(
        "--use-gpu",
        action="store_true",
        help="Use CuPy for the raster path if available",
    )
    parser.add_argument(
        "--stats",
        type=str,
        choices=["full", "raster"],
        default="full",
        help="Statistics source: full resolution or 256x256 raster (default: full)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and hide the progress bar",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="fitsview",
        description="Debayer, stretch and export FITS astrophotography frames",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"fitsview {get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Render command
    render_parser = subparsers.add_parser(
        "render",
        help="Render FITS files to PNG",
    )
    render_parser.add_argument(
        "files",
        nargs="+",
        help="Input FITS files",
    )
    render_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output PNG (single input) or directory (default: next to input)",
    )
    _add_stretch_arguments(render_parser)
    render_parser.add_argument(
        "--curve",
        action="store_true",
        help="Enable the manual black/white/gamma curve",
    )
    render_parser.add_argument(
        "--curve-black",
        type=float,
        default=0.0,
        help="Curve black point in [0, 0.5] (default: 0.0)",
    )
    render_parser.add_argument(
        "--curve-white",
        type=float,
        default=1.0,
        help="Curve white point in [0.5, 1] (default: 1.0)",
    )
    render_parser.add_argument(
        "--curve-gamma",
        type=float,
        default=1.0,
        help="Curve gamma (default: 1.0)",
    )
    render_parser.add_argument(
        "--wb",
        type=float,
        nargs=3,
        metavar=("R", "G", "B"),
        default=None,
        help="White balance gains, clamped to [0.25, 4]",
    )
    render_parser.add_argument(
        "--auto-wb",
        action="store_true",
        help="Estimate grey-world white balance for each file",
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Print levels, white balance estimate and histogram of a FITS file",
    )
    stats_parser.add_argument(
        "file",
        type=str,
        help="Input FITS file",
    )
    _add_stretch_arguments(stats_parser)

    # Info command
    subparsers.add_parser(
        "info",
        help="Show version and compute backend",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "render":
        setup_logging(args.verbose, args.quiet)
        return cmd_render(args)
    elif args.command == "stats":
        setup_logging(args.verbose, args.quiet)
        return cmd_stats(args)
    elif args.command == "info":
        setup_logging()
        return cmd_info(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
