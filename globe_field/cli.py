"""CLI argument parsing and entry point.

``globe-field list`` shows the registered projections, ``globe-field info``
reports how a projection sits in a view, and ``globe-field render``
interpolates an analytic demo wind field and writes its overlay raster
to a PNG file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

from PIL import Image

from globe_field import __version__
from globe_field.config import EngineConfig
from globe_field.errors import GlobeFieldError
from globe_field.field import run_interpolation
from globe_field.globes import Globe, View, build_globe, list_projections
from globe_field.grids import FunctionGrid, Grids, vortex_wind

logger = logging.getLogger(__name__)

DEFAULT_VIEW = "960x540"


@dataclass
class CLIConfig:
    """Parsed CLI configuration."""

    command: str = "list"
    projection: str = "orthographic"
    view: View = View(960, 540)
    orientation: Optional[str] = None
    output: str = "overlay.png"
    verbose: bool = False


def _parse_view(text: str) -> View:
    """Parse ``WIDTHxHEIGHT`` into a :class:`View`."""
    try:
        width, height = (int(part) for part in text.lower().split("x"))
        return View(width, height)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"view must look like 960x540, got {text!r}"
        ) from None


def parse_args(argv: Optional[Sequence[str]] = None) -> CLIConfig:
    """Parse CLI arguments and return a :class:`CLIConfig`.

    Parameters
    ----------
    argv : sequence of str or None
        Command-line arguments to parse.  When ``None``, reads from
        ``sys.argv[1:]``.
    """
    parser = argparse.ArgumentParser(
        prog="globe-field",
        description="Globe projections and screen-space wind field interpolation.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log timings and progress to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List available projections")

    for name, help_text in (
        ("info", "Show bounds, fit scale and orientation of a projection"),
        ("render", "Interpolate a demo wind field and save its overlay"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("projection", metavar="PROJECTION", help="Projection name")
        cmd.add_argument(
            "--view",
            type=_parse_view,
            default=_parse_view(DEFAULT_VIEW),
            metavar="WxH",
            help=f"View size in pixels (default: {DEFAULT_VIEW})",
        )
        cmd.add_argument(
            "--orientation",
            default=None,
            metavar="LON,LAT,SCALE",
            help="Orientation string; missing parts use the projection defaults",
        )
        if name == "render":
            cmd.add_argument(
                "-o",
                "--output",
                default="overlay.png",
                metavar="PATH",
                help="PNG file to write (default: overlay.png)",
            )

    args = parser.parse_args(argv)
    return CLIConfig(
        command=args.command,
        projection=getattr(args, "projection", "orthographic"),
        view=getattr(args, "view", _parse_view(DEFAULT_VIEW)),
        orientation=getattr(args, "orientation", None),
        output=getattr(args, "output", "overlay.png"),
        verbose=args.verbose,
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


def _build(config: CLIConfig) -> Globe:
    globe = build_globe(config.projection, config.view)
    if config.orientation is not None:
        globe.orientation(config.orientation, config.view)
    return globe


def _cmd_list(config: CLIConfig) -> int:
    for name in list_projections():
        print(name)
    return 0


def _cmd_info(config: CLIConfig) -> int:
    globe = _build(config)
    bounds = globe.bounds(config.view)
    print(f"projection:  {globe.name}")
    print(f"view:        {config.view.width}x{config.view.height}")
    print(f"orientation: {globe.orientation()}")
    print(f"fit scale:   {globe.fit(config.view):.1f}")
    print(f"scale range: {globe.scale_extent()[0]:g}-{globe.scale_extent()[1]:g}")
    print(
        f"bounds:      x={bounds.x}..{bounds.x_max} y={bounds.y}..{bounds.y_max} "
        f"({bounds.width}x{bounds.height})"
    )
    return 0


def _cmd_render(config: CLIConfig) -> int:
    globe = _build(config)
    grid = FunctionGrid(vortex_wind)
    field = run_interpolation(globe, Grids(grid), config.view, EngineConfig())
    if field is None:
        print("Error: interpolation was cancelled", file=sys.stderr)
        return 1
    Image.fromarray(field.overlay).save(config.output)
    logger.info("wrote overlay %s", config.output)
    print(config.output)
    field.release()
    return 0


_COMMANDS = {
    "list": _cmd_list,
    "info": _cmd_info,
    "render": _cmd_render,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for globe-field.

    Returns the process exit status; engine errors such as an unknown
    projection name are reported on stderr with status 2.
    """
    config = parse_args(argv)
    _configure_logging(config.verbose)
    try:
        return _COMMANDS[config.command](config)
    except GlobeFieldError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
