"""
seisquery Command Line Interface.

Entry point for querying seismic volumes stored as Zarr arrays.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from seisquery import __version__, query
from seisquery.config.models import (
    AttributeRequest,
    BetweenSurfacesRequest,
    FenceRequest,
    HorizonRequest,
    SliceBoundModel,
    SliceRequest,
)
from seisquery.core.exceptions import SeisQueryError
from seisquery.settings import generate_toml_with_comments, get_settings, save_settings
from seisquery.utils.logging import (
    console,
    print_array_summary,
    print_info,
    print_metric,
    print_request_error,
    print_section,
    print_written,
    setup_logging,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="seisquery",
        description="Slices, fences, horizons and attributes from seismic volumes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  seisquery info volume.zarr                       Show axes and bounding box
  seisquery slice volume.zarr inline 1200          Fetch one inline
  seisquery fence volume.zarr points.json          Fetch traces along a polyline
  seisquery attribute volume.zarr request.json     Compute horizon attributes
  seisquery settings --output settings.toml        Write default settings
        """,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # -------------------------------------------------------------------------
    # info command
    # -------------------------------------------------------------------------
    info_parser = subparsers.add_parser(
        "info",
        help="Show volume metadata",
    )
    info_parser.add_argument("volume", type=Path, help="Path to Zarr volume")
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Print metadata as JSON",
    )

    # -------------------------------------------------------------------------
    # slice command
    # -------------------------------------------------------------------------
    slice_parser = subparsers.add_parser(
        "slice",
        help="Fetch a 2D slice",
    )
    slice_parser.add_argument("volume", type=Path, help="Path to Zarr volume")
    slice_parser.add_argument(
        "direction",
        help="i, j, k, inline, crossline, depth, time or sample",
    )
    slice_parser.add_argument("lineno", type=float, help="Line number along direction")
    slice_parser.add_argument(
        "--bound",
        action="append",
        nargs=3,
        metavar=("DIRECTION", "LOWER", "UPPER"),
        default=[],
        help="Restrict another axis (repeatable)",
    )
    slice_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write slice to .npy file",
    )

    # -------------------------------------------------------------------------
    # fence command
    # -------------------------------------------------------------------------
    fence_parser = subparsers.add_parser(
        "fence",
        help="Fetch traces along a polyline",
    )
    fence_parser.add_argument("volume", type=Path, help="Path to Zarr volume")
    fence_parser.add_argument(
        "points",
        type=Path,
        help="JSON file with a fence request or a list of [x, y] pairs",
    )
    fence_parser.add_argument(
        "--coordinate-system",
        default="ij",
        help="ij, ilxl or cdp (default: ij)",
    )
    fence_parser.add_argument(
        "--interpolation",
        default=None,
        help="nearest, linear or cubic (default: from settings)",
    )
    fence_parser.add_argument(
        "--fillvalue",
        type=float,
        default=None,
        help="Value for points outside the volume",
    )
    fence_parser.add_argument("-o", "--output", type=Path, help="Write traces to .npy file")

    # -------------------------------------------------------------------------
    # horizon command
    # -------------------------------------------------------------------------
    horizon_parser = subparsers.add_parser(
        "horizon",
        help="Fetch a window of samples around a surface",
    )
    horizon_parser.add_argument("volume", type=Path, help="Path to Zarr volume")
    horizon_parser.add_argument("request", type=Path, help="JSON horizon request")
    horizon_parser.add_argument("-o", "--output", type=Path, help="Write samples to .npy file")

    # -------------------------------------------------------------------------
    # attribute command
    # -------------------------------------------------------------------------
    attribute_parser = subparsers.add_parser(
        "attribute",
        help="Compute attributes along or between surfaces",
    )
    attribute_parser.add_argument("volume", type=Path, help="Path to Zarr volume")
    attribute_parser.add_argument(
        "request",
        type=Path,
        help="JSON request with a surface, or primarySurface and secondarySurface",
    )
    attribute_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write maps to .npz file, one array per attribute",
    )

    # -------------------------------------------------------------------------
    # settings command
    # -------------------------------------------------------------------------
    settings_parser = subparsers.add_parser(
        "settings",
        help="Show or write settings",
    )
    settings_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write settings to file (.toml or .json)",
    )
    settings_parser.add_argument(
        "--defaults",
        action="store_true",
        help="Write commented default settings instead of the current ones",
    )

    return parser


# =============================================================================
# Helpers
# =============================================================================


def _read_json(path: Path) -> Any:
    with open(path) as f:
        return json.load(f)


def _save_array(path: Path, data: np.ndarray) -> None:
    np.save(path, data)
    print_written(path, f"{list(data.shape)} array")


# =============================================================================
# Commands
# =============================================================================


def cmd_info(args: argparse.Namespace) -> int:
    """Show metadata of a volume."""
    volume = query.open_volume(args.volume)
    meta = query.metadata(volume)

    if args.json:
        console.print_json(json.dumps(meta))
        return 0

    print_section(f"Volume: {args.volume}")
    for axis in meta["axis"]:
        print_metric(
            axis["annotation"],
            f"{axis['min']:g} .. {axis['max']:g} step {axis['stepsize']:g}",
            f"({axis['samples']} samples, {axis['unit']})",
        )
    print_metric("CRS", meta["crs"] or "-")
    print_metric("Input file", meta["inputFileName"] or "-")
    print_metric("Imported", meta["importTimeStamp"] or "-")
    for corner, (x, y) in enumerate(meta["boundingBox"]["cdp"]):
        print_metric(f"Corner {corner}", f"({x:.2f}, {y:.2f})")
    return 0


def cmd_slice(args: argparse.Namespace) -> int:
    """Fetch a slice through a volume."""
    volume = query.open_volume(args.volume)
    request = SliceRequest(
        direction=args.direction,
        lineno=args.lineno,
        bounds=[
            SliceBoundModel(direction=direction, lower=float(lower), upper=float(upper))
            for direction, lower, upper in args.bound
        ],
    )
    result = query.slice(volume, request.direction, request.lineno, request.bounds)

    print_section(f"Slice {args.direction} {args.lineno:g}")
    print_metric("x", result.x.describe_range())
    print_metric("y", result.y.describe_range())
    print_array_summary(result.data)

    if args.output:
        _save_array(args.output, result.data)
    return 0


def cmd_fence(args: argparse.Namespace) -> int:
    """Fetch traces along a polyline."""
    volume = query.open_volume(args.volume)
    raw = _read_json(args.points)

    if isinstance(raw, dict):
        request = FenceRequest.model_validate(raw)
    else:
        request = FenceRequest(
            coordinate_system=args.coordinate_system,
            coordinates=raw,
            fill_value=args.fillvalue,
        )
    interpolation = args.interpolation if args.interpolation is not None else request.interpolation
    fillvalue = args.fillvalue if args.fillvalue is not None else request.fill_value

    result = query.fence(
        volume,
        request.coordinate_system,
        request.coordinates,
        interpolation=interpolation,
        fillvalue=fillvalue,
    )

    print_section(f"Fence: {len(request.coordinates)} points")
    print_array_summary(result.data)

    if args.output:
        _save_array(args.output, result.data)
    return 0


def cmd_horizon(args: argparse.Namespace) -> int:
    """Fetch samples around a surface."""
    volume = query.open_volume(args.volume)
    request = HorizonRequest.model_validate(_read_json(args.request))
    result = query.horizon(
        volume,
        request.surface,
        above=request.above,
        below=request.below,
        interpolation=request.interpolation,
        fillvalue=request.fill_value,
    )

    print_section("Horizon")
    print_metric("Samples per cell", result.window.size())
    print_array_summary(result.data)

    if args.output:
        _save_array(args.output, result.data)
    return 0


def cmd_attribute(args: argparse.Namespace) -> int:
    """Compute attributes along one surface or between two."""
    volume = query.open_volume(args.volume)
    raw = _read_json(args.request)

    if "primarySurface" in raw or "primary_surface" in raw:
        between = BetweenSurfacesRequest.model_validate(raw)
        result = query.attribute_between_surfaces(
            volume,
            between.primary_surface,
            between.secondary_surface,
            between.attributes,
            stepsize=between.stepsize,
            interpolation=between.interpolation,
        )
    else:
        along = AttributeRequest.model_validate(raw)
        result = query.attribute_along_surface(
            volume,
            along.surface,
            along.above,
            along.below,
            along.attributes,
            stepsize=along.stepsize,
            interpolation=along.interpolation,
        )

    print_section(f"Attributes: {result.layout.nrows} x {result.layout.ncols}")
    maps = result.maps
    for name, values in maps.items():
        print_metric(name, f"{float(values.min()):g} .. {float(values.max()):g}")

    if args.output:
        np.savez(args.output, **maps)
        print_written(args.output, f"{len(maps)} attribute maps")
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    """Show or write settings."""
    if args.output is None:
        if args.defaults:
            console.print(generate_toml_with_comments())
        else:
            console.print_json(json.dumps(get_settings().to_dict()))
        return 0

    if args.defaults:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(generate_toml_with_comments())
        path = args.output
    else:
        path = save_settings(args.output)
    print_written(path, "settings")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging_settings = get_settings().logging
    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else logging_settings.level)
    setup_logging(
        level=log_level,
        log_file=args.log_file or logging_settings.log_file or None,
        rich_tracebacks=logging_settings.rich_tracebacks,
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "slice": cmd_slice,
        "fence": cmd_fence,
        "horizon": cmd_horizon,
        "attribute": cmd_attribute,
        "settings": cmd_settings,
    }

    handler = commands.get(args.command)
    if handler is None:
        print_request_error("usage", f"Unknown command: {args.command}")
        return 1

    try:
        return handler(args)
    except SeisQueryError as e:
        print_request_error(e.kind.value, str(e))
        if args.verbose:
            console.print_exception()
        return 1
    except ValidationError as e:
        print_request_error("Invalid request", str(e))
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print_request_error("Could not read input", str(e))
        return 1
    except KeyboardInterrupt:
        print_info("\nOperation cancelled by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
