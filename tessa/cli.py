from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import DEFAULT_SHAPE_BOUND, DEFAULT_TOLERANCE, TessaConfig
from .pipeline import run
from .wkt import WktParseError, read_wkt

logger = logging.getLogger("tessa")

EXIT_OK = 0
EXIT_BAD_CONFIG = 1
EXIT_PARSE_ERROR = 2


def configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.propagate = False
    logger.setLevel(logging.INFO if verbose else logging.ERROR)


def _existing_file(value: str) -> str:
    if not Path(value).is_file():
        raise argparse.ArgumentTypeError(f"File does not exist: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tessa",
        description="Turn a WKT polygon (with holes) and road line strings into a labeled planar graph.",
    )
    ap.add_argument("--version", action="version", version=__version__)
    ap.add_argument("paths", nargs="*", metavar="file [output]",
                    help="Input and output file names, as an alternative to -f and -o.")
    ap.add_argument("-f", "--file", dest="file_opt", type=_existing_file, help="Input file name; reads from stdin otherwise.")
    ap.add_argument("-o", "--output", dest="output_opt", help="Output file name; writes to stdout otherwise.")
    ap.add_argument("-v", "--verbose", action="store_true")
    ap.add_argument("--cdt", action="store_true", help="Make into conforming Delaunay triangulation.")
    ap.add_argument("--mesh", action="store_true", help="Make into mesh.")
    ap.add_argument("--B", dest="shape_bound", type=float, default=DEFAULT_SHAPE_BOUND,
                    help="Shape bound B = sin^2(minimum angle) for meshing (default: %(default)s).")
    ap.add_argument("--S", dest="size_bound", type=float, default=0.0,
                    help="Size bound S (longest edge) for meshing. Zero means disabled (default: %(default)s).")
    ap.add_argument("--gabriel", action="store_true", help="Make into conforming Gabriel graph.")
    ap.add_argument("--free-for", default="", help="String to put in the 'free_for' field of output edges.")
    ap.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE,
                    help="Geometric tolerance for label repair, relative to the input size (default: %(default)s).")
    ap.add_argument("--vtu", dest="vtu_path", help="Also write the labeled graph to this VTU file.")
    return ap


def config_from_args(args: argparse.Namespace, ap: argparse.ArgumentParser) -> TessaConfig:
    positional = list(args.paths)
    input_path = args.file_opt or (positional.pop(0) if positional else None)
    output_path = args.output_opt or (positional.pop(0) if positional else None)
    if positional:
        ap.error(f"unexpected arguments: {' '.join(positional)}")
    if args.file_opt is None and input_path is not None:
        try:
            _existing_file(input_path)
        except argparse.ArgumentTypeError as x:
            ap.error(str(x))
    return TessaConfig(
        input_path=input_path,
        output_path=output_path,
        verbose=args.verbose,
        cdt=args.cdt,
        mesh=args.mesh,
        gabriel=args.gabriel,
        shape_bound=args.shape_bound,
        size_bound=args.size_bound,
        free_for=args.free_for,
        tolerance=args.tolerance,
        vtu_path=args.vtu_path,
    )


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    config = config_from_args(args, ap)
    configure_logging(config.verbose)

    errors = config.validate()
    if errors:
        for msg in errors:
            logger.error(msg)
        return EXIT_BAD_CONFIG

    try:
        data = read_wkt(config.input_path)
    except WktParseError as x:
        for line in x.describe():
            logger.error(line)
        return EXIT_PARSE_ERROR

    if config.output_path:
        with open(config.output_path, "w") as out:
            run(data, config, out)
    else:
        run(data, config, sys.stdout)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
