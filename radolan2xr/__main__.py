import logging
from collections.abc import Sequence
from typing import Optional

from pydantic import ValidationError

from .builder.executor import log_progress
from .builder.pipeline import run_pipeline
from .builder.stack import GridStack
from .config.options import PipelineOptions
from .writer.zarr_writer import stack_to_zarr

logger = logging.getLogger("radolan2xr")


def _parse_selection(value: str) -> tuple[int, ...]:
    return tuple(int(v) for v in value.split(",") if v.strip())


def _summary(source: str, result) -> str:
    if isinstance(result, Exception):
        return f"{source},ERROR,{type(result).__name__}: {result}"
    if isinstance(result, GridStack):
        rows, cols = result.shape
        return f"{source},stack,{len(result)}x{rows}x{cols}"
    return f"{source},{type(result).__name__},{len(result) if hasattr(result, '__len__') else ''}"


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(
        prog="radolan2xr",
        description="Unpack and decode DWD RADOLAN / grid archives into xarray stacks",
    )
    parser.add_argument("files", nargs="+", help="Downloaded DWD archive files")
    parser.add_argument("--staging-dir", help="Root directory for unpacked members")
    parser.add_argument(
        "--select",
        type=_parse_selection,
        help="Comma separated 1-based member positions, e.g. 1,3,5",
    )
    parser.add_argument(
        "--projection",
        choices=["radolan", "rw", "seasonal", "none"],
        default="none",
        help="Attach a named projection to the decoded grids",
    )
    parser.add_argument(
        "--latlon", action="store_true", help="Reproject to WGS84 lon/lat (needs rioxarray)"
    )
    parser.add_argument(
        "--no-stack", dest="stack", action="store_false", help="Keep layers separate"
    )
    parser.add_argument(
        "--parallel", action="store_true", help="Decode members with Dask"
    )
    parser.add_argument(
        "--skip-bad-members",
        action="store_true",
        help="Skip members that fail to decode instead of failing the archive",
    )
    parser.add_argument("--zarr", help="Write every resulting stack to this Zarr store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.set_defaults(stack=True)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        options = PipelineOptions(
            selection=args.select,
            stack=args.stack,
            projection=None if args.projection == "none" else args.projection,
            reproject_to_geographic=args.latlon,
            process_mode="parallel" if args.parallel else "sequential",
            staging_dir=args.staging_dir,
            on_member_error="skip" if args.skip_bad_members else "raise",
        )
    except ValidationError as e:
        parser.error(str(e))

    results = run_pipeline(args.files, options, progress=log_progress)

    failed = 0
    for source, result in results.items():
        print(_summary(source, result))
        if isinstance(result, Exception):
            failed += 1
        elif args.zarr and isinstance(result, GridStack):
            stack_to_zarr(result, args.zarr, append_dim="time")
            logger.info("Wrote %s to %s", source, args.zarr)

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
