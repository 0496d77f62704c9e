"""Image Comparer CLI.

This is the entry point used by:
- `python -m imagecomparer`
- the console script `image-comparer` (installed via pyproject.toml)

Example
-------
image-comparer -r ref.png -R 10:20:40:50 -f "/data/shots" -o "/data/matches" -m 95 -c

Compares the region x=10..39, y=20..49 of every image in /data/shots with the
same region of ref.png and copies the images that match more than 95% of
pixels exactly into /data/matches.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .batch import BatchResult, iter_batch, load_candidates
from .config import Options, parse_threshold
from .errors import ArgumentError, DecodeError
from .io_utils import iter_candidates, load_image, write_report_csv, write_report_xlsx
from .region import Rectangle, parse_rectangle

DIVIDER = "-" * 60

# Exit status for argument errors (same as argparse's own).
EXIT_USAGE = 2


def _rectangle_arg(text: str) -> Rectangle:
    try:
        return parse_rectangle(text)
    except ArgumentError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _threshold_arg(text: str) -> float:
    try:
        return parse_threshold(text)
    except ArgumentError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="image-comparer",
        description=(
            "Compare a reference image against a folder of images over a rectangular "
            "area and move (or copy) the images above a match threshold."
        ),
    )
    p.add_argument(
        "-r", "--Reference-Image", "--reference-image",
        dest="reference_image",
        type=Path,
        help="The reference all the other images are compared to.",
    )
    p.add_argument(
        "-R", "--Rectangle-Area", "--rectangle-area",
        dest="rectangle",
        type=_rectangle_arg,
        default=None,
        metavar="X:Y:W:H",
        help=(
            "The rectangular area to use when comparing the images. W and H are end "
            "coordinates (exclusive), e.g. 10:20:40:50. Default: the whole candidate image."
        ),
    )
    p.add_argument(
        "-f", "--Comparison-Folder", "--comparison-folder",
        dest="comparison_folder",
        type=Path,
        help="The folder of images to compare to the reference.",
    )
    p.add_argument(
        "-o", "--Output-Folder", "--output-folder",
        dest="output_folder",
        type=Path,
        default=None,
        help="The output folder for all images above the match%% threshold.",
    )
    p.add_argument(
        "-O", "--Output-Filename", "--output-filename",
        dest="output_filename",
        default=None,
        metavar="TEMPLATE",
        help=(
            "The output filename. Variables: <o> - original filename, minus extension; "
            "<e> - original extension. Example: \"Joe - <o><e>\"."
        ),
    )
    p.add_argument(
        "-m", "--Match-Threshold", "--match-threshold", "--Match-Treshold",
        dest="match_threshold",
        type=_threshold_arg,
        default=0.0,
        metavar="PERCENT",
        help=(
            "Percentage of matching pixels an image must exceed to be considered a match "
            "(default: 0 = report only, never move or copy)."
        ),
    )
    p.add_argument(
        "-c", "--Copy", "--copy",
        dest="copy",
        action="store_true",
        help="Copy matches instead of moving them.",
    )
    p.add_argument(
        "--rename-on-conflict",
        action="store_true",
        help="If the output file exists, use name__2.ext, name__3.ext, ... instead of failing.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not move/copy files; only report what would happen.",
    )
    p.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write a CSV report with one row per file of the comparison folder.",
    )
    p.add_argument(
        "--report-xlsx",
        type=Path,
        default=None,
        help="Also write the report as XLSX (requires openpyxl).",
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


def _missing_argument(parser: argparse.ArgumentParser, name: str) -> int:
    print(f"Missing argument. You need to specify {name}.")
    print()
    parser.print_help()
    return EXIT_USAGE


def _options_from_args(args: argparse.Namespace) -> Options:
    output_folder = args.output_folder
    if output_folder is not None:
        output_folder = output_folder.expanduser().resolve()
    return Options(
        reference_image=args.reference_image.expanduser().resolve(),
        comparison_folder=args.comparison_folder.expanduser().resolve(),
        output_folder=output_folder,
        rectangle=args.rectangle,
        output_filename=args.output_filename,
        match_threshold=args.match_threshold,
        copy=args.copy,
        dry_run=args.dry_run,
        rename_on_conflict=args.rename_on_conflict,
    )


def _print_result(res: BatchResult, options: Options) -> None:
    lines = [DIVIDER, f"Image: {res.path.name}"]
    if res.match_ratio is not None:
        lines.append(f"Match %: {res.match_ratio * 100:g}")
    if res.relocated:
        verb = "copied" if options.copy else "moved"
        prefix = "Dry run: image would be" if options.dry_run else "Image is being"
        lines.append(f"Match found! {prefix} {verb} to output folder.")
    tqdm.write("\n".join(lines))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run Image Comparer.

    Returns
    -------
    int
        Process exit code (0 success, 2 argument error).
    """

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.reference_image is None:
        return _missing_argument(parser, "Reference-Image")
    if args.comparison_folder is None:
        return _missing_argument(parser, "Comparison-Folder")

    options = _options_from_args(args)

    if options.relocation_enabled and not options.dry_run and options.output_folder is None:
        return _missing_argument(parser, "Output-Folder")

    if not options.comparison_folder.is_dir():
        raise SystemExit(f"--Comparison-Folder must be an existing folder: {options.comparison_folder}")

    try:
        reference = load_image(options.reference_image)
    except DecodeError as e:
        raise SystemExit(f"Could not read reference image: {e}")

    if options.relocation_enabled and not options.dry_run:
        options.output_folder.mkdir(parents=True, exist_ok=True)

    results: List[BatchResult] = []
    with logging_redirect_tqdm():
        paths = list(iter_candidates(options.comparison_folder))
        candidates, unreadable = load_candidates(tqdm(paths, desc="Loading", unit="img"))
        results.extend(unreadable)
        for res in tqdm(iter_batch(reference, candidates, options),
                        total=len(candidates), desc="Comparing", unit="img"):
            _print_result(res, options)
            results.append(res)

    rows = [r.as_row() for r in results]
    if args.report is not None:
        write_report_csv(rows, args.report)
        print(f"Report: {args.report}")
    if args.report_xlsx is not None:
        if not write_report_xlsx(rows, args.report_xlsx):
            print(
                "Note: openpyxl is not installed, so the XLSX report was not created. "
                "Install with: pip install image-comparer[report]"
            )

    relocated = sum(1 for r in results if r.relocated)
    skipped = sum(1 for r in results if r.error is not None)
    print(f"\nDone. Matched: {relocated} | Not matched: {len(results) - relocated - skipped}"
          f" | Skipped: {skipped}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
