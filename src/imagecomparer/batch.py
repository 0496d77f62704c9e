"""Batch driver for Image Comparer.

1) Decode every file in the comparison folder (one pass, kept in memory)
2) Compare each candidate to the reference
3) Move/copy the candidates above the match threshold

Every failure is local to one candidate: unreadable files, out-of-bounds
regions and failed moves are logged and reported, and the batch goes on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from PIL import Image

from .config import Options
from .errors import DecodeError, InvalidRegionError, RegionBoundsError, RelocateError
from .io_utils import apply_template, iter_candidates, load_image, relocate, unique_destination
from .matching import compute_match_ratio

logger = logging.getLogger(__name__)

# Result statuses
RELOCATED = "relocated"
WOULD_RELOCATE = "would_relocate"
BELOW_THRESHOLD = "below_threshold"
DISABLED = "disabled"
OUT_OF_BOUNDS = "out_of_bounds"
RELOCATE_FAILED = "relocate_failed"
UNREADABLE = "unreadable"


@dataclass(frozen=True)
class Candidate:
    """A comparison file and its decoded image."""

    path: Path
    image: Image.Image


@dataclass(frozen=True)
class BatchResult:
    """Outcome for one file of the comparison folder."""

    path: Path
    status: str
    match_ratio: Optional[float] = None  # None if never compared
    destination: Optional[Path] = None
    error: Optional[str] = None

    @property
    def relocated(self) -> bool:
        return self.status in (RELOCATED, WOULD_RELOCATE)

    def as_row(self) -> dict:
        """Flatten into a report row."""
        return {
            "file": self.path.name,
            "match_percent": "" if self.match_ratio is None else round(self.match_ratio * 100, 4),
            "status": self.status,
            "destination": str(self.destination) if self.destination else "",
            "error": self.error or "",
        }


def load_candidates(
    paths: Iterable[Path],
) -> Tuple[List[Candidate], List[BatchResult]]:
    """Decode every path.

    Returns
    -------
    (candidates, unreadable)
        Decoded candidates in input order, and an ``unreadable`` result for
        each file that couldn't be decoded.
    """

    candidates: List[Candidate] = []
    unreadable: List[BatchResult] = []
    for p in paths:
        try:
            img = load_image(p)
        except DecodeError as e:
            logger.warning("Ignoring: %s", p.name)
            logger.debug("Decode failure: %s", e)
            unreadable.append(BatchResult(path=p, status=UNREADABLE, error=str(e)))
            continue
        logger.info("File found: %s", p.name)
        candidates.append(Candidate(path=p, image=img))
    return candidates, unreadable


def load_folder(folder: Path) -> Tuple[List[Candidate], List[BatchResult]]:
    """:func:`load_candidates` over every file in *folder*."""
    return load_candidates(iter_candidates(folder))


def should_relocate(match_ratio: float, threshold: float) -> bool:
    """Threshold policy: 0 disables relocation, otherwise strictly greater wins."""
    return threshold != 0 and match_ratio > threshold


def _destination(options: Options, src: Path) -> Path:
    if options.output_folder is None:
        raise RelocateError("No output folder configured")
    name = apply_template(options.output_filename, src.name)
    if options.rename_on_conflict:
        return unique_destination(options.output_folder, name)
    return options.output_folder / name


def process_candidate(
    reference: Image.Image, candidate: Candidate, options: Options
) -> BatchResult:
    """Compare one candidate and relocate it if it matches."""

    try:
        ratio = compute_match_ratio(reference, candidate.image, options.rectangle)
    except (RegionBoundsError, InvalidRegionError) as e:
        logger.error("Skipping %s: %s", candidate.path.name, e)
        return BatchResult(path=candidate.path, status=OUT_OF_BOUNDS, error=str(e))

    if not should_relocate(ratio, options.match_threshold):
        status = BELOW_THRESHOLD if options.relocation_enabled else DISABLED
        return BatchResult(path=candidate.path, status=status, match_ratio=ratio)

    if options.dry_run:
        dst = _destination(options, candidate.path) if options.output_folder else None
        logger.info("Dry run: would %s %s to %s",
                    "copy" if options.copy else "move", candidate.path.name, dst or "output folder")
        return BatchResult(path=candidate.path, status=WOULD_RELOCATE,
                           match_ratio=ratio, destination=dst)

    try:
        dst = _destination(options, candidate.path)
        relocate(candidate.path, dst, copy=options.copy)
    except RelocateError as e:
        logger.error("Something went wrong when moving the file. %s", e)
        return BatchResult(path=candidate.path, status=RELOCATE_FAILED,
                           match_ratio=ratio, error=str(e))

    logger.debug("%s %s -> %s", "Copied" if options.copy else "Moved", candidate.path.name, dst)
    return BatchResult(path=candidate.path, status=RELOCATED, match_ratio=ratio, destination=dst)


def iter_batch(
    reference: Image.Image, candidates: Iterable[Candidate], options: Options
) -> Iterator[BatchResult]:
    """Lazily process candidates in order, one result each."""
    for c in candidates:
        yield process_candidate(reference, c, options)


def run_batch(options: Options) -> List[BatchResult]:
    """Run a whole comparison without any console output.

    Unreadable files come first in the returned list, followed by one result
    per decoded candidate in listing order.

    Raises
    ------
    DecodeError
        If the reference image itself can't be decoded.
    """

    reference = load_image(options.reference_image)
    candidates, unreadable = load_folder(options.comparison_folder)
    return unreadable + list(iter_batch(reference, candidates, options))
