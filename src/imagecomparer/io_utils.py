"""I/O helpers for Image Comparer.

This module handles:
- listing and decoding candidate images
- building output filenames from a template
- moving/copying matched files into the output folder
- report generation (CSV and optional XLSX)
"""

from __future__ import annotations

import csv
import shutil
from pathlib import Path
from typing import Iterator, List, Optional

from PIL import Image

from .errors import DecodeError, RelocateError
from .matching import comparable


REPORT_HEADERS = ["file", "match_percent", "status", "destination", "error"]


def iter_candidates(folder: Path) -> Iterator[Path]:
    """Yield every regular file directly inside *folder*, sorted by name.

    No extension filter is applied: whether a file is an image is decided
    by :func:`load_image`.
    """

    folder = folder.expanduser().resolve()
    for p in sorted(folder.iterdir(), key=lambda p: p.name):
        if p.is_file():
            yield p


def load_image(path: Path) -> Image.Image:
    """Fully decode an image into memory in its comparison mode.

    8-bit images become RGBA; high-bit-depth images keep their native mode
    (see :func:`imagecomparer.matching.comparable`). The file handle is
    closed before returning.

    Raises
    ------
    DecodeError
        If the file can't be opened/decoded as an image.
    """

    try:
        with Image.open(path) as img:
            img.load()
            out = comparable(img)
            return img.copy() if out is img else out
    except Exception as e:
        raise DecodeError(f"{path.name}: {e}") from e


def apply_template(template: Optional[str], filename: str) -> str:
    """Build the output filename for *filename*.

    Variables:
        <o> - original filename, minus extension
        <e> - original extension, including the dot

    ``None`` keeps the original name. Anything else in the template is
    copied literally.

    Example
    -------
    >>> apply_template("Joe - <o><e>", "photo.png")
    'Joe - photo.png'
    """

    if template is None:
        return filename
    p = Path(filename)
    return template.replace("<o>", p.stem).replace("<e>", p.suffix)


def unique_destination(out_dir: Path, desired_name: str) -> Path:
    """Return a destination path in `out_dir` that won't overwrite an existing file.

    If `desired_name` already exists, appends a suffix like:
        photo.jpg -> photo__2.jpg, photo__3.jpg, ...
    """

    dst = out_dir / desired_name
    if not dst.exists():
        return dst

    stem = dst.stem
    suffix = dst.suffix
    n = 2
    while True:
        cand = out_dir / f"{stem}__{n}{suffix}"
        if not cand.exists():
            return cand
        n += 1


def relocate(src: Path, dst: Path, copy: bool = False) -> None:
    """Copy or move a file from src to dst.

    An existing `dst` is never overwritten.

    Raises
    ------
    RelocateError
        If the destination exists or the filesystem call fails.
    """

    verb = "copy" if copy else "move"
    if dst.exists():
        raise RelocateError(f"Cannot {verb} {src.name}: destination already exists: {dst}")
    try:
        if copy:
            shutil.copy2(src, dst)
        else:
            shutil.move(str(src), str(dst))
    except OSError as e:
        raise RelocateError(f"Cannot {verb} {src.name} to {dst}: {e}") from e


def write_report_csv(rows: List[dict], out_csv: Path) -> None:
    """Write the per-candidate report as CSV."""

    out_csv.parent.mkdir(parents=True, exist_ok=True)
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_HEADERS)
        writer.writeheader()
        writer.writerows(rows)


def write_report_xlsx(rows: List[dict], out_xlsx: Path) -> bool:
    """Write the per-candidate report as XLSX.

    Returns False if openpyxl isn't installed.
    """

    try:
        from openpyxl import Workbook  # type: ignore
    except ImportError:
        return False

    out_xlsx.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.title = "report"

    ws.append(REPORT_HEADERS)
    for r in rows:
        ws.append([r.get(h, "") for h in REPORT_HEADERS])

    wb.save(out_xlsx)
    return True
