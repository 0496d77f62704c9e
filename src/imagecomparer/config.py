"""Run configuration for Image Comparer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ArgumentError
from .region import Rectangle


@dataclass(frozen=True)
class Options:
    """Everything one run needs. Built once from the CLI, never mutated."""

    reference_image: Path
    comparison_folder: Path
    output_folder: Optional[Path] = None
    rectangle: Optional[Rectangle] = None
    output_filename: Optional[str] = None  # template with <o> / <e>
    match_threshold: float = 0.0  # fraction; 0 disables relocation
    copy: bool = False
    dry_run: bool = False
    rename_on_conflict: bool = False

    @property
    def relocation_enabled(self) -> bool:
        return self.match_threshold != 0


def parse_threshold(text: str) -> float:
    """Parse a percentage like ``"97.5"`` into a fraction (``0.975``)."""
    try:
        percent = float(text)
    except ValueError:
        raise ArgumentError(f"Match threshold must be a number, got {text!r}") from None
    if math.isnan(percent) or percent < 0:
        raise ArgumentError(f"Match threshold must be a non-negative percentage, got {text!r}")
    return percent / 100.0
