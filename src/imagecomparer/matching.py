"""Matching logic for Image Comparer.

Given:
- a reference image,
- a candidate image, and
- a region (defaults to the whole candidate)

we count the pixels inside the region that are exactly equal in both images.
The match ratio is ``matches / total`` and always lies in ``[0, 1]``.

Pixel formats
-------------
8-bit images are compared as RGBA, so palette, greyscale and RGB files with
the same colours match. High-bit-depth images (16/32-bit integer, float) keep
their native values; converting them to RGBA would clip distinct values to
the same colour.
"""

from __future__ import annotations

from typing import Optional, Tuple

from PIL import Image

from .region import Rectangle, check_bounds, full_bounds, validate_region


# Integer modes that hold more than 8 bits per pixel.
WIDE_INT_MODES = {"I", "I;16", "I;16L", "I;16B", "I;16N"}
HIGH_DEPTH_MODES = WIDE_INT_MODES | {"F"}

# Modes whose raw values aren't colours (palette indices, packed bits).
INDIRECT_MODES = {"P", "PA", "1"}


def comparable(img: Image.Image) -> Image.Image:
    """Return *img* in the mode its pixels are compared in.

    High-bit-depth images are returned unchanged; everything else becomes
    RGBA.
    """
    if img.mode in HIGH_DEPTH_MODES or img.mode == "RGBA":
        return img
    return img.convert("RGBA")


def _common_mode(
    reference: Image.Image, candidate: Image.Image
) -> Tuple[Image.Image, Image.Image]:
    if reference.mode in INDIRECT_MODES:
        reference = reference.convert("RGBA")
    if candidate.mode in INDIRECT_MODES:
        candidate = candidate.convert("RGBA")
    if reference.mode == candidate.mode:
        return reference, candidate

    if reference.mode in WIDE_INT_MODES and candidate.mode in WIDE_INT_MODES:
        # Same values, different width/byte order.
        return reference.convert("I"), candidate.convert("I")
    if reference.mode in HIGH_DEPTH_MODES or candidate.mode in HIGH_DEPTH_MODES:
        # No lossless common mode; the caller treats every pixel as different.
        return reference, candidate
    return comparable(reference), comparable(candidate)


def compute_match_ratio(
    reference: Image.Image,
    candidate: Image.Image,
    region: Optional[Rectangle] = None,
) -> float:
    """Fraction of pixels in *region* that are identical in both images.

    Parameters
    ----------
    reference:
        The reference image.
    candidate:
        The image compared to the reference.
    region:
        Pixel range to compare. If omitted, the full bounds of the
        *candidate* are used, so a reference smaller than the candidate is
        rejected rather than partially compared.

    Returns
    -------
    float
        Match ratio in ``[0, 1]``. A high-bit-depth image compared with an
        image of a different depth matches nowhere (0.0).

    Raises
    ------
    InvalidRegionError
        If the region is empty.
    RegionBoundsError
        If the region reaches outside either image.
    """

    if region is None:
        region = full_bounds(candidate)
    validate_region(region)
    check_bounds(region, reference, "reference")
    check_bounds(region, candidate, "candidate")

    reference, candidate = _common_mode(reference, candidate)
    if reference.mode != candidate.mode:
        return 0.0

    # Same mode and size: the raw buffers hold `step` bytes per pixel, in the same order.
    ref_raw = reference.crop(region.box).tobytes()
    cand_raw = candidate.crop(region.box).tobytes()

    total = region.area
    step = len(ref_raw) // total
    matches = sum(
        1 for i in range(0, len(ref_raw), step) if ref_raw[i:i + step] == cand_raw[i:i + step]
    )
    return matches / total
