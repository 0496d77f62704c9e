"""Comparison regions.

A :class:`Rectangle` is written ``X:Y:W:H`` on the command line. ``W`` and
``H`` are *end coordinates* (exclusive), not a width and height:

    10:20:40:50  ->  columns 10..39, rows 20..49

This is the same convention as a Pillow crop box ``(left, upper, right,
lower)``, so a rectangle can be handed to :meth:`PIL.Image.Image.crop` as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from PIL import Image

from .errors import ArgumentError, InvalidRegionError, RegionBoundsError


@dataclass(frozen=True)
class Rectangle:
    """Pixel range ``[x, w) x [y, h)``."""

    x: int
    y: int
    w: int  # exclusive end column
    h: int  # exclusive end row

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """The rectangle as a Pillow crop box."""
        return (self.x, self.y, self.w, self.h)

    @property
    def area(self) -> int:
        """Number of pixels covered (0 for an empty or inverted rectangle)."""
        return max(0, self.w - self.x) * max(0, self.h - self.y)

    def __str__(self) -> str:
        return f"{self.x}:{self.y}:{self.w}:{self.h}"


def parse_rectangle(text: str) -> Rectangle:
    """Parse an ``X:Y:W:H`` string.

    Raises
    ------
    ArgumentError
        If the string doesn't hold four integers, or the rectangle is empty
        or starts at a negative coordinate.
    """

    parts = text.split(":")
    if len(parts) != 4:
        raise ArgumentError(f"Rectangle must be X:Y:W:H, got {text!r}")
    try:
        x, y, w, h = (int(p.strip()) for p in parts)
    except ValueError:
        raise ArgumentError(f"Rectangle values must be integers, got {text!r}") from None

    rect = Rectangle(x, y, w, h)
    try:
        validate_region(rect)
    except InvalidRegionError as e:
        raise ArgumentError(str(e)) from None
    return rect


def full_bounds(img: Image.Image) -> Rectangle:
    """Rectangle covering every pixel of *img*."""
    return Rectangle(0, 0, img.width, img.height)


def validate_region(region: Rectangle) -> None:
    """Require ``0 <= x < w`` and ``0 <= y < h``."""
    if region.x < 0 or region.y < 0:
        raise InvalidRegionError(f"Region {region} starts at a negative coordinate")
    if region.x >= region.w or region.y >= region.h:
        raise InvalidRegionError(
            f"Region {region} is empty (W and H are end coordinates and must exceed X and Y)"
        )


def check_bounds(region: Rectangle, img: Image.Image, label: str = "image") -> None:
    """Raise :class:`RegionBoundsError` if *region* doesn't fit inside *img*."""
    if region.w > img.width or region.h > img.height:
        raise RegionBoundsError(
            f"Region {region} exceeds {label} bounds {img.width}x{img.height}"
        )
