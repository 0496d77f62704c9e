"""Exceptions raised by Image Comparer."""

from __future__ import annotations


class ImageComparerError(Exception):
    """Base class for all Image Comparer errors."""


class ArgumentError(ImageComparerError, ValueError):
    """A CLI value (rectangle, threshold, ...) is malformed."""


class DecodeError(ImageComparerError):
    """A file could not be opened/decoded as an image."""


class RelocateError(ImageComparerError):
    """Moving or copying a matched file failed."""


class InvalidRegionError(ImageComparerError, ValueError):
    """A region is empty or inverted."""


class RegionBoundsError(ImageComparerError):
    """A region reaches outside the pixel bounds of an image."""
