"""Image Comparer package.

This package provides a small CLI that compares a reference image against a
folder of candidates over a rectangular region and moves (or copies) the
candidates whose exact pixel-match ratio exceeds a threshold.
"""

__all__ = ["batch", "cli", "config", "errors", "io_utils", "matching", "region"]
__version__ = "0.1.0"
