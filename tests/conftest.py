"""Shared fixtures: tiny images generated with Pillow."""

from pathlib import Path

import pytest
from PIL import Image

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


def solid(size=(4, 4), color=RED) -> Image.Image:
    return Image.new("RGBA", size, color)


def half_and_half(size=(4, 4), left=RED, right=BLUE) -> Image.Image:
    """Left half *left*, right half *right*."""
    img = solid(size, left)
    w, h = size
    for y in range(h):
        for x in range(w // 2, w):
            img.putpixel((x, y), right)
    return img


def save(img: Image.Image, path: Path) -> Path:
    img.save(path)
    return path


@pytest.fixture
def dirs(tmp_path):
    """(reference_path, comparison_folder, output_folder) with a red 4x4 reference."""
    ref = save(solid(), tmp_path / "reference.png")
    comp = tmp_path / "compare"
    out = tmp_path / "out"
    comp.mkdir()
    out.mkdir()
    return ref, comp, out
