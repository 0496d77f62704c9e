"""Allow running the package with: `python -m imagecomparer`.

This delegates to :func:`imagecomparer.cli.main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
