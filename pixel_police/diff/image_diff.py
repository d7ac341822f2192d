"""Image diff engine: pad to a common canvas, pixelmatch, write a diff PNG."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pixelmatch.contrib.PIL import pixelmatch

from pixel_police.errors import SnapshotArtifactError
from pixel_police.models.config import DiffConfig
from pixel_police.models.snapshot import Dimensions, DiffResult

logger = logging.getLogger(__name__)

PAD_COLOR = (255, 255, 255, 255)


def load_image(path: Path) -> Image.Image:
    """Open a screenshot as RGBA, rejecting missing, empty, or corrupt files."""
    path = Path(path)
    if not path.exists():
        raise SnapshotArtifactError(path, "Screenshot not found")
    if path.stat().st_size == 0:
        raise SnapshotArtifactError(path, "Screenshot is empty")
    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise SnapshotArtifactError(path, f"Screenshot could not be decoded ({e})") from e


def pad_image(img: Image.Image, width: int, height: int) -> Image.Image:
    """Place ``img`` at the top-left of an opaque white canvas of the given size."""
    if img.size == (width, height):
        return img
    canvas = Image.new("RGBA", (width, height), PAD_COLOR)
    canvas.paste(img, (0, 0))
    return canvas


def compare_images(
    before: Image.Image,
    after: Image.Image,
    options: DiffConfig | None = None,
) -> tuple[DiffResult, Image.Image]:
    """Compare two images of possibly different size.

    The canvas is the element-wise maximum of both sizes; padding is white
    and counts toward ``total_pixels``. Returns the statistics and the diff
    image (changed pixels in ``diff_color``, the rest a faded copy of ``before``).
    """
    options = options or DiffConfig()
    before = before if before.mode == "RGBA" else before.convert("RGBA")
    after = after if after.mode == "RGBA" else after.convert("RGBA")

    width = max(before.width, after.width)
    height = max(before.height, after.height)
    dimensions_differ = before.size != after.size
    if dimensions_differ:
        logger.info("  Note: Image dimensions differ. Before: %dx%d, After: %dx%d",
                    before.width, before.height, after.width, after.height)

    diff_image = Image.new("RGBA", (width, height))
    diff_pixels = pixelmatch(
        pad_image(before, width, height),
        pad_image(after, width, height),
        diff_image,
        threshold=options.threshold,
        includeAA=options.include_aa,
        alpha=options.alpha,
        diff_color=tuple(options.diff_color),
    )

    result = DiffResult(
        diff_pixels=diff_pixels,
        total_pixels=width * height,
        dimensions_differ=dimensions_differ,
        before_dimensions=Dimensions(width=before.width, height=before.height),
        after_dimensions=Dimensions(width=after.width, height=after.height),
    )
    return result, diff_image


def compare_screenshots(
    before_path: Path,
    after_path: Path,
    diff_path: Path,
    options: DiffConfig | None = None,
) -> DiffResult:
    """Diff two PNG files and write the diff image to ``diff_path``.

    Raises:
        SnapshotArtifactError: either input is missing, empty, or undecodable.
    """
    before = load_image(before_path)
    after = load_image(after_path)
    result, diff_image = compare_images(before, after, options)

    diff_path = Path(diff_path)
    diff_path.parent.mkdir(parents=True, exist_ok=True)
    diff_image.save(diff_path, format="PNG")
    return result.model_copy(update={"diff_path": str(diff_path)})
