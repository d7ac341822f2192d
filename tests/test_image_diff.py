"""Tests for the image diff engine."""

from pathlib import Path

import pytest
from PIL import Image

from pixel_police.diff.image_diff import (
    PAD_COLOR,
    compare_images,
    compare_screenshots,
    load_image,
    pad_image,
)
from pixel_police.errors import SnapshotArtifactError
from pixel_police.models.config import DiffConfig

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def _block_image(width: int, height: int, block: tuple[int, int, int, int]) -> Image.Image:
    """White image with a black rectangle (x0, y0, x1, y1), x1/y1 exclusive."""
    img = Image.new("RGBA", (width, height), WHITE)
    x0, y0, x1, y1 = block
    for x in range(x0, x1):
        for y in range(y0, y1):
            img.putpixel((x, y), BLACK)
    return img


class TestPadImage:
    def test_same_size_untouched(self):
        img = Image.new("RGBA", (10, 10), BLACK)
        assert pad_image(img, 10, 10) is img

    def test_pads_with_white_at_bottom_right(self):
        img = Image.new("RGBA", (10, 10), BLACK)
        padded = pad_image(img, 12, 15)
        assert padded.size == (12, 15)
        assert padded.getpixel((0, 0)) == BLACK
        assert padded.getpixel((11, 0)) == PAD_COLOR
        assert padded.getpixel((0, 14)) == PAD_COLOR


class TestCompareImages:
    def test_identical_images(self):
        img = _block_image(40, 30, (5, 5, 15, 15))
        result, diff_image = compare_images(img, img.copy())
        assert result.diff_pixels == 0
        assert result.total_pixels == 1200
        assert result.diff_percentage == 0
        assert result.dimensions_differ is False
        assert diff_image.size == (40, 30)

    def test_changed_block_counted_and_highlighted(self):
        before = Image.new("RGBA", (40, 40), WHITE)
        after = _block_image(40, 40, (10, 10, 20, 20))
        result, diff_image = compare_images(before, after)

        assert result.diff_pixels == 100
        assert result.diff_percentage == pytest.approx(100 * 100 / 1600)
        assert diff_image.getpixel((15, 15))[:3] == (255, 0, 0)
        # Unchanged pixels are a faded copy, not the highlight color
        assert diff_image.getpixel((0, 0))[:3] != (255, 0, 0)

    def test_custom_highlight_color(self):
        before = Image.new("RGBA", (20, 20), WHITE)
        after = _block_image(20, 20, (5, 5, 10, 10))
        _, diff_image = compare_images(before, after, DiffConfig(diff_color=(0, 0, 255)))
        assert diff_image.getpixel((7, 7))[:3] == (0, 0, 255)

    def test_small_color_shift_below_threshold(self):
        before = Image.new("RGBA", (20, 20), (200, 200, 200, 255))
        after = Image.new("RGBA", (20, 20), (201, 200, 200, 255))
        result, _ = compare_images(before, after)
        assert result.diff_pixels == 0

    def test_height_difference_matching_white_padding(self):
        """Padding is white, so an extra all-white strip is not a change."""
        before = Image.new("RGBA", (100, 100), BLACK)
        after = Image.new("RGBA", (100, 150), WHITE)
        after.paste(Image.new("RGBA", (100, 100), BLACK), (0, 0))

        result, diff_image = compare_images(before, after)

        assert result.diff_pixels == 0
        assert result.total_pixels == 15000
        assert result.dimensions_differ is True
        assert str(result.before_dimensions) == "100x100"
        assert str(result.after_dimensions) == "100x150"
        assert diff_image.size == (100, 150)

    def test_padded_area_counts_in_denominator(self):
        """A shorter after page shows the missing content as changed pixels."""
        before = Image.new("RGBA", (10, 20), BLACK)
        after = Image.new("RGBA", (10, 10), BLACK)
        result, _ = compare_images(before, after)
        assert result.total_pixels == 200
        assert result.diff_pixels == 100
        assert result.diff_percentage == 50

    def test_canvas_is_elementwise_max(self):
        before = Image.new("RGBA", (30, 10), WHITE)
        after = Image.new("RGBA", (10, 30), WHITE)
        result, diff_image = compare_images(before, after)
        assert diff_image.size == (30, 30)
        assert result.total_pixels == 900

    def test_rgb_inputs_accepted(self):
        before = Image.new("RGB", (10, 10), (0, 0, 0))
        after = Image.new("RGB", (10, 10), (0, 0, 0))
        result, _ = compare_images(before, after)
        assert result.diff_pixels == 0

    def test_deterministic(self):
        before = _block_image(30, 30, (0, 0, 10, 10))
        after = _block_image(30, 40, (5, 5, 20, 20))
        first, first_image = compare_images(before, after)
        second, second_image = compare_images(before, after)
        assert first == second
        assert first_image.tobytes() == second_image.tobytes()


class TestLoadImage:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SnapshotArtifactError) as exc:
            load_image(tmp_path / "missing.png")
        assert exc.value.reason == "Screenshot not found"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.png"
        path.write_bytes(b"")
        with pytest.raises(SnapshotArtifactError) as exc:
            load_image(path)
        assert exc.value.reason == "Screenshot is empty"

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "corrupt.png"
        path.write_bytes(b"not a png at all")
        with pytest.raises(SnapshotArtifactError) as exc:
            load_image(path)
        assert exc.value.path == path

    def test_converts_to_rgba(self, tmp_path: Path):
        path = tmp_path / "rgb.png"
        Image.new("RGB", (5, 5), (1, 2, 3)).save(path)
        assert load_image(path).mode == "RGBA"


class TestCompareScreenshots:
    def test_writes_diff_png(self, png_factory, tmp_path: Path):
        before = png_factory("before/a.png", 20, 20)
        after = png_factory("after/a.png", 20, 20)
        diff_path = tmp_path / "diff" / "nested" / "a-diff.png"

        result = compare_screenshots(before, after, diff_path)

        assert diff_path.exists()
        assert result.diff_path == str(diff_path)
        assert result.diff_pixels == 0
        with Image.open(diff_path) as img:
            assert img.size == (20, 20)

    def test_missing_after_raises(self, png_factory, tmp_path: Path):
        before = png_factory("before/a.png")
        with pytest.raises(SnapshotArtifactError):
            compare_screenshots(before, tmp_path / "after" / "a.png", tmp_path / "diff.png")
        assert not (tmp_path / "diff.png").exists()
